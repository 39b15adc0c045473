"""Tests for heuristic timing extraction from HTML and JSON payloads."""

import pytest

from kart_engine.data_ingestion.feed_extractor import (
    extract_from_json,
    extract_from_markup,
    extract_observations,
    parse_lap_time,
)

# ---------------------------------------------------------------------------
# Lap time parsing
# ---------------------------------------------------------------------------


def test_parse_minutes_and_seconds() -> None:
    assert parse_lap_time("1:02.345") == pytest.approx(62.345)


def test_parse_bare_seconds_and_comma_separator() -> None:
    assert parse_lap_time("61.204") == pytest.approx(61.204)
    assert parse_lap_time("61,204") == pytest.approx(61.204)
    assert parse_lap_time(65) == 65.0


@pytest.mark.parametrize("value", ["", "abc", "1:xx", None, True, 0, -3.0, [61.2]])
def test_parse_rejects_non_times(value) -> None:
    assert parse_lap_time(value) is None


# ---------------------------------------------------------------------------
# Markup
# ---------------------------------------------------------------------------

_TABLE_PAGE = """
<html><body>
<table>
  <tr><th>No</th><th>Team</th><th>Last lap</th></tr>
  <tr><td>7</td><td>Rapid Racing</td><td>1:02.345</td></tr>
  <tr><td>12</td><td>Slow Team</td><td>63.100</td></tr>
</table>
</body></html>
"""


def test_table_rows_extracted() -> None:
    found = extract_from_markup(_TABLE_PAGE)
    assert [(o.team_number, o.team_name) for o in found] == [
        ("7", "Rapid Racing"),
        ("12", "Slow Team"),
    ]
    assert found[0].lap_time == pytest.approx(62.345)
    assert found[0].kart_number is None


def test_first_matching_table_wins() -> None:
    html = (
        "<table><tr><td>7</td><td>61.0</td></tr></table>"
        "<table><tr><td>9</td><td>62.0</td></tr></table>"
    )
    found = extract_from_markup(html)
    assert [o.team_number for o in found] == ["7"]


def test_table_without_timing_rows_skipped() -> None:
    html = (
        "<table><tr><td>Menu</td><td>Home</td></tr></table>"
        "<table><tr><td>9</td><td>62.0</td></tr></table>"
    )
    found = extract_from_markup(html)
    assert [o.team_number for o in found] == ["9"]


def test_unclosed_cells_still_parsed() -> None:
    found = extract_from_markup("<table><tr><td>7<td>Rapid<td>61.234</table>")
    assert len(found) == 1
    assert found[0].team_number == "7"
    assert found[0].team_name == "Rapid"
    assert found[0].lap_time == pytest.approx(61.234)


def test_text_elements_used_without_tables() -> None:
    html = "<body><div>Kart 12 lap 61.234</div><p>nothing here</p></body>"
    found = extract_from_markup(html)
    assert len(found) == 1
    assert found[0].team_number == "12"
    assert found[0].lap_time == pytest.approx(61.234)


def test_script_contents_ignored() -> None:
    html = '<script>var row = "7 61.234";</script><div>welcome</div>'
    assert extract_from_markup(html) == []


def test_near_identical_rows_deduplicated() -> None:
    html = (
        "<table><tr><td>7</td><td>61.201</td></tr>"
        "<tr><td>7</td><td>61.204</td></tr></table>"
    )
    found = extract_from_markup(html)
    assert len(found) == 1
    assert found[0].lap_time == pytest.approx(61.201)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def test_nested_json_arrays_found() -> None:
    document = {
        "meta": {"track": "Genk"},
        "data": {
            "entries": [
                {"Kart": 12, "Team": "Rapid", "LastLap": "1:01.5", "Pos": "2"},
                {"Kart": "15", "Team": "Other", "BestLap": 60.9},
            ]
        },
    }
    found = extract_from_json(document)
    assert len(found) == 2
    first, second = found
    assert first.team_number == "12"
    assert first.kart_number == "12"
    assert first.team_name == "Rapid"
    assert first.lap_time == pytest.approx(61.5)
    assert first.position == 2
    assert second.lap_time is None
    assert second.best_lap == pytest.approx(60.9)


def test_json_name_only_entry_gets_synthesized_key() -> None:
    found = extract_from_json([{"name": "Slow Team", "lastLap": 65.2}])
    assert found[0].team_number == "name:slow-team"
    assert found[0].kart_number is None


def test_json_objects_without_identity_skipped() -> None:
    assert extract_from_json({"rows": [{"lastLap": 61.0}, 3, "x"]}) == []


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def test_json_text_detected() -> None:
    found = extract_observations('  [{"kart": "7", "laptime": 61.0}]')
    assert [(o.team_number, o.lap_time) for o in found] == [("7", 61.0)]


def test_bytes_payload_decoded() -> None:
    found = extract_observations(_TABLE_PAGE.encode("utf-8"), kind="html")
    assert len(found) == 2


def test_malformed_json_yields_nothing() -> None:
    assert extract_observations('{"broken": ') == []
    assert extract_observations("not json", kind="json") == []


@pytest.mark.parametrize("payload", [None, 42, "", "<<<>>>", "plain words only"])
def test_garbage_yields_nothing(payload) -> None:
    assert extract_observations(payload) == []


def test_whitespace_payload_yields_nothing() -> None:
    assert extract_observations("  \n\t ") == []
    assert extract_from_markup("   ") == []


# ---------------------------------------------------------------------------
# Hostile payloads
# ---------------------------------------------------------------------------


def test_deeply_nested_json_text_yields_nothing() -> None:
    payload = "[" * 100_000 + "]" * 100_000
    assert extract_observations(payload) == []


def test_deeply_nested_decoded_json_walked() -> None:
    document: list = [{"kart": "7", "laptime": 61.0}]
    for _ in range(5_000):
        document = [document]
    found = extract_observations(document, kind="json")
    assert [(o.team_number, o.lap_time) for o in found] == [("7", 61.0)]


def test_nested_table_keeps_outer_row_cells() -> None:
    html = (
        "<table><tr><td>7</td>"
        "<td><table><tr><td>x</td></tr></table></td>"
        "<td>61.234</td></tr></table>"
    )
    found = extract_from_markup(html)
    assert len(found) == 1
    assert found[0].team_number == "7"
    assert found[0].lap_time == pytest.approx(61.234)


def test_page_with_xml_declaration_parsed() -> None:
    html = (
        '<?xml version="1.0" encoding="utf-8"?>'
        "<html><body><table><tr><td>7</td><td>61.234</td></tr></table></body></html>"
    )
    found = extract_from_markup(html)
    assert [o.team_number for o in found] == ["7"]
