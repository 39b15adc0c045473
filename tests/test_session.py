"""End-to-end tests for the race session: pit entries, laps, scores, overrides."""

import json
from pathlib import Path

import pytest

from kart_engine.config import Settings
from kart_engine.core.observation import Observation
from kart_engine.core.session import RaceSession
from kart_engine.errors import InvalidManualInputError, UnknownKartError
from kart_engine.export import build_export, karts_frame, write_export

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

_SLOW_STINT = [70.0, 70.2, 69.8, 70.1, 69.9]
_FAST_STINT = [68.0, 68.2, 67.8, 68.1, 67.9]


def _session() -> RaceSession:
    return RaceSession(Settings(row_count=1, karts_per_row=3, settling_laps=0))


def _drive(session: RaceSession, number: str, laps: list[float]) -> None:
    for lap in laps:
        session.ingest([Observation(team_number=number, lap_time=lap)])


def _two_stint_session() -> RaceSession:
    """Team 7 drives K1 slowly, pits, then drives K2 two seconds faster."""
    session = _session()
    session.pit_entry(0, "7")
    _drive(session, "7", _SLOW_STINT)
    session.pit_entry(0, "7")
    _drive(session, "7", _FAST_STINT)
    return session


# ---------------------------------------------------------------------------
# Race flow
# ---------------------------------------------------------------------------


def test_faster_kart_scores_higher() -> None:
    session = _two_stint_session()
    assert session.pit_lane.rows == [["K3", "K1"]]
    assert session.teams["7"].current_kart_id == "K2"
    scores = {k.kart_id: k.score for k in session.registry}
    assert scores["K1"] == pytest.approx(0.0)
    assert scores["K2"] == pytest.approx(1000.0)
    assert scores["K3"] == pytest.approx(500.0)
    assert session.registry.get("K2").color == "purple"
    assert session.registry.get("K1").color == "red"


def test_laps_before_first_pit_entry_not_attributed() -> None:
    session = _session()
    _drive(session, "7", [70.0, 71.0])
    assert session.teams["7"].stints == []
    assert all(not k.lap_times for k in session.registry)
    assert session.live_timing["7"].last_lap == 71.0


def test_rescore_runs_on_every_change() -> None:
    session = _session()
    assert session.last_scoring is None
    session.pit_entry(0, "7")
    assert session.last_scoring is not None
    assert all(k.score == 500.0 for k in session.registry)


def test_subscribers_notified_and_unsubscribed() -> None:
    session = _session()
    calls: list[RaceSession] = []
    unsubscribe = session.subscribe(calls.append)
    session.pit_entry(0, "7")
    _drive(session, "7", [70.0])
    assert calls == [session, session]
    unsubscribe()
    session.pit_entry(0, "7")
    assert len(calls) == 2


def test_sessions_share_nothing() -> None:
    first = _session()
    second = _session()
    first.pit_entry(0, "7")
    assert second.teams == {}
    assert second.pit_lane.rows == [["K1", "K2", "K3"]]


def test_setup_rows_keeps_history() -> None:
    session = _two_stint_session()
    session.setup_rows(Settings(row_count=2, karts_per_row=1, settling_laps=0))
    assert len(session.pit_lane.rows) == 2
    assert "7" in session.teams
    assert session.registry.get("K1").lap_times == _SLOW_STINT


# ---------------------------------------------------------------------------
# Manual overrides
# ---------------------------------------------------------------------------


def test_manual_score_survives_rescoring() -> None:
    session = _two_stint_session()
    assert session.set_manual_score("K1", "250")
    _drive(session, "7", [67.5])
    kart = session.registry.get("K1")
    assert kart.manual
    assert kart.score == 250.0
    assert session.registry.get("K2").score == pytest.approx(1000.0)


def test_clearing_manual_score_restores_automatic() -> None:
    session = _two_stint_session()
    session.set_manual_score("K1", 900)
    session.set_manual_score("K1", "")
    kart = session.registry.get("K1")
    assert not kart.manual
    assert kart.score == pytest.approx(0.0)


def test_manual_score_input_validation() -> None:
    session = _session()
    assert session.set_manual_score("K1", None) is False
    assert session.registry.get("K1").manual is False
    with pytest.raises(InvalidManualInputError):
        session.set_manual_score("K1", "fast")
    with pytest.raises(InvalidManualInputError):
        session.set_manual_score("K1", "1500")
    with pytest.raises(UnknownKartError):
        session.set_manual_score("K99", "100")
    session.set_manual_score("K1", "12,5")
    assert session.registry.get("K1").score == 12.5


def test_manual_color() -> None:
    session = _two_stint_session()
    session.set_manual_color("K1", "GREEN")
    assert session.registry.get("K1").color == "green"
    with pytest.raises(InvalidManualInputError):
        session.set_manual_color("K1", "pink")
    session.set_manual_color("K1", "")
    assert session.registry.get("K1").color == "red"


def test_clear_manual_override_and_relabel() -> None:
    session = _two_stint_session()
    session.set_manual_score("K2", 10)
    session.set_manual_color("K2", "blue")
    session.clear_manual_override("K2")
    kart = session.registry.get("K2")
    assert not kart.manual
    assert kart.manual_color is None
    assert kart.color == "purple"
    assert session.relabel_kart("K2", " 31 ")
    assert kart.label == "31"
    assert session.relabel_kart("K2", None) is False


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def test_build_export_structure() -> None:
    session = _two_stint_session()
    data = build_export(session)
    assert data["pitRows"] == [["K3", "K1"]]
    assert data["karts"]["K2"]["lapTimes"] == _FAST_STINT
    assert data["teams"]["7"]["currentKartId"] == "K2"
    assert [s["kartId"] for s in data["teams"]["7"]["stints"]] == ["K1", "K2"]
    assert data["liveTiming"]["7"]["bestLap"] == 67.8


def test_write_export_into_directory(tmp_path: Path) -> None:
    session = _two_stint_session()
    path = write_export(session, tmp_path)
    assert path.name == "race_data.json"
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    assert set(data) == {"pitRows", "karts", "teams", "liveTiming"}


def test_karts_frame_sorted_by_score() -> None:
    session = _two_stint_session()
    frame = karts_frame(session)
    assert list(frame["kart_id"]) == ["K2", "K3", "K1"]
    assert frame.loc[frame["kart_id"] == "K1", "row"].iloc[0] == 1
    assert frame["row"].isna().sum() == 1
    assert frame.loc[frame["kart_id"] == "K2", "laps"].iloc[0] == 5
