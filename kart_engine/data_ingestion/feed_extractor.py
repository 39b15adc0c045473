"""Heuristic extraction of timing observations from live-timing pages.

Timing providers publish either an HTML page with one or more tables or
a JSON document of arbitrary nesting.  Nothing about either shape is
guaranteed, so extraction is pattern based:

* **Markup**: the first table that has any row with both a lap time
  cell (``m:ss.fff`` or ``ss.fff``) and a bare 1-4 digit number wins.
  Tables are never merged.  Without a matching table, text-bearing
  elements (``div``, ``li``, ``p``, ...) are scanned for the same two
  patterns in one element's text.
* **JSON**: every array anywhere in the document is scanned; each
  object element is searched for known key aliases.

Malformed or unrelated payloads simply produce no observations.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

import lxml.html
from lxml import etree

from kart_engine.core.observation import Observation, synthesize_team_key

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_CELL_TIME = re.compile(r"^(?:(\d{1,2}):)?(\d{1,3}[.,]\d{1,3})$")
_CELL_INTEGER = re.compile(r"^\d{1,4}$")
_TEXT_TIME = re.compile(r"(?<![\d:.,])(?:(\d{1,2}):)?(\d{1,3}[.,]\d{1,3})(?![\d.,:])")
_TEXT_INTEGER = re.compile(r"(?<![\d:.,])(\d{1,4})(?![\d.,:])")
_HAS_LETTERS = re.compile(r"[^\W\d_]")

_TEXT_TAGS: frozenset[str] = frozenset(
    {"div", "li", "p", "span", "pre", "section", "article", "tr"}
)

# JSON key aliases, tried in priority order (case-insensitive).
NAME_KEYS: tuple[str, ...] = (
    "team",
    "teamname",
    "team_name",
    "name",
    "driver",
    "drivername",
    "driver_name",
    "competitor",
)
KART_KEYS: tuple[str, ...] = (
    "kart",
    "kartnumber",
    "kart_number",
    "kartno",
    "number",
    "no",
    "num",
    "transponder",
    "car",
    "carnumber",
)
LAST_LAP_KEYS: tuple[str, ...] = (
    "lastlap",
    "last_lap",
    "laptime",
    "lap_time",
    "last",
)
BEST_LAP_KEYS: tuple[str, ...] = (
    "bestlap",
    "best_lap",
    "best",
    "fastestlap",
    "fastest_lap",
)
POSITION_KEYS: tuple[str, ...] = ("position", "pos", "rank", "place")


# ---------------------------------------------------------------------------
# Time parsing
# ---------------------------------------------------------------------------


def parse_lap_time(value: Any) -> float | None:
    """Convert a lap time to seconds.

    Accepts ``m:ss.fff`` (minutes * 60 + seconds), a bare decimal
    (seconds) with either ``.`` or ``,`` as decimal separator, or a
    number.  Returns ``None`` for anything else or non-positive values.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        seconds = float(value)
        return seconds if seconds > 0.0 else None
    if not isinstance(value, str):
        return None
    text = value.strip().replace(",", ".")
    if not text:
        return None
    minutes = 0
    if ":" in text:
        head, _, text = text.rpartition(":")
        if not head.isdigit():
            return None
        minutes = int(head)
    try:
        seconds = float(text)
    except ValueError:
        return None
    total = minutes * 60 + seconds
    return total if total > 0.0 else None


def _parse_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _text_id(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    return None


# ---------------------------------------------------------------------------
# Markup
# ---------------------------------------------------------------------------


# tags whose text never reaches the page
_HIDDEN: tuple[object, ...] = (etree.Comment, "script", "style", "noscript")


def _parse_document(html: str) -> lxml.html.HtmlElement:
    try:
        return lxml.html.document_fromstring(html)
    except ValueError:
        # str input with an XML encoding declaration
        return lxml.html.document_fromstring(html.encode("utf-8"))


def _element_text(element: lxml.html.HtmlElement) -> str:
    return " ".join(" ".join(element.itertext()).split())


def _table_rows(table: lxml.html.HtmlElement) -> list[list[str]]:
    """Cell texts of the rows belonging to *table* itself, not nested tables."""
    return [
        [_element_text(cell) for cell in row.xpath("./td|./th")]
        for row in table.xpath("./tr|./thead/tr|./tbody/tr|./tfoot/tr")
    ]


def _row_observation(cells: list[str]) -> Observation | None:
    lap_time: float | None = None
    number: str | None = None
    name: str | None = None
    for cell in cells:
        if lap_time is None and _CELL_TIME.match(cell):
            lap_time = parse_lap_time(cell)
            continue
        if number is None and _CELL_INTEGER.match(cell):
            number = cell
            continue
        if name is None and _HAS_LETTERS.search(cell):
            name = cell
    if lap_time is None or number is None:
        return None
    return Observation(team_number=number, team_name=name, lap_time=lap_time)


def _text_observation(text: str) -> Observation | None:
    time_match = _TEXT_TIME.search(text)
    if time_match is None:
        return None
    lap_time = parse_lap_time(time_match.group(0))
    if lap_time is None:
        return None
    rest = text[: time_match.start()] + " " + text[time_match.end() :]
    number_match = _TEXT_INTEGER.search(rest)
    if number_match is None:
        return None
    return Observation(team_number=number_match.group(1), lap_time=lap_time)


def extract_from_markup(html: str) -> list[Observation]:
    """Extract observations from an HTML timing page."""
    if not html.strip():
        return []
    try:
        document = _parse_document(html)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
        logger.warning("Could not parse timing markup: %s", exc)
        return []
    etree.strip_elements(document, *_HIDDEN, with_tail=False)

    for table in document.iter("table"):
        rows = _table_rows(table)
        found = [obs for obs in map(_row_observation, rows) if obs is not None]
        if found:
            return _dedupe(found)

    texts = (_element_text(el) for el in document.iter(*_TEXT_TAGS))
    found = [obs for obs in map(_text_observation, texts) if obs is not None]
    return _dedupe(found)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def _iter_arrays(document: Any) -> Iterator[list[Any]]:
    """Every array in *document*, depth first, in document order.

    Walks with an explicit stack so nesting depth is not bounded by the
    interpreter's recursion limit.
    """
    stack: list[Any] = [document]
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            yield node
            children = node
        elif isinstance(node, dict):
            children = list(node.values())
        else:
            continue
        stack.extend(reversed(children))


def _lookup(lowered: dict[str, Any], aliases: tuple[str, ...]) -> Any:
    for alias in aliases:
        value = lowered.get(alias)
        if value is not None and value != "":
            return value
    return None


def _object_observation(item: dict[str, Any]) -> Observation | None:
    lowered = {str(k).lower(): v for k, v in item.items()}
    name = _text_id(_lookup(lowered, NAME_KEYS))
    kart = _text_id(_lookup(lowered, KART_KEYS))
    if name is None and kart is None:
        return None
    team_number = kart or synthesize_team_key(name or "")
    if not team_number:
        return None
    return Observation(
        team_number=team_number,
        team_name=name,
        kart_number=kart,
        lap_time=parse_lap_time(_lookup(lowered, LAST_LAP_KEYS)),
        best_lap=parse_lap_time(_lookup(lowered, BEST_LAP_KEYS)),
        position=_parse_int(_lookup(lowered, POSITION_KEYS)),
    )


def extract_from_json(document: Any) -> list[Observation]:
    """Extract observations from a decoded JSON document."""
    found: list[Observation] = []
    for array in _iter_arrays(document):
        for item in array:
            if isinstance(item, dict):
                obs = _object_observation(item)
                if obs is not None:
                    found.append(obs)
    return _dedupe(found)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _dedupe(observations: list[Observation]) -> list[Observation]:
    seen: set[tuple[str, str, float | None]] = set()
    unique: list[Observation] = []
    for obs in observations:
        key = obs.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(obs)
    return unique


def extract_observations(payload: Any, kind: str | None = None) -> list[Observation]:
    """Convert a raw feed payload into timing observations.

    Args:
        payload: HTML text, JSON text, or an already decoded JSON value.
        kind: ``"html"`` or ``"json"``; detected from the payload when
            omitted.

    Returns:
        De-duplicated observations, empty when nothing matched.  Never
        raises for malformed input.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")

    if kind is None:
        if isinstance(payload, (dict, list)):
            kind = "json"
        elif isinstance(payload, str) and payload.lstrip()[:1] in ("{", "["):
            kind = "json"
        else:
            kind = "html"

    if kind == "json":
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except (ValueError, RecursionError):
                logger.info("Feed payload is not valid JSON")
                return []
        observations = extract_from_json(payload)
    elif isinstance(payload, str):
        observations = extract_from_markup(payload)
    else:
        return []

    if not observations:
        logger.info("No timing rows found in %s payload", kind)
    return observations
