"""Export of pit board state to JSON and tabular form.

Pure reads: nothing here mutates the session.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from kart_engine.core.session import RaceSession

DEFAULT_EXPORT_NAME: str = "race_data.json"

_KART_COLUMNS: list[str] = [
    "kart_id",
    "label",
    "row",
    "score",
    "color",
    "manual",
    "laps",
    "last_lap",
    "best_lap",
]


def build_export(session: RaceSession) -> dict[str, Any]:
    """Serialise pit rows, karts, teams and live timing to plain data."""
    karts = {
        kart.kart_id: {
            "label": kart.label,
            "score": kart.score,
            "color": kart.color,
            "manual": kart.manual,
            "manualScore": kart.manual_score,
            "manualColor": kart.manual_color,
            "lapTimes": list(kart.lap_times),
        }
        for kart in session.registry
    }
    teams = {
        number: {
            "currentKartId": team.current_kart_id,
            "previousKartId": team.previous_kart_id,
            "excluded": team.excluded,
            "stints": [
                {"kartId": stint.kart_id, "lapTimes": list(stint.lap_times)}
                for stint in team.stints
            ],
        }
        for number, team in session.teams.items()
    }
    live = {
        key: {
            "name": entry.name,
            "kartLabel": entry.kart_label,
            "position": entry.position,
            "lastLap": entry.last_lap,
            "bestLap": entry.best_lap,
            "updatedAt": entry.updated_at.isoformat(timespec="seconds"),
        }
        for key, entry in session.live_timing.items()
    }
    return {
        "pitRows": [list(row) for row in session.pit_lane.rows],
        "karts": karts,
        "teams": teams,
        "liveTiming": live,
    }


def write_export(session: RaceSession, path: Path) -> Path:
    """Write :func:`build_export` output as indented JSON to *path*."""
    if path.is_dir():
        path = path / DEFAULT_EXPORT_NAME
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(build_export(session), fh, indent=2)
    return path


def karts_frame(session: RaceSession) -> pd.DataFrame:
    """One row per kart, best scores first; unscored karts last."""
    rows: list[dict[str, object]] = []
    for kart in session.registry:
        rows.append(
            {
                "kart_id": kart.kart_id,
                "label": kart.label,
                "row": session.pit_lane.row_of(kart.kart_id),
                "score": kart.score,
                "color": kart.color,
                "manual": kart.manual,
                "laps": len(kart.lap_times),
                "last_lap": kart.lap_times[-1] if kart.lap_times else None,
                "best_lap": min(kart.lap_times) if kart.lap_times else None,
            }
        )
    frame = pd.DataFrame(rows, columns=_KART_COLUMNS)
    if frame.empty:
        return frame
    frame["row"] = frame["row"].astype("Int64") + 1
    return frame.sort_values("score", ascending=False, na_position="last").reset_index(
        drop=True
    )


def live_timing_frame(session: RaceSession) -> pd.DataFrame:
    """Live timing snapshot ordered by position, then team key."""
    rows = [
        {
            "team": key,
            "name": entry.name,
            "kart": entry.kart_label,
            "position": entry.position,
            "last_lap": entry.last_lap,
            "best_lap": entry.best_lap,
        }
        for key, entry in session.live_timing.items()
    ]
    frame = pd.DataFrame(
        rows, columns=["team", "name", "kart", "position", "last_lap", "best_lap"]
    )
    if frame.empty:
        return frame
    return frame.sort_values(["position", "team"], na_position="last").reset_index(
        drop=True
    )
