"""Normalised timing records produced by the feed extractor."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Observation:
    """One lap/timing record extracted from a feed payload.

    Attributes:
        team_number: Entrant number, or a key synthesised from the name.
        team_name: Team or driver name, if the feed carried one.
        kart_number: Kart/transponder number, if the feed carried one.
        lap_time: Last lap in seconds; ``None`` when a JSON row had an
            entrant but no lap time.
        best_lap: Best lap in seconds, if present.
        position: Running position, if present.
    """

    team_number: str
    team_name: str | None = None
    kart_number: str | None = None
    lap_time: float | None = None
    best_lap: float | None = None
    position: int | None = None

    @property
    def team_key(self) -> str:
        """Key used to find the team: kart number first, then team number."""
        return self.kart_number or self.team_number

    @property
    def dedup_key(self) -> tuple[str, str, float | None]:
        lap = round(self.lap_time, 2) if self.lap_time is not None else None
        return (self.team_number, self.kart_number or "", lap)


def synthesize_team_key(name: str) -> str:
    """Build a stable team key from a free-text team name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return f"name:{slug}" if slug else ""


@dataclass
class LiveTiming:
    """Presentation-only timing snapshot for one team."""

    team_key: str
    name: str | None = None
    kart_label: str | None = None
    position: int | None = None
    last_lap: float | None = None
    best_lap: float | None = None
    updated_at: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        self.updated_at = datetime.now()
