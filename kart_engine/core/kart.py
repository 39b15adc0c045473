"""Kart model and score colour banding for the pit board."""

from __future__ import annotations

from dataclasses import dataclass, field

NEUTRAL_COLOR: str = "blue"

# (lower bound, colour), checked in descending order
SCORE_BANDS: tuple[tuple[float, str], ...] = (
    (900.0, "purple"),
    (700.0, "green"),
    (500.0, "yellow"),
    (300.0, "orange"),
)
FLOOR_COLOR: str = "red"

MANUAL_COLORS: frozenset[str] = frozenset(
    {NEUTRAL_COLOR, "red", "orange", "yellow", "green", "purple"}
)


def score_color(score: float | None) -> str:
    """Map a display score to its colour band.

    A kart without a score is unbanded and shown in the neutral colour.
    """
    if score is None:
        return NEUTRAL_COLOR
    for lower, color in SCORE_BANDS:
        if score >= lower:
            return color
    return FLOOR_COLOR


@dataclass
class Kart:
    """A physical kart as tracked by the registry.

    Attributes:
        kart_id: Unique identity, independent of any team number.
        label: Free-text display label (team or kart number), may be empty.
        lap_times: Most recent lap times in seconds, oldest first.
        score: Current display score, ``None`` until first scored.
        manual: Whether ``score`` is pinned to ``manual_score``.
        manual_score: User-supplied score while ``manual`` is set.
        manual_color: User-supplied colour overriding the score band.
    """

    kart_id: str
    label: str = ""
    lap_times: list[float] = field(default_factory=list)
    score: float | None = None
    manual: bool = False
    manual_score: float | None = None
    manual_color: str | None = None

    def __post_init__(self) -> None:
        if not self.kart_id:
            raise ValueError("kart_id must not be empty.")

    @property
    def color(self) -> str:
        if self.manual_color is not None:
            return self.manual_color
        return score_color(self.score)

    def record_lap(self, lap_time: float, max_laps: int) -> None:
        """Append a lap, evicting the oldest beyond *max_laps*."""
        self.lap_times.append(lap_time)
        if len(self.lap_times) > max_laps:
            del self.lap_times[: len(self.lap_times) - max_laps]

    def pin_score(self, value: float) -> None:
        self.manual = True
        self.manual_score = value
        self.score = value

    def unpin_score(self) -> None:
        self.manual = False
        self.manual_score = None
