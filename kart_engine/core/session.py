"""Race session: the context object owning all pit board state.

A :class:`RaceSession` holds the kart registry, the team table, the pit
rows and the live timing snapshot.  Every state-changing operation runs
to completion, rescores all karts and then notifies subscribers (the
presentation layer).  Independent sessions share nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from kart_engine.config import Settings
from kart_engine.core.aggregator import ingest_observations
from kart_engine.core.kart import Kart
from kart_engine.core.observation import LiveTiming, Observation
from kart_engine.core.pit_lane import PitEntryResult, PitLane
from kart_engine.core.registry import KartRegistry
from kart_engine.core.scoring import ScoringResult, apply_scores, compute_scores
from kart_engine.core.team import Team
from kart_engine.errors import InvalidManualInputError

logger = logging.getLogger(__name__)

Subscriber = Callable[["RaceSession"], None]


class RaceSession:
    """Kart registry, team table, pit rows and live timing for one race.

    Attributes:
        settings: Parameters read at construction and on row setup.
        registry: Owner of every :class:`Kart`.
        teams: Team key -> :class:`Team`.
        pit_lane: Pit rows of kart ids.
        live_timing: Team key -> presentation snapshot.
        last_scoring: Audit trail of the most recent rescore.
    """

    def __init__(self, settings: Settings | None = None, setup: bool = True) -> None:
        self.settings: Settings = settings or Settings()
        self.registry = KartRegistry(
            score_min=self.settings.score_min,
            score_max=self.settings.score_max,
        )
        self.teams: dict[str, Team] = {}
        self.pit_lane = PitLane()
        self.live_timing: dict[str, LiveTiming] = {}
        self.last_scoring: ScoringResult | None = None
        self._subscribers: list[Subscriber] = []
        if setup:
            self.pit_lane.setup(
                self.registry, self.settings.row_count, self.settings.karts_per_row
            )

    def __repr__(self) -> str:
        return (
            f"RaceSession(rows={len(self.pit_lane.rows)}, "
            f"karts={len(self.registry)}, teams={len(self.teams)})"
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _changed(self) -> None:
        self.rescore()
        for callback in list(self._subscribers):
            callback(self)

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def team(self, number: str) -> Team:
        """Return the team for *number*, creating it on first use."""
        team = self.teams.get(number)
        if team is None:
            team = Team(number=number)
            self.teams[number] = team
        return team

    def karts_in_row(self, row: int) -> list[Kart]:
        return [self.registry.get(kart_id) for kart_id in self.pit_lane.rows[row]]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def rescore(self) -> ScoringResult:
        """Recompute every kart score from the current stint history."""
        result = compute_scores(self.registry, self.teams.values(), self.settings)
        apply_scores(self.registry, self.teams.values(), result)
        self.last_scoring = result
        return result

    def setup_rows(self, settings: Settings | None = None) -> None:
        """Re-create the pit rows, optionally with new settings.

        Prior row contents are discarded; karts and teams are kept.
        """
        if settings is not None:
            self.settings = settings
            self.registry.score_min = settings.score_min
            self.registry.score_max = settings.score_max
        self.pit_lane.setup(
            self.registry, self.settings.row_count, self.settings.karts_per_row
        )
        self._changed()

    def ingest(self, observations: Iterable[Observation]) -> int:
        """Fold one batch of observations into the session.

        Returns:
            Number of laps recorded into stints.
        """
        recorded = ingest_observations(
            observations, self.registry, self.teams, self.live_timing, self.settings
        )
        self._changed()
        return recorded

    def pit_entry(self, row: int, team_number: str | None) -> PitEntryResult | None:
        """A team enters pit row *row* (zero-based).

        Args:
            row: Row index.
            team_number: Team entering, or ``None`` if the prompt was
                cancelled (nothing happens).

        Raises:
            InvalidManualInputError: For a blank team number.
            UnknownPitRowError: If *row* is out of range.
            EmptyPitRowError: If the row is empty; state is unchanged.
        """
        if team_number is None:
            return None
        number = team_number.strip()
        if not number:
            raise InvalidManualInputError("Team number must not be empty.")
        existing = self.teams.get(number)
        team = existing if existing is not None else Team(number=number)
        result = self.pit_lane.pit_entry(row, team, self.registry)
        self.teams.setdefault(number, team)
        self._changed()
        return result

    def add_kart(self, row: int, label: str = "") -> Kart:
        """Introduce a replacement kart at the back of *row*."""
        self.pit_lane.check_row(row)
        kart = self.registry.new_kart(label=label)
        self.pit_lane.append(row, kart.kart_id)
        logger.info("Kart %s added to pit row %d", kart.kart_id, row + 1)
        self._changed()
        return kart

    def remove_kart(self, kart_id: str) -> bool:
        """Take a kart out of every row; its history is kept."""
        self.registry.get(kart_id)
        removed = self.pit_lane.discard(kart_id)
        if removed:
            logger.info("Kart %s taken out of the pit lane", kart_id)
            self._changed()
        return removed

    def set_manual_score(self, kart_id: str, value: str | float | None) -> bool:
        changed = self.registry.set_manual_score(kart_id, value)
        if changed:
            self._changed()
        return changed

    def set_manual_color(self, kart_id: str, color: str | None) -> bool:
        changed = self.registry.set_manual_color(kart_id, color)
        if changed:
            self._changed()
        return changed

    def relabel_kart(self, kart_id: str, label: str | None) -> bool:
        changed = self.registry.relabel(kart_id, label)
        if changed:
            self._changed()
        return changed

    def clear_manual_override(self, kart_id: str) -> None:
        self.registry.clear_manual_override(kart_id)
        self._changed()
