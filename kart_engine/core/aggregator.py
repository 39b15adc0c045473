"""Timing aggregator: folds feed observations into team and kart state.

For each observation the live timing snapshot is merged, and when the
team currently has a kart assigned the lap is appended to the team's
open stint and to that kart's lap history.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from kart_engine.config import Settings
from kart_engine.core.observation import LiveTiming, Observation
from kart_engine.core.registry import KartRegistry
from kart_engine.core.team import Team

logger = logging.getLogger(__name__)


def _same_lap(a: float | None, b: float | None) -> bool:
    return a is not None and b is not None and round(a, 3) == round(b, 3)


def merge_live_timing(
    live_timing: dict[str, LiveTiming],
    obs: Observation,
) -> tuple[LiveTiming, float | None]:
    """Merge *obs* into the snapshot for its team.

    Fields the observation does not carry keep their previous value.

    Returns:
        The updated snapshot and the last lap it held before the merge.
    """
    key = obs.team_key
    entry = live_timing.get(key)
    if entry is None:
        entry = LiveTiming(team_key=key)
        live_timing[key] = entry
    previous_last = entry.last_lap

    if obs.team_name:
        entry.name = obs.team_name
    if obs.kart_number:
        entry.kart_label = obs.kart_number
    if obs.position is not None:
        entry.position = obs.position
    if obs.lap_time is not None:
        entry.last_lap = obs.lap_time

    candidates = [t for t in (obs.best_lap, obs.lap_time) if t is not None]
    if candidates:
        best = min(candidates)
        if entry.best_lap is None or best < entry.best_lap:
            entry.best_lap = best
    entry.touch()
    return entry, previous_last


def ingest_observations(
    observations: Iterable[Observation],
    registry: KartRegistry,
    teams: dict[str, Team],
    live_timing: dict[str, LiveTiming],
    settings: Settings,
) -> int:
    """Apply a batch of observations to the session state in place.

    Args:
        observations: Records from one extraction call.
        registry: Kart registry receiving lap history.
        teams: Team table keyed by team key; missing teams are created.
        live_timing: Presentation snapshot keyed by team key.
        settings: Supplies the retention window and repeated-lap policy.

    Returns:
        Number of laps recorded into stints.
    """
    recorded = 0
    for obs in observations:
        key = obs.team_key
        if not key:
            continue
        _, previous_last = merge_live_timing(live_timing, obs)

        team = teams.get(key)
        if team is None:
            team = Team(number=key)
            teams[key] = team

        if obs.lap_time is None or team.current_kart_id is None:
            continue
        if settings.skip_repeated_laps and _same_lap(previous_last, obs.lap_time):
            continue

        stint = team.active_stint()
        assert stint is not None
        stint.record_lap(obs.lap_time, settings.max_laps_retained)
        kart = registry.ensure(team.current_kart_id, label=team.number)
        kart.record_lap(obs.lap_time, settings.max_laps_retained)
        recorded += 1

    logger.debug("Recorded %d stint laps", recorded)
    return recorded
