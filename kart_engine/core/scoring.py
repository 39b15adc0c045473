"""Stint scorer: infers kart quality from cross-stint lap-time comparisons.

Scores are recomputed from scratch on every call.  The algorithm:

1. Average each stint after dropping settling laps and outliers around
   the stint median (threshold scales with lap length).
2. Exclude teams whose stint averages spread too widely to be compared.
3. For every consecutive pair of stints on different karts, credit the
   lap-time improvement ``prev - cur`` to the later kart and debit it
   from the earlier one.
4. Divide every delta by a cross-team baseline lap time so comparisons
   made in different track conditions share one relative unit.
5. Average each kart's evidence and rescale linearly onto the display
   range.  Manually pinned karts keep their score but still provide
   evidence for the karts they were compared against.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np

from kart_engine.config import Settings
from kart_engine.core.registry import KartRegistry
from kart_engine.core.team import Team

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_OUTLIER_TOLERANCE: float = 0.5  # seconds
RELATIVE_OUTLIER_TOLERANCE: float = 0.12  # fraction of the stint median
MIN_SPREAD_TOLERANCE: float = 0.5  # seconds
RELATIVE_SPREAD_TOLERANCE: float = 0.01  # fraction of the team mean
MIN_BASELINE_POINTS: int = 3
_SPAN_FLOOR: float = 1e-9

# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass
class ScoringResult:
    """Full audit trail of one scoring pass.

    Attributes:
        stint_averages: Team key -> ``(kart_id, average)`` for every stint
            that kept at least one lap, in stint order.
        excluded_teams: Teams flagged as inconsistent.
        baseline: Condition baseline lap time, ``None`` when there were
            too few stints to compute one.
        evidence: Kart id -> normalised deltas attributed to it.
        raw_metrics: Kart id -> mean evidence (0.0 without evidence).
        scores: Kart id -> display score for every non-manual kart.
    """

    stint_averages: dict[str, list[tuple[str, float]]] = field(default_factory=dict)
    excluded_teams: set[str] = field(default_factory=set)
    baseline: float | None = None
    evidence: dict[str, list[float]] = field(default_factory=dict)
    raw_metrics: dict[str, float] = field(default_factory=dict)
    scores: dict[str, float] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def stint_average(
    lap_times: Sequence[float],
    settling_laps: int = 4,
    outlier_factor: float = 2.6,
) -> float | None:
    """Filtered mean lap time of one stint.

    The first *settling_laps* laps are dropped.  Of the rest, any lap
    further from the median than
    ``outlier_factor * max(0.5, 0.12 * median)`` is discarded.

    Returns:
        Mean of the surviving laps, or ``None`` if none survive.
    """
    laps = np.asarray(lap_times[settling_laps:], dtype=float)
    if laps.size == 0:
        return None
    median = float(np.median(laps))
    threshold = outlier_factor * max(
        MIN_OUTLIER_TOLERANCE, RELATIVE_OUTLIER_TOLERANCE * median
    )
    kept = laps[np.abs(laps - median) <= threshold]
    if kept.size == 0:
        return None
    return float(kept.mean())


def is_inconsistent(
    averages: Sequence[float],
    inconsistency_factor: float = 2.5,
) -> bool:
    """Whether a team's stint averages spread too widely to compare karts.

    Needs at least two averages; the spread is the population standard
    deviation, tested against
    ``inconsistency_factor * max(0.5, 0.01 * mean)``.
    """
    if len(averages) < 2:
        return False
    values = np.asarray(averages, dtype=float)
    mean = float(values.mean())
    std = float(values.std())
    limit = inconsistency_factor * max(
        MIN_SPREAD_TOLERANCE, RELATIVE_SPREAD_TOLERANCE * mean
    )
    return std > limit


def condition_baseline(
    stint_averages: dict[str, list[tuple[str, float]]],
    recent_stints: int = 3,
) -> float | None:
    """Median of every team's most recent stint averages.

    Returns ``None`` when fewer than three averages are available.
    """
    points: list[float] = []
    for averages in stint_averages.values():
        points.extend(avg for _, avg in averages[-recent_stints:])
    if len(points) < MIN_BASELINE_POINTS:
        return None
    baseline = float(np.median(points))
    if baseline <= 0.0:
        return None
    return baseline


def cross_stint_deltas(
    averages: Sequence[tuple[str, float]],
) -> list[tuple[str, str, float]]:
    """Compare consecutive stints on different karts.

    Returns:
        ``(earlier_kart, later_kart, delta)`` per pair, where
        ``delta = prev_avg - cur_avg`` (positive means the later kart
        was faster).
    """
    deltas: list[tuple[str, str, float]] = []
    for (prev_kart, prev_avg), (cur_kart, cur_avg) in zip(averages, averages[1:]):
        if prev_kart == cur_kart:
            continue
        deltas.append((prev_kart, cur_kart, prev_avg - cur_avg))
    return deltas


def rescale(
    raw_metrics: dict[str, float],
    score_min: float = 0.0,
    score_max: float = 1000.0,
) -> dict[str, float]:
    """Linearly map raw metrics onto ``[score_min, score_max]``.

    The smallest metric maps to ``score_min`` and the largest to
    ``score_max``.  If every metric is equal all karts get the midpoint.
    """
    if not raw_metrics:
        return {}
    lo = min(raw_metrics.values())
    hi = max(raw_metrics.values())
    span = hi - lo
    if span < _SPAN_FLOOR:
        mid = (score_min + score_max) / 2.0
        return {kart_id: mid for kart_id in raw_metrics}
    width = score_max - score_min
    return {
        kart_id: score_min + (value - lo) / span * width
        for kart_id, value in raw_metrics.items()
    }


# ---------------------------------------------------------------------------
# Full pass
# ---------------------------------------------------------------------------


def _team_stint_averages(
    team: Team,
    settling_laps: int,
    outlier_factor: float,
) -> list[tuple[str, float]]:
    averages: list[tuple[str, float]] = []
    for stint in team.stints:
        avg = stint_average(stint.lap_times, settling_laps, outlier_factor)
        if avg is not None:
            averages.append((stint.kart_id, avg))
    return averages


def compute_scores(
    registry: KartRegistry,
    teams: Iterable[Team],
    settings: Settings | None = None,
) -> ScoringResult:
    """Score every kart in *registry* from the teams' stint histories.

    Pure with respect to its inputs: nothing is written back.  Use
    :func:`apply_scores` to store the result.

    Args:
        registry: All known karts; every one receives a raw metric.
        teams: Teams whose stints provide the evidence.
        settings: Scoring parameters (defaults when omitted).

    Returns:
        A :class:`ScoringResult` with every intermediate quantity.
    """
    settings = settings or Settings()
    result = ScoringResult()

    # 1. Stint averages -------------------------------------------------------
    for team in teams:
        averages = _team_stint_averages(
            team, settings.settling_laps, settings.outlier_factor
        )
        if averages:
            result.stint_averages[team.number] = averages

    # 2. Inconsistent teams ---------------------------------------------------
    for number, averages in result.stint_averages.items():
        if is_inconsistent([avg for _, avg in averages], settings.inconsistency_factor):
            result.excluded_teams.add(number)

    # 4. Condition baseline (needed before evidence is recorded) -------------
    result.baseline = condition_baseline(
        result.stint_averages, settings.baseline_stints
    )
    scale = result.baseline if result.baseline is not None else 1.0

    # 3. Cross-stint evidence -------------------------------------------------
    for number, averages in result.stint_averages.items():
        if number in result.excluded_teams:
            continue
        for earlier, later, delta in cross_stint_deltas(averages):
            normalised = delta / scale
            result.evidence.setdefault(later, []).append(normalised)
            result.evidence.setdefault(earlier, []).append(-normalised)

    # 5. Aggregate per kart ---------------------------------------------------
    for kart in registry:
        values = result.evidence.get(kart.kart_id)
        result.raw_metrics[kart.kart_id] = float(np.mean(values)) if values else 0.0

    # 6./7. Display scale, skipping manual karts on write-back ----------------
    scaled = rescale(result.raw_metrics, settings.score_min, settings.score_max)
    result.scores = {
        kart.kart_id: scaled[kart.kart_id] for kart in registry if not kart.manual
    }

    logger.debug(
        "Scored %d karts from %d teams (excluded=%s, baseline=%s)",
        len(result.scores),
        len(result.stint_averages),
        sorted(result.excluded_teams),
        result.baseline,
    )
    return result


def apply_scores(
    registry: KartRegistry,
    teams: Iterable[Team],
    result: ScoringResult,
) -> None:
    """Write a :class:`ScoringResult` back onto karts and teams."""
    for team in teams:
        team.excluded = team.number in result.excluded_teams
    for kart in registry:
        if kart.manual:
            kart.score = kart.manual_score
        elif kart.kart_id in result.scores:
            kart.score = result.scores[kart.kart_id]
