"""Core pit board state and algorithms."""

from kart_engine.core.aggregator import ingest_observations, merge_live_timing
from kart_engine.core.kart import MANUAL_COLORS, NEUTRAL_COLOR, Kart, score_color
from kart_engine.core.observation import LiveTiming, Observation, synthesize_team_key
from kart_engine.core.pit_lane import PitEntryResult, PitLane
from kart_engine.core.registry import KartRegistry
from kart_engine.core.scoring import (
    ScoringResult,
    apply_scores,
    compute_scores,
    condition_baseline,
    cross_stint_deltas,
    is_inconsistent,
    rescale,
    stint_average,
)
from kart_engine.core.session import RaceSession
from kart_engine.core.team import Stint, Team

__all__ = [
    "Kart",
    "KartRegistry",
    "LiveTiming",
    "MANUAL_COLORS",
    "NEUTRAL_COLOR",
    "Observation",
    "PitEntryResult",
    "PitLane",
    "RaceSession",
    "ScoringResult",
    "Stint",
    "Team",
    "apply_scores",
    "compute_scores",
    "condition_baseline",
    "cross_stint_deltas",
    "ingest_observations",
    "is_inconsistent",
    "merge_live_timing",
    "rescale",
    "score_color",
    "stint_average",
    "synthesize_team_key",
]
