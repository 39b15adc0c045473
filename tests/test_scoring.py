"""Tests for the stint scorer: filtering, exclusion, evidence and rescaling."""

from kart_engine.config import Settings
from kart_engine.core.kart import score_color
from kart_engine.core.registry import KartRegistry
from kart_engine.core.scoring import (
    apply_scores,
    compute_scores,
    condition_baseline,
    cross_stint_deltas,
    is_inconsistent,
    rescale,
    stint_average,
)
from kart_engine.core.team import Stint, Team

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _settings() -> Settings:
    return Settings(settling_laps=0)


def _registry(*kart_ids: str) -> KartRegistry:
    registry = KartRegistry()
    for kart_id in kart_ids:
        registry.ensure(kart_id)
    return registry


def _team(number: str, *stints: tuple[str, list[float]]) -> Team:
    return Team(
        number=number,
        stints=[Stint(kart_id=kart_id, lap_times=list(laps)) for kart_id, laps in stints],
    )


# ---------------------------------------------------------------------------
# Stint average
# ---------------------------------------------------------------------------


def test_stint_average_drops_outlier() -> None:
    """A 500 s lap among ~70 s laps must be discarded."""
    avg = stint_average([70.0, 71.0, 69.0, 70.0, 500.0], settling_laps=0)
    assert avg is not None
    assert abs(avg - 70.0) < 1e-9


def test_stint_average_drops_settling_laps() -> None:
    """The first settling laps must not count towards the average."""
    avg = stint_average([80.0, 79.0, 70.0, 70.0, 70.0], settling_laps=2)
    assert avg == 70.0


def test_stint_average_none_when_only_settling_laps() -> None:
    assert stint_average([70.0, 71.0, 72.0], settling_laps=4) is None
    assert stint_average([], settling_laps=0) is None


def test_stint_average_none_when_nothing_survives() -> None:
    """Two laps far from their shared median both fail the filter."""
    assert stint_average([10.0, 1000.0], settling_laps=0) is None


# ---------------------------------------------------------------------------
# Inconsistency
# ---------------------------------------------------------------------------


def test_erratic_team_is_inconsistent() -> None:
    assert is_inconsistent([70.0, 71.0, 200.0])


def test_steady_team_is_consistent() -> None:
    assert not is_inconsistent([70.0, 71.0, 69.0])


def test_single_stint_never_inconsistent() -> None:
    assert not is_inconsistent([70.0])
    assert not is_inconsistent([])


def test_excluded_team_contributes_no_evidence() -> None:
    """Stints of an inconsistent team must not move any kart."""
    registry = _registry("A", "B", "C")
    team = _team("9", ("A", [70.0] * 3), ("B", [71.0] * 3), ("C", [200.0] * 3))
    result = compute_scores(registry, [team], _settings())
    assert result.excluded_teams == {"9"}
    assert result.evidence == {}
    apply_scores(registry, [team], result)
    assert team.excluded


# ---------------------------------------------------------------------------
# Cross-stint evidence
# ---------------------------------------------------------------------------


def test_cross_stint_deltas_skip_same_kart() -> None:
    deltas = cross_stint_deltas([("A", 70.0), ("A", 69.0), ("B", 68.0)])
    assert deltas == [("A", "B", 1.0)]


def test_evidence_is_antisymmetric() -> None:
    """The later kart gains exactly what the earlier kart loses."""
    registry = _registry("A", "B")
    team = _team("7", ("A", [70.0] * 5), ("B", [68.0] * 5))
    result = compute_scores(registry, [team], _settings())
    assert result.baseline is None  # only two stint averages
    assert result.evidence["B"] == [2.0]
    assert result.evidence["A"] == [-2.0]
    assert result.scores == {"A": 0.0, "B": 1000.0}


def test_deltas_normalised_by_baseline() -> None:
    """With three or more stint averages the deltas are divided by their median."""
    registry = _registry("A", "B", "C", "D")
    teams = [
        _team("1", ("A", [70.0] * 4), ("B", [68.0] * 4)),
        _team("2", ("C", [72.0] * 4), ("D", [71.0] * 4)),
    ]
    result = compute_scores(registry, teams, _settings())
    assert result.baseline == 70.5
    assert abs(result.evidence["B"][0] - 2.0 / 70.5) < 1e-12
    assert abs(result.evidence["D"][0] - 1.0 / 70.5) < 1e-12
    assert result.scores["B"] == 1000.0
    assert result.scores["A"] == 0.0


def test_baseline_uses_most_recent_stints() -> None:
    averages = {"1": [("A", 100.0), ("B", 70.0), ("C", 71.0), ("D", 72.0)]}
    assert condition_baseline(averages, recent_stints=3) == 71.0
    assert condition_baseline({"1": [("A", 70.0), ("B", 71.0)]}) is None


def test_kart_without_evidence_scores_from_zero_metric() -> None:
    registry = _registry("A", "B", "idle")
    team = _team("7", ("A", [70.0] * 5), ("B", [68.0] * 5))
    result = compute_scores(registry, [team], _settings())
    assert result.raw_metrics["idle"] == 0.0
    assert result.scores["idle"] == 500.0


# ---------------------------------------------------------------------------
# Rescaling and colours
# ---------------------------------------------------------------------------


def test_rescale_linear() -> None:
    assert rescale({"A": -2.0, "B": 0.0, "C": 2.0}) == {
        "A": 0.0,
        "B": 500.0,
        "C": 1000.0,
    }


def test_rescale_degenerate_maps_to_midpoint() -> None:
    assert rescale({"A": 1.0, "B": 1.0}) == {"A": 500.0, "B": 500.0}
    assert rescale({"A": 0.0}, 0.0, 100.0) == {"A": 50.0}
    assert rescale({}) == {}


def test_no_history_scores_everyone_midpoint() -> None:
    registry = _registry("A", "B")
    result = compute_scores(registry, [], _settings())
    assert result.scores == {"A": 500.0, "B": 500.0}


def test_manual_kart_kept_but_still_evidence() -> None:
    """A pinned kart keeps its score but its laps still rate its rival."""
    registry = _registry("A", "B")
    registry.set_manual_score("A", 123.0)
    team = _team("7", ("A", [70.0] * 5), ("B", [68.0] * 5))
    result = compute_scores(registry, [team], _settings())
    assert "A" not in result.scores
    assert result.scores["B"] == 1000.0
    apply_scores(registry, [team], result)
    assert registry.get("A").score == 123.0


def test_score_color_bands() -> None:
    assert score_color(950.0) == "purple"
    assert score_color(900.0) == "purple"
    assert score_color(899.9) == "green"
    assert score_color(700.0) == "green"
    assert score_color(500.0) == "yellow"
    assert score_color(300.0) == "orange"
    assert score_color(299.9) == "red"
    assert score_color(None) == "blue"
