"""
Tests for PerformanceMetrics: weighted overall score and insights.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from debatesphere.models import PerformanceMetrics, Provenance
from debatesphere.models.performance import SCORE_WEIGHTS, weighted_overall

from conftest import START


def make_metrics(**scores) -> PerformanceMetrics:
    values = {name: 70.0 for name in SCORE_WEIGHTS}
    values.update(scores)
    return PerformanceMetrics(
        metrics_id="metrics1",
        session_id="s1",
        user_id="user1",
        provenance=Provenance(engine_version="1.0"),
        created_at=START,
        updated_at=START,
        **values,
    )


def test_weights_sum_to_one():
    assert sum(SCORE_WEIGHTS.values()) == pytest.approx(1.0)


def test_overall_is_weighted_sum():
    metrics = make_metrics(
        argument_strength=80,
        rebuttal_quality=60,
        clarity=90,
        evidence_use=40,
        logical_consistency=70,
        emotional_appeal=50,
    )
    expected = 80 * 0.25 + 60 * 0.20 + 90 * 0.15 + 40 * 0.15 + 70 * 0.15 + 50 * 0.10
    assert metrics.overall_score == round(expected, 2)
    assert metrics.overall_score == weighted_overall(metrics.sub_scores())


def test_overall_follows_sub_score_updates():
    metrics = make_metrics()
    assert metrics.overall_score == 70
    metrics.argument_strength = 90
    assert metrics.overall_score == 75


def test_overall_is_serialized():
    dumped = make_metrics().model_dump()
    assert dumped["overall_score"] == 70


def test_scores_bounded():
    with pytest.raises(PydanticValidationError):
        make_metrics(clarity=101)
    metrics = make_metrics()
    with pytest.raises(PydanticValidationError):
        metrics.clarity = -1


@pytest.mark.parametrize("score,level", [
    (95, "excellent"),
    (85, "very good"),
    (75, "good"),
    (65, "fair"),
    (55, "below average"),
    (10, "poor"),
])
def test_performance_level(score, level):
    metrics = make_metrics(**{name: score for name in SCORE_WEIGHTS})
    assert metrics.performance_level == level


def test_insights():
    metrics = make_metrics(
        argument_strength=92,
        rebuttal_quality=85,
        clarity=81,
        evidence_use=55,
        logical_consistency=70,
        emotional_appeal=30,
    )
    insights = metrics.insights()
    assert insights["top_strengths"] == ["Argument Strength", "Rebuttal Quality", "Clarity"]
    assert insights["top_weaknesses"] == ["Evidence Use", "Emotional Appeal"]
    assert len(insights["recommendations"]) == 2
    assert "evidence" in insights["recommendations"][0].lower()


def test_balanced_and_improvement():
    metrics = make_metrics(argument_strength=100, emotional_appeal=40)
    assert metrics.balanced_score == 70
    assert metrics.improvement_potential == round(100 - metrics.overall_score, 2)
