# tests/engine/test_severity.py
# 严重度聚合测试

"""严重度聚合测试。"""
import random

import pytest

from redbox.engine.severity import assess, classify, item_score
from redbox.primitives.models import AdviserWarning, PolicyAnalysis, Recommendation


def analysis(severity: str, score=None) -> PolicyAnalysis:
    return PolicyAnalysis(area="deficit", severity=severity, title="t", description="d", score=score)


def warning(severity: str) -> AdviserWarning:
    return AdviserWarning(severity=severity, title="t", description="d")


def recommendation(priority: str, score=None) -> Recommendation:
    return Recommendation(priority=priority, action="a", rationale="r", score=score)


class TestItemScore:
    @pytest.mark.parametrize("severity,expected", [
        ("critical", 3.0), ("warning", 2.0), ("caution", 1.0),
        ("neutral", 0.0), ("supportive", -1.0),
    ])
    def test_severity_weights(self, severity, expected):
        assert item_score(analysis(severity)) == expected
        assert item_score(warning(severity)) == expected

    def test_recommendation_bonus(self):
        assert item_score(recommendation("immediate")) == 3.0
        assert item_score(recommendation("important")) == 2.0
        assert item_score(recommendation("consider")) == 0.0

    def test_explicit_score_replaces_weight(self):
        assert item_score(analysis("critical", score=2.45)) == 2.45
        assert item_score(recommendation("immediate", score=0.0)) == 0.0


class TestClassify:
    def test_ladder_thresholds_are_strict(self):
        items = [analysis("caution")]
        assert classify(5.01, items, []) == "critical"
        assert classify(5.0, items, []) == "warning"
        assert classify(2.51, items, []) == "warning"
        assert classify(2.5, items, []) == "caution"
        assert classify(0.51, items, []) == "caution"
        assert classify(0.5, items, []) == "neutral"

    def test_supportive_requires_no_analyses_or_warnings(self):
        assert classify(0.0, [], []) == "supportive"
        assert classify(0.0, [], [warning("neutral")]) == "neutral"
        assert classify(0.0, [analysis("neutral")], []) == "neutral"


class TestAssess:
    def test_empty_opinion_is_supportive(self):
        assert assess([], [], []) == (0.0, "supportive")

    def test_recommendations_alone_can_escalate(self):
        score, overall = assess([], [recommendation("immediate")], [])
        assert score == 3.0
        assert overall == "warning"

    def test_supportive_items_pull_down(self):
        score, overall = assess([analysis("supportive")], [], [])
        assert score == -1.0
        assert overall == "neutral"

    def test_monotonic_in_item_severity(self):
        """提高任一条目的严重度，分数不降。"""
        ladder = ["supportive", "neutral", "caution", "warning", "critical"]
        rng = random.Random(11)
        for _ in range(50):
            severities = [rng.choice(ladder) for _ in range(4)]
            base, _ = assess([analysis(s) for s in severities], [], [])
            idx = rng.randrange(len(severities))
            raised = list(severities)
            raised[idx] = ladder[min(ladder.index(raised[idx]) + 1, len(ladder) - 1)]
            higher, _ = assess([analysis(s) for s in raised], [], [])
            assert higher >= base

    def test_order_independent(self):
        analyses = [analysis("critical"), analysis("caution"), analysis("supportive", score=0.4)]
        warnings = [warning("warning"), warning("neutral")]
        recommendations = [recommendation("important"), recommendation("consider")]
        expected = assess(analyses, recommendations, warnings)

        rng = random.Random(5)
        for _ in range(10):
            rng.shuffle(analyses)
            rng.shuffle(warnings)
            rng.shuffle(recommendations)
            score, overall = assess(analyses, recommendations, warnings)
            assert score == pytest.approx(expected[0])
            assert overall == expected[1]
