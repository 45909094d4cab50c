# tests/engine/test_opinions.py
# 顾问意见生成测试（含偏好评估场景）

"""顾问意见生成测试。"""
import dataclasses
import logging
import random

import pytest

from redbox.advisers.roster import HiredRecord
from redbox.catalog.loader import default_catalog
from redbox.engine.opinions import OpinionGenerator, generate_adviser_opinions
from redbox.engine.severity import item_score
from redbox.primitives.models import OpinionTemplate, Recommendation, Trigger
from redbox.primitives.state import ProposedChanges, SimulationState


def make_state(deficit=60.0, debt=80.0, growth=1.0, nhs=60.0, approval=40.0,
               gilt=4.0, gilt_change=0.0) -> SimulationState:
    return SimulationState.from_dict({
        "economy": {"gdp_nominal": 2700.0, "gdp_growth_annual": growth},
        "fiscal": {"deficit": deficit, "debt_to_gdp_percent": debt},
        "services": {"nhs_quality": nhs},
        "markets": {"gilt_yield_10yr": gilt, "gilt_yield_10yr_change": gilt_change},
        "political": {"public_approval": approval},
    })


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def bare_catalog(catalog):
    """去掉意见模板，只保留偏好评估。"""
    return dataclasses.replace(catalog, opinion_templates=())


class TestBiasScenarios:
    def test_no_triggers_gives_empty_supportive_opinion(self, catalog):
        opinion = OpinionGenerator(catalog, random.Random(0)).generate(
            make_state(), "treasury_mandarin"
        )
        assert opinion.is_empty
        assert opinion.overall_assessment == "supportive"
        assert opinion.severity_score == 0.0
        assert opinion.headline == "Fiscally Prudent Approach, Subject to Monitoring"
        assert opinion.summary.startswith("Current position is within acceptable parameters")
        assert opinion.prediction is None

    def test_deficit_over_tolerance_is_caution(self, bare_catalog):
        """赤字 6.0%，容忍度 2.5，增长优先 0.3 → 2.45 → caution。"""
        opinion = OpinionGenerator(bare_catalog, random.Random(0)).generate(
            make_state(deficit=162.0, debt=80.0), "treasury_mandarin"
        )
        assert len(opinion.analyses) == 1
        deficit = opinion.analyses[0]
        assert deficit.area == "deficit"
        assert deficit.severity == "critical"
        assert item_score(deficit) == pytest.approx(2.45)
        assert len(opinion.warnings) == 1
        assert opinion.recommendations == []
        assert opinion.severity_score == pytest.approx(2.45)
        assert opinion.overall_assessment == "caution"
        assert opinion.headline == "Mixed Assessment with Concerns"
        assert "deficit" in opinion.summary

    def test_debt_over_tolerance_escalates_to_critical(self, bare_catalog):
        """再加债务 95 vs 容忍度 85 → +3.0 → 5.45 → critical。"""
        opinion = OpinionGenerator(bare_catalog, random.Random(0)).generate(
            make_state(deficit=162.0, debt=95.0), "treasury_mandarin"
        )
        areas = [a.area for a in opinion.analyses]
        assert areas == ["deficit", "debt"]
        assert item_score(opinion.analyses[1]) == pytest.approx(3.0)
        assert opinion.analyses[1].severity == "warning"
        assert [r.priority for r in opinion.recommendations] == ["important"]
        assert opinion.severity_score == pytest.approx(5.45)
        assert opinion.overall_assessment == "critical"
        assert opinion.headline == "Chancellor, We Face a Fiscal Emergency"
        assert "deficit and debt" in opinion.summary

    def test_proposed_deficit_replaces_live_deficit(self, bare_catalog):
        proposed = ProposedChanges(projected_deficit=27.0)
        opinion = OpinionGenerator(bare_catalog, random.Random(0)).generate(
            make_state(deficit=162.0), "treasury_mandarin", proposed
        )
        assert [a.area for a in opinion.analyses] == []

    def test_rigid_adviser_warns_on_broken_fiscal_rules(self, bare_catalog):
        proposed = ProposedChanges(projected_deficit=27.0, fiscal_rules_met=False)
        opinion = OpinionGenerator(bare_catalog, random.Random(0)).generate(
            make_state(), "treasury_mandarin", proposed
        )
        assert [w.severity for w in opinion.warnings] == ["critical"]
        # 偏好条目得分为 0：只有警告时为 neutral
        assert opinion.overall_assessment == "neutral"

    def test_growth_adviser_flags_recession(self, bare_catalog):
        opinion = OpinionGenerator(bare_catalog, random.Random(0)).generate(
            make_state(growth=-0.5), "heterodox_economist"
        )
        growth = [a for a in opinion.analyses if a.area == "growth"]
        assert len(growth) == 1
        assert growth[0].severity == "critical"
        assert any(r.priority == "important" for r in opinion.recommendations)
        assert opinion.prediction is not None
        assert opinion.prediction.likelihood == "likely"


class TestTemplates:
    def test_matching_templates_are_added(self, catalog):
        opinion = OpinionGenerator(catalog, random.Random(0)).generate(
            make_state(deficit=162.0), "treasury_mandarin"
        )
        sources = [a.source_id for a in opinion.analyses] + [w.source_id for w in opinion.warnings]
        assert "mandarin_deficit_warning" in sources
        assert "mandarin_deficit_alert" in sources
        # 2.45 (偏好) + 2 (warning 分析) + 3 (critical 警告)
        assert opinion.severity_score == pytest.approx(7.45)
        assert opinion.overall_assessment == "critical"

    def test_prediction_first_match_wins(self, catalog):
        opinion = OpinionGenerator(catalog, random.Random(0)).generate(
            make_state(debt=86.0), "fiscal_hawk"
        )
        assert opinion.prediction is not None
        assert opinion.prediction.timeframe == "12 months"
        assert "gilt yields" in opinion.prediction.outcome

    def test_recommendation_rendering(self, catalog):
        template = OpinionTemplate(
            id="test_rec",
            persona="treasury_mandarin",
            trigger=Trigger(metric="debt", operator=">", threshold=0),
            category="debt",
            item_kind="recommendation",
            title="Label only",
            body="Body for {name}",
            priority="important",
            action="Act now",
        )
        item = OpinionGenerator(catalog, random.Random(0)).render_item(template, {"name": "X"})
        assert isinstance(item, Recommendation)
        assert item.action == "Act now"
        assert item.rationale == "Body for X"
        assert item.expected_outcome == "Body for X"
        assert item.source_id == "test_rec"
        assert item_score(item) == 2.0

    def test_same_seed_same_wording(self, catalog):
        state = make_state(deficit=200.0, debt=110.0)
        first = OpinionGenerator(catalog, random.Random(3)).generate(state, "fiscal_hawk")
        second = OpinionGenerator(catalog, random.Random(3)).generate(state, "fiscal_hawk")
        assert [a.description for a in first.analyses] == [a.description for a in second.analyses]
        assert first.headline == second.headline

    def test_unknown_adviser_raises(self, catalog):
        with pytest.raises(KeyError):
            OpinionGenerator(catalog).generate(make_state(), "chief_secretary")


class TestGenerateAdviserOpinions:
    def test_keyed_dict_roster(self, catalog):
        roster = {
            "treasury_mandarin": {"adviser_type": "treasury_mandarin", "hired_turn": 2},
            "fiscal_hawk": {"profile": {"type": "fiscal_hawk"}},
        }
        opinions = generate_adviser_opinions(make_state(), roster, catalog=catalog, rng=random.Random(0))
        assert list(opinions) == ["treasury_mandarin", "fiscal_hawk"]
        assert opinions["fiscal_hawk"].adviser_id == "fiscal_hawk"

    def test_pair_list_roster(self, catalog):
        record = HiredRecord(profile=catalog.adviser("social_democrat"))
        opinions = generate_adviser_opinions(
            make_state(nhs=35.0), [("social_democrat", record)], catalog=catalog, rng=random.Random(0)
        )
        services = [a for a in opinions["social_democrat"].analyses if a.area == "services"]
        assert services and services[0].severity == "critical"

    def test_failure_is_isolated(self, catalog, monkeypatch, caplog):
        original = OpinionGenerator.generate

        def flaky(self, state, adviser, proposed=None):
            if self.resolve_profile(adviser).type == "fiscal_hawk":
                raise RuntimeError("boom")
            return original(self, state, adviser, proposed)

        monkeypatch.setattr(OpinionGenerator, "generate", flaky)
        roster = {t: {"adviser_type": t} for t in ("fiscal_hawk", "treasury_mandarin")}
        with caplog.at_level(logging.ERROR, logger="redbox.engine.opinions"):
            opinions = generate_adviser_opinions(make_state(), roster, catalog=catalog)
        assert list(opinions) == ["treasury_mandarin"]
        assert "fiscal_hawk" in caplog.text

    def test_empty_roster(self, catalog):
        assert generate_adviser_opinions(make_state(), None, catalog=catalog) == {}
