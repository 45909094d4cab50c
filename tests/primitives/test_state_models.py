# tests/primitives/test_state_models.py
# 数据模型测试：状态快照、模板校验、议员模板匹配、首相关系

"""数据模型测试。"""
import pytest

from redbox.catalog.loader import default_catalog
from redbox.primitives.models import AdviserOpinion, OpinionTemplate, Trigger
from redbox.primitives.mp_models import InteractionTemplate, MPTarget
from redbox.primitives.pm_models import (
    PMDemand,
    PMMessage,
    PMRelationshipState,
    RangeCondition,
    active_demand_categories,
)
from redbox.primitives.state import ProposedChanges, SimulationState


class TestSimulationState:
    def test_from_dict_partial(self):
        state = SimulationState.from_dict({
            "current_turn": "5",
            "fiscal": {"deficit": 120.0, "not_a_field": 1},
            "political": {"pm_trust": 30.0},
            "weather": {"rain": True},
        })
        assert state.current_turn == 5
        assert state.current_month == 1
        assert state.fiscal.deficit == 120.0
        assert state.fiscal.debt_to_gdp_percent == 95.0
        assert state.political.pm_trust == 30.0
        assert state.economy.gdp_nominal == 2700.0

    def test_empty_dict_gives_defaults(self):
        assert SimulationState.from_dict({}) == SimulationState()


class TestProposedChanges:
    def test_none_passes_through(self):
        assert ProposedChanges.from_dict(None) is None

    def test_from_dict(self):
        proposed = ProposedChanges.from_dict({
            "projected_deficit": "40",
            "fiscal_rules_met": False,
            "manifesto_breaches": ("vat",),
        })
        assert proposed.projected_deficit == 40.0
        assert proposed.revenue_change == 0.0
        assert not proposed.fiscal_rules_met
        assert proposed.manifesto_breaches == ["vat"]

    def test_projected_deficit_optional(self):
        assert ProposedChanges.from_dict({"revenue_change": 5}).projected_deficit is None


class TestTrigger:
    def test_literal_threshold(self):
        assert Trigger("fiscal.deficit", ">", 100.0).resolve_threshold() == 100.0

    def test_bias_relative_threshold(self):
        hawk = default_catalog().adviser("fiscal_hawk")
        trigger = Trigger("fiscal.debt_to_gdp_percent", ">", bias="debt_tolerance", offset=10)
        assert trigger.resolve_threshold(hawk) == 85.0

    def test_bias_without_persona(self):
        with pytest.raises(ValueError):
            Trigger("fiscal.deficit", ">", bias="deficit_tolerance").resolve_threshold()


class TestOpinionTemplate:
    def _make(self, **overrides):
        fields = dict(
            id="t1",
            persona="fiscal_hawk",
            trigger=Trigger("fiscal.deficit", ">", 100.0),
            category="deficit",
            item_kind="analysis",
            title="Deficit",
            severity="warning",
        )
        fields.update(overrides)
        return OpinionTemplate(**fields)

    def test_valid_analysis(self):
        assert self._make().severity == "warning"

    @pytest.mark.parametrize("overrides", [
        {"item_kind": "memo"},
        {"category": "weather"},
        {"severity": None},
        {"item_kind": "recommendation", "severity": None, "priority": "urgent", "action": "Act"},
        {"item_kind": "recommendation", "severity": None, "priority": "immediate"},
        {"consequences": "Gilt strike"},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            self._make(**overrides)

    def test_consequences_on_warning(self):
        template = self._make(item_kind="warning", consequences="Gilt strike")
        assert template.consequences == "Gilt strike"


class TestInteractionTemplate:
    def test_wildcard_matches_anyone(self):
        template = InteractionTemplate("any", ("promise",), ("success",), "{name}")
        assert template.specificity == 0
        assert template.matches(MPTarget(name="Jo", rebelliousness=0, ambition=10))

    def test_bounds_are_inclusive(self):
        template = InteractionTemplate(
            "vet", ("threaten",), ("backfire",), "{name}",
            min_rebelliousness=7, max_ambition=3,
        )
        assert template.specificity == 2
        assert template.matches(MPTarget(name="Jo", rebelliousness=7, ambition=3))
        assert not template.matches(MPTarget(name="Jo", rebelliousness=6.9, ambition=3))
        assert not template.matches(MPTarget(name="Jo", rebelliousness=7, ambition=3.1))

    def test_exact_fields(self):
        template = InteractionTemplate(
            "snp_minister", ("persuade",), ("success",), "{name}",
            party="snp", is_minister=False,
        )
        assert template.matches(MPTarget(name="Jo", party="snp"))
        assert not template.matches(MPTarget(name="Jo", party="snp", is_minister=True))
        assert not template.matches(MPTarget(name="Jo", party="labour"))


class TestPMModels:
    def test_range_condition(self):
        condition = RangeCondition(minimum=40, maximum=59)
        assert condition.holds(40)
        assert condition.holds(59)
        assert not condition.holds(59.5)
        assert not condition.holds(None)
        assert RangeCondition().holds(-1e9)

    def test_unread_count_and_active_demands(self):
        message = PMMessage(
            id="m", turn=1, type="warning", subject="s", content="c", tone="stern", timestamp=0.0,
        )
        rel = PMRelationshipState(
            messages=(message, PMMessage(**{**message.__dict__, "id": "n", "read": True})),
            active_demands=(
                PMDemand("deficit", "Cut it", deadline=4),
                PMDemand("tax", "No rises", deadline=2, met=True),
            ),
        )
        assert rel.unread_count == 1
        assert active_demand_categories(rel) == ["deficit"]


def test_opinion_is_empty_and_to_dict():
    opinion = AdviserOpinion(
        adviser_id="fiscal_hawk",
        overall_assessment="supportive",
        severity_score=0.0,
        headline="h",
        summary="s",
    )
    assert opinion.is_empty
    data = opinion.to_dict()
    assert data["adviser_id"] == "fiscal_hawk"
    assert isinstance(data["timestamp"], str)
