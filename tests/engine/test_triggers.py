# tests/engine/test_triggers.py
# 触发器求值测试

"""触发器求值测试。"""
import pytest

from redbox.catalog.loader import default_catalog
from redbox.engine.triggers import KNOWN_METRICS, compare, evaluate_trigger, extract_metric
from redbox.primitives.models import Trigger
from redbox.primitives.state import ProposedChanges, SimulationState


def make_state(**sections) -> SimulationState:
    return SimulationState.from_dict(sections)


class TestCompare:
    @pytest.mark.parametrize("value,expected", [(4.99, False), (5.0, False), (5.01, True)])
    def test_greater_than_is_strict(self, value, expected):
        assert compare(value, ">", 5.0) is expected

    @pytest.mark.parametrize("value,expected", [(4.99, True), (5.0, False), (5.01, False)])
    def test_less_than_is_strict(self, value, expected):
        assert compare(value, "<", 5.0) is expected

    def test_missing_value_never_matches(self):
        assert compare(None, ">", -1e9) is False
        assert compare(None, "<", 1e9) is False

    def test_unknown_operator_never_matches(self):
        assert compare(10.0, ">=", 5.0) is False


class TestExtractMetric:
    def test_deficit_is_percent_of_gdp(self):
        state = make_state(fiscal={"deficit": 162.0})
        assert extract_metric("deficit", state) == pytest.approx(6.0)

    def test_proposed_deficit_takes_precedence(self):
        state = make_state(fiscal={"deficit": 162.0})
        proposed = ProposedChanges(projected_deficit=54.0)
        assert extract_metric("deficit", state, proposed) == pytest.approx(2.0)

    def test_proposal_without_deficit_uses_live_figure(self):
        state = make_state(fiscal={"deficit": 162.0})
        proposed = ProposedChanges(revenue_change=5.0)
        assert extract_metric("deficit", state, proposed) == pytest.approx(6.0)
        assert extract_metric("tax_change", state, proposed) == 5.0

    def test_zero_gdp_gives_no_value(self):
        state = make_state(economy={"gdp_nominal": 0.0})
        assert extract_metric("deficit", state) is None

    def test_net_changes_only_exist_on_proposal(self):
        state = make_state()
        assert extract_metric("tax_change", state) is None
        assert extract_metric("spending_change", state) is None
        proposed = ProposedChanges(revenue_change=12.0, spending_change=-20.0)
        assert extract_metric("tax_change", state, proposed) == 12.0
        assert extract_metric("spending_change", state, proposed) == -20.0

    def test_fiscal_rules_flag(self):
        broken = make_state(fiscal={"investment_rule_met": False})
        assert extract_metric("fiscal_rules", broken) == 0.0
        assert extract_metric("fiscal_rules", make_state()) == 1.0
        assert extract_metric("fiscal_rules", broken, ProposedChanges(fiscal_rules_met=True)) == 1.0

    def test_unknown_metric_is_none(self):
        assert "bond_yield" not in KNOWN_METRICS
        assert extract_metric("bond_yield", make_state()) is None


class TestEvaluateTrigger:
    def test_literal_threshold(self):
        trigger = Trigger(metric="gilt_yield", operator=">", threshold=4.2)
        assert not evaluate_trigger(trigger, make_state(markets={"gilt_yield_10yr": 4.2}))
        assert evaluate_trigger(trigger, make_state(markets={"gilt_yield_10yr": 4.25}))

    def test_bias_relative_threshold(self):
        """阈值 = debt_tolerance (75) + 10。"""
        hawk = default_catalog().adviser("fiscal_hawk")
        trigger = Trigger(metric="debt", operator=">", bias="debt_tolerance", offset=10)
        assert not evaluate_trigger(trigger, make_state(fiscal={"debt_to_gdp_percent": 85.0}), profile=hawk)
        assert evaluate_trigger(trigger, make_state(fiscal={"debt_to_gdp_percent": 85.1}), profile=hawk)

    def test_bias_relative_threshold_needs_persona(self):
        trigger = Trigger(metric="debt", operator=">", bias="debt_tolerance")
        with pytest.raises(ValueError):
            evaluate_trigger(trigger, make_state())

    def test_unknown_metric_is_false(self):
        trigger = Trigger(metric="bond_yield", operator="<", threshold=1e9)
        assert evaluate_trigger(trigger, make_state()) is False
