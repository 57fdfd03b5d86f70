"""Tests for commission split computation."""

import pytest
from decimal import Decimal

from deal_desk.transactions import (
    Agent,
    AgentRole,
    AgentSnapshotMissing,
    CommissionCalculator,
    FinancialBreakdown,
)
from deal_desk.transactions.commission import exact_context, to_decimal


@pytest.fixture
def calculator():
    return CommissionCalculator()


class TestCommissionCalculator:
    """Tests for CommissionCalculator."""

    def test_two_agent_split(self, calculator):
        """Test distinct agents share the pool evenly."""
        breakdown = calculator.compute(10000, "agent1", "Alice", "agent2", "Bob")

        assert breakdown.agency_amount == Decimal("5000")
        assert breakdown.agent_pool_amount == Decimal("5000")
        assert len(breakdown.distributions) == 2

        listing, selling = breakdown.distributions
        assert listing.role == AgentRole.LISTING
        assert listing.agent_id == "agent1"
        assert listing.agent_name == "Alice"
        assert listing.amount == Decimal("2500")
        assert selling.role == AgentRole.SELLING
        assert selling.agent_name == "Bob"
        assert selling.amount == Decimal("2500")

    def test_same_agent_takes_whole_pool(self, calculator):
        """Test one agent on both sides gets a single BOTH share."""
        breakdown = calculator.compute(10000, "agent1", "Alice", "agent1", "Alice")

        assert len(breakdown.distributions) == 1
        only = breakdown.distributions[0]
        assert only.role == AgentRole.BOTH
        assert only.amount == Decimal("5000")

    def test_identity_not_name_decides(self, calculator):
        """Test two agents sharing a name still split."""
        breakdown = calculator.compute(10000, "agent1", "Sam Lee", "agent2", "Sam Lee")
        assert [d.role for d in breakdown.distributions] == [AgentRole.LISTING, AgentRole.SELLING]

    @pytest.mark.parametrize("fee", ["0", "0.01", "0.03", "1", "999.99", "12345.67", "10000", "1234567.89"])
    def test_sums_are_exact(self, calculator, fee):
        """Test no cents are lost or invented."""
        fee = Decimal(fee)
        breakdown = calculator.compute(fee, "a", "A", "b", "B")

        assert breakdown.agency_amount + breakdown.agent_pool_amount == fee
        assert sum(d.amount for d in breakdown.distributions) == breakdown.agent_pool_amount
        assert breakdown.total_fee == fee

    def test_long_fee_stays_exact(self, calculator):
        """Test a 29-digit fee is split without rounding."""
        fee = Decimal("12345678901234567890123456789")
        breakdown = calculator.compute(fee, "a", "A", "b", "B")

        assert breakdown.agency_amount == Decimal("6172839450617283945061728394.5")
        assert breakdown.agent_pool_amount == Decimal("6172839450617283945061728394.5")
        assert breakdown.total_fee == fee

        with exact_context(breakdown.agent_pool_amount) as ctx:
            ctx.prec += 1
            shares = sum(d.amount for d in breakdown.distributions)
        assert shares == breakdown.agent_pool_amount
        assert breakdown.distributions[0].amount == Decimal("3086419725308641972530864197.25")

    def test_float_fee_is_not_drifted(self, calculator):
        breakdown = calculator.compute(0.1, "a", "A", "b", "B")
        assert breakdown.agency_amount + breakdown.agent_pool_amount == Decimal("0.1")

    def test_compute_is_pure(self, calculator):
        """Test identical inputs give identical breakdowns."""
        first = calculator.compute("8123.45", "a", "A", "b", "B")
        second = calculator.compute("8123.45", "a", "A", "b", "B")

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_missing_agent_snapshot(self, calculator):
        with pytest.raises(AgentSnapshotMissing):
            calculator.compute(10000, None, None, "agent2", "Bob")

        with pytest.raises(AgentSnapshotMissing):
            calculator.compute(10000, "agent1", "Alice", "agent2", None)

    def test_compute_for_agents(self, calculator):
        alice = Agent(id="agent1", name="Alice")
        bob = Agent(id="agent2", name="Bob")

        breakdown = calculator.compute_for_agents(Decimal("10000"), alice, bob)
        assert [d.agent_name for d in breakdown.distributions] == ["Alice", "Bob"]

        with pytest.raises(AgentSnapshotMissing):
            calculator.compute_for_agents(Decimal("10000"), alice, None)

    def test_negative_fee_rejected(self, calculator):
        with pytest.raises(ValueError):
            calculator.compute(-1, "a", "A", "b", "B")

    def test_breakdown_dict_round_trip(self, calculator):
        breakdown = calculator.compute("7777.77", "a", "A", "b", "B")
        assert FinancialBreakdown.from_dict(breakdown.to_dict()) == breakdown


class TestToDecimal:
    """Tests for amount conversion."""

    def test_accepts_common_types(self):
        assert to_decimal(5) == Decimal("5")
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", None])
    def test_rejects_non_amounts(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)
