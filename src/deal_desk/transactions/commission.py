"""Commission split computed when a transaction completes.

The total service fee is divided evenly between the agency and the agent
pool. The pool then goes either entirely to one agent (when the same agent
listed and sold the property) or evenly to the listing and selling agents.

All amounts are Decimal. Halving a finite decimal is exact as long as the
context keeps enough digits, so the arithmetic runs in a context sized to
the fee. The agency and pool always add back up to the fee, and the two
agent shares always add back up to the pool.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import AgentSnapshotMissing

AGENCY_SHARE = Decimal("0.5")
AGENT_POOL_SHARE = Decimal("0.5")

# Halving adds at most one digit; the second halving of the pool one more
EXTRA_DIGITS = 2


class AgentRole(Enum):
    """Part an agent played in the sale."""
    LISTING = "listing"
    SELLING = "selling"
    BOTH = "both"  # Listed and sold by the same agent


def to_decimal(value: Any) -> Decimal:
    """Convert a money value to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1") rather than its
    binary expansion.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError):
            raise ValueError(f"Not a valid amount: {value!r}") from None

    if not result.is_finite():
        raise ValueError(f"Not a valid amount: {value!r}")
    return result


@contextmanager
def exact_context(*amounts: Decimal):
    """Decimal context with room for every digit of the given amounts."""
    with localcontext() as ctx:
        digits = max((len(a.as_tuple().digits) for a in amounts), default=0)
        ctx.prec = max(ctx.prec, digits + EXTRA_DIGITS)
        yield ctx


@dataclass(frozen=True)
class CommissionDistribution:
    """One agent's share of the agent pool."""
    agent_id: str
    agent_name: str  # snapshot taken at completion
    role: AgentRole
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "role": self.role.value,
            "amount": str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommissionDistribution":
        return cls(
            agent_id=data["agent_id"],
            agent_name=data["agent_name"],
            role=AgentRole(data["role"]),
            amount=Decimal(data["amount"]),
        )


@dataclass(frozen=True)
class FinancialBreakdown:
    """Immutable snapshot of how a completed transaction's fee was split."""
    agency_amount: Decimal
    agent_pool_amount: Decimal
    distributions: Tuple[CommissionDistribution, ...] = field(default_factory=tuple)

    @property
    def total_fee(self) -> Decimal:
        with exact_context(self.agency_amount, self.agent_pool_amount):
            return self.agency_amount + self.agent_pool_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agency_amount": str(self.agency_amount),
            "agent_pool_amount": str(self.agent_pool_amount),
            "distributions": [d.to_dict() for d in self.distributions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinancialBreakdown":
        return cls(
            agency_amount=Decimal(data["agency_amount"]),
            agent_pool_amount=Decimal(data["agent_pool_amount"]),
            distributions=tuple(
                CommissionDistribution.from_dict(d) for d in data.get("distributions", [])
            ),
        )


class CommissionCalculator:
    """Split a service fee between the agency and the agents on the deal."""

    def compute(
        self,
        total_fee: Any,
        listing_agent_id: Optional[str],
        listing_agent_name: Optional[str],
        selling_agent_id: Optional[str],
        selling_agent_name: Optional[str],
    ) -> FinancialBreakdown:
        """Compute the financial breakdown for a completed sale.

        Args:
            total_fee: Total service fee charged on the sale
            listing_agent_id: Id of the listing agent
            listing_agent_name: Listing agent's name at completion time
            selling_agent_id: Id of the selling agent
            selling_agent_name: Selling agent's name at completion time

        Returns:
            FinancialBreakdown with distributions ordered listing, selling

        Raises:
            AgentSnapshotMissing: an agent id or name was not supplied
            ValueError: the fee is negative or not a number
        """
        if not listing_agent_id or listing_agent_name is None:
            raise AgentSnapshotMissing("Listing agent was not resolved before computing commission")
        if not selling_agent_id or selling_agent_name is None:
            raise AgentSnapshotMissing("Selling agent was not resolved before computing commission")

        fee = to_decimal(total_fee)
        if fee < 0:
            raise ValueError(f"Total service fee cannot be negative: {fee}")

        with exact_context(fee):
            agency_amount = fee * AGENCY_SHARE
            agent_pool_amount = fee * AGENT_POOL_SHARE
            split_amount = agent_pool_amount / 2

        if listing_agent_id == selling_agent_id:
            distributions = (
                CommissionDistribution(
                    agent_id=listing_agent_id,
                    agent_name=listing_agent_name,
                    role=AgentRole.BOTH,
                    amount=agent_pool_amount,
                ),
            )
        else:
            distributions = (
                CommissionDistribution(
                    agent_id=listing_agent_id,
                    agent_name=listing_agent_name,
                    role=AgentRole.LISTING,
                    amount=split_amount,
                ),
                CommissionDistribution(
                    agent_id=selling_agent_id,
                    agent_name=selling_agent_name,
                    role=AgentRole.SELLING,
                    amount=split_amount,
                ),
            )

        return FinancialBreakdown(
            agency_amount=agency_amount,
            agent_pool_amount=agent_pool_amount,
            distributions=distributions,
        )

    def compute_for_agents(self, total_fee: Any, listing_agent, selling_agent) -> FinancialBreakdown:
        """Compute from resolved Agent records; None means the lookup failed."""
        if listing_agent is None or selling_agent is None:
            raise AgentSnapshotMissing("Both agents must be resolved before computing commission")

        return self.compute(
            total_fee,
            listing_agent.id,
            listing_agent.name,
            selling_agent.id,
            selling_agent.name,
        )
