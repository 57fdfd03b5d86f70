"""Records handled by the transaction engine."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any

from .commission import FinancialBreakdown
from .stages import TransactionStatus, first_stage


@dataclass
class Agent:
    """A brokering agent. Only id and name matter to the engine."""
    id: str
    name: str
    email: str = ""
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class Transaction:
    """One brokered sale."""

    id: str
    property_address: str
    contract_price: Decimal
    total_service_fee: Decimal
    listing_agent_id: str
    selling_agent_id: str

    status: TransactionStatus = field(default_factory=first_stage)

    # Set once, on entering the terminal stage
    financial_breakdown: Optional[FinancialBreakdown] = None

    # Bumped on every save; used to detect concurrent writers
    version: int = 0

    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "property_address": self.property_address,
            "contract_price": str(self.contract_price),
            "total_service_fee": str(self.total_service_fee),
            "status": self.status.value,
            "listing_agent_id": self.listing_agent_id,
            "selling_agent_id": self.selling_agent_id,
            "financial_breakdown": (
                self.financial_breakdown.to_dict() if self.financial_breakdown else None
            ),
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class TransactionHistory:
    """Audit entry for one accepted status change."""
    transaction_id: str
    previous_status: TransactionStatus
    new_status: TransactionStatus
    created_at: datetime = field(default_factory=datetime.now)
    metadata: Optional[Dict[str, Any]] = None
    id: Optional[int] = None  # assigned by the store
