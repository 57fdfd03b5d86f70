"""Transaction lifecycle and commission distribution."""

from .stages import TransactionStatus, position_of, next_stage
from .validator import validate_transition, TransitionDecision, RejectionReason
from .commission import CommissionCalculator, FinancialBreakdown, CommissionDistribution, AgentRole
from .models import Agent, Transaction, TransactionHistory
from .service import TransactionService
from .errors import (
    DealDeskError,
    TransactionNotFound,
    AgentNotFound,
    InvalidTransition,
    FinancialsUnavailable,
    UnknownStage,
    AgentSnapshotMissing,
    TransactionLocked,
    ConcurrentUpdate,
)

__all__ = [
    "TransactionStatus",
    "position_of",
    "next_stage",
    "validate_transition",
    "TransitionDecision",
    "RejectionReason",
    "CommissionCalculator",
    "FinancialBreakdown",
    "CommissionDistribution",
    "AgentRole",
    "Agent",
    "Transaction",
    "TransactionHistory",
    "TransactionService",
    "DealDeskError",
    "TransactionNotFound",
    "AgentNotFound",
    "InvalidTransition",
    "FinancialsUnavailable",
    "UnknownStage",
    "AgentSnapshotMissing",
    "TransactionLocked",
    "ConcurrentUpdate",
]
