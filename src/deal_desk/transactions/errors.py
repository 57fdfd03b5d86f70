"""Errors raised by the transaction lifecycle engine."""

from typing import Iterable, Optional


class DealDeskError(Exception):
    """Base class for all deal desk errors."""


class TransactionNotFound(DealDeskError, LookupError):
    """A transaction id did not resolve."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction with ID {transaction_id} not found")


class AgentNotFound(DealDeskError, LookupError):
    """One or more agent ids did not resolve."""

    def __init__(self, agent_ids: Iterable[str]):
        self.agent_ids = tuple(agent_ids)
        super().__init__(f"Agent(s) not found: {', '.join(self.agent_ids)}")


class UnknownStage(DealDeskError, ValueError):
    """A status value outside the stage sequence."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unknown transaction stage: {value!r}")


class InvalidTransition(DealDeskError, ValueError):
    """A status change violates forward, one-step ordering."""

    def __init__(self, current, proposed, reason, message: Optional[str] = None):
        self.current = current
        self.proposed = proposed
        self.reason = reason
        super().__init__(message or f"Invalid transition from {current.value} to {proposed.value}")


class FinancialsUnavailable(DealDeskError):
    """Financial breakdown requested before completion."""

    def __init__(self, transaction_id: str, status):
        self.transaction_id = transaction_id
        self.status = status
        super().__init__(
            f"Transaction {transaction_id} is not completed or financials are missing "
            f"(status: {status.value})"
        )


class AgentSnapshotMissing(DealDeskError):
    """The commission calculator was handed an unresolved agent."""


class TransactionLocked(DealDeskError):
    """A field can no longer change because the transaction is completed."""

    def __init__(self, transaction_id: str, field: str):
        self.transaction_id = transaction_id
        self.field = field
        super().__init__(f"Cannot change {field} of completed transaction {transaction_id}")


class ConcurrentUpdate(DealDeskError):
    """The stored transaction changed since it was loaded."""

    def __init__(self, transaction_id: str, expected_version: int):
        self.transaction_id = transaction_id
        self.expected_version = expected_version
        super().__init__(
            f"Transaction {transaction_id} was modified concurrently "
            f"(expected version {expected_version})"
        )
