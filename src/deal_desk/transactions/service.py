"""Transaction lifecycle: creation, status changes and commission on close."""

import logging
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple

from .commission import CommissionCalculator, FinancialBreakdown
from .errors import (
    AgentNotFound,
    FinancialsUnavailable,
    InvalidTransition,
    TransactionLocked,
    TransactionNotFound,
)
from .models import Agent, Transaction, TransactionHistory
from .schemas import AgentCreate, TransactionCreate, TransactionDetailsUpdate
from .stages import StageLike, first_stage, is_terminal, parse_stage
from .validator import ensure_transition

logger = logging.getLogger(__name__)


class TransactionService:
    """Drive transactions through their lifecycle.

    Each call loads fresh state from the database, works on an in-memory
    copy and writes it back once. A status change and its history entry are
    written together, so the audit trail never gets ahead of the stored
    status.
    """

    def __init__(self, db=None, calculator: Optional[CommissionCalculator] = None):
        """Initialize service.

        Args:
            db: DealDatabase to use; one on the configured path if omitted
            calculator: Commission calculator, mostly for tests
        """
        if db is None:
            from ..storage.database import DealDatabase
            db = DealDatabase()

        self.db = db
        self.calculator = calculator or CommissionCalculator()

    # === AGENTS ===

    def register_agent(self, name: str, email: str = "") -> Agent:
        """Add an agent to the registry transactions can reference.

        Raises:
            pydantic.ValidationError: blank name
        """
        data = AgentCreate(name=name, email=email)

        agent = Agent(id=uuid.uuid4().hex[:12], name=data.name, email=data.email)
        self.db.add_agent(agent)
        logger.info(f"Registered agent {agent.id}: {agent.name}")
        return agent

    def list_agents(self) -> List[Agent]:
        return self.db.list_agents()

    def _resolve_agents(self, listing_agent_id: str, selling_agent_id: str) -> Tuple[Agent, Agent]:
        listing_agent = self.db.get_agent(listing_agent_id)
        selling_agent = (
            listing_agent if selling_agent_id == listing_agent_id
            else self.db.get_agent(selling_agent_id)
        )

        missing = []
        if listing_agent is None:
            missing.append(listing_agent_id)
        if selling_agent is None and selling_agent_id not in missing:
            missing.append(selling_agent_id)
        if missing:
            logger.warning(f"Agent lookup failed for {missing}")
            raise AgentNotFound(missing)

        return listing_agent, selling_agent

    # === TRANSACTIONS ===

    def create(
        self,
        property_address: str,
        contract_price,
        total_service_fee,
        listing_agent_id: str,
        selling_agent_id: str,
    ) -> Transaction:
        """Create a transaction at the first stage.

        Raises:
            pydantic.ValidationError: blank address or negative amounts
            AgentNotFound: either agent id does not resolve
        """
        data = TransactionCreate(
            property_address=property_address,
            contract_price=contract_price,
            total_service_fee=total_service_fee,
            listing_agent_id=listing_agent_id,
            selling_agent_id=selling_agent_id,
        )

        self._resolve_agents(data.listing_agent_id, data.selling_agent_id)

        txn = Transaction(
            id=uuid.uuid4().hex[:12],
            property_address=data.property_address,
            contract_price=data.contract_price,
            total_service_fee=data.total_service_fee,
            listing_agent_id=data.listing_agent_id,
            selling_agent_id=data.selling_agent_id,
            status=first_stage(),
        )
        self.db.insert_transaction(txn)

        logger.info(f"Created transaction {txn.id}: {txn.property_address}")
        return txn

    def get_transaction(self, txn_id: str) -> Transaction:
        txn = self.db.get_transaction(txn_id)
        if txn is None:
            raise TransactionNotFound(txn_id)
        return txn

    def list_transactions(self) -> List[Transaction]:
        return self.db.list_transactions()

    def update_status(
        self,
        txn_id: str,
        status: StageLike,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """Move a transaction to the next stage.

        Entering the terminal stage snapshots the agents and computes the
        financial breakdown. Nothing is written unless every step succeeds.

        Raises:
            TransactionNotFound: unknown transaction id
            UnknownStage: status is not a lifecycle stage
            InvalidTransition: backward, repeated or skipped stage
            AgentNotFound: an agent vanished before completion
            ConcurrentUpdate: someone else saved the transaction first
        """
        txn = self.get_transaction(txn_id)
        proposed = parse_stage(status)
        previous = txn.status

        try:
            ensure_transition(previous, proposed)
        except InvalidTransition as e:
            logger.warning(f"Rejected transition for {txn_id}: {e}")
            raise

        txn.status = proposed
        txn.updated_at = datetime.now()

        entry = TransactionHistory(
            transaction_id=txn.id,
            previous_status=previous,
            new_status=proposed,
            metadata=metadata,
        )

        if is_terminal(proposed) and txn.financial_breakdown is None:
            txn.financial_breakdown = self._compute_financials(txn)

        txn, _ = self.db.record_transition(txn, entry)

        logger.info(f"Transaction {txn.id}: {previous.value} -> {proposed.value}")
        return txn

    def _compute_financials(self, txn: Transaction) -> FinancialBreakdown:
        """Snapshot agent names and split the fee."""
        listing_agent, selling_agent = self._resolve_agents(
            txn.listing_agent_id, txn.selling_agent_id
        )
        breakdown = self.calculator.compute_for_agents(
            txn.total_service_fee, listing_agent, selling_agent
        )

        shares = ", ".join(
            f"{d.agent_name} ({d.role.value}) {d.amount}" for d in breakdown.distributions
        )
        logger.info(
            f"Financials for {txn.id}: agency {breakdown.agency_amount}, "
            f"pool {breakdown.agent_pool_amount} [{shares}]"
        )
        return breakdown

    def update_details(
        self,
        txn_id: str,
        property_address: Optional[str] = None,
        contract_price=None,
        total_service_fee=None,
    ) -> Transaction:
        """Edit descriptive fields of a transaction.

        The fee of a completed transaction is frozen along with its
        breakdown.

        Raises:
            TransactionNotFound: unknown transaction id
            TransactionLocked: fee change on a completed transaction
            pydantic.ValidationError: blank address or negative amounts
        """
        changes = TransactionDetailsUpdate(
            property_address=property_address,
            contract_price=contract_price,
            total_service_fee=total_service_fee,
        )
        txn = self.get_transaction(txn_id)

        if (
            changes.total_service_fee is not None
            and txn.financial_breakdown is not None
            and changes.total_service_fee != txn.total_service_fee
        ):
            raise TransactionLocked(txn_id, "total_service_fee")

        if changes.property_address is not None:
            txn.property_address = changes.property_address
        if changes.contract_price is not None:
            txn.contract_price = changes.contract_price
        if changes.total_service_fee is not None:
            txn.total_service_fee = changes.total_service_fee

        txn.updated_at = datetime.now()
        self.db.save_transaction(txn)

        logger.info(f"Updated details of transaction {txn.id}")
        return txn

    def get_financials(self, txn_id: str) -> FinancialBreakdown:
        """Breakdown of a completed transaction."""
        txn = self.get_transaction(txn_id)
        if not is_terminal(txn.status) or txn.financial_breakdown is None:
            raise FinancialsUnavailable(txn_id, txn.status)
        return txn.financial_breakdown

    def get_history(self, txn_id: str) -> List[TransactionHistory]:
        """Status changes of a transaction, most recent first.

        An id with no recorded changes, known or not, gives an empty list.
        """
        return self.db.list_history(txn_id)
