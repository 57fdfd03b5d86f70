"""SQLite storage for agents, transactions and their status history."""

import dataclasses
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, List, Generator, Tuple

from ..config import settings
from ..transactions.commission import FinancialBreakdown
from ..transactions.errors import ConcurrentUpdate, TransactionNotFound
from ..transactions.models import Agent, Transaction, TransactionHistory
from ..transactions.stages import parse_stage

logger = logging.getLogger(__name__)


class DealDatabase:
    """SQLite database backing the transaction engine."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection."""
        if db_path is None:
            db_path = Path(settings.db_path)

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection; commits on success, rolls back on error."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS agents (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT DEFAULT '',
                    created_at TIMESTAMP NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    property_address TEXT NOT NULL,
                    contract_price TEXT NOT NULL,
                    total_service_fee TEXT NOT NULL,
                    status TEXT NOT NULL,
                    listing_agent_id TEXT NOT NULL,
                    selling_agent_id TEXT NOT NULL,
                    financial_breakdown_json TEXT,
                    version INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (listing_agent_id) REFERENCES agents(id),
                    FOREIGN KEY (selling_agent_id) REFERENCES agents(id)
                )
            """)

            # Append-only: nothing in this module updates or deletes rows here
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS transaction_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    transaction_id TEXT NOT NULL,
                    previous_status TEXT NOT NULL,
                    new_status TEXT NOT NULL,
                    metadata_json TEXT,
                    created_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (transaction_id) REFERENCES transactions(id)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_history_transaction
                ON transaction_history(transaction_id, id)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_transactions_status ON transactions(status)
            """)

    # === ROW CONVERSION ===

    def _row_to_agent(self, row: sqlite3.Row) -> Agent:
        return Agent(
            id=row["id"],
            name=row["name"],
            email=row["email"] or "",
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert a database row to a Transaction object."""
        breakdown = None
        if row["financial_breakdown_json"]:
            breakdown = FinancialBreakdown.from_dict(json.loads(row["financial_breakdown_json"]))

        return Transaction(
            id=row["id"],
            property_address=row["property_address"],
            contract_price=Decimal(row["contract_price"]),
            total_service_fee=Decimal(row["total_service_fee"]),
            status=parse_stage(row["status"]),
            listing_agent_id=row["listing_agent_id"],
            selling_agent_id=row["selling_agent_id"],
            financial_breakdown=breakdown,
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_history(self, row: sqlite3.Row) -> TransactionHistory:
        return TransactionHistory(
            id=row["id"],
            transaction_id=row["transaction_id"],
            previous_status=parse_stage(row["previous_status"]),
            new_status=parse_stage(row["new_status"]),
            metadata=json.loads(row["metadata_json"]) if row["metadata_json"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # === AGENTS ===

    def add_agent(self, agent: Agent) -> Agent:
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO agents (id, name, email, created_at) VALUES (?, ?, ?, ?)",
                (agent.id, agent.name, agent.email, agent.created_at.isoformat()),
            )
        return agent

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM agents WHERE id = ?", (agent_id,)).fetchone()
            return self._row_to_agent(row) if row else None

    def list_agents(self) -> List[Agent]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM agents ORDER BY name COLLATE NOCASE").fetchall()
            return [self._row_to_agent(r) for r in rows]

    # === TRANSACTIONS ===

    def insert_transaction(self, txn: Transaction) -> Transaction:
        """Insert a new transaction."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO transactions (
                    id, property_address, contract_price, total_service_fee, status,
                    listing_agent_id, selling_agent_id, financial_breakdown_json,
                    version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    txn.id,
                    txn.property_address,
                    str(txn.contract_price),
                    str(txn.total_service_fee),
                    txn.status.value,
                    txn.listing_agent_id,
                    txn.selling_agent_id,
                    self._breakdown_json(txn),
                    txn.version,
                    txn.created_at.isoformat(),
                    txn.updated_at.isoformat(),
                ),
            )
        return txn

    def get_transaction(self, txn_id: str) -> Optional[Transaction]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM transactions WHERE id = ?", (txn_id,)).fetchone()
            return self._row_to_transaction(row) if row else None

    def list_transactions(self) -> List[Transaction]:
        """All transactions, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM transactions ORDER BY created_at DESC, id"
            ).fetchall()
            return [self._row_to_transaction(r) for r in rows]

    def save_transaction(self, txn: Transaction) -> Transaction:
        """Persist changes to an existing transaction."""
        with self._get_connection() as conn:
            self._update_transaction(conn, txn)
        txn.version += 1
        return txn

    def record_transition(
        self, txn: Transaction, entry: TransactionHistory
    ) -> Tuple[Transaction, TransactionHistory]:
        """Save a status change and its history entry in one SQLite transaction.

        Either both rows are written or neither is.
        """
        with self._get_connection() as conn:
            self._update_transaction(conn, txn)
            entry_id = self._insert_history(conn, entry)
        txn.version += 1
        return txn, dataclasses.replace(entry, id=entry_id)

    def _update_transaction(self, conn: sqlite3.Connection, txn: Transaction):
        """Conditional update on the loaded version. Raises on a lost race."""
        cursor = conn.execute(
            """
            UPDATE transactions SET
                property_address = ?,
                contract_price = ?,
                total_service_fee = ?,
                status = ?,
                financial_breakdown_json = ?,
                version = version + 1,
                updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (
                txn.property_address,
                str(txn.contract_price),
                str(txn.total_service_fee),
                txn.status.value,
                self._breakdown_json(txn),
                txn.updated_at.isoformat(),
                txn.id,
                txn.version,
            ),
        )
        if cursor.rowcount == 0:
            exists = conn.execute("SELECT 1 FROM transactions WHERE id = ?", (txn.id,)).fetchone()
            if not exists:
                raise TransactionNotFound(txn.id)
            logger.warning(f"Version conflict saving transaction {txn.id} (version {txn.version})")
            raise ConcurrentUpdate(txn.id, txn.version)

    def _breakdown_json(self, txn: Transaction) -> Optional[str]:
        if txn.financial_breakdown is None:
            return None
        return json.dumps(txn.financial_breakdown.to_dict())

    # === HISTORY ===

    def append_history(self, entry: TransactionHistory) -> TransactionHistory:
        """Append one audit entry on its own."""
        with self._get_connection() as conn:
            entry_id = self._insert_history(conn, entry)
        return dataclasses.replace(entry, id=entry_id)

    def _insert_history(self, conn: sqlite3.Connection, entry: TransactionHistory) -> int:
        cursor = conn.execute(
            """
            INSERT INTO transaction_history (
                transaction_id, previous_status, new_status, metadata_json, created_at
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                entry.transaction_id,
                entry.previous_status.value,
                entry.new_status.value,
                json.dumps(entry.metadata) if entry.metadata else None,
                entry.created_at.isoformat(),
            ),
        )
        return cursor.lastrowid

    def list_history(self, txn_id: str) -> List[TransactionHistory]:
        """History for a transaction, most recent first.

        Ordered by insertion, not by the stored wall-clock time, which can
        repeat or step backwards.
        """
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM transaction_history
                WHERE transaction_id = ?
                ORDER BY id DESC
                """,
                (txn_id,),
            ).fetchall()
            return [self._row_to_history(r) for r in rows]
