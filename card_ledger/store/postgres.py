"""PostgreSQL store built on psycopg 3."""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

import psycopg
from psycopg.rows import dict_row

from card_ledger.exceptions import ConcurrencyConflictError, PersistenceError
from card_ledger.models import (
    CardNetwork,
    CreditCard,
    Expense,
    ExpenseCategory,
    LedgerEntry,
    LedgerEntryType,
    RecurringFrequency,
    SortOrder,
)
from card_ledger.store.base import ExpenseQuery, LedgerStore

logger = logging.getLogger(__name__)

DDL = {
    "credit_cards": """
        CREATE TABLE IF NOT EXISTS credit_cards (
            card_id VARCHAR(64) PRIMARY KEY,
            owner_id VARCHAR(64) NOT NULL,
            card_name VARCHAR(100) NOT NULL,
            card_number CHAR(16) NOT NULL,
            card_network VARCHAR(32) NOT NULL,
            expiry_month SMALLINT NOT NULL CHECK (expiry_month BETWEEN 1 AND 12),
            expiry_year SMALLINT NOT NULL,
            credit_limit NUMERIC(15, 2) NOT NULL CHECK (credit_limit >= 0),
            current_balance NUMERIC(15, 2) NOT NULL DEFAULT 0 CHECK (current_balance >= 0),
            available_credit NUMERIC(15, 2) NOT NULL,
            interest_rate NUMERIC(5, 2) NOT NULL DEFAULT 18.5,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            color VARCHAR(7) NOT NULL DEFAULT '#1976d2',
            last_used TIMESTAMP NOT NULL,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP,
            version INTEGER NOT NULL DEFAULT 1,
            UNIQUE (owner_id, card_number)
        )
    """,
    "expenses": """
        CREATE TABLE IF NOT EXISTS expenses (
            expense_id VARCHAR(64) PRIMARY KEY,
            owner_id VARCHAR(64) NOT NULL,
            card_id VARCHAR(64) NOT NULL REFERENCES credit_cards(card_id),
            amount NUMERIC(15, 2) NOT NULL CHECK (amount > 0),
            description VARCHAR(200) NOT NULL,
            category VARCHAR(32) NOT NULL,
            date TIMESTAMP NOT NULL,
            subcategory VARCHAR(100),
            merchant VARCHAR(200),
            location VARCHAR(200),
            tags TEXT[] NOT NULL DEFAULT '{}',
            notes VARCHAR(500),
            receipt_url TEXT,
            is_essential BOOLEAN NOT NULL DEFAULT FALSE,
            is_recurring BOOLEAN NOT NULL DEFAULT FALSE,
            recurring_frequency VARCHAR(16),
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP
        )
    """,
    "ledger_entries": """
        CREATE TABLE IF NOT EXISTS ledger_entries (
            entry_id VARCHAR(64) PRIMARY KEY,
            seq BIGSERIAL,
            card_id VARCHAR(64) NOT NULL REFERENCES credit_cards(card_id),
            owner_id VARCHAR(64) NOT NULL,
            entry_type VARCHAR(16) NOT NULL,
            amount NUMERIC(15, 2) NOT NULL,
            balance_after NUMERIC(15, 2) NOT NULL,
            expense_id VARCHAR(64),
            note TEXT,
            created_at TIMESTAMP NOT NULL
        )
    """,
}

# Creation order; tables are dropped in reverse
TABLE_ORDER = ["credit_cards", "expenses", "ledger_entries"]

CARD_COLUMNS = [
    "card_id", "owner_id", "card_name", "card_number", "card_network",
    "expiry_month", "expiry_year", "credit_limit", "current_balance",
    "available_credit", "interest_rate", "is_active", "color", "last_used",
    "created_at", "updated_at", "version",
]

EXPENSE_COLUMNS = [
    "expense_id", "owner_id", "card_id", "amount", "description", "category",
    "date", "subcategory", "merchant", "location", "tags", "notes",
    "receipt_url", "is_essential", "is_recurring", "recurring_frequency",
    "created_at", "updated_at",
]

ENTRY_COLUMNS = [
    "entry_id", "card_id", "owner_id", "entry_type", "amount",
    "balance_after", "expense_id", "note", "created_at",
]


class PostgresLedgerStore(LedgerStore):
    """Store cards, expenses and ledger entries in PostgreSQL.

    The connection runs in autocommit mode; ``transaction()`` opens a real
    database transaction (or a savepoint when nested) so every write inside
    it commits or rolls back as a unit.

    A single connection carries one transaction at a time, so a store-level
    re-entrant lock is held for the whole of ``transaction()`` and around
    every statement. A thread on another card waits for the open transaction
    to finish instead of nesting a savepoint inside it.
    """

    def __init__(self, connection_string: str | None = None, connection: Any = None) -> None:
        """Initialize PostgreSQL store.

        Parameters
        ----------
        connection_string : str | None
            PostgreSQL connection string.
        connection : Any
            Existing psycopg connection (takes precedence).
        """
        if connection is None:
            if connection_string is None:
                raise PersistenceError("A connection string or connection is required")
            try:
                connection = psycopg.connect(connection_string, autocommit=True, row_factory=dict_row)
            except psycopg.Error as e:
                raise PersistenceError(f"Could not connect to PostgreSQL: {e}") from e
        self.conn = connection
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            try:
                with self.conn.transaction():
                    yield
            except psycopg.Error as e:
                raise PersistenceError(f"Transaction failed: {e}") from e

    def create_tables(self) -> None:
        """Create tables if they don't exist."""
        with self.transaction():
            for table in TABLE_ORDER:
                self._execute(DDL[table])
        logger.info("Tables created: %s", ", ".join(TABLE_ORDER))

    def drop_tables(self) -> None:
        """Drop all ledger tables."""
        with self.transaction():
            for table in reversed(TABLE_ORDER):
                self._execute(f"DROP TABLE IF EXISTS {table} CASCADE")

    def _execute(self, sql: str, params: Any = None) -> Any:
        with self._lock:
            try:
                cur = self.conn.cursor()
                cur.execute(sql, params)
                return cur
            except psycopg.Error as e:
                logger.error("Query failed: %s", e)
                raise PersistenceError(f"Database error: {e}") from e

    def _insert(self, table: str, columns: list[str], values: dict[str, Any]) -> None:
        cols = ", ".join(columns)
        placeholders = ", ".join(["%s"] * len(columns))
        self._execute(
            f"INSERT INTO {table} ({cols}) VALUES ({placeholders})",  # noqa: S608
            [values[c] for c in columns],
        )

    # Cards
    def insert_card(self, card: CreditCard) -> None:
        self._insert("credit_cards", CARD_COLUMNS, _card_params(card))

    def get_card(self, owner_id: str, card_id: str) -> CreditCard | None:
        row = self._execute(
            "SELECT * FROM credit_cards WHERE card_id = %s AND owner_id = %s",
            (card_id, owner_id),
        ).fetchone()
        return _row_to_card(row) if row else None

    def find_card_by_number(self, owner_id: str, card_number: str) -> CreditCard | None:
        row = self._execute(
            "SELECT * FROM credit_cards WHERE owner_id = %s AND card_number = %s",
            (owner_id, card_number),
        ).fetchone()
        return _row_to_card(row) if row else None

    def list_cards(self, owner_id: str, active_only: bool = True) -> list[CreditCard]:
        sql = "SELECT * FROM credit_cards WHERE owner_id = %s"
        if active_only:
            sql += " AND is_active"
        rows = self._execute(sql + " ORDER BY created_at", (owner_id,)).fetchall()
        return [_row_to_card(r) for r in rows]

    def update_card(self, card: CreditCard, expected_version: int) -> None:
        card.recompute_available_credit()
        now = datetime.now()
        cur = self._execute(
            """
            UPDATE credit_cards
               SET card_name = %s, credit_limit = %s, current_balance = %s,
                   available_credit = %s, interest_rate = %s, is_active = %s,
                   color = %s, last_used = %s, updated_at = %s, version = version + 1
             WHERE card_id = %s AND owner_id = %s AND version = %s
            """,
            (
                card.card_name, card.credit_limit, card.current_balance,
                card.available_credit, card.interest_rate, card.is_active,
                card.color, card.last_used, now,
                card.card_id, card.owner_id, expected_version,
            ),
        )
        if cur.rowcount != 1:
            raise ConcurrencyConflictError(
                f"Credit card {card.card_id} was modified concurrently",
                expected_version=expected_version,
            )
        card.version = expected_version + 1
        card.updated_at = now

    # Expenses
    def insert_expense(self, expense: Expense) -> None:
        self._insert("expenses", EXPENSE_COLUMNS, _expense_params(expense))

    def get_expense(self, owner_id: str, expense_id: str) -> Expense | None:
        row = self._execute(
            "SELECT * FROM expenses WHERE expense_id = %s AND owner_id = %s",
            (expense_id, owner_id),
        ).fetchone()
        return _row_to_expense(row) if row else None

    def update_expense(self, expense: Expense) -> None:
        expense.updated_at = datetime.now()
        params = _expense_params(expense)
        mutable = [c for c in EXPENSE_COLUMNS if c not in ("expense_id", "owner_id", "card_id", "created_at")]
        assignments = ", ".join(f"{c} = %s" for c in mutable)
        cur = self._execute(
            f"UPDATE expenses SET {assignments} WHERE expense_id = %s AND owner_id = %s",  # noqa: S608
            [params[c] for c in mutable] + [expense.expense_id, expense.owner_id],
        )
        if cur.rowcount != 1:
            raise PersistenceError(f"Expense {expense.expense_id} not found")

    def delete_expense(self, owner_id: str, expense_id: str) -> bool:
        cur = self._execute(
            "DELETE FROM expenses WHERE expense_id = %s AND owner_id = %s",
            (expense_id, owner_id),
        )
        return cur.rowcount == 1

    def query_expenses(self, query: ExpenseQuery) -> tuple[list[Expense], int]:
        clauses = ["owner_id = %s"]
        params: list[Any] = [query.owner_id]
        if query.category is not None:
            clauses.append("category = %s")
            params.append(query.category.value)
        if query.card_id is not None:
            clauses.append("card_id = %s")
            params.append(query.card_id)
        if query.start_date is not None:
            clauses.append("date >= %s")
            params.append(query.start_date)
        if query.end_date is not None:
            clauses.append("date <= %s")
            params.append(query.end_date)
        if query.is_essential is not None:
            clauses.append("is_essential = %s")
            params.append(query.is_essential)
        where = " AND ".join(clauses)

        total = self._execute(
            f"SELECT COUNT(*) AS total FROM expenses WHERE {where}",  # noqa: S608
            params,
        ).fetchone()["total"]

        # sort_by is checked against SORT_FIELDS by ExpenseQuery
        direction = "DESC" if query.sort_order == SortOrder.DESC else "ASC"
        sql = f"SELECT * FROM expenses WHERE {where} ORDER BY {query.sort_by} {direction}"  # noqa: S608
        page_params = list(params)
        if query.limit is not None:
            sql += " LIMIT %s OFFSET %s"
            page_params += [query.limit, query.offset]
        rows = self._execute(sql, page_params).fetchall()
        return [_row_to_expense(r) for r in rows], total

    # Ledger entries
    def append_entry(self, entry: LedgerEntry) -> None:
        self._insert("ledger_entries", ENTRY_COLUMNS, _entry_params(entry))

    def list_entries(self, owner_id: str, card_id: str) -> list[LedgerEntry]:
        rows = self._execute(
            "SELECT * FROM ledger_entries WHERE card_id = %s AND owner_id = %s ORDER BY seq",
            (card_id, owner_id),
        ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def close(self) -> None:
        """Close connection."""
        with self._lock:
            self.conn.close()


def _card_params(card: CreditCard) -> dict[str, Any]:
    params = {c: getattr(card, c) for c in CARD_COLUMNS}
    params["card_network"] = card.card_network.value
    return params


def _expense_params(expense: Expense) -> dict[str, Any]:
    params = {c: getattr(expense, c) for c in EXPENSE_COLUMNS}
    params["category"] = expense.category.value
    params["recurring_frequency"] = expense.recurring_frequency.value if expense.recurring_frequency else None
    return params


def _entry_params(entry: LedgerEntry) -> dict[str, Any]:
    params = {c: getattr(entry, c) for c in ENTRY_COLUMNS}
    params["entry_type"] = entry.entry_type.value
    return params


def _row_to_card(row: dict[str, Any]) -> CreditCard:
    values = {c: row[c] for c in CARD_COLUMNS}
    values["card_network"] = CardNetwork(row["card_network"])
    return CreditCard(**values)


def _row_to_expense(row: dict[str, Any]) -> Expense:
    values = {c: row[c] for c in EXPENSE_COLUMNS}
    values["category"] = ExpenseCategory(row["category"])
    values["tags"] = list(row["tags"] or [])
    if row["recurring_frequency"]:
        values["recurring_frequency"] = RecurringFrequency(row["recurring_frequency"])
    return Expense(**values)


def _row_to_entry(row: dict[str, Any]) -> LedgerEntry:
    values = {c: row[c] for c in ENTRY_COLUMNS}
    values["entry_type"] = LedgerEntryType(row["entry_type"])
    return LedgerEntry(**values)
