"""Account repository — SQLite reads and provisioning for the accounts table."""

import sqlite3
from typing import Optional

from signaldesk.models import Account
from signaldesk.repos.db import get_connection


class AccountRepo:
    """Data access layer for subscriber accounts.

    Lookups only ever return *active* accounts and are never cached, so a
    tier change is visible on the very next request.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Read ─────────────────────────────────────────────────────────────

    def lookup_by_key(self, api_key: str) -> Optional[Account]:
        """Return the active account owning *api_key*, or ``None``."""
        return self._fetch_one(
            "SELECT * FROM accounts WHERE api_key = ? AND is_active = 1",
            (api_key,),
        )

    def lookup_by_id(self, account_id: int) -> Optional[Account]:
        """Return the active account with primary key *account_id*, or ``None``."""
        return self._fetch_one(
            "SELECT * FROM accounts WHERE id = ? AND is_active = 1",
            (account_id,),
        )

    # ── Write ────────────────────────────────────────────────────────────

    def insert_account(
        self,
        email: str,
        api_key: Optional[str] = None,
        subscription_status: str = "inactive",
        is_active: bool = True,
    ) -> int:
        """Insert a new account and return its ``id``."""
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO accounts (email, api_key, subscription_status, is_active)
                VALUES (?, ?, ?, ?)
                """,
                (email, api_key, subscription_status, int(is_active)),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    def set_subscription_status(self, account_id: int, status: str) -> None:
        """Update the subscription status written by the billing collaborator."""
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                "UPDATE accounts SET subscription_status = ? WHERE id = ?",
                (status, account_id),
            )
            conn.commit()
        finally:
            conn.close()

    # ── Helpers ──────────────────────────────────────────────────────────

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Account]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(sql, params).fetchone()
            return _row_to_account(row) if row else None
        finally:
            conn.close()


def _row_to_account(row: sqlite3.Row) -> Account:
    return Account(
        id=row["id"],
        email=row["email"],
        api_key=row["api_key"],
        subscription_status=row["subscription_status"],
        is_active=bool(row["is_active"]),
    )
