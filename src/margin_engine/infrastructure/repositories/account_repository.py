"""
PostgreSQL Account Repository Implementation

Persists margin accounts with optimistic locking on a version column.
"""

# Standard library imports
import logging
from typing import Any

# Local imports
from margin_engine.application.interfaces.exceptions import (
    AccountNotFoundError,
    DuplicateEntityError,
    IntegrityError,
    RepositoryError,
)
from margin_engine.application.interfaces.repositories import IAccountRepository
from margin_engine.domain.entities import Account
from margin_engine.domain.exceptions import StaleDataException
from margin_engine.infrastructure.database.adapter import PostgreSQLAdapter

from ._rows import affected_rows

logger = logging.getLogger(__name__)

_COLUMNS = """
    user_id, balance, used_margin, available_funds, realized_pnl,
    margin_call_level, currency, version, created_at, updated_at
"""


class PostgreSQLAccountRepository(IAccountRepository):
    """
    PostgreSQL implementation of IAccountRepository.

    ``get_account_for_update`` takes a row lock held until the surrounding
    transaction ends; updates additionally require the version read.
    """

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        self.adapter = adapter

    async def get_account(self, user_id: str) -> Account | None:
        record = await self.adapter.fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE user_id = %s", user_id
        )
        return self._map_record_to_account(record) if record else None

    async def get_account_for_update(self, user_id: str) -> Account | None:
        record = await self.adapter.fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE user_id = %s FOR UPDATE", user_id
        )
        return self._map_record_to_account(record) if record else None

    async def save_account(self, account: Account) -> Account:
        try:
            await self.adapter.execute_query(
                f"""
                INSERT INTO accounts ({_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                account.user_id,
                account.balance,
                account.used_margin,
                account.available_funds,
                account.realized_pnl,
                account.margin_call_level,
                account.currency,
                account.version,
                account.created_at,
                account.updated_at,
            )
        except IntegrityError as e:
            raise DuplicateEntityError("Account", account.user_id) from e

        logger.debug(f"Inserted account {account.user_id}")
        return account

    async def update_account(self, account: Account) -> Account:
        expected_version = account.version
        result = await self.adapter.execute_query(
            """
            UPDATE accounts SET
                balance = %s, used_margin = %s, available_funds = %s,
                realized_pnl = %s, margin_call_level = %s,
                version = version + 1, updated_at = %s
            WHERE user_id = %s AND version = %s
            """,
            account.balance,
            account.used_margin,
            account.available_funds,
            account.realized_pnl,
            account.margin_call_level,
            account.updated_at,
            account.user_id,
            expected_version,
        )

        if affected_rows(result) == 0:
            current = await self.adapter.fetch_one(
                "SELECT version FROM accounts WHERE user_id = %s", account.user_id
            )
            if current is None:
                raise AccountNotFoundError(account.user_id)
            raise StaleDataException(
                "Account", account.user_id, expected_version, current["version"]
            )

        account.version = expected_version + 1
        logger.debug(f"Updated account {account.user_id} to version {account.version}")
        return account

    def _map_record_to_account(self, record: dict[str, Any]) -> Account:
        try:
            return Account(
                user_id=record["user_id"],
                balance=record["balance"],
                used_margin=record["used_margin"],
                available_funds=record["available_funds"],
                realized_pnl=record["realized_pnl"],
                margin_call_level=record["margin_call_level"],
                currency=record["currency"],
                version=record["version"],
                created_at=record["created_at"],
                updated_at=record["updated_at"],
            )
        except (KeyError, ValueError) as e:
            raise RepositoryError(f"Corrupt account record: {e}", e) from e
