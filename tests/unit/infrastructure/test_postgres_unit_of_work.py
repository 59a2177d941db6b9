"""Unit tests for PostgreSQLUnitOfWork and its factory."""

from unittest.mock import AsyncMock, Mock

import pytest

from margin_engine.application.interfaces.exceptions import (
    FactoryError,
    TransactionAlreadyActiveError,
    TransactionCommitError,
    TransactionError,
    TransactionNotActiveError,
    TransactionRollbackError,
)
from margin_engine.infrastructure.database.adapter import PostgreSQLAdapter
from margin_engine.infrastructure.database.connection import DatabaseConnection
from margin_engine.infrastructure.repositories import (
    PostgreSQLAccountRepository,
    PostgreSQLUnitOfWork,
    PostgreSQLUnitOfWorkFactory,
)


@pytest.fixture
def adapter():
    adapter = AsyncMock(spec=PostgreSQLAdapter)
    adapter.has_active_transaction = False
    return adapter


class TestPostgreSQLUnitOfWork:
    """Test transaction handling."""

    def test_repositories_share_adapter(self, adapter):
        uow = PostgreSQLUnitOfWork(adapter)

        assert isinstance(uow.accounts, PostgreSQLAccountRepository)
        assert uow.accounts.adapter is adapter
        assert uow.trades.adapter is adapter
        assert uow.portfolio.adapter is adapter

    @pytest.mark.asyncio
    async def test_begin(self, adapter):
        await PostgreSQLUnitOfWork(adapter).begin_transaction()

        adapter.begin_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_begin_when_active(self, adapter):
        adapter.has_active_transaction = True

        with pytest.raises(TransactionAlreadyActiveError):
            await PostgreSQLUnitOfWork(adapter).begin_transaction()

    @pytest.mark.asyncio
    async def test_begin_wraps_unexpected_errors(self, adapter):
        adapter.begin_transaction.side_effect = OSError("socket closed")

        with pytest.raises(TransactionError):
            await PostgreSQLUnitOfWork(adapter).begin_transaction()

    @pytest.mark.asyncio
    async def test_commit_requires_transaction(self, adapter):
        with pytest.raises(TransactionNotActiveError):
            await PostgreSQLUnitOfWork(adapter).commit()

    @pytest.mark.asyncio
    async def test_commit_failure(self, adapter):
        adapter.has_active_transaction = True
        adapter.commit_transaction.side_effect = TransactionError("serialization failure")

        with pytest.raises(TransactionCommitError):
            await PostgreSQLUnitOfWork(adapter).commit()

    @pytest.mark.asyncio
    async def test_rollback_without_transaction(self, adapter):
        await PostgreSQLUnitOfWork(adapter).rollback()

        adapter.rollback_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rollback_failure(self, adapter):
        adapter.has_active_transaction = True
        adapter.rollback_transaction.side_effect = TransactionError("connection lost")

        with pytest.raises(TransactionRollbackError):
            await PostgreSQLUnitOfWork(adapter).rollback()

    @pytest.mark.asyncio
    async def test_context_manager_commits(self, adapter):
        async def begin():
            adapter.has_active_transaction = True

        adapter.begin_transaction.side_effect = begin

        async with PostgreSQLUnitOfWork(adapter):
            pass

        adapter.commit_transaction.assert_awaited_once()
        adapter.rollback_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_manager_keeps_original_error(self, adapter):
        async def begin():
            adapter.has_active_transaction = True

        adapter.begin_transaction.side_effect = begin
        adapter.rollback_transaction.side_effect = TransactionError("connection lost")

        with pytest.raises(ValueError, match="original"):
            async with PostgreSQLUnitOfWork(adapter):
                raise ValueError("original")

        adapter.commit_transaction.assert_not_awaited()


class TestPostgreSQLUnitOfWorkFactory:
    """Test unit of work creation."""

    def test_requires_connection(self):
        connection = Mock(spec=DatabaseConnection)
        connection.is_connected = False

        with pytest.raises(FactoryError):
            PostgreSQLUnitOfWorkFactory(connection).create_unit_of_work()

    def test_creates_unit_of_work_over_pool(self):
        connection = Mock(spec=DatabaseConnection)
        connection.is_connected = True
        connection.pool = Mock()

        uow = PostgreSQLUnitOfWorkFactory(connection).create_unit_of_work()

        assert isinstance(uow, PostgreSQLUnitOfWork)
        assert uow.adapter.pool is connection.pool
