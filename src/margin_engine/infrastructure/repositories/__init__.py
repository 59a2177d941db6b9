"""Repository and unit-of-work implementations."""

from .account_repository import PostgreSQLAccountRepository
from .memory import (
    InMemoryAccountRepository,
    InMemoryPortfolioRepository,
    InMemoryStore,
    InMemoryTradeRepository,
    InMemoryUnitOfWork,
    InMemoryUnitOfWorkFactory,
)
from .portfolio_repository import PostgreSQLPortfolioRepository
from .trade_repository import PostgreSQLTradeRepository
from .unit_of_work import PostgreSQLUnitOfWork, PostgreSQLUnitOfWorkFactory

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryPortfolioRepository",
    "InMemoryStore",
    "InMemoryTradeRepository",
    "InMemoryUnitOfWork",
    "InMemoryUnitOfWorkFactory",
    "PostgreSQLAccountRepository",
    "PostgreSQLPortfolioRepository",
    "PostgreSQLTradeRepository",
    "PostgreSQLUnitOfWork",
    "PostgreSQLUnitOfWorkFactory",
]
