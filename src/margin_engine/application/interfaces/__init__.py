"""Application interfaces for persistence and external collaborators."""

from .exceptions import (
    AccountNotFoundError,
    ConnectionError,
    DuplicateEntityError,
    EntityNotFoundError,
    FactoryError,
    IntegrityError,
    RepositoryError,
    TradeNotFoundError,
    TransactionAlreadyActiveError,
    TransactionCommitError,
    TransactionError,
    TransactionNotActiveError,
    TransactionRollbackError,
)
from .market_data import IPriceOracle
from .repositories import IAccountRepository, IPortfolioRepository, ITradeRepository
from .unit_of_work import IUnitOfWork, IUnitOfWorkFactory

__all__ = [
    "AccountNotFoundError",
    "ConnectionError",
    "DuplicateEntityError",
    "EntityNotFoundError",
    "FactoryError",
    "IAccountRepository",
    "IPortfolioRepository",
    "IPriceOracle",
    "ITradeRepository",
    "IUnitOfWork",
    "IUnitOfWorkFactory",
    "IntegrityError",
    "RepositoryError",
    "TradeNotFoundError",
    "TransactionAlreadyActiveError",
    "TransactionCommitError",
    "TransactionError",
    "TransactionNotActiveError",
    "TransactionRollbackError",
]
