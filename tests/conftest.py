"""Global pytest configuration and fixtures."""

# Standard library imports
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock

# Load test environment variables
from dotenv import load_dotenv

test_env_path = Path(__file__).parent.parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)

# Third-party imports
import pytest

# Local imports
from margin_engine.application.config import (
    ApplicationConfig,
    ConcurrencyConfig,
    reset_config,
)
from margin_engine.application.interfaces.repositories import (
    IAccountRepository,
    IPortfolioRepository,
    ITradeRepository,
)
from margin_engine.application.interfaces.unit_of_work import IUnitOfWork
from margin_engine.application.services import TradingEngine
from margin_engine.domain.entities import (
    Account,
    OrderType,
    Trade,
    TradeDirection,
    TradeRequest,
)
from margin_engine.infrastructure.repositories import InMemoryStore, InMemoryUnitOfWorkFactory


@pytest.fixture(autouse=True)
def _reset_global_config():
    yield
    reset_config()


@pytest.fixture
def account() -> Account:
    """A funded account with no open positions."""
    return Account(user_id="user-1", balance=Decimal("10000"))


@pytest.fixture
def trade_request() -> TradeRequest:
    return TradeRequest(
        user_id="user-1",
        symbol="EURUSD",
        asset_class="FOREX",
        direction=TradeDirection.BUY,
        units=Decimal("1000"),
        price=Decimal("1.1000"),
    )


@pytest.fixture
def open_trade(trade_request: TradeRequest) -> Trade:
    return Trade.create_market_order(trade_request, Decimal("2.2"))


@pytest.fixture
def pending_trade(trade_request: TradeRequest) -> Trade:
    trade_request.order_type = OrderType.LIMIT
    return Trade.create_entry_order(trade_request)


@pytest.fixture
def mock_unit_of_work():
    """Create a mock unit of work with all required repositories."""
    uow = AsyncMock(spec=IUnitOfWork)

    # Setup repositories
    uow.accounts = AsyncMock(spec=IAccountRepository)
    uow.trades = AsyncMock(spec=ITradeRepository)
    uow.portfolio = AsyncMock(spec=IPortfolioRepository)

    # Setup transaction methods
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    uow.is_active = AsyncMock(return_value=True)

    # Setup context manager
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)

    return uow


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow_factory(store: InMemoryStore) -> InMemoryUnitOfWorkFactory:
    return InMemoryUnitOfWorkFactory(store)


@pytest.fixture
def app_config() -> ApplicationConfig:
    """Configuration with fast retries for tests."""
    return ApplicationConfig(
        concurrency=ConcurrencyConfig(
            max_retries=3, base_delay=0.001, max_delay=0.01, lock_timeout=1.0
        )
    )


@pytest.fixture
def engine(uow_factory: InMemoryUnitOfWorkFactory, app_config: ApplicationConfig) -> TradingEngine:
    return TradingEngine(uow_factory, config=app_config)


@pytest.fixture
def funded_store(store: InMemoryStore, account: Account) -> InMemoryStore:
    store.add_account(account)
    return store
