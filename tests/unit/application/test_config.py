"""Unit tests for application configuration."""

from decimal import Decimal

import pytest

from margin_engine.application.config import (
    ApplicationConfig,
    ConcurrencyConfig,
    DatabaseConfig,
    Environment,
    LoggingConfig,
    TradingConfig,
    get_config,
    reset_config,
    set_config,
)


class TestFromEnv:
    """Test environment-driven configuration."""

    def test_database_from_env(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "db.internal")
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.setenv("DB_NAME", "ledger")
        monkeypatch.setenv("DB_PASSWORD", "secret")

        config = DatabaseConfig.from_env()

        assert config.host == "db.internal"
        assert config.port == 6543
        assert config.database == "ledger"
        assert "dbname=ledger" in config.dsn
        assert "port=6543" in config.dsn

    def test_trading_from_env(self, monkeypatch):
        monkeypatch.setenv("TRADING_MARGIN_CALL_LEVEL", "120")
        monkeypatch.setenv("TRADING_FALLBACK_MARGIN_RATE", "0.2")

        config = TradingConfig.from_env()

        assert config.default_margin_call_level == Decimal("120")
        assert config.fallback_margin_rate == Decimal("0.2")
        assert config.liquidation_margin_level == Decimal("20")

    def test_concurrency_from_env(self, monkeypatch):
        monkeypatch.setenv("CONCURRENCY_MAX_RETRIES", "7")
        monkeypatch.setenv("CONCURRENCY_LOCK_TIMEOUT", "2.5")

        config = ConcurrencyConfig.from_env()

        assert config.max_retries == 7
        assert config.lock_timeout == 2.5

    def test_logging_file_unset_is_none(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = LoggingConfig.from_env()

        assert config.level == "DEBUG"
        assert config.file is None


class TestValidate:
    """Test ApplicationConfig.validate."""

    def test_defaults_are_valid(self):
        assert ApplicationConfig().validate() is True

    def test_production_requires_password(self):
        config = ApplicationConfig(environment=Environment.PRODUCTION)
        with pytest.raises(ValueError, match="password"):
            config.validate()

    def test_liquidation_above_margin_call_rejected(self):
        config = ApplicationConfig(
            trading=TradingConfig(
                default_margin_call_level=Decimal("50"), liquidation_margin_level=Decimal("60")
            )
        )
        with pytest.raises(ValueError, match="Liquidation level"):
            config.validate()

    def test_forced_above_liquidation_rejected(self):
        config = ApplicationConfig(
            trading=TradingConfig(forced_liquidation_margin_level=Decimal("30"))
        )
        with pytest.raises(ValueError, match="Forced liquidation"):
            config.validate()

    def test_retries_must_be_positive(self):
        config = ApplicationConfig(concurrency=ConcurrencyConfig(max_retries=0))
        with pytest.raises(ValueError, match="retries"):
            config.validate()

    def test_pool_sizes(self):
        config = ApplicationConfig(database=DatabaseConfig(min_pool_size=5, max_pool_size=2))
        with pytest.raises(ValueError, match="pool size"):
            config.validate()


class TestGlobalConfig:
    def test_set_and_reset(self):
        config = ApplicationConfig(environment=Environment.TESTING)
        set_config(config)
        assert get_config() is config

        reset_config()
        assert get_config() is not config

    def test_get_config_loads_from_env(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        reset_config()

        assert get_config().environment == Environment.STAGING

    def test_to_dict_serializes_decimals_as_strings(self):
        data = ApplicationConfig().to_dict()

        assert data["environment"] == "development"
        assert data["trading"]["default_margin_call_level"] == "100"
        assert data["concurrency"]["max_retries"] == 3
