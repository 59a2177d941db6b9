"""
Application Configuration - Central configuration management.

This module provides configuration management for the margin engine,
including database, trading policy, concurrency and logging settings.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class DatabaseConfig:
    """Database configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "margin_engine"
    user: str = "postgres"
    password: str = ""
    min_pool_size: int = 1
    max_pool_size: int = 10
    command_timeout: float = 30.0

    @property
    def dsn(self) -> str:
        return (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user} password={self.password}"
        )

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create configuration from environment variables."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "margin_engine"),
            user=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", ""),
            min_pool_size=int(os.getenv("DB_MIN_POOL_SIZE", "1")),
            max_pool_size=int(os.getenv("DB_MAX_POOL_SIZE", "10")),
            command_timeout=float(os.getenv("DB_COMMAND_TIMEOUT", "30")),
        )


@dataclass
class TradingConfig:
    """Margin and settlement policy."""

    default_margin_call_level: Decimal = Decimal("100")  # percent
    liquidation_margin_level: Decimal = Decimal("20")  # percent
    forced_liquidation_margin_level: Decimal = Decimal("10")  # percent
    margin_warning_multiplier: Decimal = Decimal("1.5")
    fallback_margin_rate: Decimal = Decimal("0.10")
    position_epsilon: Decimal = Decimal("0.0001")

    @classmethod
    def from_env(cls) -> "TradingConfig":
        """Create configuration from environment variables."""
        return cls(
            default_margin_call_level=Decimal(os.getenv("TRADING_MARGIN_CALL_LEVEL", "100")),
            liquidation_margin_level=Decimal(os.getenv("TRADING_LIQUIDATION_LEVEL", "20")),
            forced_liquidation_margin_level=Decimal(
                os.getenv("TRADING_FORCED_LIQUIDATION_LEVEL", "10")
            ),
            margin_warning_multiplier=Decimal(
                os.getenv("TRADING_MARGIN_WARNING_MULTIPLIER", "1.5")
            ),
            fallback_margin_rate=Decimal(os.getenv("TRADING_FALLBACK_MARGIN_RATE", "0.10")),
            position_epsilon=Decimal(os.getenv("TRADING_POSITION_EPSILON", "0.0001")),
        )


@dataclass
class ConcurrencyConfig:
    """Retry and locking settings for account mutations."""

    max_retries: int = 3
    base_delay: float = 0.05  # seconds
    max_delay: float = 1.0
    lock_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "ConcurrencyConfig":
        """Create configuration from environment variables."""
        return cls(
            max_retries=int(os.getenv("CONCURRENCY_MAX_RETRIES", "3")),
            base_delay=float(os.getenv("CONCURRENCY_BASE_DELAY", "0.05")),
            max_delay=float(os.getenv("CONCURRENCY_MAX_DELAY", "1.0")),
            lock_timeout=float(os.getenv("CONCURRENCY_LOCK_TIMEOUT", "10.0")),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"
    file: str | None = None
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create configuration from environment variables."""
        file_path = os.getenv("LOG_FILE")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", cls.format),
            file=file_path if file_path else None,
            max_bytes=int(os.getenv("LOG_MAX_BYTES", "10485760")),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
        )


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    environment: Environment = Environment.DEVELOPMENT
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    concurrency: ConcurrencyConfig = field(default_factory=ConcurrencyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "environment": self.environment.value,
            "database": {
                "host": self.database.host,
                "port": self.database.port,
                "database": self.database.database,
                "user": self.database.user,
                "password": self.database.password,
                "min_pool_size": self.database.min_pool_size,
                "max_pool_size": self.database.max_pool_size,
                "command_timeout": self.database.command_timeout,
            },
            "trading": {
                "default_margin_call_level": str(self.trading.default_margin_call_level),
                "liquidation_margin_level": str(self.trading.liquidation_margin_level),
                "forced_liquidation_margin_level": str(
                    self.trading.forced_liquidation_margin_level
                ),
                "margin_warning_multiplier": str(self.trading.margin_warning_multiplier),
                "fallback_margin_rate": str(self.trading.fallback_margin_rate),
                "position_epsilon": str(self.trading.position_epsilon),
            },
            "concurrency": {
                "max_retries": self.concurrency.max_retries,
                "base_delay": self.concurrency.base_delay,
                "max_delay": self.concurrency.max_delay,
                "lock_timeout": self.concurrency.lock_timeout,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file": self.logging.file,
                "max_bytes": self.logging.max_bytes,
                "backup_count": self.logging.backup_count,
            },
        }

    def validate(self) -> bool:
        """
        Validate the configuration.

        Returns:
            True if valid, raises exception otherwise
        """
        if self.environment == Environment.PRODUCTION and not self.database.password:
            raise ValueError("Database password required for production")

        if self.database.min_pool_size > self.database.max_pool_size:
            raise ValueError("Database min pool size cannot exceed max pool size")

        trading = self.trading
        if trading.default_margin_call_level <= 0:
            raise ValueError("Margin call level must be positive")
        if trading.liquidation_margin_level > trading.default_margin_call_level:
            raise ValueError("Liquidation level cannot be above the margin call level")
        if trading.forced_liquidation_margin_level > trading.liquidation_margin_level:
            raise ValueError("Forced liquidation level cannot be above the liquidation level")
        if trading.margin_warning_multiplier < 1:
            raise ValueError("Margin warning multiplier must be at least 1")
        if not (0 < trading.fallback_margin_rate <= 1):
            raise ValueError("Fallback margin rate must be in (0, 1]")
        if trading.position_epsilon <= 0:
            raise ValueError("Position epsilon must be positive")

        if self.concurrency.max_retries < 1:
            raise ValueError("Max retries must be at least 1")
        if self.concurrency.base_delay < 0 or self.concurrency.max_delay < 0:
            raise ValueError("Retry delays cannot be negative")
        if self.concurrency.lock_timeout <= 0:
            raise ValueError("Lock timeout must be positive")

        return True


# Global configuration singleton
_config: ApplicationConfig | None = None


def get_config() -> ApplicationConfig:
    """
    Get the application configuration singleton, loading it from the environment
    on first use.
    """
    global _config
    if _config is None:
        from .config_loader import ConfigLoader

        _config = ConfigLoader.from_env()
    return _config


def set_config(config: ApplicationConfig) -> None:
    """Set the application configuration."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the configuration singleton."""
    global _config
    _config = None
