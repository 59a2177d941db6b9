"""
Configuration Loader - Handles IO operations for configuration management.

This module is responsible for loading and saving configuration from/to
various sources (YAML files, .env files, environment variables) while keeping
the ApplicationConfig class focused on data representation and validation.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .config import (
    ApplicationConfig,
    ConcurrencyConfig,
    DatabaseConfig,
    Environment,
    LoggingConfig,
    TradingConfig,
)


class ConfigLoader:
    """Handles loading and saving of configuration from various sources."""

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> ApplicationConfig:
        """
        Create configuration from environment variables.

        Variables from ``env_file`` (or a ``.env`` found from the working
        directory) are loaded first; already-set variables win.
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        env_str = os.getenv("ENVIRONMENT", "development")
        try:
            environment = Environment(env_str)
        except ValueError:
            raise ValueError(f"Invalid environment: {env_str}")

        return ApplicationConfig(
            environment=environment,
            database=DatabaseConfig.from_env(),
            trading=TradingConfig.from_env(),
            concurrency=ConcurrencyConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> ApplicationConfig:
        """
        Load configuration from YAML file.

        Sections and keys missing from the file keep their defaults.
        """
        with open(path) as f:
            data = yaml.safe_load(f)

        config = ApplicationConfig()

        # Handle empty or null YAML files
        if not data:
            return config

        if "environment" in data:
            config.environment = Environment(data["environment"])

        if "database" in data:
            db_data = data["database"]
            config.database = DatabaseConfig(
                host=db_data.get("host", config.database.host),
                port=db_data.get("port", config.database.port),
                database=db_data.get("database", config.database.database),
                user=db_data.get("user", config.database.user),
                password=db_data.get("password", config.database.password),
                min_pool_size=db_data.get("min_pool_size", config.database.min_pool_size),
                max_pool_size=db_data.get("max_pool_size", config.database.max_pool_size),
                command_timeout=db_data.get("command_timeout", config.database.command_timeout),
            )

        if "trading" in data:
            trading_data = data["trading"]
            defaults = config.trading
            config.trading = TradingConfig(
                default_margin_call_level=_decimal(
                    trading_data, "default_margin_call_level", defaults.default_margin_call_level
                ),
                liquidation_margin_level=_decimal(
                    trading_data, "liquidation_margin_level", defaults.liquidation_margin_level
                ),
                forced_liquidation_margin_level=_decimal(
                    trading_data,
                    "forced_liquidation_margin_level",
                    defaults.forced_liquidation_margin_level,
                ),
                margin_warning_multiplier=_decimal(
                    trading_data, "margin_warning_multiplier", defaults.margin_warning_multiplier
                ),
                fallback_margin_rate=_decimal(
                    trading_data, "fallback_margin_rate", defaults.fallback_margin_rate
                ),
                position_epsilon=_decimal(
                    trading_data, "position_epsilon", defaults.position_epsilon
                ),
            )

        if "concurrency" in data:
            conc_data = data["concurrency"]
            config.concurrency = ConcurrencyConfig(
                max_retries=conc_data.get("max_retries", config.concurrency.max_retries),
                base_delay=conc_data.get("base_delay", config.concurrency.base_delay),
                max_delay=conc_data.get("max_delay", config.concurrency.max_delay),
                lock_timeout=conc_data.get("lock_timeout", config.concurrency.lock_timeout),
            )

        if "logging" in data:
            log_data = data["logging"]
            config.logging = LoggingConfig(
                level=log_data.get("level", config.logging.level),
                format=log_data.get("format", config.logging.format),
                file=log_data.get("file", config.logging.file),
                max_bytes=log_data.get("max_bytes", config.logging.max_bytes),
                backup_count=log_data.get("backup_count", config.logging.backup_count),
            )

        return config

    @classmethod
    def to_yaml(cls, config: ApplicationConfig) -> str:
        """Convert configuration to YAML string."""
        return yaml.dump(config.to_dict(), default_flow_style=False)

    @classmethod
    def save_to_yaml(cls, config: ApplicationConfig, path: str | Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            f.write(cls.to_yaml(config))


def _decimal(data: dict[str, Any], key: str, default: Decimal) -> Decimal:
    return Decimal(str(data.get(key, default)))
