"""
Nyx Configuration

Dataclass configuration sections, JSON persistence, environment
overrides and logging setup.
"""

from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, field, asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from nyx.constants import (
    DEFAULT_MAX_DECRYPTABLE_AMOUNT,
    MAX_DECRYPTABLE_AMOUNT_LIMIT,
    DEFAULT_SCAN_BATCH_SIZE,
    DEFAULT_SCAN_MAX_TRANSACTIONS,
    DEFAULT_SCAN_CACHE_TTL_SEC,
    DEFAULT_SCAN_CACHE_MAX_ENTRIES,
    DEFAULT_SCAN_RETRY_COUNT,
    DEFAULT_SCAN_RETRY_DELAY_SEC,
    DEFAULT_SCAN_BACKOFF_FACTOR,
)
from nyx.errors import ConfigError

logger = logging.getLogger("nyx.config")

# Environment overrides
ENV_MAX_DECRYPTABLE_AMOUNT = "NYX_MAX_DECRYPTABLE_AMOUNT"
ENV_LOG_LEVEL = "NYX_LOG_LEVEL"
ENV_STORE_PATH = "NYX_STORE_PATH"
ENV_SCAN_CACHE_TTL = "NYX_SCAN_CACHE_TTL"


@dataclass
class ElGamalConfig:
    """ElGamal decryption configuration."""
    max_decryptable_amount: int = DEFAULT_MAX_DECRYPTABLE_AMOUNT


@dataclass
class ScannerConfig:
    """Stealth payment scanner configuration."""
    batch_size: int = DEFAULT_SCAN_BATCH_SIZE
    max_transactions: int = DEFAULT_SCAN_MAX_TRANSACTIONS
    cache_ttl_sec: float = DEFAULT_SCAN_CACHE_TTL_SEC
    cache_max_entries: int = DEFAULT_SCAN_CACHE_MAX_ENTRIES
    retry_count: int = DEFAULT_SCAN_RETRY_COUNT
    retry_delay_sec: float = DEFAULT_SCAN_RETRY_DELAY_SEC
    backoff_factor: float = DEFAULT_SCAN_BACKOFF_FACTOR

    def validate(self) -> List[str]:
        errors = []
        if self.batch_size < 1:
            errors.append("batch_size must be at least 1")
        if self.max_transactions < 1:
            errors.append("max_transactions must be at least 1")
        if self.cache_ttl_sec < 0:
            errors.append("cache_ttl_sec cannot be negative")
        if self.cache_max_entries < 1:
            errors.append("cache_max_entries must be at least 1")
        if self.retry_count < 1:
            errors.append("retry_count must be at least 1")
        if self.retry_delay_sec < 0:
            errors.append("retry_delay_sec cannot be negative")
        if self.backoff_factor < 1.0:
            errors.append("backoff_factor must be at least 1.0")
        return errors

    def ensure_valid(self) -> "ScannerConfig":
        """Raise ConfigError if the scanner configuration is invalid."""
        errors = self.validate()
        if errors:
            raise ConfigError("Invalid scanner configuration", context={"errors": errors})
        return self


@dataclass
class ViewingKeyDefaults:
    """Defaults applied when a viewing key is generated without config."""
    expiration_days: Optional[float] = None
    can_view_balances: bool = True
    can_view_amounts: bool = True
    can_view_metadata: bool = False


@dataclass
class StoreConfig:
    """Viewing-key store configuration."""
    backend: str = "memory"  # memory | sqlite
    db_path: str = "./data/viewing_keys.db"


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
    max_size_mb: int = 50
    backup_count: int = 5


@dataclass
class PrivacyConfig:
    """
    Complete privacy layer configuration.
    """
    elgamal: ElGamalConfig = field(default_factory=ElGamalConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    viewing_keys: ViewingKeyDefaults = field(default_factory=ViewingKeyDefaults)
    store: StoreConfig = field(default_factory=StoreConfig)
    log: LogConfig = field(default_factory=LogConfig)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        bound = self.elgamal.max_decryptable_amount
        if bound < 1 or bound > MAX_DECRYPTABLE_AMOUNT_LIMIT:
            errors.append(
                f"max_decryptable_amount must be in [1, 2^40], got {bound}"
            )

        errors.extend(self.scanner.validate())

        if self.store.backend not in ("memory", "sqlite"):
            errors.append(f"Unknown store backend: {self.store.backend}")
        if self.store.backend == "sqlite" and not self.store.db_path:
            errors.append("db_path cannot be empty for sqlite store")

        if getattr(logging, self.log.level.upper(), None) is None:
            errors.append(f"Unknown log level: {self.log.level}")

        return errors

    def ensure_valid(self) -> "PrivacyConfig":
        """Raise ConfigError if the configuration is invalid."""
        errors = self.validate()
        if errors:
            raise ConfigError("Invalid configuration", context={"errors": errors})
        return self

    def to_dict(self) -> dict:
        return {
            "elgamal": asdict(self.elgamal),
            "scanner": asdict(self.scanner),
            "viewing_keys": asdict(self.viewing_keys),
            "store": asdict(self.store),
            "log": asdict(self.log),
        }

    def save(self, path: str) -> None:
        """Save configuration to file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> "PrivacyConfig":
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls()

        if "elgamal" in data:
            config.elgamal = ElGamalConfig(**data["elgamal"])

        if "scanner" in data:
            config.scanner = ScannerConfig(**data["scanner"])

        if "viewing_keys" in data:
            config.viewing_keys = ViewingKeyDefaults(**data["viewing_keys"])

        if "store" in data:
            config.store = StoreConfig(**data["store"])

        if "log" in data:
            config.log = LogConfig(**data["log"])

        logger.info(f"Configuration loaded from {path}")
        return config

    @classmethod
    def from_env(cls, base: Optional["PrivacyConfig"] = None) -> "PrivacyConfig":
        """Apply NYX_* environment overrides on top of base (or defaults)."""
        config = base or cls()

        try:
            if os.getenv(ENV_MAX_DECRYPTABLE_AMOUNT):
                config.elgamal.max_decryptable_amount = int(os.getenv(ENV_MAX_DECRYPTABLE_AMOUNT))
            if os.getenv(ENV_SCAN_CACHE_TTL):
                config.scanner.cache_ttl_sec = float(os.getenv(ENV_SCAN_CACHE_TTL))
        except ValueError as e:
            raise ConfigError(f"Invalid environment override: {e}") from e

        if os.getenv(ENV_LOG_LEVEL):
            config.log.level = os.getenv(ENV_LOG_LEVEL)
        if os.getenv(ENV_STORE_PATH):
            config.store.backend = "sqlite"
            config.store.db_path = os.getenv(ENV_STORE_PATH)

        return config


def setup_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """Configure package logging with rotation support."""
    config = config or LogConfig()
    root = logging.getLogger("nyx")
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    formatter = logging.Formatter(config.format, datefmt="%Y-%m-%d %H:%M:%S")

    # Avoid stacking handlers on repeated setup
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
