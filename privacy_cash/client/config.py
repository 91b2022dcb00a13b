"""
Privacy Cash Client Configuration
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional

from privacy_cash.constants import (
    DEFAULT_COMMITMENT,
    DEFAULT_HTTP_TIMEOUT_SEC,
    FETCH_BATCH_SIZE,
    LOGGER_ROOT,
    RELAYER_API_URL,
    STATUS_INTERVAL_SEC,
)
from privacy_cash.network.rpc import ConnectionProvider

logger = logging.getLogger(__name__)

_COMMITMENTS = ("processed", "confirmed", "finalized")


@dataclass
class LedgerConfig:
    """Ledger and indexer access."""
    rpc_url: Optional[str] = None
    connection_provider: Optional[ConnectionProvider] = None
    indexer_url: str = RELAYER_API_URL
    commitment: str = DEFAULT_COMMITMENT
    timeout: float = DEFAULT_HTTP_TIMEOUT_SEC


@dataclass
class SyncConfig:
    """Note synchronization."""
    batch_size: int = FETCH_BATCH_SIZE


@dataclass
class StorageConfig:
    """Note cache storage. No db_path means an in-memory cache."""
    db_path: Optional[str] = None


@dataclass
class StatusConfig:
    """CLI status line."""
    interval: float = STATUS_INTERVAL_SEC


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_size_mb: int = 10
    backup_count: int = 3


@dataclass
class ClientConfig:
    """
    Complete client configuration.

    Identity comes from exactly one of: owner key material, keyfile, or
    signature + public_key. Callables (connection_provider, log_callback)
    are never serialized.
    """
    # Identity
    owner: Any = field(default=None, repr=False)
    signature: Optional[bytes] = field(default=None, repr=False)
    public_key: Optional[str] = None
    keyfile: Optional[str] = None

    # Sub-configurations
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    status: StatusConfig = field(default_factory=StatusConfig)
    log: LogConfig = field(default_factory=LogConfig)

    # Per asset key ("native" or mint) offset for a fresh cache
    starting_offsets: Dict[str, int] = field(default_factory=dict)

    debug_mode: bool = False
    log_callback: Optional[Callable[[str, str], None]] = field(default=None, repr=False)

    @property
    def has_identity(self) -> bool:
        return self.owner is not None or self.keyfile is not None or self.signature is not None

    @property
    def has_connection(self) -> bool:
        return self.ledger.connection_provider is not None or bool(self.ledger.rpc_url)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Missing identity or connection are reported separately by the client
        with their own error types; this covers value ranges.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.ledger.timeout <= 0:
            errors.append(f"Invalid ledger timeout: {self.ledger.timeout}")

        if self.ledger.commitment not in _COMMITMENTS:
            errors.append(f"Invalid commitment: {self.ledger.commitment}")

        if not self.ledger.indexer_url:
            errors.append("indexer_url cannot be empty")

        if self.sync.batch_size < 1:
            errors.append("batch_size must be at least 1")

        if self.status.interval <= 0:
            errors.append(f"Invalid status interval: {self.status.interval}")

        for asset_key, offset in self.starting_offsets.items():
            if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
                errors.append(f"Invalid starting offset for {asset_key}: {offset!r}")

        if self.owner is not None and self.keyfile is not None:
            errors.append("owner and keyfile are mutually exclusive")

        return errors

    def save(self, path: str) -> None:
        """
        Save configuration to file.

        Secret material (owner, signature) is not written; use keyfile.
        """
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> "ClientConfig":
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(
            public_key=data.get("public_key"),
            keyfile=data.get("keyfile"),
            starting_offsets=dict(data.get("starting_offsets", {})),
            debug_mode=data.get("debug_mode", False),
        )

        if "ledger" in data:
            config.ledger = LedgerConfig(**data["ledger"])

        if "sync" in data:
            config.sync = SyncConfig(**data["sync"])

        if "storage" in data:
            config.storage = StorageConfig(**data["storage"])

        if "status" in data:
            config.status = StatusConfig(**data["status"])

        if "log" in data:
            config.log = LogConfig(**data["log"])

        logger.info(f"Configuration loaded from {path}")
        return config

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        ledger = asdict(self.ledger)
        ledger.pop("connection_provider")
        return {
            "public_key": self.public_key,
            "keyfile": self.keyfile,
            "starting_offsets": dict(self.starting_offsets),
            "debug_mode": self.debug_mode,
            "ledger": ledger,
            "sync": asdict(self.sync),
            "storage": asdict(self.storage),
            "status": asdict(self.status),
            "log": asdict(self.log),
        }


def setup_logging(config: LogConfig) -> List[logging.Handler]:
    """
    Configure the client logger based on config.

    Only the package logger is touched, so applications keep control of
    the root logger. The package logger is shared by every client in the
    process: its level is only ever lowered, never raised.

    Returns:
        Handlers added to the package logger
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    package_logger = logging.getLogger(LOGGER_ROOT)
    if package_logger.level == logging.NOTSET or level < package_logger.level:
        package_logger.setLevel(level)

    handlers: List[logging.Handler] = []
    if config.file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        package_logger.addHandler(file_handler)
        handlers.append(file_handler)

    return handlers

