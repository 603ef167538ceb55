"""Configuration for the linkshelf persistence core."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class LinkshelfConfig:
    """Configuration for the document store and its callers."""

    storage_uri: str = "sqlite:linkshelf.db"
    busy_timeout_ms: int = 5000
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> LinkshelfConfig:
        """Build a config from LINKSHELF_* environment variables."""
        defaults = cls()
        timeout = os.getenv("LINKSHELF_BUSY_TIMEOUT_MS")
        return cls(
            storage_uri=os.getenv("LINKSHELF_STORAGE_URI") or defaults.storage_uri,
            busy_timeout_ms=int(timeout) if timeout else defaults.busy_timeout_ms,
            log_level=(os.getenv("LINKSHELF_LOG_LEVEL") or defaults.log_level).upper(),
        )
