"""CLI helpers for opening the backend selected by the global options."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TypeVar

from linkshelf.backend import Backend
from linkshelf.config import LinkshelfConfig

T = TypeVar("T")


def resolve_config() -> LinkshelfConfig:
    """Environment defaults overridden by the CLI's global options."""
    from linkshelf.cli import state

    cfg = LinkshelfConfig.from_env()
    if state.storage_uri:
        cfg = replace(cfg, storage_uri=state.storage_uri)
    return cfg


def run_with_backend(operation: Callable[[Backend], Awaitable[T]]) -> T:
    """Open the backend, run one operation against it and close it again."""

    async def _run() -> T:
        async with await Backend.open(resolve_config()) as backend:
            return await operation(backend)

    return asyncio.run(_run())
