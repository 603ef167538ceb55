"""Shared test fixtures for linkshelf tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from linkshelf.backend import Backend
from linkshelf.storage import Key, MutationResult, PathElement, SqliteDocumentStore

# --- Store doubles ---


class RecordingTransaction:
    """Wraps a real transaction, records rollbacks and can fake a commit conflict."""

    def __init__(self, inner: Any, *, conflict: bool = False) -> None:
        self.inner = inner
        self.conflict = conflict
        self.rolled_back = False
        self.saved: list[tuple[Key, dict[str, Any]]] = []

    async def get(self, key):
        return await self.inner.get(key)

    def save(self, key, data):
        self.saved.append((key, data))
        self.inner.save(key, data)

    async def commit(self):
        if self.conflict:
            return MutationResult(None, conflict_detected=True)
        return await self.inner.commit()

    async def rollback(self):
        self.rolled_back = True
        await self.inner.rollback()

    async def __aenter__(self):
        await self.inner.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if not self.inner.committed:
            await self.rollback()


class FlakyStore:
    """Delegates to a real store; selected operations report a conflict instead."""

    def __init__(
        self,
        inner: SqliteDocumentStore,
        *,
        conflict_on: tuple[str, ...] = (),
        created_key: Key | None = None,
    ) -> None:
        self.inner = inner
        self.conflict_on = conflict_on
        self.created_key = created_key
        self.transactions: list[RecordingTransaction] = []

    def key(self, kind, id=None):
        return self.inner.key(kind, id)

    async def get(self, key):
        return await self.inner.get(key)

    async def run_query(self, plan):
        return await self.inner.run_query(plan)

    async def save(self, key, data):
        if "save" in self.conflict_on:
            return MutationResult(key, conflict_detected=True)
        if self.created_key is not None:
            return MutationResult(self.created_key)
        return await self.inner.save(key, data)

    async def delete(self, key):
        if "delete" in self.conflict_on:
            return MutationResult(key, conflict_detected=True)
        return await self.inner.delete(key)

    def transaction(self):
        txn = RecordingTransaction(self.inner.transaction(), conflict="commit" in self.conflict_on)
        self.transactions.append(txn)
        return txn

    async def close(self):
        await self.inner.close()


def name_key(kind: str, name: str) -> Key:
    return Key((PathElement(kind, name=name),))


# --- Fixtures ---


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite database path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def run_with_store(tmp_db):
    """Run ``scenario(store)`` against a fresh SQLite store inside one event loop."""

    def _run(scenario):
        async def _main():
            store = await SqliteDocumentStore.open(tmp_db)
            try:
                return await scenario(store)
            finally:
                await store.close()

        return asyncio.run(_main())

    return _run


@pytest.fixture
def run_with_backend(tmp_db):
    """Run ``scenario(backend)`` against a Backend over a fresh SQLite store."""

    def _run(scenario):
        async def _main():
            async with Backend(await SqliteDocumentStore.open(tmp_db)) as backend:
                return await scenario(backend)

        return asyncio.run(_main())

    return _run
