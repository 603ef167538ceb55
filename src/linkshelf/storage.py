"""Document store contract and the SQLite-backed document store."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlparse

import aiosqlite

from linkshelf.config import LinkshelfConfig
from linkshelf.errors import StorageBackendError
from linkshelf.query import KEY_FIELD, Constraint, QueryPlan

logger = logging.getLogger(__name__)


# --- Keys and results ---


@dataclass(frozen=True)
class PathElement:
    kind: str
    id: int | None = None
    name: str | None = None

    @property
    def id_type(self) -> str | None:
        if self.id is not None:
            return "id"
        if self.name is not None:
            return "name"
        return None


@dataclass(frozen=True)
class Key:
    """Datastore-style key: a path of (kind, id|name) elements, leaf last."""

    path: tuple[PathElement, ...]

    @classmethod
    def of(cls, kind: str, id: int | None = None) -> Key:
        return cls((PathElement(kind, id),))

    @property
    def kind(self) -> str:
        return self.path[-1].kind

    @property
    def id(self) -> int | None:
        return self.path[-1].id

    @property
    def name(self) -> str | None:
        return self.path[-1].name

    @property
    def is_complete(self) -> bool:
        return self.path[-1].id_type is not None

    def __str__(self) -> str:
        return "/".join(f"{e.kind}:{e.id if e.id is not None else e.name}" for e in self.path)


@dataclass
class Document:
    """A stored entity: its key and its property map."""

    key: Key
    data: dict[str, Any] = field(default_factory=dict)


class MoreResults(Enum):
    NOT_FINISHED = "NOT_FINISHED"
    MORE_RESULTS_AFTER_LIMIT = "MORE_RESULTS_AFTER_LIMIT"
    NO_MORE_RESULTS = "NO_MORE_RESULTS"


@dataclass
class QueryResult:
    documents: list[Document]
    more_results: MoreResults


@dataclass
class MutationResult:
    """Outcome of a save, delete or commit as reported by the store."""

    key: Key | None
    conflict_detected: bool = False


# --- Contracts ---


@runtime_checkable
class Transaction(Protocol):
    """Transaction handle; as an async context manager it rolls back unless committed."""

    async def get(self, key: Key) -> Document | None: ...

    def save(self, key: Key, data: dict[str, Any]) -> None: ...

    async def commit(self) -> MutationResult: ...

    async def rollback(self) -> None: ...

    async def __aenter__(self) -> Transaction: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


@runtime_checkable
class DocumentStore(Protocol):
    """Backend-agnostic document store contract used by the DAO layer."""

    def key(self, kind: str, id: int | None = None) -> Key: ...

    async def get(self, key: Key) -> Document | None: ...

    async def run_query(self, plan: QueryPlan) -> QueryResult: ...

    async def save(self, key: Key, data: dict[str, Any]) -> MutationResult: ...

    async def delete(self, key: Key) -> MutationResult: ...

    def transaction(self) -> Transaction: ...

    async def close(self) -> None: ...


# --- SQLite implementation ---

_SQL_OPERATORS = {"=": "=", "<": "<", "<=": "<=", ">": ">", ">=": ">="}


def _json_path(field_name: str) -> str:
    return f'$."{field_name}"'


def _compile_constraint(constraint: Constraint, params: list[Any]) -> str:
    """Compile a single constraint to SQL, binding the value (and JSON path) as parameters."""
    sql_op = _SQL_OPERATORS[constraint.op]
    if constraint.field == KEY_FIELD:
        params.append(constraint.value)
        return f"id {sql_op} ?"
    params.extend([_json_path(constraint.field), constraint.value])
    return f"json_extract(data_json, ?) {sql_op} ?"


def _compile_query(plan: QueryPlan) -> tuple[str, list[Any]]:
    columns = "id" if plan.keys_only else "id, data_json"
    sql = f"SELECT {columns} FROM documents WHERE kind = ?"
    params: list[Any] = [plan.kind]

    for constraint in plan.constraints:
        sql += f" AND {_compile_constraint(constraint, params)}"

    order_parts: list[str] = []
    for order in plan.orders:
        direction = "DESC" if order.descending else "ASC"
        if order.field == KEY_FIELD:
            order_parts.append(f"id {direction}")
        else:
            order_parts.append(f"json_extract(data_json, ?) {direction}")
            params.append(_json_path(order.field))
    order_parts.append("id ASC")
    sql += " ORDER BY " + ", ".join(order_parts)

    if plan.limit is not None or plan.offset is not None:
        sql += " LIMIT ? OFFSET ?"
        params.append(plan.limit if plan.limit is not None else -1)
        params.append(plan.offset or 0)
    return sql, params


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Report sqlite failures, and values sqlite cannot bind, as StorageBackendError."""
    try:
        yield
    except (aiosqlite.Error, OverflowError) as e:
        raise StorageBackendError(operation, str(e)) from e


class SqliteTransaction:
    """Read-modify-write transaction.

    The first read reserves the store's writer (``BEGIN IMMEDIATE``) until
    commit or rollback, so transactions on one store run one after the other
    and each reads what the previous one committed. Writes are staged and
    applied at commit. Do not call the store's ``save`` or ``delete`` while
    holding a transaction: they wait for the same writer.
    """

    def __init__(self, store: SqliteDocumentStore) -> None:
        self._store = store
        self._writes: dict[Key, str] = {}
        self._reserved = False
        self.state = "pending"

    @property
    def committed(self) -> bool:
        return self.state == "committed"

    def _require_active(self, operation: str) -> None:
        if self.state != "active":
            raise StorageBackendError(operation, f"transaction is {self.state}")

    async def _reserve(self) -> None:
        if self._reserved:
            return
        await self._store._write_lock.acquire()
        try:
            with _storage_errors("transaction.begin"):
                await self._store._connection().execute("BEGIN IMMEDIATE")
        except BaseException:
            self._store._write_lock.release()
            raise
        self._reserved = True

    def _unlock(self) -> None:
        self._reserved = False
        self._store._write_lock.release()

    async def _abort(self) -> None:
        if not self._reserved:
            return
        try:
            conn = self._store._connection()
            if conn.in_transaction:
                with _storage_errors("transaction.rollback"):
                    await conn.execute("ROLLBACK")
        finally:
            self._unlock()

    async def get(self, key: Key) -> Document | None:
        self._require_active("transaction.get")
        await self._reserve()
        return await self._store._fetch(key)

    def save(self, key: Key, data: dict[str, Any]) -> None:
        self._require_active("transaction.save")
        if not key.is_complete:
            raise StorageBackendError("transaction.save", f"incomplete key {key}")
        self._writes[key] = json.dumps(data)

    async def commit(self) -> MutationResult:
        self._require_active("transaction.commit")
        first_key = next(iter(self._writes), None)
        await self._reserve()
        try:
            with _storage_errors("transaction.commit"):
                for key, data_json in self._writes.items():
                    await self._store._upsert(key, data_json)
                await self._store._connection().execute("COMMIT")
        except BaseException:
            self.state = "rolled_back"
            await self._abort()
            raise
        self._unlock()
        self.state = "committed"
        return MutationResult(first_key)

    async def rollback(self) -> None:
        if self.state == "committed":
            raise StorageBackendError("transaction.rollback", "transaction already committed")
        self._writes.clear()
        self.state = "rolled_back"
        await self._abort()

    async def __aenter__(self) -> SqliteTransaction:
        if self.state != "pending":
            raise StorageBackendError("transaction.begin", f"transaction is {self.state}")
        self.state = "active"
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.state != "committed":
            logger.debug("Rolling back transaction (state=%s)", self.state)
            await self.rollback()


class SqliteDocumentStore:
    """SQLite-backed document store keyed by (kind, integer id)."""

    def __init__(self, conn: aiosqlite.Connection, db_path: str) -> None:
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = conn
        self._write_lock = asyncio.Lock()

    @classmethod
    async def open(cls, db_path: str, *, busy_timeout_ms: int = 5000) -> SqliteDocumentStore:
        with _storage_errors("open"):
            conn = await aiosqlite.connect(db_path, isolation_level=None)
            await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            if db_path != ":memory:":
                await conn.execute("PRAGMA journal_mode=WAL")
            store = cls(conn, db_path)
            await store._create_tables()
        logger.debug("Opened sqlite document store at %s", db_path)
        return store

    async def _create_tables(self) -> None:
        await self._connection().executescript("""
            CREATE TABLE IF NOT EXISTS documents (
                kind TEXT NOT NULL,
                id INTEGER NOT NULL,
                data_json TEXT NOT NULL,
                PRIMARY KEY (kind, id)
            );

            CREATE TABLE IF NOT EXISTS id_sequences (
                kind TEXT PRIMARY KEY,
                last_id INTEGER NOT NULL
            );
        """)

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageBackendError("connection", f"store {self.db_path} is closed")
        return self._conn

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> SqliteDocumentStore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # --- Internal helpers ---

    async def _fetch(self, key: Key) -> Document | None:
        conn = self._connection()
        with _storage_errors("get"):
            async with conn.execute(
                "SELECT data_json FROM documents WHERE kind = ? AND id = ?",
                (key.kind, key.id),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        return Document(key, json.loads(row[0]))

    async def _upsert(self, key: Key, data_json: str) -> None:
        await self._connection().execute(
            "INSERT INTO documents (kind, id, data_json) VALUES (?, ?, ?) "
            "ON CONFLICT (kind, id) DO UPDATE SET data_json = excluded.data_json",
            (key.kind, key.id, data_json),
        )
        await self._connection().execute(
            "INSERT INTO id_sequences (kind, last_id) VALUES (?, ?) "
            "ON CONFLICT (kind) DO UPDATE SET last_id = MAX(last_id, excluded.last_id)",
            (key.kind, key.id),
        )

    async def _allocate_id(self, kind: str) -> int:
        conn = self._connection()
        await conn.execute(
            "INSERT INTO id_sequences (kind, last_id) VALUES (?, 1) "
            "ON CONFLICT (kind) DO UPDATE SET last_id = last_id + 1",
            (kind,),
        )
        async with conn.execute("SELECT last_id FROM id_sequences WHERE kind = ?", (kind,)) as cur:
            row = await cur.fetchone()
        assert row is not None
        return int(row[0])

    # --- DocumentStore ---

    def key(self, kind: str, id: int | None = None) -> Key:
        return Key.of(kind, id)

    async def get(self, key: Key) -> Document | None:
        return await self._fetch(key)

    async def run_query(self, plan: QueryPlan) -> QueryResult:
        sql, params = _compile_query(plan)
        logger.debug("Query on %s: %s %s", plan.kind, sql, params)
        conn = self._connection()
        with _storage_errors("run_query"):
            async with conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()

        if plan.keys_only:
            documents = [Document(Key.of(plan.kind, r[0])) for r in rows]
        else:
            documents = [Document(Key.of(plan.kind, r[0]), json.loads(r[1])) for r in rows]

        if plan.limit is not None and len(documents) >= plan.limit:
            more = MoreResults.MORE_RESULTS_AFTER_LIMIT
        else:
            more = MoreResults.NO_MORE_RESULTS
        return QueryResult(documents, more)

    async def save(self, key: Key, data: dict[str, Any]) -> MutationResult:
        data_json = json.dumps(data)
        async with self._write_lock:
            conn = self._connection()
            with _storage_errors("save"):
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    if not key.is_complete:
                        key = Key.of(key.kind, await self._allocate_id(key.kind))
                    await self._upsert(key, data_json)
                    await conn.execute("COMMIT")
                except BaseException:
                    await conn.execute("ROLLBACK")
                    raise
        return MutationResult(key)

    async def delete(self, key: Key) -> MutationResult:
        async with self._write_lock:
            conn = self._connection()
            with _storage_errors("delete"):
                await conn.execute(
                    "DELETE FROM documents WHERE kind = ? AND id = ?",
                    (key.kind, key.id),
                )
        return MutationResult(key)

    def transaction(self) -> SqliteTransaction:
        return SqliteTransaction(self)


# --- Binding ---


@dataclass(frozen=True)
class StorageTarget:
    """Resolved storage target from a storage URI."""

    backend: str
    uri: str
    db_path: str | None = None


def parse_storage_target(storage_uri: str) -> StorageTarget:
    """Resolve a storage URI to its backend target.

    ``sqlite:///abs/path`` and ``sqlite:rel/path`` name database files,
    ``sqlite:///:memory:`` an in-memory database.
    """
    parsed = urlparse(storage_uri)

    if parsed.scheme == "sqlite":
        sqlite_path = parsed.path
        if parsed.netloc:
            sqlite_path = f"{parsed.netloc}{sqlite_path}"
        elif sqlite_path.startswith("//"):
            # sqlite:////abs/path -> /abs/path
            sqlite_path = sqlite_path[1:]
        if sqlite_path == "/:memory:":
            sqlite_path = ":memory:"
        if not sqlite_path:
            raise StorageBackendError("parse_storage_uri", f"Invalid sqlite URI: {storage_uri}")
        return StorageTarget(backend="sqlite", uri=storage_uri, db_path=sqlite_path)

    raise StorageBackendError(
        "parse_storage_uri",
        f"Unsupported storage URI scheme '{parsed.scheme}' for '{storage_uri}'",
    )


async def open_store(
    storage_uri: str | None = None,
    *,
    config: LinkshelfConfig | None = None,
) -> DocumentStore:
    """Open the document store designated by ``storage_uri`` (or the config's)."""
    cfg = config or LinkshelfConfig()
    target = parse_storage_target(storage_uri or cfg.storage_uri)
    if target.backend == "sqlite":
        assert target.db_path is not None
        return await SqliteDocumentStore.open(target.db_path, busy_timeout_ms=cfg.busy_timeout_ms)
    raise StorageBackendError("open_store", f"Unsupported backend '{target.backend}'")


__all__ = [
    "Document",
    "DocumentStore",
    "Key",
    "MoreResults",
    "MutationResult",
    "PathElement",
    "QueryResult",
    "SqliteDocumentStore",
    "SqliteTransaction",
    "StorageTarget",
    "Transaction",
    "open_store",
    "parse_storage_target",
]
