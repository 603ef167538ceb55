"""Generic data access over a DocumentStore, shared by every entity kind."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Generic

import pydantic

from linkshelf.errors import client_error, server_error
from linkshelf.merge import merge
from linkshelf.query import QueryOptions, parse_id, translate
from linkshelf.storage import Document, DocumentStore, Key, MoreResults
from linkshelf.types import ABSENT, E, Entity

logger = logging.getLogger(__name__)


def _format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timestamp(after: str | None = None) -> str:
    """Current UTC time as ISO-8601 with milliseconds, strictly later than ``after``."""
    now = datetime.now(timezone.utc)
    now = now.replace(microsecond=now.microsecond // 1000 * 1000)
    previous = _parse_timestamp(after) if after else None
    if previous is not None and now <= previous:
        now = previous + timedelta(milliseconds=1)
    return _format_timestamp(now)


class ResultSet(list, Generic[E]):  # type: ignore[type-arg]
    """Materialized query results.

    ``total_count`` is only known when the store reported that nothing follows
    the returned page; it is ``None`` otherwise.
    """

    def __init__(self, items: Any = (), total_count: int | None = None) -> None:
        super().__init__(items)
        self.total_count = total_count

    def content_range(self, options: QueryOptions | None = None) -> str:
        """Value of the ``Content-Range`` response header for this page."""
        start = (options.range_start if options else None) or 0
        total = "*" if self.total_count is None else str(self.total_count)
        return f"items {start}-{start + len(self) - 1}/{total}"


class GenericDao(Generic[E]):
    """get/query/create/update/delete for one entity kind.

    Updates are optimistic: the caller's ``updated`` value must match the
    stored one, checked and written inside a single store transaction.
    """

    def __init__(self, model: type[E], store: DocumentStore) -> None:
        self.model = model
        self.store = store

    @property
    def kind(self) -> str:
        return self.model.__kind__

    def key(self, id: int | None = None) -> Key:
        return self.store.key(self.kind, None if id is None else parse_id(self.kind, id))

    def _materialize(self, document: Document, *, keys_only: bool = False) -> E:
        entity_id = document.key.id
        if keys_only:
            return self.model(id=entity_id)
        instance = self.model.zero()
        loaded = self.model.from_document(document.data, id=entity_id)
        for name, value in loaded.model_dump().items():
            setattr(instance, name, value)
        return instance

    def to_entity(self, candidate: E | Mapping[str, Any]) -> E:
        if isinstance(candidate, self.model):
            return copy.copy(candidate)
        if isinstance(candidate, Entity):
            raise client_error(
                f"Expected a {self.kind} candidate, got {type(candidate).__kind__}"
            )
        if not isinstance(candidate, Mapping):
            raise client_error(f"Invalid {self.kind} payload of type {type(candidate).__name__}")
        try:
            return self.model.from_document(candidate)
        except pydantic.ValidationError as e:
            raise client_error(f"Invalid {self.kind} payload: {e}") from e

    def _created_id(self, key: Key | None) -> int:
        if key is None:
            raise server_error(f"Entity {self.kind} just created has no key...")
        element = key.path[-1]
        if element.id_type != "id" or element.id is None:
            raise server_error(
                f"Entity {self.kind} just created is not identified with 'id', "
                f"with '{element.id_type}' instead..."
            )
        if element.kind != self.kind:
            raise server_error(
                f"Entity {self.kind} just created is identified with a path element "
                f"of the '{element.kind}' kind..."
            )
        return int(element.id)

    # --- Operations ---

    async def get(self, id: int) -> E | None:
        document = await self.store.get(self.key(id))
        if document is None:
            logger.debug("%s %s not found", self.kind, id)
            return None
        return self._materialize(document)

    async def query(
        self,
        filters: Mapping[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> ResultSet[E]:
        options = options or QueryOptions()
        plan = translate(self.kind, filters, options)
        result = await self.store.run_query(plan)
        entities: ResultSet[E] = ResultSet(
            self._materialize(d, keys_only=plan.keys_only) for d in result.documents
        )
        if result.more_results is MoreResults.NO_MORE_RESULTS:
            entities.total_count = (options.range_start or 0) + len(entities)
        logger.debug(
            "Query %s %s returned %d entities (total=%s)",
            self.kind,
            dict(filters or {}),
            len(entities),
            entities.total_count,
        )
        return entities

    async def create(self, candidate: E | Mapping[str, Any]) -> int:
        entity = self.to_entity(candidate)
        del entity.id  # generated by the store
        entity.created = timestamp()
        entity.updated = entity.created

        result = await self.store.save(self.key(), entity.to_document())
        if result.conflict_detected:
            logger.warning("Conflict while creating %s", self.kind)
            raise server_error(f"Entity {self.kind} not created, conflict detected...")
        new_id = self._created_id(result.key)
        logger.debug("Created %s %d", self.kind, new_id)
        return new_id

    async def update(self, id: int, candidate: E | Mapping[str, Any]) -> int:
        entity = self.to_entity(candidate)
        token = entity.updated
        if token is ABSENT or not token:
            raise client_error(
                f"`updated` attribute for entity {self.kind} of key {id} is required "
                "to avoid changes overrides!"
            )

        key = self.key(id)
        async with self.store.transaction() as txn:
            document = await txn.get(key)
            current = self._materialize(document) if document is not None else None
            if current is None or current.updated != token:
                logger.info("Stale update rejected for %s %s", self.kind, id)
                raise client_error(
                    f"'updated' attributes for entity {self.kind} of key {id} "
                    "does not match with the one on the server!"
                )
            if not merge(current, entity):
                raise client_error(f"No attribute to update for entity {self.kind} of key {id}")

            current.updated = timestamp(after=token)
            txn.save(key, current.to_document())
            result = await txn.commit()
            if result.conflict_detected:
                logger.warning("Commit conflict while updating %s %s", self.kind, id)
                raise server_error(
                    f"Entity {self.kind} of key {id} not updated, conflict detected..."
                )

        logger.debug("Updated %s %s at %s", self.kind, id, current.updated)
        return id

    async def delete(self, id: int) -> None:
        result = await self.store.delete(self.key(id))
        if result.conflict_detected:
            logger.warning("Conflict while deleting %s %s", self.kind, id)
            raise server_error(f"Entity {self.kind} of key {id} not deleted, conflict detected...")
        logger.debug("Deleted %s %s", self.kind, id)
