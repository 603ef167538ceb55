"""Per-kind services layered over the generic DAO."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Generic

from linkshelf.dao import GenericDao, ResultSet
from linkshelf.errors import client_error, not_found
from linkshelf.models import Category, Link, User
from linkshelf.query import QueryOptions
from linkshelf.types import ABSENT, E

logger = logging.getLogger(__name__)


def _to_number(value: Any, field_name: str) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return float(value)
    except (TypeError, ValueError):
        raise client_error(f"Attribute '{field_name}' must be a number, got {value!r}") from None


def _to_id(value: Any, field_name: str) -> int:
    number = _to_number(value, field_name)
    if isinstance(number, float) and not number.is_integer():
        raise client_error(f"Attribute '{field_name}' must be an integer, got {value!r}")
    return int(number)


class BaseService(Generic[E]):
    """Delegates every operation to the DAO of its entity kind."""

    def __init__(self, dao: GenericDao[E]) -> None:
        self.dao = dao

    @property
    def kind(self) -> str:
        return self.dao.kind

    async def select(
        self,
        filters: Mapping[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> ResultSet[E]:
        return await self.dao.query(filters, options)

    async def get(self, id: int) -> E | None:
        return await self.dao.get(id)

    async def create(self, candidate: E | Mapping[str, Any], owner_id: int | None = None) -> int:
        entity = self.dao.to_entity(candidate)
        if owner_id is not None:
            entity.owner_id = owner_id
        return await self.dao.create(entity)

    async def update(self, id: int, candidate: E | Mapping[str, Any]) -> int:
        return await self.dao.update(id, candidate)

    async def delete(self, id: int) -> None:
        await self.dao.delete(id)


class LinkService(BaseService[Link]):
    """Links always belong to an existing category, which cannot be changed later."""

    def __init__(self, dao: GenericDao[Link], category_dao: GenericDao[Category]) -> None:
        super().__init__(dao)
        self.category_dao = category_dao

    async def select(
        self,
        filters: Mapping[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> ResultSet[Link]:
        if filters and filters.get("categoryId"):
            category_id = _to_id(filters["categoryId"], "categoryId")
            if await self.category_dao.get(category_id) is None:
                raise not_found(f"Category {category_id} not found")
        return await super().select(filters, options)

    async def create(self, candidate: Link | Mapping[str, Any], owner_id: int | None = None) -> int:
        entity = self.dao.to_entity(candidate)
        if entity.category_id is ABSENT or entity.category_id is None:
            raise client_error("Attribute 'categoryId' required!")
        entity.category_id = _to_id(entity.category_id, "categoryId")
        if await self.category_dao.get(entity.category_id) is None:
            raise not_found(f"Category {entity.category_id} not found")
        return await super().create(entity, owner_id)

    async def update(self, id: int, candidate: Link | Mapping[str, Any]) -> int:
        entity = self.dao.to_entity(candidate)
        del entity.category_id
        return await super().update(id, entity)


class CategoryService(BaseService[Category]):
    """Categories own links: deleting a category deletes its links first."""

    def __init__(self, dao: GenericDao[Category], link_service: LinkService) -> None:
        super().__init__(dao)
        self.link_service = link_service

    async def create(
        self, candidate: Category | Mapping[str, Any], owner_id: int | None = None
    ) -> int:
        entity = self.dao.to_entity(candidate)
        if entity.position_idx is ABSENT or entity.position_idx is None:
            entity.position_idx = 0
        else:
            entity.position_idx = _to_number(entity.position_idx, "positionIdx")
        return await super().create(entity, owner_id)

    async def update(self, id: int, candidate: Category | Mapping[str, Any]) -> int:
        entity = self.dao.to_entity(candidate)
        if entity.position_idx is not ABSENT and entity.position_idx is not None:
            entity.position_idx = _to_number(entity.position_idx, "positionIdx")
        return await super().update(id, entity)

    async def delete(self, id: int) -> None:
        # No transaction spans the children and the parent: a failure part way
        # leaves the category in place with some of its links already gone.
        children = await self.link_service.dao.query(
            {"categoryId": str(id)}, QueryOptions(id_only=True)
        )
        logger.debug("Deleting %d links of category %s", len(children), id)
        outcomes = await asyncio.gather(
            *(self.link_service.delete(child.id) for child in children),
            return_exceptions=True,
        )
        errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if errors:
            logger.warning(
                "%d of %d links of category %s not deleted", len(errors), len(children), id
            )
            raise errors[0]
        await super().delete(id)


class UserService(BaseService[User]):
    pass
