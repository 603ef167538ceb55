"""Wiring of one document store with the DAOs and services built on it."""

from __future__ import annotations

from typing import Any

from linkshelf.config import LinkshelfConfig
from linkshelf.dao import GenericDao
from linkshelf.errors import client_error
from linkshelf.models import Category, Link, User
from linkshelf.services import BaseService, CategoryService, LinkService, UserService
from linkshelf.storage import DocumentStore, open_store


class Backend:
    """Holds the process-wide store and exactly one DAO and service per entity kind."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.category_dao = GenericDao(Category, store)
        self.link_dao = GenericDao(Link, store)
        self.user_dao = GenericDao(User, store)

        self.links = LinkService(self.link_dao, self.category_dao)
        self.categories = CategoryService(self.category_dao, self.links)
        self.users = UserService(self.user_dao)

        self._services: dict[str, BaseService[Any]] = {
            service.kind: service for service in (self.categories, self.links, self.users)
        }

    @classmethod
    async def open(cls, config: LinkshelfConfig | None = None) -> Backend:
        cfg = config or LinkshelfConfig.from_env()
        return cls(await open_store(config=cfg))

    def service(self, kind: str) -> BaseService[Any]:
        try:
            return self._services[kind]
        except KeyError:
            raise client_error(
                f"Unknown entity kind '{kind}'. Valid kinds: {', '.join(sorted(self._services))}"
            ) from None

    def dao(self, kind: str) -> GenericDao[Any]:
        return self.service(kind).dao

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> Backend:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
