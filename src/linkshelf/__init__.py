"""linkshelf: persistence core of a bookmark and category manager."""

__version__ = "0.1.0"

from linkshelf.backend import Backend
from linkshelf.config import LinkshelfConfig
from linkshelf.dao import GenericDao, ResultSet
from linkshelf.errors import ErrorKind, LinkshelfError, StorageBackendError, status_code
from linkshelf.merge import merge
from linkshelf.models import Category, Link, User
from linkshelf.query import QueryOptions, QueryPlan, translate
from linkshelf.services import BaseService, CategoryService, LinkService, UserService
from linkshelf.storage import DocumentStore, SqliteDocumentStore, open_store
from linkshelf.types import ABSENT, Entity, Field

__all__ = [
    "__version__",
    "ABSENT",
    "Entity",
    "Field",
    "Category",
    "Link",
    "User",
    "merge",
    "QueryOptions",
    "QueryPlan",
    "translate",
    "GenericDao",
    "ResultSet",
    "BaseService",
    "CategoryService",
    "LinkService",
    "UserService",
    "Backend",
    "DocumentStore",
    "SqliteDocumentStore",
    "open_store",
    "LinkshelfConfig",
    "ErrorKind",
    "LinkshelfError",
    "StorageBackendError",
    "status_code",
]
