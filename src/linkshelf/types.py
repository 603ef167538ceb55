"""Entity and Field types for linkshelf."""

from __future__ import annotations

import re
import sys
from typing import Any, ClassVar, Generic, Optional, TypeVar, get_args

from pydantic import BaseModel, create_model

from linkshelf.errors import server_error

T = TypeVar("T")

_SENTINEL = object()
_CAMEL_RE = re.compile(r"_([a-z0-9])")


class _Absent:
    """Marker for a field that was never supplied."""

    _instance: ClassVar[_Absent | None] = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Any = _Absent()


def camel_case(name: str) -> str:
    """Convert a snake_case attribute name to its camelCase wire name."""
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


class Field(Generic[T]):
    """Field descriptor for Entity schemas.

    ``read_only`` fields can never be modified through a merge; ``alias`` is the
    name used in stored documents and query filters (camelCase by default).
    """

    def __init__(
        self,
        default: Any = _SENTINEL,
        *,
        default_factory: Any | None = None,
        read_only: bool = False,
        alias: str | None = None,
    ) -> None:
        self.default = default
        self.default_factory = default_factory
        self.read_only = read_only
        self.alias = alias
        self.name: str = ""
        self.annotation: Any = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        if self.alias is None:
            self.alias = camel_case(name)

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return obj.__dict__.get(self.name, ABSENT)

    def __set__(self, obj: Any, value: Any) -> None:
        obj.__dict__[self.name] = value

    def __delete__(self, obj: Any) -> None:
        obj.__dict__.pop(self.name, None)

    def get_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is not _SENTINEL:
            return self.default
        return None

    def __repr__(self) -> str:
        flags = ", read_only=True" if self.read_only else ""
        return f"Field({self.name!r}, alias={self.alias!r}{flags})"


def _resolve_annotation(ann: Any, module_name: str) -> Any:
    """Resolve string annotations and extract the inner type from Field[T]."""
    if isinstance(ann, str):
        module = sys.modules.get(module_name, None)
        ns = vars(module) if module else {}
        try:
            ann = eval(ann, ns)  # noqa: S307
        except Exception:
            return Any

    origin = getattr(ann, "__origin__", None)
    if origin is Field:
        args = get_args(ann)
        return args[0] if args else Any
    return ann


def _collect_fields(cls: type) -> dict[str, Field[Any]]:
    """Collect Field descriptors from the annotations of cls and its Entity bases."""
    fields: dict[str, Field[Any]] = {}

    for klass in reversed(cls.__mro__):
        if not (isinstance(klass, type) and issubclass(klass, Entity)):
            continue
        annotations = klass.__dict__.get("__annotations__", {})
        for name, ann in annotations.items():
            origin = getattr(ann, "__origin__", None)
            is_field_ann = origin is Field
            if isinstance(ann, str) and ann.startswith("Field"):
                is_field_ann = True
            if not is_field_ann:
                continue

            val = klass.__dict__.get(name, _SENTINEL)
            field_desc: Field[Any]
            if isinstance(val, Field):
                field_desc = val
            elif val is _SENTINEL:
                field_desc = Field()
            else:
                field_desc = Field(default=val)

            if not field_desc.name:
                field_desc.__set_name__(klass, name)
            field_desc.annotation = _resolve_annotation(ann, klass.__module__)
            fields[name] = field_desc

            if not isinstance(klass.__dict__.get(name), Field):
                setattr(klass, name, field_desc)

    return fields


def _build_pydantic_model(model_name: str, fields: dict[str, Field[Any]]) -> type[BaseModel]:
    """Build a Pydantic model accepting any subset of the fields."""
    pydantic_fields: dict[str, Any] = {}
    for name, f in fields.items():
        ann = f.annotation if f.annotation is not None else Any
        pydantic_fields[name] = (Optional[ann], None)
    return create_model(model_name, **pydantic_fields)  # type: ignore[call-overload]


class Entity:
    """Base class for stored records.

    Instances only carry the fields they were given; unset fields read as
    ``ABSENT``. Use ``zero()`` for a record with every declared default.
    """

    __kind__: ClassVar[str]
    __entity_fields__: ClassVar[tuple[str, ...]]
    __read_only_fields__: ClassVar[frozenset[str]]
    _field_definitions: ClassVar[dict[str, Field[Any]]]
    _aliases: ClassVar[dict[str, str]]
    _pydantic_model: ClassVar[type[BaseModel]]

    id: Field[int] = Field(read_only=True)
    created: Field[str] = Field(read_only=True)
    updated: Field[str] = Field(read_only=True)
    owner_id: Field[int] = Field(read_only=True)

    def __init_subclass__(cls, kind: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)

        cls.__kind__ = kind or cls.__name__

        fields = _collect_fields(cls)
        cls._field_definitions = fields
        cls.__entity_fields__ = tuple(fields.keys())
        cls.__read_only_fields__ = frozenset(n for n, f in fields.items() if f.read_only)
        cls._aliases = {f.alias or n: n for n, f in fields.items()}

        aliases = [f.alias for f in fields.values()]
        if len(set(aliases)) != len(aliases):
            raise TypeError(f"Entity '{cls.__kind__}' has duplicate field aliases: {aliases}")

        cls._pydantic_model = _build_pydantic_model(f"_{cls.__kind__}Model", fields)

    def __init__(self, **data: Any) -> None:
        validated = self._pydantic_model(**data)
        for name in validated.model_fields_set:
            setattr(self, name, getattr(validated, name))

    @classmethod
    def zero(cls: type[E]) -> E:
        """Zero-value factory: a record with every field at its default."""
        if cls is Entity:
            raise server_error("Entity.zero() must be overridden by a concrete entity kind")
        instance = cls()
        for name, f in cls._field_definitions.items():
            setattr(instance, name, f.get_default())
        return instance

    @classmethod
    def is_read_only(cls, name: str) -> bool:
        return name in cls.__read_only_fields__

    @classmethod
    def field_name(cls, key: str) -> str | None:
        """Resolve a wire alias or attribute name to the attribute name."""
        if key in cls._field_definitions:
            return key
        return cls._aliases.get(key)

    @classmethod
    def from_document(cls: type[E], data: dict[str, Any], **overrides: Any) -> E:
        """Build an instance from a document keyed by aliases or attribute names."""
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = cls.field_name(key)
            if name is not None:
                values[name] = value
        values.update(overrides)
        return cls(**values)

    def model_dump(
        self, *, by_alias: bool = False, exclude: tuple[str, ...] = ()
    ) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name, f in self._field_definitions.items():
            if name in exclude:
                continue
            value = getattr(self, name)
            if value is ABSENT:
                continue
            out[(f.alias or name) if by_alias else name] = value
        return out

    def to_document(self) -> dict[str, Any]:
        """Document representation stored under the entity's key (never holds ``id``)."""
        return self.model_dump(by_alias=True, exclude=("id",))

    def merge(self, candidate: Any) -> bool:
        from linkshelf.merge import merge

        return merge(self, candidate)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.model_dump().items())
        return f"{self.__class__.__name__}({fields})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self.model_dump() == other.model_dump()


E = TypeVar("E", bound=Entity)
