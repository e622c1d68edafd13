from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class SchemaPlanError(ValueError):
    pass


class PermissionAction(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    WRITE = "write"


class AttributeKind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    DATETIME = "datetime"
    BOOLEAN = "boolean"


class IndexKind(str, Enum):
    KEY = "key"
    FULLTEXT = "fulltext"
    UNIQUE = "unique"


class IndexOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Compression(str, Enum):
    NONE = "none"
    GZIP = "gzip"
    ZSTD = "zstd"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Permission(_FrozenModel):
    """One role/action grant, e.g. ``read("any")`` or ``create("label:admin")``."""

    action: PermissionAction
    role: str = Field(..., min_length=1, pattern=r'^[^"]+$')

    def to_appwrite(self) -> str:
        return f'{self.action.value}("{self.role}")'


class AttributeDefinition(_FrozenModel):
    name: str = Field(..., min_length=1)
    kind: AttributeKind
    size: Optional[int] = Field(default=None, gt=0)
    required: bool = False
    default: Optional[Union[bool, int, str]] = None
    min: Optional[int] = None
    max: Optional[int] = None
    array: bool = False

    @model_validator(mode="after")
    def _check_constraints(self) -> "AttributeDefinition":
        if self.required and self.default is not None:
            raise ValueError(f"Attribute {self.name!r} is required and cannot carry a default")

        if self.kind is AttributeKind.STRING:
            if self.size is None:
                raise ValueError(f"String attribute {self.name!r} needs a size")
        elif self.size is not None:
            raise ValueError(f"Only string attributes take a size (attribute {self.name!r})")

        if self.kind is not AttributeKind.INTEGER and (self.min is not None or self.max is not None):
            raise ValueError(f"Only integer attributes take min/max (attribute {self.name!r})")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"Attribute {self.name!r} has min greater than max")

        if self.default is not None and not self._default_matches_kind():
            raise ValueError(f"Default for attribute {self.name!r} does not match kind {self.kind.value}")
        return self

    def _default_matches_kind(self) -> bool:
        value = self.default
        if self.kind is AttributeKind.BOOLEAN:
            return isinstance(value, bool)
        if self.kind is AttributeKind.INTEGER:
            return isinstance(value, int) and not isinstance(value, bool)
        if not isinstance(value, str):
            return False
        if self.kind is AttributeKind.DATETIME:
            # fromisoformat only accepts a trailing "Z" from Python 3.11 on
            try:
                datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return False
        return True


class IndexDefinition(_FrozenModel):
    key: str = Field(..., min_length=1)
    kind: IndexKind
    attribute_names: tuple[str, ...] = Field(..., min_length=1)
    orders: Optional[tuple[IndexOrder, ...]] = None

    @model_validator(mode="after")
    def _check_orders(self) -> "IndexDefinition":
        if self.orders is not None and len(self.orders) != len(self.attribute_names):
            raise ValueError(f"Index {self.key!r} orders must match its attribute names one to one")
        return self


def _check_attributes_and_indexes(
    owner: str,
    attributes: tuple[AttributeDefinition, ...],
    indexes: tuple[IndexDefinition, ...],
    known_names: set[str],
) -> None:
    seen: set[str] = set()
    for attribute in attributes:
        if attribute.name in seen:
            raise ValueError(f"Duplicate attribute {attribute.name!r} in {owner}")
        seen.add(attribute.name)

    keys: set[str] = set()
    for index in indexes:
        if index.key in keys:
            raise ValueError(f"Duplicate index {index.key!r} in {owner}")
        keys.add(index.key)
        missing = [n for n in index.attribute_names if n not in seen and n not in known_names]
        if missing:
            raise ValueError(f"Index {index.key!r} in {owner} references undeclared attributes: {missing}")


class CollectionDefinition(_FrozenModel):
    id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    permissions: tuple[Permission, ...] = ()
    document_security: bool = False
    enabled: bool = True
    attributes: tuple[AttributeDefinition, ...] = ()
    indexes: tuple[IndexDefinition, ...] = ()

    @model_validator(mode="after")
    def _check_references(self) -> "CollectionDefinition":
        _check_attributes_and_indexes(f"collection {self.id!r}", self.attributes, self.indexes, set())
        return self


class AttributeAddition(_FrozenModel):
    """Attributes (and optional dependent indexes) added to a collection that already exists."""

    collection_id: str = Field(..., min_length=1)
    attributes: tuple[AttributeDefinition, ...] = Field(..., min_length=1)
    indexes: tuple[IndexDefinition, ...] = ()
    existing_attribute_names: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_references(self) -> "AttributeAddition":
        _check_attributes_and_indexes(
            f"addition to {self.collection_id!r}",
            self.attributes,
            self.indexes,
            set(self.existing_attribute_names),
        )
        return self


class BucketDefinition(_FrozenModel):
    id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    permissions: tuple[Permission, ...] = ()
    file_security: bool = False
    enabled: bool = True
    max_file_size: int = Field(..., gt=0)
    allowed_extensions: tuple[str, ...] = ()
    compression: Compression = Compression.NONE
    encryption: bool = True
    antivirus: bool = True


class SchemaPlan(_FrozenModel):
    collections: tuple[CollectionDefinition, ...] = ()
    attribute_additions: tuple[AttributeAddition, ...] = ()
    bucket: Optional[BucketDefinition] = None

    @model_validator(mode="after")
    def _check_unique_collections(self) -> "SchemaPlan":
        ids = [c.id for c in self.collections]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate collection ids in plan: {duplicates}")
        return self

    @staticmethod
    def from_json_file(path: Path) -> "SchemaPlan":
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SchemaPlanError(f"Cannot read schema plan file: {path}") from exc

        try:
            return SchemaPlan.model_validate_json(raw)
        except ValidationError as exc:
            raise SchemaPlanError(f"Invalid schema plan file {path}:\n{exc}") from exc
