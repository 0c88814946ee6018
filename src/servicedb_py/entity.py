from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, cast

import pydantic
import structlog
from boto3.dynamodb.types import Binary
from pydantic import TypeAdapter

from .errors import ValidationError

logger = structlog.get_logger(__name__)


def to_dynamodb_value(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Enum):
        return to_dynamodb_value(value.value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return {to_dynamodb_value(v) for v in value}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(v) for v in value]
    return value


def from_dynamodb_value(value: Any) -> Any:
    if isinstance(value, Binary):
        return bytes(value.value)
    if isinstance(value, Mapping):
        return {k: from_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamodb_value(v) for v in value]
    if isinstance(value, set):
        return {from_dynamodb_value(v) for v in value}
    return value


class Entity[T]:
    """Runtime-checkable description of a record shape.

    ``schema`` is any type pydantic can validate: a ``BaseModel`` subclass, a
    dataclass or a ``TypedDict``. The same type doubles as the static type of
    the records a service returns.
    """

    def __init__(self, schema: type[T]) -> None:
        self.schema = schema
        self._adapter: TypeAdapter[T] = TypeAdapter(schema)
        self._list_adapter: TypeAdapter[list[T]] = TypeAdapter(list[schema])  # type: ignore[valid-type]
        self._required = _required_fields(schema)

    @classmethod
    def of(cls, schema: Entity[T] | type[T]) -> Entity[T]:
        if isinstance(schema, Entity):
            return schema
        return cls(schema)

    @property
    def name(self) -> str:
        return getattr(self.schema, "__name__", repr(self.schema))

    def parse(self, data: Any) -> T:
        try:
            return self._adapter.validate_python(data)
        except pydantic.ValidationError as err:
            logger.info("entity_validation_failed", entity=self.name, error_count=err.error_count())
            raise ValidationError(
                f"failed to parse {self.name}: {err}",
                errors=err.errors(include_url=False),
            ) from err

    def parse_many(self, items: Sequence[Any]) -> list[T]:
        try:
            return self._list_adapter.validate_python(list(items))
        except pydantic.ValidationError as err:
            logger.info("entity_validation_failed", entity=self.name, error_count=err.error_count())
            raise ValidationError(
                f"failed to parse {self.name} list: {err}",
                errors=err.errors(include_url=False),
            ) from err

    def dump(self, value: T | Mapping[str, Any]) -> dict[str, Any]:
        """Validate ``value`` and convert it to a storable record.

        ``None`` in a field with a default is left out of the record, so sparse
        index keys stay absent. ``None`` in a required field is kept and stored
        as NULL.
        """
        parsed = self.parse(value)
        raw = self._adapter.dump_python(parsed, mode="python")
        if not isinstance(raw, Mapping):
            raise ValidationError(f"{self.name} does not describe a record")
        required = self._required
        out = {k: v for k, v in raw.items() if v is not None or required is None or k in required}
        return cast(dict[str, Any], to_dynamodb_value(out))

    def __repr__(self) -> str:
        return f"Entity({self.name})"


def _required_fields(schema: Any) -> frozenset[str] | None:
    if isinstance(schema, type) and issubclass(schema, pydantic.BaseModel):
        return frozenset(name for name, info in schema.model_fields.items() if info.is_required())
    if dataclasses.is_dataclass(schema):
        return frozenset(
            f.name
            for f in dataclasses.fields(schema)
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        )
    required_keys = getattr(schema, "__required_keys__", None)
    if required_keys is not None:
        return frozenset(required_keys)
    return None
