from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import TypedDict

import pytest
from boto3.dynamodb.types import Binary
from pydantic import BaseModel, field_validator

from servicedb_py import Entity, ValidationError
from servicedb_py.entity import from_dynamodb_value, to_dynamodb_value


class Status(Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class User(BaseModel):
    pk: str
    sk: str
    age: int | None = None
    score: float | None = None
    status: Status = Status.ACTIVE
    created_at: datetime | None = None

    @field_validator("pk")
    @classmethod
    def _pk_prefix(cls, value: str) -> str:
        if not value.startswith("USER#") or value == "USER#":
            raise ValueError("pk must look like USER#<id>")
        return value


class BookDict(TypedDict):
    pk: str
    title: str


@dataclass
class Note:
    pk: str
    body: str


def test_entity_parses_model_and_coerces_dynamodb_numbers() -> None:
    entity = Entity(User)

    user = entity.parse({"pk": "USER#1", "sk": " ", "age": Decimal("42"), "score": Decimal("1.5")})

    assert user == User(pk="USER#1", sk=" ", age=42, score=1.5)
    assert entity.name == "User"


def test_entity_parse_raises_validation_error_with_details() -> None:
    entity = Entity(User)

    with pytest.raises(ValidationError, match="failed to parse User") as exc:
        entity.parse({"pk": "ACCOUNT#1", "sk": " "})

    assert exc.value.errors
    assert exc.value.errors[0]["loc"] == ("pk",)


def test_entity_parse_many_validates_the_whole_list() -> None:
    entity = Entity(BookDict)

    books = entity.parse_many([{"pk": "B#1", "title": "a"}, {"pk": "B#2", "title": "b"}])
    assert books == [{"pk": "B#1", "title": "a"}, {"pk": "B#2", "title": "b"}]

    with pytest.raises(ValidationError, match="BookDict list") as exc:
        entity.parse_many([{"pk": "B#1", "title": "a"}, {"pk": "B#2"}])
    assert exc.value.errors[0]["loc"][0] == 1


def test_entity_supports_dataclasses() -> None:
    entity = Entity(Note)

    assert entity.parse({"pk": "N#1", "body": "hello"}) == Note(pk="N#1", body="hello")
    assert entity.dump(Note(pk="N#1", body="hello")) == {"pk": "N#1", "body": "hello"}


def test_entity_dump_produces_dynamodb_safe_values() -> None:
    entity = Entity(User)
    created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)

    out = entity.dump(
        {"pk": "USER#1", "sk": " ", "score": 0.1, "status": "closed", "created_at": created}
    )

    assert out == {
        "pk": "USER#1",
        "sk": " ",
        "score": Decimal("0.1"),
        "status": "closed",
        "created_at": created.isoformat(),
    }


class Profile(BaseModel):
    pk: str
    nickname: str | None
    bio: str | None = None


@dataclass
class Draft:
    pk: str
    body: str | None
    tag: str | None = None


class TagDict(TypedDict):
    pk: str
    label: str | None


def test_entity_dump_keeps_required_none_and_drops_defaulted_none() -> None:
    entity = Entity(Profile)

    out = entity.dump(Profile(pk="p", nickname=None))

    assert out == {"pk": "p", "nickname": None}
    assert entity.parse(out) == Profile(pk="p", nickname=None)


def test_entity_dump_required_none_for_dataclasses_and_typeddicts() -> None:
    assert Entity(Draft).dump(Draft(pk="d", body=None)) == {"pk": "d", "body": None}
    assert Entity(TagDict).dump({"pk": "t", "label": None}) == {"pk": "t", "label": None}


class Inner(BaseModel):
    city: str
    zip: str | None = None


class Outer(BaseModel):
    pk: str
    inner: Inner


def test_entity_dump_keeps_nested_none() -> None:
    assert Entity(Outer).dump({"pk": "o", "inner": {"city": "Oslo"}}) == {
        "pk": "o",
        "inner": {"city": "Oslo", "zip": None},
    }


def test_entity_dump_validates_before_converting() -> None:
    with pytest.raises(ValidationError):
        Entity(User).dump({"pk": "nope", "sk": " "})


def test_entity_of_reuses_existing_entity() -> None:
    entity = Entity(User)

    assert Entity.of(entity) is entity
    assert Entity.of(User).schema is User
    assert repr(entity) == "Entity(User)"


def test_value_conversion_helpers() -> None:
    assert to_dynamodb_value({"a": [1.25, (2.5,)], "b": {0.5}, "c": True}) == {
        "a": [Decimal("1.25"), [Decimal("2.5")]],
        "b": {Decimal("0.5")},
        "c": True,
    }
    assert from_dynamodb_value({"raw": Binary(b"\x01"), "nested": [Binary(b"\x02")]}) == {
        "raw": b"\x01",
        "nested": [b"\x02"],
    }
