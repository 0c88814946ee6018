"""Scripted DynamoDB client for unit tests.

Requests are matched against partial expectations: only the paths an
expectation spells out are compared, and ``ANY`` accepts a whole subtree::

    client = FakeDynamoDBClient()
    client.expect("get_item", {"Key": {"pk": {"S": "A"}}}, response={"Item": {...}})
    client.expect("put_item", status=500)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple
from unittest.mock import ANY

from boto3.dynamodb.types import TypeDeserializer

from .entity import from_dynamodb_value

OPERATIONS = frozenset(
    {
        "get_item",
        "put_item",
        "update_item",
        "delete_item",
        "query",
        "create_table",
        "delete_table",
        "describe_table",
        "list_tables",
    }
)

_LENGTH = "<len>"


class RecordedCall(NamedTuple):
    operation: str
    request: dict[str, Any]


@dataclass(frozen=True)
class ScriptedCall:
    operation: str
    request: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None
    status: int = 200


def _expected_leaves(value: Any, path: tuple[Any, ...] = ()) -> Iterator[tuple[tuple[Any, ...], Any]]:
    if isinstance(value, Mapping):
        for key, sub in value.items():
            yield from _expected_leaves(sub, (*path, key))
    elif isinstance(value, list):
        yield (*path, _LENGTH), len(value)
        for i, sub in enumerate(value):
            yield from _expected_leaves(sub, (*path, i))
    else:
        yield path, value


def _render(operation: str, path: tuple[Any, ...]) -> str:
    out = operation
    for part in path:
        out += f"[{part}]" if isinstance(part, int) else f".{part}"
    return out


def _check_request(operation: str, expected: Mapping[str, Any], actual: Mapping[str, Any]) -> None:
    for path, want in _expected_leaves(expected):
        node: Any = actual
        for depth, part in enumerate(path):
            if part == _LENGTH:
                node = len(node) if isinstance(node, list) else None
                break
            if isinstance(part, int):
                if not isinstance(node, list) or part >= len(node):
                    raise AssertionError(f"{_render(operation, path[:depth])}: no item {part}")
            elif not isinstance(node, Mapping) or part not in node:
                raise AssertionError(f"{_render(operation, path[:depth])}: missing key {part!r}")
            node = node[part]
        if want != node:
            raise AssertionError(f"{_render(operation, path)}: expected {want!r}, got {node!r}")


class FakeDynamoDBClient:
    """Stand-in for a low-level boto3 DynamoDB client.

    Calls must arrive in the order they were scripted with :meth:`expect`.
    Every response carries ``ResponseMetadata.HTTPStatusCode`` (``status``,
    200 unless scripted) unless the scripted response sets its own metadata.
    """

    def __init__(self) -> None:
        self._script: list[ScriptedCall] = []
        self.calls: list[RecordedCall] = []
        self._deserializer = TypeDeserializer()

    def expect(
        self,
        operation: str,
        request: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
        status: int = 200,
    ) -> None:
        if operation not in OPERATIONS:
            raise ValueError(f"unsupported operation: {operation}")
        self._script.append(ScriptedCall(operation, request, response, error, status))

    def assert_no_pending(self) -> None:
        if self._script:
            pending = ", ".join(call.operation for call in self._script)
            raise AssertionError(f"pending expected calls: {pending}")

    def requests(self, operation: str) -> list[dict[str, Any]]:
        return [call.request for call in self.calls if call.operation == operation]

    def item(self, index: int = 0, *, operation: str = "put_item", field: str = "Item") -> dict[str, Any]:
        """Plain-Python view of a marshalled map from a recorded request."""
        raw = self.requests(operation)[index][field]
        return {k: from_dynamodb_value(self._deserializer.deserialize(v)) for k, v in raw.items()}

    def __getattr__(self, name: str) -> Callable[..., Mapping[str, Any]]:
        if name not in OPERATIONS:
            raise AttributeError(name)

        def call(**kwargs: Any) -> Mapping[str, Any]:
            return self._dispatch(name, kwargs)

        return call

    def _dispatch(self, operation: str, request: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append(RecordedCall(operation, dict(request)))
        if not self._script:
            raise AssertionError(f"unexpected call: {operation}")

        scripted = self._script.pop(0)
        if scripted.operation != operation:
            raise AssertionError(f"expected {scripted.operation}, got {operation}")

        if callable(scripted.request):
            scripted.request(request)
        elif scripted.request is not None:
            _check_request(operation, scripted.request, request)

        if scripted.error is not None:
            raise scripted.error

        out = dict(scripted.response or {})
        out.setdefault("ResponseMetadata", {"HTTPStatusCode": scripted.status})
        return out


__all__ = ["ANY", "OPERATIONS", "FakeDynamoDBClient", "RecordedCall", "ScriptedCall"]
