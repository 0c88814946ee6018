from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import ValidationError

_TOKEN_FRAGMENT = re.compile(r"^[A-Za-z0-9_]+$")


@dataclass(frozen=True)
class UpdateParams:
    """Arguments for an ``update_item`` call built from a flat or dotted-key body.

    Values are left as plain Python values; the service marshals them when the
    request is sent.
    """

    update_expression: str
    expression_attribute_names: Mapping[str, str] = field(default_factory=dict)
    expression_attribute_values: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.expression_attribute_values

    def as_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"UpdateExpression": self.update_expression}
        if self.expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(self.expression_attribute_names)
        if self.expression_attribute_values:
            req["ExpressionAttributeValues"] = dict(self.expression_attribute_values)
        return req


def _split_path(key: str) -> list[str]:
    if not key:
        raise ValidationError("update key must be non-empty")

    fragments = key.split(".")
    for fragment in fragments:
        if not fragment:
            raise ValidationError(f"update key has an empty path segment: {key!r}")
        if not _TOKEN_FRAGMENT.match(fragment):
            raise ValidationError(f"update key segment cannot be used as a token: {fragment!r}")
    return fragments


def build_update_params(body: Mapping[str, Any]) -> UpdateParams:
    """Build ``SET`` update parameters for ``body``.

    Simple keys assign top-level attributes and are skipped when the value is
    ``None``. Dotted keys (``"address.city"``) assign a nested attribute and are
    always written::

        >>> build_update_params({"pk": "x", "meta.owner": "alice"}).update_expression
        'SET #pk = :pk, #meta.#owner = :owner'

    The value placeholder is named after the last path segment, so two keys
    ending in the same segment raise ``ValidationError``.
    """
    clauses: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    placeholder_owner: dict[str, str] = {}

    for key, value in body.items():
        fragments = _split_path(str(key))
        if len(fragments) == 1 and value is None:
            continue

        placeholder = f":{fragments[-1]}"
        owner = placeholder_owner.get(placeholder)
        if owner is not None:
            raise ValidationError(f"update keys {owner!r} and {key!r} share value placeholder {placeholder}")
        placeholder_owner[placeholder] = str(key)

        for fragment in fragments:
            names[f"#{fragment}"] = fragment
        clauses.append(".".join(f"#{fragment}" for fragment in fragments) + f" = {placeholder}")
        values[placeholder] = value

    expression = "SET " + ", ".join(clauses) if clauses else "SET"
    return UpdateParams(
        update_expression=expression,
        expression_attribute_names=names,
        expression_attribute_values=values,
    )
