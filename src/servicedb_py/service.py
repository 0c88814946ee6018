from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from .aws_errors import check_response
from .aws_errors import map_client_error as _map_client_error
from .config import ServiceOptions
from .entity import Entity, from_dynamodb_value, to_dynamodb_value
from .errors import ValidationError
from .runtime import create_dynamodb_client
from .update_params import UpdateParams, build_update_params

logger = structlog.get_logger(__name__)

_MARSHALLED_MAPS = ("Key", "Item", "ExclusiveStartKey")


class DataOperations[T](Protocol):
    """Generic operations a service exposes.

    Domain logic can accept any object with these methods instead of
    subclassing :class:`BaseService`.
    """

    def get(self, key: Mapping[str, Any], *, consistent_read: bool = False) -> T | None: ...

    def put(self, item: T | Mapping[str, Any]) -> T | None: ...

    def update(self, key: Mapping[str, Any], body: Mapping[str, Any]) -> T | None: ...

    def delete(self, key: Mapping[str, Any]) -> T | None: ...

    def query(self, key_condition_expression: str, **kwargs: Any) -> list[T]: ...


class BaseService[T]:
    """Validated access to one DynamoDB table.

    Public methods build requests from keyword arguments. The request-level
    ``_get``/``_put``/``_update``/``_delete``/``_query`` methods take a request
    dict using plain Python values (as boto3's resource API does) and are the
    extension point for subclasses that need bespoke requests.
    """

    def __init__(
        self,
        entity: Entity[T] | type[T],
        options: ServiceOptions,
        *,
        client: Any | None = None,
    ) -> None:
        self.entity: Entity[T] = Entity.of(entity)
        self.table = options.table
        self.client: Any = client or create_dynamodb_client(options.client)
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    @staticmethod
    def get_update_params(body: Mapping[str, Any]) -> UpdateParams:
        return build_update_params(body)

    def get(
        self,
        key: Mapping[str, Any],
        *,
        consistent_read: bool = False,
        projection_expression: str | None = None,
        expression_attribute_names: Mapping[str, str] | None = None,
    ) -> T | None:
        req: dict[str, Any] = {"Key": dict(key)}
        if consistent_read:
            req["ConsistentRead"] = True
        if projection_expression:
            req["ProjectionExpression"] = projection_expression
        if expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(expression_attribute_names)
        return self._get(req)

    def put(
        self,
        item: T | Mapping[str, Any],
        *,
        condition_expression: str | None = None,
        expression_attribute_names: Mapping[str, str] | None = None,
        expression_attribute_values: Mapping[str, Any] | None = None,
        return_values: str | None = None,
    ) -> T | None:
        req: dict[str, Any] = {"Item": self.entity.dump(item)}
        _apply_condition(req, condition_expression, expression_attribute_names, expression_attribute_values)
        if return_values is not None:
            req["ReturnValues"] = return_values
        return self._put(req)

    def update(
        self,
        key: Mapping[str, Any],
        body: Mapping[str, Any],
        *,
        condition_expression: str | None = None,
        expression_attribute_names: Mapping[str, str] | None = None,
        expression_attribute_values: Mapping[str, Any] | None = None,
        return_values: str | None = None,
    ) -> T | None:
        params = build_update_params(body)
        if params.is_empty:
            raise ValidationError("no updates provided")

        req: dict[str, Any] = {"Key": dict(key), **params.as_request()}
        if condition_expression:
            req["ConditionExpression"] = condition_expression
        _merge_tokens(req, "ExpressionAttributeNames", expression_attribute_names, "name")
        _merge_tokens(req, "ExpressionAttributeValues", expression_attribute_values, "value")
        if return_values is not None:
            req["ReturnValues"] = return_values
        return self._update(req)

    def delete(
        self,
        key: Mapping[str, Any],
        *,
        condition_expression: str | None = None,
        expression_attribute_names: Mapping[str, str] | None = None,
        expression_attribute_values: Mapping[str, Any] | None = None,
        return_values: str | None = None,
    ) -> T | None:
        req: dict[str, Any] = {"Key": dict(key)}
        _apply_condition(req, condition_expression, expression_attribute_names, expression_attribute_values)
        if return_values is not None:
            req["ReturnValues"] = return_values
        return self._delete(req)

    def query(
        self,
        key_condition_expression: str,
        *,
        expression_attribute_names: Mapping[str, str] | None = None,
        expression_attribute_values: Mapping[str, Any] | None = None,
        index_name: str | None = None,
        filter_expression: str | None = None,
        projection_expression: str | None = None,
        limit: int | None = None,
        scan_forward: bool = True,
        consistent_read: bool = False,
    ) -> list[T]:
        if not key_condition_expression:
            raise ValidationError("key_condition_expression is required")
        if limit is not None and limit <= 0:
            raise ValidationError("limit must be > 0")

        req: dict[str, Any] = {
            "KeyConditionExpression": key_condition_expression,
            "ScanIndexForward": scan_forward,
        }
        if expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(expression_attribute_names)
        if expression_attribute_values:
            req["ExpressionAttributeValues"] = dict(expression_attribute_values)
        if index_name is not None:
            req["IndexName"] = index_name
        if filter_expression:
            req["FilterExpression"] = filter_expression
        if projection_expression:
            req["ProjectionExpression"] = projection_expression
        if limit is not None:
            req["Limit"] = limit
        if consistent_read:
            req["ConsistentRead"] = True
        return self._query(req)

    def _get(self, request: Mapping[str, Any]) -> T | None:
        resp = self._send("get_item", request)
        item = resp.get("Item")
        if not item:
            return None
        return self.entity.parse(self._unmarshal(item))

    def _put(self, request: Mapping[str, Any]) -> T | None:
        resp = self._send("put_item", request)
        if request.get("ReturnValues") != "ALL_OLD":
            return self.entity.parse(request.get("Item"))

        old = resp.get("Attributes")
        if not old:
            return None
        return self.entity.parse(self._unmarshal(old))

    def _update(self, request: Mapping[str, Any]) -> T | None:
        req = dict(request)
        if not req.get("ReturnValues"):
            req["ReturnValues"] = "ALL_NEW"
        resp = self._send("update_item", req)
        return self._parse_attributes(resp)

    def _delete(self, request: Mapping[str, Any]) -> T | None:
        req = dict(request)
        if not req.get("ReturnValues"):
            req["ReturnValues"] = "ALL_OLD"
        resp = self._send("delete_item", req)
        return self._parse_attributes(resp)

    def _query(self, request: Mapping[str, Any]) -> list[T]:
        resp = self._send("query", request)
        items = [self._unmarshal(item) for item in resp.get("Items", [])]
        return self.entity.parse_many(items)

    def _parse_attributes(self, resp: Mapping[str, Any]) -> T | None:
        attrs = resp.get("Attributes")
        if not attrs:
            return None
        return self.entity.parse(self._unmarshal(attrs))

    def _send(self, operation: str, request: Mapping[str, Any]) -> Mapping[str, Any]:
        req = self._marshal_request(request)
        logger.debug("dynamodb_request", operation=operation, table=req["TableName"])
        try:
            resp = getattr(self.client, operation)(**req)
        except ClientError as err:
            mapped = _map_client_error(err)
            logger.warning(
                "dynamodb_client_error",
                operation=operation,
                table=req["TableName"],
                code=mapped.code,
            )
            raise mapped from err

        check_response(operation, resp)
        return resp

    def _marshal_request(self, request: Mapping[str, Any]) -> dict[str, Any]:
        req = dict(request)
        req.setdefault("TableName", self.table)
        for name in _MARSHALLED_MAPS:
            if req.get(name) is not None:
                req[name] = self._marshal(req[name])
        if req.get("ExpressionAttributeValues"):
            req["ExpressionAttributeValues"] = self._marshal(req["ExpressionAttributeValues"])
        return req

    def _marshal(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {k: self._serializer.serialize(to_dynamodb_value(v)) for k, v in values.items()}

    def _unmarshal(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return {k: from_dynamodb_value(self._deserializer.deserialize(v)) for k, v in item.items()}


def _apply_condition(
    req: dict[str, Any],
    condition_expression: str | None,
    expression_attribute_names: Mapping[str, str] | None,
    expression_attribute_values: Mapping[str, Any] | None,
) -> None:
    if condition_expression:
        req["ConditionExpression"] = condition_expression
    if expression_attribute_names:
        req["ExpressionAttributeNames"] = dict(expression_attribute_names)
    if expression_attribute_values:
        req["ExpressionAttributeValues"] = dict(expression_attribute_values)


def _merge_tokens(
    req: dict[str, Any],
    request_field: str,
    extra: Mapping[str, Any] | None,
    kind: str,
) -> None:
    if not extra:
        return
    merged = req.setdefault(request_field, {})
    for token, value in extra.items():
        if token in merged:
            raise ValidationError(f"expression attribute {kind} collision: {token}")
        merged[token] = value


@dataclass(frozen=True)
class ServiceBundle[T, S]:
    entity: Entity[T]
    service: S


def create_service[T, S: BaseService[Any]](
    entity: Entity[T] | type[T],
    options: ServiceOptions,
    service_cls: type[S] = BaseService,  # type: ignore[assignment]
    *,
    client: Any | None = None,
) -> ServiceBundle[T, S]:
    resolved = Entity.of(entity)
    return ServiceBundle(entity=resolved, service=service_cls(resolved, options, client=client))
