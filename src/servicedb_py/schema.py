from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import boto3
import structlog
from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .errors import TransportError

logger = structlog.get_logger(__name__)

BillingMode = str  # "PAY_PER_REQUEST" | "PROVISIONED"

_SCALAR_TYPES = {"S", "N", "B"}


@dataclass(frozen=True)
class SecondaryIndex:
    name: str
    partition_key: str
    sort_key: str | None = None
    partition_key_type: str = "S"
    sort_key_type: str = "S"
    projection_type: str = "ALL"


@dataclass(frozen=True)
class TableKeySchema:
    partition_key: str
    sort_key: str | None = None
    partition_key_type: str = "S"
    sort_key_type: str = "S"
    global_indexes: tuple[SecondaryIndex, ...] = ()


def build_create_table_request(
    table_name: str,
    keys: TableKeySchema,
    *,
    billing_mode: BillingMode = "PAY_PER_REQUEST",
    provisioned_throughput: dict[str, int] | None = None,
) -> dict[str, Any]:
    if not table_name:
        raise ValueError("table_name is required")

    billing_mode = (billing_mode or "PAY_PER_REQUEST").strip() or "PAY_PER_REQUEST"
    if billing_mode not in {"PAY_PER_REQUEST", "PROVISIONED"}:
        raise ValueError(f"unsupported billing_mode: {billing_mode}")
    if billing_mode == "PROVISIONED" and provisioned_throughput is None:
        raise ValueError("provisioned_throughput is required when billing_mode=PROVISIONED")

    attr_types: dict[str, str] = {}

    def define(name: str, scalar_type: str) -> None:
        if scalar_type not in _SCALAR_TYPES:
            raise ValueError(f"key attribute must be S/N/B: {name} (got {scalar_type})")
        existing = attr_types.get(name)
        if existing is not None and existing != scalar_type:
            raise ValueError(f"conflicting types for key attribute {name}: {existing} and {scalar_type}")
        attr_types[name] = scalar_type

    def key_schema(partition: str, sort: str | None) -> list[dict[str, str]]:
        out = [{"AttributeName": partition, "KeyType": "HASH"}]
        if sort is not None:
            out.append({"AttributeName": sort, "KeyType": "RANGE"})
        return out

    define(keys.partition_key, keys.partition_key_type)
    if keys.sort_key is not None:
        define(keys.sort_key, keys.sort_key_type)

    gsis: list[dict[str, Any]] = []
    seen: set[str] = set()
    for idx in keys.global_indexes:
        if idx.name in seen:
            raise ValueError(f"duplicate index name: {idx.name}")
        seen.add(idx.name)

        define(idx.partition_key, idx.partition_key_type)
        if idx.sort_key is not None:
            define(idx.sort_key, idx.sort_key_type)

        gsi: dict[str, Any] = {
            "IndexName": idx.name,
            "KeySchema": key_schema(idx.partition_key, idx.sort_key),
            "Projection": {"ProjectionType": idx.projection_type},
        }
        if provisioned_throughput is not None and billing_mode == "PROVISIONED":
            gsi["ProvisionedThroughput"] = dict(provisioned_throughput)
        gsis.append(gsi)

    req: dict[str, Any] = {
        "TableName": table_name,
        "BillingMode": billing_mode,
        "KeySchema": key_schema(keys.partition_key, keys.sort_key),
        "AttributeDefinitions": [
            {"AttributeName": name, "AttributeType": attr_types[name]} for name in sorted(attr_types)
        ],
    }
    if billing_mode == "PROVISIONED" and provisioned_throughput is not None:
        req["ProvisionedThroughput"] = dict(provisioned_throughput)
    if gsis:
        req["GlobalSecondaryIndexes"] = gsis
    return req


def create_table(
    table_name: str,
    keys: TableKeySchema,
    *,
    client: Any | None = None,
    billing_mode: BillingMode = "PAY_PER_REQUEST",
    provisioned_throughput: dict[str, int] | None = None,
    wait_for_active: bool = True,
    wait_timeout_seconds: float = 300.0,
    poll_interval_seconds: float = 0.25,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    if client is None:
        client = boto3.client("dynamodb")

    req = build_create_table_request(
        table_name,
        keys,
        billing_mode=billing_mode,
        provisioned_throughput=provisioned_throughput,
    )

    try:
        client.create_table(**req)
        logger.info("table_created", table=table_name)
    except ClientError as err:
        code = str(err.response.get("Error", {}).get("Code", ""))
        if code != "ResourceInUseException":
            raise map_client_error(err) from err
        logger.info("table_already_exists", table=table_name)

    if wait_for_active:
        _wait_for_table_active(
            client,
            table_name,
            timeout_seconds=wait_timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            sleep=sleep,
        )


def ensure_table(
    table_name: str,
    keys: TableKeySchema,
    *,
    client: Any | None = None,
    billing_mode: BillingMode = "PAY_PER_REQUEST",
    provisioned_throughput: dict[str, int] | None = None,
    wait_for_active: bool = True,
    wait_timeout_seconds: float = 300.0,
    poll_interval_seconds: float = 0.25,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    if client is None:
        client = boto3.client("dynamodb")

    try:
        client.describe_table(TableName=table_name)
    except ClientError as err:
        code = str(err.response.get("Error", {}).get("Code", ""))
        if code != "ResourceNotFoundException":
            raise map_client_error(err) from err
        create_table(
            table_name,
            keys,
            client=client,
            billing_mode=billing_mode,
            provisioned_throughput=provisioned_throughput,
            wait_for_active=wait_for_active,
            wait_timeout_seconds=wait_timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            sleep=sleep,
        )
        return

    if wait_for_active:
        _wait_for_table_active(
            client,
            table_name,
            timeout_seconds=wait_timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            sleep=sleep,
        )


def describe_table(table_name: str, *, client: Any | None = None) -> dict[str, Any]:
    if client is None:
        client = boto3.client("dynamodb")

    try:
        return dict(client.describe_table(TableName=table_name))
    except ClientError as err:
        raise map_client_error(err) from err


def delete_table(
    table_name: str,
    *,
    client: Any | None = None,
    wait_for_delete: bool = True,
    wait_timeout_seconds: float = 300.0,
    poll_interval_seconds: float = 0.25,
    ignore_missing: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    if client is None:
        client = boto3.client("dynamodb")

    try:
        client.delete_table(TableName=table_name)
        logger.info("table_deleted", table=table_name)
    except ClientError as err:
        code = str(err.response.get("Error", {}).get("Code", ""))
        if ignore_missing and code == "ResourceNotFoundException":
            return
        raise map_client_error(err) from err

    if wait_for_delete:
        _wait_for_table_deleted(
            client,
            table_name,
            timeout_seconds=wait_timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            sleep=sleep,
        )


def list_tables(*, client: Any | None = None) -> Sequence[str]:
    if client is None:
        client = boto3.client("dynamodb")

    try:
        resp = client.list_tables()
    except ClientError as err:
        raise map_client_error(err) from err
    return tuple(resp.get("TableNames", []))


def _wait_for_table_active(
    client: Any,
    table_name: str,
    *,
    timeout_seconds: float,
    poll_interval_seconds: float,
    sleep: Callable[[float], None],
) -> None:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        try:
            resp = client.describe_table(TableName=table_name)
        except ClientError as err:
            code = str(err.response.get("Error", {}).get("Code", ""))
            if code != "ResourceNotFoundException":
                raise map_client_error(err) from err
            resp = {}

        status = str(resp.get("Table", {}).get("TableStatus", ""))
        if status == "ACTIVE":
            return
        sleep(poll_interval_seconds)

    raise TransportError(code="WaiterTimeout", message=f"timed out waiting for table ACTIVE: {table_name}")


def _wait_for_table_deleted(
    client: Any,
    table_name: str,
    *,
    timeout_seconds: float,
    poll_interval_seconds: float,
    sleep: Callable[[float], None],
) -> None:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        try:
            client.describe_table(TableName=table_name)
        except ClientError as err:
            code = str(err.response.get("Error", {}).get("Code", ""))
            if code == "ResourceNotFoundException":
                return
            raise map_client_error(err) from err
        sleep(poll_interval_seconds)

    raise TransportError(code="WaiterTimeout", message=f"timed out waiting for table deletion: {table_name}")
