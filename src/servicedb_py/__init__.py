from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .config import ClientOptions, ServiceOptions
from .entity import Entity
from .errors import (
    ConditionFailedError,
    NotFoundError,
    ServicedbPyError,
    TransportError,
    ValidationError,
)
from .runtime import AwsCallMetric, create_boto3_config, create_dynamodb_client, instrument_boto3_client
from .service import BaseService, DataOperations, ServiceBundle, create_service
from .update_params import UpdateParams, build_update_params

if TYPE_CHECKING:
    from .log import configure_logging, log_call_metric
    from .schema import (
        SecondaryIndex,
        TableKeySchema,
        build_create_table_request,
        create_table,
        delete_table,
        describe_table,
        ensure_table,
        list_tables,
    )


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {
        "SecondaryIndex",
        "TableKeySchema",
        "build_create_table_request",
        "create_table",
        "delete_table",
        "describe_table",
        "ensure_table",
        "list_tables",
    }:
        from . import schema

        return getattr(schema, name)
    if name in {"configure_logging", "log_call_metric"}:
        from . import log

        return getattr(log, name)
    raise AttributeError(name)


__all__ = [
    "AwsCallMetric",
    "BaseService",
    "build_create_table_request",
    "build_update_params",
    "ClientOptions",
    "ConditionFailedError",
    "configure_logging",
    "create_boto3_config",
    "create_dynamodb_client",
    "create_service",
    "create_table",
    "DataOperations",
    "delete_table",
    "describe_table",
    "ensure_table",
    "Entity",
    "instrument_boto3_client",
    "list_tables",
    "log_call_metric",
    "NotFoundError",
    "SecondaryIndex",
    "ServiceBundle",
    "ServiceOptions",
    "ServicedbPyError",
    "TableKeySchema",
    "TransportError",
    "UpdateParams",
    "ValidationError",
    "__repo_version__",
    "__version__",
]
