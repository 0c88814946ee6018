from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from botocore.exceptions import ClientError

from .errors import ConditionFailedError, NotFoundError, TransportError

logger = structlog.get_logger(__name__)


def _status_code(response: Mapping[str, Any]) -> int | None:
    raw = (response.get("ResponseMetadata") or {}).get("HTTPStatusCode")
    return raw if isinstance(raw, int) else None


def map_client_error(err: ClientError) -> TransportError:
    code = str(err.response.get("Error", {}).get("Code", ""))
    message = str(err.response.get("Error", {}).get("Message", ""))
    status = _status_code(err.response)

    if code == "ConditionalCheckFailedException":
        return ConditionFailedError(code=code, message=message, status_code=status)
    if code == "ResourceNotFoundException":
        return NotFoundError(code=code, message=message, status_code=status)

    return TransportError(code=code or "UnknownError", message=message or str(err), status_code=status)


def check_response(operation: str, response: Mapping[str, Any]) -> None:
    status = _status_code(response)
    if status == 200:
        return

    logger.warning("dynamodb_transport_error", operation=operation, status_code=status)
    raise TransportError(
        code="UnexpectedStatus",
        message=f"failed to send {operation}: {status}",
        status_code=status,
    )
