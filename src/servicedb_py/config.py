from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import ValidationError


@dataclass(frozen=True)
class ClientOptions:
    region_name: str | None = None
    endpoint_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    connect_timeout: float | None = None
    read_timeout: float | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> ClientOptions:
        return cls(
            region_name=environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or None,
            endpoint_url=environ.get("DYNAMODB_ENDPOINT") or None,
            aws_access_key_id=environ.get("AWS_ACCESS_KEY_ID") or None,
            aws_secret_access_key=environ.get("AWS_SECRET_ACCESS_KEY") or None,
        )


@dataclass(frozen=True)
class ServiceOptions:
    table: str
    client: ClientOptions = field(default_factory=ClientOptions)

    def __post_init__(self) -> None:
        if not (self.table or "").strip():
            raise ValidationError("table is required")
