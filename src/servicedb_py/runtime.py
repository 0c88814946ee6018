from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .config import ClientOptions


@dataclass(frozen=True)
class AwsCallMetric:
    service: str
    operation: str
    seconds: float
    ok: bool
    error_code: str | None = None


def create_boto3_config(
    *,
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
) -> Config | None:
    kwargs: dict[str, Any] = {}
    if connect_timeout is not None:
        kwargs["connect_timeout"] = connect_timeout
    if read_timeout is not None:
        kwargs["read_timeout"] = read_timeout
    if not kwargs:
        return None
    return Config(**kwargs)


class _InstrumentedClient:
    """Proxy that reports one :class:`AwsCallMetric` per public client call."""

    def __init__(self, client: Any, service: str, on_call: Callable[[AwsCallMetric], None]) -> None:
        self._client = client
        self._service = service
        self._on_call = on_call

    def __getattr__(self, name: str) -> Any:
        target = getattr(self._client, name)
        if name.startswith("_") or not callable(target):
            return target

        def timed(*args: Any, **kwargs: Any) -> Any:
            started = time.monotonic()
            error_code: str | None = None
            ok = False
            try:
                result = target(*args, **kwargs)
                ok = True
                return result
            except ClientError as err:
                error_code = err.response.get("Error", {}).get("Code") or None
                raise
            finally:
                self._on_call(
                    AwsCallMetric(
                        service=self._service,
                        operation=name,
                        seconds=time.monotonic() - started,
                        ok=ok,
                        error_code=error_code,
                    )
                )

        return timed


def instrument_boto3_client(
    client: Any,
    *,
    service: str,
    on_call: Callable[[AwsCallMetric], None],
) -> Any:
    return _InstrumentedClient(client, service, on_call)


def create_dynamodb_client(
    options: ClientOptions | None = None,
    *,
    session: Any | None = None,
    metrics: Callable[[AwsCallMetric], None] | None = None,
) -> Any:
    opts = options or ClientOptions()
    sess = session or boto3.session.Session(region_name=opts.region_name)

    kwargs: dict[str, Any] = {"region_name": opts.region_name}
    if opts.endpoint_url:
        kwargs["endpoint_url"] = opts.endpoint_url
    if opts.aws_access_key_id and opts.aws_secret_access_key:
        kwargs["aws_access_key_id"] = opts.aws_access_key_id
        kwargs["aws_secret_access_key"] = opts.aws_secret_access_key
    config = create_boto3_config(connect_timeout=opts.connect_timeout, read_timeout=opts.read_timeout)
    if config is not None:
        kwargs["config"] = config

    client = cast(Any, sess).client("dynamodb", **kwargs)
    if metrics is not None:
        client = instrument_boto3_client(client, service="dynamodb", on_call=metrics)
    return client
