"""Lambda client port and its boto3 implementation."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from ..errors import DeployError
from ..schemas.build import DeploySpec


class LambdaClient(Protocol):
    """The two Lambda API operations used during deployment."""

    def delete_function(self, **kwargs: Any) -> Mapping[str, Any]:  # pragma: no cover - interface
        ...

    def create_function(self, **kwargs: Any) -> Mapping[str, Any]:  # pragma: no cover - interface
        ...


def client_config(spec: DeploySpec) -> Config:
    """Timeouts from ``spec`` with botocore retries disabled."""

    return Config(
        connect_timeout=spec.connect_timeout,
        read_timeout=spec.read_timeout,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def create_lambda_client(spec: DeploySpec) -> LambdaClient:
    """Build a boto3 Lambda client from the credentials in ``spec``."""

    settings = spec.client_settings()
    endpoint_url = settings.pop("endpoint_url", None)
    try:
        session = boto3.session.Session(**settings)
        return session.client("lambda", endpoint_url=endpoint_url, config=client_config(spec))
    except BotoCoreError as exc:
        raise DeployError(f"Unable to create Lambda client for {spec.function_name}: {exc}") from exc
