"""Publish a built archive as an AWS Lambda function."""

from __future__ import annotations

import logging
from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from ..errors import CreateError, DeleteError
from ..schemas.build import DeploySpec
from .client import LambdaClient

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"ResourceNotFoundException"})


class LambdaDeployer:
    """Creates a function, optionally deleting an existing one first.

    At most two remote calls are issued per deployment and none is retried.
    """

    def __init__(self, client: LambdaClient) -> None:
        self.client = client

    def deploy(self, archive: bytes, spec: DeploySpec, *, handler: str) -> Dict[str, Any]:
        if spec.overwrite:
            self.delete(spec.function_name)
        return self.create(archive, spec, handler=handler)

    def delete(self, function_name: str) -> bool:
        """Delete ``function_name``; return ``False`` when it did not exist."""

        try:
            self.client.delete_function(FunctionName=function_name)
        except ClientError as exc:
            if error_code(exc) in NOT_FOUND_CODES:
                logger.warning("Function %s does not exist; nothing to delete", function_name)
                return False
            raise DeleteError(f"Unable to delete function {function_name}: {exc}") from exc
        except BotoCoreError as exc:
            raise DeleteError(f"Unable to delete function {function_name}: {exc}") from exc
        logger.info("Deleted existing function %s", function_name)
        return True

    def create(self, archive: bytes, spec: DeploySpec, *, handler: str) -> Dict[str, Any]:
        request = create_function_request(archive, spec, handler=handler)
        try:
            response = self.client.create_function(**request)
        except (ClientError, BotoCoreError) as exc:
            raise CreateError(f"Unable to create function {spec.function_name}: {exc}") from exc
        logger.info("Created function %s with handler %s", spec.function_name, request["Handler"])
        return response


def create_function_request(archive: bytes, spec: DeploySpec, *, handler: str) -> Dict[str, Any]:
    """Keyword arguments for ``CreateFunction``."""

    request: Dict[str, Any] = {
        "FunctionName": spec.function_name,
        "Runtime": spec.runtime,
        "Role": spec.execution_role,
        "Handler": spec.handler or handler,
        "Code": {"ZipFile": archive},
        "Publish": spec.publish,
    }
    if spec.timeout is not None:
        request["Timeout"] = spec.timeout
    if spec.memory_size is not None:
        request["MemorySize"] = spec.memory_size
    if spec.description:
        request["Description"] = spec.description
    if spec.environment:
        request["Environment"] = {"Variables": dict(spec.environment)}
    return request


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))
