"""Deployment helpers for lambundle."""

from .client import LambdaClient, create_lambda_client
from .deployer import LambdaDeployer, create_function_request

__all__ = [
    "LambdaClient",
    "LambdaDeployer",
    "create_function_request",
    "create_lambda_client",
]
