"""Pytest configuration."""

from __future__ import annotations

import io
import sys
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest
from botocore.exceptions import ClientError

FIXTURES = Path(__file__).resolve().parent / "fixtures"


class FakeLambdaClient:
    """Records Lambda calls and replays configured outcomes."""

    def __init__(
        self,
        *,
        descriptor: Optional[Dict[str, Any]] = None,
        delete_error: Optional[Exception] = None,
        create_error: Optional[Exception] = None,
    ) -> None:
        self.descriptor = descriptor if descriptor is not None else {"foo": "bar"}
        self.delete_error = delete_error
        self.create_error = create_error
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    def delete_function(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("delete_function", kwargs))
        if self.delete_error is not None:
            raise self.delete_error
        return {}

    def create_function(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("create_function", kwargs))
        if self.create_error is not None:
            raise self.create_error
        return self.descriptor

    @property
    def operations(self) -> List[str]:
        return [name for name, _ in self.calls]


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised in test"}}, operation)


def unzip(data: bytes) -> Dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


@pytest.fixture()
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture()
def single_file() -> Path:
    return FIXTURES / "single_file.py"


@pytest.fixture()
def multi_handler() -> Path:
    return FIXTURES / "multi" / "handler.py"


@pytest.fixture()
def run_bundle() -> Iterator[Callable[..., Dict[str, Any]]]:
    """Execute bundle text in a fresh namespace and undo its import side effects."""

    meta_path = list(sys.meta_path)
    modules = set(sys.modules)

    def _run(source: str, filename: str = "bundle.py") -> Dict[str, Any]:
        namespace: Dict[str, Any] = {"__name__": "lambundle_bundle_under_test"}
        exec(compile(source, filename, "exec"), namespace)
        return namespace

    yield _run

    sys.meta_path[:] = meta_path
    for name in set(sys.modules) - modules:
        del sys.modules[name]
