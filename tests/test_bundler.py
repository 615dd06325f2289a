from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

from lambundle.bundle.bundler import MODULE_TABLE, bundle_entry, split_future_imports
from lambundle.errors import BundleSyntaxError, ResolutionError


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_single_file_bundle_is_entry_source(single_file: Path) -> None:
    bundle = bundle_entry(single_file, "handler")

    assert bundle.modules == []
    assert bundle.name == "single_file.py"
    assert bundle.handler == "single_file.handler"
    assert bundle.text == single_file.read_text(encoding="utf-8")
    assert "# Single file handler" in bundle.text


def test_bundle_collects_local_modules(multi_handler: Path) -> None:
    bundle = bundle_entry(multi_handler, "handler")

    names = [module.name for module in bundle.modules]
    assert names == [
        "lbfixture_greeting",
        "lbfixture_pkg",
        "lbfixture_pkg.config",
        "lbfixture_pkg.formatter",
    ]
    package = bundle.modules[1]
    assert package.is_package is True
    assert package.filename == "lbfixture_pkg/__init__.py"
    assert bundle.future_features == ("annotations",)
    assert bundle.text.startswith("from __future__ import annotations\n")
    assert MODULE_TABLE in bundle.text


def test_bundle_runs_with_inlined_modules(multi_handler: Path, run_bundle: Callable) -> None:
    bundle = bundle_entry(multi_handler, "handler")

    namespace = run_bundle(bundle.text, bundle.name)
    result = namespace["handler"]({"name": "lambda"}, None)

    assert result["message"] == "HELLO, LAMBDA!"


def test_missing_entry_raises_resolution_error(tmp_path: Path) -> None:
    with pytest.raises(ResolutionError):
        bundle_entry(tmp_path / "absent.py", "handler")


def test_missing_export_raises_resolution_error(single_file: Path) -> None:
    with pytest.raises(ResolutionError, match="does not define handler 'main'"):
        bundle_entry(single_file, "main")


def test_export_bound_by_assignment(tmp_path: Path) -> None:
    entry = _write(tmp_path / "app.py", "def _make():\n    return lambda event, context: event\n\nhandler = _make()\n")

    bundle = bundle_entry(entry, "handler")

    assert bundle.handler == "app.handler"


def test_export_bound_inside_try_block(tmp_path: Path) -> None:
    entry = _write(
        tmp_path / "app.py",
        "try:\n    import ujson as json\nexcept ImportError:\n    import json\n\ndef handler(event, context):\n    return json.dumps(event)\n",
    )
    other = _write(tmp_path / "alt.py", "try:\n    from fast import handler\nexcept ImportError:\n    handler = None\n")

    assert bundle_entry(entry, "json").name == "app.py"
    assert bundle_entry(other, "handler").modules == []


def test_entry_syntax_error(tmp_path: Path) -> None:
    entry = _write(tmp_path / "broken.py", "def handler(:\n    pass\n")

    with pytest.raises(BundleSyntaxError):
        bundle_entry(entry, "handler")


def test_dependency_syntax_error(tmp_path: Path) -> None:
    entry = _write(tmp_path / "app.py", "import helpers\n\ndef handler(event, context):\n    return helpers.x\n")
    _write(tmp_path / "helpers.py", "x = (\n")

    with pytest.raises(BundleSyntaxError, match="helpers.py"):
        bundle_entry(entry, "handler")


def test_relative_import_in_entry_is_rejected(tmp_path: Path) -> None:
    entry = _write(tmp_path / "app.py", "from . import helpers\n\ndef handler(event, context):\n    return None\n")

    with pytest.raises(ResolutionError, match="no parent package"):
        bundle_entry(entry, "handler")


def test_missing_local_submodule(tmp_path: Path) -> None:
    entry = _write(tmp_path / "app.py", "import pkg.missing\n\ndef handler(event, context):\n    return None\n")
    _write(tmp_path / "pkg" / "__init__.py", "")

    with pytest.raises(ResolutionError, match="pkg.missing"):
        bundle_entry(entry, "handler")


def test_missing_relative_target(tmp_path: Path) -> None:
    entry = _write(tmp_path / "app.py", "import pkg\n\ndef handler(event, context):\n    return None\n")
    _write(tmp_path / "pkg" / "__init__.py", "from .nothing import value\n")

    with pytest.raises(ResolutionError, match="pkg.nothing"):
        bundle_entry(entry, "handler")


def test_relative_import_beyond_top_level(tmp_path: Path) -> None:
    entry = _write(tmp_path / "app.py", "import helpers\n\ndef handler(event, context):\n    return None\n")
    _write(tmp_path / "helpers.py", "from .. import other\n")

    with pytest.raises(ResolutionError, match="beyond top-level"):
        bundle_entry(entry, "handler")


def test_external_imports_are_left_to_runtime(tmp_path: Path) -> None:
    entry = _write(
        tmp_path / "app.py",
        "import boto3\nimport json\nfrom urllib.parse import quote\n\ndef handler(event, context):\n    return quote(json.dumps(event))\n",
    )

    bundle = bundle_entry(entry, "handler")

    assert bundle.modules == []


def test_imports_inside_functions_are_followed(tmp_path: Path) -> None:
    entry = _write(
        tmp_path / "app.py",
        "def handler(event, context):\n    import lazy_helper\n    return lazy_helper.VALUE\n",
    )
    _write(tmp_path / "lazy_helper.py", "VALUE = 42\n")

    bundle = bundle_entry(entry, "handler")

    assert [module.name for module in bundle.modules] == ["lazy_helper"]


def test_namespace_package_is_bundled(tmp_path: Path, run_bundle: Callable) -> None:
    entry = _write(
        tmp_path / "app.py",
        "from lbns_tools import numbers\n\ndef handler(event, context):\n    return numbers.double(event)\n",
    )
    _write(tmp_path / "lbns_tools" / "numbers.py", "def double(value):\n    return value * 2\n")

    bundle = bundle_entry(entry, "handler")
    namespace = run_bundle(bundle.text, bundle.name)

    assert [(module.name, module.is_package) for module in bundle.modules] == [
        ("lbns_tools", True),
        ("lbns_tools.numbers", False),
    ]
    assert namespace["handler"](21, None) == 42


def test_split_future_imports_keeps_line_numbers() -> None:
    source = '"""Doc."""\nfrom __future__ import annotations\nfrom __future__ import (\n    division,\n)\nx = 1\n'

    features, body = split_future_imports(source)

    assert features == ("annotations", "division")
    assert body.splitlines()[5] == "x = 1"
    assert "__future__" not in body


@pytest.mark.parametrize(
    "source",
    [
        "for handler in [lambda event, context: event]:\n    pass\n",
        "while True:\n    def handler(event, context):\n        return event\n    break\n",
        "import sys\nmatch sys.platform:\n    case _:\n        def handler(event, context):\n            return event\n",
        "with open(__file__) as handler:\n    pass\n",
    ],
)
def test_export_bound_in_compound_statement(tmp_path: Path, source: str) -> None:
    entry = _write(tmp_path / "app.py", source)

    assert bundle_entry(entry, "handler").export_name == "handler"


@pytest.mark.skipif(sys.version_info < (3, 11), reason="except* requires Python 3.11")
def test_export_bound_in_exception_group_try(tmp_path: Path) -> None:
    entry = _write(
        tmp_path / "app.py",
        "try:\n    def handler(event, context):\n        return event\nexcept* ValueError:\n    pass\n",
    )

    assert bundle_entry(entry, "handler").export_name == "handler"


def test_export_only_in_nested_function_is_rejected(tmp_path: Path) -> None:
    entry = _write(tmp_path / "app.py", "def outer():\n    def handler(event, context):\n        return event\n")

    with pytest.raises(ResolutionError, match="does not define handler"):
        bundle_entry(entry, "handler")
