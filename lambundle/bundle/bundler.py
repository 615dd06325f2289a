"""Resolve a handler script and its local imports into one source text."""

from __future__ import annotations

import ast
import importlib.util
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import BundleSyntaxError, ResolutionError

logger = logging.getLogger(__name__)

MODULE_TABLE = "_LAMBUNDLE_MODULES"

BOOTSTRAP = '''\
import importlib.abc as _lambundle_abc
import importlib.util as _lambundle_util
import os as _lambundle_os
import sys as _lambundle_sys


class _LambundleImporter(_lambundle_abc.MetaPathFinder, _lambundle_abc.Loader):
    """Serve bundled modules from the in-memory module table."""

    def __init__(self, modules, root):
        self._modules = modules
        self._root = root

    def find_spec(self, fullname, path=None, target=None):
        if fullname not in self._modules:
            return None
        is_package = self._modules[fullname][0]
        return _lambundle_util.spec_from_loader(fullname, self, is_package=is_package)

    def create_module(self, spec):
        return None

    def exec_module(self, module):
        _, filename, source = self._modules[module.__name__]
        module.__file__ = _lambundle_os.path.join(self._root, filename)
        exec(compile(source, module.__file__, "exec"), module.__dict__)


_lambundle_sys.meta_path.insert(
    0,
    _LambundleImporter(_LAMBUNDLE_MODULES, _lambundle_os.path.dirname(globals().get("__file__") or "")),
)
'''


@dataclass(slots=True)
class BundledModule:
    """One local module inlined into the bundle."""

    name: str
    path: Path
    filename: str
    is_package: bool
    source: str


@dataclass(slots=True)
class RenderedBundle:
    """Bundle text plus the positions needed to build a source map.

    Line and column numbers are zero-based.
    """

    text: str
    entry_line: int
    module_positions: Dict[str, Tuple[int, int]] = field(default_factory=dict)


@dataclass(slots=True)
class Bundle:
    """Entry source together with the local modules it depends on."""

    entry_path: Path
    export_name: str
    entry_source: str
    entry_body: str
    future_features: Tuple[str, ...] = ()
    modules: List[BundledModule] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.entry_path.name

    @property
    def handler(self) -> str:
        return f"{self.entry_path.stem}.{self.export_name}"

    @property
    def text(self) -> str:
        return self.render().text

    def render(
        self,
        *,
        entry_body: Optional[str] = None,
        module_sources: Optional[Mapping[str, str]] = None,
        bootstrap: str = BOOTSTRAP,
        compact: bool = False,
    ) -> RenderedBundle:
        """Lay out the bundle, optionally substituting unit sources."""

        body = self.entry_body if entry_body is None else entry_body
        if not self.modules:
            return RenderedBundle(text=_with_newline(body), entry_line=0)

        sources = module_sources or {}
        lines: List[str] = []
        if self.future_features:
            lines.append("from __future__ import " + ", ".join(self.future_features))

        positions: Dict[str, Tuple[int, int]] = {}
        if compact:
            table = f"{MODULE_TABLE}={{"
            for index, module in enumerate(self.modules):
                if index:
                    table += ","
                table += f"{module.name!r}:"
                positions[module.name] = (len(lines), len(table))
                table += _module_entry(module, sources.get(module.name, module.source), compact=True)
            lines.append(table + "}")
        else:
            lines.append(f"{MODULE_TABLE} = {{")
            for module in self.modules:
                prefix = f"    {module.name!r}: "
                positions[module.name] = (len(lines), len(prefix))
                lines.append(prefix + _module_entry(module, sources.get(module.name, module.source)) + ",")
            lines.append("}")
            lines.append("")

        lines.extend(bootstrap.rstrip("\n").splitlines())
        if not compact:
            lines.append("")
        entry_line = len(lines)
        text = "\n".join(lines) + "\n" + _with_newline(body)
        return RenderedBundle(text=text, entry_line=entry_line, module_positions=positions)


def bundle_entry(entry_path: Path | str, export_name: str) -> Bundle:
    """Resolve ``entry_path`` and its local imports into a :class:`Bundle`."""

    entry = Path(entry_path)
    if not entry.is_file():
        raise ResolutionError(f"Entry file not found: {entry}")
    entry = entry.resolve()

    source, tree = _read_source(entry)
    if not _defines(tree.body, export_name):
        raise ResolutionError(f"Entry {entry} does not define handler '{export_name}'")

    resolver = _ImportResolver(entry.parent)
    resolver.scan(tree, importer=None, label=entry.name)
    modules = resolver.collect()

    if modules:
        features, body = split_future_imports(source, tree)
    else:
        features, body = (), source

    logger.info("Bundled %s with %d local module(s)", entry.name, len(modules))
    return Bundle(
        entry_path=entry,
        export_name=export_name,
        entry_source=source,
        entry_body=body,
        future_features=features,
        modules=modules,
    )


def split_future_imports(source: str, tree: Optional[ast.Module] = None) -> Tuple[Tuple[str, ...], str]:
    """Return the ``__future__`` features of ``source`` and the source with those lines blanked.

    Blanking keeps every remaining statement on its original line.
    """

    if tree is None:
        tree = ast.parse(source)
    lines = source.splitlines(keepends=True)
    features: List[str] = []
    for node in tree.body:
        if isinstance(node, ast.ImportFrom) and node.module == "__future__":
            for alias in node.names:
                if alias.name not in features:
                    features.append(alias.name)
            for index in range(node.lineno - 1, (node.end_lineno or node.lineno)):
                lines[index] = "\n"
    return tuple(features), "".join(lines)


class _ImportResolver:
    """Walks import statements and collects modules found under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._modules: Dict[str, BundledModule] = {}
        self._pending: List[Tuple[BundledModule, ast.Module]] = []

    def scan(self, tree: ast.Module, *, importer: Optional[BundledModule], label: str) -> None:
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    self._require(alias.name, label=label, strict=False)
            elif isinstance(node, ast.ImportFrom):
                if node.module == "__future__":
                    continue
                if node.level:
                    target = self._relative_target(node, importer, label)
                    self._require(target, label=label, strict=True)
                elif node.module:
                    if not self._require(node.module, label=label, strict=False):
                        continue
                    target = node.module
                else:
                    continue
                self._require_submodules(target, (alias.name for alias in node.names), label)

    def collect(self) -> List[BundledModule]:
        while self._pending:
            module, tree = self._pending.pop(0)
            self.scan(tree, importer=module, label=module.filename)
        return sorted(self._modules.values(), key=lambda module: module.name)

    def locate(self, dotted: str) -> Optional[Tuple[Path, bool]]:
        base = self.root.joinpath(*dotted.split("."))
        init = base / "__init__.py"
        if init.is_file():
            return init, True
        module_file = base.parent / f"{base.name}.py"
        if module_file.is_file():
            return module_file, False
        if base.is_dir():
            return base, True
        return None

    def _require(self, dotted: str, *, label: str, strict: bool) -> bool:
        parts = dotted.split(".")
        if parts[0] not in self._modules and self.locate(parts[0]) is None:
            if strict:
                raise ResolutionError(f"Cannot resolve module '{dotted}' imported by {label}")
            return False
        for index in range(1, len(parts) + 1):
            self._add(".".join(parts[:index]), label)
        return True

    def _require_submodules(self, package: str, names: Iterable[str], label: str) -> None:
        parent = self._modules.get(package)
        if parent is None or not parent.is_package:
            return
        for name in names:
            if name == "*":
                continue
            candidate = f"{package}.{name}"
            if candidate not in self._modules and self.locate(candidate) is not None:
                self._add(candidate, label)

    def _add(self, name: str, label: str) -> None:
        if name in self._modules:
            return
        located = self.locate(name)
        if located is None:
            raise ResolutionError(f"Cannot resolve module '{name}' imported by {label}")
        path, is_package = located
        filename = path.relative_to(self.root).as_posix()
        if path.is_dir():
            source = ""
            tree = ast.Module(body=[], type_ignores=[])
        else:
            source, tree = _read_source(path)
        module = BundledModule(name=name, path=path, filename=filename, is_package=is_package, source=source)
        self._modules[name] = module
        self._pending.append((module, tree))
        logger.debug("Resolved %s -> %s", name, filename)

    def _relative_target(self, node: ast.ImportFrom, importer: Optional[BundledModule], label: str) -> str:
        if importer is None:
            raise ResolutionError(f"Relative import in entry module {label} has no parent package")
        package = importer.name if importer.is_package else importer.name.rpartition(".")[0]
        parts = package.split(".") if package else []
        keep = len(parts) - (node.level - 1)
        if keep <= 0:
            raise ResolutionError(f"Relative import beyond top-level package in {label}")
        target = parts[:keep]
        if node.module:
            target.append(node.module)
        return ".".join(target)


def _read_source(path: Path) -> Tuple[str, ast.Module]:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ResolutionError(f"Unable to read {path}: {exc}") from exc
    try:
        source = importlib.util.decode_source(data)
        tree = ast.parse(source, filename=str(path))
    except (SyntaxError, ValueError) as exc:
        raise BundleSyntaxError(f"Unable to parse {path}: {exc}") from exc
    return source, tree


def _defines(statements: Sequence[ast.stmt], name: str) -> bool:
    """Return whether ``name`` is bound at module level by ``statements``."""

    for node in statements:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            if node.name == name:
                return True
        elif isinstance(node, (ast.Assign, ast.AnnAssign, ast.AugAssign)):
            targets = node.targets if isinstance(node, ast.Assign) else [node.target]
            if any(_binds(target, name) for target in targets):
                return True
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                if alias.name == "*":
                    return True
                if (alias.asname or alias.name.split(".")[0]) == name:
                    return True
        elif isinstance(node, _COMPOUND_STATEMENTS):
            if isinstance(node, (ast.For, ast.AsyncFor)) and _binds(node.target, name):
                return True
            if isinstance(node, (ast.With, ast.AsyncWith)) and any(
                item.optional_vars is not None and _binds(item.optional_vars, name) for item in node.items
            ):
                return True
            branches = [getattr(node, "body", []), getattr(node, "orelse", []), getattr(node, "finalbody", [])]
            branches.extend(handler.body for handler in getattr(node, "handlers", []))
            branches.extend(case.body for case in getattr(node, "cases", []))
            if any(_defines(branch, name) for branch in branches):
                return True
    return False


_COMPOUND_STATEMENTS = (
    ast.If,
    ast.Try,
    ast.With,
    ast.AsyncWith,
    ast.For,
    ast.AsyncFor,
    ast.While,
    ast.Match,
) + ((ast.TryStar,) if hasattr(ast, "TryStar") else ())


def _binds(target: ast.AST, name: str) -> bool:
    return any(
        isinstance(leaf, ast.Name) and isinstance(leaf.ctx, ast.Store) and leaf.id == name
        for leaf in ast.walk(target)
    )


def _module_entry(module: BundledModule, source: str, *, compact: bool = False) -> str:
    separator = "," if compact else ", "
    return "(" + separator.join((repr(module.is_package), repr(module.filename), repr(source))) + ")"


def _with_newline(text: str) -> str:
    return text if not text or text.endswith("\n") else text + "\n"
