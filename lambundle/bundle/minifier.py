"""Minification of bundled sources."""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

import python_minifier

from ..errors import MinifyError
from .bundler import BOOTSTRAP, Bundle, RenderedBundle
from .sourcemap import SourceMapBuilder

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MinifiedBundle:
    code: str
    sourcemap: Optional[str] = None


def minify_source(source: str, *, filename: str, preserve: Sequence[str] = ()) -> str:
    """Minify one unit of Python source, keeping ``preserve`` names intact."""

    try:
        ast.parse(source, filename=filename)
    except SyntaxError as exc:
        raise MinifyError(f"Cannot minify {filename}: {exc}") from exc
    try:
        return python_minifier.minify(
            source,
            filename=filename,
            remove_annotations=False,
            remove_literal_statements=True,
            hoist_literals=False,
            rename_globals=False,
            preserve_globals=list(preserve),
            preserve_shebang=False,
        )
    except Exception as exc:
        raise MinifyError(f"Cannot minify {filename}: {exc}") from exc


def minify_bundle(bundle: Bundle, *, sourcemap: bool = False) -> MinifiedBundle:
    """Minify every unit of ``bundle`` and render it compactly.

    The rendered code is identical whether or not a source map is requested.
    """

    entry_code = minify_source(bundle.entry_body, filename=bundle.name, preserve=[bundle.export_name])
    module_code: Dict[str, str] = {}
    for module in bundle.modules:
        module_code[module.name] = minify_source(module.source, filename=module.filename) if module.source else ""

    rendered = bundle.render(
        entry_body=entry_code,
        module_sources=module_code,
        bootstrap=_minified_bootstrap() if bundle.modules else BOOTSTRAP,
        compact=True,
    )
    logger.info("Minified %s with %d module(s) to %d characters", bundle.name, len(bundle.modules), len(rendered.text))

    sourcemap_text = None
    if sourcemap:
        sourcemap_text = build_sourcemap(bundle, rendered, entry_code)
    return MinifiedBundle(code=rendered.text, sourcemap=sourcemap_text)


def build_sourcemap(bundle: Bundle, rendered: RenderedBundle, entry_code: str) -> str:
    """Map the minified layout back to the original entry and module files."""

    builder = SourceMapBuilder(file=bundle.name)
    entry_index = builder.add_source(bundle.name, bundle.entry_source)

    original: Dict[Tuple[object, ...], List[Tuple[int, int]]] = {}
    for node in ast.parse(bundle.entry_body).body:
        original.setdefault(_statement_key(node), []).append((node.lineno - 1, node.col_offset))

    for node in ast.parse(entry_code).body:
        key = _statement_key(node)
        candidates = original.get(key)
        if not candidates:
            continue
        line, column = candidates.pop(0)
        name = key[1] if key[0] in ("def", "class") else None
        builder.add_mapping(
            (rendered.entry_line + node.lineno - 1, node.col_offset),
            entry_index,
            (line, column),
            name=name,
        )

    for module in bundle.modules:
        index = builder.add_source(module.filename, module.source)
        builder.add_mapping(rendered.module_positions[module.name], index, (0, 0))
    return builder.to_json()


def _statement_key(node: ast.stmt) -> Tuple[object, ...]:
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
        return ("def", node.name)
    if isinstance(node, ast.ClassDef):
        return ("class", node.name)
    if isinstance(node, (ast.Assign, ast.AnnAssign, ast.AugAssign)):
        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
        names = tuple(
            leaf.id
            for target in targets
            for leaf in ast.walk(target)
            if isinstance(leaf, ast.Name)
        )
        return ("assign", names)
    if isinstance(node, ast.Import):
        return ("import", node.names[0].name)
    if isinstance(node, ast.ImportFrom):
        return ("from", node.module or "", node.level)
    return (type(node).__name__,)


@lru_cache(maxsize=1)
def _minified_bootstrap() -> str:
    return minify_source(BOOTSTRAP, filename="<bootstrap>")
