"""Source Map v3 generation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

_BASE64_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def encode_vlq(value: int) -> str:
    """Encode an integer as a Base64 VLQ string."""

    remaining = ((-value) << 1) | 1 if value < 0 else value << 1
    encoded = []
    while True:
        digit = remaining & 0x1F
        remaining >>= 5
        if remaining:
            digit |= 0x20
        encoded.append(_BASE64_DIGITS[digit])
        if not remaining:
            return "".join(encoded)


@dataclass(slots=True)
class Mapping:
    generated_line: int
    generated_column: int
    source: int
    original_line: int
    original_column: int
    name: Optional[int] = None


@dataclass(slots=True)
class SourceMapBuilder:
    """Accumulates mappings and serialises them as a v3 source map.

    All line and column numbers are zero-based.
    """

    file: str
    sources: List[str] = field(default_factory=list)
    sources_content: List[Optional[str]] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    mappings: List[Mapping] = field(default_factory=list)
    _source_index: Dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _name_index: Dict[str, int] = field(default_factory=dict, init=False, repr=False)

    def add_source(self, path: str, content: Optional[str] = None) -> int:
        if path in self._source_index:
            return self._source_index[path]
        self._source_index[path] = len(self.sources)
        self.sources.append(path)
        self.sources_content.append(content)
        return self._source_index[path]

    def add_mapping(
        self,
        generated: Tuple[int, int],
        source: int,
        original: Tuple[int, int],
        name: Optional[str] = None,
    ) -> None:
        name_index = None
        if name is not None:
            if name not in self._name_index:
                self._name_index[name] = len(self.names)
                self.names.append(name)
            name_index = self._name_index[name]
        self.mappings.append(Mapping(generated[0], generated[1], source, original[0], original[1], name_index))

    def encode_mappings(self) -> str:
        lines: List[List[str]] = []
        previous_source = previous_line = previous_column = previous_name = 0
        current_line = -1
        previous_generated = 0
        for mapping in sorted(self.mappings, key=_mapping_order):
            while len(lines) <= mapping.generated_line:
                lines.append([])
            if mapping.generated_line != current_line:
                # generated columns restart on every line, other fields never do
                current_line = mapping.generated_line
                previous_generated = 0
            segment = encode_vlq(mapping.generated_column - previous_generated)
            segment += encode_vlq(mapping.source - previous_source)
            segment += encode_vlq(mapping.original_line - previous_line)
            segment += encode_vlq(mapping.original_column - previous_column)
            if mapping.name is not None:
                segment += encode_vlq(mapping.name - previous_name)
                previous_name = mapping.name
            lines[current_line].append(segment)
            previous_generated = mapping.generated_column
            previous_source = mapping.source
            previous_line = mapping.original_line
            previous_column = mapping.original_column
        return ";".join(",".join(segments) for segments in lines)

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": 3,
            "file": self.file,
            "sources": list(self.sources),
            "sourcesContent": list(self.sources_content),
            "names": list(self.names),
            "mappings": self.encode_mappings(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def _mapping_order(mapping: Mapping) -> Tuple[int, int, int, int, int]:
    return (
        mapping.generated_line,
        mapping.generated_column,
        mapping.source,
        mapping.original_line,
        mapping.original_column,
    )
