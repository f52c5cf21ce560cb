"""Typed records shared by the context-assembly pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator

__all__ = [
    "ActiveSymbolContext",
    "CallEdge",
    "ChangeKind",
    "ChangeRecord",
    "ContextResult",
    "Diagnostic",
    "DiagnosticSeverity",
    "EditorContext",
    "FileHandle",
    "Location",
    "Position",
    "Range",
    "ScoredFile",
    "SymbolEntry",
    "SymbolKind",
    "count_symbols",
    "normalize_relative_path",
]


def normalize_relative_path(value: str) -> str:
    """Return ``value`` with forward slashes and no leading ``./``."""
    normalized = value.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


class SymbolKind(str, Enum):
    """Kinds of symbols reported by language symbol providers."""

    FILE = "file"
    MODULE = "module"
    NAMESPACE = "namespace"
    PACKAGE = "package"
    CLASS = "class"
    METHOD = "method"
    PROPERTY = "property"
    FIELD = "field"
    CONSTRUCTOR = "constructor"
    ENUM = "enum"
    INTERFACE = "interface"
    FUNCTION = "function"
    VARIABLE = "variable"
    CONSTANT = "constant"
    STRUCT = "struct"
    ENUM_MEMBER = "enum_member"
    TYPE_PARAMETER = "type_parameter"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Position:
    """Zero-based line/character position inside a file."""

    line: int
    character: int = 0


@dataclass(frozen=True, slots=True)
class Range:
    """Inclusive source range between two positions."""

    start: Position
    end: Position

    @classmethod
    def from_lines(cls, start_line: int, end_line: int, end_character: int = 0) -> Range:
        return cls(Position(start_line, 0), Position(end_line, end_character))

    @property
    def start_line(self) -> int:
        return self.start.line

    @property
    def end_line(self) -> int:
        return self.end.line

    @property
    def line_span(self) -> int:
        """Number of lines touched by the range (at least one)."""
        return max(self.end.line - self.start.line + 1, 1)

    def overlap_lines(self, other: Range) -> int:
        """Count the lines shared by ``self`` and ``other``."""
        first = max(self.start.line, other.start.line)
        last = min(self.end.line, other.end.line)
        if last < first:
            return 0
        return last - first + 1

    def contains_line(self, line: int) -> bool:
        return self.start.line <= line <= self.end.line


@dataclass(frozen=True, slots=True)
class Location:
    """Range inside a project file identified by its relative path."""

    path: str
    range: Range

    def describe(self) -> str:
        return f"{self.path}:{self.range.start.line + 1}"


@dataclass(slots=True)
class SymbolEntry:
    """Symbol reported for a file; children are owned by their parent."""

    name: str
    kind: SymbolKind
    range: Range
    detail: str | None = None
    children: list[SymbolEntry] = field(default_factory=list)

    def walk(self, depth: int = 0) -> Iterator[tuple[int, SymbolEntry]]:
        """Yield ``(depth, entry)`` pairs in pre-order."""
        yield depth, self
        for child in self.children:
            yield from child.walk(depth + 1)


def count_symbols(entries: Iterable[SymbolEntry]) -> int:
    """Count symbols including every nested child."""
    return sum(1 for entry in entries for _ in entry.walk())


@dataclass(frozen=True, slots=True)
class CallEdge:
    """One incoming or outgoing call of the active symbol.

    ``name``/``kind`` describe the caller (incoming) or the callee (outgoing),
    ``path`` is the file holding that symbol and ``range`` the call site.
    """

    name: str
    kind: SymbolKind
    path: str
    range: Range


@dataclass(slots=True)
class ActiveSymbolContext:
    """Pre-resolved description of the symbol enclosing the cursor."""

    name: str
    kind: SymbolKind
    range: Range
    path: str
    detail: str | None = None
    definitions: list[Location] = field(default_factory=list)
    implementations: list[Location] = field(default_factory=list)
    type_definitions: list[Location] = field(default_factory=list)
    incoming_calls: list[CallEdge] = field(default_factory=list)
    outgoing_calls: list[CallEdge] = field(default_factory=list)
    children_hierarchy: str | None = None
    referenced_types: dict[str, str] = field(default_factory=dict)

    def call_paths(self) -> set[str]:
        paths = {edge.path for edge in self.incoming_calls}
        paths.update(edge.path for edge in self.outgoing_calls)
        return paths

    def related_paths(self) -> set[str]:
        """Every file path connected to the symbol by any relation."""
        paths: set[str] = set()
        for group in (self.definitions, self.implementations, self.type_definitions):
            paths.update(location.path for location in group)
        paths.update(self.referenced_types)
        paths.update(self.call_paths())
        return paths


@dataclass(frozen=True, slots=True)
class FileHandle:
    """Absolute reference to a project file."""

    path: Path

    def relative_to(self, root: Path) -> str:
        """Project the handle onto ``root`` using forward slashes."""
        relative = os.path.relpath(os.fspath(self.path), os.fspath(root))
        return normalize_relative_path(relative)

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(slots=True)
class EditorContext:
    """The active editor: file, optional selection and free-text instruction."""

    file: FileHandle
    selection: Range | None = None
    instruction: str | None = None


class ChangeKind(str, Enum):
    """Kind of recorded project change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(slots=True)
class ChangeRecord:
    """Recent change to a project file."""

    path: str
    kind: ChangeKind
    summary: str
    diff: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DiagnosticSeverity(str, Enum):
    """Severity levels for editor diagnostics, most severe first."""

    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


@dataclass(slots=True)
class Diagnostic:
    """Diagnostic attached to a file; displayed but not interpreted."""

    path: str
    severity: DiagnosticSeverity
    message: str
    range: Range


@dataclass(slots=True)
class ScoredFile:
    """File handle with its accumulated relevance score."""

    file: FileHandle
    path: str
    score: float = 0.0
    signals: list[str] = field(default_factory=list)

    def add(self, signal: str, weight: float) -> None:
        if weight <= 0:
            return
        self.score += weight
        self.signals.append(signal)


@dataclass(slots=True)
class ContextResult:
    """Assembled context document and the files it covers."""

    text: str
    files: list[str] = field(default_factory=list)
    skipped_files: int = 0
    cancelled: bool = False
    sections: list[dict[str, Any]] = field(default_factory=list)
