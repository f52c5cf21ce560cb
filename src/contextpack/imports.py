"""Import parsers that resolve a file's project-local dependencies."""

from __future__ import annotations

import ast
import os
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from .errors import ImportParseError
from .records import FileHandle

__all__ = [
    "CompositeImportParser",
    "ImportParser",
    "PythonImportParser",
    "ScriptImportParser",
    "default_import_parser",
]


class ImportParser(Protocol):
    """Capability returning the relative paths of project files a file imports.

    Implementations may raise; the graph builder isolates failures per file.
    """

    def __call__(self, path: Path, root: Path) -> list[str]: ...


def _relative_key(root: Path, path: Path) -> str | None:
    """Return ``path`` relative to ``root`` or None when it lies outside."""
    try:
        relative = Path(os.path.abspath(path)).relative_to(os.path.abspath(root))
    except ValueError:
        return None
    return relative.as_posix()


class PythonImportParser:
    """Resolve ``import``/``from`` statements to project source files."""

    suffixes = (".py", ".pyi")

    def __init__(self, source_roots: Sequence[str] = ("", "src")) -> None:
        self._source_roots = tuple(source_roots)

    def __call__(self, path: Path, root: Path) -> list[str]:
        path_key = FileHandle(path).relative_to(root)
        source = path.read_text(encoding="utf-8")
        try:
            tree = ast.parse(source, filename=str(path))
        except SyntaxError as error:
            raise ImportParseError(path_key, f"syntax error at line {error.lineno}") from error

        nodes = [
            node
            for node in ast.walk(tree)
            if isinstance(node, (ast.Import, ast.ImportFrom))
        ]
        nodes.sort(key=lambda node: (node.lineno, node.col_offset))

        resolved: list[str] = []
        seen: set[str] = {path_key}

        def _add(candidate: str | None) -> None:
            if candidate and candidate not in seen:
                seen.add(candidate)
                resolved.append(candidate)

        for node in nodes:
            if isinstance(node, ast.Import):
                for alias in node.names:
                    _add(self._resolve_absolute(alias.name.split("."), root))
                continue
            module_parts = node.module.split(".") if node.module else []
            base: Path | None = None
            if node.level:
                base = self._relative_base(path, root, node.level)
                if base is None:
                    continue
                _add(self._resolve_parts(base, module_parts, root))
            else:
                _add(self._resolve_absolute(module_parts, root))
            # Imported names may themselves be submodules.
            for alias in node.names:
                if alias.name == "*":
                    continue
                parts = [*module_parts, alias.name]
                if base is not None:
                    _add(self._resolve_parts(base, parts, root))
                else:
                    _add(self._resolve_absolute(parts, root))
        return resolved

    @staticmethod
    def _relative_base(path: Path, root: Path, level: int) -> Path | None:
        base = Path(os.path.abspath(path)).parent
        top = Path(os.path.abspath(root))
        for _ in range(level - 1):
            if base == top or base.parent == base:
                return None
            base = base.parent
        return base

    def _resolve_absolute(self, parts: list[str], root: Path) -> str | None:
        if not parts:
            return None
        for source_root in self._source_roots:
            base = root / source_root if source_root else root
            found = self._resolve_parts(base, parts, root)
            if found is not None:
                return found
        return None

    @staticmethod
    def _resolve_parts(base: Path, parts: list[str], root: Path) -> str | None:
        if not parts:
            init_file = base / "__init__.py"
            return _relative_key(root, init_file) if init_file.is_file() else None
        module_path = base.joinpath(*parts)
        for candidate in (
            module_path.with_suffix(".py"),
            module_path.with_suffix(".pyi"),
            module_path / "__init__.py",
        ):
            if candidate.is_file():
                return _relative_key(root, candidate)
        return None


_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"^\s*//.*$", re.MULTILINE)
_SPECIFIER_RE = re.compile(
    r"""(?:^|[;\s])(?:import|export)\s+(?:[^'"`;]*?\s+from\s+)?['"]([^'"]+)['"]"""
    r"""|\bimport\s*\(\s*['"]([^'"]+)['"]\s*\)"""
    r"""|\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)""",
    re.MULTILINE,
)


class ScriptImportParser:
    """Lexical JavaScript/TypeScript import scanner for relative specifiers.

    Bare package specifiers are external and never part of the graph.
    """

    suffixes = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts")
    _RESOLVE_EXTENSIONS = (".ts", ".tsx", ".d.ts", ".js", ".jsx", ".mjs", ".cjs")

    def __call__(self, path: Path, root: Path) -> list[str]:
        source = path.read_text(encoding="utf-8")
        source = _BLOCK_COMMENT_RE.sub("", source)
        source = _LINE_COMMENT_RE.sub("", source)

        resolved: list[str] = []
        seen: set[str] = {FileHandle(path).relative_to(root)}
        for match in _SPECIFIER_RE.finditer(source):
            specifier = next(group for group in match.groups() if group)
            if not specifier.startswith("."):
                continue
            target = self._resolve_specifier(path.parent / specifier, root)
            if target and target not in seen:
                seen.add(target)
                resolved.append(target)
        return resolved

    def _resolve_specifier(self, base: Path, root: Path) -> str | None:
        candidates: list[Path] = [base]
        candidates.extend(Path(f"{base}{extension}") for extension in self._RESOLVE_EXTENSIONS)
        if base.suffix in {".js", ".jsx", ".mjs", ".cjs"}:
            # ESM sources import "./x.js" while the file on disk is x.ts.
            stem = base.with_suffix("")
            candidates.extend(Path(f"{stem}{extension}") for extension in (".ts", ".tsx"))
        candidates.extend(base / f"index{extension}" for extension in self._RESOLVE_EXTENSIONS)
        for candidate in candidates:
            if candidate.is_file():
                return _relative_key(root, candidate)
        return None


class CompositeImportParser:
    """Dispatch to a parser by file suffix; unknown suffixes import nothing."""

    def __init__(self, parsers: Mapping[str, ImportParser]) -> None:
        self._parsers = {suffix.lower(): parser for suffix, parser in parsers.items()}

    def __call__(self, path: Path, root: Path) -> list[str]:
        parser = self._parsers.get(path.suffix.lower())
        if parser is None:
            return []
        return parser(path, root)


def default_import_parser() -> CompositeImportParser:
    """Parser covering Python and JavaScript/TypeScript sources."""
    python = PythonImportParser()
    script = ScriptImportParser()
    mapping: dict[str, ImportParser] = {suffix: python for suffix in python.suffixes}
    mapping.update({suffix: script for suffix in script.suffixes})
    return CompositeImportParser(mapping)
