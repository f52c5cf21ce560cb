"""Python symbol provider built from libcst position metadata."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol

import libcst as cst
from libcst import metadata

from .records import Range, SymbolEntry, SymbolKind

__all__ = ["PythonSymbolProvider", "SymbolProvider"]

LOGGER = logging.getLogger(__name__)


class SymbolProvider(Protocol):
    """Capability returning the symbol tree of one file."""

    def __call__(self, path: Path) -> list[SymbolEntry]: ...


class _SymbolCollector(cst.CSTVisitor):
    """Collect classes, functions and module/class level names as a tree."""

    METADATA_DEPENDENCIES = (metadata.PositionProvider,)

    def __init__(self, module: cst.Module) -> None:
        self._module = module
        self._stack: List[SymbolEntry] = []
        self._function_depth = 0
        self.symbols: List[SymbolEntry] = []

    def visit_ClassDef(self, node: cst.ClassDef) -> Optional[bool]:
        if self._function_depth:
            return False
        bases = [self._module.code_for_node(base.value) for base in node.bases]
        detail = f"class {node.name.value}"
        if bases:
            detail = f"{detail}({', '.join(bases)})"
        entry = SymbolEntry(
            name=node.name.value,
            kind=SymbolKind.CLASS,
            range=self._range(node),
            detail=detail,
        )
        self._attach(entry)
        self._stack.append(entry)
        return True

    def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
        if self._function_depth == 0 and self._stack:
            self._stack.pop()

    def visit_FunctionDef(self, node: cst.FunctionDef) -> Optional[bool]:
        self._function_depth += 1
        if self._function_depth > 1:
            return False
        params = self._module.code_for_node(node.params)
        detail = f"{node.name.value}({params})"
        if node.returns is not None:
            detail = f"{detail} -> {self._module.code_for_node(node.returns.annotation)}"
        entry = SymbolEntry(
            name=node.name.value,
            kind=self._function_kind(node),
            range=self._range(node),
            detail=detail,
        )
        self._attach(entry)
        return True

    def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
        self._function_depth -= 1

    def visit_Assign(self, node: cst.Assign) -> Optional[bool]:
        for target in node.targets:
            self._add_name(target.target, node)
        return False

    def visit_AnnAssign(self, node: cst.AnnAssign) -> Optional[bool]:
        self._add_name(node.target, node)
        return False

    def _add_name(self, target: cst.BaseExpression, node: cst.CSTNode) -> None:
        if self._function_depth or not isinstance(target, cst.Name):
            return
        name = target.value
        if self._stack:
            kind = SymbolKind.FIELD
        elif name.isupper():
            kind = SymbolKind.CONSTANT
        else:
            kind = SymbolKind.VARIABLE
        self._attach(SymbolEntry(name=name, kind=kind, range=self._range(node)))

    def _function_kind(self, node: cst.FunctionDef) -> SymbolKind:
        if not self._stack:
            return SymbolKind.FUNCTION
        if node.name.value == "__init__":
            return SymbolKind.CONSTRUCTOR
        for decorator in node.decorators:
            expression = decorator.decorator
            if isinstance(expression, cst.Name) and expression.value == "property":
                return SymbolKind.PROPERTY
        return SymbolKind.METHOD

    def _attach(self, entry: SymbolEntry) -> None:
        if self._stack:
            self._stack[-1].children.append(entry)
        else:
            self.symbols.append(entry)

    def _range(self, node: cst.CSTNode) -> Range:
        code_range = self.get_metadata(metadata.PositionProvider, node)
        # libcst lines are 1-based.
        return Range.from_lines(
            code_range.start.line - 1,
            code_range.end.line - 1,
            code_range.end.column,
        )


class PythonSymbolProvider:
    """Extract :class:`SymbolEntry` trees from Python sources."""

    suffixes = (".py", ".pyi")

    def __call__(self, path: Path) -> list[SymbolEntry]:
        if path.suffix.lower() not in self.suffixes:
            return []
        source = path.read_text(encoding="utf-8")
        return self.symbols_for_source(source, origin=path.as_posix())

    def symbols_for_source(self, source: str, *, origin: str = "<string>") -> list[SymbolEntry]:
        try:
            module = cst.parse_module(source)
        except cst.ParserSyntaxError as error:
            LOGGER.debug("Skipping symbols for %s: %s", origin, error)
            return []
        wrapper = metadata.MetadataWrapper(module)
        collector = _SymbolCollector(wrapper.module)
        wrapper.visit(collector)
        return collector.symbols
