"""Top-level context assembly: graph, ranking, symbols and packing."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict
from pathlib import Path
from typing import Any

from .cache import ContextCache, make_cache_key
from .cancellation import CancellationToken
from .config import ContextSettings
from .graph import DependencyGraph, build_dependency_graph
from .imports import ImportParser, default_import_parser
from .packer import ContextPacker
from .records import (
    ActiveSymbolContext,
    ChangeRecord,
    ContextResult,
    Diagnostic,
    EditorContext,
    FileHandle,
    ScoredFile,
    SymbolEntry,
    count_symbols,
)
from .scanner import scan_workspace
from .scoring import RelevanceScorer
from .summarizer import ContentSummarizer
from .symbols import PythonSymbolProvider, SymbolProvider

__all__ = [
    "CANCELLED_PLACEHOLDER",
    "ContextAssembler",
    "NO_FILES_PLACEHOLDER",
    "NO_ROOT_PLACEHOLDER",
]

LOGGER = logging.getLogger(__name__)

NO_ROOT_PLACEHOLDER = "[No workspace root provided]"
NO_FILES_PLACEHOLDER = "[No candidate files found in workspace]"
CANCELLED_PLACEHOLDER = "[Context assembly cancelled]"


class ContextAssembler:
    """Run the whole pipeline and degrade to placeholders instead of raising."""

    def __init__(
        self,
        settings: ContextSettings | None = None,
        *,
        import_parser: ImportParser | None = None,
        symbol_provider: SymbolProvider | None = None,
        cache: ContextCache | None = None,
    ) -> None:
        self.settings = settings or ContextSettings()
        self._import_parser = import_parser or default_import_parser()
        self._symbol_provider = symbol_provider or PythonSymbolProvider()
        self._cache = cache
        self._scorer = RelevanceScorer(
            self.settings.weights,
            max_files=self.settings.budget.max_ranked_files,
            max_symbols_per_file=self.settings.budget.max_symbols_per_file,
        )
        self._packer = ContextPacker(
            self.settings.budget,
            ContentSummarizer(self.settings.summarizer),
        )

    def assemble(
        self,
        root: Path | None,
        files: Sequence[FileHandle] | None = None,
        *,
        editor: EditorContext | None = None,
        active_symbol: ActiveSymbolContext | None = None,
        changes: Sequence[ChangeRecord] | None = None,
        diagnostics: Sequence[Diagnostic] | None = None,
        symbols: Mapping[str, Sequence[SymbolEntry]] | None = None,
        user_request: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ContextResult:
        """Assemble the context document for ``root``.

        When ``files`` is omitted the workspace is scanned.  Unexpected
        collaborator failures are logged and reported as a placeholder.
        """
        if root is None:
            return ContextResult(text=NO_ROOT_PLACEHOLDER)
        root = Path(root)
        if CancellationToken.requested(cancellation):
            return ContextResult(text=CANCELLED_PLACEHOLDER, cancelled=True)

        try:
            candidates = list(files) if files is not None else scan_workspace(root, self.settings.scan)
            if not candidates:
                return ContextResult(text=NO_FILES_PLACEHOLDER)
            if editor is not None and editor.file not in candidates and editor.file.path.is_file():
                candidates.append(editor.file)
            request = user_request or (editor.instruction if editor is not None else None)

            cache_key: str | None = None
            if self._cache is not None:
                cache_key = make_cache_key(
                    root,
                    [handle.relative_to(root) for handle in candidates],
                    self._cache_options(editor, active_symbol, changes, diagnostics, request),
                )
                cached = self._cache.get(cache_key)
                if cached is not None:
                    LOGGER.debug("Context cache hit for %d file(s)", len(candidates))
                    return cached

            result = self._build(
                root,
                candidates,
                editor=editor,
                active_symbol=active_symbol,
                changes=changes,
                diagnostics=diagnostics,
                symbols=symbols,
                user_request=request,
                cancellation=cancellation,
            )
            if self._cache is not None and cache_key is not None and not result.cancelled:
                self._cache.put(cache_key, result, candidates)
            return result
        except Exception as error:  # noqa: BLE001 - callers receive degraded output, never a crash
            LOGGER.warning("Failed to build project context: %s", error, exc_info=True)
            return ContextResult(text=f"[Error building project context: {error}]")

    def rank(
        self,
        root: Path,
        files: Sequence[FileHandle],
        *,
        editor: EditorContext | None = None,
        active_symbol: ActiveSymbolContext | None = None,
        graph: DependencyGraph | None = None,
        symbols: Mapping[str, Sequence[SymbolEntry]] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[ScoredFile]:
        """Rank ``files``; falls back to path order when nothing scores."""
        if graph is None:
            graph = self.dependency_graph(root, files, cancellation=cancellation)
        symbol_map = symbols if symbols is not None else self.collect_symbols(root, files)
        ranked = self._scorer.rank(
            files,
            root,
            editor=editor,
            graph=graph,
            active_symbol=active_symbol,
            symbol_counts={path: count_symbols(entries) for path, entries in symbol_map.items()},
            cancellation=cancellation,
        )
        if ranked:
            return ranked
        LOGGER.debug("No relevance signal matched; using candidates in path order")
        fallback = sorted(
            (ScoredFile(file=handle, path=handle.relative_to(root)) for handle in files),
            key=lambda entry: entry.path,
        )
        return fallback[: self.settings.budget.max_ranked_files]

    def dependency_graph(
        self,
        root: Path,
        files: Sequence[FileHandle],
        *,
        cancellation: CancellationToken | None = None,
    ) -> DependencyGraph:
        return build_dependency_graph(
            files,
            root,
            self._import_parser,
            max_workers=self.settings.max_workers,
            cancellation=cancellation,
        )

    def collect_symbols(
        self, root: Path, files: Sequence[FileHandle]
    ) -> dict[str, list[SymbolEntry]]:
        """Ask the symbol provider for every file; failures drop that file."""
        symbol_map: dict[str, list[SymbolEntry]] = {}
        for handle in files:
            path_key = handle.relative_to(root)
            try:
                entries = self._symbol_provider(handle.path)
            except (OSError, UnicodeDecodeError, ValueError) as error:
                LOGGER.warning("Symbol lookup failed for %s: %s", path_key, error)
                continue
            if entries:
                symbol_map[path_key] = list(entries)
        return symbol_map

    def _build(
        self,
        root: Path,
        candidates: Sequence[FileHandle],
        *,
        editor: EditorContext | None,
        active_symbol: ActiveSymbolContext | None,
        changes: Sequence[ChangeRecord] | None,
        diagnostics: Sequence[Diagnostic] | None,
        symbols: Mapping[str, Sequence[SymbolEntry]] | None,
        user_request: str | None,
        cancellation: CancellationToken | None,
    ) -> ContextResult:
        graph = self.dependency_graph(root, candidates, cancellation=cancellation)
        if CancellationToken.requested(cancellation):
            return ContextResult(text=CANCELLED_PLACEHOLDER, cancelled=True)

        symbol_map = symbols if symbols is not None else self.collect_symbols(root, candidates)
        ranked = self.rank(
            root,
            candidates,
            editor=editor,
            active_symbol=active_symbol,
            graph=graph,
            symbols=symbol_map,
            cancellation=cancellation,
        )
        if CancellationToken.requested(cancellation):
            return ContextResult(text=CANCELLED_PLACEHOLDER, cancelled=True)

        result = self._packer.pack(
            ranked,
            root,
            candidate_paths=[handle.relative_to(root) for handle in candidates],
            graph=graph,
            changes=changes,
            diagnostics=diagnostics,
            symbols=symbol_map,
            active_symbol=active_symbol,
            user_request=user_request,
            cancellation=cancellation,
        )
        if result.cancelled and not result.text:
            return ContextResult(text=CANCELLED_PLACEHOLDER, cancelled=True)
        return result

    def _cache_options(
        self,
        editor: EditorContext | None,
        active_symbol: ActiveSymbolContext | None,
        changes: Sequence[ChangeRecord] | None,
        diagnostics: Sequence[Diagnostic] | None,
        request: str | None,
    ) -> dict[str, Any]:
        return {
            "settings": self.settings.model_dump(mode="json"),
            "editor": asdict(editor) if editor is not None else None,
            "active_symbol": asdict(active_symbol) if active_symbol is not None else None,
            "changes": [asdict(change) for change in changes or ()],
            "diagnostics": [asdict(item) for item in diagnostics or ()],
            "request": request,
        }
