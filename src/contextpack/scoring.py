"""Multi-signal relevance ranking of candidate files."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Mapping, Sequence
from pathlib import Path

from .cancellation import CancellationToken
from .config import RelevanceWeights
from .graph import build_reverse_dependency_graph
from .records import ActiveSymbolContext, EditorContext, FileHandle, ScoredFile

__all__ = ["RelevanceScorer"]

LOGGER = logging.getLogger(__name__)


class RelevanceScorer:
    """Accumulate weighted signals per file and rank the result.

    Every signal that matches adds its weight; no signal excludes another, so
    adding a matching signal can only raise a file's score.
    """

    def __init__(
        self,
        weights: RelevanceWeights | None = None,
        *,
        max_files: int = 25,
        max_symbols_per_file: int = 40,
    ) -> None:
        self._weights = weights or RelevanceWeights()
        self._max_files = max_files
        self._max_symbols_per_file = max_symbols_per_file

    @property
    def weights(self) -> RelevanceWeights:
        return self._weights

    def score(
        self,
        files: Sequence[FileHandle],
        root: Path,
        *,
        editor: EditorContext | None = None,
        graph: Mapping[str, Sequence[str]] | None = None,
        reverse_graph: Mapping[str, Sequence[str]] | None = None,
        active_symbol: ActiveSymbolContext | None = None,
        symbol_counts: Mapping[str, int] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[ScoredFile]:
        """Score every candidate, including files that match nothing."""
        weights = self._weights
        active_path = editor.file.relative_to(root) if editor is not None else None
        if reverse_graph is None and graph is not None:
            reverse_graph = build_reverse_dependency_graph(graph)

        dependencies: set[str] = set()
        importers: set[str] = set()
        if active_path is not None:
            dependencies = set((graph or {}).get(active_path, ()))
            importers = set((reverse_graph or {}).get(active_path, ()))

        definitions: set[str] = set()
        implementations: set[str] = set()
        type_definitions: set[str] = set()
        referenced_types: set[str] = set()
        call_paths: set[str] = set()
        symbol_related: set[str] = set()
        if active_symbol is not None:
            definitions = {location.path for location in active_symbol.definitions}
            implementations = {location.path for location in active_symbol.implementations}
            type_definitions = {location.path for location in active_symbol.type_definitions}
            referenced_types = set(active_symbol.referenced_types)
            call_paths = active_symbol.call_paths()
            symbol_related = active_symbol.related_paths()

        active_dir = posixpath.dirname(active_path) if active_path is not None else None
        counts = symbol_counts or {}

        scored: list[ScoredFile] = []
        for handle in files:
            if CancellationToken.requested(cancellation):
                LOGGER.debug("Relevance scoring cancelled after %d file(s)", len(scored))
                break
            path_key = handle.relative_to(root)
            entry = ScoredFile(file=handle, path=path_key)

            if path_key == active_path:
                entry.add("active_file", weights.active_file)
            if path_key in definitions:
                entry.add("definition", weights.definition)
            if path_key in implementations:
                entry.add("implementation", weights.implementation)
            if path_key in type_definitions:
                entry.add("type_definition", weights.type_definition)
            if path_key in referenced_types:
                entry.add("referenced_type", weights.referenced_type)
            if path_key in call_paths:
                entry.add("call_hierarchy", weights.call_hierarchy)
            if path_key in symbol_related:
                entry.add("symbol_related", weights.symbol_related)
            if path_key in dependencies:
                entry.add("direct_dependency", weights.direct_dependency)
            if path_key in importers:
                entry.add("reverse_dependency", weights.reverse_dependency)
            if active_dir is not None and path_key != active_path:
                self._score_locality(entry, active_dir)
            if counts.get(path_key, 0) > self._max_symbols_per_file:
                entry.add("symbol_density", weights.symbol_density)

            scored.append(entry)
        return scored

    def rank(
        self,
        files: Sequence[FileHandle],
        root: Path,
        *,
        editor: EditorContext | None = None,
        graph: Mapping[str, Sequence[str]] | None = None,
        reverse_graph: Mapping[str, Sequence[str]] | None = None,
        active_symbol: ActiveSymbolContext | None = None,
        symbol_counts: Mapping[str, int] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[ScoredFile]:
        """Return files by descending score, active file first, capped in size.

        Zero-score files are dropped.  Ties break on the relative path.
        """
        scored = self.score(
            files,
            root,
            editor=editor,
            graph=graph,
            reverse_graph=reverse_graph,
            active_symbol=active_symbol,
            symbol_counts=symbol_counts,
            cancellation=cancellation,
        )
        active_path = editor.file.relative_to(root) if editor is not None else None

        active_entry: ScoredFile | None = None
        ranked: list[ScoredFile] = []
        for entry in scored:
            if entry.path == active_path and active_entry is None:
                active_entry = entry
            elif entry.score > 0:
                ranked.append(entry)
        ranked.sort(key=lambda entry: (-entry.score, entry.path))
        if active_entry is not None:
            ranked.insert(0, active_entry)

        dropped = len(scored) - len(ranked)
        if dropped:
            LOGGER.debug("Dropped %d zero-score file(s) from ranking", dropped)
        return ranked[: self._max_files]

    def _score_locality(self, entry: ScoredFile, active_dir: str) -> None:
        weights = self._weights
        file_dir = posixpath.dirname(entry.path)
        if file_dir == active_dir:
            entry.add("same_directory", weights.same_directory)
            return
        if file_dir and active_dir and posixpath.dirname(file_dir) == posixpath.dirname(active_dir):
            entry.add("sibling_directory", weights.sibling_directory)
            return
        depth = _shared_depth(file_dir, active_dir)
        if depth >= weights.min_shared_depth:
            entry.add("shared_ancestor", weights.shared_ancestor * depth)


def _shared_depth(first: str, second: str) -> int:
    """Count leading directory segments shared by two relative directories."""
    if not first or not second:
        return 0
    depth = 0
    for left, right in zip(first.split("/"), second.split("/")):
        if left != right:
            break
        depth += 1
    return depth
