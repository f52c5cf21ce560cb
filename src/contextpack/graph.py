"""Forward and reverse import graphs over the candidate files."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from .cancellation import CancellationToken
from .imports import ImportParser, default_import_parser
from .records import FileHandle, normalize_relative_path

__all__ = [
    "DEFAULT_MAX_WORKERS",
    "DependencyGraph",
    "build_dependency_graph",
    "build_reverse_dependency_graph",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8

# Relative path -> ordered relative paths it imports.  A missing key means the
# file could not be parsed, which differs from an empty import list.
DependencyGraph = dict[str, list[str]]


def build_dependency_graph(
    files: Sequence[FileHandle],
    root: Path,
    parser: ImportParser | None = None,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancellation: CancellationToken | None = None,
) -> DependencyGraph:
    """Parse every file's imports on a bounded worker pool.

    Files whose parser raises are logged and left out of the graph.  Keys keep
    the order of ``files`` regardless of completion order.
    """
    import_parser = parser or default_import_parser()
    graph: DependencyGraph = {}
    if not files:
        return graph

    def _parse(handle: FileHandle) -> list[str] | None:
        if CancellationToken.requested(cancellation):
            return None
        return import_parser(handle.path, root)

    pending: list[tuple[str, Future[list[str] | None]]] = []
    with ThreadPoolExecutor(
        max_workers=max(1, max_workers),
        thread_name_prefix="contextpack-graph",
    ) as executor:
        for handle in files:
            pending.append((handle.relative_to(root), executor.submit(_parse, handle)))

        for index, (path_key, future) in enumerate(pending):
            if CancellationToken.requested(cancellation):
                for _, remaining in pending[index:]:
                    remaining.cancel()
                LOGGER.debug(
                    "Dependency graph cancelled after %d of %d file(s)", index, len(pending)
                )
                break
            try:
                imports = future.result()
            except Exception as error:  # noqa: BLE001 - parser failures are isolated per file
                LOGGER.warning("Failed to parse imports for %s: %s", path_key, error)
                continue
            if imports is None:
                continue
            graph[path_key] = _dedupe(path_key, imports)

    LOGGER.debug("Built dependency graph for %d of %d file(s)", len(graph), len(files))
    return graph


def build_reverse_dependency_graph(graph: Mapping[str, Sequence[str]]) -> DependencyGraph:
    """Invert ``graph`` so each imported path maps to its importers."""
    reverse: DependencyGraph = {}
    for path_key, imports in graph.items():
        for dependency in imports:
            importers = reverse.setdefault(dependency, [])
            if path_key not in importers:
                importers.append(path_key)
    return reverse


def _dedupe(path_key: str, imports: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for entry in imports:
        normalized = normalize_relative_path(entry)
        if not normalized or normalized == path_key or normalized in seen:
            continue
        seen.add(normalized)
        cleaned.append(normalized)
    return cleaned
