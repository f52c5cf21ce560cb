"""Enumerate candidate workspace files."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .config import ScanSettings
from .records import FileHandle

__all__ = ["scan_workspace"]

LOGGER = logging.getLogger(__name__)


def scan_workspace(root: Path, settings: ScanSettings | None = None) -> list[FileHandle]:
    """Return project files under ``root`` sorted by relative path.

    Excluded directories are pruned during the walk; excluded names, suffixes
    and files above ``max_file_size`` are skipped.
    """
    rules = settings or ScanSettings()
    root = Path(root)
    if not root.is_dir():
        return []

    handles: list[FileHandle] = []
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in rules.exclude_dirs)
        for filename in filenames:
            if filename in rules.exclude_files:
                continue
            if Path(filename).suffix.lower() in rules.exclude_suffixes:
                continue
            path = Path(current) / filename
            try:
                size = path.stat().st_size
            except OSError as error:
                LOGGER.debug("Skipping unreadable file %s: %s", path, error)
                continue
            if size > rules.max_file_size:
                LOGGER.debug("Skipping %s: %d bytes exceeds size limit", path, size)
                continue
            handles.append(FileHandle(path))

    handles.sort(key=lambda handle: handle.relative_to(root))
    return handles
