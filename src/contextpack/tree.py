"""File-structure tree with explicit directory and file nodes."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union

from .records import normalize_relative_path

__all__ = [
    "DirectoryNode",
    "FileNode",
    "TreeNode",
    "build_file_tree",
    "render_file_tree",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FileNode:
    """Leaf entry for one file."""

    name: str


@dataclass(slots=True)
class DirectoryNode:
    """Directory entry owning its named children."""

    name: str
    children: dict[str, TreeNode] = field(default_factory=dict)

    def add_path(self, path: str) -> bool:
        """Insert ``path`` below this directory.

        Returns False, after logging a warning, when the path would use an
        existing file as a directory or an existing directory as a file.
        """
        parts = [part for part in normalize_relative_path(path).split("/") if part and part != "."]
        if not parts:
            return False
        node: DirectoryNode = self
        for index, part in enumerate(parts[:-1]):
            child = node.children.get(part)
            if child is None:
                child = DirectoryNode(part)
                node.children[part] = child
            elif isinstance(child, FileNode):
                LOGGER.warning(
                    "Tree conflict: %s is a file but %s treats it as a directory",
                    "/".join(parts[: index + 1]),
                    path,
                )
                return False
            node = child

        leaf = parts[-1]
        existing = node.children.get(leaf)
        if isinstance(existing, DirectoryNode):
            LOGGER.warning("Tree conflict: %s is already a directory", path)
            return False
        if existing is None:
            node.children[leaf] = FileNode(leaf)
        return True


TreeNode = Union[DirectoryNode, FileNode]


def build_file_tree(paths: Iterable[str], root_name: str = ".") -> DirectoryNode:
    """Build a tree from relative file paths."""
    root = DirectoryNode(root_name)
    for path in paths:
        root.add_path(path)
    return root


def render_file_tree(root: DirectoryNode) -> str:
    """Render ``root`` with box-drawing connectors, directories first."""
    lines: list[str] = [root.name]

    def render(node: DirectoryNode, prefix: str) -> None:
        entries = sorted(
            node.children.values(),
            key=lambda child: (0 if isinstance(child, DirectoryNode) else 1, child.name),
        )
        for position, child in enumerate(entries):
            is_last = position == len(entries) - 1
            connector = "└── " if is_last else "├── "
            suffix = "/" if isinstance(child, DirectoryNode) else ""
            lines.append(f"{prefix}{connector}{child.name}{suffix}")
            if isinstance(child, DirectoryNode) and child.children:
                render(child, prefix + ("    " if is_last else "│   "))

    render(root, "")
    return "\n".join(lines)
