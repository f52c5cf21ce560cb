from __future__ import annotations

import logging

from contextpack.tree import DirectoryNode, FileNode, build_file_tree, render_file_tree


def test_render_lists_directories_before_files() -> None:
    tree = build_file_tree(["README.md", "src/a.py", "src/pkg/b.py", "./src/pkg/b.py"])

    assert render_file_tree(tree) == "\n".join(
        [
            ".",
            "├── src/",
            "│   ├── pkg/",
            "│   │   └── b.py",
            "│   └── a.py",
            "└── README.md",
        ]
    )


def test_file_used_as_directory_is_rejected(caplog) -> None:
    root = DirectoryNode(".")

    with caplog.at_level(logging.WARNING, logger="contextpack.tree"):
        assert root.add_path("config")
        assert not root.add_path("config/settings.py")

    assert isinstance(root.children["config"], FileNode)
    assert "Tree conflict" in caplog.text


def test_directory_used_as_file_is_rejected(caplog) -> None:
    root = DirectoryNode(".")

    with caplog.at_level(logging.WARNING, logger="contextpack.tree"):
        assert root.add_path("lib/util.py")
        assert not root.add_path("lib")

    lib = root.children["lib"]
    assert isinstance(lib, DirectoryNode)
    assert list(lib.children) == ["util.py"]
    assert "already a directory" in caplog.text


def test_backslash_paths_are_normalised() -> None:
    tree = build_file_tree(["pkg\\mod.py"])

    assert isinstance(tree.children["pkg"], DirectoryNode)
