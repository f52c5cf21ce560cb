from __future__ import annotations

import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class SampleWorkspace:
    """Fixture payload describing a small mixed Python/TypeScript workspace."""

    root: Path

    def path(self, relative: str) -> Path:
        return self.root / relative


def _write(root: Path, relative: str, body: str) -> None:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")


@pytest.fixture()
def sample_workspace(tmp_path: Path) -> SampleWorkspace:
    """Create a workspace with a Python package, a TS module set and noise."""

    root = tmp_path / "workspace"
    root.mkdir()

    _write(
        root,
        "src/shop/__init__.py",
        """
        \"\"\"Shop package.\"\"\"

        from .cart import Cart

        __all__ = ["Cart"]
        """,
    )
    _write(
        root,
        "src/shop/cart.py",
        """
        from __future__ import annotations

        from .pricing import apply_discount

        TAX_RATE = 0.2


        class Cart:
            def __init__(self) -> None:
                self.items: list[float] = []

            def add(self, price: float) -> None:
                self.items.append(price)

            def total(self) -> float:
                return apply_discount(sum(self.items)) * (1 + TAX_RATE)
        """,
    )
    _write(
        root,
        "src/shop/pricing.py",
        """
        def apply_discount(amount: float) -> float:
            return amount * 0.9
        """,
    )
    _write(
        root,
        "web/app.ts",
        """
        import { format } from "./format";
        import express from "express";

        export function main(): string {
            return format(1);
        }
        """,
    )
    _write(
        root,
        "web/format.ts",
        """
        export function format(value: number): string {
            return `${value}`;
        }
        """,
    )
    _write(root, "node_modules/pkg/index.js", "module.exports = {};\n")
    _write(root, "README.md", "# Sample\n")

    return SampleWorkspace(root=root)
