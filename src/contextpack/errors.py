"""Exception hierarchy for the context-assembly pipeline."""

from __future__ import annotations

__all__ = ["ConfigError", "ContextPackError", "ImportParseError"]


class ContextPackError(RuntimeError):
    """Base class for contextpack failures."""


class ConfigError(ContextPackError):
    """Raised when settings cannot be loaded or validated."""


class ImportParseError(ContextPackError):
    """Raised by an import parser that cannot extract a file's imports."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
