from __future__ import annotations

from typing import Optional


class ParseError(ValueError):
    """A document whose front matter cannot be read."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def with_path(self, path: str) -> "ParseError":
        return ParseError(self.message, path)

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class BuildError(RuntimeError):
    pass
