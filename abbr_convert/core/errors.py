from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Literal, Optional, TypeVar

# Which stage produced an error; carried into JSON payloads as "source".
ErrorSource = Literal["load", "validate", "lint", "config"]


@dataclass(frozen=True)
class AbbrError(Exception):
    """Error about a token tree document, located by file and JSON-path-like path.

    Validation and lint collect these into lists; only loading raises them.
    Subclasses fix the ``source`` stage.
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    source: ClassVar[ErrorSource] = "validate"

    @property
    def location(self) -> str:
        parts = [p for p in (self.file, self.path) if p]
        return ":".join(parts) if parts else "<tree>"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.file or "", self.path or "", self.code)

    def to_item(self) -> dict[str, Any]:
        """JSON payload entry for ``--format json`` output."""
        return {
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "path": self.path,
            "severity": "error",
            "source": self.source,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.code}: {self.message}"


class TreeLoadError(AbbrError):
    source: ClassVar[ErrorSource] = "load"


class TreeValidationError(AbbrError):
    source: ClassVar[ErrorSource] = "validate"


class TreeLintError(AbbrError):
    source: ClassVar[ErrorSource] = "lint"


class ConfigError(AbbrError):
    """Bad config file, text file or command option."""

    source: ClassVar[ErrorSource] = "config"


E = TypeVar("E", bound=AbbrError)


def sort_errors(errors: Iterable[E]) -> list[E]:
    return sorted(errors, key=AbbrError.sort_key)
