"""Error types raised by the invocation pipeline."""

from __future__ import annotations

from typing import Iterable, List, Optional


class IdlCallError(Exception):
    """Base class for every error the pipeline reports to a caller."""


class IdlValidationError(IdlCallError):
    """Raised when an IDL document fails structural validation."""


class ParseError(IdlCallError, ValueError):
    """A raw string could not be parsed into the value its type requires."""

    def __init__(self, message: str, raw: Optional[str] = None, field: Optional[str] = None) -> None:
        self.message = message
        self.raw = raw
        self.field = field
        super().__init__(self._render())

    def _render(self) -> str:
        if self.field:
            return f"--{self.field}: {self.message}"
        return self.message

    def for_field(self, field: str) -> "ParseError":
        return ParseError(self.message, raw=self.raw, field=field)


class MissingFieldsError(IdlCallError):
    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        super().__init__("Missing required arguments: " + ", ".join(self.names))


class UnresolvedDependencyError(IdlCallError):
    def __init__(self, reference: str, message: Optional[str] = None) -> None:
        self.reference = reference
        super().__init__(message or f"unresolved dependency: '{reference}'")


class UnsupportedTypeError(IdlCallError):
    """An opaque type reached a stage that needs its structure."""


class EncodeError(IdlCallError):
    """Type/value mismatch handed to the word encoder."""


class CollaboratorError(IdlCallError):
    def __init__(self, collaborator: str, detail: str) -> None:
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator} failed: {detail}")


class InvocationError(IdlCallError):
    """Every per-field problem found while parsing one invocation."""

    def __init__(self, errors: List[IdlCallError]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(str(err) for err in self.errors))


def with_context(exc: IdlCallError, prefix: str) -> IdlCallError:
    """Prefix the message of ``exc`` in place, keeping its type."""
    exc.args = (f"{prefix}: {exc}",)
    return exc
