"""Exception types raised by ladderplc."""

from typing import List, Optional, Sequence


class LadderError(Exception):
    """Base class for all ladderplc errors."""


class ParseError(LadderError):
    """Raised for a malformed IL instruction line."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ValidationError(LadderError):
    """Raised when an entity fails its structural invariants.

    Carries every failing field, not just the first one found.
    """

    def __init__(self, entity: str, errors: Sequence[str]):
        self.entity = entity
        self.errors: List[str] = list(errors)
        super().__init__(f"Invalid {entity}: " + "; ".join(self.errors))


class CyclicNetworkError(LadderError):
    """Raised when evaluation re-enters an element that feeds its own input."""

    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__("Cyclic network detected: " + " -> ".join(self.path))
