from __future__ import annotations

from typing import List, Optional, Sequence

__all__ = ["JournalInputError", "ParseError", "FormatError", "ValidationError"]


class JournalInputError(ValueError):
    """Base class for rejected journal input; the user fixes and resubmits."""


class ParseError(JournalInputError):
    """Raised when the payload is not valid JSON or not a non-empty array."""


class FormatError(JournalInputError):
    """Raised when the payload matches none of the known journal shapes."""


class ValidationError(JournalInputError):
    """Raised when one or more records violate the detected schema.

    ``errors`` keeps every violation; the message lists at most ``limit``.
    """

    def __init__(self, errors: Sequence[str], limit: int = 5, *, label: Optional[str] = None) -> None:
        self.errors: List[str] = list(errors)
        self.label = label
        shown = self.errors[:limit]
        message = "; ".join(shown)
        if len(self.errors) > limit:
            message += "; …"
        prefix = f"Invalid {label} data" if label else "Invalid journal data"
        super().__init__(f"{prefix} ({len(self.errors)} issue(s)): {message}")
