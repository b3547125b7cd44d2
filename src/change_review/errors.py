"""Exception taxonomy for change-review.

Parse and session errors are raised to the caller. Analysis passes never
raise for a missing or unreadable repository; they yield no findings.
"""


class ReviewError(Exception):
    """Base exception for all change-review errors."""


class DiffParseError(ReviewError):
    """The unified diff could not be tokenized.

    Attributes:
        line_number: 1-based line in the raw input where parsing failed, if known.
    """

    def __init__(self, message: str, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class DecisionStateError(ReviewError):
    """A decision operation referenced a file index outside the diff."""

    def __init__(self, index: int, total: int) -> None:
        super().__init__(f"file_index {index} out of range (diff has {total} files)")
        self.index = index
        self.total = total


class SessionNotLoadedError(ReviewError):
    """A decision or finish operation arrived before any diff was loaded."""


class ProtocolError(ReviewError):
    """An inbound session message was malformed or of an unknown type."""
