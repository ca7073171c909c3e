"""Errors raised while normalizing KEN_ALL rows."""

from __future__ import annotations

from typing import Optional


class KenAllError(Exception):
    """Base error for this package."""

    issue = "error"


class MalformedRowError(KenAllError):
    """Raised when a row does not have exactly the expected column count."""

    issue = "malformed_row"

    def __init__(self, count: int, expected: int, line_no: Optional[int] = None):
        self.count = count
        self.expected = expected
        self.line_no = line_no
        where = f"input-line={line_no}: " if line_no is not None else ""
        super().__init__(f"{where}column count is wrong: expected {expected}, got {count}")


class UnterminatedContinuationError(KenAllError):
    """Raised when input ends while a multi-row street name is still open."""

    issue = "unterminated_continuation"

    def __init__(self, pending: int, street: str):
        self.pending = pending
        self.street = street
        super().__init__(
            f"input ended inside a multi-row street name: {pending} row(s) pending, starting at {street!r}"
        )


class OutputEncodingError(KenAllError):
    """Raised when a normalized row cannot be written in the output encoding."""

    issue = "output_encoding"

    def __init__(self, encoding: str, line_no: int, reason: str):
        self.encoding = encoding
        self.line_no = line_no
        super().__init__(f"output-line={line_no}: cannot encode as {encoding}: {reason}")


class UnsupportedEncodingError(KenAllError):
    """Raised when a requested source or output encoding is unknown."""

    issue = "unsupported_encoding"

    def __init__(self, encoding: str):
        self.encoding = encoding
        super().__init__(f"unknown encoding: {encoding}")


class CsvReadError(KenAllError):
    """Raised when the CSV tokenizer itself rejects the input."""

    issue = "malformed_row"

    def __init__(self, line_no: Optional[int], reason: str):
        self.line_no = line_no
        self.reason = reason
        where = f"input-line={line_no}: " if line_no is not None else ""
        super().__init__(f"{where}failed to read csv: {reason}")
