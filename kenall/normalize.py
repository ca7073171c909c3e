"""
Core normalization logic for KEN_ALL.CSV.

Responsibilities:
- join street names that Japan Post splits over several rows
- strip / expand bracketed street annotations (annotations.py)
- source decoding, width folding and output encoding
- run report
"""

from __future__ import annotations

import base64
import codecs
import csv
import hashlib
import io
import logging
import unicodedata
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, Iterator, List, Optional, Sequence, TextIO

from charset_normalizer import from_bytes

from . import config
from .annotations import expand_street, is_continuation_end, is_continuation_start
from .codec import decode_fields, encode_record, iter_rows, parse_lines
from .errors import OutputEncodingError, UnsupportedEncodingError, UnterminatedContinuationError
from .models import ZipCodeRecord
from .rules import AUTO_ENCODING, LEGACY_ENCODING, RECORD_TERMINATOR, SOURCE_ENCODING, UTF8_ENCODING

logger = logging.getLogger(__name__)


class Normalizer:
    """
    Push/pop normalizer: one raw record in, zero or more normalized records out.

    Records are held back while a street name split over several rows is
    still open; everything else is expanded immediately and can be popped
    in generation order.
    """

    def __init__(self) -> None:
        self._inputs: Deque[ZipCodeRecord] = deque()
        self._outputs: Deque[ZipCodeRecord] = deque()
        self.pushed = 0
        self.popped = 0
        self.joined = 0

    @property
    def pending(self) -> int:
        """Number of rows waiting for the end of a multi-row street name."""
        return len(self._inputs)

    def peek_pending(self) -> Optional[ZipCodeRecord]:
        return self._inputs[0] if self._inputs else None

    def push(self, record: ZipCodeRecord) -> None:
        self._inputs.append(record)
        self.pushed += 1
        self._advance()

    def can_pop(self) -> bool:
        return len(self._outputs) > 0

    def pop(self) -> Optional[ZipCodeRecord]:
        if not self._outputs:
            return None
        self.popped += 1
        return self._outputs.popleft()

    def _advance(self) -> None:
        while self._inputs:
            if is_continuation_start(self._inputs[0].street) and not self._join_continuation():
                return
            self._outputs.extend(expand_street(self._inputs.popleft()))

    def _join_continuation(self) -> bool:
        end = next(
            (i for i in range(1, len(self._inputs)) if is_continuation_end(self._inputs[i].street)),
            None,
        )
        if end is None:
            return False

        parts = [self._inputs.popleft() for _ in range(end)]
        last = self._inputs[0]
        self._inputs[0] = last.model_copy(
            update={
                "street": "".join(p.street for p in parts) + last.street,
                "street_kana": "".join(p.street_kana for p in parts) + last.street_kana,
            }
        )
        self.joined += 1
        return True


def fold_width(text: str) -> str:
    """Halfwidth kana -> fullwidth, fullwidth ASCII -> halfwidth."""
    return unicodedata.normalize("NFKC", text)


def iter_normalized(
    rows: Iterable[Sequence[str]],
    trim: bool,
    normalizer: Optional[Normalizer] = None,
) -> Iterator[ZipCodeRecord]:
    """
    Feed CSV rows through a Normalizer and yield records as they become ready.

    Raises:
        MalformedRowError: a row does not have 15 columns (line number attached).
        CsvReadError: the CSV tokenizer rejected a row (line number attached).
        UnterminatedContinuationError: input ended inside a multi-row street name.
    """
    if normalizer is None:
        normalizer = Normalizer()

    for line_no, cols in iter_rows(rows):
        normalizer.push(decode_fields(cols, trim, line_no=line_no))
        while normalizer.can_pop():
            yield normalizer.pop()

    if normalizer.pending:
        head = normalizer.peek_pending()
        raise UnterminatedContinuationError(normalizer.pending, head.street if head else "")


def normalize_lines(
    lines: Iterable[str],
    trim: bool = True,
    width: bool = False,
    normalizer: Optional[Normalizer] = None,
) -> Iterator[str]:
    """Normalize CSV text lines, yielding output lines without terminators."""
    for record in iter_normalized(csv.reader(lines), trim, normalizer=normalizer):
        line = encode_record(record)
        yield fold_width(line) if width else line


def write_normalized(
    src: TextIO,
    dst: TextIO,
    trim: bool = True,
    width: bool = False,
    normalizer: Optional[Normalizer] = None,
) -> Normalizer:
    """Stream src to dst, separating records with RECORD_TERMINATOR."""
    if normalizer is None:
        normalizer = Normalizer()
    written = 0
    for line in normalize_lines(src, trim=trim, width=width, normalizer=normalizer):
        try:
            dst.write(line if written == 0 else RECORD_TERMINATOR + line)
        except UnicodeEncodeError as ex:
            raise OutputEncodingError(getattr(dst, "encoding", "?"), written + 1, ex.reason) from ex
        written += 1
    return normalizer


@dataclass(frozen=True)
class NormalizeOptions:
    trim: bool = field(default_factory=lambda: config.DEFAULT_TRIM)
    width: bool = field(default_factory=lambda: config.DEFAULT_WIDTH)
    utf8: bool = field(default_factory=lambda: config.DEFAULT_UTF8)
    source_encoding: str = field(default_factory=lambda: config.DEFAULT_SOURCE_ENCODING)

    @property
    def output_encoding(self) -> str:
        return UTF8_ENCODING if self.utf8 else LEGACY_ENCODING


def _check_encoding(name: str) -> None:
    if name == AUTO_ENCODING:
        return
    try:
        codecs.lookup(name)
    except LookupError as ex:
        raise UnsupportedEncodingError(name) from ex


def decode_source(raw: bytes, source_encoding: str) -> tuple[str, Dict[str, Any]]:
    """
    Decode input bytes to text.

    Rules:
    - "auto": detect best-effort via charset-normalizer, falling back to cp932.
    - A UTF-8 BOM is consumed rather than kept as the first character.
    - If decoding fails, decode with replacement characters and report it.
    """
    _check_encoding(source_encoding)

    detected = None
    decode_used = source_encoding
    if source_encoding == AUTO_ENCODING:
        match = from_bytes(raw).best()
        if match is not None:
            detected = match.encoding
        decode_used = detected or SOURCE_ENCODING

    if raw.startswith(codecs.BOM_UTF8) and decode_used.lower().replace("-", "_") in ("utf_8", "utf8"):
        decode_used = "utf-8-sig"

    decode_fallback = False
    try:
        text = raw.decode(decode_used)
    except UnicodeDecodeError as ex:
        logger.warning("input is not valid %s (%s), decoding with replacement characters", decode_used, ex.reason)
        text = raw.decode(decode_used, errors="replace")
        decode_fallback = True

    info = {
        "requested": source_encoding,
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
    }
    return text, info


def parse_bytes(raw: bytes, source_encoding: str = SOURCE_ENCODING, trim: bool = False) -> List[ZipCodeRecord]:
    """Parse a raw KEN_ALL.CSV payload into records, without normalizing them."""
    text, _ = decode_source(raw, source_encoding)
    return list(parse_lines(io.StringIO(text, newline=""), trim=trim))


def normalize_bytes(raw: bytes, options: NormalizeOptions) -> tuple[bytes, Dict[str, Any]]:
    """Normalize a whole KEN_ALL.CSV payload, returning the output bytes and a report."""
    _check_encoding(options.output_encoding)
    text, source_info = decode_source(raw, options.source_encoding)

    normalizer = Normalizer()
    out = io.StringIO(newline="")
    write_normalized(io.StringIO(text, newline=""), out, trim=options.trim, width=options.width, normalizer=normalizer)
    body = out.getvalue()

    try:
        normalized = body.encode(options.output_encoding)
    except UnicodeEncodeError as ex:
        line_no = body.count(RECORD_TERMINATOR, 0, ex.start) + 1
        raise OutputEncodingError(options.output_encoding, line_no, ex.reason) from ex

    logger.info(
        "normalized %d rows into %d rows (%d multi-row street names joined)",
        normalizer.pushed,
        normalizer.popped,
        normalizer.joined,
    )

    report = {
        "summary": {
            "rows_read": normalizer.pushed,
            "rows_written": normalizer.popped,
            "continuations_joined": normalizer.joined,
            "deterministic": True,
        },
        "normalizations": {
            "encoding": {
                **source_info,
                "output": options.output_encoding,
            },
            "trim": options.trim,
            "width": options.width,
        },
    }
    return normalized, report


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def normalize_csv_bytes(raw: bytes, options: Optional[NormalizeOptions] = None) -> Dict[str, Any]:
    """Returns a dict matching the API's response envelope."""
    if options is None:
        options = NormalizeOptions()
    normalized_bytes, report = normalize_bytes(raw, options)

    b64 = base64.b64encode(normalized_bytes).decode("ascii")
    return {
        "normalized_csv": {
            "sha256": _sha256_hex(normalized_bytes),
            "encoding": options.output_encoding,
            "content_b64": b64,
        },
        "report": report,
    }
