"""
Row codec: one KEN_ALL.CSV line <-> ZipCodeRecord.

Column order is fixed by the published format; see rules.COLUMN_COUNT and
rules.QUOTED_COLUMNS.
"""

from __future__ import annotations

import csv
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import CsvReadError, MalformedRowError
from .models import ZipCodeRecord
from .rules import COLUMN_COUNT, QUOTED_COLUMNS


def decode_line(line: str, trim: bool, line_no: Optional[int] = None) -> ZipCodeRecord:
    """
    Parse a single CSV line into a record.

    Raises MalformedRowError when the line does not hold exactly
    COLUMN_COUNT fields.
    """
    try:
        cols = next(csv.reader([line]), [])
    except csv.Error as ex:
        raise CsvReadError(line_no, str(ex)) from ex
    return decode_fields(cols, trim, line_no=line_no)


def decode_fields(cols: Sequence[str], trim: bool, line_no: Optional[int] = None) -> ZipCodeRecord:
    if len(cols) != COLUMN_COUNT:
        raise MalformedRowError(len(cols), COLUMN_COUNT, line_no=line_no)

    if trim:
        cols = [c.strip() for c in cols]

    return ZipCodeRecord(
        jis_code=cols[0],
        old_zip_code=cols[1],
        zip_code=cols[2],
        pref_kana=cols[3],
        city_kana=cols[4],
        street_kana=cols[5],
        pref=cols[6],
        city=cols[7],
        street=cols[8],
        street_duplicate_zip_code_flg=cols[9],
        numbered_small_street_flg=cols[10],
        numbered_street_flg=cols[11],
        zip_code_duplicate_street_flg=cols[12],
        update_flg=cols[13],
        update_reason=cols[14],
        pref_code=cols[0][:2],
    )


def encode_fields(record: ZipCodeRecord) -> List[str]:
    return [
        record.jis_code,
        record.old_zip_code,
        record.zip_code,
        record.pref_kana,
        record.city_kana,
        record.street_kana,
        record.pref,
        record.city,
        record.street,
        record.street_duplicate_zip_code_flg,
        record.numbered_small_street_flg,
        record.numbered_street_flg,
        record.zip_code_duplicate_street_flg,
        record.update_flg,
        record.update_reason,
    ]


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def encode_record(record: ZipCodeRecord) -> str:
    """Render a record back to its CSV line, without the record terminator."""
    cols = encode_fields(record)
    for i in QUOTED_COLUMNS:
        cols[i] = _quote(cols[i])
    return ",".join(cols)


def iter_rows(rows: Iterable[Sequence[str]]) -> Iterator[Tuple[int, Sequence[str]]]:
    """
    Yield (line_no, cols) for each non-blank row, 1-based.

    Tokenizer failures (csv.Error) are raised as CsvReadError with the line
    number attached.
    """
    it = iter(rows)
    line_no = 0
    while True:
        line_no += 1
        try:
            cols = next(it)
        except StopIteration:
            return
        except csv.Error as ex:
            raise CsvReadError(line_no, str(ex)) from ex
        if cols:
            yield line_no, cols


def parse_lines(lines: Iterable[str], trim: bool = False) -> Iterator[ZipCodeRecord]:
    """Parse raw KEN_ALL.CSV lines into records without normalizing them."""
    for line_no, cols in iter_rows(csv.reader(lines)):
        yield decode_fields(cols, trim, line_no=line_no)
