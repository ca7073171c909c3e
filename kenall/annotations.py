"""
Street-name annotation handling.

KEN_ALL.CSV appends bracketed notes to the street (town area) name, e.g.
``大通西（１～１９丁目）`` or ``名駅（その他）``. expand_street() strips the note
and, where its shape is recognized, fans the record out into one sibling per
concrete area. Recognition is best effort: unknown notes are only stripped.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List, NamedTuple

from .models import ZipCodeRecord
from .rules import (
    CLEAR_STREET,
    CLOSE_BRACKETS,
    FLOOR_ANNOTATION,
    FLOOR_KANA_UNIT,
    FLOOR_UNIT,
    FULLWIDTH_DIGITS,
    GENERIC_LIST_ANNOTATION,
    KANA_LIST_SEPARATOR,
    KANA_UNITS,
    LIST_ANNOTATION,
    LIST_SEPARATOR,
    MAX_DIVIDE_NUM,
    OPEN_BRACKETS,
    QUALIFIER_ANNOTATION,
    RANGE_ANNOTATION,
    STREET_ANNOTATION,
    STREET_KANA_ANNOTATION,
)

logger = logging.getLogger(__name__)

_TO_NARROW = str.maketrans(FULLWIDTH_DIGITS, "0123456789")
_TO_WIDE = str.maketrans("0123456789", FULLWIDTH_DIGITS)


def zenkaku_to_int(text: str) -> int:
    return int(text.translate(_TO_NARROW))


def int_to_zenkaku(i: int) -> str:
    return str(i).translate(_TO_WIDE)


def narrow_digits(text: str) -> str:
    return text.translate(_TO_NARROW)


def _last_index_any(text: str, chars: str) -> int:
    return max(text.rfind(c) for c in chars)


def _first_index_any(text: str, chars: str) -> int:
    found = [i for i in (text.find(c) for c in chars) if i >= 0]
    return min(found) if found else -1


def is_continuation_start(street: str) -> bool:
    """True if the street text leaves a bracket open, e.g. ``大通西（``."""
    oi = _last_index_any(street, OPEN_BRACKETS)
    if oi < 0:
        return False
    return oi > _last_index_any(street, CLOSE_BRACKETS)


def is_continuation_end(street: str) -> bool:
    """True if the street text closes a bracket it never opened, e.g. ``１９丁目）``."""
    ci = _first_index_any(street, CLOSE_BRACKETS)
    if ci < 0:
        return False
    oi = _first_index_any(street, OPEN_BRACKETS)
    return oi < 0 or ci < oi


# An expander receives the record with the note already stripped, the match
# against the kanji inner text and the kana inner text ("" when absent).
Expander = Callable[[ZipCodeRecord, re.Match, str], List[ZipCodeRecord]]


class AnnotationRule(NamedTuple):
    name: str
    pattern: re.Pattern
    expand: Expander


def _sibling(base: ZipCodeRecord, street: str, street_kana: str) -> ZipCodeRecord:
    return base.model_copy(
        update={
            "street": base.street + street,
            "street_kana": base.street_kana + street_kana,
        }
    )


def _drop(base, m, inner_kana):
    return [base]


def _floor(base, m, inner_kana):
    digits = m.group(1)
    return [_sibling(base, digits + FLOOR_UNIT, narrow_digits(digits) + FLOOR_KANA_UNIT)]


def _range(base, m, inner_kana):
    start = zenkaku_to_int(m.group(1))
    end = zenkaku_to_int(m.group(2))
    unit = m.group(3)
    count = end - start + 1
    if count > MAX_DIVIDE_NUM:
        logger.debug("range not expanded (%d entries): %s%s", count, base.street, m.group(0))
        return [base]
    return [_sibling(base, int_to_zenkaku(i) + unit, f"{i}{KANA_UNITS[unit]}") for i in range(start, end + 1)]


def _number_list(base, m, inner_kana):
    unit = m.group(2)
    return [
        _sibling(base, s + unit, f"{zenkaku_to_int(s)}{KANA_UNITS[unit]}")
        for s in m.group(1).split(LIST_SEPARATOR)
    ]


def _generic_list(base, m, inner_kana):
    splits = m.group(0).split(LIST_SEPARATOR)
    splits_kana = inner_kana.split(KANA_LIST_SEPARATOR)
    if len(splits) != len(splits_kana):
        logger.debug("list not expanded, kana has %d parts: %s", len(splits_kana), m.group(0))
        return [base]
    return [_sibling(base, s, k) for s, k in zip(splits, splits_kana)]


# Evaluated in order, first match wins: later rules assume earlier ones failed.
ANNOTATION_RULES = (
    AnnotationRule("qualifier", QUALIFIER_ANNOTATION, _drop),
    AnnotationRule("floor", FLOOR_ANNOTATION, _floor),
    AnnotationRule("range", RANGE_ANNOTATION, _range),
    AnnotationRule("list", LIST_ANNOTATION, _number_list),
    AnnotationRule("generic_list", GENERIC_LIST_ANNOTATION, _generic_list),
)


def classify(inner: str):
    """Return the first rule matching the annotation text and its match, or (None, None)."""
    for rule in ANNOTATION_RULES:
        m = rule.pattern.search(inner)
        if m is not None:
            return rule, m
    return None, None


def expand_street(record: ZipCodeRecord) -> List[ZipCodeRecord]:
    """
    Normalize the street fields of one complete record.

    Returns zero or more records (zero only for a reversed range). The input record is never modified;
    expanded siblings are independent copies of it.
    """
    if CLEAR_STREET.search(record.street):
        return [record.model_copy(update={"street": "", "street_kana": ""})]

    m = STREET_ANNOTATION.search(record.street)
    if m is None:
        return [record]

    inner = m.group(1)
    km = STREET_KANA_ANNOTATION.search(record.street_kana)
    inner_kana = km.group(1) if km else ""

    base = record.model_copy(
        update={
            "street": STREET_ANNOTATION.sub("", record.street),
            "street_kana": STREET_KANA_ANNOTATION.sub("", record.street_kana),
        }
    )

    rule, rm = classify(inner)
    if rule is None:
        logger.debug("unrecognized annotation left stripped: %s", inner)
        return [base]
    return rule.expand(base, rm, inner_kana)
