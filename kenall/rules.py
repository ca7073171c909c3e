"""
Deterministic normalization rules for KEN_ALL.CSV.

Column layout, quoting, encodings and the annotation patterns live here so
the codec and the classifier share one definition.
"""

import re

COLUMN_COUNT = 15

# 0-based columns written with surrounding double quotes:
# legacy zip, zip, and the kana/kanji prefecture, city and street names.
QUOTED_COLUMNS = range(1, 9)

RECORD_TERMINATOR = "\n"

SOURCE_ENCODING = "cp932"  # Japan Post publishes Shift_JIS (Windows-31J)
AUTO_ENCODING = "auto"
UTF8_ENCODING = "utf-8"
LEGACY_ENCODING = "cp932"

MAX_DIVIDE_NUM = 99

OPEN_BRACKETS = "(（"
CLOSE_BRACKETS = ")）"

FULLWIDTH_DIGITS = "０１２３４５６７８９"

# Unit words recognized in range / list annotations and their kana readings.
KANA_UNITS = {
    "丁目": "ﾁｮｳﾒ",
    "番地": "ﾊﾞﾝﾁ",
    "番": "ﾊﾞﾝ",
}
FLOOR_UNIT = "階"
FLOOR_KANA_UNIT = "ｶｲ"

LIST_SEPARATOR = "、"
KANA_LIST_SEPARATOR = "､"

CLEAR_STREET = re.compile(r"(^以下に掲載がない場合$|の次に番地がくる場合$|.+一円$)")

STREET_ANNOTATION = re.compile(r"[（(]([^）)]+)[）)]$")
STREET_KANA_ANNOTATION = re.compile(r"[(（]([^)）]+)[)）]$")

_D = "[０１２３４５６７８９]"
_UNIT = "(丁目|番地|番)"

QUALIFIER_ANNOTATION = re.compile(r"^(その他|地階・階層不明|.*を除く)$")
FLOOR_ANNOTATION = re.compile(rf"^({_D}+){FLOOR_UNIT}$")
RANGE_ANNOTATION = re.compile(rf"^({_D}+)～({_D}+){_UNIT}$")
LIST_ANNOTATION = re.compile(rf"^({_D}+(?:、{_D}+)*){_UNIT}$")
GENERIC_LIST_ANNOTATION = re.compile(r"^[^「」～－０１２３４５６７８９]+$")
