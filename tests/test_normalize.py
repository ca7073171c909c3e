import io

import pytest

from kenall.codec import decode_fields
from kenall.errors import (
    CsvReadError,
    MalformedRowError,
    OutputEncodingError,
    UnsupportedEncodingError,
    UnterminatedContinuationError,
)
from kenall.normalize import (
    NormalizeOptions,
    Normalizer,
    fold_width,
    normalize_bytes,
    normalize_csv_bytes,
    normalize_lines,
    parse_bytes,
    write_normalized,
)


def rec(street, street_kana="", zip_code="0600041"):
    cols = ["01101", "060  ", zip_code, "ﾎｯｶｲﾄﾞｳ", "ｻｯﾎﾟﾛｼﾁｭｳｵｳｸ", street_kana,
            "北海道", "札幌市中央区", street, "0", "0", "1", "0", "0", "0"]
    return decode_fields(cols, trim=False)


def drain(normalizer):
    out = []
    while normalizer.can_pop():
        out.append(normalizer.pop())
    return out


def line(street, street_kana, zip_code="0600041", old_zip="060  "):
    return (
        f'01101,"{old_zip}","{zip_code}","ﾎｯｶｲﾄﾞｳ","ｻｯﾎﾟﾛｼﾁｭｳｵｳｸ","{street_kana}",'
        f'"北海道","札幌市中央区","{street}",0,0,1,0,0,0'
    )


def test_plain_record_passes_through():
    n = Normalizer()
    r = rec("北七条西", "ｷﾀ7ｼﾞｮｳﾆｼ")
    n.push(r)
    assert n.can_pop()
    assert n.pop() == r
    assert not n.can_pop()
    assert n.pop() is None


def test_range_expansion_cardinality():
    n = Normalizer()
    n.push(rec("大通西（１～１９丁目）", "ｵｵﾄﾞｵﾘﾆｼ(1-19ﾁｮｳﾒ)"))
    got = drain(n)
    assert len(got) == 19
    assert [r.street for r in got][:3] == ["大通西１丁目", "大通西２丁目", "大通西３丁目"]
    assert got[-1].street_kana == "ｵｵﾄﾞｵﾘﾆｼ19ﾁｮｳﾒ"


def test_range_over_cap_yields_one_record():
    n = Normalizer()
    n.push(rec("山鼻（１～２００番地）", "ﾔﾏﾊﾅ(1-200ﾊﾞﾝﾁ)"))
    got = drain(n)
    assert len(got) == 1
    assert (got[0].street, got[0].street_kana) == ("山鼻", "ﾔﾏﾊﾅ")


def test_continuation_is_held_until_closed():
    n = Normalizer()
    n.push(rec("藤野（", "ﾌｼﾞﾉ(", zip_code="0611111"))
    assert not n.can_pop()
    assert n.pending == 1

    n.push(rec("その他）", "ｿﾉﾀ)", zip_code="0612222"))
    assert n.can_pop()
    got = drain(n)
    assert len(got) == 1
    assert (got[0].street, got[0].street_kana) == ("藤野", "ﾌｼﾞﾉ")
    # the closing row carries the joined name
    assert got[0].zip_code == "0612222"
    assert n.pending == 0
    assert n.joined == 1


def test_continuation_over_three_rows_expands_list():
    n = Normalizer()
    n.push(rec("旭ケ丘（１、", "ｱｻﾋｶﾞｵｶ(1､"))
    n.push(rec("３、", "3､"))
    assert not n.can_pop()
    n.push(rec("５丁目）", "5ﾁｮｳﾒ)"))
    got = drain(n)
    assert [(r.street, r.street_kana) for r in got] == [
        ("旭ケ丘１丁目", "ｱｻﾋｶﾞｵｶ1ﾁｮｳﾒ"),
        ("旭ケ丘３丁目", "ｱｻﾋｶﾞｵｶ3ﾁｮｳﾒ"),
        ("旭ケ丘５丁目", "ｱｻﾋｶﾞｵｶ5ﾁｮｳﾒ"),
    ]


def test_continuation_closed_with_other_bracket_width():
    n = Normalizer()
    n.push(rec("大江(", "ｵｵｴ("))
    n.push(rec("西、東）", "ﾆｼ､ﾋｶﾞｼ)"))
    got = drain(n)
    assert [(r.street, r.street_kana) for r in got] == [("大江西", "ｵｵｴﾆｼ"), ("大江東", "ｵｵｴﾋｶﾞｼ")]


def test_rows_after_open_continuation_wait_in_order():
    n = Normalizer()
    n.push(rec("北七条西", "ｷﾀ7ｼﾞｮｳﾆｼ"))
    n.push(rec("藤野（", "ﾌｼﾞﾉ("))
    n.push(rec("その他）", "ｿﾉﾀ)"))
    n.push(rec("大通西（１～２丁目）", "ｵｵﾄﾞｵﾘﾆｼ(1-2ﾁｮｳﾒ)"))
    n.push(rec("以下に掲載がない場合", "ｲｶﾆｹｲｻｲｶﾞﾅｲﾊﾞｱｲ"))
    got = drain(n)
    assert [r.street for r in got] == ["北七条西", "藤野", "大通西１丁目", "大通西２丁目", ""]
    assert n.pushed == 5
    assert n.popped == 5


def test_fifo_order_across_pushes():
    n = Normalizer()
    out = []
    n.push(rec("大通西（１～２丁目）"))
    out.append(n.pop())
    n.push(rec("琴似（１、２番地）"))
    out.extend(drain(n))
    out.extend(drain(n))
    assert [r.street for r in out] == ["大通西１丁目", "大通西２丁目", "琴似１番地", "琴似２番地"]


def test_normalize_lines():
    lines = [
        line("大通西（１～２丁目）", "ｵｵﾄﾞｵﾘﾆｼ(1-2ﾁｮｳﾒ)"),
        line("以下に掲載がない場合", "ｲｶﾆｹｲｻｲｶﾞﾅｲﾊﾞｱｲ", zip_code="0600000"),
    ]
    assert list(normalize_lines(lines, trim=True)) == [
        line("大通西１丁目", "ｵｵﾄﾞｵﾘﾆｼ1ﾁｮｳﾒ", old_zip="060"),
        line("大通西２丁目", "ｵｵﾄﾞｵﾘﾆｼ2ﾁｮｳﾒ", old_zip="060"),
        line("", "", zip_code="0600000", old_zip="060"),
    ]


def test_normalize_lines_width():
    got = list(normalize_lines([line("大通西（１～２丁目）", "ｵｵﾄﾞｵﾘﾆｼ(1-2ﾁｮｳﾒ)")], width=True))
    assert got[0] == (
        '01101,"060","0600041","ホッカイドウ","サッポロシチュウオウク","オオドオリニシ1チョウメ",'
        '"北海道","札幌市中央区","大通西1丁目",0,0,1,0,0,0'
    )


def test_normalize_lines_malformed_row():
    lines = [line("北七条西", "ｷﾀ7ｼﾞｮｳﾆｼ"), "01101,060,0600007"]
    with pytest.raises(MalformedRowError) as exc:
        list(normalize_lines(lines))
    assert exc.value.line_no == 2


def test_normalize_lines_unterminated_continuation():
    with pytest.raises(UnterminatedContinuationError) as exc:
        list(normalize_lines([line("北七条西", "ｷﾀ7ｼﾞｮｳﾆｼ"), line("藤野（", "ﾌｼﾞﾉ(")]))
    assert exc.value.pending == 1
    assert exc.value.street == "藤野（"


def test_write_normalized_separates_records():
    src = io.StringIO("\r\n".join([line("大通西（１～２丁目）", "ｵｵﾄﾞｵﾘﾆｼ(1-2ﾁｮｳﾒ)"), ""]), newline="")
    dst = io.StringIO(newline="")
    n = write_normalized(src, dst, trim=False)
    assert dst.getvalue() == (
        line("大通西１丁目", "ｵｵﾄﾞｵﾘﾆｼ1ﾁｮｳﾒ") + "\n" + line("大通西２丁目", "ｵｵﾄﾞｵﾘﾆｼ2ﾁｮｳﾒ")
    )
    assert (n.pushed, n.popped) == (1, 2)


def test_fold_width():
    assert fold_width("ｷﾀ7ｼﾞｮｳﾆｼ") == "キタ7ジョウニシ"
    assert fold_width("ＪＲタワー３８階") == "JRタワー38階"


def _payload():
    return "\r\n".join([
        line("北七条西", "ｷﾀ7ｼﾞｮｳﾆｼ", zip_code="0600007"),
        line("藤野（", "ﾌｼﾞﾉ(", zip_code="0611111"),
        line("その他）", "ｿﾉﾀ)", zip_code="0611111"),
        line("大通西（１～３丁目）", "ｵｵﾄﾞｵﾘﾆｼ(1-3ﾁｮｳﾒ)"),
    ]) + "\r\n"


def test_normalize_bytes_defaults_cp932_in_utf8_out():
    options = NormalizeOptions(trim=True, width=True, utf8=True, source_encoding="cp932")
    data, report = normalize_bytes(_payload().encode("cp932"), options)
    lines = data.decode("utf-8").split("\n")
    assert len(lines) == 5
    assert lines[0] == (
        '01101,"060","0600007","ホッカイドウ","サッポロシチュウオウク","キタ7ジョウニシ",'
        '"北海道","札幌市中央区","北七条西",0,0,1,0,0,0'
    )
    assert '"フジノ","北海道","札幌市中央区","藤野"' in lines[1]
    assert lines[4].endswith('"大通西3丁目",0,0,1,0,0,0')
    assert report["summary"] == {
        "rows_read": 4,
        "rows_written": 5,
        "continuations_joined": 1,
        "deterministic": True,
    }
    assert report["normalizations"]["encoding"]["decode_used"] == "cp932"
    assert report["normalizations"]["encoding"]["output"] == "utf-8"


def test_normalize_bytes_shift_jis_out_without_width():
    options = NormalizeOptions(trim=True, width=False, utf8=False, source_encoding="cp932")
    data, _ = normalize_bytes(_payload().encode("cp932"), options)
    text = data.decode("cp932")
    assert "ｷﾀ7ｼﾞｮｳﾆｼ" in text
    assert '"大通西３丁目"' in text


def test_normalize_bytes_auto_detects_utf8_bom():
    raw = _payload().encode("utf-8-sig")
    options = NormalizeOptions(trim=True, width=False, utf8=True, source_encoding="auto")
    data, report = normalize_bytes(raw, options)
    text = data.decode("utf-8")
    assert text.startswith("01101,")
    assert '"大通西１丁目"' in text
    assert report["normalizations"]["encoding"]["decode_used"] == "utf-8-sig"


def test_normalize_bytes_unknown_encoding():
    with pytest.raises(UnsupportedEncodingError):
        normalize_bytes(b"", NormalizeOptions(source_encoding="no-such-codec"))


def test_normalize_bytes_unencodable_output():
    raw = line("𠮷野", "ﾖｼﾉ").encode("utf-8")
    options = NormalizeOptions(trim=True, width=False, utf8=False, source_encoding="utf-8")
    with pytest.raises(OutputEncodingError) as exc:
        normalize_bytes(raw, options)
    assert exc.value.line_no == 1


def test_normalize_csv_bytes_envelope():
    options = NormalizeOptions(trim=True, width=True, utf8=True, source_encoding="cp932")
    result = normalize_csv_bytes(_payload().encode("cp932"), options)
    assert result["normalized_csv"]["encoding"] == "utf-8"
    assert len(result["normalized_csv"]["sha256"]) == 64
    assert result["report"]["summary"]["rows_written"] == 5


def test_reversed_range_yields_nothing():
    n = Normalizer()
    n.push(rec("山鼻（５～３丁目）", "ﾔﾏﾊﾅ(5-3ﾁｮｳﾒ)"))
    assert not n.can_pop()
    assert n.pending == 0
    n.push(rec("北七条西", "ｷﾀ7ｼﾞｮｳﾆｼ"))
    assert [r.street for r in drain(n)] == ["北七条西"]


def test_normalize_lines_oversized_field():
    lines = [line("北七条西", "ｷﾀ7ｼﾞｮｳﾆｼ"), line("北" * 200000, "ｷﾀ")]
    with pytest.raises(CsvReadError) as exc:
        list(normalize_lines(lines))
    assert exc.value.line_no == 2


def test_parse_bytes_keeps_rows_as_published():
    records = parse_bytes(_payload().encode("cp932"))
    assert len(records) == 4
    assert [r.street for r in records] == ["北七条西", "藤野（", "その他）", "大通西（１～３丁目）"]
    assert records[0].old_zip_code == "060  "
    assert records[0].pref_code == "01"


def test_parse_bytes_malformed_row():
    raw = (_payload() + "01101,060\r\n").encode("cp932")
    with pytest.raises(MalformedRowError) as exc:
        parse_bytes(raw, source_encoding="cp932", trim=True)
    assert exc.value.line_no == 5
