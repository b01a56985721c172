import io
import logging

from fakes import rec
from stail.sinks import JsonLinesSink, RawSink, compact_json, make_sink


def test_raw_sink_concatenates_payloads() -> None:
    out = io.BytesIO()
    sink = RawSink(out)

    sink.deliver([rec("1", b"hello "), rec("2", b"\x00\xffworld")])
    sink.deliver([rec("3", b"!")])

    assert out.getvalue() == b"hello \x00\xffworld!"


def test_json_sink_writes_one_compact_line_per_record() -> None:
    out = io.StringIO()
    sink = JsonLinesSink(out)

    sink.deliver(
        [
            rec("1", b'{\n  "user": "ana",\n  "tags": [1, 2]\n}'),
            rec("2", '{"city": "Zürich"}'.encode()),
            rec("3", b"42"),
        ]
    )

    assert out.getvalue().splitlines() == [
        '{"user":"ana","tags":[1,2]}',
        '{"city":"Zürich"}',
        "42",
    ]


def test_json_sink_skips_bad_records(caplog) -> None:
    out = io.StringIO()
    sink = JsonLinesSink(out)

    with caplog.at_level(logging.WARNING, logger="stail"):
        sink.deliver([rec("1", b"{oops"), rec("2", b"\x80abc"), rec("3", b'{"ok":true}')])

    assert out.getvalue() == '{"ok":true}\n'
    assert sink.skipped == 2
    assert "skipping record 1" in caplog.text
    assert "skipping record 2" in caplog.text


def test_compact_json_keeps_key_order() -> None:
    assert compact_json({"b": 1, "a": [None, "x"]}) == '{"b":1,"a":[null,"x"]}'


def test_make_sink_selects_variant() -> None:
    assert isinstance(make_sink(True), JsonLinesSink)
    assert isinstance(make_sink(False), RawSink)


def test_json_sink_rejects_non_standard_numbers() -> None:
    out = io.StringIO()
    sink = JsonLinesSink(out)

    sink.deliver([rec("1", b'{"x": NaN}'), rec("2", b"[Infinity]"), rec("3", b"1e999"), rec("4", b'{"x": 1.5}')])

    assert out.getvalue() == '{"x":1.5}\n'
    assert sink.skipped == 3
