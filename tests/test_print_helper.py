import pytest

from rtefmt.errors import ErrorCode
from rtefmt.model import DecoderState, EnumEntry, EnumType, Settings
from rtefmt.print_helper import (
    MAX_ERRORS_IN_SINGLE_MESSAGE,
    MAX_SHORTENED_STRING,
    DecodingErrorLog,
    dump_filter_names,
    format_message_number,
    format_timestamp,
    hex_dump,
    strip_newlines_and_shorten_string,
)


def test_strip_none():
    assert strip_newlines_and_shorten_string(None) == "?"


def test_strip_control_and_special_characters():
    assert strip_newlines_and_shorten_string("a\nb\tc") == "a~b~c"
    assert strip_newlines_and_shorten_string("a;b", ";") == "a'b"


def test_strip_shortens_long_text():
    result = strip_newlines_and_shorten_string("x" * 200)
    assert len(result) == MAX_SHORTENED_STRING - 1
    assert result.endswith("...")
    assert result.startswith("x" * (MAX_SHORTENED_STRING - 4))


def test_short_text_unchanged():
    assert strip_newlines_and_shorten_string("hello") == "hello"


def test_format_message_number():
    assert format_message_number(7) == "N00007"
    assert format_message_number(42, "#%u") == "#42"


def test_format_timestamp_scales():
    assert float(format_timestamp(1.5, "%.3f", 2.0)) == pytest.approx(3.0)
    assert format_timestamp(0.25, "%.2f") == "0.25"


def test_hex_dump_words_and_bytes():
    words = hex_dump([0x12345678], 5, "MSG_A", True)
    as_bytes = hex_dump([0x12345678], 5, "MSG_A", False)
    assert " 12345678" in words
    assert ", MSG_A" in words
    assert " 78 56 34 12" in as_bytes


def test_hex_dump_empty():
    assert hex_dump([], 5, "MSG_A", True) == ""


def test_save_counts_errors():
    log = DecodingErrorLog()
    log.value_number = 3
    log.save(ErrorCode.INTERNAL_ERROR, 1, 2, "%u")
    assert log.state.total_errors == 1
    assert log.state.error_counter[ErrorCode.INTERNAL_ERROR] == 1
    assert log.entries[0].value_number == 3
    assert log.entries[0].fmt_text == "%u"


def test_save_normalizes_unknown_codes():
    log = DecodingErrorLog()
    log.save(ErrorCode.PARSE_EMPTY_STRING, 0, 0, "x")
    log.save(0, 0, 0, "x")
    assert all(e.error_number == ErrorCode.DECODE_UNKNOWN_ERROR for e in log.entries)
    assert log.state.error_counter[ErrorCode.DECODE_UNKNOWN_ERROR] == 2


def test_save_keeps_at_most_max_entries():
    log = DecodingErrorLog()
    for _ in range(MAX_ERRORS_IN_SINGLE_MESSAGE + 5):
        log.save(ErrorCode.INTERNAL_ERROR, 0, 0, "x")
    assert len(log.entries) == MAX_ERRORS_IN_SINGLE_MESSAGE
    assert log.state.total_errors == MAX_ERRORS_IN_SINGLE_MESSAGE + 5


def test_save_internal_and_clear():
    log = DecodingErrorLog()
    log.save_internal(31, 2)
    entry = log.entries[0]
    assert (entry.error_number, entry.data1, entry.data2, entry.fmt_text) == (
        ErrorCode.INTERNAL_ERROR, 31, 2, "")
    log.clear()
    assert log.entries == []
    assert log.format_report(1) == ""


def test_format_report():
    state = DecoderState()
    state.messages[int(ErrorCode.DECODE_UNKNOWN_ERROR)] = "bad value %u"
    log = DecodingErrorLog(state=state)
    log.save(ErrorCode.DECODE_UNKNOWN_ERROR, 9, 0, "V=%u")
    log.save_internal(31, 2)
    report = log.format_report(7)
    assert report.startswith("\n" + format_message_number(7))
    assert '"V=%u"' in report
    assert "bad value 9" in report
    assert "0x1F 0x2" in report


def test_dump_filter_names(tmp_path):
    state = DecoderState(settings=Settings(
        output_folder=str(tmp_path), check_syntax_and_compile=True))
    state.enums[0] = EnumEntry(name="F_A", type=EnumType.FILTER, filter_description="Alpha")
    state.enums[1] = EnumEntry(name="F_B", type=EnumType.FILTER)
    assert dump_filter_names(state, "filters.txt") is True
    lines = (tmp_path / "filters.txt").read_text(encoding="utf-8").split("\n")
    assert lines[:2] == ["Alpha", "F_B"]
    assert len(lines) - 1 == len(state.enums)
    assert all(line == "" for line in lines[2:])


def test_dump_filter_names_only_when_compiling(tmp_path):
    state = DecoderState(settings=Settings(output_folder=str(tmp_path)))
    assert dump_filter_names(state, "filters.txt") is False
    assert not (tmp_path / "filters.txt").exists()