"""Helpers for printing decoded messages and decoding errors."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from rtefmt.errors import UNDEFINED_TEXT, ErrorCode
from rtefmt.model import NUMBER_OF_FILTER_BITS, DecoderState

MAX_ERRORS_IN_SINGLE_MESSAGE = 10
MAX_SHORTENED_STRING = 60
DEFAULT_MSG_NUMBER_FORMAT = "N%05u"
RTE_FILTER_FILE = "Filter_names.txt"
FIRST_ERROR = ErrorCode.DECODE_UNKNOWN_ERROR

DECODING_ERRORS_FOUND_TEXT = " - decoding errors found:"
TOO_MANY_ERRORS_TEXT = " (too many errors - the first %u are shown)"
FMT_ID_TEXT = " FMT_ID=%u"
HEX_DUMP_TEXT = ", hex dump:"


def _c_format(template: str, *args: object) -> str:
    """Apply printf-style formatting, using only as many arguments as the template takes."""
    for count in range(len(args) + 1):
        try:
            return template % args[:count]
        except TypeError:
            continue
        except ValueError:
            break
    return template


def _normalize_decoding_error(err_no: int) -> int:
    if err_no < FIRST_ERROR or err_no >= ErrorCode.PARSE_UNKNOWN:
        return int(ErrorCode.DECODE_UNKNOWN_ERROR)
    return int(err_no)


@dataclass
class DecodingError:
    """One error found while decoding a value of a message."""

    error_number: int
    value_number: int
    data1: int
    data2: int
    fmt_text: str | None


@dataclass
class DecodingErrorLog:
    """Errors collected while decoding one message, printed when it is done."""

    state: DecoderState = field(default_factory=DecoderState)
    entries: list[DecodingError] = field(default_factory=list)
    value_number: int = 0
    max_entries: int = MAX_ERRORS_IN_SINGLE_MESSAGE

    def save(self, err_no: int, data1: int, data2: int, fmt_text: str | None) -> None:
        """Count an error and keep its details if there is room."""
        err_no = _normalize_decoding_error(err_no)
        self.state.total_errors += 1
        self.state.error_counter[err_no] += 1
        if len(self.entries) >= self.max_entries:
            return
        self.entries.append(
            DecodingError(err_no, self.value_number, data1, data2, fmt_text))

    def save_internal(self, sys_error: int, data2: int) -> None:
        """Record an internal error that should never happen."""
        self.save(ErrorCode.INTERNAL_ERROR, sys_error, data2, "")

    def clear(self) -> None:
        """Forget the errors of the previous message."""
        self.entries.clear()
        self.value_number = 0

    def format_report(self, msg_no: int) -> str:
        """Text describing the collected errors; empty if there are none."""
        if not self.entries:
            return ""
        messages = self.state.messages
        parts = [
            "\n",
            format_message_number(msg_no, self.state.settings.msg_number_print),
            DECODING_ERRORS_FOUND_TEXT,
        ]
        if len(self.entries) >= self.max_entries:
            parts.append(_c_format(TOO_MANY_ERRORS_TEXT, self.max_entries))
        for entry in self.entries:
            text = strip_newlines_and_shorten_string(entry.fmt_text)
            err_no = _normalize_decoding_error(entry.error_number)
            if not text:
                parts.append(
                    f"\n-->#{entry.value_number} ERR_{err_no:03d}: "
                    f"0x{entry.data1 & 0xFFFFFFFF:X} 0x{entry.data2 & 0xFFFFFFFF:X}")
                continue
            parts.append(f'\n-->#{entry.value_number} - "{text}"\n ERR_{err_no:03d}: ')
            parts.append(_c_format(messages.get(err_no, UNDEFINED_TEXT),
                                   entry.data1, entry.data2))
        return "".join(parts)


def strip_newlines_and_shorten_string(text: str | None, spec_char: str | None = None) -> str:
    """Replace control characters with '~' and spec_char with a quote; shorten long text."""
    if text is None:
        return "?"
    limit = MAX_SHORTENED_STRING - 4
    chars = []
    for char in text[:limit]:
        if ord(char) < 0x20:
            char = "~"
        if spec_char and char == spec_char:
            char = "'"
        chars.append(char)
    if len(text) >= limit:
        chars.append("." * (MAX_SHORTENED_STRING - 1 - limit))
    return "".join(chars)


def format_message_number(msg_no: int, template: str | None = None) -> str:
    """Message number formatted with the given printf-style template."""
    return _c_format(template if template is not None else DEFAULT_MSG_NUMBER_FORMAT, msg_no)


def format_timestamp(timestamp: float, template: str = "%.6f",
                     multiplier: float = 1.0) -> str:
    """Timestamp in seconds, scaled and formatted with a printf-style template."""
    return _c_format(template, timestamp * multiplier)


def hex_dump(words: list[int], fmt_id: int, name: str | None = None,
             print_words: bool = True) -> str:
    """Hex dump of a message as 32-bit words or as little-endian bytes."""
    if not words:
        return ""
    parts = ["\n  >>>", _c_format(FMT_ID_TEXT, fmt_id)]
    if name:
        parts.append(f", {name}")
    parts.append(HEX_DUMP_TEXT)
    for word in words:
        word &= 0xFFFFFFFF
        if print_words:
            parts.append(f" {word:08X}")
        else:
            parts.extend(f" {byte:02X}" for byte in word.to_bytes(4, "little"))
    return "".join(parts)


def dump_filter_names(state: DecoderState, path: str = RTE_FILTER_FILE) -> bool:
    """Write one line per filter (description or name) when compiling; True if written."""
    if not state.settings.check_syntax_and_compile:
        return False
    full_path = os.path.join(state.settings.output_folder, path)
    with open(full_path, "w", encoding="utf-8") as out:
        for entry in state.enums[:NUMBER_OF_FILTER_BITS]:
            name = ""
            if entry is not None:
                name = entry.filter_description or entry.name or ""
            out.write(f"{name}\n")
    return True