"""Cursor and small parsing helpers for format definition directives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from rtefmt.errors import ErrorCode, catch_parsing_error
from rtefmt.model import (
    MAX_ENUMS,
    MAX_NAME_LENGTH,
    NUMBER_OF_FILTER_BITS,
    EnumType,
    ParseHandle,
)

_WHITESPACE = " \t\n\v\f\r"
_UINT = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]+)")
_ULONG_MAX = 2**64 - 1
_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "a": "\a", "b": "\b",
    "f": "\f", "v": "\v", "\\": "\\", '"': '"', "'": "'", "?": "?",
}


@dataclass
class Cursor:
    """A position in one line of text."""

    text: str
    pos: int = 0

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if 0 <= index < len(self.text) else ""

    def rest(self) -> str:
        return self.text[self.pos:]

    def advance(self, count: int = 1) -> None:
        self.pos = min(len(self.text), self.pos + count)

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)


def process_escape_sequences(text: str) -> str:
    """Replace C escape sequences with the characters they stand for."""
    out: list[str] = []
    i = 0
    while i < len(text):
        c = text[i]
        if c != "\\" or i + 1 >= len(text):
            out.append(c)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[nxt])
            i += 2
        elif nxt == "x":
            match = re.match(r"[0-9A-Fa-f]{1,2}", text[i + 2:])
            if match:
                out.append(chr(int(match.group(), 16)))
                i += 2 + match.end()
            else:
                out.append(c)
                i += 1
        elif nxt in "01234567":
            match = re.match(r"[0-7]{1,3}", text[i + 1:])
            out.append(chr(int(match.group(), 8)))
            i += 1 + match.end()
        else:
            out.append(c)
            i += 1
    return "".join(out)


def parse_until(cursor: Cursor, stop_char: str, max_length: int) -> str | None:
    """Text up to stop_char (cursor left on it), or None if missing or too long."""
    end = cursor.text.find(stop_char, cursor.pos)
    if end < 0 or end - cursor.pos > max_length - 1:
        return None
    result = cursor.text[cursor.pos:end]
    cursor.pos = end
    return result


def parse_quoted_arg(cursor: Cursor, max_length: int) -> str | None:
    """Text between double quotes, cursor moved past them; None on error."""
    cursor.skip_whitespace()
    if cursor.peek() != '"':
        return None
    start = cursor.pos + 1
    end = cursor.text.find('"', start)
    if end < 0 or end - start >= max_length:
        return None
    cursor.pos = end + 1
    return cursor.text[start:end]


def parse_unsigned_int(handle: ParseHandle) -> int:
    """Parse a decimal unsigned integer at the cursor."""
    cursor = handle.cursor
    match = _UINT.match(cursor.text, cursor.pos)
    if match is None:
        catch_parsing_error(handle, ErrorCode.PARSE_EXPECTING_NUMBER, cursor.rest())
    value = int(match.group(2))
    if value > _ULONG_MAX:
        catch_parsing_error(handle, ErrorCode.PARSE_EXPECTING_NUMBER, cursor.rest())
    if match.group(1) == "-":
        value = (-value) & _ULONG_MAX
    cursor.pos = match.end()
    return value & 0xFFFFFFFF


def parse_name(handle: ParseHandle) -> str:
    """Parse a name of ASCII letters, digits and underscores."""
    cursor = handle.cursor
    cursor.skip_whitespace()
    end = cursor.pos
    while end < len(cursor.text) and (
        (cursor.text[end].isascii() and cursor.text[end].isalnum())
        or cursor.text[end] == "_"
    ):
        if end - cursor.pos >= MAX_NAME_LENGTH - 1:
            catch_parsing_error(handle, ErrorCode.PARSE_NAME_TOO_LONG, "")
        end += 1
    if end == cursor.pos:
        catch_parsing_error(handle, ErrorCode.PARSE_INVALID_NAME, cursor.rest())
    name = cursor.text[cursor.pos:end]
    cursor.pos = end
    cursor.skip_whitespace()
    return name


def parse_directive_name(handle: ParseHandle, prefix: str | None) -> str:
    """Parse a new, unused directive name that starts with prefix."""
    name = parse_name(handle)
    if prefix is not None and not name.startswith(prefix):
        catch_parsing_error(handle, ErrorCode.PARSE_BAD_NAME_PREFIX, prefix)
    state = handle.state
    if any(entry is not None and entry.name == name for entry in state.enums):
        catch_parsing_error(handle, ErrorCode.PARSE_ENUMS_NAME_EXISTS, name)
    if state.enums_found >= MAX_ENUMS:
        state.total_errors = state.max_errors_reported - 1
        catch_parsing_error(handle, ErrorCode.PARSE_MAX_ENUMS, None)
    return name


def parse_file_path_arg(handle: ParseHandle, max_length: int) -> str:
    """Parse a non-empty quoted file path."""
    cursor = handle.cursor
    cursor.skip_whitespace()
    start = cursor.rest()
    path = parse_quoted_arg(cursor, max_length)
    if not path:
        catch_parsing_error(handle, ErrorCode.PARSE_IN_OUT_FILE_PATH, start)
    return path


def file_name_used_before(handle: ParseHandle, file_name: str, enum_type: EnumType) -> None:
    """Report an error if an entry of this type already uses file_name."""
    state = handle.state
    for entry in state.enums[NUMBER_OF_FILTER_BITS:]:
        if entry is not None and entry.type is enum_type and entry.file_name == file_name:
            catch_parsing_error(handle, ErrorCode.PARSE_IN_OUT_FILE_NAME_USED_TWICE, entry.name)