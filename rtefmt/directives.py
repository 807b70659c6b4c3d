"""Parsing of the MEMO, FILTER, IN_FILE, OUT_FILE, FMT_ALIGN and FMT_START directives."""

from __future__ import annotations

import os
import re

from rtefmt.errors import ErrorCode, catch_parsing_error
from rtefmt.file_handling import create_file, read_file_to_indexed_text
from rtefmt.helpers import (
    Cursor,
    file_name_used_before,
    parse_directive_name,
    parse_file_path_arg,
    parse_quoted_arg,
    parse_unsigned_int,
    process_escape_sequences,
)
from rtefmt.model import (
    MAX_FILEPATH_LENGTH,
    MAX_INPUT_LINE_LENGTH,
    MAX_NAME_LENGTH,
    NUMBER_OF_FILTER_BITS,
    EnumEntry,
    EnumType,
    ParseHandle,
)
from rtefmt.msg_directives import check_if_the_last_msg_is_empty

MAX_FILE_MODE_LENGTH = 8
ALLOWED_FILE_MODE_CHARS = "wabxt+"

_FLOAT = re.compile(
    r"[ \t\n\v\f\r]*([+-]?)(?:"
    r"(0x(?:[0-9a-f]+\.?[0-9a-f]*|\.[0-9a-f]+)(?:p[+-]?[0-9]+)?)"
    r"|((?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)"
    r"|(inf(?:inity)?|nan))",
    re.IGNORECASE,
)


def _parse_double(cursor: Cursor) -> float | None:
    """Parse a floating point number at the cursor the way strtod does."""
    match = _FLOAT.match(cursor.text, cursor.pos)
    if match is None:
        return None
    sign, hex_part, decimal, special = match.groups()
    if hex_part:
        value = float.fromhex(hex_part)
    elif decimal:
        value = float(decimal)
    else:
        value = float(special)
    cursor.pos = match.end()
    return -value if sign == "-" else value


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def _reset_parse_handle(handle: ParseHandle) -> None:
    handle.new_message = None
    handle.found_in_file_select = False
    handle.found_out_file_select = False


def check_and_reset_fmt_parsing(handle: ParseHandle) -> None:
    """Check the last message and reset the handle before a directive."""
    check_if_the_last_msg_is_empty(handle)
    _reset_parse_handle(handle)
    handle.current_message = None


def check_opening_bracket(handle: ParseHandle) -> None:
    """Skip an opening bracket and the whitespace around it."""
    cursor = handle.cursor
    cursor.skip_whitespace()
    if cursor.peek() != "(":
        catch_parsing_error(handle, ErrorCode.PARSE_NO_OPENING_BRACKET, cursor.rest())
    cursor.advance()
    cursor.skip_whitespace()


def check_closing_bracket(handle: ParseHandle) -> None:
    """Skip a closing bracket; nothing but whitespace may follow it."""
    cursor = handle.cursor
    cursor.skip_whitespace()
    if cursor.peek() != ")":
        catch_parsing_error(handle, ErrorCode.PARSE_NO_CLOSING_BRACKET, cursor.rest())
    cursor.advance()
    cursor.skip_whitespace()
    if not cursor.at_end:
        catch_parsing_error(handle, ErrorCode.PARSE_SURPLUS_TEXT, cursor.rest())


def check_file_mode(handle: ParseHandle, mode: str) -> None:
    """Accept only the file mode characters w, a, b, x, t and +."""
    if not mode:
        catch_parsing_error(handle, ErrorCode.PARSE_FILE_MODE_EMPTY, None)
    if any(char not in ALLOWED_FILE_MODE_CHARS for char in mode):
        catch_parsing_error(handle, ErrorCode.PARSE_ERROR_IN_FILE_MODE, mode)


def _expect_comma(handle: ParseHandle) -> None:
    cursor = handle.cursor
    cursor.skip_whitespace()
    if cursor.peek() != ",":
        catch_parsing_error(handle, ErrorCode.PARSE_EXPECTING_COMMA, cursor.rest())
    cursor.advance()


def parse_memo(handle: ParseHandle) -> int:
    """Parse MEMO(M_NAME, optional initial value); return the entry index."""
    cursor = handle.cursor
    check_and_reset_fmt_parsing(handle)
    cursor.advance(len("MEMO"))
    check_opening_bracket(handle)
    name = parse_directive_name(handle, "M_")
    value = 0.0
    if cursor.peek() == ",":
        cursor.advance()
        parsed = _parse_double(cursor)
        if parsed is None:
            catch_parsing_error(handle, ErrorCode.PARSE_MEMO_INIT_VAL, cursor.rest())
        value = parsed
    check_closing_bracket(handle)
    return handle.state.add_enum(EnumEntry(name=name, type=EnumType.MEMO, memo_value=value))


def parse_filter(handle: ParseHandle) -> int:
    """Parse FILTER(F_NAME, "optional description"); return the filter number."""
    state = handle.state
    cursor = handle.cursor
    filter_no = state.filter_enums
    check_and_reset_fmt_parsing(handle)
    if filter_no >= NUMBER_OF_FILTER_BITS:
        catch_parsing_error(handle, ErrorCode.PARSE_FILTER_MAX_ENUMS, cursor.rest())
    cursor.advance(len("FILTER"))
    check_opening_bracket(handle)
    entry = EnumEntry(name=parse_directive_name(handle, "F_"), type=EnumType.FILTER)
    state.enums[filter_no] = entry
    if cursor.peek() == ",":
        cursor.advance()
        description = parse_quoted_arg(cursor, MAX_NAME_LENGTH - 1)
        if not description:
            catch_parsing_error(handle, ErrorCode.PARSE_FILTER_DESC, cursor.rest())
        entry.filter_description = process_escape_sequences(description)
    check_closing_bracket(handle)
    state.filter_enums += 1
    return filter_no


def parse_in_file(handle: ParseHandle) -> int:
    """Parse IN_FILE(NAME, "file"); return the entry index."""
    state = handle.state
    cursor = handle.cursor
    check_and_reset_fmt_parsing(handle)
    cursor.advance(len("IN_FILE"))
    check_opening_bracket(handle)
    name = parse_directive_name(handle, "")
    if cursor.peek() != ",":
        catch_parsing_error(handle, ErrorCode.PARSE_EXPECTING_COMMA, cursor.rest())
    cursor.advance()
    path = parse_file_path_arg(handle, MAX_FILEPATH_LENGTH)
    check_closing_bracket(handle)
    file_name_used_before(handle, path, EnumType.IN_FILE)
    entry = EnumEntry(name=name, type=EnumType.IN_FILE, file_name=path)
    if not state.settings.check_syntax_and_compile:
        entry.in_file_text = read_file_to_indexed_text(path, handle)
    return state.add_enum(entry)


def parse_out_file(handle: ParseHandle) -> int:
    """Parse OUT_FILE(NAME, "file", "mode", "optional initial text"); return the index."""
    state = handle.state
    cursor = handle.cursor
    check_and_reset_fmt_parsing(handle)
    cursor.advance(len("OUT_FILE"))
    check_opening_bracket(handle)
    name = parse_directive_name(handle, "")

    _expect_comma(handle)
    path = parse_file_path_arg(handle, MAX_FILEPATH_LENGTH)
    file_name_used_before(handle, path, EnumType.OUT_FILE)

    _expect_comma(handle)
    mode = parse_quoted_arg(cursor, MAX_FILE_MODE_LENGTH)
    if mode is None:
        catch_parsing_error(handle, ErrorCode.PARSE_FILE_MODE, cursor.rest())
    check_file_mode(handle, mode)

    initial_text = ""
    cursor.skip_whitespace()
    if cursor.peek() == ",":
        cursor.advance()
        parsed = parse_quoted_arg(cursor, MAX_INPUT_LINE_LENGTH - 1)
        if parsed is None:
            catch_parsing_error(handle, ErrorCode.PARSE_OUT_FILE_INIT_TEXT, cursor.rest())
        initial_text = parsed
    check_closing_bracket(handle)

    entry = EnumEntry(name=name, type=EnumType.OUT_FILE, file_name=path)
    if not state.settings.check_syntax_and_compile:
        full_path = os.path.join(state.settings.output_folder, path)
        new_file = create_file(full_path, initial_text, mode)
        if new_file is None:
            catch_parsing_error(handle, ErrorCode.PARSE_OUT_NOT_CREATED, path)
        entry.file = new_file
    return state.add_enum(entry)


def parse_fmt_align(handle: ParseHandle) -> None:
    """Parse FMT_ALIGN(n): round the next format ID up to a multiple of n."""
    state = handle.state
    check_and_reset_fmt_parsing(handle)
    handle.cursor.advance(len("FMT_ALIGN"))
    check_opening_bracket(handle)
    alignment = parse_unsigned_int(handle)
    if alignment > state.topmost_fmt_id:
        state.total_errors = state.max_errors_reported - 1
        catch_parsing_error(handle, ErrorCode.PARSE_FMT_ALIGN_OVER_MAX, None)
    if not _is_power_of_two(alignment):
        catch_parsing_error(handle, ErrorCode.PARSE_FMT_ALIGN_PWR_OF_2, None)
    mask = alignment - 1
    state.fmt_ids_defined = (state.fmt_ids_defined + mask) & ~mask
    state.fmt_align_value = state.fmt_ids_defined
    check_closing_bracket(handle)


def parse_fmt_start(handle: ParseHandle) -> None:
    """Parse FMT_START(n): continue assigning format IDs from n."""
    state = handle.state
    check_and_reset_fmt_parsing(handle)
    handle.cursor.advance(len("FMT_START"))
    check_opening_bracket(handle)
    start = parse_unsigned_int(handle)
    if start >= state.topmost_fmt_id:
        state.total_errors = state.max_errors_reported - 1
        catch_parsing_error(handle, ErrorCode.PARSE_FMT_ALIGN_OVER_MAX, None)
    if state.fmt_ids_defined > start:
        catch_parsing_error(handle, ErrorCode.PARSE_FMT_START_ALIGNMENT, None)
    state.fmt_ids_defined = start
    state.fmt_align_value = start
    check_closing_bracket(handle)