"""Parsing of the value specifications that follow a '%' in formatting text.

These are the [value], (scaling), {indexed|text}, <M_memo> and |statistics|
extensions of the formatting syntax.
"""

from __future__ import annotations

import re

from rtefmt.directives import _parse_double
from rtefmt.errors import ErrorCode, catch_parsing_error
from rtefmt.helpers import Cursor, parse_until
from rtefmt.model import (
    MAX_ENUMS,
    MAX_INPUT_LINE_LENGTH,
    MAX_NAME_LENGTH,
    DataType,
    EnumEntry,
    EnumType,
    ParseHandle,
)

Y_TEXT_NAME = "#Y_TEXT"
VALUE_TYPE_CHARS = "fuis"

_ULONG = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]+)")
_ULONG_MAX = 2**64 - 1
_UINT32_MASK = 0xFFFFFFFF


def _parse_ulong(cursor: Cursor) -> int | None:
    """Parse an unsigned decimal number at the cursor the way strtoul does."""
    match = _ULONG.match(cursor.text, cursor.pos)
    if match is None:
        return None
    value = min(int(match.group(2)), _ULONG_MAX)
    if match.group(1) == "-":
        value = (-value) & _ULONG_MAX
    cursor.pos = match.end()
    return value


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _parse_special_spec(handle: ParseHandle, data_type: DataType) -> None:
    """Parse [N], [t] or [T]."""
    cursor = handle.cursor
    if cursor.peek(2) != "]":
        catch_parsing_error(handle, ErrorCode.PARSE_EXPECTING_SQUARE_BRACKET, cursor.rest())
    fmt = handle.current_format
    fmt.data_type = data_type
    fmt.data_size = 0
    cursor.advance(3)


def _parse_memo_recall_spec(handle: ParseHandle) -> None:
    """Parse [M_NAME]: print the value memorized in a MEMO."""
    cursor = handle.cursor
    sub = Cursor(cursor.text, cursor.pos + 1)
    sub.skip_whitespace()
    selection = parse_until(sub, "]", MAX_NAME_LENGTH)
    if selection is None:
        catch_parsing_error(handle, ErrorCode.PARSE_RECALL_DEFINITION, cursor.rest())
    memo_index = handle.state.find_enum_index(selection, EnumType.MEMO)
    if memo_index is None:
        catch_parsing_error(handle, ErrorCode.PARSE_INVALID_NAME, selection)
    fmt = handle.current_format
    fmt.get_memo = memo_index
    fmt.data_type = DataType.MEMO
    fmt.data_size = 0
    cursor.pos = sub.pos + 1


def _parse_relative_timestamp_spec(handle: ParseHandle) -> None:
    """Parse [t-MSG_NAME]: time since the last message with that name."""
    cursor = handle.cursor
    sub = Cursor(cursor.text, cursor.pos + 3)
    selection = parse_until(sub, "]", MAX_NAME_LENGTH)
    if selection is None:
        catch_parsing_error(handle, ErrorCode.PARSE_TIMESTAMP_DEFINITION, cursor.rest())
    msg_index = handle.state.find_message(selection)
    if msg_index is None:
        catch_parsing_error(handle, ErrorCode.PARSE_TIMESTAMP_MSG_NOT_FOUND, cursor.rest())
    fmt = handle.current_format
    fmt.fmt_id_timer = msg_index
    fmt.data_type = DataType.TIME_DIFF
    fmt.data_size = 0
    cursor.pos = sub.pos + 1


def parse_remember_spec(handle: ParseHandle) -> None:
    """Parse <M_NAME>: memorize the printed value in a MEMO."""
    cursor = handle.cursor
    start = cursor.rest()
    sub = Cursor(cursor.text, cursor.pos + 1)
    sub.skip_whitespace()
    selection = parse_until(sub, ">", MAX_NAME_LENGTH)
    if not selection:
        catch_parsing_error(handle, ErrorCode.PARSE_REMEMBER_MEMO_NOT_FOUND, start)
    memo_index = handle.state.find_enum_index(selection, EnumType.MEMO)
    if memo_index is None:
        catch_parsing_error(handle, ErrorCode.PARSE_REMEMBER_MEMO_NOT_FOUND, selection)
    if handle.current_format.put_memo:
        catch_parsing_error(handle, ErrorCode.PARSE_OVERDEFINITION_ANGLEBRACKETS, start)
    handle.current_format.put_memo = memo_index
    cursor.pos = sub.pos + 1


def parse_statistics_spec(handle: ParseHandle) -> None:
    """Parse |name|: collect statistics for the value under this name."""
    cursor = handle.cursor
    start = cursor.rest()
    sub = Cursor(cursor.text, cursor.pos + 1)
    selection = parse_until(sub, "|", MAX_NAME_LENGTH)
    if selection is None:
        catch_parsing_error(handle, ErrorCode.PARSE_BAD_STATISTICS_NAME, start)
    if not selection:
        catch_parsing_error(handle, ErrorCode.PARSE_EMPTY_STATISTICS, start)
    if handle.current_format.value_stat_name is not None:
        catch_parsing_error(handle, ErrorCode.PARSE_OVERDEFINITION_PIPEBRACKETS, start)
    handle.current_format.value_stat_name = selection
    cursor.pos = sub.pos + 1


def _save_indexed_text(handle: ParseHandle, data: bytes, context: str) -> int:
    state = handle.state
    if state.enums_found >= MAX_ENUMS:
        state.total_errors = state.max_errors_reported - 1
        catch_parsing_error(handle, ErrorCode.PARSE_MAX_ENUMS, context)
    if handle.current_format.in_file:
        catch_parsing_error(handle, ErrorCode.PARSE_Y_TEXT_OVERDEFINED, context)
    index = state.add_enum(
        EnumEntry(name=Y_TEXT_NAME, type=EnumType.Y_TEXT, in_file_text=data)
    )
    handle.current_format.in_file = index
    state.fmt_ids_defined += 1
    return index


def parse_indexed_text(handle: ParseHandle) -> int:
    """Parse {text1|text2|...}; return the index of the new indexed text entry.

    The texts are stored as length-prefixed byte strings ending with a zero byte.
    """
    cursor = handle.cursor
    start = cursor.rest()
    segments: list[bytes] = []
    current = bytearray()
    index = 1
    close_pos = None
    for offset, char in enumerate(cursor.text[cursor.pos + 1:]):
        encoded = _encode(char)
        if index + len(encoded) - 1 >= MAX_INPUT_LINE_LENGTH - 1:
            catch_parsing_error(handle, ErrorCode.PARSE_LINE_TOO_LONG, "")
        if char in "|}":
            if not 1 <= len(current) <= 255:
                catch_parsing_error(handle, ErrorCode.PARSE_BAD_INDEXED_TEXT_LENGTH, start)
            segments.append(bytes(current))
            current = bytearray()
            if char == "}":
                close_pos = cursor.pos + 1 + offset
                break
        else:
            current.extend(encoded)
        index += len(encoded)

    if len(segments) < 2:
        catch_parsing_error(handle, ErrorCode.PARSE_INDEXED_TEXT_ATLEAST_2_OPTIONS, start)
    if close_pos is None:
        catch_parsing_error(handle, ErrorCode.PARSE_INDEXED_TEXT_UNFINISHED, start)

    data = b"".join(bytes([len(seg)]) + seg for seg in segments) + b"\0"
    entry_index = _save_indexed_text(handle, data, start)
    cursor.pos = close_pos + 1
    handle.found_indexed_text = True
    return entry_index


def parse_scaling_spec(handle: ParseHandle, found_square_brackets: bool) -> None:
    """Parse (+offset*multiplier), (+offset) or (*multiplier)."""
    cursor = handle.cursor
    start = cursor.rest()
    sub = Cursor(cursor.text, cursor.pos + 1)
    sub.skip_whitespace()
    offset = 0.0
    multiplier = 1.0

    if sub.peek() not in ("+", "-", "*") or sub.peek() == "":
        catch_parsing_error(handle, ErrorCode.PARSE_SCALING_INVALID_FORMAT, start)
    if sub.peek() in ("+", "-"):
        parsed = _parse_double(sub)
        if parsed is None:
            catch_parsing_error(handle, ErrorCode.PARSE_SCALING_INVALID_FORMAT, start)
        offset = parsed
    if sub.peek() == "*":
        sub.advance()
        parsed = _parse_double(sub)
        if parsed is None:
            catch_parsing_error(handle, ErrorCode.PARSE_SCALING_INVALID_FORMAT, start)
        multiplier = parsed
    if sub.peek() != ")":
        catch_parsing_error(handle, ErrorCode.PARSE_SCALING_INVALID_FORMAT, start)

    sub.advance()
    cursor.pos = sub.pos
    fmt = handle.current_format
    if fmt.mult != 0:
        catch_parsing_error(handle, ErrorCode.PARSE_OVERDEFINITION_PARENTHESES, cursor.rest())
    if multiplier == 0:
        catch_parsing_error(handle, ErrorCode.PARSE_SCALING_ZERO_MULTIPLIER, cursor.rest())
    if not found_square_brackets:
        catch_parsing_error(handle, ErrorCode.PARSE_MUST_HAVE_VALUE_DEF, cursor.rest())
    fmt.mult = multiplier
    fmt.offset = offset


def _check_and_set_value_definition(handle: ParseHandle, size: int, address: int,
                                    sign: str, two_values_found: bool) -> None:
    if not 1 <= size <= 64:
        catch_parsing_error(handle, ErrorCode.PARSE_VALUE_NNMMF_INVALID_SIZE, None)
    state = handle.state
    handle.current_format.data_size = size
    if two_values_found:
        if sign == "+":
            state.parse_bit_address = (state.parse_bit_address + address) & _UINT32_MASK
        elif sign == "-":
            if state.parse_bit_address < address:
                catch_parsing_error(handle, ErrorCode.PARSE_VALUE_NNMMF_MM_NEGATIVE_ADDR, None)
            state.parse_bit_address -= address
        else:
            state.parse_bit_address = address & _UINT32_MASK
    elif sign:
        catch_parsing_error(handle, ErrorCode.PARSE_VALUE_SIGN, None)
    handle.current_format.bit_address = state.parse_bit_address


def _check_and_set_data_type(handle: ParseHandle, type_char: str) -> None:
    fmt = handle.current_format
    if type_char == "s":
        fmt.data_type = DataType.STRING
        if fmt.bit_address & 7:
            catch_parsing_error(handle, ErrorCode.PARSE_SW_ADDR_NOT_DIVISIBLE_BY_8, None)
    elif type_char == "i":
        fmt.data_type = DataType.INT64
    elif type_char == "f":
        fmt.data_type = DataType.DOUBLE
        if fmt.bit_address % 8:
            catch_parsing_error(handle, ErrorCode.PARSE_SW_ADDR_NOT_DIVISIBLE_BY_8, None)
        if fmt.data_size not in (16, 32, 64):
            catch_parsing_error(handle, ErrorCode.PARSE_VALUE_DOUBLE_LENGTH, None)
    else:
        fmt.data_type = DataType.UINT64


def parse_value_data(handle: ParseHandle) -> None:
    """Parse [+/-nn:mmF], [nn:mmF] or [mmF] (F is f, u, i or s)."""
    cursor = handle.cursor
    start = cursor.rest()
    sub = Cursor(cursor.text, cursor.pos + 1)
    sign = ""
    if sub.peek() in ("+", "-") and sub.peek():
        sign = sub.peek()
        sub.advance()

    size = _parse_ulong(sub)
    if size is None:
        catch_parsing_error(handle, ErrorCode.PARSE_VALUE_INVALID_CHAR, start)
    address = 0
    two_values_found = False
    if sub.peek() == ":":
        sub.advance()
        address = size
        size = _parse_ulong(sub)
        if size is None:
            catch_parsing_error(handle, ErrorCode.PARSE_VALUE_INVALID_CHAR, start)
        two_values_found = True

    type_char = "u"
    if sub.peek() and sub.peek() in VALUE_TYPE_CHARS:
        type_char = sub.peek()
        sub.advance()
    if sub.peek() != "]":
        catch_parsing_error(handle, ErrorCode.PARSE_VALUE_UNFINISHED, start)
    sub.advance()
    cursor.pos = sub.pos

    _check_and_set_value_definition(handle, size, address, sign, two_values_found)
    _check_and_set_data_type(handle, type_char)


def parse_square_brackets(handle: ParseHandle) -> None:
    """Parse a value definition: [N], [t-MSG_NAME], [t], [T], [M_NAME] or [nn:mmF]."""
    cursor = handle.cursor
    handle.err_position = cursor.rest()
    first, second = cursor.peek(1), cursor.peek(2)
    if first == "N":
        _parse_special_spec(handle, DataType.MESSAGE_NO)
    elif first == "t" and second == "-":
        _parse_relative_timestamp_spec(handle)
    elif first == "t":
        _parse_special_spec(handle, DataType.TIMESTAMP)
    elif first == "T":
        _parse_special_spec(handle, DataType.DTIMESTAMP)
    elif first == "M" and second == "_":
        _parse_memo_recall_spec(handle)
    else:
        parse_value_data(handle)
    handle.found_value_spec = True


def parse_special_format(handle: ParseHandle) -> None:
    """Parse the value extensions that directly follow a '%'.

    The cursor is left on the first character that is not part of them. If the
    text ends before such a character, the cursor goes back to where it started.
    """
    cursor = handle.cursor
    start_pos = cursor.pos
    start = cursor.rest()
    found_square_brackets = False
    finished = False
    while not cursor.at_end and not finished:
        char = cursor.peek()
        if char == "(":
            parse_scaling_spec(handle, found_square_brackets)
        elif char == "[":
            if found_square_brackets:
                catch_parsing_error(
                    handle, ErrorCode.PARSE_OVERDEFINITION_SQUAREBRACKETS, start)
            parse_square_brackets(handle)
            found_square_brackets = True
        elif char == "{":
            parse_indexed_text(handle)
        elif char == "<":
            parse_remember_spec(handle)
        elif char == "|":
            parse_statistics_spec(handle)
        else:
            finished = True
    if not finished:
        cursor.pos = start_pos

    if not handle.found_value_spec:
        handle.current_format.data_size = 32
    handle.current_format.bit_address = handle.state.parse_bit_address