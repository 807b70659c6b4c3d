"""Splitting formatting text into one formatting definition per printed value."""

from __future__ import annotations

from rtefmt.errors import ErrorCode, catch_parsing_error
from rtefmt.helpers import Cursor
from rtefmt.model import (
    MAX_INPUT_LINE_LENGTH,
    DataType,
    EnumType,
    MessageType,
    ParseHandle,
    PrintType,
    ValueFormat,
)
from rtefmt.value_spec import parse_special_format

TYPE_CHARS = "dicouxXeEfFgGaAtTNWHYBsDM"
SPECIAL_TYPE_CHARS = "tTNWHYBsDM"
FLAG_CHARS = "0123456789-+#hl. "

_HEX_TYPES = {"1": PrintType.HEX1U, "2": PrintType.HEX2U, "4": PrintType.HEX4U}
_ZERO_SIZE_TYPES = {
    "t": PrintType.TIMESTAMP,
    "T": PrintType.DTIMESTAMP,
    "N": PrintType.MSG_NO,
    "D": PrintType.DATE,
    "M": PrintType.MSG_FMT_ID_NAME,
}


def prepare_or_continue_fmt(handle: ParseHandle) -> ValueFormat:
    """Select the formatting structure for the next value of the current message."""
    handle.found_indexed_text = False
    handle.found_value_spec = False
    message = handle.current_message
    if message is None:
        catch_parsing_error(handle, ErrorCode.PARSE_NO_PRIOR_MSG, None)

    state = handle.state
    if handle.prev_msg is not message:
        handle.prev_msg = message
        handle.current_format = message.format
        state.parse_bit_address = 0
    else:
        new_format = ValueFormat()
        handle.current_format.next = new_format
        handle.current_format = new_format

    if handle.prev_out_file_idx != handle.current_out_file_idx:
        state.parse_bit_address = 0
    handle.prev_out_file_idx = handle.current_out_file_idx

    fmt = handle.current_format
    fmt.out_file = handle.current_out_file_idx
    fmt.print_copy_to_main_log = handle.print_to_main_log
    fmt.in_file = handle.current_in_file_idx
    return fmt


def _eliminate_percent(handle: ParseHandle, substring: str, check_value_spec: bool) -> str:
    """Drop the '%' and type character that the printing code does not understand."""
    if len(substring) >= 2 and substring[-2] == "%":
        substring = substring[:-2]
    else:
        catch_parsing_error(handle, ErrorCode.PARSE_TYPE_ADDITIONAL_FORMATTING, substring)
    if check_value_spec and handle.found_value_spec:
        catch_parsing_error(handle, ErrorCode.PARSE_VAL_DEF_NOT_FOR_SPECIAL_FMT, None)
    return substring


def _check_no_memo_or_statistics(handle: ParseHandle) -> None:
    fmt = handle.current_format
    if fmt.get_memo or fmt.put_memo:
        catch_parsing_error(handle, ErrorCode.PARSE_MEMO_NOT_ALLOWED, None)
    if fmt.value_stat_name is not None:
        catch_parsing_error(handle, ErrorCode.PARSE_STATISTICS_NOT_ALLOWED, None)


def _check_string_data(handle: ParseHandle) -> None:
    fmt = handle.current_format
    if fmt.data_type is DataType.AUTO:
        fmt.data_size = 0
    elif fmt.data_size & 7:
        catch_parsing_error(handle, ErrorCode.PARSE_SW_SIZE_NOT_DIVISIBLE_BY_8, None)
    if fmt.bit_address & 7:
        catch_parsing_error(handle, ErrorCode.PARSE_SW_ADDR_NOT_DIVISIBLE_BY_8, None)


def _parse_hex_format(handle: ParseHandle, substring: str) -> str:
    if len(substring) < 3:
        catch_parsing_error(handle, ErrorCode.PARSE_TYPE_HEX, substring)
    fmt = handle.current_format
    fmt.data_size = 0
    hex_type = _HEX_TYPES.get(substring[-2])
    if hex_type is None:
        catch_parsing_error(handle, ErrorCode.PARSE_TYPE_HEX, substring)
    fmt.fmt_type = hex_type
    if substring[-3] != "%":
        catch_parsing_error(handle, ErrorCode.PARSE_TYPE_ADDITIONAL_FORMATTING, substring)
    substring = substring[:-3]
    if fmt.data_type is not DataType.AUTO:
        catch_parsing_error(handle, ErrorCode.PARSE_HEX_PRINT_VALUE_NOT_ALLOWED, None)
    return substring


def _check_fmt_type_data(handle: ParseHandle, fmt_char: str) -> None:
    fmt = handle.current_format
    enums = handle.state.enums
    if fmt_char != "Y" and fmt.in_file > 0 and fmt.in_file < len(enums):
        entry = enums[fmt.in_file]
        if entry is not None and entry.type is EnumType.Y_TEXT:
            catch_parsing_error(handle, ErrorCode.PARSE_Y_TEXT_NOT_USED, None)

    if fmt.data_size == 0:
        return

    message = handle.current_message
    last_bit = fmt.bit_address + fmt.data_size
    if (message.msg_len != 0 and last_bit > message.msg_len * 8) or (
        message.msg_len == 0 and message.msg_type is MessageType.MSG0_4
    ):
        catch_parsing_error(handle, ErrorCode.PARSE_TYPE_MSG_SIZE, None)
    if fmt.data_type is DataType.AUTO and fmt.bit_address % 32:
        catch_parsing_error(handle, ErrorCode.PARSE_TYPE_NOT_DIV_32, None)


def fill_in_fmt_type(handle: ParseHandle, substring: str, fmt_char: str) -> str:
    """Set the print type for fmt_char; return the substring as it will be printed."""
    fmt = handle.current_format
    if fmt_char in "di":
        fmt.fmt_type = PrintType.INT64
    elif fmt_char in "eEfFgGaA":
        fmt.fmt_type = PrintType.DOUBLE
    elif fmt_char in _ZERO_SIZE_TYPES:
        fmt.fmt_type = _ZERO_SIZE_TYPES[fmt_char]
        fmt.data_size = 0
        substring = _eliminate_percent(handle, substring, True)
        if fmt_char in "DM":
            _check_no_memo_or_statistics(handle)
    elif fmt_char == "W":
        fmt.fmt_type = PrintType.BIN_TO_FILE
        if fmt.data_type is DataType.AUTO:
            fmt.data_size = 0
        substring = _eliminate_percent(handle, substring, False)
        _check_string_data(handle)
        _check_no_memo_or_statistics(handle)
    elif fmt_char == "H":
        substring = _parse_hex_format(handle, substring)
        _check_no_memo_or_statistics(handle)
    elif fmt_char == "Y":
        fmt.fmt_type = PrintType.SELECTED_TEXT
        if fmt.in_file == 0:
            catch_parsing_error(handle, ErrorCode.PARSE_Y_TEXT_UNDEFINED, None)
        substring = _eliminate_percent(handle, substring, False)
    elif fmt_char == "B":
        fmt.fmt_type = PrintType.BINARY
        substring = _eliminate_percent(handle, substring, False)
    elif fmt_char == "s":
        fmt.fmt_type = PrintType.STRING
        _check_string_data(handle)
    else:
        fmt.fmt_type = PrintType.UINT64

    _check_fmt_type_data(handle, fmt_char)
    return substring


def _check_y_type_formatting(handle: ParseHandle, substring: str) -> None:
    fmt = handle.current_format
    if handle.found_indexed_text != (fmt.fmt_type is PrintType.SELECTED_TEXT):
        if fmt.in_file == 0 and not handle.state.settings.check_syntax_and_compile:
            catch_parsing_error(handle, ErrorCode.PARSE_INDEXED_TEXT_INCOMPLETE, substring)


def _finalize_substring(handle: ParseHandle, parts: list[str], cursor: Cursor) -> None:
    """Append the type character and following text; fill in the value format."""
    fmt_char = cursor.peek()
    special = fmt_char in SPECIAL_TYPE_CHARS
    while True:
        parts.append(cursor.peek())
        cursor.advance()
        char = cursor.peek()
        if char in ("\\", "%") or special or char == "":
            break

    substring = "".join(parts)
    handle.current_format.fmt_string = fill_in_fmt_type(handle, substring, fmt_char)
    _check_y_type_formatting(handle, substring)
    handle.state.parse_bit_address += handle.current_format.data_size


def _separate_one(text: str, start: int, handle: ParseHandle) -> int | None:
    """Parse one value's formatting; return where the next one starts, if any."""
    segment = text[start:]
    if not segment:
        catch_parsing_error(handle, ErrorCode.PARSE_EMPTY_STRING, "")
    prepare_or_continue_fmt(handle)

    cursor = Cursor(text, start)
    handle.cursor = cursor
    handle.err_position = segment
    parts: list[str] = []
    percent_found = False

    while not cursor.at_end:
        if len(parts) >= MAX_INPUT_LINE_LENGTH:
            catch_parsing_error(handle, ErrorCode.PARSE_LINE_TOO_LONG, "")
        char = cursor.peek()
        if percent_found:
            if char in FLAG_CHARS:
                parts.append(char)
                cursor.advance()
                continue
            if char not in TYPE_CHARS:
                catch_parsing_error(handle, ErrorCode.PARSE_TYPE_UNRECOGNIZED, segment)
            _finalize_substring(handle, parts, cursor)
            return None if cursor.at_end else cursor.pos

        parts.append(char)
        cursor.advance()
        if char == "%":
            if cursor.peek() == "%":
                parts.append("%")
                cursor.advance()
            else:
                parse_special_format(handle)
                percent_found = True

    if percent_found:
        catch_parsing_error(handle, ErrorCode.PARSE_UNFINISHED, segment)

    if parts:
        fmt = handle.current_format
        fmt.fmt_string = "".join(parts)
        fmt.data_size = 0
        fmt.fmt_type = PrintType.PLAIN_TEXT
        fmt.bit_address = handle.state.parse_bit_address
    return None


def separate_fmt_strings(text: str, handle: ParseHandle) -> None:
    """Split formatting text into a chain of formats, one value in each."""
    saved_cursor = handle.cursor
    try:
        position: int | None = 0
        while position is not None:
            position = _separate_one(text, position, handle)
    finally:
        handle.cursor = saved_cursor