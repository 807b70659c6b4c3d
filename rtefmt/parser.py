"""Line-by-line parsing of format definition files."""

from __future__ import annotations

from collections.abc import Callable

from rtefmt.directives import (
    check_and_reset_fmt_parsing,
    check_closing_bracket,
    check_opening_bracket,
    parse_filter,
    parse_fmt_align,
    parse_fmt_start,
    parse_in_file,
    parse_memo,
    parse_out_file,
)
from rtefmt.errors import ErrorCode, ParseError, catch_parsing_error, report_parsing_error
from rtefmt.file_handling import (
    check_and_replace_work_file,
    setup_parse_files,
    write_define_to_work_file,
)
from rtefmt.fmt_string import separate_fmt_strings
from rtefmt.helpers import (
    Cursor,
    parse_file_path_arg,
    parse_name,
    process_escape_sequences,
)
from rtefmt.model import (
    MAX_FILEPATH_LENGTH,
    MAX_INPUT_LINE_LENGTH,
    DecoderState,
    EnumType,
    ParseHandle,
    PrintType,
)
from rtefmt.msg_directives import check_if_the_last_msg_is_empty, parse_msg_directives

_C_WHITESPACE = " \t\n\v\f\r"


def _reset_parse_handle(handle: ParseHandle) -> None:
    handle.new_message = None
    handle.found_in_file_select = False
    handle.found_out_file_select = False


def _set_default_fmt(handle: ParseHandle) -> None:
    """Give a message whose text failed to parse an empty text, to avoid follow-up errors."""
    message = handle.current_message
    if message is None or message.format is None or message.format.fmt_string is not None:
        return
    message.format.fmt_type = PrintType.PLAIN_TEXT
    message.format.fmt_string = ""


def is_commented_out(handle: ParseHandle, line: str) -> bool:
    """True for an empty line or a C comment that is closed on the same line."""
    if not line:
        return True
    if len(line) <= 3:
        return False
    if not line.startswith("/*"):
        return False
    if not line.rstrip(_C_WHITESPACE).endswith("*/"):
        catch_parsing_error(handle, ErrorCode.PARSE_UNFINISHED_COMMENT, line)
    return True


def parse_fmt_text(handle: ParseHandle) -> None:
    """Parse quoted formatting text and split it into value formats."""
    cursor = handle.cursor
    text = cursor.text
    start = cursor.pos + 1
    close = None
    index = start
    while index < len(text):
        char = text[index]
        if char == "\\" and text[index + 1:index + 2] in ('"', "\\") \
                and index + 1 < len(text):
            index += 2
            continue
        if char == '"':
            close = index
            break
        index += 1
    if close is None:
        catch_parsing_error(handle, ErrorCode.PARSE_INVALID_TEXT, cursor.rest())

    body = process_escape_sequences(text[start:close])
    cursor.pos = close + 1
    separate_fmt_strings(body, handle)

    handle.current_in_file_idx = 0
    handle.current_out_file_idx = 0
    handle.print_to_main_log = False

    cursor.skip_whitespace()
    if not cursor.at_end:
        catch_parsing_error(handle, ErrorCode.PARSE_SURPLUS_TEXT, cursor.rest())


def parse_select_in_file(handle: ParseHandle) -> None:
    """Parse <NAME: take %Y texts from the named IN_FILE."""
    cursor = handle.cursor
    if handle.found_in_file_select:
        catch_parsing_error(
            handle, ErrorCode.PARSE_SELECT_IN_FILE_MULTIPLE_IN_LINE, cursor.rest())
    handle.found_in_file_select = True
    cursor.advance(1)
    name = parse_name(handle)
    if handle.current_message is None:
        catch_parsing_error(handle, ErrorCode.PARSE_IN_OUT_SELECT_NO_MSG, cursor.rest())
    index = handle.state.find_enum_index(name, EnumType.IN_FILE)
    if index is None:
        catch_parsing_error(handle, ErrorCode.PARSE_IN_SELECT_UNDEFINED, name)
    handle.current_in_file_idx = index


def parse_select_out_file(handle: ParseHandle) -> None:
    """Parse >NAME (output to the file only) or >>NAME (also to the main log)."""
    cursor = handle.cursor
    if handle.found_out_file_select:
        catch_parsing_error(
            handle, ErrorCode.PARSE_SELECT_OUT_FILE_MULTIPLE_IN_LINE, cursor.rest())
    handle.found_out_file_select = True
    cursor.skip_whitespace()
    cursor.advance(1)
    to_main_log = False
    if cursor.peek() == ">":
        cursor.advance(1)
        to_main_log = True
    name = parse_name(handle)
    if handle.current_message is None:
        catch_parsing_error(handle, ErrorCode.PARSE_IN_OUT_SELECT_NO_MSG, cursor.rest())
    index = handle.state.find_enum_index(name, EnumType.OUT_FILE)
    if index is None:
        catch_parsing_error(handle, ErrorCode.PARSE_OUT_SELECT_UNDEFINED, name)
    handle.current_out_file_idx = index
    if to_main_log:
        handle.print_to_main_log = True


def parse_include(handle: ParseHandle) -> None:
    """Parse INCLUDE("file") and parse the included file."""
    check_and_reset_fmt_parsing(handle)
    handle.cursor.advance(len("INCLUDE"))
    check_opening_bracket(handle)
    path = parse_file_path_arg(handle, MAX_FILEPATH_LENGTH)
    parse_fmt_file(path, handle.state, handle)
    _reset_parse_handle(handle)
    check_closing_bracket(handle)


def _parse_filter_directive(handle: ParseHandle) -> None:
    filter_no = parse_filter(handle)
    write_define_to_work_file(handle, handle.state.enums[filter_no].name, filter_no)


_KEYWORDS: tuple[tuple[str, Callable[[ParseHandle], object]], ...] = (
    ("FILTER", _parse_filter_directive),
    ("INCLUDE", parse_include),
    ("OUT_FILE", parse_out_file),
    ("IN_FILE", parse_in_file),
    ("FMT_ALIGN", parse_fmt_align),
    ("FMT_START", parse_fmt_start),
)


def _parse_one_directive(handle: ParseHandle) -> None:
    cursor = handle.cursor
    text = cursor.rest()
    first = cursor.peek()
    if first == '"':
        parse_fmt_text(handle)
    elif text.startswith("MEMO"):
        parse_memo(handle)
    elif first == ">":
        parse_select_out_file(handle)
    elif first == "<":
        parse_select_in_file(handle)
    elif first in ("M", "E") and first:
        parse_msg_directives(handle)
    else:
        for keyword, parse in _KEYWORDS:
            if text.startswith(keyword):
                parse(handle)
                return
        catch_parsing_error(handle, ErrorCode.PARSE_UNRECOGNIZED_DIRECTIVE, text)


def parse_directive(handle: ParseHandle) -> None:
    """Parse all directives and formatting texts in the rest of the line."""
    cursor = handle.cursor
    while True:
        cursor.skip_whitespace()
        handle.err_position = cursor.rest()
        _parse_one_directive(handle)
        cursor.skip_whitespace()
        if cursor.at_end:
            break
    _reset_parse_handle(handle)


def parse_input_line(handle: ParseHandle, line: str) -> None:
    """Parse one line of a format definition file."""
    if len(line) >= MAX_INPUT_LINE_LENGTH - 4:
        catch_parsing_error(handle, ErrorCode.PARSE_LINE_TOO_LONG, "")

    stripped = line.lstrip(_C_WHITESPACE)
    if stripped.startswith("#"):
        if not handle.write_output_to_header:
            return
        catch_parsing_error(handle, ErrorCode.PARSE_C_DIRECTIVES_NOT_ALLOWED, stripped)

    if handle.state.settings.check_syntax_and_compile and handle.work_file is not None:
        handle.work_file.write(line)

    if is_commented_out(handle, stripped):
        return
    if not stripped.startswith("//"):
        catch_parsing_error(handle, ErrorCode.PARSE_UNRECOGNIZED_DIRECTIVE, line)

    handle.cursor = Cursor(line, len(line) - len(stripped) + 2)
    try:
        parse_directive(handle)
    finally:
        handle.cursor = None


def parse_fmt_file(path: str, state: DecoderState,
                   parent: ParseHandle | None = None) -> ParseHandle | None:
    """Parse a format definition file; return its handle, or None if it cannot be opened."""
    handle = ParseHandle(state=state, fmt_file_path=path, parent=parent)
    if not setup_parse_files(handle) or handle.fmt_file is None:
        return None

    while True:
        if state.total_errors >= state.max_errors_reported:
            handle.parsing_errors_found = True
            break
        try:
            line = handle.fmt_file.readline()
        except (OSError, ValueError) as exc:
            handle.error_target.os_errno = getattr(exc, "errno", 0) or 0
            report_parsing_error(
                handle.error_target, ErrorCode.PARSE_READ_FROM_FMT_FILE, path)
            break
        if not line:
            break
        handle.file_line_num += 1
        try:
            parse_input_line(handle, line)
        except ParseError:
            _reset_parse_handle(handle)
            _set_default_fmt(handle)

    check_if_the_last_msg_is_empty(handle)

    if state.settings.check_syntax_and_compile and handle.work_file is not None:
        handle.work_file.write("#endif\n")
        try:
            check_and_replace_work_file(handle)
        except ParseError:
            pass
    elif not handle.fmt_file.closed:
        handle.fmt_file.close()
    return handle