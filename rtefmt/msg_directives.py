"""Parsing of the MSG, MSGN, MSGX and EXT_MSG message directives."""

from __future__ import annotations

from collections.abc import Callable

from rtefmt.errors import ErrorCode, catch_parsing_error, report_parsing_error
from rtefmt.file_handling import write_define_to_work_file
from rtefmt.helpers import parse_name, parse_unsigned_int
from rtefmt.model import MessageDefinition, MessageType, ParseHandle

MAX_MSG_LENGTH = 256
MSGX_FMT_IDS = 16

SizeParser = Callable[[ParseHandle, MessageDefinition], "int | None"]


def check_if_the_last_msg_is_empty(handle: ParseHandle) -> None:
    """Report an error if the current message has no formatting text."""
    message = handle.current_message
    if message is not None and message.format.fmt_string is None:
        report_parsing_error(handle, ErrorCode.PARSE_MSG_EMPTY, message.message_name)


def _parse_msg_num(handle: ParseHandle, message: MessageDefinition) -> int | None:
    words = parse_unsigned_int(handle)
    if words > 4:
        catch_parsing_error(handle, ErrorCode.PARSE_MSG_SIZE_0_4, None)
    message.msg_len = 4 * words
    return handle.state.assign_fmt_id(1 << words, message)


def _parse_ext_msg_num(handle: ParseHandle, message: MessageDefinition) -> int | None:
    words = parse_unsigned_int(handle)
    if words > 4:
        catch_parsing_error(handle, ErrorCode.PARSE_EXT_MSG_SIZE, None)
    cursor = handle.cursor
    if cursor.peek() != "_":
        catch_parsing_error(handle, ErrorCode.PARSE_EXPECTING_UNDERSCORE, None)
    cursor.advance()
    bits = parse_unsigned_int(handle)
    if bits > 8 - words or bits < 1:
        catch_parsing_error(handle, ErrorCode.PARSE_EXT_MSG_NO_BITS, None)
    message.ext_data_mask = (1 << bits) - 1
    message.msg_len = 4 + 4 * words
    return handle.state.assign_fmt_id(1 << (bits + words), message)


def _parse_msgx_num(handle: ParseHandle, message: MessageDefinition) -> int | None:
    return handle.state.assign_fmt_id(MSGX_FMT_IDS, message)


def _parse_msgn_num(handle: ParseHandle, message: MessageDefinition) -> int | None:
    if handle.cursor.peek() == "_":
        return handle.state.assign_fmt_id(MSGX_FMT_IDS, message)
    words = parse_unsigned_int(handle)
    fmt_id = handle.state.assign_fmt_id(MSGX_FMT_IDS, message)
    message.msg_len = 4 * words
    if words > MAX_MSG_LENGTH:
        catch_parsing_error(handle, ErrorCode.PARSE_MSG_DEFINITION_TOO_BIG, None)
    if words == 0:
        catch_parsing_error(handle, ErrorCode.PARSE_MSG0_NOT_ALLOWED, None)
    return fmt_id


def _parse_msg_name(handle: ParseHandle) -> str:
    name = parse_name(handle)
    if handle.state.find_message(name) is not None:
        catch_parsing_error(handle, ErrorCode.PARSE_MSG_NAME_EXISTS, name)
    return name


def _parse_msg_directive(handle: ParseHandle, prefix: str, msg_type: MessageType,
                         parse_size: SizeParser) -> None:
    check_if_the_last_msg_is_empty(handle)
    if handle.new_message is not None:
        catch_parsing_error(handle, ErrorCode.PARSE_MSG_MULTIPLE_IN_LINE, None)
    if handle.found_in_file_select or handle.found_out_file_select:
        catch_parsing_error(handle, ErrorCode.PARSE_MSG_IN_LINE_AFTER_IN_OUT_SELECT, None)

    message = MessageDefinition(msg_type=msg_type)
    handle.new_message = message
    cursor = handle.cursor
    start = cursor.pos
    cursor.advance(len(prefix))

    fmt_id = parse_size(handle, message)
    if fmt_id is None:
        state = handle.state
        state.total_errors = state.max_errors_reported - 1
        catch_parsing_error(handle, ErrorCode.PARSE_FMT_ID_NOT_ASSIGNED, None)

    following = cursor.peek(1)
    if cursor.peek() != "_" or not (following.isascii() and following.isalnum()):
        catch_parsing_error(handle, ErrorCode.PARSE_MSG_DEFINITION, None)

    cursor.pos = start
    message.message_name = _parse_msg_name(handle)
    handle.current_message = message
    write_define_to_work_file(handle, message.message_name, fmt_id)


_DIRECTIVES: tuple[tuple[str, MessageType, SizeParser], ...] = (
    ("MSGN", MessageType.MSGN, _parse_msgn_num),
    ("MSGX", MessageType.MSGX, _parse_msgx_num),
    ("MSG", MessageType.MSG0_4, _parse_msg_num),
    ("EXT_MSG", MessageType.EXT_MSG, _parse_ext_msg_num),
)


def parse_msg_directives(handle: ParseHandle) -> None:
    """Parse a MSG, MSGN, MSGX or EXT_MSG directive at the cursor."""
    text = handle.cursor.rest()
    for prefix, msg_type, parse_size in _DIRECTIVES:
        if text.startswith(prefix):
            _parse_msg_directive(handle, prefix, msg_type, parse_size)
            return
    catch_parsing_error(handle, ErrorCode.PARSE_UNRECOGNIZED_DIRECTIVE, text)