"""Error codes and error reporting for format definition parsing."""

from __future__ import annotations

import enum
import os
import sys

from rtefmt.model import ParseHandle

MAX_ADDITIONAL_INFO_CHARS = 60
UNDEFINED_TEXT = "<undefined text>"


class ErrorCode(enum.IntEnum):
    """Error numbers; parsing errors start at PARSE_UNKNOWN."""

    DECODE_UNKNOWN_ERROR = 1
    INTERNAL_ERROR = enum.auto()

    PARSE_UNKNOWN = 100
    PARSE_NO_CLOSING_BRACKET = enum.auto()
    PARSE_SURPLUS_TEXT = enum.auto()
    PARSE_NO_OPENING_BRACKET = enum.auto()
    PARSE_MSG_EMPTY = enum.auto()
    PARSE_UNFINISHED_COMMENT = enum.auto()
    PARSE_MEMO_INIT_VAL = enum.auto()
    PARSE_INVALID_TEXT = enum.auto()
    PARSE_SELECT_IN_FILE_MULTIPLE_IN_LINE = enum.auto()
    PARSE_IN_OUT_SELECT_NO_MSG = enum.auto()
    PARSE_IN_SELECT_UNDEFINED = enum.auto()
    PARSE_SELECT_OUT_FILE_MULTIPLE_IN_LINE = enum.auto()
    PARSE_OUT_SELECT_UNDEFINED = enum.auto()
    PARSE_FMT_ALIGN_OVER_MAX = enum.auto()
    PARSE_FMT_ALIGN_PWR_OF_2 = enum.auto()
    PARSE_FMT_START_ALIGNMENT = enum.auto()
    PARSE_FILTER_MAX_ENUMS = enum.auto()
    PARSE_FILTER_DESC = enum.auto()
    PARSE_FILE_MODE_EMPTY = enum.auto()
    PARSE_ERROR_IN_FILE_MODE = enum.auto()
    PARSE_EXPECTING_COMMA = enum.auto()
    PARSE_FILE_MODE = enum.auto()
    PARSE_OUT_FILE_INIT_TEXT = enum.auto()
    PARSE_OUT_NOT_CREATED = enum.auto()
    PARSE_UNRECOGNIZED_DIRECTIVE = enum.auto()
    PARSE_LINE_TOO_LONG = enum.auto()
    PARSE_C_DIRECTIVES_NOT_ALLOWED = enum.auto()
    PARSE_READ_FROM_FMT_FILE = enum.auto()
    PARSE_ENUMS_NAME_EXISTS = enum.auto()
    PARSE_IN_OUT_FILE_NAME_USED_TWICE = enum.auto()
    PARSE_EXPECTING_NUMBER = enum.auto()
    PARSE_NAME_TOO_LONG = enum.auto()
    PARSE_INVALID_NAME = enum.auto()
    PARSE_BAD_NAME_PREFIX = enum.auto()
    PARSE_MAX_ENUMS = enum.auto()
    PARSE_IN_OUT_FILE_PATH = enum.auto()
    PARSE_MSG_SIZE_0_4 = enum.auto()
    PARSE_EXT_MSG_SIZE = enum.auto()
    PARSE_EXPECTING_UNDERSCORE = enum.auto()
    PARSE_EXT_MSG_NO_BITS = enum.auto()
    PARSE_MSG_DEFINITION_TOO_BIG = enum.auto()
    PARSE_MSG0_NOT_ALLOWED = enum.auto()
    PARSE_MSG_NAME_EXISTS = enum.auto()
    PARSE_MSG_MULTIPLE_IN_LINE = enum.auto()
    PARSE_MSG_IN_LINE_AFTER_IN_OUT_SELECT = enum.auto()
    PARSE_FMT_ID_NOT_ASSIGNED = enum.auto()
    PARSE_MSG_DEFINITION = enum.auto()
    PARSE_FILE_WORK_CANNOT_COMPARE = enum.auto()
    PARSE_FILE_FILENAME_TOO_LONG = enum.auto()
    PARSE_FILE_CANNOT_OPEN_FMT_FILE = enum.auto()
    PARSE_FILE_CANNOT_CREATE_FMT_WORK_FILE = enum.auto()
    PARSE_FILE_WORK_CANNOT_REMOVE = enum.auto()
    PARSE_FILE_CANNOT_WRITE_TO_WORK_FILE = enum.auto()
    PARSE_FILE_HEADER_CANNOT_REMOVE = enum.auto()
    PARSE_FILE_HEADER_CANNOT_OPEN = enum.auto()
    PARSE_FILE_WORK_CANNOT_RENAME = enum.auto()
    PARSE_FILE_FMT_CANNOT_RENAME = enum.auto()
    PARSE_FILE_FMT_CANNOT_REMOVE = enum.auto()
    PARSE_IN_FILE_SELECT_ERROR = enum.auto()
    PARSE_IN_FILE_TOO_LONG = enum.auto()
    PARSE_IN_FILE_SELECT_INVALID_OPTIONS = enum.auto()
    PARSE_IN_FILE_SELECT_MIN_TWO_LINES = enum.auto()
    PARSE_TYPE_HEX = enum.auto()
    PARSE_TYPE_ADDITIONAL_FORMATTING = enum.auto()
    PARSE_HEX_PRINT_VALUE_NOT_ALLOWED = enum.auto()
    PARSE_MEMO_NOT_ALLOWED = enum.auto()
    PARSE_STATISTICS_NOT_ALLOWED = enum.auto()
    PARSE_Y_TEXT_NOT_USED = enum.auto()
    PARSE_TYPE_MSG_SIZE = enum.auto()
    PARSE_TYPE_NOT_DIV_32 = enum.auto()
    PARSE_VAL_DEF_NOT_FOR_SPECIAL_FMT = enum.auto()
    PARSE_SW_SIZE_NOT_DIVISIBLE_BY_8 = enum.auto()
    PARSE_SW_ADDR_NOT_DIVISIBLE_BY_8 = enum.auto()
    PARSE_Y_TEXT_UNDEFINED = enum.auto()
    PARSE_EXPECTING_SQUARE_BRACKET = enum.auto()
    PARSE_RECALL_DEFINITION = enum.auto()
    PARSE_TIMESTAMP_DEFINITION = enum.auto()
    PARSE_TIMESTAMP_MSG_NOT_FOUND = enum.auto()
    PARSE_REMEMBER_MEMO_NOT_FOUND = enum.auto()
    PARSE_OVERDEFINITION_ANGLEBRACKETS = enum.auto()
    PARSE_BAD_STATISTICS_NAME = enum.auto()
    PARSE_EMPTY_STATISTICS = enum.auto()
    PARSE_OVERDEFINITION_PIPEBRACKETS = enum.auto()
    PARSE_Y_TEXT_OVERDEFINED = enum.auto()
    PARSE_INDEXED_TEXT_UNFINISHED = enum.auto()
    PARSE_BAD_INDEXED_TEXT_LENGTH = enum.auto()
    PARSE_INDEXED_TEXT_ATLEAST_2_OPTIONS = enum.auto()
    PARSE_SCALING_INVALID_FORMAT = enum.auto()
    PARSE_OVERDEFINITION_PARENTHESES = enum.auto()
    PARSE_SCALING_ZERO_MULTIPLIER = enum.auto()
    PARSE_MUST_HAVE_VALUE_DEF = enum.auto()
    PARSE_VALUE_NNMMF_INVALID_SIZE = enum.auto()
    PARSE_VALUE_NNMMF_MM_NEGATIVE_ADDR = enum.auto()
    PARSE_VALUE_SIGN = enum.auto()
    PARSE_VALUE_DOUBLE_LENGTH = enum.auto()
    PARSE_VALUE_INVALID_CHAR = enum.auto()
    PARSE_VALUE_UNFINISHED = enum.auto()
    PARSE_OVERDEFINITION_SQUAREBRACKETS = enum.auto()
    PARSE_INDEXED_TEXT_INCOMPLETE = enum.auto()
    PARSE_EMPTY_STRING = enum.auto()
    PARSE_TYPE_UNRECOGNIZED = enum.auto()
    PARSE_UNFINISHED = enum.auto()
    PARSE_NO_PRIOR_MSG = enum.auto()


class ParseError(Exception):
    """Raised to abandon the rest of a line after a reported parsing error."""

    def __init__(self, code: ErrorCode, context: str | None = None):
        super().__init__(f"{code.name}: {context!r}")
        self.code = code
        self.context = context


def _normalize(code: int) -> ErrorCode:
    try:
        result = ErrorCode(code)
    except ValueError:
        return ErrorCode.PARSE_UNKNOWN
    return result if result >= ErrorCode.PARSE_UNKNOWN else ErrorCode.PARSE_UNKNOWN


def _additional_info(text: str) -> str:
    cleaned = "".join(" " if ord(c) < 0x20 else c for c in text)
    return cleaned[:MAX_ADDITIONAL_INFO_CHARS]


def format_error_report(template: str, handle: ParseHandle, code: int, context: str) -> str:
    """Expand an error report template (%L, %E, %P, %F, %D, %A)."""
    state = handle.state
    parts: list[str] = []
    chars = iter(template)
    for char in chars:
        if char != "%":
            parts.append(char)
            continue
        spec = next(chars, "")
        if spec == "L":
            parts.append(str(handle.file_line_num))
        elif spec == "E":
            parts.append(str(int(code)))
        elif spec == "P":
            parts.append(os.path.abspath(
                os.path.join(state.settings.fmt_folder, handle.fmt_file_path)))
        elif spec == "F":
            parts.append(handle.fmt_file_path)
        elif spec == "D":
            parts.append(state.messages.get(int(code), UNDEFINED_TEXT))
            if handle.os_errno:
                parts.append(f" [{os.strerror(handle.os_errno)}]")
        elif spec == "A":
            parts.append(_additional_info(context))
        else:
            parts.append("???")
        if spec == "":
            break
    return "".join(parts)


def report_parsing_error(handle: ParseHandle, code: int, context: str | None) -> str | None:
    """Count and print a parsing error; return the printed text, if any."""
    state = handle.state
    code = _normalize(code)
    handle.parsing_errors_found = True
    if context is None:
        context = handle.err_position if handle.err_position is not None else "???"
    text = None
    if state.total_errors < state.max_errors_reported:
        text = format_error_report(state.settings.report_error, handle, code, context)
        sys.stdout.write(text)
        if state.error_log is not None:
            state.error_log.write(text)
    state.total_errors += 1
    state.error_counter[code] += 1
    handle.os_errno = 0
    return text


def catch_parsing_error(handle: ParseHandle, code: int, context: str | None):
    """Report a parsing error and raise ParseError."""
    report_parsing_error(handle, code, context)
    raise ParseError(_normalize(code), context)