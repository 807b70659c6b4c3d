"""Data structures shared by the format definition parser."""

from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass, field
from typing import IO, Any

NUMBER_OF_FILTER_BITS = 32
MAX_ENUMS = 1024
MAX_NAME_LENGTH = 256
MAX_FILEPATH_LENGTH = 4096
MAX_INPUT_LINE_LENGTH = 2000
MAX_ERRORS_REPORTED = 100
DEFAULT_TOPMOST_FMT_ID = 65536
DEFAULT_ERROR_REPORT = "\n%F(%L): ERR_%E %D\n    %A"


class EnumType(enum.Enum):
    """Kinds of named entries defined by directives."""

    FILTER = "filter"
    MEMO = "memo"
    IN_FILE = "in_file"
    OUT_FILE = "out_file"
    Y_TEXT = "y_text"


class PrintType(enum.Enum):
    """How a single value is printed."""

    PLAIN_TEXT = enum.auto()
    INT64 = enum.auto()
    UINT64 = enum.auto()
    DOUBLE = enum.auto()
    TIMESTAMP = enum.auto()
    DTIMESTAMP = enum.auto()
    MSG_NO = enum.auto()
    DATE = enum.auto()
    MSG_FMT_ID_NAME = enum.auto()
    BIN_TO_FILE = enum.auto()
    HEX1U = enum.auto()
    HEX2U = enum.auto()
    HEX4U = enum.auto()
    SELECTED_TEXT = enum.auto()
    BINARY = enum.auto()
    STRING = enum.auto()


class DataType(enum.Enum):
    """Where a printed value comes from."""

    AUTO = enum.auto()
    STRING = enum.auto()
    INT64 = enum.auto()
    DOUBLE = enum.auto()
    UINT64 = enum.auto()
    MESSAGE_NO = enum.auto()
    TIMESTAMP = enum.auto()
    DTIMESTAMP = enum.auto()
    MEMO = enum.auto()
    TIME_DIFF = enum.auto()


class MessageType(enum.Enum):
    """Kind of MSG directive."""

    MSG0_4 = enum.auto()
    MSGN = enum.auto()
    MSGX = enum.auto()
    EXT_MSG = enum.auto()


@dataclass
class ValueFormat:
    """Formatting of one value; values of a message form a linked chain."""

    fmt_type: PrintType = PrintType.PLAIN_TEXT
    fmt_string: str | None = None
    data_type: DataType = DataType.AUTO
    data_size: int = 0
    bit_address: int = 0
    mult: float = 0.0
    offset: float = 0.0
    get_memo: int = 0
    put_memo: int = 0
    in_file: int = 0
    out_file: int = 0
    print_copy_to_main_log: bool = False
    fmt_id_timer: int = 0
    value_stat_name: str | None = None
    next: ValueFormat | None = None


@dataclass
class MessageDefinition:
    """A message defined by one of the MSG directives."""

    msg_type: MessageType
    message_name: str | None = None
    msg_len: int = 0
    ext_data_mask: int = 0
    format: ValueFormat = field(default_factory=ValueFormat)


@dataclass
class EnumEntry:
    """A named filter, memo, input file, output file or indexed text."""

    name: str | None
    type: EnumType
    file_name: str | None = None
    memo_value: float = 0.0
    filter_description: str | None = None
    in_file_text: bytes | None = None
    file: IO[Any] | None = None


@dataclass
class Settings:
    """Options that control parsing."""

    check_syntax_and_compile: bool = False
    purge_defines: bool = False
    create_backup: bool = False
    report_error: str = DEFAULT_ERROR_REPORT
    fmt_folder: str = "."
    output_folder: str = "."
    timestamp_print: str = "%.6f"
    time_multiplier: float = 1.0
    msg_number_print: str | None = None


@dataclass
class DecoderState:
    """Global state collected while parsing format definitions."""

    settings: Settings = field(default_factory=Settings)
    enums: list[EnumEntry | None] = field(
        default_factory=lambda: [None] * NUMBER_OF_FILTER_BITS
    )
    filter_enums: int = 0
    topmost_fmt_id: int = DEFAULT_TOPMOST_FMT_ID
    fmt_ids_defined: int = 0
    fmt_align_value: int = 0
    fmt: dict[int, MessageDefinition] = field(default_factory=dict)
    total_errors: int = 0
    error_counter: Counter = field(default_factory=Counter)
    max_errors_reported: int = MAX_ERRORS_REPORTED
    error_log: IO[str] | None = None
    messages: dict[int, str] = field(default_factory=dict)
    parse_bit_address: int = 0

    @property
    def enums_found(self) -> int:
        return len(self.enums)

    def find_enum_index(self, name: str, enum_type: EnumType) -> int | None:
        """Index of the non-filter entry with this name and type, or None."""
        for index in range(NUMBER_OF_FILTER_BITS, len(self.enums)):
            entry = self.enums[index]
            if entry is not None and entry.name == name and entry.type is enum_type:
                return index
        return None

    def find_message(self, name: str) -> int | None:
        """Lowest format ID of the message with this name, or None."""
        for fmt_id in sorted(self.fmt):
            if self.fmt[fmt_id].message_name == name:
                return fmt_id
        return None

    def assign_fmt_id(self, count: int, message: MessageDefinition) -> int | None:
        """Reserve an aligned block of format IDs; None if none is left."""
        if count < 1:
            return None
        start = -(-self.fmt_ids_defined // count) * count
        while any(i in self.fmt for i in range(start, start + count)):
            start += count
        if start + count > self.topmost_fmt_id:
            return None
        for fmt_id in range(start, start + count):
            self.fmt[fmt_id] = message
        self.fmt_ids_defined = start + count
        return start

    def add_enum(self, entry: EnumEntry) -> int:
        """Append a non-filter entry and return its index."""
        self.enums.append(entry)
        return len(self.enums) - 1


@dataclass
class ParseHandle:
    """Parsing state of one format definition file."""

    state: DecoderState
    fmt_file_path: str = ""
    parent: ParseHandle | None = None
    cursor: Any = None
    err_position: str | None = None
    file_line_num: int = 0
    parsing_errors_found: bool = False
    os_errno: int = 0
    write_output_to_header: bool = False
    fmt_file: IO[Any] | None = None
    work_file: IO[Any] | None = None
    work_file_name: str = ""
    current_message: MessageDefinition | None = None
    new_message: MessageDefinition | None = None
    prev_msg: MessageDefinition | None = None
    current_format: ValueFormat | None = None
    found_in_file_select: bool = False
    found_out_file_select: bool = False
    found_value_spec: bool = False
    found_indexed_text: bool = False
    current_in_file_idx: int = 0
    prev_out_file_idx: int = 0
    current_out_file_idx: int = 0
    print_to_main_log: bool = False

    @property
    def error_target(self) -> ParseHandle:
        """Handle to which file-level errors are reported."""
        return self.parent if self.parent is not None else self