"""Opening, creating, comparing and replacing format definition files."""

from __future__ import annotations

import os
import time
from typing import IO, Any

from rtefmt.errors import ErrorCode, catch_parsing_error, report_parsing_error
from rtefmt.helpers import process_escape_sequences
from rtefmt.model import MAX_FILEPATH_LENGTH, ParseHandle

MAX_FILENAME_LENGTH = MAX_FILEPATH_LENGTH
MAX_HEADGUARD_LENGTH = 256
MAX_IN_FILE_SIZE = 1_000_000
MAX_FILE_OPEN_TIME = 1.0  # seconds
CMP_BUFSIZ = 8192
WORK_SUFFIX = ".work"
HEADER_CAVEAT = "This file is generated automatically - do not edit it manually."

_TEXT_OPTIONS: dict[str, Any] = {
    "encoding": "utf-8",
    "errors": "surrogateescape",
    "newline": "",
}


def _fmt_path(handle: ParseHandle, name: str) -> str:
    return os.path.join(handle.state.settings.fmt_folder, name)


def _report(handle: ParseHandle, code: ErrorCode, context: str,
            exc: OSError | None = None) -> None:
    target = handle.error_target
    if exc is not None:
        target.os_errno = exc.errno or 0
    report_parsing_error(target, code, context)


def _close(file: IO[Any] | None) -> None:
    if file is not None and not file.closed:
        file.close()


def _open_with_retry(path: str, mode: str) -> IO[Any]:
    """Open a file, retrying for a while if access is temporarily denied."""
    deadline = time.monotonic() + MAX_FILE_OPEN_TIME
    options = {} if "b" in mode else _TEXT_OPTIONS
    while True:
        try:
            return open(path, mode, **options)
        except PermissionError:
            if time.monotonic() > deadline:
                raise
            time.sleep(0.01)


def create_headguard_string(path: str) -> str:
    """Header guard name derived from the file name part of path."""
    if MAX_HEADGUARD_LENGTH < 6:
        return ""
    cut = max(path.rfind("/"), path.rfind("\\"))
    tail = path[cut:] if cut >= 0 else path
    chars: list[str] = []
    for byte in tail.encode("utf-8", "surrogateescape")[: MAX_HEADGUARD_LENGTH - 5]:
        if byte < 0x80:
            char = chr(byte).upper()
            chars.append(char if char.isalnum() else "_")
        else:
            chars.append(chr(ord("A") + ((byte & 0x0F) ^ ((byte & 0xF0) >> 4))))
    return "RTE_" + "".join(chars)


def create_file(path: str, initial_text: str | None, mode: str) -> IO[Any] | None:
    """Create a file and write the initial text to it; None on failure."""
    binary = "b" in mode
    try:
        new_file = open(path, mode) if binary else open(path, mode, **_TEXT_OPTIONS)
    except (OSError, ValueError):
        return None
    if initial_text:
        text = process_escape_sequences(initial_text)
        if text:
            new_file.write(text.encode("utf-8") if binary else text)
    return new_file


def files_identical(first: str | os.PathLike, second: str | os.PathLike) -> bool:
    """True if both files have exactly the same contents."""
    with open(first, "rb") as src, open(second, "rb") as dst:
        while True:
            a = src.read(CMP_BUFSIZ)
            b = dst.read(CMP_BUFSIZ)
            if a != b:
                return False
            if not a:
                return True


def _create_work_file(handle: ParseHandle) -> bool:
    guard = create_headguard_string(handle.fmt_file_path)
    if not guard:
        return False
    handle.work_file_name = handle.fmt_file_path + WORK_SUFFIX
    try:
        work = open(_fmt_path(handle, handle.work_file_name), "w+", **_TEXT_OPTIONS)
    except OSError as exc:
        handle.error_target.os_errno = exc.errno or 0
        return False
    if handle.write_output_to_header:
        work.write(f"/* {HEADER_CAVEAT} */\n\n")
    work.write(f"#ifndef {guard}\n")
    work.write(f"#define {guard}\n")
    handle.work_file = work
    return True


def setup_parse_files(handle: ParseHandle) -> bool:
    """Open the format definition file and, when compiling, the work file."""
    path = handle.fmt_file_path
    if MAX_FILENAME_LENGTH <= len(path) + len(WORK_SUFFIX) + 1:
        _report(handle, ErrorCode.PARSE_FILE_FILENAME_TOO_LONG, path)
        return False
    if path.endswith(".fmt"):
        handle.write_output_to_header = True
    try:
        handle.fmt_file = _open_with_retry(_fmt_path(handle, path), "r+")
    except OSError as exc:
        _report(handle, ErrorCode.PARSE_FILE_CANNOT_OPEN_FMT_FILE, path, exc)
        return False
    if handle.state.settings.check_syntax_and_compile and not _create_work_file(handle):
        _close(handle.fmt_file)
        _report(handle, ErrorCode.PARSE_FILE_CANNOT_CREATE_FMT_WORK_FILE,
                handle.work_file_name or path + WORK_SUFFIX)
        return False
    return True


def _remove_work_file(handle: ParseHandle) -> None:
    try:
        os.remove(_fmt_path(handle, handle.work_file_name))
    except OSError as exc:
        _report(handle, ErrorCode.PARSE_FILE_WORK_CANNOT_REMOVE, handle.work_file_name, exc)


def _compare(handle: ParseHandle, first: str, second: str) -> bool:
    try:
        return files_identical(first, second)
    except OSError as exc:
        handle.os_errno = exc.errno or 0
        catch_parsing_error(handle, ErrorCode.PARSE_FILE_WORK_CANNOT_COMPARE, "")


def _check_and_replace_header_file(handle: ParseHandle) -> None:
    _close(handle.fmt_file)
    _close(handle.work_file)
    if handle.parsing_errors_found:
        _remove_work_file(handle)
        return
    header_name = handle.fmt_file_path + ".h"
    header_path = _fmt_path(handle, header_name)
    work_path = _fmt_path(handle, handle.work_file_name)
    try:
        with open(header_path, "rb"):
            pass
    except FileNotFoundError:
        pass
    except OSError as exc:
        _report(handle, ErrorCode.PARSE_FILE_HEADER_CANNOT_OPEN, header_name, exc)
        return
    else:
        if _compare(handle, header_path, work_path):
            _remove_work_file(handle)
            return
        try:
            os.remove(header_path)
        except OSError as exc:
            _report(handle, ErrorCode.PARSE_FILE_HEADER_CANNOT_REMOVE, header_name, exc)
            return
    try:
        os.rename(work_path, header_path)
    except OSError as exc:
        _report(handle, ErrorCode.PARSE_FILE_WORK_CANNOT_RENAME, header_name, exc)


def check_and_replace_work_file(handle: ParseHandle) -> None:
    """Replace the definition (or header) file with the work file if they differ."""
    if handle.write_output_to_header:
        _check_and_replace_header_file(handle)
        return
    _close(handle.work_file)
    _close(handle.fmt_file)
    fmt_path = _fmt_path(handle, handle.fmt_file_path)
    work_path = _fmt_path(handle, handle.work_file_name)

    same = False
    if not handle.parsing_errors_found:
        same = _compare(handle, fmt_path, work_path)
    if same or handle.parsing_errors_found:
        _remove_work_file(handle)
        return

    if handle.state.settings.create_backup:
        backup_name = handle.fmt_file_path + ".bak"
        backup_path = _fmt_path(handle, backup_name)
        try:
            os.remove(backup_path)
        except OSError:
            pass
        try:
            os.rename(fmt_path, backup_path)
        except OSError as exc:
            try:
                os.remove(work_path)
            except OSError:
                pass
            _report(handle, ErrorCode.PARSE_FILE_FMT_CANNOT_RENAME, backup_name, exc)
            return
    else:
        try:
            os.remove(fmt_path)
        except OSError as exc:
            _report(handle, ErrorCode.PARSE_FILE_FMT_CANNOT_REMOVE, handle.fmt_file_path, exc)
            return
    try:
        os.rename(work_path, fmt_path)
    except OSError as exc:
        _report(handle, ErrorCode.PARSE_FILE_WORK_CANNOT_RENAME, handle.fmt_file_path, exc)


def read_file_to_indexed_text(path: str, handle: ParseHandle) -> bytes:
    """Read a file into length-prefixed lines terminated by a zero byte."""
    full_path = _fmt_path(handle, path)
    try:
        with _open_with_retry(full_path, "r+b") as file:
            size = os.fstat(file.fileno()).st_size
            if size > MAX_IN_FILE_SIZE:
                catch_parsing_error(handle, ErrorCode.PARSE_IN_FILE_TOO_LONG, path)
            data = file.read()
    except OSError as exc:
        handle.os_errno = exc.errno or 0
        catch_parsing_error(handle, ErrorCode.PARSE_IN_FILE_SELECT_ERROR, path)

    data = data.replace(b"\r\n", b"\n")
    # The last byte (normally the final newline) is replaced by the terminator.
    parts = data[:-1].split(b"\n")
    for part in parts[:-1]:
        if not 1 <= len(part) <= 255:
            catch_parsing_error(handle, ErrorCode.PARSE_IN_FILE_SELECT_INVALID_OPTIONS, path)
    if len(parts) - 1 < 2:
        catch_parsing_error(handle, ErrorCode.PARSE_IN_FILE_SELECT_MIN_TWO_LINES, path)
    return b"".join(bytes([len(part) & 0xFF]) + part for part in parts) + b"\0"


def write_define_to_work_file(handle: ParseHandle, name: str, value: int) -> None:
    """Write a '#define NAME VALUEU' line to the work file when compiling."""
    settings = handle.state.settings
    if settings.check_syntax_and_compile and handle.work_file is not None \
            and not settings.purge_defines:
        handle.work_file.write(f"#define {name} {value}U\n")