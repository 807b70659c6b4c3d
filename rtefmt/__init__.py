"""Parser for RTEdbg format definition files, with helpers for decoder output."""

__version__ = "1.0.0"

__all__ = [
    "model",
    "errors",
    "helpers",
    "file_handling",
    "msg_directives",
    "directives",
    "value_spec",
    "fmt_string",
    "parser",
    "print_helper",
]