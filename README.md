# rtefmt

`rtefmt` reads RTEdbg format definition files. These are C header files in
which every format definition sits on a line that starts with `//`. The
package checks each directive, gives every message a block of format IDs and
builds the chain of per-value formatting structures (`ValueFormat`) that a
binary-log decoder would use to print the messages.

## What it understands

- Message directives: `MSG0_..` to `MSG4_..`, `MSGN_..` and `MSGNnn_..`,
  `MSGX_..` and `EXT_MSGx_y_..`.
- `MEMO(M_NAME, value)`, `FILTER(F_NAME, "description")` and `INCLUDE("file")`.
- `IN_FILE(NAME, "path")` and `OUT_FILE(NAME, "path", "mode", "initial text")`.
  The file mode may hold only the characters `w`, `a`, `b`, `x`, `t` and `+`.
- `FMT_ALIGN(n)` and `FMT_START(n)`.
- Formatting text in double quotes, with the extended value specifiers that
  follow a `%`:
  - `[nn:mmF]`, `[mmF]`, `[+nn:mmF]` and `[-nn:mmF]` set the bit address, the
    size in bits and the type (`f`, `u`, `i` or `s`).
  - `[t]`, `[T]`, `[N]`, `[t-MSG_NAME]` and `[M_NAME]` select a special value.
  - `(+offset*multiplier)` scales the value.
  - `<M_NAME>` stores the value in a memo.
  - `|name|` names the value for statistics.
  - `{a|b|c}` gives the indexed texts for `%Y`.
  - The extra type characters `t T N W H Y B D M` are accepted along with the
    usual printf types.
- Output selection `>NAME` (file only) and `>>NAME` (file and main log), and
  input text selection `<NAME`.
- Lines that hold only a `/* ... */` comment, and empty lines, are skipped.
  Lines starting with `#` are skipped, unless the output goes to a generated
  header, in which case they are an error.

## Usage

```python
from rtefmt.model import DecoderState, Settings
from rtefmt.parser import parse_fmt_file

state = DecoderState(settings=Settings(fmt_folder="fmt", check_syntax_and_compile=True))
handle = parse_fmt_file("messages.h", state)

print(state.total_errors)
fmt_id = state.find_message("MSG1_MOTOR_SPEED")   # lowest format ID, or None
```

`parse_fmt_file(path, state, parent=None)` returns the `ParseHandle` of the
file. It returns `None` when the file cannot be opened. Definition files and
`IN_FILE` files are looked up relative to `Settings.fmt_folder`. `OUT_FILE`
files are created relative to `Settings.output_folder`.

### Settings

| Field | Effect |
|-------|--------|
| `check_syntax_and_compile` | Write a work file with the `#define NAME idU` lines and replace the definition file with it when the contents differ. In this mode `IN_FILE` files are not read and `OUT_FILE` files are not created. |
| `purge_defines` | Leave out the `#define` lines. |
| `create_backup` | Keep the old definition file as `<name>.bak` when it is replaced. |
| `report_error` | Template for error reports (see below). |
| `fmt_folder`, `output_folder` | Folders for definition files and output files. |
| `timestamp_print`, `time_multiplier`, `msg_number_print` | Output formats used by the print helpers. |

A file whose name ends in `.fmt` has its output written to `<name>.fmt.h`
instead of back into the file itself.

### Error reports

Errors are reported through the template in `Settings.report_error`. It
accepts these placeholders:

| Placeholder | Meaning |
|-------------|---------|
| `%F` | file name |
| `%P` | full path |
| `%L` | line number |
| `%E` | error number |
| `%D` | error description, from `DecoderState.messages` |
| `%A` | the text where the error was found (shortened) |

Each report is written to standard output and to `DecoderState.error_log`, if
one is set. Errors are counted in `total_errors` and `error_counter`. Parsing
stops once `max_errors_reported` is reached. Inside the parser, an error
raises `rtefmt.errors.ParseError`. The rest of the line is skipped and parsing
goes on with the next line.

### Print helpers

`rtefmt.print_helper` has helpers for decoder output:

- `strip_newlines_and_shorten_string`
- `format_message_number`
- `format_timestamp`
- `hex_dump`
- `DecodingErrorLog`, which collects the decoding errors of one message and
  builds a text report with `format_report`
- `dump_filter_names`, which writes one filter description or name per line
  in compile mode

## What it does not do

There is no command-line program. The package does not read or decode binary
trace data, and it does not collect the statistics that `|name|` asks for. It
does not load error descriptions from a file either: fill
`DecoderState.messages` yourself, or the reports show `<undefined text>`.

## Tests

```
pip install .[test]
pytest
```