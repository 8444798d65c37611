"""Positional decoding of mainframe extract lines.

Column maps use 1-based inclusive positions, the way the upstream record
layouts are documented, so ``ColumnSpec("entextractdt", 65, 72, "date")``
covers ``line[64:72]``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from dailyload.errors import RecordDecodeError


SENTINEL_DATE_TEXT = "19000101"
SENTINEL_DATE = date(1900, 1, 1)
ZERO_DATE_TEXT = "00000000"
INVALID_DATE_DEFAULT = date(1970, 1, 1)
DEFAULT_ENCODING = "latin-1"
FIELD_KINDS = ("str", "int", "date")


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    start: int
    end: int
    kind: str = "str"

    def __post_init__(self) -> None:
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"unknown field kind '{self.kind}' for column {self.name}")
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"invalid positions {self.start}-{self.end} for column {self.name}")

    @property
    def width(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class DecodeWarning:
    line_length: int
    required_length: int

    @property
    def message(self) -> str:
        return f"WARNING: Invalid line length {self.line_length}, expected at least {self.required_length}"


DecodedRecord = dict[str, object]
DefaultHook = Callable[[ColumnSpec, str, date], None]


def required_length(columns: list[ColumnSpec]) -> int:
    return max(column.end for column in columns)


def slice_columns(line: str, start: int, end: int) -> str:
    return line[start - 1 : end]


def _parse_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        return 0


def _parse_date(column: ColumnSpec, raw: str, on_default: DefaultHook | None) -> date:
    # Zero-filled and blank dates take the sentinel before any parse attempt.
    if raw in ("", ZERO_DATE_TEXT):
        raw = SENTINEL_DATE_TEXT
    try:
        return datetime.strptime(raw, "%Y%m%d").date()
    except ValueError:
        if on_default:
            on_default(column, raw, INVALID_DATE_DEFAULT)
        return INVALID_DATE_DEFAULT


def decode(
    line: str | bytes,
    columns: list[ColumnSpec],
    *,
    encoding: str = DEFAULT_ENCODING,
    on_default: DefaultHook | None = None,
) -> DecodedRecord | DecodeWarning:
    """Decode one extract line.

    Bytes are decoded with ``encoding``; a line that does not decode raises
    ``RecordDecodeError``. Unparseable numbers become 0 and unparseable dates
    become ``INVALID_DATE_DEFAULT``, reported through ``on_default``.
    """
    if isinstance(line, bytes):
        try:
            line = line.decode(encoding)
        except UnicodeDecodeError as exc:
            raise RecordDecodeError(f"line is not valid {encoding}: {exc.reason} at byte {exc.start}") from exc

    line = line.rstrip("\r\n")
    needed = required_length(columns)
    if len(line) < needed:
        return DecodeWarning(line_length=len(line), required_length=needed)

    record: DecodedRecord = {}
    for column in columns:
        raw = slice_columns(line, column.start, column.end).strip()
        if column.kind == "int":
            record[column.name] = _parse_int(raw)
        elif column.kind == "date":
            record[column.name] = _parse_date(column, raw, on_default)
        else:
            record[column.name] = raw
    return record


def encode(record: DecodedRecord, columns: list[ColumnSpec]) -> str:
    buffer = [" "] * required_length(columns)
    for column in columns:
        value = record.get(column.name, "")
        if isinstance(value, date):
            text = value.strftime("%Y%m%d")
        elif column.kind == "int":
            text = str(value).rjust(column.width)
        else:
            text = str(value)
        if len(text) > column.width:
            raise ValueError(f"value for {column.name} does not fit in {column.width} characters")
        buffer[column.start - 1 : column.end] = text.ljust(column.width)
    return "".join(buffer)
