"""
Spreadsheet parsing for lead uploads (.csv, .xlsx, .xls).

Produces header -> raw cell rows. Structural problems with the file as a whole
(unsupported extension, nothing to read, unreadable CSV header, no worksheet) raise
immediately; problems with a single line are collected in `ParseResult.errors` and the
parse continues.

CSV rules:
- Decoded as UTF-8; if that yields replacement characters the original bytes are
  re-decoded as EUC-KR, the usual encoding of Korean business exports.
- Blank lines are dropped. The first remaining line is the header row.
- Fields are read with the standard csv dialect (comma separated, optionally
  double-quoted, "" inside quotes is a literal quote) and trimmed.
- A header line that cannot be tokenized is fatal; any other malformed line is
  reported in `ParseResult.errors` and skipped.
- Cells are aligned to headers by position; missing trailing cells are None.

Workbook rules:
- Only the first worksheet is read, streamed row by row.
- Header cells are coerced to trimmed strings; rows with no values are skipped.
"""

from __future__ import annotations

import csv
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import PurePath
from typing import Any, Iterable, Iterator, List, Sequence

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx", "xls")

_REPLACEMENT_CHAR = "\ufffd"
# cp949 is the superset of EUC-KR that Windows spreadsheet exports actually produce.
_KOREAN_FALLBACK_ENCODING = "cp949"
_LINE_SPLIT_RE = re.compile(r"\r?\n")

RawRow = dict  # header -> str | int | float | bool | None


class UnsupportedFormatError(Exception):
    """Raised when the uploaded file is not .csv, .xlsx or .xls."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(
            f"Unsupported file format: '{extension}'. Only CSV, XLSX and XLS files can be uploaded."
        )


class EmptyFileError(Exception):
    """Raised when a file has no non-blank line (CSV) or no row (workbook)."""

    def __init__(self) -> None:
        super().__init__("The file is empty.")


class MissingWorksheetError(Exception):
    """Raised when a workbook contains no worksheet."""

    def __init__(self) -> None:
        super().__init__("No worksheet found in the workbook.")


class UnreadableFileError(Exception):
    """Raised when the bytes cannot be opened as the declared workbook format."""

    def __init__(self, extension: str, reason: str):
        self.extension = extension
        self.reason = reason
        super().__init__(f"Could not read {extension} file: {reason}")


class MalformedHeaderError(Exception):
    """Raised when the CSV header line cannot be tokenized."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Could not read the CSV header: {reason}")


class MalformedLineError(ValueError):
    """A single CSV line could not be tokenized."""


@dataclass(frozen=True, slots=True)
class RowIssue:
    """A problem tied to one spreadsheet row (1-based, header is row 1)."""

    row: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "message": self.message}


@dataclass(slots=True)
class ParseResult:
    headers: List[str]
    rows: List[RawRow] = field(default_factory=list)
    errors: List[RowIssue] = field(default_factory=list)


def extension_of(filename: str) -> str:
    """Lower-case extension without the dot ("" when there is none)."""

    return PurePath(filename).suffix.lower().lstrip(".")


def parse_file(content: bytes, extension: str) -> ParseResult:
    """
    Parse an uploaded spreadsheet.

    Args:
        content: Raw file bytes
        extension: Declared extension ("csv", "xlsx" or "xls"; a leading dot is ignored)

    Raises:
        UnsupportedFormatError: extension is not supported
        EmptyFileError: no header/data could be found
        MalformedHeaderError: the CSV header line cannot be tokenized
        MissingWorksheetError: workbook has no sheets
        UnreadableFileError: workbook bytes are corrupt
    """

    ext = (extension or "").lower().lstrip(".")
    if ext == "csv":
        return parse_csv(content)
    if ext == "xlsx":
        return parse_xlsx(content)
    if ext == "xls":
        return parse_xls(content)
    raise UnsupportedFormatError(ext)


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def decode_csv_bytes(content: bytes) -> str:
    """UTF-8 first (BOM tolerated); EUC-KR when UTF-8 produces replacement characters."""

    text = content.decode("utf-8-sig", errors="replace")
    if _REPLACEMENT_CHAR in text:
        logger.info(
            "CSV is not valid UTF-8, re-decoding as EUC-KR",
            extra={"encoding": _KOREAN_FALLBACK_ENCODING, "size_bytes": len(content)},
        )
        text = content.decode(_KOREAN_FALLBACK_ENCODING, errors="replace")
    return text


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into trimmed fields.

    Raises:
        MalformedLineError: a quoted field is never closed or is followed by stray text
    """

    try:
        fields = next(csv.reader([line], strict=True, skipinitialspace=True))
    except csv.Error as e:
        raise MalformedLineError(f"Malformed CSV line: {e}") from e
    return [f.strip() for f in fields]


def _non_blank_lines(text: str) -> Iterator[str]:
    for line in _LINE_SPLIT_RE.split(text):
        if line.strip():
            yield line


def _align(headers: Sequence[str], values: Sequence[Any]) -> RawRow:
    row: RawRow = {}
    for index, header in enumerate(headers):
        value = values[index] if index < len(values) else None
        row[header] = None if value == "" else value
    return row


def parse_csv(content: bytes) -> ParseResult:
    lines = _non_blank_lines(decode_csv_bytes(content))

    header_line = next(lines, None)
    if header_line is None:
        raise EmptyFileError()

    try:
        headers = parse_csv_line(header_line)
    except MalformedLineError as e:
        raise MalformedHeaderError(str(e.__cause__ or e)) from e

    result = ParseResult(headers=headers)

    for line_index, line in enumerate(lines, start=2):
        try:
            values = parse_csv_line(line)
        except MalformedLineError as e:
            result.errors.append(RowIssue(row=line_index, message=str(e)))
            continue

        if not any(values):
            continue
        result.rows.append(_align(headers, values))

    return result


# ---------------------------------------------------------------------------
# Workbooks
# ---------------------------------------------------------------------------

def _cell_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _is_empty_row(values: Sequence[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and v.strip() == "") for v in values)


def _rows_to_result(rows: Iterable[Sequence[Any]]) -> ParseResult:
    iterator = iter(rows)
    header_row = next(iterator, None)
    if header_row is None:
        raise EmptyFileError()

    headers = [str(h if h is not None else "").strip() for h in header_row]
    result = ParseResult(headers=headers)

    for row_number, values in enumerate(iterator, start=2):
        if not values or _is_empty_row(values):
            continue
        try:
            result.rows.append(_align(headers, [_cell_value(v) for v in values]))
        except (TypeError, ValueError) as e:
            result.errors.append(RowIssue(row=row_number, message=str(e)))

    return result


def parse_xlsx(content: bytes) -> ParseResult:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise UnreadableFileError("xlsx", str(e)) from e

    try:
        if not workbook.worksheets:
            raise MissingWorksheetError()
        sheet = workbook.worksheets[0]
        return _rows_to_result(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()


def _xls_cell(book: Any, cell: Any) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate.xldate_as_datetime(cell.value, book.datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    return cell.value


def _xls_rows(book: Any, sheet: Any) -> Iterator[List[Any]]:
    for row_index in range(sheet.nrows):
        yield [_xls_cell(book, cell) for cell in sheet.row(row_index)]


def parse_xls(content: bytes) -> ParseResult:
    try:
        book = xlrd.open_workbook(file_contents=content, on_demand=True)
    except xlrd.XLRDError as e:
        raise UnreadableFileError("xls", str(e)) from e

    try:
        if book.nsheets == 0:
            raise MissingWorksheetError()
        sheet = book.sheet_by_index(0)
        return _rows_to_result(_xls_rows(book, sheet))
    finally:
        book.release_resources()


__all__ = [
    "EmptyFileError",
    "MalformedHeaderError",
    "MalformedLineError",
    "MissingWorksheetError",
    "ParseResult",
    "RawRow",
    "RowIssue",
    "SUPPORTED_EXTENSIONS",
    "UnreadableFileError",
    "UnsupportedFormatError",
    "extension_of",
    "parse_csv",
    "parse_csv_line",
    "parse_file",
    "parse_xls",
    "parse_xlsx",
]
