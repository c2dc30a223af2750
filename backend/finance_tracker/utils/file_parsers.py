"""Statement parsers for transaction import (Excel .xlsx / .xls).

Bank exports do not share a layout: the header row may sit below a few title
lines and its labels vary by bank and language. ``find_header_row`` scans the
top of the sheet for a row naming a date, a description and an amount column,
``resolve_columns`` maps each field to its column, and ``normalize_row`` turns
every data row below it into a ``ParsedTransaction``.

Each parser returns a list[ParsedTransaction] consumed by ImportService.
Failures raise ``StatementParseError`` (a ``ValueError``) subclasses.
"""

from __future__ import annotations

import io
import math
import re
import unicodedata
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation

import openpyxl
import structlog
import xlrd

logger = structlog.get_logger()

HEADER_SCAN_ROWS = 10

DATE_PATTERNS = [
    re.compile(r"fecha.*transaccion", re.I),
    re.compile(r"fecha", re.I),
    re.compile(r"date", re.I),
    re.compile(r"fecha.*operacion", re.I),
]
DESCRIPTION_PATTERNS = [
    re.compile(r"descripcion", re.I),
    re.compile(r"merchant", re.I),
    re.compile(r"description", re.I),
    re.compile(r"concepto", re.I),
]
AMOUNT_PATTERNS = [
    re.compile(r"cargos.*db", re.I),
    re.compile(r"amount", re.I),
    re.compile(r"monto", re.I),
    re.compile(r"cargo", re.I),
    re.compile(r"debito", re.I),
]

_QUOTES_RE = re.compile("[\"'“”‘’]")
_WHITESPACE_RE = re.compile(r"\s+")
_AMOUNT_STRIP_RE = re.compile(r"[^0-9.\-]")
_AMOUNT_PREFIX_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")
_DATE_SPLIT_RE = re.compile(r"[/-]")

EXCEL_EPOCH_OFFSET_DAYS = 25569  # serial of 1970-01-01
_UNIX_EPOCH = datetime(1970, 1, 1)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StatementParseError(ValueError):
    """A statement file could not be turned into transactions."""


class EmptyWorkbookError(StatementParseError):
    pass


class HeaderNotFoundError(StatementParseError):
    def __init__(self):
        super().__init__(
            f"Could not find a valid header row in the first {HEADER_SCAN_ROWS} rows of the file"
        )


class RequiredColumnsNotFoundError(StatementParseError):
    def __init__(self):
        super().__init__("Required columns not found in the header row")


class UnsupportedFileTypeError(StatementParseError):
    pass


class NoTransactionsFoundError(StatementParseError):
    def __init__(self):
        super().__init__("No valid transactions found in the file")


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnMap:
    header_index: int
    date: int
    description: int
    amount: int


def normalize_header(value) -> str:
    """Lower-case, strip accents and quotes, collapse whitespace."""
    if value is None:
        return ""
    text = str(value).lower().strip()
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _QUOTES_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text)


def _matches_any(cell: str, patterns: list[re.Pattern]) -> bool:
    return any(p.search(cell) for p in patterns)


def find_header_row(rows: list) -> int:
    """Return the index of the first row naming date, description and amount columns.

    Only the first ``HEADER_SCAN_ROWS`` rows are considered.
    """
    for i in range(min(HEADER_SCAN_ROWS, len(rows))):
        row = rows[i]
        if not isinstance(row, (list, tuple)):
            continue
        normalized = [normalize_header(cell) for cell in row]
        has_date = any(_matches_any(c, DATE_PATTERNS) for c in normalized)
        has_description = any(_matches_any(c, DESCRIPTION_PATTERNS) for c in normalized)
        has_amount = any(_matches_any(c, AMOUNT_PATTERNS) for c in normalized)
        logger.debug(
            "header_row_checked",
            row=i,
            has_date=has_date,
            has_description=has_description,
            has_amount=has_amount,
        )
        if has_date and has_description and has_amount:
            return i
    raise HeaderNotFoundError()


def _find_column(normalized_headers: list[str], patterns: list[re.Pattern]) -> int:
    for index, header in enumerate(normalized_headers):
        if _matches_any(header, patterns):
            return index
    return -1


def resolve_columns(rows: list) -> ColumnMap:
    """Locate the header row and map each required field to a column index."""
    header_index = find_header_row(rows)
    headers = [normalize_header(cell) for cell in rows[header_index]]

    date_col = _find_column(headers, DATE_PATTERNS)
    description_col = _find_column(headers, DESCRIPTION_PATTERNS)
    amount_col = _find_column(headers, AMOUNT_PATTERNS)
    if -1 in (date_col, description_col, amount_col):
        raise RequiredColumnsNotFoundError()

    columns = ColumnMap(header_index, date_col, description_col, amount_col)
    logger.debug("columns_resolved", **asdict(columns))
    return columns


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------

@dataclass
class ParsedTransaction:
    """Uniform transaction coming out of any parser."""

    date: date
    amount: Decimal
    description: str
    row_number: int | None = None  # 0-based sheet row


def excel_serial_to_date(serial: float) -> date:
    """Convert an Excel serial day number to a calendar date (UTC)."""
    millis = math.floor((serial - EXCEL_EPOCH_OFFSET_DAYS) * 86400 * 1000 + 0.5)
    return (_UNIX_EPOCH + timedelta(milliseconds=millis)).date()


def parse_date_cell(value, today: date | None = None) -> date:
    """Parse a date cell; never fails, unparseable values fall back to today.

    Numbers are Excel serials. Strings are tried as ISO 8601, then as
    day/month/year split on "/" or "-" (two-digit years get a "20" prefix).
    """
    today = today or date.today()

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return excel_serial_to_date(value)
        except (OverflowError, ValueError):
            return today
    if not isinstance(value, str):
        return today

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    parts = _DATE_SPLIT_RE.split(text)
    if len(parts) != 3:
        return today
    if len(parts[0]) == 4:
        # 2024/02/01 is unambiguous year-first
        year, month, day = parts
    else:
        day, month, year = parts
        if len(year) == 2:
            year = f"20{year}"
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return today


def parse_amount_cell(value) -> Decimal:
    """Parse an amount cell; anything non-numeric yields 0.

    Strings keep only digits, "." and "-" (so "(50.00)" reads as 50 and
    "$1,234.50" as 1234.50).
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal("0")
        return Decimal(str(value))
    if not isinstance(value, str):
        return Decimal("0")

    cleaned = _AMOUNT_STRIP_RE.sub("", value)
    match = _AMOUNT_PREFIX_RE.match(cleaned)
    if not match:
        return Decimal("0")
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")


def _cell(row, index: int):
    return row[index] if index < len(row) else None


def normalize_row(row, columns: ColumnMap, today: date | None = None) -> ParsedTransaction | None:
    """Turn one data row into a ParsedTransaction, or None when it must be skipped.

    Rows without a description or with a zero amount are skipped.
    """
    if not isinstance(row, (list, tuple)):
        return None

    raw_description = _cell(row, columns.description)
    description = str(raw_description or "").strip()
    if not description:
        return None

    amount = parse_amount_cell(_cell(row, columns.amount))
    if amount == 0:
        return None

    return ParsedTransaction(
        date=parse_date_cell(_cell(row, columns.date), today=today),
        amount=amount,
        description=description,
    )


def parse_rows(rows: list, today: date | None = None) -> list[ParsedTransaction]:
    """Resolve columns then normalize every row below the header."""
    columns = resolve_columns(rows)
    txns: list[ParsedTransaction] = []
    for i in range(columns.header_index + 1, len(rows)):
        parsed = normalize_row(rows[i], columns, today=today)
        if parsed is None:
            continue
        parsed.row_number = i
        txns.append(parsed)
    return txns


# ---------------------------------------------------------------------------
# Workbook readers
# ---------------------------------------------------------------------------

def read_xlsx_rows(content: bytes) -> list[list]:
    """Read the first sheet of an .xlsx workbook as a list of rows.

    Sheet XML is parsed lazily in read-only mode, so a truncated sheet only
    fails during iteration; both steps report the same parse error.
    """
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise StatementParseError("Failed to read file contents") from e

    try:
        if not wb.sheetnames:
            raise EmptyWorkbookError("The Excel file is empty")
        ws = wb[wb.sheetnames[0]]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    except StatementParseError:
        raise
    except Exception as e:
        raise StatementParseError("Failed to read file contents") from e
    finally:
        wb.close()


def read_xls_rows(content: bytes) -> list[list]:
    """Read the first sheet of a legacy .xls workbook as a list of rows."""
    try:
        book = xlrd.open_workbook(file_contents=content)
        if book.nsheets == 0:
            raise EmptyWorkbookError("The Excel file is empty")
        sheet = book.sheet_by_index(0)
        return [sheet.row_values(i) for i in range(sheet.nrows)]
    except StatementParseError:
        raise
    except Exception as e:
        # xlrd raises CompDocError, struct.error and friends outside XLRDError
        raise StatementParseError("Failed to read file contents") from e


def _reject_pdf(content: bytes) -> list[list]:
    raise UnsupportedFileTypeError("PDF processing is not supported yet")


# Supported extensions → row reader
_READERS = {
    "xlsx": read_xlsx_rows,
    "xls": read_xls_rows,
    "pdf": _reject_pdf,
}

SUPPORTED_EXTENSIONS = sorted(_READERS.keys())


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def parse_statement(filename: str, content: bytes, today: date | None = None) -> list[ParsedTransaction]:
    """Parse a statement file into transactions.

    Raises StatementParseError when the file cannot be read, has no usable
    header, or yields no transactions.
    """
    reader = _READERS.get(file_extension(filename))
    if reader is None:
        raise UnsupportedFileTypeError("Unsupported file format")

    rows = reader(content)
    if not rows:
        raise EmptyWorkbookError("No data found in the worksheet")

    txns = parse_rows(rows, today=today)
    if not txns:
        raise NoTransactionsFoundError()

    logger.info("statement_parsed", filename=filename, rows=len(rows), transactions=len(txns))
    return txns
