"""
Parse bulk student uploads (CSV or .xlsx).

First row holds headers. Header matching ignores case, spaces and underscores, so
rollNo, roll_no and "Roll No" are the same column. Rows are numbered as in the
file (header is row 1).
"""

import csv
import io
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from fastapi import UploadFile
from openpyxl import load_workbook

from edupay.core.enums import Gender

from .schemas import EnrollmentFailureResponse, StudentCreate

MAX_ROWS = 1000

TEMPLATE_HEADERS = (
    "rollNo",
    "name",
    "className",
    "gender",
    "parentName",
    "contact",
    "previousYearDues",
    "discount",
)
REQUIRED_HEADERS = ("rollNo", "name", "className")
TEMPLATE_SAMPLE_ROWS = (
    "1004,Arjun Singh,Class 10,Male,Vijay Singh,9876543210,0,0",
    "1005,Priya Patel,Class 9,Female,Raj Patel,9876543211,1500,0",
)


def _norm(s) -> str:
    return (str(s) if s is not None else "").strip().lower().replace(" ", "").replace("_", "")


_COLUMN_KEYS = {_norm(h): h for h in TEMPLATE_HEADERS}


def build_template() -> str:
    return "\n".join([",".join(TEMPLATE_HEADERS), *TEMPLATE_SAMPLE_ROWS]) + "\n"


def _cell_str(row: Sequence, col: Optional[int]) -> str:
    if col is None or col >= len(row) or row[col] is None:
        return ""
    value = row[col]
    # Excel hands back numeric roll numbers and phones as floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _money(raw: str, column: str) -> Decimal:
    if not raw:
        return Decimal("0")
    try:
        value = Decimal(raw.replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"{column} must be a number, got {raw!r}")
    if not value.is_finite():
        raise ValueError(f"{column} must be a number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{column} cannot be negative")
    if value != value.quantize(Decimal("0.01")):
        raise ValueError(f"{column} allows at most 2 decimal places")
    return value


def _gender(raw: str) -> Gender:
    value = raw.strip().lower()
    if value in ("", "m", "male"):
        return Gender.MALE
    if value in ("f", "female"):
        return Gender.FEMALE
    raise ValueError(f"gender must be Male or Female, got {raw!r}")


def _column_index(header_row: Sequence) -> Dict[str, int]:
    col_idx: Dict[str, int] = {}
    for i, cell in enumerate(header_row):
        key = _COLUMN_KEYS.get(_norm(cell))
        if key is not None and key not in col_idx:
            col_idx[key] = i
    missing = [h for h in REQUIRED_HEADERS if h not in col_idx]
    if missing:
        found = [str(c) for c in header_row if c is not None]
        raise ValueError(f"Missing required column(s): {', '.join(missing)}. Found: {found}")
    return col_idx


def _parse_rows(
    rows: Iterator[Sequence],
) -> Tuple[List[Tuple[int, StudentCreate]], List[EnrollmentFailureResponse]]:
    header_row = next(rows, None)
    if not header_row:
        raise ValueError("File has no header row")
    col_idx = _column_index(header_row)

    parsed: List[Tuple[int, StudentCreate]] = []
    failures: List[EnrollmentFailureResponse] = []
    data_rows = 0
    for row_num, row in enumerate(rows, start=2):
        if not row or all(c is None or (isinstance(c, str) and not c.strip()) for c in row):
            continue
        data_rows += 1
        if data_rows > MAX_ROWS:
            raise ValueError(f"Maximum {MAX_ROWS} data rows allowed")
        roll_no = _cell_str(row, col_idx.get("rollNo"))
        name = _cell_str(row, col_idx.get("name"))
        try:
            class_name = _cell_str(row, col_idx.get("className"))
            if not roll_no or not name or not class_name:
                raise ValueError("rollNo, name and className are required")
            parsed.append(
                (
                    row_num,
                    StudentCreate(
                        roll_no=roll_no,
                        name=name,
                        class_name=class_name,
                        gender=_gender(_cell_str(row, col_idx.get("gender"))),
                        parent_name=_cell_str(row, col_idx.get("parentName")),
                        contact=_cell_str(row, col_idx.get("contact")),
                        previous_year_dues=_money(
                            _cell_str(row, col_idx.get("previousYearDues")), "previousYearDues"
                        ),
                        discount=_money(_cell_str(row, col_idx.get("discount")), "discount"),
                    ),
                )
            )
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            failures.append(EnrollmentFailureResponse(row=row_num, roll_no=roll_no, name=name, reason=str(e)))
    return parsed, failures


def _csv_rows(content: bytes) -> Iterator[List[str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValueError("CSV file must be UTF-8 encoded") from e
    return iter(csv.reader(io.StringIO(text)))


async def parse_upload(
    file: UploadFile,
) -> Tuple[List[Tuple[int, StudentCreate]], List[EnrollmentFailureResponse]]:
    """Parse an uploaded file into (row number, student) pairs and row failures. Raises ValueError on bad files."""
    filename = (file.filename or "").lower()
    if not filename.endswith((".csv", ".xlsx")):
        raise ValueError("File must be a CSV (.csv) or Excel (.xlsx) file")

    content = await file.read()
    if not content:
        raise ValueError("File is empty")

    if filename.endswith(".csv"):
        return _parse_rows(_csv_rows(content))

    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ValueError(f"Invalid Excel file: {e}") from e
    try:
        ws = wb.active
        if ws is None:
            raise ValueError("Excel file has no active sheet")
        return _parse_rows(ws.iter_rows(values_only=True))
    finally:
        wb.close()
