from __future__ import annotations

import csv
import logging
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from .errors import (
    EmptySnapshotError,
    InvalidPriceError,
    MissingFileError,
    RowShapeError,
    UnreadableSnapshotError,
    UnsupportedFormatError,
)
from .models import CodeMap, Item

LOGGER = logging.getLogger(__name__)

ROW_WIDTH = 5  # vendor_num, description, size, price, id
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xltx", ".xltm"}


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def cell_text(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value if isinstance(value, str) else str(value)


def normalize_description(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", text or "")


def parse_price(value: Any, row_number: int) -> Decimal:
    if is_blank(value):
        raise InvalidPriceError(row_number, "price is empty")
    if isinstance(value, bool):
        raise InvalidPriceError(row_number, f"price is not a number: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    elif isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "")
    try:
        price = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPriceError(row_number, f"price is not a number: {value!r}") from None
    if not price.is_finite():
        raise InvalidPriceError(row_number, f"price is not a number: {value!r}")
    return price


def _trim_row(row: Sequence[Any]) -> List[Any]:
    cells = list(row)
    while cells and is_blank(cells[-1]):
        cells.pop()
    return cells


def load_items(raw_rows: Iterable[Sequence[Any]], code_map: CodeMap, first_row_number: int = 1) -> List[Item]:
    """Turn positional snapshot rows into Items.

    Column order is fixed: vendor_num, description, size, price, id. The id
    cell carries the vendor/region code and is translated through ``code_map``;
    codes the map does not know pass through unchanged.
    """
    items: List[Item] = []
    for row_number, row in enumerate(raw_rows, start=first_row_number):
        cells = _trim_row(row)
        if not cells:
            LOGGER.debug("Skipping blank row %d", row_number)
            continue
        if len(cells) != ROW_WIDTH:
            raise RowShapeError(row_number, f"expected {ROW_WIDTH} fields, found {len(cells)}")
        vendor_num, description, size, price, code = cells
        code_text = cell_text(code) or ""
        # Whitespace-only descriptions collapse to " ", not "".
        text = description if isinstance(description, str) else cell_text(description)
        items.append(
            Item(
                vendor_num=cell_text(vendor_num),
                description=normalize_description(text),
                size=cell_text(size),
                price=parse_price(price, row_number),
                id=code_map.get(code_text, code_text),
            )
        )
    return items


def _first_rows_empty(rows: Iterable[Sequence[Any]]) -> bool:
    return all(is_blank(cell) for row in rows for cell in row)


def first_populated_sheet(worksheets: Iterable[Worksheet]) -> Optional[Worksheet]:
    for ws in worksheets:
        if not _first_rows_empty(ws.iter_rows(min_row=1, max_row=2, values_only=True)):
            return ws
        LOGGER.debug("Sheet %r is empty, skipping", ws.title)
    return None


def _read_workbook_rows(path: str) -> List[Sequence[Any]]:
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = first_populated_sheet(wb.worksheets)
        if ws is None:
            raise EmptySnapshotError(path)
        LOGGER.debug("Reading sheet %r from %s", ws.title, path)
        return [tuple(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _read_csv_rows(path: str) -> List[Sequence[Any]]:
    with open(path, "r", encoding="utf-8-sig", newline="") as file:
        rows = [tuple(row) for row in csv.reader(file)]
    if _first_rows_empty(rows[:2]):
        raise EmptySnapshotError(path)
    return rows


def read_snapshot(path: str, header_rows: int = 1) -> List[Sequence[Any]]:
    """Read raw positional rows from a snapshot, skipping ``header_rows``."""
    if not Path(path).is_file():
        raise MissingFileError(path, "snapshot")
    suffix = Path(path).suffix.lower()
    if suffix not in EXCEL_SUFFIXES and suffix != ".csv":
        raise UnsupportedFormatError(path)
    try:
        rows = _read_csv_rows(path) if suffix == ".csv" else _read_workbook_rows(path)
    except UnicodeDecodeError as exc:
        raise UnreadableSnapshotError(path, f"not UTF-8 text ({exc})") from exc
    except csv.Error as exc:
        raise UnreadableSnapshotError(path, f"malformed CSV ({exc})") from exc
    except (BadZipFile, InvalidFileException) as exc:
        raise UnreadableSnapshotError(path, f"not a valid workbook ({exc})") from exc
    return rows[header_rows:]


def load_snapshot(path: str, code_map: CodeMap, header_rows: int = 1) -> List[Item]:
    rows = read_snapshot(path, header_rows)
    items = load_items(rows, code_map, first_row_number=header_rows + 1)
    LOGGER.info("Loaded %d items from %s", len(items), Path(path).name)
    return items
