from __future__ import annotations

import csv
import logging
import os
import tempfile
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .models import NEW_ITEM_MARKER, OUTPUT_HEADERS, PairedRecord

LOGGER = logging.getLogger(__name__)

REPORT_SHEET = "Price_Changes"

Row = List[Optional[str]]


def quoted(value: Optional[str]) -> Optional[str]:
    # Leading apostrophe keeps spreadsheets from turning codes into numbers.
    return f"'{value}" if value is not None else None


def currency(value: Optional[Decimal], blank_missing: bool = False) -> str:
    if value is None:
        return "" if blank_missing else "0.00"
    return f"{value:.2f}"


def format_record(record: PairedRecord, new_marker: str = NEW_ITEM_MARKER, blank_missing: bool = False) -> Row:
    current = record.current
    prefix = new_marker if record.is_new else ""
    return [
        quoted(current.id),
        quoted(current.vendor_num),
        prefix + current.description,
        current.size,
        currency(current.price, blank_missing),
        currency(record.last_price, blank_missing),
        currency(record.diff, blank_missing),
    ]


def format_records(records: Iterable[PairedRecord], new_marker: str = NEW_ITEM_MARKER, blank_missing: bool = False) -> List[Row]:
    return [format_record(record, new_marker, blank_missing) for record in records]


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


@contextmanager
def _atomic_path(path: str, suffix: str) -> Iterator[str]:
    """Yield a temp path beside ``path``; it replaces ``path`` only if the block succeeds."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{target.stem}-", suffix=suffix, dir=str(target.parent))
    os.close(fd)
    try:
        # mkstemp creates 0600; give the report the mode a plain open() would.
        os.chmod(tmp_path, 0o666 & ~_current_umask())
        yield tmp_path
        os.replace(tmp_path, target)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def write_csv(path: str, rows: Iterable[Sequence[Optional[str]]], headers: Sequence[str] = OUTPUT_HEADERS) -> int:
    count = 0
    with _atomic_path(path, ".csv") as tmp_path:
        with open(tmp_path, "w", encoding="utf-8", newline="") as file:
            writer = csv.writer(file, lineterminator="\n")
            writer.writerow(headers)
            for row in rows:
                writer.writerow(row)
                count += 1
    return count


def _autosize(ws: Worksheet, max_width: int = 60) -> None:
    for i, col in enumerate(ws.columns, start=1):
        max_len = max((len(str(c.value)) for c in col if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(i)].width = min(max_len + 2, max_width)


def _format(ws: Worksheet, headers: Sequence[str]) -> None:
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = f"A1:{get_column_letter(len(headers))}1"
    _autosize(ws)


def _amount(value: Optional[Decimal], blank_missing: bool) -> Optional[Decimal]:
    if value is None:
        return None if blank_missing else Decimal("0")
    return value


def write_workbook(path: str, records: Iterable[PairedRecord], headers: Sequence[str] = OUTPUT_HEADERS, new_marker: str = NEW_ITEM_MARKER, blank_missing: bool = False) -> int:
    """Write records as typed cells: codes as quote-prefixed text, money as numbers."""
    wb = Workbook()
    ws = wb.active
    ws.title = REPORT_SHEET
    ws.append(list(headers))
    count = 0
    for record in records:
        current = record.current
        ws.append([
            current.id,
            current.vendor_num,
            (new_marker if record.is_new else "") + current.description,
            current.size,
            _amount(current.price, blank_missing),
            _amount(record.last_price, blank_missing),
            _amount(record.diff, blank_missing),
        ])
        count += 1
        row = ws.max_row
        for col in (1, 2):
            cell = ws.cell(row=row, column=col)
            if cell.value is not None:
                cell.data_type = "s"
                cell.quotePrefix = True
        for col in (5, 6, 7):
            ws.cell(row=row, column=col).number_format = "0.00"
    _format(ws, headers)
    with _atomic_path(path, ".xlsx") as tmp_path:
        wb.save(tmp_path)
    return count


def write_report(path: str, records: Iterable[PairedRecord], headers: Sequence[str] = OUTPUT_HEADERS, new_marker: str = NEW_ITEM_MARKER, blank_missing: bool = False) -> int:
    if Path(path).suffix.lower() == ".xlsx":
        count = write_workbook(path, records, headers, new_marker, blank_missing)
    else:
        count = write_csv(path, format_records(records, new_marker, blank_missing), headers)
    LOGGER.info("Wrote %s (rows=%d)", path, count)
    return count
