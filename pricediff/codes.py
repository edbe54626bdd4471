from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Sequence

from .errors import MalformedReferenceError, MissingFileError
from .models import CodeMap

LOGGER = logging.getLogger(__name__)


class ReferenceRow(NamedTuple):
    raw: Optional[str]
    normalized: Optional[str]
    line_number: Optional[int] = None


def clean_code(value: Optional[str]) -> Optional[str]:
    """Trim a reference cell and drop one apostrophe (spreadsheet text marker).

    An empty result is treated as absent.
    """
    if value is None:
        return None
    result = value.strip().replace("'", "", 1)
    return result or None


def build_code_map(reference_rows: Iterable[Sequence[Optional[str]]]) -> CodeMap:
    code_map: CodeMap = {}
    for index, row in enumerate(reference_rows, start=2):
        raw, normalized = row[0], row[1]
        line_number = row[2] if len(row) > 2 and row[2] else index
        raw_code = clean_code(raw)
        if raw_code is None:
            raise MalformedReferenceError(f"reference line {line_number} has an empty raw code")
        code_map[raw_code] = clean_code(normalized) or raw_code
    return code_map


def read_reference_rows(path: str, raw_column: str = "Alpha", normalized_column: str = "Retalix") -> List[ReferenceRow]:
    if not Path(path).is_file():
        raise MissingFileError(path, "reference table")
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as file:
            reader = csv.DictReader(file)
            missing = [col for col in (raw_column, normalized_column) if col not in (reader.fieldnames or [])]
            if missing:
                raise MalformedReferenceError(f"{path} is missing column(s): {', '.join(missing)}")
            # line_num is the physical line the record ended on; blank lines are counted.
            return [ReferenceRow(row[raw_column], row[normalized_column], reader.line_num) for row in reader]
    except UnicodeDecodeError as exc:
        raise MalformedReferenceError(f"{path} is not UTF-8 text (re-save it as CSV UTF-8): {exc}") from exc
    except csv.Error as exc:
        raise MalformedReferenceError(f"{path} cannot be parsed as CSV: {exc}") from exc


def load_code_map(path: str, raw_column: str = "Alpha", normalized_column: str = "Retalix") -> CodeMap:
    code_map = build_code_map(read_reference_rows(path, raw_column, normalized_column))
    LOGGER.info("Loaded %d code translations from %s", len(code_map), path)
    return code_map
