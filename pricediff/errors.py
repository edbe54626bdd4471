from __future__ import annotations

from typing import Iterable, List, Optional


class PriceDiffError(Exception):
    """Base class for every failure a run can report."""


class MissingFileError(PriceDiffError):
    def __init__(self, path: str, what: str = "input file"):
        self.path = path
        super().__init__(f"{what} does not exist: {path}")


class ConfigError(PriceDiffError):
    pass


class MalformedReferenceError(PriceDiffError):
    pass


class RowShapeError(PriceDiffError):
    def __init__(self, row_number: int, message: str):
        self.row_number = row_number
        super().__init__(f"row {row_number}: {message}")


class InvalidPriceError(RowShapeError):
    pass


class EmptySnapshotError(PriceDiffError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"no populated sheet found in {path}")


class PairingInvariantViolation(PriceDiffError):
    def __init__(self, current_id: str, previous_id: Optional[str]):
        self.current_id = current_id
        self.previous_id = previous_id
        super().__init__(f"paired record ids disagree: current={current_id!r} previous={previous_id!r}")


class DuplicateIdError(PriceDiffError):
    def __init__(self, label: str, ids: Iterable[str]):
        self.ids: List[str] = list(ids)
        shown = ", ".join(self.ids[:10])
        more = f" (+{len(self.ids) - 10} more)" if len(self.ids) > 10 else ""
        super().__init__(f"duplicate ids in {label} snapshot: {shown}{more}")


class UnsupportedFormatError(PriceDiffError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"unsupported snapshot format (expected .csv or .xlsx): {path}")


class UnreadableSnapshotError(PriceDiffError):
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"cannot read snapshot {path}: {reason}")
