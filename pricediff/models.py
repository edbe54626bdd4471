from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError, PairingInvariantViolation

OUTPUT_HEADERS = ["ID", "Vendor_Num", "Description", "Size", "Price", "Last_Price", "Difference"]
NEW_ITEM_MARKER = "*** NEW *** "


@dataclass(frozen=True)
class Item:
    vendor_num: Optional[str]
    description: str
    size: Optional[str]
    price: Decimal
    id: str


@dataclass(frozen=True)
class PairedRecord:
    current: Item
    previous: Optional[Item] = None

    def __post_init__(self) -> None:
        if self.previous is not None and self.previous.id != self.current.id:
            raise PairingInvariantViolation(self.current.id, self.previous.id)

    @property
    def id(self) -> str:
        return self.current.id

    @property
    def is_new(self) -> bool:
        return self.previous is None

    @property
    def last_price(self) -> Optional[Decimal]:
        return self.previous.price if self.previous is not None else None

    @property
    def diff(self) -> Optional[Decimal]:
        if self.previous is None:
            return None
        return self.current.price - self.previous.price


@dataclass
class RunConfig:
    data_dir: str = "data"
    reference_file_name: str = "codes.csv"
    raw_code_column: str = "Alpha"
    normalized_code_column: str = "Retalix"
    output_dir: str = "output"
    output_file_name: str = "jit-produce-prices.csv"
    output_headers: List[str] = field(default_factory=lambda: list(OUTPUT_HEADERS))
    header_rows: int = 1
    new_item_marker: str = NEW_ITEM_MARKER
    blank_missing_prices: bool = False
    skip_pairing_violations: bool = False
    reject_duplicate_ids: bool = False

    @property
    def reference_path(self) -> str:
        return str(Path(self.data_dir).expanduser() / self.reference_file_name)

    @property
    def output_path(self) -> str:
        return str(Path(self.output_dir).expanduser() / self.output_file_name)

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "RunConfig":
        data = dict(data or {})
        columns = data.pop("reference_columns", None) or {}
        if not isinstance(columns, dict):
            raise ConfigError("reference_columns must be a mapping with raw_code / normalized_code")
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        for name, value in values.items():
            expected = _FIELD_TYPES[name]
            # bool is an int subclass; header_rows: true is still wrong.
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ConfigError(f"{name} must be {expected.__name__}, got {value!r}")
        config = cls(**values)
        for key, attr in (("raw_code", "raw_code_column"), ("normalized_code", "normalized_code_column")):
            value = columns.get(key)
            if value is None:
                continue
            if not isinstance(value, str) or not value:
                raise ConfigError(f"reference_columns.{key} must be a column name, got {value!r}")
            setattr(config, attr, value)
        if config.header_rows < 0:
            raise ConfigError(f"header_rows must not be negative, got {config.header_rows}")
        if len(config.output_headers) != len(OUTPUT_HEADERS) or not all(isinstance(h, str) for h in config.output_headers):
            raise ConfigError(f"output_headers needs {len(OUTPUT_HEADERS)} names, got {config.output_headers!r}")
        return config


_FIELD_TYPES: Dict[str, type] = {
    "data_dir": str,
    "reference_file_name": str,
    "raw_code_column": str,
    "normalized_code_column": str,
    "output_dir": str,
    "output_file_name": str,
    "output_headers": list,
    "header_rows": int,
    "new_item_marker": str,
    "blank_missing_prices": bool,
    "skip_pairing_violations": bool,
    "reject_duplicate_ids": bool,
}


CodeMap = Dict[str, str]
