from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional

from .models import PairedRecord

NEW_ITEM_RANK = Decimal("-1e10")


def diff(record: PairedRecord) -> Optional[Decimal]:
    return record.diff


def rank_value(record: PairedRecord) -> Decimal:
    value = diff(record)
    if value is None:
        return NEW_ITEM_RANK
    return -abs(value)


def sort_records(records: Iterable[PairedRecord]) -> List[PairedRecord]:
    # Two stable passes: id order survives as the tie-break within equal rank.
    by_id = sorted(records, key=lambda record: record.id)
    return sorted(by_id, key=rank_value)


def drop_unchanged(records: Iterable[PairedRecord]) -> List[PairedRecord]:
    # None != 0, so new items always survive.
    return [record for record in records if diff(record) != 0]


def rank(records: Iterable[PairedRecord]) -> List[PairedRecord]:
    """Biggest swings first, new items above everything, unchanged prices removed."""
    return drop_unchanged(sort_records(records))
