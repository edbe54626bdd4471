from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Sequence

from .errors import PairingInvariantViolation
from .models import Item, PairedRecord

LOGGER = logging.getLogger(__name__)


def find_duplicate_ids(items: Iterable[Item]) -> List[str]:
    counts = Counter(item.id for item in items)
    return sorted(item_id for item_id, count in counts.items() if count > 1)


def index_by_id(items: Sequence[Item]) -> Dict[str, Item]:
    """Index items by id. A later item replaces an earlier one with the same id."""
    duplicates = find_duplicate_ids(items)
    if duplicates:
        LOGGER.warning("%d duplicate id(s), keeping the last row for each: %s", len(duplicates), ", ".join(duplicates[:10]))
    return {item.id: item for item in items}


def reconcile(current_items: Sequence[Item], previous_items: Sequence[Item], skip_violations: bool = False) -> List[PairedRecord]:
    """Left join of current onto previous by id.

    Items only present in the previous snapshot are not reported.
    """
    previous_by_id = index_by_id(previous_items)
    records: List[PairedRecord] = []
    for current in current_items:
        try:
            records.append(PairedRecord(current, previous_by_id.get(current.id)))
        except PairingInvariantViolation as exc:
            if not skip_violations:
                raise
            LOGGER.warning("Skipping record: %s", exc)

    matched = sum(1 for record in records if not record.is_new)
    LOGGER.info("Reconciled %d current items (%d matched, %d new)", len(records), matched, len(records) - matched)
    return records
