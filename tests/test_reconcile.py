import unittest
from decimal import Decimal
from unittest import mock

from pricediff.errors import PairingInvariantViolation
from pricediff.models import Item, PairedRecord
from pricediff.reconcile import find_duplicate_ids, index_by_id, reconcile


def item(item_id, price, description="Produce"):
    return Item(vendor_num="V" + item_id, description=description, size="1 ct", price=Decimal(price), id=item_id)


class PairedRecordTests(unittest.TestCase):
    def test_mismatched_ids_are_rejected(self):
        with self.assertRaises(PairingInvariantViolation) as ctx:
            PairedRecord(item("1", "1.00"), item("2", "1.00"))
        self.assertEqual(ctx.exception.current_id, "1")
        self.assertEqual(ctx.exception.previous_id, "2")

    def test_derived_values(self):
        record = PairedRecord(item("1", "12.50"), item("1", "10.00"))
        self.assertEqual(record.last_price, Decimal("10.00"))
        self.assertEqual(record.diff, Decimal("2.50"))
        self.assertFalse(record.is_new)

        new = PairedRecord(item("2", "5.00"))
        self.assertIsNone(new.last_price)
        self.assertIsNone(new.diff)
        self.assertTrue(new.is_new)


class ReconcileTests(unittest.TestCase):
    def test_left_join_keeps_current_order(self):
        current = [item("3", "1.00"), item("1", "12.50"), item("2", "5.00")]
        previous = [item("1", "10.00"), item("9", "4.00")]
        records = reconcile(current, previous)
        self.assertEqual([r.id for r in records], ["3", "1", "2"])
        self.assertEqual([r.previous is not None for r in records], [False, True, False])

    def test_previous_only_items_are_not_reported(self):
        records = reconcile([item("1", "1.00")], [item("1", "1.00"), item("2", "2.00")])
        self.assertEqual([r.id for r in records], ["1"])

    def test_duplicate_previous_ids_keep_last_row(self):
        previous = [item("1", "8.00"), item("1", "10.00")]
        with self.assertLogs("pricediff.reconcile", level="WARNING") as logs:
            records = reconcile([item("1", "12.00")], previous)
        self.assertEqual(records[0].last_price, Decimal("10.00"))
        self.assertIn("duplicate", logs.output[0])

    def test_duplicate_current_ids_each_get_a_record(self):
        records = reconcile([item("1", "11.00"), item("1", "12.00")], [item("1", "10.00")])
        self.assertEqual([r.diff for r in records], [Decimal("1.00"), Decimal("2.00")])

    def test_find_duplicate_ids(self):
        items = [item("b", "1"), item("a", "1"), item("b", "2"), item("a", "3"), item("c", "1")]
        self.assertEqual(find_duplicate_ids(items), ["a", "b"])
        self.assertEqual(index_by_id(items)["a"].price, Decimal("3"))

    def test_pairing_violation_is_fatal_by_default(self):
        with mock.patch("pricediff.reconcile.index_by_id", return_value={"1": item("2", "1.00")}):
            with self.assertRaises(PairingInvariantViolation):
                reconcile([item("1", "1.00")], [])

    def test_pairing_violation_can_be_skipped(self):
        bad_index = {"1": item("2", "1.00")}
        with mock.patch("pricediff.reconcile.index_by_id", return_value=bad_index):
            with self.assertLogs("pricediff.reconcile", level="WARNING"):
                records = reconcile([item("1", "1.00"), item("3", "2.00")], [], skip_violations=True)
        self.assertEqual([r.id for r in records], ["3"])


if __name__ == "__main__":
    unittest.main()
