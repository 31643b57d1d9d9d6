"""Tests for ledger reconciliation (usage between counts, estimated on-hand)."""

from datetime import datetime, timedelta, timezone

import pytest

from foodcost.core.metrics import COUNT_SCOPE_MISMATCH, STORE_SCOPE_MISMATCH
from foodcost.models import RunStatus, WasteType
from foodcost.services.ledger_service import LedgerReconciler

T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


@pytest.fixture
def reconciler(storage, metrics):
    return LedgerReconciler(storage, metrics)


@pytest.fixture
def flour(make_item):
    return make_item("Flour", price=0.40)


class TestEstimatedOnHand:
    """Test on-hand rolled forward from the latest count."""

    def test_full_formula(self, reconciler, test_company, test_store, sister_store, flour, make_count, make_receipt,
                          make_waste, make_run, make_transfer):
        make_count(test_store, T0, {flour: 100})
        make_receipt(test_store, flour, 20, expected_date=T0 + DAY)
        make_waste(test_store, 5, T0 + DAY, item=flour)
        make_run(test_store, T0 + DAY, {flour: (10, 4.0)})
        make_transfer(test_store, sister_store, flour, 3, completed_at=T0 + DAY)

        rows = reconciler.estimated_on_hand(test_company.id, test_store.id)

        assert len(rows) == 1
        row = rows[0]
        assert row.count_qty == 100
        assert row.received_qty == 20
        assert row.waste_qty == 5
        assert row.theoretical_usage_qty == 10
        assert row.transferred_out_qty == 3
        assert row.transferred_in_qty == 0
        assert row.on_hand == pytest.approx(102)
        assert row.on_hand_display == pytest.approx(102)

    def test_anchored_on_latest_count(self, reconciler, test_company, test_store, flour, make_count, make_receipt):
        make_count(test_store, T0, {flour: 10})
        make_receipt(test_store, flour, 99, expected_date=T0 + DAY)
        make_count(test_store, T0 + 2 * DAY, {flour: 40})

        rows = reconciler.estimated_on_hand(test_company.id, test_store.id)

        assert rows[0].count_qty == 40
        assert rows[0].received_qty == 0
        assert rows[0].on_hand == 40

    def test_count_date_boundaries(self, reconciler, test_company, test_store, flour, make_count, make_receipt,
                                   make_waste, make_run):
        make_count(test_store, T0, {flour: 50})
        make_receipt(test_store, flour, 7, expected_date=T0)          # same instant: included
        make_receipt(test_store, flour, 100, expected_date=T0 - DAY)  # before count: excluded
        make_waste(test_store, 2, T0, item=flour)                     # same instant: included
        make_run(test_store, T0, {flour: (30, 12.0)})                 # same instant: excluded
        make_run(test_store, T0 + DAY, {flour: (4, 1.6)})

        row = reconciler.estimated_on_hand(test_company.id, test_store.id)[0]

        assert row.received_qty == 7
        assert row.waste_qty == 2
        assert row.theoretical_usage_qty == 4
        assert row.on_hand == pytest.approx(50 + 7 - 2 - 4)

    def test_transfers_in_and_out(self, reconciler, test_company, test_store, sister_store, flour, make_count,
                                  make_transfer):
        make_count(test_store, T0, {flour: 10})
        make_transfer(sister_store, test_store, flour, 4, completed_at=T0 + DAY)
        make_transfer(test_store, sister_store, flour, 1, completed_at=T0 + DAY)
        make_transfer(sister_store, test_store, flour, 50, completed_at=None, status="in_transit")

        row = reconciler.estimated_on_hand(test_company.id, test_store.id)[0]

        assert row.transferred_in_qty == 4
        assert row.transferred_out_qty == 1
        assert row.on_hand == 13

    def test_only_inventory_waste_and_completed_runs(self, reconciler, test_company, test_store, flour, make_count,
                                                     make_waste, make_run, make_menu_item):
        make_count(test_store, T0, {flour: 10})
        make_waste(test_store, 3, T0 + DAY, menu_item=make_menu_item("Pizza"), waste_type=WasteType.RECIPE)
        make_run(test_store, T0 + DAY, {flour: (6, 2.4)}, status=RunStatus.FAILED)

        row = reconciler.estimated_on_hand(test_company.id, test_store.id)[0]

        assert row.waste_qty == 0
        assert row.theoretical_usage_qty == 0
        assert row.on_hand == 10

    def test_negative_on_hand_floored_for_display(self, reconciler, test_company, test_store, flour, make_count,
                                                  make_waste):
        make_count(test_store, T0, {flour: 2})
        make_waste(test_store, 5, T0 + DAY, item=flour)

        row = reconciler.estimated_on_hand(test_company.id, test_store.id)[0]

        assert row.on_hand == -3
        assert row.on_hand_display == 0

    def test_uncounted_item_with_movement(self, reconciler, test_company, test_store, flour, make_item, make_count,
                                          make_receipt):
        sugar = make_item("Sugar")
        make_count(test_store, T0, {flour: 1})
        make_receipt(test_store, sugar, 25, expected_date=T0 + DAY)

        rows = {r.inventory_item_id: r for r in reconciler.estimated_on_hand(test_company.id, test_store.id)}

        assert rows[sugar.id].count_qty == 0
        assert rows[sugar.id].on_hand == 25

    def test_no_counts_returns_empty(self, reconciler, test_company, test_store, flour, make_receipt):
        make_receipt(test_store, flour, 20, expected_date=T0)

        assert reconciler.estimated_on_hand(test_company.id, test_store.id) == []

    def test_store_of_other_company_returns_empty(self, reconciler, metrics, test_company, other_company,
                                                   test_store, flour, make_count):
        make_count(test_store, T0, {flour: 100})

        assert reconciler.estimated_on_hand(other_company.id, test_store.id) == []
        assert metrics.count(STORE_SCOPE_MISMATCH, other_company.id) == 1


class TestUsageBetweenCounts:
    """Test actual usage between two counts."""

    @pytest.fixture
    def counts(self, test_store, flour, make_count):
        previous = make_count(test_store, T0, {flour: 50})
        current = make_count(test_store, T0 + 7 * DAY, {flour: 40})
        return previous, current

    def test_usage_formula(self, reconciler, test_company, test_store, sister_store, flour, counts, make_receipt,
                           make_transfer):
        previous, current = counts
        make_receipt(test_store, flour, 10, expected_date=T0 + 2 * DAY)
        make_transfer(test_store, sister_store, flour, 5, completed_at=T0 + 3 * DAY)

        rows = reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, current.id)

        assert len(rows) == 1
        assert rows[0].previous_qty == 50
        assert rows[0].received_qty == 10
        assert rows[0].transferred_out_qty == 5
        assert rows[0].current_qty == 40
        assert rows[0].usage == pytest.approx(15)
        assert rows[0].is_negative_usage is False

    def test_negative_usage_flagged_not_clamped(self, reconciler, test_company, test_store, sister_store, flour,
                                                make_count, make_receipt, make_transfer):
        previous = make_count(test_store, T0, {flour: 50})
        current = make_count(test_store, T0 + 7 * DAY, {flour: 70})
        make_receipt(test_store, flour, 10, expected_date=T0 + 2 * DAY)
        make_transfer(test_store, sister_store, flour, 5, completed_at=T0 + 3 * DAY)

        row = reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, current.id)[0]

        assert row.usage == pytest.approx(-15)
        assert row.is_negative_usage is True

    def test_window_is_inclusive(self, reconciler, test_company, test_store, flour, counts, make_receipt):
        previous, current = counts
        make_receipt(test_store, flour, 1, expected_date=T0)
        make_receipt(test_store, flour, 2, expected_date=T0 + 7 * DAY)
        make_receipt(test_store, flour, 4, expected_date=T0 + 8 * DAY)
        make_receipt(test_store, flour, 8, expected_date=T0 - DAY)

        row = reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, current.id)[0]

        assert row.received_qty == 3

    def test_receipt_status_and_date_fallback(self, reconciler, test_company, test_store, flour, counts,
                                              make_receipt):
        previous, current = counts
        make_receipt(test_store, flour, 6, expected_date=T0 + DAY, status="draft")
        make_receipt(test_store, flour, 3, expected_date=T0 + DAY, status="locked")
        make_receipt(test_store, flour, 5, expected_date=None, received_at=T0 + 4 * DAY)

        row = reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, current.id)[0]

        assert row.received_qty == 8

    def test_receipt_status_is_case_insensitive(self, reconciler, test_company, test_store, flour, counts,
                                                make_receipt):
        previous, current = counts
        make_receipt(test_store, flour, 4, expected_date=T0 + DAY, status="Completed")
        make_receipt(test_store, flour, 2, expected_date=T0 + DAY, status="LOCKED")
        make_receipt(test_store, flour, 9, expected_date=T0 + DAY, status="Draft")

        row = reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, current.id)[0]

        assert row.received_qty == 6

    def test_transfers_in_and_incomplete_ignored(self, reconciler, test_company, test_store, sister_store, flour,
                                                 counts, make_transfer):
        previous, current = counts
        make_transfer(sister_store, test_store, flour, 9, completed_at=T0 + DAY)
        make_transfer(test_store, sister_store, flour, 7, completed_at=None, status="in_transit")
        make_transfer(test_store, sister_store, flour, 2, completed_at=T0 + 10 * DAY)

        row = reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, current.id)[0]

        assert row.transferred_out_qty == 0
        assert row.usage == 10

    def test_items_from_either_count(self, reconciler, test_company, test_store, flour, make_item, make_count):
        oil = make_item("Oil")
        salt = make_item("Salt")
        previous = make_count(test_store, T0, {flour: 5, oil: 2})
        current = make_count(test_store, T0 + DAY, {flour: 1, salt: 3})

        rows = {r.inventory_item_id: r for r in
                reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, current.id)}

        assert set(rows) == {flour.id, oil.id, salt.id}
        assert rows[oil.id].usage == 2
        assert rows[salt.id].usage == -3

    def test_count_of_another_store_returns_empty(self, reconciler, metrics, test_company, test_store,
                                                  sister_store, flour, counts, make_count):
        previous, _ = counts
        foreign = make_count(sister_store, T0 + DAY, {flour: 1})

        assert reconciler.usage_between_counts(test_company.id, test_store.id, previous.id, foreign.id) == []
        assert metrics.count(COUNT_SCOPE_MISMATCH, test_company.id) == 1

    def test_tenant_isolation(self, reconciler, metrics, other_company, test_store, counts):
        previous, current = counts

        assert reconciler.usage_between_counts(other_company.id, test_store.id, previous.id, current.id) == []
        assert metrics.count(STORE_SCOPE_MISMATCH, other_company.id) == 1
