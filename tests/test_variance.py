"""Tests for actual vs theoretical variance."""

from datetime import datetime, timedelta, timezone

import pytest

from foodcost.services.variance_service import VarianceService, summarize_variance, variance_row

T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


class TestVarianceCalculation:
    """Test the pure variance arithmetic."""

    def test_positive_variance(self):
        row = variance_row(1, actual_qty=60, theoretical_qty=50, actual_cost=120.0, theoretical_cost=100.0)

        assert row.variance_cost == pytest.approx(20.0)
        assert row.variance_qty == pytest.approx(10.0)
        assert row.variance_percent == pytest.approx(20.0)

    def test_no_theoretical_cost_has_no_percent(self):
        row = variance_row(1, actual_qty=3, theoretical_qty=0, actual_cost=6.0, theoretical_cost=0.0)

        assert row.variance_percent is None

    def test_summary_splits_positive_and_negative(self):
        report = summarize_variance([
            variance_row(1, 60, 50, 120.0, 100.0),
            variance_row(2, 10, 15, 10.0, 15.0),
            variance_row(3, 5, 5, 5.0, 5.0),
        ])

        assert report.positive_variance_cost == pytest.approx(20.0)
        assert report.negative_variance_cost == pytest.approx(5.0)
        assert report.net_variance_cost == pytest.approx(15.0)
        assert report.total_actual_cost == pytest.approx(135.0)
        assert report.total_theoretical_cost == pytest.approx(120.0)


class TestVarianceService:
    """Test variance between two stored counts."""

    @pytest.fixture
    def service(self, storage, metrics):
        return VarianceService(storage, metrics)

    def test_variance_between_counts(self, service, test_company, test_store, make_item, make_count, make_run):
        flour = make_item("Flour", price=2.0)
        oil = make_item("Oil", price=1.0)
        previous = make_count(test_store, T0, {flour: 100, oil: 20})
        current = make_count(test_store, T0 + 7 * DAY, {flour: 40, oil: 10})
        make_run(test_store, T0, {flour: (500, 1000.0)})  # on the previous count date: outside the window
        make_run(test_store, T0 + 3 * DAY, {flour: (30, 60.0), oil: (15, 15.0)})
        make_run(test_store, T0 + 7 * DAY, {flour: (20, 40.0)})  # on the current count date: inside

        report = service.variance_between_counts(test_company.id, test_store.id, previous.id, current.id)
        rows = {r.inventory_item_id: r for r in report.rows}

        assert rows[flour.id].actual_cost == pytest.approx(120.0)
        assert rows[flour.id].theoretical_cost == pytest.approx(100.0)
        assert rows[flour.id].variance_cost == pytest.approx(20.0)
        assert rows[oil.id].variance_cost == pytest.approx(-5.0)
        assert report.positive_variance_cost == pytest.approx(20.0)
        assert report.negative_variance_cost == pytest.approx(5.0)

    def test_theoretical_only_item_included(self, service, test_company, test_store, make_item, make_count,
                                            make_run):
        flour = make_item("Flour", price=2.0)
        basil = make_item("Basil", price=8.0)
        previous = make_count(test_store, T0, {flour: 10})
        current = make_count(test_store, T0 + DAY, {flour: 10})
        make_run(test_store, T0 + DAY, {basil: (0.5, 4.0)})

        rows = {r.inventory_item_id: r for r in
                service.variance_between_counts(test_company.id, test_store.id, previous.id, current.id).rows}

        assert rows[basil.id].actual_cost == 0
        assert rows[basil.id].variance_cost == pytest.approx(-4.0)

    def test_out_of_scope_returns_empty_report(self, service, other_company, test_store, make_item, make_count):
        flour = make_item("Flour", price=2.0)
        previous = make_count(test_store, T0, {flour: 10})
        current = make_count(test_store, T0 + DAY, {flour: 5})

        report = service.variance_between_counts(other_company.id, test_store.id, previous.id, current.id)

        assert report.rows == []
        assert report.positive_variance_cost == 0
