"""
Tests for the reconciliation engine.

The engine is exercised directly against the store and a fake catalog,
without locks or commits, to check each policy branch in isolation.
"""
from decimal import Decimal

import pytest

from shopcart.domain.errors import (
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
    OutOfStockError,
    ProductInactiveError,
)
from shopcart.domain.owner import SessionOwner, UserOwner
from shopcart.services.reconciliation import CartReconciler

USER = UserOwner(1)
GUEST = SessionOwner("sess-a")


@pytest.fixture
def reconciler(repo, catalog):
    return CartReconciler(repo, catalog)


class TestAddLine:
    def test_new_line_snapshots_display_price(self, reconciler, catalog):
        catalog.put(1, price="100.00", sale_price="79.99", stock=5)

        line = reconciler.add_line(GUEST, 1, 2)

        assert line.quantity == 2
        assert line.unit_price == Decimal("79.99")
        assert line.session_id == "sess-a"

    def test_second_add_increments_existing_line(self, reconciler, repo, catalog):
        catalog.put(1, stock=10)
        reconciler.add_line(USER, 1, 2)
        reconciler.add_line(USER, 1, 3)

        assert repo.count_for_owner(USER) == 1
        assert repo.find_one(USER, 1).quantity == 5

    def test_second_add_keeps_original_price_snapshot(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        reconciler.add_line(USER, 1, 1)
        catalog.put(1, price="12.00", stock=10)

        reconciler.add_line(USER, 1, 1)

        assert repo.find_one(USER, 1).unit_price == Decimal("10.00")

    def test_quantity_equal_to_stock_succeeds(self, reconciler, catalog):
        catalog.put(1, stock=3)
        assert reconciler.add_line(USER, 1, 3).quantity == 3

    def test_quantity_above_stock_fails_with_available(self, reconciler, repo, catalog):
        catalog.put(1, stock=3)
        with pytest.raises(InsufficientStockError) as exc:
            reconciler.add_line(USER, 1, 4)
        assert exc.value.available == 3
        assert repo.find_one(USER, 1) is None

    def test_combined_quantity_above_stock_fails(self, reconciler, repo, catalog):
        catalog.put(1, stock=3)
        reconciler.add_line(USER, 1, 2)

        with pytest.raises(InsufficientStockError) as exc:
            reconciler.add_line(USER, 1, 2)

        assert exc.value.available == 3
        assert repo.find_one(USER, 1).quantity == 2

    def test_zero_stock_is_out_of_stock(self, reconciler, catalog):
        catalog.put(1, stock=0)
        with pytest.raises(OutOfStockError):
            reconciler.add_line(USER, 1, 1)

    def test_inactive_product(self, reconciler, catalog):
        catalog.put(1, stock=10, is_active=False)
        with pytest.raises(ProductInactiveError):
            reconciler.add_line(USER, 1, 1)

    def test_missing_product(self, reconciler):
        with pytest.raises(NotFoundError):
            reconciler.add_line(USER, 404, 1)

    def test_non_positive_quantity(self, reconciler, catalog):
        catalog.put(1)
        with pytest.raises(InvalidQuantityError):
            reconciler.add_line(USER, 1, 0)

    def test_repeated_adds_cannot_exceed_line_limit(self, reconciler, repo, catalog):
        catalog.put(1, stock=5000)
        reconciler.add_line(USER, 1, 999)

        with pytest.raises(InvalidQuantityError):
            reconciler.add_line(USER, 1, 999)

        assert repo.find_one(USER, 1).quantity == 999

    def test_single_add_above_line_limit(self, reconciler, repo, catalog):
        catalog.put(1, stock=5000)
        with pytest.raises(InvalidQuantityError):
            reconciler.add_line(USER, 1, 1000)
        assert repo.find_one(USER, 1) is None


class TestSetQuantity:
    def test_zero_deletes_line(self, reconciler, repo, catalog):
        catalog.put(1, stock=10)
        line = reconciler.add_line(USER, 1, 2)

        assert reconciler.set_quantity(USER, line, 0) is None
        assert repo.find_one(USER, 1) is None

    def test_above_stock_fails(self, reconciler, repo, catalog):
        catalog.put(1, stock=4)
        line = reconciler.add_line(USER, 1, 2)

        with pytest.raises(InsufficientStockError) as exc:
            reconciler.set_quantity(USER, line, 5)

        assert exc.value.available == 4
        assert repo.find_one(USER, 1).quantity == 2

    def test_plain_update_does_not_touch_price(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        line = reconciler.add_line(USER, 1, 1)
        catalog.put(1, price="15.00", stock=10)

        reconciler.set_quantity(USER, line, 3)

        stored = repo.find_one(USER, 1)
        assert stored.quantity == 3
        assert stored.unit_price == Decimal("10.00")

    def test_inactive_product_blocks_increase_but_allows_decrease(self, reconciler, repo, catalog):
        catalog.put(1, stock=10)
        line = reconciler.add_line(USER, 1, 3)
        catalog.put(1, stock=10, is_active=False)

        with pytest.raises(ProductInactiveError):
            reconciler.set_quantity(USER, line, 4)
        reconciler.set_quantity(USER, line, 1)
        assert repo.find_one(USER, 1).quantity == 1

    def test_negative_quantity(self, reconciler, catalog):
        catalog.put(1)
        line = reconciler.add_line(USER, 1, 1)
        with pytest.raises(InvalidQuantityError):
            reconciler.set_quantity(USER, line, -1)

    def test_update_above_line_limit(self, reconciler, repo, catalog):
        catalog.put(1, stock=5000)
        line = reconciler.add_line(USER, 1, 1)

        with pytest.raises(InvalidQuantityError):
            reconciler.set_quantity(USER, line, 1000)

        assert repo.find_one(USER, 1).quantity == 1


class TestValidate:
    """Issues are reported, deterministic drift is repaired in place."""

    def test_clean_cart_is_valid(self, reconciler, catalog):
        catalog.put(1, stock=10)
        reconciler.add_line(USER, 1, 2)

        report = reconciler.validate(USER)

        assert report == {"valid": True, "issues": [], "repaired": []}

    def test_empty_cart_is_valid(self, reconciler):
        assert reconciler.validate(USER)["valid"] is True

    def test_price_drift_is_reported_and_repaired(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        line = reconciler.add_line(USER, 1, 2)
        catalog.put(1, price="12.50", stock=10)

        report = reconciler.validate(USER)

        assert report["valid"] is False
        assert report["issues"][0]["codes"] == ["price_changed"]
        assert report["repaired"] == [
            {
                "line_id": line.id,
                "field": "unit_price",
                "old_value": Decimal("10.00"),
                "new_value": Decimal("12.50"),
            }
        ]
        stored = repo.find_one(USER, 1)
        assert stored.unit_price == Decimal("12.50")
        assert stored.quantity == 2

    def test_drift_within_tolerance_is_ignored(self, reconciler, catalog):
        catalog.put(1, price="10.00", stock=10)
        reconciler.add_line(USER, 1, 1)
        catalog.put(1, price="10.01", stock=10)

        assert reconciler.validate(USER)["valid"] is True

    def test_new_sale_price_counts_as_drift(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        reconciler.add_line(USER, 1, 1)
        catalog.put(1, price="10.00", sale_price="8.00", stock=10)

        reconciler.validate(USER)

        assert repo.find_one(USER, 1).unit_price == Decimal("8.00")

    def test_insufficient_stock_clamps_quantity(self, reconciler, repo, catalog):
        catalog.put(1, stock=10)
        line = reconciler.add_line(USER, 1, 5)
        catalog.put(1, stock=2)

        report = reconciler.validate(USER)

        assert report["issues"][0]["codes"] == ["insufficient_stock"]
        assert report["issues"][0]["messages"] == ["Dostepnych sztuk: 2"]
        assert report["repaired"] == [
            {"line_id": line.id, "field": "quantity", "old_value": 5, "new_value": 2}
        ]
        assert repo.find_one(USER, 1).quantity == 2

    def test_out_of_stock_is_flagged_not_repaired(self, reconciler, repo, catalog):
        catalog.put(1, stock=10)
        reconciler.add_line(USER, 1, 3)
        catalog.put(1, stock=0)

        report = reconciler.validate(USER)

        assert report["valid"] is False
        assert report["issues"][0]["codes"] == ["out_of_stock"]
        assert report["repaired"] == []
        assert repo.find_one(USER, 1).quantity == 3

    def test_inactive_product_is_unavailable_without_quantity_repair(self, reconciler, repo, catalog):
        catalog.put(1, stock=10)
        reconciler.add_line(USER, 1, 3)
        catalog.put(1, stock=1, is_active=False)

        report = reconciler.validate(USER)

        assert report["issues"][0]["codes"] == ["unavailable"]
        assert report["repaired"] == []
        assert repo.find_one(USER, 1).quantity == 3

    def test_inactive_product_still_gets_price_repair(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        reconciler.add_line(USER, 1, 1)
        catalog.put(1, price="20.00", stock=10, is_active=False)

        report = reconciler.validate(USER)

        assert report["issues"][0]["codes"] == ["unavailable", "price_changed"]
        assert repo.find_one(USER, 1).unit_price == Decimal("20.00")

    def test_product_removed_from_catalog_is_unavailable(self, reconciler, repo, catalog):
        catalog.put(1, stock=10)
        reconciler.add_line(USER, 1, 1)
        del catalog.products[1]

        report = reconciler.validate(USER)

        assert report["issues"][0]["codes"] == ["unavailable"]
        assert repo.find_one(USER, 1) is not None

    def test_stock_and_price_repairs_both_apply(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        reconciler.add_line(USER, 1, 6)
        catalog.put(1, price="9.00", stock=4)

        report = reconciler.validate(USER)

        assert report["issues"][0]["codes"] == ["insufficient_stock", "price_changed"]
        assert [r["field"] for r in report["repaired"]] == ["quantity", "unit_price"]
        stored = repo.find_one(USER, 1)
        assert (stored.quantity, stored.unit_price) == (4, Decimal("9.00"))

    def test_only_problem_lines_are_reported(self, reconciler, catalog):
        catalog.put(1, stock=10)
        catalog.put(2, stock=10)
        reconciler.add_line(USER, 1, 1)
        reconciler.add_line(USER, 2, 1)
        catalog.put(2, stock=0)

        report = reconciler.validate(USER)

        assert [i["product_id"] for i in report["issues"]] == [2]

    def test_other_owners_are_untouched(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        reconciler.add_line(GUEST, 1, 1)
        catalog.put(1, price="11.00", stock=10)

        assert reconciler.validate(USER)["valid"] is True
        assert repo.find_one(GUEST, 1).unit_price == Decimal("10.00")


class TestSyncPrices:
    def test_updates_every_drifted_line_of_the_product(self, reconciler, repo, catalog):
        catalog.put(1, price="10.00", stock=10)
        reconciler.add_line(USER, 1, 1)
        reconciler.add_line(GUEST, 1, 1)
        catalog.put(1, price="11.00", stock=10)

        assert reconciler.sync_prices(1) == 2
        assert repo.find_one(USER, 1).unit_price == Decimal("11.00")
        assert repo.find_one(GUEST, 1).unit_price == Decimal("11.00")

    def test_missing_product_is_skipped(self, reconciler):
        assert reconciler.sync_prices(99) == 0
