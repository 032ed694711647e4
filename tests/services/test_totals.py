"""
Tests for the quote totals calculator.
"""

import pytest

from quoteflow.exceptions import ValidationError
from quoteflow.schemas.quote import DiscountType, QuoteLineItem
from quoteflow.services.totals import compute_totals, discount_amount, price_item


class TestPriceItem:
    """Tests for per-line pricing."""

    def test_total_price_is_quantity_times_unit_price(self):
        item = price_item({"name": "Design", "quantity": 3, "unit_price": 150})
        assert item["total_price"] == 450

    def test_caller_total_price_is_discarded(self):
        item = price_item({"name": "Design", "quantity": 2, "unit_price": 100, "total_price": 1})
        assert item["total_price"] == 200

    def test_input_is_not_mutated(self):
        source = {"name": "Design", "quantity": 2, "unit_price": 100, "total_price": 1}
        price_item(source)
        assert source["total_price"] == 1

    def test_accepts_line_item_models(self):
        item = price_item(QuoteLineItem(name="Hosting", quantity=12, unit_price=20))
        assert item["name"] == "Hosting"
        assert item["total_price"] == 240

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            price_item({"name": "Bad", "quantity": 0, "unit_price": 10})

    def test_negative_unit_price_rejected(self):
        with pytest.raises(ValidationError):
            price_item({"name": "Bad", "quantity": 1, "unit_price": -5})


class TestDiscountAmount:
    """Tests for percentage and fixed discounts."""

    def test_percentage(self):
        assert discount_amount(200, 10, "percentage") == pytest.approx(20)

    def test_fixed(self):
        assert discount_amount(200, 35, "fixed") == 35

    def test_enum_discount_type(self):
        assert discount_amount(200, 10, DiscountType.percentage) == pytest.approx(20)

    def test_zero_discount(self):
        assert discount_amount(200, 0, "percentage") == 0.0

    def test_fixed_discount_not_capped(self):
        assert discount_amount(50, 80, "fixed") == 80

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            discount_amount(200, 10, "bogus")

    def test_negative_discount_rejected(self):
        with pytest.raises(ValidationError):
            discount_amount(200, -1, "fixed")


class TestComputeTotals:
    """Tests for the full totals pass."""

    def test_percentage_discount_then_vat(self):
        items = [
            {"name": "Design", "quantity": 1, "unit_price": 120},
            {"name": "Build", "quantity": 2, "unit_price": 40},
        ]

        totals = compute_totals(items, discount=10, discount_type="percentage", include_vat=True, vat_rate=17)

        assert totals.subtotal == pytest.approx(200)
        assert totals.discount_amount == pytest.approx(20)
        assert totals.after_discount == pytest.approx(180)
        assert totals.vat_amount == pytest.approx(30.6)
        assert totals.total == pytest.approx(210.6)

    def test_vat_disabled(self):
        items = [{"name": "Design", "quantity": 1, "unit_price": 200}]

        totals = compute_totals(items, discount=50, discount_type="fixed", include_vat=False, vat_rate=17)

        assert totals.vat_amount == 0
        assert totals.total == pytest.approx(150)

    def test_no_items(self):
        totals = compute_totals([])

        assert totals.items == ()
        assert totals.subtotal == 0
        assert totals.total == 0

    def test_tampered_total_price_ignored(self):
        items = [{"name": "Design", "quantity": 2, "unit_price": 100, "total_price": 999999}]

        totals = compute_totals(items, include_vat=False)

        assert totals.items[0]["total_price"] == 200
        assert totals.subtotal == 200

    def test_discount_larger_than_subtotal_gives_negative_total(self):
        items = [{"name": "Design", "quantity": 1, "unit_price": 100}]

        totals = compute_totals(items, discount=150, discount_type="fixed", include_vat=True, vat_rate=17)

        assert totals.after_discount == pytest.approx(-50)
        assert totals.total == pytest.approx(-58.5)

    def test_no_rounding_applied(self):
        items = [{"name": "Widget", "quantity": 3, "unit_price": 0.1}]

        totals = compute_totals(items, include_vat=False)

        assert totals.subtotal == 3 * 0.1

    def test_negative_vat_rate_rejected(self):
        with pytest.raises(ValidationError):
            compute_totals([{"name": "A", "quantity": 1, "unit_price": 1}], vat_rate=-1)

    def test_line_order_preserved(self):
        items = [{"name": n, "quantity": 1, "unit_price": 1} for n in ("a", "b", "c")]

        totals = compute_totals(items)

        assert [item["name"] for item in totals.items] == ["a", "b", "c"]
