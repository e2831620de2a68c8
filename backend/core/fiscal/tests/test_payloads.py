from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from fiscal.payloads import build_fiscal_order_data, compute_total_vat
from fiscal.store import StoredOrderItem
from fiscal.types import FiscalOrderItem
from fiscal.tests.doubles import make_stored_order


def _item(total_price, vat_rate=22):
    return FiscalOrderItem(
        product_id="p",
        name="Product",
        quantity=1,
        unit_price=total_price,
        total_price=total_price,
        vat_rate=vat_rate,
    )


class ComputeTotalVatTests(SimpleTestCase):
    def test_single_rate_matches_flat_ratio(self):
        # 1700 * 22 / 122 = 306.56 -> 307
        self.assertEqual(compute_total_vat([_item(1700)]), 307)
        self.assertEqual(compute_total_vat([_item(1220)]), 220)

    def test_mixed_rates_sum_per_line(self):
        # 1220 @22% -> 220, 1100 @10% -> 100
        self.assertEqual(compute_total_vat([_item(1220), _item(1100, vat_rate=10)]), 320)

    def test_rounds_once_on_the_sum(self):
        # 0.54 cents of VAT per line: rounding each line would give 2
        self.assertEqual(compute_total_vat([_item(3), _item(3)]), 1)

    def test_zero_rate(self):
        self.assertEqual(compute_total_vat([_item(500, vat_rate=0)]), 0)

    def test_empty(self):
        self.assertEqual(compute_total_vat([]), 0)


class BuildFiscalOrderDataTests(SimpleTestCase):
    def test_successful_cash_order_payload(self):
        created_at = datetime(2026, 3, 1, 11, 30, tzinfo=dt_timezone.utc)
        order = make_stored_order("order-7", created_at=created_at, customer_name="Giulia")

        data = build_fiscal_order_data(order)

        self.assertEqual(data.order_id, "order-7")
        self.assertEqual(data.total_amount, 1700)
        self.assertEqual(data.total_vat, 307)
        self.assertEqual(data.payment_method, "cash")
        self.assertEqual(data.timestamp, "2026-03-01T11:30:00+00:00")
        self.assertEqual(data.customer_name, "Giulia")
        self.assertEqual(len(data.items), 1)
        item = data.items[0]
        self.assertEqual(item.unit_price, 850)
        self.assertEqual(item.total_price, 1700)
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.name, "Pizza Margherita")
        self.assertIsNone(item.category)

    def test_total_comes_from_stored_order(self):
        order = make_stored_order(total_amount=Decimal("15.00"))

        self.assertEqual(build_fiscal_order_data(order).total_amount, 1500)

    def test_unknown_payment_method_defaults_to_cash(self):
        order = make_stored_order(payment_method="voucher")

        self.assertEqual(build_fiscal_order_data(order).payment_method, "cash")

    def test_blank_product_name_and_customer(self):
        order = make_stored_order(
            items=(
                StoredOrderItem(
                    product_id="p1",
                    product_name="",
                    quantity=1,
                    unit_price=Decimal("2.00"),
                    total_price=Decimal("2.00"),
                    vat_rate=10,
                    category="drinks",
                ),
            ),
            total_amount=Decimal("2.00"),
        )

        data = build_fiscal_order_data(order)

        self.assertEqual(data.items[0].name, "Product")
        self.assertEqual(data.items[0].category, "drinks")
        self.assertIsNone(data.customer_name)
        self.assertEqual(data.total_vat, 18)
