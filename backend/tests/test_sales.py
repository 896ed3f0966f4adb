# Overview: Pytest coverage for counter and wholesale sales.

import pytest

from shopledger.errors import InsufficientStock, Unauthorized, ValidationError
from shopledger.extensions import db
from shopledger.models import Sale
from shopledger.services import sales_service, stock_ledger, supplier_debt_service


class TestRecordSale:
    def test_in_house_sale_consumes_stock_and_pays(self, tech_a, shop_a, stock_shop_item):
        case = stock_shop_item(shop_a, "Phone Case", 10, price_cents=500)

        sale, payment = sales_service.record_sale(
            {"lines": [{"item_id": case.id, "quantity": 3}], "method": "mpesa", "reference": "MX1"},
            tech_a,
        )

        assert sale.total_cents == 1500
        assert sale.shop_id == shop_a.id
        assert stock_ledger.get_stock(case.id) == 7
        assert payment.amount_cents == 1500
        assert payment.related_to == "sale"
        assert payment.related_id == sale.id
        assert payment.state == "fully_paid"

    def test_price_override(self, tech_a, shop_a, stock_shop_item):
        stock_shop_item(shop_a, "Phone Case", 10, price_cents=500)
        sale, _ = sales_service.record_sale(
            {"sale_type": "wholesale", "lines": [{"name": "Phone Case", "quantity": 5, "unit_price_cents": 400}]},
            tech_a,
        )
        assert sale.total_cents == 2000
        assert sale.sale_type == "wholesale"

    def test_shortfall_aborts_whole_sale(self, tech_a, shop_a, stock_shop_item):
        case = stock_shop_item(shop_a, "Phone Case", 10, price_cents=500)
        charger = stock_shop_item(shop_a, "Charger", 1, price_cents=800)

        with pytest.raises(InsufficientStock):
            sales_service.record_sale(
                {"lines": [
                    {"item_id": case.id, "quantity": 2},
                    {"item_id": charger.id, "quantity": 2},
                ]},
                tech_a,
            )

        assert stock_ledger.get_stock(case.id) == 10
        assert stock_ledger.get_stock(charger.id) == 1
        assert db.session.query(Sale).count() == 0

    def test_outsourced_line_raises_debt(self, tech_a, supplier):
        sale, payment = sales_service.record_sale(
            {"lines": [{
                "name": "Galaxy S21 Screen",
                "quantity": 1,
                "unit_price_cents": 15000,
                "source": "outsourced",
                "supplier_id": supplier.id,
            }]},
            tech_a,
        )

        assert payment.amount_cents == 15000
        debts = supplier_debt_service.list_debts(supplier_id=supplier.id)
        assert [(d.item_name, d.sale_id, d.awaiting_cost) for d in debts] == [("Galaxy S21 Screen", sale.id, True)]

    def test_zero_total_rejected(self, tech_a, shop_a, stock_shop_item):
        freebie = stock_shop_item(shop_a, "Sticker", 5, price_cents=0)
        with pytest.raises(ValidationError):
            sales_service.record_sale({"lines": [{"item_id": freebie.id, "quantity": 1}]}, tech_a)
        assert stock_ledger.get_stock(freebie.id) == 5

    def test_cannot_sell_for_other_shop(self, tech_a, shop_b, stock_shop_item):
        item = stock_shop_item(shop_b, "Phone Case", 10)
        with pytest.raises(Unauthorized):
            sales_service.record_sale({"shop_id": shop_b.id, "lines": [{"item_id": item.id, "quantity": 1}]}, tech_a)
        assert stock_ledger.get_stock(item.id) == 10
