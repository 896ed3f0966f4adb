# Overview: Pytest coverage for the payment ledger and cash settlement.

import pytest

from shopledger.errors import InvalidStateTransition, Unauthorized, ValidationError
from shopledger.extensions import db
from shopledger.services import payment_service


def _payment(shop, payment_type="cash", amount=1000, **kwargs):
    payment = payment_service.record_payment(
        payment_type, amount, payment_service.RELATED_TO_SALE, 1, shop_id=shop.id, **kwargs
    )
    db.session.commit()
    return payment


class TestRecordPayment:
    def test_cash_starts_undeposited(self, shop_a):
        payment = _payment(shop_a, "cash")
        assert payment.deposited is False
        assert payment.deposit_date is None
        assert [p.id for p in payment_service.pending_cash_deposits(shop_a.id)] == [payment.id]

    def test_mpesa_is_deposited_on_arrival(self, shop_a):
        payment = _payment(shop_a, "mpesa", reference="QAZ123")
        assert payment.deposited is True
        assert payment.deposit_date is not None
        assert payment_service.pending_cash_deposits(shop_a.id) == []

    def test_bank_deposit_needs_bank_or_reference(self, shop_a):
        with pytest.raises(ValidationError):
            payment_service.record_payment("bank_deposit", 1000, "sale", 1, shop_id=shop_a.id)
        payment = _payment(shop_a, "bank_deposit", bank="KCB")
        assert payment.bank == "KCB"

    def test_unknown_method(self, shop_a):
        with pytest.raises(ValidationError):
            payment_service.record_payment("cheque", 1000, "sale", 1, shop_id=shop_a.id)

    def test_zero_amount_rejected(self, shop_a):
        with pytest.raises(ValidationError):
            payment_service.record_payment("cash", 0, "sale", 1, shop_id=shop_a.id)


class TestDeposits:
    def test_mark_deposited(self, manager_a, shop_a):
        payment = _payment(shop_a, "cash", amount=2500)

        banked = payment_service.mark_deposited(payment.id, manager_a, bank="Equity", deposit_reference="DEP-1")

        assert banked.deposited is True
        assert banked.deposit_date is not None
        assert banked.bank == "Equity"
        assert banked.deposit_reference == "DEP-1"
        assert payment_service.pending_cash_deposits(shop_a.id) == []

    def test_deposit_twice_is_noop(self, manager_a, shop_a):
        payment = _payment(shop_a, "cash")
        first = payment_service.mark_deposited(payment.id, manager_a, deposit_reference="DEP-1")
        again = payment_service.mark_deposited(payment.id, manager_a, deposit_reference="DEP-2")
        assert again.deposit_reference == "DEP-1"
        assert again.deposit_date == first.deposit_date

    def test_only_cash_is_deposited(self, manager_a, shop_a):
        payment = _payment(shop_a, "mpesa", reference="QAZ123")
        with pytest.raises(InvalidStateTransition):
            payment_service.mark_deposited(payment.id, manager_a)

    def test_other_shop_manager_cannot_settle(self, make_staff, shop_a, shop_b):
        payment = _payment(shop_a, "cash")
        with pytest.raises(Unauthorized):
            payment_service.mark_deposited(payment.id, make_staff(shop_b, role="manager"))

    def test_technician_cannot_settle(self, tech_a, shop_a):
        payment = _payment(shop_a, "cash")
        with pytest.raises(Unauthorized):
            payment_service.mark_deposited(payment.id, tech_a)


class TestDailyTotals:
    def test_totals_by_type(self, shop_a, shop_b):
        _payment(shop_a, "cash", amount=1000)
        _payment(shop_a, "cash", amount=500)
        _payment(shop_a, "mpesa", amount=2000, reference="M1")
        _payment(shop_b, "bank_deposit", amount=4000, bank="KCB")

        totals = payment_service.daily_totals(shop_id=shop_a.id)
        assert totals["cash"] == 1500
        assert totals["mpesa"] == 2000
        assert totals["bank_deposit"] == 0
        assert totals["total"] == 3500

        everything = payment_service.daily_totals()
        assert everything["total"] == 7500
