# Overview: Pytest coverage for concurrent writers against a file-backed database.

"""
Concurrency tests.

Two threads race on the same rows through separate sessions:
- two admins approving the same allocation move the stock once
- two allocations that each fit the pool alone: only one is approved
- two sales for the last unit: exactly one succeeds
- two repair intakes for the last unit: exactly one ticket is opened
- two payment approvals apply the pending amount once
"""

import threading

import pytest

from shopledger import create_app
from shopledger.errors import AllocationExceedsPool, InsufficientStock
from shopledger.extensions import db
from shopledger.models import Payment, Repair, Shop, StockMovement, Supplier
from shopledger.services import (
    allocation_service,
    purchase_service,
    repair_service,
    sales_service,
    stock_ledger,
)
from shopledger.services.policy import Principal


ADMIN = Principal(user_id=1, name="Admin", roles=frozenset({"admin"}))
OTHER_ADMIN = Principal(user_id=2, name="Second Admin", roles=frozenset({"admin"}))


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
        'RETRY_ATTEMPTS': 8,
        'RETRY_BACKOFF_BASE': 0.02,
        'LOG_LEVEL': 'WARNING',
    })
    with app.app_context():
        db.create_all()
        shop_a = Shop(name="Downtown", code="DT", is_active=True)
        shop_b = Shop(name="Westlands", code="WL", is_active=True)
        supplier = Supplier(name="Parts Hub", is_active=True)
        db.session.add_all([shop_a, shop_b, supplier])
        db.session.commit()
        app.config["SEED"] = {"shop_a": shop_a.id, "shop_b": shop_b.id, "supplier": supplier.id}

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _race(app, *calls):
    """Run each call in its own thread and app context; collect (result, error)."""
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def worker(idx, call):
        with app.app_context():
            try:
                barrier.wait()
                outcomes[idx] = (call(), None)
            except Exception as exc:
                outcomes[idx] = (None, exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return outcomes


def test_double_approval_moves_stock_once(file_app):
    seed = file_app.config["SEED"]
    with file_app.app_context():
        purchase_service.record_purchase(
            {"supplier_id": seed["supplier"], "lines": [{"name": "iPhone 12 Screen", "quantity": 10}]},
            ADMIN,
        )
        pool_id = stock_ledger.find_item("iPhone 12 Screen", None).id
        allocation_id = allocation_service.request_allocation(
            pool_id,
            [{"shop_id": seed["shop_a"], "quantity": 4}, {"shop_id": seed["shop_b"], "quantity": 3}],
            ADMIN,
        ).id

    outcomes = _race(
        file_app,
        lambda: allocation_service.approve_allocation(allocation_id, ADMIN).status,
        lambda: allocation_service.approve_allocation(allocation_id, OTHER_ADMIN).status,
    )

    assert [error for _, error in outcomes] == [None, None]
    assert [status for status, _ in outcomes] == ["approved", "approved"]

    with file_app.app_context():
        assert stock_ledger.get_stock(pool_id) == 3
        assert stock_ledger.get_stock_by_name("iPhone 12 Screen", seed["shop_a"]) == 4
        assert stock_ledger.get_stock_by_name("iPhone 12 Screen", seed["shop_b"]) == 3
        out_moves = (
            db.session.query(StockMovement)
            .filter_by(reason=stock_ledger.REASON_ALLOCATION_OUT, reference_id=allocation_id)
            .count()
        )
        assert out_moves == 1


def test_competing_allocations_cannot_overdraw_pool(file_app):
    seed = file_app.config["SEED"]
    with file_app.app_context():
        purchase_service.record_purchase(
            {"supplier_id": seed["supplier"], "lines": [{"name": "iPhone 12 Screen", "quantity": 10}]},
            ADMIN,
        )
        pool_id = stock_ledger.find_item("iPhone 12 Screen", None).id
        allocation_ids = [
            allocation_service.request_allocation(pool_id, [{"shop_id": shop_id, "quantity": 6}], ADMIN).id
            for shop_id in (seed["shop_a"], seed["shop_b"])
        ]

    outcomes = _race(
        file_app,
        lambda: allocation_service.approve_allocation(allocation_ids[0], ADMIN).status,
        lambda: allocation_service.approve_allocation(allocation_ids[1], OTHER_ADMIN).status,
    )

    approved = [idx for idx, (status, error) in enumerate(outcomes) if error is None]
    failed = [error for _, error in outcomes if error is not None]
    assert [outcomes[idx][0] for idx in approved] == ["approved"]
    assert len(failed) == 1
    assert isinstance(failed[0], AllocationExceedsPool)

    with file_app.app_context():
        assert stock_ledger.get_stock(pool_id) == 4
        assert stock_ledger.get_total_stock("iPhone 12 Screen") == 10
        winner = allocation_ids[approved[0]]
        loser = allocation_ids[1 - approved[0]]
        assert allocation_service.get_allocation(winner).status == "approved"
        assert allocation_service.get_allocation(loser).status == "pending"


def test_last_unit_sold_once(file_app):
    seed = file_app.config["SEED"]
    staff = [
        Principal(user_id=10 + n, shop_id=seed["shop_a"], roles=frozenset({"technician"}))
        for n in range(2)
    ]
    with file_app.app_context():
        purchase_service.record_purchase(
            {
                "supplier_id": seed["supplier"],
                "shop_id": seed["shop_a"],
                "lines": [{"name": "Charger", "quantity": 1, "price_cents": 800}],
            },
            ADMIN,
        )
        item_id = stock_ledger.find_item("Charger", seed["shop_a"]).id

    def sell(principal):
        return lambda: sales_service.record_sale({"lines": [{"item_id": item_id, "quantity": 1}]}, principal)[0].id

    outcomes = _race(file_app, sell(staff[0]), sell(staff[1]))

    succeeded = [result for result, error in outcomes if error is None]
    failed = [error for _, error in outcomes if error is not None]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], InsufficientStock)

    with file_app.app_context():
        assert stock_ledger.get_stock(item_id) == 0
        assert db.session.query(Payment).filter_by(related_to="sale").count() == 1


def test_double_payment_approval_applies_once(file_app):
    seed = file_app.config["SEED"]
    tech = Principal(user_id=20, shop_id=seed["shop_a"], roles=frozenset({"technician"}))
    with file_app.app_context():
        repair = repair_service.create_repair(
            {"customer_name": "Jane", "phone_number": "0712", "total_agreed_amount_cents": 5000},
            tech,
        )
        repair_id = repair.id
        repair_service.submit_payment_for_approval(repair_id, "mpesa", "MP1", tech)

    outcomes = _race(
        file_app,
        lambda: repair_service.approve_payment(repair_id, ADMIN).amount_paid_cents,
        lambda: repair_service.approve_payment(repair_id, OTHER_ADMIN).amount_paid_cents,
    )

    assert [error for _, error in outcomes] == [None, None]
    assert [paid for paid, _ in outcomes] == [5000, 5000]

    with file_app.app_context():
        repair = repair_service.get_repair(repair_id)
        assert repair.amount_paid_cents == 5000
        assert repair.balance_cents == 0
        assert db.session.query(Payment).filter_by(related_to="repair", related_id=repair_id).count() == 1


def test_last_unit_fitted_to_one_repair(file_app):
    seed = file_app.config["SEED"]
    staff = [
        Principal(user_id=30 + n, shop_id=seed["shop_a"], roles=frozenset({"technician"}))
        for n in range(2)
    ]
    with file_app.app_context():
        purchase_service.record_purchase(
            {
                "supplier_id": seed["supplier"],
                "shop_id": seed["shop_a"],
                "lines": [{"name": "iPhone 12 Screen", "quantity": 1, "price_cents": 9000}],
            },
            ADMIN,
        )
        item_id = stock_ledger.find_item("iPhone 12 Screen", seed["shop_a"]).id

    def intake(principal, customer):
        return lambda: repair_service.create_repair(
            {
                "customer_name": customer,
                "phone_number": "0712",
                "parts": [{"item_id": item_id, "quantity": 1}],
            },
            principal,
        ).id

    outcomes = _race(file_app, intake(staff[0], "Jane"), intake(staff[1], "Brian"))

    succeeded = [result for result, error in outcomes if error is None]
    failed = [error for _, error in outcomes if error is not None]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], InsufficientStock)

    with file_app.app_context():
        assert stock_ledger.get_stock(item_id) == 0
        assert db.session.query(Repair).count() == 1
        assert db.session.query(Repair).one().id == succeeded[0]
