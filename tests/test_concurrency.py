"""
Overlapping requests against one SQLite file.

Each worker runs in its own thread with its own connection and transaction.
A barrier holds every worker right after its reads so all of them decide on
the same snapshot before any of them writes.
"""
import threading

from shopapi.database import db
from shopapi.models import Order, Product, RefreshToken, User
from shopapi.services import auth, orders
from shopapi.utils.exceptions import AlreadyTerminal, ConflictError, InvalidOrExpiredToken


def _hold_after(monkeypatch, owner, name, parties):
    barrier = threading.Barrier(parties, timeout=10)
    original = getattr(owner, name)

    def held(*args, **kwargs):
        result = original(*args, **kwargs)
        barrier.wait()
        return result

    monkeypatch.setattr(owner, name, held)


def _race(app, work, parties):
    results, errors = [], []
    lock = threading.Lock()

    def run():
        with app.app_context():
            try:
                with db.transaction() as tx:
                    result = work(tx)
            except Exception as e:
                with lock:
                    errors.append(e)
            else:
                with lock:
                    results.append(result)

    threads = [threading.Thread(target=run) for _ in range(parties)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results, errors


def _stock(product_id):
    with db.transaction() as tx:
        return Product.find(tx, product_id).stock


def test_refresh_token_rotates_once(app, monkeypatch, registered):
    _hold_after(monkeypatch, User, "find", 2)

    results, errors = _race(app, lambda tx: auth.refresh(tx, registered.refresh_token), 2)

    assert len(results) == 1
    assert len(errors) == 1 and isinstance(errors[0], InvalidOrExpiredToken)
    with db.transaction() as tx:
        active = RefreshToken.count(tx, "user_id = ? AND active = ?", (registered.user.id, True))
    assert active == 1


def test_overlapping_cancels_restore_stock_once(app, monkeypatch, make_customer, make_product):
    customer = make_customer()
    product = make_product(stock=10)
    with db.transaction() as tx:
        order = orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 4}])
    assert _stock(product.id) == 6

    _hold_after(monkeypatch, orders, "_load", 2)
    results, errors = _race(app, lambda tx: orders.cancel_order(tx, order.id), 2)

    assert len(results) == 1
    assert len(errors) == 1 and isinstance(errors[0], AlreadyTerminal)
    assert _stock(product.id) == 10


def test_overlapping_status_change_and_cancel(app, monkeypatch, make_customer, make_product):
    customer = make_customer()
    product = make_product(stock=10)
    with db.transaction() as tx:
        order = orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 3}])

    _hold_after(monkeypatch, orders, "_load", 2)
    statuses = iter(["Delivered", "Cancelled"])
    lock = threading.Lock()

    def work(tx):
        with lock:
            status = next(statuses)
        return orders.update_order_status(tx, order.id, status)

    results, errors = _race(app, work, 2)

    assert len(results) == 1
    assert len(errors) == 1 and isinstance(errors[0], AlreadyTerminal)
    with db.transaction() as tx:
        final = Order.find(tx, order.id).status
    expected_stock = 10 if final == "Cancelled" else 7
    assert _stock(product.id) == expected_stock


def test_simultaneous_orders_get_distinct_numbers(app, monkeypatch, make_customer, make_product):
    customer = make_customer()
    product = make_product(stock=10)
    _hold_after(monkeypatch, orders, "generate_order_number", 6)

    results, errors = _race(
        app,
        lambda tx: orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 1}]).order_number,
        6,
    )

    assert errors == []
    assert len(set(results)) == 6
    assert _stock(product.id) == 4


def test_simultaneous_orders_with_same_number_conflict(app, monkeypatch, make_customer, make_product):
    customer = make_customer()
    product = make_product(stock=10)
    monkeypatch.setattr(orders.secrets, "token_hex", lambda n: "abcd1234")
    _hold_after(monkeypatch, orders, "generate_order_number", 2)

    results, errors = _race(
        app,
        lambda tx: orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 1}]).order_number,
        2,
    )

    assert len(results) == 1
    assert len(errors) == 1 and isinstance(errors[0], ConflictError)
    with db.transaction() as tx:
        assert Order.count(tx) == 1
    assert _stock(product.id) == 9


def test_stock_never_oversold(app, make_customer, make_product):
    customer = make_customer()
    product = make_product(stock=2)

    results, errors = _race(
        app,
        lambda tx: orders.create_order(tx, customer.id, [{"product_id": product.id, "quantity": 1}]),
        3,
    )

    assert len(results) == 2
    assert _stock(product.id) == 0
    assert all(isinstance(e, ConflictError) for e in errors)
