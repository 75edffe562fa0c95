import logging

import pytest

from shopdesk.utils.dates import to_datetime, to_iso
from shopdesk.utils.exceptions import NotFoundError, TransactionError
from tests.helpers import utc


def test_add_get_update_delete(store):
    doc_id = store.add("things", {"name": "a", "tags": ["x"], "nested": {"k": 1}})
    assert len(doc_id) == 20

    doc = store.get("things", doc_id)
    assert doc == {"id": doc_id, "name": "a", "tags": ["x"], "nested": {"k": 1}}

    updated = store.update("things", doc_id, {"name": "b"})
    assert updated["name"] == "b"
    assert store.get("things", doc_id)["tags"] == ["x"]

    assert store.delete("things", doc_id) is True
    assert store.delete("things", doc_id) is False
    assert store.get("things", doc_id) is None


def test_update_missing_document(store):
    with pytest.raises(NotFoundError):
        store.update("things", "nope", {"a": 1})


def test_collections_are_isolated(store):
    store.set("a", "same-id", {"v": 1})
    store.set("b", "same-id", {"v": 2})
    assert store.get("a", "same-id")["v"] == 1
    assert store.get("b", "same-id")["v"] == 2


def test_query_where_order_limit(store):
    store.add("orders", {"status": "New", "total": 10, "createdAt": utc(2026, 3, 1)})
    store.add("orders", {"status": "Shipped", "total": 30, "createdAt": utc(2026, 3, 3)})
    store.add("orders", {"status": "New", "total": 20, "createdAt": utc(2026, 3, 2)})
    store.add("orders", {"status": "Pending", "total": 5})

    new = store.query("orders", where=[("status", "==", "New")], order_by="total")
    assert [d["total"] for d in new] == [10, 20]

    recent = store.query("orders", where=[("createdAt", ">=", utc(2026, 3, 2))],
                         order_by="createdAt", descending=True)
    assert [d["total"] for d in recent] == [30, 20]

    # documents without the sort field go last
    by_date = store.query("orders", order_by="createdAt")
    assert [d["total"] for d in by_date] == [10, 20, 30, 5]

    assert len(store.query("orders", where=[("status", "in", ("New", "Pending"))])) == 3
    assert len(store.query("orders", order_by="total", limit=2)) == 2


def test_transaction_rolls_back_on_error(store):
    doc_id = store.add("things", {"n": 1})

    def boom(txn):
        txn.update("things", doc_id, {"n": 2})
        txn.add("things", {"n": 3})
        raise NotFoundError("nope")

    with pytest.raises(NotFoundError):
        store.run_transaction(boom)

    assert store.get("things", doc_id)["n"] == 1
    assert len(store.all("things")) == 1


def test_sqlite_failure_becomes_transaction_error(store):
    def bad_sql(txn):
        txn.conn.execute("SELECT * FROM no_such_table")

    with pytest.raises(TransactionError) as exc:
        store.run_transaction(bad_sql)
    assert exc.value.status_code == 500


def test_domain_rollback_logged_below_error(store, caplog):
    caplog.set_level(logging.DEBUG, logger="shopdesk")

    def missing(txn):
        raise NotFoundError("Product not found")

    with pytest.raises(NotFoundError):
        store.run_transaction(missing)

    rollbacks = [r for r in caplog.records if "rollback" in r.getMessage()]
    assert [r.levelno for r in rollbacks] == [logging.DEBUG]
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


def test_sqlite_rollback_logged_as_error(store, caplog):
    caplog.set_level(logging.DEBUG, logger="shopdesk")

    with pytest.raises(TransactionError):
        store.run_transaction(lambda txn: txn.conn.execute("SELECT * FROM no_such_table"))

    assert [r.levelno for r in caplog.records if "rollback" in r.getMessage()] == [logging.ERROR]


@pytest.mark.parametrize("value", [
    "2026-03-15T12:00:00Z",
    "2026-03-15T12:00:00+00:00",
    "2026-03-15T13:00:00+01:00",
    1773576000,
    1773576000000,
    {"_seconds": 1773576000, "_nanoseconds": 0},
])
def test_to_datetime_normalizes_to_utc(value):
    assert to_datetime(value) == utc(2026, 3, 15, 12, 0)


def test_to_datetime_rejects_garbage():
    assert to_datetime("not a date") is None
    assert to_datetime(None) is None
    assert to_datetime(True) is None
    assert to_iso("n/a") == "n/a"
