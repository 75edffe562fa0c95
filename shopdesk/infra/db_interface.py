# infra/db_interface.py
# sqlite-backed document store: collections of JSON documents keyed by id
from __future__ import annotations
from pathlib import Path
import json
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Callable, Iterable

from shopdesk.core.services.ids import alloc_document_id
from shopdesk.utils.dates import to_datetime, utcnow
from shopdesk.utils.exceptions import NotFoundError, ShopError, TransactionError
from shopdesk.utils.logging import setup_logger

logger = setup_logger()

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# (field, op, value); ops: == != < <= > >= in
Where = Iterable[tuple[str, str, Any]]


class DB:
    def __init__(self, db_path: str, busy_timeout: float = 5.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_pragmas()

    def _ensure_pragmas(self):
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("PRAGMA foreign_keys = ON;")
            cur.execute("PRAGMA journal_mode = WAL;")

    @contextmanager
    def connect(self):
        # autocommit; transaction() issues BEGIN itself
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """
        BEGIN IMMEDIATE takes the write lock up front: reads made inside the
        block see committed state and concurrent writers queue behind us.
        """
        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                if isinstance(e, ShopError):
                    # domain rejection (stock, validation, not found)
                    logger.debug(f"DB transaction rollback: {e!r}")
                else:
                    logger.error(f"DB transaction rollback: {e!r}")
                raise


def run_migrations(db: DB):
    # every script is idempotent (IF NOT EXISTS), so they all run on each start
    with db.connect() as conn:
        for sql_path in sorted(MIGRATIONS_DIR.glob("*.sql")):
            conn.executescript(sql_path.read_text(encoding="utf-8"))


# -- JSON encoding --
def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def _dumps(data: dict) -> str:
    body = {k: v for k, v in data.items() if k != "id"}
    return json.dumps(body, default=_json_default, ensure_ascii=False)


def _row_to_doc(row) -> dict:
    doc = json.loads(row["data"])
    doc["id"] = row["id"]
    return doc


# -- query evaluation --
def _field(doc: dict, path: str):
    cur: Any = doc
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur


def _compare(actual, op: str, expected) -> bool:
    if op == "in":
        return actual in expected
    if isinstance(expected, (datetime, date)):
        actual, expected = to_datetime(actual), to_datetime(expected)
    if op == "==":
        return actual == expected
    if op == "!=":
        return actual != expected
    if actual is None:
        return False
    try:
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
    except TypeError:
        return False
    raise ValueError(f"unsupported operator: {op}")


def _sort_key(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, float(value), "")
    dt = to_datetime(value) if isinstance(value, (str, dict, datetime, date)) else None
    if dt is not None:
        return (0, dt.timestamp(), "")
    return (2, 0.0, str(value))


def _apply_query(docs: list[dict], where: Where | None, order_by: str | None,
                 descending: bool, limit: int | None) -> list[dict]:
    for field, op, expected in (where or ()):
        docs = [d for d in docs if _compare(_field(d, field), op, expected)]
    if order_by:
        present = [d for d in docs if _field(d, order_by) is not None]
        missing = [d for d in docs if _field(d, order_by) is None]
        present.sort(key=lambda d: _sort_key(_field(d, order_by)), reverse=descending)
        docs = present + missing
    if limit is not None:
        docs = docs[: int(limit)]
    return docs


class _Ops:
    """Document operations over one sqlite connection."""

    def __init__(self, conn):
        self.conn = conn

    def get(self, collection: str, doc_id: str) -> dict | None:
        row = self.conn.execute(
            "SELECT id, data FROM documents WHERE collection=? AND id=? LIMIT 1",
            (collection, doc_id),
        ).fetchone()
        return _row_to_doc(row) if row else None

    def all(self, collection: str) -> list[dict]:
        rows = self.conn.execute(
            "SELECT id, data FROM documents WHERE collection=? ORDER BY created_at, id",
            (collection,),
        ).fetchall()
        return [_row_to_doc(r) for r in rows]

    def query(self, collection: str, where: Where | None = None, order_by: str | None = None,
              descending: bool = False, limit: int | None = None) -> list[dict]:
        return _apply_query(self.all(collection), where, order_by, descending, limit)

    def add(self, collection: str, data: dict) -> str:
        doc_id = alloc_document_id(self.conn, collection)
        self.set(collection, doc_id, data)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        now = utcnow().isoformat()
        self.conn.execute(
            """
            INSERT INTO documents(collection, id, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(collection, id) DO UPDATE SET data=excluded.data, updated_at=excluded.updated_at
            """,
            (collection, doc_id, _dumps(data), now, now),
        )

    def update(self, collection: str, doc_id: str, fields: dict) -> dict:
        doc = self.get(collection, doc_id)
        if doc is None:
            raise NotFoundError(f"{collection}/{doc_id} not found")
        doc.update(fields)
        self.conn.execute(
            "UPDATE documents SET data=?, updated_at=? WHERE collection=? AND id=?",
            (_dumps(doc), utcnow().isoformat(), collection, doc_id),
        )
        return doc

    def delete(self, collection: str, doc_id: str) -> bool:
        cur = self.conn.execute(
            "DELETE FROM documents WHERE collection=? AND id=?", (collection, doc_id)
        )
        return cur.rowcount > 0


class Transaction(_Ops):
    """Handle passed to run_transaction callbacks; nothing is visible until commit."""


class DocumentStore:
    def __init__(self, db: DB, transaction_retries: int = 5):
        self.db = db
        self.transaction_retries = transaction_retries

    # reads open a short-lived connection each, so they are safe to fan out across threads
    def get(self, collection: str, doc_id: str) -> dict | None:
        with self.db.connect() as conn:
            return _Ops(conn).get(collection, doc_id)

    def all(self, collection: str) -> list[dict]:
        with self.db.connect() as conn:
            return _Ops(conn).all(collection)

    def query(self, collection: str, where: Where | None = None, order_by: str | None = None,
              descending: bool = False, limit: int | None = None) -> list[dict]:
        with self.db.connect() as conn:
            return _Ops(conn).query(collection, where, order_by, descending, limit)

    # single-document writes, each in its own transaction
    def add(self, collection: str, data: dict) -> str:
        return self.run_transaction(lambda txn: txn.add(collection, data))

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        self.run_transaction(lambda txn: txn.set(collection, doc_id, data))

    def update(self, collection: str, doc_id: str, fields: dict) -> dict:
        return self.run_transaction(lambda txn: txn.update(collection, doc_id, fields))

    def delete(self, collection: str, doc_id: str) -> bool:
        return self.run_transaction(lambda txn: txn.delete(collection, doc_id))

    def run_transaction(self, fn: Callable[[Transaction], Any]) -> Any:
        """
        Run fn(txn) atomically. Lock conflicts re-run fn from scratch so it
        re-reads current state; domain errors raised by fn roll back and propagate.
        """
        attempts = max(1, int(self.transaction_retries) + 1)
        for attempt in range(1, attempts + 1):
            try:
                with self.db.transaction() as conn:
                    return fn(Transaction(conn))
            except sqlite3.OperationalError as e:
                msg = str(e).lower()
                if ("locked" in msg or "busy" in msg) and attempt < attempts:
                    logger.warning(f"transaction conflict, retry {attempt}/{attempts - 1}: {e}")
                    time.sleep(0.05 * attempt)
                    continue
                raise TransactionError("Internal server error") from e
            except sqlite3.Error as e:
                raise TransactionError("Internal server error") from e
