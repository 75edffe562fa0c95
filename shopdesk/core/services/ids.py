# core/services/ids.py
from __future__ import annotations
import secrets
import string

# same alphabet/length as auto-generated ids in hosted document stores
_ALPHABET = string.ascii_letters + string.digits
DOC_ID_LENGTH = 20


def new_document_id() -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(DOC_ID_LENGTH))


def alloc_document_id(conn, collection: str) -> str:
    """
    Pick an id not yet used in `collection`. Must run inside the caller's
    transaction so the check and the insert see the same state.
    """
    while True:
        doc_id = new_document_id()
        exists = conn.execute(
            "SELECT 1 FROM documents WHERE collection=? AND id=? LIMIT 1",
            (collection, doc_id),
        ).fetchone()
        if not exists:
            return doc_id
