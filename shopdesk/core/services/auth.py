from shopdesk.core.models import ADMINS
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.exceptions import ValidationError
from shopdesk.utils.logging import get_logger
from shopdesk.utils.security import ADMIN_ROLE, hash_password, verify_password

logger = get_logger("auth")


def _public(doc: dict) -> dict:
    return {"id": doc["id"], "username": doc["username"], "roles": list(doc.get("roles") or [])}


class AuthService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def _find(self, username: str) -> dict | None:
        rows = self.store.query(ADMINS, where=[("username", "==", username)], limit=1)
        return rows[0] if rows else None

    def ensure_default_admin(self, username: str, password: str):
        # first start only; an existing account keeps its password
        if self._find(username):
            return
        self.register_admin(username, password, [ADMIN_ROLE])
        logger.info(f"default admin '{username}' created")

    def register_admin(self, username: str, password: str, roles: list[str] | None = None) -> str:
        if not username or not password:
            raise ValidationError("username and password are required")
        if self._find(username):
            raise ValidationError(f"admin '{username}' already exists")
        return self.store.add(ADMINS, {
            "username": username,
            "password_hash": hash_password(password),
            "roles": roles or [],
            "is_active": True,
        })

    def authenticate(self, username: str, password: str) -> dict | None:
        doc = self._find(username)
        if not doc or not doc.get("is_active", True):
            return None
        if not verify_password(password, doc.get("password_hash", "")):
            return None
        return _public(doc)

    def is_admin(self, admin_id: str) -> bool:
        doc = self.store.get(ADMINS, admin_id)
        return bool(doc and doc.get("is_active", True) and ADMIN_ROLE in (doc.get("roles") or []))
