# utils/security.py
# Password hashing (bcrypt) and admin session tokens (python-jose, HS256)
import bcrypt
import time, uuid
from jose import jwt, JWTError

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def issue_session_token(admin: dict, secret: str, minutes: int) -> str:
    """Signed token carrying the admin claim, valid for `minutes`."""
    now = int(time.time())
    claims = {
        "sub": admin["id"],
        "username": admin["username"],
        "roles": list(admin.get("roles") or []),
        "admin": ADMIN_ROLE in (admin.get("roles") or []),
        "iat": now,
        "exp": now + int(minutes) * 60,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_session_token(token: str, secret: str) -> dict | None:
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None


def extract_token(cookie_value: str | None, authorization: str | None) -> str | None:
    """Session cookie wins; otherwise `Authorization: Bearer <token>`."""
    if cookie_value:
        return cookie_value
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return None
