"""
Session authentication for the Greenpia API

- Passwords stored as bcrypt hashes
- Login issues a signed, timestamped session cookie (itsdangerous)
- Every authenticated request runs the leader role synchronization
- Role guards: member (any login), editor, admin
"""

from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request, Response, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from greenpia.config import load_config
from greenpia.database import User, get_db
from greenpia.rotation import sync_leader_role
from greenpia.utils import get_logger

logger = get_logger(__name__)

PASSWORD_ROUNDS = 12
BCRYPT_MAX_BYTES = 72
_DUMMY_HASH = bcrypt.hashpw(b"dummy", bcrypt.gensalt(rounds=PASSWORD_ROUNDS))
SESSION_SALT = "greenpia-session"

EDITOR_ROLES = ("editor", "admin")


# =============================================================================
# PASSWORDS
# =============================================================================

def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; newer releases reject longer input
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = PASSWORD_ROUNDS) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check `password` against a stored bcrypt hash (False for missing or malformed hashes)."""
    if not password_hash:
        # Same bcrypt cost as a real check
        bcrypt.checkpw(b"dummy", _DUMMY_HASH)
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Rejected malformed password hash")
        return False


# =============================================================================
# SESSION COOKIE
# =============================================================================

def _serializer() -> URLSafeTimedSerializer:
    config = load_config()
    return URLSafeTimedSerializer(config.get_required('auth.secret_key'), salt=SESSION_SALT)


def _cookie_name() -> str:
    return load_config().get('auth.cookie_name', 'greenpia_session')


def _max_age_seconds() -> int:
    return int(load_config().get('auth.session_max_age_days', 365)) * 24 * 3600


def issue_session_token(user_id: int) -> str:
    return _serializer().dumps({"user_id": user_id})


def request_is_https(request: Request) -> bool:
    forwarded_proto = request.headers.get("x-forwarded-proto", "")
    if forwarded_proto:
        return forwarded_proto.split(",")[0].strip().lower() == "https"
    return request.url.scheme == "https"


def set_session_cookie(response: Response, request: Request, user_id: int) -> None:
    response.set_cookie(
        key=_cookie_name(),
        value=issue_session_token(user_id),
        max_age=_max_age_seconds(),
        httponly=True,
        samesite="lax",
        secure=request_is_https(request),
        path="/",
    )


def clear_session_cookie(response: Response, request: Request) -> None:
    response.delete_cookie(
        key=_cookie_name(),
        httponly=True,
        samesite="lax",
        secure=request_is_https(request),
        path="/",
    )


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_optional_user(request: Request, session: Session = Depends(get_db)) -> Optional[User]:
    """
    Resolve the session cookie to a user (None for anonymous visitors).

    Runs the leader role synchronization for the resolved user.
    """
    token = request.cookies.get(_cookie_name())
    if not token:
        return None

    try:
        payload = _serializer().loads(token, max_age=_max_age_seconds())
    except SignatureExpired:
        logger.debug("Expired session cookie")
        return None
    except BadSignature:
        logger.warning("Rejected session cookie with bad signature")
        return None

    user = session.get(User, payload.get("user_id"))
    if user is None:
        return None

    start_month = load_config().get('rotation.fiscal_year_start_month', 4)
    sync_leader_role(session, user, start_month=start_month)
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please login (10001)")
    return user


def require_editor(user: User = Depends(get_current_user)) -> User:
    if user.role not in EDITOR_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Editor access required")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have required permission (10002)"
        )
    return user
