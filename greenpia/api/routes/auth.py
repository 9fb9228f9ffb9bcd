"""
Auth and user API routes

POST /api/auth/login - Password login, sets the session cookie
POST /api/auth/logout - Clear the session cookie
GET /api/auth/me - Current user (null when anonymous)
GET /api/users - List users (admin)
POST /api/users - Create a user (admin)
PATCH /api/users/{id}/role - Change a user's role (admin)
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from greenpia.api.auth import (
    clear_session_cookie, get_optional_user, hash_password, require_admin,
    set_session_cookie, verify_password
)
from greenpia.api.schemas import LoginRequest, SuccessResponse, UserCreate, UserInfo, UserRoleUpdate
from greenpia.database import ChangeRecorder, User, get_db
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/auth/login", response_model=UserInfo)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_db),
):
    """Verify e-mail and password, then issue the session cookie."""
    email = payload.email.strip().lower()
    user = session.query(User).filter(User.email == email).first()

    password_ok = verify_password(payload.password, user.password_hash if user else None)
    if user is None or not password_ok:
        logger.warning(f"Failed login for {email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.last_signed_in = datetime.utcnow()
    session.flush()

    set_session_cookie(response, request, user.id)
    logger.info(f"User {user.id} logged in")
    return UserInfo.model_validate(user)


@router.post("/auth/logout", response_model=SuccessResponse)
def logout(request: Request, response: Response):
    clear_session_cookie(response, request)
    return SuccessResponse()


@router.get("/auth/me", response_model=Optional[UserInfo])
def me(user: Optional[User] = Depends(get_optional_user)):
    """Current user, or null for anonymous visitors."""
    if user is None:
        return None
    return UserInfo.model_validate(user)


@router.get("/users", response_model=List[UserInfo])
def list_users(
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    users = session.query(User).order_by(User.id).all()
    return [UserInfo.model_validate(u) for u in users]


@router.post("/users", response_model=UserInfo, status_code=201)
def create_user(
    payload: UserCreate,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    email = payload.email.strip().lower()
    if session.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail=f"User {email} already exists")

    user = User(
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        login_method="password",
        household_id=payload.household_id,
        role=payload.role,
    )
    session.add(user)
    session.flush()

    ChangeRecorder.record(
        session, f"ユーザー {payload.name} を登録", "users", user.id,
        author_id=admin.id, author_role=admin.role
    )
    logger.info(f"User {user.id} created by admin {admin.id} (role={user.role})")
    return UserInfo.model_validate(user)


@router.patch("/users/{user_id}/role", response_model=UserInfo)
def update_user_role(
    user_id: int,
    payload: UserRoleUpdate,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")

    user.role = payload.role
    session.flush()

    ChangeRecorder.record(
        session, f"ユーザー (ID: {user_id}) の権限を「{payload.role}」に変更", "users", user_id,
        author_id=admin.id, author_role=admin.role
    )
    return UserInfo.model_validate(user)
