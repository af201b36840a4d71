import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expense_tracker.config import get_settings
from expense_tracker.db import get_db
from expense_tracker.errors import AuthFailure, DuplicateKey, PermissionDenied
from expense_tracker.logs import get_logger
from expense_tracker.models import AuthToken, User

# pbkdf2_sha256 is pure Python, no bcrypt backend needed
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_COOKIE = "xt_session"
BEARER_PREFIX = "Bearer "

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # unrecognised or corrupt hash
        return False


def _utcnow() -> datetime:
    # naive UTC, matching the expires_at column
    return datetime.now(timezone.utc).replace(tzinfo=None)


def register_user(db: Session, name: str, email: str, password: str) -> User:
    email = email.lower()
    if db.execute(select(User.id).where(User.email == email)).first():
        raise DuplicateKey("User already exists with this email")

    user = User(name=name, email=email, password_hash=hash_password(password), role="user")
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey("User already exists with this email")
    db.refresh(user)
    logger.info("user_registered", user_id=user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = db.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()
    # same message for unknown email and wrong password
    if user is None or not verify_password(password, user.password_hash):
        logger.info("login_rejected")
        raise AuthFailure("Invalid credentials")
    return user


def issue_token(db: Session, user: User) -> str:
    ttl = timedelta(days=get_settings().token_ttl_days)
    token = secrets.token_urlsafe(32)
    db.add(AuthToken(token=token, user_id=user.id, expires_at=_utcnow() + ttl))
    db.commit()
    logger.info("token_issued", user_id=user.id)
    return token


def revoke_token(db: Session, token: str) -> None:
    row = db.get(AuthToken, token)
    if row is not None:
        db.delete(row)
        db.commit()
        logger.info("token_revoked", user_id=row.user_id)


def update_profile(db: Session, user: User, name: Optional[str] = None, email: Optional[str] = None) -> User:
    if name:
        user.name = name
    if email:
        email = email.lower()
        clash = db.execute(
            select(User.id).where(User.email == email, User.id != user.id)
        ).first()
        if clash:
            raise DuplicateKey("Email is already in use")
        user.email = email
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey("Email is already in use")
    db.refresh(user)
    return user


def get_request_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX):].strip()
        return token or None
    return request.cookies.get(SESSION_COOKIE) or None


def resolve_user(db: Session, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    row = db.get(AuthToken, token)
    if row is None:
        return None
    if row.expires_at <= _utcnow():
        db.delete(row)
        db.commit()
        return None
    return row.user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = get_request_token(request)
    if token is None:
        raise AuthFailure("Access denied. No token provided.")
    user = resolve_user(db, token)
    if user is None:
        raise AuthFailure("Invalid token.")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise PermissionDenied("Access denied. Insufficient permissions.")
    return user
