"""Accounts, password hashing, JWT tokens and server-side login sessions."""
import logging
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session as DbSession

from api.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ADMIN_EMAILS,
    ALGORITHM,
    SECRET_KEY,
    SESSION_EXTEND_MINUTES,
)
from api.models.db.user import Session, User, UserRole

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# -- users ----------------------------------------------------------------


def get_user_by_id(db: DbSession, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_login(db: DbSession, login: str) -> User | None:
    """Find a user by username, falling back to email."""
    users = db.execute(
        select(User).where(or_(User.username == login, User.email == login))
    ).scalars().all()
    # a username match wins over someone else's email
    for user in users:
        if user.username == login:
            return user
    return users[0] if users else None


def find_conflict(db: DbSession, username: str, email: str) -> str | None:
    """Name the field already taken by another account, if any."""
    if db.execute(select(User.id).where(User.username == username)).first():
        return "Username"
    if db.execute(select(User.id).where(User.email == email)).first():
        return "Email"
    return None


def role_for_email(email: str) -> UserRole:
    """Accounts listed in ADMIN_EMAILS register as administrators."""
    if email.strip().lower() in ADMIN_EMAILS:
        return UserRole.ADMIN
    return UserRole.USER


def create_user(
    db: DbSession,
    username: str,
    email: str,
    password: str,
    display_name: str | None = None,
    role: UserRole | None = None,
) -> User:
    user = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        display_name=display_name or None,
        role=(role or role_for_email(email)).value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.username, user.role)
    return user


def authenticate_user(db: DbSession, login: str, password: str) -> User | None:
    """Return the user when the password matches, otherwise None."""
    user = get_user_by_login(db, login)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


# -- tokens and login sessions --------------------------------------------


def create_access_token(user_id: int, jti: str | None = None) -> tuple[str, str]:
    """Create a JWT access token.

    Returns:
        Tuple of (token, jti)
    """
    jti = jti or str(uuid.uuid4())
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(user_id), "exp": expire, "jti": jti}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM), jti


def verify_token(token: str) -> dict | None:
    """Decoded token claims, or None if the token is invalid or expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def issue_token(db: DbSession, user_id: int) -> str:
    """Create a token together with the login session that backs it."""
    token, jti = create_access_token(user_id)
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    db.add(Session(user_id=user_id, token_jti=jti, expires_at=expires_at))
    db.commit()
    return token


def get_active_session(db: DbSession, token_jti: str) -> Session | None:
    now = datetime.now(timezone.utc)
    return db.execute(
        select(Session).where(
            Session.token_jti == token_jti,
            Session.is_active.is_(True),
            Session.expires_at > now,
        )
    ).scalar_one_or_none()


def extend_session(db: DbSession, session: Session) -> None:
    """Slide the session expiry forward on activity."""
    now = datetime.now(timezone.utc)
    session.last_activity = now
    session.expires_at = now + timedelta(minutes=SESSION_EXTEND_MINUTES)
    db.commit()


def invalidate_session(db: DbSession, token_jti: str) -> None:
    session = db.execute(
        select(Session).where(Session.token_jti == token_jti)
    ).scalar_one_or_none()
    if session is not None:
        session.is_active = False
        db.commit()


def resolve_token(db: DbSession, token: str) -> User | None:
    """
    Map a bearer token to its active user.

    The token must verify, its login session must still be active (and is
    extended), and the user must exist and be active.
    """
    claims = verify_token(token)
    if claims is None or claims.get("sub") is None:
        return None

    jti = claims.get("jti")
    if jti:
        session = get_active_session(db, jti)
        if session is None:
            return None
        extend_session(db, session)

    user = get_user_by_id(db, int(claims["sub"]))
    if user is None or not user.is_active:
        return None
    return user


def cleanup_expired_sessions(db: DbSession) -> int:
    """Remove expired login sessions."""
    now = datetime.now(timezone.utc)
    result = db.execute(delete(Session).where(Session.expires_at < now))
    db.commit()
    return result.rowcount or 0
