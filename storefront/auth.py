"""
Authorization gate, admin credential check and session handling.

Sessions are rows in the database referenced by a signed JWT
(``sub`` = user id, ``sid`` = session id), so signing out revokes a token
before it expires. Any resolved identity is treated as admin-capable, so
password sign-up is limited to the configured admin credential pair.
"""

from __future__ import annotations

import hmac
import logging
import time
from dataclasses import dataclass
from typing import Literal, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from storefront.changes import ChangeFeed
from storefront.config import Settings
from storefront.db import DbClient, UserRecord
from storefront.errors import AccessDenied, DuplicateUser, Unauthorized

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_DISPLAY_NAME = "Admin"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass
class SignInResult:
    token: str
    user_id: str


def require_identity(identity: Optional[str]) -> str:
    """Return the identity or raise ``Unauthorized`` when it is absent."""
    if not identity:
        raise Unauthorized()
    return identity


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def _matches(submitted: str, expected: Optional[str]) -> bool:
    if not expected:
        return False
    return hmac.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))


def _is_admin_pair(settings: Settings, email: str, password: str) -> bool:
    # Both halves are always compared; the caller never learns which one failed.
    email_ok = _matches(email, settings.admin_email)
    password_ok = _matches(password, settings.admin_password)
    return email_ok and password_ok


def admin_sign_in(
    db: DbClient,
    settings: Settings,
    changes: ChangeFeed,
    email: str,
    password: str,
) -> dict:
    """
    Check submitted credentials against the configured admin pair.

    On success, make sure a user row exists for the admin email. This does
    not create a session; the caller signs in through the password provider
    next with the same credentials.
    """
    if not _is_admin_pair(settings, email, password):
        logger.warning("Rejected admin credential check")
        raise AccessDenied()

    if not db.get_user_by_email(email):
        try:
            user = db.insert_user(
                email=email,
                name=ADMIN_DISPLAY_NAME,
                email_verification_time=time.time(),
            )
        except DuplicateUser:
            # Another check created the row between the lookup and the insert.
            logger.info("Admin user for %s already created", email)
        else:
            changes.bump("users")
            logger.info("Created admin user %s", user.id)
    return {"success": True}


def _issue_session(db: DbClient, settings: Settings, user_id: str) -> SignInResult:
    expires_at = time.time() + settings.session_ttl_seconds
    session = db.create_session(user_id, expires_at)
    claims = {"sub": user_id, "sid": session.session_id, "exp": int(expires_at)}
    token = jwt.encode(claims, settings.auth_secret, algorithm=ALGORITHM)
    return SignInResult(token=token, user_id=user_id)


def sign_in_password(
    db: DbClient,
    settings: Settings,
    changes: ChangeFeed,
    email: str,
    password: str,
    flow: Literal["signIn", "signUp"] = "signIn",
) -> SignInResult:
    """
    Password provider: ``signUp`` registers credentials, ``signIn`` checks them.

    Registration is only open to the configured admin credential pair; other
    accounts are provisioned with ``scripts/create_account.py``.
    """
    if flow == "signUp":
        if not _is_admin_pair(settings, email, password):
            logger.warning("Rejected sign-up for %s", email)
            raise AccessDenied("Sign-up is not available for this account")
        password_hash = hash_password(password)
        user = db.get_user_by_email(email)
        if not user:
            try:
                user = db.insert_user(
                    email=email, name=ADMIN_DISPLAY_NAME, password_hash=password_hash
                )
            except DuplicateUser:
                user = db.get_user_by_email(email)
            else:
                changes.bump("users")
                logger.info("Registered password account for user %s", user.id)
                return _issue_session(db, settings, user.id)
        if user.password_hash:
            raise AccessDenied("Account already exists")
        db.set_password_hash(user.id, password_hash)
        logger.info("Registered password account for user %s", user.id)
        return _issue_session(db, settings, user.id)

    user = db.get_user_by_email(email)
    if not user or not user.password_hash:
        raise AccessDenied("Invalid credentials")
    if not verify_password(password, user.password_hash):
        raise AccessDenied("Invalid credentials")
    return _issue_session(db, settings, user.id)


def sign_in_anonymous(
    db: DbClient, settings: Settings, changes: ChangeFeed
) -> SignInResult:
    if not settings.anonymous_sign_in_enabled:
        raise AccessDenied("Anonymous sign-in is disabled")
    user = db.insert_user(email=None, is_anonymous=True)
    changes.bump("users")
    return _issue_session(db, settings, user.id)


def sign_out(db: DbClient, settings: Settings, token: Optional[str]) -> bool:
    """Revoke the session behind ``token``. Unknown tokens are ignored."""
    if not token:
        return False
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret,
            algorithms=[ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        return False
    session_id = payload.get("sid")
    if not session_id:
        return False
    return db.delete_session(session_id)


def resolve_identity(
    db: DbClient, settings: Settings, token: Optional[str]
) -> Optional[str]:
    """Return the user id for a live session token, else None."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.auth_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("sub")
    session_id = payload.get("sid")
    if not user_id or not session_id:
        return None
    session = db.get_session(session_id)
    if not session or session.user_id != user_id:
        return None
    if session.expires_at <= time.time():
        return None
    return user_id


def logged_in_user(db: DbClient, identity: Optional[str]) -> Optional[UserRecord]:
    if not identity:
        return None
    return db.get_user(identity)
