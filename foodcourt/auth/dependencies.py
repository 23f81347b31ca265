import base64
import binascii
import uuid
from dataclasses import dataclass
from typing import Callable

from fastapi import Cookie, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from foodcourt.auth.tokens import SessionTokenError, decode_session_token
from foodcourt.config import settings
from foodcourt.db.session import get_db
from foodcourt.models.admin import Admin
from foodcourt.models.merchant import Merchant
from foodcourt.services.admin_service import authenticate_admin

MERCHANT_SESSION_COOKIE = "merchant-session"
ADMIN_SESSION_COOKIE = "admin_session"
ADMIN_REALM_HEADERS = {"WWW-Authenticate": 'Basic realm="Admin Area"'}

ADMIN_ROLE = "ADMIN"
MERCHANT_ROLE = "MERCHANT"


@dataclass
class AuthContext:
    user_id: str
    role: str
    source: str | None = None
    username: str | None = None
    login_time: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def parse_basic_credentials(authorization: str | None) -> tuple[str, str] | None:
    if not authorization or not authorization.startswith("Basic "):
        return None
    encoded = authorization.removeprefix("Basic ").strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _admin_from_cookie(db: Session, token: str | None) -> AuthContext | None:
    if not token:
        return None
    try:
        payload = decode_session_token(token, settings.session_secret)
    except SessionTokenError:
        return None

    admin_id = _parse_uuid(payload.get("adminId"))
    if admin_id is None:
        return None
    admin = db.get(Admin, admin_id)
    if admin is None or admin.is_deleted:
        return None
    return AuthContext(
        user_id=str(admin.id),
        role=ADMIN_ROLE,
        source="cookie",
        username=admin.username,
        login_time=payload.get("loginTime"),
    )


def _admin_from_basic(db: Session, authorization: str | None) -> AuthContext | None:
    credentials = parse_basic_credentials(authorization)
    if credentials is None:
        return None
    admin = authenticate_admin(db, *credentials)
    if admin is None:
        return None
    return AuthContext(
        user_id=str(admin.id), role=ADMIN_ROLE, source="basic", username=admin.username
    )


def _merchant_from_cookie(db: Session, raw_id: str | None) -> Merchant | None:
    merchant_id = _parse_uuid(raw_id)
    if merchant_id is None:
        return None
    merchant = db.get(Merchant, merchant_id)
    if merchant is None or merchant.is_deleted:
        return None
    return merchant


def get_admin_context(
    db: Session = Depends(get_db),
    admin_session: str | None = Cookie(default=None, alias=ADMIN_SESSION_COOKIE),
    authorization: str | None = Header(default=None),
) -> AuthContext | None:
    return _admin_from_cookie(db, admin_session) or _admin_from_basic(db, authorization)


def get_current_merchant(
    db: Session = Depends(get_db),
    merchant_session: str | None = Cookie(default=None, alias=MERCHANT_SESSION_COOKIE),
) -> Merchant | None:
    return _merchant_from_cookie(db, merchant_session)


def get_optional_auth_context(
    admin: AuthContext | None = Depends(get_admin_context),
    merchant: Merchant | None = Depends(get_current_merchant),
) -> AuthContext | None:
    if admin is not None:
        return admin
    if merchant is not None:
        return AuthContext(user_id=str(merchant.id), role=MERCHANT_ROLE, source="cookie")
    return None


def get_auth_context(
    auth: AuthContext | None = Depends(get_optional_auth_context),
) -> AuthContext:
    if auth is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required"
        )
    return auth


def require_roles(*roles: str) -> Callable[[AuthContext], AuthContext]:
    def dependency(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if auth.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return auth

    return dependency


def require_admin(admin: AuthContext | None = Depends(get_admin_context)) -> AuthContext:
    if admin is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return admin


def require_merchant(merchant: Merchant | None = Depends(get_current_merchant)) -> Merchant:
    if merchant is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required"
        )
    return merchant


def ensure_merchant_access(auth: AuthContext, merchant_id: uuid.UUID) -> None:
    if auth.is_admin:
        return
    if auth.role == MERCHANT_ROLE and auth.user_id == str(merchant_id):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail="Access denied for this merchant"
    )
