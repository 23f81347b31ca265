import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foodcourt.auth.passwords import hash_password, verify_password
from foodcourt.errors import ErrorCode, api_error
from foodcourt.models.merchant import Merchant
from foodcourt.observability import log_event
from foodcourt.services.lookups import get_active_merchant
from foodcourt.services.pagination import Page, paginate

_PROFILE_FIELDS = {"name", "description", "image_url", "is_available"}
_NON_NULLABLE_FIELDS = {"name", "is_available"}


def list_available_merchants(db: Session) -> list[Merchant]:
    statement = (
        select(Merchant)
        .where(Merchant.is_available.is_(True), Merchant.deleted_at.is_(None))
        .order_by(Merchant.merchant_number)
    )
    return list(db.scalars(statement))


def _next_merchant_number(db: Session) -> int:
    current = db.scalar(select(func.max(Merchant.merchant_number)))
    return (current or 0) + 1


def _phone_taken(db: Session, phone_number: str) -> bool:
    return db.scalar(select(Merchant.id).where(Merchant.phone_number == phone_number)) is not None


def create_merchant(
    db: Session,
    *,
    phone_number: str,
    password: str,
    name: str,
    description: str | None = None,
    image_url: str | None = None,
    is_available: bool = True,
) -> Merchant:
    if _phone_taken(db, phone_number):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Phone number already registered"
        )

    merchant = Merchant(
        phone_number=phone_number,
        password_hash=hash_password(password),
        merchant_number=_next_merchant_number(db),
        name=name,
        description=description,
        image_url=image_url,
        is_available=is_available,
    )
    db.add(merchant)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Phone number already registered"
        ) from err
    db.refresh(merchant)
    log_event("merchant_created", merchant_id=str(merchant.id))
    return merchant


def authenticate_merchant(db: Session, phone_number: str, password: str) -> Merchant:
    merchant = db.scalar(
        select(Merchant).where(
            Merchant.phone_number == phone_number.strip(), Merchant.deleted_at.is_(None)
        )
    )
    if merchant is None or not verify_password(password, merchant.password_hash):
        raise api_error(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid phone number or password",
            code=ErrorCode.INVALID_CREDENTIALS,
        )
    log_event("merchant_logged_in", merchant_id=str(merchant.id))
    return merchant


def update_merchant_profile(db: Session, merchant: Merchant, changes: dict[str, Any]) -> Merchant:
    for field, value in changes.items():
        if field not in _PROFILE_FIELDS:
            continue
        if value is None and field in _NON_NULLABLE_FIELDS:
            continue
        setattr(merchant, field, value)

    db.commit()
    db.refresh(merchant)
    log_event("merchant_profile_updated", merchant_id=str(merchant.id))
    return merchant


def change_merchant_password(
    db: Session, merchant: Merchant, *, current_password: str, new_password: str
) -> None:
    if not verify_password(current_password, merchant.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect"
        )
    merchant.password_hash = hash_password(new_password)
    db.commit()
    log_event("merchant_password_changed", merchant_id=str(merchant.id))


def list_merchants_page(
    db: Session, *, page: int, page_size: int, search: str | None = None
) -> Page:
    statement = select(Merchant).where(Merchant.deleted_at.is_(None))
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(Merchant.name.ilike(pattern), Merchant.phone_number.ilike(pattern))
        )
    return paginate(db, statement.order_by(Merchant.merchant_number), page, page_size)


def soft_delete_merchant(db: Session, merchant_id: str | uuid.UUID) -> Merchant:
    merchant = get_active_merchant(db, merchant_id)
    merchant.soft_delete()
    merchant.is_available = False
    db.commit()
    log_event("merchant_deleted", merchant_id=str(merchant.id))
    return merchant


def set_merchant_availability(
    db: Session, merchant_id: str | uuid.UUID, is_available: bool
) -> Merchant:
    merchant = get_active_merchant(db, merchant_id)
    merchant.is_available = is_available
    db.commit()
    db.refresh(merchant)
    log_event(
        "merchant_availability_changed",
        merchant_id=str(merchant.id),
        is_available=is_available,
    )
    return merchant
