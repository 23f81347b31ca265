import uuid
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from foodcourt.errors import ErrorCode, api_error
from foodcourt.models.buyer_session import BuyerSession, CartItem
from foodcourt.models.common import MAX_LINE_QUANTITY, now_utc
from foodcourt.models.menu import Menu
from foodcourt.models.merchant import Merchant
from foodcourt.observability import log_event
from foodcourt.services.lookups import get_active_menu, get_active_session


@dataclass
class CartLineInput:
    menu_id: uuid.UUID
    quantity: int
    notes: str | None = None


def create_session(db: Session, table_number: int | None = None) -> BuyerSession:
    session = BuyerSession(table_number=table_number)
    db.add(session)
    db.commit()
    db.refresh(session)
    log_event("buyer_session_created", session_id=str(session.id), table_number=table_number)
    return session


def set_session_table(db: Session, session_id: str, table_number: int) -> BuyerSession:
    """Update the table number, creating the session under this ID when it does not exist."""
    try:
        resolved = uuid.UUID(session_id)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid session ID"
        ) from err

    session = db.get(BuyerSession, resolved)
    if session is not None and session.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    if session is None:
        session = BuyerSession(id=resolved, table_number=table_number)
        db.add(session)
    else:
        session.table_number = table_number

    db.commit()
    db.refresh(session)
    log_event("buyer_session_updated", session_id=str(session.id), table_number=table_number)
    return session


def cart_lines(
    db: Session, session: BuyerSession, merchant_id: uuid.UUID | None = None
) -> list[tuple[CartItem, Menu]]:
    statement = (
        select(CartItem, Menu)
        .join(Menu, Menu.id == CartItem.menu_id)
        .where(CartItem.session_id == session.id, CartItem.deleted_at.is_(None))
        .order_by(CartItem.created_at)
    )
    if merchant_id is not None:
        statement = statement.where(CartItem.merchant_id == merchant_id)
    return [(item, menu) for item, menu in db.execute(statement)]


def _orderable_menu(db: Session, menu_id: uuid.UUID) -> Menu:
    menu = get_active_menu(db, menu_id)
    merchant = db.get(Merchant, menu.merchant_id)
    merchant_open = merchant is not None and not merchant.is_deleted and merchant.is_available
    if not menu.is_available or not merchant_open:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            f"Menu item is not available: {menu.name}",
            code=ErrorCode.MENU_UNAVAILABLE,
        )
    return menu


def _active_line_for_menu(
    db: Session, session: BuyerSession, menu_id: uuid.UUID
) -> CartItem | None:
    return db.scalar(
        select(CartItem).where(
            CartItem.session_id == session.id,
            CartItem.menu_id == menu_id,
            CartItem.deleted_at.is_(None),
        )
    )


def _put_line(
    db: Session, session: BuyerSession, line: CartLineInput, *, replace: bool
) -> CartItem:
    menu = _orderable_menu(db, line.menu_id)
    item = _active_line_for_menu(db, session, menu.id)
    if item is None:
        item = CartItem(
            session_id=session.id,
            merchant_id=menu.merchant_id,
            menu_id=menu.id,
            quantity=line.quantity,
            price_snapshot=menu.price,
            notes=line.notes,
        )
        db.add(item)
        db.flush()
        return item

    quantity = line.quantity if replace else item.quantity + line.quantity
    if quantity > MAX_LINE_QUANTITY:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Quantity cannot exceed {MAX_LINE_QUANTITY}",
        )
    item.quantity = quantity
    item.price_snapshot = menu.price
    if line.notes is not None:
        item.notes = line.notes
    return item


def add_to_cart(db: Session, session_id: str, line: CartLineInput) -> CartItem:
    session = get_active_session(db, session_id)
    item = _put_line(db, session, line, replace=False)
    db.commit()
    db.refresh(item)
    log_event("cart_item_added", session_id=str(session.id), menu_id=str(item.menu_id))
    return item


def bulk_add_to_cart(db: Session, session_id: str, lines: list[CartLineInput]) -> list[CartItem]:
    session = get_active_session(db, session_id)
    try:
        items = [_put_line(db, session, line, replace=True) for line in lines]
        db.commit()
    except Exception:
        db.rollback()
        raise
    log_event("cart_items_added", session_id=str(session.id), count=len(items))
    return items


def clear_cart(db: Session, session_id: str, merchant_id: uuid.UUID | None = None) -> int:
    session = get_active_session(db, session_id)
    cleared = mark_cart_lines_deleted(db, session, merchant_id)
    db.commit()
    log_event("cart_cleared", session_id=str(session.id), cleared=cleared)
    return cleared


def mark_cart_lines_deleted(
    db: Session, session: BuyerSession, merchant_id: uuid.UUID | None = None
) -> int:
    """Soft-delete active cart lines without committing."""
    statement = select(CartItem).where(
        CartItem.session_id == session.id, CartItem.deleted_at.is_(None)
    )
    if merchant_id is not None:
        statement = statement.where(CartItem.merchant_id == merchant_id)
    items = list(db.scalars(statement))
    deleted_at = now_utc()
    for item in items:
        item.deleted_at = deleted_at
    return len(items)
