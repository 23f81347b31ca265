import uuid

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from foodcourt.models.buyer_session import BuyerSession
from foodcourt.models.menu import Menu, MenuCategory
from foodcourt.models.merchant import Merchant
from foodcourt.models.order import Order


def resolve_uuid(value: str | uuid.UUID, not_found_detail: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except ValueError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found_detail) from err


def get_active_merchant(db: Session, merchant_id: str | uuid.UUID) -> Merchant:
    merchant = db.get(Merchant, resolve_uuid(merchant_id, "Merchant not found"))
    if merchant is None or merchant.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Merchant not found")
    return merchant


def get_active_category(db: Session, category_id: str | uuid.UUID) -> MenuCategory:
    category = db.get(MenuCategory, resolve_uuid(category_id, "Category not found"))
    if category is None or category.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


def get_active_menu(db: Session, menu_id: str | uuid.UUID) -> Menu:
    menu = db.get(Menu, resolve_uuid(menu_id, "Menu not found"))
    if menu is None or menu.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Menu not found")
    return menu


def get_active_session(db: Session, session_id: str | uuid.UUID) -> BuyerSession:
    session = db.get(BuyerSession, resolve_uuid(session_id, "Session not found"))
    if session is None or session.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


def get_active_order(db: Session, order_id: str | uuid.UUID) -> Order:
    order = db.get(Order, resolve_uuid(order_id, "Order not found"))
    if order is None or order.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order
