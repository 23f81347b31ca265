from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from foodcourt.auth.dependencies import AuthContext
from foodcourt.errors import ErrorCode, api_error
from foodcourt.models.buyer_session import BuyerSession
from foodcourt.models.common import uuid7
from foodcourt.models.menu import Menu
from foodcourt.models.merchant import Merchant
from foodcourt.models.order import Order, OrderItem, OrderStatus
from foodcourt.models.payment import OrderPayment, PaymentStatus
from foodcourt.observability import log_event
from foodcourt.services.lookups import get_active_merchant, get_active_order, get_active_session
from foodcourt.services.pagination import Page, paginate
from foodcourt.services.payment_service import (
    latest_payments_for_orders,
    payment_status_of,
    set_order_payment_status,
)
from foodcourt.services.session_service import cart_lines, mark_cart_lines_deleted
from foodcourt.services.state_machine import (
    ORDER_STATUS_VALUES,
    ensure_cancellable,
    parse_order_status,
)

_ORDER_COLUMNS = [column.key for column in Order.__table__.columns]


@dataclass
class OrderLine:
    menu_id: uuid.UUID
    quantity: int


@dataclass
class PricedLine:
    menu: Menu
    quantity: int
    unit_price: int

    @property
    def subtotal(self) -> int:
        return self.quantity * self.unit_price


@dataclass
class PlacedOrder:
    order: Order
    items: list[OrderItem]
    merchant: Merchant


def _ensure_merchant_open(merchant: Merchant) -> None:
    if not merchant.is_available:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            f"Merchant is not available: {merchant.name}",
            code=ErrorCode.MERCHANT_INACTIVE,
        )


def _ensure_menu_orderable(menu: Menu) -> None:
    if not menu.is_available:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            f"Menu item is not available: {menu.name}",
            code=ErrorCode.MENU_UNAVAILABLE,
        )


def _price_lines(db: Session, merchant: Merchant, lines: list[OrderLine]) -> list[PricedLine]:
    menu_ids = {line.menu_id for line in lines}
    menus = {
        menu.id: menu
        for menu in db.scalars(
            select(Menu).where(Menu.id.in_(menu_ids), Menu.deleted_at.is_(None))
        )
    }
    priced: list[PricedLine] = []
    for line in lines:
        menu = menus.get(line.menu_id)
        if menu is None or menu.merchant_id != merchant.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Menu not found for merchant {merchant.name}: {line.menu_id}",
            )
        _ensure_menu_orderable(menu)
        priced.append(PricedLine(menu=menu, quantity=line.quantity, unit_price=menu.price))
    return priced


def _place_order(
    db: Session,
    *,
    session: BuyerSession,
    merchant: Merchant,
    lines: list[PricedLine],
    customer_name: str | None,
    customer_phone: str | None,
    notes: str | None,
) -> PlacedOrder:
    """Stage an order and its item snapshots on the session. Does not commit."""
    order = Order(
        id=uuid7(),
        session_id=session.id,
        merchant_id=merchant.id,
        status=OrderStatus.PENDING,
        total_amount=sum(line.subtotal for line in lines),
        customer_name=customer_name,
        customer_phone=customer_phone,
        notes=notes,
    )
    db.add(order)
    db.flush()

    items = [
        OrderItem(
            order_id=order.id,
            menu_id=line.menu.id,
            menu_name=line.menu.name,
            menu_image_url=line.menu.image_url,
            quantity=line.quantity,
            unit_price=line.unit_price,
            subtotal=line.subtotal,
        )
        for line in lines
    ]
    db.add_all(items)
    return PlacedOrder(order=order, items=items, merchant=merchant)


def create_order(
    db: Session,
    *,
    session_id: uuid.UUID,
    merchant_id: uuid.UUID,
    lines: list[OrderLine] | None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
) -> PlacedOrder:
    """Place one order. Without explicit lines the session's cart for the merchant is used."""
    session = get_active_session(db, session_id)
    merchant = get_active_merchant(db, merchant_id)
    _ensure_merchant_open(merchant)

    try:
        if lines is None:
            cart = cart_lines(db, session, merchant.id)
            if not cart:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cart is empty for this merchant",
                )
            priced = []
            for item, menu in cart:
                if menu.is_deleted:
                    raise HTTPException(
                        status_code=status.HTTP_404_NOT_FOUND,
                        detail=f"Menu not found: {menu.id}",
                    )
                _ensure_menu_orderable(menu)
                priced.append(
                    PricedLine(menu=menu, quantity=item.quantity, unit_price=item.price_snapshot)
                )
            mark_cart_lines_deleted(db, session, merchant.id)
        else:
            priced = _price_lines(db, merchant, lines)

        placed = _place_order(
            db,
            session=session,
            merchant=merchant,
            lines=priced,
            customer_name=customer_name,
            customer_phone=customer_phone,
            notes=notes,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_event(
        "order_created",
        order_id=str(placed.order.id),
        merchant_id=str(merchant.id),
        total_amount=placed.order.total_amount,
    )
    return placed


def create_batch_orders(
    db: Session,
    *,
    session_id: uuid.UUID,
    orders_by_merchant: dict[uuid.UUID, list[OrderLine]],
    customer_name: str,
    customer_phone: str,
    notes: str | None = None,
) -> list[PlacedOrder]:
    """One order per merchant in a single transaction: every order is created or none is."""
    if not orders_by_merchant:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No orders provided")

    session = get_active_session(db, session_id)
    merchants = {
        merchant.id: merchant
        for merchant in db.scalars(
            select(Merchant).where(
                Merchant.id.in_(list(orders_by_merchant)), Merchant.deleted_at.is_(None)
            )
        )
    }

    placed: list[PlacedOrder] = []
    try:
        for merchant_id, lines in orders_by_merchant.items():
            merchant = merchants.get(merchant_id)
            if merchant is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Merchant not found: {merchant_id}",
                )
            _ensure_merchant_open(merchant)
            placed.append(
                _place_order(
                    db,
                    session=session,
                    merchant=merchant,
                    lines=_price_lines(db, merchant, lines),
                    customer_name=customer_name,
                    customer_phone=customer_phone,
                    notes=notes,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_event(
        "batch_orders_created",
        session_id=str(session.id),
        order_ids=[str(entry.order.id) for entry in placed],
    )
    return placed


# Reads


def items_for_orders(db: Session, order_ids: list[uuid.UUID]) -> dict[uuid.UUID, list[OrderItem]]:
    grouped: dict[uuid.UUID, list[OrderItem]] = {order_id: [] for order_id in order_ids}
    if not order_ids:
        return grouped
    statement = (
        select(OrderItem)
        .where(OrderItem.order_id.in_(order_ids))
        .order_by(OrderItem.created_at, OrderItem.id)
    )
    for item in db.scalars(statement):
        grouped.setdefault(item.order_id, []).append(item)
    return grouped


def order_payload(order: Order, items: list[OrderItem], **extra: Any) -> dict[str, Any]:
    payload = {key: getattr(order, key) for key in _ORDER_COLUMNS}
    payload["items"] = items
    payload.update(extra)
    return payload


def order_payloads(
    db: Session,
    orders: list[Order],
    merchant_names: dict[uuid.UUID, str] | None = None,
) -> list[dict[str, Any]]:
    """Orders with their items, payment status and (optionally) merchant name."""
    order_ids = [order.id for order in orders]
    items = items_for_orders(db, order_ids)
    payments = latest_payments_for_orders(db, order_ids)
    payloads = []
    for order in orders:
        extra: dict[str, Any] = {"payment_status": payment_status_of(payments.get(order.id))}
        if merchant_names is not None:
            extra["merchant_name"] = merchant_names.get(order.merchant_id)
        payloads.append(order_payload(order, items.get(order.id, []), **extra))
    return payloads


@dataclass
class OrderDetailView:
    order: Order
    items: list[OrderItem]
    merchant: Merchant | None
    payment: OrderPayment | None


def get_order_detail(db: Session, order_id: str) -> OrderDetailView:
    order = get_active_order(db, order_id)
    items = items_for_orders(db, [order.id])[order.id]
    payment = latest_payments_for_orders(db, [order.id]).get(order.id)
    return OrderDetailView(
        order=order,
        items=items,
        merchant=db.get(Merchant, order.merchant_id),
        payment=payment,
    )


def list_orders_by_ids(db: Session, raw_ids: list[str]) -> list[Order]:
    """Orders for the given IDs; unknown or malformed IDs are skipped."""
    ids: list[uuid.UUID] = []
    for raw in raw_ids:
        try:
            ids.append(uuid.UUID(raw.strip()))
        except ValueError:
            continue
    if not ids:
        return []
    statement = (
        select(Order)
        .where(Order.id.in_(ids), Order.deleted_at.is_(None))
        .order_by(Order.created_at.desc())
    )
    return list(db.scalars(statement))


def list_session_orders(db: Session, session_id: str) -> list[Order]:
    session = get_active_session(db, session_id)
    statement = (
        select(Order)
        .where(Order.session_id == session.id, Order.deleted_at.is_(None))
        .order_by(Order.created_at.desc())
    )
    return list(db.scalars(statement))


def list_merchant_orders(
    db: Session, merchant_id: uuid.UUID, status_filter: OrderStatus | None = None
) -> list[Order]:
    statement = select(Order).where(Order.merchant_id == merchant_id, Order.deleted_at.is_(None))
    if status_filter is not None:
        statement = statement.where(Order.status == status_filter)
    return list(db.scalars(statement.order_by(Order.created_at.desc())))


def merchant_orders_page(
    db: Session,
    merchant_id: uuid.UUID,
    *,
    page: int,
    page_size: int,
    status_filter: OrderStatus | None = None,
) -> tuple[Page, dict[str, int]]:
    statement = select(Order).where(Order.merchant_id == merchant_id, Order.deleted_at.is_(None))
    if status_filter is not None:
        statement = statement.where(Order.status == status_filter)
    page_result = paginate(db, statement.order_by(Order.created_at.desc()), page, page_size)
    return page_result, order_status_counts(db, merchant_id)


def admin_orders_page(
    db: Session,
    *,
    page: int,
    page_size: int,
    status_filter: OrderStatus | None = None,
    merchant_id: uuid.UUID | None = None,
) -> Page:
    statement = (
        select(Order, Merchant.name)
        .join(Merchant, Merchant.id == Order.merchant_id)
        .where(Order.deleted_at.is_(None))
        .order_by(Order.created_at.desc())
    )
    if status_filter is not None:
        statement = statement.where(Order.status == status_filter)
    if merchant_id is not None:
        statement = statement.where(Order.merchant_id == merchant_id)
    return paginate(db, statement, page, page_size)


def order_status_counts(db: Session, merchant_id: uuid.UUID | None = None) -> dict[str, int]:
    counts = {value: 0 for value in ORDER_STATUS_VALUES}
    statement = select(Order.status, func.count(Order.id)).where(Order.deleted_at.is_(None))
    if merchant_id is not None:
        statement = statement.where(Order.merchant_id == merchant_id)
    for order_status, count in db.execute(statement.group_by(Order.status)):
        counts[order_status.value] = count
    return counts


# Mutations


def cancel_order(db: Session, order_id: str, session_id: str) -> Order:
    order = get_active_order(db, order_id)
    if str(order.session_id) != session_id.strip().lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only cancel orders from your own session",
        )
    ensure_cancellable(order.status)

    order.status = OrderStatus.CANCELLED
    db.commit()
    db.refresh(order)
    log_event("order_cancelled", order_id=str(order.id), merchant_id=str(order.merchant_id))
    return order


def _set_status(db: Session, order: Order, new_status: OrderStatus) -> Order:
    previous = order.status
    order.status = new_status
    db.commit()
    db.refresh(order)
    log_event(
        "order_status_changed",
        order_id=str(order.id),
        merchant_id=str(order.merchant_id),
        previous=previous.value,
        status=new_status.value,
    )
    return order


def update_order_status(
    auth: AuthContext | None, db: Session, order_id: str, raw_status: str | None
) -> Order:
    """Status is checked before identity so a bad value never touches the row."""
    new_status = parse_order_status(raw_status)
    if auth is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required"
        )

    order = get_active_order(db, order_id)
    if not auth.is_admin and str(order.merchant_id) != auth.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Access denied for this order"
        )
    return _set_status(db, order, new_status)


def admin_update_order_status(db: Session, order_id: str, raw_status: str | None) -> Order:
    new_status = parse_order_status(raw_status)
    return _set_status(db, get_active_order(db, order_id), new_status)


def get_merchant_owned_order(db: Session, merchant_id: uuid.UUID, order_id: str) -> Order:
    """Ownership through the ordered menus, so orders are matched by what was sold."""
    not_found = HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail="Order not found or unauthorized"
    )
    try:
        resolved = uuid.UUID(order_id)
    except ValueError as err:
        raise not_found from err

    statement = (
        select(Order)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .join(Menu, Menu.id == OrderItem.menu_id)
        .where(
            Order.id == resolved,
            Order.deleted_at.is_(None),
            Menu.merchant_id == merchant_id,
        )
        .limit(1)
    )
    order = db.scalar(statement)
    if order is None:
        raise not_found
    return order


def update_merchant_order_status(
    db: Session, merchant_id: uuid.UUID, order_id: str, raw_status: str | None
) -> Order:
    new_status = parse_order_status(raw_status)
    order = get_merchant_owned_order(db, merchant_id, order_id)
    return _set_status(db, order, new_status)


def mark_order_paid(db: Session, order: Order) -> Order:
    """Manual settlement: order completed and every linked payment paid, atomically."""
    try:
        order.status = OrderStatus.COMPLETED
        set_order_payment_status(db, order, PaymentStatus.PAID)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    log_event("order_marked_paid", order_id=str(order.id), merchant_id=str(order.merchant_id))
    return order


def mark_merchant_order_paid(auth: AuthContext, db: Session, order_id: str) -> Order:
    order = get_active_order(db, order_id)
    if not auth.is_admin and str(order.merchant_id) != auth.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Access denied for this order"
        )
    return mark_order_paid(db, order)


def set_admin_payment_status(db: Session, order_id: str, paid: bool) -> Order:
    order = get_active_order(db, order_id)
    try:
        set_order_payment_status(
            db, order, PaymentStatus.PAID if paid else PaymentStatus.UNPAID
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    log_event("order_payment_status_set", order_id=str(order.id), paid=paid)
    return order


def merchant_names_for(db: Session, merchant_ids: set[uuid.UUID]) -> dict[uuid.UUID, str]:
    if not merchant_ids:
        return {}
    statement = select(Merchant.id, Merchant.name).where(Merchant.id.in_(merchant_ids))
    return {merchant_id: name for merchant_id, name in db.execute(statement)}
