from __future__ import annotations

import hmac
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from foodcourt.config import settings
from foodcourt.integrations.errors import IntegrationBadGatewayError, IntegrationError
from foodcourt.integrations.xendit_client import InvoiceItem, InvoiceRequest, XenditClientProtocol
from foodcourt.models.common import ensure_aware, now_utc, uuid7
from foodcourt.models.order import Order, OrderItem, OrderStatus
from foodcourt.models.payment import OrderPayment, OrderPaymentItem, PaymentStatus
from foodcourt.observability import log_event
from foodcourt.services.lookups import get_active_order, resolve_uuid
from foodcourt.services.state_machine import cascade_order_status, gateway_payment_status

MANUAL_PAYMENT_METHOD = "cash"


@dataclass
class ReconcileOutcome:
    payment: OrderPayment
    order_ids: list[uuid.UUID]
    updated_order_ids: list[uuid.UUID]


def _linked_payments_statement(order_ids: list[uuid.UUID]):
    return (
        select(OrderPaymentItem.order_id, OrderPayment)
        .join(OrderPayment, OrderPayment.id == OrderPaymentItem.payment_id)
        .where(OrderPaymentItem.order_id.in_(order_ids), OrderPayment.deleted_at.is_(None))
        .order_by(OrderPayment.created_at, OrderPayment.id)
    )


def payments_for_order(db: Session, order_id: uuid.UUID) -> list[OrderPayment]:
    """Active payments linked to the order, oldest first."""
    return [payment for _, payment in db.execute(_linked_payments_statement([order_id]))]


def latest_payments_for_orders(
    db: Session, order_ids: list[uuid.UUID]
) -> dict[uuid.UUID, OrderPayment]:
    if not order_ids:
        return {}
    latest: dict[uuid.UUID, OrderPayment] = {}
    for order_id, payment in db.execute(_linked_payments_statement(order_ids)):
        latest[order_id] = payment
    return latest


def payment_status_of(payment: OrderPayment | None) -> PaymentStatus:
    return payment.status if payment is not None else PaymentStatus.UNPAID


def _new_payment(db: Session, order: Order, **fields: Any) -> OrderPayment:
    payment = OrderPayment(
        id=uuid7(),
        order_id=order.id,
        amount=order.total_amount,
        **fields,
    )
    db.add(payment)
    db.flush()
    db.add(OrderPaymentItem(payment_id=payment.id, order_id=order.id, amount=order.total_amount))
    return payment


def create_batch_payments(db: Session, order_ids: list[uuid.UUID]) -> list[OrderPayment]:
    """One unpaid placeholder payment per order, all or nothing."""
    orders = {
        order.id: order
        for order in db.scalars(
            select(Order).where(Order.id.in_(order_ids), Order.deleted_at.is_(None))
        )
    }
    missing = [str(order_id) for order_id in order_ids if order_id not in orders]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "One or more orders were not found", "missingOrderIds": missing},
        )

    try:
        payments = [
            _new_payment(db, orders[order_id], status=PaymentStatus.UNPAID, payment_url="")
            for order_id in order_ids
        ]
        db.commit()
    except Exception:
        db.rollback()
        raise

    for payment in payments:
        log_event(
            "payment_created",
            order_id=str(payment.order_id),
            payment_id=str(payment.id),
            amount=payment.amount,
        )
    return payments


def set_order_payment_status(
    db: Session,
    order: Order,
    payment_status: PaymentStatus,
    *,
    method: str = MANUAL_PAYMENT_METHOD,
) -> list[OrderPayment]:
    """Apply a manual paid/unpaid decision to every payment of the order. Does not commit."""
    payments = payments_for_order(db, order.id)
    if not payments and payment_status == PaymentStatus.PAID:
        payments = [_new_payment(db, order, status=PaymentStatus.UNPAID, payment_url="")]

    paid_at = now_utc()
    for payment in payments:
        payment.status = payment_status
        if payment_status == PaymentStatus.PAID:
            payment.payment_method = method
            payment.paid_at = paid_at
        else:
            payment.payment_method = None
            payment.paid_at = None
    return payments


def _is_reusable_invoice(payment: OrderPayment, now: datetime) -> bool:
    if payment.status != PaymentStatus.UNPAID or not payment.xendit_invoice_id:
        return False
    if not payment.payment_url:
        return False
    return payment.expires_at is None or ensure_aware(payment.expires_at) > now


def _expire_stale_invoice(client: XenditClientProtocol, payment: OrderPayment) -> None:
    try:
        client.expire_invoice(payment.xendit_invoice_id)
    except IntegrationBadGatewayError as err:
        # Gateway refuses to expire invoices that already lapsed.
        log_event(
            "stale_invoice_expire_rejected",
            payment_id=str(payment.id),
            reason=err.message,
        )
    payment.status = PaymentStatus.EXPIRED


def create_invoice_payment(
    db: Session, order_id: str, client: XenditClientProtocol
) -> tuple[OrderPayment, bool]:
    """Return an open hosted invoice for the order, creating one when needed."""
    order = get_active_order(db, order_id)
    if order.status == OrderStatus.CANCELLED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot pay for a cancelled order"
        )

    payments = payments_for_order(db, order.id)
    if any(payment.status == PaymentStatus.PAID for payment in payments):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order is already paid")

    now = now_utc()
    for payment in reversed(payments):
        if _is_reusable_invoice(payment, now):
            return payment, True

    items = list(
        db.scalars(
            select(OrderItem)
            .where(OrderItem.order_id == order.id)
            .order_by(OrderItem.created_at)
        )
    )
    public_id = str(order.id)
    request = InvoiceRequest(
        external_id=f"ORDER-{public_id}-{int(time.time() * 1000)}",
        amount=order.total_amount,
        description=f"Payment for Order #{public_id[-8:]}",
        success_redirect_url=f"{settings.public_base_url}/payment-success?order_id={public_id}",
        failure_redirect_url=f"{settings.public_base_url}/payment-failed?order_id={public_id}",
        invoice_duration_s=settings.invoice_duration_s,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        items=[
            InvoiceItem(name=item.menu_name, quantity=item.quantity, price=item.unit_price)
            for item in items
        ],
    )

    try:
        placeholder = None
        for payment in payments:
            if payment.status != PaymentStatus.UNPAID:
                continue
            if payment.xendit_invoice_id:
                _expire_stale_invoice(client, payment)
            elif placeholder is None:
                placeholder = payment

        invoice = client.create_invoice(request)

        payment = placeholder or _new_payment(db, order, payment_url="")
        payment.xendit_invoice_id = invoice.id
        payment.payment_url = invoice.invoice_url
        payment.status = PaymentStatus.UNPAID
        payment.expires_at = invoice.expiry_date or now + timedelta(
            seconds=settings.invoice_duration_s
        )
        db.commit()
    except IntegrationError:
        db.rollback()
        raise

    db.refresh(payment)
    log_event(
        "invoice_created",
        order_id=public_id,
        payment_id=str(payment.id),
        invoice_id=invoice.id,
    )
    return payment, False


def verify_callback_token(token: str | None) -> None:
    expected = settings.xendit_webhook_token
    if not expected or not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def _apply_gateway_status(
    db: Session,
    payment: OrderPayment,
    gateway_status: str,
    *,
    payment_method: str | None,
    paid_at: datetime | None,
) -> ReconcileOutcome:
    new_status = gateway_payment_status(gateway_status)
    if new_status is not None:
        payment.status = new_status
        if new_status == PaymentStatus.PAID:
            payment.payment_method = payment_method
            payment.paid_at = paid_at or now_utc()

    orders = list(
        db.scalars(
            select(Order)
            .join(OrderPaymentItem, OrderPaymentItem.order_id == Order.id)
            .where(OrderPaymentItem.payment_id == payment.id, Order.deleted_at.is_(None))
        )
    )
    updated: list[uuid.UUID] = []
    if new_status is not None:
        for order in orders:
            target = cascade_order_status(new_status, order.status)
            if target is not None:
                order.status = target
                updated.append(order.id)

    return ReconcileOutcome(
        payment=payment,
        order_ids=[order.id for order in orders],
        updated_order_ids=updated,
    )


def process_invoice_callback(
    db: Session,
    *,
    invoice_id: str,
    gateway_status: str,
    payment_method: str | None,
    paid_at: datetime | None,
    raw_payload: dict[str, Any],
) -> ReconcileOutcome:
    payment = db.scalar(
        select(OrderPayment).where(
            OrderPayment.xendit_invoice_id == invoice_id, OrderPayment.deleted_at.is_(None)
        )
    )
    if payment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")

    try:
        payment.webhook_data = raw_payload
        outcome = _apply_gateway_status(
            db, payment, gateway_status, payment_method=payment_method, paid_at=paid_at
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_event(
        "payment_webhook_processed",
        payment_id=str(payment.id),
        gateway_status=gateway_status,
        updated_orders=[str(order_id) for order_id in outcome.updated_order_ids],
    )
    return outcome


def get_payment(db: Session, payment_id: str) -> OrderPayment:
    payment = db.get(OrderPayment, resolve_uuid(payment_id, "Payment not found"))
    if payment is None or payment.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment


def sync_payment_with_gateway(
    db: Session, payment_id: str, client: XenditClientProtocol
) -> ReconcileOutcome:
    """Pull the invoice status for an open payment; used when a callback was missed."""
    payment = get_payment(db, payment_id)
    if payment.status != PaymentStatus.UNPAID or not payment.xendit_invoice_id:
        return ReconcileOutcome(payment=payment, order_ids=[], updated_order_ids=[])

    invoice = client.get_invoice(payment.xendit_invoice_id)
    try:
        outcome = _apply_gateway_status(
            db, payment, invoice.status, payment_method=None, paid_at=None
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_event(
        "payment_synced",
        payment_id=str(payment.id),
        gateway_status=invoice.status,
    )
    return outcome
