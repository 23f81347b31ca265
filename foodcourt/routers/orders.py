from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from foodcourt.auth.dependencies import (
    ADMIN_ROLE,
    MERCHANT_ROLE,
    AuthContext,
    get_current_merchant,
    get_optional_auth_context,
    require_roles,
)
from foodcourt.db.session import get_db
from foodcourt.errors import gateway_http_exception
from foodcourt.integrations.errors import IntegrationError
from foodcourt.integrations.xendit_client import XenditClientProtocol, get_xendit_client
from foodcourt.models.merchant import Merchant
from foodcourt.models.order import Order
from foodcourt.schemas.common import Envelope
from foodcourt.schemas.order import (
    BatchOrderRequest,
    BatchOrderResult,
    BatchOrderSummary,
    ManagedOrderOut,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderDetail,
    OrderMerchantSummary,
    OrderOut,
    OrderPaymentSummary,
    OrderStatusOut,
    OrderStatusUpdate,
)
from foodcourt.schemas.payment import InvoicePaymentResult, PaymentOut
from foodcourt.services import order_service, payment_service
from foodcourt.services.order_service import OrderLine
from foodcourt.services.whatsapp import order_status_message, whatsapp_link

router = APIRouter(prefix="/api/orders", tags=["orders"])

require_order_manager = require_roles(MERCHANT_ROLE, ADMIN_ROLE)


def _order_lines(items) -> list[OrderLine] | None:
    if items is None:
        return None
    return [OrderLine(menu_id=item.menu_id, quantity=item.quantity) for item in items]


def _managed_orders(db: Session, orders: list[Order]) -> list[ManagedOrderOut]:
    names = order_service.merchant_names_for(db, {order.merchant_id for order in orders})
    payloads = order_service.order_payloads(db, orders, merchant_names=names)
    return [ManagedOrderOut.model_validate(payload) for payload in payloads]


@router.post(
    "",
    response_model=Envelope[OrderOut],
    status_code=status.HTTP_201_CREATED,
    summary="Place an order with one merchant",
)
def create_order_endpoint(
    payload: OrderCreateRequest, db: Session = Depends(get_db)
) -> Envelope[OrderOut]:
    placed = order_service.create_order(
        db,
        session_id=payload.session_id,
        merchant_id=payload.merchant_id,
        lines=_order_lines(payload.items),
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        notes=payload.notes,
    )
    data = OrderOut.model_validate(order_service.order_payload(placed.order, placed.items))
    return Envelope(data=data, message="Order created successfully")


@router.post(
    "/batch",
    response_model=Envelope[BatchOrderResult],
    status_code=status.HTTP_201_CREATED,
    summary="Place one order per merchant in a single checkout",
)
def create_batch_orders_endpoint(
    payload: BatchOrderRequest, db: Session = Depends(get_db)
) -> Envelope[BatchOrderResult]:
    placed = order_service.create_batch_orders(
        db,
        session_id=payload.session_id,
        orders_by_merchant={
            merchant_id: _order_lines(entry.items)
            for merchant_id, entry in payload.orders_by_merchant.items()
        },
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        notes=payload.notes,
    )
    summaries = [
        BatchOrderSummary(
            merchant_id=entry.merchant.id,
            merchant_name=entry.merchant.name,
            order_id=entry.order.id,
            total_amount=entry.order.total_amount,
        )
        for entry in placed
    ]
    return Envelope(
        data=BatchOrderResult(
            orders=summaries,
            total_orders=len(summaries),
            total_amount=sum(summary.total_amount for summary in summaries),
        ),
        message=f"Successfully created {len(summaries)} order(s)",
    )


@router.get("", response_model=Envelope[list[ManagedOrderOut]], summary="List orders")
def list_orders_endpoint(
    ids: str | None = Query(default=None),
    session_id: str | None = Query(default=None, alias="sessionId"),
    db: Session = Depends(get_db),
    merchant: Merchant | None = Depends(get_current_merchant),
) -> Envelope[list[ManagedOrderOut]]:
    """Orders by explicit IDs, by buyer session, or the signed-in merchant's own orders."""
    if ids:
        orders = order_service.list_orders_by_ids(db, [raw for raw in ids.split(",") if raw])
    elif session_id:
        orders = order_service.list_session_orders(db, session_id)
    elif merchant is not None:
        orders = order_service.list_merchant_orders(db, merchant.id)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide ids or sessionId, or sign in as a merchant",
        )
    return Envelope(data=_managed_orders(db, orders))


@router.get("/{order_id}", response_model=Envelope[OrderDetail], summary="Get order")
def get_order_endpoint(order_id: str, db: Session = Depends(get_db)) -> Envelope[OrderDetail]:
    view = order_service.get_order_detail(db, order_id)
    payload = order_service.order_payload(
        view.order,
        view.items,
        payment_status=payment_service.payment_status_of(view.payment),
    )
    detail = OrderDetail.model_validate(payload)
    if view.merchant is not None:
        detail.merchant = OrderMerchantSummary(
            id=view.merchant.id,
            name=view.merchant.name,
            merchant_number=view.merchant.merchant_number,
            phone_number=view.merchant.phone_number,
            whatsapp_url=whatsapp_link(
                view.merchant.phone_number,
                order_status_message(
                    view.merchant.name, str(view.order.id), view.order.total_amount
                ),
            ),
        )
    if view.payment is not None:
        detail.payment = OrderPaymentSummary(
            id=view.payment.id,
            url=view.payment.payment_url,
            status=view.payment.status,
            amount=view.payment.amount,
            payment_method=view.payment.payment_method,
            paid_at=view.payment.paid_at,
            expires_at=view.payment.expires_at,
        )
    return Envelope(data=detail)


@router.post("/{order_id}/cancel", response_model=Envelope[OrderStatusOut], summary="Cancel order")
def cancel_order_endpoint(
    order_id: str,
    payload: OrderCancelRequest,
    db: Session = Depends(get_db),
) -> Envelope[OrderStatusOut]:
    order = order_service.cancel_order(db, order_id, payload.session_id)
    return Envelope(data=OrderStatusOut.model_validate(order), message="Order cancelled")


@router.get("/{order_id}/status", response_model=Envelope[OrderStatusOut], summary="Order status")
def get_order_status_endpoint(
    order_id: str, db: Session = Depends(get_db)
) -> Envelope[OrderStatusOut]:
    view = order_service.get_order_detail(db, order_id)
    return Envelope(data=OrderStatusOut.model_validate(view.order))


@router.patch(
    "/{order_id}/status", response_model=Envelope[OrderStatusOut], summary="Update order status"
)
def update_order_status_endpoint(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext | None = Depends(get_optional_auth_context),
) -> Envelope[OrderStatusOut]:
    order = order_service.update_order_status(auth, db, order_id, payload.status)
    return Envelope(data=OrderStatusOut.model_validate(order), message="Order status updated")


@router.post(
    "/{order_id}/payment",
    response_model=Envelope[InvoicePaymentResult],
    summary="Create or reuse a hosted invoice for the order",
)
def create_order_invoice_endpoint(
    order_id: str,
    db: Session = Depends(get_db),
    client: XenditClientProtocol = Depends(get_xendit_client),
) -> Envelope[InvoicePaymentResult]:
    try:
        payment, reused = payment_service.create_invoice_payment(db, order_id, client)
    except IntegrationError as err:
        raise gateway_http_exception(err) from err
    return Envelope(
        data=InvoicePaymentResult(
            payment=PaymentOut.model_validate(payment),
            payment_url=payment.payment_url,
            reused=reused,
        ),
        message="Payment invoice ready",
    )


@router.patch(
    "/{order_id}/payment",
    response_model=Envelope[OrderStatusOut],
    summary="Mark an order as paid outside the gateway",
)
def mark_order_paid_endpoint(
    order_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_order_manager),
) -> Envelope[OrderStatusOut]:
    order = order_service.mark_merchant_order_paid(auth, db, order_id)
    return Envelope(data=OrderStatusOut.model_validate(order), message="Order marked as paid")
