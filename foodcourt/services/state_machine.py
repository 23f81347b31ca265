from fastapi import HTTPException, status

from foodcourt.models.order import OrderStatus
from foodcourt.models.payment import PaymentStatus

ORDER_STATUS_VALUES: tuple[str, ...] = tuple(member.value for member in OrderStatus)

TERMINAL_ORDER_STATUSES: set[OrderStatus] = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# Gateway invoice status -> local payment status.
GATEWAY_PAYMENT_STATUSES: dict[str, PaymentStatus] = {
    "PAID": PaymentStatus.PAID,
    "SETTLED": PaymentStatus.PAID,
    "EXPIRED": PaymentStatus.EXPIRED,
    "FAILED": PaymentStatus.FAILED,
}

# Order cascade applied when a payment settles: only orders still in the
# source status move; merchant-driven progress is never overwritten.
PAYMENT_ORDER_CASCADE: dict[PaymentStatus, tuple[OrderStatus, OrderStatus]] = {
    PaymentStatus.PAID: (OrderStatus.PENDING, OrderStatus.ACCEPTED),
    PaymentStatus.EXPIRED: (OrderStatus.PENDING, OrderStatus.CANCELLED),
    PaymentStatus.FAILED: (OrderStatus.PENDING, OrderStatus.CANCELLED),
}


def parse_order_status(value: str | None) -> OrderStatus:
    """Any of the six statuses may be set at any time; values are matched exactly."""
    if value not in ORDER_STATUS_VALUES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Must be one of: {', '.join(ORDER_STATUS_VALUES)}",
        )
    return OrderStatus(value)


def ensure_cancellable(current: OrderStatus) -> None:
    if current in TERMINAL_ORDER_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot cancel order with status: {current.value}",
        )


def gateway_payment_status(gateway_status: str) -> PaymentStatus | None:
    return GATEWAY_PAYMENT_STATUSES.get(gateway_status.strip().upper())


def cascade_order_status(
    payment_status: PaymentStatus, current: OrderStatus
) -> OrderStatus | None:
    rule = PAYMENT_ORDER_CASCADE.get(payment_status)
    if rule is None:
        return None
    source, target = rule
    return target if current == source else None
