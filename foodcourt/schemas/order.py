import uuid
from datetime import datetime

from pydantic import Field, field_validator

from foodcourt.models.common import MAX_LINE_QUANTITY
from foodcourt.models.order import OrderStatus
from foodcourt.models.payment import PaymentStatus
from foodcourt.schemas.common import ApiModel, normalize_customer_phone, strip_optional


class OrderItemInput(ApiModel):
    menu_id: uuid.UUID
    quantity: int = Field(ge=1, le=MAX_LINE_QUANTITY)
    # Display hints sent by the cart UI; prices are always read from the menu.
    menu_name: str | None = None
    unit_price: int | None = Field(default=None, ge=0)
    menu_image_url: str | None = None


class CustomerFields(ApiModel):
    customer_name: str | None = Field(default=None, min_length=1, max_length=100)
    customer_phone: str | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("customer_name", "notes", mode="before")
    @classmethod
    def strip_strings(cls, value):
        return strip_optional(value) if isinstance(value, str) else value

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        return normalize_customer_phone(value)


class OrderCreateRequest(CustomerFields):
    session_id: uuid.UUID
    merchant_id: uuid.UUID
    items: list[OrderItemInput] | None = Field(default=None, min_length=1)


class BatchMerchantOrder(ApiModel):
    merchant_name: str | None = None
    items: list[OrderItemInput] = Field(min_length=1)


class BatchOrderRequest(CustomerFields):
    session_id: uuid.UUID
    customer_name: str = Field(min_length=1, max_length=100)
    customer_phone: str
    orders_by_merchant: dict[uuid.UUID, BatchMerchantOrder] = Field(min_length=1)

    @field_validator("customer_phone")
    @classmethod
    def require_phone(cls, value: str | None) -> str:
        value = normalize_customer_phone(value)
        if value is None:
            raise ValueError("customerPhone is required")
        return value


class BatchOrderSummary(ApiModel):
    merchant_id: uuid.UUID
    merchant_name: str
    order_id: uuid.UUID
    total_amount: int


class BatchOrderResult(ApiModel):
    orders: list[BatchOrderSummary]
    total_orders: int
    total_amount: int


class OrderItemOut(ApiModel):
    id: uuid.UUID
    order_id: uuid.UUID
    menu_id: uuid.UUID
    menu_name: str
    menu_image_url: str | None
    quantity: int
    unit_price: int
    subtotal: int


class OrderOut(ApiModel):
    id: uuid.UUID
    session_id: uuid.UUID
    merchant_id: uuid.UUID
    status: OrderStatus
    total_amount: int
    customer_name: str | None
    customer_phone: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemOut] = Field(default_factory=list)


class OrderPaymentSummary(ApiModel):
    id: uuid.UUID
    url: str
    status: PaymentStatus
    amount: int
    payment_method: str | None = None
    paid_at: datetime | None = None
    expires_at: datetime | None = None


class OrderMerchantSummary(ApiModel):
    id: uuid.UUID
    name: str
    merchant_number: int
    phone_number: str
    whatsapp_url: str | None = None


class OrderDetail(OrderOut):
    merchant: OrderMerchantSummary | None = None
    payment: OrderPaymentSummary | None = None
    payment_status: PaymentStatus = PaymentStatus.UNPAID


class ManagedOrderOut(OrderOut):
    merchant_name: str | None = None
    payment_status: PaymentStatus = PaymentStatus.UNPAID


class OrderStatusOut(ApiModel):
    id: uuid.UUID
    status: OrderStatus
    total_amount: int
    merchant_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class OrderStatusUpdate(ApiModel):
    # Plain string so unknown values reach the handler and get a descriptive 400.
    status: str


class OrderCancelRequest(ApiModel):
    session_id: str = Field(min_length=1)


class DashboardOrdersData(ApiModel):
    orders: list[ManagedOrderOut]
    status_counts: dict[str, int]
