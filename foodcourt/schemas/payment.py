import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from foodcourt.models.payment import PaymentStatus
from foodcourt.schemas.common import ApiModel


class PaymentCreateRequest(ApiModel):
    order_ids: list[uuid.UUID] | None = None
    order_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def collect_order_ids(self) -> "PaymentCreateRequest":
        ids: list[uuid.UUID] = list(self.order_ids or [])
        if self.order_id is not None:
            ids.append(self.order_id)
        if not ids:
            raise ValueError("orderIds must contain at least one order id")
        self.order_ids = list(dict.fromkeys(ids))
        return self


class PaymentOut(ApiModel):
    id: uuid.UUID
    order_id: uuid.UUID | None
    xendit_invoice_id: str | None
    payment_url: str
    amount: int
    status: PaymentStatus
    payment_method: str | None
    paid_at: datetime | None
    expires_at: datetime | None
    created_at: datetime


class BatchPaymentResult(ApiModel):
    payments: list[PaymentOut]
    total_amount: int


class InvoicePaymentResult(ApiModel):
    payment: PaymentOut
    payment_url: str
    reused: bool


class PaymentStatusUpdate(ApiModel):
    status: Literal["paid", "unpaid"] = "paid"


class XenditWebhookPayload(BaseModel):
    """Invoice callback body; field names follow the gateway's snake_case format."""

    model_config = ConfigDict(extra="allow")

    id: str
    external_id: str | None = None
    status: str
    payment_method: str | None = None
    paid_at: datetime | None = None
    amount: float | None = None


class WebhookResult(ApiModel):
    payment_id: uuid.UUID
    status: PaymentStatus
    order_ids: list[uuid.UUID]
    updated_order_ids: list[uuid.UUID]
