import uuid
from datetime import datetime

from pydantic import Field

from foodcourt.models.common import MAX_LINE_QUANTITY
from foodcourt.schemas.common import ApiModel


class SessionCreate(ApiModel):
    table_number: int | None = Field(default=None, ge=1, le=999)


class SessionUpdate(ApiModel):
    table_number: int = Field(ge=1, le=999)


class SessionOut(ApiModel):
    id: uuid.UUID
    table_number: int | None
    created_at: datetime
    updated_at: datetime


class CartItemCreate(ApiModel):
    menu_id: uuid.UUID
    quantity: int = Field(default=1, ge=1, le=MAX_LINE_QUANTITY)
    notes: str | None = Field(default=None, max_length=500)


class CartBulkRequest(ApiModel):
    items: list[CartItemCreate] = Field(min_length=1)


class CartItemOut(ApiModel):
    id: uuid.UUID
    session_id: uuid.UUID
    merchant_id: uuid.UUID
    menu_id: uuid.UUID
    menu_name: str | None = None
    menu_image_url: str | None = None
    quantity: int
    price_snapshot: int
    subtotal: int
    notes: str | None


class CartData(ApiModel):
    items: list[CartItemOut]
    total_amount: int
    total_items: int


class SessionDetail(ApiModel):
    session: SessionOut
    cart: CartData
