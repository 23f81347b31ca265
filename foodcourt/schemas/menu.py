import uuid
from datetime import datetime

from pydantic import Field, StrictBool, field_validator

from foodcourt.schemas.common import ApiModel, strip_optional


class CategoryCreate(ApiModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class CategoryUpdate(CategoryCreate):
    pass


class AdminCategoryCreate(CategoryCreate):
    merchant_id: uuid.UUID


class CategoryOut(ApiModel):
    id: uuid.UUID
    merchant_id: uuid.UUID
    name: str
    menu_count: int = 0
    created_at: datetime
    updated_at: datetime


class AdminCategoryOut(CategoryOut):
    merchant_name: str | None = None


class MenuCreate(ApiModel):
    category_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    price: int = Field(ge=0)
    image_url: str | None = None
    is_available: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", "image_url")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        return strip_optional(value)


class AdminMenuCreate(MenuCreate):
    merchant_id: uuid.UUID


class MenuUpdate(ApiModel):
    category_id: uuid.UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    price: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    is_available: bool | None = None


class AvailabilityUpdate(ApiModel):
    is_available: StrictBool


class MenuOut(ApiModel):
    id: uuid.UUID
    merchant_id: uuid.UUID
    category_id: uuid.UUID
    category_name: str | None = None
    name: str
    description: str | None
    price: int
    image_url: str | None
    is_available: bool
    created_at: datetime
    updated_at: datetime


class AdminMenuOut(MenuOut):
    merchant_name: str | None = None
