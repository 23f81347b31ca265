import uuid
from datetime import datetime

from pydantic import Field, field_validator

from foodcourt.schemas.common import E164_PHONE_PATTERN, ApiModel, strip_optional


class MerchantRegisterRequest(ApiModel):
    phone_number: str = Field(pattern=E164_PHONE_PATTERN)
    password: str = Field(min_length=8, max_length=100)
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None

    @field_validator("phone_number", "name", mode="before")
    @classmethod
    def strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", "image_url")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        return strip_optional(value)


class MerchantCreateRequest(MerchantRegisterRequest):
    is_available: bool = True


class MerchantLoginRequest(ApiModel):
    phone_number: str = Field(min_length=1)
    password: str = Field(min_length=1)


class MerchantProfileUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    image_url: str | None = None
    is_available: bool | None = None


class PasswordChangeRequest(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=100)


class MerchantOut(ApiModel):
    id: uuid.UUID
    phone_number: str
    merchant_number: int
    name: str
    description: str | None
    image_url: str | None
    is_available: bool
    created_at: datetime
    updated_at: datetime


class PublicMerchantOut(ApiModel):
    id: uuid.UUID
    merchant_number: int
    name: str
    description: str | None
    image_url: str | None
    phone_number: str
    is_available: bool
    whatsapp_url: str | None = None


class MerchantsListData(ApiModel):
    merchants: list[PublicMerchantOut]
