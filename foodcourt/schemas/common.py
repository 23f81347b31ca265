import math
import re
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Accepts camelCase or snake_case keys and serializes as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationMeta(ApiModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int

    @classmethod
    def build(cls, page: int, page_size: int, total_count: int) -> "PaginationMeta":
        total_pages = math.ceil(total_count / page_size) if page_size else 0
        return cls(
            page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=total_pages,
        )


class Envelope(ApiModel, Generic[T]):
    success: bool = True
    data: T
    message: str | None = None
    pagination: PaginationMeta | None = None


class MessageData(ApiModel):
    message: str


E164_PHONE_PATTERN = r"^\+[1-9]\d{1,14}$"
_CUSTOMER_PHONE_RE = re.compile(r"^(\+62|62|0)?[0-9]{9,13}$")


def strip_optional(value: str | None) -> str | None:
    if value is None:
        return value
    value = value.strip()
    return value or None


def normalize_customer_phone(value: str | None) -> str | None:
    """Indonesian customer phone numbers: +62 / 62 / 0 prefix, 10-15 digits in total."""
    if value is None:
        return None
    cleaned = re.sub(r"[\s\-()]", "", value)
    if not cleaned:
        return None
    digits = re.sub(r"\D", "", cleaned)
    if not _CUSTOMER_PHONE_RE.match(cleaned) or not 10 <= len(digits) <= 15:
        raise ValueError("Invalid phone number format")
    return cleaned
