import uuid

from pydantic import Field, field_validator

from foodcourt.schemas.common import ApiModel


class AdminLoginRequest(ApiModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminMe(ApiModel):
    admin_id: uuid.UUID
    username: str
    name: str
    login_time: str | None = None


class AdminProfileUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    username: str | None = Field(default=None, min_length=3, max_length=50)

    @field_validator("name", "username", mode="before")
    @classmethod
    def strip_strings(cls, value):
        return value.strip() if isinstance(value, str) else value


class AdminAuthCheck(ApiModel):
    authenticated: bool
    username: str
