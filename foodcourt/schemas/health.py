from typing import Literal

from pydantic import Field

from foodcourt.schemas.common import ApiModel


class HealthResponse(ApiModel):
    status: Literal["ok"]
    service: str
    payment_gateway_configured: bool = Field(
        description="Whether an invoice API key is set; invoices fail with 502 when it is not"
    )


class ReadinessDependency(ApiModel):
    name: Literal["database", "schema"]
    status: Literal["ok", "error"]


class ReadinessResponse(ApiModel):
    status: Literal["ok", "degraded"]
    dependencies: list[ReadinessDependency]
