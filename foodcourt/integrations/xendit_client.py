from datetime import datetime
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from foodcourt.config import settings
from foodcourt.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)

SERVICE_NAME = "xendit"
PAYER_EMAIL_DOMAIN = "ngantri.app"


class InvoiceItem(BaseModel):
    name: str
    quantity: int = Field(ge=1)
    price: int = Field(ge=0)


class InvoiceRequest(BaseModel):
    external_id: str
    amount: int = Field(ge=0)
    description: str
    success_redirect_url: str
    failure_redirect_url: str
    invoice_duration_s: int
    customer_name: str | None = None
    customer_phone: str | None = None
    payer_email: str | None = None
    items: list[InvoiceItem] = Field(default_factory=list)
    currency: str = "IDR"


class Invoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    invoice_url: str = ""
    external_id: str | None = None
    amount: float | None = None
    expiry_date: datetime | None = None


class XenditClientProtocol(Protocol):
    def create_invoice(self, request: InvoiceRequest) -> Invoice: ...

    def get_invoice(self, invoice_id: str) -> Invoice: ...

    def expire_invoice(self, invoice_id: str) -> Invoice: ...


def _invoice_payload(request: InvoiceRequest) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "external_id": request.external_id,
        "amount": request.amount,
        "payer_email": request.payer_email or f"{request.external_id}@{PAYER_EMAIL_DOMAIN}",
        "description": request.description,
        "invoice_duration": request.invoice_duration_s,
        "success_redirect_url": request.success_redirect_url,
        "failure_redirect_url": request.failure_redirect_url,
        "currency": request.currency,
        "items": [item.model_dump() for item in request.items],
    }
    customer: dict[str, str] = {}
    if request.customer_name:
        customer["given_names"] = request.customer_name
    if request.customer_phone:
        customer["mobile_number"] = request.customer_phone
    if customer:
        payload["customer"] = customer
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error_code = body.get("error_code", "UNKNOWN_ERROR")
        message = body.get("message", f"HTTP {response.status_code}")
        return f"Xendit API Error: {error_code} - {message}"
    return f"Xendit API returned {response.status_code}"


class XenditClient:
    """Hosted invoice API client. Failures surface immediately; there is no retry."""

    def __init__(self, api_key: str, base_url: str, timeout_s: float) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict:
        if not self.api_key:
            raise IntegrationUnavailableError(SERVICE_NAME, "Payment gateway is not configured")

        timeout = httpx.Timeout(
            connect=self.timeout_s,
            read=self.timeout_s,
            write=self.timeout_s,
            pool=self.timeout_s,
        )
        try:
            with httpx.Client(timeout=timeout, auth=(self.api_key, "")) as client:
                response = client.request(method, f"{self.base_url}{path}", json=json)
        except httpx.TimeoutException as err:
            raise IntegrationTimeoutError(SERVICE_NAME) from err
        except httpx.TransportError as err:
            raise IntegrationUnavailableError(SERVICE_NAME, str(err)) from err

        if response.status_code >= 500:
            raise IntegrationUnavailableError(
                SERVICE_NAME, f"Xendit API returned {response.status_code}"
            )
        if response.status_code >= 400:
            raise IntegrationBadGatewayError(SERVICE_NAME, _error_message(response))

        try:
            payload = response.json()
        except ValueError as err:
            raise IntegrationBadGatewayError(
                SERVICE_NAME, "Xendit API returned malformed payload"
            ) from err
        if not isinstance(payload, dict):
            raise IntegrationBadGatewayError(SERVICE_NAME, "Xendit API returned malformed payload")
        return payload

    def _invoice(self, payload: dict) -> Invoice:
        try:
            return Invoice.model_validate(payload)
        except ValidationError as err:
            raise IntegrationBadGatewayError(
                SERVICE_NAME, "Xendit API returned malformed invoice"
            ) from err

    def create_invoice(self, request: InvoiceRequest) -> Invoice:
        return self._invoice(self._request("POST", "/v2/invoices", json=_invoice_payload(request)))

    def get_invoice(self, invoice_id: str) -> Invoice:
        return self._invoice(self._request("GET", f"/v2/invoices/{invoice_id}"))

    def expire_invoice(self, invoice_id: str) -> Invoice:
        return self._invoice(self._request("POST", f"/invoices/{invoice_id}/expire!"))


def get_xendit_client() -> XenditClientProtocol:
    return XenditClient(
        settings.xendit_api_key,
        base_url=settings.xendit_base_url,
        timeout_s=settings.xendit_timeout_s,
    )
