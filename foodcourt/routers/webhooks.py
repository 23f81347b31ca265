import json

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from foodcourt.db.session import get_db
from foodcourt.schemas.common import Envelope
from foodcourt.schemas.payment import WebhookResult, XenditWebhookPayload
from foodcourt.services import payment_service

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


async def raw_body(request: Request) -> bytes:
    return await request.body()


def _decode_callback(body: bytes) -> dict:
    try:
        decoded = json.loads(body)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body"
        ) from err
    if not isinstance(decoded, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook body must be an object"
        )
    return decoded


@router.post("/xendit", response_model=Envelope[WebhookResult], summary="Xendit invoice callback")
def xendit_webhook_endpoint(
    body: bytes = Depends(raw_body),
    callback_token: str | None = Header(default=None, alias="x-callback-token"),
    db: Session = Depends(get_db),
) -> Envelope[WebhookResult]:
    # The token is checked before the body is parsed.
    payment_service.verify_callback_token(callback_token)
    data = _decode_callback(body)

    try:
        payload = XenditWebhookPayload.model_validate(data)
    except ValidationError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        ) from err

    outcome = payment_service.process_invoice_callback(
        db,
        invoice_id=payload.id,
        gateway_status=payload.status,
        payment_method=payload.payment_method,
        paid_at=payload.paid_at,
        raw_payload=data,
    )
    return Envelope(
        data=WebhookResult(
            payment_id=outcome.payment.id,
            status=outcome.payment.status,
            order_ids=outcome.order_ids,
            updated_order_ids=outcome.updated_order_ids,
        ),
        message="Webhook processed successfully",
    )
