from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from foodcourt.db.session import get_db
from foodcourt.errors import gateway_http_exception
from foodcourt.integrations.errors import IntegrationError
from foodcourt.integrations.xendit_client import XenditClientProtocol, get_xendit_client
from foodcourt.schemas.common import Envelope
from foodcourt.schemas.payment import BatchPaymentResult, PaymentCreateRequest, PaymentOut
from foodcourt.services import payment_service

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post(
    "/create",
    response_model=Envelope[BatchPaymentResult],
    status_code=status.HTTP_201_CREATED,
    summary="Create payment records for one or more orders",
)
def create_payments_endpoint(
    payload: PaymentCreateRequest, db: Session = Depends(get_db)
) -> Envelope[BatchPaymentResult]:
    payments = payment_service.create_batch_payments(db, payload.order_ids or [])
    return Envelope(
        data=BatchPaymentResult(
            payments=[PaymentOut.model_validate(payment) for payment in payments],
            total_amount=sum(payment.amount for payment in payments),
        ),
        message=f"Created {len(payments)} payment(s)",
    )


@router.get("/{payment_id}", response_model=Envelope[PaymentOut], summary="Get payment")
def get_payment_endpoint(
    payment_id: str,
    sync: bool = Query(default=False),
    db: Session = Depends(get_db),
    client: XenditClientProtocol = Depends(get_xendit_client),
) -> Envelope[PaymentOut]:
    if not sync:
        return Envelope(data=PaymentOut.model_validate(payment_service.get_payment(db, payment_id)))
    try:
        outcome = payment_service.sync_payment_with_gateway(db, payment_id, client)
    except IntegrationError as err:
        raise gateway_http_exception(err) from err
    return Envelope(data=PaymentOut.model_validate(outcome.payment))
