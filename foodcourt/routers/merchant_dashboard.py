from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from foodcourt.auth.dependencies import require_merchant
from foodcourt.db.session import get_db
from foodcourt.dependencies import PageParams, page_params
from foodcourt.models.merchant import Merchant
from foodcourt.schemas.common import Envelope, PaginationMeta
from foodcourt.schemas.dashboard import MerchantStats
from foodcourt.schemas.order import (
    DashboardOrdersData,
    ManagedOrderOut,
    OrderStatusOut,
    OrderStatusUpdate,
)
from foodcourt.services import order_service, stats_service
from foodcourt.services.state_machine import parse_order_status

router = APIRouter(prefix="/api/merchants/dashboard", tags=["merchant-dashboard"])


@router.get("/orders", response_model=Envelope[DashboardOrdersData], summary="Merchant orders")
def dashboard_orders_endpoint(
    status_filter: str | None = Query(default=None, alias="status"),
    pagination: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
) -> Envelope[DashboardOrdersData]:
    parsed_status = parse_order_status(status_filter) if status_filter else None
    page, status_counts = order_service.merchant_orders_page(
        db,
        merchant.id,
        page=pagination.page,
        page_size=pagination.page_size,
        status_filter=parsed_status,
    )
    orders = [row[0] for row in page.rows]
    payloads = order_service.order_payloads(db, orders, merchant_names={merchant.id: merchant.name})
    return Envelope(
        data=DashboardOrdersData(
            orders=[ManagedOrderOut.model_validate(payload) for payload in payloads],
            status_counts=status_counts,
        ),
        pagination=PaginationMeta.build(page.page, page.page_size, page.total_count),
    )


@router.get("/stats", response_model=Envelope[MerchantStats], summary="Merchant statistics")
def dashboard_stats_endpoint(
    db: Session = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
) -> Envelope[MerchantStats]:
    stats = stats_service.merchant_dashboard_stats(db, merchant.id)
    return Envelope(data=MerchantStats.model_validate(stats))


@router.patch(
    "/orders/{order_id}/status",
    response_model=Envelope[OrderStatusOut],
    summary="Update status of an order containing this merchant's menus",
)
def dashboard_update_status_endpoint(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
) -> Envelope[OrderStatusOut]:
    order = order_service.update_merchant_order_status(db, merchant.id, order_id, payload.status)
    return Envelope(data=OrderStatusOut.model_validate(order), message="Order status updated")


@router.patch(
    "/orders/{order_id}/payment",
    response_model=Envelope[OrderStatusOut],
    summary="Mark an order as paid in cash",
)
def dashboard_mark_paid_endpoint(
    order_id: str,
    db: Session = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
) -> Envelope[OrderStatusOut]:
    order = order_service.get_merchant_owned_order(db, merchant.id, order_id)
    order = order_service.mark_order_paid(db, order)
    return Envelope(data=OrderStatusOut.model_validate(order), message="Order marked as paid")
