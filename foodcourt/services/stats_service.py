from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from foodcourt.models.common import ensure_aware, now_utc
from foodcourt.models.menu import Menu, MenuCategory
from foodcourt.models.merchant import Merchant
from foodcourt.models.order import Order, OrderStatus
from foodcourt.services.order_service import merchant_names_for, order_payloads, order_status_counts

MERCHANT_REVENUE_DAYS = 7
ADMIN_REVENUE_DAYS = 30
RECENT_ORDERS_LIMIT = 10


def _count(db: Session, statement) -> int:
    return db.scalar(statement) or 0


def _order_filters(merchant_id: uuid.UUID | None) -> list:
    filters = [Order.deleted_at.is_(None)]
    if merchant_id is not None:
        filters.append(Order.merchant_id == merchant_id)
    return filters


def _completed_revenue(db: Session, merchant_id: uuid.UUID | None) -> int:
    statement = select(func.coalesce(func.sum(Order.total_amount), 0)).where(
        *_order_filters(merchant_id), Order.status == OrderStatus.COMPLETED
    )
    return int(db.scalar(statement) or 0)


def revenue_by_day(
    db: Session,
    days: int,
    merchant_id: uuid.UUID | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Per-day order counts and completed revenue for the trailing window, oldest first.

    Bucketed in Python so SQLite and Postgres agree on day boundaries (UTC).
    """
    end_day = today or now_utc().date()
    start_day = end_day - timedelta(days=days - 1)
    start = datetime.combine(start_day, datetime.min.time()).replace(tzinfo=now_utc().tzinfo)

    buckets: dict[date, dict[str, Any]] = {
        start_day + timedelta(days=offset): {"revenue": 0, "orders": 0} for offset in range(days)
    }
    statement = select(Order.created_at, Order.status, Order.total_amount).where(
        *_order_filters(merchant_id), Order.created_at >= start
    )
    for created_at, order_status, total_amount in db.execute(statement):
        bucket = buckets.get(ensure_aware(created_at).date())
        if bucket is None:
            continue
        if order_status != OrderStatus.CANCELLED:
            bucket["orders"] += 1
        if order_status == OrderStatus.COMPLETED:
            bucket["revenue"] += total_amount

    return [
        {"date": day.isoformat(), "revenue": values["revenue"], "orders": values["orders"]}
        for day, values in sorted(buckets.items())
    ]


def merchant_dashboard_stats(db: Session, merchant_id: uuid.UUID) -> dict[str, Any]:
    by_status = order_status_counts(db, merchant_id)
    active_menus = [Menu.merchant_id == merchant_id, Menu.deleted_at.is_(None)]
    return {
        "total_orders": sum(by_status.values()),
        "total_revenue": _completed_revenue(db, merchant_id),
        "pending_orders": by_status[OrderStatus.PENDING.value],
        "completed_orders": by_status[OrderStatus.COMPLETED.value],
        "total_menus": _count(db, select(func.count(Menu.id)).where(*active_menus)),
        "available_menus": _count(
            db, select(func.count(Menu.id)).where(*active_menus, Menu.is_available.is_(True))
        ),
        "total_categories": _count(
            db,
            select(func.count(MenuCategory.id)).where(
                MenuCategory.merchant_id == merchant_id, MenuCategory.deleted_at.is_(None)
            ),
        ),
        "orders_by_status": by_status,
        "revenue_by_day": revenue_by_day(db, MERCHANT_REVENUE_DAYS, merchant_id),
    }


def admin_dashboard_stats(db: Session) -> dict[str, Any]:
    by_status = order_status_counts(db)
    recent = list(
        db.scalars(
            select(Order)
            .where(Order.deleted_at.is_(None))
            .order_by(Order.created_at.desc())
            .limit(RECENT_ORDERS_LIMIT)
        )
    )
    names = merchant_names_for(db, {order.merchant_id for order in recent})
    active_merchants = [Merchant.deleted_at.is_(None)]
    return {
        "total_orders": sum(by_status.values()),
        "total_revenue": _completed_revenue(db, None),
        "pending_orders": by_status[OrderStatus.PENDING.value],
        "completed_orders": by_status[OrderStatus.COMPLETED.value],
        "total_merchants": _count(db, select(func.count(Merchant.id)).where(*active_merchants)),
        "active_merchants": _count(
            db,
            select(func.count(Merchant.id)).where(
                *active_merchants, Merchant.is_available.is_(True)
            ),
        ),
        "total_menus": _count(db, select(func.count(Menu.id)).where(Menu.deleted_at.is_(None))),
        "total_categories": _count(
            db, select(func.count(MenuCategory.id)).where(MenuCategory.deleted_at.is_(None))
        ),
        "orders_by_status": by_status,
        "revenue_by_day": revenue_by_day(db, ADMIN_REVENUE_DAYS),
        "recent_orders": order_payloads(db, recent, merchant_names=names),
    }
