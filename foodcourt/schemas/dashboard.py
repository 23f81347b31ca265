from foodcourt.schemas.common import ApiModel
from foodcourt.schemas.order import ManagedOrderOut


class DailyRevenue(ApiModel):
    date: str
    revenue: int
    orders: int


class MerchantStats(ApiModel):
    total_orders: int
    total_revenue: int
    pending_orders: int
    completed_orders: int
    total_menus: int
    available_menus: int
    total_categories: int
    orders_by_status: dict[str, int]
    revenue_by_day: list[DailyRevenue]


class AdminStats(ApiModel):
    total_orders: int
    total_revenue: int
    pending_orders: int
    completed_orders: int
    total_merchants: int
    active_merchants: int
    total_menus: int
    total_categories: int
    orders_by_status: dict[str, int]
    revenue_by_day: list[DailyRevenue]
    recent_orders: list[ManagedOrderOut]
