import uuid

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from foodcourt.auth.dependencies import (
    ADMIN_REALM_HEADERS,
    ADMIN_SESSION_COOKIE,
    AuthContext,
    parse_basic_credentials,
    require_admin,
)
from foodcourt.auth.tokens import issue_session_token
from foodcourt.config import settings
from foodcourt.db.session import get_db
from foodcourt.dependencies import PageParams, page_params
from foodcourt.errors import ErrorCode, api_error
from foodcourt.models.common import now_utc
from foodcourt.schemas.admin import AdminAuthCheck, AdminLoginRequest, AdminMe, AdminProfileUpdate
from foodcourt.schemas.common import Envelope, MessageData, PaginationMeta
from foodcourt.schemas.dashboard import AdminStats
from foodcourt.schemas.menu import (
    AdminCategoryCreate,
    AdminCategoryOut,
    AdminMenuCreate,
    AdminMenuOut,
    AvailabilityUpdate,
    MenuUpdate,
)
from foodcourt.schemas.merchant import MerchantCreateRequest, MerchantOut, PasswordChangeRequest
from foodcourt.schemas.order import ManagedOrderOut, OrderStatusOut, OrderStatusUpdate
from foodcourt.schemas.payment import PaymentStatusUpdate
from foodcourt.services import (
    admin_service,
    catalog_service,
    merchant_service,
    order_service,
    stats_service,
)
from foodcourt.services.lookups import get_active_category, get_active_menu
from foodcourt.services.state_machine import parse_order_status

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _admin_me(auth: AuthContext, db: Session) -> AdminMe:
    admin = admin_service.get_admin(db, auth.user_id)
    return AdminMe(
        admin_id=admin.id,
        username=admin.username,
        name=admin.name,
        login_time=auth.login_time,
    )


def _menu_out(menu, category_name: str | None, merchant_name: str | None) -> AdminMenuOut:
    out = AdminMenuOut.model_validate(menu)
    out.category_name = category_name
    out.merchant_name = merchant_name
    return out


def _menu_names(db: Session, menu) -> tuple[str | None, str | None]:
    names = order_service.merchant_names_for(db, {menu.merchant_id})
    return catalog_service.category_name(db, menu), names.get(menu.merchant_id)


# Session


@router.post("/login", response_model=Envelope[AdminMe], summary="Admin login")
def login_endpoint(
    payload: AdminLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> Envelope[AdminMe]:
    admin = admin_service.authenticate_admin(db, payload.username, payload.password)
    if admin is None:
        raise api_error(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid username or password",
            code=ErrorCode.INVALID_CREDENTIALS,
        )

    login_time = now_utc().isoformat()
    token = issue_session_token(
        {"adminId": str(admin.id), "username": admin.username, "loginTime": login_time},
        settings.session_secret,
        settings.admin_session_ttl_s,
    )
    response.set_cookie(
        ADMIN_SESSION_COOKIE,
        token,
        max_age=settings.admin_session_ttl_s,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    return Envelope(
        data=AdminMe(
            admin_id=admin.id, username=admin.username, name=admin.name, login_time=login_time
        ),
        message="Login successful",
    )


@router.post("/logout", response_model=Envelope[MessageData], summary="Admin logout")
def logout_endpoint(response: Response) -> Envelope[MessageData]:
    response.delete_cookie(ADMIN_SESSION_COOKIE, path="/")
    return Envelope(data=MessageData(message="Logged out"))


@router.get("/me", response_model=Envelope[AdminMe], summary="Current admin")
def me_endpoint(
    db: Session = Depends(get_db), auth: AuthContext = Depends(require_admin)
) -> Envelope[AdminMe]:
    return Envelope(data=_admin_me(auth, db))


@router.get("/auth", response_model=Envelope[AdminAuthCheck], summary="HTTP Basic check")
def basic_auth_endpoint(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Envelope[AdminAuthCheck]:
    credentials = parse_basic_credentials(authorization)
    admin = admin_service.authenticate_admin(db, *credentials) if credentials else None
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers=ADMIN_REALM_HEADERS,
        )
    return Envelope(data=AdminAuthCheck(authenticated=True, username=admin.username))


@router.put("/profile", response_model=Envelope[AdminMe], summary="Update admin profile")
def update_profile_endpoint(
    payload: AdminProfileUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
) -> Envelope[AdminMe]:
    admin_service.update_admin_profile(
        db, auth.user_id, name=payload.name, username=payload.username
    )
    return Envelope(data=_admin_me(auth, db), message="Profile updated")


@router.put(
    "/profile/password", response_model=Envelope[MessageData], summary="Change admin password"
)
def change_password_endpoint(
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
) -> Envelope[MessageData]:
    admin_service.change_admin_password(
        db,
        auth.user_id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return Envelope(data=MessageData(message="Password updated"))


# Merchants


@router.get("/merchants", response_model=Envelope[list[MerchantOut]], summary="List merchants")
def list_merchants_endpoint(
    search: str | None = Query(default=None),
    pagination: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[list[MerchantOut]]:
    page = merchant_service.list_merchants_page(
        db, page=pagination.page, page_size=pagination.page_size, search=search
    )
    return Envelope(
        data=[MerchantOut.model_validate(row[0]) for row in page.rows],
        pagination=PaginationMeta.build(page.page, page.page_size, page.total_count),
    )


@router.post(
    "/merchants/create",
    response_model=Envelope[MerchantOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create merchant",
)
def create_merchant_endpoint(
    payload: MerchantCreateRequest,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[MerchantOut]:
    merchant = merchant_service.create_merchant(db, **payload.model_dump())
    return Envelope(data=MerchantOut.model_validate(merchant), message="Merchant created")


@router.delete(
    "/merchants/{merchant_id}", response_model=Envelope[MessageData], summary="Delete merchant"
)
def delete_merchant_endpoint(
    merchant_id: str,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[MessageData]:
    merchant_service.soft_delete_merchant(db, merchant_id)
    return Envelope(data=MessageData(message="Merchant deleted"))


@router.patch(
    "/merchants/{merchant_id}/availability",
    response_model=Envelope[MerchantOut],
    summary="Open or close a merchant",
)
def merchant_availability_endpoint(
    merchant_id: str,
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[MerchantOut]:
    merchant = merchant_service.set_merchant_availability(db, merchant_id, payload.is_available)
    return Envelope(data=MerchantOut.model_validate(merchant), message="Availability updated")


# Menus


@router.get("/menus", response_model=Envelope[list[AdminMenuOut]], summary="List menus")
def list_menus_endpoint(
    merchant_id: uuid.UUID | None = Query(default=None, alias="merchantId"),
    search: str | None = Query(default=None),
    pagination: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[list[AdminMenuOut]]:
    page = catalog_service.list_menus_page(
        db,
        page=pagination.page,
        page_size=pagination.page_size,
        merchant_id=merchant_id,
        search=search,
    )
    return Envelope(
        data=[
            _menu_out(menu, category_name, merchant_name)
            for menu, category_name, merchant_name in page.rows
        ],
        pagination=PaginationMeta.build(page.page, page.page_size, page.total_count),
    )


@router.post(
    "/menus/create",
    response_model=Envelope[AdminMenuOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create menu for a merchant",
)
def create_menu_endpoint(
    payload: AdminMenuCreate,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[AdminMenuOut]:
    fields = payload.model_dump()
    merchant_id = fields.pop("merchant_id")
    menu = catalog_service.create_menu(db, merchant_id, **fields)
    return Envelope(data=_menu_out(menu, *_menu_names(db, menu)), message="Menu created")


@router.patch("/menus/{menu_id}", response_model=Envelope[AdminMenuOut], summary="Update menu")
def update_menu_endpoint(
    menu_id: str,
    payload: MenuUpdate,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[AdminMenuOut]:
    menu = get_active_menu(db, menu_id)
    menu = catalog_service.update_menu(db, menu, payload.model_dump(exclude_unset=True))
    return Envelope(data=_menu_out(menu, *_menu_names(db, menu)), message="Menu updated")


@router.delete("/menus/{menu_id}", response_model=Envelope[MessageData], summary="Delete menu")
def delete_menu_endpoint(
    menu_id: str,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[MessageData]:
    catalog_service.delete_menu(db, get_active_menu(db, menu_id))
    return Envelope(data=MessageData(message="Menu deleted"))


@router.patch(
    "/menus/{menu_id}/availability",
    response_model=Envelope[AdminMenuOut],
    summary="Toggle menu availability",
)
def menu_availability_endpoint(
    menu_id: str,
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[AdminMenuOut]:
    menu = catalog_service.set_menu_availability(db, menu_id, payload.is_available)
    return Envelope(data=_menu_out(menu, *_menu_names(db, menu)), message="Availability updated")


# Categories


@router.get(
    "/categories", response_model=Envelope[list[AdminCategoryOut]], summary="List categories"
)
def list_categories_endpoint(
    merchant_id: uuid.UUID | None = Query(default=None, alias="merchantId"),
    pagination: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[list[AdminCategoryOut]]:
    page = catalog_service.list_categories_page(
        db, page=pagination.page, page_size=pagination.page_size, merchant_id=merchant_id
    )
    data = []
    for category, merchant_name, menu_count in page.rows:
        out = AdminCategoryOut.model_validate(category)
        out.merchant_name = merchant_name
        out.menu_count = menu_count
        data.append(out)
    return Envelope(
        data=data, pagination=PaginationMeta.build(page.page, page.page_size, page.total_count)
    )


@router.post(
    "/categories/create",
    response_model=Envelope[AdminCategoryOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create category for a merchant",
)
def create_category_endpoint(
    payload: AdminCategoryCreate,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[AdminCategoryOut]:
    category = catalog_service.create_category(db, payload.merchant_id, payload.name)
    out = AdminCategoryOut.model_validate(category)
    out.merchant_name = order_service.merchant_names_for(db, {category.merchant_id}).get(
        category.merchant_id
    )
    return Envelope(data=out, message="Category created")


@router.delete(
    "/categories/{category_id}", response_model=Envelope[MessageData], summary="Delete category"
)
def delete_category_endpoint(
    category_id: str,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[MessageData]:
    category = get_active_category(db, category_id)
    catalog_service.delete_category(db, category)
    return Envelope(data=MessageData(message="Category deleted"))


# Orders


@router.get("/orders", response_model=Envelope[list[ManagedOrderOut]], summary="List orders")
def list_orders_endpoint(
    status_filter: str | None = Query(default=None, alias="status"),
    merchant_id: uuid.UUID | None = Query(default=None, alias="merchantId"),
    pagination: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[list[ManagedOrderOut]]:
    page = order_service.admin_orders_page(
        db,
        page=pagination.page,
        page_size=pagination.page_size,
        status_filter=parse_order_status(status_filter) if status_filter else None,
        merchant_id=merchant_id,
    )
    orders = [order for order, _merchant_name in page.rows]
    names = {order.merchant_id: merchant_name for order, merchant_name in page.rows}
    payloads = order_service.order_payloads(db, orders, merchant_names=names)
    return Envelope(
        data=[ManagedOrderOut.model_validate(payload) for payload in payloads],
        pagination=PaginationMeta.build(page.page, page.page_size, page.total_count),
    )


@router.patch(
    "/orders/{order_id}/status",
    response_model=Envelope[OrderStatusOut],
    summary="Set any order's status",
)
def update_order_status_endpoint(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[OrderStatusOut]:
    order = order_service.admin_update_order_status(db, order_id, payload.status)
    return Envelope(data=OrderStatusOut.model_validate(order), message="Order status updated")


@router.patch(
    "/orders/{order_id}/payment",
    response_model=Envelope[OrderStatusOut],
    summary="Set an order's payment status",
)
def update_order_payment_endpoint(
    order_id: str,
    payload: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[OrderStatusOut]:
    order = order_service.set_admin_payment_status(db, order_id, payload.status == "paid")
    return Envelope(
        data=OrderStatusOut.model_validate(order), message=f"Order marked as {payload.status}"
    )


# Dashboard


@router.get("/dashboard/stats", response_model=Envelope[AdminStats], summary="Platform statistics")
def dashboard_stats_endpoint(
    db: Session = Depends(get_db),
    _admin: AuthContext = Depends(require_admin),
) -> Envelope[AdminStats]:
    return Envelope(data=AdminStats.model_validate(stats_service.admin_dashboard_stats(db)))
