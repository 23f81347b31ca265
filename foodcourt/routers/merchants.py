import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from foodcourt.auth.dependencies import (
    ADMIN_ROLE,
    MERCHANT_ROLE,
    MERCHANT_SESSION_COOKIE,
    AuthContext,
    ensure_merchant_access,
    get_current_merchant,
    require_merchant,
    require_roles,
)
from foodcourt.config import settings
from foodcourt.db.session import get_db
from foodcourt.dependencies import PageParams, page_params
from foodcourt.models.merchant import Merchant
from foodcourt.schemas.common import Envelope, MessageData, PaginationMeta
from foodcourt.schemas.menu import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    MenuCreate,
    MenuOut,
    MenuUpdate,
)
from foodcourt.schemas.merchant import (
    MerchantLoginRequest,
    MerchantOut,
    MerchantProfileUpdate,
    MerchantRegisterRequest,
    MerchantsListData,
    PasswordChangeRequest,
    PublicMerchantOut,
)
from foodcourt.services import catalog_service, merchant_service
from foodcourt.services.lookups import resolve_uuid
from foodcourt.services.whatsapp import merchant_inquiry_message, whatsapp_link

router = APIRouter(prefix="/api/merchants", tags=["merchants"])

require_catalog_editor = require_roles(MERCHANT_ROLE, ADMIN_ROLE)


def _authorize_merchant(auth: AuthContext, merchant_id: str) -> uuid.UUID:
    resolved = resolve_uuid(merchant_id, "Merchant not found")
    ensure_merchant_access(auth, resolved)
    return resolved


def _public_merchant(merchant: Merchant) -> PublicMerchantOut:
    out = PublicMerchantOut.model_validate(merchant)
    out.whatsapp_url = whatsapp_link(
        merchant.phone_number, merchant_inquiry_message(merchant.name)
    )
    return out


def _category_out(category, menu_count: int) -> CategoryOut:
    out = CategoryOut.model_validate(category)
    out.menu_count = menu_count
    return out


def _menu_out(menu, category_name: str | None) -> MenuOut:
    out = MenuOut.model_validate(menu)
    out.category_name = category_name
    return out


@router.get("", response_model=Envelope[MerchantsListData], summary="List open merchants")
def list_merchants_endpoint(db: Session = Depends(get_db)) -> Envelope[MerchantsListData]:
    merchants = merchant_service.list_available_merchants(db)
    return Envelope(data=MerchantsListData(merchants=[_public_merchant(m) for m in merchants]))


@router.post(
    "/register",
    response_model=Envelope[MerchantOut],
    status_code=status.HTTP_201_CREATED,
    summary="Register merchant",
)
def register_endpoint(
    payload: MerchantRegisterRequest, db: Session = Depends(get_db)
) -> Envelope[MerchantOut]:
    merchant = merchant_service.create_merchant(
        db,
        phone_number=payload.phone_number,
        password=payload.password,
        name=payload.name,
        description=payload.description,
        image_url=payload.image_url,
    )
    return Envelope(
        data=MerchantOut.model_validate(merchant), message="Merchant registered successfully"
    )


@router.post("/login", response_model=Envelope[MerchantOut], summary="Merchant login")
def login_endpoint(
    payload: MerchantLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> Envelope[MerchantOut]:
    merchant = merchant_service.authenticate_merchant(db, payload.phone_number, payload.password)
    response.set_cookie(
        MERCHANT_SESSION_COOKIE,
        str(merchant.id),
        max_age=settings.merchant_session_ttl_s,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    return Envelope(data=MerchantOut.model_validate(merchant), message="Login successful")


@router.post("/logout", response_model=Envelope[MessageData], summary="Merchant logout")
def logout_endpoint(response: Response) -> Envelope[MessageData]:
    response.delete_cookie(MERCHANT_SESSION_COOKIE, path="/")
    return Envelope(data=MessageData(message="Logged out"))


@router.get("/me", response_model=Envelope[MerchantOut], summary="Current merchant")
def me_endpoint(merchant: Merchant | None = Depends(get_current_merchant)) -> Envelope[MerchantOut]:
    if merchant is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return Envelope(data=MerchantOut.model_validate(merchant))


@router.put("/profile", response_model=Envelope[MerchantOut], summary="Update merchant profile")
def update_profile_endpoint(
    payload: MerchantProfileUpdate,
    db: Session = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
) -> Envelope[MerchantOut]:
    updated = merchant_service.update_merchant_profile(
        db, merchant, payload.model_dump(exclude_unset=True)
    )
    return Envelope(data=MerchantOut.model_validate(updated), message="Profile updated")


@router.put(
    "/profile/password", response_model=Envelope[MessageData], summary="Change merchant password"
)
def change_password_endpoint(
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
) -> Envelope[MessageData]:
    merchant_service.change_merchant_password(
        db,
        merchant,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return Envelope(data=MessageData(message="Password updated"))


# Categories


@router.get(
    "/{merchant_id}/categories",
    response_model=Envelope[list[CategoryOut]],
    summary="List merchant categories",
)
def list_categories_endpoint(
    merchant_id: str, db: Session = Depends(get_db)
) -> Envelope[list[CategoryOut]]:
    rows = catalog_service.list_categories(db, merchant_id)
    return Envelope(data=[_category_out(category, count) for category, count in rows])


@router.post(
    "/{merchant_id}/categories",
    response_model=Envelope[CategoryOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
)
def create_category_endpoint(
    merchant_id: str,
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_catalog_editor),
) -> Envelope[CategoryOut]:
    resolved = _authorize_merchant(auth, merchant_id)
    category = catalog_service.create_category(db, resolved, payload.name)
    return Envelope(data=_category_out(category, 0), message="Category created")


@router.patch(
    "/{merchant_id}/categories/{category_id}",
    response_model=Envelope[CategoryOut],
    summary="Rename category",
)
def update_category_endpoint(
    merchant_id: str,
    category_id: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_catalog_editor),
) -> Envelope[CategoryOut]:
    resolved = _authorize_merchant(auth, merchant_id)
    category = catalog_service.get_merchant_category(db, resolved, category_id)
    category = catalog_service.rename_category(db, category, payload.name)
    menu_count = catalog_service.count_active_menus(db, category.id)
    return Envelope(data=_category_out(category, menu_count), message="Category updated")


@router.delete(
    "/{merchant_id}/categories/{category_id}",
    response_model=Envelope[MessageData],
    summary="Delete category",
)
def delete_category_endpoint(
    merchant_id: str,
    category_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_catalog_editor),
) -> Envelope[MessageData]:
    resolved = _authorize_merchant(auth, merchant_id)
    category = catalog_service.get_merchant_category(db, resolved, category_id)
    catalog_service.delete_category(db, category)
    return Envelope(data=MessageData(message="Category deleted"))


# Menus


@router.get(
    "/{merchant_id}/menus",
    response_model=Envelope[list[MenuOut]],
    summary="List merchant menus",
)
def list_menus_endpoint(
    merchant_id: str,
    category_id: uuid.UUID | None = Query(default=None, alias="categoryId"),
    available: bool = Query(default=False, alias="availableOnly"),
    pagination: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> Envelope[list[MenuOut]]:
    page = catalog_service.list_merchant_menus_page(
        db,
        merchant_id,
        page=pagination.page,
        page_size=pagination.page_size,
        category_id=category_id,
        available_only=available,
    )
    return Envelope(
        data=[_menu_out(menu, category_name) for menu, category_name in page.rows],
        pagination=PaginationMeta.build(page.page, page.page_size, page.total_count),
    )


@router.post(
    "/{merchant_id}/menus",
    response_model=Envelope[MenuOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create menu",
)
def create_menu_endpoint(
    merchant_id: str,
    payload: MenuCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_catalog_editor),
) -> Envelope[MenuOut]:
    resolved = _authorize_merchant(auth, merchant_id)
    menu = catalog_service.create_menu(db, resolved, **payload.model_dump())
    return Envelope(
        data=_menu_out(menu, catalog_service.category_name(db, menu)), message="Menu created"
    )


@router.patch(
    "/{merchant_id}/menus/{menu_id}",
    response_model=Envelope[MenuOut],
    summary="Update menu",
)
def update_menu_endpoint(
    merchant_id: str,
    menu_id: str,
    payload: MenuUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_catalog_editor),
) -> Envelope[MenuOut]:
    resolved = _authorize_merchant(auth, merchant_id)
    menu = catalog_service.get_merchant_menu(db, resolved, menu_id)
    menu = catalog_service.update_menu(db, menu, payload.model_dump(exclude_unset=True))
    return Envelope(
        data=_menu_out(menu, catalog_service.category_name(db, menu)), message="Menu updated"
    )


@router.delete(
    "/{merchant_id}/menus/{menu_id}",
    response_model=Envelope[MessageData],
    summary="Delete menu",
)
def delete_menu_endpoint(
    merchant_id: str,
    menu_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_catalog_editor),
) -> Envelope[MessageData]:
    resolved = _authorize_merchant(auth, merchant_id)
    menu = catalog_service.get_merchant_menu(db, resolved, menu_id)
    catalog_service.delete_menu(db, menu)
    return Envelope(data=MessageData(message="Menu deleted"))
