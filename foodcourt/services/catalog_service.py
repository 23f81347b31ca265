import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foodcourt.models.menu import Menu, MenuCategory
from foodcourt.models.merchant import Merchant
from foodcourt.observability import log_event
from foodcourt.services.lookups import get_active_category, get_active_menu, get_active_merchant
from foodcourt.services.pagination import Page, paginate

_MENU_FIELDS = {"category_id", "name", "description", "price", "image_url", "is_available"}
_NON_NULLABLE_MENU_FIELDS = {"category_id", "name", "price", "is_available"}

DUPLICATE_CATEGORY_DETAIL = "Category name already exists for this merchant"


def _menu_count_column():
    return (
        select(func.count(Menu.id))
        .where(Menu.category_id == MenuCategory.id, Menu.deleted_at.is_(None))
        .correlate(MenuCategory)
        .scalar_subquery()
    )


def count_active_menus(db: Session, category_id: uuid.UUID) -> int:
    statement = select(func.count(Menu.id)).where(
        Menu.category_id == category_id, Menu.deleted_at.is_(None)
    )
    return db.scalar(statement) or 0


# Categories


def list_categories(db: Session, merchant_id: str | uuid.UUID) -> list[tuple[MenuCategory, int]]:
    merchant = get_active_merchant(db, merchant_id)
    statement = (
        select(MenuCategory, _menu_count_column())
        .where(MenuCategory.merchant_id == merchant.id, MenuCategory.deleted_at.is_(None))
        .order_by(MenuCategory.name)
    )
    return [(category, count) for category, count in db.execute(statement)]


def list_categories_page(
    db: Session,
    *,
    page: int,
    page_size: int,
    merchant_id: uuid.UUID | None = None,
) -> Page:
    statement = (
        select(MenuCategory, Merchant.name, _menu_count_column())
        .join(Merchant, Merchant.id == MenuCategory.merchant_id)
        .where(MenuCategory.deleted_at.is_(None))
        .order_by(Merchant.merchant_number, MenuCategory.name)
    )
    if merchant_id is not None:
        statement = statement.where(MenuCategory.merchant_id == merchant_id)
    return paginate(db, statement, page, page_size)


def _ensure_unique_category_name(
    db: Session,
    merchant_id: uuid.UUID,
    name: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    statement = select(MenuCategory.id).where(
        MenuCategory.merchant_id == merchant_id,
        func.lower(MenuCategory.name) == name.lower(),
        MenuCategory.deleted_at.is_(None),
    )
    if exclude_id is not None:
        statement = statement.where(MenuCategory.id != exclude_id)
    if db.scalar(statement) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_CATEGORY_DETAIL)


def _commit_category(db: Session, category: MenuCategory) -> MenuCategory:
    try:
        db.commit()
    except IntegrityError as err:
        # Partial unique index on (merchant_id, lower(name)) lost a race.
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_CATEGORY_DETAIL
        ) from err
    db.refresh(category)
    return category


def create_category(db: Session, merchant_id: str | uuid.UUID, name: str) -> MenuCategory:
    merchant = get_active_merchant(db, merchant_id)
    _ensure_unique_category_name(db, merchant.id, name)

    category = MenuCategory(merchant_id=merchant.id, name=name)
    db.add(category)
    _commit_category(db, category)
    log_event("category_created", merchant_id=str(merchant.id), category_id=str(category.id))
    return category


def get_merchant_category(
    db: Session, merchant_id: str | uuid.UUID, category_id: str | uuid.UUID
) -> MenuCategory:
    merchant = get_active_merchant(db, merchant_id)
    category = get_active_category(db, category_id)
    if category.merchant_id != merchant.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


def rename_category(db: Session, category: MenuCategory, name: str) -> MenuCategory:
    _ensure_unique_category_name(db, category.merchant_id, name, exclude_id=category.id)
    category.name = name
    _commit_category(db, category)
    log_event(
        "category_renamed",
        merchant_id=str(category.merchant_id),
        category_id=str(category.id),
    )
    return category


def delete_category(db: Session, category: MenuCategory) -> None:
    menu_count = count_active_menus(db, category.id)
    if menu_count > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "Cannot delete category that still has menus",
                "menuCount": menu_count,
            },
        )
    category.soft_delete()
    db.commit()
    log_event(
        "category_deleted",
        merchant_id=str(category.merchant_id),
        category_id=str(category.id),
    )


# Menus


def _category_for_merchant(
    db: Session, merchant_id: uuid.UUID, category_id: str | uuid.UUID
) -> MenuCategory:
    category = get_active_category(db, category_id)
    if category.merchant_id != merchant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category does not belong to this merchant",
        )
    return category


def list_merchant_menus_page(
    db: Session,
    merchant_id: str | uuid.UUID,
    *,
    page: int,
    page_size: int,
    category_id: uuid.UUID | None = None,
    available_only: bool = False,
) -> Page:
    merchant = get_active_merchant(db, merchant_id)
    statement = (
        select(Menu, MenuCategory.name)
        .outerjoin(MenuCategory, MenuCategory.id == Menu.category_id)
        .where(Menu.merchant_id == merchant.id, Menu.deleted_at.is_(None))
        .order_by(MenuCategory.name, Menu.name)
    )
    if category_id is not None:
        statement = statement.where(Menu.category_id == category_id)
    if available_only:
        statement = statement.where(Menu.is_available.is_(True))
    return paginate(db, statement, page, page_size)


def list_menus_page(
    db: Session,
    *,
    page: int,
    page_size: int,
    merchant_id: uuid.UUID | None = None,
    search: str | None = None,
) -> Page:
    statement = (
        select(Menu, MenuCategory.name, Merchant.name)
        .join(Merchant, Merchant.id == Menu.merchant_id)
        .outerjoin(MenuCategory, MenuCategory.id == Menu.category_id)
        .where(Menu.deleted_at.is_(None))
        .order_by(Merchant.merchant_number, Menu.name)
    )
    if merchant_id is not None:
        statement = statement.where(Menu.merchant_id == merchant_id)
    if search:
        statement = statement.where(Menu.name.ilike(f"%{search.strip()}%"))
    return paginate(db, statement, page, page_size)


def create_menu(
    db: Session,
    merchant_id: str | uuid.UUID,
    *,
    category_id: uuid.UUID,
    name: str,
    price: int,
    description: str | None = None,
    image_url: str | None = None,
    is_available: bool = True,
) -> Menu:
    merchant = get_active_merchant(db, merchant_id)
    category = _category_for_merchant(db, merchant.id, category_id)

    menu = Menu(
        merchant_id=merchant.id,
        category_id=category.id,
        name=name,
        description=description,
        price=price,
        image_url=image_url,
        is_available=is_available,
    )
    db.add(menu)
    db.commit()
    db.refresh(menu)
    log_event("menu_created", merchant_id=str(merchant.id), menu_id=str(menu.id))
    return menu


def get_merchant_menu(
    db: Session, merchant_id: str | uuid.UUID, menu_id: str | uuid.UUID
) -> Menu:
    merchant = get_active_merchant(db, merchant_id)
    menu = get_active_menu(db, menu_id)
    if menu.merchant_id != merchant.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Menu not found")
    return menu


def update_menu(db: Session, menu: Menu, changes: dict[str, Any]) -> Menu:
    for field, value in changes.items():
        if field not in _MENU_FIELDS:
            continue
        if value is None and field in _NON_NULLABLE_MENU_FIELDS:
            continue
        if field == "category_id":
            value = _category_for_merchant(db, menu.merchant_id, value).id
        setattr(menu, field, value)

    db.commit()
    db.refresh(menu)
    log_event("menu_updated", merchant_id=str(menu.merchant_id), menu_id=str(menu.id))
    return menu


def delete_menu(db: Session, menu: Menu) -> None:
    menu.soft_delete()
    db.commit()
    log_event("menu_deleted", merchant_id=str(menu.merchant_id), menu_id=str(menu.id))


def set_menu_availability(db: Session, menu_id: str | uuid.UUID, is_available: bool) -> Menu:
    menu = get_active_menu(db, menu_id)
    return update_menu(db, menu, {"is_available": is_available})


def category_name(db: Session, menu: Menu) -> str | None:
    return db.scalar(select(MenuCategory.name).where(MenuCategory.id == menu.category_id))
