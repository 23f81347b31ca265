import uuid

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from foodcourt.db.session import get_db
from foodcourt.models.buyer_session import CartItem
from foodcourt.models.menu import Menu
from foodcourt.schemas.common import Envelope, MessageData
from foodcourt.schemas.session import (
    CartBulkRequest,
    CartData,
    CartItemCreate,
    CartItemOut,
    SessionCreate,
    SessionDetail,
    SessionOut,
    SessionUpdate,
)
from foodcourt.services import session_service
from foodcourt.services.lookups import get_active_session
from foodcourt.services.session_service import CartLineInput

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _cart_item_out(item: CartItem, menu: Menu | None) -> CartItemOut:
    return CartItemOut(
        id=item.id,
        session_id=item.session_id,
        merchant_id=item.merchant_id,
        menu_id=item.menu_id,
        menu_name=menu.name if menu else None,
        menu_image_url=menu.image_url if menu else None,
        quantity=item.quantity,
        price_snapshot=item.price_snapshot,
        subtotal=item.quantity * item.price_snapshot,
        notes=item.notes,
    )


def _cart_data(db: Session, session_id: str) -> CartData:
    session = get_active_session(db, session_id)
    items = [_cart_item_out(item, menu) for item, menu in session_service.cart_lines(db, session)]
    return CartData(
        items=items,
        total_amount=sum(item.subtotal for item in items),
        total_items=sum(item.quantity for item in items),
    )


@router.post(
    "",
    response_model=Envelope[SessionOut],
    status_code=status.HTTP_201_CREATED,
    summary="Start a buyer session",
)
def create_session_endpoint(
    payload: SessionCreate | None = Body(default=None),
    db: Session = Depends(get_db),
) -> Envelope[SessionOut]:
    table_number = payload.table_number if payload else None
    session = session_service.create_session(db, table_number)
    return Envelope(data=SessionOut.model_validate(session), message="Session created")


@router.get("/{session_id}", response_model=Envelope[SessionDetail], summary="Get buyer session")
def get_session_endpoint(session_id: str, db: Session = Depends(get_db)) -> Envelope[SessionDetail]:
    session = get_active_session(db, session_id)
    return Envelope(
        data=SessionDetail(
            session=SessionOut.model_validate(session), cart=_cart_data(db, session_id)
        )
    )


@router.patch("/{session_id}", response_model=Envelope[SessionOut], summary="Set table number")
def update_session_endpoint(
    session_id: str,
    payload: SessionUpdate,
    db: Session = Depends(get_db),
) -> Envelope[SessionOut]:
    session = session_service.set_session_table(db, session_id, payload.table_number)
    return Envelope(data=SessionOut.model_validate(session), message="Session updated")


@router.get("/{session_id}/cart", response_model=Envelope[CartData], summary="Get cart")
def get_cart_endpoint(session_id: str, db: Session = Depends(get_db)) -> Envelope[CartData]:
    return Envelope(data=_cart_data(db, session_id))


@router.post(
    "/{session_id}/cart",
    response_model=Envelope[CartData],
    status_code=status.HTTP_201_CREATED,
    summary="Add a menu item to the cart",
)
def add_to_cart_endpoint(
    session_id: str,
    payload: CartItemCreate,
    db: Session = Depends(get_db),
) -> Envelope[CartData]:
    session_service.add_to_cart(
        db,
        session_id,
        CartLineInput(menu_id=payload.menu_id, quantity=payload.quantity, notes=payload.notes),
    )
    return Envelope(data=_cart_data(db, session_id), message="Item added to cart")


@router.post(
    "/{session_id}/cart/bulk",
    response_model=Envelope[CartData],
    status_code=status.HTTP_201_CREATED,
    summary="Put several menu items in the cart",
)
def bulk_add_to_cart_endpoint(
    session_id: str,
    payload: CartBulkRequest,
    db: Session = Depends(get_db),
) -> Envelope[CartData]:
    lines = [
        CartLineInput(menu_id=item.menu_id, quantity=item.quantity, notes=item.notes)
        for item in payload.items
    ]
    session_service.bulk_add_to_cart(db, session_id, lines)
    return Envelope(data=_cart_data(db, session_id), message="Cart updated")


@router.delete("/{session_id}/cart", response_model=Envelope[MessageData], summary="Clear cart")
def clear_cart_endpoint(
    session_id: str,
    merchant_id: uuid.UUID | None = Query(default=None, alias="merchantId"),
    db: Session = Depends(get_db),
) -> Envelope[MessageData]:
    cleared = session_service.clear_cart(db, session_id, merchant_id)
    return Envelope(data=MessageData(message=f"Removed {cleared} item(s) from cart"))
