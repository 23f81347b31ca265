import uuid

from sqlalchemy import ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from foodcourt.db.base import Base
from foodcourt.models.common import SoftDeleteMixin, TimestampMixin, UuidPrimaryKeyMixin


class BuyerSession(UuidPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "buyer_sessions"

    table_number: Mapped[int | None] = mapped_column(Integer, nullable=True)


class CartItem(UuidPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "cart_items"

    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("buyer_sessions.id"), nullable=False, index=True
    )
    merchant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("merchants.id"), nullable=False
    )
    menu_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("menus.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price_snapshot: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
