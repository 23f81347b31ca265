from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from foodcourt.db.base import Base
from foodcourt.models.common import SoftDeleteMixin, TimestampMixin, UuidPrimaryKeyMixin


class Admin(UuidPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "admins"

    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
