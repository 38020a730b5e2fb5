from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import TenantMixin, UUIDMixin


class VisitMode(Base, UUIDMixin, TenantMixin):
    __tablename__ = "visit_modes"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    default: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)
