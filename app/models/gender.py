from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import TenantMixin, UUIDMixin

class Gender(Base, UUIDMixin, TenantMixin):
    __tablename__ = "genders"
    name: Mapped[str] = mapped_column(String(100), nullable=False)
