from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import TenantMixin, UUIDMixin

class Qualification(Base, UUIDMixin, TenantMixin):
    __tablename__ = "qualifications"
    name: Mapped[str] = mapped_column(String(200), nullable=False)
