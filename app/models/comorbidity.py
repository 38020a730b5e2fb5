import uuid

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import UUIDMixin


class Comorbidity(Base, UUIDMixin):
    __tablename__ = "comorbidities"

    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    no_known_comorbidity: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favourite: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_deleted: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)
