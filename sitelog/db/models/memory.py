from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sitelog.db.base import Base, BaseModel, TimestampMixin


class ResourceMemoryRecord(Base, TimestampMixin):
    """One smart-memory document per user, one map per category."""

    __tablename__ = "resource_memory"

    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    manpower: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    material: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    equipment: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    subcontractor: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    risk: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)


class ManpowerTemplate(BaseModel):
    __tablename__ = "manpower_templates"
    __table_args__ = (UniqueConstraint("user_id", "name_key", name="uq_manpower_templates_user_key"),)

    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name_key: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    trade: Mapped[str | None] = mapped_column(String(255), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    regular_hours: Mapped[float] = mapped_column(nullable=False, default=0)
    overtime: Mapped[float] = mapped_column(nullable=False, default=0)
    cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
