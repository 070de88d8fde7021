from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sitelog.db.base import BaseModel


class MasterDataItem(BaseModel):
    __tablename__ = "master_data_items"
    __table_args__ = (
        UniqueConstraint("user_id", "category", "code", name="uq_master_data_user_category_code"),
    )

    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    quantity: Mapped[float | None] = mapped_column(nullable=True)
    overtime: Mapped[float | None] = mapped_column(nullable=True)
    trade: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
