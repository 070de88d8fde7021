from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from sitelog.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Profile row created the first time an identity-provider user calls the API."""

    __tablename__ = "users"

    # The identity provider's subject id; every user-scoped table is keyed by it
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="User")
