from collections.abc import AsyncGenerator
from datetime import date

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.common.enums import MemoryCategory
from sitelog.common.exceptions import BadRequestError, PermissionDeniedError
from sitelog.common.logging import get_logger
from sitelog.common.security import decode_token
from sitelog.config import settings
from sitelog.core.memory.service import TemplateWriter
from sitelog.db.models.user import User
from sitelog.db.session import async_session_factory
from sitelog.integrations.ai_client import AIClient

logger = get_logger("api.deps")

_template_writer: TemplateWriter | None = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _username_from_claims(payload: dict) -> str:
    name = (payload.get("name") or "").strip()
    if name:
        return name
    email = payload.get("email") or ""
    return email.split("@")[0] or "User"


async def get_current_user(
    authorization: str = Header(..., description="Bearer <token>"),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not authorization.startswith("Bearer "):
        raise PermissionDeniedError("Invalid authorization header format")

    token = authorization[len("Bearer "):]
    try:
        payload = decode_token(token)
    except ValueError:
        raise PermissionDeniedError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise PermissionDeniedError("Invalid token payload")

    if settings.REQUIRE_VERIFIED_EMAIL and payload.get("email") and not payload.get("email_verified"):
        raise PermissionDeniedError("Email address is not verified")

    # Profile is created once from the claims and never overwritten
    user = await db.get(User, user_id)
    if user is None:
        user = User(id=user_id, email=payload.get("email"), username=_username_from_claims(payload))
        db.add(user)
        await db.flush()
        await db.refresh(user)
        logger.info("Created profile for user %s", user_id)

    return user


def parse_report_date(report_date: str) -> date:
    try:
        return date.fromisoformat(report_date)
    except ValueError:
        raise BadRequestError(f"Invalid report date '{report_date}', expected YYYY-MM-DD")


def parse_category(category: str) -> MemoryCategory:
    try:
        return MemoryCategory(category.lower())
    except ValueError:
        valid = ", ".join(c.value for c in MemoryCategory)
        raise BadRequestError(f"Invalid category '{category}', expected one of: {valid}")


def get_ai_client() -> AIClient:
    return AIClient()


def get_template_writer() -> TemplateWriter:
    global _template_writer
    if _template_writer is None:
        _template_writer = TemplateWriter(async_session_factory)
    return _template_writer
