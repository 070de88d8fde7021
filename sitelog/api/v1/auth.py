from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from sitelog.api.deps import get_current_user
from sitelog.db.models.user import User

router = APIRouter(prefix="/auth", tags=["Auth"])


# ---------- Schemas ----------


class UserResponse(BaseModel):
    id: str
    email: str | None
    username: str
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------- Endpoints ----------


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user
