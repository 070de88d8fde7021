from fastapi import APIRouter

from sitelog.api.v1.activities import router as activities_router
from sitelog.api.v1.assistant import router as assistant_router
from sitelog.api.v1.auth import router as auth_router
from sitelog.api.v1.master_data import router as master_data_router
from sitelog.api.v1.memory import router as memory_router
from sitelog.api.v1.reports import router as reports_router
from sitelog.api.v1.views import router as views_router

v1_router = APIRouter()

v1_router.include_router(auth_router)
v1_router.include_router(reports_router)
v1_router.include_router(activities_router)
v1_router.include_router(memory_router)
v1_router.include_router(master_data_router)
v1_router.include_router(views_router)
v1_router.include_router(assistant_router)
