from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitelog.api.deps import get_template_writer
from sitelog.api.middleware import AuditMiddleware
from sitelog.api.v1.router import v1_router
from sitelog.common.logging import get_logger, setup_logging
from sitelog.config import settings
from sitelog.integrations.ai_client import AIClient

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("SiteLog API starting (%s)", settings.APP_ENV)
    yield
    # Let queued manpower template writes land before shutdown
    await get_template_writer().debouncer.flush()


app = FastAPI(
    title="SiteLog API",
    description="Construction site daily reporting",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuditMiddleware)

# API routes
app.include_router(v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "sitelog",
        "version": "1.0.0",
        "env": settings.APP_ENV,
        "ai": await AIClient().health_check(),
    }
