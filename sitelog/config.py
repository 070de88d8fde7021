from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql+asyncpg://sitelog:sitelog_dev@db:5432/sitelog"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Identity provider tokens
    SECRET_KEY: str = "dev-secret-key-not-for-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REQUIRE_VERIFIED_EMAIL: bool = True
    ALLOWED_ORIGINS: str = "*"

    # AI Provider (OpenAI-compatible)
    AI_API_KEY: str = "mock_ai_key"
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai"
    AI_MODEL: str = "gemini-2.5-flash"
    AI_CHAT_MODEL: str = "gemini-2.5-pro"
    AI_TIMEOUT_SECONDS: float = 60.0

    # Smart memory
    MANPOWER_TEMPLATE_DEBOUNCE_SECONDS: float = 0.5
    MANPOWER_TEMPLATE_LIMIT: int = 50

    # Reports
    RIPPLE_SHIFT_BATCH_SIZE: int = 500
    CHAT_CONTEXT_REPORTS: int = 10
    TREND_CONTEXT_REPORTS: int = 5

    # App
    APP_ENV: str = "development"
    APP_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
