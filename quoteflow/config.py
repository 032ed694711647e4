from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./quoteflow.db"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Business profile copied into every new quote
    BUSINESS_NAME: str = "TailorBiz"
    BUSINESS_LOGO: str = ""
    BUSINESS_ADDRESS: str = ""
    BUSINESS_PHONE: str = ""
    BUSINESS_EMAIL: str = ""
    BUSINESS_WEBSITE: str = ""
    BUSINESS_TAX_ID: str = ""
    CURRENCY_SYMBOL: str = "₪"
    DOCUMENT_LANGUAGE: str = "en"
    DOCUMENT_DIRECTION: str = "ltr"

    # Pricing
    DEFAULT_VAT_RATE: float = 17.0
    HOURLY_RATE: float = 0.0

    # Remote object storage (HTTP PUT); skipped when URL is unset
    OBJECT_STORAGE_URL: str | None = None
    OBJECT_STORAGE_TOKEN: str | None = None
    OBJECT_STORAGE_FOLDER: str = "quotes"

    # Local filesystem storage; skipped in serverless deployments
    LOCAL_STORAGE_DIR: str = "uploads/quotes"
    SERVERLESS: bool = False

    # Rendering
    RENDER_TIMEOUT_SECONDS: float = 30.0
    RENDER_MAX_CONCURRENCY: int = 2
    RENDER_BACKEND: str = "quoteflow.services.render_worker:weasyprint_backend"

    # Manual PDF uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @field_validator('HOURLY_RATE', 'DEFAULT_VAT_RATE')
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator('DOCUMENT_DIRECTION')
    @classmethod
    def text_direction(cls, v: str) -> str:
        if v not in ("ltr", "rtl"):
            raise ValueError("must be 'ltr' or 'rtl'")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def sqlalchemy_echo(self) -> bool:
        """Never echo SQL in production."""
        return self.DEBUG and not self.is_production

    @property
    def object_storage_configured(self) -> bool:
        return bool(self.OBJECT_STORAGE_URL)

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
