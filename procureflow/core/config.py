"""
Application configuration with environment variables.
"""
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field, field_validator
from typing import Optional, List


AUDIT_SINKS = ("memory", "http", "queue")
TIE_BREAK_POLICIES = ("first_submitted_wins", "quote_order")


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "ProcureFlow"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    POSTGRES_USER: str = "procureflow"
    POSTGRES_PASSWORD: str = "procureflow"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "procureflow"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Comparison audit sink: memory, http, queue
    AUDIT_SINK: str = "memory"
    AUDIT_SINK_URL: str = "http://localhost:8000"
    AUDIT_SINK_TIMEOUT: float = 10.0  # seconds

    # Quote comparison
    TIE_BREAK_POLICY: str = "first_submitted_wins"
    DISPLAY_CURRENCY: str = "AED"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Demo seeding - MUST be false in production
    SEED_DEMO: bool = False

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def assemble_db_url(cls, v: Optional[str], info) -> str:
        if isinstance(v, str) and v:
            return v

        data = info.data
        user = data.get("POSTGRES_USER", "procureflow")
        password = data.get("POSTGRES_PASSWORD", "procureflow")
        host = data.get("POSTGRES_HOST", "postgres")
        port = data.get("POSTGRES_PORT", "5432")
        db = data.get("POSTGRES_DB", "procureflow")

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"

    @field_validator('AUDIT_SINK')
    @classmethod
    def validate_audit_sink(cls, v: str) -> str:
        v = v.lower()
        if v not in AUDIT_SINKS:
            raise ValueError(f"AUDIT_SINK must be one of: {', '.join(AUDIT_SINKS)}")
        return v

    @field_validator('TIE_BREAK_POLICY')
    @classmethod
    def validate_tie_break_policy(cls, v: str) -> str:
        v = v.lower()
        if v not in TIE_BREAK_POLICIES:
            raise ValueError(f"TIE_BREAK_POLICY must be one of: {', '.join(TIE_BREAK_POLICIES)}")
        return v

    @field_validator('DISPLAY_CURRENCY')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('SEED_DEMO')
    @classmethod
    def validate_seed_demo(cls, v: bool, info) -> bool:
        """Prevent demo seeding in production."""
        if v and not info.data.get("DEBUG", False):
            raise ValueError(
                "SEED_DEMO=true is not allowed when DEBUG=false. "
                "Demo RFQs use fixed supplier data."
            )
        return v


settings = Settings()
