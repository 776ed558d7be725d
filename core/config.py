from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str = Field(..., description="Async database connection string (postgresql+asyncpg://...)")
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = Field("redis://localhost:6379/0")

    # Auth
    SECRET_KEY: str = Field(..., description="Key used to sign and verify X-Auth-Token values")
    ADMIN_ID: int = Field(0, description="User ID allowed to grade and inspect every course")
    TOKEN_TTL_SECONDS: int = 2592000  # 30 days

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Expiry sweep
    EXPIRY_SWEEP_ENABLED: bool = True
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 60
    EXPIRY_SWEEP_BATCH_SIZE: int = 100
    EXPIRY_SWEEP_LOCK_TTL_SECONDS: int = 55
    EXPIRY_SWEEP_JOB_ID: str = "expiry_sweep"

    # Environment
    ENV: str = "production"  # development, staging, production
    DEBUG: bool = False

settings = Settings()
