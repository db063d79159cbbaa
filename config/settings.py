from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database (SQLite file for local dev; postgresql+asyncpg://... in prod)
    DATABASE_URL: str = "sqlite+aiosqlite:///./helmsman.db"

    # Cache backend: "redis", "memory", or "" to disable entity caching
    CACHE_TYPE: str = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_EXPIRE_SECONDS: int = 300
    # Negative-cache entries must expire before real entries do
    CACHE_PLACEHOLDER_EXPIRE_SECONDS: int = 60

    # JWT — no default, MUST be set in .env
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24
    # bcrypt work factor; stored hashes with another cost are upgraded on login
    BCRYPT_ROUNDS: int = 12

    # App
    APP_NAME: str = "Helmsman"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev
    LOG_LEVEL: str = "INFO"


settings = Settings()
