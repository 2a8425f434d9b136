from typing import Optional
from urllib.parse import quote_plus
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Basic configuration ---
    APP_NAME: str = "Commerce Persistence"
    APP_ENV: str = "development"  # development, production, testing
    DEBUG: bool = True

    # --- Active backend ---
    DB_TYPE: str = "mongodb"  # mysql, postgres, sqlite, mongodb

    # --- Relational database (SQLModel) ---
    DB_HOST: str = "localhost"
    DB_PORT: Optional[int] = None  # Falls back to the dialect's default port
    DB_USER: str = "root"
    DB_PASSWORD: str = "root"
    DB_NAME: str = "fashion"
    SQLITE_PATH: str = "fashion.db"
    DB_ECHO: bool = False
    DB_AUTO_CREATE: bool = False  # Create tables on connect (development only)

    @property
    def is_relational(self) -> bool:
        return self.DB_TYPE.lower() in ("mysql", "postgres", "postgresql", "sqlite")

    @property
    def DATABASE_URL(self) -> str:
        # Build async SQLAlchemy URL for the configured dialect
        db_type = self.DB_TYPE.lower()
        if db_type == "sqlite":
            return f"sqlite+aiosqlite:///{self.SQLITE_PATH}"
        safe_password = quote_plus(self.DB_PASSWORD)
        if db_type in ("postgres", "postgresql"):
            port = self.DB_PORT or 5432
            return f"postgresql+asyncpg://{self.DB_USER}:{safe_password}@{self.DB_HOST}:{port}/{self.DB_NAME}"
        port = self.DB_PORT or 3306
        return f"mysql+aiomysql://{self.DB_USER}:{safe_password}@{self.DB_HOST}:{port}/{self.DB_NAME}"

    # --- Document database (MongoDB) ---
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "fashion"
    MONGODB_TIMEOUT_MS: int = 5000

    # --- Pagination defaults ---
    DEFAULT_PAGE: int = 1
    DEFAULT_PAGE_LIMIT: int = 20

    # --- Logging ---
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # --- Pydantic ---
    # Load env from project root .env; priority: env vars > .env > defaults
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


# Singleton settings instance
settings = Settings()
