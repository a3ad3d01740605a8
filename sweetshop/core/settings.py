from __future__ import annotations

from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Încarcă .env (pe host). În Docker variabilele vin din env_file/environment.
load_dotenv()


def _csv(raw: Optional[str]) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


class Settings(BaseSettings):
    # App
    APP_TITLE: str = "sweet-shop-api"
    APP_VERSION: str = "0.1.0"
    APP_ENV: str = Field("dev")
    LOG_LEVEL: str = "INFO"
    ROOT_PATH: str = ""
    DISABLE_DOCS: bool = False

    # DB
    DATABASE_URL: str = Field(
        "sqlite:///./sweet_shop.db",
        description="ex: postgresql+psycopg://appuser:<PASS>@db:5432/appdb",
    )
    DB_SCHEMA: str = "app"  # folosit doar pe PostgreSQL
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_TIMEOUT: int = 30

    # Bootstrap
    CREATE_TABLES_ON_STARTUP: bool = True
    SEED_ON_STARTUP: bool = True
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@sweetshop.com"
    ADMIN_PASSWORD: str = "admin123"

    # Auth
    SESSION_TTL_MINUTES: int = Field(1440, ge=1)
    PASSWORD_HASH_ITERATIONS: int = Field(100_000, ge=1)

    # HTTP
    CORS_ORIGINS: str = "http://localhost:3000"
    TRUSTED_HOSTS: str = ""
    MAX_BODY_SIZE_BYTES: int = 0  # 0 = dezactivat
    ENABLE_HSTS: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return _csv(self.CORS_ORIGINS)

    @property
    def trusted_hosts(self) -> List[str]:
        return _csv(self.TRUSTED_HOSTS)

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
