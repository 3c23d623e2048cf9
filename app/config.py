"""
Application configuration with automatic environment detection
"""
import os
from typing import List, Optional
from urllib.parse import quote_plus
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "require")


class Settings:
    """Application settings with automatic environment detection"""

    # Environment detection
    ENV = os.getenv("ENV", "DEV").upper()
    IS_PRODUCTION = ENV == "PROD" or ENV == "PRODUCTION"
    IS_DEVELOPMENT = not IS_PRODUCTION

    # Server configuration
    HOST = os.getenv("HOST", "127.0.0.1")
    PORT = int(os.getenv("PORT", 8000))

    # Database (either DATABASE_URL or discrete DB_* parts)
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = int(os.getenv("DB_PORT", 5432))
    DB_NAME = os.getenv("DB_NAME", "miler")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")
    DB_SSL = _env_flag("DB_SSL")
    DB_POOL_MIN = int(os.getenv("DB_POOL_MIN", 5))
    DB_POOL_MAX = int(os.getenv("DB_POOL_MAX", 20))
    DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", 30))

    # Shopify Admin API (single store, static token)
    SHOPIFY_SHOP_URL = os.getenv("SHOPIFY_SHOP_URL", "")
    SHOPIFY_APP_ACCESS_TOKEN = os.getenv("SHOPIFY_APP_ACCESS_TOKEN", "")
    SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2025-07")
    SHOPIFY_TIMEOUT = float(os.getenv("SHOPIFY_TIMEOUT", 30))
    SHOPIFY_PAGE_DELAY = float(os.getenv("SHOPIFY_PAGE_DELAY", 0.1))  # between "fetch all" pages
    SHOPIFY_CALLS_PER_SECOND = float(os.getenv("SHOPIFY_CALLS_PER_SECOND", 1.5))
    SHOPIFY_RATE_LIMIT_WAIT = float(os.getenv("SHOPIFY_RATE_LIMIT_WAIT", 10))
    SHOPIFY_CUSTOMERS_FILE = os.getenv("SHOPIFY_CUSTOMERS_FILE", "data/customers_export.csv")

    # Bulk CSV ingestion
    DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "91")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG").upper()

    @property
    def DATABASE_URL(self) -> str:
        """DATABASE_URL wins; otherwise build a PostgreSQL URL from DB_* parts."""
        url = os.getenv("DATABASE_URL", "").strip()
        if url:
            return url
        password = f":{quote_plus(self.DB_PASSWORD)}" if self.DB_PASSWORD else ""
        url = f"postgresql://{quote_plus(self.DB_USER)}{password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        if self.DB_SSL:
            url += "?sslmode=require"
        return url

    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        """CORS origins from ALLOWED_ORIGINS (comma-separated), plus localhost in development"""
        origins = []
        if self.IS_DEVELOPMENT:
            origins.extend([
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ])
        for origin in os.getenv("ALLOWED_ORIGINS", "").split(","):
            origin = origin.strip()
            if origin and origin not in origins:
                origins.append(origin)
        return origins

    @property
    def SHOPIFY_CONFIGURED(self) -> bool:
        return bool(self.SHOPIFY_SHOP_URL.strip() and self.SHOPIFY_APP_ACCESS_TOKEN.strip())

    def masked_database_url(self) -> Optional[str]:
        url = self.DATABASE_URL
        if "@" not in url:
            return url
        head, tail = url.rsplit("@", 1)
        scheme = head.split("://", 1)[0]
        return f"{scheme}://***@{tail}"

    def __str__(self):
        return f"Settings(ENV={self.ENV}, IS_PRODUCTION={self.IS_PRODUCTION}, SHOPIFY={self.SHOPIFY_CONFIGURED})"

# Global settings instance
settings = Settings()
