import os
from decimal import Decimal, InvalidOperation
from typing import List, Optional


class ConfigurationError(RuntimeError):
    pass


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_decimal(name: str, default: Decimal) -> Decimal:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return Decimal(raw)
    except InvalidOperation:
        return default


class Settings:
    def _split_csv(self, raw: str, *, default: List[str]) -> List[str]:
        parts = [p.strip() for p in (raw or "").split(",")]
        return [p for p in parts if p] or default

    def __init__(self) -> None:
        self.env = os.getenv('APP_ENV', 'local')
        # No silent fallback: an unconfigured storage backend is fatal at startup.
        self.db_url: Optional[str] = (os.getenv("DATABASE_URL") or "").strip() or None
        self.db_pool_min = _env_int("DB_POOL_MIN_SIZE", 1)
        self.db_pool_max = _env_int("DB_POOL_MAX_SIZE", 10)
        self.cors_origins = self._split_csv(
            os.getenv("CORS_ORIGINS", "").strip(),
            default=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
        )
        self.api_version = os.getenv("APP_VERSION", "0.1.0").strip() or "0.1.0"

        self.default_tax_rate = _env_decimal("POS_DEFAULT_TAX_RATE", Decimal("0"))
        self.currency_symbol = os.getenv("POS_CURRENCY_SYMBOL", "₹")

        self.import_max_errors = _env_int("IMPORT_MAX_ERRORS", 20)
        self.import_max_bytes = _env_int("IMPORT_MAX_BYTES", 5 * 1024 * 1024)
        self.low_stock_threshold = _env_int("LOW_STOCK_THRESHOLD", 10)

    def require_database_url(self) -> str:
        if not self.db_url:
            raise ConfigurationError(
                "Database configuration missing. Set DATABASE_URL to the storage backend DSN."
            )
        return self.db_url

settings = Settings()
