import os
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings:
    def __init__(
        self,
        database_url: str,
        api_base_url: str,
        identity_api_key: Optional[str],
        identity_token_url: str,
        timezone: str,
        http_timeout_secs: float,
        refresh_margin_secs: int,
        currency: str,
        page_limit: int,
    ) -> None:
        self.database_url = database_url
        self.api_base_url = api_base_url
        self.identity_api_key = identity_api_key
        self.identity_token_url = identity_token_url
        self.timezone = timezone
        self.http_timeout_secs = http_timeout_secs
        self.refresh_margin_secs = refresh_margin_secs
        self.currency = currency
        self.page_limit = page_limit


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("EXPENSES_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "local_state.db"
    database_url = os.getenv("EXPENSES_DATABASE_URL", f"sqlite:///{default_db}")
    api_base_url = os.getenv("EXPENSES_API_BASE_URL", "http://localhost:3000")
    identity_api_key = os.getenv("EXPENSES_IDENTITY_API_KEY") or None
    identity_token_url = os.getenv(
        "EXPENSES_IDENTITY_TOKEN_URL",
        "https://securetoken.googleapis.com/v1/token",
    )
    timezone = os.getenv("EXPENSES_TIMEZONE", "UTC")
    http_timeout_secs = float(os.getenv("EXPENSES_HTTP_TIMEOUT_SECS", "10"))
    refresh_margin_secs = int(os.getenv("EXPENSES_REFRESH_MARGIN_SECS", "300"))
    currency = os.getenv("EXPENSES_CURRENCY", "USD")
    page_limit = int(os.getenv("EXPENSES_PAGE_LIMIT", "500"))
    return Settings(
        database_url=database_url,
        api_base_url=api_base_url.rstrip("/"),
        identity_api_key=identity_api_key,
        identity_token_url=identity_token_url,
        timezone=timezone,
        http_timeout_secs=http_timeout_secs,
        refresh_margin_secs=refresh_margin_secs,
        currency=currency,
        page_limit=page_limit,
    )
