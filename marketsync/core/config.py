# marketsync/core/config.py

import json
import os
from functools import lru_cache
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = ""

    # Marketplace gateway (generic REST adapter)
    CATALOG_BASE_URL: str = ""
    CATALOG_PAGE_SIZE: int = 50
    CATALOG_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Background inventory verification.
    # 300 requests/minute on the marketplace side = 5 per second = 200ms between requests
    INVENTORY_SYNC_DELAY_SECONDS: float = 0.2

    # Repricing
    DEFAULT_MARKETPLACE_FEE_PERCENTAGE: float = 15.0
    REPRICING_PRICE_THRESHOLD: float = 0.01  # Ignore sub-cent differences
    REPRICING_SCHEDULE_ENABLED: bool = False
    REPRICING_SCHEDULE: str = "0 3 * * *"  # Daily at 3 AM
    REPRICING_USER_IDS: str = ""  # Comma separated users for the daily check
    REPRICING_AUTOMATED: bool = False
    REPRICING_PROFIT_TYPE: Optional[str] = None
    REPRICING_PROFIT_VALUE: Optional[float] = None
    # JSON object keyed by marketplace id: {"walmart": {"client_id": "...", "client_secret": "..."}}
    MARKETPLACE_CREDENTIALS: str = ""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def marketplace_credentials(self) -> dict:
        if not self.MARKETPLACE_CREDENTIALS.strip():
            return {}
        return json.loads(self.MARKETPLACE_CREDENTIALS)

    @property
    def repricing_user_ids(self) -> list:
        return [user_id.strip() for user_id in self.REPRICING_USER_IDS.split(",") if user_id.strip()]


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
