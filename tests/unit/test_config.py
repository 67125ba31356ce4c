# tests/unit/test_config.py
import pytest

from marketsync.core.config import Settings, clear_settings_cache, get_settings


def test_repricing_user_ids_are_split_and_trimmed():
    settings = Settings(REPRICING_USER_IDS=" u1, ,u2 ")
    assert settings.repricing_user_ids == ["u1", "u2"]


def test_marketplace_credentials_parse_json():
    settings = Settings(MARKETPLACE_CREDENTIALS='{"walmart": {"client_id": "id", "client_secret": "s"}}')
    assert settings.marketplace_credentials["walmart"]["client_id"] == "id"
    assert Settings(MARKETPLACE_CREDENTIALS="").marketplace_credentials == {}


def test_defaults():
    settings = Settings()
    assert settings.DEFAULT_MARKETPLACE_FEE_PERCENTAGE == 15.0
    assert settings.REPRICING_PRICE_THRESHOLD == 0.01
    assert settings.INVENTORY_SYNC_DELAY_SECONDS == pytest.approx(0.2)


def test_clear_settings_cache_reloads_environment(monkeypatch):
    clear_settings_cache()
    monkeypatch.setenv("CATALOG_PAGE_SIZE", "25")
    try:
        assert get_settings().CATALOG_PAGE_SIZE == 25
    finally:
        clear_settings_cache()
