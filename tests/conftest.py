import pytest

from catalog_harvest.config import get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    for name in ("CATALOG_BASE_URL", "CATALOG_OUTPUT_DIR", "CATALOG_MAX_RETRIES", "CATALOG_BACKOFF_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def fake_sleep(sleeps):
    def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep
