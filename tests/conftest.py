import pytest

from vitals.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; every test starts from the current env."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fast_settings(monkeypatch):
    """Short CPU window and no package-manager shell-outs for end-to-end tests."""
    monkeypatch.setenv("CPU_SAMPLE_SECONDS", "0.1")
    monkeypatch.setenv("CHECK_UPDATES", "false")
    get_settings.cache_clear()
    return get_settings()
