import pytest

from storefront import config


@pytest.fixture(autouse=True)
def fresh_settings():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in ("PORT", "SECRET_KEY", "SEED_SAMPLE_PRODUCTS", "CORS_ORIGINS", "STORAGE_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    s = config.get_settings()
    assert s.port == 3000
    assert s.secret_is_default
    assert s.seed_sample_products is True
    assert s.cors_origins == ["*"]
    assert s.storage_timeout_seconds == 5.0


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("PORT", "8085")
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.setenv("DATA_FILE", str(tmp_path / "store.json"))
    monkeypatch.setenv("SEED_SAMPLE_PRODUCTS", "no")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("STORAGE_TIMEOUT_SECONDS", "bogus")
    s = config.get_settings()
    assert s.port == 8085
    assert not s.secret_is_default
    assert s.data_file.endswith("store.json")
    assert s.seed_sample_products is False
    assert s.cors_origins == ["http://a.test", "http://b.test"]
    assert s.storage_timeout_seconds == 5.0


def test_blank_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("PORT", "  ")
    monkeypatch.setenv("SECRET_KEY", "")
    monkeypatch.setenv("CORS_ORIGINS", " , ")
    monkeypatch.setenv("SESSION_TTL_SECONDS", "1.5")
    s = config.get_settings()
    assert s.port == 3000
    assert s.secret_is_default
    assert s.cors_origins == ["*"]
    assert s.session_ttl_seconds == 86400
