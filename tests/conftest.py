import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.main import create_app

ADMIN_EMAIL = "admin@test.local"
ADMIN_PASSWORD = "adminpass"


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        app_env="test",
        host="127.0.0.1",
        port=0,
        secret_key="test-secret",
        data_file=str(tmp_path / "db.json"),
        storage_timeout_seconds=5.0,
        session_ttl_seconds=3600,
        admin_name="Admin",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        seed_sample_products=True,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture()
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    r = client.post("/api/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture()
def admin_headers(client):
    return login(client)
