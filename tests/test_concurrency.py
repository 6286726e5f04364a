# tests/test_concurrency.py
import asyncio
import json

import httpx

from storefront.main import create_app

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


async def _add_task(ac, headers, i):
    return await ac.post("/api/admin/products", json={"name": f"item {i}", "price": i, "category": "x"}, headers=headers)


async def _register_task(ac, email):
    return await ac.post("/api/register", json={"name": "Twin", "email": email, "password": "hunter22"})


async def _with_client(settings, scenario):
    app = create_app(settings)
    # ASGITransport does not run the lifespan
    await app.state.store.load()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.post("/api/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        headers = {"Authorization": f"Bearer {r.json()['token']}"}
        return await scenario(ac, headers)


def test_concurrent_admin_inserts(settings):
    n = 20

    async def scenario(ac, headers):
        return await asyncio.gather(*[_add_task(ac, headers, i) for i in range(n)])

    results = asyncio.run(_with_client(settings, scenario))
    assert [r.status_code for r in results] == [201] * n
    ids = [r.json()["product"]["id"] for r in results]
    assert len(set(ids)) == n
    assert sorted(ids) == list(range(3, 3 + n))

    doc = json.load(open(settings.data_file, encoding="utf-8"))
    assert len(doc["products"]) == 2 + n


def test_concurrent_registration_of_same_email(settings):
    async def scenario(ac, headers):
        return await asyncio.gather(
            _register_task(ac, "twin@example.com"),
            _register_task(ac, "TWIN@example.com"),
        )

    results = asyncio.run(_with_client(settings, scenario))
    statuses = sorted(r.status_code for r in results)
    # exactly one wins
    assert statuses == [201, 409]

    doc = json.load(open(settings.data_file, encoding="utf-8"))
    assert [u["email"].lower() for u in doc["users"]].count("twin@example.com") == 1
