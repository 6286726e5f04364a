import asyncio
import os

import httpx

from sdk.storefront_client import StoreClient

N = int(os.getenv("DEMO_INSERTS", "20"))


async def main():
    c = StoreClient(base_url=os.getenv("STORE_URL", "http://127.0.0.1:3000"))
    c.login(os.getenv("ADMIN_EMAIL", "admin@store.local"), os.getenv("ADMIN_PASSWORD", "admin123"))

    before = c.list_products()
    print(f"\n📦 Catalogue has {len(before)} products")

    print(f"\n⚡ Firing {N} concurrent inserts...")
    async with httpx.AsyncClient(timeout=c.timeout) as ac:
        results = await asyncio.gather(*[
            c.add_product_async(f"Concurrent item {i}", 10 + i, "demo", client=ac)
            for i in range(N)
        ])

    failed = [r for r in results if r.status_code != 201]
    ids = [r.json()["product"]["id"] for r in results if r.status_code == 201]
    after = c.list_products()

    print(f"✅ {len(ids)} inserts accepted, ❌ {len(failed)} failed")
    print(f"🔢 Distinct ids: {len(set(ids))}")
    print(f"📦 Catalogue now has {len(after)} products (expected {len(before) + len(ids)})")
    if len(after) != len(before) + len(ids) or len(set(ids)) != len(ids):
        print("⚠️  Lost update detected!")

    for pid in ids:
        c.delete_product(pid)
    c.logout()


if __name__ == "__main__":
    asyncio.run(main())
