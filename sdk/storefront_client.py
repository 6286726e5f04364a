# sdk/storefront_client.py
import requests
import httpx
from typing import Optional, Dict, Any
from rich import print


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:3000", token: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        self.token = None
        self.user: Optional[Dict[str, Any]] = None
        if token:
            self._set_token(token)

    def _set_token(self, token: Optional[str]):
        self.token = token
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})
        else:
            self.session.headers.pop("Authorization", None)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    # Products
    def list_products(self, category: Optional[str] = None):
        params = {"category": category} if category else {}
        r = self.session.get(f"{self.base_url}/api/products", params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def get_product(self, product_id: int):
        r = self.session.get(f"{self.base_url}/api/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def search_products(self, term: str):
        # the API filters by category only; name search happens client-side
        term = term.lower()
        return [p for p in self.list_products() if term in p.get("name", "").lower()]

    # Accounts
    def register(self, name: str, email: str, password: str):
        r = self.session.post(f"{self.base_url}/api/register", json={
            "name": name, "email": email, "password": password
        }, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def login(self, email: str, password: str):
        r = self.session.post(f"{self.base_url}/api/login", json={"email": email, "password": password}, timeout=self.timeout)
        r.raise_for_status()
        body = r.json()
        self._set_token(body["token"])
        self.user = body["user"]
        return body

    def logout(self):
        r = self.session.post(f"{self.base_url}/api/logout", timeout=self.timeout)
        self._set_token(None)
        self.user = None
        r.raise_for_status()
        return r.json()

    def me(self):
        r = self.session.get(f"{self.base_url}/api/me", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Admin
    def add_product(self, name: str, price: float, category: str = "general",
                    description: Optional[str] = None, image: Optional[str] = None):
        payload = {"name": name, "price": price, "category": category,
                   "description": description, "image": image}
        r = self.session.post(f"{self.base_url}/api/admin/products", json=payload, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def update_product(self, product_id: int, **changes):
        r = self.session.put(f"{self.base_url}/api/admin/products/{product_id}", json=changes, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_product(self, product_id: int):
        r = self.session.delete(f"{self.base_url}/api/admin/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def list_users(self):
        r = self.session.get(f"{self.base_url}/api/admin/users", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Async insert, for firing many at once
    async def add_product_async(self, name: str, price: float, category: str = "general",
                                client: Optional[httpx.AsyncClient] = None):
        payload = {"name": name, "price": price, "category": category}
        url = f"{self.base_url}/api/admin/products"
        if client is not None:
            return await client.post(url, json=payload, headers=self._headers())
        async with httpx.AsyncClient(timeout=self.timeout) as ac:
            return await ac.post(url, json=payload, headers=self._headers())


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Storefront API client")
    parser.add_argument("--base-url", default="http://127.0.0.1:3000")
    parser.add_argument("--email", help="Login email (admin commands)")
    parser.add_argument("--password", help="Login password (admin commands)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lp = subparsers.add_parser("list-products", help="List all products")
    lp.add_argument("--category", help="Filter products by category")

    gp = subparsers.add_parser("get-product", help="Get a product by its ID")
    gp.add_argument("--product-id", type=int, required=True)

    reg = subparsers.add_parser("register", help="Create a user account")
    reg.add_argument("--name", required=True)
    reg.add_argument("--new-email", required=True)
    reg.add_argument("--new-password", required=True)

    ap = subparsers.add_parser("add-product", help="Add a product (admin)")
    ap.add_argument("--name", required=True)
    ap.add_argument("--price", type=float, required=True)
    ap.add_argument("--category", default="general")
    ap.add_argument("--description")
    ap.add_argument("--image")

    dp = subparsers.add_parser("delete-product", help="Delete a product (admin)")
    dp.add_argument("--product-id", type=int, required=True)

    subparsers.add_parser("list-users", help="List users (admin)")

    args = parser.parse_args()
    c = StoreClient(base_url=args.base_url)
    if args.email and args.password:
        c.login(args.email, args.password)

    if args.command == "list-products":
        print(c.list_products(args.category))
    elif args.command == "get-product":
        print(c.get_product(args.product_id))
    elif args.command == "register":
        print(c.register(args.name, args.new_email, args.new_password))
    elif args.command == "add-product":
        print(c.add_product(args.name, args.price, args.category, args.description, args.image))
    elif args.command == "delete-product":
        print(c.delete_product(args.product_id))
    elif args.command == "list-users":
        print(c.list_users())
