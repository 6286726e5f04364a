#!/usr/bin/env python
import os
import uuid

import requests

from sdk.storefront_client import StoreClient


def main():
    c = StoreClient(base_url=os.getenv("STORE_URL", "http://127.0.0.1:3000"))

    # -----------------------------
    # Public catalogue
    # -----------------------------
    print("Listing products...")
    print(c.list_products())

    # -----------------------------
    # Register and log in a shopper
    # -----------------------------
    email = f"shopper-{uuid.uuid4().hex[:6]}@example.com"
    print(f"\nRegistering {email}...")
    print(c.register("Demo Shopper", email, "s3cret-pass"))

    print("\nRegistering the same email again (expect 409)...")
    try:
        c.register("Demo Shopper", email.upper(), "s3cret-pass")
    except requests.exceptions.HTTPError as e:
        print(e.response.status_code, e.response.json())

    c.login(email, "s3cret-pass")
    print("\nLogged in as:", c.me())

    print("\nShopper tries an admin action (expect 403)...")
    try:
        c.add_product("Sneaky", 1, "x")
    except requests.exceptions.HTTPError as e:
        print(e.response.status_code, e.response.json())
    c.logout()

    # -----------------------------
    # Admin
    # -----------------------------
    admin_email = os.getenv("ADMIN_EMAIL", "admin@store.local")
    admin_password = os.getenv("ADMIN_PASSWORD", "admin123")
    print(f"\nLogging in as {admin_email}...")
    c.login(admin_email, admin_password)

    created = c.add_product("USB-C Hub", 49.5, "Electronics", "7-in-1 hub")["product"]
    print("Added:", created)
    print("Updated:", c.update_product(created["id"], price=44.0)["product"])
    print("Electronics:", c.list_products("Electronics"))
    print("Users:", c.list_users())

    print("\nDeleting it again...")
    print(c.delete_product(created["id"]))
    print("\nDeleting twice (expect 404)...")
    try:
        c.delete_product(created["id"])
    except requests.exceptions.HTTPError as e:
        print(e.response.status_code, e.response.json())
    c.logout()


if __name__ == "__main__":
    main()
