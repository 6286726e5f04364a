import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from .auth import SessionRegistry, authenticate, find_user_by_email
from .document_store import DocumentStore, next_id
from .errors import DuplicateKey, RecordNotFound, StorageUnavailable, ValidationError
from .models import Document, LoginIn, Product, ProductIn, ProductUpdate, PublicUser, RegisterIn, User
from .security import hash_password, needs_rehash

logger = logging.getLogger(__name__)

# Catalogue and account operations. Every write goes through store.with_document.


def public_user(user: User) -> Dict[str, Any]:
    return PublicUser.model_validate(user.model_dump()).model_dump(mode="json", by_alias=True)


def _product_dict(product: Product) -> Dict[str, Any]:
    return product.model_dump(mode="json")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_price(price: float) -> float:
    if price is None or not math.isfinite(price):
        raise ValidationError("price must be a number")
    if price < 0:
        raise ValidationError("price must be >= 0")
    return price


def _find_product(document: Document, product_id: int) -> Product:
    for p in document.products:
        if p.id == product_id:
            return p
    raise RecordNotFound("product not found")


# ---------------------------
# Products
# ---------------------------
async def list_products(store: DocumentStore, category: Optional[str] = None) -> List[Dict[str, Any]]:
    products = store.snapshot().products
    if category:
        wanted = category.strip().casefold()
        products = [p for p in products if p.category.casefold() == wanted]
    return [_product_dict(p) for p in products]


async def get_product(store: DocumentStore, product_id: int) -> Dict[str, Any]:
    return _product_dict(_find_product(store.snapshot(), product_id))


async def add_product(store: DocumentStore, payload: ProductIn) -> Dict[str, Any]:
    name = _clean(payload.name)
    category = _clean(payload.category)
    if not name:
        raise ValidationError("name is required")
    if not category:
        raise ValidationError("category is required")
    price = _check_price(payload.price)

    def insert(doc: Document) -> Product:
        product = Product(
            id=next_id(doc.products),
            name=name,
            price=price,
            category=category,
            description=_clean(payload.description),
            image=_clean(payload.image),
        )
        doc.products.append(product)
        return product

    product = await store.with_document(insert)
    logger.info("Added product %s (%s)", product.id, product.name)
    return _product_dict(product)


async def update_product(store: DocumentStore, product_id: int, changes: ProductUpdate) -> Dict[str, Any]:
    fields = changes.model_dump(exclude_unset=True)
    for key in ("name", "category"):
        if key in fields:
            fields[key] = _clean(fields[key])
            if not fields[key]:
                raise ValidationError(f"{key} cannot be empty")
    for key in ("description", "image"):
        if key in fields:
            fields[key] = _clean(fields[key])
    if "price" in fields:
        _check_price(fields["price"])

    def patch(doc: Document) -> Product:
        product = _find_product(doc, product_id)
        for key, value in fields.items():
            setattr(product, key, value)
        return product

    product = await store.with_document(patch)
    logger.info("Updated product %s: %s", product_id, ", ".join(sorted(fields)) or "no changes")
    return _product_dict(product)


async def delete_product(store: DocumentStore, product_id: int) -> None:
    def remove(doc: Document) -> None:
        product = _find_product(doc, product_id)
        doc.products.remove(product)

    await store.with_document(remove)
    logger.info("Deleted product %s", product_id)


# ---------------------------
# Accounts
# ---------------------------
async def register_user(store: DocumentStore, payload: RegisterIn) -> Dict[str, Any]:
    name = _clean(payload.name)
    email = _clean(payload.email)
    password = payload.password or ""
    if not name or not email or not password:
        raise ValidationError("name, email and password are required")
    local, _, domain = email.partition("@")
    if not local or not domain or " " in email:
        raise ValidationError("email is not valid")

    # hash outside the write lock; argon2 is deliberately slow
    password_hash = await asyncio.to_thread(hash_password, password)

    def insert(doc: Document) -> User:
        if find_user_by_email(doc, email) is not None:
            raise DuplicateKey("Email already registered")
        user = User(
            id=next_id(doc.users),
            name=name,
            email=email,
            password=password_hash,
            role="user",
            created_at=datetime.now(timezone.utc),
        )
        doc.users.append(user)
        return user

    user = await store.with_document(insert)
    logger.info("Registered user %s", user.id)
    return public_user(user)


async def login(store: DocumentStore, sessions: SessionRegistry, payload: LoginIn) -> Dict[str, Any]:
    document = store.snapshot()
    user = await asyncio.to_thread(authenticate, payload.email, payload.password, document)
    if needs_rehash(user.password):
        await _upgrade_hash(store, user, payload.password)
    token = sessions.issue(user)
    return {"user": public_user(user), "token": token}


async def _upgrade_hash(store: DocumentStore, user: User, password: str) -> None:
    old_hash = user.password
    new_hash = await asyncio.to_thread(hash_password, password)

    def swap(doc: Document) -> bool:
        for u in doc.users:
            # skip if the password changed since the snapshot
            if u.id == user.id and u.password == old_hash:
                u.password = new_hash
                return True
        return False

    try:
        upgraded = await store.with_document(swap)
    except StorageUnavailable:
        logger.warning("Could not store upgraded password hash for user %s", user.id)
        return
    if upgraded:
        logger.info("Upgraded password hash for user %s", user.id)


async def list_users(store: DocumentStore) -> List[Dict[str, Any]]:
    return [public_user(u) for u in store.snapshot().users]
