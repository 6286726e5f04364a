"""
JSON document persistence.

The DocumentStore owns the backing file and the live in-memory Document.
Reads go through snapshot(), which hands out deep copies; writes go through
with_document(), which serializes every load-mutate-persist cycle behind a
single asyncio.Lock and replaces the file atomically (temp file + fsync +
os.replace), so a crash leaves either the old or the new document on disk.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from pydantic import ValidationError as SchemaError

from .errors import DuplicateKey, StorageUnavailable, ValidationError
from .models import Document, Product, User
from .security import hash_password

logger = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTIONS = ("users", "products")


@dataclass(frozen=True)
class SeedAdmin:
    name: str
    email: str
    password: str


# Sample catalogue written once, when the document is first created.
SEED_PRODUCTS: List[dict] = [
    {
        "name": "Nike Shoes",
        "description": "Modern running shoes",
        "price": 199,
        "image": "shoes.jpg",
        "category": "Sport",
    },
    {
        "name": "Apple Watch",
        "description": "Smart fitness watch",
        "price": 299,
        "image": "watch.jpg",
        "category": "Electronics",
    },
]


def next_id(records: Iterable[Any]) -> int:
    """max(existing ids) + 1, or 1 for an empty collection."""
    return max((r.id for r in records), default=0) + 1


def _read_file(path: Path) -> Optional[bytes]:
    if not path.exists():
        return None
    return path.read_bytes()


class _WriteTicket:
    """Decides, under one lock, whether a write commits or is abandoned after a timeout."""

    def __init__(self):
        self.lock = threading.Lock()
        self.abandoned = False
        self.committed = False

    def abandon(self) -> bool:
        """Stop the write if it has not renamed yet. Returns True if it already committed."""
        with self.lock:
            self.abandoned = True
            return self.committed


def _write_file(path: Path, payload: str, ticket: _WriteTicket) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        with ticket.lock:
            # the caller already reported a timeout; the old document must stay in place
            if ticket.abandoned:
                tmp.unlink(missing_ok=True)
                return
            os.replace(tmp, path)
            ticket.committed = True
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def _check_integrity(document: Document) -> None:
    for name in COLLECTIONS:
        ids = [r.id for r in getattr(document, name)]
        if len(ids) != len(set(ids)):
            raise DuplicateKey(f"Duplicate id in {name}")
    emails = [u.email.strip().casefold() for u in document.users]
    if len(emails) != len(set(emails)):
        raise DuplicateKey("Email already registered")


class DocumentStore:
    """Single owner of the JSON document. Pass the instance to whoever needs data."""

    def __init__(
        self,
        path,
        *,
        seed_admin: Optional[SeedAdmin] = None,
        seed_sample_products: bool = True,
        timeout: float = 5.0,
    ):
        self.path = Path(path)
        self.seed_admin = seed_admin or SeedAdmin("Admin", "admin@store.local", "admin123")
        self.seed_sample_products = seed_sample_products
        self.timeout = timeout
        self._document: Optional[Document] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> "DocumentStore":
        return cls(
            settings.data_file,
            seed_admin=SeedAdmin(settings.admin_name, settings.admin_email, settings.admin_password),
            seed_sample_products=settings.seed_sample_products,
            timeout=settings.storage_timeout_seconds,
        )

    @property
    def loaded(self) -> bool:
        return self._document is not None

    # ---------------------------
    # I/O
    # ---------------------------
    async def _io(self, action: str, fn: Callable[..., T], *args) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Timed out after %.2fs trying to %s %s", self.timeout, action, self.path)
            raise StorageUnavailable(f"Timed out trying to {action} the document")
        except OSError as exc:
            logger.exception("Failed to %s %s", action, self.path)
            raise StorageUnavailable(f"Could not {action} the document") from exc

    async def _persist(self, document: Document) -> None:
        payload = json.dumps(document.to_json_dict(), ensure_ascii=False, indent=2) + "\n"
        ticket = _WriteTicket()
        worker = asyncio.ensure_future(asyncio.to_thread(_write_file, self.path, payload, ticket))
        try:
            await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout)
        except asyncio.TimeoutError:
            # waits for a rename already in progress; either it landed or it never will
            if await asyncio.to_thread(ticket.abandon):
                logger.warning("Write to %s finished after the %.2fs timeout", self.path, self.timeout)
                return
            logger.error("Timed out after %.2fs trying to write %s", self.timeout, self.path)
            raise StorageUnavailable("Timed out trying to write the document")
        except OSError as exc:
            logger.exception("Failed to write %s", self.path)
            raise StorageUnavailable("Could not write the document") from exc
        logger.debug("Persisted %s (%d bytes)", self.path, len(payload))

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def load(self) -> Document:
        """Read the backing file, creating and seeding it on first boot."""
        async with self._lock:
            raw = await self._io("read", _read_file, self.path)
            fresh = raw is None
            if fresh:
                logger.info("No document at %s, creating a new one", self.path)
                document = Document()
            else:
                try:
                    document = Document.model_validate(json.loads(raw.decode("utf-8")))
                    _check_integrity(document)
                except (ValueError, SchemaError, DuplicateKey) as exc:
                    logger.exception("Document at %s is corrupted", self.path)
                    raise StorageUnavailable("Stored document is corrupted") from exc

            admin_hash = None
            if self._needs_admin(document):
                admin_hash = await asyncio.to_thread(hash_password, self.seed_admin.password)
            changed = self.ensure_seeded(document, fresh=fresh, admin_hash=admin_hash)
            if fresh or changed:
                await self._persist(document)
            self._document = document
            logger.info(
                "Loaded %s (%d users, %d products)", self.path, len(document.users), len(document.products)
            )
            return document.model_copy(deep=True)

    def _needs_admin(self, document: Document) -> bool:
        if any(u.role == "admin" for u in document.users):
            return False
        wanted = self.seed_admin.email.strip().casefold()
        return not any(u.email.strip().casefold() == wanted for u in document.users)

    def ensure_seeded(self, document: Document, *, fresh: bool = False, admin_hash: Optional[str] = None) -> bool:
        """Add the default admin (and, on a fresh document, the sample catalogue). Returns True if anything changed."""
        changed = False
        if not any(u.role == "admin" for u in document.users):
            seed = self.seed_admin
            wanted = seed.email.strip().casefold()
            existing = next((u for u in document.users if u.email.strip().casefold() == wanted), None)
            if existing is not None:
                existing.role = "admin"
                logger.warning("Promoted existing user %s to admin", existing.email)
            else:
                document.users.append(
                    User(
                        id=next_id(document.users),
                        name=seed.name,
                        email=seed.email.strip(),
                        password=admin_hash or hash_password(seed.password),
                        role="admin",
                    )
                )
                logger.info("Seeded default admin %s", seed.email)
            changed = True
        if fresh and self.seed_sample_products and not document.products:
            for item in SEED_PRODUCTS:
                document.products.append(Product(id=next_id(document.products), **item))
            logger.info("Seeded %d sample products", len(SEED_PRODUCTS))
            changed = True
        return changed

    # ---------------------------
    # Access
    # ---------------------------
    def _live(self) -> Document:
        if self._document is None:
            raise StorageUnavailable("Document has not been loaded")
        return self._document

    def snapshot(self) -> Document:
        """Deep copy of the current document. Changes to it are never persisted."""
        return self._live().model_copy(deep=True)

    def next_id(self, collection: str) -> int:
        if collection not in COLLECTIONS:
            raise ValueError(f"unknown collection: {collection}")
        return next_id(getattr(self._live(), collection))

    async def with_document(self, mutator: Callable[[Document], T]) -> T:
        """
        Apply mutator to a working copy of the document and persist it.

        Calls are serialized. If the mutator raises or the write fails, the live
        document and the file are left exactly as they were.
        """
        async with self._lock:
            working = self._live().model_copy(deep=True)
            result = mutator(working)
            try:
                working = Document.model_validate(working.to_json_dict())
            except SchemaError as exc:
                raise ValidationError(exc.errors()[0].get("msg", "Invalid record")) from exc
            _check_integrity(working)
            await self._persist(working)
            self._document = working
            return result
