# storefront/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import catalog
from .auth import Identity, SessionRegistry, require_role
from .config import Settings, get_settings
from .document_store import DocumentStore
from .errors import StorageUnavailable, StoreError
from .logs import configure_logging
from .models import LoginIn, ProductIn, ProductUpdate, RegisterIn

logger = logging.getLogger(__name__)


# ---------------------------
# Dependencies
# ---------------------------
def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def current_identity(
    token: Optional[str] = Depends(bearer_token),
    sessions: SessionRegistry = Depends(get_sessions),
) -> Optional[Identity]:
    return sessions.resolve(token)


def require_user(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
    return require_role(identity, "user")


def require_admin(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
    return require_role(identity, "admin")


# ---------------------------
# Error handlers
# ---------------------------
async def _store_error(request: Request, exc: StoreError):
    if isinstance(exc, StorageUnavailable):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"success": False, "message": "Server error"})
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


async def _bad_request(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg')}" if where else first.get("msg", "Invalid input")
    else:
        message = "Invalid input"
    return JSONResponse(status_code=400, content={"success": False, "message": message})


# ---------------------------
# App factory
# ---------------------------
def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    settings = settings or get_settings()
    store = store or DocumentStore.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.secret_is_default and settings.app_env != "dev":
            logger.warning("SECRET_KEY is not set; sessions are signed with the development secret")
        await store.load()
        yield

    app = FastAPI(title="storefront (JSON document store)", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.sessions = SessionRegistry(settings.secret_key, settings.session_ttl_seconds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StoreError, _store_error)
    app.add_exception_handler(RequestValidationError, _bad_request)

    # ---------------------------
    # Public catalogue
    # ---------------------------
    @app.get("/api/products")
    async def list_products(category: Optional[str] = None, store: DocumentStore = Depends(get_store)):
        return await catalog.list_products(store, category)

    @app.get("/api/products/{product_id}")
    async def get_product(product_id: int, store: DocumentStore = Depends(get_store)):
        return await catalog.get_product(store, product_id)

    # ---------------------------
    # Accounts
    # ---------------------------
    @app.post("/api/register", status_code=201)
    async def register(payload: RegisterIn, store: DocumentStore = Depends(get_store)):
        user = await catalog.register_user(store, payload)
        return {"success": True, "user": user}

    @app.post("/api/login")
    async def login(
        payload: LoginIn,
        store: DocumentStore = Depends(get_store),
        sessions: SessionRegistry = Depends(get_sessions),
    ):
        result = await catalog.login(store, sessions, payload)
        return {"success": True, **result}

    @app.post("/api/logout")
    async def logout(
        token: Optional[str] = Depends(bearer_token),
        sessions: SessionRegistry = Depends(get_sessions),
    ):
        sessions.revoke(token)
        return {"success": True}

    @app.get("/api/me")
    async def me(identity: Identity = Depends(require_user)):
        return identity.to_dict()

    # ---------------------------
    # Admin
    # ---------------------------
    @app.post("/api/admin/products", status_code=201)
    async def add_product(
        payload: ProductIn,
        store: DocumentStore = Depends(get_store),
        admin: Identity = Depends(require_admin),
    ):
        product = await catalog.add_product(store, payload)
        return {"success": True, "product": product}

    @app.put("/api/admin/products/{product_id}")
    async def update_product(
        product_id: int,
        payload: ProductUpdate,
        store: DocumentStore = Depends(get_store),
        admin: Identity = Depends(require_admin),
    ):
        product = await catalog.update_product(store, product_id, payload)
        return {"success": True, "product": product}

    @app.delete("/api/admin/products/{product_id}")
    async def delete_product(
        product_id: int,
        store: DocumentStore = Depends(get_store),
        admin: Identity = Depends(require_admin),
    ):
        await catalog.delete_product(store, product_id)
        return {"success": True}

    @app.get("/api/admin/users")
    async def list_users(store: DocumentStore = Depends(get_store), admin: Identity = Depends(require_admin)):
        return await catalog.list_users(store)

    @app.get("/health")
    async def health(store: DocumentStore = Depends(get_store)):
        return {"status": "ok" if store.loaded else "starting"}

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
