# wlboard/main.py
import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from wlboard.core.config import DEFAULT_JWT_SECRET, Settings, get_settings
from wlboard.core.errors import NotFound, error_response, install_error_handlers
from wlboard.core.rate_limit import RateLimiter, client_key
from wlboard.database import (
    ALLOWED_EMAILS,
    PARTNERSHIPS,
    USERS,
    JsonDocumentStore,
    PersistenceGateway,
)
from wlboard.models.user import AllowedEmail
from wlboard.realtime.channel import ConnectionManager
from wlboard.realtime.hub import RealtimeHub
from wlboard.realtime.presence import PresenceRegistry
from wlboard.repositories.partnership_repo import RecordStore
from wlboard.repositories.user_repo import AllowedEmailRepository, UserRepository
from wlboard.services.auth_service import AuthService
from wlboard.services.partnership_service import PartnershipService

# Routers
from wlboard.routers.admin import router as admin_router
from wlboard.routers.auth import router as auth_router
from wlboard.routers.partnerships import router as partnerships_router
from wlboard.routers.realtime import router as realtime_router
from wlboard.routers.status import router as status_router

logger = logging.getLogger("uvicorn")


def _build_state(app: FastAPI, settings: Settings) -> PersistenceGateway:
    """
    Load every collection and wire the components together on app.state.

    Returns the gateway so the lifespan can run its timer and final flush.
    """
    gateway = PersistenceGateway(JsonDocumentStore(settings.DATA_DIR))
    connections = ConnectionManager()
    presence = PresenceRegistry()

    store = RecordStore.from_documents(gateway.load(PARTNERSHIPS))
    gateway.register(PARTNERSHIPS, store.to_documents)

    auth = None
    if settings.AUTH_ENABLED:
        users = UserRepository.from_documents(gateway.load(USERS))
        allowed = AllowedEmailRepository.from_documents(
            gateway.load(
                ALLOWED_EMAILS,
                seed=lambda: [
                    AllowedEmail(
                        email=settings.BOOTSTRAP_ADMIN_EMAIL.lower(),
                        role="admin",
                        addedBy="system",
                    ).model_dump()
                ],
            )
        )
        gateway.register(USERS, users.to_documents)
        gateway.register(ALLOWED_EMAILS, allowed.to_documents)
        auth = AuthService(users, allowed, gateway, settings)

    app.state.gateway = gateway
    app.state.presence = presence
    app.state.connections = connections
    app.state.partnerships = PartnershipService(store, gateway, connections)
    app.state.hub = RealtimeHub(presence, connections, store)
    app.state.auth = auth
    app.state.started_at = time.monotonic()

    logger.info("📂 Data loaded:")
    logger.info("   • %d partnerships", len(store))
    if auth is not None:
        logger.info("   • %d users", len(auth.users))
        logger.info("   • %d allowed emails", len(auth.allowed))
    return gateway


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Load collections from DATA_DIR (seeding the allowlist on first run).
      - Start the periodic backup task.

    Shutdown:
      - Stop the timer, wait for pending writes, flush everything once more.
    """
    settings: Settings = app.state.settings
    logger.info("🔄 Startup: loading data from %s", settings.DATA_DIR)
    gateway = _build_state(app, settings)

    if settings.AUTH_ENABLED and settings.JWT_SECRET == DEFAULT_JWT_SECRET:
        logger.warning("⚠️ JWT_SECRET is the development default; set it in production.")

    backup = asyncio.create_task(gateway.run_periodic(settings.SAVE_INTERVAL_SECONDS))
    logger.info(
        "🚀 %s ready (auth %s)",
        settings.PROJECT_NAME,
        "enabled" if settings.AUTH_ENABLED else "disabled",
    )
    try:
        yield
    finally:
        logger.info("🛑 Shutting down...")
        backup.cancel()
        with suppress(asyncio.CancelledError):
            await backup
        await gateway.shutdown()


def _page(settings: Settings, filename: str) -> FileResponse:
    path = settings.STATIC_DIR / filename
    if not path.is_file():
        raise NotFound("Page not found")
    return FileResponse(path)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app. Tests pass their own Settings."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.api_limiter = RateLimiter(
        settings.API_RATE_LIMIT, settings.API_RATE_WINDOW_SECONDS
    )
    app.state.login_limiter = RateLimiter(
        settings.LOGIN_RATE_LIMIT, settings.LOGIN_RATE_WINDOW_SECONDS
    )

    install_error_handlers(app)

    # --- CORS configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def api_rate_limit(request: Request, call_next):
        if request.url.path.startswith(settings.API_PREFIX):
            if not app.state.api_limiter.hit(client_key(request)):
                return error_response(429, "Too many requests. Try again later.")
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        return response

    app.include_router(partnerships_router, prefix=settings.API_PREFIX)
    app.include_router(status_router, prefix=settings.API_PREFIX)
    if settings.AUTH_ENABLED:
        app.include_router(auth_router, prefix=settings.API_PREFIX)
        app.include_router(admin_router, prefix=settings.API_PREFIX)
    app.include_router(realtime_router)

    # --- Pages ---

    @app.get("/", include_in_schema=False)
    def index():
        return _page(settings, "login.html" if settings.AUTH_ENABLED else "index.html")

    @app.get("/dashboard", include_in_schema=False)
    def dashboard():
        return _page(settings, "dashboard.html")

    @app.get("/admin", include_in_schema=False)
    def admin_page():
        return _page(settings, "admin.html")

    if settings.STATIC_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")

    return app


logging.basicConfig(level=get_settings().LOG_LEVEL.upper())

app = create_app()
