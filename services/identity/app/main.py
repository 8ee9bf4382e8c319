import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.database import close_db, init_db
from app.rate_limit import limiter
from app.redis_client import close_redis_client
from app.admin.router import router as admin_router
from app.auth.router import router as auth_router
from app.auth.utils import configure_hashing
from app.profile.router import router as profile_router
from shared.middleware import (
    RequestIdFilter,
    error_envelope_middleware,
    http_error_handler,
    request_id_middleware,
)

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## Insighta Identity Service

Handles user identity for the Insighta blogging platform:

* **Registration** — username, email and password; accounts start unverified.
* **Account verification** — a 6-digit code emailed on request, valid for 10 minutes.
* **Authentication** — email/password login; access (1 h) and refresh (7 d) tokens
  delivered as HTTP-only cookies, with the access token also in the body.
* **Password reset** — single-use 15-minute link sent by email.
* **User profiles** — view, update and delete your own account.
* **Admin** — list users, change roles, deactivate and delete accounts.

### Authentication
Protected endpoints read the `access_token` cookie or:
```
Authorization: Bearer <access_token>
```

### Error shape
All errors return a consistent JSON envelope:
```json
{ "detail": "Human-readable message", "request_id": "..." }
```
Validation errors (`422`) return the standard Pydantic error list under `detail`.

### Rate limits
`429 Too Many Requests` is returned when a rate limit is exceeded.
"""

_TAGS_METADATA = [
    {
        "name": "auth",
        "description": (
            "Registration, login, logout, token refresh, account verification, "
            "password reset and password change."
        ),
    },
    {
        "name": "profile",
        "description": "View, update and delete the authenticated user's own account.",
    },
    {
        "name": "admin-users",
        "description": "**Admin only.** User listing, role changes, deactivation and deletion.",
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIdFilter())


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    _configure_logging(settings.log_level)
    configure_hashing(settings.password_hash_rounds)
    init_db(settings.identity_database_url)
    logging.getLogger(__name__).info("Identity service started (%s)", settings.env_name)
    yield
    await close_redis_client()
    await close_db()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Insighta Identity Service",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Attach rate limiter state before middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    # Middleware is applied in reverse-registration order (last added = outermost).
    # CORS must be outermost so ALL responses (including 429s) carry CORS headers;
    # request_id wraps the error envelope so 500s carry X-Request-ID too.
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(error_envelope_middleware)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(profile_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["health"], include_in_schema=True)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="identity")

    return app


app = create_app()
