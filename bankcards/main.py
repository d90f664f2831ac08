"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Logging — structlog configured once, before anything logs
  2. Lifespan manager — DB table creation, bootstrap admin, cleanup
  3. CORS middleware — allows frontend origins to make cross-origin requests
  4. Exception handlers — maps domain errors to HTTP responses
  5. Router registration — mounts all API endpoint groups under /api

Running locally:
    uvicorn bankcards.main:app --reload
"""

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import make_url

from bankcards.config import settings
from bankcards.database import AsyncSessionLocal, Base, engine
from bankcards.exceptions import register_exception_handlers
from bankcards.logging_config import configure_logging
from bankcards.routers import admin, auth, cards, transfers
from bankcards.schemas.common import ErrorResponse
from bankcards.services import user_service

configure_logging()
logger = structlog.get_logger()


def _ensure_sqlite_directory(url: str) -> None:
    # sqlite won't create ./data/ on its own
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Creates all database tables if they don't exist, then creates the
      configured bootstrap admin (if any) so a fresh deployment has
      someone who can log in and provision users.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    _ensure_sqlite_directory(settings.DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await user_service.ensure_bootstrap_admin(session, settings)
        await session.commit()

    logger.info("startup", version=settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await engine.dispose()
    logger.info("shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Bank card management API: card issuance, encrypted card storage "
                "and transfers between a user's own cards",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

_ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
    403: {"model": ErrorResponse, "description": "Access denied or operation not allowed"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
    409: {"model": ErrorResponse, "description": "Duplicate card or user"},
}

app.include_router(
    auth.router, prefix="/api/auth", tags=["Auth"],
    responses={401: _ERROR_RESPONSES[401]},
)
app.include_router(
    cards.router, prefix="/api/cards", tags=["Cards"], responses=_ERROR_RESPONSES,
)
app.include_router(
    transfers.router, prefix="/api/transfers", tags=["Transfers"], responses=_ERROR_RESPONSES,
)
app.include_router(
    admin.router, prefix="/api/admin", tags=["Admin"], responses=_ERROR_RESPONSES,
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
