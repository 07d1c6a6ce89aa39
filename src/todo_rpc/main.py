from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from argon2 import PasswordHasher
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import ConnectionPool, SQLiteItemRepository, SQLiteUserRepository
from .dispatcher import RequestDispatcher
from .logging_utils import configure_logging
from .methods import build_registry
from .routers import auth as auth_router
from .routers import rpc as rpc_router
from .schema import SchemaInitializer
from .security import CredentialVerifier, TokenGate, TokenSigner
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Username/password login issuing bearer tokens."},
    {"name": "rpc", "description": "JSON-RPC 2.0 endpoint for listing, adding and removing items."},
]


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    password_hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """
    Build the application and its collaborators.

    The connection pool, registry, dispatcher and token gate are created here
    and stored on ``app.state``; nothing is shared between two apps. The
    schema is applied during startup, and startup fails if it cannot be.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    if settings.jwt_secret_generated:
        logger.warning("JWT_SECRET is not set; using a random key. Tokens will not survive a restart.")

    pool = ConnectionPool(settings.sqlite_db_path, size=settings.db_pool_size)
    initializer = SchemaInitializer(
        pool,
        retries=settings.db_init_retries,
        delay=settings.db_init_delay_seconds,
        sleep=sleep,
    )
    registry = build_registry(
        SQLiteItemRepository(pool),
        service_name=settings.service_name,
        description=settings.service_description,
    )
    signer = TokenSigner(settings.jwt_secret, expires_seconds=settings.token_expires_seconds)
    verifier = CredentialVerifier(SQLiteUserRepository(pool), signer, hasher=password_hasher)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await run_in_threadpool(initializer.ensure_schema)
        if settings.seed_default_user:
            try:
                await run_in_threadpool(verifier.seed_user, settings.default_username, settings.default_password)
            except sqlite3.Error:
                logger.exception("Error during default user seeding")
        logger.info("Service ready; methods: %s", ", ".join(registry.names()))
        yield
        pool.close()

    app = FastAPI(
        title="Todo RPC Backend",
        description="JSON-RPC 2.0 service for a persisted todo list, gated by bearer tokens.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pool = pool
    app.state.registry = registry
    app.state.dispatcher = RequestDispatcher(registry)
    app.state.token_gate = TokenGate(signer)
    app.state.credential_verifier = verifier

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "service": settings.service_name}

    app.include_router(auth_router.router)
    app.include_router(rpc_router.router)
    return app


app = create_app()
