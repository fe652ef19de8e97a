"""
FastAPI application factory and entry point.

create_app() builds and wires the application:
  1. Settings and AppContext — configuration is read once, turned into
     long-lived handles, and stored on app.state.context
  2. Logging — structured JSON to stdout at LOG_LEVEL
  3. Lifespan manager — creates tables on startup, closes the bank client
     and disposes the engine on shutdown
  4. CORS middleware
  5. Exception handlers — map domain errors to HTTP responses
  6. Routers — /queries/* and /mutations/*, plus /health

Running locally:
    uvicorn ledger_api.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger_api.app_context import AppContext, build_context
from ledger_api.config import Settings, get_settings
from ledger_api.database import Base
from ledger_api.exceptions import register_exception_handlers
from ledger_api.logging_config import setup_logging
from ledger_api.routers import accounts, auth, cards, transactions


def create_app(
    settings: Settings | None = None,
    context: AppContext | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration to use; read from the environment when omitted.
        context: Prebuilt service handles (tests pass one backed by an
                 in-memory database); built from settings when omitted.
    """
    if context is not None:
        settings = context.settings
    elif settings is None:
        settings = get_settings()
    if context is None:
        context = build_context(settings)

    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # In production, manage the schema with migrations instead
        async with context.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield
        await context.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Ledger and authorization core: accounts, cards, transactions",
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router, tags=["Auth"])
    app.include_router(accounts.router, tags=["Accounts"])
    app.include_router(cards.router, tags=["Cards"])
    app.include_router(transactions.router, tags=["Transactions"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe for load balancers and orchestrators."""
        return {"status": "ok", "version": settings.APP_VERSION}

    return app


app = create_app()
