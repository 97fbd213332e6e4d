import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.sessions import SessionMiddleware

from inboxdesk.config import Settings, get_settings
from inboxdesk.database import build_engine, build_session_factory
from inboxdesk.exception_handlers import register_exception_handlers
from inboxdesk.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from inboxdesk.middleware.tenant import TenantMiddleware
from inboxdesk.routes import (
    account,
    admin,
    admin_accounts,
    admin_plans,
    agents,
    api_keys,
    auth,
    custom_fields,
    inboxes,
    roles,
    superadmin,
    teams,
)
from inboxdesk.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Create the FastAPI application."""
    settings = settings or get_settings()
    setup_structured_logging(settings.log_level, json_format=settings.log_json)

    engine = None
    if session_factory is None:
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant WhatsApp CRM backend",
        debug=settings.debug,
        version=settings.app_version,
    )
    app.state.services = ServiceContainer.build(settings, session_factory)

    # Last added runs first
    app.add_middleware(SessionMiddleware, secret_key=settings.secret_key)
    app.add_middleware(TenantMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(account.router)
    app.include_router(inboxes.router)
    app.include_router(teams.router)
    app.include_router(agents.router)
    app.include_router(roles.router)
    app.include_router(api_keys.router)
    app.include_router(custom_fields.router)
    app.include_router(admin.router)
    app.include_router(admin_plans.router)
    app.include_router(admin_accounts.router)
    app.include_router(superadmin.router)

    @app.get("/health", tags=["Root"])
    async def health():
        return {"status": "ok", "version": settings.app_version}

    if engine is not None:

        @app.on_event("shutdown")
        async def shutdown_event():
            await engine.dispose()
            logger.info("Database engine disposed")

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=get_settings().debug)
