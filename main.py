"""
Todo service — application entry point.
"""

from __future__ import annotations

import logging
import pathlib
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.errors import register_exception_handlers
from api.middleware import register_middleware
from api.routes import router as todo_router
from auth.jwt import TokenIssuer
from auth.routes import router as auth_router
from config.settings import Settings
from database.migrations import apply_migrations
from database.session import build_engine, build_session_factory
from database.todos import TodoRepository
from database.users import UserRepository

logger = logging.getLogger(__name__)

FRONTEND_DIR = pathlib.Path(__file__).resolve().parent / "frontend"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("aiosqlite", "asyncio", "sqlalchemy.engine", "multipart"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Todo Service",
        version="1.0.0",
        description="Personal todo lists with bearer-token authentication.",
    )

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    app.state.settings = settings
    app.state.engine = engine
    app.state.token_issuer = TokenIssuer(settings.jwt_secret, settings.jwt_expiry_seconds)
    app.state.users = UserRepository(session_factory, bcrypt_rounds=settings.bcrypt_rounds)
    app.state.todos = TodoRepository(session_factory)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/auth")
    app.include_router(todo_router)

    if FRONTEND_DIR.is_dir():
        app.mount("/", StaticFiles(directory=str(FRONTEND_DIR), html=True), name="frontend")

    @app.on_event("startup")
    async def on_startup():
        if settings.jwt_secret == Settings.model_fields["jwt_secret"].default:
            logger.warning("JWT_SECRET is not set; using the built-in development secret")
        applied = await apply_migrations(engine)
        if applied:
            logger.info("Applied %d migration(s): %s", len(applied), applied)
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

    return app


if __name__ == "__main__":
    _settings = Settings()
    configure_logging(_settings)
    uvicorn.run(
        create_app(_settings),
        host=_settings.host,
        port=_settings.port,
        log_level="debug" if _settings.debug else "info",
    )
