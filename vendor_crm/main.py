"""
Entry point for the vendor CRM backend.

This script creates the FastAPI application, includes all API routers
and prepares the database on startup. Run with:

    uvicorn vendor_crm.main:app --reload

"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI

from .api import api_router
from .core.config import env_flag, get_app_env, settings
from .core.db import SessionContext, engine
from .core.errors import log_exception
from .core.logging_config import setup_logging
from .models import Base
from .scripts.run_migrations import run_migrations_to_head
from .services.auth_seed import seed_admin_user, seed_demo_vendor


def _create_tables() -> None:
    Base.metadata.create_all(bind=engine)


def _seed_with_session(seed: Callable) -> Callable[[], None]:
    def _run() -> None:
        with SessionContext() as db:
            seed(db)

    return _run


# (env flag, settings default, label, step) in the order they run
STARTUP_STEPS: list[tuple[str, bool, str, Callable[[], None]]] = [
    ("AUTO_CREATE_DB", settings.auto_create_db, "DB create_all", _create_tables),
    ("AUTO_RUN_MIGRATIONS", settings.auto_run_migrations, "DB migrations", run_migrations_to_head),
    ("AUTO_SEED_ADMIN_USER", settings.auto_seed_admin_user, "Seed admin user", _seed_with_session(seed_admin_user)),
    ("AUTO_SEED_DEMO_VENDOR", settings.auto_seed_demo_vendor, "Seed demo vendor", _seed_with_session(seed_demo_vendor)),
]


def run_startup_steps() -> None:
    """Run the enabled startup steps; failures are fatal only in prod."""
    logger = logging.getLogger("startup")
    env = get_app_env()
    for flag, default, label, step in STARTUP_STEPS:
        if not env_flag(flag, default):
            continue
        try:
            step()
        except Exception as exc:
            log_exception(logger, f"{label} failed", extra={"env": env}, exc=exc)
            if env == "prod":
                raise
    logger.info("Startup complete env=%s", env)


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Vendor CRM Backend", version="0.1.0")
    app.include_router(api_router)

    @app.on_event("startup")
    def _init_db() -> None:
        run_startup_steps()

    @app.on_event("shutdown")
    def _shutdown() -> None:
        engine.dispose()

    return app


app = create_app()
