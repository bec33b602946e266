from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .errors import register_exception_handlers
from .middleware import SecurityHeadersMiddleware
from .routers import admin, auth, blogs, comments, system, users
from .settings import CLIENT_URL, RUN_MIGRATIONS

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

API_PREFIX = "/api"

_STARTUP_COMPLETE = False


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    cfg.attributes["configure_logger"] = False
    return cfg


def run_migrations() -> None:
    logger.info("Running Alembic migrations...")
    try:
        command.upgrade(_alembic_config(), "head")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise
    logger.info("run_migrations: Completed successfully.")


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return
    if RUN_MIGRATIONS:
        run_migrations()
    else:
        logger.info("run_startup_tasks: RUN_MIGRATIONS disabled, skipping migrations.")
    _STARTUP_COMPLETE = True
    logger.info("Startup tasks completed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    # Server won't accept requests until migrations complete
    run_startup_tasks()
    logger.info("BlogSpace API server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="BlogSpace API",
    version="1.0.0",
    description="Blogging platform API: posts, comments, likes, follows and moderation",
    lifespan=lifespan,
)

# CORS Configuration - restrict to specific origins
# Set CORS_ORIGINS to a comma-separated list; defaults to CLIENT_URL
cors_origins_str = os.getenv("CORS_ORIGINS", CLIENT_URL)
if cors_origins_str == "*":
    logger.warning(
        "CORS is configured to allow all origins. "
        "This is insecure for production. Set CORS_ORIGINS to specific domains."
    )
cors_origins = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=600,
)

app.add_middleware(SecurityHeadersMiddleware)

register_exception_handlers(app)

app.include_router(system.router, prefix=API_PREFIX)
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(blogs.router, prefix=API_PREFIX)
app.include_router(comments.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(admin.router, prefix=API_PREFIX)
