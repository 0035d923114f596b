"""
Main FastAPI application.
Tag-based novel discovery API.
"""
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from storytags.config import settings
from storytags.database import engine
from storytags.routes.common import limiter

# Ensure the log directory exists before the file handler opens it
Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(settings.log_file),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


def run_migrations():
    """
    Apply Alembic migrations up to head.
    Startup fails if they can't be applied.
    """
    try:
        # alembic.ini lives next to the package directory
        base_dir = Path(__file__).resolve().parent.parent
        alembic_cfg = Config(str(base_dir / "alembic.ini"))
        alembic_cfg.set_main_option("script_location", str(base_dir / "alembic"))

        logger.info("Running database migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations completed successfully")

    except Exception as e:
        logger.critical(f"Failed to run migrations: {e}")
        sys.exit(1)


def check_database_integrity():
    """
    Check SQLite integrity before serving.
    - DB > 100MB: PRAGMA quick_check (faster)
    - DB <= 100MB: PRAGMA integrity_check (complete)
    Startup fails on corruption.
    """
    try:
        db_path = Path(settings.database_path)

        if not db_path.exists():
            logger.info("Database does not exist yet, skipping integrity check")
            return

        db_size_mb = db_path.stat().st_size / (1024 * 1024)

        with engine.connect() as conn:
            if db_size_mb > 100:
                logger.info(f"Database size: {db_size_mb:.1f}MB - running quick_check")
                result = conn.execute(text("PRAGMA quick_check;")).fetchone()
            else:
                logger.info(f"Database size: {db_size_mb:.1f}MB - running integrity_check")
                result = conn.execute(text("PRAGMA integrity_check;")).fetchone()

            if result[0] != "ok":
                logger.critical(f"Database integrity check failed: {result[0]}")
                sys.exit(1)

            logger.info("Database integrity check passed")

    except Exception as e:
        logger.critical(f"Failed to check database integrity: {e}")
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup checks: database directory, integrity, migrations.
    """
    logger.info("Starting tag discovery API")
    logger.info(f"Database: {settings.database_path}")
    logger.info(f"Log level: {settings.log_level}")

    # Make sure the data directory exists
    Path(settings.database_path).parent.mkdir(parents=True, exist_ok=True)

    check_database_integrity()
    run_migrations()

    yield

    logger.info("Shutting down tag discovery API")


# Create FastAPI app
app = FastAPI(
    title="Storytags API",
    description="Tag-based novel discovery",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "ok"}


# Include routers
from storytags.routes import admin, novels, tags  # noqa: E402
app.include_router(tags.router, prefix="/api")
app.include_router(novels.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
