import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from the project root .env (tests configure the environment themselves)
project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(project_dir, ".env"))

# Import after dotenv is loaded
from looped.core.config import settings, validate_config, cors_origins
from looped.core.logging import configure_logging
from looped.core.middleware.request_id import RequestIdMiddleware
from looped.core.validation import validate_env
from looped.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from looped.core.ratelimit import InMemoryRateLimiter, trainer_rate_limit_config
from looped.core.database import create_all_tables
from looped.features.challenges.catalog import seed_catalog
from looped.api import (
    challenges,
    demo,
    health,
    insights,
    journal,
    planner,
    settings as settings_api,
    streaks,
    todos,
    trainer,
)

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("looped")
    logger.info("Starting Looped backend...")
    create_all_tables()
    if settings.SEED_CATALOG_ON_STARTUP:
        seed_catalog()
    try:
        yield
    finally:
        logging.getLogger("looped").info("Stopping Looped backend...")


app = FastAPI(title="Looped - Backend", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.state.rate_limiter = InMemoryRateLimiter(trainer_rate_limit_config())

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(challenges.router)
app.include_router(streaks.router)
app.include_router(settings_api.router)
app.include_router(trainer.router)
app.include_router(demo.router)
app.include_router(journal.router)
app.include_router(todos.router)
app.include_router(planner.router)
app.include_router(insights.router)
app.include_router(health.root_router)
