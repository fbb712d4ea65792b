import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load env from the working directory's .env (skipped under pytest)
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from planboard.core.config import settings, validate_config
from planboard.core.logging import configure_logging
from planboard.core.middleware.request_id import RequestIdMiddleware
from planboard.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from planboard.api import health, plans
from planboard.features.plans.store import get_plan_store

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("planboard")
    store = get_plan_store()
    logger.info(f"Starting planboard backend ({type(store).__name__})...")
    try:
        yield
    finally:
        logging.getLogger("planboard").info("Stopping planboard backend...")


app = FastAPI(title="planboard", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# CORS (adjust origins in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(plans.router, tags=["plans"])
app.include_router(health.root_router, tags=["health"])
