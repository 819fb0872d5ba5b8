# iam/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from iam.adapters.configuration.config import settings
from iam.adapters.outbound.persistence.database import create_tables

# ─── LOGGING CONFIGURATION ────────────────────────────────────────────────────
level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL, logging.INFO)
logging.basicConfig(
    level=level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup."""
    logger.info("Application starting up...")
    await create_tables()

    yield

    logger.info("Application shutting down...")


app = FastAPI(
    title="IAM Backend",
    description="Identity and access management: users, groups, roles, modules and permissions",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url="/docs" if settings.SCHEMA_VISIBILITY else None,
    redoc_url="/redoc" if settings.SCHEMA_VISIBILITY else None,
)

# Exception handlers
from iam.shared.middleware import (
    AsyncExceptionMiddleware,
    AsyncRequestLoggingMiddleware,
    domain_exception_handler,
    validation_exception_handler,
)

app.add_exception_handler(StarletteHTTPException, domain_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Middlewares
app.add_middleware(AsyncRequestLoggingMiddleware)
app.add_middleware(AsyncExceptionMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
from iam.adapters.inbound.api.v1.router import api_router as api_v1_router

app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def redirect_to_docs():
    return RedirectResponse(url="/docs")


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["HTTPBearer"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }

    app.openapi_schema = schema
    return schema


app.openapi = custom_openapi
