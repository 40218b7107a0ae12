"""
LenDeFi API: peer-to-peer loans and rotating savings groups (ROSCAs).
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from lendfi.config import settings
from lendfi.database import Database
from lendfi.exceptions import ServiceError
from lendfi.logging_config import configure_logging
from lendfi.middleware.security import limiter, rate_limit_exceeded_handler, security_headers_middleware
from lendfi.routes import (
    admin_router,
    auth_router,
    health_router,
    loans_router,
    roscas_router,
    transactions_router,
)
from lendfi.utils.responses import error_response

logger = logging.getLogger(__name__)


def _format_validation_error(error: dict) -> str:
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location)
    return f"{field}: {error['msg']}" if field else error["msg"]


# ==================== EXCEPTION HANDLERS ====================
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [_format_validation_error(error) for error in exc.errors()]
    return error_response(400, "Validation error", errors)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}")
    return error_response(500, "Internal server error")


# ==================== APPLICATION FACTORY ====================
def create_app(database: Optional[Database] = None) -> FastAPI:
    configure_logging()

    if database is None:
        database = Database(settings.DATABASE_URL, echo=settings.DEBUG)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")
        database.create_all()
        yield
        database.dispose()
        logger.info(f"{settings.APP_NAME} stopped")

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Peer-to-peer lending and rotating savings groups",
        version="1.0.0",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        lifespan=lifespan,
    )
    app.state.db = database

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(security_headers_middleware)

    app.include_router(health_router)
    for router in (auth_router, loans_router, roscas_router, transactions_router, admin_router):
        app.include_router(router, prefix=settings.API_PREFIX)

    return app


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server listening on http://{settings.HOST}:{settings.PORT}")
    logger.info(f"Documentation: http://{settings.HOST}:{settings.PORT}{settings.API_PREFIX}/docs")
    uvicorn.run(
        "lendfi.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
