# storefront/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from storefront.api.routers import buyers, carts, orders, notifications
from storefront.api.routers.health import router as health_router
from storefront.domain.errors import ConcurrencyError, InvalidTransitionError, NotFoundError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _error(status_code: int):
    async def handler(request: Request, exc: Exception):
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


async def _persistence_error(request: Request, exc: SQLAlchemyError):
    logger.error(f"Persistence error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    # most specific class wins, starlette walks the exception MRO
    app.add_exception_handler(NotFoundError, _error(404))
    app.add_exception_handler(InvalidTransitionError, _error(409))
    app.add_exception_handler(ValueError, _error(400))
    app.add_exception_handler(PermissionError, _error(403))
    app.add_exception_handler(ConcurrencyError, _error(409))
    app.add_exception_handler(SQLAlchemyError, _persistence_error)


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="Storefront Settlement Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(buyers.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(notifications.router)

    return app
