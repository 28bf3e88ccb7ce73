import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .database import Database
from .exceptions import BookingAppError, InternalError, ValidationError
from .routes import calendar_router, rooms_router, slots_router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(BookingAppError)
    async def booking_error_handler(request: Request, exc: BookingAppError):
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError(
            "Invalid or missing request fields",
            {"errors": jsonable_encoder(exc.errors(), exclude={"ctx", "url"})},
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        error = InternalError(details={"error": str(exc)})
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = InternalError(details={"error": str(exc)})
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings()
    database = database or Database(settings)
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("App starting up...")
        if settings.CREATE_TABLES:
            await database.create_all()
        yield
        logger.info("App shutting down...")
        await database.dispose()

    app = FastAPI(title=settings.APP_TITLE, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(calendar_router)
    app.include_router(rooms_router)
    app.include_router(slots_router)

    @app.get("/health")
    async def health():
        return {"success": True, "message": "Room booking API is running"}

    return app


if __name__ == "__main__":
    import uvicorn

    app_settings = Settings()
    uvicorn.run(create_app(app_settings), host=app_settings.HOST, port=app_settings.PORT)
