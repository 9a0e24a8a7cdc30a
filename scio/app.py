"""FastAPI application factory and configuration."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel

from . import models  # noqa: F401 - ensure models are registered with SQLModel
from .api import register_routes
from .core import (
    ALLOWED_CORS_ORIGINS,
    DB_RESET,
    LOG_LEVEL,
    SEED_QUESTIONS,
    engine,
    request_id_var,
    setup_logging,
)
from .services.errors import ErrorCode, HTTP_STATUS, ServiceError
from .services.questions import seed_questions

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


def init_db(bind=engine, reset: bool = DB_RESET, seed: bool = SEED_QUESTIONS) -> None:
    if reset:
        logger.warning("DB_RESET set, dropping all tables")
        SQLModel.metadata.drop_all(bind)
    SQLModel.metadata.create_all(bind)
    if seed:
        with Session(bind) as session:
            seed_questions(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def _error_response(code: ErrorCode, message: str, status_code: int) -> JSONResponse:
    request_id = request_id_var.get()
    return JSONResponse(
        {"error": {"code": code.value, "message": message, "requestId": request_id}},
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code.value, exc.message)
        return _error_response(exc.code, exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid input')}" if location else "Invalid request"
        return _error_response(ErrorCode.BAD_REQUEST, message, HTTP_STATUS[ErrorCode.BAD_REQUEST])

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Database failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _error_response(ErrorCode.INTERNAL, "Internal error", HTTP_STATUS[ErrorCode.INTERNAL])


def create_app() -> FastAPI:
    setup_logging("scio", LOG_LEVEL)
    app = FastAPI(title="Scio Match API", version="0.3.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    register_error_handlers(app)
    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("scio.app:app", host="127.0.0.1", port=3000, reload=True)
