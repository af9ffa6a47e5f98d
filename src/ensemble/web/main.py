# src/ensemble/web/main.py
"""FastAPI application: routes, error translation and startup."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ensemble.bootstrap import bootstrap_all, bootstrap_status, is_ready
from ensemble.canon.db import dispose_engine
from ensemble.config import config
from ensemble.core.logging import get_logger, init_logging
from ensemble.errors import (
    ConflictError,
    EnsembleError,
    InvalidOperationError,
    LimitExceededError,
    NotFoundError,
    StoreFailureError,
)
from ensemble.web.routes import router

logger = get_logger(__name__)

STATUS_BY_ERROR: dict[type[EnsembleError], int] = {
    NotFoundError: 404,
    ConflictError: 409,
    InvalidOperationError: 400,
    LimitExceededError: 422,
    StoreFailureError: 503,
}


def status_for(exc: EnsembleError) -> int:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_logging(level=config.system.log_level)
    await bootstrap_all()
    yield
    await dispose_engine()


app = FastAPI(
    title="Ensemble API",
    description="Characters, groups, labels and the relationships between them",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in config.system.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(EnsembleError)
async def ensemble_error_handler(request: Request, exc: EnsembleError) -> JSONResponse:
    status_code = status_for(exc)
    if isinstance(exc, StoreFailureError):
        logger.error(
            "Store failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.cause,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status_code,
            content={"code": exc.code, "message": "storage temporarily unavailable"},
        )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details: dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        details[".".join(location) or "body"] = error.get("msg", "is invalid")
    return JSONResponse(
        status_code=400,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Validation failed",
            "details": details,
        },
    )


@app.get("/health")
async def health_check():
    return {
        "status": "healthy" if is_ready() else "starting",
        "bootstrap": bootstrap_status(),
    }


def run() -> None:
    """Serve the API with uvicorn."""
    uvicorn.run("ensemble.web.main:app", host="0.0.0.0", port=config.system.port)


if __name__ == "__main__":  # pragma: no cover - CLI execution
    run()
