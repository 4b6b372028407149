import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import fuelflow.app.models.accounting  # noqa: F401  registers every table
from fuelflow.app.api.v1.api import api_router
from fuelflow.app.core.config import settings
from fuelflow.app.core.database import Base, engine
from fuelflow.app.core.exceptions import FuelFlowError, PersistenceError
from fuelflow.app.core.logging_config import configure_logging
from fuelflow.app.middleware.request_id import RequestIDMiddleware
from fuelflow.app.middleware.security import SecurityHeadersMiddleware

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    Base.metadata.create_all(bind=engine)
    logger.info("FuelFlow API started")
    yield


app = FastAPI(title="FuelFlow Station Back Office", lifespan=lifespan)

# ─── CORS: restrict to configured origins ────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# ─── Custom middleware (outermost executes first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)


# ─── Error rendering ──────────────────────────────────────────────────────────


@app.exception_handler(FuelFlowError)
async def fuelflow_error_handler(request: Request, exc: FuelFlowError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error(
            "Persistence failure on %s %s",
            request.method,
            request.url.path,
            exc_info=exc.__cause__ or exc,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(p) for p in err["loc"] if p != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "code": "VALIDATION_ERROR", "errors": errors},
    )


app.include_router(api_router)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}
