from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.errors import CollaboratorError, ConflictError, EngineError, NotFoundError, ValidationError
from app.core.logging import configure_logging, get_logger
from app.core.redis import redis_client
from app.routers import cancellations, carrier_sync, invoice_requests, invoices, price_brackets

settings = get_settings()

configure_logging()
logger = get_logger()

ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    CollaboratorError: status.HTTP_502_BAD_GATEWAY,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await redis_client.close()


app = FastAPI(
    title=settings.app_name,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(invoice_requests.router, prefix=settings.api_prefix)
app.include_router(invoices.router, prefix=settings.api_prefix)
app.include_router(price_brackets.router, prefix=settings.api_prefix)
app.include_router(cancellations.router, prefix=settings.api_prefix)
app.include_router(carrier_sync.router, prefix=settings.api_prefix)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    code = next(
        (value for cls, value in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info("request_rejected", path=str(request.url.path), error=exc.code, message=exc.message)
    return JSONResponse(status_code=code, content=exc.to_dict())


@app.get("/")
async def root():
    return {"service": settings.app_name}


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    logger.info("request", path=str(request.url.path), method=request.method, status=response.status_code)
    response.headers["X-Request-ID"] = request_id
    return response
