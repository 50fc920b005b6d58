import logging
from contextlib import asynccontextmanager
from math import ceil

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth.interfaces.routes import router as auth_router
from diagrams.interfaces.routes import router as diagrams_router
from sharing.interfaces.routes import router as sharing_router
from shared.config import settings
from shared.exceptions import (
    AlreadySharedError,
    AppError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidShareLevelError,
    LockTimeoutError,
    NotFoundError,
    UnknownGranteeError,
)
from shared.infrastructure.database import Base, engine
from shared.infrastructure.redis import close_redis
from shared.logging import configure_logging

import auth.infrastructure.models  # noqa: F401
import diagrams.infrastructure.models  # noqa: F401
import sharing.infrastructure.models  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Diagram service started (lock backend: %s)", settings.LOCK_BACKEND)
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title="Diagram Collaboration Service",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(diagrams_router)
app.include_router(sharing_router)


def _error(status_code: int, exc: AppError, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(404, exc)


@app.exception_handler(UnknownGranteeError)
async def unknown_grantee_handler(request: Request, exc: UnknownGranteeError):
    return _error(404, exc)


@app.exception_handler(AuthorizationError)
async def forbidden_handler(request: Request, exc: AuthorizationError):
    return _error(403, exc)


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return _error(409, exc)


@app.exception_handler(AlreadySharedError)
async def already_shared_handler(request: Request, exc: AlreadySharedError):
    return _error(409, exc)


@app.exception_handler(InvalidShareLevelError)
async def invalid_share_level_handler(request: Request, exc: InvalidShareLevelError):
    return _error(422, exc)


@app.exception_handler(LockTimeoutError)
async def lock_timeout_handler(request: Request, exc: LockTimeoutError):
    retry_after = str(max(1, ceil(exc.timeout or 1)))
    return _error(423, exc, headers={"Retry-After": retry_after})


@app.exception_handler(AuthenticationError)
async def auth_error_handler(request: Request, exc: AuthenticationError):
    return _error(401, exc)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.error("Unhandled application error: %s", exc.message)
    return _error(500, exc)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
