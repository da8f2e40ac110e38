import asyncio

import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import customers_router, onboarding_router, user_router
from app.core.config import settings
from app.core.database import DatabaseManager
from app.core.exceptions import ErrorKind, OnboardingError
from app.core.logging import setup_logging
from app.services.init_service import InitService
from app.services.kyc.onboarding_service import get_onboarding_service

_HTTP_KINDS = {
    status.HTTP_401_UNAUTHORIZED: ErrorKind.unauthorized,
    status.HTTP_403_FORBIDDEN: ErrorKind.unauthorized,
    status.HTTP_404_NOT_FOUND: ErrorKind.not_found,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorKind.not_found,
}


def _error_body(kind: ErrorKind, code: str, message: str, details: dict | None = None) -> dict:
    return {
        "status": "error",
        "kind": kind.value,
        "code": code,
        "message": message,
        "details": details or {},
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.log_file)
    logger.info(f"Starting up {settings.app_name} v{settings.version}...")

    # fails fast on a bad OTP secret / TTL
    get_onboarding_service()

    db = DatabaseManager()
    await db.init()
    await InitService.init_roles_permissions()
    await InitService.create_default_user()

    try:
        yield
    finally:
        logger.info("Shutting down...")
        await db.close()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan,
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OnboardingError)
async def onboarding_error_handler(request: Request, exc: OnboardingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        fields.setdefault(".".join(loc) or "body", []).append(error["msg"])
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(ErrorKind.validation_failure, "VALIDATION_ERROR", "Validation failed.", {"fields": fields})
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = _HTTP_KINDS.get(exc.status_code, ErrorKind.validation_failure)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(kind, kind.value.upper(), str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(ErrorKind.internal_error, "INTERNAL_ERROR", "An unexpected error occurred.")
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


app.include_router(
    onboarding_router,
    prefix="/onboard",
    tags=["Onboarding"]
)

app.include_router(
    customers_router,
    prefix="/customers",
    tags=["Customers"]
)

app.include_router(
    user_router,
    prefix="/user",
    tags=["User"]
)


async def main():
    """ Main function to run FastAPI """
    config = uvicorn.Config(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.debug
    )
    server = uvicorn.Server(config)
    await server.serve()

if __name__ == "__main__":
    asyncio.run(main())
