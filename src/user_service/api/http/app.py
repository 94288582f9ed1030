"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.responses import JSONResponse

from src.user_service.api.http.app_data import (
    ApplicationDependencies,
    build_dependencies,
)
from src.user_service.api.http.routers.health import router as health_router
from src.user_service.api.http.routers.users import router as users_router
from src.user_service.api.utils.app_startup import configure_logging
from src.user_service.core.exceptions import IdentityError
from src.user_service.runtime.config.config_data import ConfigData
from src.user_service.runtime.context import get_config

ERROR_STATUS = {
    "MALFORMED_TOKEN": 401,
    "TOKEN_UNTRUSTED": 401,
    "SIGNATURE_INVALID": 401,
    "AUTHENTICATION_FAILED": 401,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "TOKEN_EXCHANGE_FAILED": 502,
}


async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.code, 400)
    logger.bind(status_code=status_code, error_code=exc.code).warning(
        f"{request.method} {request.url.path} failed: {exc.message}"
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": exc.message, "code": exc.code},
    )


async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
    }

    start = time.perf_counter()
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        duration_ms = (time.perf_counter() - start) * 1000
        logger.bind(
            status_code=response.status_code,
            duration_ms=round(duration_ms, 1),
        ).info("request.end")
        response.headers.setdefault("X-Request-ID", request_id)
        return response


async def startup(app: FastAPI) -> None:
    deps: ApplicationDependencies = app.state.app_dependencies
    config = deps.config
    logger.info(f"Starting up user service in {config.app.environment} environment")

    deps.database_service.create_tables()

    # surface an unreachable key set at boot rather than on the first request
    if config.jwt.verify_signature:
        try:
            await deps.jwks_service.fetch_jwks(config.cognito.jwks_url)
        except IdentityError as exc:
            logger.error(f"JWKS readiness check failed: {exc.message}")
            if config.app.environment == "production":
                raise


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down user service")
    deps: ApplicationDependencies = app.state.app_dependencies
    deps.jwks_cache.clear_jwks_cache()
    deps.database_service.dispose()


def create_app(
    config: ConfigData | None = None,
    dependencies: ApplicationDependencies | None = None,
) -> FastAPI:
    """Build the application; tests pass their own dependencies."""
    config = config or (dependencies.config if dependencies else get_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup(app)
        try:
            yield
        finally:
            await shutdown(app)

    is_production = config.app.environment == "production"
    app = FastAPI(
        title="User Service",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )
    app.state.app_dependencies = dependencies or build_dependencies(config)

    if is_production and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )
    app.middleware("http")(log_requests)
    app.add_exception_handler(IdentityError, identity_error_handler)

    app.include_router(health_router)
    app.include_router(users_router)
    return app


def main() -> None:
    config = get_config()
    configure_logging(config)
    uvicorn.run(
        "src.user_service.api.http.app:create_app",
        factory=True,
        host=config.app.host,
        port=config.app.port,
    )


if __name__ == "__main__":
    main()
