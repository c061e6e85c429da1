"""AumOS Case Manager service entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from aumos_case_manager.adapters.database import create_tables, dispose_database, init_database
from aumos_case_manager.api.router import get_settings, router
from aumos_case_manager.errors import CaseManagerError
from aumos_case_manager.observability import SafeLogger, configure_logging, get_logger

settings = get_settings()
logger = SafeLogger(get_logger(__name__))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    # Startup
    configure_logging(settings.log_level, settings.log_json)
    engine = init_database(settings.database_url, echo=settings.database_echo)
    await create_tables(engine)
    logger.info("Service started", service_name=settings.service_name)
    yield
    # Shutdown
    await dispose_database()


app = FastAPI(title=settings.service_name, version="0.1.0", lifespan=lifespan)


@app.exception_handler(CaseManagerError)
async def handle_case_manager_error(request: Request, exc: CaseManagerError) -> JSONResponse:
    """Render domain errors as ``{"status": ..., "error": {...}}`` bodies."""
    if exc.is_operational:
        logger.warning("Request failed", path=request.url.path, error=exc.to_dict())
    else:
        logger.error("Request failed", path=request.url.path, error=exc.to_dict())
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status, "error": exc.to_dict()},
    )


@app.get("/live", tags=["health"])
async def liveness() -> dict[str, str]:
    """Liveness check: the process is up, regardless of dependencies."""
    return {"status": "ok"}


app.include_router(router, prefix="/api/v1")
