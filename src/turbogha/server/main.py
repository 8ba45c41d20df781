"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import settings
from ..errors import ConfigurationError, OperationError
from .routes import artifacts, health

logger = logging.getLogger(__name__)

app = FastAPI(
    title="turbogha remote cache",
    version=__version__,
)

app.include_router(health.router)
app.include_router(artifacts.router, prefix="/v8")


@app.exception_handler(OperationError)
async def operation_error_handler(request: Request, exc: OperationError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": str(exc), "status_code": exc.status_code},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/")
async def root() -> dict:
    """Root endpoint.

    Returns:
        Service info
    """
    return {
        "message": "turbogha remote cache",
        "version": __version__,
        "mode": "remote" if settings.valid else "filesystem",
    }
