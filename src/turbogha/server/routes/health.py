"""Health check endpoint."""

import logging

from fastapi import APIRouter

from ... import __version__
from ...config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


def check_cache_backend() -> dict:
    """Report which cache mode requests will use.

    Returns:
        Status dictionary
    """
    if not settings.ACTIONS_CACHE_URL:
        return {"status": "not_configured", "mode": "filesystem"}
    if not settings.ACTIONS_RUNTIME_TOKEN:
        return {"status": "missing_credentials", "mode": "filesystem"}
    return {"status": "configured", "mode": "remote", "backend": settings.TURBOGHA_BACKEND}


def check_temp_dir() -> dict:
    """Check that the temp directory is writable.

    Returns:
        Status dictionary
    """
    try:
        settings.temp_dir.mkdir(parents=True, exist_ok=True)
        test_file = settings.temp_dir / ".turbogha_health_check"
        test_file.write_text("ok")
        test_file.unlink()
        return {"status": "healthy", "path": str(settings.temp_dir)}
    except OSError as e:
        logger.warning(f"Temp dir health check failed: {e}")
        return {"status": "unhealthy", "path": str(settings.temp_dir), "error": str(e)}


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Service health status
    """
    return {
        "status": "healthy",
        "version": __version__,
        "services": {
            "cache": check_cache_backend(),
            "temp_dir": check_temp_dir(),
        },
    }
