"""Turborepo remote cache artifact endpoints (``/v8/artifacts``)."""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from ...cache import CacheMediator, RequestContext, get_mediator as get_default_mediator
from ...config import settings

logger = logging.getLogger(__name__)
router = APIRouter()

# Mediator override - set in tests or by the application
mediator: Optional[CacheMediator] = None


def set_mediator(value: Optional[CacheMediator]) -> None:
    """Set the mediator used by the artifact routes.

    Args:
        value: CacheMediator instance, or None to use the default
    """
    global mediator
    mediator = value


def get_mediator() -> CacheMediator:
    return mediator if mediator is not None else get_default_mediator()


async def verify_token(authorization: Optional[str] = Header(None)) -> None:
    """Check the Bearer token when TURBOGHA_SERVER_TOKEN is set.

    Raises:
        HTTPException: If the token is missing or does not match
    """
    if not settings.TURBOGHA_SERVER_TOKEN:
        return

    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(401, "Missing or invalid Authorization header")
    if not secrets.compare_digest(
        authorization[7:].encode(), settings.TURBOGHA_SERVER_TOKEN.encode()
    ):
        raise HTTPException(401, "Invalid token")


@router.get("/artifacts/status", dependencies=[Depends(verify_token)])
async def artifacts_status() -> dict:
    return {"status": "enabled"}


@router.post("/artifacts/events", dependencies=[Depends(verify_token)])
async def record_events() -> dict:
    """Accept Turborepo cache usage events; they are not stored."""
    return {}


@router.put("/artifacts/{artifact_hash}", dependencies=[Depends(verify_token)])
async def upload_artifact(
    artifact_hash: str,
    request: Request,
    x_artifact_tag: Optional[str] = Header(None),
    content_length: Optional[int] = Header(None),
) -> dict:
    """Store an artifact uploaded by turbo.

    Args:
        artifact_hash: Artifact content hash
        request: Incoming request, streamed into the cache
        x_artifact_tag: Optional artifact tag
        content_length: Declared artifact size

    Returns:
        Stored artifact URLs
    """
    ctx = RequestContext(log=logger)
    await get_mediator().save_cache(
        ctx, artifact_hash, x_artifact_tag, request.stream(), size=content_length
    )
    return {"urls": [artifact_hash]}


@router.get("/artifacts/{artifact_hash}", dependencies=[Depends(verify_token)])
async def download_artifact(artifact_hash: str):
    """Stream a cached artifact back to turbo.

    Args:
        artifact_hash: Artifact content hash

    Returns:
        Streaming artifact body, or 404 on a cache miss
    """
    ctx = RequestContext(log=logger)
    artifact = await get_mediator().get_cache(ctx, artifact_hash)
    if artifact is None:
        return JSONResponse(status_code=404, content={"error": f"Artifact {artifact_hash} not found"})

    headers = {}
    if artifact.size:
        headers["Content-Length"] = str(artifact.size)
    if artifact.tag:
        headers["x-artifact-tag"] = artifact.tag

    return StreamingResponse(
        artifact,
        media_type="application/octet-stream",
        headers=headers,
        background=BackgroundTask(artifact.aclose),
    )
