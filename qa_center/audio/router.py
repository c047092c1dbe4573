"""Same-origin audio proxy for call recordings."""
import logging
from typing import Optional
import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from qa_center.auth.dependencies import get_current_active_user
from qa_center.core.config import settings
from qa_center.models.user import User


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Audio"])

_http_client: Optional[httpx.AsyncClient] = None

_PASSTHROUGH_HEADERS = ("content-length", "content-range", "content-encoding", "last-modified", "etag")


def get_audio_http_client() -> httpx.AsyncClient:
    """Shared upstream client, created on first use."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=settings.audio_proxy_timeout_seconds,
            follow_redirects=True,
        )
    return _http_client


async def close_audio_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


@router.get("/audio-proxy")
async def audio_proxy(
    request: Request,
    url: Optional[str] = Query(None, description="Remote recording URL"),
    current_user: User = Depends(get_current_active_user),
    client: httpx.AsyncClient = Depends(get_audio_http_client),
):
    """
    Stream a remote recording through this server.

    Range requests are forwarded so players can seek.

    Raises:
        HTTPException: 400 on a missing or non-http(s) url, the upstream status
            when the recording is unavailable, 502 when the upstream cannot be reached
    """
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL parameter is required")
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid URL format")

    headers = {}
    if "range" in request.headers:
        headers["Range"] = request.headers["range"]

    logger.info(f"Proxying audio from: {url}")
    try:
        upstream = await client.send(client.build_request("GET", url, headers=headers), stream=True)
    except httpx.HTTPError as e:
        logger.error(f"Audio fetch failed for {url}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Audio source unreachable")

    if upstream.status_code >= 400:
        await upstream.aclose()
        logger.error(f"Audio fetch failed: {upstream.status_code} {upstream.reason_phrase}")
        raise HTTPException(
            status_code=upstream.status_code,
            detail=f"Audio file not available: {upstream.reason_phrase}",
        )

    response_headers = {
        "Accept-Ranges": "bytes",
        "Cache-Control": f"public, max-age={settings.audio_proxy_cache_seconds}",
    }
    for name in _PASSTHROUGH_HEADERS:
        if name in upstream.headers:
            response_headers[name.title()] = upstream.headers[name]

    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=206 if upstream.status_code == 206 else 200,
        media_type=upstream.headers.get("content-type", "audio/mpeg"),
        headers=response_headers,
        background=BackgroundTask(upstream.aclose),
    )
