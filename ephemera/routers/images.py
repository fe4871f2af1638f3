"""Temporary image hosting: upload a data URL, fetch it back by id for an hour."""
import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from fastapi.responses import Response

from ephemera.blob_host import BlobHost
from ephemera.dependencies import get_blob_host, require_rate_limit
from ephemera.errors import InvalidPayload, NotFound, ResourceExhausted
from ephemera.models import UploadRequest, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _base_url(request: Request) -> str:
    configured = request.app.state.settings.public_base_url
    if configured:
        return configured.rstrip("/")
    host = request.headers.get("host") or request.url.netloc
    proto = (request.headers.get("x-forwarded-proto") or "").split(",")[0].strip()
    if not proto:
        proto = "http" if host.startswith(("localhost", "127.0.0.1")) else request.url.scheme
    return f"{proto}://{host}"


def _describe_ttl(seconds: float) -> str:
    if seconds % 3600 == 0:
        hours = int(seconds // 3600)
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    if seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{int(seconds)} seconds"


@router.post(
    "/upload-temp",
    response_model=UploadResponse,
    response_model_by_alias=True,
    dependencies=[Depends(require_rate_limit("upload"))],
)
async def upload_temp(
    body: UploadRequest,
    request: Request,
    host: BlobHost = Depends(get_blob_host),
) -> UploadResponse:
    try:
        receipt = await host.upload(body.image_data, body.media_type)
    except InvalidPayload as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid image data") from exc
    except ResourceExhausted as exc:
        logger.error("Blob id generation exhausted: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to upload image") from exc

    logger.info("Stored temporary image (%d chars)", len(body.image_data))
    return UploadResponse(
        image_url=f"{_base_url(request)}/api/image/{receipt.id}",
        id=receipt.id,
        image_id=receipt.id,
        expires_in=_describe_ttl(host.ttl_seconds),
        expires_at=math.floor(receipt.expires_at),
    )


@router.get("/image/{image_id}")
async def get_image(
    request: Request,
    image_id: str = Path(max_length=128),
    host: BlobHost = Depends(get_blob_host),
) -> Response:
    try:
        blob = await host.retrieve(image_id)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found or expired")

    max_age = max(0, math.floor(blob.expires_at - request.app.state.clock.now()))

    return Response(
        content=blob.data,
        media_type=blob.media_type,
        headers={
            "Cache-Control": f"private, max-age={max_age}",
            "Content-Length": str(len(blob.data)),
        },
    )
