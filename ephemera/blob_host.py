"""Temporary host for uploaded images.

Payloads arrive as ``data:<mime>;base64,<data>`` URLs, are kept verbatim under a
random id for a fixed TTL and decoded on the way out. Expiry is a hard cut-off:
reading a blob never extends its life.
"""
import base64
import binascii
import re
import secrets
from dataclasses import dataclass

from ephemera.errors import CollisionDetected, InvalidPayload, NotFound, ResourceExhausted
from ephemera.timed_store import TimedStore

DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_ID_BYTES = 16
MIN_ID_BYTES = 10  # 80 bits
DEFAULT_MAX_ATTEMPTS = 3

_DATA_URL_RE = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)
_MIME_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


@dataclass(frozen=True, slots=True)
class StoredBlob:
    payload: str
    media_type: str
    expires_at: float


@dataclass(frozen=True, slots=True)
class Blob:
    media_type: str
    data: bytes
    expires_at: float


@dataclass(frozen=True, slots=True)
class BlobReceipt:
    id: str
    expires_at: float


def parse_data_url(payload: str) -> tuple[str, bytes]:
    """Split a base64 data URL into (media type, raw bytes). Raises InvalidPayload."""
    match = _DATA_URL_RE.match(payload)
    if not match:
        raise InvalidPayload("expected data:<mime>;base64,<data>")
    media_type, encoded = match.group(1).strip().lower(), match.group(2).strip()
    if not _MIME_RE.match(media_type):
        raise InvalidPayload(f"malformed media type {media_type!r}")
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidPayload("payload is not valid base64") from exc
    if not data:
        raise InvalidPayload("payload is empty")
    return media_type, data


class BlobHost:
    def __init__(
        self,
        store: TimedStore[StoredBlob],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        id_bytes: int = DEFAULT_ID_BYTES,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        allowed_media_prefix: str = "image/",
        max_payload_chars: int | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if id_bytes < MIN_ID_BYTES:
            raise ValueError(f"id_bytes must be >= {MIN_ID_BYTES}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.timed_store = store
        self.ttl_seconds = float(ttl_seconds)
        self.id_bytes = id_bytes
        self.max_attempts = max_attempts
        self.allowed_media_prefix = allowed_media_prefix.lower()
        self.max_payload_chars = max_payload_chars

    def _new_id(self) -> str:
        return secrets.token_urlsafe(self.id_bytes)

    def _validate(self, encoded_payload: str, declared_media_type: str | None) -> str:
        if not isinstance(encoded_payload, str) or not encoded_payload:
            raise InvalidPayload("payload is empty")
        if self.max_payload_chars is not None and len(encoded_payload) > self.max_payload_chars:
            raise InvalidPayload("payload too large")
        media_type, _ = parse_data_url(encoded_payload)
        if not media_type.startswith(self.allowed_media_prefix):
            raise InvalidPayload(f"media type {media_type!r} not accepted")
        if declared_media_type is not None and declared_media_type.strip().lower() != media_type:
            raise InvalidPayload(
                f"declared media type {declared_media_type!r} does not match payload {media_type!r}"
            )
        return media_type

    async def _insert(self, blob_id: str, blob: StoredBlob) -> None:
        if not await self.timed_store.put_if_absent(blob_id, blob, self.ttl_seconds):
            raise CollisionDetected(blob_id)

    async def upload(self, encoded_payload: str, declared_media_type: str | None = None) -> BlobReceipt:
        """Validate and keep ``encoded_payload``; return its id and deadline."""
        media_type = self._validate(encoded_payload, declared_media_type)
        expires_at = self.timed_store.clock.now() + self.ttl_seconds
        blob = StoredBlob(payload=encoded_payload, media_type=media_type, expires_at=expires_at)
        for _ in range(self.max_attempts):
            blob_id = self._new_id()
            try:
                await self._insert(blob_id, blob)
            except CollisionDetected:
                continue
            return BlobReceipt(id=blob_id, expires_at=expires_at)
        raise ResourceExhausted(f"no free blob id after {self.max_attempts} attempts")

    async def store(self, encoded_payload: str, declared_media_type: str | None = None) -> str:
        """Validate and keep ``encoded_payload``; return the id to fetch it by."""
        return (await self.upload(encoded_payload, declared_media_type)).id

    async def retrieve(self, blob_id: str) -> Blob:
        if not blob_id:
            raise NotFound(blob_id)
        stored = await self.timed_store.get(blob_id)
        # The deadline recorded at upload wins over the store entry's own expiry.
        if stored is None or stored.expires_at <= self.timed_store.clock.now():
            raise NotFound(blob_id)
        _, data = parse_data_url(stored.payload)
        return Blob(media_type=stored.media_type, data=data, expires_at=stored.expires_at)
