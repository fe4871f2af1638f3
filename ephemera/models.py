"""Pydantic request/response models."""
from pydantic import BaseModel, ConfigDict, Field


class UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_data: str = Field(..., alias="imageData", min_length=1)
    media_type: str | None = Field(default=None, alias="mediaType", max_length=255)


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    image_url: str = Field(..., alias="imageUrl")
    # Both spellings are returned; older clients read ``id``, newer ones ``imageId``.
    id: str
    image_id: str = Field(..., alias="imageId")
    expires_in: str = Field(..., alias="expiresIn")
    expires_at: int = Field(..., alias="expiresAt")


class RateLimitStatus(BaseModel):
    scope: str
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
