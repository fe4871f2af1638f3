"""Tests for Pydantic request/response models."""
import pytest
from pydantic import ValidationError

from ephemera.models import RateLimitStatus, UploadRequest, UploadResponse


class TestUploadRequest:
    def test_accepts_camel_case_fields(self):
        r = UploadRequest.model_validate({"imageData": "data:image/png;base64,AA==", "mediaType": "image/png"})
        assert r.image_data == "data:image/png;base64,AA=="
        assert r.media_type == "image/png"

    def test_media_type_optional(self):
        r = UploadRequest.model_validate({"imageData": "data:image/png;base64,AA=="})
        assert r.media_type is None

    def test_accepts_field_names(self):
        r = UploadRequest(image_data="x")
        assert r.image_data == "x"

    def test_missing_image_data_rejected(self):
        with pytest.raises(ValidationError):
            UploadRequest.model_validate({})

    def test_empty_image_data_rejected(self):
        with pytest.raises(ValidationError):
            UploadRequest.model_validate({"imageData": ""})

    def test_non_string_image_data_rejected(self):
        with pytest.raises(ValidationError):
            UploadRequest.model_validate({"imageData": 42})


class TestUploadResponse:
    def test_dumps_with_aliases(self):
        r = UploadResponse(
            image_url="https://x/api/image/abc",
            id="abc",
            image_id="abc",
            expires_in="1 hour",
            expires_at=1700003640,
        )
        dumped = r.model_dump(by_alias=True)
        assert dumped == {
            "success": True,
            "imageUrl": "https://x/api/image/abc",
            "id": "abc",
            "imageId": "abc",
            "expiresIn": "1 hour",
            "expiresAt": 1700003640,
        }


class TestRateLimitStatus:
    def test_fields(self):
        s = RateLimitStatus(scope="default", allowed=False, limit=3, remaining=0, reset_at=1700000100)
        assert s.allowed is False
        assert s.model_dump()["reset_at"] == 1700000100
