"""Storage service for the Cloudinary image host."""

import hashlib
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from ..config import Settings
from ..error_handling import StorageError
from ..logging_config import get_logger, log_performance

logger = get_logger(__name__)

# Delivery transformations, inserted after the "/upload/" path segment
THUMBNAIL_TRANSFORMATION = "w_600,h_600,c_fill,f_auto,q_auto"
DISPLAY_TRANSFORMATION = "w_2000,f_auto,q_auto:best"


@dataclass
class HostedImage:
    """What the image host returns for a stored binary."""

    secure_url: str
    public_id: str
    width: int | None = None
    height: int | None = None
    format: str | None = None
    bytes: int | None = None

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "HostedImage":
        return cls(
            secure_url=payload["secure_url"],
            public_id=payload["public_id"],
            width=payload.get("width"),
            height=payload.get("height"),
            format=payload.get("format"),
            bytes=payload.get("bytes"),
        )


def sign_parameters(params: dict[str, Any], api_secret: str) -> str:
    """
    Sign request parameters the way the Cloudinary API expects.

    Parameters are sorted by key, joined as ``key=value`` pairs with ``&``,
    suffixed with the API secret and hashed with SHA-1.

    Args:
        params: Parameters to sign (``file``, ``api_key`` and empty values are excluded)
        api_secret: Account API secret

    Returns:
        Hex-encoded signature
    """
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in ("file", "api_key", "resource_type", "cloud_name") and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode(), usedforsecurity=False).hexdigest()


def _with_transformation(url: str, transformation: str) -> str:
    marker = "/upload/"
    if marker not in url:
        return url
    head, tail = url.split(marker, 1)
    return f"{head}{marker}{transformation}/{tail}"


def thumbnail_url(url: str) -> str:
    """Square grid-card rendition of a hosted image URL."""
    return _with_transformation(url, THUMBNAIL_TRANSFORMATION)


def display_url(url: str) -> str:
    """Large lightbox rendition of a hosted image URL."""
    return _with_transformation(url, DISPLAY_TRANSFORMATION)


class StorageService:
    """Service for uploading and destroying images on the Cloudinary host."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        """
        Initialize the storage service.

        Args:
            settings: Application settings with the Cloudinary account values
            session: Optional HTTP session (tests pass a mock)

        Raises:
            StorageError: If the cloud name or upload preset is missing
        """
        if not settings.cloudinary_cloud_name:
            raise StorageError("CLOUDINARY_CLOUD_NAME is required", code="storage_not_configured")
        if not settings.cloudinary_upload_preset:
            raise StorageError("CLOUDINARY_UPLOAD_PRESET is required", code="storage_not_configured")

        self.cloud_name = settings.cloudinary_cloud_name
        self.upload_preset = settings.cloudinary_upload_preset
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.base_url = f"{settings.cloudinary_api_url.rstrip('/')}/{self.cloud_name}/image"
        self.timeout = settings.request_timeout
        self.session = session or requests.Session()

        logger.info(
            "storage_service_initialized",
            cloud_name=self.cloud_name,
            signed_requests=bool(self.api_key and self.api_secret),
        )

    def upload_image(self, file_data: bytes, filename: str) -> HostedImage:
        """
        Upload the original bytes through the unsigned upload preset.

        The binary is sent untouched; quality and format are chosen later in
        the delivery URL, so the host always keeps the best available copy.

        Args:
            file_data: Raw image bytes
            filename: Original file name

        Returns:
            HostedImage with the secure URL and public id

        Raises:
            StorageError: If the request fails or the host rejects the upload
        """
        start_time = time.perf_counter()
        try:
            response = self.session.post(
                f"{self.base_url}/upload",
                data={"upload_preset": self.upload_preset},
                files={"file": (Path(filename).name, file_data)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StorageError(
                f"Failed to upload {filename}: {e}",
                code="upload_request_failed",
                details={"filename": filename},
                original_exception=e,
            ) from e

        if not response.ok:
            message = self._error_message(response)
            raise StorageError(
                f"Image host rejected {filename}: {message}",
                code="upload_rejected",
                user_message=f"Upload of {filename} failed: {message}",
                details={"filename": filename, "status_code": response.status_code},
            )

        try:
            hosted = HostedImage.from_response(response.json())
        except (ValueError, KeyError) as e:
            raise StorageError(
                f"Unexpected upload response for {filename}", code="upload_response_invalid", original_exception=e
            ) from e

        log_performance(
            "image_host_upload",
            time.perf_counter() - start_time,
            filename=filename,
            file_size=len(file_data),
            public_id=hosted.public_id,
        )
        return hosted

    def destroy_image(self, public_id: str) -> bool:
        """
        Delete a hosted image by public id using a signed request.

        Returns:
            True if the host reports the image deleted, False if it was not found

        Raises:
            StorageError: If signing credentials are missing or the request fails
        """
        if not (self.api_key and self.api_secret):
            raise StorageError(
                "Signed requests need CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET",
                code="storage_signing_not_configured",
            )

        params: dict[str, Any] = {"public_id": public_id, "timestamp": int(time.time())}
        params["signature"] = sign_parameters(params, self.api_secret)
        params["api_key"] = self.api_key

        try:
            response = self.session.post(f"{self.base_url}/destroy", data=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise StorageError(
                f"Failed to delete hosted image {public_id}: {e}",
                code="destroy_request_failed",
                details={"public_id": public_id},
                original_exception=e,
            ) from e

        if not response.ok:
            raise StorageError(
                f"Image host refused to delete {public_id}: {self._error_message(response)}",
                code="destroy_rejected",
                details={"public_id": public_id, "status_code": response.status_code},
            )

        try:
            result = response.json().get("result")
        except (ValueError, AttributeError) as e:
            raise StorageError(
                f"Unexpected destroy response for {public_id}",
                code="destroy_response_invalid",
                details={"public_id": public_id, "status_code": response.status_code},
                original_exception=e,
            ) from e

        logger.info("hosted_image_destroyed", public_id=public_id, result=result)
        return result == "ok"

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return response.text or f"HTTP {response.status_code}"


def get_storage_service(settings: Settings) -> StorageService:
    """Create a StorageService for the configured image host."""
    return StorageService(settings)
