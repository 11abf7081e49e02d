"""
Backend deletion endpoint.

``DELETE /api/delete-photo`` with a bearer token and a JSON body
``{"id": ..., "public_id": ...}`` removes the hosted image and the photo
record. Hosted-image deletion is best-effort: a failure there is logged and
the record is deleted anyway.

Run with:
    uvicorn --factory atelier.api.delete_photo:create_app
"""

from fastapi import Body, FastAPI, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import Settings, load_settings
from ..error_handling import AtelierError, AuthenticationError, DatabaseError, StorageError
from ..logging_config import configure_structured_logging, get_logger, log_security_event, log_user_action
from ..services.auth import AuthService
from ..services.metadata import MetadataService, get_metadata_service
from ..services.storage import StorageService

logger = get_logger(__name__)


class DeletePhotoRequest(BaseModel):
    """Request body; ``public_id`` is accepted but the stored one is always used."""

    id: str | None = None
    public_id: str | None = None


def _error(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    content = {"error": error}
    if message:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    settings: Settings | None = None,
    metadata_service: MetadataService | None = None,
    storage_service: StorageService | None = None,
    auth_service: AuthService | None = None,
) -> FastAPI:
    """
    Build the deletion API.

    Args:
        settings: Application settings, loaded from the environment when omitted
        metadata_service: Record store (defaults to the shared service for the configured path)
        storage_service: Image host client (defaults to one built from settings when configured)
        auth_service: Bearer verification (defaults to one built from settings)

    Returns:
        FastAPI application
    """
    configure_structured_logging()
    settings = settings or load_settings()
    metadata_service = metadata_service or get_metadata_service(settings.database_path)
    auth_service = auth_service or AuthService(settings)

    if storage_service is None and settings.image_host_configured:
        storage_service = StorageService(settings)

    app = FastAPI(title="Atelier API", description="Administrative operations for the photo portfolio")

    @app.get("/health")
    def health() -> dict:
        return {"status": "healthy"}

    @app.delete("/api/delete-photo")
    def delete_photo(
        payload: DeletePhotoRequest | None = Body(default=None),
        authorization: str | None = Header(default=None),
    ) -> JSONResponse:
        if not authorization:
            log_security_event("delete_without_credentials")
            return _error(401, "No authorization header")

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            log_security_event("delete_with_malformed_credentials")
            return _error(401, "Unauthorized")

        try:
            user = auth_service.verify_token(token.strip())
        except AuthenticationError:
            return _error(401, "Unauthorized")
        except AtelierError as e:
            return _error(500, "Failed to verify credentials", str(e))

        if payload is None or not payload.id:
            return _error(400, "Photo ID is required")

        try:
            photo = metadata_service.get_photo_by_id(payload.id)
        except DatabaseError as e:
            return _error(500, "Failed to delete photo", str(e))

        if photo is None:
            return _error(404, "Photo not found")

        # The stored id is authoritative
        public_id = photo.public_id
        if payload.public_id and payload.public_id != public_id:
            log_security_event(
                "public_id_mismatch", user_id=user.user_id, photo_id=photo.id, requested_public_id=payload.public_id
            )

        host_deleted = False
        if storage_service is None:
            logger.warning("hosted_image_delete_skipped", photo_id=photo.id, reason="image host not configured")
        else:
            try:
                host_deleted = storage_service.destroy_image(public_id)
            except StorageError as e:
                logger.warning("hosted_image_delete_failed", photo_id=photo.id, public_id=public_id, error=str(e))

        try:
            metadata_service.delete_photo(photo.id)
        except DatabaseError as e:
            return _error(500, "Failed to delete photo", str(e))

        log_user_action(user.user_id, "photo_deleted", photo_id=photo.id, host_deleted=host_deleted)
        return JSONResponse(status_code=200, content={"success": True, "host_deleted": host_deleted})

    return app
