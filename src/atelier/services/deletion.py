"""Client side of photo deletion: calls the authenticated backend endpoint."""

import requests

from ..config import Settings
from ..error_handling import DeletionError, NetworkError
from ..logging_config import get_logger, log_user_action
from ..models.photo import Photo
from .auth import AuthService

logger = get_logger(__name__)


class DeletionClient:
    """Sends delete requests for photos with the current session's bearer token."""

    def __init__(self, auth_service: AuthService, settings: Settings, session: requests.Session | None = None) -> None:
        self.auth_service = auth_service
        self.endpoint_url = settings.delete_endpoint_url
        self.timeout = settings.request_timeout
        self.http = session or requests.Session()

    def delete_photo(self, photo: Photo) -> dict:
        """
        Ask the backend to delete a photo's hosted image and its record.

        Args:
            photo: The photo to delete

        Returns:
            The endpoint's JSON response body

        Raises:
            AuthenticationError: If nobody is signed in
            DeletionError: If the endpoint reports a failure
            NetworkError: If the endpoint cannot be reached
        """
        session = self.auth_service.ensure_authenticated()

        try:
            response = self.http.delete(
                self.endpoint_url,
                json={"id": photo.id, "public_id": photo.public_id},
                headers={"Authorization": f"Bearer {session.access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(
                f"Deletion endpoint unreachable: {e}",
                code="delete_endpoint_unreachable",
                details={"photo_id": photo.id, "endpoint": self.endpoint_url},
                original_exception=e,
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = body.get("message") or body.get("error") or f"HTTP {response.status_code}"
            raise DeletionError(
                f"Failed to delete photo {photo.id}: {message}",
                code="delete_rejected",
                user_message=f"Could not delete '{photo.title}': {message}",
                details={"photo_id": photo.id, "status_code": response.status_code},
            )

        log_user_action(session.user.user_id, "photo_deleted", photo_id=photo.id, host_deleted=body.get("host_deleted"))
        return body
