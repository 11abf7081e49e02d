"""Reverse geocoding through a Nominatim-compatible service."""

from typing import Any

import requests

from ..config import Settings
from ..error_handling import GeocodingError
from ..logging_config import get_logger

logger = get_logger(__name__)

# Locality fields in order of preference for the "place" half
PLACE_FIELDS = ("city", "town", "village", "county", "state")


def format_location(address: dict[str, Any] | None) -> str | None:
    """
    Reduce a structured address to a "place, country" string.

    Args:
        address: Nominatim ``address`` object

    Returns:
        "place, country", just one of the two when the other is missing, or None
    """
    if not address:
        return None

    place = next((address[key] for key in PLACE_FIELDS if address.get(key)), None)
    country = address.get("country")

    parts = [part for part in (place, country) if part]
    return ", ".join(parts) if parts else None


class ReverseGeocoder:
    """Turns GPS coordinates into a human-readable place name."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.base_url = settings.geocoder_url.rstrip("/")
        self.user_agent = settings.geocoder_user_agent
        self.timeout = settings.request_timeout
        self.session = session or requests.Session()

    def lookup(self, latitude: float, longitude: float) -> dict[str, Any]:
        """
        Fetch the structured address for a coordinate pair.

        Raises:
            GeocodingError: If the request fails or the service returns an error
        """
        try:
            response = self.session.get(
                f"{self.base_url}/reverse",
                params={"lat": latitude, "lon": longitude, "format": "json"},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GeocodingError(
                f"Reverse geocoding failed: {e}",
                details={"latitude": latitude, "longitude": longitude},
                original_exception=e,
            ) from e

        if "error" in payload:
            raise GeocodingError(
                f"Reverse geocoding returned an error: {payload['error']}",
                code="geocoding_no_result",
                details={"latitude": latitude, "longitude": longitude},
            )

        return payload.get("address") or {}

    def reverse(self, latitude: float, longitude: float) -> str | None:
        """
        Best-effort "place, country" for a coordinate pair.

        Returns:
            Location string, or None when the lookup fails or yields nothing
        """
        try:
            location = format_location(self.lookup(latitude, longitude))
        except GeocodingError:
            return None

        logger.debug("location_resolved", latitude=latitude, longitude=longitude, location=location)
        return location
