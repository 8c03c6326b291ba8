# SPDX-License-Identifier: Apache-2.0

"""
Address geocoding through the OpenStreetMap Nominatim API.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from opentelemetry import trace
from pydantic import ValidationError

from ..domain.errors import GeocodeFailure
from ..models.entities import Coordinate

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org"
DEFAULT_USER_AGENT = "RefugeeManagementSystem/1.0"


@dataclass(frozen=True)
class GeocodedAddress:
    """Coordinate resolved for an address."""
    coordinate: Coordinate
    display_name: Optional[str] = None


class NominatimGeocoder:
    """Geocoding client. Failures surface as GeocodeFailure and are not retried."""

    def __init__(
        self,
        base_url: str = NOMINATIM_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client

    def _get(self, path: str, params: dict):
        headers = {"User-Agent": self.user_agent}
        if self._client is not None:
            response = self._client.get(f"{self.base_url}{path}", params=params, headers=headers)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(f"{self.base_url}{path}", params=params, headers=headers)
        response.raise_for_status()
        return response.json()

    def resolve(self, address: str) -> GeocodedAddress:
        """
        Resolve an address to a coordinate.

        Args:
            address: Free-text address

        Returns:
            GeocodedAddress with the best match

        Raises:
            GeocodeFailure: the address is unknown or the service failed
        """
        if not address or not address.strip():
            raise GeocodeFailure("Geocoding failed: address is empty")

        with tracer.start_as_current_span("geocoder.resolve") as span:
            try:
                data = self._get("/search", {"q": address.strip(), "format": "json", "limit": 1})
            except (httpx.HTTPError, ValueError) as e:
                span.record_exception(e)
                logger.warning(f"Geocoding request failed for '{address}': {e}")
                raise GeocodeFailure(f"Geocoding failed: {e}")

            if not data:
                span.set_attribute("geocoder.found", False)
                logger.info(f"Address not found: {address}")
                raise GeocodeFailure("Geocoding failed: Address not found")

            match = data[0]
            try:
                coordinate = Coordinate(latitude=float(match["lat"]), longitude=float(match["lon"]))
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                raise GeocodeFailure(f"Geocoding failed: malformed response ({e})")

            span.set_attribute("geocoder.found", True)
            logger.debug(f"Geocoded '{address}' to {coordinate.latitude},{coordinate.longitude}")
            return GeocodedAddress(coordinate=coordinate, display_name=match.get("display_name"))

    def reverse(self, coordinate: Coordinate) -> str:
        """Display name for a coordinate."""
        with tracer.start_as_current_span("geocoder.reverse"):
            try:
                data = self._get("/reverse", {
                    "lat": coordinate.latitude,
                    "lon": coordinate.longitude,
                    "format": "json"
                })
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Reverse geocoding failed: {e}")
                raise GeocodeFailure(f"Reverse geocoding failed: {e}")

            if not data or not data.get("display_name"):
                raise GeocodeFailure("Reverse geocoding failed: Location not found")
            return data["display_name"]
