#Purpose: The geocoding "adapter/client".
#Sole responsibility: turn a postal address into (latitude, longitude) over HTTP.
#Encapsulates provider-specific details:
#query string formatting
#URL construction and API key
#timeouts and error handling
#parsing the JSON response into GeocodeResult
#It should not contain planning rules.

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from dotenv import load_dotenv

from .distance import Coordinates, is_valid_coordinate

# Read the geocoder base URL / key from environment
# Example in .env:
# GEOCODER_BASE_URL=https://us1.locationiq.com/v1
# GEOCODER_API_KEY=pk.xxxxx
load_dotenv()
GEOCODER_BASE_URL = os.getenv("GEOCODER_BASE_URL")
GEOCODER_API_KEY = os.getenv("GEOCODER_API_KEY")

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Custom exception for geocoding client errors."""
    pass


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float

    def to_coordinates(self) -> Coordinates:
        return Coordinates(lat=self.latitude, lng=self.longitude)


def format_address(address) -> str:
    """
    Single line query for the provider: "street, city, province postal, country".
    """
    country = getattr(address, "country", None) or "Canada"
    return f"{address.street}, {address.city}, {address.province} {address.postal_code}, {country}"


class GeocodingClient:
    """
    Geocoding Adapter / Client

    Sole responsibility:
    - Talk to a LocationIQ / Nominatim compatible /search endpoint
    - Return GeocodeResult or None when the address cannot be located

    None means "unlocatable". The route planner appends such requests last.
    """
    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, timeout: int = 5):
        self.base_url = base_url or GEOCODER_BASE_URL
        self.api_key = api_key or GEOCODER_API_KEY
        self.timeout = timeout #seconds to wait for the provider before giving up

        if not self.base_url:
            raise ValueError("Geocoder base URL not set. Please set GEOCODER_BASE_URL in the .env file.")

    def _search(self, query: str) -> List[Dict[str, Any]]:
        params = {"q": query, "format": "json", "limit": 1}
        if self.api_key:
            params["key"] = self.api_key

        response = requests.get(
            f"{self.base_url}/search",
            params=params,
            headers={"User-Agent": "church-transport-routing"},
            timeout=self.timeout,
        )
        if response.status_code == 404:
            #LocationIQ answers 404 for "no results"
            return []
        if response.status_code != 200:
            raise GeocodingError(f"Geocoder error: HTTP {response.status_code}")

        data = response.json()
        if not isinstance(data, list):
            raise GeocodingError(f"Geocoder error: unexpected payload {type(data).__name__}")
        return data

    def geocode(self, address) -> Optional[GeocodeResult]:
        """
        Resolve an Address-like object (street/city/province/postal_code/country).

        Returns None on no results, unparseable coordinates, or transport failure.
        """
        query = format_address(address)
        try:
            results = self._search(query)
        except (requests.RequestException, GeocodingError) as e:
            logger.error(f"Geocoding failed for '{query}': {e}")
            return None

        if not results:
            logger.info(f"No geocoding result for '{query}'")
            return None

        try:
            latitude = float(results[0]["lat"])
            longitude = float(results[0]["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Geocoder returned malformed coordinates for '{query}'")
            return None

        if not is_valid_coordinate(latitude, longitude):
            return None

        return GeocodeResult(latitude=latitude, longitude=longitude)

    def __call__(self, address) -> Optional[Coordinates]:
        """
        Planner-facing adapter: Address -> Coordinates | None.
        """
        result = self.geocode(address)
        return result.to_coordinates() if result else None
