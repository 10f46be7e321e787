import pytest
import requests

from pickups.models import Address
from routing import geocoding
from routing.distance import Coordinates
from routing.geocoding import GeocodeResult, GeocodingClient, format_address


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.payload = payload

    def json(self):
        return self.payload


@pytest.fixture
def address():
    return Address(street="100 Queen St W", city="Toronto", province="ON", postal_code="M5H 2N2")


@pytest.fixture
def client():
    return GeocodingClient(base_url="https://geocoder.test/v1", api_key="pk.test")


def fake_get(response, calls=None):
    def get(url, params=None, headers=None, timeout=None):
        if calls is not None:
            calls.append((url, params, timeout))
        if isinstance(response, Exception):
            raise response
        return response
    return get


def test_format_address(address):
    assert format_address(address) == "100 Queen St W, Toronto, ON M5H 2N2, Canada"


def test_geocode_success(monkeypatch, client, address):
    calls = []
    monkeypatch.setattr(geocoding.requests, "get", fake_get(FakeResponse(200, [{"lat": "43.6525", "lon": "-79.3839"}]), calls))

    assert client.geocode(address) == GeocodeResult(latitude=43.6525, longitude=-79.3839)
    assert client(address) == Coordinates(43.6525, -79.3839)

    url, params, timeout = calls[0]
    assert url == "https://geocoder.test/v1/search"
    assert params["key"] == "pk.test"
    assert params["limit"] == 1
    assert timeout == 5


@pytest.mark.parametrize("response", [
    FakeResponse(404),
    FakeResponse(200, []),
    FakeResponse(500),
    FakeResponse(200, {"error": "Invalid key"}),
    FakeResponse(200, [{"lat": "north", "lon": "-79.38"}]),
    FakeResponse(200, [{"lat": "123", "lon": "-79.38"}]),
    requests.ConnectionError("offline"),
])
def test_geocode_failures_are_none(monkeypatch, client, address, response):
    monkeypatch.setattr(geocoding.requests, "get", fake_get(response))
    assert client.geocode(address) is None
    assert client(address) is None


def test_base_url_required(monkeypatch):
    monkeypatch.setattr(geocoding, "GEOCODER_BASE_URL", None)
    with pytest.raises(ValueError):
        GeocodingClient()
