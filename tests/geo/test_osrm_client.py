import httpx
import pytest
import respx
from httpx import Response

from geo_reminder.core.retry import RetryConfig
from geo_reminder.geo.osrm_client import (
    NoRouteFoundError,
    OSRMClient,
    OSRMServiceError,
    OSRMTimeoutError,
    RouteResponse,
    decode_polyline,
)
from geo_reminder.models import Coordinate

ROUTE_PATH = r".*/route/v1/driving/.*"
ORIGIN = Coordinate(latitude=-23.55, longitude=-46.63)
DESTINATION = Coordinate(latitude=-23.56, longitude=-46.64)


@pytest.fixture
def osrm_client() -> OSRMClient:
    return OSRMClient(base_url="http://localhost:5000/")


@pytest.fixture
def valid_osrm_response() -> dict:
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": 1234.5,
                "duration": 234.6,
                "geometry": "_p~iF~ps|U_ulLnnqC_mqNvxq`@",
            }
        ],
    }


async def test_route_request_valid(osrm_client: OSRMClient, valid_osrm_response: dict):
    async with respx.mock:
        route = respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(200, json=valid_osrm_response)
        )

        result = await osrm_client.get_route(
            origin=(-23.55, -46.63), destination=(-23.56, -46.64)
        )

        assert route.called
        assert isinstance(result, RouteResponse)
        assert result.distance_meters == 1234.5
        assert result.duration_seconds == 234.6
        assert result.osrm_code == "Ok"
        assert len(result.geometry) == 3


async def test_request_uses_lon_lat_order(osrm_client: OSRMClient, valid_osrm_response: dict):
    async with respx.mock:
        route = respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(200, json=valid_osrm_response)
        )

        await osrm_client.get_route(origin=(-23.55, -46.63), destination=(-23.56, -46.64))

        request = route.calls.last.request
        assert request.url.path == "/route/v1/driving/-46.63,-23.55;-46.64,-23.56"
        assert request.url.params["overview"] == "full"


def test_route_geometry_decoded():
    coords = decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")

    assert coords[0] == pytest.approx((38.5, -120.2))
    assert coords[-1] == pytest.approx((43.252, -126.453))


async def test_osrm_no_route_found(osrm_client: OSRMClient):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(200, json={"code": "NoRoute", "message": "Impossible route"})
        )

        with pytest.raises(NoRouteFoundError) as exc_info:
            await osrm_client.get_route(origin=(-23.55, -46.63), destination=(0.0, 0.0))

        assert exc_info.value.details["code"] == "NoRoute"


async def test_osrm_empty_routes(osrm_client: OSRMClient):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(200, json={"code": "Ok", "routes": []})
        )

        with pytest.raises(NoRouteFoundError):
            await osrm_client.get_route(origin=(-23.55, -46.63), destination=(-23.56, -46.64))


async def test_osrm_server_error(osrm_client: OSRMClient):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(500, text="Internal Server Error")
        )

        with pytest.raises(OSRMServiceError):
            await osrm_client.get_route(origin=(-23.55, -46.63), destination=(-23.56, -46.64))


async def test_osrm_unreadable_body(osrm_client: OSRMClient):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(return_value=Response(400, text="<html>"))

        with pytest.raises(OSRMServiceError):
            await osrm_client.get_route(origin=(-23.55, -46.63), destination=(-23.56, -46.64))


async def test_osrm_timeout(osrm_client: OSRMClient):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(
            side_effect=httpx.TimeoutException("Request timed out")
        )

        with pytest.raises(OSRMTimeoutError):
            await osrm_client.get_route(origin=(-23.55, -46.63), destination=(-23.56, -46.64))


async def test_osrm_connection_error(osrm_client: OSRMClient):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(OSRMServiceError):
            await osrm_client.get_route(origin=(-23.55, -46.63), destination=(-23.56, -46.64))


async def test_route_returns_estimate(osrm_client: OSRMClient, valid_osrm_response: dict):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(200, json=valid_osrm_response)
        )

        estimate = await osrm_client.route(ORIGIN, DESTINATION)

        assert estimate.source == "provider"
        assert estimate.distance_meters == 1234.5
        assert estimate.geometry[0].as_tuple() == pytest.approx((38.5, -120.2))


async def test_route_without_geometry(osrm_client: OSRMClient):
    async with respx.mock:
        respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(
                200, json={"code": "Ok", "routes": [{"distance": 10, "duration": 2}]}
            )
        )

        estimate = await osrm_client.route(ORIGIN, DESTINATION)

        assert estimate.geometry is None


async def test_route_retries_transient_errors(valid_osrm_response: dict):
    client = OSRMClient(
        base_url="http://localhost:5000",
        retry_config=RetryConfig(max_attempts=2, base_delay=0.0),
    )
    async with respx.mock:
        route = respx.route(path__regex=ROUTE_PATH).mock(
            side_effect=[Response(503), Response(200, json=valid_osrm_response)]
        )

        estimate = await client.route(ORIGIN, DESTINATION)

        assert route.call_count == 2
        assert estimate.distance_meters == 1234.5


async def test_route_does_not_retry_no_route():
    client = OSRMClient(
        base_url="http://localhost:5000",
        retry_config=RetryConfig(max_attempts=3, base_delay=0.0),
    )
    async with respx.mock:
        route = respx.route(path__regex=ROUTE_PATH).mock(
            return_value=Response(200, json={"code": "NoRoute"})
        )

        with pytest.raises(NoRouteFoundError):
            await client.route(ORIGIN, DESTINATION)

        assert route.call_count == 1
