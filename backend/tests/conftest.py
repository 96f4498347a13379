"""
Shared fakes and fixtures for the map controller tests.
"""
import asyncio
import pytest
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from nirapod_map.config_loader import build_settings
from nirapod_map.notifications import NotificationChannel
from nirapod_map.schemas import BoundingBox, CrimeMarker, GeoPoint, SearchSuggestion
from nirapod_map.services.service_base import CrimeFeedService, PlaceSearchService, RouteService


DHAKA_SOURCE = GeoPoint(lat=23.81, lng=90.41)
DHAKA_MIDPOINT = GeoPoint(lat=23.75, lng=90.38)
DHAKA_DESTINATION = GeoPoint(lat=23.70, lng=90.35)
NULL_ISLAND = GeoPoint(lat=0.0, lng=0.0)

DHAKA_BOX = BoundingBox.from_corners(23.65, 90.30, 23.90, 90.50)
CHITTAGONG_BOX = BoundingBox.from_corners(22.25, 91.75, 22.45, 91.90)


def make_marker(marker_id: str, crime_type: str = "theft", lat: float = 23.8, lng: float = 90.4,
                time: Optional[str] = "2024-05-01T22:15:00") -> CrimeMarker:
    return CrimeMarker(
        id=marker_id,
        type=crime_type,
        description=f"{crime_type} near {lat},{lng}",
        time=time,
        location=GeoPoint(lat=lat, lng=lng),
    )


async def wait_for_calls(service, count: int, attempts: int = 200):
    """Poll until the fake service has seen ``count`` calls (debounce timers need real time)."""
    for _ in range(attempts):
        if len(service.calls) >= count:
            return
        await asyncio.sleep(0.005)
    raise AssertionError(f"expected {count} calls, saw {len(service.calls)}")


class StaticCrimeService(CrimeFeedService):
    """Answers every fetch with the same markers (or error)."""

    def __init__(self, markers: Optional[List[CrimeMarker]] = None, error: Optional[Exception] = None):
        self.markers = markers or []
        self.error = error
        self.calls: List[Any] = []

    async def fetch_crimes(self, bounds, type_filter=None):
        self.calls.append((bounds, type_filter))
        if self.error is not None:
            raise self.error
        return list(self.markers)


class GatedCrimeService(CrimeFeedService):
    """Each fetch waits on its own future so tests control arrival order."""

    def __init__(self):
        self.calls: List[Any] = []
        self.gates: List[asyncio.Future] = []

    async def fetch_crimes(self, bounds, type_filter=None):
        gate = asyncio.get_running_loop().create_future()
        self.calls.append((bounds, type_filter))
        self.gates.append(gate)
        return await gate


class FakeRouteService(RouteService):
    def __init__(self, points: Optional[List[GeoPoint]] = None, error: Optional[Exception] = None,
                 gated: bool = False):
        self.points = points if points is not None else []
        self.error = error
        self.gated = gated
        self.calls: List[Any] = []
        self.gates: List[asyncio.Future] = []

    async def fetch_route(self, request):
        self.calls.append(request)
        if self.gated:
            gate = asyncio.get_running_loop().create_future()
            self.gates.append(gate)
            return await gate
        if self.error is not None:
            raise self.error
        return list(self.points)


class FakePlaceService(PlaceSearchService):
    def __init__(self, results: Optional[Dict[str, List[SearchSuggestion]]] = None,
                 error: Optional[Exception] = None, gated: bool = False):
        self.results = results or {}
        self.error = error
        self.gated = gated
        self.calls: List[str] = []
        self.gates: List[asyncio.Future] = []

    async def search(self, text, hint_box):
        self.calls.append(text)
        if self.gated:
            gate = asyncio.get_running_loop().create_future()
            self.gates.append(gate)
            return await gate
        if self.error is not None:
            raise self.error
        return list(self.results.get(text, [SearchSuggestion(label=text, location=DHAKA_SOURCE)]))


@pytest.fixture
def notifications():
    return NotificationChannel()


@pytest.fixture
def settings():
    """Settings with short debounce windows so tests stay fast."""
    return build_settings({
        "api_base_url": "http://testserver",
        "geocoder_url": "http://geocoder.test/search",
        "viewport_debounce_seconds": 0.05,
        "search_debounce_seconds": 0.05,
        "route_timeout_seconds": 1.0,
        "retry": {"max_retries": 0, "initial_delay": 0.01},
    })


def build_fake_backend() -> FastAPI:
    """
    Stand-in for the Nirapod backend and a Nominatim endpoint.

    ``app.state.requests`` records (path, query, body) for each call;
    ``app.state.fail_next`` makes the next N calls answer 503.
    """
    app = FastAPI()
    app.state.requests = []
    app.state.fail_next = 0
    app.state.crimes = [
        {"id": 1, "type": "Robbery", "description": "Phone snatched", "time": "2024-05-01T21:30:00",
         "location": {"type": "Point", "coordinates": [90.41, 23.81]}},
        {"id": 2, "type": "THEFT", "description": "Bike stolen", "time": "2024-05-02T08:05:00",
         "location": {"type": "Point", "coordinates": [90.39, 23.75]}},
        {"id": 2, "type": "theft", "description": "duplicate row", "time": None,
         "location": {"type": "Point", "coordinates": [90.39, 23.75]}},
        {"id": 3, "type": "arson", "description": "Unknown category", "time": "",
         "location": {"type": "Point", "coordinates": [90.35, 23.70]}},
    ]
    app.state.route = [{"lat": 23.81, "lng": 90.41}, {"lat": 23.75, "lng": 90.38}, {"lat": 23.70, "lng": 90.35}]

    def _maybe_fail():
        if app.state.fail_next > 0:
            app.state.fail_next -= 1
            return JSONResponse({"error": "unavailable"}, status_code=503)
        return None

    @app.get("/api/crimes")
    async def list_crimes(request: Request):
        app.state.requests.append(("GET /api/crimes", dict(request.query_params), None))
        return _maybe_fail() or app.state.crimes

    @app.post("/api/crimes")
    async def create_crime(request: Request):
        body = await request.json()
        app.state.requests.append(("POST /api/crimes", {}, body))
        failure = _maybe_fail()
        if failure:
            return failure
        return {"id": 99, **body}

    @app.post("/api/routes/safest")
    async def safest_route(request: Request):
        body = await request.json()
        app.state.requests.append(("POST /api/routes/safest", {}, body))
        return _maybe_fail() or {"route": app.state.route}

    @app.get("/search")
    async def search(request: Request):
        app.state.requests.append(("GET /search", dict(request.query_params), None))
        return _maybe_fail() or [
            {"display_name": "Dhanmondi, Dhaka", "lat": "23.7465", "lon": "90.3760"},
            {"display_name": "Dhaka Division", "lat": None, "lon": None},
            {"display_name": "Broken entry", "lat": "north", "lon": "90.1"},
        ]

    return app


@pytest.fixture
def fake_backend():
    return build_fake_backend()
