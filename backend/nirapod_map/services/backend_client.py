"""
HTTP client for the Nirapod backend: crime feed, safest route and crime reports.
"""
import httpx
from typing import Optional, List, Dict, Any

from pydantic import TypeAdapter

from nirapod_map.errors import TransportError
from nirapod_map.http_utils import (
    RetryConfig, retry_with_backoff, as_transport_error, TRANSPORT_FAILURES,
)
from nirapod_map.logging_config import get_logger
from nirapod_map.schemas import (
    BoundingBox, CrimeFeedItem, CrimeMarker, CrimeReportPayload, GeoPoint,
    RouteRequest, RouteResponse,
)
from nirapod_map.services.service_base import CrimeFeedService, RouteService

logger = get_logger(__name__)

CRIMES_PATH = "/api/crimes"
SAFEST_ROUTE_PATH = "/api/routes/safest"

# Filter tokens that mean "no filter"
ALL_TYPES = {"", "all"}

_feed_adapter = TypeAdapter(List[CrimeFeedItem])


def normalize_type_filter(type_filter: Optional[str]) -> Optional[str]:
    """Lower-cased filter token, or None when every type is wanted."""
    if type_filter is None:
        return None
    token = type_filter.strip().lower()
    return None if token in ALL_TYPES else token


class NirapodApiClient(CrimeFeedService, RouteService):
    """
    Backend client.

    A caller-supplied ``httpx.AsyncClient`` is used as-is and left open on
    ``aclose()``; otherwise the client owns its connection pool.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        timeout: float = 15.0,
        retry: Optional[RetryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.retry = retry or RetryConfig(max_retries=1, initial_delay=0.5)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def fetch_crimes(
        self,
        bounds: BoundingBox,
        type_filter: Optional[str] = None
    ) -> List[CrimeMarker]:
        params: Dict[str, Any] = bounds.to_query_params()
        token = normalize_type_filter(type_filter)
        if token:
            params["type"] = token

        async def fetch_listing():
            response = await self._client.get(
                self._url(CRIMES_PATH), params=params, headers=self._headers()
            )
            response.raise_for_status()
            return response

        try:
            response = await retry_with_backoff(fetch_listing, self.retry)
            items = _feed_adapter.validate_python(response.json())
        except TRANSPORT_FAILURES as e:
            raise as_transport_error(e, "crimes")

        markers = []
        seen = set()
        for item in items:
            try:
                marker = item.to_marker()
            except ValueError as e:
                logger.warning(f"Skipping crime {item.id} with unusable location: {e}")
                continue
            if marker.id in seen:
                logger.warning(f"Duplicate crime id {marker.id} in feed response; keeping the first")
                continue
            seen.add(marker.id)
            markers.append(marker)

        logger.debug(f"Fetched {len(markers)} crimes for {params}")
        return markers

    async def fetch_route(self, request: RouteRequest) -> List[GeoPoint]:
        # Not retried: the route computation is expensive and the user can retry.
        try:
            response = await self._client.post(
                self._url(SAFEST_ROUTE_PATH),
                json=request.to_payload(),
                headers=self._headers(),
            )
            response.raise_for_status()
            body = RouteResponse.model_validate(response.json())
        except TRANSPORT_FAILURES as e:
            raise as_transport_error(e, "route")

        logger.debug(f"Route service returned {len(body.route)} points ({request.mode.value})")
        return list(body.route)

    async def submit_crime(self, payload: CrimeReportPayload) -> Dict[str, Any]:
        """POST a crime report; returns the backend's JSON echo (may be empty)."""
        try:
            response = await self._client.post(
                self._url(CRIMES_PATH),
                json=payload.model_dump(),
                headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to submit report: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {}

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
