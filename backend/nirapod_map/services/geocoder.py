"""
Nominatim-compatible place search client.
"""
import httpx
from typing import Optional, List

from pydantic import TypeAdapter

from nirapod_map.http_utils import (
    RetryConfig, retry_with_backoff, as_transport_error, TRANSPORT_FAILURES,
)
from nirapod_map.logging_config import get_logger
from nirapod_map.schemas import BoundingBox, PlaceSearchItem, SearchSuggestion
from nirapod_map.services.service_base import PlaceSearchService

logger = get_logger(__name__)

USER_AGENT = "nirapod-map/0.1 (crime map client)"

_results_adapter = TypeAdapter(List[PlaceSearchItem])


class NominatimGeocoder(PlaceSearchService):
    """Searches places, bounded to the hint box and country codes."""

    def __init__(
        self,
        search_url: str,
        limit: int = 5,
        country_codes: Optional[str] = "bd",
        timeout: float = 15.0,
        retry: Optional[RetryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.search_url = search_url
        self.limit = limit
        self.country_codes = country_codes
        self.retry = retry or RetryConfig(max_retries=1, initial_delay=0.5)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def search(self, text: str, hint_box: BoundingBox) -> List[SearchSuggestion]:
        params = {
            "q": text,
            "format": "json",
            "limit": self.limit,
            "viewbox": hint_box.to_viewbox(),
            "bounded": 1,
        }
        if self.country_codes:
            params["countrycodes"] = self.country_codes

        async def fetch_results():
            response = await self._client.get(
                self.search_url,
                params=params,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
            response.raise_for_status()
            return response

        try:
            response = await retry_with_backoff(fetch_results, self.retry)
            items = _results_adapter.validate_python(response.json())
        except TRANSPORT_FAILURES as e:
            raise as_transport_error(e, "place suggestions")

        suggestions = [item.to_suggestion() for item in items]
        unresolved = sum(1 for s in suggestions if not s.selectable)
        if unresolved:
            logger.debug(f"{unresolved} of {len(suggestions)} suggestions for {text!r} have no location")
        return suggestions

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
