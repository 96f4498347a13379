"""
Service interfaces the controller depends on.
Each collaborator (crime backend, route backend, geocoder) implements one of these.
"""
from abc import ABC, abstractmethod
from typing import Optional, List

from nirapod_map.schemas import (
    BoundingBox, CrimeMarker, GeoPoint, RouteRequest, SearchSuggestion,
)


class CrimeFeedService(ABC):
    """Source of incident markers for a viewport."""

    @abstractmethod
    async def fetch_crimes(
        self,
        bounds: BoundingBox,
        type_filter: Optional[str] = None
    ) -> List[CrimeMarker]:
        """
        Fetch markers inside the bounding box.

        Args:
            bounds: Viewport to query
            type_filter: Crime type token; None means all types

        Returns:
            Markers in the order the service ranked them

        Raises:
            TransportError: the call failed or the payload was malformed
        """
        pass


class RouteService(ABC):
    """Opaque safest-route service."""

    @abstractmethod
    async def fetch_route(self, request: RouteRequest) -> List[GeoPoint]:
        """
        Request a route between two validated endpoints.

        Returns the raw point sequence; fewer than two points means no route
        was found, which is the caller's decision to interpret.

        Raises:
            TransportError: the call failed or the payload was malformed
        """
        pass


class PlaceSearchService(ABC):
    """Geocoder returning ranked candidate places."""

    @abstractmethod
    async def search(self, text: str, hint_box: BoundingBox) -> List[SearchSuggestion]:
        """
        Search places matching free text, biased to ``hint_box``.

        Raises:
            TransportError: the call failed or the payload was malformed
        """
        pass
