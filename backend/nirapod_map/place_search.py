"""
PlaceSearchSuggester: debounced free-text place search with last-query-wins
application of results.
"""
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from nirapod_map.errors import MapError, ValidationError
from nirapod_map.latest import LatestWins, TrailingDebouncer
from nirapod_map.logging_config import get_logger
from nirapod_map.notifications import NotificationChannel, NotificationKind
from nirapod_map.schemas import BoundingBox, GeoPoint, SearchSuggestion
from nirapod_map.services.service_base import PlaceSearchService

logger = get_logger(__name__)

MIN_QUERY_LENGTH = 2


@dataclass(frozen=True)
class SearchState:
    query: str = ""
    generation: int = 0
    suggestions: Tuple[SearchSuggestion, ...] = ()
    loading: bool = False
    error: Optional[str] = None


def search_cleared(state: SearchState, query: str = "") -> SearchState:
    return replace(state, query=query, suggestions=(), loading=False, error=None)


def search_pending(state: SearchState, query: str) -> SearchState:
    return replace(state, query=query, loading=True)


def search_applied(state: SearchState, generation: int, suggestions) -> SearchState:
    return replace(state, generation=generation, suggestions=tuple(suggestions), loading=False, error=None)


def search_failed(state: SearchState, generation: int, message: str) -> SearchState:
    return replace(state, generation=generation, suggestions=(), loading=False, error=message)


class PlaceSearchSuggester:
    """Suggests places for the search box and turns a pick into a center-map command."""

    def __init__(
        self,
        service: PlaceSearchService,
        notifications: NotificationChannel,
        hint_box: BoundingBox,
        debounce_seconds: float = 0.3,
        min_length: int = MIN_QUERY_LENGTH,
        center_zoom: int = 14,
    ):
        self.service = service
        self.notifications = notifications
        self.hint_box = hint_box
        self.min_length = min_length
        self.center_zoom = center_zoom
        self.state = SearchState()
        self.requests_sent = 0
        self._generations: LatestWins = LatestWins("place-search")
        self._debouncer = TrailingDebouncer(debounce_seconds, self._dispatch, name="search")

    @property
    def suggestions(self) -> Tuple[SearchSuggestion, ...]:
        return self.state.suggestions

    def input_changed(self, text: str) -> None:
        """Feed one keystroke's worth of input."""
        query = (text or "").strip()
        if len(query) < self.min_length:
            # Too short: drop pending and in-flight queries without a network call
            self._debouncer.cancel()
            self._generations.invalidate()
            self.state = search_cleared(self.state, query)
            return
        self.state = search_pending(self.state, query)
        self._debouncer.push(query)

    async def suggest(self, text: str) -> Tuple[SearchSuggestion, ...]:
        """Feed input and wait for the resulting suggestions (if any)."""
        self.input_changed(text)
        await self._debouncer.drain()
        return self.state.suggestions

    async def settle(self) -> None:
        await self._debouncer.drain()

    def clear(self) -> None:
        self.input_changed("")

    async def shutdown(self) -> None:
        self.clear()
        await self._debouncer.shutdown()

    def select(self, suggestion: SearchSuggestion) -> Optional[GeoPoint]:
        """
        Pick a suggestion: clear the list and emit a CENTER_MAP command.

        Returns the location, or None when the suggestion has no location.
        """
        if not suggestion.selectable:
            error = ValidationError(f"'{suggestion.label}' has no map location.")
            self.notifications.emit(NotificationKind.REJECTED, str(error), {"label": suggestion.label})
            return None

        self._debouncer.cancel()
        self._generations.invalidate()
        self.state = search_cleared(self.state, suggestion.label)
        location = suggestion.location
        self.notifications.emit(
            NotificationKind.CENTER_MAP,
            suggestion.label,
            {"lat": location.lat, "lng": location.lng, "zoom": self.center_zoom},
        )
        logger.info(f"Centering map on '{suggestion.label}' ({location.lat}, {location.lng})")
        return location

    async def _dispatch(self, query: str) -> None:
        self.requests_sent += 1
        logger.debug(f"Searching places for {query!r}")
        outcome = await self._generations.run(lambda: self.service.search(query, self.hint_box))

        if not outcome.current:
            return

        if outcome.ok:
            self.state = search_applied(self.state, outcome.token, outcome.result)
            return

        error = outcome.error
        message = str(error) if isinstance(error, MapError) else f"Place search failed: {error}"
        logger.warning(f"Place search #{outcome.token} for {query!r} failed: {error}")
        self.state = search_failed(self.state, outcome.token, message)
        self.notifications.emit(NotificationKind.SEARCH_ERROR, message, {"query": query})
