"""
CrimeFeedLoader: fetches incident markers for the settled viewport.

Every load is token-stamped; only the newest load may replace the visible
markers. A failed load keeps the previous markers on screen and raises the
error flag instead.
"""
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from nirapod_map.errors import MapError, TransportError
from nirapod_map.latest import LatestWins
from nirapod_map.logging_config import get_logger
from nirapod_map.notifications import NotificationChannel, NotificationKind
from nirapod_map.schemas import BoundingBox, CrimeMarker, CrimeType
from nirapod_map.services.backend_client import normalize_type_filter
from nirapod_map.services.service_base import CrimeFeedService

logger = get_logger(__name__)


@dataclass(frozen=True)
class FeedState:
    """What the map shows for the crime layer."""
    markers: Tuple[CrimeMarker, ...] = ()
    bounds: Optional[BoundingBox] = None
    type_filter: Optional[str] = None
    token: int = 0
    loading: bool = False
    error: Optional[str] = None


def feed_requested(state: FeedState, bounds: BoundingBox, type_filter: Optional[str], token: int) -> FeedState:
    return replace(state, bounds=bounds, type_filter=type_filter, token=token, loading=True)


def feed_loaded(state: FeedState, markers: Tuple[CrimeMarker, ...]) -> FeedState:
    return replace(state, markers=markers, loading=False, error=None)


def feed_failed(state: FeedState, message: str) -> FeedState:
    # Markers stay: stale-but-valid beats blank
    return replace(state, loading=False, error=message)


def filter_markers(markers, type_filter: Optional[str]) -> Tuple[CrimeMarker, ...]:
    """Client-side type filter; None/'all' keeps everything."""
    token = normalize_type_filter(type_filter)
    if token is None:
        return tuple(markers)
    try:
        wanted = CrimeType(token)
    except ValueError:
        return ()
    return tuple(m for m in markers if m.type == wanted)


class CrimeFeedLoader:
    """Loads the crime layer for a viewport and type filter."""

    def __init__(self, service: CrimeFeedService, notifications: NotificationChannel):
        self.service = service
        self.notifications = notifications
        self.state = FeedState()
        self._requests: LatestWins = LatestWins("crime-feed")

    @property
    def markers(self) -> Tuple[CrimeMarker, ...]:
        return self.state.markers

    async def load(self, bounds: BoundingBox, type_filter: Optional[str] = None) -> Tuple[CrimeMarker, ...]:
        """
        Fetch markers for ``bounds`` and apply them if no newer load started.

        Returns the markers visible once this call settles.
        """
        type_filter = normalize_type_filter(type_filter)
        token = self._requests.latest + 1
        self.state = feed_requested(self.state, bounds, type_filter, token)

        outcome = await self._requests.run(lambda: self.service.fetch_crimes(bounds, type_filter))

        if not outcome.current:
            return self.state.markers

        if outcome.ok:
            # Services are expected to filter; enforce it in case one does not.
            markers = filter_markers(outcome.result, type_filter)
            self.state = feed_loaded(self.state, markers)
            logger.info(f"Crime feed #{outcome.token}: {len(markers)} markers (filter={type_filter or 'all'})")
            return self.state.markers

        message = self._failure_message(outcome.error)
        self.state = feed_failed(self.state, message)
        logger.warning(f"Crime feed #{outcome.token} failed: {outcome.error}")
        self.notifications.emit(
            NotificationKind.FEED_ERROR,
            message,
            {"token": outcome.token, "kept_markers": len(self.state.markers)},
        )
        return self.state.markers

    async def on_bounds(self, bounds: BoundingBox) -> None:
        """Listener for GeoBoundsTracker: reload with the current filter."""
        await self.load(bounds, self.state.type_filter)

    async def set_filter(self, type_filter: Optional[str]) -> Tuple[CrimeMarker, ...]:
        """Change the type filter and reload with the last-known bounds."""
        type_filter = normalize_type_filter(type_filter)
        if self.state.bounds is None:
            self.state = replace(self.state, type_filter=type_filter)
            return self.state.markers
        return await self.load(self.state.bounds, type_filter)

    def invalidate(self) -> None:
        """Make any load still in flight stale, so it neither applies nor notifies."""
        self._requests.invalidate()

    @staticmethod
    def _failure_message(error: BaseException) -> str:
        if isinstance(error, MapError):
            return str(error)
        # Anything else escaped the service's own error mapping
        return str(TransportError(f"Failed to fetch crimes: {error}"))
