"""
MapController: composition root for the map page.

Wires viewport tracking to the crime feed, map clicks to route selection, the
search box to place suggestions, and every component to one notification
channel. The UI layer forwards raw events here and renders from the exposed
states and notifications.
"""
from typing import Dict, List, Optional, Tuple

from dateutil import tz

from nirapod_map.bounds_tracker import GeoBoundsTracker
from nirapod_map.config_loader import MapSettings
from nirapod_map.crime_feed import CrimeFeedLoader
from nirapod_map.crime_stats import summarize
from nirapod_map.logging_config import get_logger
from nirapod_map.notifications import NotificationChannel
from nirapod_map.place_search import PlaceSearchSuggester
from nirapod_map.region import BANGLADESH, Region
from nirapod_map.report import CrimeReportDraft, ReportSubmitter
from nirapod_map.route_selection import RouteSelectionMachine, SelectionState
from nirapod_map.schemas import BoundingBox, CrimeMarker, GeoPoint, SearchSuggestion
from nirapod_map.services.backend_client import NirapodApiClient
from nirapod_map.services.geocoder import NominatimGeocoder
from nirapod_map.services.service_base import CrimeFeedService, PlaceSearchService, RouteService

logger = get_logger(__name__)


class MapController:
    """Single entry point for map events."""

    def __init__(
        self,
        settings: MapSettings,
        crime_service: CrimeFeedService,
        route_service: RouteService,
        place_service: PlaceSearchService,
        notifications: Optional[NotificationChannel] = None,
        region: Region = BANGLADESH,
        reporter: Optional[ReportSubmitter] = None,
    ):
        self.settings = settings
        self.notifications = notifications or NotificationChannel()
        self.region = region

        self.bounds = GeoBoundsTracker(
            settings.default_viewport, debounce_seconds=settings.viewport_debounce_seconds
        )
        self.feed = CrimeFeedLoader(crime_service, self.notifications)
        self.routes = RouteSelectionMachine(
            route_service,
            self.notifications,
            region=region,
            mode=settings.route_mode,
            timeout_seconds=settings.route_timeout_seconds,
        )
        self.search = PlaceSearchSuggester(
            place_service,
            self.notifications,
            hint_box=settings.search_hint_box,
            debounce_seconds=settings.search_debounce_seconds,
            min_length=settings.search_min_length,
            center_zoom=settings.center_zoom,
        )
        self.reporter = reporter
        self._zone = tz.gettz(settings.local_timezone)
        self._closables = []

        self.bounds.subscribe(self.feed.on_bounds)

    @classmethod
    def from_settings(cls, settings: MapSettings, notifications: Optional[NotificationChannel] = None) -> "MapController":
        """Build a controller talking HTTP to the configured backend and geocoder."""
        api = NirapodApiClient(
            settings.api_base_url,
            auth_token=settings.auth_token,
            timeout=settings.http_timeout_seconds,
            retry=settings.retry,
        )
        geocoder = NominatimGeocoder(
            settings.geocoder_url,
            limit=settings.search_limit,
            country_codes=settings.search_country_codes,
            timeout=settings.http_timeout_seconds,
            retry=settings.retry,
        )
        channel = notifications or NotificationChannel()
        controller = cls(
            settings,
            crime_service=api,
            route_service=api,
            place_service=geocoder,
            notifications=channel,
            reporter=ReportSubmitter(api, channel),
        )
        controller._closables = [api, geocoder]
        return controller

    # -- lifecycle ---------------------------------------------------------

    async def mount(self) -> Tuple[CrimeMarker, ...]:
        """Initial viewport emission, which triggers the first feed load."""
        await self.bounds.mount()
        return self.feed.markers

    async def settle(self) -> None:
        """Wait for pending debounced work in every stream."""
        await self.bounds.settle()
        await self.search.settle()

    async def close(self) -> None:
        """
        Stop every stream, then close the HTTP clients.

        Debounced work that already started is cancelled and awaited, and any
        feed or route request still in flight is made stale, so nothing is
        applied or notified after this returns.
        """
        await self.bounds.shutdown()
        await self.search.shutdown()
        self.feed.invalidate()
        self.routes.reset()
        for closable in self._closables:
            await closable.aclose()
        logger.info("Map controller closed")

    async def __aenter__(self):
        await self.mount()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    # -- viewport / crime layer -------------------------------------------

    def viewport_changed(self, bounds: BoundingBox) -> None:
        self.bounds.viewport_changed(bounds)

    async def set_crime_filter(self, type_filter: Optional[str]) -> Tuple[CrimeMarker, ...]:
        return await self.feed.set_filter(type_filter)

    @property
    def markers(self) -> Tuple[CrimeMarker, ...]:
        return self.feed.markers

    @property
    def stats(self) -> Dict[str, List[Dict[str, object]]]:
        """Hour and weekday chart series for the markers on the map."""
        return summarize(self.feed.markers, self._zone)

    # -- route selection ---------------------------------------------------

    def begin_route_selection(self) -> SelectionState:
        return self.routes.begin_selection()

    def reset_route_selection(self) -> SelectionState:
        return self.routes.reset()

    def set_route_mode(self, mode) -> None:
        self.routes.set_mode(mode)

    async def map_clicked(self, point: GeoPoint) -> SelectionState:
        return await self.routes.click(point)

    @property
    def selection(self) -> SelectionState:
        return self.routes.state

    # -- place search ------------------------------------------------------

    def search_input(self, text: str) -> None:
        self.search.input_changed(text)

    async def suggest(self, text: str) -> Tuple[SearchSuggestion, ...]:
        return await self.search.suggest(text)

    def select_place(self, suggestion: SearchSuggestion) -> Optional[GeoPoint]:
        return self.search.select(suggestion)

    # -- reports -----------------------------------------------------------

    async def submit_report(self, draft: CrimeReportDraft) -> bool:
        if self.reporter is None:
            raise RuntimeError("This controller was built without a report submitter")
        return await self.reporter.submit(draft)
