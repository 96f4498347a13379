"""
RouteSelectionMachine: two map clicks -> one safest-route request.

SelectionState is an immutable value; the module-level functions are the only
transitions, and the machine is the only writer of its state.

    Idle --begin--> AwaitingSource --click--> AwaitingDestination
         --click--> Computing --route--> Resolved | Failed
    any --reset--> Idle
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from nirapod_map.errors import EmptyResultError, MapError, TransportError, ValidationError
from nirapod_map.latest import LatestWins
from nirapod_map.logging_config import get_logger
from nirapod_map.notifications import NotificationChannel, NotificationKind
from nirapod_map.region import BANGLADESH, Region
from nirapod_map.schemas import GeoPoint, RouteMode, RouteRequest, RouteResult
from nirapod_map.services.service_base import RouteService

logger = get_logger(__name__)

NO_ROUTE_MESSAGE = "No safe route found for the selected points."
ROUTE_FETCH_FAILED_MESSAGE = "Failed to fetch route"


class SelectionPhase(str, Enum):
    IDLE = "idle"
    AWAITING_SOURCE = "awaiting_source"
    AWAITING_DESTINATION = "awaiting_destination"
    COMPUTING = "computing"
    RESOLVED = "resolved"
    FAILED = "failed"


GUIDANCE = {
    SelectionPhase.AWAITING_SOURCE: "Click on the map to select source (green marker).",
    SelectionPhase.AWAITING_DESTINATION: "Click on the map to select destination (red marker).",
    SelectionPhase.COMPUTING: "Finding the safest route...",
}


@dataclass(frozen=True)
class SelectionState:
    phase: SelectionPhase = SelectionPhase.IDLE
    source: Optional[GeoPoint] = None
    destination: Optional[GeoPoint] = None
    mode: Optional[RouteMode] = None
    route: Optional[RouteResult] = None
    error: Optional[str] = None


def _expect(state: SelectionState, phase: SelectionPhase) -> None:
    if state.phase != phase:
        raise ValueError(f"Cannot apply transition in phase {state.phase.value}; expected {phase.value}")


def begin(state: SelectionState) -> SelectionState:
    if state.phase == SelectionPhase.COMPUTING:
        return state
    return SelectionState(phase=SelectionPhase.AWAITING_SOURCE)


def place_source(state: SelectionState, point: GeoPoint) -> SelectionState:
    _expect(state, SelectionPhase.AWAITING_SOURCE)
    return SelectionState(phase=SelectionPhase.AWAITING_DESTINATION, source=point)


def place_destination(state: SelectionState, point: GeoPoint, mode: RouteMode) -> SelectionState:
    _expect(state, SelectionPhase.AWAITING_DESTINATION)
    return SelectionState(
        phase=SelectionPhase.COMPUTING,
        source=state.source,
        destination=point,
        mode=mode,
    )


def resolve(state: SelectionState, route: RouteResult) -> SelectionState:
    _expect(state, SelectionPhase.COMPUTING)
    return SelectionState(
        phase=SelectionPhase.RESOLVED,
        source=state.source,
        destination=state.destination,
        mode=state.mode,
        route=route,
    )


def fail(state: SelectionState, message: str) -> SelectionState:
    _expect(state, SelectionPhase.COMPUTING)
    return SelectionState(
        phase=SelectionPhase.FAILED,
        source=state.source,
        destination=state.destination,
        mode=state.mode,
        error=message,
    )


def reset(state: SelectionState) -> SelectionState:
    return SelectionState()


def build_route_request(
    source: Optional[GeoPoint],
    destination: Optional[GeoPoint],
    mode: RouteMode,
    region: Region = BANGLADESH,
) -> RouteRequest:
    """
    Build a RouteRequest whose endpoints both lie inside the region.

    Raises:
        ValidationError: an endpoint is missing or outside the region
    """
    return RouteRequest(
        source=region.require(source, "source"),
        destination=region.require(destination, "destination"),
        mode=mode,
    )


class RouteSelectionMachine:
    """Drives SelectionState from user commands and the route service."""

    def __init__(
        self,
        service: RouteService,
        notifications: NotificationChannel,
        region: Region = BANGLADESH,
        mode: RouteMode = RouteMode.DRIVE,
        timeout_seconds: Optional[float] = 30.0,
    ):
        self.service = service
        self.notifications = notifications
        self.region = region
        self.mode = RouteMode(mode)
        self.timeout_seconds = timeout_seconds
        self.state = SelectionState()
        self._requests: LatestWins = LatestWins("route")

    @property
    def phase(self) -> SelectionPhase:
        return self.state.phase

    def set_mode(self, mode) -> None:
        """Applies to the next request; a request already computing keeps its mode."""
        self.mode = RouteMode(mode)

    def begin_selection(self) -> SelectionState:
        if self.state.phase == SelectionPhase.COMPUTING:
            logger.debug("Ignoring begin_selection while a route is computing")
            return self.state
        self.state = begin(self.state)
        self._guide()
        return self.state

    def reset(self) -> SelectionState:
        """Back to Idle from any phase; an in-flight route result will be ignored."""
        if self.state.phase == SelectionPhase.COMPUTING:
            self._requests.invalidate()
            logger.info("Route selection reset while computing; in-flight result will be discarded")
        self.state = reset(self.state)
        return self.state

    cancel = reset

    async def click(self, point: GeoPoint) -> SelectionState:
        """Handle a map click according to the current phase."""
        phase = self.state.phase

        if phase == SelectionPhase.AWAITING_SOURCE:
            if self._accept(point, "source"):
                self.state = place_source(self.state, point)
                self._guide()
            return self.state

        if phase == SelectionPhase.AWAITING_DESTINATION:
            if self._accept(point, "destination"):
                self.state = place_destination(self.state, point, self.mode)
                self._guide()
                await self._compute()
            return self.state

        # Idle, Computing, Resolved, Failed: clicks do not touch the selection
        logger.debug(f"Map click ignored in phase {phase.value}")
        return self.state

    def _accept(self, point: GeoPoint, what: str) -> bool:
        try:
            self.region.require(point, what)
        except ValidationError as e:
            self.notifications.emit(
                NotificationKind.REJECTED,
                str(e),
                {"lat": point.lat, "lng": point.lng, "phase": self.state.phase.value},
            )
            return False
        return True

    def _guide(self) -> None:
        text = GUIDANCE.get(self.state.phase)
        if text:
            self.notifications.emit(NotificationKind.GUIDANCE, text, {"phase": self.state.phase.value})

    async def _compute(self) -> None:
        request = build_route_request(
            self.state.source, self.state.destination, self.state.mode, self.region
        )
        logger.info(
            f"Requesting {request.mode.value} route "
            f"{request.source.as_tuple()} -> {request.destination.as_tuple()}"
        )

        outcome = await self._requests.run(lambda: self._fetch(request))
        if not outcome.current:
            return

        if outcome.ok:
            points = outcome.result or []
            if len(points) >= 2:
                route = RouteResult(points=points, mode=request.mode)
                self.state = resolve(self.state, route)
                self.notifications.emit(
                    NotificationKind.ROUTE_READY,
                    f"Route found with {len(points)} points.",
                    {"points": len(points), "mode": request.mode.value},
                )
                return
            error = EmptyResultError(NO_ROUTE_MESSAGE)
        else:
            error = outcome.error

        self._fail(error)

    async def _fetch(self, request: RouteRequest):
        try:
            if self.timeout_seconds is None:
                return await self.service.fetch_route(request)
            return await asyncio.wait_for(self.service.fetch_route(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            raise TransportError(f"Route request timed out after {self.timeout_seconds}s")

    def _fail(self, error: BaseException) -> None:
        if isinstance(error, EmptyResultError):
            message = str(error)
            logger.info(message)
        else:
            message = ROUTE_FETCH_FAILED_MESSAGE
            if not isinstance(error, MapError):
                logger.error(f"Unexpected route service failure: {error}", exc_info=error)
            else:
                logger.warning(f"Route request failed: {error}")
        self.state = fail(self.state, message)
        self.notifications.emit(
            NotificationKind.ROUTE_FAILED,
            message,
            {"reason": type(error).__name__},
        )
