"""
GeoBoundsTracker: turns a stream of viewport changes into settled bounding boxes.
"""
import inspect
from typing import Awaitable, Callable, List, Optional, Union

from nirapod_map.latest import TrailingDebouncer
from nirapod_map.logging_config import get_logger
from nirapod_map.schemas import BoundingBox

logger = get_logger(__name__)

BoundsListener = Callable[[BoundingBox], Union[None, Awaitable[None]]]


class GeoBoundsTracker:
    """
    Emits the current BoundingBox once the viewport has been quiet for the
    debounce window, and once immediately on mount with the default viewport.
    """

    def __init__(self, default_viewport: BoundingBox, debounce_seconds: float = 0.25):
        self.default_viewport = default_viewport
        self.current: Optional[BoundingBox] = None
        self.emitted = 0
        self._listeners: List[BoundsListener] = []
        self._debouncer = TrailingDebouncer(debounce_seconds, self._emit, name="viewport")

    def subscribe(self, listener: BoundsListener) -> None:
        """Listeners may be plain callables or coroutine functions."""
        self._listeners.append(listener)

    async def mount(self) -> BoundingBox:
        await self._emit(self.default_viewport)
        return self.default_viewport

    def viewport_changed(self, bounds: BoundingBox) -> None:
        """Record a pan/zoom step; emission waits for the quiet window."""
        self._debouncer.push(bounds)

    async def settle(self) -> None:
        """Wait for any pending emission (and the listeners it triggers)."""
        await self._debouncer.drain()

    def cancel(self) -> None:
        self._debouncer.cancel()

    async def shutdown(self) -> None:
        """Cancel the pending emission and any listener run still in flight."""
        await self._debouncer.shutdown()

    async def _emit(self, bounds: BoundingBox) -> None:
        self.current = bounds
        self.emitted += 1
        logger.debug(f"Viewport settled: {bounds.to_query_params()}")
        for listener in list(self._listeners):
            result = listener(bounds)
            if inspect.isawaitable(result):
                await result
