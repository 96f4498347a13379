"""
Region-containment predicate for the serviceable area (Bangladesh).

Every user-supplied point (route endpoint, report location) is checked here
before it reaches a service.
"""
from typing import Iterable, Optional, Sequence, Tuple

from shapely.geometry import Point, Polygon
from shapely.prepared import prep

from nirapod_map.errors import ValidationError
from nirapod_map.schemas import GeoPoint

# Simplified national boundary as (lng, lat), clockwise from the north-west panhandle.
# The coast keeps a seaward margin so coastal towns and islands stay inside;
# land borders follow India (including the Tripura salient) and Myanmar.
BANGLADESH_OUTLINE: Sequence[Tuple[float, float]] = (
    (88.09, 26.43),
    (88.42, 26.63),
    (89.05, 26.30),
    (89.36, 26.01),
    (89.83, 25.96),
    (89.87, 25.29),
    (90.87, 25.13),
    (92.03, 25.19),
    (92.40, 24.86),
    # Tripura
    (92.10, 24.40),
    (91.90, 24.15),
    (91.55, 24.10),
    (91.30, 24.00),
    (91.20, 23.80),
    (91.22, 23.55),
    (91.38, 23.15),
    (91.60, 22.98),
    (91.85, 23.00),
    (92.05, 23.30),
    (92.26, 23.72),
    # Mizoram and Myanmar, down the Naf river to Teknaf
    (92.67, 22.98),
    (92.60, 21.40),
    (92.35, 21.00),
    (92.33, 20.70),
    (92.30, 20.60),
    # Cox's Bazar and Chattogram coast
    (91.95, 21.10),
    (91.85, 21.45),
    (91.75, 22.00),
    (91.65, 22.40),
    # Meghna estuary, Patuakhali/Barguna coast, Sundarbans
    (91.40, 22.20),
    (91.10, 21.95),
    (90.60, 21.85),
    (90.10, 21.70),
    (89.60, 21.70),
    (89.03, 21.64),
    (88.97, 22.06),
    (89.00, 22.90),
    (88.75, 23.30),
    (88.70, 24.23),
    (88.01, 24.66),
    (88.14, 25.20),
    (88.56, 25.65),
)


class Region:
    """A fixed polygon that user-supplied points must fall inside."""

    def __init__(self, name: str, outline: Iterable[Tuple[float, float]]):
        self.name = name
        self.polygon = Polygon(list(outline))
        if not self.polygon.is_valid:
            raise ValueError(f"Region outline for {name!r} is not a valid polygon")
        self._prepared = prep(self.polygon)

    def contains(self, point: GeoPoint) -> bool:
        # covers() keeps points on the border inside
        return self._prepared.covers(Point(point.lng, point.lat))

    def require(self, point: Optional[GeoPoint], what: str = "location") -> GeoPoint:
        """
        Return the point if it is inside the region.

        Raises:
            ValidationError: the point is missing or outside the region
        """
        if point is None:
            raise ValidationError(f"Please select a {what}.")
        if not self.contains(point):
            raise ValidationError(
                f"The selected {what} ({point.lat:.4f}, {point.lng:.4f}) is outside {self.name}."
            )
        return point


BANGLADESH = Region("Bangladesh", BANGLADESH_OUTLINE)
