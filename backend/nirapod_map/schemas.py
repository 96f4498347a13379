"""
Pydantic schemas for map values and for the payloads exchanged with the
crime backend and the geocoder.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from dateutil import parser as date_parser


class GeoPoint(BaseModel):
    """A latitude/longitude pair."""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)

    def as_tuple(self):
        return (self.lat, self.lng)


class BoundingBox(BaseModel):
    """
    Rectangular map viewport.

    Boxes crossing the antimeridian (south_west.lng > north_east.lng) are
    rejected; the served region never needs them.
    """
    model_config = ConfigDict(frozen=True)

    south_west: GeoPoint
    north_east: GeoPoint

    @model_validator(mode="after")
    def _check_corners(self):
        if self.south_west.lat > self.north_east.lat:
            raise ValueError("south_west.lat must not exceed north_east.lat")
        if self.south_west.lng > self.north_east.lng:
            raise ValueError("bounding boxes crossing the antimeridian are not supported")
        return self

    @classmethod
    def from_corners(cls, min_lat: float, min_lng: float, max_lat: float, max_lng: float) -> "BoundingBox":
        return cls(
            south_west=GeoPoint(lat=min_lat, lng=min_lng),
            north_east=GeoPoint(lat=max_lat, lng=max_lng),
        )

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            lat=(self.south_west.lat + self.north_east.lat) / 2.0,
            lng=(self.south_west.lng + self.north_east.lng) / 2.0,
        )

    def contains(self, point: GeoPoint) -> bool:
        return (
            self.south_west.lat <= point.lat <= self.north_east.lat
            and self.south_west.lng <= point.lng <= self.north_east.lng
        )

    def to_query_params(self) -> Dict[str, float]:
        """Four scalar coordinates in the crime feed's parameter names."""
        return {
            "minLat": self.south_west.lat,
            "minLng": self.south_west.lng,
            "maxLat": self.north_east.lat,
            "maxLng": self.north_east.lng,
        }

    def to_viewbox(self) -> str:
        """Nominatim viewbox order: left,top,right,bottom."""
        return (
            f"{self.south_west.lng},{self.north_east.lat},"
            f"{self.north_east.lng},{self.south_west.lat}"
        )


class CrimeType(str, Enum):
    """Fixed incident categories shown on the map."""
    ROBBERY = "robbery"
    ASSAULT = "assault"
    HARASSMENT = "harassment"
    THEFT = "theft"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CrimeType":
        """Case-insensitive lookup; anything unknown is OTHER."""
        if not value:
            return cls.OTHER
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


class RouteMode(str, Enum):
    DRIVE = "drive"
    WALK = "walk"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ISO-ish timestamps from the backend; None for blanks."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date_parser.parse(text)


class CrimeMarker(BaseModel):
    """A reported incident to display."""
    model_config = ConfigDict(frozen=True)

    id: str
    type: CrimeType
    description: str = ""
    time: Optional[datetime] = None
    location: GeoPoint

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value):
        if isinstance(value, CrimeType):
            return value
        return CrimeType.parse(value)

    @field_validator("time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        return parse_timestamp(value)


class RouteRequest(BaseModel):
    """Parameters sent to the route service."""
    model_config = ConfigDict(frozen=True)

    source: GeoPoint
    destination: GeoPoint
    mode: RouteMode = RouteMode.DRIVE

    def to_payload(self) -> Dict[str, Any]:
        """Request body in the backend's field names."""
        return {
            "startLat": self.source.lat,
            "startLng": self.source.lng,
            "endLat": self.destination.lat,
            "endLng": self.destination.lng,
            "networkType": self.mode.value,
        }


class RouteResult(BaseModel):
    """A usable route: at least two points."""
    model_config = ConfigDict(frozen=True)

    points: List[GeoPoint] = Field(..., min_length=2)
    mode: RouteMode


class SearchSuggestion(BaseModel):
    """A ranked candidate place; selectable only when it has a location."""
    model_config = ConfigDict(frozen=True)

    label: str
    location: Optional[GeoPoint] = None

    @property
    def selectable(self) -> bool:
        return self.location is not None


# ---------------------------------------------------------------------------
# Wire payloads
# ---------------------------------------------------------------------------

class PointGeometry(BaseModel):
    """GeoJSON point as stored by the backend (coordinates are [lng, lat])."""
    type: str = "Point"
    coordinates: List[float]

    @classmethod
    def from_point(cls, point: GeoPoint) -> "PointGeometry":
        return cls(coordinates=[point.lng, point.lat])

    def to_point(self) -> GeoPoint:
        if len(self.coordinates) < 2:
            raise ValueError("point geometry needs [lng, lat]")
        return GeoPoint(lat=self.coordinates[1], lng=self.coordinates[0])


class CrimeFeedItem(BaseModel):
    """One element of GET /api/crimes."""
    id: str
    type: Optional[str] = None
    description: Optional[str] = ""
    time: Optional[str] = None
    location: PointGeometry

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    def to_marker(self) -> CrimeMarker:
        return CrimeMarker(
            id=self.id,
            type=self.type,
            description=self.description or "",
            time=self.time,
            location=self.location.to_point(),
        )


class RouteResponse(BaseModel):
    """Response of POST /api/routes/safest."""
    route: List[GeoPoint] = Field(default_factory=list)


class CrimeReportPayload(BaseModel):
    """Body of POST /api/crimes."""
    type: str
    description: str
    time: str
    location: PointGeometry


class PlaceSearchItem(BaseModel):
    """One Nominatim search hit; lat/lon arrive as strings."""
    model_config = ConfigDict(extra="ignore")

    display_name: str = ""
    lat: Optional[str] = None
    lon: Optional[str] = None

    def to_suggestion(self) -> SearchSuggestion:
        location = None
        try:
            if self.lat is not None and self.lon is not None:
                location = GeoPoint(lat=float(self.lat), lng=float(self.lon))
        except ValueError:
            # pydantic's ValidationError is a ValueError too
            location = None
        return SearchSuggestion(label=self.display_name, location=location)
