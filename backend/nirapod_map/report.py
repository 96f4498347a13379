"""
Crime report submission: validate a draft, then POST it to the backend.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from nirapod_map.errors import TransportError, ValidationError
from nirapod_map.logging_config import get_logger
from nirapod_map.notifications import NotificationChannel, NotificationKind
from nirapod_map.region import BANGLADESH, Region
from nirapod_map.schemas import CrimeReportPayload, CrimeType, GeoPoint, PointGeometry, parse_timestamp
from nirapod_map.services.backend_client import NirapodApiClient

logger = get_logger(__name__)

REQUIRED_FIELDS_MESSAGE = "All fields are required."
SUBMITTED_MESSAGE = "Crime report submitted successfully!"


@dataclass
class CrimeReportDraft:
    """Form values as entered; anything may still be blank."""
    type: Optional[str] = None
    description: Optional[str] = None
    time: Optional[str] = None
    location: Optional[GeoPoint] = None


def build_report_payload(draft: CrimeReportDraft, region: Region = BANGLADESH) -> CrimeReportPayload:
    """
    Validate a draft into the backend payload.

    Raises:
        ValidationError: a field is blank, the time is unreadable or the
            location is outside the region
    """
    if not draft.type or not (draft.description or "").strip() or not draft.time or draft.location is None:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    try:
        occurred_at: datetime = parse_timestamp(draft.time)
    except (ValueError, OverflowError):
        raise ValidationError(f"Unreadable date/time: {draft.time!r}")

    location = region.require(draft.location, "report location")
    # Report forms use capitalised labels ("Robbery")
    crime_type = CrimeType.parse(draft.type).value.capitalize()

    return CrimeReportPayload(
        type=crime_type,
        description=draft.description.strip(),
        time=occurred_at.isoformat(),
        location=PointGeometry.from_point(location),
    )


class ReportSubmitter:
    """Submits crime reports and reports the outcome as a notification."""

    def __init__(self, client: NirapodApiClient, notifications: NotificationChannel, region: Region = BANGLADESH):
        self.client = client
        self.notifications = notifications
        self.region = region
        self.submitting = False

    async def submit(self, draft: CrimeReportDraft) -> bool:
        try:
            payload = build_report_payload(draft, self.region)
        except ValidationError as e:
            self.notifications.emit(NotificationKind.REJECTED, str(e))
            return False

        self.submitting = True
        try:
            await self.client.submit_crime(payload)
        except TransportError as e:
            logger.warning(f"Crime report submission failed: {e}")
            self.notifications.emit(NotificationKind.REPORT_FAILED, str(e))
            return False
        finally:
            self.submitting = False

        logger.info(f"Submitted {payload.type} report at {payload.location.coordinates}")
        self.notifications.emit(NotificationKind.REPORT_SUBMITTED, SUBMITTED_MESSAGE, {"type": payload.type})
        return True
