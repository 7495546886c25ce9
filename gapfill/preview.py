"""Schedule preview: where a candidate would land in the provider's day.

The resulting ``PreviewOption`` drives a read-only render of the day with a
provisional appointment inserted. It is rebuilt on every request and never
persisted.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Optional, Union

from . import config
from .enricher import parse_iso, to_display
from .errors import InvalidDateFormat, InvalidTimestamp, UnparseableLink
from .models import Candidate
from .providers import ProviderDirectory

logger = logging.getLogger(__name__)

_LINK_RE = re.compile(config.PREVIEW_LINK_PATTERN)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ProvisionalAppointment:
    client_id: str
    client_name: str
    insertion_index: int
    suggested_start_iso: str
    service_minutes: int
    address: str
    city: str
    state: str
    zipcode: str
    lat: Optional[float]
    lon: Optional[float]


@dataclass(frozen=True)
class PreviewOption:
    date: str
    insertion_index: int
    suggested_start_iso: str
    provider_id: str
    provider_name: str
    projected_drive_seconds: int
    current_drive_seconds: int
    client_name: str
    service_minutes: int
    appointment: ProvisionalAppointment


def parse_external_provider_id(link: str) -> str:
    match = _LINK_RE.search(link or "")
    if not match:
        raise UnparseableLink("Could not parse doctor ID from preview link")
    return match.group(1)


def insertion_index(hole_index: Optional[int]) -> int:
    # Hole indices are 1-based upstream.
    if hole_index is None:
        return 0
    return max(0, int(hole_index) - 1)


def normalize_target_date(
    value: Union[str, date, datetime, None],
    tz: Optional[tzinfo] = None,
) -> str:
    """Calendar date in the display timezone, the same day the outreach text shows."""
    if isinstance(value, datetime):
        normalized = to_display(value, tz).date().isoformat()
    elif isinstance(value, date):
        normalized = value.isoformat()
    else:
        text = str(value or "").strip()
        parsed = parse_iso(text)
        normalized = to_display(parsed, tz).date().isoformat() if parsed is not None else text.split("T")[0]
    if not _DATE_RE.match(normalized):
        raise InvalidDateFormat(f"Invalid date format: {normalized}")
    return normalized


def service_minutes(required_duration_seconds: int) -> int:
    # Half-up, so 150s shows as 3 minutes.
    return max(1, int(math.floor((required_duration_seconds or 0) / 60 + 0.5)))


def build_provisional_appointment(
    candidate: Candidate,
    index: int,
    minutes: int,
) -> ProvisionalAppointment:
    # Coordinates come from the candidate's client, never a neighbouring appointment.
    address = candidate.address
    return ProvisionalAppointment(
        client_id=candidate.client_id,
        client_name=candidate.client_name,
        insertion_index=index,
        suggested_start_iso=candidate.proposed_start_iso,
        service_minutes=minutes,
        address=address.display(),
        city=address.city,
        state=address.state,
        zipcode=address.zipcode,
        lat=candidate.lat,
        lon=candidate.lon,
    )


class PreviewResolver:
    def __init__(self, directory: ProviderDirectory) -> None:
        self.directory = directory

    def resolve(
        self,
        candidate: Candidate,
        selected_provider_name: str = "",
        tz: Optional[tzinfo] = None,
    ) -> PreviewOption:
        proposed = parse_iso(candidate.proposed_start_iso)
        if proposed is None:
            raise InvalidTimestamp("Invalid proposed start time")

        external_id = parse_external_provider_id(candidate.my_day_preview_link)
        provider_id = self.directory.resolve_internal_id(external_id)

        provider = self.directory.find_by_external_id(external_id)
        provider_name = (
            (provider.name if provider else "")
            or selected_provider_name
            or config.DEFAULT_PROVIDER_NAME
        )

        index = insertion_index(candidate.hole_index)
        target_date = normalize_target_date(proposed, tz)
        minutes = service_minutes(candidate.required_duration)

        option = PreviewOption(
            date=target_date,
            insertion_index=index,
            suggested_start_iso=candidate.proposed_start_iso,
            provider_id=provider_id,
            provider_name=provider_name,
            projected_drive_seconds=candidate.added_drive_seconds,
            current_drive_seconds=candidate.added_drive_seconds,
            client_name=candidate.client_name,
            service_minutes=minutes,
            appointment=build_provisional_appointment(candidate, index, minutes),
        )
        logger.debug(
            "Preview for client %s: provider=%s date=%s index=%s",
            candidate.client_id,
            provider_id,
            target_date,
            index,
        )
        return option
