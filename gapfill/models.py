"""Candidate data model and adapters for backend payloads."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Reminder:
    id: str
    description: str
    due_date: Optional[str] = None


@dataclass(frozen=True)
class Address:
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    zipcode: str = ""
    full_address: str = ""

    def display(self) -> str:
        if self.full_address:
            return self.full_address
        parts = [self.address1, self.city, self.state, self.zipcode]
        return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class Patient:
    id: str
    name: str
    external_id: Optional[str] = None
    species: Optional[str] = None
    breed: Optional[str] = None
    weight: Optional[float] = None
    dob: Optional[str] = None
    alerts: Tuple[str, ...] = ()
    # None means the backend did not send per-patient reminders.
    reminders: Optional[Tuple[Reminder, ...]] = None


@dataclass(frozen=True)
class ArrivalWindow:
    start: str
    end: str


@dataclass(frozen=True)
class Candidate:
    client_id: str
    client_name: str
    proposed_start_iso: str
    arrival_window: ArrivalWindow
    client_external_id: Optional[str] = None
    client_alerts: Tuple[str, ...] = ()
    address: Address = field(default_factory=Address)
    lat: Optional[float] = None
    lon: Optional[float] = None
    patient_ids: Tuple[str, ...] = ()
    patient_names: Tuple[str, ...] = ()
    patients: Optional[Tuple[Patient, ...]] = None
    reminders: Tuple[Reminder, ...] = ()
    reminder_ids: Tuple[str, ...] = ()
    required_duration: int = 0
    added_drive_seconds: int = 0
    hole_index: Optional[int] = None
    final_score: float = 0.0
    my_day_preview_link: str = ""
    pet_count: int = 0


@dataclass(frozen=True)
class FetchStats:
    holes_found: int = 0
    candidates_evaluated: int = 0
    shortlist_size: int = 0
    final_results: int = 0


@dataclass(frozen=True)
class FetchResult:
    candidates: Tuple[Candidate, ...]
    stats: FetchStats
    message: Optional[str] = None


@dataclass(frozen=True)
class Provider:
    id: str
    name: str
    external_id: Optional[str] = None

    @property
    def lookup_id(self) -> str:
        return self.external_id or self.id


# Adapters for backend response fields

def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int_or_default(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _alerts(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    out: List[str] = []
    for item in value:
        if isinstance(item, dict):
            text = item.get("description") or item.get("name") or item.get("label")
        else:
            text = item
        if text:
            out.append(str(text))
    return tuple(out)


def parse_reminder(raw: Dict[str, Any]) -> Reminder:
    reminder_id = raw.get("id", raw.get("reminderId"))
    return Reminder(
        id=str(reminder_id) if reminder_id is not None else "",
        description=str(raw.get("description") or "").strip(),
        due_date=_str_or_none(raw.get("dueDate")),
    )


def parse_patient(raw: Dict[str, Any]) -> Patient:
    raw_reminders = raw.get("reminders")
    reminders = None
    if isinstance(raw_reminders, list):
        reminders = tuple(parse_reminder(r) for r in raw_reminders if isinstance(r, dict))
    return Patient(
        id=str(raw.get("id") if raw.get("id") is not None else ""),
        name=str(raw.get("name") or "").strip(),
        external_id=_str_or_none(raw.get("externalId") or raw.get("pimsId")),
        species=_str_or_none(raw.get("species")),
        breed=_str_or_none(raw.get("breed") or raw.get("breedName")),
        weight=_float_or_none(raw.get("weight")),
        dob=_str_or_none(raw.get("dob") or raw.get("dateOfBirth")),
        alerts=_alerts(raw.get("alerts")),
        reminders=reminders,
    )


def parse_address(raw: Any) -> Address:
    if not isinstance(raw, dict):
        return Address()
    return Address(
        address1=str(raw.get("address1") or ""),
        address2=str(raw.get("address2") or ""),
        city=str(raw.get("city") or ""),
        state=str(raw.get("state") or ""),
        zipcode=str(raw.get("zipcode") or raw.get("zip") or ""),
        full_address=str(raw.get("fullAddress") or ""),
    )


def parse_candidate(raw: Dict[str, Any]) -> Candidate:
    window = raw.get("arrivalWindow") or {}
    address_raw = raw.get("address")
    lat = _float_or_none(raw.get("lat"))
    lon = _float_or_none(raw.get("lon"))
    if (lat is None or lon is None) and isinstance(address_raw, dict):
        lat = _float_or_none(address_raw.get("lat"))
        lon = _float_or_none(address_raw.get("lon"))

    patient_names = [str(n) for n in raw.get("patientNames") or []]
    if not patient_names and raw.get("patientName"):
        patient_names = [str(raw["patientName"])]

    patients_raw = raw.get("patients")
    patients = None
    if isinstance(patients_raw, list) and patients_raw:
        patients = tuple(parse_patient(p) for p in patients_raw if isinstance(p, dict))

    hole_index = raw.get("holeIndex")
    return Candidate(
        client_id=str(raw.get("clientId") if raw.get("clientId") is not None else ""),
        client_name=str(raw.get("clientName") or "").strip(),
        proposed_start_iso=str(raw.get("proposedStartIso") or ""),
        arrival_window=ArrivalWindow(
            start=str(window.get("start") or ""),
            end=str(window.get("end") or ""),
        ),
        client_external_id=_str_or_none(raw.get("clientExternalId") or raw.get("clientPimsId")),
        client_alerts=_alerts(raw.get("clientAlerts")),
        address=parse_address(address_raw),
        lat=lat,
        lon=lon,
        patient_ids=tuple(str(p) for p in raw.get("patientIds") or []),
        patient_names=tuple(patient_names),
        patients=patients,
        reminders=tuple(parse_reminder(r) for r in raw.get("reminders") or [] if isinstance(r, dict)),
        reminder_ids=tuple(str(r) for r in raw.get("reminderIds") or []),
        required_duration=_int_or_default(raw.get("requiredDuration")),
        added_drive_seconds=_int_or_default(raw.get("addedDriveSeconds")),
        hole_index=_int_or_default(hole_index) if hole_index is not None else None,
        final_score=_float_or_none(raw.get("finalScore")) or 0.0,
        my_day_preview_link=str(raw.get("myDayPreviewLink") or ""),
        pet_count=_int_or_default(raw.get("petCount")),
    )


def parse_stats(raw: Any) -> FetchStats:
    if not isinstance(raw, dict):
        return FetchStats()
    return FetchStats(
        holes_found=_int_or_default(raw.get("holesFound")),
        candidates_evaluated=_int_or_default(raw.get("candidatesEvaluated")),
        shortlist_size=_int_or_default(raw.get("shortlistSize")),
        final_results=_int_or_default(raw.get("finalResults")),
    )


def parse_fetch_response(response: Any) -> FetchResult:
    if not isinstance(response, dict):
        return FetchResult(candidates=(), stats=FetchStats())
    candidates = tuple(
        parse_candidate(c) for c in response.get("candidates") or [] if isinstance(c, dict)
    )
    message = response.get("message")
    return FetchResult(
        candidates=candidates,
        stats=parse_stats(response.get("stats")),
        message=str(message) if message else None,
    )


def parse_provider(raw: Dict[str, Any]) -> Optional[Provider]:
    provider_id = raw.get("id")
    if provider_id is None:
        return None
    name = raw.get("name") or raw.get("fullName")
    if not name:
        name = " ".join(p for p in (raw.get("firstName"), raw.get("lastName")) if p)
    return Provider(
        id=str(provider_id),
        name=str(name or f"Employee {provider_id}").strip(),
        external_id=_str_or_none(raw.get("externalId") or raw.get("pimsId")),
    )
