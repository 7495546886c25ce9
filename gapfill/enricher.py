"""Candidate enrichment: reminder association and display fields.

Everything here is pure. Reminder associations arrive in two shapes: a
per-patient ``reminders`` list, or the legacy flat ``reminders`` list with a
parallel ``reminder_ids`` list aligned to ``patient_ids``. They are resolved
once into ``PatientReminders`` so consumers never branch on the shape.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from typing import Dict, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from . import config
from .models import Candidate, Patient, Reminder


class ReminderSource(enum.Enum):
    PER_PATIENT = "per_patient"
    LEGACY = "legacy"


@dataclass(frozen=True)
class PatientReminders:
    patient: Patient
    reminders: Tuple[Reminder, ...]
    source: ReminderSource

    @property
    def descriptions(self) -> List[str]:
        return [r.description for r in self.reminders]


@dataclass(frozen=True)
class EnrichedPatient:
    patient: Patient
    descriptor: str
    reminders: Tuple[str, ...]
    source: ReminderSource


@dataclass(frozen=True)
class EnrichedCandidate:
    candidate: Candidate
    patients: Tuple[EnrichedPatient, ...]
    reminders_by_patient: Dict[str, List[str]]
    proposed_date: str
    proposed_time: str
    arrival_start: str
    arrival_end: str
    address: str

    @property
    def patients_with_reminders(self) -> Tuple[EnrichedPatient, ...]:
        return tuple(p for p in self.patients if p.reminders)


# Time parsing and display

def parse_iso(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def display_tz() -> tzinfo:
    return ZoneInfo(config.DISPLAY_TIMEZONE)


def to_display(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    # Naive timestamps are already local.
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(tz or display_tz())


def format_time(iso: str, tz: Optional[tzinfo] = None) -> str:
    """``"9:30 AM"`` style clock time, or the input when it does not parse."""
    dt = parse_iso(iso)
    if dt is None:
        return iso
    local = to_display(dt, tz)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_date(iso: str, tz: Optional[tzinfo] = None) -> str:
    """``"Wed, Mar 05, 2025"`` style date, or the input when it does not parse."""
    dt = parse_iso(iso)
    if dt is None:
        return iso
    return to_display(dt, tz).strftime("%a, %b %d, %Y")


# Patient descriptors

def age_in_years(dob: Optional[str], now: Optional[Union[date, datetime]] = None) -> Optional[int]:
    """Whole years elapsed since ``dob``; None when unknown or negative."""
    born = parse_iso(dob)
    if born is None:
        return None
    if now is None:
        today = date.today()
    elif isinstance(now, datetime):
        today = now.date()
    else:
        today = now
    born_day = born.date()
    years = today.year - born_day.year
    if (today.month, today.day) < (born_day.month, born_day.day):
        years -= 1
    if years < 0:
        return None
    return years


def format_weight(weight: Optional[float]) -> Optional[str]:
    if weight is None:
        return None
    return f"{weight:g} {config.WEIGHT_UNIT}"


def format_patient_descriptor(patient: Patient, now: Optional[Union[date, datetime]] = None) -> str:
    parts: List[str] = []
    age = age_in_years(patient.dob, now)
    if age is not None:
        parts.append(f"{age}y")
    if patient.breed:
        parts.append(patient.breed)
    if patient.species:
        parts.append(f"({patient.species})")
    weight = format_weight(patient.weight)
    if weight:
        parts.append(weight)
    return " ".join(parts)


# Reminder association

def candidate_patients(candidate: Candidate) -> Tuple[Patient, ...]:
    """Ordered patients for a candidate, synthesized from id/name lists if needed."""
    if candidate.patients:
        named: List[Patient] = []
        for idx, patient in enumerate(candidate.patients):
            if not patient.name and idx < len(candidate.patient_names):
                patient = replace(patient, name=candidate.patient_names[idx])
            named.append(patient)
        return tuple(named)
    count = max(len(candidate.patient_ids), len(candidate.patient_names))
    patients: List[Patient] = []
    for idx in range(count):
        patient_id = candidate.patient_ids[idx] if idx < len(candidate.patient_ids) else ""
        name = candidate.patient_names[idx] if idx < len(candidate.patient_names) else ""
        patients.append(Patient(id=patient_id, name=name))
    return tuple(patients)


def _legacy_patient_index(
    candidate: Candidate,
    patients: Tuple[Patient, ...],
    reminder: Reminder,
    position: int,
) -> int:
    if reminder.id not in candidate.reminder_ids:
        # Id-less reminders follow list position when the id lists are aligned.
        aligned = len(candidate.reminder_ids) == len(candidate.patient_ids)
        if not reminder.id and aligned and position < len(patients):
            return position
        return 0
    pos = candidate.reminder_ids.index(reminder.id)
    if pos < len(candidate.patient_ids):
        target_id = candidate.patient_ids[pos]
        for idx, patient in enumerate(patients):
            if patient.id == target_id:
                return idx
    if pos < len(patients):
        return pos
    return 0


def legacy_attribution(
    candidate: Candidate,
    patients: Tuple[Patient, ...],
) -> Dict[int, List[Reminder]]:
    """Attribute flat reminders to patient positions; unmatched go to the first patient."""
    by_index: Dict[int, List[Reminder]] = {}
    if not patients:
        return by_index
    for position, reminder in enumerate(candidate.reminders):
        idx = _legacy_patient_index(candidate, patients, reminder, position)
        by_index.setdefault(idx, []).append(reminder)
    return by_index


def resolve_patient_reminders(candidate: Candidate) -> Tuple[PatientReminders, ...]:
    patients = candidate_patients(candidate)
    legacy: Optional[Dict[int, List[Reminder]]] = None
    resolved: List[PatientReminders] = []
    for idx, patient in enumerate(patients):
        if patient.reminders:
            resolved.append(PatientReminders(patient, tuple(patient.reminders), ReminderSource.PER_PATIENT))
            continue
        if legacy is None:
            legacy = legacy_attribution(candidate, patients)
        resolved.append(PatientReminders(patient, tuple(legacy.get(idx, [])), ReminderSource.LEGACY))
    return tuple(resolved)


def _group(resolved: Tuple[PatientReminders, ...]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for entry in resolved:
        grouped.setdefault(entry.patient.name, []).extend(entry.descriptions)
    return grouped


def group_reminders_by_patient(candidate: Candidate) -> Dict[str, List[str]]:
    return _group(resolve_patient_reminders(candidate))


def enrich_candidate(
    candidate: Candidate,
    now: Optional[Union[date, datetime]] = None,
    tz: Optional[tzinfo] = None,
) -> EnrichedCandidate:
    resolved = resolve_patient_reminders(candidate)
    patients = tuple(
        EnrichedPatient(
            patient=entry.patient,
            descriptor=format_patient_descriptor(entry.patient, now),
            reminders=tuple(entry.descriptions),
            source=entry.source,
        )
        for entry in resolved
    )
    return EnrichedCandidate(
        candidate=candidate,
        patients=patients,
        reminders_by_patient=_group(resolved),
        proposed_date=format_date(candidate.proposed_start_iso, tz),
        proposed_time=format_time(candidate.proposed_start_iso, tz),
        arrival_start=format_time(candidate.arrival_window.start, tz),
        arrival_end=format_time(candidate.arrival_window.end, tz),
        address=candidate.address.display(),
    )
