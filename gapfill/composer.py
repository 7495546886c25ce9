"""Outreach text message composer."""
from __future__ import annotations

from datetime import tzinfo
from typing import List, Optional

from . import config
from .enricher import format_date, format_time, resolve_patient_reminders
from .models import Candidate


def client_first_name(client_name: str) -> str:
    parts = (client_name or "").split()
    return parts[0] if parts else "there"


def held_for_name(candidate: Candidate) -> str:
    if candidate.patient_names:
        return candidate.patient_names[0]
    if candidate.patients:
        return candidate.patients[0].name
    return "your pet"


def format_reminder_section(candidate: Candidate) -> str:
    blocks: List[str] = []
    for entry in resolve_patient_reminders(candidate):
        if not entry.reminders:
            continue
        lines = [f"{entry.patient.name}:"]
        lines.extend(f"- {description}" for description in entry.descriptions)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def compose_message(candidate: Candidate, tz: Optional[tzinfo] = None) -> str:
    """Render the editable outreach text for a candidate.

    Depends only on the candidate: the same candidate always yields the same
    text.
    """
    section = format_reminder_section(candidate)
    section_block = f"{section}\n\n" if section else ""
    proposed_date = format_date(candidate.proposed_start_iso, tz)
    proposed_time = format_time(candidate.proposed_start_iso, tz)
    window_start = format_time(candidate.arrival_window.start, tz)
    window_end = format_time(candidate.arrival_window.end, tz)

    return (
        f"Hi {client_first_name(candidate.client_name)},\n"
        "\n"
        "We have availability to see your pet for their overdue reminders:\n"
        "\n"
        f"{section_block}"
        "We would arrive on\n"
        "\n"
        f"{proposed_date} at {proposed_time} with an arrival window between "
        f"{window_start} - {window_end}.\n"
        "\n"
        "This spot is also being offered to other clients. If you'd like to book it for "
        f"{held_for_name(candidate)}, please let us know as soon as possible by texting us "
        f"or call us back here. Thanks, {config.PRACTICE_NAME}"
    )
