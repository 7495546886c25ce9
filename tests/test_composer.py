from gapfill import config
from gapfill.composer import client_first_name, compose_message
from gapfill.models import parse_candidate


def _candidate(**overrides):
    raw = {
        "clientId": 101,
        "clientName": "Jane Q Doe",
        "proposedStartIso": "2025-03-05T14:30:00Z",
        "arrivalWindow": {"start": "2025-03-05T14:00:00Z", "end": "2025-03-05T15:00:00Z"},
        "patientIds": [1, 2, 3],
        "patientNames": ["Rex", "Milo", "Tux"],
        "patients": [
            {"id": 1, "name": "Rex", "reminders": [{"id": 10, "description": "Rabies"}, {"id": 11, "description": "DHPP"}]},
            {"id": 2, "name": "Milo", "reminders": []},
            {"id": 3, "name": "Tux", "reminders": [{"id": 30, "description": "FVRCP"}]},
        ],
    }
    raw.update(overrides)
    return parse_candidate(raw)


def test_compose_message_layout(monkeypatch):
    monkeypatch.setattr(config, "DISPLAY_TIMEZONE", "UTC")
    monkeypatch.setattr(config, "PRACTICE_NAME", "Vet At Your Door")

    message = compose_message(_candidate())

    assert message == (
        "Hi Jane,\n"
        "\n"
        "We have availability to see your pet for their overdue reminders:\n"
        "\n"
        "Rex:\n"
        "- Rabies\n"
        "- DHPP\n"
        "\n"
        "Tux:\n"
        "- FVRCP\n"
        "\n"
        "We would arrive on\n"
        "\n"
        "Wed, Mar 05, 2025 at 2:30 PM with an arrival window between 2:00 PM - 3:00 PM.\n"
        "\n"
        "This spot is also being offered to other clients. If you'd like to book it for Rex, "
        "please let us know as soon as possible by texting us or call us back here. "
        "Thanks, Vet At Your Door"
    )


def test_compose_message_is_pure(monkeypatch):
    monkeypatch.setattr(config, "DISPLAY_TIMEZONE", "UTC")
    candidate = _candidate()

    assert compose_message(candidate) == compose_message(candidate)
    assert compose_message(candidate) == compose_message(_candidate())


def test_patient_with_empty_reminders_is_left_out(monkeypatch):
    monkeypatch.setattr(config, "DISPLAY_TIMEZONE", "UTC")

    message = compose_message(_candidate())

    assert "Milo" not in message


def test_slot_is_held_for_first_listed_patient_even_without_reminders(monkeypatch):
    monkeypatch.setattr(config, "DISPLAY_TIMEZONE", "UTC")
    candidate = _candidate(patientNames=["Milo", "Rex", "Tux"])

    assert "book it for Milo," in compose_message(candidate)


def test_client_first_name():
    assert client_first_name("  Jane   Doe ") == "Jane"
    assert client_first_name("Cher") == "Cher"
    assert client_first_name("") == "there"


def test_empty_reminder_section_is_collapsed(monkeypatch):
    monkeypatch.setattr(config, "DISPLAY_TIMEZONE", "UTC")
    candidate = _candidate(patients=[{"id": 1, "name": "Rex", "reminders": []}], patientIds=[1], patientNames=["Rex"])

    message = compose_message(candidate)

    assert "\n\n\n" not in message
    assert "overdue reminders:\n\nWe would arrive on\n\n" in message
