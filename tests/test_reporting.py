import csv
import json
from datetime import date, timezone

from gapfill.enricher import enrich_candidate
from gapfill.models import FetchStats, parse_candidate
from gapfill.reporting import atomic_write_text, write_candidates_csv, write_candidates_json


def _enriched():
    candidate = parse_candidate(
        {
            "clientId": 7,
            "clientName": "Zoë Brandt",
            "proposedStartIso": "2025-12-10T14:30:00Z",
            "arrivalWindow": {"start": "2025-12-10T14:00:00Z", "end": "2025-12-10T15:00:00Z"},
            "patientIds": [70],
            "patientNames": ["Biscuit"],
            "reminders": [{"id": 700, "description": "Rabies"}],
            "reminderIds": [700],
            "requiredDuration": 2700,
            "addedDriveSeconds": 540,
            "holeIndex": 2,
            "finalScore": 87.34,
        }
    )
    return enrich_candidate(candidate, now=date(2025, 12, 1), tz=timezone.utc)


def test_atomic_write_text(tmp_path):
    path = tmp_path / "atomic.txt"

    atomic_write_text(str(path), "first")
    assert path.read_text(encoding="utf-8") == "first"

    atomic_write_text(str(path), "second")
    assert path.read_text(encoding="utf-8") == "second"

    leftovers = [p for p in tmp_path.iterdir() if p.name != "atomic.txt"]
    assert not leftovers


def test_write_candidates_json(tmp_path):
    path = tmp_path / "candidates.json"

    write_candidates_json(str(path), [_enriched()], stats=FetchStats(holes_found=3, final_results=1), message="Top 1")

    text = path.read_text(encoding="utf-8")
    data = json.loads(text)
    assert data["stats"]["holes_found"] == 3
    assert data["message"] == "Top 1"
    row = data["candidates"][0]
    assert row["rank"] == 1
    assert row["client_id"] == "7"
    assert row["arrival_window"] == "2:00 PM - 3:00 PM"
    assert row["required_minutes"] == 45
    assert row["reminders"] == {"Biscuit": ["Rabies"]}
    assert "ë" in text

    leftovers = [p for p in tmp_path.iterdir() if p.name != "candidates.json"]
    assert not leftovers


def test_write_candidates_csv(tmp_path):
    path = tmp_path / "candidates.csv"

    write_candidates_csv(str(path), [_enriched()])

    with path.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]["client_name"] == "Zoë Brandt"
    assert rows[0]["final_score"] == "87.3"
    assert json.loads(rows[0]["reminders"]) == {"Biscuit": ["Rabies"]}
