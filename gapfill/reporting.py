"""Output reporting helpers."""
from __future__ import annotations

import csv
import json
import os
import tempfile
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO

from .enricher import EnrichedCandidate
from .models import FetchStats

CANDIDATE_FIELDS = [
    "rank",
    "client_id",
    "client_name",
    "address",
    "lat",
    "lon",
    "hole_index",
    "final_score",
    "proposed_date",
    "proposed_time",
    "arrival_window",
    "required_minutes",
    "added_drive_seconds",
    "pet_count",
    "patients",
    "reminders",
]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _fsync_dir(path: str) -> None:
    try:
        dir_fd = os.open(path, os.O_DIRECTORY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def atomic_writer(
    path: str,
    mode: str = "w",
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> Iterator[TextIO]:
    dir_path = os.path.dirname(path) or "."
    base = os.path.basename(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{base}.", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, mode, encoding=encoding, newline=newline) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(dir_path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_text(path: str, text: str) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        f.write(text)


def candidate_row(rank: int, enriched: EnrichedCandidate) -> Dict[str, Any]:
    c = enriched.candidate
    return {
        "rank": rank,
        "client_id": c.client_id,
        "client_name": c.client_name,
        "address": enriched.address,
        "lat": c.lat,
        "lon": c.lon,
        "hole_index": c.hole_index,
        "final_score": round(c.final_score, 1),
        "proposed_date": enriched.proposed_date,
        "proposed_time": enriched.proposed_time,
        "arrival_window": f"{enriched.arrival_start} - {enriched.arrival_end}",
        "required_minutes": round(c.required_duration / 60),
        "added_drive_seconds": c.added_drive_seconds,
        "pet_count": c.pet_count,
        "patients": [
            {"name": p.patient.name, "descriptor": p.descriptor, "reminders": list(p.reminders)}
            for p in enriched.patients
        ],
        "reminders": enriched.reminders_by_patient,
    }


def write_candidates_csv(path: str, candidates: Iterable[EnrichedCandidate]) -> None:
    rows = [candidate_row(idx, c) for idx, c in enumerate(candidates, start=1)]
    with atomic_writer(path, mode="w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CANDIDATE_FIELDS)
        writer.writeheader()
        for row in rows:
            out = dict(row)
            out["patients"] = json.dumps(out["patients"], ensure_ascii=False)
            out["reminders"] = json.dumps(out["reminders"], ensure_ascii=False)
            writer.writerow(out)


def write_candidates_json(
    path: str,
    candidates: Iterable[EnrichedCandidate],
    stats: Optional[FetchStats] = None,
    message: Optional[str] = None,
) -> None:
    rows: List[Dict[str, Any]] = [candidate_row(idx, c) for idx, c in enumerate(candidates, start=1)]
    payload: Dict[str, Any] = {
        "generated_at": utc_now_iso(),
        "stats": asdict(stats) if stats is not None else None,
        "message": message,
        "candidates": rows,
    }
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
