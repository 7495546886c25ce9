"""CLI entrypoint."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv as _load_dotenv

from gapfill import config
from gapfill.composer import compose_message
from gapfill.enricher import EnrichedCandidate
from gapfill.errors import GapFillError
from gapfill.fetcher import CandidateFetcher
from gapfill.http import HttpClient
from gapfill.models import Candidate
from gapfill.outreach import (
    ConfirmationState,
    OutreachConfirmation,
    SmsClient,
    determine_deployment_mode,
)
from gapfill.preview import PreviewResolver
from gapfill.providers import ProviderDirectory, ProviderIdCache
from gapfill.reporting import ensure_dir, write_candidates_csv, write_candidates_json
from gapfill.session import GapFillSession


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    _load_dotenv(dotenv_path=env_path, override=False)


def build_session(http_client: Optional[HttpClient] = None) -> GapFillSession:
    http_client = http_client or HttpClient()
    directory = ProviderDirectory(http_client, ProviderIdCache())
    outreach = OutreachConfirmation(SmsClient(http_client), determine_deployment_mode())
    return GapFillSession(
        fetcher=CandidateFetcher(http_client),
        outreach=outreach,
        previews=PreviewResolver(directory),
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fill a provider's day from overdue reminders")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    providers = sub.add_parser("providers", help="List primary providers")
    providers.add_argument("--search", type=str, default="", help="Filter by name")

    def add_run_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--provider", required=True, help="Provider external id")
        p.add_argument("--date", required=True, help="Target date YYYY-MM-DD")
        p.add_argument("--ignore-reserve-blocks", action="store_true")

    fetch = sub.add_parser("fetch", help="Fetch and rank gap-fill candidates")
    add_run_args(fetch)
    fetch.add_argument(
        "--out",
        nargs="?",
        const=config.OUTPUT_DIR,
        default=None,
        help=f"Write candidates.json/csv to this directory (default: {config.OUTPUT_DIR})",
    )

    message = sub.add_parser("message", help="Print the outreach text for a candidate")
    add_run_args(message)
    message.add_argument("--client", required=True, help="Candidate client id")

    send = sub.add_parser("send", help="Review and send the outreach text")
    add_run_args(send)
    send.add_argument("--client", required=True, help="Candidate client id")
    send.add_argument("--message-file", type=str, default=None, help="Edited message to send")
    send.add_argument("--override", action="store_true", help="Bypass non-production redirection")
    send.add_argument("--confirm", type=str, default="", help='Type "SEND" to actually send')

    preview = sub.add_parser("preview", help="Show where a candidate lands in the day")
    add_run_args(preview)
    preview.add_argument("--client", required=True, help="Candidate client id")

    return parser.parse_args(argv)


def _print_candidate(rank: int, enriched: EnrichedCandidate) -> None:
    c = enriched.candidate
    print(f"{rank}. {c.client_name} (client {c.client_id})  hole #{c.hole_index}  score {c.final_score:.1f}")
    if enriched.address:
        print(f"   {enriched.address}")
    print(
        f"   {enriched.proposed_date} at {enriched.proposed_time}, "
        f"window {enriched.arrival_start} - {enriched.arrival_end}, "
        f"+{round(c.added_drive_seconds / 60)} min drive"
    )
    for patient in enriched.patients_with_reminders:
        descriptor = f" ({patient.descriptor})" if patient.descriptor else ""
        print(f"   - {patient.patient.name}{descriptor}: {', '.join(patient.reminders)}")


def _load_candidates(session: GapFillSession, args: argparse.Namespace) -> bool:
    ok = session.refresh(args.provider, args.date, ignore_reserve_blocks=args.ignore_reserve_blocks)
    if not ok:
        print(f"Error: {session.error}", file=sys.stderr)
    return ok


def _require_candidate(session: GapFillSession, client_id: str) -> Optional[Candidate]:
    candidate = session.find_candidate(client_id)
    if candidate is None:
        print(f"No candidate for client {client_id}", file=sys.stderr)
    return candidate


def cmd_providers(session: GapFillSession, args: argparse.Namespace) -> int:
    directory = session.previews.directory
    providers = directory.search(args.search) if args.search else directory.list_primary()
    for p in providers:
        print(f"{p.lookup_id}\t{p.name}")
    return 0


def cmd_fetch(session: GapFillSession, args: argparse.Namespace) -> int:
    if not _load_candidates(session, args):
        return 1
    stats = session.stats
    if stats is not None:
        print(
            f"Holes found: {stats.holes_found}  Candidates evaluated: {stats.candidates_evaluated}  "
            f"Shortlist: {stats.shortlist_size}  Final: {stats.final_results}"
        )
    if session.message:
        print(session.message)
    enriched = session.enriched()
    for rank, item in enumerate(enriched, start=1):
        _print_candidate(rank, item)
    if args.out:
        ensure_dir(args.out)
        json_path = os.path.join(args.out, "candidates.json")
        csv_path = os.path.join(args.out, "candidates.csv")
        write_candidates_json(json_path, enriched, stats=stats, message=session.message)
        write_candidates_csv(csv_path, enriched)
        print(f"Results written to {json_path} and {csv_path}")
    return 0


def cmd_message(session: GapFillSession, args: argparse.Namespace) -> int:
    if not _load_candidates(session, args):
        return 1
    candidate = _require_candidate(session, args.client)
    if candidate is None:
        return 1
    print(compose_message(candidate))
    return 0


def cmd_send(session: GapFillSession, args: argparse.Namespace) -> int:
    if args.override and not session.outreach.override_available:
        print("Error: --override is not available in production", file=sys.stderr)
        return 1
    if not _load_candidates(session, args):
        return 1
    candidate = _require_candidate(session, args.client)
    if candidate is None:
        return 1

    outreach = session.outreach
    outreach.open(candidate, override=args.override)
    if args.message_file:
        outreach.edit(Path(args.message_file).read_text(encoding="utf-8"))

    print(f"Message for {candidate.client_name}:")
    print(outreach.message)
    if args.override:
        print("(non-production override enabled)")

    if str(args.confirm or "").strip().upper() != "SEND":
        outreach.cancel()
        print('Not sent. Re-run with --confirm SEND to send this message.')
        return 0

    outreach.confirm()
    status = session.send_status(candidate.client_id)
    if status.error:
        print(f"Error: {status.error}", file=sys.stderr)
        return 1
    if outreach.state is ConfirmationState.CLOSED and status.succeeded:
        print("Text message sent successfully!")
        return 0
    print("Error: message was not sent", file=sys.stderr)
    return 1


def cmd_preview(session: GapFillSession, args: argparse.Namespace) -> int:
    if not _load_candidates(session, args):
        return 1
    candidate = _require_candidate(session, args.client)
    if candidate is None:
        return 1
    option = session.open_preview(candidate)
    if option is None:
        print(f"Error: {session.preview_errors.get(candidate.client_id)}", file=sys.stderr)
        return 1
    print(json.dumps(asdict(option), indent=2))
    return 0


COMMANDS = {
    "providers": cmd_providers,
    "fetch": cmd_fetch,
    "message": cmd_message,
    "send": cmd_send,
    "preview": cmd_preview,
}


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    config.load_env_overrides()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    session = build_session()
    try:
        return COMMANDS[args.command](session, args)
    except GapFillError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
