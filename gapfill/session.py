"""Fill-day screen session.

Holds the current result set and ties the fetcher, outreach confirmation and
preview resolver together. Each fetch is issued a ticket; a result is applied
only while its ticket is the latest one and the session has not been left.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple, Union

from .enricher import EnrichedCandidate, enrich_candidate
from .errors import ParseError, ResolutionError, TransportError, ValidationError
from .fetcher import CandidateFetcher, validate_fetch_params
from .models import Candidate, FetchResult, FetchStats, Provider
from .outreach import OutreachConfirmation, SendStatus
from .preview import PreviewOption, PreviewResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchTicket:
    generation: int
    provider_id: str
    target_date: str


class GapFillSession:
    def __init__(
        self,
        fetcher: CandidateFetcher,
        outreach: OutreachConfirmation,
        previews: PreviewResolver,
    ) -> None:
        self.fetcher = fetcher
        self.outreach = outreach
        self.previews = previews

        self.provider_id = ""
        self.provider_name = ""
        self.target_date = ""
        self.ignore_reserve_blocks = False

        self.candidates: Tuple[Candidate, ...] = ()
        self.stats: Optional[FetchStats] = None
        self.message: Optional[str] = None
        self.error: Optional[str] = None
        self.loading = False

        self.preview: Optional[PreviewOption] = None
        self.preview_candidate: Optional[Candidate] = None
        self.preview_errors: Dict[str, str] = {}

        self._generation = 0
        self._active = True

    def select_provider(self, provider: Provider) -> None:
        self.provider_id = provider.lookup_id
        self.provider_name = provider.name

    # Candidate fetch

    def begin_fetch(self) -> FetchTicket:
        self._generation += 1
        self._active = True
        self.loading = True
        self.error = None
        self.candidates = ()
        self.stats = None
        self.message = None
        return FetchTicket(self._generation, self.provider_id, self.target_date)

    def is_current(self, ticket: FetchTicket) -> bool:
        return self._active and ticket.generation == self._generation

    def apply_fetch(self, ticket: FetchTicket, result: FetchResult) -> bool:
        if not self.is_current(ticket):
            logger.info("Discarding stale fill-day result for %s", ticket.target_date)
            return False
        self.candidates = result.candidates
        self.stats = result.stats
        self.message = result.message
        self.loading = False
        return True

    def fail_fetch(self, ticket: FetchTicket, message: str) -> bool:
        if not self.is_current(ticket):
            return False
        self.error = message
        self.loading = False
        return True

    def refresh(
        self,
        provider_id: Optional[str] = None,
        target_date: Optional[str] = None,
        ignore_reserve_blocks: Optional[bool] = None,
    ) -> bool:
        provider_id = self.provider_id if provider_id is None else provider_id
        target_date = self.target_date if target_date is None else target_date
        try:
            provider_id, target_date = validate_fetch_params(provider_id, target_date)
        except ValidationError as exc:
            self.error = str(exc)
            return False

        self.provider_id = provider_id
        self.target_date = target_date
        if ignore_reserve_blocks is not None:
            self.ignore_reserve_blocks = bool(ignore_reserve_blocks)

        ticket = self.begin_fetch()
        try:
            result = self.fetcher.fetch_candidates(
                ticket.provider_id,
                ticket.target_date,
                ignore_reserve_blocks=self.ignore_reserve_blocks,
            )
        except TransportError as exc:
            self.fail_fetch(ticket, exc.message)
            return False
        return self.apply_fetch(ticket, result)

    def navigate_away(self) -> None:
        self._active = False
        self.loading = False

    def enriched(self, now: Optional[Union[date, datetime]] = None) -> List[EnrichedCandidate]:
        return [enrich_candidate(c, now=now) for c in self.candidates]

    def find_candidate(self, client_id: str) -> Optional[Candidate]:
        for candidate in self.candidates:
            if candidate.client_id == client_id:
                return candidate
        return None

    # Outreach

    def send_status(self, client_id: str) -> SendStatus:
        return self.outreach.status.get(client_id)

    # Preview

    def open_preview(self, candidate: Candidate) -> Optional[PreviewOption]:
        self.preview_errors.pop(candidate.client_id, None)
        try:
            option = self.previews.resolve(candidate, selected_provider_name=self.provider_name)
        except (ParseError, ResolutionError) as exc:
            self.preview_errors[candidate.client_id] = str(exc)
            logger.warning("Preview failed for client %s: %s", candidate.client_id, exc)
            return None
        self.preview = option
        self.preview_candidate = candidate
        return option

    def close_preview(self) -> None:
        self.preview = None
        self.preview_candidate = None
