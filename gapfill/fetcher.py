"""Fill-day candidate fetcher."""
from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from . import config
from .errors import ValidationError
from .http import HttpClient
from .models import FetchResult, parse_fetch_response

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to fetch candidates"


def build_fill_day_body(
    provider_id: str,
    target_date: str,
    ignore_reserve_blocks: bool = False,
) -> Dict[str, Any]:
    return {
        "providerId": provider_id,
        "targetDate": target_date,
        "ignoreReserveBlocks": bool(ignore_reserve_blocks),
        "returnToDepotPolicy": config.RETURN_TO_DEPOT_POLICY,
        "tailOvertimeMinutes": config.TAIL_OVERTIME_MINUTES,
    }


def validate_fetch_params(provider_id: object, target_date: object) -> Tuple[str, str]:
    provider_id = str(provider_id or "").strip()
    target_date = str(target_date or "").strip()
    if not provider_id or not target_date:
        raise ValidationError("Please select a doctor and date")
    return provider_id, target_date


class CandidateFetcher:
    def __init__(self, http_client: HttpClient) -> None:
        self.http = http_client

    def fetch_candidates(
        self,
        provider_id: str,
        target_date: str,
        ignore_reserve_blocks: bool = False,
    ) -> FetchResult:
        provider_id, target_date = validate_fetch_params(provider_id, target_date)
        body = build_fill_day_body(provider_id, target_date, ignore_reserve_blocks)
        logger.info("Fetching fill-day candidates provider=%s date=%s", provider_id, target_date)
        response = self.http.post_json(config.FILL_DAY_PATH, body, error_message=FETCH_ERROR_MESSAGE)
        result = parse_fetch_response(response)
        logger.info(
            "Fill-day returned %s candidates (holes=%s evaluated=%s)",
            len(result.candidates),
            result.stats.holes_found,
            result.stats.candidates_evaluated,
        )
        return result
