"""HTTP client for the practice backend.

GETs are retried with backoff on throttling and gateway errors. POSTs are sent
once: they either start an optimizer run or send a text to a real client.
"""
from __future__ import annotations

import json
import logging
import random
import time
from typing import Any, Dict, Optional

import requests

from . import config
from .errors import TransportError

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


def extract_error_message(payload: Any, fallback: str) -> str:
    """Prefer the backend's structured ``message`` field over a generic string."""
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return fallback


class HttpClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: int = config.HTTP_TIMEOUT_SECONDS,
        retry_max: int = config.HTTP_RETRY_MAX,
        backoff_base: float = config.HTTP_BACKOFF_BASE,
        backoff_max: float = config.HTTP_BACKOFF_MAX,
    ) -> None:
        self.base_url = (base_url if base_url is not None else config.API_BASE_URL).rstrip("/")
        self.token = token if token is not None else config.API_TOKEN
        self.timeout = timeout
        self.retry_max = max(1, int(retry_max))
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.session = requests.Session()

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def post_json(
        self,
        path: str,
        body: Dict[str, Any],
        error_message: str = "Request failed",
    ) -> Any:
        url = self._url(path)
        payload = json.dumps(body)
        try:
            resp = self.session.post(url, data=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("POST %s failed: %s", url, exc)
            raise TransportError(str(exc) or error_message) from exc
        return self._handle(resp, url, error_message)

    def get_json(self, path: str, error_message: str = "Request failed", retry: bool = True) -> Any:
        url = self._url(path)
        attempts = self.retry_max if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                resp = self.session.get(url, headers=self._headers(), timeout=self.timeout)
            except requests.RequestException as exc:
                if attempt >= attempts:
                    logger.error("GET %s failed: %s", url, exc)
                    raise TransportError(str(exc) or error_message) from exc
                self._sleep_backoff(attempt)
                continue

            if resp.status_code in RETRYABLE_STATUSES and attempt < attempts:
                logger.warning("HTTP %s from %s (attempt %s)", resp.status_code, url, attempt)
                if not self._sleep_retry_after(resp):
                    self._sleep_backoff(attempt)
                continue
            return self._handle(resp, url, error_message)

        raise RuntimeError("Unexpected HTTP retry loop exit")

    def _handle(self, resp: requests.Response, url: str, error_message: str) -> Any:
        status = resp.status_code
        if 200 <= status < 300:
            if not resp.content:
                return {}
            try:
                return resp.json()
            except ValueError as exc:
                logger.error("Non-JSON response from %s", url)
                raise TransportError(error_message, status_code=status) from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        logger.error("HTTP %s from %s", status, url)
        raise TransportError(
            extract_error_message(payload, error_message),
            status_code=status,
            payload=payload,
        )

    def _sleep_backoff(self, attempt: int) -> None:
        base = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        jitter = random.uniform(0, self.backoff_base)
        time.sleep(base + jitter)

    def _sleep_retry_after(self, resp: requests.Response) -> bool:
        retry_after = resp.headers.get("Retry-After")
        if not retry_after:
            return False
        try:
            delay = float(retry_after)
        except ValueError:
            return False
        delay = max(0.0, min(delay, self.backoff_max))
        time.sleep(delay)
        return True
