"""Provider directory and external-id resolution."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from . import config
from .errors import TransportError, UnresolvedProvider
from .http import HttpClient
from .models import Provider, parse_provider

logger = logging.getLogger(__name__)


class ProviderIdCache:
    """External -> internal provider ids for the life of the process.

    Append-only: mappings are never evicted and failed lookups are not stored.
    """

    def __init__(self) -> None:
        self._ids: Dict[str, str] = {}

    def get(self, external_id: str) -> Optional[str]:
        return self._ids.get(external_id)

    def put(self, external_id: str, internal_id: str) -> None:
        self._ids.setdefault(external_id, internal_id)

    def __contains__(self, external_id: object) -> bool:
        return external_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


def extract_employee_id(data: Any) -> Optional[str]:
    record = data[0] if isinstance(data, list) and data else data
    if not isinstance(record, dict):
        return None
    if record.get("id") is not None:
        return str(record["id"])
    employee = record.get("employee")
    if isinstance(employee, dict) and employee.get("id") is not None:
        return str(employee["id"])
    return None


class ProviderDirectory:
    def __init__(self, http_client: HttpClient, cache: Optional[ProviderIdCache] = None) -> None:
        self.http = http_client
        self.cache = cache if cache is not None else ProviderIdCache()
        self._providers: Optional[List[Provider]] = None

    def list_primary(self, refresh: bool = False) -> List[Provider]:
        if self._providers is None or refresh:
            data = self.http.get_json(config.PRIMARY_PROVIDERS_PATH, error_message="Failed to load providers")
            if isinstance(data, dict):
                data = data.get("data") or []
            rows = data if isinstance(data, list) else []
            providers = [parse_provider(r) for r in rows if isinstance(r, dict)]
            self._providers = [p for p in providers if p is not None]
            logger.info("Loaded %s primary providers", len(self._providers))
        return list(self._providers)

    def search(self, query: str) -> List[Provider]:
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [p for p in self.list_primary() if needle in p.name.lower()]

    def find_by_external_id(self, external_id: str) -> Optional[Provider]:
        if self._providers is None:
            return None
        for provider in self._providers:
            if provider.lookup_id == external_id:
                return provider
        return None

    def resolve_internal_id(self, external_id: str) -> str:
        cached = self.cache.get(external_id)
        if cached is not None:
            return cached

        path = config.EMPLOYEE_EXTERNAL_PATH.format(external_id=quote(external_id, safe=""))
        try:
            data = self.http.get_json(path, error_message="Unknown error", retry=False)
        except TransportError as exc:
            raise UnresolvedProvider(f"Could not resolve doctor ID: {exc.message}") from exc

        internal_id = extract_employee_id(data)
        if not internal_id:
            raise UnresolvedProvider("Could not resolve doctor ID")
        self.cache.put(external_id, internal_id)
        logger.debug("Resolved provider %s -> %s", external_id, internal_id)
        return internal_id
