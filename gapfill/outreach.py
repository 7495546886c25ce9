"""Outreach confirmation flow.

A text to a client is only sent after the composed message has been shown for
review. The flow for the focused candidate is::

    CLOSED -> PREVIEWING -> SENDING -> CLOSED      (sent)
                                    -> PREVIEWING  (failed, edits kept)

Outcomes are tracked per client id in a ``SendStatusTable`` so a second
candidate can be reviewed while an earlier send is still resolving.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from . import config
from .composer import compose_message
from .errors import ConcurrencyGuardError, OverrideNotAllowedError, TransportError
from .http import HttpClient
from .models import Candidate

logger = logging.getLogger(__name__)

SEND_ERROR_MESSAGE = "Failed to send text message"


class DeploymentMode(enum.Enum):
    PRODUCTION = "production"
    NON_PRODUCTION = "non_production"

    @property
    def override_available(self) -> bool:
        return self is DeploymentMode.NON_PRODUCTION


def determine_deployment_mode(
    force_production: Optional[bool] = None,
    build_mode: Optional[str] = None,
) -> DeploymentMode:
    """Production iff explicitly forced or the build mode is exactly "production"."""
    if force_production is None:
        force_production = config.FORCE_PRODUCTION
    if build_mode is None:
        build_mode = config.BUILD_MODE
    if force_production is True or build_mode == "production":
        return DeploymentMode.PRODUCTION
    return DeploymentMode.NON_PRODUCTION


class SmsClient:
    def __init__(self, http_client: HttpClient) -> None:
        self.http = http_client

    def send(self, client_id: str, message: str, override_non_prod: bool = False) -> None:
        body: Dict[str, object] = {"message": message}
        if override_non_prod:
            body["overrideNonProd"] = True
        path = config.SMS_CLIENT_PATH.format(client_id=client_id)
        self.http.post_json(path, body, error_message=SEND_ERROR_MESSAGE)


@dataclass(frozen=True)
class SendStatus:
    in_flight: bool = False
    error: Optional[str] = None
    succeeded: bool = False


@dataclass
class _StatusEntry:
    in_flight: bool = False
    error: Optional[str] = None
    succeeded_until: Optional[float] = None


class SendStatusTable:
    """Per-client send status; success flags expire after a display window."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        success_display_seconds: float = config.SUCCESS_DISPLAY_SECONDS,
    ) -> None:
        self.clock = clock
        self.success_display_seconds = success_display_seconds
        self._entries: Dict[str, _StatusEntry] = {}

    def get(self, client_id: str) -> SendStatus:
        entry = self._entries.get(client_id)
        if entry is None:
            return SendStatus()
        self._expire(client_id, entry)
        return SendStatus(
            in_flight=entry.in_flight,
            error=entry.error,
            succeeded=entry.succeeded_until is not None,
        )

    def is_in_flight(self, client_id: str) -> bool:
        entry = self._entries.get(client_id)
        return bool(entry and entry.in_flight)

    def begin(self, client_id: str) -> None:
        entry = self._entries.setdefault(client_id, _StatusEntry())
        if entry.in_flight:
            raise ConcurrencyGuardError(client_id)
        entry.in_flight = True
        entry.error = None
        entry.succeeded_until = None

    def succeed(self, client_id: str) -> None:
        entry = self._entries.setdefault(client_id, _StatusEntry())
        entry.in_flight = False
        entry.error = None
        entry.succeeded_until = self.clock() + self.success_display_seconds

    def fail(self, client_id: str, message: str) -> None:
        entry = self._entries.setdefault(client_id, _StatusEntry())
        entry.in_flight = False
        entry.error = message
        entry.succeeded_until = None

    def clear_error(self, client_id: str) -> None:
        entry = self._entries.get(client_id)
        if entry is not None:
            entry.error = None
            self._drop_if_idle(client_id, entry)

    def clear_result(self, client_id: str) -> None:
        entry = self._entries.get(client_id)
        if entry is not None:
            entry.error = None
            entry.succeeded_until = None
            self._drop_if_idle(client_id, entry)

    def expire(self) -> None:
        for client_id, entry in list(self._entries.items()):
            self._expire(client_id, entry)

    def _expire(self, client_id: str, entry: _StatusEntry) -> None:
        if entry.succeeded_until is not None and self.clock() >= entry.succeeded_until:
            entry.succeeded_until = None
            self._drop_if_idle(client_id, entry)

    def _drop_if_idle(self, client_id: str, entry: _StatusEntry) -> None:
        if not entry.in_flight and entry.error is None and entry.succeeded_until is None:
            self._entries.pop(client_id, None)

    def __len__(self) -> int:
        self.expire()
        return len(self._entries)


class ConfirmationState(enum.Enum):
    CLOSED = "closed"
    PREVIEWING = "previewing"
    SENDING = "sending"


@dataclass(frozen=True)
class PendingSend:
    client_id: str
    message: str
    override: bool


@dataclass
class _Confirmation:
    candidate: Candidate
    message: str
    override: bool
    pending: Optional[PendingSend] = None


class OutreachConfirmation:
    def __init__(
        self,
        transport: SmsClient,
        mode: DeploymentMode,
        status: Optional[SendStatusTable] = None,
        compose: Callable[[Candidate], str] = compose_message,
    ) -> None:
        self.transport = transport
        self.mode = mode
        self.status = status if status is not None else SendStatusTable()
        self.compose = compose
        self._active: Optional[_Confirmation] = None

    @property
    def state(self) -> ConfirmationState:
        if self._active is None:
            return ConfirmationState.CLOSED
        if self._active.pending is not None:
            return ConfirmationState.SENDING
        return ConfirmationState.PREVIEWING

    @property
    def candidate(self) -> Optional[Candidate]:
        return self._active.candidate if self._active else None

    @property
    def message(self) -> str:
        return self._active.message if self._active else ""

    @property
    def override(self) -> bool:
        return bool(self._active and self._active.override)

    @property
    def override_available(self) -> bool:
        return self.mode.override_available

    @property
    def can_confirm(self) -> bool:
        if self.state is not ConfirmationState.PREVIEWING:
            return False
        return not self.status.is_in_flight(self._active.candidate.client_id)

    def open(self, candidate: Candidate, override: bool = False) -> str:
        if override and not self.mode.override_available:
            raise OverrideNotAllowedError("Non-production override requested in production")
        if self._active is not None and self._active.pending is not None:
            logger.debug(
                "Detaching in-flight send for client %s", self._active.pending.client_id
            )
        message = self.compose(candidate)
        self.status.clear_result(candidate.client_id)
        self._active = _Confirmation(candidate=candidate, message=message, override=bool(override))
        logger.info("Opened outreach confirmation for client %s", candidate.client_id)
        return message

    def edit(self, text: str) -> None:
        if self.state is not ConfirmationState.PREVIEWING:
            return
        self._active.message = text if text is not None else ""

    def cancel(self) -> None:
        if self.state is not ConfirmationState.PREVIEWING:
            return
        logger.info("Cancelled outreach confirmation for client %s", self._active.candidate.client_id)
        self._active = None

    def dismiss_error(self, client_id: str) -> None:
        self.status.clear_error(client_id)

    def begin_send(self) -> Optional[PendingSend]:
        if self.state is not ConfirmationState.PREVIEWING:
            return None
        active = self._active
        client_id = active.candidate.client_id
        try:
            self.status.begin(client_id)
        except ConcurrencyGuardError:
            logger.debug("Send already in flight for client %s", client_id)
            return None
        active.pending = PendingSend(client_id=client_id, message=active.message, override=active.override)
        return active.pending

    def finish_send(self, pending: PendingSend, error: Optional[str] = None) -> None:
        if error is None:
            self.status.succeed(pending.client_id)
            logger.info("Text message sent to client %s", pending.client_id)
        else:
            self.status.fail(pending.client_id, error)
            logger.warning("Text message to client %s failed: %s", pending.client_id, error)

        active = self._active
        if active is None or active.pending is not pending:
            return
        if error is None:
            self._active = None
        else:
            active.pending = None

    def confirm(self) -> Optional[bool]:
        """Send the buffered message; None when no send was issued."""
        pending = self.begin_send()
        if pending is None:
            return None
        try:
            self.transport.send(pending.client_id, pending.message, override_non_prod=pending.override)
        except TransportError as exc:
            self.finish_send(pending, exc.message or SEND_ERROR_MESSAGE)
            return False
        except Exception:
            self.finish_send(pending, SEND_ERROR_MESSAGE)
            raise
        self.finish_send(pending)
        return True
