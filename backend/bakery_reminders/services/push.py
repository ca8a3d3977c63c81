"""
Send push notifications via the Expo push service (HTTP POST, JSON).
Endpoint from PUSH_ENDPOINT; PUSH_ACCESS_TOKEN is only needed when enhanced push security is enabled.

Single attempt per call, client-side timeout, no retry: the dispatcher owns retries through attempt_count.
Transport failures, HTTP error statuses and per-message provider errors all surface as PushDeliveryError.
"""
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from bakery_reminders.config import settings
from bakery_reminders.core.constants import PUSH_BULK_CHUNK_SIZE
from bakery_reminders.core.errors import InvalidToken, PushDeliveryError

logger = logging.getLogger(__name__)

# Expo token formats: ExponentPushToken[xxxx] (current) and ExpoPushToken[xxxx] (older SDKs)
TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


@dataclass
class PushMessage:
    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    priority: str = "high"
    sound: str | None = "default"
    badge: int | None = None

    def to_wire(self) -> dict[str, Any]:
        msg: dict[str, Any] = {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data or {},
            "priority": self.priority,
        }
        if self.sound:
            msg["sound"] = self.sound
        if self.badge is not None:
            msg["badge"] = self.badge
        return msg


@dataclass
class PushTicket:
    """Provider's per-message answer: status 'ok' or 'error' with a message."""

    to: str
    status: str
    message: str | None = None
    id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def is_valid_token(token: str | None) -> bool:
    token = (token or "").strip()
    if not token.startswith(TOKEN_PREFIXES) or not token.endswith("]"):
        return False
    return bool(token[token.index("[") + 1:-1])


class PushGatewayClient:
    """Thin, stateless wrapper around the push endpoint."""

    def __init__(
        self,
        endpoint: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.endpoint = endpoint or settings.push_endpoint
        self.access_token = access_token if access_token is not None else settings.push_access_token
        self.timeout = timeout if timeout is not None else settings.push_timeout_seconds
        self._transport = transport  # tests inject httpx.MockTransport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _post(self, payload: Any) -> dict[str, Any]:
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.endpoint, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise PushDeliveryError(f"Push request failed: {e}") from e
        if resp.status_code >= 400:
            raise PushDeliveryError(f"Push gateway returned {resp.status_code}: {resp.text[:200]}")
        try:
            body = resp.json()
        except ValueError as e:
            raise PushDeliveryError(f"Push gateway returned non-JSON body: {resp.text[:200]}") from e
        if not isinstance(body, dict):
            raise PushDeliveryError(f"Unexpected push gateway response: {body!r}")
        if body.get("errors") and not body.get("data"):
            raise PushDeliveryError(f"Push gateway request error: {body['errors']}")
        return body

    def send(self, message: PushMessage) -> dict[str, Any]:
        """
        Send one notification. Returns the provider response.
        Raises InvalidToken for a malformed token (no network call) and PushDeliveryError on any failure.
        """
        if not is_valid_token(message.to):
            raise InvalidToken(message.to)
        body = self._post(message.to_wire())
        data = body.get("data")
        ticket = data[0] if isinstance(data, list) and data else data
        if isinstance(ticket, dict) and ticket.get("status") == "error":
            raise PushDeliveryError(ticket.get("message") or "Push provider reported an error")
        logger.info("Push sent to %s...: %s", message.to[:24], message.title)
        return body

    def send_bulk(self, messages: list[PushMessage]) -> list[PushTicket]:
        """
        Send many notifications, PUSH_BULK_CHUNK_SIZE per request. Returns one ticket per message in order.
        Malformed tokens get a local error ticket and are never sent; provider per-message errors are
        returned as tickets. A transport failure raises PushDeliveryError.
        """
        tickets: list[PushTicket | None] = [None] * len(messages)
        valid: list[tuple[int, PushMessage]] = []
        for i, m in enumerate(messages):
            if is_valid_token(m.to):
                valid.append((i, m))
            else:
                tickets[i] = PushTicket(to=m.to, status="error", message="Invalid push token format")

        for start in range(0, len(valid), PUSH_BULK_CHUNK_SIZE):
            chunk = valid[start:start + PUSH_BULK_CHUNK_SIZE]
            body = self._post([m.to_wire() for _, m in chunk])
            data = body.get("data") or []
            if not isinstance(data, list):
                data = [data]
            for pos, (i, m) in enumerate(chunk):
                raw = data[pos] if pos < len(data) and isinstance(data[pos], dict) else {}
                tickets[i] = PushTicket(
                    to=m.to,
                    status=raw.get("status") or "error",
                    message=raw.get("message") if raw else "Missing ticket in provider response",
                    id=raw.get("id"),
                )

        result = [t for t in tickets if t is not None]
        failed = sum(1 for t in result if not t.ok)
        logger.info("Sent %s push notifications (%s failed)", len(result) - failed, failed)
        return result
