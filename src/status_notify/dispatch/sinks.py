"""Outbound sinks — the mail/webhook collaborator.

Every sink implements ``async send(recipient, subject, body, *, headers=None)``
and raises :class:`DispatchTransportError` on failure. ``headers`` are mail
headers carried with the message, not HTTP headers. Sinks never retry; the
dispatcher bounds each call with its own hard timeout.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Protocol

import httpx

from status_notify.config.settings import MailEngine
from status_notify.errors.pipeline_errors import DispatchTransportError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from status_notify.config.settings import MailConfig

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_MAX_ERROR_BODY = 200


def strip_html(text: str) -> str:
    """Remove markup tags; used for subjects and plain-text bodies."""
    return _TAG_RE.sub("", text).strip()


class MailSink(Protocol):
    """Delivery boundary for rendered external messages."""

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None: ...

    async def close(self) -> None: ...


class LogMailSink:
    """Development sink: logs the message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send(  # noqa: ASYNC910
        self,
        recipient: str,
        subject: str,
        body: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.sent.append((recipient, subject, body))
        logger.info("Mail to %s: %s", recipient, strip_html(subject))

    async def close(self) -> None:  # noqa: ASYNC910
        """Nothing to release."""


class _HTTPSink:
    """Shared lazy ``httpx.AsyncClient`` handling for HTTP sinks."""

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._ensure_connected()

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, creating it on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(
        self,
        recipient: str,
        url: str,
        payload: dict[str, object],
        headers: dict[str, str],
    ) -> httpx.Response:
        client = self._ensure_connected()
        try:
            response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise DispatchTransportError(recipient, str(exc) or type(exc).__name__) from exc
        if response.status_code >= 400:
            detail = f"HTTP {response.status_code}: {response.text[:_MAX_ERROR_BODY]}"
            raise DispatchTransportError(recipient, detail)
        return response


class ResendMailSink(_HTTPSink):
    """Send email through the Resend HTTP API."""

    def __init__(self, config: MailConfig, *, timeout: float = 10.0) -> None:
        super().__init__(timeout)
        self._config = config

    @property
    def sender(self) -> str:
        name = self._config.from_name.strip() or "CAPCo"
        email = self._config.from_email.strip() or "noreply@capcofire.com"
        return f"{name} <{email}>"

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if not self._config.api_key:
            raise DispatchTransportError(recipient, "mail API key not configured")
        payload: dict[str, object] = {
            "from": self.sender,
            "to": recipient,
            "subject": strip_html(subject),
            "html": body,
            "text": strip_html(body),
        }
        if headers:
            payload["headers"] = dict(headers)
        auth = {"Authorization": f"Bearer {self._config.api_key}"}
        response = await self._post(recipient, self._config.api_url, payload, auth)
        logger.debug("Resend accepted mail to %s (%d)", recipient, response.status_code)


class WebhookSink(_HTTPSink):
    """POST the rendered message as JSON to a webhook URL."""

    def __init__(self, config: MailConfig, *, timeout: float = 10.0) -> None:
        super().__init__(timeout)
        self._config = config

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if not self._config.webhook_url:
            raise DispatchTransportError(recipient, "webhook URL not configured")
        payload: dict[str, object] = {"recipient": recipient, "subject": subject, "body": body}
        if headers:
            payload["headers"] = dict(headers)
        token: dict[str, str] = {}
        if self._config.token_header and self._config.token_value:
            token[self._config.token_header] = self._config.token_value
        await self._post(recipient, self._config.webhook_url, payload, token)


def create_sink(config: MailConfig, *, timeout: float = 10.0) -> MailSink:
    """Build the sink selected by ``config.engine``."""
    if config.engine is MailEngine.RESEND:
        return ResendMailSink(config, timeout=timeout)
    if config.engine is MailEngine.WEBHOOK:
        return WebhookSink(config, timeout=timeout)
    return LogMailSink()
