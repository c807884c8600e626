# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Python client for a running mail gateway.

Usage in REPL:
    >>> from mail_gateway.client import EmailDraft, GatewayClient
    >>> gateway = GatewayClient("http://localhost:8000", api_key="secret")
    >>> gateway.health().ok
    True
    >>> gateway.send_email(EmailDraft(to="someone@example.com", subject="Hi", content="<p>Hello</p>"))
    <GatewayResponse 200 success=True>

Error statuses are not raised: every reply is returned as a
:class:`GatewayResponse` so callers can show the gateway's own message.
Only network failures propagate, as :class:`requests.RequestException`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import requests

from .auth import API_KEY_HEADER_NAME
from .local_store import ClientConfig, SmtpPreset


@dataclass
class EmailDraft:
    """A message about to be handed to ``POST /api/send-email``.

    Attributes:
        to: Recipient address.
        subject: Subject line.
        content: Body, HTML unless ``is_html`` is False.
        from_email: Sender; the gateway default is used when empty.
        from_name: Display name for the sender.
        reply_to: Reply-To address.
        is_html: Whether ``content`` is HTML.
    """

    to: str
    subject: str
    content: str
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None
    is_html: bool = True

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "to": self.to,
            "subject": self.subject,
            "content": self.content,
            "isHtml": self.is_html,
        }
        if self.from_email:
            payload["from"] = self.from_email
        if self.from_name:
            payload["fromName"] = self.from_name
        if self.reply_to:
            payload["replyTo"] = self.reply_to
        return payload

    def for_recipient(self, address: str) -> "EmailDraft":
        return EmailDraft(
            to=address,
            subject=self.subject,
            content=self.content,
            from_email=self.from_email,
            from_name=self.from_name,
            reply_to=self.reply_to,
            is_html=self.is_html,
        )


@dataclass
class GatewayResponse:
    """Status code and decoded JSON body of one gateway reply."""

    status_code: int
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and bool(self.data.get("success"))

    @property
    def message(self) -> str:
        return str(self.data.get("message") or "")

    @property
    def error(self) -> str:
        return str(self.data.get("error") or "Unknown error")

    @property
    def details(self) -> str | None:
        details = self.data.get("details")
        return None if details is None else str(details)

    @property
    def message_id(self) -> str | None:
        return self.data.get("messageId")

    @classmethod
    def from_http(cls, resp: requests.Response) -> "GatewayResponse":
        try:
            data = resp.json()
        except ValueError:
            data = {"success": False, "error": resp.text or resp.reason or "Invalid response"}
        if not isinstance(data, dict):
            data = {"success": False, "error": "Invalid response"}
        return cls(status_code=resp.status_code, data=data)

    def __repr__(self) -> str:
        return f"<GatewayResponse {self.status_code} success={self.ok}>"


class GatewayClient:
    """Client for the gateway's HTTP routes.

    Attributes:
        url: Base URL of the gateway.
        api_key: Key sent in the ``X-API-Key`` header, when set.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        url: str = "http://localhost:8000",
        api_key: str | None = None,
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http = session or requests.Session()

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> "GatewayClient":
        return cls(config.api_endpoint, api_key=config.api_key or None, **kwargs)

    def _headers(self, with_key: bool = True) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if with_key and self.api_key:
            headers[API_KEY_HEADER_NAME] = self.api_key
        return headers

    def _call(self, method: Callable[..., requests.Response], path: str, **kwargs: Any) -> GatewayResponse:
        resp = method(f"{self.url}{path}", timeout=self.timeout, **kwargs)
        return GatewayResponse.from_http(resp)

    def _get(self, path: str) -> GatewayResponse:
        return self._call(self._http.get, path, headers=self._headers())

    def _post(self, path: str, data: dict[str, Any] | None = None, with_key: bool = True) -> GatewayResponse:
        return self._call(self._http.post, path, headers=self._headers(with_key), json=data or {})

    def info(self) -> GatewayResponse:
        """Service banner with version, environment and feature list."""
        return self._get("/")

    def health(self) -> GatewayResponse:
        return self._get("/health")

    def send_email(self, draft: EmailDraft) -> GatewayResponse:
        return self._post("/api/send-email", draft.to_payload())

    def contact_form(self, name: str, email: str, subject: str, message: str) -> GatewayResponse:
        return self._post(
            "/api/contact-form",
            {"name": name, "email": email, "subject": subject, "message": message},
        )

    def test_smtp(self, settings: SmtpPreset) -> GatewayResponse:
        """Ask the gateway to verify SMTP credentials without sending.

        The route takes no API key.
        """
        return self._post("/api/test-smtp", settings.to_request(), with_key=False)

    def test_email(self) -> GatewayResponse:
        return self._post("/api/test-email")

    def close(self) -> None:
        self._http.close()

    def __repr__(self) -> str:
        return f"<GatewayClient {self.url}>"
