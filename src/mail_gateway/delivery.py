# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP delivery client wrapping aiosmtplib.

The client keeps at most one authenticated session open and reuses it while
it is younger than the configured TTL and still answers ``NOOP``. Before each
send it can run a separate verification handshake (connect, login, quit) so
that broken credentials are reported even when a pooled session still works.

Every attempt is single-shot: failures are raised as
:class:`~mail_gateway.errors.DeliveryError` with the transport's diagnostic
text and are never retried here.

TLS behaviour follows the ``secure`` flag:

- ``secure=True``: implicit TLS from the first byte (usually port 465)
- ``secure=False``: plain connection upgraded with STARTTLS when offered

Example::

    client = DeliveryClient(config.smtp)
    receipt = await client.send(message)
    print(receipt.message_id)
    await client.close()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import aiosmtplib

from .composer import new_message_id, to_email_message
from .config import SmtpSettings
from .errors import DeliveryError
from .logger import get_logger
from .models import DeliveryReceipt, OutboundMessage

logger = get_logger("Delivery")


def _smtp_code(exc: Exception) -> int | None:
    if isinstance(exc, aiosmtplib.SMTPResponseException):
        return exc.code
    return getattr(exc, "code", None) if isinstance(exc, aiosmtplib.SMTPException) else None


def as_delivery_error(exc: Exception, settings: SmtpSettings, timeout: float | None = None) -> DeliveryError:
    """Wrap a transport exception, keeping its diagnostic text."""
    if isinstance(exc, DeliveryError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return DeliveryError(f"Timed out after {timeout}s talking to {settings.host}:{settings.port}")
    code = _smtp_code(exc)
    text = getattr(exc, "message", None) if isinstance(exc, aiosmtplib.SMTPException) else None
    text = str(text or exc) or exc.__class__.__name__
    return DeliveryError(f"{text} (SMTP {code})" if code else text, smtp_code=code)


class DeliveryClient:
    """Submits :class:`OutboundMessage` objects to the configured relay.

    Attributes:
        settings: Relay host, credentials, TLS flag and timeouts.
        smtp_factory: Callable building an ``aiosmtplib.SMTP``-like client.
        session: The reusable ``(client, last_used)`` pair, or None.
        lock: Asyncio lock guarding the session.
    """

    def __init__(self, settings: SmtpSettings, smtp_factory: Callable[..., aiosmtplib.SMTP] | None = None):
        self.settings = settings
        self.smtp_factory = smtp_factory
        self.session: tuple[aiosmtplib.SMTP, float] | None = None
        self.lock = asyncio.Lock()

    def _new_client(self) -> aiosmtplib.SMTP:
        factory = self.smtp_factory or aiosmtplib.SMTP
        if self.settings.secure:
            return factory(
                hostname=self.settings.host,
                port=self.settings.port,
                use_tls=True,
                start_tls=False,
                timeout=self.settings.timeout,
            )
        return factory(
            hostname=self.settings.host,
            port=self.settings.port,
            use_tls=False,
            start_tls=None,
            timeout=self.settings.timeout,
        )

    async def _connect(self) -> aiosmtplib.SMTP:
        """Open and authenticate a new session within the connect timeout."""
        if not self.settings.host:
            raise DeliveryError("SMTP host is not configured")
        smtp = self._new_client()

        async def _do_connect():
            await smtp.connect()
            if self.settings.user and self.settings.password:
                await smtp.login(self.settings.user, self.settings.password)

        try:
            await asyncio.wait_for(_do_connect(), timeout=self.settings.timeout)
        except Exception as exc:
            await self._quietly_quit(smtp)
            raise as_delivery_error(exc, self.settings, self.settings.timeout) from exc
        return smtp

    @staticmethod
    async def _quietly_quit(smtp: aiosmtplib.SMTP) -> None:
        try:
            await smtp.quit()
        except Exception:
            logger.debug("Ignoring error while closing SMTP session", exc_info=True)

    async def _is_alive(self, smtp: aiosmtplib.SMTP) -> bool:
        try:
            code, _ = await asyncio.wait_for(smtp.noop(), timeout=5.0)
            return code == 250
        except Exception:
            return False

    async def verify(self) -> None:
        """Connect and authenticate on a throwaway session, then disconnect.

        Raises:
            DeliveryError: Connection, TLS or authentication failed or timed out.
        """
        smtp = await self._connect()
        await self._quietly_quit(smtp)
        logger.debug("SMTP session verified for %s:%s", self.settings.host, self.settings.port)

    async def _acquire(self) -> aiosmtplib.SMTP:
        if self.session is not None:
            smtp, last_used = self.session
            if time.monotonic() - last_used < self.settings.session_ttl and await self._is_alive(smtp):
                return smtp
            self.session = None
            await self._quietly_quit(smtp)
        smtp = await self._connect()
        self.session = (smtp, time.monotonic())
        return smtp

    async def send(self, message: OutboundMessage) -> DeliveryReceipt:
        """Deliver one message.

        Returns:
            The receipt carrying the generated ``Message-ID``.

        Raises:
            DeliveryError: Verification, connection, authentication or
                submission failed, or a timeout expired.
        """
        message_id = new_message_id(message.sender)
        mime = to_email_message(message, message_id)
        if self.settings.verify_before_send:
            await self.verify()

        async with self.lock:
            smtp = await self._acquire()
            try:
                _errors, response = await asyncio.wait_for(
                    smtp.send_message(mime, sender=message.sender, recipients=[message.recipient]),
                    timeout=self.settings.send_timeout,
                )
            except Exception as exc:
                self.session = None
                await self._quietly_quit(smtp)
                error = as_delivery_error(exc, self.settings, self.settings.send_timeout)
                logger.error("Delivery to %s failed: %s", message.recipient, error.diagnostic)
                raise error from exc
            self.session = (smtp, time.monotonic())

        logger.info("Delivered %s to %s", message_id, message.recipient)
        return DeliveryReceipt(message_id=message_id, response=str(response or ""))

    async def close(self) -> None:
        """Close the reusable session, if any."""
        async with self.lock:
            if self.session is not None:
                smtp, _ = self.session
                self.session = None
                await self._quietly_quit(smtp)
