# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Turns validated requests into outbound messages.

Two kinds of message are composed:

- Contact-form messages always go to the configured inbox, reply to the
  visitor and carry both an HTML and a plain-text rendering.
- Generic sends fall back to the configured identity for sender and
  reply-to, and derive a plain-text alternative from HTML bodies with
  :func:`strip_tags`.

:func:`strip_tags` deletes every ``<...>`` token and nothing else. Text that
merely contains angle brackets (``a <b and c> d``) loses the bracketed part.
Callers rely on this exact behaviour, so it is kept as is.
"""

from __future__ import annotations

import html
import re
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from . import __version__
from .config import GatewayConfig
from .errors import ConfigurationError
from .models import ContactSubmission, OutboundMessage, SendEmailRequest
from .templates import (
    CONTACT_SUBJECT_PREFIX,
    render_contact_html,
    render_contact_text,
    render_startup_html,
    render_startup_text,
)

TAG_PATTERN = re.compile(r"<[^>]*>")


def strip_tags(markup: str) -> str:
    """Remove every ``<...>`` token from ``markup``, verbatim."""
    return TAG_PATTERN.sub("", markup)


def _timestamp(now: datetime | None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def compose_contact(
    submission: ContactSubmission,
    config: GatewayConfig,
    now: datetime | None = None,
) -> OutboundMessage:
    """Build the inbox notification for a contact-form submission."""
    if not config.to_email:
        raise ConfigurationError("Default recipient not configured on server")
    if not config.from_email:
        raise ConfigurationError("Default sender not configured on server")
    received = _timestamp(now)
    html_body = render_contact_html(
        name=html.escape(submission.name),
        email=html.escape(submission.email),
        subject=html.escape(submission.subject),
        message=html.escape(submission.message),
        received=received,
    )
    text_body = render_contact_text(
        name=submission.name,
        email=submission.email,
        subject=submission.subject,
        message=submission.message,
        received=received,
    )
    return OutboundMessage(
        recipient=config.to_email,
        subject=f"{CONTACT_SUBJECT_PREFIX}{submission.subject}",
        body=html_body,
        text_body=text_body,
        sender=config.from_email,
        sender_name=config.from_name or None,
        reply_to=submission.email,
        is_html=True,
    )


def compose_generic(request: SendEmailRequest, config: GatewayConfig) -> OutboundMessage:
    """Build a message for the generic send route.

    Sender falls back to the configured address. The display name is only
    the one supplied by the caller. Reply-to falls back to the sender the
    caller supplied, then to the configured address.
    """
    sender = request.from_email or config.from_email
    if not sender:
        raise ConfigurationError("Default sender not configured on server")
    return OutboundMessage(
        recipient=request.to,
        subject=request.subject,
        body=request.content,
        text_body=strip_tags(request.content) if request.is_html else None,
        sender=sender,
        sender_name=request.from_name,
        reply_to=request.reply_to or request.from_email or config.from_email,
        is_html=request.is_html,
    )


def compose_startup_notification(config: GatewayConfig, now: datetime | None = None) -> OutboundMessage:
    """Build the service-online notification sent to the default recipient."""
    if not config.to_email or not config.from_email:
        raise ConfigurationError("Default sender and recipient must be configured on server")
    fields = {
        "started": _timestamp(now),
        "environment": config.environment.upper(),
        "smtp_host": config.smtp.host,
        "smtp_port": str(config.smtp.port),
        "from_email": config.from_email,
        "to_email": config.to_email,
        "version": __version__,
    }
    display = f"{config.from_name} - API Server" if config.from_name else "API Server"
    return OutboundMessage(
        recipient=config.to_email,
        subject=f"Email API Server Started - {fields['environment']} ({fields['started']})",
        body=render_startup_html(**{k: html.escape(v) for k, v in fields.items()}),
        text_body=render_startup_text(**fields),
        sender=config.from_email,
        sender_name=display,
        is_html=True,
    )


def new_message_id(sender: str) -> str:
    """Generate a ``Message-ID`` in the sender's domain."""
    domain = sender.rpartition("@")[2] or None
    return make_msgid(domain=domain)


def to_email_message(message: OutboundMessage, message_id: str | None = None) -> EmailMessage:
    """Render an :class:`OutboundMessage` as a MIME message.

    HTML bodies with a text alternative become ``multipart/alternative`` with
    the plain part first.
    """
    msg = EmailMessage()
    if message.sender_name:
        msg["From"] = formataddr((message.sender_name, message.sender))
    else:
        msg["From"] = message.sender
    msg["To"] = message.recipient
    msg["Subject"] = message.subject
    if message.reply_to:
        msg["Reply-To"] = message.reply_to
    msg["Message-ID"] = message_id or new_message_id(message.sender)

    if message.is_html:
        if message.text_body is not None:
            msg.set_content(message.text_body)
            msg.add_alternative(message.body, subtype="html")
        else:
            msg.set_content(message.body, subtype="html")
    else:
        msg.set_content(message.body)
    return msg

