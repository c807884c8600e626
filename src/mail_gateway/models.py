# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for gateway requests and composed messages.

Models:
    - ContactSubmission: Contact-form payload
    - SendEmailRequest: Generic send payload
    - SmtpTestRequest: Credentials to verify without sending
    - OutboundMessage: A composed message ready for the transport
    - DeliveryReceipt: Transport acknowledgement for one message

Request models accept the camelCase field names used on the wire
(``fromName``, ``replyTo``, ``isHtml``, ``pass``) and also the Python names.
Field presence and address syntax are checked by
:mod:`mail_gateway.validation` before these models are built.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class ContactSubmission(BaseModel):
    """A visitor's contact-form message.

    Attributes:
        name: Visitor name.
        email: Visitor address, used as reply-to.
        subject: Visitor-supplied subject.
        message: Free-form message text.
    """

    name: str
    email: str
    subject: str
    message: str


class SendEmailRequest(BaseModel):
    """Generic send request addressed to a single recipient."""

    model_config = ConfigDict(populate_by_name=True)

    to: str
    subject: str
    content: str
    from_email: Annotated[
        str | None,
        Field(default=None, alias="from", description="Sender address (defaults to the configured identity)")
    ]
    from_name: Annotated[
        str | None,
        Field(default=None, alias="fromName", description="Sender display name")
    ]
    reply_to: Annotated[
        str | None,
        Field(default=None, alias="replyTo", description="Reply-To address")
    ]
    is_html: Annotated[
        bool,
        Field(default=True, alias="isHtml", description="Treat content as HTML")
    ]


class SmtpTestRequest(BaseModel):
    """SMTP credentials supplied by an operator for a connectivity check."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    host: str
    port: Annotated[int, Field(ge=1, le=65535)]
    secure: bool = False
    user: str
    password: Annotated[str, Field(alias="pass")]


class OutboundMessage(BaseModel):
    """A composed message handed to the delivery client.

    Attributes:
        recipient: Single destination address.
        subject: Final subject line.
        body: Primary body, HTML when ``is_html`` is set.
        text_body: Plain-text alternative sent alongside an HTML body.
        sender: Envelope and header sender address.
        sender_name: Display name for the From header.
        reply_to: Reply-To address.
        is_html: Whether ``body`` is HTML.
    """

    model_config = ConfigDict(frozen=True)

    recipient: str
    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)
    text_body: str | None = None
    sender: str
    sender_name: str | None = None
    reply_to: str | None = None
    is_html: bool = False


class DeliveryReceipt(BaseModel):
    """What the transport returned for a delivered message."""

    message_id: str
    response: str = ""
