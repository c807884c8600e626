# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Payload validation shared by the contact-form and generic-send routes.

Validation runs before any message is composed, so a rejected payload never
reaches the transport.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import ContactSubmission, SendEmailRequest, SmtpTestRequest

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LINE_BREAKS = re.compile(r"[\r\n]")

CONTACT_FIELDS = ("name", "email", "subject", "message")
SEND_FIELDS = ("to", "subject", "content")
SMTP_TEST_FIELDS = ("host", "port", "user", "pass")


def is_valid_email(value: Any) -> bool:
    """Return True for ``local@domain.tld`` shaped strings without whitespace."""
    return isinstance(value, str) and EMAIL_PATTERN.match(value) is not None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_fields(payload: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    """List the required keys that are absent or blank, in declaration order."""
    return [name for name in required if _is_blank(payload.get(name))]


def _require(payload: Mapping[str, Any], required: tuple[str, ...]) -> None:
    missing = missing_fields(payload, required)
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(required)}",
            details={"missing": missing},
        )


def _require_addresses(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    invalid = [name for name in fields if not _is_blank(payload.get(name)) and not is_valid_email(str(payload[name]).strip())]
    if invalid:
        raise ValidationError("Invalid email address", details={"invalid": invalid})


def _reject_line_breaks(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Refuse CR/LF in values that end up in message headers."""
    invalid = [name for name in fields if isinstance(payload.get(name), str) and LINE_BREAKS.search(payload[name])]
    if invalid:
        raise ValidationError("Header fields may not contain line breaks", details={"invalid": invalid})


def _build(model: type, data: dict[str, Any]):
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ValidationError(f"Invalid fields: {', '.join(fields)}", details={"invalid": fields}) from exc


def validate_contact(payload: Mapping[str, Any]) -> ContactSubmission:
    """Check a contact-form payload and return the typed submission.

    Raises:
        ValidationError: A field is missing or blank, ``email`` is malformed, or
            ``name`` or ``subject`` spans several lines.
    """
    _require(payload, CONTACT_FIELDS)
    _require_addresses(payload, ("email",))
    _reject_line_breaks(payload, ("name", "subject"))
    data = {name: payload[name] for name in CONTACT_FIELDS}
    data["email"] = str(data["email"]).strip()
    return _build(ContactSubmission, data)


def validate_send(payload: Mapping[str, Any]) -> SendEmailRequest:
    """Check a generic send payload and return the typed request.

    ``from`` and ``replyTo`` are optional but must be well formed when given.

    Raises:
        ValidationError: A field is missing or blank, or an address is malformed.
            Also raised when ``subject`` or ``fromName`` contains a line break.
    """
    _require(payload, SEND_FIELDS)
    _require_addresses(payload, ("to", "from", "replyTo"))
    _reject_line_breaks(payload, ("subject", "fromName"))
    data = {key: value for key, value in payload.items() if key != "apiKey"}
    for key in ("to", "from", "replyTo", "fromName"):
        if isinstance(data.get(key), str):
            data[key] = data[key].strip() or None
    if data.get("isHtml") is None:
        data.pop("isHtml", None)
    return _build(SendEmailRequest, data)


def validate_smtp_test(payload: Mapping[str, Any]) -> SmtpTestRequest:
    """Check an SMTP verification payload.

    Raises:
        ValidationError: A field is missing or the port is not a valid number.
    """
    _require(payload, SMTP_TEST_FIELDS)
    data = {key: payload.get(key) for key in ("host", "port", "user", "pass")}
    data["secure"] = payload.get("secure") or False
    return _build(SmtpTestRequest, data)
