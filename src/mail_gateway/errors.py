# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Error taxonomy shared by the gateway components.

Each error carries the HTTP status it maps to, the public message returned to
callers and optional details. The API layer turns any :class:`GatewayError`
into a ``{"success": false, "error": ..., "details": ...}`` body.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base class for failures that terminate a gateway request."""

    status_code = 500
    code = "gateway_error"

    def __init__(
        self,
        message: str,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.headers = headers or {}

    def to_payload(self, include_details: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "error": self.message}
        if include_details and self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(GatewayError):
    """A required field is missing/blank or an address is malformed."""

    status_code = 400
    code = "validation_error"


class AuthError(GatewayError):
    status_code = 401
    code = "auth_error"


class MissingApiKeyError(AuthError):
    """No API key was supplied."""

    status_code = 401
    code = "missing_api_key"

    def __init__(self, message: str = "API key is required"):
        super().__init__(message)


class InvalidApiKeyError(AuthError):
    """An API key was supplied but does not match the configured secret."""

    status_code = 403
    code = "invalid_api_key"

    def __init__(self, message: str = "Invalid API key"):
        super().__init__(message)


class FeatureDisabledError(GatewayError):
    """The route exists but is switched off by configuration."""

    status_code = 403
    code = "feature_disabled"


class RateLimitError(GatewayError):
    """The caller exhausted its request window."""

    status_code = 429
    code = "rate_limited"

    def __init__(self, retry_after: int, window_seconds: int):
        super().__init__(
            "Too many email requests, please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after
        self.window_seconds = window_seconds

    def to_payload(self, include_details: bool = True) -> dict[str, Any]:
        payload = super().to_payload(include_details)
        payload["retryAfter"] = describe_window(self.window_seconds)
        return payload


class DeliveryError(GatewayError):
    """The SMTP transport refused, failed or timed out.

    ``diagnostic`` holds the transport's own error text.
    """

    status_code = 500
    code = "delivery_error"

    def __init__(self, diagnostic: str, smtp_code: int | None = None, message: str = "Failed to send email"):
        super().__init__(message, details=diagnostic)
        self.diagnostic = diagnostic
        self.smtp_code = smtp_code


class ConfigurationError(GatewayError):
    """The gateway is missing configuration required to serve the request."""

    status_code = 500
    code = "configuration_error"


def describe_window(seconds: int) -> str:
    """Render a window length the way the rate-limit body reports it."""
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} seconds"
