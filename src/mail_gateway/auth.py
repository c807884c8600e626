# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""API key authentication for protected gateway routes.

The caller key is looked up in a fixed order: the ``X-API-Key`` header, then
the ``apiKey`` field of a JSON object body, then the ``apiKey`` query
parameter. The first non-empty value found is the one compared, so a correct
header is never overridden by a stale body field.
"""

from __future__ import annotations

import hmac
from collections.abc import Mapping
from typing import Any

from .errors import ConfigurationError, InvalidApiKeyError, MissingApiKeyError
from .logger import fingerprint, get_logger

API_KEY_HEADER_NAME = "X-API-Key"
API_KEY_FIELD = "apiKey"

logger = get_logger("Authenticator")


def extract_api_key(
    headers: Mapping[str, str],
    body: Any = None,
    query: Mapping[str, str] | None = None,
) -> str | None:
    """Return the caller-supplied key following header > body > query."""
    candidates = [headers.get(API_KEY_HEADER_NAME)]
    if isinstance(body, Mapping):
        candidates.append(body.get(API_KEY_FIELD))
    if query is not None:
        candidates.append(query.get(API_KEY_FIELD))
    for value in candidates:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class Authenticator:
    """Compares caller keys with the configured secret.

    Attributes:
        api_key: The configured secret, or None when the gateway has none.
    """

    def __init__(self, api_key: str | None):
        self.api_key = api_key

    def authenticate(self, supplied: str | None) -> None:
        """Accept the request or raise the matching auth error.

        Raises:
            ConfigurationError: The gateway has no key configured.
            MissingApiKeyError: ``supplied`` is empty.
            InvalidApiKeyError: ``supplied`` differs from the secret.
        """
        if not self.api_key:
            logger.error("Rejecting protected request: no API key configured")
            raise ConfigurationError("API key not configured on server")
        if not supplied:
            raise MissingApiKeyError()
        if not hmac.compare_digest(supplied.encode("utf-8"), self.api_key.encode("utf-8")):
            logger.warning("Invalid API key presented (fingerprint %s)", fingerprint(supplied))
            raise InvalidApiKeyError()
