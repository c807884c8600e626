# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Process configuration for the mail gateway.

Configuration is read once at startup from an INI file (default
``config.ini``) with ``MGW_*`` environment variables as fallbacks, and frozen
into a :class:`GatewayConfig` that is passed to every component.

Example:
    Configuration file format (config.ini)::

        [server]
        host = 0.0.0.0
        port = 8000
        api_key = change-me
        environment = production
        cors_origins = https://example.com, http://localhost:5173
        allow_smtp_test = false

        [smtp]
        host = smtp.example.com
        port = 587
        secure = false
        user = mailer@example.com
        password = secret

        [identity]
        from_email = mailer@example.com
        from_name = Example Site
        to_email = inbox@example.com

        [rate_limit]
        enabled = true
        max_requests = 5
        window_seconds = 900

    Environment variables:
      MGW_CONFIG - Path to config.ini (default: config.ini)
      MGW_LOG_LEVEL - Logging level (default: INFO)
      MGW_HOST, MGW_PORT - Bind address (default: 0.0.0.0:8000)
      MGW_API_KEY - Shared secret required on protected routes
      MGW_ENVIRONMENT - development or production (default: development)
      MGW_CORS_ORIGINS - Comma separated allowed origins (default: *)
      MGW_TRUST_PROXY - Take the caller address from X-Forwarded-For (default: false)
      MGW_ALLOW_SMTP_TEST - Serve /api/test-smtp (default: on outside production)
      MGW_SMTP_HOST, MGW_SMTP_PORT, MGW_SMTP_SECURE, MGW_SMTP_USER, MGW_SMTP_PASSWORD
      MGW_SMTP_TIMEOUT, MGW_SMTP_SEND_TIMEOUT, MGW_SMTP_VERIFY_BEFORE_SEND, MGW_SMTP_SESSION_TTL
      MGW_FROM_EMAIL, MGW_FROM_NAME, MGW_TO_EMAIL
      MGW_RATE_LIMIT_ENABLED, MGW_RATE_LIMIT_MAX_REQUESTS, MGW_RATE_LIMIT_WINDOW_SECONDS
      MGW_STARTUP_EMAIL - Send the service-online notification at startup
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .logger import get_logger

logger = get_logger("GatewayConfig")

PRODUCTION = "production"
DEVELOPMENT = "development"


@dataclass(frozen=True)
class SmtpSettings:
    """Connection settings for the SMTP relay.

    Attributes:
        host: Relay hostname.
        port: Relay port (465 implies implicit TLS when ``secure`` is set).
        secure: Open the connection over TLS instead of upgrading with STARTTLS.
        user: Login name, or None for an unauthenticated relay.
        password: Login password.
        timeout: Bound in seconds for connect, login and verification.
        send_timeout: Bound in seconds for submitting one message.
        verify_before_send: Run a connectivity+auth handshake before each send.
        session_ttl: Seconds a reusable session may stay open.
    """

    host: str = ""
    port: int = 587
    secure: bool = False
    user: str | None = None
    password: str | None = None
    timeout: float = 15.0
    send_timeout: float = 30.0
    verify_before_send: bool = True
    session_ttl: int = 300

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)


@dataclass(frozen=True)
class RateLimitPolicy:
    enabled: bool = True
    max_requests: int = 5
    window_seconds: int = 15 * 60


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable gateway configuration built once per process."""

    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    rate_limit: RateLimitPolicy = field(default_factory=RateLimitPolicy)
    api_key: str | None = None
    from_email: str = ""
    from_name: str = ""
    to_email: str = ""
    environment: str = DEVELOPMENT
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: tuple[str, ...] = ("*",)
    trust_proxy: bool = False
    startup_email: bool = False
    allow_smtp_test: bool | None = None

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION

    @property
    def smtp_test_enabled(self) -> bool:
        """/api/test-smtp is served unless disabled; unset means off in production."""
        if self.allow_smtp_test is None:
            return not self.is_production
        return self.allow_smtp_test

    @property
    def expose_error_details(self) -> bool:
        """Upstream diagnostics are returned to callers outside production."""
        return not self.is_production


def _parse_bool(value: str | None, default: bool | None) -> bool | None:
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def load_config(
    config_path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> GatewayConfig:
    """Build the gateway configuration from an INI file and the environment.

    Values in the INI file win over environment variables, which win over the
    built-in defaults.

    Args:
        config_path: INI file to read; defaults to ``$MGW_CONFIG`` or
            ``config.ini``. A missing file is not an error.
        environ: Environment mapping, ``os.environ`` when omitted.

    Returns:
        The frozen configuration.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get("MGW_CONFIG", "config.ini"))
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path)
        logger.info("Loaded configuration from %s", path)

    def get(section: str, option: str, env_name: str, default: str | None = None) -> str | None:
        if parser.has_option(section, option):
            return parser.get(section, option)
        return env.get(env_name, default)

    def get_int(section: str, option: str, env_name: str, default: int) -> int:
        value = get(section, option, env_name)
        if value is None or not str(value).strip():
            return default
        return int(value)

    def get_float(section: str, option: str, env_name: str, default: float) -> float:
        value = get(section, option, env_name)
        if value is None or not str(value).strip():
            return default
        return float(value)

    def get_bool(section: str, option: str, env_name: str, default: bool) -> bool:
        return _parse_bool(get(section, option, env_name), default)

    def get_str(section: str, option: str, env_name: str, default: str = "") -> str:
        value = get(section, option, env_name)
        return value.strip() if value else default

    smtp = SmtpSettings(
        host=get_str("smtp", "host", "MGW_SMTP_HOST"),
        port=get_int("smtp", "port", "MGW_SMTP_PORT", 587),
        secure=get_bool("smtp", "secure", "MGW_SMTP_SECURE", False),
        user=get_str("smtp", "user", "MGW_SMTP_USER") or None,
        password=get("smtp", "password", "MGW_SMTP_PASSWORD") or None,
        timeout=get_float("smtp", "timeout", "MGW_SMTP_TIMEOUT", 15.0),
        send_timeout=get_float("smtp", "send_timeout", "MGW_SMTP_SEND_TIMEOUT", 30.0),
        verify_before_send=get_bool("smtp", "verify_before_send", "MGW_SMTP_VERIFY_BEFORE_SEND", True),
        session_ttl=get_int("smtp", "session_ttl", "MGW_SMTP_SESSION_TTL", 300),
    )
    rate_limit = RateLimitPolicy(
        enabled=get_bool("rate_limit", "enabled", "MGW_RATE_LIMIT_ENABLED", True),
        max_requests=get_int("rate_limit", "max_requests", "MGW_RATE_LIMIT_MAX_REQUESTS", 5),
        window_seconds=get_int("rate_limit", "window_seconds", "MGW_RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
    )
    origins = get_str("server", "cors_origins", "MGW_CORS_ORIGINS", "*")
    environment = get_str("server", "environment", "MGW_ENVIRONMENT", DEVELOPMENT).lower()

    config = GatewayConfig(
        smtp=smtp,
        rate_limit=rate_limit,
        api_key=get_str("server", "api_key", "MGW_API_KEY") or None,
        from_email=get_str("identity", "from_email", "MGW_FROM_EMAIL"),
        from_name=get_str("identity", "from_name", "MGW_FROM_NAME"),
        to_email=get_str("identity", "to_email", "MGW_TO_EMAIL"),
        environment=environment,
        host=get_str("server", "host", "MGW_HOST", "0.0.0.0"),
        port=get_int("server", "port", "MGW_PORT", 8000),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        trust_proxy=get_bool("server", "trust_proxy", "MGW_TRUST_PROXY", False),
        startup_email=get_bool("notifications", "startup_email", "MGW_STARTUP_EMAIL", False),
        allow_smtp_test=_parse_bool(get("server", "allow_smtp_test", "MGW_ALLOW_SMTP_TEST"), None),
    )
    if config.api_key is None:
        logger.warning("No API key configured: protected endpoints will refuse every request")
    if not config.smtp.configured:
        logger.warning("SMTP credentials are not configured")
    return config
