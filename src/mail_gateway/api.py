# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""FastAPI application factory for the mail gateway.

Every sending route runs the same pipeline and stops at the first failure::

    rate-limit -> authenticate -> validate -> compose -> deliver -> respond

Rate limiting and authentication are route dependencies, so they run before
the handler reads the payload. Validation, composition and delivery happen
in the handler. Failures are :class:`~mail_gateway.errors.GatewayError`
subclasses rendered by one exception handler as
``{"success": false, "error": ..., "details": ...}``.

Routes:
    - ``GET /``: Service description (no auth)
    - ``GET /health``: Liveness and SMTP configuration flag (no auth)
    - ``GET /metrics``: Prometheus metrics (API key)
    - ``POST /api/contact-form``: Relay a contact form to the inbox (API key, rate-limited)
    - ``POST /api/send-email``: Send one message to one recipient (API key, rate-limited)
    - ``POST /api/test-smtp``: Verify SMTP credentials without sending (rate-limited)
    - ``POST /api/test-email``: Send the service-online notification (API key)

Example::

    from mail_gateway.api import create_app
    from mail_gateway.config import load_config

    app = create_app(load_config())
    uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .auth import API_KEY_HEADER_NAME, Authenticator, extract_api_key
from .composer import compose_contact, compose_generic, compose_startup_notification
from .config import GatewayConfig, SmtpSettings
from .delivery import DeliveryClient
from .errors import AuthError, DeliveryError, FeatureDisabledError, GatewayError, RateLimitError, ValidationError
from .logger import fingerprint, get_logger
from .prometheus import GatewayMetrics
from .rate_limit import RateLimiter
from .validation import validate_contact, validate_send, validate_smtp_test

logger = get_logger("GatewayAPI")

__all__ = ["API_KEY_HEADER_NAME", "create_app", "send_startup_notification"]


class SendResponse(BaseModel):
    """Body returned when a message was accepted by the relay."""
    success: bool = True
    message: str
    messageId: str
    timestamp: str


class HealthResponse(BaseModel):
    success: bool = True
    message: str
    smtp_configured: bool
    timestamp: str


class StatusResponse(BaseModel):
    success: bool = True
    message: str


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def read_json(request: Request) -> Any:
    """Return the decoded JSON body, ``{}`` when empty, None when malformed."""
    if not hasattr(request.state, "json_body"):
        raw = await request.body()
        if not raw.strip():
            request.state.json_body = {}
        else:
            try:
                request.state.json_body = json.loads(raw)
            except ValueError:
                request.state.json_body = None
    return request.state.json_body


async def read_json_object(request: Request) -> dict[str, Any]:
    body = await read_json(request)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def client_address(request: Request, trust_proxy: bool = False) -> str:
    """Caller address used as the rate-limit key."""
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


async def send_startup_notification(config: GatewayConfig, delivery: DeliveryClient) -> str | None:
    """Verify the transport and mail the service-online notification.

    Failures are logged and swallowed so a misconfigured relay never prevents
    the service from starting.

    Returns:
        The delivery identifier, or None when sending failed.
    """
    try:
        await delivery.verify()
        logger.info("SMTP connection verified successfully")
        receipt = await delivery.send(compose_startup_notification(config))
    except GatewayError as exc:
        logger.error("Failed to send startup notification: %s", exc.details or exc.message)
        return None
    logger.info("Startup notification %s sent to %s", receipt.message_id, config.to_email)
    return receipt.message_id


def create_app(
    config: GatewayConfig,
    delivery: DeliveryClient | None = None,
    limiter: RateLimiter | None = None,
    metrics: GatewayMetrics | None = None,
    smtp_factory: Optional[Callable[..., Any]] = None,
) -> FastAPI:
    """Create and configure the gateway application.

    Parameters
    ----------
    config:
        Frozen process configuration.
    delivery:
        Delivery client; built from ``config.smtp`` when omitted.
    limiter:
        Rate limiter; built from ``config.rate_limit`` when omitted.
    metrics:
        Metrics registry; a fresh one per application when omitted.
    smtp_factory:
        Callable building SMTP clients, passed to every delivery client the
        app creates (including the ones used by ``/api/test-smtp``).

    Returns
    -------
    FastAPI
        Application ready to be served by Uvicorn.
    """
    delivery = delivery or DeliveryClient(config.smtp, smtp_factory=smtp_factory)
    limiter = limiter or RateLimiter.from_policy(config.rate_limit)
    metrics = metrics or GatewayMetrics()
    authenticator = Authenticator(config.api_key)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Email API server starting (environment=%s)", config.environment)
        logger.info("SMTP configured for: %s", config.smtp.user or "<anonymous>")
        logger.info("API key authentication enabled (fingerprint %s)", fingerprint(config.api_key))
        if config.startup_email:
            await send_startup_notification(config, delivery)
        yield
        await delivery.close()

    api = FastAPI(title="Mail Gateway", version=__version__, lifespan=lifespan)
    api.state.config = config
    api.state.delivery = delivery
    api.state.limiter = limiter
    api.state.metrics = metrics

    api.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials="*" not in config.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", API_KEY_HEADER_NAME],
    )

    def rate_limited(route: str):
        async def check_rate_limit(request: Request) -> None:
            address = client_address(request, config.trust_proxy)
            try:
                await limiter.hit(address)
            except RateLimitError:
                metrics.inc_rate_limited(route)
                logger.warning("Rate limit exceeded for %s on %s", address, route)
                raise
        return Depends(check_rate_limit)

    def api_key_required(route: str):
        async def check_api_key(request: Request) -> None:
            body = await read_json(request)
            supplied = extract_api_key(request.headers, body, request.query_params)
            try:
                authenticator.authenticate(supplied)
            except AuthError:
                metrics.inc_auth_failure(route)
                raise
        return Depends(check_api_key)

    @api.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        include_details = config.expose_error_details or not isinstance(exc, DeliveryError)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_payload(include_details=include_details),
            headers=exc.headers or None,
        )

    @api.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"success": False, "error": "Endpoint not found"})
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})

    @api.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.error("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request"})

    @api.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Server error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    @api.get("/")
    async def index():
        """Describe the service (no authentication required)."""
        return {
            "success": True,
            "message": "Email API Server is running",
            "timestamp": utc_now_iso(),
            "version": __version__,
            "environment": config.environment,
            "features": {
                "contact-form": "/api/contact-form",
                "generic-email": "/api/send-email",
                "smtp-test": "/api/test-smtp",
                "startup-test": "enabled" if config.startup_email else "disabled",
            },
        }

    @api.get("/health", response_model=HealthResponse)
    async def health():
        """Health check for monitoring (no authentication, never rate-limited)."""
        return HealthResponse(
            message="Email API Server is healthy",
            smtp_configured=config.smtp.configured,
            timestamp=utc_now_iso(),
        )

    @api.get("/metrics", dependencies=[api_key_required("metrics")])
    async def metrics_endpoint():
        """Expose Prometheus metrics collected by the gateway."""
        return Response(content=metrics.generate_latest(), media_type="text/plain; version=0.0.4")

    @api.post(
        "/api/contact-form",
        response_model=SendResponse,
        dependencies=[rate_limited("contact-form"), api_key_required("contact-form")],
    )
    async def contact_form(request: Request):
        """Relay a contact-form submission to the configured inbox."""
        submission = validate_contact(await read_json_object(request))
        message = compose_contact(submission, config)
        try:
            receipt = await delivery.send(message)
        except DeliveryError as exc:
            metrics.inc_error("contact-form")
            logger.error("Contact form error: %s", exc.diagnostic)
            raise DeliveryError(exc.diagnostic, exc.smtp_code, message="Failed to send contact form") from exc
        metrics.inc_sent("contact-form")
        return SendResponse(
            message="Contact form submitted successfully",
            messageId=receipt.message_id,
            timestamp=utc_now_iso(),
        )

    @api.post(
        "/api/send-email",
        response_model=SendResponse,
        dependencies=[rate_limited("send-email"), api_key_required("send-email")],
    )
    async def send_email(request: Request):
        """Send one message to one recipient."""
        send_request = validate_send(await read_json_object(request))
        message = compose_generic(send_request, config)
        try:
            receipt = await delivery.send(message)
        except DeliveryError:
            metrics.inc_error("send-email")
            raise
        metrics.inc_sent("send-email")
        return SendResponse(
            message="Email sent successfully",
            messageId=receipt.message_id,
            timestamp=utc_now_iso(),
        )

    @api.post("/api/test-smtp", response_model=StatusResponse, dependencies=[rate_limited("test-smtp")])
    async def test_smtp(request: Request):
        """Check caller-supplied SMTP credentials without sending anything.

        The transport diagnostic is always returned: it concerns the caller's
        own credentials, not the gateway's. Refused with 403 when
        ``allow_smtp_test`` is off.
        """
        if not config.smtp_test_enabled:
            raise FeatureDisabledError("SMTP testing is disabled")
        smtp_test = validate_smtp_test(await read_json_object(request))
        checker = DeliveryClient(
            SmtpSettings(
                host=smtp_test.host,
                port=smtp_test.port,
                secure=smtp_test.secure,
                user=smtp_test.user,
                password=smtp_test.password,
                timeout=config.smtp.timeout,
            ),
            smtp_factory=smtp_factory,
        )
        try:
            await checker.verify()
        except DeliveryError as exc:
            logger.warning("SMTP test against %s:%s failed: %s", smtp_test.host, smtp_test.port, exc.diagnostic)
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "SMTP connection failed", "details": exc.diagnostic},
            )
        return StatusResponse(message="SMTP configuration is valid and working")

    @api.post("/api/test-email", response_model=SendResponse, dependencies=[api_key_required("test-email")])
    async def test_email():
        """Send the service-online notification to the default recipient."""
        try:
            receipt = await delivery.send(compose_startup_notification(config))
        except DeliveryError as exc:
            metrics.inc_error("test-email")
            raise DeliveryError(exc.diagnostic, exc.smtp_code, message="Failed to send test email") from exc
        metrics.inc_sent("test-email")
        return SendResponse(
            message="Test email sent successfully",
            messageId=receipt.message_id,
            timestamp=utc_now_iso(),
        )

    return api
