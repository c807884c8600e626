# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging helpers for the mail gateway.

Handlers and format are configured once by the entry point through
:func:`configure_logging`; modules only ask for a named logger.

Example::

    from mail_gateway.logger import get_logger

    logger = get_logger("Delivery")
    logger.info("Message sent")
"""

import hashlib
import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "MailGateway") -> logging.Logger:
    """Return the standard library logger registered under ``name``."""
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler with the gateway format.

    Args:
        level: Level name such as ``"DEBUG"``; unknown names fall back to INFO.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )


def fingerprint(secret: str | None, length: int = 8) -> str:
    """Return a short non-reversible tag for a secret, safe to log."""
    if not secret:
        return "<none>"
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:length]
