# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ASGI application entry point for uvicorn.

Usage:
    uvicorn mail_gateway.server:app --host 0.0.0.0 --port 8000

Configuration is read from ``$MGW_CONFIG`` (default ``config.ini``) and the
``MGW_*`` environment variables when this module is imported.
"""

from __future__ import annotations

import os

from .api import create_app
from .config import load_config
from .logger import configure_logging

configure_logging(os.getenv("MGW_LOG_LEVEL", "INFO"))

config = load_config()
app = create_app(config)
