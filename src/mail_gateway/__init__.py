# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTTP mail gateway relaying contact forms and generic sends over SMTP.

This package provides:

- A FastAPI service that authenticates callers with an API key, applies a
  per-address sliding-window rate limit, validates and composes messages,
  and delivers them through an SMTP relay
- A Python client and ``mail-gateway`` CLI for operators, with a local
  JSON store for connection settings and a reusable signature
- Bulk sending of one message to many recipients, one request at a time

Example:
    Creating the application::

        from mail_gateway.api import create_app
        from mail_gateway.config import load_config

        app = create_app(load_config())
"""

__version__ = "1.0.0"
