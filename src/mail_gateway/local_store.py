# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Operator-side persistence for connection settings and the signature.

Records live in one JSON file (``~/.mail-gateway/storage.json`` by default),
each stored wholesale under a fixed key and JSON-encoded, the same way a
browser's local storage would hold them. Loading an absent or unreadable
record yields the defaults; saving replaces the record; clearing removes it.

Example::

    store = LocalStore()
    config = load_config(store)
    config.api_key = "secret"
    save_config(store, config)
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .logger import get_logger

CONFIG_KEY = "emailApiConfig"
SIGNATURE_KEY = "emailSignature"
DEFAULT_API_ENDPOINT = "http://localhost:8000"

logger = get_logger("LocalStore")


def default_store_path() -> Path:
    return Path.home() / ".mail-gateway" / "storage.json"


class LocalStore:
    """JSON file-backed key-value store.

    Values are strings, as in browser local storage; callers encode records
    with :func:`json.dumps` before storing them.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_store_path()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError:
            logger.error("Storage file %s is corrupt, starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)


# ----------------------------------------------------------------- records

@dataclass
class SmtpPreset:
    """SMTP settings kept locally for testing convenience.

    These mirror the gateway's own settings but are never authoritative:
    the gateway always delivers with its own configuration.
    """

    provider: str = "custom"
    host: str = ""
    port: str = "587"
    secure: bool = False
    user: str = ""
    password: str = ""

    def missing_fields(self) -> list[str]:
        return [name for name in ("host", "port", "user", "password") if not str(getattr(self, name)).strip()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "host": self.host,
            "port": self.port,
            "secure": self.secure,
            "user": self.user,
            "pass": self.password,
        }

    def to_request(self) -> Dict[str, Any]:
        """Body for ``POST /api/test-smtp``."""
        data = self.to_dict()
        data.pop("provider")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SmtpPreset":
        return cls(
            provider=data.get("provider") or "custom",
            host=data.get("host") or "",
            port=str(data.get("port") or "587"),
            secure=bool(data.get("secure", False)),
            user=data.get("user") or "",
            password=data.get("pass") or "",
        )


SMTP_PRESETS: Dict[str, Dict[str, Any]] = {
    "gmail": {"host": "smtp.gmail.com", "port": "587", "secure": False},
    "outlook": {"host": "smtp-mail.outlook.com", "port": "587", "secure": False},
    "yahoo": {"host": "smtp.mail.yahoo.com", "port": "587", "secure": False},
    "zoho": {"host": "smtp.zoho.com", "port": "587", "secure": False},
    "custom": {"host": "", "port": "587", "secure": False},
}

PRESET_HINTS = {
    "gmail": "Remember to use an App Password, not your regular Gmail password",
    "outlook": "Use your Outlook/Hotmail email and password",
}


def apply_preset(smtp: SmtpPreset, provider: str) -> SmtpPreset:
    """Return ``smtp`` with host, port and TLS flag taken from a provider preset.

    Raises:
        KeyError: ``provider`` is not a known preset.
    """
    preset = SMTP_PRESETS[provider]
    return SmtpPreset(
        provider=provider,
        host=preset["host"],
        port=preset["port"],
        secure=preset["secure"],
        user=smtp.user,
        password=smtp.password,
    )


@dataclass
class ClientConfig:
    """Connection settings for talking to a gateway."""

    api_key: str = ""
    api_endpoint: str = DEFAULT_API_ENDPOINT
    default_from_email: str = ""
    default_from_name: str = ""
    default_to_email: str = ""
    smtp: SmtpPreset = field(default_factory=SmtpPreset)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiKey": self.api_key,
            "apiEndpoint": self.api_endpoint,
            "defaultFromEmail": self.default_from_email,
            "defaultFromName": self.default_from_name,
            "defaultToEmail": self.default_to_email,
            "smtp": self.smtp.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        return cls(
            api_key=data.get("apiKey") or "",
            api_endpoint=data.get("apiEndpoint") or DEFAULT_API_ENDPOINT,
            default_from_email=data.get("defaultFromEmail") or "",
            default_from_name=data.get("defaultFromName") or "",
            default_to_email=data.get("defaultToEmail") or "",
            smtp=SmtpPreset.from_dict(data.get("smtp") or {}),
        )


@dataclass
class Signature:
    """Contact block appended to outgoing bodies.

    ``custom`` HTML, when set, replaces the structured fields entirely.
    """

    name: str = ""
    title: str = ""
    company: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    custom: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Signature":
        known = {f.name for f in fields(cls)}
        return cls(**{key: str(value or "").strip() for key, value in data.items() if key in known})


class StoreError(ValueError):
    """A record was rejected before being saved."""


def _load_record(store: LocalStore, key: str) -> Optional[Dict[str, Any]]:
    raw = store.get_item(key)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse saved %s: %s", key, exc)
        return None
    return data if isinstance(data, dict) else None


def load_config(store: LocalStore) -> ClientConfig:
    data = _load_record(store, CONFIG_KEY)
    return ClientConfig.from_dict(data) if data else ClientConfig()


def save_config(store: LocalStore, config: ClientConfig) -> None:
    """Replace the saved configuration.

    Raises:
        StoreError: ``config`` has no API key.
    """
    if not config.api_key.strip():
        raise StoreError("Please enter an API key")
    store.set_item(CONFIG_KEY, json.dumps(config.to_dict()))


def save_smtp(store: LocalStore, smtp: SmtpPreset) -> ClientConfig:
    """Store SMTP settings inside the saved configuration.

    Raises:
        StoreError: A host, port, user or password is missing.
    """
    if smtp.missing_fields():
        raise StoreError("Please fill in all SMTP fields")
    config = load_config(store)
    config.smtp = smtp
    store.set_item(CONFIG_KEY, json.dumps(config.to_dict()))
    return config


def clear_config(store: LocalStore) -> None:
    store.remove_item(CONFIG_KEY)


def load_signature(store: LocalStore) -> Signature:
    data = _load_record(store, SIGNATURE_KEY)
    return Signature.from_dict(data) if data else Signature()


def save_signature(store: LocalStore, signature: Signature) -> None:
    store.set_item(SIGNATURE_KEY, json.dumps(signature.to_dict()))


def clear_signature(store: LocalStore) -> None:
    store.remove_item(SIGNATURE_KEY)
