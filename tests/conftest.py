import pytest

import aiosmtplib

from mail_gateway.config import GatewayConfig, RateLimitPolicy, SmtpSettings

API_KEY = "secret-key"


class DummySMTP:
    """Stands in for ``aiosmtplib.SMTP``; records what the gateway asked of it."""

    fail_connect = False
    fail_login = False
    fail_send = False

    def __init__(self, hostname, port, use_tls=False, start_tls=None, timeout=None):
        self.hostname = hostname
        self.port = port
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.timeout = timeout
        self.login_credentials = None
        self.connected = False
        self.closed = False
        self.alive = True
        self.sent = []

    async def connect(self):
        if self.fail_connect:
            raise aiosmtplib.SMTPConnectError("Connection refused")
        self.connected = True

    async def login(self, user, password):
        if self.fail_login:
            raise aiosmtplib.SMTPAuthenticationError(535, "Authentication credentials invalid")
        self.login_credentials = (user, password)

    async def noop(self):
        if not self.alive:
            raise aiosmtplib.SMTPServerDisconnected("Connection lost")
        return 250, "OK"

    async def send_message(self, message, sender=None, recipients=None):
        if self.fail_send:
            raise aiosmtplib.SMTPResponseException(550, "Mailbox unavailable")
        self.sent.append((message, sender, recipients))
        return {}, "OK queued"

    async def quit(self):
        self.closed = True


class SmtpFactory:
    """Builds DummySMTP clients, applying the failure switches set on it."""

    def __init__(self):
        self.created = []
        self.fail_connect = False
        self.fail_login = False
        self.fail_send = False

    def __call__(self, **kwargs):
        smtp = DummySMTP(**kwargs)
        smtp.fail_connect = self.fail_connect
        smtp.fail_login = self.fail_login
        smtp.fail_send = self.fail_send
        self.created.append(smtp)
        return smtp

    @property
    def sent(self):
        return [item for smtp in self.created for item in smtp.sent]


@pytest.fixture
def smtp_factory():
    return SmtpFactory()


@pytest.fixture
def smtp_settings():
    return SmtpSettings(host="smtp.example.com", port=587, user="mailer@example.com", password="pw")


@pytest.fixture
def gateway_config(smtp_settings):
    return GatewayConfig(
        smtp=smtp_settings,
        rate_limit=RateLimitPolicy(enabled=True, max_requests=5, window_seconds=900),
        api_key=API_KEY,
        from_email="mailer@example.com",
        from_name="Example Site",
        to_email="inbox@example.com",
    )
