import asyncio
from dataclasses import replace

import pytest

from mail_gateway.delivery import DeliveryClient
from mail_gateway.errors import DeliveryError
from mail_gateway.models import OutboundMessage

from conftest import DummySMTP


def make_message(**overrides):
    fields = {
        "recipient": "bob@example.com",
        "subject": "Hi",
        "body": "<p>Hello</p>",
        "text_body": "Hello",
        "sender": "mailer@example.com",
        "is_html": True,
    }
    fields.update(overrides)
    return OutboundMessage(**fields)


@pytest.mark.asyncio
async def test_send_verifies_then_delivers(smtp_settings, smtp_factory):
    client = DeliveryClient(smtp_settings, smtp_factory=smtp_factory)
    receipt = await client.send(make_message())

    verifier, sender = smtp_factory.created
    assert verifier.closed is True
    assert verifier.login_credentials == ("mailer@example.com", "pw")
    assert sender.start_tls is None and sender.use_tls is False

    mime, envelope_from, recipients = sender.sent[0]
    assert envelope_from == "mailer@example.com"
    assert recipients == ["bob@example.com"]
    assert mime["Message-ID"] == receipt.message_id
    assert receipt.message_id.endswith("@example.com>")


@pytest.mark.asyncio
async def test_unrenderable_header_fails_before_connecting(smtp_settings, smtp_factory):
    client = DeliveryClient(smtp_settings, smtp_factory=smtp_factory)
    with pytest.raises(ValueError):
        await client.send(make_message(subject="Hi\nBcc: x@evil.com"))
    assert smtp_factory.created == []


@pytest.mark.asyncio
async def test_session_is_reused_between_sends(smtp_settings, smtp_factory):
    settings = replace(smtp_settings, verify_before_send=False)
    client = DeliveryClient(settings, smtp_factory=smtp_factory)
    await client.send(make_message())
    await client.send(make_message(recipient="carol@example.com"))

    assert len(smtp_factory.created) == 1
    assert len(smtp_factory.created[0].sent) == 2


@pytest.mark.asyncio
async def test_dead_session_is_replaced(smtp_settings, smtp_factory):
    settings = replace(smtp_settings, verify_before_send=False)
    client = DeliveryClient(settings, smtp_factory=smtp_factory)
    await client.send(make_message())
    smtp_factory.created[0].alive = False

    await client.send(make_message())
    assert len(smtp_factory.created) == 2
    assert smtp_factory.created[0].closed is True


@pytest.mark.asyncio
async def test_secure_flag_uses_implicit_tls(smtp_settings, smtp_factory):
    settings = replace(smtp_settings, port=465, secure=True)
    await DeliveryClient(settings, smtp_factory=smtp_factory).verify()
    smtp = smtp_factory.created[0]
    assert smtp.use_tls is True
    assert smtp.start_tls is False
    assert smtp.port == 465


@pytest.mark.asyncio
async def test_bad_credentials_raise_delivery_error(smtp_settings, smtp_factory):
    smtp_factory.fail_login = True
    client = DeliveryClient(smtp_settings, smtp_factory=smtp_factory)

    with pytest.raises(DeliveryError) as excinfo:
        await client.send(make_message())
    assert excinfo.value.smtp_code == 535
    assert "Authentication credentials invalid" in excinfo.value.diagnostic
    assert all(not smtp.sent for smtp in smtp_factory.created)


@pytest.mark.asyncio
async def test_refused_message_drops_session(smtp_settings, smtp_factory):
    smtp_factory.fail_send = True
    client = DeliveryClient(replace(smtp_settings, verify_before_send=False), smtp_factory=smtp_factory)

    with pytest.raises(DeliveryError) as excinfo:
        await client.send(make_message())
    assert excinfo.value.message == "Failed to send email"
    assert excinfo.value.diagnostic == "Mailbox unavailable (SMTP 550)"
    assert client.session is None
    assert smtp_factory.created[0].closed is True


@pytest.mark.asyncio
async def test_connect_timeout(smtp_settings):
    class SlowSMTP(DummySMTP):
        async def connect(self):
            await asyncio.sleep(1)

    client = DeliveryClient(replace(smtp_settings, timeout=0.01), smtp_factory=SlowSMTP)
    with pytest.raises(DeliveryError) as excinfo:
        await client.verify()
    assert excinfo.value.diagnostic == "Timed out after 0.01s talking to smtp.example.com:587"


@pytest.mark.asyncio
async def test_missing_host_is_reported(smtp_settings, smtp_factory):
    client = DeliveryClient(replace(smtp_settings, host=""), smtp_factory=smtp_factory)
    with pytest.raises(DeliveryError) as excinfo:
        await client.verify()
    assert excinfo.value.diagnostic == "SMTP host is not configured"
    assert smtp_factory.created == []


@pytest.mark.asyncio
async def test_close_quits_open_session(smtp_settings, smtp_factory):
    client = DeliveryClient(replace(smtp_settings, verify_before_send=False), smtp_factory=smtp_factory)
    await client.send(make_message())
    await client.close()
    assert client.session is None
    assert smtp_factory.created[0].closed is True
