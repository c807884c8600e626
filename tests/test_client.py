"""Tests for the gateway client, with the HTTP session mocked."""

from unittest.mock import MagicMock

import pytest
import requests

from mail_gateway.client import EmailDraft, GatewayClient, GatewayResponse
from mail_gateway.local_store import ClientConfig, SmtpPreset


def http_response(status_code, payload=None, text=""):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.text = text
    resp.reason = "Reason"
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


def test_send_email_posts_payload_with_key(session):
    session.post.return_value = http_response(200, {"success": True, "messageId": "<id@x>"})
    client = GatewayClient("http://gw.local/", api_key="k", session=session)

    result = client.send_email(EmailDraft(to="bob@example.com", subject="Hi", content="<p>x</p>", from_name="Me"))

    assert result.ok
    assert result.message_id == "<id@x>"
    session.post.assert_called_once_with(
        "http://gw.local/api/send-email",
        timeout=30,
        headers={"Content-Type": "application/json", "X-API-Key": "k"},
        json={"to": "bob@example.com", "subject": "Hi", "content": "<p>x</p>", "isHtml": True, "fromName": "Me"},
    )


def test_error_status_is_returned_not_raised(session):
    session.post.return_value = http_response(403, {"success": False, "error": "Invalid API key"})
    result = GatewayClient(api_key="bad", session=session).contact_form("Ann", "ann@example.com", "s", "m")
    assert not result.ok
    assert result.status_code == 403
    assert result.error == "Invalid API key"


def test_success_flag_is_required_for_ok():
    assert not GatewayResponse(200, {"success": False}).ok
    assert not GatewayResponse(500, {"success": True}).ok
    assert GatewayResponse(201, {"success": True}).ok


def test_non_json_body(session):
    session.get.return_value = http_response(502, text="Bad Gateway")
    result = GatewayClient(session=session).health()
    assert result.status_code == 502
    assert result.error == "Bad Gateway"


def test_network_errors_propagate(session):
    session.get.side_effect = requests.ConnectionError("refused")
    with pytest.raises(requests.RequestException):
        GatewayClient(session=session).info()


def test_test_smtp_sends_no_key(session):
    session.post.return_value = http_response(200, {"success": True, "message": "ok"})
    client = GatewayClient(api_key="k", session=session)
    client.test_smtp(SmtpPreset(host="h", user="u", password="p"))

    _, kwargs = session.post.call_args
    assert "X-API-Key" not in kwargs["headers"]
    assert kwargs["json"]["pass"] == "p"


def test_from_config():
    client = GatewayClient.from_config(ClientConfig(api_key="k", api_endpoint="https://gw.example.com/"))
    assert client.url == "https://gw.example.com"
    assert client.api_key == "k"


def test_draft_payload_omits_empty_optionals():
    payload = EmailDraft(to="a@b.com", subject="s", content="c", is_html=False, reply_to="r@b.com").to_payload()
    assert payload == {"to": "a@b.com", "subject": "s", "content": "c", "isHtml": False, "replyTo": "r@b.com"}
