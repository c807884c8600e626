"""Tests for the mail-gateway CLI."""

import json
import os

import pytest
import requests
from click.testing import CliRunner

from mail_gateway import cli
from mail_gateway.cli import main
from mail_gateway.client import GatewayClient, GatewayResponse
from mail_gateway.local_store import CONFIG_KEY, ClientConfig, LocalStore, Signature, load_config, load_signature, save_config, save_signature


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "storage.json"


@pytest.fixture
def configured(store_path):
    store = LocalStore(store_path)
    save_config(store, ClientConfig(api_key="k", default_from_email="me@example.com", default_from_name="Me"))
    return store


def invoke(runner, store_path, *args, **kwargs):
    return runner.invoke(main, ["--store", str(store_path), *args], **kwargs)


@pytest.fixture
def sent_drafts(monkeypatch):
    drafts = []

    def fake_send(self, draft):
        drafts.append(draft)
        if draft.to.startswith("fail"):
            return GatewayResponse(500, {"success": False, "error": "Failed to send email", "details": "550"})
        return GatewayResponse(200, {"success": True, "message": "Email sent successfully", "messageId": "<m@x>"})

    monkeypatch.setattr(GatewayClient, "send_email", fake_send)
    return drafts


class TestConfigCommands:
    def test_set_requires_api_key(self, runner, store_path):
        result = invoke(runner, store_path, "config", "set", "--endpoint", "http://gw.local")
        assert result.exit_code == 1
        assert "Please enter an API key" in result.output
        assert LocalStore(store_path).get_item(CONFIG_KEY) is None

    def test_set_and_show(self, runner, store_path):
        result = invoke(runner, store_path, "config", "set", "--api-key", "supersecret", "--endpoint", "http://gw.local/")
        assert result.exit_code == 0
        assert "Settings Saved" in result.output

        config = load_config(LocalStore(store_path))
        assert config.api_key == "supersecret"
        assert config.api_endpoint == "http://gw.local"

        shown = invoke(runner, store_path, "config", "show")
        assert shown.exit_code == 0
        assert "http://gw.local" in shown.output
        assert "fingerprint" in shown.output
        assert "supersecret" not in shown.output

    def test_clear(self, runner, store_path, configured):
        result = invoke(runner, store_path, "config", "clear", "--force")
        assert result.exit_code == 0
        assert load_config(LocalStore(store_path)) == ClientConfig()

    def test_test_reports_connection_error(self, runner, store_path, configured, monkeypatch):
        def refuse(self):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(GatewayClient, "health", refuse)
        result = invoke(runner, store_path, "config", "test")
        assert result.exit_code == 1
        assert "Connection Error" in result.output
        assert "Traceback" not in result.output


class TestSmtpCommands:
    def test_preset_fills_provider_settings(self, runner, store_path):
        result = invoke(runner, store_path, "smtp", "preset", "gmail", "--user", "me@gmail.com", "--password", "app")
        assert result.exit_code == 0
        assert "App Password" in result.output
        smtp = load_config(LocalStore(store_path)).smtp
        assert smtp.host == "smtp.gmail.com"
        assert smtp.provider == "gmail"

    def test_preset_without_credentials_is_refused(self, runner, store_path):
        result = invoke(runner, store_path, "smtp", "preset", "zoho")
        assert result.exit_code == 1
        assert "Please fill in all SMTP fields" in result.output

    def test_test_sends_saved_settings(self, runner, store_path, monkeypatch):
        calls = []

        def fake_test(self, settings):
            calls.append(settings)
            return GatewayResponse(500, {"success": False, "error": "SMTP connection failed", "details": "535"})

        monkeypatch.setattr(GatewayClient, "test_smtp", fake_test)
        invoke(runner, store_path, "smtp", "save", "--host", "smtp.x.com", "--user", "u", "--password", "p")
        result = invoke(runner, store_path, "smtp", "test")

        assert result.exit_code == 1
        assert "SMTP connection failed" in result.output
        assert calls[0].host == "smtp.x.com"


class TestSignatureCommands:
    def test_set_merges_and_preview(self, runner, store_path):
        invoke(runner, store_path, "signature", "set", "--name", "Jane")
        invoke(runner, store_path, "signature", "set", "--email", "jane@acme.com")
        assert load_signature(LocalStore(store_path)) == Signature(name="Jane", email="jane@acme.com")

        result = invoke(runner, store_path, "signature", "preview")
        assert "mailto:jane@acme.com" in result.output

    def test_preview_empty(self, runner, store_path):
        result = invoke(runner, store_path, "signature", "preview")
        assert "No signature configured" in result.output

    def test_clear(self, runner, store_path):
        save_signature(LocalStore(store_path), Signature(name="Jane"))
        invoke(runner, store_path, "signature", "clear")
        assert load_signature(LocalStore(store_path)) == Signature()


class TestSend:
    def test_requires_api_key(self, runner, store_path, sent_drafts):
        result = invoke(runner, store_path, "send", "--to", "bob@example.com", "--subject", "Hi", "--content", "x")
        assert result.exit_code == 1
        assert "Configuration Required" in result.output
        assert sent_drafts == []

    def test_sends_with_defaults_and_signature(self, runner, store_path, configured, sent_drafts):
        save_signature(configured, Signature(custom="<p>Sig</p>"))
        result = invoke(runner, store_path, "send", "--to", "bob@example.com", "--subject", "Hi", "--content", "<p>x</p>")

        assert result.exit_code == 0, result.output
        assert "Email Sent!" in result.output
        draft = sent_drafts[0]
        assert draft.from_email == "me@example.com"
        assert draft.from_name == "Me"
        assert draft.content.startswith("<p>x</p><div")
        assert draft.content.endswith("<p>Sig</p></div>")

    def test_plain_text_skips_signature(self, runner, store_path, configured, sent_drafts):
        save_signature(configured, Signature(name="Jane"))
        invoke(runner, store_path, "send", "--to", "bob@example.com", "--subject", "Hi", "--content", "x", "--text")
        assert sent_drafts[0].content == "x"
        assert sent_drafts[0].is_html is False

    def test_rejects_invalid_recipient(self, runner, store_path, configured, sent_drafts):
        result = invoke(runner, store_path, "send", "--to", "nope", "--subject", "Hi", "--content", "x")
        assert result.exit_code == 1
        assert sent_drafts == []

    def test_gateway_error_is_shown(self, runner, store_path, configured, sent_drafts):
        result = invoke(runner, store_path, "send", "--to", "fail@example.com", "--subject", "Hi", "--content", "x")
        assert result.exit_code == 1
        assert "Failed to send email" in result.output


class TestBulk:
    def test_reports_partial_failure(self, runner, store_path, configured, sent_drafts):
        result = invoke(
            runner, store_path, "bulk",
            "--recipients", "a@b.com, a@b.com\nbad\nfail@b.com", "--delay", "0",
            "--subject", "News", "--content", "<p>Hi</p>", "--no-signature",
        )
        assert result.exit_code == 1
        assert [d.to for d in sent_drafts] == ["a@b.com", "fail@b.com"]
        assert "Sent: 1, Failed: 1" in result.output

    def test_all_sent(self, runner, store_path, configured, sent_drafts, tmp_path):
        recipients = tmp_path / "list.txt"
        recipients.write_text("a@b.com\nc@d.com\n")
        result = invoke(
            runner, store_path, "bulk", "--file", str(recipients), "--delay", "0",
            "--subject", "News", "--content", "<p>Hi</p>",
        )
        assert result.exit_code == 0, result.output
        assert "Successfully sent 2 email(s)" in result.output

    def test_no_valid_addresses(self, runner, store_path, configured, sent_drafts):
        result = invoke(runner, store_path, "bulk", "--recipients", "bad", "--subject", "s", "--content", "c")
        assert result.exit_code == 1
        assert "No valid email addresses found" in result.output


def test_health_and_info(runner, store_path, monkeypatch):
    monkeypatch.setattr(GatewayClient, "health", lambda self: GatewayResponse(
        200, {"success": True, "message": "Email API Server is healthy", "smtp_configured": False}))
    monkeypatch.setattr(GatewayClient, "info", lambda self: GatewayResponse(
        200, {"success": True, "message": "Email API Server is running", "version": "1.0.0",
              "environment": "development", "features": {"smtp-test": "/api/test-smtp"}}))

    health = invoke(runner, store_path, "health")
    assert health.exit_code == 0
    assert "SMTP not configured" in health.output

    info = invoke(runner, store_path, "info")
    assert "1.0.0" in info.output
    assert "/api/test-smtp" in info.output


def test_test_email(runner, store_path, configured, monkeypatch):
    monkeypatch.setattr(GatewayClient, "test_email", lambda self: GatewayResponse(
        200, {"success": True, "message": "Test email sent successfully", "messageId": "<t@x>"}))
    result = invoke(runner, store_path, "test-email")
    assert result.exit_code == 0
    assert "Test Email Sent" in result.output


def test_serve_runs_uvicorn(runner, store_path, tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs, os.environ["MGW_CONFIG"])))
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    monkeypatch.setenv("MGW_CONFIG", "unused.ini")
    ini = tmp_path / "config.ini"
    ini.write_text("[server]\nport = 9100\n")

    result = invoke(runner, store_path, "serve", "--config", str(ini))

    assert result.exit_code == 0, result.output
    app, kwargs, config_env = calls[0]
    assert app == "mail_gateway.server:app"
    assert config_env == str(ini)
    assert kwargs["port"] == 9100
    assert kwargs["host"] == "0.0.0.0"


def test_store_record_is_json(store_path, configured):
    raw = json.loads(LocalStore(store_path).get_item(CONFIG_KEY))
    assert raw["defaultFromName"] == "Me"
