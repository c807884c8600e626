import json

import pytest

from mail_gateway.local_store import (
    CONFIG_KEY,
    SIGNATURE_KEY,
    SMTP_PRESETS,
    ClientConfig,
    LocalStore,
    Signature,
    SmtpPreset,
    StoreError,
    apply_preset,
    clear_config,
    clear_signature,
    load_config,
    load_signature,
    save_config,
    save_signature,
    save_smtp,
)


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "nested" / "storage.json")


def test_get_set_remove(store):
    assert store.get_item("k") is None
    store.set_item("k", "v")
    assert store.get_item("k") == "v"
    store.remove_item("k")
    assert store.get_item("k") is None
    store.remove_item("k")


def test_defaults_when_nothing_saved(store):
    config = load_config(store)
    assert config == ClientConfig()
    assert config.api_endpoint == "http://localhost:8000"
    assert config.smtp.port == "587"
    assert load_signature(store) == Signature()


def test_config_round_trips_under_fixed_key(store):
    config = ClientConfig(api_key="k", default_from_email="me@example.com")
    save_config(store, config)

    raw = json.loads(store.get_item(CONFIG_KEY))
    assert raw["apiKey"] == "k"
    assert raw["smtp"]["pass"] == ""
    assert load_config(store) == config


def test_save_config_requires_key(store):
    with pytest.raises(StoreError):
        save_config(store, ClientConfig(api_key="  "))
    assert store.get_item(CONFIG_KEY) is None


def test_corrupt_record_yields_defaults(store, caplog):
    store.set_item(CONFIG_KEY, "{not json")
    assert load_config(store) == ClientConfig()
    assert "Failed to parse saved emailApiConfig" in caplog.text


def test_corrupt_file_yields_defaults(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("garbage")
    assert load_signature(LocalStore(path)) == Signature()


def test_clear_config_keeps_signature(store):
    save_config(store, ClientConfig(api_key="k"))
    save_signature(store, Signature(name="Jane"))
    clear_config(store)
    assert store.get_item(CONFIG_KEY) is None
    assert load_signature(store).name == "Jane"
    clear_signature(store)
    assert store.get_item(SIGNATURE_KEY) is None


def test_signature_fields_are_trimmed(store):
    store.set_item(SIGNATURE_KEY, json.dumps({"name": "  Jane ", "unknown": "x"}))
    assert load_signature(store) == Signature(name="Jane")


def test_save_smtp_requires_every_field(store):
    with pytest.raises(StoreError):
        save_smtp(store, SmtpPreset(host="smtp.example.com", user="u"))


def test_save_smtp_keeps_other_settings(store):
    save_config(store, ClientConfig(api_key="k"))
    save_smtp(store, SmtpPreset(host="smtp.example.com", port="2525", user="u", password="p"))
    config = load_config(store)
    assert config.api_key == "k"
    assert config.smtp.port == "2525"
    assert config.smtp.password == "p"


def test_presets():
    assert set(SMTP_PRESETS) == {"gmail", "outlook", "yahoo", "zoho", "custom"}
    smtp = apply_preset(SmtpPreset(user="u", password="p"), "outlook")
    assert smtp.host == "smtp-mail.outlook.com"
    assert smtp.port == "587"
    assert smtp.secure is False
    assert smtp.user == "u"
    with pytest.raises(KeyError):
        apply_preset(smtp, "aol")


def test_smtp_request_body():
    body = SmtpPreset(provider="gmail", host="h", user="u", password="p").to_request()
    assert body == {"host": "h", "port": "587", "secure": False, "user": "u", "pass": "p"}
