"""Tests for environment configuration."""

import pytest

from ticket_printer.config import Config


@pytest.fixture
def env(monkeypatch):
    def apply(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, value)
        return Config()
    return apply


def test_defaults(env):
    config = env()

    assert config.TICKET_FORMAT == "standard"
    assert config.LINE_WIDTH == 48
    assert config.BUZZER_POLICY == "ungated"
    assert config.KITCHEN_TICKET_ENABLED is True
    assert config.SHOW_TAX is True


def test_endpoint_is_parsed(env):
    config = env(API_WS_URL="wss://print.example.com/shop-1")

    assert config.TRANSPORT_SCHEME == "wss"
    assert config.TRANSPORT_HOST == "print.example.com"
    assert config.TRANSPORT_PORT == 443
    assert config.TOPIC_PREFIX == "shop-1"
    assert config.topic("print_ticket") == "shop-1/print_ticket"


def test_topic_prefix_default(env):
    config = env(API_WS_URL="mqtt://broker:1884")

    assert config.TRANSPORT_PORT == 1884
    assert config.TOPIC_PREFIX == "printer"


def test_kitchen_delay_follows_ticket_format(env, monkeypatch):
    monkeypatch.delenv("KITCHEN_DELAY_MS", raising=False)

    assert env(TICKET_FORMAT="legacy", LINE_WIDTH="32").KITCHEN_DELAY_MS == 300
    assert env(TICKET_FORMAT="standard", LINE_WIDTH="48").kitchen_delay == 1.0


def test_explicit_kitchen_delay(env):
    assert env(KITCHEN_DELAY_MS="250").kitchen_delay == 0.25


def test_fixed_client_id(env):
    assert env(CLIENT_ID="caja-1").CLIENT_ID == "caja-1"


@pytest.mark.parametrize("key,value", [
    ("API_WS_URL", "http://localhost/printer"),
    ("API_WS_URL", "ws:///printer"),
    ("PRINTER_CONNECTION", "bluetooth"),
    ("FLUSH_TIMEOUT", "0"),
    ("LINE_WIDTH", "80"),
    ("LINE_WIDTH", "32"),
    ("TICKET_FORMAT", "fancy"),
    ("LOGO_PATH", "/nonexistent/logo.png"),
    ("KITCHEN_DELAY_MS", "-1"),
    ("BUZZER_POLICY", "sometimes"),
    ("QR_ERROR_CORRECTION", "X"),
    ("QR_CELL_SIZE", "0"),
])
def test_invalid_values_rejected(env, key, value):
    with pytest.raises(ValueError):
        env(**{key: value})


def test_usb_ids_must_be_hex(env):
    with pytest.raises(ValueError):
        env(PRINTER_CONNECTION="usb", PRINTER_VENDOR_ID="epson")


def test_summary_names_broker_endpoint(env):
    summary = str(env(API_WS_URL="wss://print.example.com/shop-1", PRINTER_TOKEN="secret"))

    assert "MQTT broker: wss://print.example.com:443" in summary
    assert "Token configured: True" in summary
    assert "secret" not in summary
