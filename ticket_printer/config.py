"""
Configuration management for the ticket printer client.
Handles loading and validation of environment variables and settings.
"""

import os
import uuid
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# Inter-document delay per ticket format, in milliseconds
DEFAULT_KITCHEN_DELAYS_MS = {
    "legacy": 300,
    "standard": 1000,
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes", "on")


class Config:
    """Configuration class for the printer client."""

    def __init__(self):
        self._load_config()
        self._validate_config()

    def _load_config(self):
        """Load configuration from environment variables."""

        # Transport Configuration
        self.API_WS_URL = os.getenv("API_WS_URL", "ws://localhost:8080/printer")
        self.PRINTER_TOKEN = os.getenv("PRINTER_TOKEN", "")
        self.TRANSPORT_KEEPALIVE = int(os.getenv("TRANSPORT_KEEPALIVE", "60"))
        self.TRANSPORT_WS_PATH = os.getenv("TRANSPORT_WS_PATH", "/mqtt")
        self.PUBLISH_JOB_STATUS = _env_bool("PUBLISH_JOB_STATUS", "false")

        client_id = os.getenv("CLIENT_ID", "auto")
        if client_id == "auto":
            # Stable id derived from the host MAC address
            self.CLIENT_ID = f"ticket-printer-{self._generate_host_id()}"
        else:
            self.CLIENT_ID = client_id

        # Printer Configuration
        self.PRINTER_CONNECTION = os.getenv("PRINTER_CONNECTION", "usb").lower()
        self.PRINTER_VENDOR_ID = os.getenv("PRINTER_VENDOR_ID", "0x04b8")
        self.PRINTER_PRODUCT_ID = os.getenv("PRINTER_PRODUCT_ID", "0x0202")
        self.PRINTER_DEVICE_PATH = os.getenv("PRINTER_DEVICE_PATH", "/dev/usb/lp0")
        self.PRINTER_PROFILE = os.getenv("PRINTER_PROFILE", "")
        self.FLUSH_TIMEOUT = float(os.getenv("FLUSH_TIMEOUT", "5.0"))

        # Layout Configuration
        self.LINE_WIDTH = int(os.getenv("LINE_WIDTH", "48"))
        self.RULE_STYLE = os.getenv("RULE_STYLE", "dashed")
        self.TICKET_FORMAT = os.getenv("TICKET_FORMAT", "standard").lower()
        self.SHOW_TAX = _env_bool("SHOW_TAX", "true")
        self.LOGO_PATH = os.getenv("LOGO_PATH", "")

        # Job Sequencing Configuration
        self.KITCHEN_TICKET_ENABLED = _env_bool("KITCHEN_TICKET_ENABLED", "true")
        kitchen_delay = os.getenv("KITCHEN_DELAY_MS", "")
        if kitchen_delay:
            self.KITCHEN_DELAY_MS = int(kitchen_delay)
        else:
            self.KITCHEN_DELAY_MS = DEFAULT_KITCHEN_DELAYS_MS.get(self.TICKET_FORMAT, 1000)
        self.BUZZER_POLICY = os.getenv("BUZZER_POLICY", "ungated").lower()

        # System Configuration
        self.DEBUG_MODE = _env_bool("DEBUG_MODE", "false")
        self.STATUS_INTERVAL = int(os.getenv("STATUS_INTERVAL", "60"))

        # QR Code Configuration
        self.QR_CELL_SIZE = int(os.getenv("QR_CELL_SIZE", "6"))
        self.QR_ERROR_CORRECTION = os.getenv("QR_ERROR_CORRECTION", "M")
        self.QR_BORDER = int(os.getenv("QR_BORDER", "4"))
        self.QR_NATIVE = _env_bool("QR_NATIVE", "false")

        # Logging Configuration
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_FILE = os.getenv("LOG_FILE", "printer_client.log")
        self.LOG_MAX_SIZE = os.getenv("LOG_MAX_SIZE", "10MB")
        self.LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

        # Derived configurations
        endpoint = urlparse(self.API_WS_URL)
        self.TRANSPORT_SCHEME = endpoint.scheme.lower()
        self.TRANSPORT_HOST = endpoint.hostname or ""
        self.TRANSPORT_PORT = endpoint.port or self._default_port(self.TRANSPORT_SCHEME)
        self.TOPIC_PREFIX = endpoint.path.strip("/") or "printer"

    def _generate_host_id(self) -> str:
        """Generate a consistent host id based on the MAC address."""
        return f"{uuid.getnode():012x}".upper()

    @staticmethod
    def _default_port(scheme: str) -> int:
        return {"mqtt": 1883, "mqtts": 8883, "ws": 80, "wss": 443}.get(scheme, 1883)

    def _validate_config(self):
        """Validate configuration values."""

        # Validate transport configuration
        if self.TRANSPORT_SCHEME not in ["mqtt", "mqtts", "ws", "wss"]:
            raise ValueError("API_WS_URL scheme must be mqtt, mqtts, ws or wss")

        if not self.TRANSPORT_HOST:
            raise ValueError("API_WS_URL must include a host")

        if not (1 <= self.TRANSPORT_PORT <= 65535):
            raise ValueError("API_WS_URL port must be between 1 and 65535")

        # Validate printer configuration
        if self.PRINTER_CONNECTION not in ["usb", "file", "dummy"]:
            raise ValueError("PRINTER_CONNECTION must be usb, file or dummy")

        if self.PRINTER_CONNECTION == "usb":
            try:
                int(self.PRINTER_VENDOR_ID, 16)
                int(self.PRINTER_PRODUCT_ID, 16)
            except ValueError:
                raise ValueError("PRINTER_VENDOR_ID and PRINTER_PRODUCT_ID must be hex ids")

        if self.PRINTER_CONNECTION == "file" and not self.PRINTER_DEVICE_PATH:
            raise ValueError("PRINTER_DEVICE_PATH is required for file connections")

        if self.FLUSH_TIMEOUT <= 0:
            raise ValueError("FLUSH_TIMEOUT must be positive")

        # Validate layout configuration
        if not (32 <= self.LINE_WIDTH <= 64):
            raise ValueError("LINE_WIDTH must be between 32 and 64")

        if self.TICKET_FORMAT not in DEFAULT_KITCHEN_DELAYS_MS:
            raise ValueError("TICKET_FORMAT must be standard or legacy")

        # Item table columns need 42 characters
        if self.TICKET_FORMAT == "standard" and self.LINE_WIDTH < 42:
            raise ValueError("LINE_WIDTH must be at least 42 for the standard ticket format")

        if self.LOGO_PATH and not os.path.isfile(self.LOGO_PATH):
            raise ValueError(f"LOGO_PATH does not exist: {self.LOGO_PATH}")

        # Validate sequencing configuration
        if not (0 <= self.KITCHEN_DELAY_MS <= 10000):
            raise ValueError("KITCHEN_DELAY_MS must be between 0 and 10000")

        if self.BUZZER_POLICY not in ["gated", "ungated"]:
            raise ValueError("BUZZER_POLICY must be gated or ungated")

        # Validate QR configuration
        if self.QR_ERROR_CORRECTION not in ["L", "M", "Q", "H"]:
            raise ValueError("QR_ERROR_CORRECTION must be L, M, Q, or H")

        if not (0 <= self.QR_BORDER <= 20):
            raise ValueError("QR_BORDER must be between 0 and 20")

        if not (1 <= self.QR_CELL_SIZE <= 16):
            raise ValueError("QR_CELL_SIZE must be between 1 and 16")

    @property
    def kitchen_delay(self) -> float:
        """Inter-document delay in seconds."""
        return self.KITCHEN_DELAY_MS / 1000.0

    def topic(self, event: str) -> str:
        """Topic carrying the given event name."""
        return f"{self.TOPIC_PREFIX}/{event}"

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"""
Ticket Printer Configuration:
=============================
MQTT broker: {self.TRANSPORT_SCHEME}://{self.TRANSPORT_HOST}:{self.TRANSPORT_PORT}
Topic prefix: {self.TOPIC_PREFIX}
Client ID: {self.CLIENT_ID}
Token configured: {bool(self.PRINTER_TOKEN)}
Printer: {self.PRINTER_CONNECTION}
Flush timeout: {self.FLUSH_TIMEOUT}s
Ticket format: {self.TICKET_FORMAT}
Kitchen ticket: {self.KITCHEN_TICKET_ENABLED} (delay {self.KITCHEN_DELAY_MS}ms)
Buzzer policy: {self.BUZZER_POLICY}
Debug Mode: {self.DEBUG_MODE}
"""


# Global configuration instance
config = Config()
