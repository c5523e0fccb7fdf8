"""
Logging utilities for the ticket printer client.
Provides structured logging with file rotation and console output.
"""

import logging
import logging.handlers
import sys
from typing import Optional

from ..config import config


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    # Color codes
    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        """Format log record with colors."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class PrinterLogger:
    """Printer-specific logger with enhanced formatting."""

    def __init__(self, name: str = "ticket_printer"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))

        # Prevent duplicate handlers
        if not self.logger.handlers:
            self._setup_handlers()

    def _setup_handlers(self):
        """Setup file and console handlers."""

        # File handler with rotation, disabled by an empty LOG_FILE
        if config.LOG_FILE:
            file_handler = logging.handlers.RotatingFileHandler(
                config.LOG_FILE,
                maxBytes=self._parse_size(config.LOG_MAX_SIZE),
                backupCount=config.LOG_BACKUP_COUNT
            )
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            self.logger.addHandler(file_handler)

        # Console handler with colors
        console_handler = logging.StreamHandler(sys.stdout)
        console_formatter = ColoredFormatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        console_handler.setFormatter(console_formatter)
        self.logger.addHandler(console_handler)

    def _parse_size(self, size_str: str) -> int:
        """Parse size string (e.g., '10MB') to bytes."""
        size_str = size_str.upper()

        if size_str.endswith('KB'):
            return int(size_str[:-2]) * 1024
        elif size_str.endswith('MB'):
            return int(size_str[:-2]) * 1024 * 1024
        elif size_str.endswith('GB'):
            return int(size_str[:-2]) * 1024 * 1024 * 1024
        else:
            return int(size_str)

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        """Log error message."""
        self.logger.error(self._format_message(message, **kwargs))

    def critical(self, message: str, **kwargs):
        """Log critical message."""
        self.logger.critical(self._format_message(message, **kwargs))

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with additional context."""
        if kwargs:
            context = " | ".join([f"{k}={v}" for k, v in kwargs.items()])
            return f"{message} | {context}"
        return message

    # Job lifecycle logging methods
    def job_queued(self, job_id: str, kind: str, order_id: str, queue_size: int):
        """Log print job admission."""
        self.info("📥 Job queued",
                  job_id=job_id,
                  kind=kind,
                  order_id=order_id,
                  queue_size=queue_size)

    def job_started(self, job_id: str, kind: str, order_id: str):
        """Log print job start."""
        self.info("🖨️ Print started",
                  job_id=job_id,
                  kind=kind,
                  order_id=order_id)

    def job_complete(self, job_id: str, kind: str, order_id: str, commands: int):
        """Log print job completion."""
        self.info("✅ Print completed",
                  job_id=job_id,
                  kind=kind,
                  order_id=order_id,
                  commands=commands)

    def job_failed(self, job_id: str, kind: str, order_id: str, error: str):
        """Log print job failure."""
        self.error("❌ Print error",
                   job_id=job_id,
                   kind=kind,
                   order_id=order_id,
                   error=error)

    def event_received(self, event: str, size: int):
        """Log inbound transport event."""
        self.debug("📨 Event received",
                   event=event,
                   size=size)

    def signal_sent(self, gated: bool):
        """Log hardware signal emission."""
        self.info("🔔 Buzzer signal sent",
                  gated=gated)

    def transport_connect(self, host: str, port: int):
        """Log transport connection."""
        self.info("🔌 Event channel connected",
                  host=host,
                  port=port)

    def transport_disconnect(self, reason: str = ""):
        """Log transport disconnection."""
        self.warning("🔌 Event channel disconnected",
                     reason=reason)

    def qr_generated(self, payload: str, cell_size: int):
        """Log QR code generation."""
        self.debug("🔲 QR generated",
                   payload=payload[:50] + "..." if len(payload) > 50 else payload,
                   cell_size=cell_size)

    def printer_status(self, status: str, details: Optional[dict] = None):
        """Log printer status."""
        if details:
            self.debug(f"🖨️ Printer status: {status}", **details)
        else:
            self.debug(f"🖨️ Printer status: {status}")

    def system_info(self, info: dict):
        """Log system information."""
        self.info("💻 System info", **info)


# Global logger instance
logger = PrinterLogger()
