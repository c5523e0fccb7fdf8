"""
Command executor for the ticket printer client.
Owns the printer device handle and applies command sequences to it with
ESC/POS encoding: clear, emit into a staging buffer, flush to the device.
"""

import asyncio
import os
import time
from typing import Any, Callable, Dict, Iterable, Optional

import usb.core
from escpos.printer import Dummy, File, Usb
from escpos.exceptions import DeviceNotFoundError, USBNotFoundError, Error as ESCPOSError
from PIL import Image as PILImage

from .commands import Align, Clear, Cut, Emphasis, Image, PrinterCommand, QR, Raw, Rule, TextLine
from .config import config
from .errors import DeviceError, DeviceTimeout, NotConnected, RenderError
from .qr_generator import QRGenerator, qr_generator
from .utils.formatting import generate_line_pattern
from .utils.logger import logger


class PrinterStatus:
    """Printer status constants."""
    READY = "ready"
    OFFLINE = "offline"


class CommandExecutor:
    """
    Single owner of the printer device.

    ``execute`` is not reentrant; callers must serialize access (the job
    sequencer holds a lock around every call).
    """

    def __init__(self, device: Any = None, connection: Optional[str] = None,
                 probe: Optional[Callable[[], bool]] = None,
                 flush_timeout: Optional[float] = None,
                 qr: Optional[QRGenerator] = None,
                 line_width: Optional[int] = None):
        self.device = device
        self._owns_device = device is None
        self.connection = connection or ("dummy" if device is not None else config.PRINTER_CONNECTION)
        self.profile = config.PRINTER_PROFILE or None
        self.flush_timeout = flush_timeout or config.FLUSH_TIMEOUT
        self.qr_generator = qr or qr_generator
        self.qr_native = config.QR_NATIVE
        self.line_width = line_width or config.LINE_WIDTH
        self.rule_style = config.RULE_STYLE
        self._probe = probe or self._probe_device
        self._stale_write: Optional[asyncio.Future] = None

        self.is_connected = False
        self.current_status = PrinterStatus.OFFLINE

        # Print statistics
        self.print_stats = {
            "total_jobs": 0,
            "successful_jobs": 0,
            "failed_jobs": 0,
            "last_print_time": None,
        }

        self._emitters = {
            Clear: self._emit_clear,
            Align: self._emit_align,
            Emphasis: self._emit_emphasis,
            TextLine: self._emit_text,
            Rule: self._emit_rule,
            QR: self._emit_qr,
            Image: self._emit_image,
            Raw: self._emit_raw,
            Cut: self._emit_cut,
        }

    def connect(self) -> bool:
        """
        Open the printer device.

        Returns:
            True if the device is reachable, False otherwise
        """
        logger.info("🔌 Connecting to printer", connection=self.connection)
        connected = self._probe()
        self._set_connected(connected)
        if connected:
            logger.info("✅ Printer connected")
        else:
            logger.warning("⚠️ Printer not reachable, jobs will fail until it is")
        return connected

    def disconnect(self):
        """Close the printer device."""
        if self.write_pending:
            # Closed by _on_stale_write_done once the write returns
            logger.warning("⚠️ Timed-out write still running, device close deferred")
        elif self._owns_device:
            self._discard_device()
        self._set_connected(False)
        logger.info("🔌 Printer disconnected")

    @property
    def write_pending(self) -> bool:
        """A timed-out write is still running in its thread."""
        return self._stale_write is not None and not self._stale_write.done()

    async def probe(self) -> bool:
        """Check connectivity right now; the result is never cached for later jobs."""
        if self.write_pending:
            self._set_connected(False)
            return False
        connected = await asyncio.to_thread(self._probe)
        self._set_connected(connected)
        return connected

    async def execute(self, commands: Iterable[PrinterCommand], require_connection: bool = True) -> int:
        """
        Apply a command sequence to the printer.

        Args:
            commands: Ordered printer commands
            require_connection: Probe the printer first and fail fast if offline

        Returns:
            Number of bytes written to the device

        Raises:
            NotConnected: If the printer is unreachable (nothing is written)
            DeviceTimeout: If the flush exceeds its time budget, or an earlier
                timed-out write has not returned yet
            DeviceError: If the device rejects the write
            RenderError: If a command cannot be encoded
        """
        commands = list(commands)
        self.print_stats["total_jobs"] += 1

        try:
            if self.write_pending:
                raise DeviceTimeout("Previous write has not returned yet")

            if require_connection and not await self.probe():
                raise NotConnected("Printer is not connected")

            data = self._stage(commands)
            await self._flush(data)

        except Exception:
            self.print_stats["failed_jobs"] += 1
            raise

        self.print_stats["successful_jobs"] += 1
        self.print_stats["last_print_time"] = time.time()
        logger.debug("🖨️ Commands flushed", commands=len(commands), bytes=len(data))
        return len(data)

    def _stage(self, commands) -> bytes:
        """Encode commands into a staging buffer so nothing partial reaches the device."""
        staging = Dummy(profile=self.profile) if self.profile else Dummy()

        for index, command in enumerate(commands):
            emitter = self._emitters.get(type(command))
            if emitter is None:
                raise RenderError(f"Unknown printer command at {index}: {command!r}")
            try:
                emitter(staging, command)
            except (ESCPOSError, OSError, ValueError) as e:
                raise RenderError(f"Cannot encode {type(command).__name__} at {index}: {str(e)}")

        return staging.output

    async def _flush(self, data: bytes):
        if not data:
            return
        write = asyncio.ensure_future(asyncio.to_thread(self._write, data))
        try:
            await asyncio.wait_for(asyncio.shield(write), timeout=self.flush_timeout)
        except asyncio.TimeoutError:
            # The thread cannot be interrupted; the device stays busy until it returns
            logger.error(f"❌ Flush timed out after {self.flush_timeout}s")
            self._stale_write = write
            write.add_done_callback(self._on_stale_write_done)
            self._set_connected(False)
            raise DeviceTimeout(f"Flush exceeded {self.flush_timeout}s")

    def _write(self, data: bytes):
        if self.device is None:
            raise NotConnected("Printer device is not open")
        try:
            self.device._raw(data)
            if hasattr(self.device, "flush"):
                self.device.flush()
        except (ESCPOSError, OSError) as e:
            if self._owns_device:
                self._discard_device()
            raise DeviceError(f"Write failed: {str(e)}")

    def _on_stale_write_done(self, write: asyncio.Future):
        self._stale_write = None
        if not write.cancelled() and write.exception() is not None:
            logger.debug(f"🔍 Timed-out write failed: {str(write.exception())}")
        else:
            logger.info("🖨️ Timed-out write returned, device released")
        # Reopened by the next probe
        if self._owns_device:
            self._discard_device()

    # Command emitters

    def _emit_clear(self, staging: Dummy, command: Clear):
        staging.clear()

    def _emit_align(self, staging: Dummy, command: Align):
        staging.set(align=command.alignment.value)

    def _emit_emphasis(self, staging: Dummy, command: Emphasis):
        staging.set(bold=command.on)

    def _emit_text(self, staging: Dummy, command: TextLine):
        staging.textln(command.text)

    def _emit_rule(self, staging: Dummy, command: Rule):
        staging.textln(generate_line_pattern(self.rule_style, self.line_width))

    def _emit_qr(self, staging: Dummy, command: QR):
        if self.qr_native:
            staging.qr(command.payload, size=command.cell_size, native=True)
        else:
            staging.image(self.qr_generator.generate_image(command.payload, command.cell_size))

    def _emit_image(self, staging: Dummy, command: Image):
        with PILImage.open(command.ref) as img:
            staging.image(img.convert("1"))

    def _emit_raw(self, staging: Dummy, command: Raw):
        staging._raw(command.data)

    def _emit_cut(self, staging: Dummy, command: Cut):
        staging.cut()

    # Device handling

    def _probe_device(self) -> bool:
        """Check the physical link, then make sure the handle is open."""
        if self.connection == "dummy":
            if self.device is None:
                self.device = Dummy()
            return True

        if self.connection == "file":
            if not os.path.exists(config.PRINTER_DEVICE_PATH):
                self._discard_device()
                return False

        elif self.connection == "usb":
            try:
                found = usb.core.find(idVendor=int(config.PRINTER_VENDOR_ID, 16),
                                      idProduct=int(config.PRINTER_PRODUCT_ID, 16))
            except usb.core.NoBackendError as e:
                logger.error(f"❌ No USB backend available: {str(e)}")
                return False
            if found is None:
                self._discard_device()
                return False

        return self._ensure_open()

    def _ensure_open(self) -> bool:
        if self.device is not None:
            return True

        try:
            device = self._create_device()
            device.open(raise_not_found=True)
        except (DeviceNotFoundError, USBNotFoundError, ESCPOSError, OSError) as e:
            logger.debug(f"🔍 Printer open failed: {str(e)}")
            return False

        self.device = device
        logger.info("✅ Printer device opened", connection=self.connection)
        return True

    def _create_device(self):
        kwargs = {"profile": self.profile} if self.profile else {}
        if self.connection == "file":
            return File(devfile=config.PRINTER_DEVICE_PATH, **kwargs)
        return Usb(int(config.PRINTER_VENDOR_ID, 16), int(config.PRINTER_PRODUCT_ID, 16), **kwargs)

    def _discard_device(self):
        if self.device is None:
            return
        try:
            if hasattr(self.device, "close"):
                self.device.close()
        except (ESCPOSError, OSError) as e:
            logger.debug(f"🔍 Disconnect error: {str(e)}")
        finally:
            self.device = None

    def _set_connected(self, connected: bool):
        if connected != self.is_connected:
            logger.printer_status(PrinterStatus.READY if connected else PrinterStatus.OFFLINE)
        self.is_connected = connected
        self.current_status = PrinterStatus.READY if connected else PrinterStatus.OFFLINE

    def get_status(self) -> Dict[str, Any]:
        """Last known printer status and statistics."""
        return {
            "printer_online": self.is_connected,
            "printer_status": self.current_status,
            "connection": self.connection,
            "write_pending": self.write_pending,
            "print_stats": self.print_stats.copy(),
        }
