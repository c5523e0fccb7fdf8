"""
Ticket Printer - Main Application
Receives print events over the event channel and prints customer receipts,
kitchen tickets and buzzer signals on a local ESC/POS printer.
"""

import asyncio
import platform
import signal
import sys
import time
from typing import Optional

import psutil

from .config import config
from .dispatch import EventDispatcher
from .executor import CommandExecutor
from .jobs import PrintJob
from .sequencer import JobSequencer
from .transport import EventChannelClient
from .utils.logger import logger


class PrinterClientApp:
    """Main application class for the ticket printer client."""

    def __init__(self):
        self.running = False
        self.startup_time = time.time()
        self.executor = CommandExecutor()
        self.sequencer = JobSequencer(self.executor, on_result=self._on_job_result)
        self.dispatcher = EventDispatcher(self.sequencer)
        self.transport: Optional[EventChannelClient] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._status_task: Optional[asyncio.Task] = None

    async def start(self) -> bool:
        """
        Start the printer client application.

        Returns:
            True if started successfully, False otherwise
        """
        logger.info("🚀 Starting ticket printer client...")
        logger.info(str(config))

        # Log system information
        self._log_system_info()

        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self._signal_handler, signum)

        # A missing printer is not fatal: every job re-checks connectivity
        await asyncio.to_thread(self.executor.connect)

        await self.sequencer.start()

        self.transport = EventChannelClient(self.dispatcher, loop)
        if not await asyncio.to_thread(self.transport.connect):
            logger.error("❌ Failed to connect to event channel")
            return False

        if config.DEBUG_MODE:
            self._status_task = asyncio.create_task(self._status_monitoring_loop())
            logger.info("📊 Status monitoring started")

        self.running = True
        logger.info("✅ Ticket printer client started successfully")
        logger.info(f"📡 Listening for events under: {config.TOPIC_PREFIX}/")
        return True

    async def stop(self):
        """Stop the printer client application."""
        logger.info("🛑 Stopping ticket printer client...")

        self.running = False

        if self._status_task:
            self._status_task.cancel()
            self._status_task = None

        # Stop accepting events first, then let the job in progress finish
        if self.transport:
            await asyncio.to_thread(self.transport.disconnect)

        await self.sequencer.stop()
        await asyncio.to_thread(self.executor.disconnect)

        logger.info("✅ Ticket printer client stopped")

    async def run(self) -> bool:
        """Run until a stop signal arrives."""
        try:
            if not await self.start():
                logger.error("❌ Failed to start application")
                return False

            await self._stop_event.wait()
        finally:
            await self.stop()

        return True

    def _on_job_result(self, job: PrintJob):
        if config.PUBLISH_JOB_STATUS and self.transport is not None:
            self.transport.publish_job_status(job)

    async def _status_monitoring_loop(self):
        """Status monitoring loop."""
        while self.running:
            self._log_status()
            await asyncio.sleep(config.STATUS_INTERVAL)

    def _log_system_info(self):
        """Log system information."""
        system_info = {
            "platform": platform.system(),
            "platform_version": platform.version(),
            "architecture": platform.machine(),
            "python_version": platform.python_version(),
            "cpu_count": psutil.cpu_count(),
            "memory_gb": round(psutil.virtual_memory().total / (1024**3), 2),
        }

        logger.system_info(system_info)

    def _log_status(self):
        """Log current status."""
        printer_status = self.executor.get_status()
        sequencer_status = self.sequencer.get_status()
        transport_info = self.transport.get_connection_info() if self.transport else {}

        status_info = {
            "uptime_seconds": int(time.time() - self.startup_time),
            "printer_connected": printer_status["printer_online"],
            "printer_status": printer_status["printer_status"],
            "channel_connected": transport_info.get("connected", False),
            "queue_size": sequencer_status["queue_size"],
            "jobs_completed": sequencer_status["stats"]["jobs_completed"],
            "jobs_failed": sequencer_status["stats"]["jobs_failed"],
            "memory_percent": psutil.virtual_memory().percent,
        }

        logger.info("📊 Status update", **status_info)

    def _signal_handler(self, signum):
        """Handle system signals."""
        logger.info(f"📝 Received signal {signum}")
        self.running = False
        self._stop_event.set()


def main():
    """Main entry point."""
    # Print startup banner
    print("=" * 60)
    print("🖨️  Ticket Printer Client")
    print("=" * 60)
    print(f"📱 Client ID: {config.CLIENT_ID}")
    print(f"🖨️  Printer: {config.PRINTER_CONNECTION}")
    print(f"📡 Endpoint: {config.API_WS_URL}")
    print(f"🧾 Format: {config.TICKET_FORMAT}")
    print("=" * 60)

    try:
        success = asyncio.run(PrinterClientApp().run())
    except KeyboardInterrupt:
        logger.info("📝 Received keyboard interrupt")
        success = True

    # Exit with appropriate code
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
