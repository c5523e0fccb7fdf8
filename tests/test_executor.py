"""Tests for the command executor, using in-memory escpos devices."""

import asyncio
import time

import pytest
from escpos.printer import Dummy

from ticket_printer.commands import BUZZER_SIGNAL, Align, Alignment, Clear, Cut, QR, Raw, TextLine, buzzer_sequence
from ticket_printer.errors import DeviceError, DeviceTimeout, NotConnected, RenderError
from ticket_printer.executor import CommandExecutor, PrinterStatus
from ticket_printer.jobs import JobKind


class SlowDevice:
    """Device whose writes block longer than any flush budget used here."""

    def __init__(self, delay: float):
        self.delay = delay
        self.written = b""

    def _raw(self, data: bytes):
        time.sleep(self.delay)
        self.written += data


class BrokenDevice:
    def _raw(self, data: bytes):
        raise OSError("device unplugged")


class TracingDevice:
    """Records the start and end of each write; the first write blocks."""

    def __init__(self, first_delay: float):
        self.first_delay = first_delay
        self.log = []

    def _raw(self, data: bytes):
        self.log.append(("start", data))
        if len(self.log) == 1:
            time.sleep(self.first_delay)
        self.log.append(("end", data))

    def close(self):
        self.log.append(("close", b""))


class UnknownCommand:
    pass


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def device():
    return Dummy()


class TestExecute:
    def test_buzzer_writes_exact_bytes(self, device):
        executor = CommandExecutor(device=device)

        written = run(executor.execute(buzzer_sequence(), require_connection=False))

        assert device.output == b"\x1b\x42\x02\x02" == BUZZER_SIGNAL
        assert written == 4

    def test_text_and_alignment(self, device):
        executor = CommandExecutor(device=device)

        run(executor.execute([Clear(), Align(Alignment.CENTER), TextLine("Hola"), Cut()]))

        assert b"\x1ba\x01" in device.output
        assert b"Hola\n" in device.output
        assert device.output.index(b"\x1ba\x01") < device.output.index(b"Hola")

    def test_clear_drops_staged_commands(self, device):
        executor = CommandExecutor(device=device)

        run(executor.execute([TextLine("borrador"), Clear(), TextLine("final")]))

        assert b"borrador" not in device.output
        assert b"final\n" in device.output

    def test_qr_is_printed_as_raster_image(self, device):
        executor = CommandExecutor(device=device)
        executor.qr_native = False

        run(executor.execute([Clear(), QR("https://x/1", 4)]))

        assert b"\x1dv0" in device.output

    def test_rendered_receipt_reaches_device(self, device, renderer, ticket):
        executor = CommandExecutor(device=device, line_width=48)

        run(executor.execute(renderer.render(JobKind.CUSTOMER_RECEIPT, ticket)))

        assert b"Venta #100" in device.output
        assert b"Total: $30.00" in device.output
        assert executor.print_stats["successful_jobs"] == 1


class TestFailures:
    def test_not_connected_writes_nothing(self, device):
        executor = CommandExecutor(device=device, probe=lambda: False)

        with pytest.raises(NotConnected):
            run(executor.execute([Clear(), TextLine("Hola")]))

        assert device.output == b""
        assert executor.current_status == PrinterStatus.OFFLINE
        assert executor.print_stats["failed_jobs"] == 1

    def test_probe_is_checked_on_every_call(self, device):
        answers = iter([True, False])
        executor = CommandExecutor(device=device, probe=lambda: next(answers))

        run(executor.execute([TextLine("uno")]))
        with pytest.raises(NotConnected):
            run(executor.execute([TextLine("dos")]))

        assert b"uno" in device.output
        assert b"dos" not in device.output

    def test_ungated_signal_skips_probe(self, device):
        executor = CommandExecutor(device=device, probe=lambda: False)

        run(executor.execute(buzzer_sequence(), require_connection=False))

        assert device.output == BUZZER_SIGNAL

    def test_unknown_command_writes_nothing(self, device):
        executor = CommandExecutor(device=device)

        with pytest.raises(RenderError):
            run(executor.execute([TextLine("antes"), UnknownCommand()]))

        assert device.output == b""

    def test_flush_timeout(self):
        device = SlowDevice(delay=0.5)
        executor = CommandExecutor(device=device, flush_timeout=0.05)

        with pytest.raises(DeviceTimeout):
            run(executor.execute([Raw(b"\x1b@")]))

        assert not executor.is_connected

    def test_write_error(self):
        executor = CommandExecutor(device=BrokenDevice())

        with pytest.raises(DeviceError):
            run(executor.execute([Raw(b"\x1b@")]))

    def test_timed_out_write_blocks_later_writes(self):
        device = TracingDevice(first_delay=0.3)
        executor = CommandExecutor(device=device, flush_timeout=0.05)
        lock = asyncio.Lock()

        async def scenario():
            async with lock:
                with pytest.raises(DeviceTimeout):
                    await executor.execute([Raw(b"AAAAAAAA")])

            async with lock:
                assert executor.write_pending
                assert await executor.probe() is False
                with pytest.raises(DeviceTimeout):
                    await executor.execute([Raw(b"BBBBBBBB")])
                with pytest.raises(DeviceTimeout):
                    await executor.execute(buzzer_sequence(), require_connection=False)

            await asyncio.sleep(0.4)
            assert not executor.write_pending

            async with lock:
                await executor.execute([Raw(b"CCCCCCCC")])

        run(scenario())

        assert device.log == [
            ("start", b"AAAAAAAA"),
            ("end", b"AAAAAAAA"),
            ("start", b"CCCCCCCC"),
            ("end", b"CCCCCCCC"),
        ]
        assert executor.get_status()["write_pending"] is False

    def test_owned_handle_closed_after_timed_out_write_returns(self):
        device = TracingDevice(first_delay=0.3)
        executor = CommandExecutor(device=device, flush_timeout=0.05)
        executor._owns_device = True

        async def scenario():
            with pytest.raises(DeviceTimeout):
                await executor.execute([Raw(b"AAAAAAAA")])
            executor.disconnect()
            assert device.log == [("start", b"AAAAAAAA")]
            await asyncio.sleep(0.4)

        run(scenario())

        assert device.log == [("start", b"AAAAAAAA"), ("end", b"AAAAAAAA"), ("close", b"")]
        assert executor.device is None


class TestConnection:
    def test_dummy_connection_is_always_ready(self):
        executor = CommandExecutor(connection="dummy")

        assert executor.connect() is True
        assert isinstance(executor.device, Dummy)
        assert executor.get_status()["printer_status"] == PrinterStatus.READY

        executor.disconnect()
        assert executor.device is None
        assert executor.is_connected is False

    def test_file_connection_missing_device(self, monkeypatch, tmp_path):
        from ticket_printer import executor as executor_module

        monkeypatch.setattr(executor_module.config, "PRINTER_DEVICE_PATH", str(tmp_path / "lp0"))
        executor = CommandExecutor(connection="file")

        assert executor.connect() is False
        assert executor.get_status()["printer_online"] is False
