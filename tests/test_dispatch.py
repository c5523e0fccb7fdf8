"""Tests for the event dispatch table."""

import asyncio

import pytest
from escpos.printer import Dummy

from ticket_printer.commands import BUZZER_SIGNAL, buzzer_sequence
from ticket_printer.dispatch import (
    EVENT_CHECK_CONNECTION,
    EVENT_EMIT_BUZZER,
    EVENT_PRINT_TICKET,
    EventDispatcher,
)
from ticket_printer.executor import CommandExecutor
from ticket_printer.jobs import JobKind, JobState, PrintJob
from ticket_printer.sequencer import JobSequencer

from conftest import RecordingExecutor, make_payload


def make_dispatcher(renderer, executor=None, buzzer_policy="ungated"):
    executor = executor or RecordingExecutor()
    sequencer = JobSequencer(executor, renderer, kitchen_delay=0, kitchen_enabled=True)
    return EventDispatcher(sequencer, buzzer_policy=buzzer_policy, show_tax_default=True), executor


class TestPrintTicket:
    def test_valid_payload_is_queued(self, renderer, payload):
        dispatcher, _ = make_dispatcher(renderer)

        job = asyncio.run(dispatcher.dispatch(EVENT_PRINT_TICKET, payload))

        assert isinstance(job, PrintJob)
        assert job.kind is JobKind.CUSTOMER_RECEIPT
        assert job.state is JobState.QUEUED
        assert job.document.order_id == "100"
        assert dispatcher.sequencer.queue_size == 1

    @pytest.mark.parametrize("payload", [
        None,
        "not an object",
        {"order": "100"},
        make_payload(items=[]),
        make_payload(total="n/a"),
    ])
    def test_invalid_payload_is_rejected(self, renderer, payload):
        dispatcher, executor = make_dispatcher(renderer)

        assert asyncio.run(dispatcher.dispatch(EVENT_PRINT_TICKET, payload)) is None
        assert dispatcher.sequencer.queue_size == 0
        assert executor.sequences == []

    def test_events_keep_arrival_order(self, renderer):
        dispatcher, _ = make_dispatcher(renderer)

        async def scenario():
            return await asyncio.gather(*[
                dispatcher.dispatch(EVENT_PRINT_TICKET, make_payload(order=str(n))) for n in range(3)
            ])

        jobs = asyncio.run(scenario())

        assert [job.order_id for job in jobs] == ["0", "1", "2"]
        assert [job.order_id for job in dispatcher.sequencer._queue] == ["0", "1", "2"]

    def test_end_to_end_print(self, renderer, payload):
        device = Dummy()
        executor = CommandExecutor(device=device, line_width=48)
        dispatcher, _ = make_dispatcher(renderer, executor=executor)

        async def scenario():
            await dispatcher.sequencer.start()
            job = await dispatcher.dispatch(EVENT_PRINT_TICKET, payload)
            await dispatcher.sequencer.join()
            await dispatcher.sequencer.stop()
            return job

        job = asyncio.run(scenario())
        output = device.output

        assert job.state is JobState.COMPLETED
        assert b"2x Taco" in output
        assert b"$30.00" in output
        assert b"Total: $30.00" in output
        # Kitchen ticket printed after the customer receipt
        assert output.index(b"COCINA") > output.index(b"Total: $30.00")


class TestSignals:
    def test_check_connection_when_offline(self, renderer):
        dispatcher, executor = make_dispatcher(renderer, RecordingExecutor(connectivity=[False]))

        assert asyncio.run(dispatcher.dispatch(EVENT_CHECK_CONNECTION)) is False
        assert executor.sequences == []

    def test_check_connection_when_online(self, renderer):
        dispatcher, executor = make_dispatcher(renderer)

        assert asyncio.run(dispatcher.dispatch(EVENT_CHECK_CONNECTION, {})) is True
        assert executor.sequences == [buzzer_sequence()]

    def test_ungated_buzzer_ignores_connectivity(self, renderer):
        dispatcher, executor = make_dispatcher(renderer, RecordingExecutor(connectivity=[False]))

        assert asyncio.run(dispatcher.dispatch(EVENT_EMIT_BUZZER)) is True
        assert executor.sequences == [buzzer_sequence()]

    def test_gated_buzzer_requires_connectivity(self, renderer):
        dispatcher, executor = make_dispatcher(renderer, RecordingExecutor(connectivity=[False]),
                                               buzzer_policy="gated")

        assert asyncio.run(dispatcher.dispatch(EVENT_EMIT_BUZZER)) is False
        assert executor.sequences == []

    def test_buzzer_bytes_on_device(self, renderer):
        device = Dummy()
        dispatcher, _ = make_dispatcher(renderer, CommandExecutor(device=device))

        assert asyncio.run(dispatcher.dispatch(EVENT_EMIT_BUZZER)) is True
        assert device.output == BUZZER_SIGNAL


class TestRouting:
    def test_handlers_cover_all_events(self, renderer):
        dispatcher, _ = make_dispatcher(renderer)
        assert set(dispatcher.handlers) == {EVENT_PRINT_TICKET, EVENT_CHECK_CONNECTION, EVENT_EMIT_BUZZER}

    def test_unknown_event_is_ignored(self, renderer, payload):
        dispatcher, executor = make_dispatcher(renderer)

        assert asyncio.run(dispatcher.dispatch("reboot", payload)) is None
        assert dispatcher.sequencer.queue_size == 0
        assert executor.sequences == []

    def test_unknown_buzzer_policy(self, renderer):
        with pytest.raises(ValueError):
            make_dispatcher(renderer, buzzer_policy="sometimes")
