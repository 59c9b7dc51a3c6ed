"""Tests for events, progress aggregation and cancellation."""
import asyncio
from pathlib import Path

import pytest
from unittest.mock import Mock

from batch_uploader.errors import UploadAbortedError
from batch_uploader.models import FileState
from batch_uploader.utils.cancellation import CancellationSignal
from batch_uploader.utils.events import EventEmitter, FileProgress, ProgressAggregator


class TestEventEmitter:
    def test_emit_calls_listeners(self):
        emitter = EventEmitter()
        listener = Mock()
        emitter.on("progress", listener)
        emitter.on("progress", listener)  # duplicate ignored

        emitter.emit("progress", 5)

        listener.assert_called_once_with(5)

    def test_off(self):
        emitter = EventEmitter()
        listener = Mock()
        emitter.on("progress", listener)
        emitter.off("progress", listener)

        emitter.emit("progress", 5)

        listener.assert_not_called()

    def test_listener_error_is_contained(self):
        emitter = EventEmitter()
        after = Mock()
        emitter.on("progress", Mock(side_effect=ValueError("bad")))
        emitter.on("progress", after)

        emitter.emit("progress", 1)

        after.assert_called_once_with(1)


class TestProgressAggregator:
    def test_total_is_sum_of_files(self):
        reported = []
        aggregator = ProgressAggregator(reported.append)
        a = aggregator.track(Path("a"), 100)
        b = aggregator.track(Path("b"), 50)

        aggregator.add(a, 30)
        aggregator.add(b, 20)
        aggregator.add(a, 10)

        assert aggregator.total == a.bytes_uploaded + b.bytes_uploaded == 60
        assert reported == [30, 50, 60]

    def test_rollback_resets_file(self):
        reported = []
        aggregator = ProgressAggregator(reported.append)
        a = aggregator.track(Path("a"), 100)
        b = aggregator.track(Path("b"), 100)
        aggregator.add(a, 40)
        aggregator.add(b, 15)

        assert aggregator.rollback(a) == 15
        assert a.bytes_uploaded == 0
        assert reported[-1] == 15
        assert len(aggregator.files) == 2

    def test_without_callback(self):
        aggregator = ProgressAggregator()
        a = aggregator.track(Path("a"), 10)
        assert aggregator.add(a, 10) == 10


class TestFileProgress:
    def test_percent(self):
        progress = FileProgress(file_path=Path("a"), total_bytes=200, bytes_uploaded=50)
        assert progress.percent == 25.0

    def test_percent_of_empty_file(self):
        progress = FileProgress(file_path=Path("a"), total_bytes=0)
        assert progress.percent == 0.0
        progress.state = FileState.SUCCEEDED
        assert progress.percent == 100.0


class TestCancellationSignal:
    def test_initial_state(self):
        signal = CancellationSignal()
        assert signal.aborted is False
        assert signal.reason is None
        signal.raise_if_aborted()

    def test_first_reason_wins(self):
        signal = CancellationSignal()
        signal.abort("first")
        signal.abort("second")
        assert signal.reason == "first"

    def test_error_wraps_plain_reason(self):
        signal = CancellationSignal()
        signal.abort("stop")
        error = signal.error()
        assert isinstance(error, UploadAbortedError)
        assert error.reason == "stop"
        assert signal.is_cancellation(error)

    def test_error_keeps_exception_reason(self):
        reason = TimeoutError("deadline")
        signal = CancellationSignal()
        signal.abort(reason)
        with pytest.raises(TimeoutError) as exc_info:
            signal.raise_if_aborted()
        assert exc_info.value is reason
        assert signal.is_cancellation(reason)
        assert not signal.is_cancellation(TimeoutError("other"))

    def test_error_wraps_base_exception_reason(self):
        reason = KeyboardInterrupt()
        signal = CancellationSignal()
        signal.abort(reason)
        error = signal.error()
        assert isinstance(error, UploadAbortedError)
        assert error.reason is reason
        assert str(error) == "Aborted"
        assert signal.is_cancellation(error)

    @pytest.mark.asyncio
    async def test_wait_wakes_on_abort(self):
        signal = CancellationSignal()
        waiter = asyncio.create_task(signal.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        signal.abort()
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_after_abort_returns(self):
        signal = CancellationSignal()
        signal.abort()
        await asyncio.wait_for(signal.wait(), timeout=1)
