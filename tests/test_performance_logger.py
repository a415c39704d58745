"""
Test module for performance_logger.py
"""

import logging

import pytest

from table_reflow.performance_logger import LogContext, SamplingHandler, timed_operation


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def make_record(msg, level=logging.INFO):
    return logging.LogRecord("table_reflow.test", level, __file__, 1, msg, (), None)


class TestSamplingHandler:
    """Test cases for SamplingHandler."""

    @pytest.fixture
    def target(self):
        return ListHandler()

    def test_repeats_are_sampled(self, target):
        handler = SamplingHandler(target, sample_every=10)

        for i in range(25):
            handler.emit(make_record(f"Projected case: {i}"))

        assert [r.getMessage() for r in target.records] == [
            "Projected case: 0", "Projected case: 9", "Projected case: 19",
        ]

    def test_distinct_patterns_are_counted_separately(self, target):
        handler = SamplingHandler(target, sample_every=10)

        handler.emit(make_record("Merged (0, 0) into 2x2"))
        handler.emit(make_record("Split (0, 0) from 2x2"))

        assert len(target.records) == 2

    def test_warnings_always_pass(self, target):
        handler = SamplingHandler(target, sample_every=10)

        for _ in range(5):
            handler.emit(make_record("Skipping projection: bad", logging.WARNING))

        assert len(target.records) == 5

    def test_flush_summarizes_suppressed_repeats(self, target):
        handler = SamplingHandler(target, sample_every=10)
        for i in range(25):
            handler.emit(make_record(f"Projected case: {i}"))

        handler.flush()

        assert target.records[-1].getMessage() == "Projected case (repeated 25 times)"
        assert handler.suppressed == {}

    def test_sampling_disabled(self, target):
        handler = SamplingHandler(target, sample_every=1)

        for _ in range(4):
            handler.emit(make_record("same message"))
        handler.flush()

        assert len(target.records) == 4


class TestLogContext:
    """Test cases for LogContext."""

    def test_level_is_restored(self):
        logger = logging.getLogger("table_reflow.log_context_test")
        logger.setLevel(logging.DEBUG)

        with LogContext("table_reflow.log_context_test", logging.ERROR):
            assert logger.level == logging.ERROR

        assert logger.level == logging.DEBUG

    def test_level_is_restored_after_error(self):
        logger = logging.getLogger("table_reflow.log_context_test")
        logger.setLevel(logging.INFO)

        with pytest.raises(RuntimeError):
            with LogContext("table_reflow.log_context_test", logging.ERROR):
                raise RuntimeError("boom")

        assert logger.level == logging.INFO

    def test_several_loggers_and_nesting(self):
        engine = logging.getLogger("table_reflow.log_context_engine")
        checker = logging.getLogger("table_reflow.log_context_checker")
        engine.setLevel(logging.DEBUG)
        checker.setLevel(logging.NOTSET)

        with LogContext([engine.name, checker.name], logging.WARNING):
            with LogContext(engine.name, logging.ERROR):
                assert engine.level == logging.ERROR
            assert engine.level == logging.WARNING
            assert checker.level == logging.WARNING

        assert engine.level == logging.DEBUG
        assert checker.level == logging.NOTSET


class TestTimedOperation:
    """Test cases for the timed_operation decorator."""

    def test_slow_operation_is_logged(self, caplog):
        @timed_operation("Reflow", threshold=-1)
        def work():
            return 42

        with caplog.at_level(logging.INFO):
            assert work() == 42

        assert "Reflow took" in caplog.text

    def test_fast_operation_is_silent(self, caplog):
        @timed_operation("Reflow", threshold=60)
        def work():
            return 42

        with caplog.at_level(logging.INFO):
            work()

        assert "Reflow took" not in caplog.text

    def test_call_totals_are_kept(self):
        @timed_operation("Reflow", threshold=-1)
        def work():
            return 1

        work()
        work()

        assert work.stats["calls"] == 2
        assert work.stats["slow_calls"] == 2
        assert work.stats["total_seconds"] >= 0

    def test_wrapped_function_keeps_name(self):
        @timed_operation("Reflow")
        def reflow_rows():
            pass

        assert reflow_rows.__name__ == "reflow_rows"
