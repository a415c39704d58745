"""
Logging helpers for Table Reflow: a sampling handler that keeps repeated
per-cell and per-case messages from flooding the console, a context manager
for temporary log levels, and a decorator that reports slow operations.
"""

import logging
import threading
import time
from collections import defaultdict
from functools import wraps


class SamplingHandler(logging.Handler):
    """
    A logging handler that forwards the first occurrence of each message
    pattern and samples the repeats. Thread-safe.
    """

    def __init__(self, base_handler, sample_every=10):
        """
        Initialize the SamplingHandler.

        Args:
            base_handler: The underlying handler that actually writes records
            sample_every: Forward every Nth repeat of a pattern (1 disables sampling)
        """
        super().__init__()
        self.base_handler = base_handler
        self.sample_every = max(1, sample_every)
        self.lock = threading.RLock()
        self.message_count = defaultdict(int)
        self.suppressed = {}

    def setFormatter(self, formatter):
        """Set formatter for both this handler and the base handler."""
        super().setFormatter(formatter)
        self.base_handler.setFormatter(formatter)

    def setLevel(self, level):
        """Set level for both this handler and the base handler."""
        super().setLevel(level)
        self.base_handler.setLevel(level)

    @staticmethod
    def _pattern(record):
        # Text before the first ':', '(' or '[' identifies the message
        msg = record.getMessage()
        for sep in (":", "(", "["):
            if sep in msg:
                return msg.split(sep)[0].strip()
        return msg[:50]

    def _should_forward(self, record):
        if record.levelno >= logging.WARNING:
            return True

        pattern = self._pattern(record)
        with self.lock:
            self.message_count[pattern] += 1
            count = self.message_count[pattern]
            if count == 1 or count % self.sample_every == 0:
                return True
            self.suppressed[pattern] = record
            return False

    def emit(self, record):
        try:
            if self._should_forward(record):
                self.base_handler.emit(record)
        except Exception:
            self.handleError(record)

    def flush(self):
        """Emit one summary record per pattern that had repeats suppressed."""
        with self.lock:
            for pattern, record in self.suppressed.items():
                summary = logging.LogRecord(
                    name=record.name,
                    level=record.levelno,
                    pathname=record.pathname,
                    lineno=record.lineno,
                    msg=f"{pattern} (repeated {self.message_count[pattern]} times)",
                    args=(),
                    exc_info=None,
                )
                self.base_handler.emit(summary)
            self.suppressed.clear()
            self.message_count.clear()
        self.base_handler.flush()

    def close(self):
        self.flush()
        self.base_handler.close()
        super().close()


class LogContext:
    """
    Quiet or raise the level of one or more loggers for the length of a block.

    Levels are read on entry, so nested contexts over the same logger restore
    in the right order.
    """

    def __init__(self, logger_names, temp_level=None):
        if isinstance(logger_names, str):
            logger_names = [logger_names]
        self.loggers = [logging.getLogger(name) for name in logger_names]
        self.temp_level = temp_level
        self.saved_levels = []

    def __enter__(self):
        self.saved_levels = [logger.level for logger in self.loggers]
        if self.temp_level is not None:
            for logger in self.loggers:
                logger.setLevel(self.temp_level)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for logger, level in zip(self.loggers, self.saved_levels):
            logger.setLevel(level)


def timed_operation(operation_name, threshold=0.1):
    """
    Report calls of the decorated function that run longer than threshold.

    The wrapper keeps running totals in `wrapper.stats` ("calls", "slow_calls",
    "total_seconds") so batch runs can report where their time went.

    Args:
        operation_name: Label used in the log line
        threshold: Seconds a single call may take before it is logged
    """
    def decorator(func):
        logger = logging.getLogger(func.__module__)
        stats = {"calls": 0, "slow_calls": 0, "total_seconds": 0.0}

        @wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - started
                stats["calls"] += 1
                stats["total_seconds"] += elapsed
                if elapsed > threshold:
                    stats["slow_calls"] += 1
                    logger.info(
                        f"{operation_name} took {elapsed:.2f}s "
                        f"(call {stats['calls']}, {stats['total_seconds']:.2f}s so far)"
                    )

        wrapper.stats = stats
        return wrapper
    return decorator
