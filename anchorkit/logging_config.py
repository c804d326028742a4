"""
Logging configuration for anchorkit

Includes IndentLogger, which renders nested operations (the resolver's
strategy chain, the batch loop) as a tree.
"""

import io
import logging
import sys
from contextlib import contextmanager

LOGGER_NAME = "anchorkit"


class IndentState:
    """Shared indentation state for tree-style logging"""

    PIPE = "│   "
    BRANCH = "├── "

    def __init__(self) -> None:
        self.depth = 0

    def push(self) -> None:
        self.depth += 1

    def pop(self) -> None:
        self.depth = max(0, self.depth - 1)

    def reset(self) -> None:
        """Drop all open blocks (useful for tests)"""
        self.depth = 0

    def prefix(self) -> str:
        """Indentation for a line logged at the current depth"""
        if not self.depth:
            return ""
        return self.PIPE * (self.depth - 1) + self.BRANCH


class IndentLogger:
    """Logger wrapper that prefixes messages with the current tree indentation"""

    def __init__(self, base_logger: logging.Logger, state: IndentState | None = None) -> None:
        self._logger = base_logger
        self.state = state or IndentState()

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._logger.debug(f"{self.indent}{msg}", *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._logger.info(f"{self.indent}{msg}", *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(f"{self.indent}{msg}", *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._logger.error(f"{self.indent}{msg}", *args, **kwargs)

    def is_enabled_for(self, level: int) -> bool:
        """True if messages at level would be emitted"""
        return self._logger.isEnabledFor(level)

    @property
    def indent(self) -> str:
        return self.state.prefix()

    @contextmanager
    def indent_block(self, initial_message: str | None = None):
        """
        Context manager for a nested block of log lines

        Args:
            initial_message: Optional debug message logged at the block's parent level
        """
        if initial_message:
            self.debug(initial_message)
        self.state.push()
        try:
            yield
        finally:
            self.state.pop()


def setup_logging(level=logging.INFO, stream=None):
    """
    Configure logging for anchorkit

    Args:
        level: Logging level (default: INFO)
        stream: Text stream for the handler (default: UTF-8 wrapper around stdout)

    Returns:
        IndentLogger: The shared package logger
    """
    base_logger = logging.getLogger(LOGGER_NAME)
    base_logger.setLevel(level)
    base_logger.handlers = []

    if stream is None:
        # UTF-8 regardless of console code page; tree characters are not ASCII
        stream = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(levelname)8s %(message)s"))
    base_logger.addHandler(handler)

    return logger


# Shared logger with indentation support
logger = IndentLogger(logging.getLogger(LOGGER_NAME))
