"""
Tests for logging setup.
"""
import logging
import os
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

import colorlog

from harmonic_mixer.logger import setup_logging


@contextmanager
def bare_root_logger():
    """Root logger with no handlers; previous state restored on exit."""
    root = logging.getLogger()
    httpx_logger = logging.getLogger("httpx")
    saved = root.handlers[:], root.level, httpx_logger.level
    root.handlers = []
    try:
        yield root
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers, level, httpx_level = saved
        root.setLevel(level)
        httpx_logger.setLevel(httpx_level)


def test_console_handler_and_level_from_environment():
    with bare_root_logger() as root, patch.dict(os.environ, {"MIXER_LOG_LEVEL": "warning"}, clear=True):
        setup_logging()

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, colorlog.ColoredFormatter)


def test_explicit_level_wins():
    with bare_root_logger() as root, patch.dict(os.environ, {"MIXER_LOG_LEVEL": "ERROR"}, clear=True):
        setup_logging("debug")

        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING


def test_file_handler(tmp_path):
    log_file = tmp_path / "mixer.log"
    env = {"MIXER_LOG_FILE": str(log_file), "LOG_FILE_MAX_BYTES": "1024", "LOG_FILE_BACKUP_COUNT": "2"}

    with bare_root_logger() as root, patch.dict(os.environ, env, clear=True):
        setup_logging()

        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024
        assert file_handlers[0].backupCount == 2

        logging.getLogger("harmonic_mixer.test").info("hello")
        file_handlers[0].flush()
        assert "hello" in log_file.read_text()
