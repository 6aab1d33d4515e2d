"""Logging setup for the harmonic mixer.

Environment:
    MIXER_LOG_LEVEL: Root level when no explicit level is passed (default INFO)
    MIXER_LOG_FILE: Also write to this file, rotated by size
    LOG_FILE_MAX_BYTES: Rotation size (default 10 MB)
    LOG_FILE_BACKUP_COUNT: Rotated files kept (default 5)
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

import colorlog

LOG_COLORS = {
    'DEBUG': 'bold_blue',
    'INFO': 'bold_green',
    'WARNING': 'bold_yellow',
    'ERROR': 'bold_red',
    'CRITICAL': 'bold_purple',
}


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once per process.

    Args:
        level: Overrides MIXER_LOG_LEVEL when given
    """
    root = logging.getLogger()
    root.setLevel((level or os.getenv('MIXER_LOG_LEVEL', 'INFO')).upper())

    if not root.hasHandlers():
        root.addHandler(_console_handler())

        log_file = os.getenv('MIXER_LOG_FILE')
        if log_file:
            root.addHandler(_file_handler(log_file))

    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(max(root.level, logging.WARNING))


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(levelname)s:%(name)s:%(message)s",
            log_colors=LOG_COLORS,
        )
    )
    return handler


def _file_handler(path: str) -> logging.Handler:
    handler = RotatingFileHandler(
        path,
        maxBytes=int(os.getenv('LOG_FILE_MAX_BYTES', '10485760')),  # 10 MB
        backupCount=int(os.getenv('LOG_FILE_BACKUP_COUNT', '5')),
    )
    handler.setFormatter(
        logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s - (%(filename)s:%(lineno)d)'
        )
    )
    return handler
