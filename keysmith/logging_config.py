import logging
import os
import sys
from typing import List, Optional, TextIO

from tqdm import tqdm

LOGGER_NAME = 'keysmith'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class TqdmLoggingHandler(logging.Handler):
    """
    Writes records through ``tqdm.write`` so they print above an active
    progress bar instead of breaking it.
    """

    def __init__(self, level=logging.NOTSET, stream: Optional[TextIO] = None):
        super().__init__(level)
        self.stream = stream

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=self.stream or sys.stderr)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def _build_handlers(log_file_path: Optional[str], log_to_console: bool) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if log_file_path:
        os.makedirs(os.path.dirname(log_file_path) or '.', exist_ok=True)
        handlers.append(logging.FileHandler(log_file_path, encoding='utf-8'))
    if log_to_console:
        handlers.append(TqdmLoggingHandler())
    return handlers


def setup_logger(log_level_str: str, log_file_path: Optional[str], log_to_console: bool) -> logging.Logger:
    """
    Configure the ``keysmith`` logger that every module logs through.

    Calling it again replaces the previous handlers, closing them first.

    Args:
        log_level_str: Level name such as ``'INFO'``; unknown names fall back to INFO.
        log_file_path: Log file to append to, or None for no file logging.
        log_to_console: Also log to stderr through tqdm.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = getattr(logging, str(log_level_str).upper(), None)
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in _build_handlers(log_file_path, log_to_console):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
