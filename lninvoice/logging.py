# Copyright (C) 2019 The Electrum developers
# Distributed under the MIT software license, see the accompanying
# file LICENCE or http://www.opensource.org/licenses/mit-license.php

import logging
import sys
import copy
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .simple_config import SimpleConfig


class LogFormatterForConsole(logging.Formatter):

    def format(self, record):
        return super().format(_shorten_name_of_logrecord(record))


# short console lines: no timestamp, one-letter levelname, no "lninvoice." prefix
console_formatter = LogFormatterForConsole(fmt="%(levelname).1s | %(name)s | %(message)s")


def _shorten_name_of_logrecord(record: logging.LogRecord) -> logging.LogRecord:
    record = copy.copy(record)  # avoid mutating arg
    if record.name.startswith("lninvoice."):
        record.name = record.name[len("lninvoice."):]
    return record


root_logger = logging.getLogger()

# No handler is installed at import time. Applications embedding the library
# attach their own, or call configure_logging.
lninvoice_logger = logging.getLogger("lninvoice")
lninvoice_logger.setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    if name.startswith("lninvoice."):
        name = name[len("lninvoice."):]
    return lninvoice_logger.getChild(name)


_logger = get_logger(__name__)
_logger.setLevel(logging.INFO)


console_stderr_handler = None
def _configure_stderr_logging(*, verbosity=None):
    # by default only WARNING and higher reach stderr
    global console_stderr_handler
    if console_stderr_handler is not None:
        _logger.warning("stderr handler already exists")
        return
    console_stderr_handler = logging.StreamHandler(sys.stderr)
    console_stderr_handler.setFormatter(console_formatter)
    if not verbosity:
        console_stderr_handler.setLevel(logging.WARNING)
    else:
        console_stderr_handler.setLevel(logging.DEBUG)
        _process_verbosity_log_levels(verbosity)
    root_logger.addHandler(console_stderr_handler)


def _process_verbosity_log_levels(verbosity):
    """Applies a filter string such as 'debug,lnaddr=warning'.

    A bare level sets the 'lninvoice' logger, 'name=level' sets one child
    logger. '*' leaves all levels untouched.
    """
    if verbosity == '*' or not isinstance(verbosity, str):
        return
    for filt in verbosity.split(','):
        if not filt:
            continue
        items = filt.split('=')
        if len(items) == 1:
            lninvoice_logger.setLevel(items[0].upper())
        elif len(items) == 2:
            logger_name, level = items
            get_logger(logger_name).setLevel(level.upper())
        else:
            raise ValueError(f"invalid log filter: {filt!r}")


class Logger:
    """Mixin giving instances a `self.logger` named after their class."""

    def __init__(self):
        cls = self.__class__
        self.logger = get_logger(f"{cls.__module__}.{cls.__name__}")


def configure_logging(config: 'SimpleConfig') -> None:
    verbosity = config.LOG_VERBOSITY
    _configure_stderr_logging(verbosity=verbosity)

    from . import __version__
    _logger.info(f"lninvoice version: {__version__}")
    _logger.info(f"Python version: {sys.version}")
    _logger.info(f"Log filters: verbosity {verbosity!r}")
