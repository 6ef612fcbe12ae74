#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import logging
from typing import TextIO

# Just for reference, the predefined logging levels:
#
# syslog/CMC    Python         added to Python
# --------------------------------------------
# crit   2      CRITICAL 50
# err    3      ERROR    40
# warn   4      WARNING  30                 <= default level in Python
# info   6      INFO     20
#                              VERBOSE  15
# debug  7      DEBUG    10
#
# The plug-ins print their diagnostics to stdout in front of the check
# result, so nothing must be logged to the console unless -v was given.

# We need an additional log level between INFO and DEBUG to reflect the
# -v and -vv switches of the plug-ins.
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("db2mon")


def get_formatter(
    format_str: str = "%(asctime)s [%(levelno)s] [%(name)s %(process)d] %(message)s",
) -> logging.Formatter:
    """Returns a new message formater instance that uses the standard
    log format by default. You can also set another format if you like."""
    return logging.Formatter(format_str)


def clear_console_logging() -> None:
    logger.handlers[:] = []
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.INFO)


# Set default logging handler to avoid "No handler found" warnings.
clear_console_logging()


def setup_console_logging(stream: TextIO, verbosity: int) -> None:
    """Write log messages to the plug-in output

    Without any additional information like date/time or logger name, just
    the log line is written. With verbosity 0 the console stays silent.
    """
    if not verbosity:
        clear_console_logging()
        return

    handler = logging.StreamHandler(stream=stream)
    handler.setFormatter(get_formatter("%(message)s"))
    handler.setLevel(verbosity_to_log_level(verbosity))

    del logger.handlers[:]  # Remove all previously existing handlers
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def verbosity_to_log_level(verbosity: int) -> int:
    """Values for "verbosity":

      0: enables INFO and above
      1: enables VERBOSE and above
      2: enables DEBUG and above (ALL messages)

    >>> verbosity_to_log_level(1)
    15
    >>> verbosity_to_log_level(5)
    10
    """
    match verbosity:
        case 0:
            return logging.INFO
        case 1:
            return VERBOSE
        case _ if verbosity >= 2:
            return logging.DEBUG
        case _:
            raise ValueError(f"Invalid verbosity: {verbosity}")
