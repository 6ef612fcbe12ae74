#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Trace log of the plug-ins

Several plug-in runs may append to the same trace file at the same time.
All records of one run are collected in memory and appended with a single
write, so blocks of different runs never interleave.
"""

from __future__ import annotations

import datetime
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from db2mon.log import get_formatter, logger

TRACE_DIRECTORY = Path("/tmp")


def trace_file_for(program: str) -> Path:
    return TRACE_DIRECTORY / f"{program}.log"


class TraceRecorder(logging.Handler):
    def __init__(self, path: Path, argv: Sequence[str]) -> None:
        super().__init__(logging.DEBUG)
        self.path = path
        self._lines = [
            f"===== {path.stem} start =====",
            f"Time: {datetime.datetime.now().isoformat(sep=' ', timespec='seconds')}",
            f"PID: {os.getpid()}",
            f"Parameters: {' '.join(argv)}",
        ]
        self.setFormatter(get_formatter("%(asctime)s [%(levelname)s] [%(name)s] %(message)s"))

    def __enter__(self) -> TraceRecorder:
        logger.addHandler(self)
        logger.setLevel(logging.DEBUG)
        return self

    def __exit__(self, *exc_info: object) -> None:
        logger.removeHandler(self)

    def emit(self, record: logging.LogRecord) -> None:
        self._lines.append(self.format(record))

    def write(self, exit_code: int, output: str) -> None:
        self._lines += [
            f"Exit code: {exit_code}",
            f"Output: {output}",
            f"===== {self.path.stem} end =====",
        ]
        block = ("\n".join(self._lines) + "\n").encode("utf-8")
        fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
        try:
            os.write(fd, block)
        finally:
            os.close(fd)
