#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_db2_connection - Connect to a DB2 database and measure the time it takes"""

# Example output of db2 connect to SAMPLE:
#
#    Database Connection Information
#
#  Database server        = DB2/LINUXX8664 11.5.8.0
#  SQL authorization ID   = DB2INST1
#  Local database alias   = SAMPLE
#
# A refused connection is CRITICAL here, the other checks report it as UNKNOWN.

from __future__ import annotations

import re
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass

from db2mon.check_utils import State
from db2mon.checkresults import CheckResult
from db2mon.config import CheckConfiguration
from db2mon.db2cli import Db2DataSource
from db2mon.engine import Db2Check, run_check
from db2mon.exceptions import ConnectivityError, DataShapeError
from db2mon.levels import check_levels

_MS_PER_SECOND = 1000


@dataclass(frozen=True)
class ConnectionAttempt:
    elapsed: float  # seconds
    output: str = ""
    error: ConnectivityError | None = None


@dataclass(frozen=True)
class Connection:
    elapsed_ms: int
    server: str | None = None
    authorization_id: str | None = None
    error: str | None = None
    diagnostic: str = ""


class ConnectOutputParser:
    _FIELD = re.compile(r"^\s*(Database server|SQL authorization ID)\s*=\s*(.*?)\s*$")

    def extract(self, raw: ConnectionAttempt) -> Connection:
        elapsed_ms = int(raw.elapsed * _MS_PER_SECOND)
        if raw.error is not None:
            return Connection(elapsed_ms, error=str(raw.error), diagnostic=raw.error.diagnostic)

        fields = {
            match.group(1): match.group(2)
            for line in raw.output.splitlines()
            if (match := self._FIELD.match(line))
        }
        if "Database server" not in fields:
            raise DataShapeError("Database server not found in the connection information")
        return Connection(
            elapsed_ms,
            server=fields["Database server"],
            authorization_id=fields.get("SQL authorization ID"),
        )


class ConnectionCheck(Db2Check[ConnectionAttempt, Connection]):
    program = "check_db2_connection"
    service = "Database_Connection"
    description = "Check that a DB2 database accepts connections and how long connecting takes."
    default_levels = (3, 5)
    levels_help = "for the connection time in seconds"

    def __init__(self) -> None:
        self.parser = ConnectOutputParser()

    def query(self, source: Db2DataSource, config: CheckConfiguration) -> ConnectionAttempt:
        assert config.database is not None
        start = time.monotonic()
        try:
            output = source.connect(config.database)
        except ConnectivityError as e:
            return ConnectionAttempt(time.monotonic() - start, error=e)
        return ConnectionAttempt(time.monotonic() - start, output)

    def extract(self, raw: ConnectionAttempt) -> Connection:
        return self.parser.extract(raw)

    def evaluate(self, metric: Connection, config: CheckConfiguration) -> CheckResult:
        if metric.error is not None:
            return CheckResult(
                state=State.CRIT,
                summary=metric.error,
                details=(metric.diagnostic,) if metric.diagnostic else (),
            )

        result = check_levels(
            metric.elapsed_ms,
            levels=config.levels(self.comparison).scaled(_MS_PER_SECOND),
            label="Connected in",
            metric_name="Connection_time",
            unit="ms",
            render_func=lambda v: f"{v} ms",
            boundaries=(0, None),
        )
        return CheckResult(
            state=result.state,
            summary=result.summary,
            details=(f"Database server {metric.server} as {metric.authorization_id}.",),
            metrics=result.metrics,
        )


def main(argv: Sequence[str] | None = None) -> int:
    return run_check(ConnectionCheck(), sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
