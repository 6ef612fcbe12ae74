#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_db2_database_size - Size of a DB2 database compared to its capacity"""

# Example output of db2 "CALL GET_DBSIZE_INFO(?, ?, ?, -1)":
#
#   Value of output parameters
#   --------------------------
#   Parameter Name  : SNAPSHOTTIMESTAMP
#   Parameter Value : 2014-05-14-17.40.05.384542
#
#   Parameter Name  : DATABASESIZE
#   Parameter Value : 69206016
#
#   Parameter Name  : DATABASECAPACITY
#   Parameter Value : 77459456
#
#   Return Status = 0
#
# The procedure caches its result in SYSTOOLS.STMG_DBSIZE_INFO. The last
# parameter is the refresh window in minutes: -1 uses the default of 30
# minutes, 0 forces a recomputation.

from __future__ import annotations

import argparse
import re
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from db2mon.checkresults import CheckResult
from db2mon.config import CheckConfiguration
from db2mon.db2cli import Db2DataSource
from db2mon.engine import Db2Check, run_check
from db2mon.exceptions import DataShapeError
from db2mon.levels import check_levels, Comparison, Levels


@dataclass(frozen=True)
class DatabaseSize:
    size: int
    allocated: int
    snapshot: str

    @property
    def percent(self) -> int:
        return self.size * 100 // self.allocated


class DbSizeInfoParser:
    _NAME = re.compile(r"^\s*Parameter Name\s*:\s*(\S+)\s*$")
    _VALUE = re.compile(r"^\s*Parameter Value\s*:\s*(.*?)\s*$")

    def extract(self, raw: str) -> DatabaseSize:
        values = dict(self._parameters(raw))
        return DatabaseSize(
            size=self._integer(values, "DATABASESIZE"),
            allocated=self._allocated(values),
            snapshot=values.get("SNAPSHOTTIMESTAMP", "unknown"),
        )

    def _parameters(self, raw: str) -> Sequence[tuple[str, str]]:
        """
        >>> DbSizeInfoParser()._parameters("Parameter Name  : DATABASESIZE\\nParameter Value : 800")
        [('DATABASESIZE', '800')]
        """
        parameters = []
        name = None
        for line in raw.splitlines():
            if match := self._NAME.match(line):
                name = match.group(1)
            elif (match := self._VALUE.match(line)) and name is not None:
                parameters.append((name, match.group(1)))
                name = None
        return parameters

    def _allocated(self, values: dict[str, str]) -> int:
        allocated = self._integer(values, "DATABASECAPACITY")
        if allocated <= 0:
            raise DataShapeError(f"Invalid DATABASECAPACITY value: {allocated}")
        return allocated

    @staticmethod
    def _integer(values: dict[str, str], name: str) -> int:
        try:
            return int(values[name])
        except KeyError:
            raise DataShapeError(f"Parameter {name} not found in GET_DBSIZE_INFO output") from None
        except ValueError:
            raise DataShapeError(f"Parameter {name} is not a number: {values[name]!r}") from None


class DatabaseSizeCheck(Db2Check[str, DatabaseSize]):
    program = "check_db2_database_size"
    service = "Database_Size"
    description = "Check the size of a DB2 database against absolute levels and its capacity."
    comparison = Comparison.ABOVE
    levels_help = "for the database size in bytes"

    def __init__(self) -> None:
        self.parser = DbSizeInfoParser()

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-p",
            "--percentage",
            type=int,
            metavar="PERCENT",
            help="Warn when the size reaches this percentage of the allocated space",
        )
        parser.add_argument(
            "-r",
            "--refresh",
            type=int,
            default=-1,
            metavar="MINUTES",
            help="Refresh window of the cached size information in minutes "
            "(-1: default of 30 minutes, 0: recompute now)",
        )

    def query(self, source: Db2DataSource, config: CheckConfiguration) -> str:
        assert config.database is not None
        return source.get_database_size_info(config.database, config.refresh)

    def extract(self, raw: str) -> DatabaseSize:
        return self.parser.extract(raw)

    def evaluate(self, metric: DatabaseSize, config: CheckConfiguration) -> CheckResult:
        size_result = check_levels(
            metric.size,
            levels=config.levels(self.comparison),
            label="Database size",
            metric_name="Database_size",
            unit="B",
            render_func=lambda v: f"{v} bytes",
            boundaries=(0, metric.allocated),
        )
        usage_result = check_levels(
            metric.percent,
            levels=Levels(config.percentage, None, Comparison.AT_LEAST),
            label=f"Usage of {metric.allocated} bytes allocated",
            metric_name="Database_usage",
            unit="%",
            render_func=lambda v: f"{v}%",
            boundaries=(0, 100),
        )
        result = CheckResult.from_subresults(size_result, usage_result)
        return CheckResult(
            state=result.state,
            summary=result.summary,
            details=(f"Size information of {metric.snapshot}.",),
            metrics=result.metrics,
        )


def main(argv: Sequence[str] | None = None) -> int:
    return run_check(DatabaseSizeCheck(), sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
