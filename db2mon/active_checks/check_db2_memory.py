#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_db2_memory - Physical memory usage of a DB2 server"""

# Example of the memory report (/proc/meminfo):
# MemTotal:        8052892 kB
# MemFree:          453528 kB
# MemAvailable:    3862780 kB
# Buffers:          240060 kB

from __future__ import annotations

import re
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from db2mon.checkresults import CheckResult, Metric
from db2mon.config import CheckConfiguration
from db2mon.db2cli import Db2DataSource
from db2mon.engine import Db2Check, run_check
from db2mon.exceptions import DataShapeError
from db2mon.levels import check_levels


@dataclass(frozen=True)
class MemoryUsage:
    total_kb: int
    free_kb: int

    @property
    def used_kb(self) -> int:
        return self.total_kb - self.free_kb

    @property
    def percent(self) -> int:
        return self.used_kb * 100 // self.total_kb


class MemoryReportParser:
    _FIELD = re.compile(r"^(\w+):\s+(\d+)(?:\s+kB)?\s*$")

    def extract(self, raw: str) -> MemoryUsage:
        """
        >>> MemoryReportParser().extract("MemTotal: 2048000\\nMemFree: 204800\\n").percent
        90
        """
        fields = {
            match.group(1): int(match.group(2))
            for line in raw.splitlines()
            if (match := self._FIELD.match(line.strip()))
        }
        for name in ("MemTotal", "MemFree"):
            if name not in fields:
                raise DataShapeError(f"Field {name} not found in the memory report")
        if fields["MemTotal"] <= 0:
            raise DataShapeError(f"Invalid MemTotal value: {fields['MemTotal']}")
        return MemoryUsage(total_kb=fields["MemTotal"], free_kb=fields["MemFree"])


class MemoryCheck(Db2Check[str, MemoryUsage]):
    program = "check_db2_memory"
    service = "Physical_Memory"
    description = "Check the physical memory usage of the DB2 server."
    default_levels = (80, 90)
    levels_help = "in percent of the physical memory"
    requires_database = False
    requires_instance = False

    def __init__(self) -> None:
        self.parser = MemoryReportParser()

    def query(self, source: Db2DataSource, config: CheckConfiguration) -> str:
        return source.read_memory_report()

    def extract(self, raw: str) -> MemoryUsage:
        return self.parser.extract(raw)

    def evaluate(self, metric: MemoryUsage, config: CheckConfiguration) -> CheckResult:
        result = check_levels(
            metric.percent,
            levels=config.levels(self.comparison),
            label="Memory usage",
            metric_name="Memory_usage",
            unit="%",
            render_func=lambda v: f"{v}%",
            boundaries=(0, 100),
        )
        return CheckResult(
            state=result.state,
            summary=f"{result.summary}, {metric.used_kb} KB of {metric.total_kb} KB used",
            details=(f"Total {metric.total_kb} KB, free {metric.free_kb} KB.",),
            metrics=result.metrics,
            long_metrics=(
                Metric("Used_memory", metric.used_kb, "KB", boundaries=(0, metric.total_kb)),
                Metric("Free_memory", metric.free_kb, "KB", boundaries=(0, metric.total_kb)),
            ),
        )


def main(argv: Sequence[str] | None = None) -> int:
    return run_check(MemoryCheck(), sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
