#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_db2_log_consumption - Transaction logs archived today"""

# Logs are archived by the primary database only, on an HADR standby there is
# nothing to measure and the check reports OK.
#
# With LOGARCHMETH1 = DISK:/db2/archive/ DB2 archives the logs of database
# SAMPLE of instance db2inst1 into
#   /db2/archive/db2inst1/SAMPLE/NODE0000/LOGSTREAM0000/C0000000/S0000042.LOG
# Older releases use /db2/archive/db2inst1/SAMPLE/NODE0000/C0000000/.

from __future__ import annotations

import datetime
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from db2mon.check_utils import State
from db2mon.checkresults import CheckResult
from db2mon.config import CheckConfiguration
from db2mon.db2cli import ArchivedLog, Db2DataSource
from db2mon.dbcfg import HadrRole, parse_database_configuration
from db2mon.engine import Db2Check, run_check
from db2mon.exceptions import DataShapeError, ReplicationStateError
from db2mon.levels import check_levels, Comparison

_BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class ArchiveListing:
    directory: Path
    logs: Sequence[ArchivedLog]


@dataclass(frozen=True)
class LogConsumption:
    directory: Path
    files: int
    size: int  # bytes

    @property
    def megabytes(self) -> int:
        return self.size // _BYTES_PER_MB


class ArchiveListingParser:
    def __init__(self, today: Callable[[], datetime.date] = datetime.date.today) -> None:
        self.today = today

    def extract(self, raw: ArchiveListing) -> LogConsumption:
        today = self.today()
        archived_today = [
            log for log in raw.logs if datetime.date.fromtimestamp(log.mtime) == today
        ]
        return LogConsumption(
            directory=raw.directory,
            files=len(archived_today),
            size=sum(log.size for log in archived_today),
        )


class LogConsumptionCheck(Db2Check[ArchiveListing, LogConsumption]):
    program = "check_db2_log_consumption"
    service = "Log_Consumption"
    description = "Check the amount of transaction logs archived today by a DB2 database."
    comparison = Comparison.ABOVE
    levels_help = "for the logs archived today in MB"

    def __init__(self, today: Callable[[], datetime.date] = datetime.date.today) -> None:
        self.parser = ArchiveListingParser(today)

    def query(self, source: Db2DataSource, config: CheckConfiguration) -> ArchiveListing:
        assert config.database is not None
        db_cfg = parse_database_configuration(source.get_database_configuration(config.database))
        if db_cfg.hadr_role is HadrRole.STANDBY:
            raise ReplicationStateError(
                f"Database {config.database} is an HADR standby, logs are archived by the primary",
                state=State.OK,
            )

        if (directory := db_cfg.log_archive_directory) is None:
            raise DataShapeError(
                f"Logs are not archived to disk (LOGARCHMETH1 = {db_cfg['LOGARCHMETH1']})"
            )
        directory = source.find_log_archive(directory, config.instance_name, config.database)
        return ArchiveListing(directory, source.list_archived_logs(directory))

    def extract(self, raw: ArchiveListing) -> LogConsumption:
        return self.parser.extract(raw)

    def evaluate(self, metric: LogConsumption, config: CheckConfiguration) -> CheckResult:
        result = check_levels(
            metric.megabytes,
            levels=config.levels(self.comparison),
            label="Logs archived today",
            metric_name="Log_consumption",
            unit="MB",
            render_func=lambda v: f"{v} MB",
            boundaries=(0, None),
        )
        return CheckResult(
            state=result.state,
            summary=result.summary,
            details=(f"{metric.files} log files archived today in {metric.directory}.",),
            metrics=result.metrics,
        )


def main(argv: Sequence[str] | None = None) -> int:
    return run_check(LogConsumptionCheck(), sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
