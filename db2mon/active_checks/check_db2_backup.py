#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_db2_backup - Age of the last full, incremental and delta backup"""

# The recovery history is read from SYSIBMADM.DB_HISTORY (see
# db2mon.db2cli.BACKUP_HISTORY_QUERY). Operation types are grouped into
# categories:
#
#   F, N  offline / online full backup
#   I, O  offline / online incremental backup
#   D, E  offline / online delta backup
#
# Example output (db2 -x, one row per category, seconds since the start):
# FULL        20261010220000                   604800
# INCREMENTAL 20261016220000                    86400

from __future__ import annotations

import datetime
import enum
import re
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from db2mon.check_utils import State
from db2mon.checkresults import CheckResult
from db2mon.config import CheckConfiguration
from db2mon.db2cli import Db2DataSource
from db2mon.engine import Db2Check, run_check
from db2mon.exceptions import DataShapeError
from db2mon.levels import check_levels, Comparison

_SECONDS_PER_HOUR = 3600


class BackupCategory(enum.Enum):
    FULL = "full"
    INCREMENTAL = "incremental"
    DELTA = "delta"


@dataclass(frozen=True)
class LastBackup:
    started: datetime.datetime
    age: int  # seconds


class BackupHistoryParser:
    _ROW = re.compile(r"^(FULL|INCREMENTAL|DELTA)\s+(\d{14})\s+(-?\d+)$")

    def extract(self, raw: str) -> Mapping[BackupCategory, LastBackup]:
        backups = {}
        for line in raw.splitlines():
            if not (line := line.strip()):
                continue
            if (match := self._ROW.match(line)) is None:
                raise DataShapeError(f"Unexpected line in the backup history: {line!r}")
            category, start_time, elapsed = match.groups()
            backups[BackupCategory[category]] = LastBackup(
                started=self._parse_start_time(start_time),
                age=int(elapsed),
            )
        return backups

    @staticmethod
    def _parse_start_time(start_time: str) -> datetime.datetime:
        """
        >>> BackupHistoryParser._parse_start_time("20261016220000")
        datetime.datetime(2026, 10, 16, 22, 0)
        """
        try:
            return datetime.datetime.strptime(start_time, "%Y%m%d%H%M%S")
        except ValueError:
            raise DataShapeError(f"Invalid backup start time: {start_time!r}") from None


def render_age(seconds: int) -> str:
    """
    >>> render_age(93784)
    '26:03:04'
    """
    hours, secs = divmod(seconds, 3600)
    mins, secs = divmod(secs, 60)
    return "%d:%02d:%02d" % (hours, mins, secs)


class BackupCheck(Db2Check[str, Mapping[BackupCategory, LastBackup]]):
    program = "check_db2_backup"
    service = "Last_Backup"
    description = "Check the age of the last full, incremental and delta backup of a DB2 database."
    default_levels = (168, 336)
    levels_help = "for the backup age in hours"

    def __init__(self) -> None:
        self.parser = BackupHistoryParser()

    def query(self, source: Db2DataSource, config: CheckConfiguration) -> str:
        assert config.database is not None
        return source.get_backup_history(config.database)

    def extract(self, raw: str) -> Mapping[BackupCategory, LastBackup]:
        return self.parser.extract(raw)

    def evaluate(
        self, metric: Mapping[BackupCategory, LastBackup], config: CheckConfiguration
    ) -> CheckResult:
        return CheckResult.from_subresults(
            *(
                self._evaluate_category(category, metric.get(category), config)
                for category in BackupCategory
            )
        )

    def _evaluate_category(
        self,
        category: BackupCategory,
        backup: LastBackup | None,
        config: CheckConfiguration,
    ) -> CheckResult:
        if backup is None:
            if category is BackupCategory.FULL:
                return CheckResult(state=State.CRIT, summary="No full backup found")
            return CheckResult(summary=f"No {category.value} backup")

        result = check_levels(
            backup.age,
            levels=config.levels(Comparison.AT_LEAST).scaled(_SECONDS_PER_HOUR),
            label=f"Last {category.value} backup",
            metric_name=f"Backup_age_{category.value}",
            unit="s",
            render_func=render_age,
        )
        return CheckResult(
            state=result.state,
            summary=result.summary,
            details=(f"Last {category.value} backup started at {backup.started}.",),
            metrics=result.metrics,
        )


def main(argv: Sequence[str] | None = None) -> int:
    return run_check(BackupCheck(), sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
