#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import datetime
from pathlib import Path

from db2mon.active_checks.check_db2_log_consumption import (
    ArchiveListing,
    ArchiveListingParser,
    LogConsumption,
    LogConsumptionCheck,
)
from db2mon.db2cli import ArchivedLog

from tests.unit.mocks_and_helpers import FakeDataSource, run

TODAY = datetime.date(2026, 10, 17)

ARGV = ["-d", "sample", "-i", "/home/db2inst1"]

MB = 1024 * 1024


def _timestamp(day: int, hour: int) -> float:
    return datetime.datetime(2026, 10, day, hour, 0).timestamp()


def _db_cfg(role: str, archive_method: str) -> str:
    return f"""
 HADR database role                                      = {role}
 First log archive method                 (LOGARCHMETH1) = {archive_method}
 Second log archive method                (LOGARCHMETH2) = OFF
"""


def _logs(directory: Path) -> list[ArchivedLog]:
    return [
        ArchivedLog(directory / "S0000040.LOG", 10 * MB, _timestamp(16, 23)),
        ArchivedLog(directory / "S0000041.LOG", MB, _timestamp(17, 0)),
        ArchivedLog(directory / "S0000042.LOG", MB, _timestamp(17, 8)),
        ArchivedLog(directory / "S0000043.LOG", MB, _timestamp(17, 12)),
        ArchivedLog(directory / "S0000044.LOG", MB // 2, _timestamp(17, 23)),
    ]


def _check() -> LogConsumptionCheck:
    return LogConsumptionCheck(today=lambda: TODAY)


ARCHIVE = Path("/db2/archive")

DATABASE_ARCHIVE = ARCHIVE / "db2inst1" / "SAMPLE"


def test_extract_counts_today_only(tmp_path: Path) -> None:
    parser = ArchiveListingParser(today=lambda: TODAY)
    consumption = parser.extract(ArchiveListing(tmp_path, _logs(tmp_path)))
    assert consumption == LogConsumption(tmp_path, files=4, size=3 * MB + MB // 2)
    assert consumption.megabytes == 3


def test_extract_nothing_archived(tmp_path: Path) -> None:
    consumption = ArchiveListingParser(today=lambda: TODAY).extract(ArchiveListing(tmp_path, []))
    assert (consumption.files, consumption.megabytes) == (0, 0)


def test_ok() -> None:
    source = FakeDataSource(
        get_database_configuration=_db_cfg("PRIMARY", f"DISK:{ARCHIVE}/"),
        find_log_archive=DATABASE_ARCHIVE,
        list_archived_logs=_logs(DATABASE_ARCHIVE),
    )
    exit_code, output = run(_check(), ARGV, source)
    assert exit_code == 0
    assert output.splitlines() == [
        "Logs archived today: 3 MB|'Log_consumption'=3MB;;;0",
        f"4 log files archived today in {DATABASE_ARCHIVE}.|",
    ]
    assert ("find_log_archive", ARCHIVE, "db2inst1", "sample") in source.calls
    assert ("list_archived_logs", DATABASE_ARCHIVE) in source.calls


def test_levels_are_compared_strictly() -> None:
    source = FakeDataSource(
        get_database_configuration=_db_cfg("PRIMARY", f"DISK:{ARCHIVE}/"),
        find_log_archive=ARCHIVE,
        list_archived_logs=_logs(ARCHIVE),
    )
    exit_code, output = run(_check(), [*ARGV, "-w", "2", "-c", "3"], source)
    assert exit_code == 1
    assert output.startswith(
        "Logs archived today: 3 MB (warn/crit above 2 MB/3 MB)|'Log_consumption'=3MB;2;3;0"
    )


def test_archive_without_database_directory() -> None:
    source = FakeDataSource(
        get_database_configuration=_db_cfg("STANDARD", f"DISK:{ARCHIVE}"),
        find_log_archive=ARCHIVE,
        list_archived_logs=[],
    )
    exit_code, output = run(_check(), ARGV, source)
    assert exit_code == 0
    assert output.startswith("Logs archived today: 0 MB|")
    assert ("list_archived_logs", ARCHIVE) in source.calls


def test_standby_is_ok() -> None:
    source = FakeDataSource(get_database_configuration=_db_cfg("STANDBY", "DISK:/db2/archive/"))
    exit_code, output = run(_check(), [*ARGV, "-w", "1", "-c", "2"], source)
    assert exit_code == 0
    assert output.startswith(
        "Database sample is an HADR standby, logs are archived by the primary|"
    )
    assert not any(call[0] == "list_archived_logs" for call in source.calls)


def test_not_archived_to_disk() -> None:
    source = FakeDataSource(get_database_configuration=_db_cfg("PRIMARY", "TSM"))
    exit_code, output = run(_check(), ARGV, source)
    assert exit_code == 3
    assert output.startswith("Logs are not archived to disk (LOGARCHMETH1 = TSM)|")
