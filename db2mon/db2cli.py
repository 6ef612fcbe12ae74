#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Access to a DB2 instance through its command line processor (CLP)

The CLP keeps the database connection in a back-end process bound to the
calling shell. Connect, query and disconnect therefore run in one shell
session after sourcing the instance's db2profile. The output of each command
is separated by a marker line carrying the command's return code.

CLP return codes:
    0  command successful
    1  SELECT or FETCH returned no rows
    2  warning
    4  DB2 or SQL error
    8  command line processor system error
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from db2mon.check_utils import State
from db2mon.exceptions import (
    AuthorizationError,
    ConnectivityError,
    Db2CommandError,
    InstanceEnvironmentError,
    ReplicationStateError,
)
from db2mon.log import VERBOSE

LOGGER = logging.getLogger("db2mon.db2cli")

MEMINFO = Path("/proc/meminfo")

_MARKER = "@@db2mon-rc:"

_MESSAGE_ID = re.compile(r"\b(SQL\d{4,5}[NWC]|DB2\d{5}[EIW]|DB21\d{3}E)\b")

_CONNECTIVITY_MESSAGES = frozenset(
    {
        "SQL1013N",  # database alias not found
        "SQL1024N",  # no database connection exists
        "SQL1031N",  # database directory not found
        "SQL1032N",  # no START DATABASE MANAGER command was issued
        "SQL1035N",  # database is in use (quiesced or exclusive)
        "SQL1117N",  # database is in roll-forward pending state
        "SQL1224N",  # database agent could not be started
        "SQL30061N",  # database not found on the server
        "SQL30081N",  # communication error
        "SQL30082N",  # security processing failed
    }
)

_AUTHORIZATION_MESSAGES = frozenset(
    {
        "SQL0551N",  # missing privilege on the object
        "SQL0552N",  # missing privilege for the operation
        "SQL1060N",  # missing CONNECT privilege
        "SQL1092N",  # missing authority for the command
    }
)

_STANDBY_MESSAGES = frozenset(
    {
        "SQL1776N",  # command cannot be issued on an HADR standby database
    }
)

_ENVIRONMENT_MESSAGES = frozenset(
    {
        "DB21061E",  # command line environment not initialized
    }
)


@dataclass(frozen=True)
class CommandOutput:
    command: str
    returncode: int
    output: str

    @property
    def message_ids(self) -> Sequence[str]:
        """
        >>> CommandOutput("db2 connect to X", 4, "SQL1013N  The database alias name ...").message_ids
        ['SQL1013N']
        """
        return _MESSAGE_ID.findall(self.output)


@dataclass(frozen=True)
class ArchivedLog:
    path: Path
    size: int
    mtime: float


class Db2DataSource(Protocol):
    """What the checks need from the monitored system"""

    def open(self) -> None: ...

    def read_memory_report(self) -> str: ...

    def get_database_size_info(self, database: str, refresh: int) -> str: ...

    def get_backup_history(self, database: str) -> str: ...

    def get_database_configuration(self, database: str) -> str: ...

    def get_hadr_status(self, database: str) -> str: ...

    def find_log_archive(
        self, directory: Path, instance: str | None, database: str
    ) -> Path: ...

    def list_archived_logs(self, directory: Path) -> Sequence[ArchivedLog]: ...

    def connect(self, database: str) -> str: ...


BACKUP_HISTORY_QUERY = """\
SELECT CATEGORY, MAX(START_TIME), TIMESTAMPDIFF(2, CHAR(CURRENT TIMESTAMP - TIMESTAMP(MAX(START_TIME)))) \
FROM (SELECT CASE \
WHEN OPERATIONTYPE IN ('F', 'N') THEN 'FULL' \
WHEN OPERATIONTYPE IN ('I', 'O') THEN 'INCREMENTAL' \
WHEN OPERATIONTYPE IN ('D', 'E') THEN 'DELTA' \
END AS CATEGORY, START_TIME \
FROM SYSIBMADM.DB_HISTORY WHERE OPERATION = 'B' AND SQLCODE IS NULL) AS BACKUPS \
WHERE CATEGORY IS NOT NULL GROUP BY CATEGORY"""


class Db2CommandLine:
    """The DB2 data source of a local instance"""

    def __init__(self, instance_home: Path | None, *, meminfo: Path = MEMINFO) -> None:
        self.instance_home = instance_home
        self.meminfo = meminfo

    @property
    def profile(self) -> Path | None:
        return None if self.instance_home is None else self.instance_home / "sqllib" / "db2profile"

    def open(self) -> None:
        if self.instance_home is None:
            return
        if not self.instance_home.is_dir():
            raise InstanceEnvironmentError(f"Instance home {self.instance_home} does not exist")
        assert self.profile is not None
        if not self.profile.is_file():
            raise InstanceEnvironmentError(f"Instance profile {self.profile} not found")
        LOGGER.log(VERBOSE, "Using instance profile %s", self.profile)

    def read_memory_report(self) -> str:
        try:
            return self.meminfo.read_text()
        except OSError as e:
            raise InstanceEnvironmentError(f"Cannot read {self.meminfo}: {e}") from e

    def get_database_size_info(self, database: str, refresh: int) -> str:
        return self._query(database, f"db2 {shlex.quote(f'CALL GET_DBSIZE_INFO(?, ?, ?, {refresh})')}")

    def get_backup_history(self, database: str) -> str:
        return self._query(database, f"db2 -x {shlex.quote(BACKUP_HISTORY_QUERY)}")

    def get_database_configuration(self, database: str) -> str:
        (result,) = self._run_session([f"db2 get db cfg for {shlex.quote(database)}"])
        raise_for_clp_error(result)
        return result.output

    def get_hadr_status(self, database: str) -> str:
        (result,) = self._run_session([f"db2pd -db {shlex.quote(database)} -hadr"])
        if "not activated" in result.output or "cannot be found" in result.output:
            raise ConnectivityError(
                f"Database {database} is not active", diagnostic=result.output.strip()
            )
        raise_for_clp_error(result)
        return result.output

    def find_log_archive(self, directory: Path, instance: str | None, database: str) -> Path:
        """The per database subdirectory if DB2 archives into one, else the directory itself"""
        if instance is None:
            return directory
        database_directory = directory / instance / database.upper()
        return database_directory if database_directory.is_dir() else directory

    def list_archived_logs(self, directory: Path) -> Sequence[ArchivedLog]:
        if not directory.is_dir():
            raise InstanceEnvironmentError(f"Log archive directory {directory} does not exist")
        return list(self._walk(directory))

    def connect(self, database: str) -> str:
        connect, _reset = self._run_session(
            [f"db2 connect to {shlex.quote(database)}", "db2 connect reset"]
        )
        raise_for_clp_error(connect)
        return connect.output

    def _query(self, database: str, command: str) -> str:
        connect, result, _reset = self._run_session(
            [f"db2 connect to {shlex.quote(database)}", command, "db2 connect reset"]
        )
        raise_for_clp_error(connect)
        raise_for_clp_error(result)
        return result.output

    def _walk(self, directory: Path) -> Iterator[ArchivedLog]:
        for root, _dirs, files in os.walk(directory):
            for name in files:
                path = Path(root, name)
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    continue  # removed by a concurrent archive cleanup
                yield ArchivedLog(path, stat.st_size, stat.st_mtime)

    def _run_session(self, commands: Sequence[str]) -> Sequence[CommandOutput]:
        if self.profile is None:
            raise InstanceEnvironmentError("No instance home given")

        script = "\n".join(
            (
                f". {shlex.quote(str(self.profile))}",
                *(f'{cmd}\necho "{_MARKER}$?"' for cmd in commands),
            )
        )
        LOGGER.debug("Running CLP session:\n%s", script)
        completed_process = subprocess.run(
            ["/bin/sh", "-c", script],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding="utf8",
            check=False,
            env={k: v for k, v in os.environ.items() if k != "LANG"},
        )
        LOGGER.debug("CLP session output:\n%s", completed_process.stdout)
        return split_session_output(commands, completed_process.stdout)


def split_session_output(commands: Sequence[str], stdout: str) -> Sequence[CommandOutput]:
    """Assign the output between the marker lines to the commands

    >>> split_session_output(["a", "b"], "x\\n@@db2mon-rc:0\\ny\\n@@db2mon-rc:4\\n")
    [CommandOutput(command='a', returncode=0, output='x'), CommandOutput(command='b', returncode=4, output='y')]
    """
    results: list[CommandOutput] = []
    lines: list[str] = []
    for line in stdout.splitlines():
        if line.startswith(_MARKER):
            if len(results) == len(commands):
                raise Db2CommandError("Unexpected output of the CLP session", diagnostic=stdout)
            results.append(
                CommandOutput(
                    commands[len(results)], int(line[len(_MARKER) :]), "\n".join(lines)
                )
            )
            lines = []
        else:
            lines.append(line)

    if len(results) != len(commands):
        # The shell died on the way, e.g. the profile could not be sourced
        raise InstanceEnvironmentError(
            "The DB2 command line session ended unexpectedly", diagnostic=stdout.strip()
        )
    return results


def raise_for_clp_error(result: CommandOutput) -> None:
    """Map CLP failures to the exceptions of the plug-ins

    >>> raise_for_clp_error(CommandOutput("db2 connect to X", 0, "Database Connection Information"))
    >>> raise_for_clp_error(CommandOutput("db2 connect to X", 8, "SQL1092N  ..."))
    Traceback (most recent call last):
        ...
    db2mon.exceptions.AuthorizationError: Not authorized: db2 connect to X (SQL1092N)
    """
    if result.returncode == 127:
        raise InstanceEnvironmentError(
            "DB2 command line tools not found", diagnostic=result.output.strip()
        )

    message_ids = set(result.message_ids)
    diagnostic = result.output.strip()

    if found := message_ids & _ENVIRONMENT_MESSAGES:
        raise InstanceEnvironmentError(
            f"DB2 command line environment not initialized ({_first(found)})",
            diagnostic=diagnostic,
        )
    if found := message_ids & _STANDBY_MESSAGES:
        raise ReplicationStateError(
            f"Database is an HADR standby ({_first(found)})",
            state=State.UNKNOWN,
            diagnostic=diagnostic,
        )
    if found := message_ids & _AUTHORIZATION_MESSAGES:
        raise AuthorizationError(
            f"Not authorized: {result.command} ({_first(found)})", diagnostic=diagnostic
        )
    if found := message_ids & _CONNECTIVITY_MESSAGES:
        raise ConnectivityError(
            f"Cannot connect to the database ({_first(found)})", diagnostic=diagnostic
        )
    if result.returncode >= 4:
        raise Db2CommandError(
            f"Command failed with return code {result.returncode}: {result.command}",
            diagnostic=diagnostic,
        )


def _first(message_ids: set[str]) -> str:
    return sorted(message_ids)[0]
