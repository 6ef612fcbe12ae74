#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_db2_hadr - State of the HADR replication of a DB2 database"""

# The role comes from the database configuration. Databases with role
# STANDARD have no HADR configured and are reported as UNKNOWN.
#
# Example output of db2pd -db SAMPLE -hadr, DB2 9.x:
#
# HADR Information:
# Role    State                SyncMode BeforeTO  ConnStatus  Time
# Primary Peer                 Nearsync 0         Connected   Wed Oct 22 13:15:23 2014 (1413980123)
#
# PrimaryFile  PrimaryPg  PrimaryLSN
# S0000005.LOG 12         0x000000000BB80000
#
# StandByFile  StandByPg  StandByLSN
# S0000004.LOG 10         0x000000000BB70000
#
# Example output of db2pd -db SAMPLE -hadr, DB2 10.1 and later (shortened):
#
#                             HADR_ROLE = PRIMARY
#                         HADR_SYNCMODE = NEARSYNC
#                            HADR_STATE = PEER
#                   HADR_CONNECT_STATUS = CONNECTED
#     PRIMARY_LOG_FILE,PAGE,POS = S0000012.LOG, 1234, 56789012
#     STANDBY_LOG_FILE,PAGE,POS = S0000012.LOG, 1230, 56770000
#
# The gaps are primary minus standby. LSNs are hexadecimal, log positions of
# the newer layout are decimal byte offsets.

from __future__ import annotations

import re
import sys
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass

from db2mon.check_utils import State
from db2mon.checkresults import CheckResult, Metric
from db2mon.config import CheckConfiguration
from db2mon.db2cli import Db2DataSource
from db2mon.dbcfg import HadrRole, parse_database_configuration
from db2mon.engine import Db2Check, run_check
from db2mon.exceptions import DataShapeError, ReplicationStateError
from db2mon.levels import check_levels

_LOG_FILE = re.compile(r"^S(\d+)\.LOG$")

_KEY_VALUE = re.compile(r"^\s*([A-Z_,]+)\s*=\s*(.*?)\s*$")


@dataclass(frozen=True)
class LogPosition:
    file: int
    page: int
    position: int


@dataclass(frozen=True)
class HadrStatus:
    role: str
    state: str
    sync_mode: str
    connect_status: str
    primary: LogPosition
    standby: LogPosition

    @property
    def log_file_diff(self) -> int:
        return self.primary.file - self.standby.file

    @property
    def page_diff(self) -> int:
        return self.primary.page - self.standby.page

    @property
    def position_diff(self) -> int:
        return self.primary.position - self.standby.position


def parse_log_file(name: str) -> int:
    """
    >>> parse_log_file("S0000005.LOG")
    5
    """
    if (match := _LOG_FILE.match(name)) is None:
        raise DataShapeError(f"Invalid log file name: {name!r}")
    return int(match.group(1))


def parse_position(value: str) -> int:
    """LSNs are hexadecimal, log stream positions decimal

    >>> parse_position("0x000000000BB80000") - parse_position("0x000000000BB70000")
    65536
    >>> parse_position("56789012")
    56789012
    """
    try:
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    except ValueError:
        raise DataShapeError(f"Invalid log position: {value!r}") from None


class HadrStatusParser:
    def extract(self, raw: str) -> HadrStatus:
        if "HADR_ROLE" in raw:
            return self._extract_key_value_layout(raw)
        return self._extract_tabular_layout(raw)

    def _extract_tabular_layout(self, raw: str) -> HadrStatus:
        tables = dict(self._tables(raw))
        try:
            info = tables["Role"]
            primary = tables["PrimaryFile"]
            standby = tables["StandByFile"]
            return HadrStatus(
                role=info["Role"].upper(),
                state=info["State"],
                sync_mode=info.get("SyncMode", ""),
                connect_status=info.get("ConnStatus", ""),
                primary=LogPosition(
                    parse_log_file(primary["PrimaryFile"]),
                    int(primary["PrimaryPg"]),
                    parse_position(primary["PrimaryLSN"]),
                ),
                standby=LogPosition(
                    parse_log_file(standby["StandByFile"]),
                    int(standby["StandByPg"]),
                    parse_position(standby["StandByLSN"]),
                ),
            )
        except KeyError as e:
            raise DataShapeError(f"Field {e.args[0]} not found in the HADR status") from None
        except ValueError as e:
            raise DataShapeError(f"Invalid value in the HADR status: {e}") from None

    @staticmethod
    def _tables(raw: str) -> Iterator[tuple[str, Mapping[str, str]]]:
        """Header lines followed by one value line, keyed by the first column

        >>> dict(HadrStatusParser._tables("Role State\\nPrimary Peer\\n"))
        {'Role': {'Role': 'Primary', 'State': 'Peer'}}
        """
        lines = [line.split() for line in raw.splitlines()]
        for header, values in zip(lines, lines[1:]):
            if header and header[0] in ("Role", "PrimaryFile", "StandByFile") and values:
                yield header[0], dict(zip(header, values))

    def _extract_key_value_layout(self, raw: str) -> HadrStatus:
        fields: dict[str, str] = {}
        for line in raw.splitlines():
            if match := _KEY_VALUE.match(line):
                # with several standbys only the first one is monitored
                fields.setdefault(match.group(1), match.group(2))
        try:
            return HadrStatus(
                role=fields["HADR_ROLE"].upper(),
                state=fields["HADR_STATE"],
                sync_mode=fields.get("HADR_SYNCMODE", ""),
                connect_status=fields.get("HADR_CONNECT_STATUS", ""),
                primary=self._log_position(fields["PRIMARY_LOG_FILE,PAGE,POS"]),
                standby=self._log_position(fields["STANDBY_LOG_FILE,PAGE,POS"]),
            )
        except KeyError as e:
            raise DataShapeError(f"Field {e.args[0]} not found in the HADR status") from None

    @staticmethod
    def _log_position(value: str) -> LogPosition:
        """
        >>> HadrStatusParser._log_position("S0000012.LOG, 1234, 56789012")
        LogPosition(file=12, page=1234, position=56789012)
        """
        try:
            file, page, position = (part.strip() for part in value.split(","))
            return LogPosition(parse_log_file(file), int(page), parse_position(position))
        except ValueError:
            raise DataShapeError(f"Invalid log position in the HADR status: {value!r}") from None


def state_of_hadr(hadr_state: str) -> State:
    """
    >>> [state_of_hadr(s) for s in ("Peer", "DISCONNECTED_PEER", "RemoteCatchupPending")]
    [<State.OK: 0>, <State.CRIT: 2>, <State.WARN: 1>]
    """
    normalized = hadr_state.replace("_", "").lower()
    if normalized == "peer":
        return State.OK
    if normalized in ("disconnected", "disconnectedpeer"):
        return State.CRIT
    return State.WARN


class HadrCheck(Db2Check[str, HadrStatus]):
    program = "check_db2_hadr"
    service = "HADR_Status"
    description = "Check the HADR state and the log gap between primary and standby database."
    default_levels = (2, 5)
    levels_help = "for the log gap in log files"

    def __init__(self) -> None:
        self.parser = HadrStatusParser()

    def query(self, source: Db2DataSource, config: CheckConfiguration) -> str:
        assert config.database is not None
        role = parse_database_configuration(
            source.get_database_configuration(config.database)
        ).hadr_role
        if role is HadrRole.STANDARD:
            raise ReplicationStateError(
                f"HADR is not configured for database {config.database} (role STANDARD)"
            )
        return source.get_hadr_status(config.database)

    def extract(self, raw: str) -> HadrStatus:
        return self.parser.extract(raw)

    def evaluate(self, metric: HadrStatus, config: CheckConfiguration) -> CheckResult:
        state_result = CheckResult(
            state=state_of_hadr(metric.state),
            summary=f"HADR {metric.role} in state {metric.state}"
            + (f" ({metric.sync_mode}, {metric.connect_status})" if metric.sync_mode else ""),
        )
        gap_result = check_levels(
            metric.log_file_diff,
            levels=config.levels(self.comparison),
            label="Log file gap",
            metric_name="Log_file_diff",
        )
        result = CheckResult.from_subresults(state_result, gap_result)
        return CheckResult(
            state=result.state,
            summary=result.summary,
            details=(
                f"Primary at log file {metric.primary.file} page {metric.primary.page},"
                f" standby at log file {metric.standby.file} page {metric.standby.page}.",
            ),
            metrics=result.metrics,
            long_metrics=(
                Metric("Page_diff", metric.page_diff),
                Metric("Log_position_diff", metric.position_diff, "B"),
            ),
        )


def main(argv: Sequence[str] | None = None) -> int:
    return run_check(HadrCheck(), sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
