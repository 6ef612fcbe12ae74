#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import pytest

from db2mon.active_checks.check_db2_hadr import (
    HadrCheck,
    HadrStatus,
    HadrStatusParser,
    LogPosition,
    state_of_hadr,
)
from db2mon.check_utils import State
from db2mon.config import CheckConfiguration
from db2mon.exceptions import DataShapeError

from tests.unit.mocks_and_helpers import FakeDataSource, run

ARGV = ["-d", "SAMPLE", "-i", "/home/db2inst1"]


def _db_cfg(role: str) -> str:
    return f"""
       Database Configuration for Database SAMPLE

 HADR database role                                      = {role}
 HADR local host name                  (HADR_LOCAL_HOST) = db2a
"""


TABULAR = """
Database Partition 0 -- Database SAMPLE -- Active -- Up 0 days 00:12:44

HADR Information:
Role    State                SyncMode BeforeTO  ConnStatus  Time
Primary Peer                 Nearsync 0         Connected   Wed Oct 22 13:15:23 2014 (1413980123)

PrimaryFile  PrimaryPg  PrimaryLSN
S0000005.LOG 12         0x000000000BB80000

StandByFile  StandByPg  StandByLSN
S0000004.LOG 10         0x000000000BB70000
"""

KEY_VALUE = """
Database Member 0 -- Database SAMPLE -- Active -- Up 2 days 01:02:03 -- Date 2026-10-17-08.00.00.000000

                            HADR_ROLE = PRIMARY
                          REPLAY_TYPE = PHYSICAL
                        HADR_SYNCMODE = NEARSYNC
                           STANDBY_ID = 1
                           HADR_STATE = PEER
                  HADR_CONNECT_STATUS = CONNECTED
            PRIMARY_LOG_FILE,PAGE,POS = S0000012.LOG, 1234, 56789012
            STANDBY_LOG_FILE,PAGE,POS = S0000012.LOG, 1230, 56770000

                            HADR_ROLE = PRIMARY
                        HADR_SYNCMODE = SUPERASYNC
                           STANDBY_ID = 2
                           HADR_STATE = REMOTE_CATCHUP
                  HADR_CONNECT_STATUS = CONNECTED
            PRIMARY_LOG_FILE,PAGE,POS = S0000012.LOG, 1234, 56789012
            STANDBY_LOG_FILE,PAGE,POS = S0000002.LOG, 10, 100
"""


def test_extract_tabular_layout() -> None:
    assert HadrStatusParser().extract(TABULAR) == HadrStatus(
        role="PRIMARY",
        state="Peer",
        sync_mode="Nearsync",
        connect_status="Connected",
        primary=LogPosition(5, 12, 0x0BB80000),
        standby=LogPosition(4, 10, 0x0BB70000),
    )


def test_extract_key_value_layout() -> None:
    status = HadrStatusParser().extract(KEY_VALUE)
    assert status == HadrStatus(
        role="PRIMARY",
        state="PEER",
        sync_mode="NEARSYNC",
        connect_status="CONNECTED",
        primary=LogPosition(12, 1234, 56789012),
        standby=LogPosition(12, 1230, 56770000),
    )
    assert (status.log_file_diff, status.page_diff, status.position_diff) == (0, 4, 19012)


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "Role State\nPrimary Peer\n",
        TABULAR.replace("S0000004.LOG", "archive.txt"),
        KEY_VALUE.replace("S0000012.LOG, 1230, 56770000", "S0000012.LOG"),
    ],
)
def test_extract_invalid(raw: str) -> None:
    with pytest.raises(DataShapeError):
        HadrStatusParser().extract(raw)


@pytest.mark.parametrize(
    "hadr_state, expected",
    [
        ("Peer", State.OK),
        ("PEER", State.OK),
        ("Disconnected", State.CRIT),
        ("DISCONNECTED_PEER", State.CRIT),
        ("RemoteCatchupPending", State.WARN),
        ("REMOTE_CATCHUP", State.WARN),
        ("LOCAL_CATCHUP", State.WARN),
    ],
)
def test_state_of_hadr(hadr_state: str, expected: State) -> None:
    assert state_of_hadr(hadr_state) is expected


def test_peer() -> None:
    source = FakeDataSource(get_database_configuration=_db_cfg("PRIMARY"), get_hadr_status=TABULAR)
    exit_code, output = run(HadrCheck(), ARGV, source)
    assert exit_code == 0
    assert output.splitlines() == [
        "HADR PRIMARY in state Peer (Nearsync, Connected), Log file gap: 1|'Log_file_diff'=1;2;5",
        "Primary at log file 5 page 12, standby at log file 4 page 10."
        "|'Page_diff'=2 'Log_position_diff'=65536B",
    ]


def test_standby_is_monitored_too() -> None:
    source = FakeDataSource(
        get_database_configuration=_db_cfg("STANDBY"),
        get_hadr_status=KEY_VALUE.replace("HADR_ROLE = PRIMARY", "HADR_ROLE = STANDBY"),
    )
    exit_code, output = run(HadrCheck(), ARGV, source)
    assert exit_code == 0
    assert output.startswith("HADR STANDBY in state PEER (NEARSYNC, CONNECTED), Log file gap: 0|")


def test_log_gap() -> None:
    source = FakeDataSource(get_database_configuration=_db_cfg("PRIMARY"), get_hadr_status=TABULAR)
    exit_code, output = run(HadrCheck(), [*ARGV, "-w", "1", "-c", "3"], source)
    assert exit_code == 1
    assert "Log file gap: 1 (warn/crit at 1/3)(!)|" in output


def test_disconnected() -> None:
    source = FakeDataSource(
        get_database_configuration=_db_cfg("PRIMARY"),
        get_hadr_status=TABULAR.replace("Peer    ", "Disconnected"),
    )
    exit_code, output = run(HadrCheck(), ARGV, source)
    assert exit_code == 2
    assert output.startswith("HADR PRIMARY in state Disconnected (Nearsync, Connected)(!!), ")


@pytest.mark.parametrize("argv", [[], ["-I"]])
def test_hadr_not_configured(argv: list[str]) -> None:
    source = FakeDataSource(get_database_configuration=_db_cfg("STANDARD"))
    exit_code, output = run(HadrCheck(), [*ARGV, *argv], source)
    assert exit_code == 3
    assert output.startswith("HADR is not configured for database SAMPLE (role STANDARD)|")
    assert not any(call[0] == "get_hadr_status" for call in source.calls)


def test_query_returns_the_hadr_status() -> None:
    source = FakeDataSource(get_database_configuration=_db_cfg("PRIMARY"), get_hadr_status=TABULAR)
    assert HadrCheck().query(source, CheckConfiguration(database="SAMPLE")) == TABULAR
    assert [call[0] for call in source.calls] == ["get_database_configuration", "get_hadr_status"]
