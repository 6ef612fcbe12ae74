#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from db2mon.check_utils import State
from db2mon.checkresults import CheckResult, Metric, NOT_EXECUTED


def test_metric_omits_trailing_fields() -> None:
    assert Metric("Log_consumption", 12, "MB").as_nagios() == "'Log_consumption'=12MB"
    assert Metric("X", 1, boundaries=(0, None)).as_nagios() == "'X'=1;;;0"


def test_as_text_has_two_lines() -> None:
    result = CheckResult(
        state=State.WARN,
        summary="Usage: 90%",
        details=("Total 100 KB.",),
        metrics=(Metric("Usage", 90, "%", (90, 95), (0, 100)),),
        long_metrics=(Metric("Free", 10, "KB"),),
    )
    assert result.as_text().split("\n") == [
        "Usage: 90%|'Usage'=90%;90;95;0;100",
        "Total 100 KB.|'Free'=10KB",
    ]


def test_as_text_without_anything() -> None:
    assert CheckResult(state=State.UNKNOWN).as_text() == f"{NOT_EXECUTED}|\n|"


def test_as_text_replaces_pipes() -> None:
    text = CheckResult(summary="a|b", details=("c|d",)).as_text()
    assert text == "a❘b|\nc❘d|"


def test_as_checkmk() -> None:
    result = CheckResult(
        state=State.CRIT,
        summary="Size: 800",
        metrics=(Metric("Database_size", 800, "B", (None, 700)), Metric("Database_usage", 80)),
    )
    assert (
        result.as_checkmk("DB2_Database_Size_db2inst1_SAMPLE")
        == "2 DB2_Database_Size_db2inst1_SAMPLE Database_size=800B;;700|Database_usage=80 Size: 800"
    )


def test_as_checkmk_is_a_single_line() -> None:
    line = CheckResult(summary="x", details=("long",)).as_checkmk("DB2_X")
    assert line == "0 DB2_X - x"
    assert "\n" not in line


def test_from_subresults() -> None:
    result = CheckResult.from_subresults(
        CheckResult(summary="Full ok", metrics=(Metric("a", 1),)),
        CheckResult(state=State.WARN, summary="Incremental old", details=("x",)),
        CheckResult(summary=""),
        CheckResult(state=State.CRIT, summary="Delta older"),
    )
    assert result.state is State.CRIT
    assert result.summary == "Full ok, Incremental old(!), Delta older(!!)"
    assert result.details == ("x",)
    assert result.metrics == (Metric("a", 1),)


def test_from_subresults_unknown_is_not_downgraded() -> None:
    result = CheckResult.from_subresults(
        CheckResult(state=State.WARN, summary="a"), CheckResult(state=State.UNKNOWN, summary="b")
    )
    assert result.state is State.UNKNOWN
    assert result.summary == "a(!), b(?)"
