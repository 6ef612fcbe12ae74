#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Checking measured values against warning and critical levels"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

from db2mon.check_utils import State
from db2mon.checkresults import CheckResult, Metric

# A level given as -1 on the command line is not checked at all
UNSET_LEVEL = -1


class Comparison(enum.Enum):
    AT_LEAST = ">="
    ABOVE = ">"

    def breached(self, value: int, level: int | None) -> bool:
        """
        >>> Comparison.AT_LEAST.breached(90, 90)
        True
        >>> Comparison.ABOVE.breached(90, 90)
        False
        >>> Comparison.ABOVE.breached(90, None)
        False
        """
        if level is None:
            return False
        if self is Comparison.AT_LEAST:
            return value >= level
        return value > level


@dataclass(frozen=True)
class Levels:
    warn: int | None = None
    crit: int | None = None
    comparison: Comparison = Comparison.AT_LEAST

    def state_of(self, value: int) -> State:
        """Critical is checked first, then warning

        >>> Levels(90, 95).state_of(90)
        <State.WARN: 1>
        >>> Levels(None, 700, Comparison.ABOVE).state_of(800)
        <State.CRIT: 2>
        >>> Levels().state_of(10**9)
        <State.OK: 0>
        """
        if self.comparison.breached(value, self.crit):
            return State.CRIT
        if self.comparison.breached(value, self.warn):
            return State.WARN
        return State.OK

    def scaled(self, factor: int) -> Levels:
        """Convert levels to another unit (e.g. hours to seconds)

        >>> Levels(1, None).scaled(3600)
        Levels(warn=3600, crit=None, comparison=<Comparison.AT_LEAST: '>='>)
        """
        return Levels(
            None if self.warn is None else self.warn * factor,
            None if self.crit is None else self.crit * factor,
            self.comparison,
        )


def check_levels(
    value: int,
    *,
    levels: Levels,
    label: str,
    metric_name: str | None = None,
    unit: str = "",
    render_func: Callable[[int], str] = str,
    boundaries: tuple[int | None, int | None] = (None, None),
) -> CheckResult:
    """Generic function for checking a value against levels

    value:       currently measured value
    levels:      warning and critical levels, either may be None (not checked)
    label:       text in front of the rendered value in the summary
    metric_name: name of the performance data entry or None in order to skip perfdata
    unit:        unit of the performance data entry
    render_func: single argument function presenting the value to human beings
    boundaries:  minimum and maximum of the performance data entry

    >>> check_levels(90, levels=Levels(90, 95), label="Usage", render_func=lambda v: f"{v}%").summary
    'Usage: 90% (warn/crit at 90%/95%)'
    """
    state = levels.state_of(value)
    summary = f"{label}: {render_func(value)}"
    if state is not State.OK:
        summary += " (warn/crit %s %s/%s)" % (
            "at" if levels.comparison is Comparison.AT_LEAST else "above",
            "-" if levels.warn is None else render_func(levels.warn),
            "-" if levels.crit is None else render_func(levels.crit),
        )

    return CheckResult(
        state=state,
        summary=summary,
        metrics=(
            ()
            if metric_name is None
            else (Metric(metric_name, value, unit, (levels.warn, levels.crit), boundaries),)
        ),
    )
