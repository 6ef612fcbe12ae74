#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from __future__ import annotations

import dataclasses

from db2mon.check_utils import State, state_markers, worst_service_state

__all__ = ["CheckResult", "Metric", "NOT_EXECUTED"]

# Used when the check finished before anything was evaluated (help, bad arguments)
NOT_EXECUTED = "Note: The test was not executed."


@dataclasses.dataclass(frozen=True)
class Metric:
    """One performance data entry: 'label'=value[unit];warn;crit;min;max"""

    name: str
    value: int
    unit: str = ""
    levels: tuple[int | None, int | None] = (None, None)
    boundaries: tuple[int | None, int | None] = (None, None)

    def as_nagios(self) -> str:
        """
        >>> Metric("Memory_usage", 90, "%", (90, 95), (0, 100)).as_nagios()
        "'Memory_usage'=90%;90;95;0;100"
        >>> Metric("Log_file_diff", 3, levels=(None, 10)).as_nagios()
        "'Log_file_diff'=3;;10"
        """
        return f"'{self.name}'={self._value_and_levels()}"

    def as_checkmk(self) -> str:
        """
        >>> Metric("Backup_age_full", 3600, "s").as_checkmk()
        'Backup_age_full=3600s'
        """
        return f"{self.name}={self._value_and_levels()}"

    def _value_and_levels(self) -> str:
        fields = [f"{self.value}{self.unit}", *self.levels, *self.boundaries]
        return ";".join("" if f is None else str(f) for f in fields).rstrip(";")


@dataclasses.dataclass(frozen=True, kw_only=True)
class CheckResult:
    state: State = State.OK
    summary: str = ""
    details: tuple[str, ...] = ()  # the long description
    metrics: tuple[Metric, ...] = ()
    long_metrics: tuple[Metric, ...] = ()

    @classmethod
    def from_subresults(cls, *subresults: CheckResult) -> CheckResult:
        return cls(
            state=worst_service_state(*(s.state for s in subresults), default=0),
            summary=", ".join(cls._add_marker(s.summary, s.state) for s in subresults if s.summary),
            details=tuple(d for s in subresults for d in s.details),
            metrics=tuple(m for s in subresults for m in s.metrics),
            long_metrics=tuple(m for s in subresults for m in s.long_metrics),
        )

    def as_text(self) -> str:
        """Standard plug-in output: summary and long description, each with perf data

        >>> print(CheckResult(summary="All fine", details=("Really",)).as_text())
        All fine|
        Really|
        """
        return "\n".join(
            (
                "%s|%s"
                % (
                    self._replace_pipe(self.summary or NOT_EXECUTED),
                    " ".join(m.as_nagios() for m in self.metrics),
                ),
                "%s|%s"
                % (
                    " ".join(self._replace_pipe(line) for line in self.details),
                    " ".join(m.as_nagios() for m in self.long_metrics),
                ),
            )
        )

    def as_checkmk(self, service_name: str) -> str:
        """Check_MK local check line

        >>> CheckResult(state=State.WARN, summary="Usage 90%").as_checkmk("DB2_Memory")
        '1 DB2_Memory - Usage 90%'
        """
        perfdata = "|".join(m.as_checkmk() for m in (*self.metrics, *self.long_metrics))
        return "%d %s %s %s" % (
            self.state,
            service_name,
            perfdata or "-",
            self._replace_pipe(self.summary or NOT_EXECUTED),
        )

    @staticmethod
    def _add_marker(txt: str, state: int) -> str:
        marker = state_markers[state]
        return txt if txt.endswith(marker) else f"{txt}{marker}"

    @staticmethod
    def _replace_pipe(txt: str) -> str:
        """The vertical bar indicates end of service output and start of metrics.
        Replace the ones in the output by a Unicode "Light vertical bar"
        """
        return txt.replace("|", "\u2758")
