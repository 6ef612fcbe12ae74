#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from __future__ import annotations

import enum


class State(enum.IntEnum):
    """Service states, their values are the plug-in exit codes"""

    OK = 0
    WARN = 1
    CRIT = 2
    UNKNOWN = 3


def worst_service_state(*states: int, default: int) -> State:
    """Return the 'worst' aggregation of all states

    Integers encode service states like this:

        0 -> OK
        1 -> WARN
        2 -> CRIT
        3 -> UNKNOWN

    Unfortunately this does not reflect the order of severity, or "badness", where

        OK -> WARN -> UNKNOWN -> CRIT

    That's why this function is just not quite `max`.

    Examples:

    >>> worst_service_state(0, 0, default=0)  # OK
    <State.OK: 0>
    >>> worst_service_state(0, 1, default=0)  # WARN
    <State.WARN: 1>
    >>> worst_service_state(0, 1, 2, 3, default=0)  # CRIT
    <State.CRIT: 2>
    >>> worst_service_state(0, 1, 3, default=0)  # UNKNOWN
    <State.UNKNOWN: 3>
    >>> worst_service_state(default=3)
    <State.UNKNOWN: 3>

    """
    return State(2 if 2 in states else max(states, default=default))


# Symbolic representations of states in plug-in output
state_markers = ("", "(!)", "(!!)", "(?)")
