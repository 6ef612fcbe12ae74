#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""User-defined exceptions of the DB2 plug-ins.

Every exception raised on purpose ends the current check with exactly one
result. The engine maps them to service states, see
:mod:`db2mon.engine`."""

from db2mon.check_utils import State

__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "ConnectivityError",
    "DataShapeError",
    "Db2CommandError",
    "Db2MonException",
    "InstanceEnvironmentError",
    "ReplicationStateError",
]


# never used directly in the code. Just some wrapper to make all of our
# exceptions handleable with one call
class Db2MonException(Exception):
    state = State.UNKNOWN

    def __init__(self, message: str, *, diagnostic: str = "") -> None:
        super().__init__(message)
        self.diagnostic = diagnostic


class ConfigurationError(Db2MonException):
    """Invalid or missing command line arguments."""


class InstanceEnvironmentError(Db2MonException):
    """The instance home, its db2profile or the CLP itself cannot be used."""


class ConnectivityError(Db2MonException):
    """The database cannot be reached or the user cannot authenticate."""


class AuthorizationError(Db2MonException):
    """The database refused the administrative query."""


class DataShapeError(Db2MonException):
    """An expected field is missing or malformed in the tool output."""


class Db2CommandError(Db2MonException):
    pass


class ReplicationStateError(Db2MonException):
    """The database has the wrong HADR role for the requested operation.

    Depending on the check this is a problem (UNKNOWN) or simply nothing to
    do (OK), so the state travels with the exception.
    """

    def __init__(self, message: str, *, state: State = State.UNKNOWN, diagnostic: str = "") -> None:
        super().__init__(message, diagnostic=diagnostic)
        self.state = state
