#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Parsing of "db2 get db cfg for <database>"

Example lines:
 HADR database role                                      = STANDARD
 Log file size (4KB)                         (LOGFILSIZ) = 1024
 First log archive method                 (LOGARCHMETH1) = DISK:/db2/archive/
"""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from db2mon.exceptions import DataShapeError

_LINE = re.compile(r"^\s*(.*?)\s*(?:\(([A-Z0-9_]+)\))?\s*=\s*(.*?)\s*$")


class HadrRole(enum.Enum):
    PRIMARY = "PRIMARY"
    STANDBY = "STANDBY"
    STANDARD = "STANDARD"


@dataclass(frozen=True)
class DatabaseConfiguration:
    parameters: Mapping[str, str]

    def __getitem__(self, key: str) -> str:
        try:
            return self.parameters[key]
        except KeyError:
            raise DataShapeError(f"{key} not found in the database configuration") from None

    @property
    def hadr_role(self) -> HadrRole:
        """
        >>> parse_database_configuration(" HADR database role    = PRIMARY").hadr_role
        <HadrRole.PRIMARY: 'PRIMARY'>
        """
        role = self["HADR database role"]
        try:
            return HadrRole(role.upper())
        except ValueError:
            raise DataShapeError(f"Unknown HADR database role: {role!r}") from None

    @property
    def log_archive_directory(self) -> Path | None:
        """The directory of LOGARCHMETH1, None if the logs are not archived to disk

        >>> parse_database_configuration(
        ...     " First log archive method   (LOGARCHMETH1) = DISK:/db2/archive/"
        ... ).log_archive_directory
        PosixPath('/db2/archive')
        >>> print(parse_database_configuration(
        ...     " First log archive method   (LOGARCHMETH1) = OFF"
        ... ).log_archive_directory)
        None
        """
        method = self["LOGARCHMETH1"]
        if not method.upper().startswith("DISK:"):
            return None
        return Path(method[len("DISK:") :])


def parse_database_configuration(raw: str) -> DatabaseConfiguration:
    """Parameters are available by description and, if present, by keyword"""
    parameters: dict[str, str] = {}
    for line in raw.splitlines():
        if "=" not in line or (match := _LINE.match(line)) is None:
            continue
        description, keyword, value = match.groups()
        parameters[description] = value
        if keyword:
            parameters[keyword] = value
    return DatabaseConfiguration(parameters)
