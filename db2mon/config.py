#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from __future__ import annotations

import enum
from pathlib import Path
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator

from db2mon.levels import Comparison, Levels, UNSET_LEVEL


class OutputMode(enum.Enum):
    STANDARD = "standard"
    CHECKMK = "checkmk"


class CheckConfiguration(BaseModel, frozen=True):
    """Everything one plug-in run needs to know, built once from the command line"""

    warning: int | None = None
    critical: int | None = None
    percentage: int | None = Field(default=None, gt=0, le=100)
    refresh: int = Field(default=-1, ge=-1)
    database: str | None = Field(default=None, pattern=r"^[A-Za-z0-9_@#$]{1,8}$")
    instance: Path | None = None
    ignore: bool = False
    output_mode: OutputMode = OutputMode.STANDARD
    verbosity: int = Field(default=0, ge=0)
    trace: bool = False
    debug: bool = False

    @field_validator("warning", "critical", mode="after")
    @classmethod
    def _validate_level(cls, value: int | None) -> int | None:
        if value is None or value == UNSET_LEVEL:
            return None
        if value <= 0:
            raise ValueError(f"thresholds must be greater than zero (got {value})")
        return value

    @model_validator(mode="after")
    def _validate_level_order(self) -> Self:
        if (
            self.warning is not None
            and self.critical is not None
            and self.warning >= self.critical
        ):
            raise ValueError(
                f"warning threshold ({self.warning}) must be lower than"
                f" critical threshold ({self.critical})"
            )
        return self

    @property
    def instance_name(self) -> str | None:
        """The instance owner is the last part of the instance home"""
        return None if self.instance is None else self.instance.name

    def levels(self, comparison: Comparison) -> Levels:
        return Levels(self.warning, self.critical, comparison)
