#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from collections.abc import Iterator
from pathlib import Path

import pytest

import db2mon.trace
from db2mon import log


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    log.clear_console_logging()


@pytest.fixture(autouse=True)
def trace_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(db2mon.trace, "TRACE_DIRECTORY", tmp_path)
    return tmp_path


@pytest.fixture(name="instance_home")
def fixture_instance_home(tmp_path: Path) -> Path:
    home = tmp_path / "db2inst1"
    (home / "sqllib").mkdir(parents=True)
    (home / "sqllib" / "db2profile").write_text("# DB2 instance profile\n")
    return home
