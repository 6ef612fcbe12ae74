#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import io
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from db2mon.db2cli import ArchivedLog
from db2mon.engine import Db2Check, run_check


class FakeDataSource:
    """Answers the queries of the checks with canned output

    An answer that is an exception is raised instead of returned.
    """

    def __init__(self, **answers: object) -> None:
        self.answers = answers
        self.calls: list[tuple[object, ...]] = []
        self.instance_home: Path | None = None

    def __call__(self, instance_home: Path | None) -> "FakeDataSource":
        self.calls.append(("create", instance_home))
        self.instance_home = instance_home
        return self

    def open(self) -> None:
        self.calls.append(("open",))
        if isinstance(error := self.answers.get("open"), Exception):
            raise error

    def read_memory_report(self) -> str:
        return self._answer("read_memory_report")

    def get_database_size_info(self, database: str, refresh: int) -> str:
        return self._answer("get_database_size_info", database, refresh)

    def get_backup_history(self, database: str) -> str:
        return self._answer("get_backup_history", database)

    def get_database_configuration(self, database: str) -> str:
        return self._answer("get_database_configuration", database)

    def get_hadr_status(self, database: str) -> str:
        return self._answer("get_hadr_status", database)

    def find_log_archive(self, directory: Path, instance: str | None, database: str) -> Path:
        return self._answer("find_log_archive", directory, instance, database)

    def list_archived_logs(self, directory: Path) -> Sequence[ArchivedLog]:
        return self._answer("list_archived_logs", directory)

    def connect(self, database: str) -> str:
        return self._answer("connect", database)

    def _answer(self, name: str, *args: object) -> Any:
        self.calls.append((name, *args))
        answer = self.answers[name]
        if isinstance(answer, Exception):
            raise answer
        return answer

    @property
    def queried(self) -> bool:
        return any(call[0] not in ("create", "open") for call in self.calls)


def run(check: Db2Check, argv: Sequence[str], source: FakeDataSource) -> tuple[int, str]:
    stdout = io.StringIO()
    exit_code = run_check(check, argv, data_source_factory=source, stdout=stdout)
    return exit_code, stdout.getvalue()
