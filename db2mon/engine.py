#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""The life cycle shared by all DB2 plug-ins

    parse arguments -> validate -> connect -> query -> extract -> evaluate -> format

Argument parsing and validation return either the value to go on with or the
final result. From connecting on, failures are exceptions which are turned
into a result by :class:`CheckResultErrorHandler`. Every run prints exactly one
report and returns its exit code.
"""

from __future__ import annotations

import abc
import argparse
import contextlib
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, NoReturn, TextIO, TypeVar

from pydantic import ValidationError

from db2mon import __version__
from db2mon.check_utils import State, state_markers
from db2mon.checkresults import CheckResult
from db2mon.config import CheckConfiguration, OutputMode
from db2mon.db2cli import Db2CommandLine, Db2DataSource
from db2mon.exceptions import ConfigurationError, Db2MonException
from db2mon.levels import Comparison, UNSET_LEVEL
from db2mon.log import setup_console_logging, VERBOSE
from db2mon.trace import trace_file_for, TraceRecorder

LOGGER = logging.getLogger("db2mon.engine")

DataSourceFactory = Callable[[Path | None], Db2DataSource]

_T = TypeVar("_T")
_RawT = TypeVar("_RawT")
_MetricT = TypeVar("_MetricT")


class Db2Check(abc.ABC, Generic[_RawT, _MetricT]):
    """One kind of check, plugged into the engine

    query:    fetch the raw data from the data source
    extract:  turn raw data into the observed metric, raise DataShapeError if impossible
    evaluate: compare the metric with the configured levels
    """

    program: str
    service: str
    description: str
    comparison: Comparison = Comparison.AT_LEAST
    default_levels: tuple[int | None, int | None] = (None, None)
    levels_help: str = ""
    requires_database: bool = True
    requires_instance: bool = True

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Hook for check specific command line options"""

    @abc.abstractmethod
    def query(self, source: Db2DataSource, config: CheckConfiguration) -> _RawT: ...

    @abc.abstractmethod
    def extract(self, raw: _RawT) -> _MetricT: ...

    @abc.abstractmethod
    def evaluate(self, metric: _MetricT, config: CheckConfiguration) -> CheckResult: ...

    def service_name(self, instance: str | None = None, database: str | None = None) -> str:
        return "_".join(part for part in ("DB2", self.service, instance, database) if part)


@dataclass(frozen=True)
class _Proceed(Generic[_T]):
    value: _T


@dataclass(frozen=True)
class _Terminate:
    result: CheckResult
    output_mode: OutputMode = OutputMode.STANDARD
    # identify the service even if the configuration is unusable
    instance: str | None = None
    database: str | None = None


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise ConfigurationError(f"Invalid arguments: {message}")


class CheckResultErrorHandler:
    def __init__(self, *, debug: bool) -> None:
        self.debug = debug
        # return value
        self._result: CheckResult | None = None

    @property
    def result(self) -> CheckResult | None:
        return self._result

    def __enter__(self) -> CheckResultErrorHandler:
        return self

    def __exit__(self, type_: object, value: BaseException | None, traceback: object) -> bool:
        if type_ is None:
            return True
        if not isinstance(value, Exception):
            return False
        if self.debug and not isinstance(value, Db2MonException):
            return False
        self._result = _handle_failure(value)
        return True


def _handle_failure(exc: Exception) -> CheckResult:
    if isinstance(exc, Db2MonException):
        LOGGER.debug("Check finished by %s: %s", type(exc).__name__, exc)
        return CheckResult(
            state=exc.state,
            summary=str(exc),
            details=(exc.diagnostic,) if exc.diagnostic else (),
        )
    LOGGER.debug("Unhandled exception", exc_info=True)
    return CheckResult(state=State.UNKNOWN, summary=f"Unhandled exception: {exc!r}")


def run_check(
    check: Db2Check,
    argv: Sequence[str],
    *,
    data_source_factory: DataSourceFactory = Db2CommandLine,
    stdout: TextIO | None = None,
) -> int:
    out = sys.stdout if stdout is None else stdout

    parsed = _parse_arguments(check, argv, out)
    if isinstance(parsed, _Terminate):
        out.write(_format(check, parsed.result, parsed.output_mode) + "\n")
        return int(parsed.result.state)

    args = parsed.value
    stage = _validate(check, args)
    if isinstance(stage, _Proceed):
        setup_console_logging(out, stage.value.verbosity)

    with contextlib.ExitStack() as stack:
        recorder = (
            stack.enter_context(TraceRecorder(trace_file_for(check.program), argv))
            if args.trace
            else None
        )
        if isinstance(stage, _Terminate):
            result = stage.result
            output = _format(
                check,
                result,
                stage.output_mode,
                instance=stage.instance,
                database=stage.database,
            )
        else:
            config = stage.value
            result = _check(check, config, data_source_factory)
            output = _format(
                check,
                result,
                config.output_mode,
                instance=config.instance_name,
                database=config.database,
            )
        if recorder is not None:
            try:
                recorder.write(int(result.state), output)
            except OSError as e:
                LOGGER.warning("Cannot write trace file %s: %s", recorder.path, e)

    out.write(output + "\n")
    return int(result.state)


def _check(
    check: Db2Check, config: CheckConfiguration, data_source_factory: DataSourceFactory
) -> CheckResult:
    LOGGER.log(VERBOSE, "Configuration: %r", config)
    handler = CheckResultErrorHandler(debug=config.debug)
    with handler:
        source = data_source_factory(config.instance)
        source.open()
        raw = check.query(source, config)
        LOGGER.debug("Raw data: %r", raw)
        metric = check.extract(raw)
        LOGGER.log(VERBOSE, "Observed: %r", metric)
        result = check.evaluate(metric, config)
        return _ignore_levels(result) if config.ignore else result

    assert handler.result is not None
    return handler.result


def _ignore_levels(result: CheckResult) -> CheckResult:
    summary = result.summary
    for marker in (state_markers[State.WARN], state_markers[State.CRIT]):
        summary = summary.replace(marker, "")
    return CheckResult(
        state=State.OK,
        summary=f"{summary} (thresholds ignored)",
        details=result.details,
        metrics=result.metrics,
        long_metrics=result.long_metrics,
    )


def _format(
    check: Db2Check,
    result: CheckResult,
    output_mode: OutputMode,
    *,
    instance: str | None = None,
    database: str | None = None,
) -> str:
    if output_mode is OutputMode.CHECKMK:
        return result.as_checkmk(check.service_name(instance, database))
    return result.as_text()


def _build_parser(check: Db2Check) -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog=check.program, description=check.description, add_help=False)
    warn, crit = check.default_levels
    parser.add_argument(
        "-w",
        "--warning",
        type=int,
        default=warn,
        metavar="LEVEL",
        help=f"Warning level {check.levels_help} ({UNSET_LEVEL} disables it, default: {warn})",
    )
    parser.add_argument(
        "-c",
        "--critical",
        type=int,
        default=crit,
        metavar="LEVEL",
        help=f"Critical level {check.levels_help} ({UNSET_LEVEL} disables it, default: {crit})",
    )
    parser.add_argument("-d", "--database", metavar="DATABASE", help="Database name")
    parser.add_argument(
        "-i",
        "--instance",
        type=Path,
        metavar="HOME",
        help="Home directory of the instance, containing sqllib/db2profile",
    )
    check.add_arguments(parser)
    parser.add_argument(
        "-I", "--ignore", action="store_true", help="Report OK regardless of the thresholds"
    )
    parser.add_argument("-K", "--mk", action="store_true", help="Use the Check_MK output format")
    parser.add_argument(
        "-T",
        "--trace",
        action="store_true",
        help=f"Append a trace of this run to {trace_file_for(check.program)}",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Verbose mode (repeat for more)"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Debug mode: let Python exceptions come through."
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help and exit")
    parser.add_argument("-V", "--version", action="store_true", help="Show the version and exit")
    return parser


def _parse_arguments(
    check: Db2Check, argv: Sequence[str], out: TextIO
) -> _Proceed[argparse.Namespace] | _Terminate:
    parser = _build_parser(check)
    try:
        args = parser.parse_args(argv)
    except ConfigurationError as e:
        return _Terminate(CheckResult(state=State.UNKNOWN, summary=str(e)))

    output_mode = OutputMode.CHECKMK if args.mk else OutputMode.STANDARD
    # Informational requests are no check results, they end as UNKNOWN
    if args.help:
        out.write(parser.format_help())
        return _Terminate(CheckResult(state=State.UNKNOWN), output_mode)
    if args.version:
        out.write(f"{check.program} {__version__}\n")
        return _Terminate(CheckResult(state=State.UNKNOWN), output_mode)
    return _Proceed(args)


def _validate(
    check: Db2Check, args: argparse.Namespace
) -> _Proceed[CheckConfiguration] | _Terminate:
    output_mode = OutputMode.CHECKMK if args.mk else OutputMode.STANDARD
    try:
        config = CheckConfiguration(
            warning=args.warning,
            critical=args.critical,
            percentage=getattr(args, "percentage", None),
            refresh=getattr(args, "refresh", -1),
            database=args.database,
            instance=args.instance,
            ignore=args.ignore,
            output_mode=output_mode,
            verbosity=args.verbose,
            trace=args.trace,
            debug=args.debug,
        )
    except ValidationError as e:
        return _Terminate(
            CheckResult(state=State.UNKNOWN, summary=f"Invalid arguments: {_describe(e)}"),
            output_mode,
            *_service_identifiers(args),
        )

    for required, name, option in (
        (check.requires_database, "database", "database name (-d)"),
        (check.requires_instance, "instance", "instance home (-i)"),
    ):
        if required and getattr(config, name) is None:
            return _Terminate(
                CheckResult(state=State.UNKNOWN, summary=f"Invalid arguments: missing {option}"),
                output_mode,
                *_service_identifiers(args),
            )
    return _Proceed(config)


def _service_identifiers(args: argparse.Namespace) -> tuple[str | None, str | None]:
    return (None if args.instance is None else args.instance.name), args.database


def _describe(error: ValidationError) -> str:
    return "; ".join(
        ": ".join(
            part
            for part in (
                ".".join(str(loc) for loc in err["loc"]),
                err["msg"].removeprefix("Value error, "),
            )
            if part
        )
        for err in error.errors()
    )

