"""Shared fixtures for utRunner tests."""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from utrunner.config.models import RunnerConfig
from utrunner.engine.runner import RunRequest, TestEngine
from utrunner.engine.version import Version
from utrunner.reporting.output_buffer import OutputBuffer
from utrunner.reporting.reporters import CoreReporters, DefaultReporter, ReporterFactory
from utrunner.reporting.registry import ReporterRegistry
from utrunner.reporting.writer import ReportWriter


class FakeReporter(DefaultReporter):
    """Reporter that initializes without touching the database."""

    counter = 0

    def init(self, connection):
        FakeReporter.counter += 1
        self.reporter_id = f"{FakeReporter.counter:032X}"
        return self


class StaticOutputBuffer(OutputBuffer):
    """Output buffer serving canned lines once, like the server-side buffer."""

    def __init__(self, reporter, lines: List[str]):
        super().__init__(reporter)
        self._lines = list(lines)
        self.fetch_count = 0

    def fetch_lines(self, connection):
        self.fetch_count += 1
        lines, self._lines = self._lines, []
        return lines


class FakeEngine(TestEngine):
    """In-memory test engine recording what it was asked to run."""

    def __init__(self, version: str = "3.1.10", error: Optional[Exception] = None):
        self.version = Version.parse(version)
        self.error = error
        self.requests: List[RunRequest] = []

    def framework_version(self, connection):
        return self.version

    def check_compatibility(self, connection, version):
        pass

    def run(self, connection, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_engine():
    """Engine that succeeds."""
    return FakeEngine()


@pytest.fixture
def connection():
    """Mock SQLAlchemy connection."""
    return MagicMock(name="connection")


@pytest.fixture
def session_factory(connection):
    """Session factory handing out the mock connection."""
    factory = MagicMock(name="session_factory")
    factory.open.return_value = connection
    return factory


@pytest.fixture
def fake_reporter_factory():
    """Reporter factory producing fake reporters for every core type."""
    factory = ReporterFactory()
    for core in CoreReporters:
        factory.register_reporter(core.value, partial(FakeReporter, core.value))
    return factory


@pytest.fixture
def registry(fake_reporter_factory):
    return ReporterRegistry(fake_reporter_factory)


@pytest.fixture
def report_lines() -> Dict[str, List[str]]:
    """Canned report content per reporter type."""
    return {
        "UT_DOCUMENTATION_REPORTER": ["betwnstr", "  returns substring from start position [.012 sec]", "1 tests, 0 failed"],
        "UT_SONAR_TEST_REPORTER": ['<testExecutions version="1">', "</testExecutions>"],
        "UT_COVERAGE_SONAR_REPORTER": ['<coverage version="1">', "</coverage>"],
    }


@pytest.fixture
def buffer_resolver(report_lines):
    """Resolver returning static buffers; records the buffers it created."""
    created: List[StaticOutputBuffer] = []

    def resolve(version, reporter, connection):
        buffer = StaticOutputBuffer(reporter, report_lines.get(reporter.type_name, []))
        created.append(buffer)
        return buffer

    resolve.created = created
    return resolve


@pytest.fixture
def writer_factory(buffer_resolver):
    return partial(ReportWriter, buffer_resolver=buffer_resolver)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project layout with default source and test directories."""
    sources = tmp_path / "src" / "main" / "plsql"
    tests = tmp_path / "src" / "test" / "plsql"
    (sources / "packages").mkdir(parents=True)
    tests.mkdir(parents=True)
    (sources / "app.betwnstr.fnc").write_text("create or replace function betwnstr ...")
    (sources / "packages" / "app.pkg_orders.pkb").write_text("create or replace package body ...")
    (sources / "packages" / "app.pkg_orders.pks").write_text("create or replace package ...")
    (tests / "app.test_betwnstr.pkg").write_text("create or replace package test_betwnstr ...")
    (tests / "README.txt").write_text("not a test")
    return tmp_path


@pytest.fixture
def runner_config(project_dir: Path) -> RunnerConfig:
    """Configuration pointing at the sample project."""
    return RunnerConfig(
        database={"url": "localhost:1521/XEPDB1", "username": "app", "password": "app"},
        base_dir=str(project_dir),
    )


@pytest.fixture
def engine_raising():
    """Factory for engines whose run raises the given error."""
    return lambda error: FakeEngine(error=error)
