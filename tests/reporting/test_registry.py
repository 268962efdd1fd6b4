"""Tests for reporter registration."""

import pytest

from utrunner.config.models import ConsoleOutput, Destination, ReporterConfig
from utrunner.exceptions import ReporterInitError, UnknownReporterError
from utrunner.reporting.registry import ReporterRegistry, default_reporter_request
from utrunner.reporting.reporters import DefaultReporter, ReporterFactory


class TestReporterRegistry:
    """Test ReporterRegistry.register."""

    def test_default_documentation_reporter(self, registry, connection):
        registered = registry.register(connection, [])

        assert [r.type_name for r in registered.reporters] == ["UT_DOCUMENTATION_REPORTER"]
        binding = registered.bindings[0]
        assert binding.writes_console
        assert not binding.writes_file
        assert binding.request == default_reporter_request()
        assert binding.request.console_output == ConsoleOutput.ENABLED

    def test_bindings_follow_request_order(self, registry, connection):
        requests = [
            ReporterConfig(name="UT_SONAR_TEST_REPORTER", file_output="sonar.xml"),
            ReporterConfig(name="UT_DOCUMENTATION_REPORTER"),
            ReporterConfig(name="UT_COVERAGE_SONAR_REPORTER", file_output="cov.xml", console_output=True),
        ]

        registered = registry.register(connection, requests)

        assert [b.reporter.type_name for b in registered.bindings] == [
            "UT_SONAR_TEST_REPORTER",
            "UT_DOCUMENTATION_REPORTER",
            "UT_COVERAGE_SONAR_REPORTER",
        ]
        assert registered.bindings[0].destinations == frozenset({Destination.FILE})
        assert registered.bindings[2].destinations == frozenset({Destination.FILE, Destination.CONSOLE})
        assert all(r.is_initialized for r in registered.reporters)

    def test_reporter_without_destination_is_not_bound(self, registry, connection, caplog):
        requests = [
            ReporterConfig(name="UT_DOCUMENTATION_REPORTER", console_output=False),
            ReporterConfig(name="UT_XUNIT_REPORTER", file_output="xunit.xml"),
        ]

        with caplog.at_level("INFO", logger="utrunner"):
            registered = registry.register(connection, requests)

        assert len(registered.reporters) == 2
        assert [b.reporter.type_name for b in registered.bindings] == ["UT_XUNIT_REPORTER"]
        assert "no output destination" in caplog.text

    def test_duplicate_names_get_distinct_reporters(self, registry, connection):
        requests = [
            ReporterConfig(name="UT_XUNIT_REPORTER", file_output="a.xml"),
            ReporterConfig(name="UT_XUNIT_REPORTER", file_output="b.xml"),
        ]

        registered = registry.register(connection, requests)

        first, second = registered.reporters
        assert first is not second
        assert first.reporter_id != second.reporter_id

    def test_unknown_reporter_aborts(self, registry, connection):
        with pytest.raises(UnknownReporterError):
            registry.register(connection, [ReporterConfig(name="not_a_reporter")])

    def test_init_failure_propagates(self, connection):
        class BrokenReporter(DefaultReporter):
            def init(self, connection):
                raise ReporterInitError("rejected", reporter_name=self.type_name)

        factory = ReporterFactory()
        factory.register_reporter("UT_BROKEN_REPORTER", lambda: BrokenReporter("UT_BROKEN_REPORTER"))

        with pytest.raises(ReporterInitError):
            ReporterRegistry(factory).register(connection, [ReporterConfig(name="UT_BROKEN_REPORTER")])

    def test_short_name_with_default_factory(self, connection):
        connection.execute.return_value.scalar_one.return_value = "A1B2C3"

        registered = ReporterRegistry().register(connection, [ReporterConfig(name="doc", file_output="out/doc.txt")])

        binding, = registered.bindings
        assert binding.reporter.type_name == "UT_DOCUMENTATION_REPORTER"
        assert binding.reporter.reporter_id == "A1B2C3"
        assert binding.writes_file
        assert not binding.writes_console
