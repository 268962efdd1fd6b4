"""Tests for writing reports to files and the console."""

import io
from pathlib import Path

from utrunner.config.models import ReporterConfig
from utrunner.engine.version import Version
from utrunner.exceptions import ReportWriteError
from utrunner.reporting.output_buffer import OutputBuffer
from utrunner.reporting.writer import ReportWriter, ensure_directory


class FailingBuffer(OutputBuffer):
    """Buffer that writes one line and then fails."""

    def fetch_lines(self, connection):
        return ["partial"]

    def drain(self, connection, destinations):
        for destination in destinations:
            destination.write("partial\n")
        raise RuntimeError("connection reset while reading")


def make_writer(tmp_path, buffer_resolver, console=None):
    console = console or io.StringIO()
    return ReportWriter(
        tmp_path / "target",
        Version(3, 1, 10),
        buffer_resolver=buffer_resolver,
        console_stream=lambda: console,
    ), console


class TestEnsureDirectory:
    """Test ensure_directory."""

    def test_idempotent(self, tmp_path: Path):
        target = tmp_path / "a" / "b"

        ensure_directory(target)
        ensure_directory(target)

        assert target.is_dir()


class TestReportWriter:
    """Test ReportWriter.write_all."""

    def test_file_output_created_under_output_directory(self, tmp_path, registry, connection, buffer_resolver):
        registered = registry.register(connection, [
            ReporterConfig(name="UT_SONAR_TEST_REPORTER", file_output="utplsql/sonar-test-reporter.xml"),
        ])
        writer, console = make_writer(tmp_path, buffer_resolver)

        report = writer.write_all(connection, registered.bindings)

        target = tmp_path / "target" / "utplsql" / "sonar-test-reporter.xml"
        assert report.all_succeeded
        assert report.results[0].path == target
        assert target.read_text(encoding="utf-8") == '<testExecutions version="1">\n</testExecutions>\n'
        assert console.getvalue() == ""

    def test_absolute_file_output_kept(self, tmp_path, registry, connection, buffer_resolver):
        absolute = tmp_path / "elsewhere" / "report.xml"
        registered = registry.register(connection, [
            ReporterConfig(name="UT_SONAR_TEST_REPORTER", file_output=str(absolute)),
        ])
        writer, _ = make_writer(tmp_path, buffer_resolver)

        writer.write_all(connection, registered.bindings)

        assert absolute.exists()
        assert not (tmp_path / "target").exists()

    def test_file_and_console_receive_identical_content(self, tmp_path, registry, connection, buffer_resolver):
        registered = registry.register(connection, [
            ReporterConfig(name="UT_COVERAGE_SONAR_REPORTER", file_output="coverage.xml", console_output=True),
        ])
        writer, console = make_writer(tmp_path, buffer_resolver)

        report = writer.write_all(connection, registered.bindings)

        file_content = (tmp_path / "target" / "coverage.xml").read_text(encoding="utf-8")
        assert file_content == console.getvalue()
        assert report.results[0].lines_written == 2
        assert len(buffer_resolver.created) == 1
        assert buffer_resolver.created[0].fetch_count == 1

    def test_console_only_reporter(self, tmp_path, registry, connection, buffer_resolver):
        registered = registry.register(connection, [])
        writer, console = make_writer(tmp_path, buffer_resolver)

        report = writer.write_all(connection, registered.bindings)

        assert "1 tests, 0 failed" in console.getvalue()
        assert report.results[0].path is None
        assert not (tmp_path / "target").exists()

    def test_directory_failure_does_not_stop_other_reporters(self, tmp_path, registry, connection, buffer_resolver):
        blocker = tmp_path / "target" / "blocked"
        blocker.parent.mkdir(parents=True)
        blocker.write_text("a file where a directory should be")
        registered = registry.register(connection, [
            ReporterConfig(name="UT_SONAR_TEST_REPORTER", file_output="blocked/sonar.xml"),
            ReporterConfig(name="UT_COVERAGE_SONAR_REPORTER", file_output="ok/coverage.xml"),
        ])
        writer, _ = make_writer(tmp_path, buffer_resolver)

        report = writer.write_all(connection, registered.bindings)

        assert not report.all_succeeded
        failed, = report.failed
        assert failed.binding.reporter.type_name == "UT_SONAR_TEST_REPORTER"
        assert isinstance(failed.error, ReportWriteError)
        assert not (blocker / "sonar.xml").exists()
        assert (tmp_path / "target" / "ok" / "coverage.xml").exists()

    def test_failure_mid_drain_closes_file(self, tmp_path, registry, connection, monkeypatch):
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            handle = real_open(*args, **kwargs)
            opened.append(handle)
            return handle

        monkeypatch.setattr("builtins.open", tracking_open)
        registered = registry.register(connection, [
            ReporterConfig(name="UT_SONAR_TEST_REPORTER", file_output="sonar.xml"),
        ])
        writer, _ = make_writer(tmp_path, lambda version, reporter, conn: FailingBuffer(reporter))

        report = writer.write_all(connection, registered.bindings)

        assert report.failed[0].error.reporter_name == "UT_SONAR_TEST_REPORTER"
        assert "connection reset" in report.failed[0].error.message
        assert opened and all(handle.closed for handle in opened)

    def test_close_failure_does_not_stop_other_reporters(self, tmp_path, registry, connection, buffer_resolver,
                                                          monkeypatch):
        real_open = open

        class CloseFailingFile(io.StringIO):
            def close(self):
                super().close()
                raise OSError("No space left on device")

        def selective_open(file, *args, **kwargs):
            if Path(file).name == "sonar.xml":
                return CloseFailingFile()
            return real_open(file, *args, **kwargs)

        monkeypatch.setattr("builtins.open", selective_open)
        registered = registry.register(connection, [
            ReporterConfig(name="UT_SONAR_TEST_REPORTER", file_output="sonar.xml"),
            ReporterConfig(name="UT_COVERAGE_SONAR_REPORTER", file_output="coverage.xml"),
        ])
        writer, _ = make_writer(tmp_path, buffer_resolver)

        report = writer.write_all(connection, registered.bindings)

        failed, = report.failed
        assert failed.binding.reporter.type_name == "UT_SONAR_TEST_REPORTER"
        assert "No space left" in failed.error.message
        assert len(report.succeeded) == 1
        assert (tmp_path / "target" / "coverage.xml").exists()

    def test_version_passed_to_buffer_resolver(self, tmp_path, registry, connection):
        seen = []

        def resolver(version, reporter, conn):
            seen.append((version, reporter.type_name, conn))
            return FailingBuffer(reporter)

        registered = registry.register(connection, [])
        writer, _ = make_writer(tmp_path, resolver)

        writer.write_all(connection, registered.bindings)

        assert seen == [(Version(3, 1, 10), "UT_DOCUMENTATION_REPORTER", connection)]
