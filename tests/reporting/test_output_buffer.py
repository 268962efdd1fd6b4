"""Tests for reporter output buffers."""

import io
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from utrunner.engine.version import Version
from utrunner.exceptions import DatabaseError
from utrunner.reporting.output_buffer import (
    LegacyOutputBuffer,
    TableOutputBuffer,
    resolve_output_buffer,
)
from utrunner.reporting.reporters import DefaultReporter


@pytest.fixture
def reporter():
    reporter = DefaultReporter("UT_DOCUMENTATION_REPORTER")
    reporter.reporter_id = "ABC123"
    return reporter


class TestResolveOutputBuffer:
    """Test buffer selection by framework version."""

    @pytest.mark.parametrize("version,expected", [
        ("3.0.4", LegacyOutputBuffer),
        ("3.1.0", TableOutputBuffer),
        ("3.1.10.3349", TableOutputBuffer),
    ])
    def test_selection(self, reporter, version, expected):
        buffer = resolve_output_buffer(Version.parse(version), reporter, MagicMock())

        assert type(buffer) is expected
        assert buffer.reporter is reporter


class TestTableOutputBuffer:
    """Test TableOutputBuffer."""

    def test_drain_copies_lines_to_every_destination(self, reporter):
        connection = MagicMock()
        connection.execute.return_value.fetchall.return_value = [("first",), (None,), ("last",)]
        file_stream, console = io.StringIO(), io.StringIO()

        count = TableOutputBuffer(reporter).drain(connection, [file_stream, console])

        assert count == 3
        assert file_stream.getvalue() == "first\n\nlast\n"
        assert console.getvalue() == file_stream.getvalue()
        assert connection.execute.call_count == 1
        assert connection.execute.call_args.args[1] == {"output_id": "ABC123"}

    def test_drain_without_destinations_still_consumes(self, reporter):
        connection = MagicMock()
        connection.execute.return_value.fetchall.return_value = [("line",)]

        assert TableOutputBuffer(reporter).drain(connection, []) == 1
        connection.execute.assert_called_once()

    def test_read_failure(self, reporter):
        connection = MagicMock()
        connection.execute.side_effect = OperationalError("select", {}, Exception("ORA-03113"))

        with pytest.raises(DatabaseError, match="UT_DOCUMENTATION_REPORTER"):
            TableOutputBuffer(reporter).drain(connection, [io.StringIO()])


class TestLegacyOutputBuffer:
    """Test LegacyOutputBuffer."""

    def test_fetches_in_batches(self, reporter):
        connection = MagicMock()
        result = connection.execute.return_value
        result.fetchmany.side_effect = [[("a",), ("b",)], [("c",)], []]

        lines = LegacyOutputBuffer(reporter, batch_size=2).fetch_lines(connection)

        assert lines == ["a", "b", "c"]
        result.fetchmany.assert_called_with(2)
        result.close.assert_called_once()
        assert connection.execute.call_args.args[1] == {"reporter_id": "ABC123"}
