"""Retrieval of reporter output from the remote engine."""

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, TextIO

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from utrunner.engine.version import Version, V3_1_0
from utrunner.exceptions import DatabaseError
from utrunner.reporting.reporters import Reporter

logger = logging.getLogger(__name__)


class OutputBuffer(ABC):
    """Reads a reporter's buffered output and copies it to destinations.

    The server-side buffer is consumed by reading it, so content is
    fetched once and then replicated to every destination.
    """

    def __init__(self, reporter: Reporter) -> None:
        self.reporter = reporter

    @abstractmethod
    def fetch_lines(self, connection: Connection) -> List[str]:
        """Fetch every available line of the reporter's output."""
        pass

    def drain(self, connection: Connection, destinations: Sequence[TextIO]) -> int:
        """Write the reporter's output to each destination in order.

        Returns:
            Number of lines written per destination.

        Raises:
            DatabaseError: If the output cannot be read.
        """
        try:
            lines = self.fetch_lines(connection)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to read output of reporter {self.reporter.type_name}: {e}"
            ) from e

        for destination in destinations:
            for line in lines:
                destination.write(line)
                destination.write("\n")
            destination.flush()

        logger.debug(
            f"Drained {len(lines)} lines of {self.reporter.type_name} to {len(destinations)} destination(s)"
        )
        return len(lines)


class TableOutputBuffer(OutputBuffer):
    """Bulk fetch from the table buffer of framework 3.1.0 and later."""

    QUERY = (
        "SELECT text FROM TABLE("
        "ut_output_table_buffer(:output_id).get_lines(a_initial_timeout => 1, a_timeout_sec => 1))"
    )

    def fetch_lines(self, connection: Connection) -> List[str]:
        result = connection.execute(text(self.QUERY), {"output_id": self.reporter.reporter_id})
        return [row[0] or "" for row in result.fetchall()]


class LegacyOutputBuffer(OutputBuffer):
    """Consume protocol of frameworks older than 3.1.0."""

    QUERY = "SELECT column_value FROM TABLE(ut_output_buffer.get_lines(:reporter_id, 1))"

    def __init__(self, reporter: Reporter, batch_size: int = 100) -> None:
        super().__init__(reporter)
        self.batch_size = batch_size

    def fetch_lines(self, connection: Connection) -> List[str]:
        result = connection.execute(text(self.QUERY), {"reporter_id": self.reporter.reporter_id})
        lines: List[str] = []
        try:
            while True:
                rows = result.fetchmany(self.batch_size)
                if not rows:
                    break
                lines.extend(row[0] or "" for row in rows)
        finally:
            result.close()
        return lines


def resolve_output_buffer(
    framework_version: Version,
    reporter: Reporter,
    connection: Connection,
) -> OutputBuffer:
    """Pick the output buffer compatible with the framework version.

    Chosen per call; different reporters may see different versions.
    """
    if framework_version < V3_1_0:
        logger.debug(f"Using legacy output buffer for {reporter.type_name} (framework {framework_version})")
        return LegacyOutputBuffer(reporter)
    return TableOutputBuffer(reporter)
