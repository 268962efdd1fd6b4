"""Writing drained reporter output to files and the console."""

import logging
import sys
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TextIO, Union

from sqlalchemy.engine import Connection

from utrunner.engine.version import Version
from utrunner.exceptions import ReportWriteError
from utrunner.reporting.output_buffer import OutputBuffer, resolve_output_buffer
from utrunner.reporting.registry import ReporterBinding
from utrunner.reporting.reporters import Reporter

logger = logging.getLogger(__name__)

BufferResolver = Callable[[Version, Reporter, Connection], OutputBuffer]


@dataclass
class BindingResult:
    """Outcome of writing one reporter."""
    binding: ReporterBinding
    path: Optional[Path] = None
    lines_written: int = 0
    error: Optional[ReportWriteError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class WriteReport:
    """Per-reporter results of the writing phase."""
    results: List[BindingResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[BindingResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[BindingResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


def ensure_directory(directory: Path) -> None:
    """Create a directory and its parents; existing directories are fine."""
    directory.mkdir(parents=True, exist_ok=True)


class ReportWriter:
    """Drains every bound reporter to its destinations.

    Bindings are written one at a time, in registration order. A failure
    is recorded against its binding and never stops the others.
    """

    def __init__(
        self,
        output_directory: Union[str, Path],
        framework_version: Version,
        buffer_resolver: BufferResolver = resolve_output_buffer,
        console_stream: Optional[Callable[[], TextIO]] = None,
    ) -> None:
        self.output_directory = Path(output_directory)
        self.framework_version = framework_version
        self.buffer_resolver = buffer_resolver
        self.console_stream = console_stream or (lambda: sys.stdout)

    def resolve_path(self, file_output: str) -> Path:
        """Absolute paths are kept, relative ones land in the output directory."""
        path = Path(file_output)
        if not path.is_absolute():
            path = self.output_directory / path
        return path

    def write_all(self, connection: Connection, bindings: Sequence[ReporterBinding]) -> WriteReport:
        """Write every binding and report what happened to each."""
        report = WriteReport()
        for binding in bindings:
            result = self._write_binding(connection, binding)
            report.results.append(result)
        if report.failed:
            logger.warning(f"{len(report.failed)} of {len(report.results)} report(s) could not be written")
        return report

    def _write_binding(self, connection: Connection, binding: ReporterBinding) -> BindingResult:
        type_name = binding.reporter.type_name
        result = BindingResult(binding)

        try:
            # closes every file opened for this binding
            with ExitStack() as stack:
                destinations: List[TextIO] = []

                if binding.writes_file:
                    result.path = self.resolve_path(binding.request.file_output)
                    if not result.path.parent.exists():
                        logger.debug(f"Creating directory for reporter file {result.path.absolute()}")
                    ensure_directory(result.path.parent)
                    destinations.append(stack.enter_context(open(result.path, "w", encoding="utf-8")))
                    logger.info(f"Writing report {type_name} to {result.path.absolute()}")

                if binding.writes_console:
                    logger.info(f"Writing report {type_name} to Console")
                    destinations.append(self.console_stream())

                buffer = self.buffer_resolver(self.framework_version, binding.reporter, connection)
                result.lines_written = buffer.drain(connection, destinations)

        except Exception as e:
            result.error = ReportWriteError(
                f"Failed to write report {type_name}: {e}",
                reporter_name=type_name,
                path=str(result.path) if result.path else None,
            )
            logger.error(result.error.message, exc_info=logger.isEnabledFor(logging.DEBUG))

        return result
