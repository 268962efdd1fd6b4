"""Top-level coordination of a test run and its reports."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from sqlalchemy.engine import Connection

from utrunner.config.models import (
    DEFAULT_SOURCE_DIRECTORY,
    DEFAULT_SOURCE_FILE_PATTERN,
    DEFAULT_TEST_DIRECTORY,
    DEFAULT_TEST_FILE_PATTERN,
    RunnerConfig,
)
from utrunner.db.connection import SessionFactory
from utrunner.db.dbms_output import disable_dbms_output, enable_dbms_output
from utrunner.engine.runner import RunRequest, TestEngine, UtplsqlEngine, split_object_list
from utrunner.engine.version import Version
from utrunner.exceptions import (
    DatabaseError,
    SomeTestsFailedError,
    TestExecutionError,
)
from utrunner.mapping.models import FileMappingOptions
from utrunner.mapping.resolver import resolve_mapping_options
from utrunner.reporting.registry import RegisteredReporters, ReporterRegistry
from utrunner.reporting.writer import ReportWriter, WriteReport

logger = logging.getLogger(__name__)

WriterFactory = Callable[..., ReportWriter]


class RunState(str, Enum):
    """Lifecycle of one invocation."""
    IDLE = "idle"
    CONFIG_RESOLVED = "config_resolved"
    CONNECTED = "connected"
    REPORTERS_BOUND = "reporters_bound"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class OutcomeKind(str, Enum):
    """What the run step ended with."""
    SUCCESS = "success"
    TESTS_FAILED = "tests_failed"
    INFRASTRUCTURE_FAILURE = "infrastructure_failure"


@dataclass(frozen=True)
class RunOutcome:
    """Result of the run step."""
    kind: OutcomeKind
    details: Optional[str] = None
    cause: Optional[BaseException] = None

    @classmethod
    def success(cls) -> "RunOutcome":
        return cls(OutcomeKind.SUCCESS)

    @classmethod
    def tests_failed(cls, error: SomeTestsFailedError) -> "RunOutcome":
        return cls(OutcomeKind.TESTS_FAILED, details=str(error), cause=error)

    @classmethod
    def infrastructure_failure(cls, error: BaseException) -> "RunOutcome":
        return cls(OutcomeKind.INFRASTRUCTURE_FAILURE, details=str(error), cause=error)


@dataclass
class ExecutionResult:
    """Final status handed back to the caller."""
    outcome: RunOutcome
    exit_success: bool
    message: str
    write_report: WriteReport = field(default_factory=WriteReport)
    skipped: bool = False


class ExecutionOrchestrator:
    """Runs the whole pipeline for one invocation.

    Configuration and connection errors propagate. Once the connection is
    open it is always closed, and once reporters are bound their reports
    are always written, whatever the run step did.
    """

    def __init__(
        self,
        config: RunnerConfig,
        session_factory: Optional[SessionFactory] = None,
        engine: Optional[TestEngine] = None,
        registry: Optional[ReporterRegistry] = None,
        writer_factory: WriterFactory = ReportWriter,
        color_console: bool = False,
    ) -> None:
        self.config = config
        self.session_factory = session_factory or SessionFactory(config.database)
        self.engine = engine or UtplsqlEngine()
        self.registry = registry or ReporterRegistry()
        self.writer_factory = writer_factory
        self.color_console = color_console
        self.state = RunState.IDLE
        self.state_history: List[RunState] = [RunState.IDLE]

    def _transition(self, state: RunState) -> None:
        logger.debug(f"State {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)

    def resolve_mappings(self) -> Tuple[FileMappingOptions, FileMappingOptions]:
        """Resolve source and test mapping options.

        Raises:
            ConfigurationError: If a resource directory is invalid.
        """
        base_dir = self.config.base_path
        sources = resolve_mapping_options(
            base_dir, self.config.sources, self.config.source_mapping,
            DEFAULT_SOURCE_DIRECTORY, DEFAULT_SOURCE_FILE_PATTERN,
        )
        tests = resolve_mapping_options(
            base_dir, self.config.tests, self.config.test_mapping,
            DEFAULT_TEST_DIRECTORY, DEFAULT_TEST_FILE_PATTERN,
        )
        return sources, tests

    def build_request(
        self,
        registered: RegisteredReporters,
        sources: FileMappingOptions,
        tests: FileMappingOptions,
    ) -> RunRequest:
        run = self.config.run
        return RunRequest(
            reporters=tuple(registered.reporters),
            source_mapping=sources,
            test_mapping=tests,
            paths=tuple(run.paths),
            tags=tuple(run.tags),
            include_objects=split_object_list(run.include_object),
            exclude_objects=split_object_list(run.exclude_object),
            random_test_order=run.random_test_order,
            random_test_order_seed=run.random_test_order_seed,
            skip_compatibility_check=run.skip_compatibility_check,
            color_console=self.color_console,
            fail_on_errors=True,
        )

    def execute(self) -> ExecutionResult:
        """Run the tests and write every report.

        Returns:
            The final status of the invocation.

        Raises:
            ConfigurationError: If sources or tests are misconfigured.
            DatabaseConnectionError: If no session can be opened.
            ReporterError: If a reporter cannot be created or initialized.
        """
        if self.config.run.skip:
            logger.info("utPLSQL tests are skipped.")
            return ExecutionResult(RunOutcome.success(), True, "Tests skipped", skipped=True)

        sources, tests = self.resolve_mappings()
        self._transition(RunState.CONFIG_RESOLVED)

        connection = self.session_factory.open()
        self._transition(RunState.CONNECTED)

        dbms_output_enabled = False
        write_report = WriteReport()
        try:
            outcome: Optional[RunOutcome] = None
            registered: Optional[RegisteredReporters] = None
            writer: Optional[ReportWriter] = None
            try:
                version = self.engine.framework_version(connection)
                registered = self.registry.register(connection, self.config.reporters)
                writer = self.writer_factory(self.config.output_path, version)
                self._transition(RunState.REPORTERS_BOUND)
                self._log_parameters(sources, tests, registered)

                if self.config.run.dbms_output:
                    enable_dbms_output(connection)
                    dbms_output_enabled = True
                    logger.info("Enabled dbms_output.")

                self._transition(RunState.RUNNING)
                self.engine.run(connection, self.build_request(registered, sources, tests))
                outcome = RunOutcome.success()

            except SomeTestsFailedError as e:
                outcome = RunOutcome.tests_failed(e)
            except (TestExecutionError, DatabaseError) as e:
                logger.error(f"Test execution failed: {e}")
                outcome = RunOutcome.infrastructure_failure(e)
            finally:
                if registered is not None and writer is not None:
                    write_report = self._write_reports(connection, writer, registered)
        finally:
            self._close(connection, dbms_output_enabled)

        return self._decide(outcome, write_report)

    def _write_reports(
        self,
        connection: Connection,
        writer: ReportWriter,
        registered: RegisteredReporters,
    ) -> WriteReport:
        self._transition(RunState.DRAINING)
        try:
            return writer.write_all(connection, registered.bindings)
        except Exception as e:
            logger.error(f"Writing reports failed: {e}", exc_info=True)
            return WriteReport()

    def _close(self, connection: Connection, dbms_output_enabled: bool) -> None:
        if dbms_output_enabled:
            try:
                disable_dbms_output(connection)
            except Exception as e:
                logger.error(f"Failed to disable dbms_output: {e}")
        try:
            self.session_factory.close(connection)
        except Exception as e:
            logger.error(f"Failed to close the database connection: {e}")
        self._transition(RunState.CLOSED)

    def _decide(self, outcome: RunOutcome, write_report: WriteReport) -> ExecutionResult:
        if outcome.kind == OutcomeKind.SUCCESS:
            return ExecutionResult(outcome, True, "All tests passed", write_report)

        if outcome.kind == OutcomeKind.TESTS_FAILED:
            if self.config.run.ignore_failure:
                logger.warning(f"{outcome.details}, failure ignored")
                return ExecutionResult(outcome, True, f"{outcome.details} (failure ignored)", write_report)
            return ExecutionResult(outcome, False, outcome.details or "Some tests failed", write_report)

        return ExecutionResult(outcome, False, outcome.details or "Test execution failed", write_report)

    def _log_parameters(
        self,
        sources: FileMappingOptions,
        tests: FileMappingOptions,
        registered: RegisteredReporters,
    ) -> None:
        logger.info(f"Invoking TestRunner with: {self.config.output_path}")

        if not logger.isEnabledFor(logging.DEBUG):
            return

        logger.debug("reporters=")
        for reporter in registered.reporters:
            logger.debug(reporter.type_name)
        logger.debug("sources=")
        for path in sources.file_paths:
            logger.debug(path)
        logger.debug("tests=")
        for path in tests.file_paths:
            logger.debug(path)
