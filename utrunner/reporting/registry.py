"""Reporter registration against an open session."""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence

from sqlalchemy.engine import Connection

from utrunner.config.models import ConsoleOutput, Destination, ReporterConfig
from utrunner.reporting.reporters import (
    CoreReporters,
    Reporter,
    ReporterFactory,
    reporter_factory,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReporterBinding:
    """An initialized reporter and the destinations its output goes to."""
    reporter: Reporter
    request: ReporterConfig
    destinations: FrozenSet[Destination]

    @property
    def writes_file(self) -> bool:
        return Destination.FILE in self.destinations

    @property
    def writes_console(self) -> bool:
        return Destination.CONSOLE in self.destinations


@dataclass
class RegisteredReporters:
    """Every reporter handed to the engine and the subset that gets written."""
    reporters: List[Reporter] = field(default_factory=list)
    bindings: List[ReporterBinding] = field(default_factory=list)


def default_reporter_request() -> ReporterConfig:
    return ReporterConfig(
        name=CoreReporters.UT_DOCUMENTATION_REPORTER.value,
        console_output=ConsoleOutput.ENABLED,
    )


class ReporterRegistry:
    """Creates and initializes the requested reporters."""

    def __init__(self, factory: Optional[ReporterFactory] = None) -> None:
        self.factory = factory or reporter_factory

    def register(
        self,
        connection: Connection,
        requests: Sequence[ReporterConfig],
    ) -> RegisteredReporters:
        """Instantiate and initialize one reporter per request.

        Without requests a documentation reporter writing to the console is
        used. Reporters whose requests resolve to no destination are still
        initialized and handed to the engine, but are not bound for writing.

        Raises:
            UnknownReporterError: If a reporter name is not registered.
            ReporterInitError: If the engine rejects a reporter.
        """
        if not requests:
            requests = [default_reporter_request()]

        registered = RegisteredReporters()
        for request in requests:
            reporter = self.factory.create_reporter(request.name)
            reporter.init(connection)
            registered.reporters.append(reporter)

            destinations = request.destinations()
            if not destinations:
                logger.info(f"Reporter {reporter.type_name} has no output destination, its report is dropped")
                continue
            registered.bindings.append(ReporterBinding(reporter, request, destinations))

        return registered
