"""Reporter capability and the name-based reporter registry."""

import logging
import re
from abc import ABC, abstractmethod
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from utrunner.exceptions import ReporterInitError, UnknownReporterError

logger = logging.getLogger(__name__)

_TYPE_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_$#]*(\.[A-Za-z][A-Za-z0-9_$#]*)?$")


class CoreReporters(str, Enum):
    """Reporter types shipped with the test framework."""
    UT_DOCUMENTATION_REPORTER = "UT_DOCUMENTATION_REPORTER"
    UT_XUNIT_REPORTER = "UT_XUNIT_REPORTER"
    UT_JUNIT_REPORTER = "UT_JUNIT_REPORTER"
    UT_TFS_JUNIT_REPORTER = "UT_TFS_JUNIT_REPORTER"
    UT_TEAMCITY_REPORTER = "UT_TEAMCITY_REPORTER"
    UT_SONAR_TEST_REPORTER = "UT_SONAR_TEST_REPORTER"
    UT_COVERAGE_HTML_REPORTER = "UT_COVERAGE_HTML_REPORTER"
    UT_COVERAGE_SONAR_REPORTER = "UT_COVERAGE_SONAR_REPORTER"
    UT_COVERALLS_REPORTER = "UT_COVERALLS_REPORTER"
    UT_COVERAGE_COBERTURA_REPORTER = "UT_COVERAGE_COBERTURA_REPORTER"


# Short names accepted in place of the full type names
REPORTER_ALIASES: Dict[str, CoreReporters] = {
    "doc": CoreReporters.UT_DOCUMENTATION_REPORTER,
    "xunit": CoreReporters.UT_XUNIT_REPORTER,
    "junit": CoreReporters.UT_JUNIT_REPORTER,
    "tfs_junit": CoreReporters.UT_TFS_JUNIT_REPORTER,
    "teamcity": CoreReporters.UT_TEAMCITY_REPORTER,
    "sonar": CoreReporters.UT_SONAR_TEST_REPORTER,
    "coverage_html": CoreReporters.UT_COVERAGE_HTML_REPORTER,
    "coverage_sonar": CoreReporters.UT_COVERAGE_SONAR_REPORTER,
    "coveralls": CoreReporters.UT_COVERALLS_REPORTER,
    "cobertura": CoreReporters.UT_COVERAGE_COBERTURA_REPORTER,
}


class Reporter(ABC):
    """A reporter living in the database session.

    The reporter collects run output in a server-side buffer identified by
    ``reporter_id``; the id is assigned by :meth:`init`.
    """

    def __init__(self) -> None:
        self.reporter_id: Optional[str] = None

    @property
    @abstractmethod
    def type_name(self) -> str:
        """Database type name of the reporter."""
        pass

    @property
    def is_initialized(self) -> bool:
        return self.reporter_id is not None

    def init(self, connection: Connection) -> "Reporter":
        """Register the reporter with the session.

        Raises:
            ReporterInitError: If the engine does not know the type or the
                id cannot be obtained.
        """
        if not _TYPE_NAME.match(self.type_name):
            raise ReporterInitError(
                f"Invalid reporter type name '{self.type_name}'", reporter_name=self.type_name
            )

        owner, _, name = self.type_name.upper().rpartition(".")
        try:
            params = {"type_name": name}
            query = "SELECT COUNT(*) FROM all_types WHERE type_name = :type_name"
            if owner:
                query += " AND owner = :owner"
                params["owner"] = owner
            if not connection.execute(text(query), params).scalar_one():
                raise ReporterInitError(
                    f"Reporter type '{self.type_name}' does not exist in the database",
                    reporter_name=self.type_name,
                )
            self.reporter_id = connection.execute(
                text("SELECT rawtohex(sys_guid()) FROM dual")
            ).scalar_one()
        except SQLAlchemyError as e:
            raise ReporterInitError(
                f"Failed to initialize reporter '{self.type_name}': {e}",
                reporter_name=self.type_name,
            ) from e

        logger.debug(f"Initialized reporter {self.type_name} with id {self.reporter_id}")
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type_name={self.type_name!r}, reporter_id={self.reporter_id!r})"


class DefaultReporter(Reporter):
    """Reporter whose behaviour is fully defined by its database type."""

    def __init__(self, type_name: str) -> None:
        super().__init__()
        self._type_name = type_name

    @property
    def type_name(self) -> str:
        return self._type_name


class ReporterFactory:
    """Creates reporters by name."""

    def __init__(self) -> None:
        self._factories: Dict[str, Callable[[], Reporter]] = {}

    def register_reporter(self, name: str, factory: Callable[[], Reporter]) -> None:
        """Register a reporter factory.

        Args:
            name: Reporter name, matched case-insensitively.
            factory: Callable returning a new, uninitialized reporter.
        """
        self._factories[name.upper()] = factory

    def create_reporter(self, name: str) -> Reporter:
        """Create a reporter for the given name.

        Raises:
            UnknownReporterError: If no reporter is registered under the name.
        """
        factory = self._factories.get(name.strip().upper())
        if factory is None:
            raise UnknownReporterError(
                f"Unknown reporter '{name}'. Available reporters: {self.list_available_reporters()}",
                reporter_name=name,
            )
        return factory()

    def list_available_reporters(self) -> List[str]:
        return sorted(self._factories)

    @classmethod
    def with_core_reporters(cls) -> "ReporterFactory":
        factory = cls()
        for core in CoreReporters:
            factory.register_reporter(core.value, partial(DefaultReporter, core.value))
        for alias, core in REPORTER_ALIASES.items():
            factory.register_reporter(alias, partial(DefaultReporter, core.value))
        return factory


# Global factory instance
reporter_factory = ReporterFactory.with_core_reporters()
