"""Core exceptions for utRunner."""

from typing import Any, Dict, Optional


class UtRunnerError(Exception):
    """Base exception for all utRunner errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(UtRunnerError):
    """Raised when there's an error in configuration parsing or validation."""
    pass


class DatabaseError(UtRunnerError):
    """Raised when there's an error talking to the database."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.url = url


class DatabaseConnectionError(DatabaseError):
    """Raised when a database session cannot be established."""
    pass


class ReporterError(UtRunnerError):
    """Base class for reporter creation and initialization failures."""

    def __init__(
        self,
        message: str,
        reporter_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.reporter_name = reporter_name


class UnknownReporterError(ReporterError):
    """Raised when a reporter name is not known to the registry."""
    pass


class ReporterInitError(ReporterError):
    """Raised when the engine rejects the initialization of a reporter."""
    pass


class TestExecutionError(UtRunnerError):
    """Raised when the remote engine or its transport fails during a run."""

    __test__ = False

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.error_code = error_code


class SomeTestsFailedError(TestExecutionError):
    """Raised when the run completed but one or more tests failed."""
    pass


class IncompatibleVersionError(TestExecutionError):
    """Raised when the installed framework version is not supported."""
    pass


class ReportWriteError(UtRunnerError):
    """Raised when a single report cannot be written to its destinations."""

    def __init__(
        self,
        message: str,
        reporter_name: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.reporter_name = reporter_name
        self.path = path
