"""utRunner: run database-resident unit tests and collect their reports.

utRunner provides:
- Declarative source/test file discovery mapped to database objects
- Reporter registration with file and console destinations
- Version-aware retrieval of reporter output from the remote engine
- A single-session run pipeline with guaranteed report writing and cleanup
- YAML-based configuration
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Core exports
from utrunner.exceptions import (
    UtRunnerError,
    ConfigurationError,
    DatabaseError,
    DatabaseConnectionError,
    SomeTestsFailedError,
    TestExecutionError,
)

__all__ = [
    "__version__",
    "UtRunnerError",
    "ConfigurationError",
    "DatabaseError",
    "DatabaseConnectionError",
    "SomeTestsFailedError",
    "TestExecutionError",
]
