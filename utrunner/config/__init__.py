"""Configuration management for utRunner."""

from utrunner.config.models import (
    ConsoleOutput,
    Destination,
    DatabaseConfig,
    ResourceConfig,
    CustomTypeMapping,
    MappingConfig,
    ReporterConfig,
    RunSettings,
    RunnerConfig,
    EnvironmentSettings,
    DEFAULT_SOURCE_DIRECTORY,
    DEFAULT_SOURCE_FILE_PATTERN,
    DEFAULT_TEST_DIRECTORY,
    DEFAULT_TEST_FILE_PATTERN,
)
from utrunner.config.parser import (
    ConfigParser,
    create_sample_config,
)

__all__ = [
    # Models
    "ConsoleOutput",
    "Destination",
    "DatabaseConfig",
    "ResourceConfig",
    "CustomTypeMapping",
    "MappingConfig",
    "ReporterConfig",
    "RunSettings",
    "RunnerConfig",
    "EnvironmentSettings",
    "DEFAULT_SOURCE_DIRECTORY",
    "DEFAULT_SOURCE_FILE_PATTERN",
    "DEFAULT_TEST_DIRECTORY",
    "DEFAULT_TEST_FILE_PATTERN",
    # Parser
    "ConfigParser",
    "create_sample_config",
]
