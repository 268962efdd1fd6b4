"""YAML configuration loading for utRunner."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from utrunner.config.models import EnvironmentSettings, RunnerConfig
from utrunner.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# ${NAME} or ${NAME:-fallback}
_ENV_REFERENCE = re.compile(r"\$\{\s*(?P<name>[^}:\s]+)\s*(?::-(?P<default>[^}]*))?\}")

SAMPLE_CONFIG: Dict[str, Any] = {
    "database": {
        "url": "${UTRUNNER_DB_URL:-localhost:1521/XEPDB1}",
        "username": "app",
        "password": "${APP_DB_PASSWORD:-app}",
    },
    "base_dir": ".",
    "output_dir": "target",
    "sources": [
        {
            "directory": "src/main/plsql",
            "includes": ["**/*.pkb", "**/*.pks"],
            "excludes": [],
        }
    ],
    "source_mapping": {
        "owner": "APP",
        "regex_expression": r".*(\\|\/)(\w+)\.(\w+)\.(\w{3})",
        "owner_subexpression": 2,
        "name_subexpression": 3,
        "type_subexpression": 4,
        "custom_type_mappings": [
            {"custom_mapping": "pkb", "type": "PACKAGE BODY"},
            {"custom_mapping": "pks", "type": "PACKAGE"},
        ],
    },
    "tests": [
        {
            "directory": "src/test/plsql",
            "includes": ["**/*.pkg"],
        }
    ],
    "reporters": [
        {"name": "UT_DOCUMENTATION_REPORTER"},
        {"name": "UT_COVERAGE_SONAR_REPORTER", "file_output": "utplsql/coverage-sonar-reporter.xml"},
        {"name": "UT_SONAR_TEST_REPORTER", "file_output": "utplsql/sonar-test-reporter.xml",
         "console_output": True},
    ],
    "run": {
        "tags": [],
        "random_test_order": False,
        "ignore_failure": False,
        "dbms_output": False,
        "skip_compatibility_check": False,
    },
}


def interpolate(node: Any) -> Any:
    """Replace ``${NAME}`` references in every string of a parsed document.

    Raises:
        ConfigurationError: If a reference without fallback names an unset variable.
    """
    if isinstance(node, dict):
        return {key: interpolate(value) for key, value in node.items()}
    if isinstance(node, list):
        return [interpolate(item) for item in node]
    if not isinstance(node, str):
        return node

    def lookup(match: "re.Match[str]") -> str:
        name, fallback = match.group("name"), match.group("default")
        value = os.environ.get(name)
        if value is not None:
            return value
        if fallback is not None:
            return fallback.strip()
        raise ConfigurationError(f"Required environment variable '{name}' is not set")

    return _ENV_REFERENCE.sub(lookup, node)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge nested mappings; values from ``override`` win, lists are replaced."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class ConfigParser:
    """Loads a :class:`RunnerConfig` from YAML, the environment and includes."""

    def __init__(self, env_settings: Optional[EnvironmentSettings] = None) -> None:
        self.env_settings = env_settings or EnvironmentSettings()

    def load_config(self, config_path: Optional[PathLike] = None) -> RunnerConfig:
        """Load and validate a configuration file.

        Database fields left blank in the file are filled from the
        ``UTRUNNER_DB_URL``, ``UTRUNNER_DB_USER`` and ``UTRUNNER_DB_PASS``
        environment variables.

        Args:
            config_path: Configuration file; default locations are searched when None.

        Returns:
            Validated RunnerConfig instance.

        Raises:
            ConfigurationError: If the file is missing, malformed or invalid.
        """
        source = self._find_config_file(config_path)
        logger.debug(f"Loading configuration from {source}")

        try:
            document = self._read_document(source)
            document = self._resolve_includes(document, source)
            config = RunnerConfig(**document)
        except ConfigurationError:
            raise
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e
        except Exception as e:
            raise ConfigurationError(f"Error loading configuration: {e}") from e

        return self.apply_environment(config)

    def apply_environment(self, config: RunnerConfig) -> RunnerConfig:
        """Overlay environment settings onto a loaded configuration."""
        return config.model_copy(update={"database": config.database.with_environment(self.env_settings)})

    def default_locations(self) -> List[Path]:
        cwd = Path.cwd()
        return [cwd / "utrunner.yaml", cwd / "utrunner.yml", cwd / "config" / "utrunner.yaml"]

    def locate_config_file(self) -> Optional[Path]:
        """First existing file among ``UTRUNNER_CONFIG_FILE`` and the default locations."""
        candidates = self.default_locations()
        if self.env_settings.config_file:
            candidates.insert(0, Path(self.env_settings.config_file))
        return next((path for path in candidates if path.exists()), None)

    def create_sample_config(self, output_path: PathLike) -> None:
        """Write a sample configuration to ``output_path``."""
        with open(output_path, "w", encoding="utf-8") as stream:
            yaml.safe_dump(SAMPLE_CONFIG, stream, default_flow_style=False, sort_keys=False)

    def _find_config_file(self, config_path: Optional[PathLike]) -> Path:
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigurationError(f"Configuration file '{config_path}' not found")
            return path

        located = self.locate_config_file()
        if located is None:
            searched = [str(p) for p in self.default_locations()]
            raise ConfigurationError(f"No configuration file found in default locations: {searched}")
        return located

    def _read_document(self, path: Path) -> Dict[str, Any]:
        """Parse one YAML file into an interpolated mapping; empty files give ``{}``."""
        try:
            with open(path, "r", encoding="utf-8") as stream:
                document = yaml.safe_load(stream)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file '{path}' not found") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in '{path}': {e}") from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigurationError(f"Configuration file '{path}' must contain a mapping")
        return interpolate(document)

    def _resolve_includes(
        self,
        document: Dict[str, Any],
        origin: Path,
        chain: Tuple[Path, ...] = (),
    ) -> Dict[str, Any]:
        """Merge ``include:`` files beneath the including document.

        Include paths are relative to the including file. Included files may
        include further files; an include cycle is a configuration error.
        """
        chain = chain + (origin.resolve(),)
        includes = document.pop("include", None)
        if not includes:
            return document
        if not isinstance(includes, list):
            includes = [includes]

        merged: Dict[str, Any] = {}
        for include in includes:
            include_path = origin.parent / include
            if include_path.resolve() in chain:
                raise ConfigurationError(f"Circular include of '{include_path}' from '{origin}'")
            logger.debug(f"Including configuration from {include_path}")
            included = self._resolve_includes(self._read_document(include_path), include_path, chain)
            merged = deep_merge(merged, included)
        return deep_merge(merged, document)


_config_parser = ConfigParser()


def create_sample_config(output_path: PathLike) -> None:
    """Create a sample configuration file."""
    _config_parser.create_sample_config(output_path)
