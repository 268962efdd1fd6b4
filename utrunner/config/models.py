"""Pydantic models for utRunner configuration."""

from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, List, Optional

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    AliasChoices,
    ConfigDict,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SOURCE_DIRECTORY = "src/main/plsql"
DEFAULT_SOURCE_FILE_PATTERN = "**/*.*"
DEFAULT_TEST_DIRECTORY = "src/test/plsql"
DEFAULT_TEST_FILE_PATTERN = "**/*.pkg"
DEFAULT_OUTPUT_DIRECTORY = "target"


class ConsoleOutput(str, Enum):
    """Console output request of a reporter."""
    UNSET = "unset"
    ENABLED = "enabled"
    DISABLED = "disabled"


class Destination(str, Enum):
    """Places a reporter's output can be written to."""
    FILE = "file"
    CONSOLE = "console"


class DatabaseConfig(BaseModel):
    """Database session configuration."""

    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = Field(default=None, validation_alias=AliasChoices("url", "db_url"))
    username: Optional[str] = Field(default=None, validation_alias=AliasChoices("username", "user"))
    password: Optional[str] = Field(default=None, validation_alias=AliasChoices("password", "pass"))
    options: dict = Field(default_factory=dict)

    def with_environment(self, env: "EnvironmentSettings") -> "DatabaseConfig":
        """Fill fields left blank in the file from environment settings."""
        return self.model_copy(update={
            "url": self.url or env.db_url,
            "username": self.username or env.db_user,
            "password": self.password or env.db_pass,
        })


class ResourceConfig(BaseModel):
    """A directory with include/exclude glob patterns."""
    directory: Optional[str] = None
    includes: List[str] = Field(default_factory=list)
    excludes: List[str] = Field(default_factory=list)


class CustomTypeMapping(BaseModel):
    """Maps a custom file token onto a database object type."""

    model_config = ConfigDict(populate_by_name=True)

    custom_mapping: str = Field(validation_alias=AliasChoices("custom_mapping", "customMapping"))
    type: str


class MappingConfig(BaseModel):
    """Rules used by the engine to turn file paths into database objects."""
    owner: Optional[str] = None
    regex_expression: Optional[str] = None
    owner_subexpression: Optional[int] = Field(default=None, ge=1)
    name_subexpression: Optional[int] = Field(default=None, ge=1)
    type_subexpression: Optional[int] = Field(default=None, ge=1)
    custom_type_mappings: List[CustomTypeMapping] = Field(default_factory=list)


class ReporterConfig(BaseModel):
    """A reporter request and where its output should go."""
    name: str
    file_output: Optional[str] = None
    console_output: ConsoleOutput = ConsoleOutput.UNSET

    @field_validator("name")
    def validate_name(cls, v):
        """Reject blank reporter names."""
        if not v or not v.strip():
            raise ValueError("Reporter name must not be blank")
        return v.strip()

    @field_validator("console_output", mode="before")
    def coerce_console_output(cls, v):
        """Accept booleans and null for the console flag."""
        if v is None:
            return ConsoleOutput.UNSET
        if isinstance(v, bool):
            return ConsoleOutput.ENABLED if v else ConsoleOutput.DISABLED
        return v

    @property
    def has_file_output(self) -> bool:
        return bool(self.file_output and self.file_output.strip())

    def destinations(self) -> FrozenSet[Destination]:
        """Resolve where this reporter writes.

        An unset console flag without a file output means console.
        """
        resolved = set()
        if self.has_file_output:
            resolved.add(Destination.FILE)
        if self.console_output == ConsoleOutput.ENABLED:
            resolved.add(Destination.CONSOLE)
        elif self.console_output == ConsoleOutput.UNSET and not self.has_file_output:
            resolved.add(Destination.CONSOLE)
        return frozenset(resolved)


class RunSettings(BaseModel):
    """Options forwarded to the test engine and the run policy."""
    paths: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    include_object: Optional[str] = None
    exclude_object: Optional[str] = None
    random_test_order: bool = False
    random_test_order_seed: Optional[int] = None
    skip_compatibility_check: bool = False
    ignore_failure: bool = Field(default=False, description="Treat failed tests as a successful run")
    dbms_output: bool = Field(default=False, description="Enable DBMS_OUTPUT during the run")
    skip: bool = Field(default=False, description="Skip the whole invocation")

    @field_validator("tags")
    def dedupe_tags(cls, v):
        """Keep the first occurrence of every tag."""
        return list(dict.fromkeys(tag.strip() for tag in v if tag and tag.strip()))


class RunnerConfig(BaseModel):
    """Main configuration model for utRunner."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    base_dir: str = "."
    output_dir: str = DEFAULT_OUTPUT_DIRECTORY
    sources: List[ResourceConfig] = Field(default_factory=list)
    tests: List[ResourceConfig] = Field(default_factory=list)
    source_mapping: MappingConfig = Field(default_factory=MappingConfig)
    test_mapping: MappingConfig = Field(default_factory=MappingConfig)
    reporters: List[ReporterConfig] = Field(default_factory=list)
    run: RunSettings = Field(default_factory=RunSettings)

    @property
    def base_path(self) -> Path:
        return Path(self.base_dir)

    @property
    def output_path(self) -> Path:
        """Output directory, relative paths resolved against the base dir."""
        path = Path(self.output_dir)
        if not path.is_absolute():
            path = self.base_path / path
        return path

    def with_overrides(self, **overrides: Any) -> "RunnerConfig":
        """Return a copy with run settings and top-level fields replaced.

        None values are ignored so unset command line options keep the file value.
        """
        run_fields = set(RunSettings.model_fields)
        run_update = {k: v for k, v in overrides.items() if k in run_fields and v is not None}
        top_update = {k: v for k, v in overrides.items() if k not in run_fields and v is not None}
        update = dict(top_update)
        if run_update:
            update["run"] = self.run.model_copy(update=run_update)
        return self.model_copy(update=update)


class EnvironmentSettings(BaseSettings):
    """Environment-specific settings."""

    model_config = SettingsConfigDict(env_prefix="UTRUNNER_", case_sensitive=False)

    db_url: Optional[str] = Field(default=None)
    db_user: Optional[str] = Field(default=None)
    db_pass: Optional[str] = Field(default=None)
    log_level: str = Field(default="INFO")
    config_file: Optional[str] = Field(default=None)
