"""Adapter to the database-resident test engine."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from utrunner.db.connection import get_session_user
from utrunner.engine.version import Version, V3_0_0, V3_1_0, V3_1_7
from utrunner.exceptions import (
    IncompatibleVersionError,
    SomeTestsFailedError,
    TestExecutionError,
)
from utrunner.mapping.models import FileMappingOptions
from utrunner.reporting.reporters import Reporter

logger = logging.getLogger(__name__)

SOME_TESTS_FAILED_ERROR_CODE = 20213

_ORA_CODE = re.compile(r"ORA-(\d{5})")


@dataclass(frozen=True)
class RunRequest:
    """Everything the engine needs for one run."""
    reporters: Tuple[Reporter, ...]
    source_mapping: FileMappingOptions = field(default_factory=FileMappingOptions)
    test_mapping: FileMappingOptions = field(default_factory=FileMappingOptions)
    paths: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    include_objects: Tuple[str, ...] = ()
    exclude_objects: Tuple[str, ...] = ()
    random_test_order: bool = False
    random_test_order_seed: Optional[int] = None
    skip_compatibility_check: bool = False
    color_console: bool = False
    fail_on_errors: bool = True


def split_object_list(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma separated object filter, dropping blanks."""
    if not value or not value.strip():
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


class TestEngine(ABC):
    """The remote facility that executes tests inside the database."""

    __test__ = False

    @abstractmethod
    def framework_version(self, connection: Connection) -> Version:
        """Version of the framework installed in the database."""
        pass

    @abstractmethod
    def check_compatibility(self, connection: Connection, version: Version) -> None:
        """Raise IncompatibleVersionError if the framework is unsupported."""
        pass

    @abstractmethod
    def run(self, connection: Connection, request: RunRequest) -> None:
        """Execute the tests.

        Raises:
            SomeTestsFailedError: If the run finished with failing tests.
            TestExecutionError: If the engine or its transport failed.
        """
        pass


def _oracle_error_code(error: DBAPIError) -> Optional[int]:
    orig = getattr(error, "orig", None)
    if orig is not None and orig.args:
        code = getattr(orig.args[0], "code", None)
        if isinstance(code, int):
            return code
    match = _ORA_CODE.search(str(error))
    return int(match.group(1)) if match else None


class _BlockBuilder:
    """Collects bind parameters while rendering a PL/SQL block."""

    def __init__(self) -> None:
        self.params: Dict[str, Any] = {}

    def bind(self, prefix: str, value: Any) -> str:
        name = f"{prefix}_{len(self.params)}"
        self.params[name] = value
        return f":{name}"

    def varchar2_list(self, prefix: str, values: Sequence[str]) -> str:
        return "ut_varchar2_list(" + ", ".join(self.bind(prefix, v) for v in values) + ")"

    def key_value_pairs(self, prefix: str, pairs: Sequence[Tuple[str, str]]) -> str:
        items = [
            f"ut_key_value_pair({self.bind(prefix, key)}, {self.bind(prefix, value)})"
            for key, value in pairs
        ]
        return "ut_key_value_pairs(" + ", ".join(items) + ")"


def _plsql_bool(value: bool) -> str:
    return "TRUE" if value else "FALSE"


class UtplsqlEngine(TestEngine):
    """Runs tests through ``ut_runner.run``."""

    def framework_version(self, connection: Connection) -> Version:
        try:
            raw = connection.execute(text("SELECT ut_runner.version() FROM dual")).scalar_one()
        except SQLAlchemyError as e:
            raise TestExecutionError(f"Could not read the framework version: {e}") from e
        try:
            version = Version.parse(raw)
        except ValueError as e:
            raise TestExecutionError(f"Could not read the framework version: {e}") from e
        logger.info(f"utPLSQL Version = {version}")
        return version

    def check_compatibility(self, connection: Connection, version: Version) -> None:
        try:
            compatible = connection.execute(
                text("SELECT ut_runner.version_compatibility_check(:requested) FROM dual"),
                {"requested": str(V3_0_0)},
            ).scalar_one() == 1
        except SQLAlchemyError:
            logger.debug("version_compatibility_check unavailable, comparing versions locally")
            compatible = (
                version.major == V3_0_0.major
                and version >= V3_0_0
            )
        if not compatible:
            raise IncompatibleVersionError(
                f"Framework version {version} is not compatible with required version "
                f"{V3_0_0}"
            )

    def build_block(self, connection: Connection, request: RunRequest, version: Version) -> Tuple[str, Dict[str, Any]]:
        """Render the anonymous block and its bind parameters."""
        builder = _BlockBuilder()
        declare = ["l_reporters ut_reporters := ut_reporters();", "l_reporter ut_reporter_base;"]
        body: List[str] = []

        for reporter in request.reporters:
            reporter_id = builder.bind("reporter", reporter.reporter_id)
            body.append(f"l_reporter := {reporter.type_name}();")
            if version >= V3_1_0:
                body.append(f"l_reporter.set_reporter_id(hextoraw({reporter_id}));")
            else:
                body.append(f"l_reporter.reporter_id := hextoraw({reporter_id});")
            body.append("l_reporters.extend;")
            body.append("l_reporters(l_reporters.last) := l_reporter;")

        paths = list(request.paths) or [get_session_user(connection)]
        args = [
            f"a_paths => {builder.varchar2_list('path', paths)}",
            "a_reporters => l_reporters",
            f"a_color_console => {_plsql_bool(request.color_console)}",
        ]

        session_user = None
        for arg_name, options in (
            ("a_source_file_mappings", request.source_mapping),
            ("a_test_file_mappings", request.test_mapping),
        ):
            if options.is_empty:
                continue
            if options.object_owner is None and session_user is None:
                session_user = get_session_user(connection)
            args.append(f"{arg_name} => {self._file_mappings(builder, options, session_user)}")

        if request.include_objects:
            args.append(f"a_include_objects => {builder.varchar2_list('include', request.include_objects)}")
        if request.exclude_objects:
            args.append(f"a_exclude_objects => {builder.varchar2_list('exclude', request.exclude_objects)}")
        args.append(f"a_fail_on_errors => {_plsql_bool(request.fail_on_errors)}")

        if version >= V3_1_7:
            if request.random_test_order:
                args.append("a_random_test_order => TRUE")
                if request.random_test_order_seed is not None:
                    args.append(f"a_random_test_order_seed => {builder.bind('seed', request.random_test_order_seed)}")
            if request.tags:
                args.append(f"a_tags => {builder.bind('tags', ','.join(request.tags))}")
        elif request.random_test_order or request.tags:
            logger.warning(f"Tags and random test order need framework 3.1.7 or later, ignored on {version}")

        body.append("ut_runner.run(" + ", ".join(args) + ");")
        block = "DECLARE " + " ".join(declare) + " BEGIN " + " ".join(body) + " END;"
        return block, builder.params

    def _file_mappings(self, builder: _BlockBuilder, options: FileMappingOptions, session_user: Optional[str]) -> str:
        args = [
            f"a_object_owner => {builder.bind('owner', options.object_owner or session_user)}",
            f"a_file_paths => {builder.varchar2_list('file', options.file_paths)}",
        ]
        if options.type_mappings:
            args.append(
                "a_file_to_object_type_mapping => "
                + builder.key_value_pairs("mapping", options.type_mapping_pairs())
            )
        if options.regex_pattern:
            args.append(f"a_regex_pattern => {builder.bind('regex', options.regex_pattern)}")
        for arg_name, value in (
            ("a_object_owner_subexpression", options.owner_subexpression),
            ("a_object_name_subexpression", options.name_subexpression),
            ("a_object_type_subexpression", options.type_subexpression),
        ):
            if value is not None:
                args.append(f"{arg_name} => {builder.bind('subexpression', value)}")
        return "ut_file_mapper.build_file_mappings(" + ", ".join(args) + ")"

    def run(self, connection: Connection, request: RunRequest) -> None:
        version = self.framework_version(connection)
        if request.skip_compatibility_check:
            logger.debug("Compatibility check skipped")
        else:
            self.check_compatibility(connection, version)

        block, params = self.build_block(connection, request, version)
        logger.debug(f"Running tests with {len(request.reporters)} reporter(s)")
        try:
            connection.execute(text(block), params)
        except DBAPIError as e:
            code = _oracle_error_code(e)
            if code == SOME_TESTS_FAILED_ERROR_CODE:
                raise SomeTestsFailedError("Some tests failed", error_code=code) from e
            raise TestExecutionError(f"Test run failed: {e}", error_code=code) from e
        except SQLAlchemyError as e:
            raise TestExecutionError(f"Test run failed: {e}") from e
