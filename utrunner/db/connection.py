"""Database session factory."""

import logging
import re
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, URL, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from utrunner.config.models import DatabaseConfig
from utrunner.exceptions import ConfigurationError, DatabaseConnectionError, DatabaseError

logger = logging.getLogger(__name__)

ORACLE_DRIVER = "oracle+oracledb"

_JDBC_PREFIX = re.compile(r"^jdbc:oracle:thin:@", re.IGNORECASE)
_EZCONNECT = re.compile(
    r"^(?://)?(?P<host>[^:/]+)(?::(?P<port>\d+))?(?:/(?P<service>[^/:?]+)|:(?P<sid>[^/:?]+))?$"
)


class SessionFactory:
    """Opens the single database session used by a run."""

    def __init__(self, config: DatabaseConfig) -> None:
        """Initialize the session factory.

        Args:
            config: Database configuration.
        """
        self.config = config
        self._engine: Optional[Engine] = None

    def build_url(self) -> URL:
        """Build the SQLAlchemy URL for the configured database.

        Accepts a full SQLAlchemy URL, an EZConnect string
        (``host:port/service``), a ``host:port:SID`` string or any of those
        behind a ``jdbc:oracle:thin:@`` prefix.

        Raises:
            ConfigurationError: If no URL is configured or it cannot be parsed.
        """
        raw = (self.config.url or "").strip()
        if not raw:
            raise ConfigurationError(
                "No database URL configured, set database.url or UTRUNNER_DB_URL"
            )

        if "://" in raw:
            try:
                url = make_url(raw)
            except ArgumentError as e:
                raise ConfigurationError(f"Invalid database URL '{raw}': {e}") from e
            if self.config.username and not url.username:
                url = url.set(username=self.config.username)
            if self.config.password and not url.password:
                url = url.set(password=self.config.password)
            return url

        match = _EZCONNECT.match(_JDBC_PREFIX.sub("", raw))
        # a SID is only accepted after an explicit port
        if not match or (match.group("sid") and not match.group("port")):
            raise ConfigurationError(f"Invalid database URL '{raw}'")

        query: Dict[str, Any] = {}
        if match.group("service"):
            query["service_name"] = match.group("service")
        database = match.group("sid")

        return URL.create(
            ORACLE_DRIVER,
            username=self.config.username,
            password=self.config.password,
            host=match.group("host"),
            port=int(match.group("port")) if match.group("port") else None,
            database=database,
            query=query,
        )

    def get_engine(self) -> Engine:
        """Get or create the SQLAlchemy engine.

        Raises:
            DatabaseConnectionError: If engine creation fails.
        """
        if self._engine is None:
            url = self.build_url()
            try:
                self._engine = create_engine(url, poolclass=NullPool, **self.config.options)
            except Exception as e:
                raise DatabaseConnectionError(
                    f"Failed to create database engine: {e}",
                    url=url.render_as_string(hide_password=True),
                ) from e
        return self._engine

    def open(self) -> Connection:
        """Open a live connection.

        Raises:
            ConfigurationError: If the connection settings are incomplete.
            DatabaseConnectionError: If the session cannot be established.
        """
        engine = self.get_engine()
        try:
            connection = engine.connect()
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"Could not connect to database: {e}",
                url=engine.url.render_as_string(hide_password=True),
            ) from e
        logger.debug(f"Connected to {engine.url.render_as_string(hide_password=True)}")
        return connection

    def close(self, connection: Optional[Connection]) -> None:
        """Close the connection and release the engine."""
        try:
            if connection is not None:
                connection.close()
        finally:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None


def get_session_user(connection: Connection) -> str:
    """Return the schema the session is connected as."""
    try:
        return connection.execute(text("SELECT USER FROM dual")).scalar_one()
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to read session user: {e}") from e
