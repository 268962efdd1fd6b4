"""DBMS_OUTPUT toggling for diagnostic text emitted during a run."""

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from utrunner.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def enable_dbms_output(connection: Connection) -> None:
    """Enable an unlimited DBMS_OUTPUT buffer for the session."""
    try:
        connection.execute(text("BEGIN dbms_output.enable(NULL); END;"))
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to enable dbms_output: {e}") from e


def disable_dbms_output(connection: Connection) -> None:
    """Disable DBMS_OUTPUT; calling it when disabled is harmless."""
    try:
        connection.execute(text("BEGIN dbms_output.disable; END;"))
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to disable dbms_output: {e}") from e
