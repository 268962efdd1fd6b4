"""Database connectivity."""

from utrunner.db.connection import SessionFactory, get_session_user
from utrunner.db.dbms_output import enable_dbms_output, disable_dbms_output

__all__ = [
    "SessionFactory",
    "get_session_user",
    "enable_dbms_output",
    "disable_dbms_output",
]
