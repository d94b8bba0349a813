"""
Translation of store failures into the typed errors of ``library_api.errors``.

This is the only place that looks at driver-level error codes. PostgreSQL
and MSSQL drivers expose a SQLSTATE, SQLite only a message, so both are
mapped to the same kinds.
"""
import re

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from library_api.errors import AppError, ConflictError, InternalError

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"

_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<cols>[\w., ]+)")
_PG_UNIQUE_KEY = re.compile(r"Key \((?P<cols>[\w, ]+)\)=")

_FIELD_LABELS = {
    "isbn": "isbn",
    "email": "email",
}


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    for attr in ("pgcode", "sqlstate"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    # pyodbc: args = (sqlstate, message)
    args = getattr(orig, "args", ()) or ()
    if args and isinstance(args[0], str) and len(args[0]) == 5:
        return args[0]
    return None


def _duplicate_field(message: str) -> str:
    m = _SQLITE_UNIQUE.search(message) or _PG_UNIQUE_KEY.search(message)
    if not m:
        return "field"
    first = m.group("cols").split(",")[0].strip()
    col = first.split(".")[-1]
    return _FIELD_LABELS.get(col, col)


def translate_store_error(exc: Exception) -> AppError:
    if isinstance(exc, AppError):
        return exc

    message = str(getattr(exc, "orig", None) or exc)

    if isinstance(exc, DBAPIError):
        code = _sqlstate(exc)

        if code == UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
            field = _duplicate_field(message)
            return ConflictError(f"Duplicate {field}. Please use another value!")

        if code == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in message:
            return ConflictError("Invalid relation. Referenced record does not exist or is still referenced.")

        if code == CHECK_VIOLATION or "CHECK constraint failed" in message:
            return ConflictError("Book quantities out of range.")

        if code in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED) or (
            isinstance(exc, OperationalError) and "database is locked" in message
        ):
            return InternalError("Concurrent update aborted the transaction, please retry.")

        if isinstance(exc, IntegrityError):
            return ConflictError("Database constraint violated.")

    if isinstance(exc, SQLAlchemyError):
        return InternalError("Database operation failed.")

    return InternalError("Something went wrong!")
