"""
wadcatalog - Error values

Expected failures (bad payloads, missing records, database constraint
violations, unreadable containers) travel as CatalogError values returned
next to the result.  Exceptions are only raised for programming errors.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import exc as sa_exc


class ErrorKind:
    TRANSPORT = "transport"
    HTTP = "http"
    PARSE = "parse"
    POPULATE = "populate"
    CONTAINER_READ = "container.read"
    CONTAINER_EXTRACT = "container.extract"
    DATABASE_CONNECT = "database.connect"
    DATABASE_PREPARE = "database.prepare"
    DATABASE_EXECUTE = "database.execute"
    SCHEMA_READ = "schema.read"
    SCHEMA_WRITE = "schema.write"


class ErrorLevel:
    ERROR = "error"
    FATAL = "fatal"


@dataclass
class CatalogError:
    """A failure returned as a value"""

    kind: str
    message: str
    raw: Optional[str] = None
    context: Optional[str] = None
    level: str = ErrorLevel.ERROR

    @property
    def is_fatal(self):
        return self.level == ErrorLevel.FATAL

    def to_dict(self):
        return {
            'error': True,
            'kind': self.kind,
            'context': self.context,
            'message': self.message,
            'raw': self.raw,
            'level': self.level,
        }

    def __str__(self):
        text = f"[{self.kind}] {self.message}"
        if self.raw:
            text += f" ({self.raw})"
        return text


# SQLite OperationalError messages that mean the statement does not fit the schema
SCHEMA_ERROR_TEXT = (
    "no such table",
    "no such column",
    "has no column named",
    "syntax error",
    "already exists",
    "incomplete input",
    "unrecognized token",
)


def database_error(exc, context):
    """
    Convert a SQLAlchemy exception into a CatalogError.

    Failures that mean the statement could not be prepared against the
    current schema (missing table or column, SQL syntax) become
    'database.prepare'; constraint and data failures, a locked database
    and I/O errors become 'database.execute'.
    """
    raw = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, (sa_exc.ProgrammingError, sa_exc.CompileError, sa_exc.NoSuchTableError)):
        kind = ErrorKind.DATABASE_PREPARE
    elif isinstance(exc, sa_exc.OperationalError) and any(text in raw.lower() for text in SCHEMA_ERROR_TEXT):
        kind = ErrorKind.DATABASE_PREPARE
    else:
        # Locked database, disk I/O and the like happen while executing
        kind = ErrorKind.DATABASE_EXECUTE
    return CatalogError(
        kind=kind,
        message=f"{context} failed",
        raw=raw,
        context=context,
    )

