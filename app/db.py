from sqlalchemy import create_engine
from sqlalchemy import event
from sqlalchemy.orm import declarative_base
import logging
from constants import DB_FILE

# Retrieve main logger
logger = logging.getLogger("main")

Base = declarative_base()


def catalog_url(filename=DB_FILE):
    if filename in (None, "", ":memory:"):
        return "sqlite://"
    return f"sqlite:///{filename}"


def create_catalog_engine(filename=DB_FILE, echo=False):
    engine = create_engine(catalog_url(filename), echo=echo, future=True)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        import sqlite3
        if not isinstance(dbapi_connection, sqlite3.Connection):
            return

        cursor = dbapi_connection.cursor()
        # votes.file_id references files.id
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=30000;")
        cursor.close()

    logger.debug(f"Created catalog engine for {engine.url}")
    return engine

