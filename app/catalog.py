"""
CatalogStore - create/read the idGames catalog database

    store = CatalogStore(filename="/path/to/idgames.db")
    error = store.connect(check_schema=True)
    if error:
        # something bad happened
        ...
    record, error = store.get_by_path("levels/doom/a-c/", "bogusfile.zip")

Every method returns its result next to an error value instead of raising.
Statement failures caused by the schema (missing tables or columns) are
reported as 'database.prepare'; failures caused by the data (duplicate IDs,
constraint violations) as 'database.execute'.

The store owns its single connection for as long as it is open.  Writes
happen one record per transaction: the 'files' row first, then its votes.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from constants import DB_FILE, SCHEMA_FILE
from db import create_catalog_engine
from exceptions import CatalogError, ErrorKind, database_error
from metrics import catalog_inserts_total, catalog_query_duration_seconds
from records import ArchiveRecord, Review
from repositories.files_repository import FilesRepository
from repositories.schema_blocks_repository import SchemaBlocksRepository
from repositories.votes_repository import VotesRepository
from schema_loader import SchemaDefinitionLoader
from utils import now_utc


def id_prefix(file_id):
    if isinstance(file_id, int):
        return f"ID: {file_id:5d}; "
    return f"ID: {file_id}; "


class CatalogStore:
    def __init__(self, filename=DB_FILE, logger=None):
        self.filename = filename
        self.logger = logger or logging.getLogger("main")
        self.engine = None
        self.connection = None

    # Connection handling

    def connect(self, check_schema=False, definition=None) -> Optional[CatalogError]:
        """
        Open the database.  With check_schema, also verify that the schema
        blocks recorded in the catalog match `definition` (default: the
        shipped schema file).
        """
        if self.connection is not None:
            return None
        self.logger.debug(f"Connecting to catalog {self.filename}")
        try:
            self.engine = create_catalog_engine(self.filename)
            self.connection = self.engine.connect()
        except SQLAlchemyError as e:
            self.engine = None
            self.connection = None
            return CatalogError(
                kind=ErrorKind.DATABASE_CONNECT,
                message=f"Can't connect to catalog {self.filename}",
                raw=str(e),
                context="database.connect",
            )

        if check_schema:
            if definition is None:
                definition, error = SchemaDefinitionLoader(SCHEMA_FILE, logger=self.logger).load()
                if error:
                    return error
            drifted, error = self.check_schema(definition)
            if error:
                return error
            if drifted:
                self.logger.warning(f"Catalog schema differs from definition in: {', '.join(drifted)}")
                return CatalogError(
                    kind=ErrorKind.DATABASE_PREPARE,
                    message="Catalog schema does not match the schema definition",
                    raw=", ".join(drifted),
                    context="database.check_schema",
                )
        return None

    def is_connected(self) -> Optional[CatalogError]:
        if self.connection is None or self.connection.closed:
            return CatalogError(
                kind=ErrorKind.DATABASE_CONNECT,
                message="Not connected to a catalog database; call connect() first",
                context="database.is_connected",
            )
        return None

    def close(self):
        if self.connection is not None:
            self.connection.close()
            self.connection = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # Schema

    def bootstrap(self, definition) -> Optional[CatalogError]:
        """Apply every schema block's DDL in block-name order and record its checksum"""
        error = self.is_connected()
        if error:
            return error

        applied_at = now_utc().isoformat()
        try:
            with self.connection.begin():
                for block in definition.blocks():
                    if block.checksum is None:
                        block.checksum = block.compute_checksum()
                    self.logger.debug(f"Applying schema block: {block.name}")
                    self.connection.exec_driver_sql(block.sql)
                for block in definition.blocks():
                    SchemaBlocksRepository.upsert(self.connection, block, applied_at)
        except SQLAlchemyError as e:
            error = database_error(e, "schema.bootstrap")
            self.logger.error(f"Applying schema failed: {error.raw}")
            return error
        self.logger.info(f"Applied {len(definition)} schema block(s) to {self.filename}")
        return None

    def check_schema(self, definition) -> Tuple[List[str], Optional[CatalogError]]:
        """
        Names of blocks whose recorded checksum is missing or differs from
        the definition, plus recorded blocks the definition no longer has.
        """
        error = self.is_connected()
        if error:
            return [], error
        try:
            with self.connection.begin():
                if inspect(self.connection).has_table("schema_blocks"):
                    stored = SchemaBlocksRepository.get_checksums(self.connection)
                else:
                    stored = {}
        except SQLAlchemyError as e:
            return [], database_error(e, "schema.check")

        drifted = []
        for block in definition.blocks():
            expected = block.checksum or block.compute_checksum()
            if stored.get(block.name) != expected:
                drifted.append(block.name)
        drifted.extend(name for name in stored if name not in definition)
        return sorted(drifted), None

    # Writes

    def add_file(self, record: ArchiveRecord) -> Optional[CatalogError]:
        """
        Insert one file and its reviews.  This is an INSERT, not an upsert:
        a record whose ID is already stored fails with 'database.execute'.
        """
        if record is None:
            raise ValueError("Missing 'record' argument")
        error = self.is_connected()
        if error:
            return error

        prefix = id_prefix(record.id)
        self.logger.debug(f"{prefix}Adding to DB: {record.filename}")
        context = "file_insert"
        try:
            with self.connection.begin():
                FilesRepository.insert(self.connection, record.serialize())
                context = "vote_insert"
                for vote_id, review in enumerate(record.reviews, start=1):
                    VotesRepository.insert(self.connection, vote_id, record.id, review.text, review.vote)
        except SQLAlchemyError as e:
            error = database_error(e, context)
            self.logger.error(f"INSERT for file ID {record.id} returned an error: {error.raw}")
            catalog_inserts_total.labels(status="error").inc()
            return error

        catalog_inserts_total.labels(status="ok").inc()
        if record.reviews:
            self.logger.debug(f"{prefix}Successful INSERT of 'file' record and {len(record.reviews)} vote(s)")
        else:
            self.logger.debug(f"{prefix}Successful INSERT of 'file' record; no votes to INSERT")
        return None

    def add_file_if_missing(self, record: ArchiveRecord) -> Tuple[bool, Optional[CatalogError]]:
        """
        Idempotent re-sync: insert unless the ID is already cataloged.

        Returns (True, None) when inserted and (False, None) when the same
        file was already present.  An ID or path that is already taken by a
        different file is reported as 'database.execute'.
        """
        existing, error = self.get_by_id(record.id)
        if error:
            return False, error
        if existing is not None:
            if (existing.dir, existing.filename) != (record.dir, record.filename):
                return False, self._identity_conflict(record, f"ID already cataloged as {existing.path}")
            self.logger.debug(f"{id_prefix(record.id)}Already cataloged, skipping")
            return False, None

        by_path, error = self.get_by_path(record.dir, record.filename)
        if error:
            return False, error
        if by_path is not None:
            return False, self._identity_conflict(record, f"path already cataloged under ID {by_path.id}")

        error = self.add_file(record)
        if error:
            return False, error
        return True, None

    def _identity_conflict(self, record, raw):
        self.logger.error(f"{id_prefix(record.id)}{record.path}: {raw}")
        return CatalogError(
            kind=ErrorKind.DATABASE_EXECUTE,
            message=f"ID {record.id} and path {record.path} resolve to different catalog rows",
            raw=raw,
            context="file_insert",
        )

    # Reads

    def get_by_id(self, file_id) -> Tuple[Optional[ArchiveRecord], Optional[CatalogError]]:
        """Returns (ArchiveRecord, None), (None, None) when not found, or (None, CatalogError)"""
        if file_id is None:
            raise ValueError("Missing 'id' parameter")
        error = self.is_connected()
        if error:
            return None, error
        try:
            with catalog_query_duration_seconds.labels(operation="get_file_by_id").time():
                with self.connection.begin():
                    row = FilesRepository.get_by_id(self.connection, file_id)
        except SQLAlchemyError as e:
            error = database_error(e, "get_file_by_id")
            self.logger.warning(f"Querying for file ID {file_id} failed: {error.raw}")
            return None, error
        if row is None:
            return None, None
        record = ArchiveRecord.deserialize(row)
        self.logger.debug(f"File ID {record.id} has path: {record.path}")
        return record, None

    def get_by_path(self, dir, filename) -> Tuple[Optional[ArchiveRecord], Optional[CatalogError]]:
        """
        Look a file up by its path from the root of the idGames Archive
        tree (dir, e.g. 'levels/doom/a-c/') and its filename.
        """
        if dir is None:
            raise ValueError("Missing 'dir' parameter")
        if filename is None:
            raise ValueError("Missing 'filename' parameter")
        error = self.is_connected()
        if error:
            return None, error
        try:
            with catalog_query_duration_seconds.labels(operation="get_file_by_path").time():
                with self.connection.begin():
                    row = FilesRepository.get_by_path(self.connection, dir, filename)
        except SQLAlchemyError as e:
            error = database_error(e, "get_file_by_path")
            self.logger.warning(f"Querying for file {dir}{filename} failed: {error.raw}")
            return None, error
        if row is None:
            return None, None
        record = ArchiveRecord.deserialize(row)
        self.logger.debug(f"File ID for {record.path} is {record.id}")
        return record, None

    def get_by_checksum(self, checksum) -> Tuple[List[ArchiveRecord], Optional[CatalogError]]:
        error = self.is_connected()
        if error:
            return [], error
        try:
            with self.connection.begin():
                rows = FilesRepository.get_by_checksum(self.connection, checksum)
        except SQLAlchemyError as e:
            return [], database_error(e, "get_file_by_checksum")
        return [ArchiveRecord.deserialize(row) for row in rows], None

    def get_reviews(self, file_id) -> Tuple[List[Review], Optional[CatalogError]]:
        error = self.is_connected()
        if error:
            return [], error
        try:
            with self.connection.begin():
                rows = VotesRepository.get_for_file(self.connection, file_id)
        except SQLAlchemyError as e:
            return [], database_error(e, "get_votes")
        return [Review(text=row.text, vote=row.vote) for row in rows], None

    def has_file(self, file_id) -> Tuple[bool, Optional[CatalogError]]:
        error = self.is_connected()
        if error:
            return False, error
        try:
            with self.connection.begin():
                return FilesRepository.exists(self.connection, file_id), None
        except SQLAlchemyError as e:
            return False, database_error(e, "has_file")

    def count(self) -> Tuple[int, Optional[CatalogError]]:
        error = self.is_connected()
        if error:
            return 0, error
        try:
            with self.connection.begin():
                return FilesRepository.count(self.connection), None
        except SQLAlchemyError as e:
            return 0, database_error(e, "count_files")

    def max_id(self) -> Tuple[Optional[int], Optional[CatalogError]]:
        """Highest cataloged file ID; a crawl can resume from max_id + 1"""
        error = self.is_connected()
        if error:
            return None, error
        try:
            with self.connection.begin():
                return FilesRepository.max_id(self.connection), None
        except SQLAlchemyError as e:
            return None, database_error(e, "max_file_id")
