"""
Fill in the content-derived fields of a cataloged file from a local mirror
of the idGames Archive: the whole-file checksum and the level names found
in its WADs.
"""
import logging
import os
import shutil

from constants import WAD_EXTENSIONS
from containers import open_container
from records import ChecksumSource, PathResolver
from wad_container import WadContainer


def is_wad_member(name):
    return os.path.splitext(name)[1].lower().lstrip(".") in WAD_EXTENSIONS


def wad_levels(path, logger=None):
    """(levels, error) for one WAD file on disk"""
    with WadContainer(path, logger=logger) as wad:
        _, error = wad.open()
        if error:
            return [], error
        return wad.levels(), None


def index_record(record: PathResolver, archive_root, temp_dir=None, logger=None):
    """
    Checksum the local copy of `record` and collect its level names.

    Returns (record, None) with `checksum` and `levels` set, or
    (record, CatalogError) when the file can't be opened or extracted; the
    record is left unchanged in that case.
    """
    logger = logger or logging.getLogger("main")
    local_path = record.local_path(archive_root)
    logger.debug(f"Indexing {record.path} from {local_path}")

    container, error = open_container(local_path, logger=logger)
    if error:
        return record, error

    extracted_dir = None
    try:
        info, error = container.open()
        if error:
            return record, error

        if isinstance(container, WadContainer):
            levels = container.levels()
        else:
            wad_members = [member for member in container.members if is_wad_member(member.name)]
            levels = []
            if wad_members:
                paths, error = container.extract(wad_members, destination=temp_dir)
                extracted_dir = container.extracted_tempdir
                if error:
                    return record, error
                for path in paths:
                    found, error = wad_levels(path, logger=logger)
                    if error:
                        return record, error
                    levels.extend(found)
                logger.debug(f"Extracted {len(paths)} WAD(s) in {container.extract_time:.3f}s")
    finally:
        container.close()
        if extracted_dir:
            shutil.rmtree(extracted_dir, ignore_errors=True)

    record.checksum = info.checksum
    record.levels = sorted(set(levels))
    logger.info(f"ID: {record.id}; {record.path}: checksum {record.checksum}, {len(record.levels)} level(s)")
    return record, None


def find_duplicates(store, checksum):
    """
    Paths of every cataloged file with this content checksum, by ID.
    `checksum` is an md5 hex string or anything carrying one (a record, an
    opened container).
    """
    if isinstance(checksum, ChecksumSource):
        checksum = checksum.checksum
    records, error = store.get_by_checksum(checksum)
    if error:
        return [], error
    return [record.path for record in records], None
