"""
Container inspection: list, checksum and extract the members of archive
files.

A container is constructed as a plain value and read with an explicit
open() call.  The member directory is parsed once and cached on the
instance; later queries and extractions reuse it.
"""
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional

from checksums import file_checksums, file_checksum
from constants import WAD_EXTENSIONS, WAD_MAGIC, ZIP_EXTENSIONS, ZIP_MAGIC
from exceptions import CatalogError, ErrorKind, ErrorLevel
from metrics import containers_opened_total, extraction_duration_seconds
from utils import Timer, format_size_py


@dataclass
class ContainerMember:
    name: str
    size: int = 0
    offset: Optional[int] = None
    compressed_size: Optional[int] = None
    checksum: Optional[str] = None
    extracted_path: Optional[str] = None


@dataclass
class ContainerInfo:
    path: str
    format: str
    size: int
    checksum: str
    sha1: str
    members: List[ContainerMember] = field(default_factory=list)


class ContainerInspector:
    """Base class; subclasses implement _read_directory and _extract_member"""

    format_name = None

    def __init__(self, path, logger=None):
        self.path = path
        self.logger = logger or logging.getLogger("main")
        self.info = None
        self.extract_time = None
        self.extracted_tempdir = None
        self.last_extracted = []

    @property
    def is_open(self):
        return self.info is not None

    def open(self):
        """
        Read the member directory and checksum the raw file bytes.

        Returns (ContainerInfo, None) or (None, CatalogError).  A second call
        returns the cached ContainerInfo without touching the file again.
        """
        if self.info is not None:
            return self.info, None

        self.logger.debug(f"Reading file: {self.path}")
        if not os.path.isfile(self.path):
            containers_opened_total.labels(format=self.format_name, status="error").inc()
            return None, CatalogError(
                kind=ErrorKind.CONTAINER_READ,
                message=f"Can't read file: {self.path}",
                raw="file does not exist",
                context=f"{self.format_name}.open",
                level=ErrorLevel.FATAL,
            )

        try:
            checksums = file_checksums(self.path, ("md5", "sha1"))
            size = os.path.getsize(self.path)
        except OSError as e:
            containers_opened_total.labels(format=self.format_name, status="error").inc()
            return None, CatalogError(
                kind=ErrorKind.CONTAINER_READ,
                message=f"Can't read file: {self.path}",
                raw=str(e),
                context=f"{self.format_name}.checksum",
                level=ErrorLevel.FATAL,
            )

        members, error = self._read_directory()
        if error:
            self.logger.error(f"Problem reading {self.format_name} directory for: {self.path}")
            self.logger.error(f"Error message: {error.raw}")
            containers_opened_total.labels(format=self.format_name, status="error").inc()
            return None, error

        self.info = ContainerInfo(
            path=self.path,
            format=self.format_name,
            size=size,
            checksum=checksums["md5"],
            sha1=checksums["sha1"],
            members=members,
        )
        containers_opened_total.labels(format=self.format_name, status="ok").inc()
        self.logger.debug(
            f"Opened {self.format_name} {self.path}: {len(members)} member(s), {format_size_py(size)}"
        )
        return self.info, None

    def close(self):
        """Release any file handle held by the implementation"""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _require_open(self):
        if self.info is None:
            raise RuntimeError(f"{self.path} has not been opened; call open() first")

    @property
    def members(self):
        self._require_open()
        return self.info.members

    def member_names(self):
        return [member.name for member in self.members]

    def get_member(self, name):
        """First member called `name`; WADs may repeat lump names, see extract()"""
        for member in self.members:
            if member.name == name:
                return member
        return None

    @property
    def checksum(self):
        """Whole-file md5 of the raw bytes, available after open()"""
        self._require_open()
        return self.info.checksum

    def compute_checksum(self):
        return file_checksum(self.path, "md5")

    def extract(self, names, destination=None):
        """
        Extract members into a fresh temporary directory.

        `names` holds member names or ContainerMember objects from `members`.
        A name selects the first member called that; pass the ContainerMember
        to reach a later lump with a repeated name.  Each member gets its own
        file: a basename already used in this call goes into a new
        subdirectory of the temp dir.

        The directory is created inside `destination` (or the system temp
        dir) and is left for the caller to remove.  Members are extracted in
        the order given; the first failure stops the call and is returned as
        (None, CatalogError).  Members extracted before the failure stay on
        disk in `extracted_tempdir`.
        """
        self._require_open()
        timer = Timer()
        timer.start("extract")
        tempdir = tempfile.mkdtemp(prefix="wadindex.", dir=destination)
        self.extracted_tempdir = tempdir
        self.last_extracted = []
        self.logger.debug(f"Created temp dir {tempdir}")

        try:
            for selector in names:
                if isinstance(selector, ContainerMember):
                    member, name = selector, selector.name
                else:
                    member, name = self.get_member(selector), selector
                self.logger.debug(f"- extracting: {name}")
                if member is None:
                    return None, self._extract_error(name, "no such member in container")

                basename = os.path.basename(name.rstrip("/"))
                target = os.path.join(tempdir, basename)
                if os.path.exists(target):
                    target = os.path.join(tempfile.mkdtemp(prefix="dup.", dir=tempdir), basename)
                error = self._extract_member(member, target)
                if error:
                    self.logger.error(f"Could not extract {name}")
                    self.logger.error(f"Error message: {error.raw}")
                    return None, error

                member.extracted_path = target
                self.last_extracted.append(target)
                self.logger.debug(f"- done extracting: {name}")
        finally:
            self.extract_time = timer.stop("extract")
            extraction_duration_seconds.labels(format=self.format_name).observe(self.extract_time)

        return list(self.last_extracted), None

    def _extract_error(self, name, raw):
        return CatalogError(
            kind=ErrorKind.CONTAINER_EXTRACT,
            message=f"Problem extracting member for: {name}",
            raw=raw,
            context=f"{self.format_name}.extract",
            level=ErrorLevel.FATAL,
        )

    def _read_directory(self):
        raise NotImplementedError

    def _extract_member(self, member, target):
        raise NotImplementedError


def detect_format(path):
    """Return 'zip', 'wad' or None from the extension, falling back to magic bytes"""
    extension = os.path.splitext(path)[1].lower().lstrip(".")
    if extension in ZIP_EXTENSIONS:
        return "zip"
    if extension in WAD_EXTENSIONS:
        return "wad"
    try:
        with open(path, "rb") as f:
            magic = f.read(4)
    except OSError:
        return None
    if magic == ZIP_MAGIC:
        return "zip"
    if magic in WAD_MAGIC:
        return "wad"
    return None


def open_container(path, logger=None):
    """
    Build the right (unopened) inspector for a file.

    Returns (inspector, None) or (None, CatalogError) when the format is not
    recognised.
    """
    from wad_container import WadContainer
    from zip_container import ZipContainer

    container_format = detect_format(path)
    if container_format == "zip":
        return ZipContainer(path, logger=logger), None
    if container_format == "wad":
        return WadContainer(path, logger=logger), None
    return None, CatalogError(
        kind=ErrorKind.CONTAINER_READ,
        message=f"Unknown container format: {path}",
        context="container.detect_format",
    )
