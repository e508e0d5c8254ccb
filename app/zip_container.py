import zipfile
import zlib

from checksums import ChecksumDigest
from constants import CHUNK_SIZE
from containers import ContainerInspector, ContainerMember
from exceptions import CatalogError, ErrorKind, ErrorLevel

# Everything zipfile raises for damaged or unsupported members
ZIP_READ_ERRORS = (zipfile.BadZipFile, zlib.error, OSError, EOFError, RuntimeError, NotImplementedError)


class ZipContainer(ContainerInspector):
    """Deflate/stored .zip archives"""

    format_name = "zip"

    def __init__(self, path, logger=None):
        super().__init__(path, logger=logger)
        self._zip = None

    def _read_directory(self):
        try:
            self._zip = zipfile.ZipFile(self.path)
            infos = self._zip.infolist()
        except ZIP_READ_ERRORS as e:
            self.close()
            return None, CatalogError(
                kind=ErrorKind.CONTAINER_READ,
                message=f"Can't read zip 'directory': {self.path}",
                raw=str(e),
                context="zipfile.read_zip_directory",
                level=ErrorLevel.FATAL,
            )

        members = []
        for info in infos:
            if info.is_dir():
                continue
            members.append(ContainerMember(
                name=info.filename,
                size=info.file_size,
                offset=info.header_offset,
                compressed_size=info.compress_size,
            ))
        return members, None

    def _extract_member(self, member, target):
        # Extract without paths; the member is written as basename into target's dir
        digest = ChecksumDigest("md5")
        try:
            with self._zip.open(member.name) as src, open(target, "wb") as dst:
                while True:
                    chunk = src.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    digest.add(chunk)
                    dst.write(chunk)
        except ZIP_READ_ERRORS as e:
            return self._extract_error(member.name, str(e))
        member.checksum = digest.hexdigest()
        return None

    def close(self):
        if self._zip is not None:
            self._zip.close()
            self._zip = None
