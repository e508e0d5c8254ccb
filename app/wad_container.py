"""
Doom WAD files: a 12-byte header followed by a flat directory of named,
offset-addressed lumps.  Nothing inside a WAD is compressed.
"""
import os
import re
import struct

from checksums import ChecksumDigest
from constants import CHUNK_SIZE, WAD_MAGIC
from containers import ContainerInspector, ContainerMember
from exceptions import CatalogError, ErrorKind, ErrorLevel

WAD_HEADER = struct.Struct("<4sii")
WAD_DIRECTORY_ENTRY = struct.Struct("<ii8s")

# Doom/Heretic (ExMy) and Doom II (MAPxx) level marker lumps
LEVEL_LUMP_RE = re.compile(r"^(E\dM\d|MAP\d\d)$")


def lump_name(raw):
    return raw.split(b"\0", 1)[0].decode("ascii", errors="replace").upper()


class WadContainer(ContainerInspector):
    format_name = "wad"

    def __init__(self, path, logger=None):
        super().__init__(path, logger=logger)
        self.wad_type = None
        self._fh = None

    def _read_error(self, raw):
        return CatalogError(
            kind=ErrorKind.CONTAINER_READ,
            message=f"Can't read WAD directory: {self.path}",
            raw=raw,
            context="wadfile.read_wad_directory",
            level=ErrorLevel.FATAL,
        )

    def _read_directory(self):
        try:
            self._fh = open(self.path, "rb")
            file_size = os.fstat(self._fh.fileno()).st_size
            header = self._fh.read(WAD_HEADER.size)
            if len(header) < WAD_HEADER.size:
                self.close()
                return None, self._read_error("file is shorter than a WAD header")
            magic, num_lumps, directory_offset = WAD_HEADER.unpack(header)
            if magic not in WAD_MAGIC:
                self.close()
                return None, self._read_error(f"bad WAD magic {magic!r}")
            if num_lumps < 0 or directory_offset < WAD_HEADER.size:
                self.close()
                return None, self._read_error(f"bad WAD header: {num_lumps} lumps at offset {directory_offset}")

            directory_size = num_lumps * WAD_DIRECTORY_ENTRY.size
            if directory_offset + directory_size > file_size:
                self.close()
                return None, self._read_error(
                    f"directory truncated: {num_lumps} entries at offset {directory_offset} "
                    f"run past the end of the file ({file_size} bytes)"
                )

            self._fh.seek(directory_offset)
            directory = self._fh.read(directory_size)
        except OSError as e:
            self.close()
            return None, self._read_error(str(e))

        if len(directory) < directory_size:
            self.close()
            return None, self._read_error(
                f"directory truncated: expected {num_lumps} entries at offset {directory_offset}"
            )

        self.wad_type = magic.decode("ascii")
        members = []
        for offset, size, raw_name in WAD_DIRECTORY_ENTRY.iter_unpack(directory):
            name = lump_name(raw_name)
            if offset < 0 or size < 0 or offset + size > file_size:
                self.close()
                return None, self._read_error(
                    f"lump {name} out of bounds: {size} byte(s) at offset {offset} in a {file_size} byte file"
                )
            members.append(ContainerMember(name=name, size=size, offset=offset))
        return members, None

    def levels(self):
        """Level marker lump names, in directory order"""
        return [member.name for member in self.members if LEVEL_LUMP_RE.match(member.name)]

    def _extract_member(self, member, target):
        digest = ChecksumDigest("md5")
        remaining = member.size
        try:
            self._fh.seek(member.offset)
            with open(target, "wb") as dst:
                while remaining > 0:
                    chunk = self._fh.read(min(CHUNK_SIZE, remaining))
                    if not chunk:
                        break
                    digest.add(chunk)
                    dst.write(chunk)
                    remaining -= len(chunk)
        except (OSError, ValueError) as e:
            return self._extract_error(member.name, str(e))
        if remaining > 0:
            return self._extract_error(
                member.name,
                f"lump truncated: {member.size - remaining} of {member.size} byte(s) at offset {member.offset}",
            )
        member.checksum = digest.hexdigest()
        return None

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None
