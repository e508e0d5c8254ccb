"""
Checksum helpers shared by container inspection and schema fingerprinting.
"""
import base64
import hashlib

from constants import CHUNK_SIZE


class ChecksumDigest:
    """
    Incremental digest over one or more byte streams.

    Reading the digest (hexdigest/b64digest) resets it, so the same instance
    can be reused for a series of independent checksums.
    """

    def __init__(self, algorithm: str = "md5"):
        self.algorithm = algorithm
        self._hash = hashlib.new(algorithm)
        self.bytes_read = 0

    def add(self, data: bytes) -> "ChecksumDigest":
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._hash.update(data)
        self.bytes_read += len(data)
        return self

    def add_file(self, fileobj, chunk_size: int = CHUNK_SIZE) -> "ChecksumDigest":
        while True:
            chunk = fileobj.read(chunk_size)
            if not chunk:
                break
            self.add(chunk)
        return self

    def reset(self):
        self._hash = hashlib.new(self.algorithm)
        self.bytes_read = 0

    def digest(self) -> bytes:
        value = self._hash.digest()
        self.reset()
        return value

    def hexdigest(self) -> str:
        return self.digest().hex()

    def b64digest(self) -> str:
        # Unpadded, matching Digest::MD5's b64digest
        return base64.b64encode(self.digest()).decode("ascii").rstrip("=")


def file_checksum(path, algorithm: str = "md5") -> str:
    """Hex checksum of the raw bytes of a file"""
    with open(path, "rb") as f:
        return ChecksumDigest(algorithm).add_file(f).hexdigest()


def file_checksums(path, algorithms=("md5", "sha1")):
    """Several checksums of one file in a single pass"""
    digests = {name: ChecksumDigest(name) for name in algorithms}
    with open(path, "rb") as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            for digest in digests.values():
                digest.add(chunk)
    return {name: digest.hexdigest() for name, digest in digests.items()}


def block_checksum(*fields) -> str:
    """b64 md5 over the concatenation of the given text fields; None counts as empty"""
    digest = ChecksumDigest("md5")
    for field in fields:
        digest.add(field or "")
    return digest.b64digest()
