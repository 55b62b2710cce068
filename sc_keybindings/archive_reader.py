"""Archive reader for the game's zip-structured data container (Data.p4k)."""
import logging
import struct
import zipfile
import zlib
from typing import BinaryIO

import zstandard
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from sc_keybindings.domain.constants import (
    DATA_PREFIX,
    P4K_ENCRYPTION_KEY,
    ZIP_ENCRYPTED_FLAG,
    ZIP_LOCAL_HEADER_SIGNATURES,
    ZIP_ZSTANDARD,
    ZSTD_FRAME_MAGIC,
)
from sc_keybindings.domain.models import ArchiveEntry
from sc_keybindings.file_system import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)

_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    OSError,
    NotImplementedError,
    RuntimeError,
    ValueError,
    zstandard.ZstdError,
)

_LOCAL_HEADER = struct.Struct('<4sHHHHHIIIHH')


def _normalize_path(path: str) -> str:
    """Slash-normalize, trim separators and case-fold an archive path."""
    return path.replace('\\', '/').strip('/').lower()


def _logical_path(path: str) -> str:
    """Normalized path with the ``Data/`` root removed, so both spellings compare equal."""
    normalized = _normalize_path(path)
    data_root = DATA_PREFIX.rstrip('/').lower()
    if normalized == data_root:
        return ''
    if normalized.startswith(data_root + '/'):
        return normalized[len(data_root) + 1:]
    return normalized


def decrypt_entry(data: bytes) -> bytes:
    """AES-CBC decrypt a Data.p4k entry payload with the archive key and a zero IV."""
    decryptor = Cipher(algorithms.AES(P4K_ENCRYPTION_KEY), modes.CBC(bytes(16))).decryptor()
    return decryptor.update(data) + decryptor.finalize()


def decompress_entry(data: bytes, method: int, size: int) -> bytes:
    """Decompress a raw payload. Trailing cipher padding after the stream is ignored."""
    if method == zipfile.ZIP_STORED:
        return data[:size]
    if method == zipfile.ZIP_DEFLATED:
        return zlib.decompressobj(-zlib.MAX_WBITS).decompress(data)
    if method == ZIP_ZSTANDARD:
        return zstandard.ZstdDecompressor().decompressobj().decompress(data)
    raise NotImplementedError(f"compression method {method} is not supported")


def _uses_p4k_encoding(info: zipfile.ZipInfo) -> bool:
    return info.compress_type == ZIP_ZSTANDARD or bool(info.flag_bits & ZIP_ENCRYPTED_FLAG)


def _is_encrypted(info: zipfile.ZipInfo, payload: bytes) -> bool:
    """Flagged entries, and Zstandard entries whose payload lacks the frame magic."""
    if info.flag_bits & ZIP_ENCRYPTED_FLAG:
        return True
    return info.compress_type == ZIP_ZSTANDARD and not payload.startswith(ZSTD_FRAME_MAGIC)


class ArchiveReader:
    """Random-access reader for entries of one archive.

    Holds a single open file handle between ``open`` and ``close``. Data
    problems (missing entries, corrupt streams) are reported as ``None``
    results, never as exceptions.
    """

    def __init__(self, file_system: FileSystem | None = None):
        self._fs = file_system or LocalFileSystem()
        self._stream: BinaryIO | None = None
        self._zip: zipfile.ZipFile | None = None
        self._path: str | None = None

    def __enter__(self) -> 'ArchiveReader':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._zip is not None

    @property
    def path(self) -> str | None:
        return self._path

    def open(self, path: str) -> bool:
        """Open the archive. Returns False on missing, unreadable or malformed files."""
        self.close()

        if not path or not self._fs.file_exists(path):
            logger.debug("Archive not found: %s", path)
            return False

        stream = None
        try:
            stream = self._fs.open_read(path)
            self._zip = zipfile.ZipFile(stream)
        except (OSError, zipfile.BadZipFile, ValueError, EOFError) as e:
            logger.warning("Failed to open archive %s: %s", path, e)
            if stream is not None:
                stream.close()
            self._zip = None
            return False

        self._stream = stream
        self._path = path
        return True

    def close(self) -> None:
        """Release the archive and its file handle. Safe to call repeatedly."""
        if self._zip is not None:
            self._zip.close()
            self._zip = None
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._path = None

    def scan_directory(self, directory_prefix: str, filename: str) -> list[ArchiveEntry]:
        """Find entries named ``filename`` below ``directory_prefix``.

        Both comparisons are case-insensitive; the prefix must end on a path
        component boundary, and ``Data/x`` and ``x`` denote the same place.
        """
        if self._zip is None:
            return []

        prefix = _logical_path(directory_prefix)
        wanted = filename.lower()
        results: list[ArchiveEntry] = []

        for info in self._zip.infolist():
            if info.is_dir():
                continue
            directory, _, base = _logical_path(info.filename).rpartition('/')
            if base != wanted:
                continue
            if prefix and directory != prefix and not directory.startswith(prefix + '/'):
                continue
            results.append(ArchiveEntry(
                path=info.filename.replace('\\', '/'),
                offset=info.header_offset,
                compressed_size=info.compress_size,
                uncompressed_size=info.file_size,
                is_compressed=info.compress_type != zipfile.ZIP_STORED,
            ))

        return results

    def read_bytes(self, entry: ArchiveEntry) -> bytes | None:
        """Read and decompress an entry. Returns None when it cannot be read intact."""
        if entry is None:
            raise TypeError("entry must not be None")
        if self._zip is None:
            return None

        info = self._find_info(entry.path)
        if info is None:
            logger.warning("Archive entry not found: %s", entry.path)
            return None

        try:
            if _uses_p4k_encoding(info):
                data = self._read_p4k_entry(info)
            else:
                data = self._zip.read(info)
        except _READ_ERRORS as e:
            logger.warning("Failed to read archive entry %s: %s", entry.path, e)
            return None

        if len(data) != info.file_size:
            logger.warning(
                "Short read for %s: got %d of %d bytes", entry.path, len(data), info.file_size,
            )
            return None
        return data

    def read_text(self, entry: ArchiveEntry) -> str | None:
        """Read an entry as UTF-8 text (BOM stripped). None if unreadable or empty."""
        data = self.read_bytes(entry)
        if not data:
            return None
        try:
            return data.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            logger.warning("Archive entry %s is not valid UTF-8: %s", entry.path, e)
            return None

    def _read_p4k_entry(self, info: zipfile.ZipInfo) -> bytes:
        """Read the raw payload behind the local header, then decrypt and decompress it."""
        self._stream.seek(info.header_offset)
        header = self._stream.read(_LOCAL_HEADER.size)
        if len(header) != _LOCAL_HEADER.size or header[:4] not in ZIP_LOCAL_HEADER_SIGNATURES:
            raise zipfile.BadZipFile(f"bad local file header for {info.filename}")
        name_length, extra_length = _LOCAL_HEADER.unpack(header)[-2:]
        self._stream.seek(info.header_offset + _LOCAL_HEADER.size + name_length + extra_length)
        payload = self._stream.read(info.compress_size)
        if len(payload) != info.compress_size:
            raise EOFError(f"truncated payload for {info.filename}")

        if _is_encrypted(info, payload):
            payload = decrypt_entry(payload)
        return decompress_entry(payload, info.compress_type, info.file_size)

    def _find_info(self, entry_path: str) -> zipfile.ZipInfo | None:
        """Locate a ZipInfo by exact name, then with the Data/ root toggled, then by scan."""
        candidates = [entry_path]
        normalized = entry_path.replace('\\', '/').lstrip('/')
        if normalized.lower().startswith(DATA_PREFIX.lower()):
            candidates.append(normalized[len(DATA_PREFIX):])
        else:
            candidates.append(DATA_PREFIX + normalized)

        for name in candidates:
            try:
                return self._zip.getinfo(name)
            except KeyError:
                continue

        wanted = _logical_path(entry_path)
        for info in self._zip.infolist():
            if _logical_path(info.filename) == wanted:
                return info
        return None
