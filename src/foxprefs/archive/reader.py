"""
Zip archive entry reader.

Reads entries out of an in-memory zip buffer by way of its central
directory, the index at the end of the archive, so only the entries a
caller asks for are ever inflated.

The standard library's zipfile is not used because it rejects the
optimized layout of application archives such as omni.ja, where the
central directory sits at the front of the file and the recorded offsets
do not satisfy zipfile's "prepended data" arithmetic. This reader trusts
the recorded directory offset first and only falls back to
`eocd_offset - directory_size` when nothing is found there.

Only the stored and deflate compression methods are supported.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import struct as _struct
import types as _types
import typing as _typing
import zlib as _zlib

import foxprefs.constants as constants
import foxprefs.errors as errors

_logger = _logging.getLogger(__name__)

# End of central directory record
_EOCD_SIGNATURE = b"PK\x05\x06"
_EOCD_STRUCT = _struct.Struct("<4sHHHHIIH")
_MAX_COMMENT = 0xFFFF

# Central directory file header
_CENTRAL_SIGNATURE = b"PK\x01\x02"
_CENTRAL_STRUCT = _struct.Struct("<4sHHHHHHIIIHHHHHII")

# Local file header
_LOCAL_SIGNATURE = b"PK\x03\x04"
_LOCAL_STRUCT = _struct.Struct("<4sHHHHHIIIHH")

_ZIP64_MARKER_32 = 0xFFFFFFFF
_ZIP64_MARKER_16 = 0xFFFF

_FLAG_ENCRYPTED = 0x0001
_FLAG_UTF8 = 0x0800

METHOD_STORED = 0
METHOD_DEFLATE = 8
SUPPORTED_METHODS = frozenset({METHOD_STORED, METHOD_DEFLATE})


@_dataclasses.dataclass(frozen=True)
class EntryInfo:
    """
    One central-directory record.

    Attributes:
        name: Entry path inside the archive.
        method: Compression method number.
        flags: General-purpose bit flags.
        crc: CRC-32 of the uncompressed data.
        compressed_size: Size of the stored data in bytes.
        size: Uncompressed size in bytes.
        header_offset: Offset of the local file header in the buffer.
    """

    name: str
    method: int
    flags: int
    crc: int
    compressed_size: int
    size: int
    header_offset: int

    @property
    def encrypted(self) -> bool:
        return bool(self.flags & _FLAG_ENCRYPTED)

    @property
    def uses_zip64(self) -> bool:
        return _ZIP64_MARKER_32 in (self.compressed_size, self.size, self.header_offset)


class Archive:
    """
    Read-only view over a zip archive held in memory.

    Opening parses the central directory once; entries are decompressed
    on demand by `read_entry()`. A problem with one entry (unsupported
    compression, truncated data, bad checksum) only fails the read of that
    entry, never the listing.

    Use as a context manager, or call `close()`, to release the buffer.

    Example:
        >>> with Archive(data) as archive:
        ...     for name in archive.list_entries("defaults/pref/"):
        ...         text = archive.read_entry(name).decode("utf-8")
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._buffer: bytes | None = bytes(data)
        self._entries: dict[str, EntryInfo] = {}
        self._shift = 0
        self._read_central_directory()
        _logger.debug("Opened archive with %d entries", len(self._entries))

    def __enter__(self) -> Archive:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: _types.TracebackType | None,
    ) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    @property
    def closed(self) -> bool:
        return self._buffer is None

    def close(self) -> None:
        """Release the backing buffer. Further reads raise ValueError."""
        if self._buffer is not None:
            self._buffer = None

    def list_entries(self, prefix: str = "") -> list[str]:
        """
        Return entry names starting with `prefix`, sorted.

        Directory entries are never included.
        """
        return sorted(name for name in self._entries if name.startswith(prefix))

    def info(self, name: str) -> EntryInfo:
        """
        Return the central-directory record for an entry.

        Raises:
            KeyError: If the archive has no such entry.
        """
        try:
            return self._entries[name]
        except KeyError:
            raise KeyError(f"There is no entry named {name!r} in the archive") from None

    def read_entry(self, name: str) -> bytes:
        """
        Return the decompressed bytes of an entry.

        Args:
            name: Exact entry path.

        Returns:
            The uncompressed entry data, CRC-checked.

        Raises:
            KeyError: If the archive has no such entry.
            UnsupportedCompressionError: If the method is not stored/deflate.
            TruncatedEntryError: If the entry runs past the end of the buffer.
            CorruptArchiveError: If headers, sizes or the checksum disagree.
            ArchiveFormatError: For encrypted, zip64 or oversized entries.
            ValueError: If the archive has been closed.
        """
        info = self.info(name)
        buffer = self._require_open()

        if info.encrypted:
            raise errors.ArchiveFormatError(f"Entry '{name}' is encrypted")
        if info.uses_zip64:
            raise errors.ArchiveFormatError(f"Entry '{name}' requires zip64 support")
        if info.method not in SUPPORTED_METHODS:
            raise errors.UnsupportedCompressionError(name, info.method)
        if info.size > constants.MAX_ENTRY_SIZE:
            raise errors.ArchiveFormatError(
                f"Entry '{name}' is {info.size} bytes uncompressed, "
                f"above the {constants.MAX_ENTRY_SIZE} byte limit"
            )

        raw = self._entry_data(buffer, info)
        if info.method == METHOD_STORED:
            data = raw
        else:
            data = _inflate(name, raw, info.size)

        if len(data) != info.size:
            raise errors.CorruptArchiveError(
                f"Entry '{name}' is {len(data)} bytes, directory says {info.size}"
            )
        if _zlib.crc32(data) != info.crc:
            raise errors.CorruptArchiveError(f"Entry '{name}' failed its CRC check")
        return data

    # -------------------------------------------------------------------------
    # Directory parsing
    # -------------------------------------------------------------------------

    def _require_open(self) -> bytes:
        if self._buffer is None:
            raise ValueError("I/O operation on closed archive")
        return self._buffer

    def _find_end_record(self, buffer: bytes) -> tuple[int, tuple[_typing.Any, ...]]:
        size = len(buffer)
        lowest = max(0, size - _EOCD_STRUCT.size - _MAX_COMMENT)
        position = buffer.rfind(_EOCD_SIGNATURE, lowest)
        while position != -1:
            if position + _EOCD_STRUCT.size <= size:
                record = _EOCD_STRUCT.unpack_from(buffer, position)
                # The comment must fit inside the buffer.
                if position + _EOCD_STRUCT.size + record[7] <= size:
                    return position, record
            position = buffer.rfind(_EOCD_SIGNATURE, lowest, position)
        raise errors.CorruptArchiveError("End of central directory record not found")

    def _read_central_directory(self) -> None:
        buffer = self._require_open()
        eocd_offset, record = self._find_end_record(buffer)
        disk, directory_disk, disk_entries, total_entries = record[1:5]
        directory_size, directory_offset = record[5], record[6]

        if disk != 0 or directory_disk != 0 or disk_entries != total_entries:
            raise errors.ArchiveFormatError("Multi-disk archives are not supported")
        if (
            total_entries == _ZIP64_MARKER_16
            or directory_size == _ZIP64_MARKER_32
            or directory_offset == _ZIP64_MARKER_32
        ):
            raise errors.ArchiveFormatError("Zip64 archives are not supported")
        if total_entries == 0:
            return

        start = directory_offset
        if buffer[start : start + 4] != _CENTRAL_SIGNATURE:
            fallback = eocd_offset - directory_size
            if fallback < 0 or buffer[fallback : fallback + 4] != _CENTRAL_SIGNATURE:
                raise errors.CorruptArchiveError(
                    f"No central directory at offset {directory_offset}"
                )
            self._shift = fallback - directory_offset
            start = fallback
            _logger.debug("Central directory found after %d prepended bytes", self._shift)

        position = start
        for index in range(total_entries):
            if position + _CENTRAL_STRUCT.size > eocd_offset:
                raise errors.CorruptArchiveError(
                    f"Central directory is truncated at entry {index}"
                )
            header = _CENTRAL_STRUCT.unpack_from(buffer, position)
            if header[0] != _CENTRAL_SIGNATURE:
                raise errors.CorruptArchiveError(
                    f"Bad central directory signature at entry {index}"
                )
            flags, method = header[3], header[4]
            crc, compressed_size, size = header[7], header[8], header[9]
            name_length, extra_length, comment_length = header[10], header[11], header[12]
            header_offset = header[16]

            name_start = position + _CENTRAL_STRUCT.size
            next_position = name_start + name_length + extra_length + comment_length
            if next_position > eocd_offset:
                raise errors.CorruptArchiveError(
                    f"Central directory is truncated at entry {index}"
                )
            name = _decode_name(buffer[name_start : name_start + name_length], flags)
            position = next_position

            if not name or name.endswith("/"):
                continue
            if header_offset != _ZIP64_MARKER_32:
                header_offset += self._shift
            # Later records supersede earlier ones with the same name.
            self._entries[name] = EntryInfo(
                name=name,
                method=method,
                flags=flags,
                crc=crc,
                compressed_size=compressed_size,
                size=size,
                header_offset=header_offset,
            )

    def _entry_data(self, buffer: bytes, info: EntryInfo) -> bytes:
        offset = info.header_offset
        if offset < 0 or offset + _LOCAL_STRUCT.size > len(buffer):
            raise errors.TruncatedEntryError(info.name, "local header is truncated")
        header = _LOCAL_STRUCT.unpack_from(buffer, offset)
        if header[0] != _LOCAL_SIGNATURE:
            raise errors.CorruptArchiveError(
                f"Entry '{info.name}' has a bad local header signature"
            )
        name_length, extra_length = header[9], header[10]
        data_start = offset + _LOCAL_STRUCT.size + name_length + extra_length
        data_end = data_start + info.compressed_size
        if data_end > len(buffer):
            raise errors.TruncatedEntryError(info.name)
        return buffer[data_start:data_end]


def _decode_name(raw: bytes, flags: int) -> str:
    if flags & _FLAG_UTF8:
        return raw.decode("utf-8", errors="replace")
    return raw.decode("cp437")


def _inflate(name: str, raw: bytes, size: int) -> bytes:
    decompressor = _zlib.decompressobj(-_zlib.MAX_WBITS)
    try:
        # One byte past the declared size is enough to detect a mismatch.
        data = decompressor.decompress(raw, size + 1)
    except _zlib.error as e:
        raise errors.CorruptArchiveError(f"Entry '{name}' has invalid deflate data: {e}") from e
    if len(data) > size:
        raise errors.CorruptArchiveError(
            f"Entry '{name}' inflates past its declared size of {size} bytes"
        )
    if not decompressor.eof:
        raise errors.TruncatedEntryError(name, "deflate stream ends early")
    return data


def open_archive(data: bytes | bytearray | memoryview) -> Archive:
    """
    Open an in-memory zip archive.

    Raises:
        CorruptArchiveError: If the central directory cannot be located or read.
        ArchiveFormatError: For zip64 or multi-disk archives.
    """
    return Archive(data)
