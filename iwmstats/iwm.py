"""Reading, editing and writing mpdata stat files."""

from __future__ import annotations

import enum
import struct
from pathlib import Path

from .crypto import IWMLayout, decrypt_iwm, encrypt_iwm
from .md4 import block_checksum_key32

_DWORD = struct.Struct("<I")
_MIN_INT32 = -(1 << 31)
_MAX_UINT32 = (1 << 32) - 1


class EncState(enum.Enum):
    """On-disk form of an mpdata file."""

    ENC = "iwm0"
    DEC = "ice0"


class ErrorCode(enum.Enum):
    """Reasons an mpdata operation can fail."""

    NO_ERROR = "NoError"
    OPEN_FILE_FOR_READ = "OpenFileForRead"
    OPEN_FILE_FOR_WRITE = "OpenFileForWrite"
    NO_IWM_FILE_READ = "NoIWMFileRead"
    NO_CD_KEY_PROVIDED = "NoCDKeyProvided"
    INVALID_CD_KEY_PROVIDED = "InvalidCDKeyProvided"
    INVALID_FILE_SIZE = "InvalidFileSize"
    INVALID_FILE_HEADER = "InvalidFileHeader"
    INVALID_IWM_HASH = "InvalidIWMHash"
    INVALID_STATS_CHECKSUM = "InvalidStatsChecksum"
    INVALID_STAT_INDEX = "InvalidStatIndex"
    INVALID_STAT_VALUE = "InvalidStatValue"


class IWMError(Exception):
    """Raised when an mpdata operation fails; ``code`` tells why."""

    def __init__(self, code: ErrorCode) -> None:
        super().__init__(code.value)
        self.code = code


def _normalize_cd_key(cd_key: str) -> str:
    return "".join(c for c in cd_key if c.isascii() and c.isalnum()).upper()


def _stats_checksum(blob) -> int:
    return block_checksum_key32(blob[IWMLayout.PLAYER_DATA], 0)


class IWM:
    """An mpdata file held in memory, with access to its stats."""

    def __init__(self, cd_key: str = "") -> None:
        self._data: bytearray | None = None
        self._cd_key = ""
        self._enc_state = EncState.ENC
        self.set_cd_key(cd_key)

    @property
    def cd_key(self) -> str:
        """The normalized CD key, or an empty string."""
        return self._cd_key

    @property
    def enc_state(self) -> EncState:
        """The form the last parsed file was stored in."""
        return self._enc_state

    @property
    def loaded(self) -> bool:
        """Whether a valid file has been read."""
        return self._data is not None

    def set_cd_key(self, cd_key: str) -> None:
        """Store the CD key, keeping only letters and digits, upper-cased."""
        normalized = _normalize_cd_key(cd_key)
        if normalized and len(normalized) < 16:
            self._cd_key = ""
            raise IWMError(ErrorCode.INVALID_CD_KEY_PROVIDED)
        self._cd_key = normalized

    def from_bytes(self, data) -> None:
        """Parse the contents of an mpdata file, decrypting it if needed."""
        blob = bytes(data)
        if len(blob) != IWMLayout.SIZE:
            raise IWMError(ErrorCode.INVALID_FILE_SIZE)

        signature = blob[IWMLayout.SIGNATURE]
        if signature == IWMLayout.ENCRYPTED_SIGNATURE:
            self._enc_state = EncState.ENC
            if not self._cd_key:
                raise IWMError(ErrorCode.NO_CD_KEY_PROVIDED)
            try:
                blob = decrypt_iwm(blob, self._cd_key)
            except ValueError as exc:
                raise IWMError(ErrorCode.INVALID_IWM_HASH) from exc
        elif signature == IWMLayout.DECRYPTED_SIGNATURE:
            self._enc_state = EncState.DEC
        else:
            raise IWMError(ErrorCode.INVALID_FILE_HEADER)

        (stored,) = _DWORD.unpack_from(blob, IWMLayout.STATS_CHECKSUM_OFFSET)
        if _stats_checksum(blob) != stored:
            raise IWMError(ErrorCode.INVALID_STATS_CHECKSUM)

        self._data = bytearray(blob)

    def to_bytes(self, enc_state: EncState) -> bytes:
        """Serialize the file with a fresh checksum, in the requested form."""
        if self._data is None:
            raise IWMError(ErrorCode.NO_IWM_FILE_READ)

        blob = bytearray(self._data)
        _DWORD.pack_into(blob, IWMLayout.STATS_CHECKSUM_OFFSET, _stats_checksum(blob))

        if enc_state is EncState.ENC:
            if not self._cd_key:
                raise IWMError(ErrorCode.NO_CD_KEY_PROVIDED)
            return encrypt_iwm(blob, self._cd_key)

        blob[IWMLayout.SIGNATURE] = IWMLayout.DECRYPTED_SIGNATURE
        return bytes(blob)

    def read_file(self, path) -> None:
        """Read and parse an mpdata file from disk."""
        try:
            with open(path, "rb") as handle:
                data = handle.read(IWMLayout.SIZE)
        except OSError as exc:
            raise IWMError(ErrorCode.OPEN_FILE_FOR_READ) from exc
        self.from_bytes(data)

    def write_file(self, path, enc_state: EncState) -> None:
        """Write the file to disk in the requested form."""
        blob = self.to_bytes(enc_state)
        try:
            Path(path).write_bytes(blob)
        except OSError as exc:
            raise IWMError(ErrorCode.OPEN_FILE_FOR_WRITE) from exc

    def _locate(self, index: int) -> tuple[bool, int]:
        """Return (is_byte_stat, byte offset) for a stat index."""
        if self._data is None:
            raise IWMError(ErrorCode.NO_IWM_FILE_READ)
        if 0 <= index < IWMLayout.STAT_BYTE_COUNT:
            return True, IWMLayout.STAT_BYTES_OFFSET + index
        dword_index = index - IWMLayout.STAT_BYTE_COUNT
        if 0 <= dword_index < IWMLayout.STAT_DWORD_COUNT:
            return False, IWMLayout.STAT_DWORDS_OFFSET + 4 * dword_index
        raise IWMError(ErrorCode.INVALID_STAT_INDEX)

    def get_stat(self, index: int) -> int:
        """Return a stat: indices below 2000 are bytes, the rest signed 32-bit."""
        is_byte, offset = self._locate(index)
        if is_byte:
            return self._data[offset]
        (value,) = struct.unpack_from("<i", self._data, offset)
        return value

    def set_stat(self, index: int, value: int) -> None:
        """Set a stat; byte stats take 0..255, the rest any 32-bit value."""
        is_byte, offset = self._locate(index)
        if is_byte:
            if not 0 <= value <= 255:
                raise IWMError(ErrorCode.INVALID_STAT_VALUE)
            self._data[offset] = value
            return
        if not _MIN_INT32 <= value <= _MAX_UINT32:
            raise IWMError(ErrorCode.INVALID_STAT_VALUE)
        _DWORD.pack_into(self._data, offset, value & _MAX_UINT32)