"""Key derivation and block cipher protecting mpdata (iwm) stat files."""

from __future__ import annotations

import struct
import time
from typing import Optional

from .md4 import MD4

_MASK = 0xFFFFFFFF
_KEY_SALT = 0x1F93AB07
_HASH_SALT_BIAS = 0x928D764C
_DELTA = 0x9E3779B9
_ROUND_SUMS = tuple((_DELTA * n) & _MASK for n in range(1, 7))


class IWMLayout:
    """Byte offsets and sizes inside an mpdata file."""

    SIZE = 0x211C
    SIGNATURE = slice(0, 4)
    SALT_OFFSET = 4
    HASH = slice(8, 24)
    ENCRYPTED_OFFSET = 8
    ENCRYPTED_WORDS = (SIZE - ENCRYPTED_OFFSET) // 4
    HASHED_OFFSET = 24
    FS_GAME_PATH = slice(24, 284)
    STATS_CHECKSUM_OFFSET = 284
    PLAYER_DATA = slice(288, SIZE)
    STAT_BYTES_OFFSET = 288
    STAT_BYTE_COUNT = 2000
    STAT_DWORDS_OFFSET = 2288
    STAT_DWORD_COUNT = 1498
    ENCRYPTED_SIGNATURE = b"iwm0"
    DECRYPTED_SIGNATURE = b"ice0"


def salted_md4(data, salt) -> bytes:
    """MD4 of the little-endian 32-bit ``salt`` followed by ``data``."""
    return MD4(struct.pack("<I", salt & _MASK) + bytes(data)).digest()


def derive_key(cd_key, salt) -> tuple[int, int, int, int]:
    """Derive the four-word cipher key from a CD key and a file salt."""
    raw = cd_key.encode("latin-1") if isinstance(cd_key, str) else bytes(cd_key)
    padded = bytearray(b" " * 34)
    padded[:16] = raw[:16].ljust(16, b"\x00")
    padded[16] = padded[32] = padded[33] = 0

    base = salted_md4(padded, _KEY_SALT)
    inner = MD4(bytes(b ^ 0x36 for b in base) + struct.pack("<I", salt & _MASK)).digest()
    outer = MD4(bytes(b ^ 0x5C for b in base) + inner).digest()
    return struct.unpack("<4I", outer)


def _mix(z: int, y: int, total: int, key_word: int) -> int:
    return (((y ^ total) + (z ^ key_word)) ^ (((z << 4) ^ (y >> 3)) + ((z >> 5) ^ (y << 2)))) & _MASK


def _checked(words, key) -> tuple[list[int], tuple[int, ...]]:
    values = [w & _MASK for w in words]
    if len(values) < 2:
        raise ValueError("at least two words are needed")
    key_words = tuple(k & _MASK for k in key)
    if len(key_words) != 4:
        raise ValueError("key must have exactly four words")
    return values, key_words


def encrypt_words(words, key) -> list[int]:
    """Encrypt a sequence of 32-bit words with six cipher rounds."""
    v, k = _checked(words, key)
    last = len(v) - 1
    z = v[last]
    for total in _ROUND_SUMS:
        e = (total >> 2) & 3
        for p in range(last):
            v[p] = (v[p] + _mix(z, v[p + 1], total, k[e ^ (p & 3)])) & _MASK
            z = v[p]
        v[last] = (v[last] + _mix(z, v[0], total, k[e ^ (last & 3)])) & _MASK
        z = v[last]
    return v


def decrypt_words(words, key) -> list[int]:
    """Invert :func:`encrypt_words`."""
    v, k = _checked(words, key)
    last = len(v) - 1
    y = v[0]
    for total in reversed(_ROUND_SUMS):
        e = (total >> 2) & 3
        for p in range(last, 0, -1):
            v[p] = (v[p] - _mix(v[p - 1], y, total, k[e ^ (p & 3)])) & _MASK
            y = v[p]
        v[0] = (v[0] - _mix(v[last], y, total, k[e])) & _MASK
        y = v[0]
    return v


def _checked_file(data) -> bytes:
    blob = bytes(data)
    if len(blob) != IWMLayout.SIZE:
        raise ValueError(f"mpdata must be {IWMLayout.SIZE} bytes, got {len(blob)}")
    return blob


def _content_salt(salt: int, key: tuple[int, ...]) -> int:
    return salt ^ ((key[2] + _HASH_SALT_BIAS) & _MASK)


def decrypt_iwm(data, cd_key) -> bytes:
    """Decrypt an ``iwm0`` file and verify its hash; raises ValueError on failure."""
    blob = _checked_file(data)
    if blob[IWMLayout.SIGNATURE] != IWMLayout.ENCRYPTED_SIGNATURE:
        raise ValueError("not an encrypted mpdata file")
    (salt,) = struct.unpack_from("<I", blob, IWMLayout.SALT_OFFSET)
    key = derive_key(cd_key, salt)
    fmt = f"<{IWMLayout.ENCRYPTED_WORDS}I"
    words = decrypt_words(struct.unpack_from(fmt, blob, IWMLayout.ENCRYPTED_OFFSET), key)
    plain = blob[:IWMLayout.ENCRYPTED_OFFSET] + struct.pack(fmt, *words)
    expected = salted_md4(plain[IWMLayout.HASHED_OFFSET:], _content_salt(salt, key))
    if plain[IWMLayout.HASH] != expected:
        raise ValueError("hash mismatch: wrong CD key or corrupted file")
    return plain


def encrypt_iwm(data, cd_key, salt: Optional[int] = None) -> bytes:
    """Encrypt mpdata contents as an ``iwm0`` file; salt defaults to the current time."""
    blob = bytearray(_checked_file(data))
    if salt is None:
        salt = int(time.time()) & _MASK
    if not 0 <= salt <= _MASK:
        raise ValueError(f"salt out of 32-bit range: {salt}")
    blob[IWMLayout.SIGNATURE] = IWMLayout.ENCRYPTED_SIGNATURE
    struct.pack_into("<I", blob, IWMLayout.SALT_OFFSET, salt)
    key = derive_key(cd_key, salt)
    blob[IWMLayout.HASH] = salted_md4(blob[IWMLayout.HASHED_OFFSET:], _content_salt(salt, key))
    fmt = f"<{IWMLayout.ENCRYPTED_WORDS}I"
    words = encrypt_words(struct.unpack_from(fmt, blob, IWMLayout.ENCRYPTED_OFFSET), key)
    struct.pack_into(fmt, blob, IWMLayout.ENCRYPTED_OFFSET, *words)
    return bytes(blob)