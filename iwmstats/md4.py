"""MD4 message digest and the block checksums built on top of it."""

from __future__ import annotations

import struct
import zlib

_MASK = 0xFFFFFFFF
_LENGTH_MASK = (1 << 64) - 1
_BLOCK_SIZE = 64
_INITIAL_STATE = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476)


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) | (value >> (32 - shift))) & _MASK


def _f(x: int, y: int, z: int) -> int:
    return (x & y) | (~x & z)


def _g(x: int, y: int, z: int) -> int:
    return (x & y) | (x & z) | (y & z)


def _h(x: int, y: int, z: int) -> int:
    return x ^ y ^ z


# (round function, additive constant, message word order, rotation amounts)
_ROUNDS = (
    (_f, 0, tuple(range(16)), (3, 7, 11, 19)),
    (_g, 0x5A827999, (0, 4, 8, 12, 1, 5, 9, 13, 2, 6, 10, 14, 3, 7, 11, 15), (3, 5, 9, 13)),
    (_h, 0x6ED9EBA1, (0, 8, 4, 12, 2, 10, 6, 14, 1, 9, 5, 13, 3, 11, 7, 15), (3, 9, 11, 15)),
)


def _compress(state: tuple[int, int, int, int], block: bytes) -> tuple[int, int, int, int]:
    words = struct.unpack("<16I", block)
    a, b, c, d = state
    for func, constant, order, shifts in _ROUNDS:
        for step, word_index in enumerate(order):
            a = _rotl((a + func(b, c, d) + words[word_index] + constant) & _MASK, shifts[step % 4])
            a, b, c, d = d, a, b, c
    return (
        (state[0] + a) & _MASK,
        (state[1] + b) & _MASK,
        (state[2] + c) & _MASK,
        (state[3] + d) & _MASK,
    )


class MD4:
    """Incremental MD4 hash with a hashlib-like interface."""

    name = "md4"
    digest_size = 16
    block_size = _BLOCK_SIZE

    def __init__(self, data=b"") -> None:
        self._state = _INITIAL_STATE
        self._buffer = b""
        self._length = 0
        self.update(data)

    def update(self, data) -> None:
        """Feed more bytes into the hash."""
        chunk = bytes(data)
        self._length = (self._length + len(chunk)) & _LENGTH_MASK
        pending = self._buffer + chunk
        whole = len(pending) - len(pending) % _BLOCK_SIZE
        state = self._state
        for offset in range(0, whole, _BLOCK_SIZE):
            state = _compress(state, pending[offset:offset + _BLOCK_SIZE])
        self._state = state
        self._buffer = pending[whole:]

    def digest(self) -> bytes:
        """Return the 16-byte digest of everything fed so far."""
        index = self._length % _BLOCK_SIZE
        pad_len = 56 - index if index < 56 else 120 - index
        bit_length = (self._length * 8) & _LENGTH_MASK
        tail = self._buffer + b"\x80" + b"\x00" * (pad_len - 1) + struct.pack("<Q", bit_length)
        state = self._state
        for offset in range(0, len(tail), _BLOCK_SIZE):
            state = _compress(state, tail[offset:offset + _BLOCK_SIZE])
        return struct.pack("<4I", *state)

    def hexdigest(self) -> str:
        """Return the digest as a lower-case hex string."""
        return self.digest().hex()

    def copy(self) -> "MD4":
        """Return an independent copy of the current hash state."""
        clone = MD4()
        clone._state = self._state
        clone._buffer = self._buffer
        clone._length = self._length
        return clone


def md4(data) -> bytes:
    """Return the MD4 digest of ``data``."""
    return MD4(data).digest()


def block_checksum(data) -> int:
    """Fold the MD4 digest of ``data`` into one 32-bit value by XOR."""
    a, b, c, d = struct.unpack("<4I", md4(data))
    return a ^ b ^ c ^ d


def block_full_checksum(data) -> bytes:
    """Return the full 16-byte MD4 digest of ``data``."""
    return md4(data)


def block_checksum_key32(data, initial_crc=0) -> int:
    """Reflected CRC-32 (polynomial 0xEDB88320) of ``data`` seeded with ``initial_crc``."""
    if not 0 <= initial_crc <= _MASK:
        raise ValueError(f"initial_crc out of 32-bit range: {initial_crc}")
    return zlib.crc32(bytes(data), initial_crc) & _MASK