import struct
import zlib

import pytest

from iwmstats.md4 import (
    MD4,
    block_checksum,
    block_checksum_key32,
    block_full_checksum,
    md4,
)

SAMPLE = bytes(range(256)) * 5


def test_empty_digest_matches_reference_vector():
    assert MD4().hexdigest() == "31d6cfe0d16ae931b73c59d7e0c089c0"


def test_abc_digest_matches_reference_vector():
    assert md4(b"abc").hex() == "a448017aaf21d8525fc10ae87aa6729d"


def test_hexdigest_is_hex_of_digest():
    h = MD4(SAMPLE)
    assert h.hexdigest() == h.digest().hex()
    assert len(h.digest()) == 16


@pytest.mark.parametrize("split", [0, 1, 55, 56, 63, 64, 65, 127, 128, 700, len(SAMPLE)])
def test_incremental_update_matches_one_shot(split):
    h = MD4()
    h.update(SAMPLE[:split])
    h.update(SAMPLE[split:])
    assert h.digest() == md4(SAMPLE)


def test_byte_by_byte_update_matches_one_shot():
    h = MD4()
    for value in SAMPLE[:200]:
        h.update(bytes([value]))
    assert h.digest() == md4(SAMPLE[:200])


@pytest.mark.parametrize("length", [54, 55, 56, 57, 63, 64, 65, 119, 120, 121])
def test_padding_boundaries_give_distinct_digests(length):
    assert md4(b"a" * length) != md4(b"a" * (length + 1))
    assert md4(b"a" * length) == MD4(bytearray(b"a" * length)).digest()


def test_digest_does_not_consume_state():
    h = MD4(b"abc")
    first = h.digest()
    assert h.digest() == first
    h.update(b"def")
    assert h.digest() == md4(b"abcdef")


def test_copy_is_independent():
    h = MD4(b"abc")
    clone = h.copy()
    clone.update(b"more")
    assert h.digest() == md4(b"abc")
    assert clone.digest() == md4(b"abcmore")


def test_accepts_memoryview():
    assert MD4(memoryview(SAMPLE)).digest() == md4(SAMPLE)


def test_block_full_checksum_is_md4():
    assert block_full_checksum(SAMPLE) == md4(SAMPLE)


def test_block_checksum_folds_digest_words():
    words = struct.unpack("<4I", md4(SAMPLE))
    assert block_checksum(SAMPLE) == words[0] ^ words[1] ^ words[2] ^ words[3]


def test_checksum_key32_check_value():
    assert block_checksum_key32(b"123456789", 0) == 0xCBF43926


@pytest.mark.parametrize("seed", [0, 1, 0xDEADBEEF, 0xFFFFFFFF])
def test_checksum_key32_agrees_with_crc32(seed):
    assert block_checksum_key32(SAMPLE, seed) == zlib.crc32(SAMPLE, seed)


def test_checksum_key32_of_empty_with_zero_seed_is_zero():
    assert block_checksum_key32(b"", 0) == 0


def test_checksum_key32_rejects_out_of_range_seed():
    with pytest.raises(ValueError):
        block_checksum_key32(b"data", -1)