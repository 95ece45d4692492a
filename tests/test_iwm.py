import struct

import pytest

from iwmstats.crypto import IWMLayout
from iwmstats.iwm import IWM, EncState, ErrorCode, IWMError
from iwmstats.md4 import block_checksum_key32

CD_KEY = "placeholder" * 2
OTHER_KEY = "secret" * 3


def make_plain(fill=b"\x00"):
    blob = bytearray(fill * IWMLayout.SIZE)
    blob[IWMLayout.SIGNATURE] = IWMLayout.DECRYPTED_SIGNATURE
    checksum = block_checksum_key32(blob[IWMLayout.PLAYER_DATA], 0)
    struct.pack_into("<I", blob, IWMLayout.STATS_CHECKSUM_OFFSET, checksum)
    return bytes(blob)


def loaded(cd_key=""):
    iwm = IWM(cd_key)
    iwm.from_bytes(make_plain())
    return iwm


def test_cd_key_is_normalized():
    iwm = IWM("plac-ehol-derp-lace-hold")
    assert iwm.cd_key == "PLACEHOLDERPLACEHOLD"


def test_short_cd_key_rejected_and_cleared():
    iwm = IWM(CD_KEY)
    with pytest.raises(IWMError) as info:
        iwm.set_cd_key("placeholder")
    assert info.value.code is ErrorCode.INVALID_CD_KEY_PROVIDED
    assert iwm.cd_key == ""


def test_empty_cd_key_accepted():
    iwm = IWM(CD_KEY)
    iwm.set_cd_key("--  --")
    assert iwm.cd_key == ""


def test_error_string_matches_code_name():
    assert str(IWMError(ErrorCode.INVALID_STAT_INDEX)) == "InvalidStatIndex"


def test_decrypted_file_parses():
    iwm = loaded()
    assert iwm.loaded
    assert iwm.enc_state is EncState.DEC


def test_wrong_size_rejected():
    with pytest.raises(IWMError) as info:
        IWM().from_bytes(make_plain()[:-1])
    assert info.value.code is ErrorCode.INVALID_FILE_SIZE


def test_bad_header_rejected():
    blob = bytearray(make_plain())
    blob[0:4] = b"abcd"
    with pytest.raises(IWMError) as info:
        IWM().from_bytes(blob)
    assert info.value.code is ErrorCode.INVALID_FILE_HEADER


def test_bad_checksum_rejected():
    blob = bytearray(make_plain())
    blob[IWMLayout.STAT_BYTES_OFFSET] ^= 0xFF
    with pytest.raises(IWMError) as info:
        IWM().from_bytes(blob)
    assert info.value.code is ErrorCode.INVALID_STATS_CHECKSUM


def test_stats_require_loaded_file():
    iwm = IWM()
    with pytest.raises(IWMError) as info:
        iwm.get_stat(0)
    assert info.value.code is ErrorCode.NO_IWM_FILE_READ
    with pytest.raises(IWMError) as info:
        iwm.to_bytes(EncState.DEC)
    assert info.value.code is ErrorCode.NO_IWM_FILE_READ


@pytest.mark.parametrize("index,value", [(0, 7), (1999, 255), (2000, 123456), (3497, -1)])
def test_set_then_get_stat(index, value):
    iwm = loaded()
    iwm.set_stat(index, value)
    assert iwm.get_stat(index) == value


def test_dword_stat_stored_little_endian():
    iwm = loaded()
    iwm.set_stat(2001, -1)
    blob = iwm.to_bytes(EncState.DEC)
    offset = IWMLayout.STAT_DWORDS_OFFSET + 4
    assert blob[offset:offset + 4] == b"\xff\xff\xff\xff"


@pytest.mark.parametrize("value", [-1, 256])
def test_byte_stat_range(value):
    iwm = loaded()
    with pytest.raises(IWMError) as info:
        iwm.set_stat(10, value)
    assert info.value.code is ErrorCode.INVALID_STAT_VALUE


@pytest.mark.parametrize("index", [3498, 5000, -1])
def test_stat_index_range(index):
    iwm = loaded()
    with pytest.raises(IWMError) as info:
        iwm.get_stat(index)
    assert info.value.code is ErrorCode.INVALID_STAT_INDEX


def test_decrypted_output_has_fresh_checksum():
    iwm = loaded()
    iwm.set_stat(42, 9)
    blob = iwm.to_bytes(EncState.DEC)
    assert blob[:4] == b"ice0"
    (stored,) = struct.unpack_from("<I", blob, IWMLayout.STATS_CHECKSUM_OFFSET)
    assert stored == block_checksum_key32(blob[IWMLayout.PLAYER_DATA], 0)
    again = IWM()
    again.from_bytes(blob)
    assert again.get_stat(42) == 9


def test_encrypt_needs_cd_key():
    with pytest.raises(IWMError) as info:
        loaded().to_bytes(EncState.ENC)
    assert info.value.code is ErrorCode.NO_CD_KEY_PROVIDED


def test_encrypted_round_trip():
    iwm = loaded(CD_KEY)
    iwm.set_stat(2500, 777)
    blob = iwm.to_bytes(EncState.ENC)
    assert blob[:4] == b"iwm0"
    assert len(blob) == IWMLayout.SIZE
    again = IWM(CD_KEY)
    again.from_bytes(blob)
    assert again.enc_state is EncState.ENC
    assert again.get_stat(2500) == 777


def test_encrypted_file_needs_key():
    blob = loaded(CD_KEY).to_bytes(EncState.ENC)
    with pytest.raises(IWMError) as info:
        IWM().from_bytes(blob)
    assert info.value.code is ErrorCode.NO_CD_KEY_PROVIDED


def test_encrypted_file_wrong_key():
    blob = loaded(CD_KEY).to_bytes(EncState.ENC)
    with pytest.raises(IWMError) as info:
        IWM(OTHER_KEY).from_bytes(blob)
    assert info.value.code is ErrorCode.INVALID_IWM_HASH


def test_file_round_trip(tmp_path):
    source = tmp_path / "mpdata"
    source.write_bytes(make_plain())
    iwm = IWM(CD_KEY)
    iwm.read_file(source)
    iwm.set_stat(3, 200)
    target = tmp_path / "out"
    iwm.write_file(target, EncState.ENC)
    again = IWM(CD_KEY)
    again.read_file(target)
    assert again.get_stat(3) == 200


def test_read_missing_file(tmp_path):
    with pytest.raises(IWMError) as info:
        IWM().read_file(tmp_path / "missing")
    assert info.value.code is ErrorCode.OPEN_FILE_FOR_READ


def test_write_to_directory_fails(tmp_path):
    with pytest.raises(IWMError) as info:
        loaded().write_file(tmp_path, EncState.DEC)
    assert info.value.code is ErrorCode.OPEN_FILE_FOR_WRITE