import base64

import pytest

from chunk_frame import (CHUNK_SIZE, ENCODED_SIZE, FRAME_SIZE, checksum, encode,
                         encode_chunk, frame, pad, split_chunks)


@pytest.mark.parametrize("length", [0, 1, 7, 8, 9, 15, 16, 17, 100])
def test_split_chunk_count_and_reassembly(length):
    payload = bytes(i % 251 for i in range(length))
    chunks = split_chunks(payload)
    expected = max(1, -(-length // CHUNK_SIZE))
    assert len(chunks) == expected
    assert all(len(pad(c)) == CHUNK_SIZE for c in chunks)
    assert b''.join(chunks) == payload


def test_empty_payload_is_one_zero_chunk():
    chunks = split_chunks(b'')
    assert chunks == [b'']
    assert frame(chunks[0]) == b'\x00' * FRAME_SIZE
    assert encode_chunk(chunks[0]) == b'AAAAAAAAAAAA'


def test_ten_byte_example():
    chunks = split_chunks(bytes(range(1, 11)))
    assert chunks[0] == bytes([1, 2, 3, 4, 5, 6, 7, 8])
    assert pad(chunks[1]) == bytes([9, 10, 0, 0, 0, 0, 0, 0])


def test_pad_only_short_chunks():
    full = b'ABCDEFGH'
    assert pad(full) == full
    assert pad(b'AB') == b'AB' + b'\x00' * 6
    with pytest.raises(ValueError):
        pad(b'123456789')


def test_exact_multiple_has_no_padding():
    chunks = split_chunks(b'x' * 16)
    assert chunks == [b'x' * 8, b'x' * 8]


@pytest.mark.parametrize("data,expected", [
    (bytes([1, 2, 3, 4, 5, 6, 7, 8]), 0b10101010),
    (bytes([9, 10, 0, 0, 0, 0, 0, 0]), 0b10000000),
    (bytes(8), 0),
    (b'\xff' * 8, 0xFF),
    (bytes([0, 0, 0, 0, 0, 0, 0, 1]), 1),
    (b'\x02\x03\x02\x02\x02\x02\x02\x02', 0b01000000),
])
def test_checksum_fixtures(data, expected):
    assert checksum(data) == expected
    assert checksum(data) == checksum(data)


def test_checksum_bit_positions():
    base = bytes(8)
    for i in range(CHUNK_SIZE):
        flipped = bytearray(base)
        flipped[i] ^= 1
        assert checksum(bytes(flipped)) == 1 << (CHUNK_SIZE - 1 - i)
        # only the LSB counts
        flipped[i] ^= 0x80
        assert checksum(bytes(flipped)) == 1 << (CHUNK_SIZE - 1 - i)


def test_frame_appends_checksum():
    block = frame(bytes([9, 10]))
    assert len(block) == FRAME_SIZE
    assert block[:CHUNK_SIZE] == bytes([9, 10, 0, 0, 0, 0, 0, 0])
    assert block[-1] == 0x80


def test_encode_fixed_length_and_reversible():
    for chunk in (b'', b'\x01', b'ABCDEFGH', b'\xff' * 8):
        encoded = encode(frame(chunk))
        assert len(encoded) == ENCODED_SIZE
        assert b'=' not in encoded and b'\n' not in encoded
        assert base64.b64decode(encoded) == frame(chunk)
