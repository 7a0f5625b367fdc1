# -----------------------------------------------------------------------------
#  Chunk Frame - block framing and encoding for the serial chunk sender
#
#  Copyright (c) 2025 Nitish. All Rights Reserved.
# -----------------------------------------------------------------------------
"""
chunk_frame.py
Splits a payload into fixed 8-byte chunks, appends the 1-byte LSB checksum
and renders the 9-byte block as base64 for the wire.

Wire block: 8 data/padding bytes + 1 checksum byte -> 12 base64 chars,
no length prefix, no terminator.
"""

import base64
from typing import List

# ---------- Wire constants ----------
CHUNK_SIZE = 8
FRAME_SIZE = CHUNK_SIZE + 1
ENCODED_SIZE = 12  # base64 of 9 bytes, never padded with '='
PAD_BYTE = b'\x00'
# ------------------------------------


def split_chunks(payload: bytes, size: int = CHUNK_SIZE) -> List[bytes]:
    """Cut payload into ordered slices of at most `size` bytes.

    An empty payload still yields one (empty) chunk so a session always
    has something to send.
    """
    if not payload:
        return [b'']
    return [bytes(payload[i:i + size]) for i in range(0, len(payload), size)]


def pad(chunk: bytes) -> bytes:
    if len(chunk) > CHUNK_SIZE:
        raise ValueError(f"chunk too long: {len(chunk)} > {CHUNK_SIZE}")
    if len(chunk) == CHUNK_SIZE:
        return bytes(chunk)
    return bytes(chunk) + PAD_BYTE * (CHUNK_SIZE - len(chunk))


def checksum(data: bytes) -> int:
    # fold the LSB of each byte, first byte ends up most significant
    cs = 0
    for b in data:
        cs = (cs << 1) + (b & 1)
    return cs & 0xFF


def frame(chunk: bytes) -> bytes:
    """Padded chunk + trailing checksum byte (always FRAME_SIZE bytes)."""
    block = pad(chunk)
    return block + bytes([checksum(block)])


def encode(block: bytes) -> bytes:
    return base64.b64encode(block)


def encode_chunk(chunk: bytes) -> bytes:
    return encode(frame(chunk))
