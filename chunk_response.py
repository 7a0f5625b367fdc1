# -----------------------------------------------------------------------------
#  Chunk Response - peer reply classification for the serial chunk sender
#
#  Copyright (c) 2025 Nitish. All Rights Reserved.
# -----------------------------------------------------------------------------
"""
chunk_response.py
The peer answers every chunk with one line: 'k' (ok) or 'f' (failed).
Anything else (boot banners, debug prints) is logged and ignored.
"""

import enum
import logging
from typing import Iterable, Iterator, Union

log = logging.getLogger(__name__)

ACK_OK = 'k'
ACK_FAIL = 'f'


class Response(enum.Enum):
    SUCCESS = 'success'
    FAILURE = 'failure'
    UNRECOGNIZED = 'unrecognized'


def classify(line: Union[str, bytes]) -> Response:
    if isinstance(line, (bytes, bytearray)):
        line = line.decode('ascii', errors='replace')
    text = line.strip()
    if text == ACK_OK:
        return Response.SUCCESS
    if text == ACK_FAIL:
        return Response.FAILURE
    log.info("Response: %s", text)
    return Response.UNRECOGNIZED


def classify_lines(lines: Iterable[Union[str, bytes]]) -> Iterator[Response]:
    for line in lines:
        yield classify(line)
