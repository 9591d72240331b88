"""
Standard MIDI File container reading.

A MIDI file is a sequence of chunks. Each chunk has an 8 byte preamble:
    bytes 0 - 3 : identifier ('MThd' for the header, 'MTrk' for tracks)
    bytes 4 - 7 : big-endian length of the data that follows

Chunks with any other identifier are skipped by length so that files carrying
future or vendor chunk types still load. All multi-byte values are big-endian.
"""

import logging
import struct
from dataclasses import dataclass
from typing import List, Tuple

from .errors import MalformedFileError

__all__ = [
    'HEADER_CHUNK_ID',
    'TRACK_CHUNK_ID',
    'Chunk',
    'read_variable_length_quantity',
    'read_chunks',
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

HEADER_CHUNK_ID = 'MThd'
TRACK_CHUNK_ID = 'MTrk'
CHUNK_PREAMBLE = struct.Struct('>4sI')


@dataclass(frozen=True)
class Chunk:
    """A raw header or track chunk."""
    chunk_id: str
    length: int
    data: bytes = b''


def read_variable_length_quantity(data: bytes, offset: int) -> Tuple[int, int]:
    """
    Decode a variable-length quantity starting at `offset`.

    Only the low 7 bits of each byte contribute to the value; bit 7 set means
    another byte follows. E.g. 0x4000 is encoded as `81 80 00`.

    Args:
        data: Buffer to read from
        offset: Position of the first byte

    Returns:
        Tuple of (value, offset just past the last byte)

    Raises:
        MalformedFileError: If the buffer ends before the final byte
    """
    value = 0
    position = offset
    while True:
        if position >= len(data):
            raise MalformedFileError(
                f"Variable-length quantity at offset {offset} runs past end of data"
            )
        byte = data[position]
        position += 1
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, position


def read_chunks(buffer: bytes) -> List[Chunk]:
    """
    Split a MIDI file buffer into its header and track chunks.

    Args:
        buffer: Complete file contents

    Returns:
        Header and track chunks in file order (unknown chunk types skipped)

    Raises:
        MalformedFileError: If a chunk preamble or its data runs past the end
    """
    data = bytes(buffer)
    chunks: List[Chunk] = []
    position = 0

    while position < len(data):
        if position + CHUNK_PREAMBLE.size > len(data):
            raise MalformedFileError(
                f"Truncated chunk header at offset {position} "
                f"({len(data) - position} bytes left, need {CHUNK_PREAMBLE.size})"
            )
        raw_id, length = CHUNK_PREAMBLE.unpack_from(data, position)
        chunk_id = raw_id.decode('latin-1')
        start = position + CHUNK_PREAMBLE.size
        end = start + length
        if end > len(data):
            raise MalformedFileError(
                f"Chunk '{chunk_id}' at offset {position} declares {length} bytes "
                f"but only {len(data) - start} remain"
            )

        if chunk_id in (HEADER_CHUNK_ID, TRACK_CHUNK_ID):
            chunks.append(Chunk(chunk_id=chunk_id, length=length, data=data[start:end]))
        else:
            logger.debug("Skipping unknown chunk %r (%d bytes) at offset %d",
                         chunk_id, length, position)
        position = end

    return chunks
