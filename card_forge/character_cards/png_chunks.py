"""
PNG Chunk Stream
================

Splits a PNG byte stream into its chunks and writes a chunk list back out.

Reading is permissive: CRC trailers are skipped, not verified. Writing always
recomputes the CRC so the output stays a valid image.
"""

import logging
import struct
import zlib
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .exceptions import StreamMalformed

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

IHDR = "IHDR"
IEND = "IEND"
TEXT = "tEXt"

# length + type
_HEADER_SIZE = 8
_CRC_SIZE = 4


@dataclass(frozen=True)
class Chunk:
    """A single PNG chunk: 4-character type tag plus raw payload."""
    type: str
    data: bytes = b""


def parse_chunks(png_data: bytes) -> List[Chunk]:
    """
    Split a PNG byte stream into chunks.

    Args:
        png_data: Complete PNG file contents

    Returns:
        Chunks in stream order

    Raises:
        StreamMalformed: If the signature is missing, a declared length
            overruns the buffer, or the stream ends mid-chunk
    """
    data = bytes(png_data)
    if not data.startswith(PNG_SIGNATURE):
        raise StreamMalformed("Missing PNG signature")

    chunks = []
    pos = len(PNG_SIGNATURE)
    total = len(data)

    while pos < total:
        if pos + _HEADER_SIZE > total:
            raise StreamMalformed(f"Truncated chunk header at offset {pos}")

        length, raw_type = struct.unpack(">I4s", data[pos:pos + _HEADER_SIZE])
        pos += _HEADER_SIZE

        if length > total - pos:
            raise StreamMalformed(
                f"Chunk length {length} at offset {pos - _HEADER_SIZE} exceeds remaining {total - pos} bytes"
            )

        try:
            chunk_type = raw_type.decode("ascii")
        except UnicodeDecodeError:
            raise StreamMalformed(f"Non-ASCII chunk type {raw_type!r} at offset {pos - _HEADER_SIZE}")

        payload = data[pos:pos + length]
        pos += length

        if pos + _CRC_SIZE > total:
            raise StreamMalformed(f"Stream ended inside {chunk_type} chunk CRC")
        pos += _CRC_SIZE

        chunks.append(Chunk(chunk_type, payload))

    logger.debug(f"Parsed {len(chunks)} PNG chunk(s)")
    return chunks


def _chunk_crc(type_bytes: bytes, payload: bytes) -> int:
    return zlib.crc32(type_bytes + payload) & 0xFFFFFFFF


def _serialize_chunk(chunk: Chunk) -> bytes:
    type_bytes = chunk.type.encode("ascii")
    if len(type_bytes) != 4:
        raise ValueError(f"Chunk type must be exactly 4 ASCII characters, got {chunk.type!r}")
    payload = bytes(chunk.data)
    return (
        struct.pack(">I", len(payload))
        + type_bytes
        + payload
        + struct.pack(">I", _chunk_crc(type_bytes, payload))
    )


def write_chunks(chunks: Iterable[Chunk]) -> bytes:
    """
    Serialize chunks into a PNG byte stream.

    Order is taken as given; no chunk semantics are checked.

    Args:
        chunks: Chunks to write, in output order

    Returns:
        PNG signature followed by every chunk with a fresh CRC
    """
    output = bytearray(PNG_SIGNATURE)
    for chunk in chunks:
        output.extend(_serialize_chunk(chunk))
    return bytes(output)


def find_chunk(chunks: List[Chunk], chunk_type: str) -> Optional[int]:
    """Index of the first chunk with the given type, or None."""
    for index, chunk in enumerate(chunks):
        if chunk.type == chunk_type:
            return index
    return None
