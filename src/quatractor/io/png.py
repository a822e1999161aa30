"""
Minimal PNG encoder.

Writes 8-bit truecolour (colour type 2), non-interlaced images with filter
type 0 on every scanline and a single zlib-wrapped DEFLATE IDAT chunk. Chunk
CRCs come from a table-driven CRC-32 over the reflected polynomial 0xEDB88320.
"""

import asyncio
import base64
import struct
import zlib
from pathlib import Path
from typing import List, Union

import numpy as np

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

BIT_DEPTH = 8
COLOR_TYPE_RGB = 2
FILTER_NONE = 0

_CRC_POLYNOMIAL = 0xEDB88320


class PNGEncodingError(RuntimeError):
    """Raised when a buffer handed to the encoder has the wrong size."""


def _make_crc_table() -> List[int]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = (_CRC_POLYNOMIAL ^ (c >> 1)) if c & 1 else (c >> 1)
        table.append(c)
    return table


CRC_TABLE = _make_crc_table()


def crc32(data: bytes, crc: int = 0) -> int:
    """
    CRC-32 as used by PNG chunk trailers.

    ``crc`` is a previous result to continue from, so
    ``crc32(b, crc32(a)) == crc32(a + b)``.
    """
    table = CRC_TABLE
    c = crc ^ 0xFFFFFFFF
    for byte in data:
        c = table[(c ^ byte) & 0xFF] ^ (c >> 8)
    return c ^ 0xFFFFFFFF


def make_chunk(chunk_type: bytes, payload: bytes) -> bytes:
    """Length + type + payload + CRC(type + payload)."""
    if len(chunk_type) != 4:
        raise PNGEncodingError(f"Chunk type must be 4 bytes, got {chunk_type!r}")
    crc = crc32(payload, crc32(chunk_type))
    return (
        struct.pack(">I", len(payload))
        + chunk_type
        + payload
        + struct.pack(">I", crc)
    )


def ihdr_payload(width: int, height: int) -> bytes:
    """13-byte IHDR body: size, bit depth 8, RGB, deflate, filter 0, no interlace."""
    return struct.pack(">IIBBBBB", width, height, BIT_DEPTH, COLOR_TYPE_RGB, 0, 0, 0)


def _as_rgb_bytes(rgb: Union[bytes, bytearray, np.ndarray]) -> bytes:
    if isinstance(rgb, np.ndarray):
        return np.ascontiguousarray(rgb, dtype=np.uint8).tobytes()
    return bytes(rgb)


def add_scanline_filters(
    rgb: Union[bytes, bytearray, np.ndarray],
    width: int,
    height: int,
) -> bytes:
    """
    Prefix each row of packed RGB bytes with filter-type byte 0.

    Raises:
        PNGEncodingError: If the input is not exactly width*height*3 bytes.
    """
    raw = _as_rgb_bytes(rgb)
    row_bytes = width * 3
    if len(raw) != row_bytes * height:
        raise PNGEncodingError(
            f"RGB buffer has {len(raw)} bytes, expected {row_bytes * height} "
            f"for {width}x{height}"
        )

    rows = np.frombuffer(raw, dtype=np.uint8).reshape(height, row_bytes)
    filtered = np.empty((height, row_bytes + 1), dtype=np.uint8)
    filtered[:, 0] = FILTER_NONE
    filtered[:, 1:] = rows

    out = filtered.tobytes()
    if len(out) != height * (row_bytes + 1):
        raise PNGEncodingError("Filtered scanline buffer has unexpected size")
    return out


def encode_png(
    rgb: Union[bytes, bytearray, np.ndarray],
    width: int,
    height: int,
    compression_level: int = 6,
) -> bytes:
    """
    Encode packed 8-bit RGB pixels as a complete PNG file.

    Args:
        rgb: Row-major RGB bytes, or an (H, W, 3) uint8 array.
        width: Image width in pixels.
        height: Image height in pixels.
        compression_level: zlib level 0-9.

    Returns:
        PNG file contents.
    """
    if width <= 0 or height <= 0:
        raise PNGEncodingError(f"Invalid image size {width}x{height}")

    filtered = add_scanline_filters(rgb, width, height)
    compressed = zlib.compress(filtered, compression_level)

    return b"".join([
        PNG_SIGNATURE,
        make_chunk(b"IHDR", ihdr_payload(width, height)),
        make_chunk(b"IDAT", compressed),
        make_chunk(b"IEND", b""),
    ])


def encode_data_url(png_bytes: bytes) -> str:
    """Wrap PNG bytes in a ``data:image/png;base64,`` URL."""
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


def write_png(output_path: Union[str, Path], png_bytes: bytes) -> Path:
    """Write PNG bytes, creating parent directories. OS errors propagate."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(png_bytes)
    return output_path


async def write_png_async(output_path: Union[str, Path], png_bytes: bytes) -> Path:
    """``write_png`` on a worker thread so the event loop is not blocked."""
    return await asyncio.to_thread(write_png, output_path, png_bytes)
