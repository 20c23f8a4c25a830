"""Writers for PNG, BMP and TGA images, with a small DEFLATE compressor.

Pixels are given top-to-bottom, left-to-right, with *comp* interleaved
8-bit channels per pixel: 1=Y, 2=YA, 3=RGB, 4=RGBA.  PNG keeps the number
of channels; BMP and TGA expand grey to RGB, and BMP drops alpha by
compositing against a magenta background.
"""

from __future__ import annotations

import os
import struct
import zlib as _zlib
from typing import Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]
PathType = Union[str, "os.PathLike[str]"]

PNG_SIGNATURE = bytes((137, 80, 78, 71, 13, 10, 26, 10))

_LENGTH_BASE = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27,
    31, 35, 43, 51, 59, 67, 83, 99, 115, 131, 163, 195, 227, 258, 259,
)
_LENGTH_EXTRA = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3,
    4, 4, 4, 4, 5, 5, 5, 5, 0,
)
_DIST_BASE = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193, 257, 385,
    513, 769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385,
    24577, 32768,
)
_DIST_EXTRA = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8,
    9, 9, 10, 10, 11, 11, 12, 12, 13, 13,
)

_HASH_SIZE = 16384
_WINDOW = 32768
_MAX_MATCH = 258
_MASK32 = 0xFFFFFFFF

_PNG_COLOUR_TYPES = {1: 0, 2: 4, 3: 2, 4: 6}
_BMP_BACKGROUND = (255, 0, 255)


def _bitrev(code: int, codebits: int) -> int:
    result = 0
    for _ in range(codebits):
        result = (result << 1) | (code & 1)
        code >>= 1
    return result


class _BitWriter:
    """Accumulates LSB-first bits into a byte string."""

    def __init__(self, prefix: bytes = b"") -> None:
        self.out = bytearray(prefix)
        self._bits = 0
        self._count = 0

    def add(self, code: int, codebits: int) -> None:
        self._bits |= code << self._count
        self._count += codebits
        while self._count >= 8:
            self.out.append(self._bits & 0xFF)
            self._bits >>= 8
            self._count -= 8

    def _huffman(self, code: int, codebits: int) -> None:
        self.add(_bitrev(code, codebits), codebits)

    def symbol(self, n: int) -> None:
        """Emit a literal/length symbol with the fixed Huffman table."""
        if n <= 143:
            self._huffman(0x30 + n, 8)
        elif n <= 255:
            self._huffman(0x190 + n - 144, 9)
        elif n <= 279:
            self._huffman(n - 256, 7)
        else:
            self._huffman(0xC0 + n - 280, 8)

    def align(self) -> None:
        while self._count:
            self.add(0, 1)


def _hash3(data: bytes, i: int) -> int:
    h = data[i] + (data[i + 1] << 8) + (data[i + 2] << 16)
    h = (h ^ (h << 3)) & _MASK32
    h = (h + (h >> 5)) & _MASK32
    h = (h ^ (h << 4)) & _MASK32
    h = (h + (h >> 17)) & _MASK32
    h = (h ^ (h << 25)) & _MASK32
    h = (h + (h >> 6)) & _MASK32
    return h & (_HASH_SIZE - 1)


def _match_length(data: bytes, a: int, b: int, limit: int) -> int:
    length = 0
    for length in range(min(limit, _MAX_MATCH)):
        if data[a + length] != data[b + length]:
            return length
    else:
        return min(limit, _MAX_MATCH)


def zlib_compress(data: BytesLike, quality: int = 8) -> bytes:
    """Compress *data* into a zlib stream using one fixed-Huffman block.

    *quality* bounds the hash chains (at least 5); larger finds more matches.
    """
    data = bytes(data)
    quality = max(quality, 5)
    data_len = len(data)
    writer = _BitWriter(b"\x78\x5e")
    writer.add(1, 1)  # BFINAL
    writer.add(1, 2)  # fixed Huffman block

    table: list[list[int]] = [[] for _ in range(_HASH_SIZE)]
    i = 0
    while i < data_len - 3:
        chain = table[_hash3(data, i)]
        best = 3
        best_pos: Optional[int] = None
        for pos in chain:
            if pos > i - _WINDOW:
                length = _match_length(data, pos, i, data_len - i)
                if length >= best:
                    best, best_pos = length, pos
        if len(chain) == 2 * quality:
            del chain[:quality]
        chain.append(i)

        if best_pos is not None:
            # Lazy matching: prefer a literal when the next byte matches better.
            for pos in table[_hash3(data, i + 1)]:
                if pos > i - (_WINDOW - 1):
                    if _match_length(data, pos, i + 1, data_len - i - 1) > best:
                        best_pos = None
                        break

        if best_pos is not None:
            distance = i - best_pos
            j = 0
            while best > _LENGTH_BASE[j + 1] - 1:
                j += 1
            writer.symbol(j + 257)
            if _LENGTH_EXTRA[j]:
                writer.add(best - _LENGTH_BASE[j], _LENGTH_EXTRA[j])
            j = 0
            while distance > _DIST_BASE[j + 1] - 1:
                j += 1
            writer.add(_bitrev(j, 5), 5)
            if _DIST_EXTRA[j]:
                writer.add(distance - _DIST_BASE[j], _DIST_EXTRA[j])
            i += best
        else:
            writer.symbol(data[i])
            i += 1

    for byte in data[i:]:
        writer.symbol(byte)
    writer.symbol(256)
    writer.align()
    writer.out += struct.pack(">I", _zlib.adler32(data) & _MASK32)
    return bytes(writer.out)


def crc32(data: BytesLike) -> int:
    """CRC-32 of *data* as used by PNG chunks."""
    return _zlib.crc32(bytes(data)) & _MASK32


def paeth(a: int, b: int, c: int) -> int:
    """The PNG Paeth predictor of left *a*, above *b* and upper-left *c*."""
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _check_shape(width: int, height: int, comp: int) -> None:
    if width < 0 or height < 0:
        raise ValueError("image dimensions cannot be negative")
    if comp not in (1, 2, 3, 4):
        raise ValueError("comp must be 1, 2, 3 or 4")


def _to_signed(value: int) -> int:
    return ((value & 0xFF) ^ 0x80) - 0x80


def _filter_row(row: bytes, prior: bytes, comp: int, kind: int) -> list[int]:
    line = []
    for i, value in enumerate(row):
        left = row[i - comp] if i >= comp else 0
        above = prior[i]
        upper_left = prior[i - comp] if i >= comp else 0
        if kind == 0:
            predicted = 0
        elif kind == 1:
            predicted = left
        elif kind == 2:
            predicted = above
        elif kind == 3:
            predicted = (left + above) >> 1
        else:
            predicted = paeth(left, above, upper_left)
        line.append(_to_signed(value - predicted))
    return line


def _chunk(tag: bytes, body: bytes) -> bytes:
    return (
        struct.pack(">I", len(body))
        + tag
        + body
        + struct.pack(">I", crc32(tag + body))
    )


def png_to_bytes(
    pixels: BytesLike, width: int, height: int, comp: int, stride: int = 0
) -> bytes:
    """Encode an 8-bit image as PNG.

    *stride* is the distance in bytes between the starts of adjacent rows;
    zero means the rows are packed.
    """
    _check_shape(width, height, comp)
    data = bytes(pixels)
    row_len = width * comp
    stride = stride or row_len
    if stride < row_len:
        raise ValueError("stride is shorter than a row of pixels")
    if height and len(data) < stride * (height - 1) + row_len:
        raise ValueError("not enough pixel data for the image size")

    filtered = bytearray()
    prior = bytes(row_len)
    for j in range(height):
        row = data[j * stride : j * stride + row_len]
        kind, line = min(
            ((k, _filter_row(row, prior, comp, k)) for k in range(5)),
            key=lambda candidate: sum(abs(v) for v in candidate[1]),
        )
        filtered.append(kind)
        filtered.extend(v & 0xFF for v in line)
        prior = row

    header = struct.pack(
        ">IIBBBBB", width, height, 8, _PNG_COLOUR_TYPES[comp], 0, 0, 0
    )
    return b"".join(
        (
            PNG_SIGNATURE,
            _chunk(b"IHDR", header),
            _chunk(b"IDAT", zlib_compress(bytes(filtered), 8)),
            _chunk(b"IEND", b""),
        )
    )


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


def _bottom_up_bgr(
    data: bytes, width: int, height: int, comp: int, write_alpha: bool, pad: int
) -> bytes:
    row_len = width * comp
    if len(data) < row_len * height:
        raise ValueError("not enough pixel data for the image size")
    out = bytearray()
    padding = bytes(pad)
    for j in reversed(range(height)):
        row = data[j * row_len : (j + 1) * row_len]
        for start in range(0, row_len, comp):
            d = row[start : start + comp]
            if comp <= 2:
                out += bytes((d[0], d[0], d[0]))
            elif comp == 4 and not write_alpha:
                blended = [
                    bg + _trunc_div((d[k] - bg) * d[3], 255)
                    for k, bg in enumerate(_BMP_BACKGROUND)
                ]
                out += bytes((blended[2], blended[1], blended[0]))
            else:
                out += bytes((d[2], d[1], d[0]))
            if write_alpha:
                out.append(d[comp - 1])
        out += padding
    return bytes(out)


def bmp_to_bytes(pixels: BytesLike, width: int, height: int, comp: int) -> bytes:
    """Encode an 8-bit image as a 24-bit uncompressed BMP."""
    _check_shape(width, height, comp)
    pad = (-width * 3) & 3
    header = struct.pack(
        "<2sIHHI", b"BM", 14 + 40 + (width * 3 + pad) * height, 0, 0, 14 + 40
    ) + struct.pack("<IIIHHIIIIII", 40, width, height, 1, 24, 0, 0, 0, 0, 0, 0)
    return header + _bottom_up_bgr(bytes(pixels), width, height, comp, False, pad)


def tga_to_bytes(pixels: BytesLike, width: int, height: int, comp: int) -> bytes:
    """Encode an 8-bit image as an uncompressed true-colour TGA."""
    _check_shape(width, height, comp)
    if width > 0xFFFF or height > 0xFFFF:
        raise ValueError("TGA dimensions are limited to 65535")
    has_alpha = not (comp & 1)
    header = struct.pack(
        "<BBBHHBHHHHBB",
        0, 0, 2, 0, 0, 0, 0, 0, width, height,
        24 + 8 * has_alpha, 8 * has_alpha,
    )
    return header + _bottom_up_bgr(bytes(pixels), width, height, comp, has_alpha, 0)


def _write(path: PathType, payload: bytes) -> None:
    with open(path, "wb") as handle:
        handle.write(payload)


def write_png(
    path: PathType,
    width: int,
    height: int,
    comp: int,
    pixels: BytesLike,
    stride: int = 0,
) -> None:
    """Write the image to *path* as PNG."""
    _write(path, png_to_bytes(pixels, width, height, comp, stride))


def write_bmp(
    path: PathType, width: int, height: int, comp: int, pixels: BytesLike
) -> None:
    """Write the image to *path* as BMP."""
    _write(path, bmp_to_bytes(pixels, width, height, comp))


def write_tga(
    path: PathType, width: int, height: int, comp: int, pixels: BytesLike
) -> None:
    """Write the image to *path* as TGA."""
    _write(path, tga_to_bytes(pixels, width, height, comp))