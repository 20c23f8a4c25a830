import random
import struct
import zlib

import pytest

from vmemkit.image_write import (
    PNG_SIGNATURE,
    bmp_to_bytes,
    crc32,
    paeth,
    png_to_bytes,
    tga_to_bytes,
    write_bmp,
    write_png,
    write_tga,
    zlib_compress,
)


def _image(width, height, comp, seed=1):
    rng = random.Random(seed)
    out = bytearray()
    for y in range(height):
        for x in range(width):
            for c in range(comp):
                if (x + y) % 3 == 0:
                    out.append(rng.randrange(256))
                else:
                    out.append((x * 7 + y * 13 + c * 29) & 0xFF)
    return bytes(out)


def _chunks(blob):
    assert blob[:8] == PNG_SIGNATURE
    pos = 8
    chunks = []
    while pos < len(blob):
        (length,) = struct.unpack(">I", blob[pos : pos + 4])
        tag = blob[pos + 4 : pos + 8]
        body = blob[pos + 8 : pos + 8 + length]
        (crc,) = struct.unpack(">I", blob[pos + 8 + length : pos + 12 + length])
        assert zlib.crc32(tag + body) == crc
        chunks.append((tag, body))
        pos += 12 + length
    return chunks


def _unfilter(raw, width, height, comp):
    row_len = width * comp
    prior = bytearray(row_len)
    rows = []
    kinds = []
    pos = 0
    for _ in range(height):
        kind = raw[pos]
        kinds.append(kind)
        line = bytearray(raw[pos + 1 : pos + 1 + row_len])
        pos += 1 + row_len
        for i in range(row_len):
            a = line[i - comp] if i >= comp else 0
            b = prior[i]
            c = prior[i - comp] if i >= comp else 0
            pred = {0: 0, 1: a, 2: b, 3: (a + b) // 2}.get(kind)
            if kind == 4:
                pred = paeth(a, b, c)
            line[i] = (line[i] + pred) & 0xFF
        rows.append(bytes(line))
        prior = line
    return b"".join(rows), kinds


def _decode_png(blob):
    chunks = _chunks(blob)
    tags = [tag for tag, _ in chunks]
    assert tags == [b"IHDR", b"IDAT", b"IEND"]
    width, height, depth, ctype, _, _, _ = struct.unpack(">IIBBBBB", chunks[0][1])
    comp = {0: 1, 4: 2, 2: 3, 6: 4}[ctype]
    raw = zlib.decompress(chunks[1][1])
    pixels, kinds = _unfilter(raw, width, height, comp)
    return width, height, depth, comp, pixels, kinds


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"a",
        b"abc",
        b"abcd",
        b"abcabcabcabcabcabcabcabc",
        bytes(1000),
        bytes(range(256)) * 4,
        bytes(random.Random(7).randrange(256) for _ in range(5000)),
        b"the quick brown fox jumps over the lazy dog " * 200,
    ],
)
def test_zlib_compress_round_trip(data):
    assert zlib.decompress(zlib_compress(data)) == data


def test_zlib_header_bytes():
    assert zlib_compress(b"hello")[:2] == b"\x78\x5e"


def test_zlib_compress_shrinks_repetitive_data():
    data = b"x" * 10000
    assert len(zlib_compress(data)) < len(data) // 10


def test_zlib_low_quality_still_round_trips():
    data = (b"abcdefgh" * 50 + b"12345678") * 30
    assert zlib.decompress(zlib_compress(data, 1)) == data


def test_zlib_long_distance_matches():
    rng = random.Random(3)
    block = bytes(rng.randrange(256) for _ in range(20000))
    data = block + block[:5000]
    assert zlib.decompress(zlib_compress(data)) == data


def test_crc32_matches_standard():
    assert crc32(b"IEND") == 0xAE426082
    assert crc32(b"some data") == zlib.crc32(b"some data")


@pytest.mark.parametrize("a,b,c", [(0, 0, 0), (10, 20, 10), (200, 3, 90), (5, 250, 255)])
def test_paeth_returns_one_of_inputs(a, b, c):
    assert paeth(a, b, c) in (a, b, c)


def test_paeth_with_zero_neighbours():
    assert paeth(77, 0, 0) == 77
    assert paeth(0, 99, 0) == 99


@pytest.mark.parametrize("comp", [1, 2, 3, 4])
def test_png_round_trip(comp):
    pixels = _image(9, 7, comp)
    width, height, depth, decoded_comp, decoded, kinds = _decode_png(
        png_to_bytes(pixels, 9, 7, comp)
    )
    assert (width, height, depth, decoded_comp) == (9, 7, 8, comp)
    assert decoded == pixels
    assert all(0 <= kind <= 4 for kind in kinds)


def test_png_starts_with_signature():
    assert png_to_bytes(bytes(3), 1, 1, 3)[:8] == bytes((137, 80, 78, 71, 13, 10, 26, 10))


def test_png_with_stride():
    full = _image(10, 5, 3, seed=4)
    # Take a 4-pixel-wide sub-rectangle starting at column 2.
    offset = 2 * 3
    stride = 10 * 3
    sub = full[offset:]
    blob = png_to_bytes(sub, 4, 5, 3, stride)
    _, _, _, _, decoded, _ = _decode_png(blob)
    expected = b"".join(full[y * stride + offset : y * stride + offset + 12] for y in range(5))
    assert decoded == expected


def test_png_rejects_bad_input():
    with pytest.raises(ValueError):
        png_to_bytes(bytes(10), 2, 2, 5)
    with pytest.raises(ValueError):
        png_to_bytes(bytes(10), -1, 2, 3)
    with pytest.raises(ValueError):
        png_to_bytes(bytes(5), 2, 2, 3)


def test_write_png_file(tmp_path):
    pixels = _image(6, 6, 4)
    path = tmp_path / "out.png"
    write_png(path, 6, 6, 4, pixels)
    assert path.read_bytes() == png_to_bytes(pixels, 6, 6, 4)


def test_bmp_header_and_pixels():
    pixels = bytes([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12])  # 2x2 RGB
    blob = bmp_to_bytes(pixels, 2, 2, 3)
    assert blob[:2] == b"BM"
    (file_size,) = struct.unpack("<I", blob[2:6])
    assert file_size == len(blob)
    (data_offset,) = struct.unpack("<I", blob[10:14])
    assert data_offset == 14 + 40
    hdr = struct.unpack("<IIIHH", blob[14:30])
    assert hdr == (40, 2, 2, 1, 24)
    body = blob[54:]
    row_len = len(body) // 2
    assert row_len % 4 == 0
    # Bottom row first, channels reversed.
    assert body[:6] == bytes([9, 8, 7, 12, 11, 10])
    assert body[row_len : row_len + 6] == bytes([3, 2, 1, 6, 5, 4])
    assert body[6:row_len] == bytes(row_len - 6)


def test_bmp_expands_grey():
    blob = bmp_to_bytes(bytes([42]), 1, 1, 1)
    assert blob[54:57] == bytes([42, 42, 42])


def test_bmp_composites_alpha_against_background():
    opaque = bmp_to_bytes(bytes([10, 20, 30, 255]), 1, 1, 4)
    assert opaque[54:57] == bytes([30, 20, 10])
    clear = bmp_to_bytes(bytes([10, 20, 30, 0]), 1, 1, 4)
    assert clear[54:57] == bytes([255, 0, 255])


def test_bmp_rejects_negative_size():
    with pytest.raises(ValueError):
        bmp_to_bytes(b"", 1, -1, 3)


def test_tga_header_and_alpha():
    pixels = bytes([1, 2, 3, 4, 5, 6, 7, 8])  # 1x2 RGBA
    blob = tga_to_bytes(pixels, 1, 2, 4)
    fields = struct.unpack("<BBBHHBHHHHBB", blob[:18])
    assert fields[2] == 2
    assert fields[8:] == (1, 2, 32, 8)
    assert blob[18:] == bytes([7, 6, 5, 8, 3, 2, 1, 4])


def test_tga_rgb_has_no_alpha():
    blob = tga_to_bytes(bytes([1, 2, 3]), 1, 1, 3)
    fields = struct.unpack("<BBBHHBHHHHBB", blob[:18])
    assert fields[10:] == (24, 0)
    assert blob[18:] == bytes([3, 2, 1])


def test_tga_grey_alpha():
    blob = tga_to_bytes(bytes([50, 60]), 1, 1, 2)
    assert blob[18:] == bytes([50, 50, 50, 60])


def test_tga_rejects_bad_comp():
    with pytest.raises(ValueError):
        tga_to_bytes(bytes(4), 1, 1, 0)


def test_write_bmp_and_tga_files(tmp_path):
    pixels = _image(3, 4, 3)
    bmp_path = tmp_path / "out.bmp"
    tga_path = tmp_path / "out.tga"
    write_bmp(bmp_path, 3, 4, 3, pixels)
    write_tga(tga_path, 3, 4, 3, pixels)
    assert bmp_path.read_bytes() == bmp_to_bytes(pixels, 3, 4, 3)
    assert tga_path.read_bytes() == tga_to_bytes(pixels, 3, 4, 3)