# vmemkit

Small, dependency-free building blocks for code that wants to treat byte
buffers as if they were addressed by plain integer pointers, plus a tuple
helper and a compact image writer.

## What is inside

- `vmemkit.vptr`: a `PointerMapper` that hands out integer "virtual
  pointers" for `Buffer` objects laid out one after another from a base
  address (4096 by default). Any address inside an allocation maps back to its
  buffer and its offset. Freed blocks are fused with free neighbours and
  reused by later allocations that fit. `sycl_malloc`, `sycl_free` and
  `sycl_free_all` give a malloc/free-style interface, and `view_as`
  reinterprets a buffer as typed items.
- `vmemkit.legacy`: a simpler `LegacyPointerMapper` that packs a buffer id
  into the high 16 bits of a 64-bit pointer value and the offset into the
  low 48 bits, with module-level `malloc`, `free`, `clear` and
  `get_pointer_mapper` working on one shared mapper.
- `vmemkit.tuples`: an immutable `Tuple` (with `head` and `tail`) and the
  functions `make_tuple`, `get`, `size`, `append`, `concat`, `remove_first`,
  `remove_last` and `index_range`.
- `vmemkit.image_write`: encoders for PNG, BMP and TGA from interleaved
  8-bit pixel data (`png_to_bytes`, `bmp_to_bytes`, `tga_to_bytes`,
  `write_png`, `write_bmp`, `write_tga`), with its own fixed-Huffman
  `zlib_compress` and the `crc32` and `paeth` helpers.

## Install

```
pip install vmemkit
```

## Virtual pointers

```python
from vmemkit.vptr import PointerMapper, sycl_malloc, sycl_free

mapper = PointerMapper()
ptr = sycl_malloc(100 * 4, mapper)      # room for 100 floats
assert mapper.count() == 1

view = mapper.get_access(ptr, "f")      # writable typed view of the buffer
view[0] = 1.0

inner = ptr + 3 * 4                     # pointer arithmetic is plain ints
assert mapper.get_offset(inner) == 12
assert mapper.get_element_offset(inner, 4) == 3
assert mapper.get_buffer(inner) is mapper.get_buffer(ptr)

sycl_free(ptr, mapper)
assert mapper.count() == 0
```

Allocating zero bytes with `sycl_malloc` returns `None`; `PointerMapper.is_nullptr`
treats both `None` and `0` as null, and freeing a null pointer does nothing.
Looking up a null pointer, or one below every allocation, or any pointer in an
empty mapper, raises `IndexError`. `sycl_free(ptr, mapper, reuse=False)` drops
the block instead of keeping it for reuse. A base address of zero raises
`ValueError`.

## Legacy pointers

```python
from vmemkit import legacy

ptr = legacy.malloc(64)
mapper = legacy.get_pointer_mapper()
buffer = mapper.get_buffer(mapper.get_buffer_id(ptr))
assert len(buffer) == 64
assert mapper.get_offset(ptr + 8) == 8
legacy.free(ptr)
```

`get_buffer` raises `LookupError` for an unknown id. Buffer ids come from one
counter shared by every mapper. `add_pointer` returns `None` once more buffers
are live than the 16-bit id field can name.

## Tuples

```python
from vmemkit.tuples import make_tuple, append, concat, get, remove_last

t = append(make_tuple(1, "a"), 2.5)
assert get(t, 2) == 2.5
assert len(concat(t, make_tuple(None))) == 4
assert remove_last(t) == make_tuple(1, "a")
```

`get` raises `IndexError` for an index outside the tuple; `remove_first` and
`remove_last` raise `IndexError` on an empty tuple.

## Writing images

```python
from vmemkit.image_write import write_png, png_to_bytes

pixels = bytes([255, 0, 0, 0, 255, 0, 0, 0, 255, 255, 255, 255])  # 2x2 RGB
write_png("out.png", 2, 2, 3, pixels, 0)
data = png_to_bytes(pixels, 2, 2, 3, 0)
assert data[:8] == b"\x89PNG\r\n\x1a\n"
```

`comp` is the number of channels per pixel: 1 = grey, 2 = grey+alpha,
3 = RGB, 4 = RGBA. PNG keeps the channels as given and accepts a row `stride`
(0 means packed rows). BMP and TGA expand grey to RGB; BMP drops alpha by
compositing against a magenta background, TGA keeps it for 2 and 4 channels.
Negative sizes, a `comp` outside 1 to 4, or too little pixel data raise
`ValueError`.

## What it does not do

Buffers are plain in-memory byte arrays. Nothing here runs code on a device,
schedules work or moves data between memories; the mappers only keep track of
which integer addresses belong to which buffer. The image module only writes
images; it does not read them.

## Running the tests

```
pip install -e ".[test]"
pytest
```