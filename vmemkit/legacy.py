"""Legacy fake pointers: a buffer id in the high bits, an offset below.

A fake pointer is a 64-bit integer laid out as::

    |== 16 bits ==|============ 48 bits ============|
    |  buffer id  |        offset in buffer         |

A pointer whose buffer id is zero is the null pointer.
"""

from __future__ import annotations

from typing import ClassVar, Optional

from vmemkit.vptr import Buffer

ADDRESS_BITS = 64
BUFFER_ID_BITSIZE = 16
MAX_NUMBER_BUFFERS = (1 << BUFFER_ID_BITSIZE) - 1
MAX_OFFSET = (1 << (ADDRESS_BITS - BUFFER_ID_BITSIZE)) - 1
_ID_SHIFT = ADDRESS_BITS - BUFFER_ID_BITSIZE


class LegacyPointerMapper:
    """Associates fake pointers with buffers, one buffer id per allocation."""

    # Buffer ids are unique across every mapper, as with a process-wide counter.
    _last_id: ClassVar[int] = 0

    def __init__(self) -> None:
        self._buffers: dict[int, Buffer] = {}

    @staticmethod
    def is_nullptr(ptr: Optional[int]) -> bool:
        """Whether *ptr* carries no buffer id."""
        if ptr is None:
            return True
        return (MAX_OFFSET & ptr) == ptr

    def get_buffer_id(self, ptr: int) -> int:
        """Return the buffer id held in the high bits of *ptr*."""
        return ptr >> _ID_SHIFT

    def get_offset(self, ptr: int) -> int:
        """Return the byte offset held in the low bits of *ptr*."""
        return ptr & MAX_OFFSET

    def clear(self) -> None:
        """Forget every buffer."""
        self._buffers.clear()

    def generate_id(self) -> int:
        """Return a fresh buffer id."""
        cls = type(self)
        LegacyPointerMapper._last_id = cls._last_id + 1
        return LegacyPointerMapper._last_id

    def add_pointer(self, buffer: Buffer) -> Optional[int]:
        """Register *buffer* and return its fake pointer.

        Returns ``None`` (the null pointer) once more buffers are live than
        the id field can name.
        """
        live = len(self._buffers)
        buffer_id = self.generate_id()
        self._buffers.setdefault(buffer_id, buffer)
        if live > MAX_NUMBER_BUFFERS:
            return None
        return buffer_id << _ID_SHIFT

    def get_buffer(self, buffer_id: int) -> Buffer:
        """Return the buffer registered under *buffer_id*."""
        try:
            return self._buffers[buffer_id]
        except KeyError:
            raise LookupError(
                "No buffer has been found. Make sure that memory was "
                "allocated for it by calling malloc."
            ) from None

    def remove_pointer(self, ptr: int) -> None:
        """Drop the buffer that *ptr* points into."""
        self._buffers.pop(self.get_buffer_id(ptr), None)

    def count(self) -> int:
        """Number of buffers allocated and not yet freed."""
        return len(self._buffers)


_mapper = LegacyPointerMapper()


def get_pointer_mapper() -> LegacyPointerMapper:
    """Return the shared mapper behind :func:`malloc` and :func:`free`."""
    return _mapper


def malloc(size: int) -> Optional[int]:
    """Create a byte buffer of *size* bytes and return a fake pointer to it."""
    return get_pointer_mapper().add_pointer(Buffer(size))


def free(ptr: int) -> None:
    """Destroy the buffer *ptr* points into."""
    get_pointer_mapper().remove_pointer(ptr)


def clear() -> None:
    """Destroy every buffer in the shared mapper."""
    get_pointer_mapper().clear()