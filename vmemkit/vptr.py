"""Virtual pointers: integer addresses that stand for byte buffers.

A :class:`PointerMapper` hands out fake, non-dereferenceable addresses for
buffers laid out one after another in a virtual address space.  Any address
inside an allocation can be mapped back to its buffer and to its offset in
it.  Freed allocations become free nodes that are fused with free
neighbours and reused by later allocations that fit.
"""

from __future__ import annotations

from bisect import bisect_left, insort
from dataclasses import dataclass
from typing import Iterator, Optional

DEFAULT_BASE_ADDRESS = 4096


class Buffer:
    """A fixed-size, zero-initialised byte buffer."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError("buffer size cannot be negative")
        self.data = bytearray(size)

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[int]:
        return iter(self.data)

    def view(self, fmt: str = "B") -> memoryview:
        """Return a writable view of the bytes as items of struct format *fmt*."""
        return memoryview(self.data).cast(fmt)


def view_as(buffer: Buffer, fmt: str) -> memoryview:
    """Return a view of *buffer* reinterpreted as items of format *fmt*."""
    return buffer.view(fmt)


@dataclass(eq=False)
class MapNode:
    """One allocation (or free block) in the virtual address space."""

    address: int
    buffer: Optional[Buffer]
    size: int
    free: bool


class PointerMapper:
    """Associates virtual pointers with buffers."""

    def __init__(self, base_address: int = DEFAULT_BASE_ADDRESS) -> None:
        if base_address == 0:
            raise ValueError("Base address cannot be zero")
        self.base_address = base_address
        self._addresses: list[int] = []
        self._nodes: dict[int, MapNode] = {}
        self._free: list[int] = []

    @staticmethod
    def is_nullptr(ptr: Optional[int]) -> bool:
        """Whether *ptr* is the null virtual pointer."""
        return ptr is None or ptr == 0

    # -- internal bookkeeping -------------------------------------------

    def _insert(self, node: MapNode) -> None:
        insort(self._addresses, node.address)
        self._nodes[node.address] = node

    def _erase(self, node: MapNode) -> None:
        self._unmark_free(node)
        index = bisect_left(self._addresses, node.address)
        del self._addresses[index]
        del self._nodes[node.address]

    def _mark_free(self, node: MapNode) -> None:
        index = bisect_left(self._free, node.address)
        if index == len(self._free) or self._free[index] != node.address:
            self._free.insert(index, node.address)

    def _unmark_free(self, node: MapNode) -> None:
        index = bisect_left(self._free, node.address)
        if index < len(self._free) and self._free[index] == node.address:
            del self._free[index]

    def _neighbour(self, node: MapNode, step: int) -> Optional[MapNode]:
        index = bisect_left(self._addresses, node.address) + step
        if 0 <= index < len(self._addresses):
            return self._nodes[self._addresses[index]]
        return None

    def _last(self) -> MapNode:
        return self._nodes[self._addresses[-1]]

    def _insertion_point(self, required_size: int) -> MapNode:
        for address in self._free:
            node = self._nodes[address]
            if node.size >= required_size:
                self._unmark_free(node)
                return node
        return self._last()

    def _fuse_forward(self, node: MapNode) -> None:
        while (following := self._neighbour(node, 1)) is not None:
            if not following.free:
                break
            self._erase(following)
            node.size += following.size

    def _fuse_backward(self, node: MapNode) -> MapNode:
        while (previous := self._neighbour(node, -1)) is not None:
            if not previous.free:
                break
            previous.size += node.size
            self._erase(node)
            node = previous
        return node

    # -- public interface -----------------------------------------------

    def get_node(self, ptr: Optional[int]) -> MapNode:
        """Return the node holding *ptr*; raise IndexError if there is none."""
        if self.count() == 0:
            raise IndexError("There are no pointers allocated")
        if self.is_nullptr(ptr):
            raise IndexError("Cannot access null pointer")
        index = bisect_left(self._addresses, ptr)
        if index == len(self._addresses) or self._addresses[index] != ptr:
            if index == 0:
                raise IndexError("The pointer is not registered in the map")
            index -= 1
        return self._nodes[self._addresses[index]]

    def get_buffer(self, ptr: Optional[int]) -> Optional[Buffer]:
        """Return the buffer that *ptr* points into."""
        return self.get_node(ptr).buffer

    def get_access(self, ptr: Optional[int], fmt: str = "B") -> memoryview:
        """Return a writable view of the buffer *ptr* points into."""
        node = self.get_node(ptr)
        if node.buffer is None:
            raise IndexError("The pointer refers to freed memory")
        return node.buffer.view(fmt)

    def get_offset(self, ptr: int) -> int:
        """Return the byte offset of *ptr* from the start of its allocation."""
        return ptr - self.get_node(ptr).address

    def get_element_offset(self, ptr: int, itemsize: int) -> int:
        """Return the offset of *ptr* counted in items of *itemsize* bytes."""
        return self.get_offset(ptr) // itemsize

    def clear(self) -> None:
        """Forget every allocation."""
        self._free.clear()
        self._addresses.clear()
        self._nodes.clear()

    def add_pointer(self, buffer: Buffer) -> int:
        """Register *buffer* and return its virtual pointer."""
        size = len(buffer)
        if not self._nodes:
            self._insert(MapNode(self.base_address, buffer, size, False))
            return self.base_address

        node = self._insertion_point(size)
        if node.free:
            node.buffer = buffer
            node.free = False
            if node.size > size:
                remainder = MapNode(node.address + size, None, node.size - size, True)
                node.size = size
                self._insert(remainder)
                self._mark_free(remainder)
            return node.address

        address = node.address + node.size
        self._insert(MapNode(address, buffer, size, False))
        return address

    def remove_pointer(self, ptr: Optional[int], reuse: bool = True) -> None:
        """Free the allocation holding *ptr*.

        With *reuse* false the block is dropped instead of being kept for
        later allocations.
        """
        if self.is_nullptr(ptr):
            return
        node = self.get_node(ptr)
        if not reuse:
            self._erase(node)
            return

        node.free = True
        node.buffer = None
        self._mark_free(node)
        self._fuse_forward(node)
        node = self._fuse_backward(node)
        if node is self._last():
            self._erase(node)

    def count(self) -> int:
        """Number of live allocations."""
        return len(self._nodes) - len(self._free)


def sycl_malloc(size: int, mapper: PointerMapper) -> Optional[int]:
    """Allocate *size* bytes in *mapper*; ``None`` for a zero-size request."""
    if size == 0:
        return None
    return mapper.add_pointer(Buffer(size))


def sycl_free(ptr: Optional[int], mapper: PointerMapper, reuse: bool = True) -> None:
    """Free the allocation holding *ptr*."""
    mapper.remove_pointer(ptr, reuse)


def sycl_free_all(mapper: PointerMapper) -> None:
    """Free every allocation in *mapper*."""
    mapper.clear()