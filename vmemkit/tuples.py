"""A minimal fixed-size heterogeneous tuple with head/tail structure."""

from __future__ import annotations

from typing import Any, Iterator


class Tuple:
    """An immutable, fixed-size collection of values; may be empty."""

    __slots__ = ("_items",)

    def __init__(self, *args: Any) -> None:
        self._items = args

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tuple):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"Tuple({', '.join(map(repr, self._items))})"

    @property
    def head(self) -> Any:
        """The first element."""
        if not self._items:
            raise IndexError("an empty tuple has no head")
        return self._items[0]

    @property
    def tail(self) -> Tuple:
        """Every element after the first."""
        if not self._items:
            raise IndexError("an empty tuple has no tail")
        return Tuple(*self._items[1:])


def make_tuple(*args: Any) -> Tuple:
    """Build a tuple from the arguments."""
    return Tuple(*args)


def get(t: Tuple, k: int) -> Any:
    """Return element *k*, which must lie in ``[0, size(t))``."""
    if not 0 <= k < len(t):
        raise IndexError("The requested value is bigger than the size of the tuple")
    return t[k]


def size(t: Tuple) -> int:
    """Number of elements in *t*."""
    return len(t)


def append(t: Tuple, item: Any) -> Tuple:
    """Return a new tuple with *item* added at the end of *t*."""
    return Tuple(*t, item)


def concat(t1: Tuple, t2: Tuple) -> Tuple:
    """Return a new tuple holding the elements of *t1* then of *t2*."""
    return Tuple(*t1, *t2)


def remove_first(t: Tuple) -> Tuple:
    """Return *t* without its first element."""
    if not len(t):
        raise IndexError("cannot remove from an empty tuple")
    return Tuple(*list(t)[1:])


def remove_last(t: Tuple) -> Tuple:
    """Return *t* without its last element."""
    if not len(t):
        raise IndexError("cannot remove from an empty tuple")
    return Tuple(*list(t)[:-1])


def index_range(start: int, stop: int) -> tuple[int, ...]:
    """Return the indices ``start, ..., stop - 1``."""
    if start > stop:
        raise ValueError("start of an index range cannot exceed its stop")
    return tuple(range(start, stop))