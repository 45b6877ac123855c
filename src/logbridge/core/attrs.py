"""Ordered attribute buffer with clone-on-extend semantics."""

from collections.abc import Iterable, Iterator

from logbridge.core.convert import Attr, GroupValue, convert_attrs, group
from logbridge.core.models import KeyValue

__all__ = ["Attr", "AttrBuffer", "GroupValue", "group"]


class AttrBuffer:
    """Append-only ordered list of KeyValue.

    A buffer is owned by a single adapter. Derived adapters take a clone
    before appending, so the original is never changed after it is shared.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Iterable[KeyValue] = ()) -> None:
        self._data: list[KeyValue] = list(data)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[KeyValue]:
        return iter(tuple(self._data))

    def __repr__(self) -> str:
        return f"AttrBuffer({self._data!r})"

    def append(self, kv: KeyValue) -> None:
        """Append an already converted attribute."""
        self._data.append(kv)

    def add_attr(self, attr: Attr) -> None:
        """Convert and append a front-end attribute.

        An empty-keyed group has its members inlined; an empty-keyed
        attribute with an empty value is dropped.
        """
        self._data.extend(convert_attrs((attr,)))

    def add_attrs(self, attrs: Iterable[Attr]) -> None:
        self._data.extend(convert_attrs(attrs))

    def clone(self) -> "AttrBuffer":
        """Return an independent copy of the buffer."""
        return AttrBuffer(self._data)

    def key_values(self, *extra: KeyValue) -> list[KeyValue]:
        """Return the buffered attributes followed by extra.

        The returned list is new; mutating it does not affect the buffer.
        """
        return [*self._data, *extra]
