"""Group stack: nested attribute scopes materialised as Map attributes.

Groups are represented as Map values in the back-end. For a hierarchy like

    with_group("G").with_group("H").with_group("I")

attributes recorded afterwards belong to the leaf group "I", and the
emitted attribute is

    KeyValue("G", Map(KeyValue("H", Map(KeyValue("I", Map(...))))))

The chain is stored leaf first: Group("I", next=Group("H", next=Group("G"))).
Each group only references the scope that encloses it, so there are no
reference cycles and a clone only has to copy the leaf.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from logbridge.core.attrs import Attr, AttrBuffer
from logbridge.core.models import KeyValue, map_value


@dataclass(slots=True)
class Group:
    """A named scope holding its own attributes.

    Attributes:
        name: Group name, used as the Map key.
        attrs: Attributes added while this group was the leaf.
        next: The enclosing group, or None for the outermost one.
    """

    name: str
    attrs: AttrBuffer = field(default_factory=AttrBuffer)
    next: "Group | None" = None

    def push(self, name: str) -> "Group":
        """Return a new leaf group nested inside this one."""
        return Group(name, next=self)

    def clone(self) -> "Group":
        """Copy this group so attributes can be added without sharing.

        Enclosing groups are shared: once a group stops being the leaf it
        is never modified again.
        """
        return Group(self.name, self.attrs.clone(), self.next)

    def add_attrs(self, attrs: Iterable[Attr]) -> None:
        self.attrs.add_attrs(attrs)

    def chain(self) -> Iterator["Group"]:
        """Iterate from this group outward."""
        g: Group | None = self
        while g is not None:
            yield g
            g = g.next

    def next_non_empty(self) -> "Group | None":
        """Return the first group, starting here, that carries attributes."""
        for g in self.chain():
            if len(g.attrs) > 0:
                return g
        return None

    def key_value(self, *kvs: KeyValue) -> KeyValue:
        """Render this group, holding kvs, and all enclosing groups.

        kvs are rendered but not added to the group. The caller is
        responsible for only rendering a group that is non-empty or that
        receives kvs.
        """
        out = KeyValue(self.name, map_value(*self.attrs.key_values(*kvs)))
        for g in self.chain():
            if g is self:
                continue
            out = KeyValue(g.name, map_value(*g.attrs.key_values(out)))
        return out


def materialize(
    attrs: AttrBuffer | None,
    leaf: Group | None,
    kvs: list[KeyValue],
) -> list[KeyValue]:
    """Build the record attributes for one emission.

    Args:
        attrs: Adapter-level attributes, emitted first.
        leaf: Innermost group, or None if no group was opened.
        kvs: Call-site attributes, already converted.

    Returns:
        Adapter-level attributes followed by either the call-site attributes
        (no groups) or a single nested Map. Groups with no attributes at or
        below them are left out entirely.
    """
    out = attrs.key_values() if attrs is not None else []
    if leaf is None:
        out.extend(kvs)
    elif kvs:
        out.append(leaf.key_value(*kvs))
    elif (g := leaf.next_non_empty()) is not None:
        out.append(g.key_value())
    return out
