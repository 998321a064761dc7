"""
Hierarchical addresses for nodes and edges.

An address is an immutable sequence of string components, e.g.
``("github", "USER", "decentralion")``. Node and edge addresses live in
separate namespaces: a NodeAddress never compares equal to an EdgeAddress,
even with identical parts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True, order=True)
class Address:
    parts: tuple[str, ...]

    def __post_init__(self) -> None:
        parts = tuple(self.parts)
        for part in parts:
            if not isinstance(part, str):
                raise ValueError(f"address parts must be strings, got {part!r}")
            if "\0" in part:
                raise ValueError(f"address part contains NUL: {part!r}")
        object.__setattr__(self, "parts", parts)

    @classmethod
    def from_parts(cls, parts: Iterable[str]):
        return cls(tuple(parts))

    def append(self, *parts: str):
        return type(self)(self.parts + parts)

    def is_prefix_of(self, other: "Address") -> bool:
        """True if `other` starts with all of this address's components."""
        if type(other) is not type(self):
            raise TypeError(
                f"cannot compare {type(self).__name__} with {type(other).__name__}"
            )
        n = len(self.parts)
        return other.parts[:n] == self.parts

    def has_prefix(self, prefix: "Address") -> bool:
        return prefix.is_prefix_of(self)

    def to_string(self) -> str:
        quoted = ",".join(f'"{part}"' for part in self.parts)
        return f"{type(self).__name__}[{quoted}]"

    def __str__(self) -> str:
        return self.to_string()

    def __len__(self) -> int:
        return len(self.parts)


class NodeAddress(Address):
    pass


class EdgeAddress(Address):
    pass


NodeAddress.empty = NodeAddress(())
EdgeAddress.empty = EdgeAddress(())
