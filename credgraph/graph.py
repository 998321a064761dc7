"""
AddressedGraph: an append/remove multigraph keyed by hierarchical addresses.

Nodes and edges are stored by address in sorted key indexes so that prefix
queries are a bisect plus a contiguous scan. Edges may reference nodes that are
not in the graph ("dangling" edges); they are kept but can be filtered out.

Iteration order is always address order, so two graphs holding the same nodes
and edges behave identically no matter how they were built.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Iterator, Optional

import networkx as nx

from credgraph.address import EdgeAddress, NodeAddress
from credgraph.errors import ConflictError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Node:
    address: NodeAddress
    description: str
    timestamp_ms: Optional[float] = None


@dataclass(frozen=True)
class Edge:
    address: EdgeAddress
    src: NodeAddress
    dst: NodeAddress
    timestamp_ms: float


class _SortedIndex:
    """Address → value mapping with keys kept sorted for prefix scans."""

    def __init__(self) -> None:
        self._values: dict = {}
        self._keys: list = []

    def __contains__(self, key) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._keys)

    def get(self, key):
        return self._values.get(key)

    def put(self, key, value) -> None:
        if key not in self._values:
            bisect.insort(self._keys, key)
        self._values[key] = value

    def remove(self, key) -> bool:
        if key not in self._values:
            return False
        del self._values[key]
        i = bisect.bisect_left(self._keys, key)
        del self._keys[i]
        return True

    def keys_with_prefix(self, prefix) -> list:
        start = bisect.bisect_left(self._keys, prefix)
        result = []
        for key in self._keys[start:]:
            if not prefix.is_prefix_of(key):
                break
            result.append(key)
        return result

    def as_dict(self) -> dict:
        return self._values


class AddressedGraph:
    def __init__(self) -> None:
        self._nodes = _SortedIndex()
        self._edges = _SortedIndex()
        self._modification_count = 0

    # ── Mutation ─────────────────────────────────────────────────────────────

    def add_node(self, node: Node) -> "AddressedGraph":
        if not isinstance(node.address, NodeAddress):
            raise TypeError(f"expected NodeAddress, got {node.address!r}")
        existing = self._nodes.get(node.address)
        if existing is not None:
            if existing == node:
                return self
            raise ConflictError(
                f"conflict between new node {node!r} and existing {existing!r}"
            )
        self._nodes.put(node.address, node)
        self._mark_modification()
        return self

    def remove_node(self, address: NodeAddress) -> "AddressedGraph":
        if self._nodes.remove(address):
            self._mark_modification()
        return self

    def add_edge(self, edge: Edge) -> "AddressedGraph":
        if not isinstance(edge.address, EdgeAddress):
            raise TypeError(f"expected EdgeAddress, got {edge.address!r}")
        if not isinstance(edge.src, NodeAddress) or not isinstance(edge.dst, NodeAddress):
            raise TypeError(f"edge endpoints must be NodeAddress: {edge!r}")
        existing = self._edges.get(edge.address)
        if existing is not None:
            if existing == edge:
                return self
            raise ConflictError(
                f"conflict between new edge {edge!r} and existing {existing!r}"
            )
        self._edges.put(edge.address, edge)
        self._mark_modification()
        return self

    def remove_edge(self, address: EdgeAddress) -> "AddressedGraph":
        if self._edges.remove(address):
            self._mark_modification()
        return self

    def _mark_modification(self) -> None:
        self._modification_count += 1

    def modification_count(self) -> int:
        return self._modification_count

    # ── Queries ──────────────────────────────────────────────────────────────

    def has_node(self, address: NodeAddress) -> bool:
        return address in self._nodes

    def node(self, address: NodeAddress) -> Optional[Node]:
        return self._nodes.get(address)

    def has_edge(self, address: EdgeAddress) -> bool:
        return address in self._edges

    def edge(self, address: EdgeAddress) -> Optional[Edge]:
        return self._edges.get(address)

    def is_dangling(self, edge: Edge) -> bool:
        return not (self.has_node(edge.src) and self.has_node(edge.dst))

    def nodes(self, prefix: NodeAddress = NodeAddress.empty) -> Iterator[Node]:
        """Nodes under `prefix`, in address order. Each call starts afresh."""
        return self._iterate(self._nodes, prefix, lambda _: True)

    def edges(
        self,
        address_prefix: EdgeAddress = EdgeAddress.empty,
        src_prefix: NodeAddress = NodeAddress.empty,
        dst_prefix: NodeAddress = NodeAddress.empty,
        show_dangling: bool = True,
    ) -> Iterator[Edge]:
        """Edges matching all three prefixes, in address order.

        With `show_dangling=False`, edges whose src or dst is not a node of
        this graph are skipped.
        """

        def keep(edge: Edge) -> bool:
            if not src_prefix.is_prefix_of(edge.src):
                return False
            if not dst_prefix.is_prefix_of(edge.dst):
                return False
            return show_dangling or not self.is_dangling(edge)

        return self._iterate(self._edges, address_prefix, keep)

    def _iterate(self, index: _SortedIndex, prefix, keep):
        keys = index.keys_with_prefix(prefix)
        initial = self._modification_count

        def generate():
            for key in keys:
                if self._modification_count != initial:
                    raise RuntimeError("Concurrent modification detected")
                value = index.get(key)
                if keep(value):
                    yield value

        return generate()

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return len(self._edges)

    # ── Structural helpers ───────────────────────────────────────────────────

    def copy(self) -> "AddressedGraph":
        result = AddressedGraph()
        for node in self.nodes():
            result.add_node(node)
        for edge in self.edges():
            result.add_edge(edge)
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AddressedGraph):
            return NotImplemented
        return (
            self._nodes.as_dict() == other._nodes.as_dict()
            and self._edges.as_dict() == other._edges.as_dict()
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"AddressedGraph(nodes={self.node_count()}, edges={self.edge_count()})"

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Score-bearing view as a networkx multigraph: present nodes plus
        non-dangling edges, keyed by edge address.
        """
        G = nx.MultiDiGraph()
        for node in self.nodes():
            G.add_node(
                node.address,
                description=node.description,
                timestamp_ms=node.timestamp_ms,
            )
        for edge in self.edges(show_dangling=False):
            G.add_edge(
                edge.src,
                edge.dst,
                key=edge.address,
                timestamp_ms=edge.timestamp_ms,
            )
        log.debug(f"Exported graph to networkx: {G.number_of_nodes()} nodes, {G.number_of_edges()} edges")
        return G
