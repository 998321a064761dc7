"""Shared graph fixtures."""

from __future__ import annotations

import pytest

from credgraph.address import EdgeAddress, NodeAddress
from credgraph.graph import AddressedGraph, Edge, Node


def node(name: str, timestamp_ms=None) -> Node:
    return Node(address=NodeAddress.from_parts([name]), description=name, timestamp_ms=timestamp_ms)


def edge(name, src: Node, dst: Node, timestamp_ms: int = 0) -> Edge:
    parts = name if isinstance(name, (list, tuple)) else [name]
    return Edge(
        address=EdgeAddress.from_parts(parts),
        src=src.address,
        dst=dst.address,
        timestamp_ms=timestamp_ms,
    )


class AdvancedGraph:
    """
    Parallel edges src → dst, an isolated node, a loop, and half/fully
    dangling edges. `graph1` and `graph2` hold the same nodes and edges but
    are built with very different histories.
    """

    src = node("src")
    dst = node("dst")
    loop = node("loop")
    isolated = node("isolated")
    half_isolated = node("halfIsolated")
    phantom = node("phantom")

    hom1 = edge(["hom", "1"], src, dst)
    hom2 = edge(["hom", "2"], src, dst)
    loop_loop = edge(["loop"], loop, loop)
    half_dangling = edge(["half", "dangling"], half_isolated, phantom)
    full_dangling = edge(["full", "dangling"], phantom, phantom)
    phantom_edge1 = edge(["phantom"], src, phantom)
    phantom_edge2 = edge(["not", "so", "isolated"], src, isolated)

    def graph1(self) -> AddressedGraph:
        return (
            AddressedGraph()
            .add_node(self.src)
            .add_node(self.dst)
            .add_node(self.loop)
            .add_node(self.isolated)
            .add_edge(self.hom1)
            .add_edge(self.hom2)
            .add_edge(self.loop_loop)
            .add_node(self.half_isolated)
            .add_edge(self.half_dangling)
            .add_edge(self.full_dangling)
        )

    def graph2(self) -> AddressedGraph:
        return (
            AddressedGraph()
            .add_node(self.phantom)
            .add_node(self.src)
            .add_edge(self.phantom_edge1)
            .add_node(self.isolated)
            .add_node(self.half_isolated)
            .add_edge(self.half_dangling)
            .add_edge(self.full_dangling)
            .remove_edge(self.phantom_edge1.address)
            .add_node(self.dst)
            .add_edge(self.hom1)
            .add_edge(self.phantom_edge2)
            .add_edge(self.hom2)
            .remove_edge(self.hom1.address)
            .remove_node(self.phantom.address)
            .remove_edge(self.phantom_edge2.address)
            .remove_node(self.isolated.address)
            .add_node(self.isolated)
            .add_node(self.loop)
            .add_edge(self.loop_loop)
            .add_edge(self.hom1)
        )


@pytest.fixture
def advanced():
    return AdvancedGraph()


class SimpleChain:
    """n1 → n2 → sink, n1 → sink, and a loop on sink."""

    n1 = node("n1")
    n2 = node("n2")
    sink = node("sink")
    e1 = edge("e1", n1, n2)
    e2 = edge("e2", n2, sink)
    e3 = edge("e3", n1, sink)
    e4 = edge("e4", sink, sink)

    def graph(self) -> AddressedGraph:
        g = AddressedGraph()
        for n in (self.n1, self.n2, self.sink):
            g.add_node(n)
        for e in (self.e1, self.e2, self.e3, self.e4):
            g.add_edge(e)
        return g


@pytest.fixture
def simple_chain():
    return SimpleChain()
