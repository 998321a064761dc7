"""
Connections → ordered sparse Markov chain.

The chain is stored in "pull" form: for each target index we keep the source
indices that send mass to it and the transition probability of each. Every
source's outgoing probabilities sum to 1, so one step of the chain maps a
distribution to a distribution.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from functools import cached_property

import numpy as np

from credgraph.address import NodeAddress
from credgraph.connections import Connection, NodeToConnections, adjacency_source
from credgraph.distribution import Distribution
from credgraph.errors import DegenerateChainError

log = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SparseRow:
    neighbor: np.ndarray   # source indices (int64)
    weight: np.ndarray     # transition probabilities (float64)


@dataclass(frozen=True, eq=False)
class SparseMarkovChain:
    rows: tuple[SparseRow, ...]

    def __len__(self) -> int:
        return len(self.rows)

    @cached_property
    def coo(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Flattened (target, source, probability) arrays."""
        if not self.rows:
            empty = np.zeros(0, dtype=np.int64)
            return empty, empty, np.zeros(0)
        targets = np.concatenate([
            np.full(len(row.neighbor), i, dtype=np.int64)
            for i, row in enumerate(self.rows)
        ])
        sources = np.concatenate([row.neighbor for row in self.rows])
        probs = np.concatenate([row.weight for row in self.rows])
        return targets, sources, probs


@dataclass(frozen=True, eq=False)
class OrderedSparseMarkovChain:
    node_order: tuple[NodeAddress, ...]
    chain: SparseMarkovChain


def normalize_connections(connections: NodeToConnections) -> NodeToConnections:
    """
    Replace each connection weight by its transition probability: the weight
    divided by everything its source node emits. Raises DegenerateChainError
    if some node emits a non-positive total.
    """
    total_out: dict[NodeAddress, float] = defaultdict(float)
    for target, conns in connections.items():
        for conn in conns:
            total_out[adjacency_source(target, conn.adjacency)] += conn.weight

    for address in connections:
        if total_out[address] <= 0:
            raise DegenerateChainError(
                f"node {address} has non-positive total out-weight {total_out[address]}"
            )

    result: NodeToConnections = {}
    for target, conns in connections.items():
        result[target] = [
            Connection(
                conn.adjacency,
                conn.weight / total_out[adjacency_source(target, conn.adjacency)],
            )
            for conn in conns
        ]
    return result


def create_ordered_sparse_markov_chain(
    connections: NodeToConnections,
) -> OrderedSparseMarkovChain:
    return ordered_chain_from_normalized(normalize_connections(connections))


def ordered_chain_from_normalized(
    normalized: NodeToConnections,
) -> OrderedSparseMarkovChain:
    """Build the chain from connections already passed through normalize_connections."""
    node_order = tuple(sorted(normalized))
    index = {address: i for i, address in enumerate(node_order)}

    rows = []
    for target in node_order:
        # Several connections from one source (parallel edges, loops) are merged.
        merged: dict[int, float] = defaultdict(float)
        for conn in normalized[target]:
            merged[index[adjacency_source(target, conn.adjacency)]] += conn.weight
        rows.append(SparseRow(
            neighbor=np.fromiter(merged.keys(), dtype=np.int64, count=len(merged)),
            weight=np.fromiter(merged.values(), dtype=np.float64, count=len(merged)),
        ))
    log.debug(f"Built Markov chain over {len(node_order)} nodes")
    return OrderedSparseMarkovChain(node_order=node_order, chain=SparseMarkovChain(tuple(rows)))


def sparse_markov_chain_action(chain: SparseMarkovChain, pi: Distribution) -> Distribution:
    """One step of the chain: result[t] = Σ pi[s] · P(s → t)."""
    targets, sources, probs = chain.coo
    return np.bincount(targets, weights=pi[sources] * probs, minlength=len(chain))
