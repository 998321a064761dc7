"""
PagerankGraph: an AddressedGraph together with the scores of its latest
PageRank run, plus on-demand score decomposition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from credgraph.address import NodeAddress
from credgraph.config import (
    DEFAULT_ALPHA,
    DEFAULT_CONVERGENCE_THRESHOLD,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_SYNTHETIC_LOOP_WEIGHT,
    DEFAULT_YIELD_AFTER_MS,
)
from credgraph.connections import EdgeEvaluator, NodeToConnections, create_connections
from credgraph.decomposition import ScoredConnection, decompose
from credgraph.distribution import (
    distribution_to_node_distribution,
    uniform_distribution,
    weighted_distribution,
)
from credgraph.errors import MissingNodeError
from credgraph.graph import AddressedGraph, Node
from credgraph.markov_chain import normalize_connections, ordered_chain_from_normalized
from credgraph.pagerank import (
    PagerankOptions,
    PagerankParams,
    YieldHook,
    find_stationary_distribution,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredNode:
    node: Node
    score: float


@dataclass(frozen=True)
class PagerankConvergenceReport:
    converged: bool
    iterations: int
    delta: float


class PagerankGraph:
    def __init__(
        self,
        graph: AddressedGraph,
        edge_evaluator: EdgeEvaluator,
        synthetic_loop_weight: float = DEFAULT_SYNTHETIC_LOOP_WEIGHT,
    ) -> None:
        if graph.node_count() == 0:
            raise ValueError("cannot create a PagerankGraph from an empty graph")
        self._graph = graph.copy()
        self._synthetic_loop_weight = synthetic_loop_weight
        self._edge_evaluator = edge_evaluator
        self._connections: Optional[NodeToConnections] = None
        self._scores: dict[NodeAddress, float] = {}
        # Distribution of the latest run; survives evaluator swaps as a warm start.
        self._warm_start: dict[NodeAddress, float] = {}

    # ── Configuration ────────────────────────────────────────────────────────

    def graph(self) -> AddressedGraph:
        return self._graph.copy()

    def set_edge_evaluator(self, edge_evaluator: EdgeEvaluator) -> None:
        """Swap the evaluator. Score queries raise until the next run."""
        self._edge_evaluator = edge_evaluator
        self._connections = None
        self._scores = {}

    def _normalized_connections(self) -> NodeToConnections:
        if self._connections is None:
            raw = create_connections(self._graph, self._edge_evaluator, self._synthetic_loop_weight)
            self._connections = normalize_connections(raw)
        return self._connections

    # ── Running ──────────────────────────────────────────────────────────────

    def run_pagerank(
        self,
        alpha: float = DEFAULT_ALPHA,
        seed: Optional[Mapping[NodeAddress, float]] = None,
        convergence_threshold: float = DEFAULT_CONVERGENCE_THRESHOLD,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        yield_after_ms: float = DEFAULT_YIELD_AFTER_MS,
        on_yield: Optional[YieldHook] = None,
    ) -> PagerankConvergenceReport:
        """
        Run PageRank and store the resulting scores.

        `seed` maps node addresses to non-negative weights; when omitted the
        seed is uniform over all nodes. The previous scores are used as the
        starting point when available.
        """
        raw = create_connections(self._graph, self._edge_evaluator, self._synthetic_loop_weight)
        self._connections = normalize_connections(raw)
        osmc = ordered_chain_from_normalized(self._connections)

        n = len(osmc.node_order)
        seed_pi = (
            uniform_distribution(n)
            if seed is None
            else weighted_distribution(osmc.node_order, seed)
        )
        pi0 = seed_pi
        if self._warm_start:
            pi0 = weighted_distribution(osmc.node_order, self._warm_start)

        result = find_stationary_distribution(
            PagerankParams(chain=osmc.chain, alpha=alpha, seed=seed_pi, pi0=pi0),
            PagerankOptions(
                convergence_threshold=convergence_threshold,
                max_iterations=max_iterations,
                yield_after_ms=yield_after_ms,
            ),
            on_yield=on_yield,
        )
        if not result.converged:
            log.warning(
                f"PageRank did not converge in {result.iterations} iterations "
                f"(delta={result.delta:.3g}); keeping the last estimate"
            )
        self._scores = distribution_to_node_distribution(osmc.node_order, result.pi)
        self._warm_start = self._scores
        return PagerankConvergenceReport(
            converged=result.converged,
            iterations=result.iterations,
            delta=result.delta,
        )

    @classmethod
    def from_scores(
        cls,
        graph: AddressedGraph,
        scores: Mapping[NodeAddress, float],
        edge_evaluator: EdgeEvaluator,
        synthetic_loop_weight: float = DEFAULT_SYNTHETIC_LOOP_WEIGHT,
    ) -> "PagerankGraph":
        """Rebuild a scored view from persisted scores without re-solving."""
        prg = cls(graph, edge_evaluator, synthetic_loop_weight)
        addresses = {node.address for node in prg._graph.nodes()}
        if set(scores) != addresses:
            missing = sorted(addresses - set(scores))
            raise MissingNodeError(missing[0] if missing else sorted(set(scores) - addresses)[0])
        prg._scores = {address: float(scores[address]) for address in sorted(addresses)}
        prg._warm_start = prg._scores
        return prg

    # ── Queries ──────────────────────────────────────────────────────────────

    def has_scores(self) -> bool:
        return bool(self._scores)

    def _require_scores(self) -> None:
        if not self._scores:
            raise RuntimeError("no current scores; call run_pagerank first")

    def node(self, address: NodeAddress) -> ScoredNode:
        self._require_scores()
        node = self._graph.node(address)
        if node is None:
            raise MissingNodeError(address)
        return ScoredNode(node=node, score=self._scores[address])

    def nodes(self, prefix: NodeAddress = NodeAddress.empty) -> Iterator[ScoredNode]:
        self._require_scores()
        for node in self._graph.nodes(prefix):
            yield ScoredNode(node=node, score=self._scores[node.address])

    def total_score(self, prefix: NodeAddress = NodeAddress.empty) -> float:
        return sum(scored.score for scored in self.nodes(prefix))

    def node_distribution(self) -> dict[NodeAddress, float]:
        self._require_scores()
        return dict(self._scores)

    def scored_connections(self, address: NodeAddress) -> tuple[ScoredConnection, ...]:
        """Decomposition of one node's score, largest contribution first."""
        self._require_scores()
        if not self._graph.has_node(address):
            raise MissingNodeError(address)
        connections = self._normalized_connections()
        return decompose(self._scores, {address: connections[address]})[address].scored_connections
