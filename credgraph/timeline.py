"""
Timeline cred: re-run PageRank once per time interval on a recency-decayed
view of the graph and collect each node's per-interval cred.

Interval policy: fixed-width half-open intervals `[start, end)` aligned to
`anchor_ms + k * interval_length_ms`. With the defaults these are calendar
weeks starting Monday 00:00 UTC. The intervals cover every timestamp of the
graph's nodes and non-dangling edges.

For each interval, in chronological order:
  1. edge weights are decayed by 0.5 ** (age / half_life), where age is the
     number of whole intervals since the edge's own interval; edges from
     later intervals weigh nothing;
  2. the seed is the interval's nodes (TIME) or a fixed prefix (PREFIX);
  3. PageRank scores are rescaled so that the nodes under `total_prefix`
     together receive the interval's activity (the node-weight sum of the
     nodes created during the interval).
"""

from __future__ import annotations

import bisect
import enum
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Sequence

from credgraph.address import NodeAddress
from credgraph.config import (
    DEFAULT_CONVERGENCE_THRESHOLD,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_SYNTHETIC_LOOP_WEIGHT,
    INTERVAL_ANCHOR_MS,
    USER_PREFIX_PARTS,
    WEEK_MS,
)
from credgraph.connections import EdgeEvaluator, EdgeWeight
from credgraph.errors import UnknownSeedStrategy
from credgraph.graph import AddressedGraph, Edge, Node
from credgraph.pagerank_graph import PagerankConvergenceReport, PagerankGraph
from credgraph.weights import (
    NodeAndEdgeTypes,
    NodeEvaluator,
    Weights,
    weights_to_edge_evaluator,
    weights_to_node_evaluator,
)

log = logging.getLogger(__name__)

USER_PREFIX = NodeAddress.from_parts(USER_PREFIX_PARTS)


@dataclass(frozen=True, order=True)
class Interval:
    start_time_ms: int
    end_time_ms: int


@dataclass(frozen=True)
class IntervalWithNodes:
    interval: Interval
    nodes: tuple[Node, ...]


@dataclass(frozen=True)
class TimelineScores:
    intervals: tuple[Interval, ...]
    node_address_to_scores: Mapping[NodeAddress, tuple[float, ...]]


class SeedStrategy(enum.Enum):
    TIME = "TIME"
    PREFIX = "PREFIX"


IntervalHook = Callable[[Interval, PagerankConvergenceReport], None]


# ─────────────────────────────────────────────────────────────────────────────
# Intervals
# ─────────────────────────────────────────────────────────────────────────────

def _floor_to_boundary(ts: float, length: int, anchor: int) -> int:
    return int(anchor + ((ts - anchor) // length) * length)


def derive_intervals(
    graph: AddressedGraph,
    interval_length_ms: int = WEEK_MS,
    anchor_ms: int = INTERVAL_ANCHOR_MS,
) -> list[IntervalWithNodes]:
    """Contiguous intervals covering the graph's timestamps, with the nodes
    whose timestamp falls in each."""
    if interval_length_ms <= 0:
        raise ValueError(f"interval length must be positive, got {interval_length_ms}")

    timed_nodes = sorted(
        (n for n in graph.nodes() if n.timestamp_ms is not None),
        key=lambda n: n.timestamp_ms,
    )
    timestamps = [n.timestamp_ms for n in timed_nodes]
    timestamps.extend(e.timestamp_ms for e in graph.edges(show_dangling=False))
    if not timestamps:
        return []

    first = _floor_to_boundary(min(timestamps), interval_length_ms, anchor_ms)
    last = _floor_to_boundary(max(timestamps), interval_length_ms, anchor_ms)

    result: list[IntervalWithNodes] = []
    index = 0
    for start in range(first, last + 1, interval_length_ms):
        interval = Interval(start, start + interval_length_ms)
        nodes_for_interval = []
        while index < len(timed_nodes) and timed_nodes[index].timestamp_ms < interval.end_time_ms:
            nodes_for_interval.append(timed_nodes[index])
            index += 1
        result.append(IntervalWithNodes(interval, tuple(nodes_for_interval)))
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Decay
# ─────────────────────────────────────────────────────────────────────────────

def decay_factor(half_life: float, n_periods: float) -> float:
    return 0.5 ** (n_periods / half_life)


def decayed_evaluator(
    base_evaluator: EdgeEvaluator,
    intervals: Sequence[Interval],
    interval_half_life: float,
) -> Callable[[Interval], EdgeEvaluator]:
    """
    Factory for per-interval evaluators sharing one pair of caches (edge →
    interval index, edge → base weight). Each call of this function gets its
    own caches.
    """
    if interval_half_life <= 0:
        raise ValueError(f"half life must be positive, got {interval_half_life}")
    intervals = tuple(intervals)
    for prev, cur in zip(intervals, intervals[1:]):
        if prev.end_time_ms != cur.start_time_ms:
            raise ValueError(f"intervals must be contiguous: {prev} then {cur}")
    starts = [i.start_time_ms for i in intervals]
    position = {interval: i for i, interval in enumerate(intervals)}

    edge_interval_index: dict = {}
    edge_base_weight: dict = {}

    def get_interval_index(edge: Edge) -> int:
        cached = edge_interval_index.get(edge.address)
        if cached is not None:
            return cached
        ts = edge.timestamp_ms
        if ts >= intervals[-1].end_time_ms:
            index = len(intervals)
        else:
            index = bisect.bisect_right(starts, ts) - 1
        edge_interval_index[edge.address] = index
        return index

    def get_base_weight(edge: Edge) -> EdgeWeight:
        cached = edge_base_weight.get(edge.address)
        if cached is not None:
            return cached
        weight = base_evaluator(edge)
        edge_base_weight[edge.address] = weight
        return weight

    def evaluator_for_interval(interval: Interval) -> EdgeEvaluator:
        if interval not in position:
            raise ValueError(f"unknown interval: {interval}")
        interval_index = position[interval]

        def evaluate(edge: Edge) -> EdgeWeight:
            elapsed = interval_index - get_interval_index(edge)
            if elapsed < 0:
                return EdgeWeight(0.0, 0.0)
            decay = decay_factor(interval_half_life, elapsed)
            base = get_base_weight(edge)
            return EdgeWeight(base.to_weight * decay, base.fro_weight * decay)

        return evaluate

    return evaluator_for_interval


# ─────────────────────────────────────────────────────────────────────────────
# Seeding
# ─────────────────────────────────────────────────────────────────────────────

def seed_for_interval(
    graph: AddressedGraph,
    strategy: SeedStrategy,
    nodes_for_interval: Sequence[Node],
    seed_prefix: NodeAddress,
) -> dict[NodeAddress, float]:
    """Equal seed weight for the interval's nodes (TIME) or a prefix (PREFIX)."""
    if strategy is SeedStrategy.TIME:
        return {node.address: 1.0 for node in nodes_for_interval}
    if strategy is SeedStrategy.PREFIX:
        return {node.address: 1.0 for node in graph.nodes(seed_prefix)}
    raise UnknownSeedStrategy(f"unknown seed strategy: {strategy!r}")


# ─────────────────────────────────────────────────────────────────────────────
# Timeline computation
# ─────────────────────────────────────────────────────────────────────────────

def compute_timeline_scores_for_evaluators(
    graph: AddressedGraph,
    edge_evaluator: EdgeEvaluator,
    node_evaluator: NodeEvaluator,
    interval_half_life: float,
    seed_prefix: NodeAddress,
    seed_strategy: SeedStrategy,
    alpha: float,
    total_prefix: NodeAddress = USER_PREFIX,
    interval_length_ms: int = WEEK_MS,
    anchor_ms: int = INTERVAL_ANCHOR_MS,
    synthetic_loop_weight: float = DEFAULT_SYNTHETIC_LOOP_WEIGHT,
    convergence_threshold: float = DEFAULT_CONVERGENCE_THRESHOLD,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    on_interval: Optional[IntervalHook] = None,
) -> TimelineScores:
    if seed_strategy not in (SeedStrategy.TIME, SeedStrategy.PREFIX):
        raise UnknownSeedStrategy(f"unknown seed strategy: {seed_strategy!r}")

    intervals_with_nodes = derive_intervals(graph, interval_length_ms, anchor_ms)
    intervals = tuple(x.interval for x in intervals_with_nodes)
    scores: dict[NodeAddress, list[float]] = {n.address: [] for n in graph.nodes()}
    if not intervals:
        return TimelineScores(intervals, MappingProxyType({a: () for a in scores}))

    evaluator_for_interval = decayed_evaluator(edge_evaluator, intervals, interval_half_life)
    prg = PagerankGraph(graph, edge_evaluator, synthetic_loop_weight)

    for item in intervals_with_nodes:
        interval = item.interval
        interval_activity = sum(node_evaluator(n.address) for n in item.nodes)
        seed = seed_for_interval(graph, seed_strategy, item.nodes, seed_prefix)

        prg.set_edge_evaluator(evaluator_for_interval(interval))
        report = prg.run_pagerank(
            alpha=alpha,
            seed=seed,
            convergence_threshold=convergence_threshold,
            max_iterations=max_iterations,
        )

        total_score = prg.total_score(total_prefix)
        if total_score > 0:
            scale = interval_activity / total_score
        else:
            scale = 0.0
        for scored in prg.nodes():
            scores[scored.node.address].append(scored.score * scale)

        log.debug(
            f"Interval {interval.start_time_ms}–{interval.end_time_ms}: "
            f"{len(item.nodes)} nodes, activity={interval_activity:.3f}, "
            f"iterations={report.iterations}"
        )
        if on_interval is not None:
            on_interval(interval, report)

    log.debug(f"Computed timeline cred over {len(intervals)} intervals for {len(scores)} nodes")
    return TimelineScores(
        intervals=intervals,
        node_address_to_scores=MappingProxyType({a: tuple(s) for a, s in scores.items()}),
    )


def compute_timeline_scores(
    graph: AddressedGraph,
    types: NodeAndEdgeTypes,
    weights: Weights,
    interval_half_life: float,
    seed_prefix: NodeAddress,
    seed_strategy: SeedStrategy,
    alpha: float,
    **kwargs,
) -> TimelineScores:
    """Timeline cred with evaluators derived from declarative weights."""
    return compute_timeline_scores_for_evaluators(
        graph,
        weights_to_edge_evaluator(weights, types),
        weights_to_node_evaluator(weights, types),
        interval_half_life,
        seed_prefix,
        seed_strategy,
        alpha,
        **kwargs,
    )
