"""Tests for interval derivation, decay, seeding and timeline cred."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from credgraph.address import EdgeAddress, NodeAddress
from credgraph.config import WEEK_MS
from credgraph.connections import EdgeWeight
from credgraph.errors import UnknownSeedStrategy
from credgraph.graph import AddressedGraph, Edge, Node
from credgraph.timeline import (
    Interval,
    SeedStrategy,
    compute_timeline_scores,
    compute_timeline_scores_for_evaluators,
    decay_factor,
    decayed_evaluator,
    derive_intervals,
    seed_for_interval,
)
from credgraph.weights import NodeAndEdgeTypes, NodeType, default_weights

USERS = NodeAddress.from_parts(["github", "USER"])
PULLS = NodeAddress.from_parts(["github", "PULL"])


def ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def user(name):
    return Node(address=USERS.append(name), description=name)


def pull(number, ts):
    return Node(address=PULLS.append(str(number)), description=f"#{number}", timestamp_ms=ts)


def authors(pr, author, ts):
    return Edge(
        address=EdgeAddress.from_parts(["github", "AUTHORS", author.address.parts[-1], pr.address.parts[-1]]),
        src=author.address,
        dst=pr.address,
        timestamp_ms=ts,
    )


def small_timeline_graph():
    alice, bob = user("alice"), user("bob")
    p1, p2, p3 = pull(1, 10), pull(2, 150), pull(3, 160)
    g = AddressedGraph()
    for n in (alice, bob, p1, p2, p3):
        g.add_node(n)
    g.add_edge(authors(p1, alice, 10))
    g.add_edge(authors(p2, bob, 150))
    g.add_edge(authors(p3, alice, 160))
    return SimpleNamespace(graph=g, alice=alice, bob=bob, p1=p1, p2=p2, p3=p3)


def uniform_edges(e):
    return EdgeWeight(1.0, 1.0)


def unit_nodes(address):
    return 1.0


class TestDeriveIntervals:
    """Interval boundaries."""

    def test_weeks_start_on_monday_utc(self):
        wednesday = datetime(2024, 1, 3, 15, 30, tzinfo=timezone.utc)
        next_monday = datetime(2024, 1, 8, tzinfo=timezone.utc)
        g = AddressedGraph()
        g.add_node(pull(1, ms(wednesday)))
        g.add_node(pull(2, ms(next_monday)))
        intervals = derive_intervals(g)
        monday = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert [x.interval for x in intervals] == [
            Interval(ms(monday), ms(monday) + WEEK_MS),
            Interval(ms(next_monday), ms(next_monday) + WEEK_MS),
        ]
        assert [len(x.nodes) for x in intervals] == [1, 1]

    def test_covers_every_timestamp_exactly_once(self):
        t = small_timeline_graph()
        intervals = derive_intervals(t.graph, interval_length_ms=100, anchor_ms=0)
        assert [x.interval for x in intervals] == [Interval(0, 100), Interval(100, 200)]
        for e in t.graph.edges():
            hits = [x for x in intervals if x.interval.start_time_ms <= e.timestamp_ms < x.interval.end_time_ms]
            assert len(hits) == 1
        assert [n.address for n in intervals[1].nodes] == [t.p2.address, t.p3.address]

    def test_includes_last_partial_interval(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        g = AddressedGraph()
        g.add_node(pull(1, ms(start)))
        g.add_node(pull(2, ms(start + timedelta(days=15))))
        assert len(derive_intervals(g)) == 3

    def test_dangling_edges_ignored(self):
        g = AddressedGraph().add_node(pull(1, 10))
        g.add_edge(Edge(EdgeAddress.from_parts(["e"]), USERS.append("ghost"), PULLS.append("1"), 1000))
        assert len(derive_intervals(g, interval_length_ms=100, anchor_ms=0)) == 1

    def test_empty_graph(self):
        assert derive_intervals(AddressedGraph()) == []
        assert derive_intervals(AddressedGraph().add_node(user("untimed"))) == []

    def test_float_timestamps(self):
        g = AddressedGraph()
        g.add_node(pull(1, 150.5))
        g.add_node(pull(2, 250.0))
        intervals = derive_intervals(g, interval_length_ms=100, anchor_ms=0)
        assert [x.interval for x in intervals] == [Interval(100, 200), Interval(200, 300)]
        assert all(isinstance(x.interval.start_time_ms, int) for x in intervals)
        assert [len(x.nodes) for x in intervals] == [1, 1]


class TestDecayedEvaluator:
    """Exponential recency decay."""

    interval0 = Interval(0, 100)
    interval1 = Interval(100, 200)

    @staticmethod
    def edge(ts):
        return Edge(
            address=EdgeAddress.from_parts([str(ts)]),
            src=NodeAddress.from_parts(["foo"]),
            dst=NodeAddress.from_parts(["bar"]),
            timestamp_ms=ts,
        )

    def test_simple_evaluator(self):
        evaluator_for_interval = decayed_evaluator(
            lambda e: EdgeWeight(1, 2), [self.interval0, self.interval1], 1
        )
        evaluator0 = evaluator_for_interval(self.interval0)
        assert evaluator0(self.edge(0)) == EdgeWeight(1, 2)
        assert evaluator0(self.edge(99)) == EdgeWeight(1, 2)
        assert evaluator0(self.edge(150)) == EdgeWeight(0, 0)
        evaluator1 = evaluator_for_interval(self.interval1)
        assert evaluator1(self.edge(50)) == EdgeWeight(0.5, 1)
        assert evaluator1(self.edge(150)) == EdgeWeight(1, 2)

    def test_future_beyond_last_interval(self):
        evaluator = decayed_evaluator(lambda e: EdgeWeight(1, 1), [self.interval0, self.interval1], 1)
        assert evaluator(self.interval1)(self.edge(500)) == EdgeWeight(0, 0)

    def test_base_weight_cached(self):
        calls = []

        def base(e):
            calls.append(e.address)
            return EdgeWeight(1, 1)

        evaluator_for_interval = decayed_evaluator(base, [self.interval0, self.interval1], 2)
        e = self.edge(10)
        evaluator_for_interval(self.interval0)(e)
        evaluator_for_interval(self.interval1)(e)
        assert calls == [e.address]

    def test_caches_not_shared(self):
        calls = []

        def base(e):
            calls.append(e.address)
            return EdgeWeight(1, 1)

        e = self.edge(10)
        decayed_evaluator(base, [self.interval0], 1)(self.interval0)(e)
        decayed_evaluator(base, [self.interval0], 1)(self.interval0)(e)
        assert len(calls) == 2

    def test_unknown_interval(self):
        evaluator_for_interval = decayed_evaluator(lambda e: EdgeWeight(1, 1), [self.interval0], 1)
        with pytest.raises(ValueError):
            evaluator_for_interval(self.interval1)

    def test_rejects_gaps(self):
        with pytest.raises(ValueError):
            decayed_evaluator(lambda e: EdgeWeight(1, 1), [self.interval0, Interval(150, 250)], 1)

    def test_decay_factor(self):
        assert decay_factor(1, 0) == 1
        assert decay_factor(1, 1) == 0.5
        assert decay_factor(2, 1) == pytest.approx(2 ** -0.5)
        assert decay_factor(12, 24) == pytest.approx(0.25)


class TestSeeding:
    """TIME and PREFIX strategies."""

    def test_time_seed(self):
        t = small_timeline_graph()
        seed = seed_for_interval(t.graph, SeedStrategy.TIME, [t.p2, t.p3], USERS)
        assert seed == {t.p2.address: 1.0, t.p3.address: 1.0}

    def test_prefix_seed_ignores_interval(self):
        t = small_timeline_graph()
        seed = seed_for_interval(t.graph, SeedStrategy.PREFIX, [t.p1], USERS)
        assert seed == {t.alice.address: 1.0, t.bob.address: 1.0}

    def test_unknown_strategy(self):
        t = small_timeline_graph()
        with pytest.raises(UnknownSeedStrategy):
            seed_for_interval(t.graph, "WTF", [], USERS)
        with pytest.raises(AssertionError):
            compute_timeline_scores_for_evaluators(
                t.graph, uniform_edges, unit_nodes, 1, USERS, "TIME", 0.1
            )


class TestComputeTimelineScores:
    """End-to-end timeline cred."""

    def run(self, t, strategy=SeedStrategy.PREFIX, **kwargs):
        return compute_timeline_scores_for_evaluators(
            t.graph,
            uniform_edges,
            unit_nodes,
            interval_half_life=1,
            seed_prefix=USERS,
            seed_strategy=strategy,
            alpha=0.2,
            total_prefix=USERS,
            interval_length_ms=100,
            anchor_ms=0,
            **kwargs,
        )

    @pytest.mark.parametrize("strategy", [SeedStrategy.PREFIX, SeedStrategy.TIME])
    def test_user_cred_matches_interval_activity(self, strategy):
        t = small_timeline_graph()
        scores = self.run(t, strategy)
        assert scores.intervals == (Interval(0, 100), Interval(100, 200))
        per_interval = [
            scores.node_address_to_scores[t.alice.address][i] + scores.node_address_to_scores[t.bob.address][i]
            for i in range(2)
        ]
        # one pull in the first interval, two in the second
        assert per_interval == [pytest.approx(1.0), pytest.approx(2.0)]

    def test_every_node_has_aligned_series(self):
        t = small_timeline_graph()
        scores = self.run(t)
        assert set(scores.node_address_to_scores) == {n.address for n in t.graph.nodes()}
        for series in scores.node_address_to_scores.values():
            assert len(series) == len(scores.intervals)
            assert all(s >= 0 for s in series)

    def test_future_edges_carry_no_cred(self):
        t = small_timeline_graph()
        scores = self.run(t)
        # pulls 2 and 3 are authored in the second interval
        for p in (t.p2, t.p3):
            first, second = scores.node_address_to_scores[p.address]
            assert first == 0.0
            assert second > 0.0
        assert scores.node_address_to_scores[t.p1.address][0] > 0.0

    def test_zero_denominator_gives_zeros(self):
        t = small_timeline_graph()
        scores = compute_timeline_scores_for_evaluators(
            t.graph, uniform_edges, unit_nodes, 1, USERS, SeedStrategy.PREFIX, 0.2,
            total_prefix=NodeAddress.from_parts(["nobody"]),
            interval_length_ms=100, anchor_ms=0,
        )
        for series in scores.node_address_to_scores.values():
            assert series == (0.0, 0.0)

    def test_zero_activity_gives_zeros(self):
        t = small_timeline_graph()
        scores = compute_timeline_scores_for_evaluators(
            t.graph, uniform_edges, lambda a: 0.0, 1, USERS, SeedStrategy.PREFIX, 0.2,
            total_prefix=USERS, interval_length_ms=100, anchor_ms=0,
        )
        assert all(s == 0.0 for series in scores.node_address_to_scores.values() for s in series)

    def test_idempotent(self):
        t = small_timeline_graph()
        assert dict(self.run(t).node_address_to_scores) == dict(self.run(t).node_address_to_scores)

    def test_interval_hook(self):
        t = small_timeline_graph()
        seen = []
        self.run(t, on_interval=lambda interval, report: seen.append((interval, report.converged)))
        assert seen == [(Interval(0, 100), True), (Interval(100, 200), True)]

    def test_scores_are_read_only(self):
        t = small_timeline_graph()
        scores = self.run(t)
        with pytest.raises(TypeError):
            scores.node_address_to_scores[t.alice.address] = (1.0, 1.0)

    def test_empty_graph(self):
        scores = self.run(SimpleNamespace(graph=AddressedGraph()))
        assert scores.intervals == ()
        assert dict(scores.node_address_to_scores) == {}

    def test_from_weights(self):
        t = small_timeline_graph()
        types = NodeAndEdgeTypes(node_types=(
            NodeType("user", USERS, 0.0),
            NodeType("pull", PULLS, 4.0),
        ))
        scores = compute_timeline_scores(
            t.graph, types, default_weights(types), 1, USERS, SeedStrategy.PREFIX, 0.2,
            total_prefix=USERS, interval_length_ms=100, anchor_ms=0,
        )
        total = sum(sum(scores.node_address_to_scores[u.address]) for u in (t.alice, t.bob))
        assert total == pytest.approx(12.0)
