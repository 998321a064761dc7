"""
cred: command line entry point.

    cred compute graph.json --output cred_snapshot.json
    cred scores OWNER/NAME
    cred timeline graph.json --half-life 12 --output timeline.csv

`scores` reads `$CRED_DIRECTORY/data/OWNER/NAME/cred_snapshot.json`.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path

import click
import networkx as nx
import pandas as pd

from credgraph.address import NodeAddress
from credgraph.config import (
    DEFAULT_ALPHA,
    DEFAULT_INTERVAL_HALF_LIFE,
    SCORES_TOTAL,
    SNAPSHOT_FILE,
    cred_directory,
)
from credgraph.errors import CredError
from credgraph.pagerank_graph import PagerankGraph
from credgraph.snapshot import graph_from_json, load_snapshot, save_snapshot
from credgraph.timeline import USER_PREFIX, SeedStrategy, compute_timeline_scores
from credgraph.timeline_helper import TimelineScoreHelper, timeline_scores_frame
from credgraph.weights import NodeAndEdgeTypes, default_weights, weights_to_edge_evaluator

log = logging.getLogger(__name__)

_REPO_ID_RE = re.compile(r"^([A-Za-z0-9-]+)/([A-Za-z0-9._-]+)$")


def die(message: str) -> None:
    click.echo(f"fatal: {message}", err=True)
    click.echo("fatal: run 'cred --help' for help", err=True)
    sys.exit(1)


def _parse_prefix(value: str) -> NodeAddress:
    return NodeAddress.from_parts(p for p in value.split("/") if p)


def _load_graph(path: str):
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            die(f"invalid JSON in {path}: {exc}")
    graph = graph_from_json(data)
    G = graph.to_networkx()
    log.info(
        f"Loaded {G.number_of_nodes()} nodes, {G.number_of_edges()} edges "
        f"({graph.edge_count() - G.number_of_edges()} dangling), "
        f"{nx.number_weakly_connected_components(G)} components"
    )
    return graph


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
def cli(verbose: bool):
    """Compute cred scores for a contribution graph."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--alpha", default=DEFAULT_ALPHA, show_default=True, type=float,
              help="Restart probability.")
@click.option("--output", default=SNAPSHOT_FILE, show_default=True,
              type=click.Path(dir_okay=False), help="Snapshot to write.")
def compute(graph_file: str, alpha: float, output: str):
    """Run PageRank on GRAPH_FILE and save a score snapshot."""
    try:
        graph = _load_graph(graph_file)
        evaluator = weights_to_edge_evaluator(default_weights(NodeAndEdgeTypes()), NodeAndEdgeTypes())
        prg = PagerankGraph(graph, evaluator)
        report = prg.run_pagerank(alpha=alpha)
        log.info(f"PageRank finished after {report.iterations} iterations (converged={report.converged})")
        save_snapshot(prg, Path(output))
    except (CredError, ValueError) as exc:
        die(str(exc))

    rows = [
        {"node": s.node.address.to_string(), "description": s.node.description, "score": s.score}
        for s in prg.nodes()
    ]
    df = pd.DataFrame(rows).sort_values("score", ascending=False).reset_index(drop=True)
    click.echo("\n── Cred Rankings ──────────────────────────────────────────────────────")
    click.echo(df.head(20).to_string(index=False, float_format="%.4f"))


@cli.command()
@click.argument("repo_ids", nargs=-1)
def scores(repo_ids: tuple[str, ...]):
    """
    Print user scores for an already-computed REPO_ID (OWNER/NAME).

    The output is a JSON object mapping username to score; the scores of all
    users sum to 1000.
    """
    if not repo_ids:
        die("no repository ID provided")
    if len(repo_ids) > 1:
        die("multiple repository IDs provided")
    match = _REPO_ID_RE.match(repo_ids[0])
    if match is None:
        die(f"invalid repository ID: {repo_ids[0]!r}")
    owner, name = match.groups()

    path = cred_directory() / "data" / owner / name / SNAPSHOT_FILE
    try:
        prg = load_snapshot(path)
    except (CredError, ValueError) as exc:
        die(str(exc))

    user_nodes = list(prg.nodes(USER_PREFIX))
    total = sum(s.score for s in user_nodes)
    if total <= 0:
        die(f"no user scores in {path}")

    result: dict[str, float] = {}
    for scored in user_nodes:
        username = scored.node.address.parts[-1]
        if username in result:
            die(f"ambiguous username: {username}")
        result[username] = scored.score / total * SCORES_TOTAL
    click.echo(json.dumps(result, sort_keys=True, separators=(",", ":")))


@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--half-life", default=DEFAULT_INTERVAL_HALF_LIFE, show_default=True, type=float,
              help="Decay half life, in intervals.")
@click.option("--alpha", default=DEFAULT_ALPHA, show_default=True, type=float)
@click.option("--seed-strategy", default="PREFIX", show_default=True,
              type=click.Choice([s.value for s in SeedStrategy]))
@click.option("--seed-prefix", default="/".join(USER_PREFIX.parts), show_default=True,
              help="Seed prefix, '/'-separated (PREFIX strategy).")
@click.option("--output", default="timeline_cred.csv", show_default=True,
              type=click.Path(dir_okay=False))
def timeline(graph_file: str, half_life: float, alpha: float, seed_strategy: str,
             seed_prefix: str, output: str):
    """Compute weekly cred for every node of GRAPH_FILE and write a CSV."""
    try:
        graph = _load_graph(graph_file)
        types = NodeAndEdgeTypes()
        timeline_scores = compute_timeline_scores(
            graph,
            types,
            default_weights(types),
            half_life,
            _parse_prefix(seed_prefix),
            SeedStrategy(seed_strategy),
            alpha,
        )
    except (CredError, ValueError) as exc:
        die(str(exc))

    df = timeline_scores_frame(timeline_scores)
    df.to_csv(output, index=False)
    log.info(f"✓ Saved {output} ({len(timeline_scores.intervals)} intervals, {len(df)} rows)")

    helper = TimelineScoreHelper(graph, timeline_scores)
    top = [
        {"node": s.node.address.to_string(), "cred": s.score}
        for s in helper.cred_sorted_nodes(USER_PREFIX)[:20]
    ]
    if top:
        click.echo(pd.DataFrame(top).to_string(index=False, float_format="%.2f"))


if __name__ == "__main__":
    cli()
