"""
product_space/tests/test_backbone.py — Tests for backbone extraction.

Tests verify:
- The three-product worked example (A-B, B-C kept; A-C dropped).
- Output is connected, loop-free and simple for any threshold.
- Threshold extremes: above max → spanning tree; <= 0 or below min → full graph.
- Higher thresholds never add non-tree edges (monotonic shrink).
- Edge weights: mean of contributing sources, unchanged for single-source edges.
- Running extraction on an already clean table is idempotent.
"""

import networkx as nx
import pandas as pd
import pytest

from product_space.graph.backbone import (
    extract_backbone,
    extract_backbone_from_table,
    maximum_spanning_tree,
    spanning_tree_view,
    threshold_subgraph,
)
from product_space.graph import backbone as backbone_module
from product_space.graph.builder import build_proximity_graph, deduplicate_edges


def edge_set(G: nx.Graph) -> set[frozenset]:
    return {frozenset(e) for e in G.edges()}


def non_tree_edges(G: nx.Graph) -> set[frozenset]:
    return {frozenset((u, v)) for u, v, d in G.edges(data=True) if not d["in_mst"]}


# ── Worked example ────────────────────────────────────────────────────────────

def test_abc_example(abc_proximity):
    """A-B=0.9, B-C=0.6, A-C=0.1 at 0.55 → exactly A-B and B-C."""
    backbone = extract_backbone_from_table(abc_proximity, threshold=0.55)
    assert edge_set(backbone) == {frozenset("AB"), frozenset("BC")}
    assert not backbone.has_edge("A", "C")
    assert nx.is_connected(backbone)
    assert backbone.number_of_edges() == 2


def test_abc_edges_in_both_sources(abc_proximity):
    backbone = extract_backbone_from_table(abc_proximity, threshold=0.55)
    for u, v in [("A", "B"), ("B", "C")]:
        assert backbone.edges[u, v]["in_mst"] is True
        assert backbone.edges[u, v]["in_threshold"] is True
    assert backbone.edges["A", "B"]["weight"] == pytest.approx(0.9)
    assert backbone.edges["B", "C"]["weight"] == pytest.approx(0.6)


def test_spanning_tree_picks_minimum_distance(abc_proximity):
    G = build_proximity_graph(abc_proximity)
    mst = maximum_spanning_tree(G)
    assert edge_set(mst) == {frozenset("AB"), frozenset("BC")}
    total_distance = sum(d["distance"] for _, _, d in mst.edges(data=True))
    assert total_distance == pytest.approx(0.5)


# ── Structural invariants ────────────────────────────────────────────────────

@pytest.mark.parametrize("threshold", [0.0, 0.3, 0.55, 0.75, 0.95])
def test_connected_and_simple(messy_proximity, threshold):
    backbone = extract_backbone_from_table(messy_proximity, threshold=threshold)
    assert isinstance(backbone, nx.Graph)
    assert not backbone.is_multigraph()
    assert nx.is_connected(backbone)
    assert nx.number_of_selfloops(backbone) == 0


def test_node_set_is_referenced_products(clustered_proximity, clustered_metadata):
    backbone = extract_backbone_from_table(clustered_proximity, clustered_metadata)
    referenced = set(clustered_proximity["product_a"]) | set(clustered_proximity["product_b"])
    assert set(backbone.nodes()) == referenced
    assert "9999" not in backbone


def test_node_attributes_copied(clustered_proximity, clustered_metadata):
    backbone = extract_backbone_from_table(clustered_proximity, clustered_metadata)
    data = backbone.nodes["0100"]
    assert data["name"] == "Textiles product 0"
    assert data["section"] == "Textiles"
    assert isinstance(data["pci"], float)


def test_graph_metadata_recorded(clustered_proximity):
    backbone = extract_backbone_from_table(clustered_proximity, threshold=0.55)
    n = backbone.number_of_nodes()
    assert backbone.graph["threshold"] == pytest.approx(0.55)
    assert backbone.graph["mst_edges"] == n - 1


# ── Threshold extremes ───────────────────────────────────────────────────────

def test_threshold_above_max_equals_spanning_tree(clustered_proximity):
    G = build_proximity_graph(clustered_proximity)
    backbone = extract_backbone(G, threshold=1.0)
    assert edge_set(backbone) == edge_set(maximum_spanning_tree(G))
    assert backbone.number_of_edges() == G.number_of_nodes() - 1


def test_threshold_below_min_equals_full_graph(clustered_proximity):
    G = build_proximity_graph(clustered_proximity)
    backbone = extract_backbone(G, threshold=0.0)
    assert edge_set(backbone) == edge_set(G)


def test_threshold_zero_keeps_zero_proximity_edges():
    """At threshold 0 the backbone is the full graph, proximity-0 pairs included."""
    table = pd.DataFrame({
        "product_a": ["A", "B", "A"],
        "product_b": ["B", "C", "C"],
        "proximity": [0.9, 0.6, 0.0],
    })
    backbone = extract_backbone_from_table(table, threshold=0.0)
    assert edge_set(backbone) == {frozenset("AB"), frozenset("BC"), frozenset("AC")}
    assert backbone.edges["A", "C"]["in_threshold"] is True
    assert backbone.edges["A", "C"]["in_mst"] is False


def test_threshold_is_strict(abc_proximity):
    """An edge exactly at the cutoff is not part of the threshold subgraph."""
    G = build_proximity_graph(abc_proximity)
    high = threshold_subgraph(G, 0.6)
    assert edge_set(high) == {frozenset("AB")}
    assert set(high.nodes()) == {"A", "B", "C"}


# ── Monotonicity ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("t_low,t_high", [(0.2, 0.5), (0.5, 0.55), (0.55, 0.8), (0.0, 1.0)])
def test_non_tree_edges_shrink_with_threshold(clustered_proximity, t_low, t_high):
    G = build_proximity_graph(clustered_proximity)
    low = extract_backbone(G, t_low)
    high = extract_backbone(G, t_high)
    assert non_tree_edges(high) <= non_tree_edges(low)
    assert edge_set(high) <= edge_set(low)


# ── Weights ──────────────────────────────────────────────────────────────────

def test_single_source_edge_keeps_value(clustered_proximity):
    G = build_proximity_graph(clustered_proximity)
    backbone = extract_backbone(G, 0.55)
    for u, v, d in backbone.edges(data=True):
        if d["in_mst"] != d["in_threshold"]:
            assert d["weight"] == pytest.approx(G.edges[u, v]["weight"])
        assert d["distance"] == pytest.approx(1.0 - d["weight"])


def test_both_sources_weight_is_mean(monkeypatch):
    """When the two sources disagree the combined weight is their mean."""
    G = nx.Graph()
    G.add_edge("A", "B", weight=0.9, distance=0.1)
    G.add_edge("B", "C", weight=0.3, distance=0.7)
    G.add_edge("A", "C", weight=0.2, distance=0.8)
    # A tree source that carries a different reading of A-B than G itself.
    tree = maximum_spanning_tree(G)
    tree.edges["A", "B"]["weight"] = 0.7
    monkeypatch.setattr(backbone_module, "maximum_spanning_tree", lambda _G: tree)

    backbone = backbone_module.extract_backbone(G, 0.55)

    assert backbone.edges["A", "B"]["weight"] == pytest.approx((0.7 + 0.9) / 2)
    assert backbone.edges["B", "C"]["weight"] == pytest.approx(0.3)
    assert backbone.edges["B", "C"]["in_threshold"] is False


# ── Idempotence ──────────────────────────────────────────────────────────────

def test_dedup_idempotent_extraction(messy_proximity):
    clean = deduplicate_edges(messy_proximity)
    once = extract_backbone_from_table(clean, threshold=0.55)
    twice = extract_backbone_from_table(deduplicate_edges(clean), threshold=0.55)
    assert set(once.nodes()) == set(twice.nodes())
    assert edge_set(once) == edge_set(twice)
    for u, v, d in once.edges(data=True):
        assert twice.edges[u, v]["weight"] == d["weight"]


def test_messy_and_clean_agree(messy_proximity, clustered_proximity):
    """Duplicates and self pairs do not change the backbone (first value wins)."""
    messy = extract_backbone_from_table(messy_proximity, threshold=0.55)
    clean = extract_backbone_from_table(clustered_proximity, threshold=0.55)
    assert edge_set(messy) == edge_set(clean)


# ── Degenerate inputs ────────────────────────────────────────────────────────

def test_empty_table():
    empty = pd.DataFrame(columns=["product_a", "product_b", "proximity"])
    backbone = extract_backbone_from_table(empty)
    assert backbone.number_of_nodes() == 0
    assert backbone.number_of_edges() == 0


def test_disconnected_input_gives_forest(caplog):
    table = pd.DataFrame({
        "product_a": ["A", "C"],
        "product_b": ["B", "D"],
        "proximity": [0.7, 0.8],
    })
    with caplog.at_level("WARNING"):
        backbone = extract_backbone_from_table(table, threshold=0.55)
    assert nx.number_connected_components(backbone) == 2
    assert "disconnected" in caplog.text


def test_spanning_tree_view(clustered_proximity):
    backbone = extract_backbone_from_table(clustered_proximity, threshold=0.55)
    tree = spanning_tree_view(backbone)
    assert set(tree.nodes()) == set(backbone.nodes())
    assert nx.is_tree(tree)
