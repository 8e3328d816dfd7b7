"""
product_space/graph/backbone.py — Backbone extraction for the product space.

The complete proximity graph is far too dense to draw: every product pair has
a proximity value. The classic product space map keeps only an informative
backbone:

    (a) the maximum spanning tree — the tree over all products with the largest
        total proximity, computed as a minimum spanning tree on
        distance = 1 - proximity (Prim's algorithm). It guarantees that every
        product is connected with the fewest possible edges.
    (b) every edge whose proximity is strictly above a cutoff (0.55 in the
        reference map), which adds back the dense, high-similarity clusters.

The backbone is the union of (a) and (b). An edge produced by both sources
carries the arithmetic mean of the two contributed proximity values; an edge
produced by only one source keeps that value unchanged. Because both sources
read the same proximity value for the same pair, the mean equals the
original proximity whenever the inputs agree.

Edge attributes on the backbone:
    weight        — combined proximity
    distance      — 1 - weight
    in_mst        — edge belongs to the maximum spanning tree
    in_threshold  — edge has proximity > threshold

Guarantees: no self-loops, no parallel edges, and connected whenever the
input proximity graph is connected, regardless of the threshold.
"""

import logging
from typing import Optional

import networkx as nx
import pandas as pd

from product_space.config import DEFAULT_CONFIG
from product_space.graph.builder import build_proximity_graph

logger = logging.getLogger(__name__)


def maximum_spanning_tree(G: nx.Graph) -> nx.Graph:
    """
    Maximum-proximity spanning tree of G.

    Runs Prim's minimum spanning tree on the `distance` edge attribute
    (1 - proximity), which is the same tree as the maximum spanning tree on
    `weight`. On a disconnected graph this is a spanning forest.

    Returns:
        nx.Graph with all nodes of G and the tree edges (attributes copied).
    """
    return nx.minimum_spanning_tree(G, weight="distance", algorithm="prim")


def threshold_subgraph(G: nx.Graph, threshold: float) -> nx.Graph:
    """
    Keep only edges whose proximity is strictly greater than `threshold`.

    A threshold <= 0 keeps every edge, including proximity-0 pairs, so the
    backbone at that setting is the full graph. All nodes of G are retained,
    including those left isolated.
    """
    H = nx.Graph()
    H.add_nodes_from(G.nodes(data=True))
    H.add_edges_from(
        (u, v, d) for u, v, d in G.edges(data=True)
        if threshold <= 0.0 or d.get("weight", 0.0) > threshold
    )
    return H


def _mean_weight(*values: Optional[float]) -> float:
    present = [v for v in values if v is not None]
    return sum(present) / len(present)


def extract_backbone(
    G: nx.Graph,
    threshold: float = DEFAULT_CONFIG.proximity_threshold,
) -> nx.Graph:
    """
    Union of the maximum spanning tree and the high-proximity subgraph.

    Args:
        G:         Complete proximity graph from build_proximity_graph().
                   Edges must carry `weight` (proximity) and `distance`.
        threshold: Proximity cutoff; edges with weight > threshold are kept
                   on top of the spanning tree.

    Returns:
        backbone: nx.Graph over every node of G. Node attributes are copied.
                  backbone.graph records threshold, mst_edges, threshold_edges.

    Notes:
        - threshold >= max proximity: backbone == spanning tree.
        - threshold <= 0, or below every proximity: backbone == G (edge set).
        - If G itself is disconnected the spanning tree is a forest and the
          backbone inherits its components; a WARNING is logged.
    """
    mst = maximum_spanning_tree(G)
    high = threshold_subgraph(G, threshold)

    backbone = nx.Graph()
    backbone.add_nodes_from(G.nodes(data=True))

    # ── Union with null-safe mean of contributed weights ─────────────────────
    # Walk G's edge order so the backbone adjacency order is reproducible.
    for u, v in G.edges():
        w_mst = mst.edges[u, v]["weight"] if mst.has_edge(u, v) else None
        w_high = high.edges[u, v]["weight"] if high.has_edge(u, v) else None
        if w_mst is None and w_high is None:
            continue
        weight = _mean_weight(w_mst, w_high)
        backbone.add_edge(
            u, v,
            weight=weight,
            distance=1.0 - weight,
            in_mst=w_mst is not None,
            in_threshold=w_high is not None,
        )

    backbone.graph.update(G.graph)
    backbone.graph["threshold"] = float(threshold)
    backbone.graph["mst_edges"] = mst.number_of_edges()
    backbone.graph["threshold_edges"] = high.number_of_edges()

    if backbone.number_of_nodes() > 0 and not nx.is_connected(backbone):
        logger.warning(
            "Proximity graph is disconnected: backbone has %d components.",
            nx.number_connected_components(backbone),
        )

    logger.info(
        "Backbone extracted (threshold=%.2f): %d nodes, %d edges "
        "(%d spanning-tree, %d above threshold).",
        threshold,
        backbone.number_of_nodes(),
        backbone.number_of_edges(),
        mst.number_of_edges(),
        high.number_of_edges(),
    )
    return backbone


def extract_backbone_from_table(
    proximity: pd.DataFrame,
    metadata: Optional[pd.DataFrame] = None,
    threshold: float = DEFAULT_CONFIG.proximity_threshold,
) -> nx.Graph:
    """Build the proximity graph from a table and extract its backbone."""
    return extract_backbone(build_proximity_graph(proximity, metadata), threshold)


def spanning_tree_view(backbone: nx.Graph) -> nx.Graph:
    """
    The spanning-tree skeleton of an extracted backbone (edges with in_mst).

    Used to compute a coarse layout that seeds the full backbone layout.
    """
    tree = nx.Graph()
    tree.add_nodes_from(backbone.nodes(data=True))
    tree.add_edges_from(
        (u, v, d) for u, v, d in backbone.edges(data=True) if d.get("in_mst")
    )
    return tree
