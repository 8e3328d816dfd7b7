"""
product_space/storage/exchange.py — Graph and layout persistence.

The final, explicit persistence step of a run:

    export_graph   — backbone graph → GEXF (default) or GraphML, with optional
                     layout coordinates and community ids as node attributes
    load_graph     — read either format back
    export_layout  — node table (code, name, x, y, community, indicators) → CSV

Neither interchange format can hold None attribute values, so they are
dropped on export. The input graph is never mutated; attributes are
attached to a copy.
"""

import logging
import os
from typing import Optional

import networkx as nx
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

_WRITERS = {
    ".gexf": nx.write_gexf,
    ".graphml": nx.write_graphml,
}
_READERS = {
    ".gexf": nx.read_gexf,
    ".graphml": nx.read_graphml,
}


def _format_for(path: str) -> str:
    suffix = os.path.splitext(path)[1].lower()
    if suffix not in _WRITERS:
        raise ValueError(f"Unsupported graph format '{suffix}' (use .gexf or .graphml): {path}")
    return suffix


def _clean(value):
    """Exchange formats accept str / int / float / bool only."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _exportable(
    G: nx.Graph,
    positions: Optional[dict],
    partition: Optional[dict],
) -> nx.Graph:
    H = nx.Graph()
    for node, data in G.nodes(data=True):
        attrs = {k: _clean(v) for k, v in data.items()}
        if positions is not None and node in positions:
            attrs["x"], attrs["y"] = (float(c) for c in positions[node])
        if partition is not None and node in partition:
            attrs["community"] = int(partition[node])
        H.add_node(str(node), **{k: v for k, v in attrs.items() if v is not None})

    for u, v, data in G.edges(data=True):
        attrs = {k: _clean(val) for k, val in data.items()}
        H.add_edge(str(u), str(v), **{k: val for k, val in attrs.items() if val is not None})

    for key, value in G.graph.items():
        cleaned = _clean(value)
        if cleaned is not None:
            H.graph[key] = cleaned
    return H


def export_graph(
    G: nx.Graph,
    path: str,
    positions: Optional[dict] = None,
    partition: Optional[dict] = None,
) -> str:
    """
    Write G to a standard attributed-graph interchange file.

    Args:
        G:         Graph to write (not mutated).
        path:      Output path; `.gexf` or `.graphml` selects the format.
        positions: Optional node → (x, y), stored as `x` / `y` node attributes.
        partition: Optional node → community id, stored as `community`.

    Returns:
        Absolute path of the written file.

    Raises:
        ValueError: Unsupported suffix.
    """
    fmt = _format_for(path)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    H = _exportable(G, positions, partition)
    _WRITERS[fmt](H, path)
    logger.info(
        "Graph exported to %s (%d nodes, %d edges).",
        path, H.number_of_nodes(), H.number_of_edges(),
    )
    return os.path.abspath(path)


def load_graph(path: str) -> nx.Graph:
    """Read a graph written by export_graph(). Returns an undirected nx.Graph."""
    fmt = _format_for(path)
    G = _READERS[fmt](path)
    if G.is_directed():
        G = G.to_undirected()

    if fmt == ".gexf":
        # The GEXF reader adds a node label (the id, unless one was written)
        # and an edge id; neither is part of the exported attributes.
        for node, data in G.nodes(data=True):
            if str(data.get("label")) == str(node):
                del data["label"]
        for _, _, data in G.edges(data=True):
            data.pop("id", None)

    logger.info("Graph loaded from %s (%d nodes, %d edges).", path, G.number_of_nodes(), G.number_of_edges())
    return nx.Graph(G)


def layout_table(
    positions: dict,
    G: Optional[nx.Graph] = None,
    partition: Optional[dict] = None,
) -> pd.DataFrame:
    """
    Node table for a layout: code, name, x, y, community plus any numeric
    node attributes (pci, export_value) found on G.
    """
    rows = []
    for node, (x, y) in positions.items():
        data = G.nodes[node] if G is not None and node in G else {}
        row = {"code": node, "name": data.get("name", str(node)), "x": float(x), "y": float(y)}
        if partition is not None:
            row["community"] = partition.get(node)
        for attr in ("section", "pci", "export_value"):
            if attr in data:
                row[attr] = data[attr]
        rows.append(row)
    return pd.DataFrame(rows)


def export_layout(
    positions: dict,
    path: str,
    G: Optional[nx.Graph] = None,
    partition: Optional[dict] = None,
) -> str:
    """Persist a layout alongside node metadata as CSV. Returns the absolute path."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    df = layout_table(positions, G, partition)
    df.to_csv(path, index=False)
    logger.info("Layout exported to %s (%d nodes).", path, len(df))
    return os.path.abspath(path)
