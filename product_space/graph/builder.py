"""
product_space/graph/builder.py — NetworkX graph construction layer.

Builds the complete weighted proximity graph from the (deduplicated) proximity
table and decorates nodes with product metadata.

Edge attributes:
    weight    — proximity in [0, 1] (similarity; larger = closer)
    distance  — 1 - proximity (used by the spanning tree and layouts)

Node attributes (when metadata is supplied):
    name, pci, export_value, section
"""

import logging
from typing import Optional

import networkx as nx
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def deduplicate_edges(proximity: pd.DataFrame) -> pd.DataFrame:
    """
    Remove self pairs and collapse duplicate pairs, keeping the first-seen value.

    A pair is identified regardless of orientation: (a, b) and (b, a) are the
    same undirected edge. Row order of the survivors is preserved.

    Args:
        proximity: DataFrame [product_a, product_b, proximity].

    Returns:
        A new DataFrame with the same columns and a fresh RangeIndex.
    """
    df = proximity[proximity["product_a"] != proximity["product_b"]]
    a = df["product_a"].astype(str)
    b = df["product_b"].astype(str)
    lo = np.where(a <= b, a, b)
    hi = np.where(a <= b, b, a)
    keys = pd.Series(list(zip(lo, hi)), index=df.index)
    df = df[~keys.duplicated(keep="first")].reset_index(drop=True)

    logger.debug(
        "Deduplicated proximity table: %d rows -> %d unique pairs (%d self pairs dropped).",
        len(proximity),
        len(df),
        int((proximity["product_a"] == proximity["product_b"]).sum()),
    )
    return df


def build_proximity_graph(
    proximity: pd.DataFrame,
    metadata: Optional[pd.DataFrame] = None,
) -> nx.Graph:
    """
    Build the complete weighted proximity graph.

    Args:
        proximity: DataFrame [product_a, product_b, proximity]. Self pairs and
                   duplicates are removed first (see deduplicate_edges).
        metadata:  Optional DataFrame [code, name, (pci), (export_value),
                   (section)]. Rows for products absent from the proximity
                   table are ignored; referenced products without a metadata
                   row get name = code.

    Returns:
        G: undirected nx.Graph. Node set = products referenced by at least one
           edge. G.graph['source'] = 'proximity_table'.
    """
    edges = deduplicate_edges(proximity)

    G = nx.Graph()
    for a, b, phi in edges[["product_a", "product_b", "proximity"]].itertuples(index=False):
        phi = float(phi)
        G.add_edge(a, b, weight=phi, distance=1.0 - phi)

    # ── Node metadata ─────────────────────────────────────────────────────────
    described = 0
    if metadata is not None and len(metadata) > 0:
        attr_columns = [c for c in ("name", "pci", "export_value", "section") if c in metadata.columns]
        for row in metadata.itertuples(index=False):
            code = getattr(row, "code")
            if code not in G:
                continue
            for column in attr_columns:
                value = getattr(row, column)
                if value is None or (isinstance(value, float) and np.isnan(value)):
                    continue
                G.nodes[code][column] = value.item() if isinstance(value, np.generic) else value
            described += 1

    for node, data in G.nodes(data=True):
        data.setdefault("name", str(node))

    undescribed = G.number_of_nodes() - described
    if metadata is not None and undescribed:
        logger.warning("%d products in the proximity table have no metadata row.", undescribed)

    G.graph["source"] = "proximity_table"

    logger.info(
        "Proximity graph built: %d nodes, %d edges.",
        G.number_of_nodes(),
        G.number_of_edges(),
    )
    return G


def proximity_matrix(proximity: pd.DataFrame) -> pd.DataFrame:
    """
    Pivot the proximity table into a square symmetric similarity matrix.

    Diagonal entries are 1.0 (a product is maximally close to itself);
    pairs absent from the table are 0.0. Rows and columns share the same
    sorted product order.

    Args:
        proximity: DataFrame [product_a, product_b, proximity].

    Returns:
        DataFrame indexed and columned by product code.
    """
    edges = deduplicate_edges(proximity)
    products = sorted(set(edges["product_a"]) | set(edges["product_b"]))
    index = {p: i for i, p in enumerate(products)}

    matrix = np.zeros((len(products), len(products)), dtype=float)
    rows = edges["product_a"].map(index).to_numpy()
    cols = edges["product_b"].map(index).to_numpy()
    values = edges["proximity"].to_numpy(dtype=float)
    matrix[rows, cols] = values
    matrix[cols, rows] = values
    np.fill_diagonal(matrix, 1.0)

    return pd.DataFrame(matrix, index=products, columns=products)
