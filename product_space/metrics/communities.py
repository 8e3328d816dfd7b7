"""
product_space/metrics/communities.py — Louvain community detection.

Groups densely interconnected products of the backbone graph into
communities by modularity maximisation (Louvain, as exposed by NetworkX's
nx.community.louvain_communities). The number of communities is chosen by
the algorithm; no target count is given.

Community ids are renumbered by size (0 = largest community) so that colour
assignments are stable across runs whenever the partition itself is. Louvain
breaks ties randomly; pass a fixed seed for reproducible partitions.
"""

import logging
from typing import Optional

import networkx as nx
import pandas as pd

from product_space.config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def detect_communities(
    G: nx.Graph,
    seed: Optional[int] = DEFAULT_CONFIG.community_seed,
    resolution: float = DEFAULT_CONFIG.community_resolution,
    weight: Optional[str] = "weight",
) -> dict[str, int]:
    """
    Partition every node of G into exactly one community.

    Args:
        G:          Backbone graph (undirected). Edge `weight` = proximity.
        seed:       Louvain RNG seed. None → different tie-breaking per run.
        resolution: Louvain resolution; > 1 favours smaller communities.
        weight:     Edge attribute used as edge strength (None = unweighted).

    Returns:
        partition: Dict mapping node → community id (int, 0 = largest).
                   Total over G's nodes; isolated nodes form singleton
                   communities.
    """
    if G.number_of_nodes() == 0:
        return {}

    communities = nx.community.louvain_communities(
        G, weight=weight, resolution=resolution, seed=seed
    )
    # Largest first; ties broken by smallest member so ids do not depend on
    # set iteration order.
    ordered = sorted(communities, key=lambda c: (-len(c), min(str(n) for n in c)))

    partition: dict[str, int] = {}
    for community_id, members in enumerate(ordered):
        for node in members:
            partition[node] = community_id

    logger.info(
        "Louvain partition: %d communities over %d nodes (largest=%d).",
        len(ordered),
        len(partition),
        len(ordered[0]) if ordered else 0,
    )
    return partition


def community_modularity(
    G: nx.Graph,
    partition: dict[str, int],
    weight: Optional[str] = "weight",
) -> float:
    """Newman modularity of a node → community mapping on G."""
    if G.number_of_edges() == 0:
        return 0.0
    groups: dict[int, set] = {}
    for node, community_id in partition.items():
        groups.setdefault(community_id, set()).add(node)
    return float(nx.community.modularity(G, groups.values(), weight=weight))


def community_summary(
    G: nx.Graph,
    partition: dict[str, int],
    top_n: int = 3,
) -> pd.DataFrame:
    """
    One row per community: size, mean PCI and the largest products by export.

    Columns:
        community, size, mean_pci, top_products

    Missing node attributes (pci, export_value) are tolerated: mean_pci is NaN
    when no member carries a PCI, and top_products falls back to node order.
    """
    rows = []
    for node, community_id in partition.items():
        data = G.nodes[node] if node in G else {}
        rows.append({
            "community": community_id,
            "code": node,
            "name": data.get("name", str(node)),
            "pci": data.get("pci"),
            "export_value": data.get("export_value", 0.0) or 0.0,
        })

    if not rows:
        return pd.DataFrame(columns=["community", "size", "mean_pci", "top_products"])

    df = pd.DataFrame(rows)
    df["pci"] = pd.to_numeric(df["pci"], errors="coerce")

    summary = []
    for community_id, members in df.groupby("community", sort=True):
        top = members.sort_values("export_value", ascending=False, kind="stable").head(top_n)
        summary.append({
            "community": int(community_id),
            "size": len(members),
            "mean_pci": members["pci"].mean(),
            "top_products": ", ".join(top["name"].astype(str)),
        })
    return pd.DataFrame(summary)
