"""
product_space/viz/network_map.py — Static product space map (matplotlib).

Visual encoding:
    - Node colour: categorical attribute, usually the Louvain community
                   (tab20 palette, grey for uncategorised nodes)
    - Node size:   numeric attribute (e.g. PCI or world export value), scaled
                   linearly and clamped to config.node_size_range
    - Node alpha:  presence flag (e.g. country has RCA >= 1); fully
                   transparent when absent. Without a presence mapping every
                   node is opaque.
    - Edges:       thin grey lines; spanning-tree edges slightly darker

The renderer is a pure function of (graph, positions, mappings) → PNG path.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
from matplotlib.colors import to_hex, to_rgba

from product_space.config import DEFAULT_CONFIG, ProductSpaceConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared palette
# ---------------------------------------------------------------------------
C_DARK = "#1A2B3C"      # near-black
C_LIGHT = "#F7F9FB"     # background tint
C_EDGE = "#B8C4CE"      # threshold edges
C_TREE = "#7D8C99"      # spanning-tree edges
C_MISSING = "#C8C8C8"   # nodes without a category

STYLE = {
    "figure.facecolor": "white",
    "axes.facecolor": C_LIGHT,
    "axes.edgecolor": C_DARK,
    "text.color": C_DARK,
    "font.family": "DejaVu Sans",
}

_PALETTE = [to_hex(c) for c in matplotlib.colormaps["tab20"].colors]


def category_color(category) -> str:
    """Stable colour for a category: tab20 by integer id, hashed otherwise."""
    if category is None:
        return C_MISSING
    if isinstance(category, (int, np.integer)):
        return _PALETTE[int(category) % len(_PALETTE)]
    return _PALETTE[sum(ord(ch) for ch in str(category)) % len(_PALETTE)]


@dataclass
class NodeVisuals:
    """Per-node visual channels, aligned with `nodes`."""

    nodes: list
    colors: list[str] = field(default_factory=list)
    sizes: list[float] = field(default_factory=list)
    alphas: list[float] = field(default_factory=list)

    def rgba(self) -> np.ndarray:
        return np.array([to_rgba(c, a) for c, a in zip(self.colors, self.alphas)])


def _numeric(value) -> Optional[float]:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return None if np.isnan(out) else out


def scale_sizes(
    values: list[Optional[float]],
    size_range: tuple[float, float],
    limits: Optional[tuple[float, float]] = None,
) -> list[float]:
    """
    Map numeric values linearly onto size_range.

    Values are clamped to `limits` (default: observed min/max) before
    scaling, so outliers cannot blow up the marker area. Missing values get
    the minimum size; a constant attribute gets the midpoint.
    """
    lo_size, hi_size = size_range
    present = [v for v in values if v is not None]
    if not present:
        return [(lo_size + hi_size) / 2.0] * len(values)

    vmin, vmax = limits if limits is not None else (min(present), max(present))
    if vmax <= vmin:
        return [(lo_size + hi_size) / 2.0 if v is not None else lo_size for v in values]

    sizes = []
    for v in values:
        if v is None:
            sizes.append(lo_size)
            continue
        t = (min(max(v, vmin), vmax) - vmin) / (vmax - vmin)
        sizes.append(lo_size + t * (hi_size - lo_size))
    return sizes


def node_visuals(
    G: nx.Graph,
    categories: Optional[dict] = None,
    size_attr: Optional[str | dict] = None,
    presence: Optional[dict] = None,
    size_limits: Optional[tuple[float, float]] = None,
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> NodeVisuals:
    """
    Compute colour, size and alpha for every node of G.

    Args:
        G:           Graph whose node order defines the output order.
        categories:  node → categorical value (e.g. community id). None →
                     every node gets the first palette colour.
        size_attr:   Node attribute name (e.g. "pci") or an explicit
                     node → number mapping. None → uniform size.
        presence:    node → bool. True → opaque, False/absent → alpha 0.
                     None → every node opaque.
        size_limits: Optional clamp bounds for the size attribute.
        config:      Supplies node_size_range.

    Returns:
        NodeVisuals with lists aligned to list(G.nodes()).
    """
    nodes = list(G.nodes())

    if categories is None:
        colors = [_PALETTE[0]] * len(nodes)
    else:
        colors = [category_color(categories.get(n)) for n in nodes]

    if size_attr is None:
        raw = [None] * len(nodes)
        sizes = [sum(config.node_size_range) / 2.0] * len(nodes)
    else:
        if isinstance(size_attr, dict):
            raw = [_numeric(size_attr.get(n)) for n in nodes]
        else:
            raw = [_numeric(G.nodes[n].get(size_attr)) for n in nodes]
        sizes = scale_sizes(raw, config.node_size_range, size_limits)

    if presence is None:
        alphas = [1.0] * len(nodes)
    else:
        alphas = [1.0 if presence.get(n, False) else 0.0 for n in nodes]

    return NodeVisuals(nodes=nodes, colors=colors, sizes=sizes, alphas=alphas)


def render_product_space(
    G: nx.Graph,
    positions: dict,
    output_path: str,
    categories: Optional[dict] = None,
    size_attr: Optional[str | dict] = None,
    presence: Optional[dict] = None,
    size_limits: Optional[tuple[float, float]] = None,
    title: str = "Product Space",
    draw_edges: bool = True,
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> str:
    """
    Draw the product space and save it as a static image.

    Args:
        G:           Backbone graph (or any graph whose nodes are in positions).
        positions:   node → (x, y), from product_space.layout.
        output_path: Image path; format follows the suffix (.png, .svg, .pdf).
        categories, size_attr, presence, size_limits: see node_visuals().
        title:       Figure title.
        draw_edges:  False for embeddings where edges carry no meaning (UMAP).
        config:      Rendering constants (size range, dpi).

    Returns:
        Absolute path of the written image.
    """
    directory = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(directory, exist_ok=True)
    plt.rcParams.update(STYLE)

    drawable = G.subgraph([n for n in G if n in positions])
    missing = G.number_of_nodes() - drawable.number_of_nodes()
    if missing:
        logger.warning("%d nodes have no position and are not drawn.", missing)

    visuals = node_visuals(drawable, categories, size_attr, presence, size_limits, config)

    fig, ax = plt.subplots(figsize=(14, 11))
    ax.set_aspect("equal")
    ax.axis("off")

    # --- Edges: threshold layer first, spanning tree on top ---
    if draw_edges and drawable.number_of_edges() > 0:
        tree_edges = [(u, v) for u, v, d in drawable.edges(data=True) if d.get("in_mst")]
        other_edges = [(u, v) for u, v, d in drawable.edges(data=True) if not d.get("in_mst")]
        if other_edges:
            nx.draw_networkx_edges(drawable, positions, edgelist=other_edges, ax=ax,
                                   edge_color=C_EDGE, width=0.5, alpha=0.6)
        if tree_edges:
            nx.draw_networkx_edges(drawable, positions, edgelist=tree_edges, ax=ax,
                                   edge_color=C_TREE, width=0.8, alpha=0.8)

    # --- Nodes ---
    if visuals.nodes:
        xy = np.array([positions[n] for n in visuals.nodes], dtype=float)
        ax.scatter(xy[:, 0], xy[:, 1], s=visuals.sizes, c=visuals.rgba(),
                   linewidths=0.3, edgecolors=[to_rgba("white", a) for a in visuals.alphas],
                   zorder=3)

    # --- Legend (one patch per category, largest categories first) ---
    if categories:
        counts: dict = {}
        for n in visuals.nodes:
            key = categories.get(n)
            counts[key] = counts.get(key, 0) + 1
        shown = sorted(counts, key=lambda k: -counts[k])[:20]
        handles = [
            mpatches.Patch(color=category_color(k), label=f"{k}  ({counts[k]})")
            for k in shown
        ]
        ax.legend(handles=handles, loc="lower right", fontsize=8, frameon=True,
                  title="Community (size)", title_fontsize=9)

    n_visible = sum(1 for a in visuals.alphas if a > 0)
    ax.set_title(
        f"{title}\n{drawable.number_of_nodes()} products · "
        f"{drawable.number_of_edges()} links · {n_visible} highlighted",
        fontsize=14, fontweight="bold", pad=14,
    )

    fig.tight_layout()
    fig.savefig(output_path, dpi=config.figure_dpi, bbox_inches="tight")
    plt.close(fig)
    logger.info("Product space map saved to: %s", output_path)
    return os.path.abspath(output_path)
