"""
product_space/viz/plotly_graph.py — Interactive Plotly product space.

Generates a zoomable HTML version of the product space map, and the shared
figure writer used by the treemap and choropleth renderers.

Visual encoding (same channels as the static map):
    - Node size:   numeric attribute, clamped to config.node_size_range
                   (converted from marker area to Plotly diameter)
    - Node color:  community id (one trace per community, so the legend
                   toggles whole communities)
    - Opacity:     presence flag; absent products are fully transparent
    - Hover:       code, name, community, PCI, export value
"""

import logging
import math
import os
from typing import Optional

import networkx as nx

from product_space.config import DEFAULT_CONFIG, ProductSpaceConfig
from product_space.viz.network_map import node_visuals

logger = logging.getLogger(__name__)

# ── Optional Plotly dependency ─────────────────────────────────────────────────
try:
    import plotly.graph_objects as go
    HAS_PLOTLY = True
except ImportError:
    go = None
    HAS_PLOTLY = False

_EDGE_COLORS = {
    True: "rgba(110, 125, 140, 0.55)",   # spanning tree
    False: "rgba(170, 185, 200, 0.35)",  # above threshold only
}
_EDGE_WIDTHS = {
    True: 1.2,
    False: 0.7,
}


def _hover_text(node, data: dict, community) -> str:
    pci = data.get("pci")
    value = data.get("export_value")
    return (
        f"<b>{data.get('name', node)}</b><br>"
        f"Code: {node}<br>"
        f"Community: {community if community is not None else 'N/A'}<br>"
        f"PCI: {f'{pci:.2f}' if isinstance(pci, (int, float)) else 'N/A'}<br>"
        f"Export value: {f'{value:,.0f}' if isinstance(value, (int, float)) else 'N/A'}"
    )


def build_plotly_figure(
    G: nx.Graph,
    positions: dict,
    partition: Optional[dict] = None,
    size_attr: Optional[str] = None,
    presence: Optional[dict] = None,
    title: str = "Product Space",
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> "go.Figure":
    """
    Build an interactive Plotly figure of a laid-out product space.

    Args:
        G:          Backbone graph.
        positions:  node → (x, y).
        partition:  node → community id (colour + legend groups).
        size_attr:  Node attribute (or node → number mapping) for marker size.
        presence:   node → bool for the opacity channel.
        title:      Figure title.
        config:     Rendering constants.

    Returns:
        Plotly Figure object (no IO, no files written).

    Raises:
        ImportError: If plotly is not installed.
    """
    if not HAS_PLOTLY:
        raise ImportError("plotly is required: pip install plotly")

    drawable = G.subgraph([n for n in G if n in positions])
    visuals = node_visuals(drawable, partition, size_attr, presence, config=config)

    # ── Edge traces, split by spanning-tree membership ────────────────────────
    edge_traces = []
    for in_mst in (False, True):
        x_coords = []
        y_coords = []
        for u, v, data in drawable.edges(data=True):
            if bool(data.get("in_mst")) != in_mst:
                continue
            x0, y0 = positions[u]
            x1, y1 = positions[v]
            x_coords += [x0, x1, None]
            y_coords += [y0, y1, None]
        if not x_coords:
            continue
        edge_traces.append(go.Scatter(
            x=x_coords,
            y=y_coords,
            mode="lines",
            line={"width": _EDGE_WIDTHS[in_mst], "color": _EDGE_COLORS[in_mst]},
            name="spanning tree" if in_mst else "high proximity",
            hoverinfo="none",
        ))

    # ── Node traces, one per community ────────────────────────────────────────
    groups: dict = {}
    for i, node in enumerate(visuals.nodes):
        community = partition.get(node) if partition else None
        groups.setdefault(community, []).append(i)

    node_traces = []
    for community in sorted(groups, key=lambda c: (c is None, c if c is not None else 0)):
        idx = groups[community]
        node_traces.append(go.Scatter(
            x=[positions[visuals.nodes[i]][0] for i in idx],
            y=[positions[visuals.nodes[i]][1] for i in idx],
            mode="markers",
            name=f"community {community}" if community is not None else "products",
            marker={
                # scatter sizes are areas (points^2); Plotly wants a diameter
                "size": [2.0 * math.sqrt(visuals.sizes[i] / math.pi) for i in idx],
                "color": visuals.colors[idx[0]],
                "opacity": [visuals.alphas[i] for i in idx],
                "line": {"color": "white", "width": 0.5},
            },
            text=[_hover_text(visuals.nodes[i], drawable.nodes[visuals.nodes[i]], community)
                  for i in idx],
            hovertemplate="%{text}<extra></extra>",
        ))

    all_traces = edge_traces + node_traces
    fig = go.Figure(
        data=all_traces,
        layout=go.Layout(
            title=title,
            showlegend=True,
            hovermode="closest",
            xaxis={"showgrid": False, "zeroline": False, "showticklabels": False},
            yaxis={"showgrid": False, "zeroline": False, "showticklabels": False,
                   "scaleanchor": "x"},
            margin={"l": 20, "r": 20, "t": 60, "b": 20},
            paper_bgcolor="white",
            plot_bgcolor="white",
        ),
    )

    logger.info(
        "Plotly figure built: %d nodes, %d edges, %d traces.",
        drawable.number_of_nodes(),
        drawable.number_of_edges(),
        len(all_traces),
    )
    return fig


def save_figure(
    fig: "go.Figure",
    output_path: str,
) -> str:
    """
    Write a Plotly figure to disk.

    `.html` files are self-contained pages (plotly.js from CDN); any other
    suffix (.png, .svg, .pdf, ...) is a static image rendered by kaleido.

    Returns:
        Absolute path of the written file.

    Raises:
        ImportError: plotly (or kaleido, for static images) is not installed.
    """
    if not HAS_PLOTLY:
        raise ImportError("plotly is required: pip install plotly")

    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    if output_path.lower().endswith(".html"):
        fig.write_html(output_path, include_plotlyjs="cdn")
    else:
        try:
            import kaleido  # noqa: F401
        except ImportError as exc:
            raise ImportError(
                "kaleido is required for static Plotly images: pip install kaleido"
            ) from exc
        fig.write_image(output_path)

    logger.info("Plotly figure saved to: %s", output_path)
    return os.path.abspath(output_path)
