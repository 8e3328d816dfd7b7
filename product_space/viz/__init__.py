"""
product_space.viz — Rendering of product space maps, treemaps and choropleths.

Modules:
    network_map   — Static matplotlib product space (colour = community,
                    size = numeric attribute, alpha = presence flag).
    plotly_graph  — Interactive Plotly product space + shared figure writer.
    treemap       — Export composition treemaps (plotly.express).
    choropleth    — World maps of country indicators (plotly.express).
    annotations   — Per-product RCA flags / export values for one country.

The three render paths (network, treemap, choropleth) share no state.
"""

from product_space.viz.network_map import render_product_space
