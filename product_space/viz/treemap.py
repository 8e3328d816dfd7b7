"""
product_space/viz/treemap.py — Export composition treemaps (Plotly).

Hierarchical area plot of a value column, typically a country's exports
broken down by product section and product. Independent of the graph.
"""

import logging
from typing import Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

logger = logging.getLogger(__name__)


def build_treemap_figure(
    table: pd.DataFrame,
    path_columns: list[str],
    value_column: str,
    color_column: Optional[str] = None,
    root_label: Optional[str] = None,
    title: str = "",
) -> go.Figure:
    """
    Build a treemap from a flat value/category table.

    Args:
        table:        One row per leaf.
        path_columns: Hierarchy from outermost to leaf, e.g. ["section", "name"].
        value_column: Non-negative area value. Rows with missing or
                      non-positive values are dropped.
        color_column: Optional column for colour (categorical or numeric).
                      Defaults to the outermost path level.
        root_label:   Optional single root box wrapping the whole hierarchy.
        title:        Figure title.

    Returns:
        Plotly Figure (no IO).
    """
    data = table.copy()
    data[value_column] = pd.to_numeric(data[value_column], errors="coerce")
    kept = data[data[value_column] > 0].copy()
    if len(kept) < len(data):
        logger.debug("Treemap: dropped %d rows with missing/non-positive values.", len(data) - len(kept))

    # Plotly rejects None in path columns below a non-None level.
    for column in path_columns:
        kept[column] = kept[column].fillna("Other").astype(str)

    path = ([px.Constant(root_label)] if root_label else []) + list(path_columns)
    fig = px.treemap(
        kept,
        path=path,
        values=value_column,
        color=color_column or path_columns[0],
        title=title,
    )
    fig.update_traces(root_color="lightgrey")
    fig.update_layout(margin={"t": 50, "l": 10, "r": 10, "b": 10})

    logger.info("Treemap built: %d leaves, total %s = %.4g.",
                len(kept), value_column, kept[value_column].sum())
    return fig


def country_export_treemap(
    exports: pd.DataFrame,
    metadata: pd.DataFrame,
    location: str,
    year: Optional[int] = None,
) -> go.Figure:
    """
    Treemap of one country's export basket: section → product.

    Args:
        exports:  DataFrame [location, product, export_value, rca, (year)].
        metadata: DataFrame [code, name, (section)].
        location: Country code (case-insensitive).
        year:     Restrict to one year when exports carries a year column.

    Returns:
        Plotly Figure.
    """
    rows = exports[exports["location"].str.upper() == location.upper()]
    if year is not None and "year" in rows.columns:
        rows = rows[rows["year"] == year]

    basket = rows.groupby("product", as_index=False)["export_value"].sum()
    names = metadata.drop_duplicates(subset="code").set_index("code")
    basket["name"] = basket["product"].map(names["name"]).fillna(basket["product"])
    if "section" in names.columns:
        basket["section"] = basket["product"].map(names["section"])
    else:
        basket["section"] = "All products"

    label = f"{location.upper()} {year}" if year is not None else location.upper()
    return build_treemap_figure(
        basket,
        path_columns=["section", "name"],
        value_column="export_value",
        root_label=label,
        title=f"What did {label} export?",
    )
