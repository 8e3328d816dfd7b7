"""
product_space/viz/choropleth.py — World choropleth maps of country indicators.

Joins a numeric country indicator (ECI, GDP per capita, ...) onto Plotly's
built-in Natural Earth country polygons by ISO-3 code. Independent of the
graph and of the treemap.
"""

import logging
from typing import Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

logger = logging.getLogger(__name__)


def latest_year(indicators: pd.DataFrame, year_column: str = "year") -> pd.DataFrame:
    """Keep only the most recent year of a country-year table (no-op without a year column)."""
    if year_column not in indicators.columns or len(indicators) == 0:
        return indicators
    return indicators[indicators[year_column] == indicators[year_column].max()]


def build_choropleth_figure(
    table: pd.DataFrame,
    value_column: str,
    location_column: str = "location",
    hover_name: Optional[str] = "name",
    year: Optional[int] = None,
    color_scale: str = "Viridis",
    title: str = "",
) -> go.Figure:
    """
    Choropleth of one numeric column over world countries.

    Args:
        table:           One row per country (per year).
        value_column:    Numeric column mapped to colour.
        location_column: ISO-3 country code column.
        hover_name:      Column shown as the hover title, if present.
        year:            Restrict to this year; None keeps the latest year.
                         Ignored when the table has no `year` column.
        color_scale:     Any Plotly continuous colour scale name.
        title:           Figure title.

    Returns:
        Plotly Figure (no IO).
    """
    if year is not None and "year" in table.columns:
        data = table[table["year"] == year]
    else:
        data = latest_year(table)

    data = data.copy()
    data[value_column] = pd.to_numeric(data[value_column], errors="coerce")
    data[location_column] = data[location_column].astype(str).str.upper()
    valid = data.dropna(subset=[value_column])
    if len(valid) < len(data):
        logger.info("Choropleth: %d countries without %s are left blank.",
                    len(data) - len(valid), value_column)

    fig = px.choropleth(
        valid,
        locations=location_column,
        locationmode="ISO-3",
        color=value_column,
        hover_name=hover_name if hover_name in valid.columns else None,
        color_continuous_scale=color_scale,
        projection="natural earth",
        title=title or value_column,
    )
    fig.update_layout(margin={"t": 50, "l": 0, "r": 0, "b": 0})

    logger.info("Choropleth built: %d countries coloured by %s.", len(valid), value_column)
    return fig
