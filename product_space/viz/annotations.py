"""
product_space/viz/annotations.py — Per-node attributes from country exports.

These helpers turn the country × product export table into per-product
mappings that the renderers use as visual channels, typically the alpha
channel ("does this country export the product with comparative advantage?").
They never touch the graph.
"""

import logging
from typing import Optional

import pandas as pd

from product_space.config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def _country_rows(
    exports: pd.DataFrame,
    location: str,
    year: Optional[int] = None,
) -> pd.DataFrame:
    rows = exports[exports["location"].str.upper() == location.upper()]
    if year is not None and "year" in rows.columns:
        rows = rows[rows["year"] == year]
    if len(rows) == 0:
        logger.warning("No export records for location=%s year=%s.", location, year)
    return rows


def country_rca_presence(
    exports: pd.DataFrame,
    location: str,
    threshold: float = DEFAULT_CONFIG.rca_threshold,
    year: Optional[int] = None,
) -> dict[str, bool]:
    """
    Revealed comparative advantage flags for one country.

    Args:
        exports:   DataFrame [location, product, export_value, rca, (year)].
        location:  Country code, case-insensitive (e.g. "COL").
        threshold: rca >= threshold marks a competitive export.
        year:      Restrict to one year when the table has a year column.

    Returns:
        Dict product → bool. Products the country does not export at all
        are absent (and therefore treated as "no advantage" by renderers).
    """
    rows = _country_rows(exports, location, year)
    flags = rows.groupby("product")["rca"].max() >= threshold
    return {str(product): bool(flag) for product, flag in flags.items()}


def country_export_values(
    exports: pd.DataFrame,
    location: str,
    year: Optional[int] = None,
) -> dict[str, float]:
    """Total export value per product for one country."""
    rows = _country_rows(exports, location, year)
    totals = rows.groupby("product")["export_value"].sum()
    return {str(product): float(value) for product, value in totals.items()}
