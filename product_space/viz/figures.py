"""
product_space/viz/figures.py — Unified figure generation for a pipeline run.

Generates every product space figure from a PipelineResult. All data is read
from the result object; the only IO is writing the figures.

Usage:
    from product_space.viz.figures import generate_all_figures
    paths = generate_all_figures(result, output_dir="output/figures")
    # paths = {"product_space.png": "/abs/path/...", ...}
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

from product_space.config import DEFAULT_CONFIG, ProductSpaceConfig
from product_space.viz.annotations import country_export_values
from product_space.viz.choropleth import build_choropleth_figure
from product_space.viz.network_map import render_product_space
from product_space.viz.plotly_graph import build_plotly_figure, save_figure
from product_space.viz.treemap import country_export_treemap

if TYPE_CHECKING:
    from product_space.pipeline import PipelineResult

logger = logging.getLogger(__name__)

# PCI rarely leaves [-3, 3]; clamping keeps a few extreme products from
# dominating the marker scale.
PCI_SIZE_LIMITS = (-3.0, 3.0)


def _record(paths: dict[str, str], path: Optional[str]) -> None:
    if path:
        paths[os.path.basename(path)] = path


def generate_all_figures(
    result: "PipelineResult",
    output_dir: str,
    year: Optional[int] = None,
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> dict[str, str]:
    """
    Generate all figures for a pipeline run.

    Figures:
        product_space.png            communities + PCI size
        product_space.html           interactive version
        product_space_<LOC>.png      RCA products of <LOC> (alpha channel)
        umap_product_space.png       UMAP embedding coloured by community
        treemap_<LOC>.html           export basket of <LOC> (skipped if empty)
        eci_choropleth.html          world map of ECI

    Args:
        result:     PipelineResult from run_full_pipeline().
        output_dir: Directory to save files into (created if needed).
        year:       Year filter for country figures.
        config:     Rendering constants.

    Returns:
        Dict mapping filename → absolute path for each generated figure.
    """
    os.makedirs(output_dir, exist_ok=True)
    paths: dict[str, str] = {}

    size_attr = "pci" if any("pci" in d for _, d in result.backbone.nodes(data=True)) else None

    # --- Network figures ---
    if result.positions:
        _record(paths, render_product_space(
            result.backbone, result.positions,
            os.path.join(output_dir, "product_space.png"),
            categories=result.partition,
            size_attr=size_attr,
            size_limits=PCI_SIZE_LIMITS if size_attr else None,
            title="Product Space — Louvain communities",
            config=config,
        ))
        fig = build_plotly_figure(
            result.backbone, result.positions, result.partition,
            size_attr=size_attr, title="Product Space", config=config,
        )
        _record(paths, save_figure(fig, os.path.join(output_dir, "product_space.html")))

    if result.positions and result.location and result.rca_presence:
        _record(paths, render_product_space(
            result.backbone, result.positions,
            os.path.join(output_dir, f"product_space_{result.location}.png"),
            categories=result.partition,
            size_attr=size_attr,
            presence=result.rca_presence,
            size_limits=PCI_SIZE_LIMITS if size_attr else None,
            title=f"Product Space — {result.location} exports with RCA ≥ {config.rca_threshold:g}",
            config=config,
        ))

    if result.umap_positions:
        _record(paths, render_product_space(
            result.G_full, result.umap_positions,
            os.path.join(output_dir, "umap_product_space.png"),
            categories=result.partition,
            size_attr=size_attr,
            size_limits=PCI_SIZE_LIMITS if size_attr else None,
            title=f"Product Space — UMAP (n_neighbors={config.umap_n_neighbors})",
            draw_edges=False,
            config=config,
        ))

    # --- Tabular figures ---
    if result.country_exports is not None and result.location:
        basket = country_export_values(result.country_exports, result.location, year)
        if any(value > 0 for value in basket.values()):
            fig = country_export_treemap(result.country_exports, result.metadata, result.location, year)
            _record(paths, save_figure(fig, os.path.join(output_dir, f"treemap_{result.location}.html")))
        else:
            logger.warning("No exports for %s; treemap_%s.html not written.",
                           result.location, result.location)

    if result.country_indicators is not None and len(result.country_indicators) > 0:
        fig = build_choropleth_figure(
            result.country_indicators, "eci", year=year,
            title="Economic Complexity Index",
        )
        _record(paths, save_figure(fig, os.path.join(output_dir, "eci_choropleth.html")))

    logger.info("Generated %d figures in %s", len(paths), output_dir)
    return paths
