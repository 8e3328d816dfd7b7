"""
product_space/pipeline.py — Single-call pipeline orchestrator.

Provides run_full_pipeline() which executes the whole product space sequence
in dependency order and returns a PipelineResult holding every intermediate
table, graph and mapping. Every step receives its inputs as arguments and
the result object carries them forward; nothing is cached at module level.

Usage:
    from product_space.pipeline import run_full_pipeline
    result = run_full_pipeline(location="COL")
    print(result.backbone.number_of_edges())
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import networkx as nx
import pandas as pd

from product_space.config import DEFAULT_CONFIG, ProductSpaceConfig
from product_space.graph.backbone import extract_backbone
from product_space.graph.builder import build_proximity_graph
from product_space.ingestion.loader import (
    load_country_exports,
    load_country_indicators,
    load_product_metadata,
    load_proximity_table,
    restrict_metadata,
)
from product_space.layout.force import spanning_tree_seeded_layout
from product_space.metrics.communities import (
    community_modularity,
    community_summary,
    detect_communities,
)
from product_space.storage.exchange import export_graph, export_layout

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """
    Complete output of a single product space run.

    Tables and graphs are produced once and not mutated afterwards.
    """

    # Inputs
    proximity: pd.DataFrame
    metadata: pd.DataFrame

    # Graphs
    G_full: nx.Graph
    backbone: nx.Graph

    # Layouts and partition
    positions: dict[str, tuple[float, float]]
    partition: dict[str, int]
    modularity: float
    communities: pd.DataFrame

    umap_positions: dict = field(default_factory=dict)

    # Optional country branch
    country_exports: Optional[pd.DataFrame] = None
    country_indicators: Optional[pd.DataFrame] = None
    location: Optional[str] = None
    rca_presence: dict = field(default_factory=dict)

    # Artefacts written to disk
    artifact_paths: dict[str, str] = field(default_factory=dict)


def _data_path(config: ProductSpaceConfig, filename: str) -> str:
    return os.path.join(config.data_dir, filename)


def run_full_pipeline(
    config: ProductSpaceConfig = DEFAULT_CONFIG,
    location: Optional[str] = None,
    year: Optional[int] = None,
    include_umap: bool = True,
    include_country_data: bool = True,
    generate_figures: bool = True,
    output_dir: Optional[str] = None,
) -> PipelineResult:
    """
    Execute the product space pipeline in one call.

    Dependency order:
        1. Load proximity + product metadata (download on miss)
        2. Build complete proximity graph
        3. Extract backbone (MST ∪ proximity > threshold)
        4. Two-stage Kamada-Kawai layout
        5. Louvain communities
        6. (Optional) UMAP embedding of the raw proximity matrix
        7. (Optional) Country exports / indicators, RCA flags for `location`
        8. Export graph (GEXF) + layout (CSV)
        9. (Optional) Figures: product space map, UMAP map, treemap,
           choropleth, interactive HTML

    Args:
        config:               ProductSpaceConfig with all tunables and paths.
        location:             ISO-3 country to highlight (alpha channel) and
                              to draw the export treemap for.
        year:                 Year filter for country tables.
        include_umap:         Compute the UMAP embedding.
        include_country_data: Load country exports / indicators.
        generate_figures:     Render images after export.
        output_dir:           Overrides config.output_dir.

    Returns:
        PipelineResult with every intermediate and final result.

    Raises:
        DatasetDownloadError, DatasetSchemaError: input could not be loaded.
        Errors are not caught; a failure aborts the run.
    """
    output_dir = output_dir or config.output_dir
    logger.info("Product space pipeline starting (threshold=%.2f).", config.proximity_threshold)

    # ── 1. Load ───────────────────────────────────────────────────────────────
    proximity = load_proximity_table(
        _data_path(config, config.proximity_file), config.proximity_url, config
    )
    metadata = load_product_metadata(
        _data_path(config, config.products_file), config.products_url, config
    )
    metadata = restrict_metadata(metadata, proximity)
    logger.info("Phase 1/9: Loaded %d proximity rows, %d products.", len(proximity), len(metadata))

    # ── 2. Proximity graph ────────────────────────────────────────────────────
    G_full = build_proximity_graph(proximity, metadata)
    logger.info("Phase 2/9: Proximity graph — %d nodes, %d edges.",
                G_full.number_of_nodes(), G_full.number_of_edges())

    # ── 3. Backbone ───────────────────────────────────────────────────────────
    backbone = extract_backbone(G_full, config.proximity_threshold)
    logger.info("Phase 3/9: Backbone — %d edges.", backbone.number_of_edges())

    # ── 4. Layout ─────────────────────────────────────────────────────────────
    positions = spanning_tree_seeded_layout(backbone, seed=config.layout_seed, scale=config.layout_scale)
    logger.info("Phase 4/9: Layout computed for %d nodes.", len(positions))

    # ── 5. Communities ────────────────────────────────────────────────────────
    partition = detect_communities(
        backbone, seed=config.community_seed, resolution=config.community_resolution
    )
    modularity = community_modularity(backbone, partition)
    communities = community_summary(backbone, partition)
    logger.info("Phase 5/9: %d communities, modularity=%.3f.", len(communities), modularity)

    # ── 6. UMAP ───────────────────────────────────────────────────────────────
    umap_pos: dict = {}
    if include_umap:
        from product_space.layout.embedding import umap_positions
        umap_pos = umap_positions(
            proximity,
            n_neighbors=config.umap_n_neighbors,
            min_dist=config.umap_min_dist,
            random_state=config.umap_random_state,
        )
        logger.info("Phase 6/9: UMAP embedding for %d products.", len(umap_pos))
    else:
        logger.info("Phase 6/9: UMAP skipped.")

    # ── 7. Country branch ─────────────────────────────────────────────────────
    exports = indicators = None
    presence: dict = {}
    if include_country_data:
        exports = load_country_exports(
            _data_path(config, config.country_exports_file), config.country_exports_url, config
        )
        indicators = load_country_indicators(
            _data_path(config, config.country_indicators_file), config.country_indicators_url, config
        )
        if location:
            from product_space.viz.annotations import country_rca_presence
            presence = country_rca_presence(exports, location, config.rca_threshold, year)
        logger.info("Phase 7/9: Country data — %d export rows, %d indicator rows.",
                    len(exports), len(indicators))
    else:
        logger.info("Phase 7/9: Country data skipped.")

    result = PipelineResult(
        proximity=proximity,
        metadata=metadata,
        G_full=G_full,
        backbone=backbone,
        positions=positions,
        partition=partition,
        modularity=modularity,
        communities=communities,
        umap_positions=umap_pos,
        country_exports=exports,
        country_indicators=indicators,
        location=location.upper() if location else None,
        rca_presence=presence,
    )

    # ── 8. Export ─────────────────────────────────────────────────────────────
    result.artifact_paths["backbone.gexf"] = export_graph(
        backbone, os.path.join(output_dir, "backbone.gexf"), positions, partition
    )
    result.artifact_paths["layout.csv"] = export_layout(
        positions, os.path.join(output_dir, "layout.csv"), backbone, partition
    )
    if umap_pos:
        result.artifact_paths["umap_layout.csv"] = export_layout(
            umap_pos, os.path.join(output_dir, "umap_layout.csv"), G_full, partition
        )
    logger.info("Phase 8/9: Exported %d artefacts to %s.", len(result.artifact_paths), output_dir)

    # ── 9. Figures ────────────────────────────────────────────────────────────
    if generate_figures:
        from product_space.viz.figures import generate_all_figures
        figure_paths = generate_all_figures(result, os.path.join(output_dir, "figures"), year, config)
        result.artifact_paths.update(figure_paths)
        logger.info("Phase 9/9: Generated %d figures.", len(figure_paths))
    else:
        logger.info("Phase 9/9: Figure generation skipped.")

    return result
