"""
product_space/cli.py — Command-line interface for the product space pipeline.

Usage:
    python -m product_space run                  # full pipeline + figures
    python -m product_space run --location COL   # highlight one country
    python -m product_space backbone             # extract + export graph only
    python -m product_space status               # show which inputs are cached

Every flag overrides the matching ProductSpaceConfig field; omitted flags keep
the defaults in product_space.config.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
import time

from product_space.config import DEFAULT_CONFIG, ProductSpaceConfig
from product_space.ingestion.loader import ProductSpaceError


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str = "INFO") -> None:
    """Configure root logger with timestamps and aligned level names."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"
    datefmt = "%H:%M:%S"
    logging.basicConfig(level=numeric, format=fmt, datefmt=datefmt, stream=sys.stderr)
    # Silence noisy third-party debug output
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("numba").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


logger = logging.getLogger("product_space.cli")


def _config_from_args(args: argparse.Namespace) -> ProductSpaceConfig:
    overrides = {
        "proximity_threshold": args.threshold,
        "umap_n_neighbors": getattr(args, "n_neighbors", None),
        "layout_seed": args.seed,
        "community_seed": args.seed,
        "data_dir": args.data_dir,
        "output_dir": args.output_dir,
    }
    return dataclasses.replace(
        DEFAULT_CONFIG, **{k: v for k, v in overrides.items() if v is not None}
    )


# ── Subcommand: run (full pipeline) ──────────────────────────────────────────

def cmd_run(args: argparse.Namespace) -> int:
    """Full pipeline: load → backbone → layout → communities → export → figures."""
    _setup_logging(args.log_level)
    config = _config_from_args(args)

    from product_space.pipeline import run_full_pipeline

    logger.info("=" * 60)
    logger.info("Product Space — Full Pipeline Run")
    logger.info("  Threshold    : %.2f", config.proximity_threshold)
    logger.info("  UMAP k       : %d", config.umap_n_neighbors)
    logger.info("  Location     : %s", args.location or "-")
    logger.info("  Data dir     : %s", config.data_dir)
    logger.info("  Output dir   : %s", config.output_dir)
    logger.info("=" * 60)

    t0 = time.monotonic()
    try:
        result = run_full_pipeline(
            config=config,
            location=args.location,
            year=args.year,
            include_umap=not args.no_umap,
            include_country_data=not args.no_country_data,
            generate_figures=not args.no_figures,
        )
    except ProductSpaceError as exc:
        logger.error("Pipeline aborted: %s", exc)
        return 1
    elapsed = time.monotonic() - t0

    # ── Summary ───────────────────────────────────────────────────────────────
    print()
    print("=" * 60)
    print(f"  Pipeline complete in {elapsed:.1f}s")
    print(f"  Products       : {result.backbone.number_of_nodes()}")
    print(f"  Backbone edges : {result.backbone.number_of_edges()}")
    print(f"  Communities    : {len(result.communities)} (modularity {result.modularity:.3f})")
    print("  Artefacts      :")
    for name, path in sorted(result.artifact_paths.items()):
        print(f"    {name:<28} {path}")
    print("=" * 60)
    return 0


# ── Subcommand: backbone (extract + export only) ─────────────────────────────

def cmd_backbone(args: argparse.Namespace) -> int:
    """Extract the backbone and write it as GEXF/GraphML, nothing else."""
    _setup_logging(args.log_level)
    config = _config_from_args(args)

    from product_space.graph.backbone import extract_backbone_from_table
    from product_space.ingestion.loader import (
        load_product_metadata,
        load_proximity_table,
        restrict_metadata,
    )
    from product_space.storage.exchange import export_graph

    try:
        proximity = load_proximity_table(
            os.path.join(config.data_dir, config.proximity_file), config.proximity_url, config
        )
        metadata = restrict_metadata(
            load_product_metadata(
                os.path.join(config.data_dir, config.products_file), config.products_url, config
            ),
            proximity,
        )
    except ProductSpaceError as exc:
        logger.error("Backbone extraction aborted: %s", exc)
        return 1

    backbone = extract_backbone_from_table(proximity, metadata, config.proximity_threshold)
    path = args.output or os.path.join(config.output_dir, "backbone.gexf")
    export_graph(backbone, path)
    print(f"Backbone: {backbone.number_of_nodes()} nodes, {backbone.number_of_edges()} edges -> {path}")
    return 0


# ── Subcommand: status ───────────────────────────────────────────────────────

def cmd_status(args: argparse.Namespace) -> int:
    """Show which input tables are cached locally and which outputs exist."""
    config = _config_from_args(args)

    print()
    print("Input tables:")
    for filename, url in (
        (config.proximity_file, config.proximity_url),
        (config.products_file, config.products_url),
        (config.country_exports_file, config.country_exports_url),
        (config.country_indicators_file, config.country_indicators_url),
    ):
        path = os.path.join(config.data_dir, filename)
        if os.path.isfile(path):
            size_mb = os.path.getsize(path) / 1e6
            print(f"  ✓  {path}  ({size_mb:.1f} MB)")
        else:
            print(f"  ✗  {path}  (will download from {url})")

    print()
    print("Outputs:")
    if os.path.isdir(config.output_dir):
        for root, _dirs, files in os.walk(config.output_dir):
            for name in sorted(files):
                print(f"  {os.path.join(root, name)}")
    else:
        print(f"  (none — {config.output_dir} does not exist)")
    print()
    return 0


# ── Argument parser ───────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="product-space",
        description="Product space maps from Atlas of Economic Complexity proximity data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full pipeline with default threshold (0.55) and UMAP k=5
  python -m product_space run

  # Highlight Colombia's RCA products, data for 2019
  python -m product_space run --location COL --year 2019

  # Sparser backbone, export only
  python -m product_space backbone --threshold 0.65 --output out/backbone.graphml
        """,
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    def add_config_flags(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--threshold",
            type=float,
            default=None,
            metavar="PHI",
            help=f"Proximity cutoff for backbone edges (default: {DEFAULT_CONFIG.proximity_threshold})",
        )
        p.add_argument(
            "--seed",
            type=int,
            default=None,
            metavar="N",
            help=f"Layout / Louvain seed (default: {DEFAULT_CONFIG.layout_seed})",
        )
        p.add_argument(
            "--data-dir",
            default=None,
            metavar="PATH",
            help=f"Input table cache (default: {DEFAULT_CONFIG.data_dir})",
        )
        p.add_argument(
            "--output-dir",
            default=None,
            metavar="PATH",
            help=f"Artefact directory (default: {DEFAULT_CONFIG.output_dir})",
        )

    # run
    p_run = subparsers.add_parser("run", help="Full pipeline: backbone → layout → communities → figures")
    add_config_flags(p_run)
    p_run.add_argument(
        "--n-neighbors", type=int, default=None, metavar="K",
        help=f"UMAP neighbour count (default: {DEFAULT_CONFIG.umap_n_neighbors})",
    )
    p_run.add_argument("--location", default=None, metavar="ISO3",
                       help="Country to highlight and draw the export treemap for")
    p_run.add_argument("--year", type=int, default=None, metavar="YYYY",
                       help="Year filter for country tables (default: all / latest)")
    p_run.add_argument("--no-umap", action="store_true", help="Skip the UMAP embedding")
    p_run.add_argument("--no-country-data", action="store_true",
                       help="Skip country exports / indicators (no treemap, no choropleth)")
    p_run.add_argument("--no-figures", action="store_true", help="Skip figure generation")
    p_run.set_defaults(func=cmd_run)

    # backbone
    p_backbone = subparsers.add_parser("backbone", help="Extract and export the backbone graph only")
    add_config_flags(p_backbone)
    p_backbone.add_argument("--output", default=None, metavar="PATH",
                            help="Output .gexf or .graphml (default: <output-dir>/backbone.gexf)")
    p_backbone.set_defaults(func=cmd_backbone)

    # status
    p_status = subparsers.add_parser("status", help="Show cached inputs and existing outputs")
    add_config_flags(p_status)
    p_status.set_defaults(func=cmd_status)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
