"""
product_space/config.py — All tunable parameters for the product space pipeline.

No threshold should ever be hardcoded in a pipeline module. The proximity
cutoff, neighbour count, layout seeds and download locations live here so
that a recalibration is a single-file diff.

The two empirically chosen values (proximity_threshold=0.55 and
umap_n_neighbors=5) are the ones used for the published product space maps.
They are not derived from any formula.
"""

from dataclasses import dataclass


ATLAS_DATA_BASE = "https://raw.githubusercontent.com/cid-harvard/atlas-tutorials/master/data"


@dataclass(frozen=True)
class ProductSpaceConfig:
    """
    Immutable configuration for the product space pipeline.

    Override by constructing a new ProductSpaceConfig, or with
    dataclasses.replace(DEFAULT_CONFIG, proximity_threshold=0.6).
    """

    # ── Backbone extraction ───────────────────────────────────────────────────
    proximity_threshold: float = 0.55
    # Edges with proximity strictly above this value are added on top of the
    # maximum spanning tree. 0.55 reproduces the classic Hidalgo et al. map.

    # ── Layout ────────────────────────────────────────────────────────────────
    layout_seed: int = 42
    # Seed for the random initial positions of nodes missing from a coarser
    # seed layout, and for the spring layout alternative.

    layout_scale: float = 1.0
    # Kamada-Kawai output is rescaled into [-scale, scale].

    umap_n_neighbors: int = 5
    # Local neighbourhood size for the UMAP embedding of the raw proximity
    # matrix. Small values emphasise local product clusters.

    umap_min_dist: float = 0.1
    # UMAP library default; lower values pack clusters more tightly.

    umap_random_state: int | None = 42
    # None lets UMAP parallelise, at the cost of run-to-run reproducibility.

    # ── Community detection ───────────────────────────────────────────────────
    community_seed: int | None = 42
    # Louvain tie-breaking seed. None gives a different partition per run.

    community_resolution: float = 1.0
    # Louvain resolution. Values > 1 favour smaller communities.

    # ── Rendering ─────────────────────────────────────────────────────────────
    node_size_range: tuple[float, float] = (10.0, 120.0)
    # Marker area (points^2) range after clamping the size attribute.

    rca_threshold: float = 1.0
    # A country exports a product with revealed comparative advantage when
    # rca >= this value. Used for the alpha/presence channel.

    figure_dpi: int = 160

    # ── Downloads ─────────────────────────────────────────────────────────────
    proximity_url: str = f"{ATLAS_DATA_BASE}/hs92_proximities.csv"
    products_url: str = f"{ATLAS_DATA_BASE}/hs92_products.csv"
    country_exports_url: str = f"{ATLAS_DATA_BASE}/hs92_country_product_year_4.csv"
    country_indicators_url: str = f"{ATLAS_DATA_BASE}/hs92_country_year.csv"

    download_timeout: int = 60
    # Seconds. A timed-out download aborts the run; there is no retry.

    # ── Data Paths ────────────────────────────────────────────────────────────
    data_dir: str = "data"
    # Local cache for downloaded tables, relative to the working directory.

    output_dir: str = "output"
    # Graph exchange files, layout CSVs and rendered figures land here.

    proximity_file: str = "hs92_proximities.csv"
    products_file: str = "hs92_products.csv"
    country_exports_file: str = "hs92_country_product_year_4.csv"
    country_indicators_file: str = "hs92_country_year.csv"


# Singleton default; import this everywhere instead of constructing anew.
DEFAULT_CONFIG = ProductSpaceConfig()
