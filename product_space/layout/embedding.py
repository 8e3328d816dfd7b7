"""
product_space/layout/embedding.py — UMAP embedding of the raw proximity matrix.

An alternative to the force-directed map that ignores the backbone entirely:
the full proximity matrix is turned into a distance matrix (1 - proximity,
zero diagonal) and embedded in two dimensions with UMAP using a precomputed
metric. The neighbour count controls how local the embedding is; the
default is 5.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from product_space.config import DEFAULT_CONFIG
from product_space.graph.builder import proximity_matrix

logger = logging.getLogger(__name__)

try:
    from umap import UMAP
except ImportError:
    UMAP = None


def distance_matrix(similarity: pd.DataFrame) -> pd.DataFrame:
    """
    Convert a square proximity matrix into a UMAP-ready distance matrix.

    distance = 1 - proximity, clipped to [0, 1], diagonal forced to 0.
    Labels are preserved.
    """
    values = 1.0 - similarity.to_numpy(dtype=float)
    values = np.clip(values, 0.0, 1.0)
    np.fill_diagonal(values, 0.0)
    return pd.DataFrame(values, index=similarity.index, columns=similarity.columns)


def umap_positions(
    proximity: pd.DataFrame,
    n_neighbors: int = DEFAULT_CONFIG.umap_n_neighbors,
    min_dist: float = DEFAULT_CONFIG.umap_min_dist,
    random_state: Optional[int] = DEFAULT_CONFIG.umap_random_state,
) -> dict[str, tuple[float, float]]:
    """
    Two-dimensional UMAP embedding of every product in the proximity table.

    Args:
        proximity:    DataFrame [product_a, product_b, proximity] (long form)
                      or an already square proximity matrix.
        n_neighbors:  UMAP neighbourhood size; must be < number of products.
        min_dist:     UMAP min_dist.
        random_state: Fixed seed for reproducible output (None = parallel,
                      non-deterministic).

    Returns:
        Dict mapping product code → (x, y).

    Raises:
        ImportError: umap-learn is not installed.
        ValueError:  Fewer products than n_neighbors + 1.
    """
    if UMAP is None:
        raise ImportError("umap-learn is required: pip install umap-learn")

    if {"product_a", "product_b", "proximity"}.issubset(proximity.columns):
        similarity = proximity_matrix(proximity)
    else:
        similarity = proximity

    distances = distance_matrix(similarity)
    n_products = len(distances)
    if n_products <= n_neighbors:
        raise ValueError(
            f"UMAP needs more than n_neighbors={n_neighbors} products, got {n_products}"
        )

    logger.info("Running UMAP on %d products (n_neighbors=%d).", n_products, n_neighbors)
    reducer = UMAP(
        n_neighbors=n_neighbors,
        min_dist=min_dist,
        metric="precomputed",
        random_state=random_state,
    )
    coords = reducer.fit_transform(distances.to_numpy())

    return {
        product: (float(x), float(y))
        for product, (x, y) in zip(distances.index, coords)
    }
