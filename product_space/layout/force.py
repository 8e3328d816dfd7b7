"""
product_space/layout/force.py — Force-directed layouts of the backbone graph.

Kamada-Kawai is the default strategy for the product space map. It is slow on
a few hundred nodes when started from a circular layout, so the usual recipe
is two-stage: lay out the spanning-tree skeleton first (cheap, few edges),
then use those coordinates as the initial positions for the full backbone.

All functions are pure: they return a fresh {node: (x, y)} dict and never
write positions onto the graph.
"""

import logging
from math import sqrt
from typing import Optional

import networkx as nx
import numpy as np

from product_space.config import DEFAULT_CONFIG
from product_space.graph.backbone import spanning_tree_view

logger = logging.getLogger(__name__)

Positions = dict[str, tuple[float, float]]


def _as_positions(pos: dict) -> Positions:
    return {node: (float(x), float(y)) for node, (x, y) in pos.items()}


def _complete_seed(
    G: nx.Graph,
    seed_positions: Optional[dict],
    seed: int,
) -> Optional[dict]:
    """
    Extend a (possibly partial) seed layout to every node of G.

    Nodes missing from the seed are placed uniformly at random inside the
    bounding box of the seeded nodes, using a fixed RNG seed.
    """
    if not seed_positions:
        return None

    known = {n: np.asarray(seed_positions[n], dtype=float) for n in G if n in seed_positions}
    missing = [n for n in G if n not in known]
    if not missing:
        return known

    rng = np.random.default_rng(seed)
    if known:
        coords = np.vstack(list(known.values()))
        lo, hi = coords.min(axis=0), coords.max(axis=0)
        span = np.where(hi - lo > 0, hi - lo, 1.0)
    else:
        lo, span = np.array([-1.0, -1.0]), np.array([2.0, 2.0])

    for node in missing:
        known[node] = lo + rng.random(2) * span

    logger.debug("Seed layout covered %d nodes; %d placed at random.", len(G) - len(missing), len(missing))
    return known


def kamada_kawai_positions(
    G: nx.Graph,
    seed_positions: Optional[dict] = None,
    weight: Optional[str] = None,
    scale: float = DEFAULT_CONFIG.layout_scale,
    seed: int = DEFAULT_CONFIG.layout_seed,
) -> Positions:
    """
    Kamada-Kawai energy-minimisation layout.

    Args:
        G:              Graph to lay out.
        seed_positions: Optional initial positions (e.g. from a coarser graph).
                        Nodes absent from it get seeded random positions.
        weight:         Edge attribute used as edge *length*. None (default)
                        uses hop counts. Pass "distance" to pull
                        high-proximity products closer together.
        scale:          Output is rescaled into [-scale, scale].
        seed:           RNG seed for filling gaps in seed_positions.

    Returns:
        Dict mapping node → (x, y). Deterministic for a fixed graph, seed
        layout and seed.
    """
    if G.number_of_nodes() == 0:
        return {}
    if G.number_of_nodes() == 1:
        return {next(iter(G)): (0.0, 0.0)}

    init = _complete_seed(G, seed_positions, seed)
    pos = nx.kamada_kawai_layout(G, pos=init, weight=weight, scale=scale)
    logger.debug("Kamada-Kawai layout computed for %d nodes (seeded=%s).", len(pos), init is not None)
    return _as_positions(pos)


def spring_positions(
    G: nx.Graph,
    seed_positions: Optional[dict] = None,
    seed: int = DEFAULT_CONFIG.layout_seed,
    weight: Optional[str] = "weight",
) -> Positions:
    """
    Fruchterman-Reingold spring layout with k = 2 / sqrt(N + 1).

    Faster than Kamada-Kawai on large graphs. With weight="weight" stronger
    proximity means a stronger attractive force.
    """
    if G.number_of_nodes() == 0:
        return {}
    k_value = 2.0 / sqrt(len(G.nodes) + 1)
    init = _complete_seed(G, seed_positions, seed)
    pos = nx.spring_layout(G, pos=init, seed=seed, k=k_value, weight=weight)
    return _as_positions(pos)


def spanning_tree_seeded_layout(
    backbone: nx.Graph,
    seed: int = DEFAULT_CONFIG.layout_seed,
    scale: float = DEFAULT_CONFIG.layout_scale,
) -> Positions:
    """
    Two-stage Kamada-Kawai layout of an extracted backbone.

    1. Lay out the spanning-tree skeleton (edges flagged in_mst).
    2. Lay out the full backbone starting from the skeleton positions.

    Args:
        backbone: Output of extract_backbone().

    Returns:
        Dict mapping node → (x, y).
    """
    tree = spanning_tree_view(backbone)
    coarse = kamada_kawai_positions(tree, scale=scale, seed=seed)
    logger.info("Spanning-tree skeleton laid out (%d nodes).", len(coarse))
    return kamada_kawai_positions(backbone, seed_positions=coarse, scale=scale, seed=seed)
