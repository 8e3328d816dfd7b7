"""
product_space.metrics — Graph partitioning of the product space.

Modules:
    communities  — Louvain community detection, modularity and per-community
                   summaries.

All metrics operate on the backbone returned by
product_space.graph.backbone.extract_backbone().

Tunable parameters (seed, resolution) live in product_space.config.
"""
