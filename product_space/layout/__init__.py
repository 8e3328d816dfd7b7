"""
product_space.layout — Two-dimensional coordinates for product space maps.

Modules:
    force      — Kamada-Kawai / spring layouts of the backbone graph,
                 optionally seeded from the spanning-tree skeleton.
    embedding  — UMAP embedding of the raw proximity matrix (umap-learn).

Both strategies return {product_code: (x, y)} and are interchangeable
inputs to product_space.viz.
"""
