"""
product_space — Product space maps from Atlas of Economic Complexity data.

Turns a pairwise product-proximity table into exploratory visualizations:
a network map of the proximity backbone (maximum spanning tree plus
high-proximity edges), a UMAP embedding of the raw proximity matrix,
export treemaps and choropleth world maps of country indicators.

Pipeline stages:
- Loader          (product_space.ingestion.loader)
- Backbone        (product_space.graph.builder, product_space.graph.backbone)
- Layout          (product_space.layout.force, product_space.layout.embedding)
- Communities     (product_space.metrics.communities)
- Rendering       (product_space.viz)
- Export          (product_space.storage.exchange)
"""

__version__ = "0.1.0"
