"""
product_space.graph — NetworkX graph construction and backbone extraction.

Modules:
    builder   — Complete proximity graph from the proximity table.
    backbone  — Maximum spanning tree ∪ high-proximity edges.

All graph objects are undirected nx.Graph instances:
    Node id    : product code (str)
    Node attrs : name, pci, export_value, section
    Edge attrs : weight (proximity), distance (1 - proximity),
                 in_mst / in_threshold (backbone only)
"""
