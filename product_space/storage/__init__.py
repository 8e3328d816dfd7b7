"""
product_space.storage — Flat-file persistence of run artefacts.

Modules:
    exchange  — GEXF / GraphML graph export and import, layout CSV export.

There is no database: every artefact is a file written once at the end of a
run (see product_space.pipeline).
"""
