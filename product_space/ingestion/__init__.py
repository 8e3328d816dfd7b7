"""
product_space.ingestion — Flat-file loading with download-on-miss.

Modules:
    loader  — Proximity, product metadata, country export and country
              indicator tables; typed, alias-normalised pandas DataFrames.
"""

from product_space.ingestion.loader import (
    DatasetDownloadError,
    DatasetSchemaError,
    ProductSpaceError,
    load_country_exports,
    load_country_indicators,
    load_product_metadata,
    load_proximity_table,
    restrict_metadata,
)
