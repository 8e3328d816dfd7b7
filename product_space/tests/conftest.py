"""
product_space/tests/conftest.py — Shared pytest fixtures for the test suite.

All fixtures are synthetic and deterministic (SEED=55); no test touches the
network.

Fixtures:
    abc_proximity        — The three-product worked example (A-B, B-C, A-C).
    clustered_proximity  — 3 clusters x 8 products, complete proximity table.
    clustered_metadata   — Names, PCI, export value and section per product.
    messy_proximity      — clustered_proximity plus self pairs and duplicates.
    data_dir             — tmp dir with all four input tables as CSV files.
    offline_config       — ProductSpaceConfig pointing at data_dir, no URLs.
"""

import dataclasses
import itertools

import numpy as np
import pandas as pd
import pytest

from product_space.config import DEFAULT_CONFIG

SEED = 55

N_CLUSTERS = 3
CLUSTER_SIZE = 8
SECTIONS = ["Textiles", "Machinery", "Chemicals"]
COUNTRIES = ["COL", "DEU", "JPN", "KEN"]


def product_code(cluster: int, i: int) -> str:
    """4-digit HS-like code with a leading zero to exercise text parsing."""
    return f"0{cluster + 1}{i:02d}"


def make_clustered_proximity(seed: int = SEED) -> pd.DataFrame:
    """
    Complete proximity table over N_CLUSTERS dense clusters.

    Within a cluster proximity is drawn from [0.6, 0.9]; across clusters
    from [0.05, 0.4], so with the 0.55 threshold the backbone is three
    cliques joined only by spanning-tree bridges.
    """
    rng = np.random.default_rng(seed)
    codes = [(c, product_code(c, i)) for c in range(N_CLUSTERS) for i in range(CLUSTER_SIZE)]
    rows = []
    for (ca, a), (cb, b) in itertools.combinations(codes, 2):
        if ca == cb:
            phi = rng.uniform(0.6, 0.9)
        else:
            phi = rng.uniform(0.05, 0.4)
        rows.append({"product_a": a, "product_b": b, "proximity": round(float(phi), 4)})
    return pd.DataFrame(rows)


def make_clustered_metadata(seed: int = SEED) -> pd.DataFrame:
    rng = np.random.default_rng(seed + 1)
    rows = []
    for c in range(N_CLUSTERS):
        for i in range(CLUSTER_SIZE):
            rows.append({
                "code": product_code(c, i),
                "name": f"{SECTIONS[c]} product {i}",
                "pci": round(float(rng.normal(0.0, 1.2)), 3),
                "export_value": round(float(rng.lognormal(18, 1.5)), 0),
                "section": SECTIONS[c],
            })
    # One product nobody trades; restrict_metadata() must drop it.
    rows.append({"code": "9999", "name": "Unreferenced", "pci": 0.0,
                 "export_value": 1.0, "section": "Other"})
    return pd.DataFrame(rows)


def make_country_exports(seed: int = SEED) -> pd.DataFrame:
    rng = np.random.default_rng(seed + 2)
    rows = []
    for location in COUNTRIES:
        for c in range(N_CLUSTERS):
            for i in range(CLUSTER_SIZE):
                rows.append({
                    "location_code": location,
                    "hs_product_code": product_code(c, i),
                    "year": 2019,
                    "export_value": round(float(rng.lognormal(15, 2)), 0),
                    "export_rca": round(float(rng.uniform(0.0, 2.5)), 3),
                })
    return pd.DataFrame(rows)


def make_country_indicators() -> pd.DataFrame:
    return pd.DataFrame({
        "location_code": COUNTRIES * 2,
        "location_name_short_en": ["Colombia", "Germany", "Japan", "Kenya"] * 2,
        "year": [2018] * 4 + [2019] * 4,
        "hs_eci": [-0.1, 1.9, 2.2, -0.6, 0.0, 1.8, 2.3, -0.5],
    })


@pytest.fixture
def abc_proximity() -> pd.DataFrame:
    return pd.DataFrame({
        "product_a": ["A", "B", "A"],
        "product_b": ["B", "C", "C"],
        "proximity": [0.9, 0.6, 0.1],
    })


@pytest.fixture(scope="session")
def clustered_proximity() -> pd.DataFrame:
    return make_clustered_proximity()


@pytest.fixture(scope="session")
def clustered_metadata() -> pd.DataFrame:
    return make_clustered_metadata()


@pytest.fixture
def messy_proximity(clustered_proximity) -> pd.DataFrame:
    """Adds a self pair, a reversed duplicate with a different value and an exact duplicate."""
    extra = pd.DataFrame({
        "product_a": ["0100", "0101", "0100"],
        "product_b": ["0100", "0100", "0101"],
        "proximity": [1.0, 0.01, 0.02],
    })
    return pd.concat([clustered_proximity, extra], ignore_index=True)


@pytest.fixture
def data_dir(tmp_path, clustered_proximity, clustered_metadata):
    """Input tables laid out exactly as the pipeline expects them in data_dir."""
    d = tmp_path / "data"
    d.mkdir()
    prox = clustered_proximity.rename(columns={
        "product_a": "commoditycode_1", "product_b": "commoditycode_2",
    })
    prox.to_csv(d / DEFAULT_CONFIG.proximity_file, index=False)
    clustered_metadata.rename(columns={
        "code": "hs_product_code", "name": "hs_product_name_short_en",
    }).to_csv(d / DEFAULT_CONFIG.products_file, index=False)
    make_country_exports().to_csv(d / DEFAULT_CONFIG.country_exports_file, index=False)
    make_country_indicators().to_csv(d / DEFAULT_CONFIG.country_indicators_file, index=False)
    return d


@pytest.fixture
def offline_config(data_dir, tmp_path):
    """Config that reads only from data_dir; a missing file fails instead of downloading."""
    return dataclasses.replace(
        DEFAULT_CONFIG,
        data_dir=str(data_dir),
        output_dir=str(tmp_path / "output"),
        proximity_url="",
        products_url="",
        country_exports_url="",
        country_indicators_url="",
    )
