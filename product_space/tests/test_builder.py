"""
product_space/tests/test_builder.py — Tests for proximity graph construction.

Tests verify:
- Self pairs dropped; duplicate pairs collapsed in either orientation, first wins.
- Node set = referenced products; metadata attributes attached; name falls back to code.
- Edge attributes weight and distance.
- proximity_matrix is square, symmetric, unit diagonal.
"""

import numpy as np
import pandas as pd
import pytest

from product_space.graph.builder import (
    build_proximity_graph,
    deduplicate_edges,
    proximity_matrix,
)


# ── deduplicate_edges ────────────────────────────────────────────────────────

def test_dedup_drops_self_pairs(messy_proximity):
    clean = deduplicate_edges(messy_proximity)
    assert (clean["product_a"] != clean["product_b"]).all()


def test_dedup_first_value_wins(messy_proximity, clustered_proximity):
    clean = deduplicate_edges(messy_proximity)
    assert len(clean) == len(clustered_proximity)
    pair = clean[
        ((clean["product_a"] == "0100") & (clean["product_b"] == "0101"))
        | ((clean["product_a"] == "0101") & (clean["product_b"] == "0100"))
    ]
    assert len(pair) == 1
    original = clustered_proximity[
        (clustered_proximity["product_a"] == "0100") & (clustered_proximity["product_b"] == "0101")
    ]["proximity"].iloc[0]
    assert pair["proximity"].iloc[0] == original


def test_dedup_does_not_mutate_input(messy_proximity):
    before = len(messy_proximity)
    deduplicate_edges(messy_proximity)
    assert len(messy_proximity) == before


# ── build_proximity_graph ────────────────────────────────────────────────────

def test_graph_edges_and_attributes(abc_proximity):
    G = build_proximity_graph(abc_proximity)
    assert set(G.nodes()) == {"A", "B", "C"}
    assert G.number_of_edges() == 3
    assert G.edges["A", "B"]["weight"] == pytest.approx(0.9)
    assert G.edges["A", "B"]["distance"] == pytest.approx(0.1)
    assert G.graph["source"] == "proximity_table"


def test_complete_clustered_graph(clustered_proximity):
    G = build_proximity_graph(clustered_proximity)
    n = G.number_of_nodes()
    assert n == 24
    assert G.number_of_edges() == n * (n - 1) // 2


def test_metadata_attached(clustered_proximity, clustered_metadata):
    G = build_proximity_graph(clustered_proximity, clustered_metadata)
    row = clustered_metadata[clustered_metadata["code"] == "0205"].iloc[0]
    data = G.nodes["0205"]
    assert data["name"] == row["name"]
    assert data["section"] == "Machinery"
    assert data["pci"] == pytest.approx(row["pci"])
    assert data["export_value"] == pytest.approx(row["export_value"])
    assert "9999" not in G


def test_missing_metadata_falls_back_to_code(abc_proximity, caplog):
    metadata = pd.DataFrame({"code": ["A"], "name": ["Apples"], "pci": [np.nan]})
    with caplog.at_level("WARNING"):
        G = build_proximity_graph(abc_proximity, metadata)
    assert G.nodes["A"]["name"] == "Apples"
    assert "pci" not in G.nodes["A"]
    assert G.nodes["B"]["name"] == "B"
    assert "no metadata row" in caplog.text


# ── proximity_matrix ─────────────────────────────────────────────────────────

def test_matrix_shape_and_symmetry(abc_proximity):
    M = proximity_matrix(abc_proximity)
    assert list(M.index) == ["A", "B", "C"]
    assert list(M.columns) == ["A", "B", "C"]
    assert np.allclose(M.to_numpy(), M.to_numpy().T)
    assert np.allclose(np.diag(M.to_numpy()), 1.0)
    assert M.loc["C", "B"] == pytest.approx(0.6)


def test_matrix_missing_pair_is_zero():
    table = pd.DataFrame({"product_a": ["A", "B"], "product_b": ["B", "C"], "proximity": [0.5, 0.4]})
    M = proximity_matrix(table)
    assert M.loc["A", "C"] == 0.0
