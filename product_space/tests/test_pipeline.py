"""
product_space/tests/test_pipeline.py — End-to-end tests for the pipeline and CLI.

Tests verify:
- run_full_pipeline() on local CSV inputs produces a connected backbone,
  a layout and partition covering every product, and the export artefacts.
- Country branch: RCA presence for the requested location, figures written;
  an unknown location gets no treemap.
- A missing input with no download URL aborts the run.
- CLI subcommands return 0 on success and 1 on a dataset error.

All inputs come from the data_dir fixture; nothing touches the network.
"""

import dataclasses
import os
import urllib.error

import networkx as nx
import pytest

from product_space.cli import build_parser, main
from product_space.ingestion import loader
from product_space.pipeline import PipelineResult, run_full_pipeline
from product_space.storage.exchange import load_graph


def test_pipeline_without_figures(offline_config):
    result = run_full_pipeline(
        offline_config, include_umap=False, include_country_data=False, generate_figures=False
    )
    assert isinstance(result, PipelineResult)
    assert result.backbone.number_of_nodes() == 24
    assert nx.is_connected(result.backbone)
    assert set(result.positions) == set(result.backbone.nodes())
    assert set(result.partition) == set(result.backbone.nodes())
    assert "9999" not in set(result.metadata["code"])
    assert result.umap_positions == {}
    assert result.country_exports is None

    assert set(result.artifact_paths) == {"backbone.gexf", "layout.csv"}
    exported = load_graph(result.artifact_paths["backbone.gexf"])
    assert exported.number_of_edges() == result.backbone.number_of_edges()


def test_pipeline_with_country_and_figures(offline_config):
    result = run_full_pipeline(offline_config, location="col", year=2019, include_umap=False)
    assert result.location == "COL"
    assert result.rca_presence
    assert all(isinstance(v, bool) for v in result.rca_presence.values())

    for name in (
        "product_space.png",
        "product_space.html",
        "product_space_COL.png",
        "treemap_COL.html",
        "eci_choropleth.html",
    ):
        assert name in result.artifact_paths
        assert os.path.isfile(result.artifact_paths[name])
    assert "umap_product_space.png" not in result.artifact_paths


def test_unknown_location_writes_no_treemap(offline_config):
    result = run_full_pipeline(offline_config, location="XXX", include_umap=False)
    assert result.rca_presence == {}
    assert "treemap_XXX.html" not in result.artifact_paths
    assert "product_space_XXX.png" not in result.artifact_paths
    figures_dir = os.path.join(offline_config.output_dir, "figures")
    assert not os.path.exists(os.path.join(figures_dir, "treemap_XXX.html"))
    assert "eci_choropleth.html" in result.artifact_paths


def test_pipeline_with_umap(offline_config):
    pytest.importorskip("umap")
    result = run_full_pipeline(offline_config, include_country_data=False, generate_figures=False)
    assert set(result.umap_positions) == set(result.G_full.nodes())
    assert os.path.isfile(result.artifact_paths["umap_layout.csv"])


def test_pipeline_output_dir_override(offline_config, tmp_path):
    out = tmp_path / "elsewhere"
    result = run_full_pipeline(
        offline_config, include_umap=False, include_country_data=False,
        generate_figures=False, output_dir=str(out),
    )
    assert result.artifact_paths["layout.csv"] == str(out / "layout.csv")


def test_pipeline_missing_input(offline_config, tmp_path):
    config = dataclasses.replace(offline_config, data_dir=str(tmp_path / "nowhere"))
    with pytest.raises(FileNotFoundError):
        run_full_pipeline(config, include_umap=False, generate_figures=False)


# ── CLI ──────────────────────────────────────────────────────────────────────

def test_parser_defaults():
    args = build_parser().parse_args(["run"])
    assert args.threshold is None
    assert args.no_umap is False
    assert args.func.__name__ == "cmd_run"


def test_cli_backbone(data_dir, tmp_path, capsys):
    output = tmp_path / "cli" / "backbone.graphml"
    code = main([
        "backbone", "--data-dir", str(data_dir), "--threshold", "0.7",
        "--output", str(output),
    ])
    assert code == 0
    assert output.is_file()
    G = load_graph(str(output))
    assert G.number_of_nodes() == 24
    assert "24 nodes" in capsys.readouterr().out


def test_cli_run(data_dir, tmp_path, capsys):
    code = main([
        "run", "--data-dir", str(data_dir), "--output-dir", str(tmp_path / "out"),
        "--no-umap", "--no-figures", "--location", "DEU",
    ])
    assert code == 0
    assert "Pipeline complete" in capsys.readouterr().out
    assert (tmp_path / "out" / "backbone.gexf").is_file()


def test_cli_download_failure(tmp_path, monkeypatch):
    def fake_urlopen(req, timeout=None):
        raise urllib.error.URLError("offline")

    monkeypatch.setattr(loader.urllib.request, "urlopen", fake_urlopen)
    code = main(["backbone", "--data-dir", str(tmp_path / "empty")])
    assert code == 1


def test_cli_status(data_dir, tmp_path, capsys):
    code = main(["status", "--data-dir", str(data_dir), "--output-dir", str(tmp_path / "none")])
    assert code == 0
    out = capsys.readouterr().out
    assert "hs92_proximities.csv" in out
    assert "does not exist" in out
