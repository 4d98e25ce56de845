from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from transfer_network.controllers.clustering.graph_builder import GraphBuilder
from transfer_network.utils.errors import LayoutShapeError
from transfer_network.utils.layout_cache import load_layout_csv, save_layout_csv


def test_graph_keeps_node_order_and_attributes(facility_graph) -> None:
    assert list(facility_graph.nodes())[:2] == ["a1", "a2"]
    assert facility_graph.nodes["a2"]["stays"] == -12
    assert facility_graph.nodes["b2"]["prevalence"] == 0.5
    assert facility_graph.number_of_edges() == 13


def test_percent_ari_is_computed_when_absent(facility_graph) -> None:
    edge = facility_graph.edges["a1", "a3"]
    assert edge["percent_ari"] == pytest.approx(edge["ari"] / edge["transfers"])


def test_percent_ari_zero_for_non_positive_transfers() -> None:
    nodes = pd.DataFrame(
        {"name": ["x", "y"], "type": ["h", "h"], "stays": [1, 1], "cases": [0, 0], "prevalence": [0, 0]}
    )
    edges = pd.DataFrame({"source": ["x"], "target": ["y"], "transfers": [-3], "ari": [1]})

    G = GraphBuilder().build_graph(nodes, edges)

    assert G.edges["x", "y"]["percent_ari"] == 0.0
    assert G.edges["x", "y"]["transfers"] == -3


def test_unknown_facility_in_edges_fails(facility_tables) -> None:
    nodes, edges = facility_tables
    edges = pd.concat([edges, pd.DataFrame([{"source": "a1", "target": "zz", "transfers": 1, "ari": 0}])])
    with pytest.raises(ValueError):
        GraphBuilder().build_graph(nodes, edges)


def test_layout_csv_round_trip(tmp_path: Path) -> None:
    coords = np.array([[0.5, -1.25], [3.0, 4.0]])
    path = save_layout_csv(coords, tmp_path / "cache" / "Layout.csv")

    assert path.read_text().splitlines()[0] == "0.5,-1.25"
    np.testing.assert_array_equal(load_layout_csv(path), coords)


def test_layout_csv_with_wrong_width_fails(tmp_path: Path) -> None:
    path = tmp_path / "Layout.csv"
    path.write_text("1,2,3\n4,5,6\n")
    with pytest.raises(LayoutShapeError):
        load_layout_csv(path)


def test_reverse_direction_rows_are_summed() -> None:
    nodes = pd.DataFrame(
        {"name": ["a", "b"], "type": ["h", "h"], "stays": [1, 1], "cases": [0, 0], "prevalence": [0, 0]}
    )
    edges = pd.DataFrame(
        {"source": ["a", "b"], "target": ["b", "a"], "transfers": [200, 20], "ari": [0, 3]}
    )

    G = GraphBuilder().build_graph(nodes, edges)

    assert G.number_of_edges() == 1
    assert G.edges["a", "b"]["transfers"] == 220
    assert G.edges["a", "b"]["ari"] == 3
    assert G.edges["a", "b"]["percent_ari"] == pytest.approx(3 / 220)


def test_directed_builder_keeps_each_direction() -> None:
    nodes = pd.DataFrame(
        {"name": ["a", "b"], "type": ["h", "h"], "stays": [1, 1], "cases": [0, 0], "prevalence": [0, 0]}
    )
    edges = pd.DataFrame(
        {"source": ["a", "b", "a"], "target": ["b", "a", "b"], "transfers": [200, 20, 5], "ari": [0, 3, 1],
         "percent_ari": [0.0, 0.15, 0.2]}
    )

    G = GraphBuilder(directed=True).build_graph(nodes, edges)

    assert G.edges["a", "b"]["transfers"] == 205
    assert G.edges["a", "b"]["percent_ari"] == pytest.approx(1 / 205)
    assert G.edges["b", "a"]["percent_ari"] == 0.15
