"""Pytest configuration and fixtures."""

import matplotlib

matplotlib.use("Agg")

import networkx as nx
import pandas as pd
import pytest

from transfer_network.controllers.clustering.community_detector import CommunityDetector, Partition
from transfer_network.controllers.clustering.graph_builder import GraphBuilder


@pytest.fixture
def facility_tables() -> tuple:
    """Two tightly connected groups of four facilities joined by one weak bridge."""
    nodes = pd.DataFrame(
        {
            "name": ["a1", "a2", "a3", "a4", "b1", "b2", "b3", "b4"],
            "type": ["hospital", "hospital", "nursing", "nursing", "hospital", "ltach", "nursing", "dialysis"],
            "stays": [125, -12, 0, 25, 3000, 1, 40, -5],
            "cases": [0, 3, 1, 0, 7, 2, 0, 1],
            "prevalence": [0.0, 0.01, 0.02, 0.05, 0.1, 0.5, 0.0, 0.03],
        }
    )
    pairs_a = [("a1", "a2"), ("a1", "a3"), ("a1", "a4"), ("a2", "a3"), ("a2", "a4"), ("a3", "a4")]
    pairs_b = [("b1", "b2"), ("b1", "b3"), ("b1", "b4"), ("b2", "b3"), ("b2", "b4"), ("b3", "b4")]
    rows = []
    for i, (u, v) in enumerate(pairs_a + pairs_b):
        rows.append({"source": u, "target": v, "transfers": 120 + 10 * i, "ari": i % 3})
    rows.append({"source": "a1", "target": "b1", "transfers": 5, "ari": 1})
    edges = pd.DataFrame(rows)
    return nodes, edges


@pytest.fixture
def facility_graph(facility_tables) -> nx.Graph:
    nodes, edges = facility_tables
    return GraphBuilder().build_graph(nodes, edges)


@pytest.fixture
def facility_partition(facility_graph) -> Partition:
    return CommunityDetector(seed=1).detect(facility_graph)
