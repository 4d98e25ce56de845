import networkx as nx
import pytest

from transfer_network.controllers.clustering.community_detector import (
    CommunityDetector,
    Partition,
    abs_transfers,
    crossing,
    renumber,
)


def test_two_dense_groups_become_two_communities(facility_graph) -> None:
    partition = CommunityDetector(seed=1).detect(facility_graph)

    assert partition.n_communities == 2
    assert {partition[n] for n in ["a1", "a2", "a3", "a4"]} == {1}
    assert {partition[n] for n in ["b1", "b2", "b3", "b4"]} == {2}
    assert partition.crossing("a1", "b1")
    assert not partition.crossing("a1", "a2")
    assert crossing(partition, ("b2", "b3")) is False


def test_every_node_in_exactly_one_contiguous_community(facility_graph) -> None:
    partition = CommunityDetector(seed=7).detect(facility_graph)

    assert set(partition) == set(facility_graph.nodes())
    ids = sorted(set(partition.as_dict().values()))
    assert ids == list(range(1, len(ids) + 1))
    members = [n for group in partition.communities().values() for n in group]
    assert sorted(members) == sorted(facility_graph.nodes())


def test_same_seed_gives_same_partition(facility_graph) -> None:
    first = CommunityDetector(seed=3).detect(facility_graph).as_dict()
    # unrelated random draws in between must not matter
    CommunityDetector(seed=99).detect(facility_graph)
    second = CommunityDetector(seed=3).detect(facility_graph).as_dict()
    assert first == second


def test_graph_without_edges_gives_singletons() -> None:
    G = nx.Graph()
    G.add_nodes_from(["x", "y", "z"])

    partition = CommunityDetector().detect(G)

    assert partition.as_dict() == {"x": 1, "y": 2, "z": 3}
    assert CommunityDetector().detect(nx.Graph()).n_communities == 0


def test_zero_weight_edges_give_singletons() -> None:
    G = nx.Graph()
    G.add_edge("x", "y", transfers=0)

    assert CommunityDetector().detect(G).n_communities == 2


def test_negative_transfers_count_as_magnitude() -> None:
    assert abs_transfers({"transfers": -40}) == 40.0
    assert abs_transfers({}) == 0.0


def test_directed_graph_is_folded(facility_graph) -> None:
    D = nx.DiGraph(facility_graph)

    partition = CommunityDetector(seed=1).detect(D)

    assert partition.n_communities == 2


def test_partition_rejects_gaps_and_renumber_orders_by_appearance() -> None:
    with pytest.raises(ValueError):
        Partition({"a": 1, "b": 3})

    assert renumber({"a": 5, "b": 0, "c": 5}, ["a", "b", "c"]) == {"a": 1, "b": 2, "c": 1}


def test_crossing_accepts_edge_tuples(facility_graph, facility_partition) -> None:
    assert crossing(facility_partition, ("a1", "b1")) is True
    assert crossing(facility_partition, ("a1", "a4")) is False
    # (u, v, data) triples from G.edges(data=True) work too
    crossers = [e[:2] for e in facility_graph.edges(data=True) if crossing(facility_partition, e)]
    assert crossers == [("a1", "b1")]
