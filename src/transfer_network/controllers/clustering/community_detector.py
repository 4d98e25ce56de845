# src/transfer_network/controllers/clustering/community_detector.py

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Hashable, List, Mapping

import networkx as nx
import numpy as np

# python-louvain library
import community as community_louvain

logger = logging.getLogger(__name__)

EdgeWeightFn = Callable[[Mapping[str, Any]], float]


def abs_transfers(edge_data: Mapping[str, Any]) -> float:
    """Default community weight: transfer volume as a magnitude (suppressed counts are negative)."""
    return float(abs(edge_data.get("transfers", 0) or 0))


class Partition:
    """
    Mapping {node -> community_id} with ids forming the contiguous range 1..k.
    """

    def __init__(self, membership: Mapping[Hashable, int]):
        ids = sorted(set(membership.values()))
        if ids and ids != list(range(1, len(ids) + 1)):
            raise ValueError(f"community ids must be contiguous from 1, got {ids[:10]}")
        self._membership: Dict[Hashable, int] = dict(membership)

    def __getitem__(self, node: Hashable) -> int:
        return self._membership[node]

    def __contains__(self, node: Hashable) -> bool:
        return node in self._membership

    def __len__(self) -> int:
        return len(self._membership)

    def __iter__(self):
        return iter(self._membership)

    def items(self):
        return self._membership.items()

    def as_dict(self) -> Dict[Hashable, int]:
        return dict(self._membership)

    @property
    def n_communities(self) -> int:
        return len(set(self._membership.values()))

    def communities(self) -> Dict[int, List[Hashable]]:
        """Community id -> member nodes, ids ascending."""
        groups: Dict[int, List[Hashable]] = {}
        for node, cid in self._membership.items():
            groups.setdefault(cid, []).append(node)
        return dict(sorted(groups.items()))

    def crossing(self, u: Hashable, v: Hashable) -> bool:
        """True if the edge (u, v) connects two different communities."""
        return self._membership[u] != self._membership[v]

    def __repr__(self) -> str:
        return f"Partition(nodes={len(self)}, communities={self.n_communities})"


def crossing(partition: Partition, edge) -> bool:
    u, v = edge[0], edge[1]
    return partition.crossing(u, v)


def renumber(raw: Mapping[Hashable, int], node_order: List[Hashable]) -> Dict[Hashable, int]:
    """Relabel community ids to 1..k in order of first appearance along node_order."""
    mapping: Dict[int, int] = {}
    out: Dict[Hashable, int] = {}
    for n in node_order:
        cid = raw[n]
        if cid not in mapping:
            mapping[cid] = len(mapping) + 1
        out[n] = mapping[cid]
    return out


class CommunityDetector:
    """
    Wrapper around the Louvain community detection algorithm
    (python-louvain package), weighted by a per-edge function.

    Uses:
        community_louvain.best_partition(
            G,
            weight="weight",
            resolution=gamma,
            random_state=RandomState(seed),
        )

    A fresh RandomState is built on every call so that the same seed
    always yields the same partition, whatever random draws happened
    earlier in the process.
    """

    def __init__(self, seed: int = 1, gamma: float = 1.0):
        """
        Parameters
        ----------
        seed : int
            Seed for Louvain's node ordering.
        gamma : float
            Resolution parameter for Louvain. Smaller values favor fewer,
            larger communities; larger values favor more, smaller communities.
        """
        self.seed = int(seed)
        self.gamma = float(gamma)

    def _weighted_graph(self, G: nx.Graph, edge_weight_fn: EdgeWeightFn) -> nx.Graph:
        # Louvain needs a simple undirected graph; fold direction and parallel edges
        H = nx.Graph()
        H.add_nodes_from(G.nodes())
        for u, v, data in G.edges(data=True):
            w = float(edge_weight_fn(data))
            if H.has_edge(u, v):
                H[u][v]["weight"] += w
            else:
                H.add_edge(u, v, weight=w)
        return H

    def detect(self, G: nx.Graph, edge_weight_fn: EdgeWeightFn = abs_transfers) -> Partition:
        """
        Partition the graph's nodes into communities.

        Parameters
        ----------
        G : nx.Graph
            Facility graph (directed graphs are treated as undirected).
        edge_weight_fn : callable
            Maps an edge's attribute dict to a non-negative weight.

        Returns
        -------
        partition : Partition
            Ids 1..k. With no edges (or zero total weight) every node is
            its own community.
        """
        if not isinstance(G, nx.Graph):
            raise TypeError("G must be a networkx.Graph instance.")

        nodes = list(G.nodes())
        if not nodes:
            return Partition({})

        H = self._weighted_graph(G, edge_weight_fn)
        total = H.size(weight="weight")
        if H.number_of_edges() == 0 or total <= 0:
            logger.warning(
                f"No weighted edges ({H.number_of_edges()} edges, total weight {total}); "
                "placing every node in its own community"
            )
            return Partition({n: i + 1 for i, n in enumerate(nodes)})

        raw = community_louvain.best_partition(
            H,
            weight="weight",
            resolution=self.gamma,
            random_state=np.random.RandomState(self.seed),
        )
        partition = Partition(renumber(raw, nodes))
        logger.info(f"Detected {partition.n_communities} communities over {len(nodes)} facilities")
        return partition
