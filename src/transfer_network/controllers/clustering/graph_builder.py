# src/transfer_network/controllers/clustering/graph_builder.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Hashable, Optional, Union

import networkx as nx
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

NODE_COLUMNS = ("name", "type", "stays", "cases", "prevalence")
EDGE_COLUMNS = ("source", "target", "transfers", "ari")


class GraphBuilder:
    """
    Builds the attributed facility graph from node and edge tables.

        - Nodes: facilities (column 'name'), with 'type', 'stays',
          'cases' and 'prevalence' attributes
        - Edges: (source, target) pairs with 'transfers', 'ari' and
          'percent_ari' attributes

    'percent_ari' is taken from the edge table when present, otherwise
    computed as ari / transfers for positive transfers and 0 elsewhere.
    Rows naming the same pair (in either direction for an undirected
    graph) are summed into one edge and their 'percent_ari' recomputed.
    Row order of the node table fixes the graph's node order, which is
    also the row order of any cached layout matrix.
    """

    def __init__(self, directed: bool = False):
        """
        Parameters
        ----------
        directed : bool
            Build a DiGraph instead of an undirected Graph.
        """
        self.directed = bool(directed)

    def build_graph(self, nodes: pd.DataFrame, edges: pd.DataFrame) -> nx.Graph:
        """
        Construct a NetworkX graph from node and edge DataFrames.

        Parameters
        ----------
        nodes : pd.DataFrame
            One row per facility with columns name, type, stays, cases, prevalence.
        edges : pd.DataFrame
            One row per connection with columns source, target, transfers, ari
            and optionally percent_ari.

        Returns
        -------
        G : nx.Graph or nx.DiGraph
        """
        if not isinstance(nodes, pd.DataFrame) or not isinstance(edges, pd.DataFrame):
            raise TypeError("nodes and edges must be pandas DataFrames.")

        missing = [c for c in NODE_COLUMNS if c not in nodes.columns]
        if missing:
            raise ValueError(f"nodes table is missing columns: {missing}")
        missing = [c for c in EDGE_COLUMNS if c not in edges.columns]
        if missing:
            raise ValueError(f"edges table is missing columns: {missing}")

        if nodes["name"].duplicated().any():
            dupes = nodes.loc[nodes["name"].duplicated(), "name"].tolist()
            raise ValueError(f"duplicate facility names in nodes table: {dupes[:5]}")

        G = nx.DiGraph() if self.directed else nx.Graph()

        for row in nodes.itertuples(index=False):
            G.add_node(
                row.name,
                type=row.type,
                stays=int(row.stays),
                cases=int(row.cases),
                prevalence=float(row.prevalence),
            )

        unknown = set(edges["source"]).union(edges["target"]) - set(G.nodes)
        if unknown:
            raise ValueError(f"edges reference unknown facilities: {sorted(map(str, unknown))[:5]}")

        transfers = pd.to_numeric(edges["transfers"], errors="coerce").fillna(0).astype(int)
        ari = pd.to_numeric(edges["ari"], errors="coerce").fillna(0).astype(int)
        if "percent_ari" in edges.columns:
            percent = pd.to_numeric(edges["percent_ari"], errors="coerce").fillna(0.0)
        else:
            percent = pd.Series(
                np.where(transfers > 0, ari / transfers.where(transfers > 0, 1), 0.0),
                index=edges.index,
            )

        merged: Dict[Hashable, dict] = {}
        for u, v, t, a, p in zip(edges["source"], edges["target"], transfers, ari, percent):
            key = (u, v) if self.directed else frozenset((u, v))
            record = merged.get(key)
            if record is None:
                merged[key] = {"u": u, "v": v, "transfers": int(t), "ari": int(a),
                               "percent_ari": float(p), "rows": 1}
            else:
                record["transfers"] += int(t)
                record["ari"] += int(a)
                record["rows"] += 1

        folded = 0
        for record in merged.values():
            if record["rows"] > 1:
                # rates do not add; recompute from the summed counts
                t, a = record["transfers"], record["ari"]
                record["percent_ari"] = a / t if t > 0 else 0.0
                folded += record["rows"] - 1
            G.add_edge(record["u"], record["v"], transfers=record["transfers"], ari=record["ari"],
                       percent_ari=record["percent_ari"])
        if folded:
            logger.info(f"Summed {folded} repeated or reverse-direction transfer rows into existing edges")

        logger.info(f"Built facility graph: {G.number_of_nodes()} nodes, {G.number_of_edges()} edges")
        return G

    def build_graph_from_csv(
        self,
        nodes_path: Union[str, Path],
        edges_path: Union[str, Path],
        sep: Optional[str] = ",",
    ) -> nx.Graph:
        nodes = pd.read_csv(nodes_path, sep=sep)
        edges = pd.read_csv(edges_path, sep=sep)
        return self.build_graph(nodes, edges)
