# src/transfer_network/controllers/layout/layout_engine.py

from __future__ import annotations

import logging
import math
from typing import Dict, Hashable, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from transfer_network.controllers.clustering.community_detector import Partition
from transfer_network.utils.errors import LayoutShapeError
from transfer_network.utils.stats import boxplot_stats

logger = logging.getLogger(__name__)

# Maximum jitter applied to a clamped outlier beyond its fence
OUTLIER_JITTER = 0.5


class Layout:
    """
    2-D coordinates for every node, rows in the graph's node order.

    The coordinate array is read-only: encoders and renderers can share a
    loaded or computed layout without being able to move any point.
    """

    def __init__(self, nodes: Sequence[Hashable], coords):
        arr = np.array(coords, dtype=float, copy=True)
        if arr.size == 0:
            arr = arr.reshape(0, 2)
        if arr.ndim != 2 or arr.shape != (len(nodes), 2):
            raise LayoutShapeError(
                f"layout must have shape ({len(nodes)}, 2), got {arr.shape}"
            )
        arr.setflags(write=False)
        self.nodes: Tuple[Hashable, ...] = tuple(nodes)
        self.coords: np.ndarray = arr

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def x(self) -> np.ndarray:
        return self.coords[:, 0]

    @property
    def y(self) -> np.ndarray:
        return self.coords[:, 1]

    def as_dict(self) -> Dict[Hashable, Tuple[float, float]]:
        return {n: (float(x), float(y)) for n, (x, y) in zip(self.nodes, self.coords)}


def community_bias_weights(
    G: nx.Graph,
    partition: Partition,
    crossing_weight: float = 1.0,
    within_weight: float = 70.0,
) -> Dict[Tuple[Hashable, Hashable], float]:
    """Edge -> layout weight: low for edges between communities, high within one."""
    return {
        (u, v): crossing_weight if partition.crossing(u, v) else within_weight
        for u, v in G.edges()
    }


def component_distances(H: nx.Graph, weight: str = "distance", gap: float = 1.0) -> Dict[Hashable, Dict[Hashable, float]]:
    """
    All-pairs shortest path lengths with finite values between components.

    Pairs in different connected components are placed `gap` beyond the
    longest finite path, instead of networkx's 1e6 default that squeezes
    every connected part into a corner of the Kamada-Kawai frame.
    """
    dist = {u: dict(lengths) for u, lengths in nx.shortest_path_length(H, weight=weight)}
    longest = max((d for lengths in dist.values() for d in lengths.values()), default=0.0)
    far = float(longest) + gap
    for u in H.nodes():
        lengths = dist.setdefault(u, {u: 0.0})
        for v in H.nodes():
            lengths.setdefault(v, far)
    return dist


def clamp_outliers(coords: np.ndarray, rng: np.random.RandomState) -> np.ndarray:
    """
    Pull box-plot outliers back to just beyond their nearer fence.

    Each axis is handled independently. A value below the lower fence
    becomes `lower - u`, a value above the upper fence `upper + u`, with
    u drawn uniformly from (0, 0.5] so several pinned points do not land
    on exactly the same spot. A point already closer to its fence than
    that stays where it is, so clamping never moves anything outward.
    In-range values are returned unchanged.

    NOTE: clamped points can look like a genuine cluster sitting at the
    edge of the plot even though their placement is artificial.
    """
    out = np.array(coords, dtype=float, copy=True)
    if len(out) == 0:
        return out

    for axis in (0, 1):
        series = out[:, axis]
        bstats = boxplot_stats(series)
        if bstats is None or not bstats.out.any():
            continue
        lower, upper = bstats.lower_fence, bstats.upper_fence
        for i in np.flatnonzero(bstats.out):
            u = OUTLIER_JITTER - rng.uniform(0.0, OUTLIER_JITTER)
            if series[i] < lower:
                series[i] = max(series[i], lower - u)
            else:
                series[i] = min(series[i], upper + u)
        logger.debug(f"Clamped {int(bstats.out.sum())} outliers on axis {'xy'[axis]}")

    return out


class LayoutEngine:
    """
    Community-biased force-directed layout.

    Steps (computed path):
      1. bias weights: edges crossing communities -> crossing_weight,
         edges inside a community -> within_weight
      2. Kamada-Kawai seed layout (deterministic), edge distance = 1 / bias,
         separate components one crossing edge beyond the longest path
      3. Fruchterman-Reingold refinement from the seed, attraction = bias,
         both stages scaled to sqrt(n_nodes)
      4. outlier clamping on each axis

    If a cached matrix is supplied it is validated and returned as-is.
    """

    def __init__(self, seed: int = 85, crossing_weight: float = 1.0, within_weight: float = 70.0,
                 iterations: int = 50):
        self.seed = int(seed)
        self.crossing_weight = float(crossing_weight)
        self.within_weight = float(within_weight)
        self.iterations = int(iterations)

    def _biased_graph(self, G: nx.Graph, partition: Partition) -> nx.Graph:
        H = nx.Graph()
        H.add_nodes_from(G.nodes())
        bias = community_bias_weights(G, partition, self.crossing_weight, self.within_weight)
        for (u, v), w in bias.items():
            # keep the strongest pull when a directed pair folds onto one edge
            if H.has_edge(u, v):
                w = max(w, H[u][v]["bias"])
            H.add_edge(u, v, bias=w, distance=1.0 / w)
        return H

    def layout(
        self,
        G: nx.Graph,
        partition: Optional[Partition],
        seed: Optional[int] = None,
        cached_matrix=None,
    ) -> Layout:
        """
        Compute (or accept) coordinates for every node of G.

        Parameters
        ----------
        G : nx.Graph
            Facility graph; row order of the result follows G.nodes().
        partition : Partition
            Community membership used to bias edge weights. Not needed
            when cached_matrix is given.
        seed : int, optional
            Overrides the engine's seed for this call.
        cached_matrix : array-like, optional
            (n_nodes, 2) coordinates loaded from an external store.

        Returns
        -------
        layout : Layout
        """
        nodes = list(G.nodes())

        if cached_matrix is not None:
            matrix = np.asarray(cached_matrix, dtype=float)
            if matrix.ndim != 2 or matrix.shape[1] != 2:
                raise LayoutShapeError(f"cached layout must have exactly 2 columns, got shape {matrix.shape}")
            if matrix.shape[0] != len(nodes):
                raise LayoutShapeError(
                    f"cached layout has {matrix.shape[0]} rows but the graph has {len(nodes)} nodes"
                )
            logger.info(f"Using cached layout for {len(nodes)} facilities")
            return Layout(nodes, matrix)

        if partition is None:
            raise ValueError("partition is required when no cached layout is supplied.")

        seed = self.seed if seed is None else int(seed)
        rng = np.random.RandomState(seed)

        if len(nodes) == 0:
            return Layout(nodes, np.empty((0, 2)))
        if len(nodes) == 1:
            return Layout(nodes, np.zeros((1, 2)))

        H = self._biased_graph(G, partition)

        # frame grows with the graph so the fixed outlier jitter stays small
        scale = math.sqrt(len(nodes))
        dist = component_distances(H, gap=1.0 / self.crossing_weight)
        seed_pos = nx.kamada_kawai_layout(H, dist=dist, weight="distance", scale=scale)
        pos = nx.spring_layout(
            H,
            pos=seed_pos,
            weight="bias",
            iterations=self.iterations,
            scale=scale,
            seed=rng,
        )
        coords = np.array([pos[n] for n in nodes], dtype=float)
        coords = clamp_outliers(coords, rng)

        logger.info(f"Computed layout for {len(nodes)} facilities (seed={seed})")
        return Layout(nodes, coords)
