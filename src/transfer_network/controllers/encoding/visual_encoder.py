# src/transfer_network/controllers/encoding/visual_encoder.py

"""
Attribute -> visual channel mapping for facility networks.

Every rule is a plain function of one attribute value (plus, for colour
ramps, the ramp computed once over the whole graph) and is applied
pointwise over the nodes or edges. The result is a VisualAttributeTable
that references no raw attribute any more:

    nodes: index = facility, columns size / color / shape
    edges: rows in graph.edges() order, columns source / target / color /
           width / line_style
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, List, Mapping, Optional, Sequence

import networkx as nx
import numpy as np
import pandas as pd

from transfer_network.config.plot_config import (
    EdgeColorMode,
    EdgesToPlot,
    EdgeWidthMode,
    EncodingConfig,
    NodeColorMode,
    NodeSizeMode,
)
from transfer_network.controllers.clustering.community_detector import Partition
from transfer_network.controllers.encoding.palettes import (
    GREY,
    HIGHLIGHT_BLUE,
    TRANSLUCENT_GREY,
    WHITE,
    qualitative_color,
    reversed_heat_colors,
)
from transfer_network.controllers.rendering.shape_registry import generate_node_shapes
from transfer_network.utils.errors import ConfigurationError, HighlightTargetNotFoundError
from transfer_network.utils.stats import boxplot_stats

logger = logging.getLogger(__name__)

UNIFORM_NODE_SIZE = 2.5
MIN_NODE_SIZE = 0.5
STAYS_LOG_BASE = 5

UNIFORM_EDGE_WIDTH = 1.0
MIN_EDGE_WIDTH = 0.5

# edges_to_plot == "all": transfer volume thresholds
HIDE_BELOW_TRANSFERS = 35
DASHED_BELOW_TRANSFERS = 100

PERCENT_ARI_RESOLUTION = 1000
PREVALENCE_BINS = 6


class LineStyle(str, Enum):
    NONE = "none"
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"

    @property
    def matplotlib(self) -> str:
        return {"none": "None", "solid": "-", "dashed": "--", "dotted": ":"}[self.value]


@dataclass
class VisualAttributeTable:
    nodes: pd.DataFrame
    edges: pd.DataFrame

    @property
    def visible_edges(self) -> pd.DataFrame:
        return self.edges[self.edges["line_style"] != LineStyle.NONE]


# ------------------------------------------------------------------ #
# Node size
# ------------------------------------------------------------------ #

def node_size(stays: float, mode: NodeSizeMode) -> float:
    """
    uniform -> 2.5; stays -> log base 5 of |stays|.

    The absolute value makes censored (negative) counts comparable by
    magnitude. Sizes are floored at MIN_NODE_SIZE (this covers |stays| below
    5 ** 0.5, including 0) so every size stays finite and positive.
    """
    if mode is NodeSizeMode.UNIFORM:
        return UNIFORM_NODE_SIZE
    elif mode is NodeSizeMode.STAYS:
        magnitude = abs(float(stays or 0))
        if magnitude <= 0 or not math.isfinite(magnitude):
            return MIN_NODE_SIZE
        return max(math.log(magnitude, STAYS_LOG_BASE), MIN_NODE_SIZE)
    raise ConfigurationError("node_sizes", mode, [m.value for m in NodeSizeMode])


# ------------------------------------------------------------------ #
# Node colour
# ------------------------------------------------------------------ #

def cluster_color(community_id: int) -> str:
    return qualitative_color(community_id)


def cases_color(cases: int, ramp: Sequence[str]) -> str:
    """ramp has max(cases) + 1 entries; index = case count."""
    idx = min(max(int(cases or 0), 0), len(ramp) - 1)
    return ramp[idx]


def log_prevalence(prevalence: float) -> float:
    """log10 of the prevalence percentage; -inf for 0, nan for missing/negative."""
    p = float(prevalence) if prevalence is not None else float("nan")
    if not math.isfinite(p) or p < 0:
        return float("nan")
    if p == 0:
        return float("-inf")
    return math.log10(p * 100.0)


def prevalence_color(logged: float, thresholds: Optional[Sequence[float]], ramp: Sequence[str]) -> str:
    """
    Non-finite values (prevalence 0 or missing) are white. Finite values are
    binned by the five box-plot statistics: <= each threshold in turn, and
    above the upper whisker in the last bin.
    """
    if not math.isfinite(logged) or thresholds is None:
        return WHITE
    for i, t in enumerate(thresholds):
        if logged <= t:
            return ramp[i]
    return ramp[len(thresholds)]


def prevalence_thresholds(logged: Sequence[float]) -> Optional[np.ndarray]:
    finite = np.asarray([v for v in logged if math.isfinite(v)], dtype=float)
    bstats = boxplot_stats(finite)
    if bstats is None:
        logger.warning("No facility has a positive prevalence; all prevalence colours are white")
        return None
    return bstats.stats


def node_colors(G: nx.Graph, partition: Optional[Partition], mode: NodeColorMode) -> List[str]:
    nodes = list(G.nodes())
    if mode is NodeColorMode.CLUSTER:
        if partition is None:
            raise ValueError("node_colors='cluster' requires a community partition.")
        return [cluster_color(partition[n]) for n in nodes]

    elif mode is NodeColorMode.CASES:
        cases = [max(int(G.nodes[n].get("cases", 0) or 0), 0) for n in nodes]
        ramp = reversed_heat_colors(max(cases, default=0) + 1)
        return [cases_color(c, ramp) for c in cases]

    elif mode is NodeColorMode.PREVALENCE:
        logged = [log_prevalence(G.nodes[n].get("prevalence")) for n in nodes]
        thresholds = prevalence_thresholds(logged)
        ramp = reversed_heat_colors(PREVALENCE_BINS)
        return [prevalence_color(v, thresholds, ramp) for v in logged]

    raise ConfigurationError("node_colors", mode, [m.value for m in NodeColorMode])


def apply_highlight(nodes: Sequence[Hashable], colors: List[str], target: Hashable) -> List[str]:
    """Recolour the target facility; raises if it is not in the graph."""
    out = list(colors)
    matches = [i for i, n in enumerate(nodes) if n == target or str(n) == str(target)]
    if not matches:
        raise HighlightTargetNotFoundError(target)
    out[matches[0]] = HIGHLIGHT_BLUE
    return out


# ------------------------------------------------------------------ #
# Edge line style
# ------------------------------------------------------------------ #

def transfer_line_style(transfers: float) -> LineStyle:
    if transfers < HIDE_BELOW_TRANSFERS:
        return LineStyle.NONE
    elif transfers < DASHED_BELOW_TRANSFERS:
        return LineStyle.DASHED
    return LineStyle.SOLID


def edge_line_style(transfers: float, ari: int, mode: EdgesToPlot) -> LineStyle:
    """
    suppress -> nothing drawn; ari -> solid where ari != 0; all -> by
    transfer volume. In ari and all, an edge that would be hidden but
    carries ARI is drawn dotted so it stays visible.
    """
    if mode is EdgesToPlot.SUPPRESS:
        return LineStyle.NONE
    elif mode is EdgesToPlot.ARI:
        style = LineStyle.SOLID if ari != 0 else LineStyle.NONE
    elif mode is EdgesToPlot.ALL:
        style = transfer_line_style(transfers)
    else:
        raise ConfigurationError("edges_to_plot", mode, [m.value for m in EdgesToPlot])

    if style is LineStyle.NONE and ari > 0:
        return LineStyle.DOTTED
    return style


# ------------------------------------------------------------------ #
# Edge colour
# ------------------------------------------------------------------ #

def ari_color(ari: int, ramp: Sequence[str]) -> str:
    """Zero ARI -> faded grey; otherwise ramp of max(ari) steps indexed by count."""
    if ari <= 0 or not ramp:
        return TRANSLUCENT_GREY
    return ramp[min(int(ari), len(ramp)) - 1]


def percent_ari_bucket(percent_ari: float, n_buckets: int) -> int:
    """
    round(percent_ari * 1000), clamped into 1..n_buckets so that small
    nonzero rates and rates at or above 100% still land in a bucket.
    """
    p = float(percent_ari) if percent_ari is not None and math.isfinite(percent_ari) else 0.0
    bucket = int(np.rint(p * PERCENT_ARI_RESOLUTION))
    return min(max(bucket, 1), max(n_buckets, 1))


def percent_ari_color(ari: int, percent_ari: float, ramp: Sequence[str]) -> str:
    if ari == 0:
        return TRANSLUCENT_GREY
    return ramp[percent_ari_bucket(percent_ari, len(ramp)) - 1]


def edge_percent_ari(data: Mapping[str, Any]) -> float:
    if data.get("percent_ari") is not None:
        value = float(data["percent_ari"])
        return value if math.isfinite(value) else 0.0
    transfers = float(data.get("transfers", 0) or 0)
    return float(data.get("ari", 0) or 0) / transfers if transfers > 0 else 0.0


def edge_colors(edge_data: Sequence[Mapping[str, Any]], mode: EdgeColorMode) -> List[str]:
    if mode is EdgeColorMode.DENOMINATOR:
        return [GREY] * len(edge_data)

    aris = [int(d.get("ari", 0) or 0) for d in edge_data]

    if mode is EdgeColorMode.ARI:
        ramp = reversed_heat_colors(max(aris, default=0))
        return [ari_color(a, ramp) for a in aris]

    elif mode is EdgeColorMode.PERCENT_ARI:
        percents = [edge_percent_ari(d) for d in edge_data]
        buckets = [int(np.rint(p * PERCENT_ARI_RESOLUTION)) for p in percents]
        ramp = reversed_heat_colors(max(max(buckets, default=0), 1))
        return [percent_ari_color(a, p, ramp) for a, p in zip(aris, percents)]

    raise ConfigurationError("edge_colors", mode, [m.value for m in EdgeColorMode])


# ------------------------------------------------------------------ #
# Edge width
# ------------------------------------------------------------------ #

def edge_width(transfers: float, ari: int, mode: EdgeWidthMode) -> float:
    if mode is EdgeWidthMode.UNIFORM:
        return UNIFORM_EDGE_WIDTH
    elif mode is EdgeWidthMode.TRANSFERS:
        return math.log10(transfers) if transfers > 0 else MIN_EDGE_WIDTH
    elif mode is EdgeWidthMode.ARI:
        return math.log2(ari + 1) if ari > 0 else MIN_EDGE_WIDTH
    raise ConfigurationError("edge_widths", mode, [m.value for m in EdgeWidthMode])


# ------------------------------------------------------------------ #
# Encoder
# ------------------------------------------------------------------ #

class VisualEncoder:
    """
    Resolves every visual channel for one render invocation.

    Stateless apart from the options; call encode() again with other
    options to re-style the same graph and layout.
    """

    def __init__(self, options: Optional[EncodingConfig] = None):
        self.options = options or EncodingConfig()

    def encode(
        self,
        G: nx.Graph,
        partition: Optional[Partition],
        options: Optional[EncodingConfig] = None,
        shapes: Optional[Mapping[Hashable, str]] = None,
    ) -> VisualAttributeTable:
        opts = options or self.options
        nodes = list(G.nodes())

        # ---- nodes ----
        sizes = [node_size(G.nodes[n].get("stays", 0), opts.node_sizes) for n in nodes]
        colors = node_colors(G, partition, opts.node_colors)
        if opts.highlight_facility:
            colors = apply_highlight(nodes, colors, opts.facility_to_highlight)

        if shapes is None:
            explicit = nx.get_node_attributes(G, "shape")
            shapes = explicit if len(explicit) == len(nodes) else generate_node_shapes(G)

        node_table = pd.DataFrame(
            {
                "size": np.asarray(sizes, dtype=float),
                "color": colors,
                "shape": [shapes[n] for n in nodes],
            },
            index=pd.Index(nodes, name="node"),
        )

        # ---- edges ----
        edge_list = list(G.edges(data=True))
        data = [d for _, _, d in edge_list]
        transfers = [float(d.get("transfers", 0) or 0) for d in data]
        aris = [int(d.get("ari", 0) or 0) for d in data]

        edge_table = pd.DataFrame(
            {
                "source": [u for u, _, _ in edge_list],
                "target": [v for _, v, _ in edge_list],
                "color": edge_colors(data, opts.edge_colors),
                "width": np.asarray(
                    [edge_width(t, a, opts.edge_widths) for t, a in zip(transfers, aris)], dtype=float
                ),
                "line_style": [edge_line_style(t, a, opts.edges_to_plot) for t, a in zip(transfers, aris)],
            },
            columns=["source", "target", "color", "width", "line_style"],
        )

        logger.info(
            f"Encoded {len(node_table)} nodes and {len(edge_table)} edges "
            f"({int((edge_table['line_style'] != LineStyle.NONE).sum())} visible)"
        )
        return VisualAttributeTable(nodes=node_table, edges=edge_table)
