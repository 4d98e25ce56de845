# src/transfer_network/controllers/rendering/compositor.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import LineCollection

from transfer_network.config.plot_config import EdgesToPlot
from transfer_network.controllers.clustering.community_detector import Partition
from transfer_network.controllers.encoding.visual_encoder import LineStyle, VisualAttributeTable
from transfer_network.controllers.layout.layout_engine import Layout
from transfer_network.controllers.rendering.shape_registry import ShapeRegistry, draw_vertices
from transfer_network.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Axis limits extend past the data by this fraction of |mean coordinate|
BOUNDS_MARGIN = 0.001

ALL_TRANSFERS_SUBTITLE = "<35 Transfers not Plotted, 35-100 Transfers Dashed, >100 Transfers Solid"


@dataclass
class ClusterLabel:
    community: int
    x: float
    y: float


@dataclass
class RenderPlan:
    xlim: Tuple[float, float]
    ylim: Tuple[float, float]
    title: str
    subtitle: Optional[str] = None
    cluster_labels: List[ClusterLabel] = field(default_factory=list)


def axis_bounds(values: np.ndarray) -> Tuple[float, float]:
    """Data extent padded by 0.1% of the mean; a zero-width extent gets a unit margin."""
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        return (-1.0, 1.0)
    pad = abs(float(values.mean())) * BOUNDS_MARGIN
    lo, hi = float(values.min()) - pad, float(values.max()) + pad
    if hi <= lo:
        lo, hi = lo - 1.0, hi + 1.0
    return (lo, hi)


def plot_titles(edges_to_plot: EdgesToPlot, area_name: str = "HD3 Area") -> Tuple[str, Optional[str]]:
    """Title and optional subtitle for each edge-visibility mode."""
    if edges_to_plot is EdgesToPlot.SUPPRESS:
        subject, subtitle = "Facilities", None
    elif edges_to_plot is EdgesToPlot.ARI:
        subject, subtitle = "ARI Transfers", None
    elif edges_to_plot is EdgesToPlot.ALL:
        subject, subtitle = "All Medicare Transfers", ALL_TRANSFERS_SUBTITLE
    else:
        raise ConfigurationError("edges_to_plot", edges_to_plot, [m.value for m in EdgesToPlot])
    return f"{subject} in the {area_name}", subtitle


def cluster_label_positions(layout: Layout, partition: Partition) -> List[ClusterLabel]:
    """One label per community at the mean coordinate of its members."""
    row = {n: i for i, n in enumerate(layout.nodes)}
    labels = []
    for cid, members in partition.communities().items():
        idx = [row[n] for n in members if n in row]
        if not idx:
            continue
        x, y = layout.coords[idx].mean(axis=0)
        labels.append(ClusterLabel(community=cid, x=float(x), y=float(y)))
    return labels


def compose(
    layout: Layout,
    table: VisualAttributeTable,
    edges_to_plot: EdgesToPlot,
    partition: Optional[Partition] = None,
    label_clusters: bool = False,
    area_name: str = "HD3 Area",
) -> RenderPlan:
    if len(layout) != len(table.nodes):
        raise ValueError(
            f"layout has {len(layout)} nodes but the attribute table has {len(table.nodes)}"
        )
    title, subtitle = plot_titles(edges_to_plot, area_name)

    labels: List[ClusterLabel] = []
    if label_clusters:
        if partition is None:
            raise ValueError("label_clusters requires a community partition.")
        labels = cluster_label_positions(layout, partition)

    return RenderPlan(
        xlim=axis_bounds(layout.x),
        ylim=axis_bounds(layout.y),
        title=title,
        subtitle=subtitle,
        cluster_labels=labels,
    )


def edge_segments(layout: Layout, table: VisualAttributeTable, registry: ShapeRegistry):
    """Visible edges as clipped line segments plus their colours, widths and line styles."""
    row = {n: i for i, n in enumerate(layout.nodes)}
    nodes = table.nodes
    segments, colors, widths, styles = [], [], [], []
    for e in table.visible_edges.itertuples(index=False):
        p = layout.coords[row[e.source]]
        q = layout.coords[row[e.target]]
        start = registry.get(nodes.at[e.source, "shape"]).clip(p, q, nodes.at[e.source, "size"])
        end = registry.get(nodes.at[e.target, "shape"]).clip(q, p, nodes.at[e.target, "size"])
        segments.append([start, end])
        colors.append(e.color)
        widths.append(float(e.width))
        styles.append(LineStyle(e.line_style).matplotlib)
    return segments, colors, widths, styles


def render(
    plan: RenderPlan,
    layout: Layout,
    table: VisualAttributeTable,
    registry: ShapeRegistry,
    ax=None,
    figsize: Tuple[float, float] = (16.0, 16.0),
):
    """
    Draw the network in one pass: edges (below), vertices through the
    shape registry, optional cluster labels, then titles and limits.
    Vertex labels and arrows are never drawn.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure
    fig.patch.set_facecolor("white")

    segments, colors, widths, styles = edge_segments(layout, table, registry)
    if segments:
        ax.add_collection(
            LineCollection(segments, colors=colors, linewidths=widths, linestyles=styles, zorder=1)
        )

    row = {n: i for i, n in enumerate(layout.nodes)}
    draw_vertices(
        ax,
        registry,
        layout.coords[[row[n] for n in table.nodes.index]],
        table.nodes["shape"].tolist(),
        table.nodes["color"].tolist(),
        table.nodes["size"].tolist(),
    )

    for label in plan.cluster_labels:
        ax.text(label.x, label.y, str(label.community), ha="center", va="center", zorder=3)

    ax.set_xlim(*plan.xlim)
    ax.set_ylim(*plan.ylim)
    ax.set_aspect("equal", adjustable="box")
    ax.set_xticks([])
    ax.set_yticks([])
    for spine in ax.spines.values():
        spine.set_visible(False)

    ax.set_title(plan.title, fontsize=20, color="black")
    if plan.subtitle:
        ax.set_xlabel(plan.subtitle)

    logger.info(f"Rendered '{plan.title}' with {len(segments)} edges")
    return fig, ax


def save_figure(fig, output_dir: Union[str, Path], stem: str, dpi: int = 300) -> Dict[str, Optional[Path]]:
    """Write PNG and PDF versions; a failed format is logged and reported as None."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: Dict[str, Optional[Path]] = {}
    for fmt in ("png", "pdf"):
        path = output_dir / f"{stem}.{fmt}"
        try:
            fig.savefig(path, format=fmt, bbox_inches="tight", dpi=dpi)
            logger.info(f"[{fmt.upper()}] Saved to '{path}'")
            paths[fmt] = path
        except (OSError, ValueError) as e:
            logger.error(f"[{fmt.upper()}] Save error: {e}")
            paths[fmt] = None
    return paths
