from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pytest
from matplotlib.collections import LineCollection

from transfer_network.config.plot_config import EdgesToPlot, EncodingConfig
from transfer_network.controllers.encoding.visual_encoder import VisualEncoder
from transfer_network.controllers.layout.layout_engine import Layout, LayoutEngine
from transfer_network.controllers.rendering.compositor import (
    ALL_TRANSFERS_SUBTITLE,
    axis_bounds,
    compose,
    plot_titles,
    render,
    save_figure,
)
from transfer_network.controllers.rendering.shape_registry import default_registry


def test_axis_bounds_pad_by_mean() -> None:
    assert axis_bounds(np.array([1.0, 2.0, 3.0])) == pytest.approx((0.998, 3.002))
    assert axis_bounds(np.array([5.0, 5.0])) == pytest.approx((4.0, 6.0))
    assert axis_bounds(np.array([])) == (-1.0, 1.0)


def test_titles_per_edge_mode() -> None:
    assert plot_titles(EdgesToPlot.SUPPRESS) == ("Facilities in the HD3 Area", None)
    assert plot_titles(EdgesToPlot.ARI) == ("ARI Transfers in the HD3 Area", None)
    assert plot_titles(EdgesToPlot.ALL, "North Region") == (
        "All Medicare Transfers in the North Region",
        ALL_TRANSFERS_SUBTITLE,
    )


def test_cluster_labels_sit_at_member_means(facility_graph, facility_partition) -> None:
    coords = np.zeros((8, 2))
    coords[:4] = [[0, 0], [2, 0], [0, 2], [2, 2]]
    coords[4:] = [[10, 10], [12, 10], [10, 12], [12, 12]]
    layout = Layout(list(facility_graph.nodes()), coords)
    table = VisualEncoder().encode(facility_graph, facility_partition)

    plan = compose(layout, table, EdgesToPlot.SUPPRESS, partition=facility_partition, label_clusters=True)

    positions = {label.community: (label.x, label.y) for label in plan.cluster_labels}
    assert positions == {1: (1.0, 1.0), 2: (11.0, 11.0)}
    assert plan.xlim == pytest.approx((0.0 - 0.006, 12.0 + 0.006))


def test_render_and_save(tmp_path: Path, facility_graph, facility_partition) -> None:
    layout = LayoutEngine().layout(facility_graph, facility_partition, seed=42)
    options = EncodingConfig(edges_to_plot="all", edge_colors="ari", edge_widths="ari")
    table = VisualEncoder(options).encode(facility_graph, facility_partition)
    plan = compose(layout, table, options.edges_to_plot, partition=facility_partition, label_clusters=True)

    fig, ax = render(plan, layout, table, default_registry(), figsize=(4, 4))

    lines = [c for c in ax.collections if isinstance(c, LineCollection)]
    assert len(lines) == 1
    assert len(lines[0].get_segments()) == len(table.visible_edges)
    assert ax.get_title() == plan.title
    assert ax.get_xlabel() == ALL_TRANSFERS_SUBTITLE
    assert len(ax.texts) == facility_partition.n_communities

    paths = save_figure(fig, tmp_path / "figs", "network", dpi=50)
    plt.close(fig)
    assert paths["png"].exists() and paths["pdf"].exists()


def test_compose_rejects_misaligned_layout(facility_graph, facility_partition) -> None:
    table = VisualEncoder().encode(facility_graph, facility_partition)
    layout = Layout(["a1"], np.zeros((1, 2)))
    with pytest.raises(ValueError):
        compose(layout, table, EdgesToPlot.SUPPRESS)
