# src/transfer_network/runners/plot_network.py

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import networkx as nx

from transfer_network.config.plot_config import EncodingConfig, PlotConfig
from transfer_network.controllers.clustering.community_detector import CommunityDetector
from transfer_network.controllers.clustering.graph_builder import GraphBuilder
from transfer_network.controllers.encoding.visual_encoder import VisualEncoder
from transfer_network.controllers.layout.layout_engine import LayoutEngine
from transfer_network.controllers.rendering.compositor import compose, render, save_figure
from transfer_network.controllers.rendering.shape_registry import default_registry
from transfer_network.utils.errors import (
    ConfigurationError,
    HighlightTargetNotFoundError,
    LayoutShapeError,
)
from transfer_network.utils.layout_cache import load_layout_csv, save_layout_csv

logger = logging.getLogger(__name__)


def run(config: PlotConfig, graph: Optional[nx.Graph] = None) -> Dict[str, Any]:
    """
    Full pass: graph -> communities -> layout (or cache) -> encoding -> figure.

    Returns a small report dict with output paths and basic stats.
    """
    # 1) Graph
    if graph is None:
        if config.nodes_path is None or config.edges_path is None:
            raise ConfigurationError("nodes_path/edges_path", None, ["<csv path>"])
        graph = GraphBuilder().build_graph_from_csv(config.nodes_path, config.edges_path)

    # 2) Communities (own seed, so colours do not depend on the layout path)
    partition = CommunityDetector(seed=config.layout.cluster_seed).detect(graph)

    # 3) Layout, from cache when available
    cached = None
    if config.layout.layout_source is not None:
        cached = load_layout_csv(config.layout.layout_source)

    engine = LayoutEngine(
        seed=config.layout.seed,
        crossing_weight=config.layout.crossing_weight,
        within_weight=config.layout.within_weight,
    )
    layout = engine.layout(graph, partition, cached_matrix=cached)

    if cached is None and config.layout.save_layout_to is not None:
        save_layout_csv(layout.coords, config.layout.save_layout_to)

    # 4) Encoding
    table = VisualEncoder(config.encoding).encode(graph, partition)

    # 5) Composition + output
    plan = compose(
        layout,
        table,
        config.encoding.edges_to_plot,
        partition=partition,
        label_clusters=config.encoding.label_clusters,
        area_name=config.output.area_name,
    )
    fig, _ = render(plan, layout, table, default_registry(), figsize=config.output.figsize)
    try:
        paths = save_figure(fig, config.output.output_dir, config.output.file_stem, dpi=config.output.dpi)
    finally:
        plt.close(fig)

    return {
        "paths": paths,
        "graph": {"nodes": graph.number_of_nodes(), "edges": graph.number_of_edges()},
        "communities": {
            "n_communities": partition.n_communities,
            "sizes": {cid: len(m) for cid, m in partition.communities().items()},
        },
        "title": plan.title,
    }


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="transfer-network-plot",
        description="Lay out and render a facility transfer network.",
    )
    p.add_argument("--config", type=Path, help="JSON config; command line flags override it")
    p.add_argument("--nodes", type=Path, help="facility table (name,type,stays,cases,prevalence)")
    p.add_argument("--edges", type=Path, help="transfer table (source,target,transfers,ari[,percent_ari])")
    p.add_argument("--layout-csv", type=Path, help="cached layout (headerless x,y rows)")
    p.add_argument("--save-layout", type=Path, help="write the computed layout here")
    p.add_argument("--seed", type=int)
    p.add_argument("--node-sizes")
    p.add_argument("--node-colors")
    p.add_argument("--edges-to-plot")
    p.add_argument("--edge-colors")
    p.add_argument("--edge-widths")
    p.add_argument("--highlight", metavar="FACILITY", help="highlight this facility id")
    p.add_argument("--label-clusters", action="store_true")
    p.add_argument("--output-dir", type=Path)
    p.add_argument("--stem", help="output file name without extension")
    return p


def config_from_args(args: argparse.Namespace) -> PlotConfig:
    config = PlotConfig.from_json(args.config) if args.config else PlotConfig()

    if args.nodes:
        config.nodes_path = args.nodes
    if args.edges:
        config.edges_path = args.edges
    if args.layout_csv:
        config.layout.layout_source = args.layout_csv
    if args.save_layout:
        config.layout.save_layout_to = args.save_layout
    if args.seed is not None:
        config.layout.seed = args.seed
    if args.output_dir:
        config.output.output_dir = args.output_dir
    if args.stem:
        config.output.file_stem = args.stem

    enc = config.encoding
    config.encoding = EncodingConfig(
        node_sizes=args.node_sizes or enc.node_sizes,
        node_colors=args.node_colors or enc.node_colors,
        edges_to_plot=args.edges_to_plot or enc.edges_to_plot,
        edge_colors=args.edge_colors or enc.edge_colors,
        edge_widths=args.edge_widths or enc.edge_widths,
        highlight_facility=bool(args.highlight) or enc.highlight_facility,
        facility_to_highlight=args.highlight or enc.facility_to_highlight,
        label_clusters=args.label_clusters or enc.label_clusters,
    )
    return config


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    args = build_parser().parse_args(argv)
    try:
        report = run(config_from_args(args))
    except (ConfigurationError, LayoutShapeError, HighlightTargetNotFoundError) as e:
        logger.error(str(e))
        return 2
    logger.info(
        f"Done: {report['graph']['nodes']} facilities, "
        f"{report['communities']['n_communities']} communities -> {report['paths']}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
