# src/transfer_network/config/plot_config.py

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, TypeVar, Union

from transfer_network.utils.errors import ConfigurationError


# ------------------------------------------------------------------ #
# Channel modes
# ------------------------------------------------------------------ #

class NodeSizeMode(str, Enum):
    UNIFORM = "uniform"
    STAYS = "stays"


class NodeColorMode(str, Enum):
    CLUSTER = "cluster"
    CASES = "cases"
    PREVALENCE = "prevalence"


class EdgesToPlot(str, Enum):
    SUPPRESS = "suppress"
    ARI = "ari"
    ALL = "all"


class EdgeColorMode(str, Enum):
    DENOMINATOR = "denominator"
    ARI = "ari"
    PERCENT_ARI = "percent_ari"


class EdgeWidthMode(str, Enum):
    UNIFORM = "uniform"
    TRANSFERS = "transfers"
    ARI = "ari"


ModeT = TypeVar("ModeT", bound=Enum)


def parse_mode(enum_cls: Type[ModeT], value: Union[str, ModeT], option: Optional[str] = None) -> ModeT:
    """
    Validate a channel mode at the boundary.

    Accepts an enum member or its string value; anything else raises
    ConfigurationError naming the rejected value and the allowed set.
    """
    if isinstance(value, enum_cls):
        return value
    allowed = [m.value for m in enum_cls]
    if isinstance(value, str):
        key = value.strip().lower()
        for member in enum_cls:
            if member.value == key:
                return member
    raise ConfigurationError(option or enum_cls.__name__, value, allowed)


def _parse_bool(value: Any, option: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConfigurationError(option, value, ["false", "true"])


# ------------------------------------------------------------------ #
# Layout configuration
# ------------------------------------------------------------------ #

@dataclass
class LayoutConfig:
    """
    Configuration for community detection and the layout engine.
    """

    # Seed for the force-directed layout and outlier jitter
    seed: int = 85

    # Seed for community detection (kept separate so colouring is stable
    # even when the layout is loaded from a cache)
    cluster_seed: int = 1

    # Optional headerless CSV with one x,y row per node; skips recomputation
    layout_source: Optional[Path] = None

    # Optional path to write the computed layout to (same CSV format)
    save_layout_to: Optional[Path] = None

    # Edge weights used to bias the layout towards communities
    crossing_weight: float = 1.0
    within_weight: float = 70.0


# ------------------------------------------------------------------ #
# Encoding configuration
# ------------------------------------------------------------------ #

@dataclass
class EncodingConfig:
    """
    One mode per visual channel, plus the highlight / labelling switches.
    """

    node_sizes: NodeSizeMode = NodeSizeMode.UNIFORM
    node_colors: NodeColorMode = NodeColorMode.CLUSTER
    edges_to_plot: EdgesToPlot = EdgesToPlot.SUPPRESS
    edge_colors: EdgeColorMode = EdgeColorMode.DENOMINATOR
    edge_widths: EdgeWidthMode = EdgeWidthMode.UNIFORM

    highlight_facility: bool = False
    # Node id of the bridging facility coloured when highlight_facility is on
    facility_to_highlight: Optional[str] = None

    label_clusters: bool = False

    def __post_init__(self):
        self.node_sizes = parse_mode(NodeSizeMode, self.node_sizes, "node_sizes")
        self.node_colors = parse_mode(NodeColorMode, self.node_colors, "node_colors")
        self.edges_to_plot = parse_mode(EdgesToPlot, self.edges_to_plot, "edges_to_plot")
        self.edge_colors = parse_mode(EdgeColorMode, self.edge_colors, "edge_colors")
        self.edge_widths = parse_mode(EdgeWidthMode, self.edge_widths, "edge_widths")
        self.highlight_facility = _parse_bool(self.highlight_facility, "highlight_facility")
        self.label_clusters = _parse_bool(self.label_clusters, "label_clusters")

        if self.highlight_facility and self.facility_to_highlight is None:
            raise ConfigurationError(
                "facility_to_highlight", None, ["<node id> (required when highlight_facility is true)"]
            )


# ------------------------------------------------------------------ #
# Output configuration
# ------------------------------------------------------------------ #

@dataclass
class OutputConfig:
    """
    Where and how figures are written.
    """

    output_dir: Path = Path("./outputs/transfer_network")
    file_stem: str = "transfer_network"
    figsize: Tuple[float, float] = (16.0, 16.0)
    dpi: int = 300

    # Used in the plot title: "<...> in the <area_name>"
    area_name: str = "HD3 Area"


# ------------------------------------------------------------------ #
# Top-level configuration
# ------------------------------------------------------------------ #

@dataclass
class PlotConfig:
    """
    Top-level configuration passed around the plotting pipeline.
    """

    # Node / edge tables consumed by GraphBuilder
    nodes_path: Optional[Path] = None
    edges_path: Optional[Path] = None

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # -------------------------------------------------------------- #
    # Convenience constructors
    # -------------------------------------------------------------- #

    @classmethod
    def default(cls) -> "PlotConfig":
        """
        Default configuration matching the expected project structure.
        """
        return cls(
            nodes_path=Path("./datasets/facilities.csv"),
            edges_path=Path("./datasets/transfers.csv"),
            layout=LayoutConfig(layout_source=Path("./datasets/Layout.csv")),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlotConfig":
        """
        Build a configuration from a nested dict (e.g. parsed JSON).

        Unknown keys are rejected so a typo never falls back to a default.
        """
        known = {"nodes_path", "edges_path", "layout", "encoding", "output"}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError("config", sorted(unknown)[0], known)

        layout_d = dict(data.get("layout") or {})
        for key in ("layout_source", "save_layout_to"):
            if layout_d.get(key) is not None:
                layout_d[key] = Path(layout_d[key])

        output_d = dict(data.get("output") or {})
        if output_d.get("output_dir") is not None:
            output_d["output_dir"] = Path(output_d["output_dir"])
        if output_d.get("figsize") is not None:
            output_d["figsize"] = tuple(float(v) for v in output_d["figsize"])

        def _section(section_cls, section_name, values):
            allowed = set(section_cls.__dataclass_fields__)
            bad = set(values) - allowed
            if bad:
                raise ConfigurationError(section_name, sorted(bad)[0], allowed)
            return section_cls(**values)

        return cls(
            nodes_path=Path(data["nodes_path"]) if data.get("nodes_path") else None,
            edges_path=Path(data["edges_path"]) if data.get("edges_path") else None,
            layout=_section(LayoutConfig, "layout", layout_d),
            encoding=_section(EncodingConfig, "encoding", dict(data.get("encoding") or {})),
            output=_section(OutputConfig, "output", output_d),
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "PlotConfig":
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
