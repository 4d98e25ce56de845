import json
from pathlib import Path

import pytest

from transfer_network.config.plot_config import (
    EdgesToPlot,
    EncodingConfig,
    NodeColorMode,
    PlotConfig,
    parse_mode,
)
from transfer_network.utils.errors import ConfigurationError


def test_parse_mode_accepts_members_and_values() -> None:
    assert parse_mode(EdgesToPlot, "ari") is EdgesToPlot.ARI
    assert parse_mode(EdgesToPlot, " ALL ") is EdgesToPlot.ALL
    assert parse_mode(EdgesToPlot, EdgesToPlot.SUPPRESS) is EdgesToPlot.SUPPRESS


def test_invalid_mode_names_value_and_allowed_set() -> None:
    with pytest.raises(ConfigurationError) as exc:
        EncodingConfig(node_colors="rainbow")

    message = str(exc.value)
    assert "'rainbow'" in message
    assert "cases, cluster, prevalence" in message
    assert exc.value.option == "node_colors"


def test_highlight_requires_target() -> None:
    with pytest.raises(ConfigurationError):
        EncodingConfig(highlight_facility=True)
    with pytest.raises(ConfigurationError):
        EncodingConfig(label_clusters="maybe")


def test_defaults() -> None:
    config = PlotConfig.default()
    assert config.layout.seed == 85
    assert config.encoding.node_colors is NodeColorMode.CLUSTER
    assert config.output.area_name == "HD3 Area"


def test_from_json(tmp_path: Path) -> None:
    path = tmp_path / "plot.json"
    path.write_text(
        json.dumps(
            {
                "nodes_path": "n.csv",
                "edges_path": "e.csv",
                "layout": {"seed": 42, "layout_source": "Layout.csv"},
                "encoding": {"edges_to_plot": "all", "label_clusters": "true"},
                "output": {"figsize": [8, 8], "output_dir": "out"},
            }
        ),
        encoding="utf-8",
    )

    config = PlotConfig.from_json(path)

    assert config.layout.seed == 42
    assert config.layout.layout_source == Path("Layout.csv")
    assert config.encoding.edges_to_plot is EdgesToPlot.ALL
    assert config.encoding.label_clusters is True
    assert config.output.figsize == (8.0, 8.0)


def test_from_dict_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigurationError):
        PlotConfig.from_dict({"encoding": {"node_colour": "cases"}})
    with pytest.raises(ConfigurationError):
        PlotConfig.from_dict({"plotting": {}})
