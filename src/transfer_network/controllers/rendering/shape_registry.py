# src/transfer_network/controllers/rendering/shape_registry.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Hashable, Iterable, List, Optional, Sequence

import networkx as nx
import numpy as np
from matplotlib.collections import PatchCollection
from matplotlib.patches import Circle, Polygon, Rectangle

logger = logging.getLogger(__name__)

# Shapes handed out to facility types, in order of first appearance
TYPE_SHAPE_ORDER = ("triangle", "circle", "square", "diamond")

# Vertex frame styling shared by all shapes
FRAME_COLOR = "black"
FRAME_WIDTH = 0.7


def _broadcast(values, n: int, name: str) -> list:
    """Accept one shared value or one value per vertex."""
    if isinstance(values, (str, bytes)) or np.ndim(values) == 0:
        return [values] * n
    values = list(values)
    if len(values) != n:
        raise ValueError(f"{name}: expected 1 or {n} values, got {len(values)}")
    return values


def star_vertices(x: float, y: float, radius: float, n_points: int) -> np.ndarray:
    """Regular polygon with n_points corners at `radius`, first corner pointing right."""
    angles = 2.0 * np.pi * np.arange(n_points) / n_points
    return np.column_stack([x + radius * np.cos(angles), y + radius * np.sin(angles)])


class VertexShape(ABC):
    """
    Draw strategy for one vertex shape.

    `scale` converts the numeric size channel to plot units so that the
    same size renders at comparable area across shapes.
    """

    scale: float = 1.0 / 200.0
    clips: bool = True

    def radius(self, size: float) -> float:
        return float(size) * self.scale

    def clip(self, start, end, size: float) -> np.ndarray:
        """Point where the segment start -> end leaves this vertex (start is the vertex centre)."""
        start = np.asarray(start, dtype=float)
        if not self.clips:
            return start
        end = np.asarray(end, dtype=float)
        d = end - start
        length = float(np.hypot(d[0], d[1]))
        if length == 0.0:
            return start
        r = min(self.radius(size), length)
        return start + d / length * r

    def draw(self, ax, coords, colors, sizes, **params) -> Optional[PatchCollection]:
        coords = np.asarray(coords, dtype=float).reshape(-1, 2)
        n = len(coords)
        if n == 0:
            return None
        colors = _broadcast(colors, n, "colors")
        sizes = _broadcast(sizes, n, "sizes")
        params = {k: _broadcast(v, n, k) for k, v in params.items()}

        patches = [
            self.patch(x, y, self.radius(s), **{k: v[i] for k, v in params.items()})
            for i, ((x, y), s) in enumerate(zip(coords, sizes))
        ]
        collection = PatchCollection(
            patches,
            facecolors=colors,
            edgecolors=FRAME_COLOR,
            linewidths=FRAME_WIDTH,
            zorder=2,
        )
        ax.add_collection(collection)
        return collection

    @abstractmethod
    def patch(self, x: float, y: float, radius: float, **params):
        ...


class CircleShape(VertexShape):
    scale = 1.0 / 200.0

    def patch(self, x, y, radius, **params):
        return Circle((x, y), radius)


class SquareShape(VertexShape):
    # clipped as a circle of the half side
    scale = 1.0 / 200.0

    def patch(self, x, y, radius, **params):
        return Rectangle((x - radius, y - radius), 2 * radius, 2 * radius)


class TriangleShape(VertexShape):
    # clips as a circle
    scale = 1.0 / 125.0

    def patch(self, x, y, radius, **params):
        return Polygon(star_vertices(x, y, radius, 3), closed=True)


class StarShape(VertexShape):
    """
    Star with `norays` rays (2 * norays corners of equal radius); two rays
    give a diamond. No clipping: edges are drawn below the vertices anyway.
    """

    scale = 1.0 / 150.0
    clips = False

    def __init__(self, norays: int = 2):
        self.norays = int(norays)

    def patch(self, x, y, radius, norays=None, **params):
        rays = self.norays if norays is None else int(norays)
        if rays < 1:
            raise ValueError(f"norays must be >= 1, got {rays}")
        return Polygon(star_vertices(x, y, radius, 2 * rays), closed=True)


class ShapeRegistry:
    """
    Shape key -> draw strategy. Populated once at startup and queried by
    the 'shape' column of the node attribute table.
    """

    def __init__(self):
        self._shapes: Dict[str, VertexShape] = {}

    def register(self, key: str, shape: VertexShape) -> "ShapeRegistry":
        if not isinstance(shape, VertexShape):
            raise TypeError("shape must be a VertexShape instance.")
        if key in self._shapes:
            logger.warning(f"Replacing registered vertex shape '{key}'")
        self._shapes[key] = shape
        return self

    def get(self, key: str) -> VertexShape:
        try:
            return self._shapes[key]
        except KeyError:
            raise KeyError(f"Unknown vertex shape '{key}'. Registered: {sorted(self._shapes)}") from None

    def __contains__(self, key: str) -> bool:
        return key in self._shapes

    def keys(self) -> List[str]:
        return list(self._shapes)


def default_registry() -> ShapeRegistry:
    registry = ShapeRegistry()
    registry.register("circle", CircleShape())
    registry.register("square", SquareShape())
    registry.register("triangle", TriangleShape())
    registry.register("diamond", StarShape(norays=2))
    return registry


def generate_node_shapes(G: nx.Graph, shapes: Sequence[str] = TYPE_SHAPE_ORDER) -> Dict[Hashable, str]:
    """
    Assign a shape per facility type, types taken in order of first appearance.
    Cycles through `shapes` if there are more types than shapes.
    """
    type_to_shape: Dict[Hashable, str] = {}
    for _, t in G.nodes(data="type"):
        if t not in type_to_shape:
            type_to_shape[t] = shapes[len(type_to_shape) % len(shapes)]
    if len(type_to_shape) > len(shapes):
        logger.warning(f"{len(type_to_shape)} facility types but only {len(shapes)} shapes; shapes repeat")
    return {n: type_to_shape[t] for n, t in G.nodes(data="type")}


def draw_vertices(ax, registry: ShapeRegistry, coords, shape_keys: Iterable[str], colors, sizes,
                  **params) -> List[PatchCollection]:
    """Group vertices by shape and draw each group with its strategy."""
    coords = np.asarray(coords, dtype=float).reshape(-1, 2)
    shape_keys = list(shape_keys)
    n = len(shape_keys)
    colors = _broadcast(colors, n, "colors")
    sizes = _broadcast(sizes, n, "sizes")
    params = {k: _broadcast(v, n, k) for k, v in params.items()}

    drawn = []
    for key in dict.fromkeys(shape_keys):
        idx = [i for i, k in enumerate(shape_keys) if k == key]
        shape = registry.get(key)
        extra = {k: [v[i] for i in idx] for k, v in params.items()}
        collection = shape.draw(
            ax,
            coords[idx],
            [colors[i] for i in idx],
            [sizes[i] for i in idx],
            **extra,
        )
        if collection is not None:
            drawn.append(collection)
    return drawn
