# src/transfer_network/utils/layout_cache.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from transfer_network.utils.errors import LayoutShapeError

logger = logging.getLogger(__name__)


def load_layout_csv(path: Union[str, Path]) -> np.ndarray:
    """
    Read a cached layout: headerless CSV, one "x,y" row per node in graph node order.
    """
    path = Path(path)
    df = pd.read_csv(path, header=None)
    if df.shape[1] != 2:
        raise LayoutShapeError(f"{path}: expected 2 columns (x, y), found {df.shape[1]}")
    matrix = df.apply(pd.to_numeric, errors="raise").to_numpy(dtype=float)
    logger.info(f"Loaded cached layout from '{path}' ({matrix.shape[0]} rows)")
    return matrix


def save_layout_csv(coords, path: Union[str, Path]) -> Path:
    """Write coordinates in the same headerless format load_layout_csv reads."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    matrix = np.asarray(coords, dtype=float).reshape(-1, 2)
    pd.DataFrame(matrix).to_csv(path, header=False, index=False)
    logger.info(f"Saved layout to '{path}'")
    return path
