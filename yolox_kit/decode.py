from typing import Sequence, Tuple

import numpy as np

from .grid import GridLevel, total_cells


def grid_coordinates(levels: Sequence[GridLevel]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-cell grid position and stride, in flat (level, row, col) order.

    Returns:
        xy: (N, 2) as (col, row)
        strides: (N,)
    """

    grids = []
    strides = []
    for level in levels:
        rows, cols = np.meshgrid(np.arange(level.rows), np.arange(level.cols), indexing="ij")
        grids.append(np.stack([cols, rows], axis=-1).reshape(-1, 2))
        strides.append(np.full((level.num_cells,), level.stride, dtype=np.float64))

    if not grids:
        return np.zeros((0, 2), dtype=np.float64), np.zeros((0,), dtype=np.float64)
    return np.concatenate(grids, axis=0).astype(np.float64), np.concatenate(strides, axis=0)


def decode_boxes(cells: np.ndarray, levels: Sequence[GridLevel]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Decode raw head cells into pixel-space xyxy boxes.

    `cells` is (N, 5 + C) laid out as [tx, ty, tw, th, obj, class scores...] and
    must already match `levels` (see `grid.as_cell_matrix`). Per cell:

        center = (grid_xy + t_xy) * stride
        size   = exp(t_wh) * stride

    Boxes are not clipped to the image.

    Returns:
        boxes: (N, 4) xyxy
        objectness: (N,)
    """

    c = np.asarray(cells, dtype=np.float64)
    if c.ndim != 2 or c.shape[1] < 5:
        raise ValueError(f"Expected cells shaped (N, 5 + C), got {c.shape}")
    n = total_cells(levels)
    if c.shape[0] != n:
        raise ValueError(f"Got {c.shape[0]} cells but the grid levels describe {n}.")

    xy, strides = grid_coordinates(levels)
    s = strides[:, None]

    centers = (xy + c[:, 0:2]) * s
    sizes = np.exp(c[:, 2:4]) * s

    half = sizes / 2
    boxes = np.concatenate([centers - half, centers + half], axis=1)
    return boxes, c[:, 4].copy()
