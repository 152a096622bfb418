from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np


SizeLike = Union[int, Tuple[int, int]]


class TensorLayoutError(ValueError):
    """
    Raised when a raw tensor does not match the configured grid levels.
    """


@dataclass(frozen=True)
class GridLevel:
    stride: int
    rows: int
    cols: int

    def __post_init__(self) -> None:
        if self.stride <= 0:
            raise ValueError(f"stride must be > 0, got {self.stride}")
        if self.rows < 0 or self.cols < 0:
            raise ValueError(f"rows/cols must be >= 0, got ({self.rows}, {self.cols})")

    @property
    def num_cells(self) -> int:
        return self.rows * self.cols


def normalize_size(size: SizeLike) -> Tuple[int, int]:
    """
    Return (width, height) for an int (square) or a (width, height) pair.
    """

    if isinstance(size, (int, np.integer)) and not isinstance(size, bool):
        return int(size), int(size)
    try:
        w, h = size  # type: ignore[misc]
    except (TypeError, ValueError) as e:
        raise TypeError(f"input size must be an int or a (width, height) pair, got {size!r}") from e
    return int(w), int(h)


def make_grid_levels(input_size: SizeLike, strides: Sequence[int] = (8, 16, 32)) -> List[GridLevel]:
    """
    Build one grid level per stride, ordered finest to coarsest.

    For a 416x416 input and strides (8, 16, 32) this gives 52x52 + 26x26 + 13x13 = 3549 cells.
    """

    width, height = normalize_size(input_size)
    if width <= 0 or height <= 0:
        raise ValueError(f"input size must be positive, got ({width}, {height})")
    if not strides:
        raise ValueError("At least one stride is required.")

    return [GridLevel(stride=int(s), rows=height // int(s), cols=width // int(s)) for s in sorted(strides)]


def total_cells(levels: Sequence[GridLevel]) -> int:
    return sum(level.num_cells for level in levels)


def level_offsets(levels: Sequence[GridLevel]) -> List[int]:
    offsets: List[int] = []
    acc = 0
    for level in levels:
        offsets.append(acc)
        acc += level.num_cells
    return offsets


def cell_location(levels: Sequence[GridLevel], index: int) -> Tuple[int, int, int]:
    """
    Map a flat cell index back to (level_index, row, col).
    """

    n = total_cells(levels)
    if index < 0 or index >= n:
        raise IndexError(f"cell index {index} out of range for {n} cells")

    for level_idx, (offset, level) in enumerate(zip(level_offsets(levels), levels)):
        local = index - offset
        if local < level.num_cells:
            i, j = divmod(local, level.cols)
            return level_idx, i, j

    raise IndexError(f"cell index {index} out of range for {n} cells")  # pragma: no cover


def as_cell_matrix(
    preds: np.ndarray,
    levels: Sequence[GridLevel],
    num_classes: Optional[int] = None,
) -> np.ndarray:
    """
    Check a raw head output against the grid and reshape it to (N, 5 + C).

    Accepts a flat vector, an (N, 5 + C) matrix, or either with a leading batch
    dimension of 1, e.g. (1, 3549, 85) or (1, 3549, 85, 1). Channels-first layouts
    such as (1, 85, 3549) are rejected. Never truncates or pads.
    """

    p = np.asarray(preds)
    if p.ndim >= 3:
        if p.shape[0] != 1:
            raise TensorLayoutError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
        p = p[0]
    p = np.squeeze(p)
    if p.ndim > 2:
        raise TensorLayoutError(f"Unsupported tensor shape {np.shape(preds)}; expected flat or (N, 5 + C).")

    n = total_cells(levels)
    if n == 0:
        raise TensorLayoutError("Grid levels contain no cells.")

    if num_classes is None:
        if p.ndim == 2:
            num_classes = p.shape[1] - 5
        elif p.size % n == 0:
            num_classes = p.size // n - 5
        if num_classes is None or num_classes < 1:
            raise TensorLayoutError(
                f"Cannot infer class count: shape {np.shape(preds)} does not split into {n} cells of 5 + C (C >= 1)."
            )
    elif num_classes < 1:
        raise ValueError(f"num_classes must be >= 1, got {num_classes}")

    if p.ndim == 2 and p.shape != (n, 5 + num_classes):
        raise TensorLayoutError(
            f"Tensor shape {np.shape(preds)} does not match the grid: expected ({n}, {5 + num_classes}) cells."
        )

    expected = n * (5 + num_classes)
    if p.size != expected:
        raise TensorLayoutError(
            f"Tensor has {p.size} values (shape {np.shape(preds)}) but the grid expects "
            f"{n} cells x {5 + num_classes} = {expected}."
        )

    return p.reshape(n, 5 + num_classes)
