"""
Box arithmetic shared by the decoder and weighted NMS.

All boxes are xyxy. Functions taking `box, boxes` compare one box against an
(N, 4) array and return an (N,) array.
"""

import numpy as np


def box_area(boxes: np.ndarray) -> np.ndarray:
    b = np.asarray(boxes, dtype=np.float64)
    w = np.maximum(0.0, b[..., 2] - b[..., 0])
    h = np.maximum(0.0, b[..., 3] - b[..., 1])
    return w * h


def intersection_area(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    b = np.asarray(box, dtype=np.float64)
    others = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)

    xx1 = np.maximum(b[0], others[:, 0])
    yy1 = np.maximum(b[1], others[:, 1])
    xx2 = np.minimum(b[2], others[:, 2])
    yy2 = np.minimum(b[3], others[:, 3])

    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    return w * h


def _safe_divide(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    out = np.zeros_like(num, dtype=np.float64)
    np.divide(num, den, out=out, where=den > 0)
    return out


def box_iou(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IoU of `box` against each row of `boxes`. An empty union gives 0.
    """

    others = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    inter = intersection_area(box, others)
    union = box_area(box) + box_area(others) - inter
    return _safe_divide(inter, union)


def overlap_fraction(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Share of each row of `boxes` covered by `box`. Zero-area rows give 0.
    """

    others = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    return _safe_divide(intersection_area(box, others), box_area(others))
