from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .geometry import box_iou, overlap_fraction
from .types import Cluster


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeightedNMSConfig:
    score_threshold: float = 0.3
    iou_threshold: float = 0.45
    # Boxes covered by the seed beyond this fraction are dropped without being averaged in.
    overlap_threshold: float = 0.7
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("score_threshold", "iou_threshold", "overlap_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 or None")


def weighted_nms(boxes: np.ndarray, scores: np.ndarray, cfg: WeightedNMSConfig = WeightedNMSConfig()) -> List[Cluster]:
    """
    Greedy weighted NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).

    Each round takes the highest-scoring remaining box as the seed and, for every
    other remaining box:
      - score below `score_threshold`: dropped
      - IoU with the seed above `iou_threshold`: dropped and averaged into the seed
        with weight score * IoU
      - more than `overlap_threshold` of its area inside the seed: dropped
      - otherwise kept for a later round

    Returns one Cluster per seed, highest seed score first.
    """

    b = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    s = np.asarray(scores, dtype=np.float64).reshape(-1)
    if b.shape[0] != s.shape[0]:
        raise ValueError(f"boxes and scores disagree in length: {b.shape[0]} vs {s.shape[0]}")

    clusters: List[Cluster] = []
    if b.shape[0] == 0:
        return clusters

    # Ascending; the seed is always the last entry. Ties pop the later index first.
    order = np.argsort(s, kind="stable")

    while order.size > 0:
        if cfg.max_detections is not None and len(clusters) >= cfg.max_detections:
            break

        seed = int(order[-1])
        s0 = s[seed]
        if s0 < cfg.score_threshold:
            # Everything left scores <= s0.
            break

        b0 = b[seed]
        rest = order[:-1]
        rest_boxes = b[rest]
        rest_scores = s[rest]

        iou = box_iou(b0, rest_boxes)
        covered = overlap_fraction(b0, rest_boxes)

        low = rest_scores < cfg.score_threshold
        merge = ~low & (iou > cfg.iou_threshold)
        swallowed = ~low & ~merge & (covered > cfg.overlap_threshold)

        merged_box = b0
        if merge.any():
            w = rest_scores[merge] * iou[merge]
            denominator = s0 + w.sum()
            if denominator > 0:
                numerator = s0 * b0 + (w[:, None] * rest_boxes[merge]).sum(axis=0)
                merged_box = numerator / denominator

        clusters.append(Cluster(index=seed, box=tuple(float(v) for v in merged_box), score=float(s0)))

        order = rest[~(low | merge | swallowed)]

    LOGGER.debug("weighted_nms: %d candidates -> %d clusters", b.shape[0], len(clusters))
    return clusters
