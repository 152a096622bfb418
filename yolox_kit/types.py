from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np


@dataclass
class Detection:
    """
    Final detection produced by the post-processor.

    Coordinates are normalized to [0, 1] by the network input width/height.
    Boxes decoded near the border can fall slightly outside that range; they are
    not clipped here.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    score: float
    class_id: Optional[int] = None

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    def to_pixels(self, width: float, height: float) -> "Detection":
        return Detection(
            x1=self.x1 * width,
            y1=self.y1 * height,
            x2=self.x2 * width,
            y2=self.y2 * height,
            score=self.score,
            class_id=self.class_id,
        )


@dataclass(frozen=True)
class Cluster:
    """
    One retained group from weighted NMS.

    `index` points back into the candidate arrays (the seed's flat cell index),
    `box` is the score-weighted average of the seed and everything merged into it.
    """

    index: int
    box: Tuple[float, float, float, float]
    score: float


def detections_to_array(detections: Iterable[Detection]) -> np.ndarray:
    """
    Pack detections into the flat (N, 6) record: [class_id, score, x1, y1, x2, y2].

    Detections without a class id are written as -1.
    """

    rows: List[List[float]] = []
    for det in detections:
        class_id = -1 if det.class_id is None else det.class_id
        rows.append([float(class_id), det.score, det.x1, det.y1, det.x2, det.y2])
    if not rows:
        return np.zeros((0, 6), dtype=np.float32)
    return np.asarray(rows, dtype=np.float32)


def detections_from_array(arr: np.ndarray) -> List[Detection]:
    a = np.asarray(arr, dtype=np.float32)
    if a.size % 6 != 0:
        raise ValueError(f"Expected a multiple of 6 values per detection, got {a.size} values.")
    a = a.reshape(-1, 6)

    out: List[Detection] = []
    for class_id, score, x1, y1, x2, y2 in a:
        cls = int(class_id)
        out.append(
            Detection(
                x1=float(x1),
                y1=float(y1),
                x2=float(x2),
                y2=float(y2),
                score=float(score),
                class_id=None if cls < 0 else cls,
            )
        )
    return out
