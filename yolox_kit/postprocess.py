from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .decode import decode_boxes
from .grid import GridLevel, SizeLike, as_cell_matrix, make_grid_levels, normalize_size
from .nms import WeightedNMSConfig, weighted_nms
from .types import Detection


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class YoloxPostConfig:
    """
    Configuration for YOLOX-style (anchor-free, grid-relative) post-processing.
    """

    # Network input (width, height); an int means square.
    input_size: SizeLike = (416, 416)
    strides: Sequence[int] = (8, 16, 32)
    # None infers C from the tensor size.
    num_classes: Optional[int] = 80
    score_threshold: float = 0.3
    iou_threshold: float = 0.45
    overlap_threshold: float = 0.7
    max_detections: Optional[int] = None
    # Optional list of class IDs to keep; None keeps all.
    class_ids: Optional[Sequence[int]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_size", normalize_size(self.input_size))
        object.__setattr__(self, "strides", tuple(int(s) for s in self.strides))
        if self.num_classes is not None and self.num_classes < 1:
            raise ValueError("num_classes must be >= 1 or None")
        # Validates thresholds and max_detections.
        self.nms_config()
        # Validates input size and strides.
        self.levels()

    def levels(self) -> List[GridLevel]:
        return make_grid_levels(self.input_size, self.strides)

    def nms_config(self) -> WeightedNMSConfig:
        return WeightedNMSConfig(
            score_threshold=self.score_threshold,
            iou_threshold=self.iou_threshold,
            overlap_threshold=self.overlap_threshold,
            max_detections=self.max_detections,
        )


class YoloxPostprocessor:
    """
    Raw head output -> list of Detection.

    Steps per image:
    - check the tensor against the grid: (N, 5 + C) cells [tx, ty, tw, th, obj, class_scores...]
    - decode boxes across all strides
    - weighted NMS on objectness
    - class = argmax of the seed cell's class scores, score = that max
    - normalize boxes by the network input width/height
    """

    def __init__(self, cfg: YoloxPostConfig = YoloxPostConfig()):
        self.cfg = cfg
        self._levels = cfg.levels()
        # The detection cap applies after the class filter, not inside NMS.
        self._nms_cfg = replace(cfg.nms_config(), max_detections=None)

    @property
    def levels(self) -> List[GridLevel]:
        return list(self._levels)

    def process(self, preds: np.ndarray) -> List[Detection]:
        """
        Arg:
            preds: raw output for a single image, flat or with a leading batch dim of 1
        """

        cells = as_cell_matrix(preds, self._levels, self.cfg.num_classes)
        boxes, objectness = decode_boxes(cells, self._levels)
        clusters = weighted_nms(boxes, objectness, self._nms_cfg)
        if not clusters:
            return []

        width, height = self.cfg.input_size  # type: ignore[misc]
        scale = np.array([width, height, width, height], dtype=np.float64)
        class_scores = cells[:, 5:]

        detections: List[Detection] = []
        for cluster in clusters:
            seed_scores = class_scores[cluster.index]
            class_id = int(np.argmax(seed_scores))
            x1, y1, x2, y2 = np.asarray(cluster.box, dtype=np.float64) / scale
            detections.append(
                Detection(
                    x1=float(x1),
                    y1=float(y1),
                    x2=float(x2),
                    y2=float(y2),
                    score=float(seed_scores[class_id]),
                    class_id=class_id,
                )
            )

        if self.cfg.class_ids is not None:
            wanted = {int(c) for c in self.cfg.class_ids}
            detections = [d for d in detections if d.class_id in wanted]

        if self.cfg.max_detections is not None:
            detections = detections[: self.cfg.max_detections]

        LOGGER.debug("postprocess: %d cells -> %d detections", cells.shape[0], len(detections))
        return detections


# ---------------------------------------------------------------------- #
# JSON config
# ---------------------------------------------------------------------- #
def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _int_list(payload: Dict[str, Any], key: str) -> Tuple[int, ...]:
    value = payload[key]
    if not isinstance(value, list) or any(isinstance(v, bool) or not isinstance(v, int) for v in value):
        raise ValueError(f"{key} must be a list of integers")
    return tuple(value)


def load_post_config(path: Union[str, Path]) -> YoloxPostConfig:
    """
    Load a YoloxPostConfig from a JSON object. Missing keys keep their defaults.

        {"input_size": 416, "strides": [8, 16, 32], "num_classes": 80,
         "score_threshold": 0.3, "iou_threshold": 0.45}
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Post-process config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid post-process config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Post-process config must be a JSON object")

    allowed = {
        "input_size",
        "strides",
        "num_classes",
        "score_threshold",
        "iou_threshold",
        "overlap_threshold",
        "max_detections",
        "class_ids",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown post-process config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    if "input_size" in payload:
        size = payload["input_size"]
        if isinstance(size, list):
            if len(size) != 2:
                raise ValueError("input_size must be an integer or [width, height]")
            kwargs["input_size"] = _int_list(payload, "input_size")
        elif isinstance(size, bool) or not isinstance(size, int):
            raise ValueError("input_size must be an integer or [width, height]")
        else:
            kwargs["input_size"] = size
    if "strides" in payload:
        kwargs["strides"] = _int_list(payload, "strides")
    if "num_classes" in payload:
        kwargs["num_classes"] = _optional_int(payload, "num_classes")
    for key in ("score_threshold", "iou_threshold", "overlap_threshold"):
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    if "max_detections" in payload:
        kwargs["max_detections"] = _optional_int(payload, "max_detections")
    if payload.get("class_ids") is not None:
        kwargs["class_ids"] = _int_list(payload, "class_ids")

    return YoloxPostConfig(**kwargs)
