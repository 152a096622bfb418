from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List

import numpy as np

from .postprocess import YoloxPostConfig, YoloxPostprocessor
from .types import Detection


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferenceResult:
    detections: List[Detection]
    inference_ms: float
    postprocess_ms: float


class YoloxPipeline:
    """
    Inference -> postprocess for one already-prepared input blob.

    `infer_fn` is whatever runs the model (ONNX Runtime session, TensorRT engine,
    a stub in tests); it receives the blob and returns the raw head output.
    Image loading, resizing and padding happen before this pipeline.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        post_cfg: YoloxPostConfig = YoloxPostConfig(),
    ):
        self._infer_fn = infer_fn
        self.post = YoloxPostprocessor(post_cfg)

    def run(self, blob: np.ndarray) -> InferenceResult:
        t0 = time.perf_counter()
        preds = self._infer_fn(blob)
        t1 = time.perf_counter()
        detections = self.post.process(preds)
        t2 = time.perf_counter()

        result = InferenceResult(
            detections=detections,
            inference_ms=(t1 - t0) * 1000.0,
            postprocess_ms=(t2 - t1) * 1000.0,
        )
        LOGGER.debug(
            "inference=%.3fms postprocess=%.3fms detections=%d",
            result.inference_ms,
            result.postprocess_ms,
            len(detections),
        )
        return result

    def __call__(self, blob: np.ndarray) -> List[Detection]:
        return self.run(blob).detections
