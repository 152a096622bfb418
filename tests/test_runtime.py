import unittest

import numpy as np

from yolox_kit.postprocess import YoloxPostConfig
from yolox_kit.runtime import YoloxPipeline


class TestYoloxPipeline(unittest.TestCase):
    def setUp(self) -> None:
        cells = np.zeros((5, 6), dtype=np.float32)
        cells[4] = [0.0, 0.0, 0.0, 0.0, 0.95, 0.99]
        self.preds = cells.reshape(1, 5, 6)
        self.calls = []

    def _infer(self, blob: np.ndarray) -> np.ndarray:
        self.calls.append(blob)
        return self.preds

    def test_call_returns_detections(self) -> None:
        pipe = YoloxPipeline(self._infer, YoloxPostConfig(input_size=16, strides=(8, 16), num_classes=1))
        blob = np.zeros((1, 3, 16, 16), dtype=np.float32)
        dets = pipe(blob)

        self.assertEqual(len(self.calls), 1)
        self.assertIs(self.calls[0], blob)
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].class_id, 0)

    def test_run_reports_timings(self) -> None:
        pipe = YoloxPipeline(self._infer, YoloxPostConfig(input_size=16, strides=(8, 16), num_classes=1))
        result = pipe.run(np.zeros((1, 3, 16, 16), dtype=np.float32))

        self.assertEqual(len(result.detections), 1)
        self.assertGreaterEqual(result.inference_ms, 0.0)
        self.assertGreaterEqual(result.postprocess_ms, 0.0)


if __name__ == "__main__":
    unittest.main()
