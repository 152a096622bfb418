"""
Post-processing for anchor-free YOLOX-style detection heads.

Takes the raw (N, 5 + C) head output of one image, decodes boxes over every
stride level, merges overlapping boxes with weighted NMS and returns normalized
detections. Pure NumPy; running the model is left to the caller.
"""

from .types import Cluster, Detection, detections_from_array, detections_to_array
from .grid import GridLevel, TensorLayoutError, as_cell_matrix, cell_location, make_grid_levels, total_cells
from .geometry import box_area, box_iou, intersection_area, overlap_fraction
from .decode import decode_boxes, grid_coordinates
from .nms import WeightedNMSConfig, weighted_nms
from .postprocess import YoloxPostConfig, YoloxPostprocessor, load_post_config
from .runtime import InferenceResult, YoloxPipeline
from .metadata import load_class_names

__all__ = [
    "Cluster",
    "Detection",
    "detections_from_array",
    "detections_to_array",
    "GridLevel",
    "TensorLayoutError",
    "as_cell_matrix",
    "cell_location",
    "make_grid_levels",
    "total_cells",
    "box_area",
    "box_iou",
    "intersection_area",
    "overlap_fraction",
    "decode_boxes",
    "grid_coordinates",
    "WeightedNMSConfig",
    "weighted_nms",
    "YoloxPostConfig",
    "YoloxPostprocessor",
    "load_post_config",
    "InferenceResult",
    "YoloxPipeline",
    "load_class_names",
]
