"""Vision oracle layer: frame scoring, embeddings and aggregation."""

from cofish.services.vision.adapter import VisionOracle
from cofish.services.vision.aggregate import aggregate_frame_results
from cofish.services.vision.errors import VisionError, VisionErrorClass, classify_oracle_error
from cofish.services.vision.openai_adapter import OpenAIVisionOracle, normalize_frame_response
from cofish.services.vision.types import AnalysisResult, FrameScore

__all__ = [
    "AnalysisResult",
    "FrameScore",
    "OpenAIVisionOracle",
    "VisionError",
    "VisionErrorClass",
    "VisionOracle",
    "aggregate_frame_results",
    "classify_oracle_error",
    "normalize_frame_response",
]
