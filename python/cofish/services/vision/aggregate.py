"""Fold per-frame oracle scores into one clip-level result."""

from collections import Counter
from collections.abc import Sequence

from cofish.errors import InvalidRequestError
from cofish.services.vision.types import AnalysisResult, FrameScore


def aggregate_frame_results(frames: Sequence[FrameScore]) -> AnalysisResult:
    """Aggregate frame scores.

    - alive_score, confidence: arithmetic means
    - species: most frequent non-empty value, ties to the first seen
    - fingerprint: first non-empty value
    - explanation: "Analyzed N frames. " + joined explanations

    Raises:
        InvalidRequestError: No frames.
    """
    if not frames:
        raise InvalidRequestError(message="At least one frame is required")

    count = len(frames)
    alive_score = sum(f.alive_score for f in frames) / count
    confidence = sum(f.confidence for f in frames) / count

    species_seen = [f.species for f in frames if f.species]
    species = ""
    if species_seen:
        # Counter preserves insertion order, so most_common breaks ties by first seen
        species = Counter(species_seen).most_common(1)[0][0]

    fingerprint = next((f.fingerprint for f in frames if f.fingerprint), "")

    explanations = [f.explanation for f in frames if f.explanation]
    if explanations:
        explanation = f"Analyzed {count} frames. " + " ".join(explanations)
    else:
        explanation = "Multi-frame analysis completed."

    return AnalysisResult(
        alive_score=alive_score,
        confidence=confidence,
        species=species,
        fingerprint=fingerprint,
        explanation=explanation,
        frame_count=count,
    )
