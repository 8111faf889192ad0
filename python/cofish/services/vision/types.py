"""Shared type definitions for the vision oracle layer.

- FrameScore: one frame's normalized oracle output
- AnalysisResult: FrameScores aggregated over a whole clip

All scores are in [0, 1]. Empty strings, not None, mark missing text fields.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FrameScore:
    """Normalized oracle output for a single frame.

    Attributes:
        alive_score: 1 = clearly alive, 0 = clearly dead or fake
        confidence: Oracle confidence in alive_score
        species: Most likely species name, "" if none given
        fingerprint: Short description of distinguishing marks, "" if none given
        explanation: Free-text rationale, "" if none given
    """

    alive_score: float
    confidence: float
    species: str = ""
    fingerprint: str = ""
    explanation: str = ""


@dataclass(frozen=True)
class AnalysisResult:
    """Clip-level verdict inputs.

    Attributes:
        alive_score: Mean frame alive_score
        confidence: Mean frame confidence
        species: Most frequent non-empty frame species
        fingerprint: First non-empty frame fingerprint
        explanation: "Analyzed N frames. ..." summary
        frame_count: Number of frames aggregated
    """

    alive_score: float
    confidence: float
    species: str
    fingerprint: str
    explanation: str
    frame_count: int
