"""Turning raw vision-model output into an AnalysisResult."""

import json
import logging
import math
from typing import Dict, List

from prompt_studio.models import AnalysisResult

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50

# Share of the overall similarity credited to each detail metric.
DETAIL_WEIGHTS = {
    "colorMatch": 0.8,
    "shapeMatch": 0.9,
    "compositionMatch": 0.7,
    "overallQuality": 0.85,
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (72.5 -> 73)."""
    return math.floor(value + 0.5)


def clamp_score(value: object) -> int:
    try:
        score = round_half_up(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        score = 0
    return min(100, max(0, score))


def detailed_analysis_for(score: int) -> Dict[str, int]:
    """Per-metric breakdown derived from the overall score; zeroes fall back to 50."""
    return {
        name: round_half_up(score * weight) or NEUTRAL_SCORE
        for name, weight in DETAIL_WEIGHTS.items()
    }


def build_analysis_result(raw_text: str, user_name: str) -> AnalysisResult:
    try:
        parsed = json.loads(raw_text)
        if not isinstance(parsed, dict):
            raise ValueError("analysis response is not a JSON object")
    except ValueError:
        logger.error("Failed to parse analysis response as JSON: %.200s", raw_text)
        return AnalysisResult(
            similarity_score=NEUTRAL_SCORE,
            feedback=[
                f"Sorry {user_name}, the analysis hit a snag, but keep going!",
                "Try making your prompt more specific and detailed.",
                "Describe colors, shapes and style preferences explicitly.",
            ],
        )

    feedback = parsed.get("feedback")
    if isinstance(feedback, list):
        tips: List[str] = [str(item) for item in feedback]
    else:
        tips = ["Analysis failed, but keep trying!"]

    score = clamp_score(parsed.get("similarityScore") or 0)
    return AnalysisResult(
        similarity_score=score,
        feedback=tips,
        detailed_analysis=detailed_analysis_for(score),
    )
