"""
Scoring module.

Weighted match scores and score-ordered rankings with a selection-order
tie-break.
"""

from ppm_finder.scoring.ranking import (
    RankedTool,
    MatchScoreRanker,
    match_score,
    raw_match_score,
    order_by_score,
    NEUTRAL_RATING,
    SCORE_PRECISION,
)

__all__ = [
    'RankedTool',
    'MatchScoreRanker',
    'match_score',
    'raw_match_score',
    'order_by_score',
    'NEUTRAL_RATING',
    'SCORE_PRECISION',
]
