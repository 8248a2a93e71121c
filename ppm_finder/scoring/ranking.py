"""
Match scoring and ranking for candidate tools.

A tool's match score is the weighted sum of its curator ratings divided by
the best attainable weighted sum, expressed as a percentage:

    score = 100 * sum(w_i * r_i) / sum(w_i * max_rating)

Unrated criteria count as the neutral rating. Criteria with weight 0, or
missing from the weight vector, contribute to neither sum. An all-zero
weight vector scores every tool 0.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ppm_finder.catalog.loader import Catalog
from ppm_finder.catalog.models import MAX_WEIGHT, Tool
from ppm_finder.catalog.registry import CriterionRegistry
from ppm_finder.config import ScoringConfig
from ppm_finder.exceptions import ValidationError

logger = logging.getLogger(__name__)

NEUTRAL_RATING = 3
MAX_RATING = 5
SCORE_PRECISION = 1  # decimal places in published scores
STRENGTH_THRESHOLD = 4
MAX_STRENGTHS = 3


def _weight_arrays(
    tool: Tool,
    weights: Mapping[str, int],
    neutral_rating: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build aligned weight and rating vectors over the weighted criteria.

    Criterion ids are sorted so the result does not depend on the
    iteration order of the weight mapping.
    """
    ids = sorted(cid for cid, w in weights.items() if w)
    w = np.array([weights[cid] for cid in ids], dtype=float)
    r = np.array(
        [
            neutral_rating if tool.rating_for(cid) is None else tool.rating_for(cid)
            for cid in ids
        ],
        dtype=float,
    )
    return w, r


def raw_match_score(
    tool: Tool,
    weights: Mapping[str, int],
    neutral_rating: int = NEUTRAL_RATING,
    max_rating: int = MAX_RATING,
) -> float:
    """
    Unrounded match percentage in [0, 100].

    Raises:
        ValidationError: If a weight is negative or above the maximum weight
    """
    for criterion_id, weight in weights.items():
        if weight is None or weight < 0 or weight > MAX_WEIGHT:
            raise ValidationError(
                f"Weight for '{criterion_id}' must be between 0 and {MAX_WEIGHT}",
                {"criterion_id": criterion_id, "weight": weight},
            )

    w, r = _weight_arrays(tool, weights, neutral_rating)
    denominator = float(np.sum(w * max_rating))
    if denominator == 0.0:
        return 0.0

    score = 100.0 * float(np.dot(w, r)) / denominator
    return float(np.clip(score, 0.0, 100.0))


def match_score(
    tool: Tool,
    weights: Mapping[str, int],
    neutral_rating: int = NEUTRAL_RATING,
    max_rating: int = MAX_RATING,
    precision: int = SCORE_PRECISION,
) -> float:
    """Match percentage rounded to `precision` decimal places."""
    return round(raw_match_score(tool, weights, neutral_rating, max_rating), precision)


@dataclass
class RankedTool:
    """
    A tool with its computed match score and position.

    Attributes:
        tool: The catalog tool
        match_score: Rounded match percentage
        rank: 1-based position in the ranking. Ranks are ordinal: tools tied on
            the rounded score never share a rank, they take consecutive ranks
            in selection order
        criteria_met: Weighted criteria where the tool rating reaches the weight
        strengths: Names of the tool's best rated criteria
    """

    tool: Tool
    match_score: float
    rank: int = 0  # Set during ranking
    criteria_met: int = 0
    strengths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "tool_id": self.tool.id,
            "name": self.tool.name,
            "match_score": self.match_score,
            "rank": self.rank,
            "criteria_met": self.criteria_met,
            "strengths": list(self.strengths),
        }


def order_by_score(
    ranked: Sequence[RankedTool],
    priority: Sequence[str] = (),
) -> List[RankedTool]:
    """
    Sort ranked tools by score, breaking ties with a priority order.

    Tools listed in `priority` win ties in that order; tools absent from it
    follow, keeping their current relative order. Ranks are renumbered
    1..n without gaps. Scores are not recomputed.
    """
    position = {tool_id: i for i, tool_id in enumerate(priority)}
    fallback = len(position)
    ordered = sorted(
        ranked,
        key=lambda item: (-item.match_score, position.get(item.tool.id, fallback)),
    )
    for i, item in enumerate(ordered, start=1):
        item.rank = i
    return ordered


class MatchScoreRanker:
    """
    Ranking engine combining registry weights with catalog ratings.

    Reads the current weight vector from the registry on every call, so
    weight changes made elsewhere are always reflected.
    """

    def __init__(
        self,
        catalog: Catalog,
        registry: CriterionRegistry,
        config: Optional[ScoringConfig] = None,
    ):
        """
        Initialize ranker.

        Args:
            catalog: Tool catalog to score against
            registry: Criterion registry holding the live weights
            config: Scoring settings (uses defaults if None)
        """
        self.catalog = catalog
        self.registry = registry
        self.config = config or ScoringConfig()

    def _score(self, tool: Tool, weights: Mapping[str, int]) -> float:
        return match_score(
            tool,
            weights,
            neutral_rating=self.config.neutral_rating,
            max_rating=self.config.max_rating,
            precision=self.config.precision,
        )

    def score(self, tool_id: str) -> float:
        """
        Match score of one catalog tool under the current weights.

        Raises:
            UnknownToolError: If the tool is not in the catalog
        """
        tool = self.catalog.tool(tool_id)
        return self._score(tool, self.registry.weights())

    def rank(
        self,
        tool_ids: Optional[Iterable[str]] = None,
        priority: Sequence[str] = (),
    ) -> List[RankedTool]:
        """
        Rank tools using the current weights.

        Args:
            tool_ids: Tools to rank, in fallback order (default: whole catalog)
            priority: Tie-break order, typically the user's selection order

        Returns:
            List of RankedTool objects sorted by match score (descending)
        """
        tools = (
            self.catalog.tools if tool_ids is None else self.catalog.tools_by_id(tool_ids)
        )
        weights = self.registry.weights()

        ranked = [
            RankedTool(
                tool=tool,
                match_score=self._score(tool, weights),
                criteria_met=self._criteria_met(tool, weights),
                strengths=self._strengths(tool),
            )
            for tool in tools
        ]
        ranked = order_by_score(ranked, priority)
        logger.info(f"Ranked {len(ranked)} tools")
        return ranked

    def resort_ties(
        self,
        ranked: Sequence[RankedTool],
        priority: Sequence[str],
    ) -> List[RankedTool]:
        """Re-apply the tie-break order to an existing ranking without rescoring."""
        return order_by_score(list(ranked), priority)

    def _criteria_met(self, tool: Tool, weights: Mapping[str, int]) -> int:
        neutral = self.config.neutral_rating
        met = 0
        for criterion_id, weight in weights.items():
            if not weight:
                continue
            rating = tool.rating_for(criterion_id)
            if (neutral if rating is None else rating) >= weight:
                met += 1
        return met

    def criteria_met(self, tool_id: str) -> int:
        """Count weighted criteria where the tool rating is at least the weight."""
        return self._criteria_met(self.catalog.tool(tool_id), self.registry.weights())

    def _strengths(self, tool: Tool) -> List[str]:
        return [
            criterion.name
            for criterion in self.registry
            if (tool.rating_for(criterion.id) or 0) >= STRENGTH_THRESHOLD
        ][:MAX_STRENGTHS]

    def strengths(self, tool_id: str) -> List[str]:
        """Names of up to three criteria the tool is rated 4 or higher on."""
        return self._strengths(self.catalog.tool(tool_id))

    def weights_summary(self) -> str:
        """
        Get human-readable summary of current criteria weights.

        Returns:
            Formatted string describing weights
        """
        weights = self.registry.weights()
        lines = ["Current Criteria Weights:"]

        for criterion in sorted(self.registry, key=lambda c: weights[c.id], reverse=True):
            lines.append(f"  {criterion.name}: {weights[criterion.id]}")

        return "\n".join(lines)
