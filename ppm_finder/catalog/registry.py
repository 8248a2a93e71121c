"""
Criterion registry.

Holds the canonical list of criteria and their current weights. The
registry is the single source of truth for the weight vector consumed by
the scoring engine; manual adjustment and the guided flow both mutate it.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from ppm_finder.catalog.models import Criterion, MAX_WEIGHT, MIN_WEIGHT
from ppm_finder.exceptions import UnknownCriterionError, ValidationError

logger = logging.getLogger(__name__)


def validate_weight(criterion_id: str, weight) -> int:
    """
    Check that a weight is an integer in [MIN_WEIGHT, MAX_WEIGHT].

    Returns:
        The weight as int

    Raises:
        ValidationError: If the weight is not an integer or out of range
    """
    if isinstance(weight, bool) or not isinstance(weight, int):
        raise ValidationError(
            f"Weight for '{criterion_id}' must be an integer",
            {"criterion_id": criterion_id, "weight": weight},
        )
    if not MIN_WEIGHT <= weight <= MAX_WEIGHT:
        raise ValidationError(
            f"Weight for '{criterion_id}' must be between {MIN_WEIGHT} and {MAX_WEIGHT}",
            {"criterion_id": criterion_id, "weight": weight},
        )
    return weight


class CriterionRegistry:
    """
    Ordered collection of criteria with one mutable weight each.

    Criteria keep their catalog order for display; the weight vector is
    exposed as a plain dict so consumers never touch internal state.
    """

    def __init__(self, criteria: Iterable[Criterion]):
        self._criteria: Dict[str, Criterion] = {}
        for criterion in criteria:
            if criterion.id in self._criteria:
                raise ValidationError(
                    f"Duplicate criterion id '{criterion.id}'",
                    {"criterion_id": criterion.id},
                )
            validate_weight(criterion.id, criterion.weight)
            self._criteria[criterion.id] = criterion
        self._weights: Dict[str, int] = {
            cid: criterion.weight for cid, criterion in self._criteria.items()
        }

    def __contains__(self, criterion_id: str) -> bool:
        return criterion_id in self._criteria

    def __len__(self) -> int:
        return len(self._criteria)

    def __iter__(self) -> Iterator[Criterion]:
        return iter(self._criteria.values())

    @property
    def ids(self) -> List[str]:
        return list(self._criteria)

    @property
    def criteria(self) -> List[Criterion]:
        return list(self._criteria.values())

    def get(self, criterion_id: str) -> Criterion:
        """Return a criterion by id, raising UnknownCriterionError if absent."""
        try:
            return self._criteria[criterion_id]
        except KeyError:
            raise UnknownCriterionError(criterion_id) from None

    def find_by_name(self, name: str) -> Optional[Criterion]:
        """Look up a criterion by display name (case-insensitive)."""
        wanted = name.strip().lower()
        for criterion in self._criteria.values():
            if criterion.name.lower() == wanted:
                return criterion
        return None

    def weight(self, criterion_id: str) -> int:
        self.get(criterion_id)
        return self._weights[criterion_id]

    def weights(self) -> Dict[str, int]:
        """Current weight vector as a new dict (criterion id -> weight)."""
        return dict(self._weights)

    def set_weight(self, criterion_id: str, weight: int) -> None:
        """
        Set one criterion weight.

        Raises:
            UnknownCriterionError: If the criterion id is not registered
            ValidationError: If the weight is outside [1, 5]
        """
        self.get(criterion_id)
        validate_weight(criterion_id, weight)
        old = self._weights[criterion_id]
        self._weights[criterion_id] = weight
        logger.debug(f"Weight {criterion_id}: {old} -> {weight}")

    def apply_weights(self, weights: Mapping[str, int]) -> Dict[str, int]:
        """
        Apply several weights as one step.

        Every entry is validated before any weight changes, so either all
        entries land or none do.

        Returns:
            The weights that actually changed (criterion id -> new weight)
        """
        for criterion_id, weight in weights.items():
            self.get(criterion_id)
            validate_weight(criterion_id, weight)

        changed = {
            cid: w for cid, w in weights.items() if self._weights[cid] != w
        }
        self._weights.update(weights)
        if changed:
            logger.debug(f"Applied weights {changed}")
        return changed

    def snapshot(self) -> Dict[str, int]:
        """Capture the full weight vector for a later restore()."""
        return dict(self._weights)

    def restore(self, snapshot: Mapping[str, int]) -> None:
        """
        Restore a weight vector captured by snapshot().

        Raises:
            ValidationError: If the snapshot does not cover exactly the registered criteria
        """
        if set(snapshot) != set(self._criteria):
            raise ValidationError(
                "Snapshot does not match registered criteria",
                {
                    "missing": sorted(set(self._criteria) - set(snapshot)),
                    "unexpected": sorted(set(snapshot) - set(self._criteria)),
                },
            )
        self.apply_weights(snapshot)

    def reset(self) -> None:
        """Restore every criterion to its catalog default weight."""
        self._weights = {
            cid: criterion.weight for cid, criterion in self._criteria.items()
        }

    def to_dict(self) -> List[Dict[str, object]]:
        """Criteria with their current weights, in catalog order."""
        return [
            {"id": cid, "name": criterion.name, "weight": self._weights[cid]}
            for cid, criterion in self._criteria.items()
        ]
