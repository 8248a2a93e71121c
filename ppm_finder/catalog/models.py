"""
Catalog records: criteria, tags and tools.

Plain dataclasses; the catalog is loaded once per session and treated as
read-only apart from criterion weights, which live in the registry.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

MIN_WEIGHT = 1
MAX_WEIGHT = 5
DEFAULT_WEIGHT = 3

MIN_RATING = 1
MAX_RATING = 5

METHODOLOGY_TAG_TYPE = "Methodology"


@dataclass(frozen=True)
class Criterion:
    """
    An evaluation dimension tools are scored against.

    Attributes:
        id: Stable identifier, unique within the registry
        name: Display label
        weight: Default importance (1-5) used when the registry is reset
        description: Longer explanation for the presentation layer
    """

    id: str
    name: str
    weight: int = DEFAULT_WEIGHT
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "description": self.description,
        }


@dataclass(frozen=True)
class Tag:
    """A catalog tag; `type` separates semantic categories from general tags."""

    id: str
    name: str
    type: str = ""

    @property
    def is_methodology(self) -> bool:
        return self.type.lower() == METHODOLOGY_TAG_TYPE.lower()

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "type": self.type}


@dataclass(frozen=True)
class Tool:
    """
    A candidate product in the catalog.

    Attributes:
        id: Unique identifier
        name: Display name
        tags: Tags attached by the catalog curator
        criteria_ratings: Criterion id -> curator rating (1-5); may be partial
        rating_explanations: Criterion id -> curator note for the rating
    """

    id: str
    name: str
    tags: Tuple[Tag, ...] = ()
    criteria_ratings: Dict[str, int] = field(default_factory=dict)
    rating_explanations: Dict[str, str] = field(default_factory=dict)

    def __hash__(self) -> int:
        return hash(self.id)

    def rating_for(self, criterion_id: str) -> Optional[int]:
        """Return the curator rating for a criterion, or None when unrated."""
        return self.criteria_ratings.get(criterion_id)

    def tag_keys(self) -> FrozenSet[str]:
        """Ids and names of all tags, the keys a tag selector matches against."""
        keys = set()
        for tag in self.tags:
            keys.add(tag.id)
            keys.add(tag.name)
        return frozenset(keys)

    @property
    def methodologies(self) -> List[str]:
        return [tag.name for tag in self.tags if tag.is_methodology]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "tags": [tag.to_dict() for tag in self.tags],
            "criteria_ratings": dict(self.criteria_ratings),
            "rating_explanations": dict(self.rating_explanations),
        }
