"""
Tag and rating filter engine.

A filter state is an ordered list of conditions plus a combination mode.
Each condition is an independent predicate over a single tool; the mode
decides whether a tool must satisfy every condition (AND) or any of them
(OR). All operations return new states, so a filter change is applied as
one unit or not at all.
"""

import logging
import operator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from ppm_finder.catalog.models import MAX_RATING, MIN_RATING, Tool
from ppm_finder.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

NEUTRAL_RATING = 3

RATING_OPERATORS: Dict[str, Callable[[int, int], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "=": operator.eq,
    "<=": operator.le,
    "<": operator.lt,
}


class FilterMode(Enum):
    """How condition results combine."""
    AND = "AND"  # tool must match every condition
    OR = "OR"    # tool must match at least one condition

    @classmethod
    def parse(cls, value: Union[str, "FilterMode"]) -> "FilterMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValidationError(
                f"Unknown filter mode '{value}'", {"mode": value}
            ) from None

    def toggled(self) -> "FilterMode":
        return FilterMode.OR if self is FilterMode.AND else FilterMode.AND


def _check_id(condition_id: str) -> None:
    if not isinstance(condition_id, str) or not condition_id.strip():
        raise ValidationError("Filter condition id must be a non-empty string",
                              {"condition_id": condition_id})


@dataclass(frozen=True)
class TagCondition:
    """
    Matches a tool carrying at least one of the selected tags.

    Tags are compared case-insensitively against tag ids and names, so
    "agile" matches a tag named "Agile".

    Attributes:
        id: Identifier, unique within a filter state
        tag_selector: Tag ids or names; one shared tag is enough to match
    """

    id: str
    tag_selector: FrozenSet[str]

    def __post_init__(self):
        _check_id(self.id)
        if isinstance(self.tag_selector, str):
            raise ValidationError(
                "Tag selector must be a collection of tags, not a string",
                {"condition_id": self.id, "tag_selector": self.tag_selector},
            )
        selector = frozenset(str(t).strip() for t in self.tag_selector)
        selector = frozenset(t for t in selector if t)
        if not selector:
            raise ValidationError(
                "Tag selector must name at least one tag", {"condition_id": self.id}
            )
        object.__setattr__(self, "tag_selector", selector)

    def matches(self, tool: Tool) -> bool:
        keys = {key.casefold() for key in tool.tag_keys()}
        return any(tag.casefold() in keys for tag in self.tag_selector)

    def describe(self) -> str:
        return "tag in {" + ", ".join(sorted(self.tag_selector)) + "}"

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "type": "tag", "tags": sorted(self.tag_selector)}


@dataclass(frozen=True)
class RatingCondition:
    """
    Compares a tool's curator rating for one criterion against a threshold.

    Unrated criteria are compared as the neutral rating, matching how the
    scoring engine treats them.
    """

    id: str
    criterion_id: str
    operator: str
    rating: int
    neutral_rating: int = NEUTRAL_RATING

    def __post_init__(self):
        _check_id(self.id)
        if not self.criterion_id:
            raise ValidationError("Rating condition needs a criterion", {"condition_id": self.id})
        if self.operator not in RATING_OPERATORS:
            raise ValidationError(
                f"Unknown rating operator '{self.operator}'",
                {"condition_id": self.id, "allowed": " ".join(RATING_OPERATORS)},
            )
        if isinstance(self.rating, bool) or not isinstance(self.rating, int) \
                or not MIN_RATING <= self.rating <= MAX_RATING:
            raise ValidationError(
                f"Rating threshold must be an integer between {MIN_RATING} and {MAX_RATING}",
                {"condition_id": self.id, "rating": self.rating},
            )

    def matches(self, tool: Tool) -> bool:
        actual = tool.rating_for(self.criterion_id)
        if actual is None:
            actual = self.neutral_rating
        return RATING_OPERATORS[self.operator](actual, self.rating)

    def describe(self) -> str:
        return f"{self.criterion_id} {self.operator} {self.rating}"

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "type": "rating",
            "criterion_id": self.criterion_id,
            "operator": self.operator,
            "rating": self.rating,
        }


FilterCondition = Union[TagCondition, RatingCondition]


def tool_passes(tool: Tool, conditions: Sequence[FilterCondition], mode: FilterMode) -> bool:
    """Combine per-condition results for one tool."""
    if not conditions:
        return True
    results = [condition.matches(tool) for condition in conditions]
    passed = all(results) if mode is FilterMode.AND else any(results)
    logger.debug(f"Filter {mode.value} for {tool.id}: {results} -> {passed}")
    return passed


def filter_tools(
    tools: Iterable[Tool],
    conditions: Sequence[FilterCondition],
    mode: Union[str, FilterMode] = FilterMode.AND,
) -> List[Tool]:
    """
    Return the tools that pass the conditions, preserving input order.

    Zero conditions pass every tool.
    """
    mode = FilterMode.parse(mode)
    tools = list(tools)
    passed = [tool for tool in tools if tool_passes(tool, conditions, mode)]
    if conditions:
        logger.debug(f"Filtered {len(tools)} -> {len(passed)} tools ({mode.value})")
    return passed


@dataclass(frozen=True)
class FilterState:
    """
    Immutable filter configuration: ordered conditions plus combination mode.

    Every mutator returns a new FilterState; the receiver is never changed.
    """

    conditions: Tuple[FilterCondition, ...] = ()
    mode: FilterMode = FilterMode.AND

    def __post_init__(self):
        object.__setattr__(self, "conditions", tuple(self.conditions))
        object.__setattr__(self, "mode", FilterMode.parse(self.mode))
        seen = set()
        for condition in self.conditions:
            if condition.id in seen:
                raise ValidationError(
                    f"Duplicate filter condition id '{condition.id}'",
                    {"condition_id": condition.id},
                )
            seen.add(condition.id)

    @property
    def is_active(self) -> bool:
        return bool(self.conditions)

    def get(self, condition_id: str) -> FilterCondition:
        for condition in self.conditions:
            if condition.id == condition_id:
                return condition
        raise NotFoundError(
            f"Unknown filter condition '{condition_id}'", {"condition_id": condition_id}
        )

    def with_condition(self, condition: FilterCondition) -> "FilterState":
        return replace(self, conditions=self.conditions + (condition,))

    def without_condition(self, condition_id: str) -> "FilterState":
        self.get(condition_id)
        return replace(
            self, conditions=tuple(c for c in self.conditions if c.id != condition_id)
        )

    def with_update(self, condition_id: str, **changes) -> "FilterState":
        """
        Replace fields of one condition.

        The id itself cannot change; the updated condition is re-validated.
        """
        current = self.get(condition_id)
        if "id" in changes and changes["id"] != condition_id:
            raise ValidationError(
                "Filter condition id cannot be changed", {"condition_id": condition_id}
            )
        try:
            updated = replace(current, **changes)
        except TypeError as e:
            raise ValidationError(
                f"Invalid update for condition '{condition_id}': {e}",
                {"condition_id": condition_id},
            ) from e
        return replace(
            self,
            conditions=tuple(updated if c.id == condition_id else c for c in self.conditions),
        )

    def with_mode(self, mode: Union[str, FilterMode]) -> "FilterState":
        return replace(self, mode=FilterMode.parse(mode))

    def toggled(self) -> "FilterState":
        return replace(self, mode=self.mode.toggled())

    def cleared(self) -> "FilterState":
        return replace(self, conditions=())

    def apply(self, tools: Iterable[Tool]) -> List[Tool]:
        return filter_tools(tools, self.conditions, self.mode)

    def describe(self) -> str:
        if not self.conditions:
            return "No filters"
        joiner = " AND " if self.mode is FilterMode.AND else " OR "
        return joiner.join(c.describe() for c in self.conditions)

    def to_dict(self) -> Dict[str, object]:
        return {
            "mode": self.mode.value,
            "conditions": [c.to_dict() for c in self.conditions],
        }
