"""
Catalog loading.

Reads the criteria and tool snapshot supplied once per session by the
external data source. Accepts YAML or JSON with either a flat `ratings`
mapping per tool or the database shape, where a tool lists its criteria
as `{id, ranking, description}` records and tag types are nested objects.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import yaml

from ppm_finder.catalog.defaults import DEFAULT_CRITERIA
from ppm_finder.catalog.models import (
    Criterion,
    DEFAULT_WEIGHT,
    MAX_RATING,
    MIN_RATING,
    Tag,
    Tool,
)
from ppm_finder.exceptions import UnknownToolError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    """Read-only snapshot of criteria and tools for one session."""

    criteria: List[Criterion]
    tools: List[Tool]

    def __post_init__(self):
        self._by_id: Dict[str, Tool] = {}
        for tool in self.tools:
            if tool.id in self._by_id:
                raise ValidationError(f"Duplicate tool id '{tool.id}'", {"tool_id": tool.id})
            self._by_id[tool.id] = tool

    @property
    def tool_ids(self) -> List[str]:
        return [tool.id for tool in self.tools]

    def __contains__(self, tool_id: str) -> bool:
        return tool_id in self._by_id

    def tool(self, tool_id: str) -> Tool:
        """Return a tool by id, raising UnknownToolError if absent."""
        try:
            return self._by_id[tool_id]
        except KeyError:
            raise UnknownToolError(tool_id) from None

    def tools_by_id(self, tool_ids: Iterable[str]) -> List[Tool]:
        return [self.tool(tool_id) for tool_id in tool_ids]


def _parse_tag(raw: Mapping[str, Any]) -> Tag:
    name = raw.get("name")
    if not name:
        raise ValidationError("Tag is missing a name", {"tag": dict(raw)})
    tag_type = raw.get("type", raw.get("tag_type", ""))
    if isinstance(tag_type, Mapping):
        tag_type = tag_type.get("name", "")
    return Tag(id=str(raw.get("id", name)), name=str(name), type=str(tag_type or ""))


def _check_rating(tool_id: str, criterion_id: str, rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(
            f"Rating for '{criterion_id}' on tool '{tool_id}' must be an integer",
            {"tool_id": tool_id, "criterion_id": criterion_id, "rating": rating},
        )
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating for '{criterion_id}' on tool '{tool_id}' must be between "
            f"{MIN_RATING} and {MAX_RATING}",
            {"tool_id": tool_id, "criterion_id": criterion_id, "rating": rating},
        )
    return rating


def parse_tool(raw: Mapping[str, Any]) -> Tool:
    """
    Build a Tool from a catalog record.

    Raises:
        ValidationError: If the record has no id or carries an invalid rating
    """
    tool_id = raw.get("id")
    if not tool_id:
        raise ValidationError("Tool is missing an id", {"name": raw.get("name")})
    tool_id = str(tool_id)

    ratings: Dict[str, int] = {}
    explanations: Dict[str, str] = {}

    for criterion_id, rating in (raw.get("ratings") or {}).items():
        ratings[str(criterion_id)] = _check_rating(tool_id, criterion_id, rating)

    # Database shape: criteria: [{id, ranking, description}]
    for entry in raw.get("criteria") or []:
        criterion_id = entry.get("id")
        if not criterion_id or entry.get("ranking") is None:
            logger.debug(f"Skipping incomplete criterion entry on {tool_id}: {entry}")
            continue
        ratings[str(criterion_id)] = _check_rating(tool_id, criterion_id, entry["ranking"])
        if entry.get("description"):
            explanations[str(criterion_id)] = str(entry["description"])

    for criterion_id, note in (raw.get("rating_explanations") or {}).items():
        explanations[str(criterion_id)] = str(note)

    tags = tuple(_parse_tag(tag) for tag in raw.get("tags") or [])

    return Tool(
        id=tool_id,
        name=str(raw.get("name", tool_id)),
        tags=tags,
        criteria_ratings=ratings,
        rating_explanations=explanations,
    )


def parse_criterion(raw: Mapping[str, Any]) -> Criterion:
    criterion_id = raw.get("id")
    if not criterion_id:
        raise ValidationError("Criterion is missing an id", {"name": raw.get("name")})
    return Criterion(
        id=str(criterion_id),
        name=str(raw.get("name", criterion_id)),
        weight=raw.get("weight", raw.get("userRating", DEFAULT_WEIGHT)),
        description=str(raw.get("description", "")),
    )


def build_catalog(
    tools: Sequence[Mapping[str, Any]],
    criteria: Optional[Sequence[Mapping[str, Any]]] = None,
) -> Catalog:
    """
    Build a Catalog from raw records.

    Criteria default to DEFAULT_CRITERIA when none are given. Ratings for
    criteria outside the criterion list are kept but logged, since they
    never contribute to a score.
    """
    parsed_criteria = (
        [parse_criterion(c) for c in criteria] if criteria else list(DEFAULT_CRITERIA)
    )
    parsed_tools = [parse_tool(t) for t in tools]

    known = {c.id for c in parsed_criteria}
    for tool in parsed_tools:
        stray = sorted(set(tool.criteria_ratings) - known)
        if stray:
            logger.warning(f"Tool {tool.id} rates unknown criteria: {', '.join(stray)}")

    catalog = Catalog(criteria=parsed_criteria, tools=parsed_tools)
    logger.info(
        f"Loaded catalog with {len(parsed_criteria)} criteria and {len(parsed_tools)} tools"
    )
    return catalog


def load_catalog(path: Union[str, Path]) -> Catalog:
    """
    Load a catalog snapshot from a YAML or JSON file.

    Args:
        path: File with `tools` and optional `criteria` lists

    Returns:
        Catalog instance
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    with open(path, "r") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if not isinstance(data, Mapping):
        raise ValidationError("Catalog file must contain a mapping", {"path": str(path)})

    return build_catalog(data.get("tools") or [], data.get("criteria"))
