"""
Filter module.

Tag and rating conditions combined with AND/OR semantics over the tool
catalog.
"""

from ppm_finder.filtering.conditions import (
    FilterMode,
    TagCondition,
    RatingCondition,
    FilterCondition,
    FilterState,
    RATING_OPERATORS,
    filter_tools,
    tool_passes,
)

__all__ = [
    'FilterMode',
    'TagCondition',
    'RatingCondition',
    'FilterCondition',
    'FilterState',
    'RATING_OPERATORS',
    'filter_tools',
    'tool_passes',
]
