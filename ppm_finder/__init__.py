"""
PPM Tool Finder engine.

Criteria weighting, tag filtering, weighted match scoring and guided
ranking for choosing a project/portfolio management tool.
"""

from ppm_finder.exceptions import (
    FinderError,
    ValidationError,
    ConfigError,
    NotFoundError,
    UnknownToolError,
    UnknownCriterionError,
    InvalidOperation,
)

from ppm_finder.config import FinderConfig, load_config

from ppm_finder.catalog import (
    Catalog,
    Criterion,
    CriterionRegistry,
    Tag,
    Tool,
    DEFAULT_CRITERIA,
    build_catalog,
    load_catalog,
)

from ppm_finder.filtering import FilterMode, FilterState, RatingCondition, TagCondition, filter_tools

from ppm_finder.scoring import MatchScoreRanker, RankedTool, match_score

from ppm_finder.selection import SelectionState

from ppm_finder.guided import GuidedRankingFlow, QuestionTable, AtQuestion, Complete, Abandoned

from ppm_finder.session import FinderSession, SessionSnapshot

__version__ = "0.1.0"

__all__ = [
    'FinderError',
    'ValidationError',
    'ConfigError',
    'NotFoundError',
    'UnknownToolError',
    'UnknownCriterionError',
    'InvalidOperation',
    'FinderConfig',
    'load_config',
    'Catalog',
    'Criterion',
    'CriterionRegistry',
    'Tag',
    'Tool',
    'DEFAULT_CRITERIA',
    'build_catalog',
    'load_catalog',
    'FilterMode',
    'FilterState',
    'RatingCondition',
    'TagCondition',
    'filter_tools',
    'MatchScoreRanker',
    'RankedTool',
    'match_score',
    'SelectionState',
    'GuidedRankingFlow',
    'QuestionTable',
    'AtQuestion',
    'Complete',
    'Abandoned',
    'FinderSession',
    'SessionSnapshot',
]
