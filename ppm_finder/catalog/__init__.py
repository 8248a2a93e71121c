"""
Catalog module.

Provides the criterion and tool records, the criterion registry holding
the live weight vector, and the catalog loader.
"""

from ppm_finder.catalog.models import (
    Criterion,
    Tag,
    Tool,
    MIN_WEIGHT,
    MAX_WEIGHT,
    DEFAULT_WEIGHT,
    MIN_RATING,
    MAX_RATING,
)

from ppm_finder.catalog.defaults import DEFAULT_CRITERIA

from ppm_finder.catalog.registry import CriterionRegistry, validate_weight

from ppm_finder.catalog.loader import (
    Catalog,
    build_catalog,
    load_catalog,
    parse_tool,
)

__all__ = [
    'Criterion',
    'Tag',
    'Tool',
    'MIN_WEIGHT',
    'MAX_WEIGHT',
    'DEFAULT_WEIGHT',
    'MIN_RATING',
    'MAX_RATING',
    'DEFAULT_CRITERIA',
    'CriterionRegistry',
    'validate_weight',
    'Catalog',
    'build_catalog',
    'load_catalog',
    'parse_tool',
]
