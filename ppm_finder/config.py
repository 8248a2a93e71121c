"""
Configuration for the tool finder engine.

Provides dataclasses and loaders for scoring, selection, filtering,
guided ranking and analytics settings.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ppm_finder.exceptions import ConfigError

FILTER_MODES = ("AND", "OR")


@dataclass
class ScoringConfig:
    """
    Match score settings.

    Attributes:
        neutral_rating: Rating assumed when a tool has no rating for a criterion
        max_rating: Best attainable rating, used for the score denominator
        precision: Decimal places kept in published match scores
    """

    neutral_rating: int = 3
    max_rating: int = 5
    precision: int = 1


@dataclass
class SelectionConfig:
    """
    Selection and comparison settings.

    Attributes:
        max_compared: Maximum number of tools flagged for side-by-side comparison
        preselect_all: Select every catalog tool when a session starts
    """

    max_compared: int = 3
    preselect_all: bool = True


@dataclass
class FilterConfig:
    """Filter settings."""

    default_mode: str = "AND"


@dataclass
class GuidedConfig:
    """
    Guided ranking settings.

    Attributes:
        question_table: Path to a YAML question table (None = packaged default)
    """

    question_table: Optional[str] = None


@dataclass
class AnalyticsConfig:
    """
    Analytics event settings.

    Attributes:
        enabled: Emit events at all
        log_events: Also write every event to the engine log
    """

    enabled: bool = True
    log_events: bool = False


@dataclass
class FinderConfig:
    """
    Complete configuration for the tool finder engine.

    This is the top-level configuration object that combines all
    engine settings.
    """

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    guided: GuidedConfig = field(default_factory=GuidedConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)

    def validate(self) -> None:
        """
        Check settings for consistency.

        Raises:
            ConfigError: If any setting is out of range
        """
        if self.scoring.max_rating < 1:
            raise ConfigError(
                "max_rating must be at least 1",
                details={"max_rating": self.scoring.max_rating},
            )
        if not 1 <= self.scoring.neutral_rating <= self.scoring.max_rating:
            raise ConfigError(
                "neutral_rating must lie between 1 and max_rating",
                details={
                    "neutral_rating": self.scoring.neutral_rating,
                    "max_rating": self.scoring.max_rating,
                },
            )
        if self.scoring.precision < 0:
            raise ConfigError(
                "precision must not be negative",
                details={"precision": self.scoring.precision},
            )
        if self.selection.max_compared < 1:
            raise ConfigError(
                "max_compared must be at least 1",
                details={"max_compared": self.selection.max_compared},
            )
        if self.filters.default_mode.upper() not in FILTER_MODES:
            raise ConfigError(
                f"default_mode must be one of {', '.join(FILTER_MODES)}",
                details={"default_mode": self.filters.default_mode},
            )

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "FinderConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            FinderConfig instance

        Raises:
            ConfigError: If a section contains unknown keys
        """
        sections = {
            "scoring": ScoringConfig,
            "selection": SelectionConfig,
            "filters": FilterConfig,
            "guided": GuidedConfig,
            "analytics": AnalyticsConfig,
        }
        unknown = set(config_dict) - set(sections)
        if unknown:
            raise ConfigError(
                f"Unknown configuration sections: {', '.join(sorted(unknown))}"
            )

        built = {}
        for name, section_cls in sections.items():
            section_dict = config_dict.get(name) or {}
            try:
                built[name] = section_cls(**section_dict)
            except TypeError as e:
                raise ConfigError(f"Invalid '{name}' section: {e}") from e

        config = cls(**built)
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "FinderConfig":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            FinderConfig instance
        """
        path = Path(yaml_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, "r") as f:
            config_dict = yaml.safe_load(f) or {}

        # Extract engine section if present
        if "ppm_finder" in config_dict:
            config_dict = config_dict["ppm_finder"] or {}

        return cls.from_dict(config_dict)

    @classmethod
    def from_environment(cls) -> "FinderConfig":
        """
        Create configuration from environment variables.

        Environment variables override default values:
        - PPM_FINDER_MAX_COMPARED
        - PPM_FINDER_FILTER_MODE
        - PPM_FINDER_QUESTION_TABLE
        - PPM_FINDER_PRECISION

        Returns:
            FinderConfig instance
        """
        config = cls()

        if os.environ.get("PPM_FINDER_MAX_COMPARED"):
            try:
                config.selection.max_compared = int(
                    os.environ.get("PPM_FINDER_MAX_COMPARED")
                )
            except ValueError:
                pass

        if os.environ.get("PPM_FINDER_FILTER_MODE"):
            mode = os.environ.get("PPM_FINDER_FILTER_MODE", "").upper()
            if mode in FILTER_MODES:
                config.filters.default_mode = mode

        if os.environ.get("PPM_FINDER_QUESTION_TABLE"):
            config.guided.question_table = os.environ.get("PPM_FINDER_QUESTION_TABLE")

        if os.environ.get("PPM_FINDER_PRECISION"):
            try:
                config.scoring.precision = int(os.environ.get("PPM_FINDER_PRECISION"))
            except ValueError:
                pass

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "scoring": {
                "neutral_rating": self.scoring.neutral_rating,
                "max_rating": self.scoring.max_rating,
                "precision": self.scoring.precision,
            },
            "selection": {
                "max_compared": self.selection.max_compared,
                "preselect_all": self.selection.preselect_all,
            },
            "filters": {
                "default_mode": self.filters.default_mode,
            },
            "guided": {
                "question_table": self.guided.question_table,
            },
            "analytics": {
                "enabled": self.analytics.enabled,
                "log_events": self.analytics.log_events,
            },
        }


def load_config(config_path: Optional[str] = None) -> FinderConfig:
    """
    Load configuration with fallback to defaults.

    Priority: explicit path > environment variables > defaults

    Args:
        config_path: Optional path to YAML config file

    Returns:
        FinderConfig instance
    """
    if config_path:
        return FinderConfig.from_yaml(config_path)

    config = FinderConfig.from_environment()
    config.validate()
    return config
