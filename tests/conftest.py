"""
Pytest configuration and fixtures for ppm_finder tests.

Markers:
    @pytest.mark.catalog - Catalog and criterion registry tests
    @pytest.mark.scoring - Match score and ranking tests
    @pytest.mark.filtering - Filter engine tests
    @pytest.mark.guided - Guided ranking flow tests
    @pytest.mark.selection - Selection and comparison state tests
    @pytest.mark.cli - Command-line interface tests

Usage:
    pytest -m scoring              # Run only scoring tests
    pytest -m "guided or selection"
    pytest -m "not cli"            # Skip CLI tests
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ppm_finder.catalog import DEFAULT_CRITERIA, CriterionRegistry, build_catalog


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "catalog: Catalog and criterion registry tests")
    config.addinivalue_line("markers", "scoring: Match score and ranking tests")
    config.addinivalue_line("markers", "filtering: Filter engine tests")
    config.addinivalue_line("markers", "guided: Guided ranking flow tests")
    config.addinivalue_line("markers", "selection: Selection and comparison tests")
    config.addinivalue_line("markers", "cli: Command-line interface tests")


FILE_MARKERS = {
    "registry": "catalog",
    "catalog": "catalog",
    "scoring": "scoring",
    "filtering": "filtering",
    "guided": "guided",
    "questions": "guided",
    "selection": "selection",
    "session": "selection",
    "cli": "cli",
}


def pytest_collection_modifyitems(config, items):
    """Auto-apply markers based on test file names and test names."""
    for item in items:
        basename = item.fspath.basename
        for fragment, marker in FILE_MARKERS.items():
            if fragment in basename:
                item.add_marker(getattr(pytest.mark, marker))

        test_name = item.name.lower()
        if "rank" in test_name and not item.get_closest_marker("scoring"):
            item.add_marker(pytest.mark.scoring)
        if "filter" in test_name and not item.get_closest_marker("filtering"):
            item.add_marker(pytest.mark.filtering)


SAMPLE_TOOLS = [
    {
        "id": "alpha",
        "name": "Alpha Projects",
        "tags": [
            {"id": "t-agile", "name": "Agile", "type": "Methodology"},
            {"id": "t-enterprise", "name": "Enterprise", "type": "Segment"},
        ],
        "ratings": {
            "scalability": 5,
            "integrations": 4,
            "easeOfUse": 3,
            "flexibility": 4,
            "ppmFeatures": 5,
            "reporting": 4,
            "security": 5,
        },
    },
    {
        "id": "beta",
        "name": "Beta Board",
        "tags": [{"id": "t-agile", "name": "Agile", "type": "Methodology"}],
        "ratings": {
            "scalability": 2,
            "integrations": 3,
            "easeOfUse": 5,
            "flexibility": 4,
            "ppmFeatures": 2,
            "reporting": 3,
            "security": 2,
        },
    },
    {
        "id": "gamma",
        "name": "Gamma Portfolio",
        "tags": [
            {"id": "t-enterprise", "name": "Enterprise", "type": "Segment"},
            {"id": "t-waterfall", "name": "Waterfall", "type": "Methodology"},
        ],
        "ratings": {
            "scalability": 4,
            "integrations": 5,
            "easeOfUse": 2,
            "flexibility": 3,
            "ppmFeatures": 5,
            "reporting": 5,
            "security": 4,
        },
    },
    {
        "id": "delta",
        "name": "Delta Kanban",
        "tags": [{"id": "t-kanban", "name": "Kanban", "type": "Methodology"}],
        "ratings": {"easeOfUse": 4, "flexibility": 2},
    },
]


@pytest.fixture
def sample_tool_records():
    """Raw catalog tool records, as the data source supplies them."""
    import copy
    return copy.deepcopy(SAMPLE_TOOLS)


@pytest.fixture
def sample_catalog(sample_tool_records):
    """Catalog of four tools over the default criteria."""
    return build_catalog(sample_tool_records)


@pytest.fixture
def registry():
    """Criterion registry with the default criteria at weight 3."""
    return CriterionRegistry(DEFAULT_CRITERIA)


@pytest.fixture
def catalog_file(tmp_path, sample_tool_records):
    """Sample catalog written as YAML."""
    import yaml
    path = tmp_path / "tools.yaml"
    path.write_text(yaml.safe_dump({"tools": sample_tool_records}))
    return path
