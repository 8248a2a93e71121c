"""
PPM Tool Finder CLI Commands

Commands:
    rank      - Rank catalog tools with explicit weights and filters
    guided    - Derive weights from questionnaire answers and rank
    questions - List the guided ranking questions
"""

from cli.commands import (
    rank,
    guided,
    questions,
)

__all__ = [
    "rank",
    "guided",
    "questions",
]
