"""
Rank Command - Rank catalog tools against weighted criteria.

Usage:
    ppmfind rank --catalog tools.yaml -w security=5 -w easeOfUse=2 --tag Agile
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import click

from ppm_finder.catalog import load_catalog
from ppm_finder.exceptions import FinderError
from ppm_finder.filtering import RATING_OPERATORS
from ppm_finder.session import FinderSession, SessionSnapshot

logger = logging.getLogger("ppmfind.rank")

RATING_PATTERN = re.compile(
    r"^\s*(?P<criterion>[A-Za-z0-9_-]+)\s*(?P<op>>=|<=|>|<|=)\s*(?P<rating>\d+)\s*$"
)


def parse_weight(spec: str) -> Tuple[str, int]:
    """Parse a ``criterion=weight`` option value."""
    criterion_id, sep, weight = spec.partition("=")
    if not sep or not criterion_id.strip():
        raise click.BadParameter(f"Expected criterion=weight, got '{spec}'")
    try:
        return criterion_id.strip(), int(weight)
    except ValueError:
        raise click.BadParameter(f"Weight must be an integer, got '{weight}'")


def parse_rating(spec: str) -> Tuple[str, str, int]:
    """Parse a ``criterion>=rating`` option value."""
    match = RATING_PATTERN.match(spec)
    if match is None:
        raise click.BadParameter(
            f"Expected criterion<op>rating with op in {', '.join(RATING_OPERATORS)}, got '{spec}'"
        )
    return match.group("criterion"), match.group("op"), int(match.group("rating"))


def output_text_ranking(snapshot: SessionSnapshot, top: Optional[int] = None):
    """Output a ranking as a formatted table."""
    click.echo(f"\n{'=' * 60}")
    click.echo("  Tool Ranking")
    click.echo(f"{'=' * 60}")

    weights = ", ".join(f"{cid}={w}" for cid, w in snapshot.weights.items())
    click.echo(f"\n  Weights: {weights}")
    click.echo(f"  Filters: {snapshot.filters.describe()}")

    ranked = snapshot.ranked[:top] if top else snapshot.ranked
    if not ranked:
        click.echo("\n  No tools match the current filters.\n")
        return

    click.echo(f"\n  {'#':>3}  {'Tool':<28} {'Score':>6}  {'Met':>3}  Strengths")
    click.echo(f"  {'-' * 56}")
    for item in ranked:
        strengths = ", ".join(item.strengths) or "-"
        click.echo(
            f"  {item.rank:>3}  {item.tool.name[:28]:<28} "
            f"{item.match_score:>5.1f}%  {item.criteria_met:>3}  {strengths}"
        )
    click.echo()


def output_json_ranking(snapshot: SessionSnapshot, top: Optional[int] = None):
    """Output a ranking as JSON."""
    data = snapshot.to_dict()
    if top:
        data["ranked"] = data["ranked"][:top]
    click.echo(json.dumps(data, indent=2))


def apply_options(
    session: FinderSession,
    weights: Sequence[str],
    tags: Sequence[str],
    ratings: Sequence[str],
    mode: Optional[str],
):
    """Apply weight and filter options to a session."""
    for spec in weights:
        criterion_id, weight = parse_weight(spec)
        session.set_weight(criterion_id, weight)

    if mode:
        session.set_filter_mode(mode)

    for i, tag in enumerate(tags, start=1):
        session.add_tag_filter(f"tag-{i}", [tag])

    for i, spec in enumerate(ratings, start=1):
        criterion_id, operator, rating = parse_rating(spec)
        session.add_rating_filter(f"rating-{i}", criterion_id, operator, rating)


@click.command("rank")
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Tool catalog file (YAML or JSON).",
)
@click.option(
    "--weight",
    "-w",
    "weights",
    multiple=True,
    help="Criterion weight as criterion=weight (1-5). Repeatable.",
)
@click.option(
    "--tag",
    "-t",
    "tags",
    multiple=True,
    help="Require a tag (id or name). Repeatable.",
)
@click.option(
    "--rating",
    "-r",
    "ratings",
    multiple=True,
    help="Rating condition such as 'reporting>=4'. Repeatable.",
)
@click.option(
    "--mode",
    "-m",
    type=click.Choice(["and", "or"], case_sensitive=False),
    default=None,
    help="How filter conditions combine (default from config: AND).",
)
@click.option(
    "--top",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Show only the first N tools.",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def rank(
    ctx,
    catalog_path: Path,
    weights: Tuple[str, ...],
    tags: Tuple[str, ...],
    ratings: Tuple[str, ...],
    mode: Optional[str],
    top: Optional[int],
    output_format: str,
):
    """
    Rank catalog tools against weighted criteria.

    Every tool in the catalog is scored against the criterion weights and
    listed best match first. Tag and rating filters narrow the list.

    \b
    Examples:
        # Rank with default weights
        ppmfind rank --catalog tools.yaml

        # Security matters most, agile or kanban tools only
        ppmfind rank --catalog tools.yaml -w security=5 --tag Agile --tag Kanban --mode or
    """
    try:
        catalog = load_catalog(catalog_path)
        session = FinderSession(catalog, ctx.config)
        apply_options(session, weights, tags, ratings, mode)
        snapshot = session.snapshot()
    except FinderError as e:
        logger.debug(f"Ranking failed: {e!r}")
        raise click.ClickException(str(e))

    if output_format == "json":
        output_json_ranking(snapshot, top)
    else:
        output_text_ranking(snapshot, top)
