"""
Questions Command - List the guided ranking questionnaire.

Usage:
    ppmfind questions [--table questions.yaml]
"""

import json
from pathlib import Path
from typing import Optional

import click

from ppm_finder.catalog import CriterionRegistry, DEFAULT_CRITERIA
from ppm_finder.exceptions import FinderError
from ppm_finder.guided import QuestionTable


def describe_effects(option) -> str:
    parts = []
    for effect in option.effects:
        sign = "+" if effect.mode.value == "add" and effect.amount >= 0 else ""
        op = "=" if effect.mode.value == "set" else ""
        parts.append(f"{effect.criterion_id}{op}{sign}{effect.amount}")
    return ", ".join(parts)


@click.command("questions")
@click.option(
    "--table",
    "table_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Question table YAML (default: built-in questionnaire).",
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
def questions(ctx, table_path: Optional[Path], output_format: str):
    """
    List the guided ranking questions and their weight effects.

    The table is validated against the default criteria before listing.
    """
    try:
        table = QuestionTable.from_yaml(table_path) if table_path else QuestionTable.default()
        table.validate(CriterionRegistry(DEFAULT_CRITERIA))
    except FinderError as e:
        raise click.ClickException(str(e))

    if output_format == "json":
        click.echo(json.dumps(table.to_dict(), indent=2))
        return

    for number, question in enumerate(table.questions, start=1):
        flags = []
        if question.personalization:
            flags.append("personalization")
        if question.multi_select:
            flags.append("multi-select")
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        click.echo(f"\n{number}. ({question.id}) {question.text}{suffix}")
        for option in question.options:
            effects = describe_effects(option)
            line = f"   {option.id}) {option.text}"
            if effects:
                line += f"  -> {effects}"
            click.echo(line)

    if table.derived:
        click.echo("\nDerived weights:")
        for rule in table.derived:
            click.echo(
                f"  {rule.criterion_id}: {rule.kind.value} of {', '.join(rule.sources)}"
            )
    click.echo()
