"""
Guided Command - Derive criterion weights from questionnaire answers.

Usage:
    ppmfind guided --catalog tools.yaml --answers answers.yaml
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import click
import yaml

from cli.commands.rank import output_text_ranking
from ppm_finder.catalog import load_catalog
from ppm_finder.exceptions import FinderError
from ppm_finder.guided import QuestionTable
from ppm_finder.session import FinderSession

logger = logging.getLogger("ppmfind.guided")


def load_answers(path: Path) -> Dict[str, Union[str, List[str]]]:
    """
    Load an answers file mapping question ids to option ids.

    Option ids may be written as numbers; they are compared as strings.
    """
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise click.BadParameter("Answers file must contain a mapping", param_hint="--answers")
    answers: Dict[str, Union[str, List[str]]] = {}
    for question_id, answer in raw.items():
        if isinstance(answer, (list, tuple)):
            answers[str(question_id)] = [str(a) for a in answer]
        else:
            answers[str(question_id)] = str(answer)
    return answers


def replay_answers(session: FinderSession, answers: Dict[str, Any]) -> List[str]:
    """
    Submit answers in question order until the flow completes.

    Returns:
        Ids of questions that had no answer and were left unanswered
    """
    session.start_guided()
    flow = session.flow
    missing = []
    while flow.current_question is not None:
        question = flow.current_question
        if question.id in answers:
            session.submit_answer(answers[question.id])
            continue
        skip = None
        if not question.personalization:
            skip = next((o for o in question.options if o.is_skip), None)
        if skip is None:
            raise click.ClickException(f"No answer given for question {question.id}")
        missing.append(question.id)
        session.submit_answer([skip.id] if question.multi_select else skip.id)
    return missing


@click.command("guided")
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Tool catalog file (YAML or JSON).",
)
@click.option(
    "--answers",
    "answers_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Answers file mapping question ids to option ids.",
)
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
def guided(
    ctx,
    catalog_path: Path,
    answers_path: Path,
    table_path: Optional[Path],
    output_format: str,
):
    """
    Derive weights from guided ranking answers and rank the catalog.

    The answers file is YAML or JSON, e.g. ``{q1: 3, q2: 4, q11: [it, finance]}``.
    Questions with a skip option may be left out.

    \b
    Examples:
        ppmfind guided --catalog tools.yaml --answers answers.yaml
        ppmfind guided --catalog tools.yaml --answers answers.json --format json
    """
    answers = load_answers(answers_path)

    try:
        catalog = load_catalog(catalog_path)
        table = QuestionTable.from_yaml(table_path) if table_path else None
        session = FinderSession(catalog, ctx.config, question_table=table)
        skipped = replay_answers(session, answers)
        snapshot = session.snapshot()
    except FinderError as e:
        logger.debug(f"Guided ranking failed: {e!r}")
        raise click.ClickException(str(e))

    flow = session.flow
    unused = sorted(set(answers) - set(flow.answers))
    for question_id in unused:
        logger.warning(f"Ignoring answer for unknown question {question_id}")

    if output_format == "json":
        data = snapshot.to_dict()
        data["adjustments"] = flow.adjustments()
        data["personalization"] = flow.personalization()
        data["skipped"] = skipped
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("\n  Guided ranking complete")
    adjustments = flow.adjustments()
    if adjustments:
        click.echo("  Adjusted weights:")
        for criterion_id, weight in adjustments.items():
            click.echo(f"    {session.registry.get(criterion_id).name}: {weight}")
    if skipped:
        click.echo(f"  Skipped: {', '.join(skipped)}")
    for question_id, answer in flow.personalization().items():
        shown = ", ".join(answer) if isinstance(answer, list) else answer
        click.echo(f"  {question_id}: {shown}")
    output_text_ranking(snapshot)
