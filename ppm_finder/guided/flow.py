"""
Guided ranking flow.

A linear questionnaire that derives criterion weights from answers as an
alternative to manual weighting. The flow is a small state machine:

    AtQuestion(1) -> AtQuestion(2) -> ... -> AtQuestion(n) -> Complete
    any open state --abandon()--> Abandoned

Each submitted answer is applied to the registry as one step, and the
weights in force before the step are kept so that back() and amend_last()
restore them exactly instead of undoing effects arithmetically.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ppm_finder.catalog.registry import CriterionRegistry
from ppm_finder.exceptions import InvalidOperation, ValidationError
from ppm_finder.guided.questions import Question, QuestionTable

logger = logging.getLogger(__name__)

Answer = Union[str, Sequence[str]]


@dataclass(frozen=True)
class AtQuestion:
    """Waiting for the answer to question `number` (1-based)."""
    number: int


@dataclass(frozen=True)
class Complete:
    """Every question has been answered."""


@dataclass(frozen=True)
class Abandoned:
    """The flow was closed before (or after) completion."""


FlowState = Union[AtQuestion, Complete, Abandoned]


@dataclass
class _Step:
    """Undo record for one answered question."""

    question_id: str
    option_ids: Tuple[str, ...]
    before: Dict[str, int]
    applied: Dict[str, int] = field(default_factory=dict)


class GuidedRankingFlow:
    """
    Questionnaire state machine bound to a criterion registry.

    The table is validated against the registry on construction, so a
    table referencing an unknown criterion fails here with ConfigError
    rather than halfway through the questionnaire.
    """

    def __init__(self, registry: CriterionRegistry, table: Optional[QuestionTable] = None):
        self.registry = registry
        self.table = table or QuestionTable.default()
        self.table.validate(registry)

        self._initial = registry.snapshot()
        self._history: List[_Step] = []
        self._answers: Dict[str, Tuple[str, ...]] = {}
        self._state: FlowState = AtQuestion(1) if len(self.table) else Complete()

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def is_complete(self) -> bool:
        return isinstance(self._state, Complete)

    @property
    def is_abandoned(self) -> bool:
        return isinstance(self._state, Abandoned)

    @property
    def current_question(self) -> Optional[Question]:
        if isinstance(self._state, AtQuestion):
            return self.table.questions[self._state.number - 1]
        return None

    @property
    def progress(self) -> float:
        """Share of questions answered, as a percentage."""
        if not len(self.table):
            return 100.0
        return 100.0 * len(self._history) / len(self.table)

    @property
    def answers(self) -> Dict[str, Union[str, List[str]]]:
        """Answers so far: option id, or list of option ids for multi-select."""
        return {qid: self._render(qid, opts) for qid, opts in self._answers.items()}

    def personalization(self) -> Dict[str, Union[str, List[str]]]:
        """Answers to personalization questions, which never change weights."""
        return {
            qid: self._render(qid, opts)
            for qid, opts in self._answers.items()
            if self.table.question(qid).personalization
        }

    def adjustments(self) -> Dict[str, int]:
        """Current weights of every criterion the flow has set so far."""
        touched = set()
        for step in self._history:
            touched.update(step.applied)
        weights = self.registry.weights()
        return {cid: weights[cid] for cid in self.registry.ids if cid in touched}

    def _render(self, question_id: str, option_ids: Tuple[str, ...]):
        if self.table.question(question_id).multi_select:
            return list(option_ids)
        return option_ids[0]

    # -- transitions -------------------------------------------------------

    def submit(self, answer: Answer) -> Dict[str, int]:
        """
        Answer the current question and advance.

        Args:
            answer: Option id, or a list of option ids for multi-select questions

        Returns:
            Weights applied by this answer (criterion id -> weight)

        Raises:
            InvalidOperation: If the flow is complete or abandoned
            ValidationError: If the answer is not offered by the current question
        """
        question = self.current_question
        if question is None:
            raise InvalidOperation(
                f"Cannot submit an answer in state {type(self._state).__name__}",
                "submit",
            )
        option_ids = self._normalize(question, answer)
        before = self.registry.snapshot()
        answers = dict(self._answers)
        answers[question.id] = option_ids

        applied = self._compute(question, option_ids, before, answers)
        self.registry.apply_weights(applied)

        self._answers = answers
        self._history.append(_Step(question.id, option_ids, before, applied))
        self._advance()
        logger.debug(f"Answered {question.id} with {list(option_ids)}: {applied}")
        return applied

    def amend_last(self, answer: Answer) -> Dict[str, int]:
        """
        Replace the most recent answer without advancing.

        Weights are recomputed from the snapshot taken before that answer,
        so amending with the same answer any number of times leaves the
        weights unchanged.

        Raises:
            InvalidOperation: If nothing has been answered or the flow is abandoned
        """
        if self.is_abandoned or not self._history:
            raise InvalidOperation("No answer to amend", "amend_last")
        step = self._history[-1]
        question = self.table.question(step.question_id)
        option_ids = self._normalize(question, answer)
        answers = dict(self._answers)
        answers[question.id] = option_ids

        applied = self._compute(question, option_ids, step.before, answers)
        target = dict(step.before)
        target.update(applied)
        self.registry.restore(target)

        self._answers = answers
        self._history[-1] = _Step(question.id, option_ids, step.before, applied)
        logger.debug(f"Amended {question.id} to {list(option_ids)}: {applied}")
        return applied

    def back(self) -> FlowState:
        """
        Return to the previously answered question.

        The weights in force before that answer are restored and the answer
        is forgotten.

        Raises:
            InvalidOperation: If there is no previous answer or the flow is abandoned
        """
        if self.is_abandoned or not self._history:
            raise InvalidOperation("No previous question to return to", "back")
        step = self._history.pop()
        self.registry.restore(step.before)
        del self._answers[step.question_id]
        self._state = AtQuestion(self.table.index_of(step.question_id) + 1)
        logger.debug(f"Stepped back to {step.question_id}")
        return self._state

    def abandon(self, restore: bool = False) -> None:
        """
        Close the flow.

        Args:
            restore: Put the registry back to the weights it had when the flow started;
                otherwise adjustments already applied stay in effect
        """
        if self.is_abandoned:
            raise InvalidOperation("Flow already abandoned", "abandon")
        if restore:
            self.registry.restore(self._initial)
        self._state = Abandoned()
        logger.info(
            f"Guided ranking abandoned after {len(self._history)} answers "
            f"(restore={restore})"
        )

    def _advance(self) -> None:
        number = self._state.number
        if number >= len(self.table):
            self._state = Complete()
            logger.info(f"Guided ranking complete: {self.adjustments()}")
        else:
            self._state = AtQuestion(number + 1)

    # -- helpers -----------------------------------------------------------

    def _normalize(self, question: Question, answer: Answer) -> Tuple[str, ...]:
        if question.multi_select:
            answer = [answer] if isinstance(answer, str) else list(answer)
            if any(not isinstance(a, str) for a in answer):
                raise ValidationError(
                    f"Question '{question.id}' takes option ids as strings",
                    {"question_id": question.id},
                )
            option_ids = tuple(dict.fromkeys(answer))
            if not option_ids:
                raise ValidationError(
                    f"Question '{question.id}' needs at least one option",
                    {"question_id": question.id},
                )
        else:
            if not isinstance(answer, str):
                raise ValidationError(
                    f"Question '{question.id}' takes a single option id",
                    {"question_id": question.id, "answer": answer},
                )
            option_ids = (answer,)
        for option_id in option_ids:
            question.option(option_id)
        return option_ids

    def _compute(
        self,
        question: Question,
        option_ids: Tuple[str, ...],
        before: Dict[str, int],
        answers: Dict[str, Tuple[str, ...]],
    ) -> Dict[str, int]:
        """Weights set by one answer, computed against the pre-answer weights."""
        working = dict(before)
        applied: Dict[str, int] = {}
        for option_id in option_ids:
            for effect in question.option(option_id).effects:
                working[effect.criterion_id] = effect.apply(working[effect.criterion_id])
                applied[effect.criterion_id] = working[effect.criterion_id]

        for rule in self.table.rules_for(question.id):
            if not all(source in answers for source in rule.sources):
                continue
            values = [
                self.table.question(source).option(answers[source][0]).value
                for source in rule.sources
            ]
            if any(v is None for v in values):
                logger.debug(f"Derived rule {rule.id} skipped: unanswered value")
                continue
            applied[rule.criterion_id] = rule.compute(values)

        return applied
