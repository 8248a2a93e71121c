"""
Guided ranking question table.

The table is static configuration: an ordered list of questions whose
options declare weight effects on criteria, plus derived rules that
combine several answers into one criterion weight. Tables are validated
against the criterion registry before a flow can use them.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from ppm_finder.catalog.models import MAX_WEIGHT, MIN_WEIGHT
from ppm_finder.catalog.registry import CriterionRegistry
from ppm_finder.exceptions import ConfigError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TABLE_RESOURCE = "default_questions.yaml"


class EffectMode(Enum):
    """How an answer changes a criterion weight."""
    SET = "set"  # replace the weight
    ADD = "add"  # shift the weight, clamped to the allowed range


class DerivedKind(Enum):
    """Ways of combining several answers into one weight."""
    VOLUME_BANDS = "volume_bands"  # product of answer values mapped through thresholds
    CEIL_AVERAGE = "ceil_average"  # ceiling of the mean answer value


def clamp_weight(weight: float) -> int:
    return int(max(MIN_WEIGHT, min(MAX_WEIGHT, weight)))


@dataclass(frozen=True)
class WeightEffect:
    """One (criterion, effect) pair declared by an answer option."""

    criterion_id: str
    mode: EffectMode
    amount: int

    def apply(self, current: int) -> int:
        if self.mode is EffectMode.SET:
            return self.amount
        return clamp_weight(current + self.amount)


@dataclass(frozen=True)
class AnswerOption:
    """
    A selectable answer.

    Attributes:
        id: Identifier, unique within its question
        text: Display text
        value: Numeric meaning of the answer, used by derived rules
        effects: Weight effects; empty for skip / not applicable options
    """

    id: str
    text: str
    value: Optional[float] = None
    effects: Tuple[WeightEffect, ...] = ()

    @property
    def is_skip(self) -> bool:
        return not self.effects and self.value is None


@dataclass(frozen=True)
class Question:
    """A questionnaire entry."""

    id: str
    text: str
    options: Tuple[AnswerOption, ...]
    personalization: bool = False
    multi_select: bool = False

    def option(self, option_id: str) -> AnswerOption:
        for option in self.options:
            if option.id == option_id:
                return option
        raise ValidationError(
            f"Question '{self.id}' has no option '{option_id}'",
            {"question_id": self.id, "option_id": option_id},
        )

    @property
    def option_ids(self) -> List[str]:
        return [option.id for option in self.options]


@dataclass(frozen=True)
class DerivedRule:
    """
    Sets one criterion from the combined answers to several questions.

    The rule fires once every source question has an answer with a numeric
    value; a source answered with a value-less option leaves the criterion
    unchanged.

    Attributes:
        id: Rule identifier
        kind: Combination method
        criterion_id: Criterion whose weight is set
        sources: Question ids whose answer values are combined
        thresholds: Ascending product thresholds for VOLUME_BANDS
    """

    id: str
    kind: DerivedKind
    criterion_id: str
    sources: Tuple[str, ...]
    thresholds: Tuple[float, ...] = ()

    def compute(self, values: Sequence[float]) -> int:
        if self.kind is DerivedKind.VOLUME_BANDS:
            volume = math.prod(values)
            reached = sum(1 for t in self.thresholds if volume >= t)
            return clamp_weight(MIN_WEIGHT + reached)
        return clamp_weight(math.ceil(sum(values) / len(values)))


def _parse_effect(raw: Mapping[str, Any], where: str) -> WeightEffect:
    try:
        mode = EffectMode(str(raw.get("mode", "set")).lower())
    except ValueError:
        raise ConfigError(f"Unknown effect mode '{raw.get('mode')}' in {where}") from None
    if "criterion" not in raw or "amount" not in raw:
        raise ConfigError(f"Effect in {where} needs 'criterion' and 'amount'")
    amount = raw["amount"]
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ConfigError(f"Effect amount in {where} must be an integer",
                          details={"amount": amount})
    return WeightEffect(criterion_id=str(raw["criterion"]), mode=mode, amount=amount)


def _parse_option(raw: Mapping[str, Any], question_id: str) -> AnswerOption:
    if "id" not in raw:
        raise ConfigError(f"Option in question '{question_id}' is missing an id")
    option_id = str(raw["id"])
    where = f"{question_id}/{option_id}"
    value = raw.get("value")
    if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
        raise ConfigError(f"Option value in {where} must be numeric", details={"value": value})
    effects = tuple(_parse_effect(e, where) for e in raw.get("effects") or [])
    return AnswerOption(id=option_id, text=str(raw.get("text", option_id)),
                        value=value, effects=effects)


def _parse_question(raw: Mapping[str, Any]) -> Question:
    if "id" not in raw:
        raise ConfigError("Question is missing an id", details={"text": raw.get("text")})
    question_id = str(raw["id"])
    options = tuple(_parse_option(o, question_id) for o in raw.get("options") or [])
    return Question(
        id=question_id,
        text=str(raw.get("text", question_id)),
        options=options,
        personalization=bool(raw.get("personalization", False)),
        multi_select=bool(raw.get("multi_select", False)),
    )


def _parse_rule(raw: Mapping[str, Any]) -> DerivedRule:
    rule_id = str(raw.get("id", raw.get("criterion", "derived")))
    try:
        kind = DerivedKind(str(raw.get("kind")))
    except ValueError:
        raise ConfigError(f"Unknown derived rule kind '{raw.get('kind')}'",
                          details={"rule": rule_id}) from None
    if "criterion" not in raw:
        raise ConfigError(f"Derived rule '{rule_id}' needs a criterion")
    return DerivedRule(
        id=rule_id,
        kind=kind,
        criterion_id=str(raw["criterion"]),
        sources=tuple(str(s) for s in raw.get("sources") or []),
        thresholds=tuple(raw.get("thresholds") or []),
    )


@dataclass(frozen=True)
class QuestionTable:
    """Ordered questions plus derived rules."""

    questions: Tuple[Question, ...]
    derived: Tuple[DerivedRule, ...] = ()
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.questions)

    def question(self, question_id: str) -> Question:
        for question in self.questions:
            if question.id == question_id:
                return question
        raise ConfigError(f"Unknown question '{question_id}'", self.source)

    def index_of(self, question_id: str) -> int:
        return [q.id for q in self.questions].index(question_id)

    def rules_for(self, question_id: str) -> List[DerivedRule]:
        return [rule for rule in self.derived if question_id in rule.sources]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: Optional[str] = None) -> "QuestionTable":
        """
        Build a table from its dictionary form.

        Raises:
            ConfigError: If the structure is malformed
        """
        if not isinstance(data, Mapping) or not isinstance(data.get("questions"), list):
            raise ConfigError("Question table needs a 'questions' list", source)
        try:
            questions = tuple(_parse_question(q) for q in data["questions"])
            derived = tuple(_parse_rule(r) for r in data.get("derived") or [])
        except ConfigError as e:
            if source and not e.source:
                raise ConfigError(e.message, source, e.details) from e
            raise
        return cls(questions=questions, derived=derived, source=source)

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "QuestionTable":
        path = Path(yaml_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Question table not found: {yaml_path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data, source=str(path))

    @classmethod
    def default(cls) -> "QuestionTable":
        """The packaged questionnaire."""
        text = resources.files("ppm_finder.guided").joinpath(DEFAULT_TABLE_RESOURCE).read_text()
        return cls.from_dict(yaml.safe_load(text), source=DEFAULT_TABLE_RESOURCE)

    def validate(self, registry: CriterionRegistry) -> None:
        """
        Check the table against a criterion registry.

        Raises:
            ConfigError: On unknown criteria or questions, duplicate ids,
                out-of-range amounts, or personalization questions with effects
        """
        seen_questions = set()
        for question in self.questions:
            if question.id in seen_questions:
                raise ConfigError(f"Duplicate question id '{question.id}'", self.source)
            seen_questions.add(question.id)

            if not question.options:
                raise ConfigError(f"Question '{question.id}' has no options", self.source)
            option_ids = question.option_ids
            if len(option_ids) != len(set(option_ids)):
                raise ConfigError(f"Duplicate option ids in question '{question.id}'",
                                  self.source)

            for option in question.options:
                if question.personalization and option.effects:
                    raise ConfigError(
                        f"Personalization question '{question.id}' cannot change weights",
                        self.source,
                    )
                for effect in option.effects:
                    self._check_criterion(registry, effect.criterion_id,
                                          f"{question.id}/{option.id}")
                    if effect.mode is EffectMode.SET and \
                            not MIN_WEIGHT <= effect.amount <= MAX_WEIGHT:
                        raise ConfigError(
                            f"Effect in {question.id}/{option.id} sets a weight outside "
                            f"{MIN_WEIGHT}-{MAX_WEIGHT}",
                            self.source,
                            {"amount": effect.amount},
                        )

        for rule in self.derived:
            self._check_criterion(registry, rule.criterion_id, f"derived rule '{rule.id}'")
            if not rule.sources:
                raise ConfigError(f"Derived rule '{rule.id}' has no sources", self.source)
            for source_id in rule.sources:
                if source_id not in seen_questions:
                    raise ConfigError(
                        f"Derived rule '{rule.id}' references unknown question '{source_id}'",
                        self.source,
                    )
                if self.question(source_id).multi_select:
                    raise ConfigError(
                        f"Derived rule '{rule.id}' cannot use multi-select question "
                        f"'{source_id}'",
                        self.source,
                    )
            if rule.kind is DerivedKind.VOLUME_BANDS:
                expected = MAX_WEIGHT - MIN_WEIGHT
                if len(rule.thresholds) != expected or \
                        list(rule.thresholds) != sorted(rule.thresholds):
                    raise ConfigError(
                        f"Derived rule '{rule.id}' needs {expected} ascending thresholds",
                        self.source,
                    )

        logger.debug(f"Question table {self.source or '<inline>'} validated")

    def _check_criterion(self, registry: CriterionRegistry, criterion_id: str, where: str):
        if criterion_id not in registry:
            raise ConfigError(
                f"Unknown criterion '{criterion_id}' in {where}",
                self.source,
                {"criterion_id": criterion_id},
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "questions": [
                {
                    "id": q.id,
                    "text": q.text,
                    "personalization": q.personalization,
                    "multi_select": q.multi_select,
                    "options": [
                        {
                            "id": o.id,
                            "text": o.text,
                            "value": o.value,
                            "effects": [
                                {"criterion": e.criterion_id, "mode": e.mode.value,
                                 "amount": e.amount}
                                for e in o.effects
                            ],
                        }
                        for o in q.options
                    ],
                }
                for q in self.questions
            ],
            "derived": [
                {
                    "id": r.id,
                    "kind": r.kind.value,
                    "criterion": r.criterion_id,
                    "sources": list(r.sources),
                    "thresholds": list(r.thresholds),
                }
                for r in self.derived
            ],
        }
