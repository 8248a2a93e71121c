"""
Guided ranking module.

Question table configuration and the questionnaire state machine that
derives criterion weights from answers.
"""

from ppm_finder.guided.questions import (
    EffectMode,
    DerivedKind,
    WeightEffect,
    AnswerOption,
    Question,
    DerivedRule,
    QuestionTable,
)

from ppm_finder.guided.flow import (
    AtQuestion,
    Complete,
    Abandoned,
    FlowState,
    GuidedRankingFlow,
)

__all__ = [
    'EffectMode',
    'DerivedKind',
    'WeightEffect',
    'AnswerOption',
    'Question',
    'DerivedRule',
    'QuestionTable',
    'AtQuestion',
    'Complete',
    'Abandoned',
    'FlowState',
    'GuidedRankingFlow',
]
