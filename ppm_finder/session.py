"""
Tool finder session.

Wires the criterion registry, guided flow, filter engine, scoring engine
and selection state together for one user session. Every mutation returns
a SessionSnapshot holding what the presentation layer renders: the ranked,
filtered selection, the active weights, the filter state and the selection
and comparison sets. Semantic events are reported to an analytics sink.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ppm_finder import analytics
from ppm_finder.analytics import (
    AnalyticsEvent,
    AnalyticsSink,
    FanOutSink,
    LoggingSink,
    NullSink,
    make_event,
)
from ppm_finder.catalog.loader import Catalog
from ppm_finder.catalog.registry import CriterionRegistry
from ppm_finder.config import FinderConfig
from ppm_finder.exceptions import InvalidOperation
from ppm_finder.filtering.conditions import (
    FilterCondition,
    FilterMode,
    FilterState,
    RatingCondition,
    TagCondition,
)
from ppm_finder.guided.flow import Abandoned, AtQuestion, Complete, GuidedRankingFlow
from ppm_finder.guided.questions import QuestionTable
from ppm_finder.scoring.ranking import MatchScoreRanker, RankedTool
from ppm_finder.selection.state import SelectionState

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Read-only view of the session after a step."""

    ranked: List[RankedTool]
    weights: Dict[str, int]
    filters: FilterState
    selection: Dict[str, List[str]]
    guided_state: Optional[str] = None
    guided_progress: Optional[float] = None

    @property
    def ranked_ids(self) -> List[str]:
        return [item.tool.id for item in self.ranked]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "ranked": [item.to_dict() for item in self.ranked],
            "weights": dict(self.weights),
            "filters": self.filters.to_dict(),
            "selection": {k: list(v) for k, v in self.selection.items()},
            "guided": {"state": self.guided_state, "progress": self.guided_progress},
        }


def _state_label(flow: Optional[GuidedRankingFlow]) -> Optional[str]:
    if flow is None:
        return None
    state = flow.state
    if isinstance(state, AtQuestion):
        return f"question:{state.number}"
    if isinstance(state, Complete):
        return "complete"
    return "abandoned"


class FinderSession:
    """
    One user's interaction with the tool finder.

    Operations are synchronous and whole-step: each either completes and
    returns a snapshot or raises before changing anything.
    """

    def __init__(
        self,
        catalog: Catalog,
        config: Optional[FinderConfig] = None,
        sink: Optional[AnalyticsSink] = None,
        question_table: Optional[QuestionTable] = None,
    ):
        """
        Initialize session.

        Args:
            catalog: Criteria and tools for this session
            config: Engine settings (uses defaults if None)
            sink: Analytics destination (events are dropped if None)
            question_table: Guided ranking questions (config path or packaged default if None)
        """
        self.catalog = catalog
        self.config = config or FinderConfig()
        self.config.validate()

        self.registry = CriterionRegistry(catalog.criteria)
        self.ranker = MatchScoreRanker(catalog, self.registry, self.config.scoring)
        self.filters = FilterState(mode=self.config.filters.default_mode)
        self.selection = SelectionState(
            catalog.tool_ids,
            max_compared=self.config.selection.max_compared,
            selected=catalog.tool_ids if self.config.selection.preselect_all else (),
        )
        self.flow: Optional[GuidedRankingFlow] = None
        self._question_table = question_table
        self.sink = self._build_sink(sink)

        self._ranked: List[RankedTool] = []
        self._ranked_key: Optional[Tuple] = None

    def _build_sink(self, sink: Optional[AnalyticsSink]) -> AnalyticsSink:
        if not self.config.analytics.enabled:
            return NullSink()
        sink = sink or NullSink()
        if self.config.analytics.log_events:
            return FanOutSink(sink, LoggingSink())
        return sink

    def _event(self, name: str, **payload) -> AnalyticsEvent:
        return make_event(name, payload)

    def _publish(self, *events: AnalyticsEvent) -> None:
        for event in events:
            self.sink.emit(event)

    # -- output ------------------------------------------------------------

    def _visible_ids(self) -> List[str]:
        selected = self.catalog.tools_by_id(self.selection.selected_tools)
        return [tool.id for tool in self.filters.apply(selected)]

    def ranked(self) -> List[RankedTool]:
        """
        Ranked, filtered selection.

        Scores are recomputed only when the weights or the visible tool set
        change; a pure reorder of the selection only re-sorts ties.
        """
        visible = self._visible_ids()
        key = (tuple(sorted(self.registry.weights().items())), frozenset(visible))
        priority = self.selection.selected_tools
        if key == self._ranked_key:
            self._ranked = self.ranker.resort_ties(self._ranked, priority)
        else:
            self._ranked = self.ranker.rank(visible, priority)
            self._ranked_key = key
        return [replace(item, strengths=list(item.strengths)) for item in self._ranked]

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            ranked=self.ranked(),
            weights=self.registry.weights(),
            filters=self.filters,
            selection=self.selection.to_dict(),
            guided_state=_state_label(self.flow),
            guided_progress=self.flow.progress if self.flow else None,
        )

    # -- weights -----------------------------------------------------------

    def set_weight(self, criterion_id: str, weight: int) -> SessionSnapshot:
        event = self._event(analytics.WEIGHTS_CHANGED, criterion_id=criterion_id,
                            weight=weight, source="manual")
        self.registry.set_weight(criterion_id, weight)
        self._publish(event)
        return self.snapshot()

    def reset_weights(self) -> SessionSnapshot:
        event = self._event(analytics.WEIGHTS_CHANGED, source="reset")
        self.registry.reset()
        self._publish(event)
        return self.snapshot()

    # -- guided ranking ----------------------------------------------------

    def start_guided(self) -> SessionSnapshot:
        """Start (or restart) the guided questionnaire."""
        if self.flow is not None and not (self.flow.is_complete or self.flow.is_abandoned):
            raise InvalidOperation("A guided ranking flow is already in progress",
                                   "start_guided")
        table = self._question_table
        if table is None and self.config.guided.question_table:
            table = QuestionTable.from_yaml(self.config.guided.question_table)
        self.flow = GuidedRankingFlow(self.registry, table)
        return self.snapshot()

    def _require_flow(self, operation: str) -> GuidedRankingFlow:
        if self.flow is None:
            raise InvalidOperation("No guided ranking flow has been started", operation)
        return self.flow

    def submit_answer(self, answer: Union[str, Sequence[str]]) -> SessionSnapshot:
        """
        Answer the current guided question.

        The answer is validated by the flow before any weight changes; the
        reported event carries the normalized option ids.
        """
        flow = self._require_flow("submit_answer")
        question = flow.current_question
        applied = flow.submit(answer)
        recorded = flow.answers[question.id]
        events = [
            self._event(
                analytics.GUIDED_STEP,
                question_id=question.id,
                answer=recorded if isinstance(recorded, str) else ",".join(recorded),
                changed=len(applied),
            )
        ]
        if flow.is_complete:
            payload = {f"weight_{cid}": w for cid, w in self.registry.weights().items()}
            events.append(self._event(analytics.RANKING_SUBMITTED, source="guided", **payload))
        self._publish(*events)
        return self.snapshot()

    def amend_answer(self, answer: Union[str, Sequence[str]]) -> SessionSnapshot:
        self._require_flow("amend_answer").amend_last(answer)
        return self.snapshot()

    def guided_back(self) -> SessionSnapshot:
        self._require_flow("guided_back").back()
        return self.snapshot()

    def abandon_guided(self, restore: bool = False) -> SessionSnapshot:
        flow = self._require_flow("abandon_guided")
        event = self._event(analytics.GUIDED_ABANDONED, answered=len(flow.answers),
                            restored=restore)
        flow.abandon(restore=restore)
        self._publish(event)
        return self.snapshot()

    # -- filters -----------------------------------------------------------

    def _check_criteria(self, filters: FilterState) -> None:
        for condition in filters.conditions:
            if isinstance(condition, RatingCondition):
                self.registry.get(condition.criterion_id)

    def _set_filters(self, filters: FilterState, action: str) -> SessionSnapshot:
        """Commit a new filter state once every rating condition names a known criterion."""
        self._check_criteria(filters)
        event = self._event(
            analytics.FILTER_CHANGED,
            action=action,
            mode=filters.mode.value,
            conditions=len(filters.conditions),
        )
        self.filters = filters
        self._publish(event)
        return self.snapshot()

    def add_filter(self, condition: FilterCondition) -> SessionSnapshot:
        return self._set_filters(self.filters.with_condition(condition), "add")

    def add_tag_filter(self, condition_id: str, tags: Sequence[str]) -> SessionSnapshot:
        return self.add_filter(TagCondition(condition_id, frozenset(tags)))

    def add_rating_filter(
        self, condition_id: str, criterion_id: str, operator: str, rating: int
    ) -> SessionSnapshot:
        condition = RatingCondition(
            condition_id, criterion_id, operator, rating,
            neutral_rating=self.config.scoring.neutral_rating,
        )
        return self.add_filter(condition)

    def remove_filter(self, condition_id: str) -> SessionSnapshot:
        return self._set_filters(self.filters.without_condition(condition_id), "remove")

    def update_filter(self, condition_id: str, **changes) -> SessionSnapshot:
        return self._set_filters(self.filters.with_update(condition_id, **changes), "update")

    def toggle_filter_mode(self) -> SessionSnapshot:
        return self._set_filters(self.filters.toggled(), "toggle_mode")

    def set_filter_mode(self, mode: Union[str, FilterMode]) -> SessionSnapshot:
        return self._set_filters(self.filters.with_mode(mode), "set_mode")

    def clear_filters(self) -> SessionSnapshot:
        return self._set_filters(self.filters.cleared(), "clear")

    # -- selection ---------------------------------------------------------

    def select(self, tool_id: str) -> SessionSnapshot:
        event = self._event(analytics.TOOL_SELECTED, tool_id=tool_id)
        self.selection.select(tool_id)
        self._publish(event)
        return self.snapshot()

    def deselect(self, tool_id: str) -> SessionSnapshot:
        self.selection.deselect(tool_id)
        return self.snapshot()

    def remove(self, tool_id: str) -> SessionSnapshot:
        event = self._event(analytics.TOOL_REMOVED, tool_id=tool_id)
        self.selection.remove(tool_id)
        self._publish(event)
        return self.snapshot()

    def restore(self, tool_id: str) -> SessionSnapshot:
        event = self._event(analytics.TOOLS_RESTORED, count=1, tool_id=tool_id)
        self.selection.restore(tool_id)
        self._publish(event)
        return self.snapshot()

    def restore_all(self) -> SessionSnapshot:
        event = self._event(analytics.TOOLS_RESTORED,
                            count=len(self.selection.removed_tools))
        self.selection.restore_all()
        self._publish(event)
        return self.snapshot()

    def compare(self, tool_id: str) -> SessionSnapshot:
        already = self.selection.is_compared(tool_id)
        count = len(self.selection.compared_tools) + (0 if already else 1)
        event = self._event(analytics.TOOL_COMPARED, tool_id=tool_id, compared=True,
                            count=count)
        self.selection.compare(tool_id)
        self._publish(event)
        return self.snapshot()

    def uncompare(self, tool_id: str) -> SessionSnapshot:
        event = self._event(analytics.TOOL_COMPARED, tool_id=tool_id, compared=False,
                            count=max(len(self.selection.compared_tools) - 1, 0))
        self.selection.uncompare(tool_id)
        self._publish(event)
        return self.snapshot()

    def move(self, tool_id: str, index: int) -> SessionSnapshot:
        event = self._event(analytics.SELECTION_REORDERED, tool_id=tool_id, index=index)
        self.selection.move(tool_id, index)
        self._publish(event)
        return self.snapshot()

    def reorder(self, tool_ids: Sequence[str]) -> SessionSnapshot:
        event = self._event(analytics.SELECTION_REORDERED, size=len(tool_ids))
        self.selection.reorder(tool_ids)
        self._publish(event)
        return self.snapshot()

    def submit_ranking(self) -> SessionSnapshot:
        """Report the current manual weighting as a submitted ranking."""
        snapshot = self.snapshot()
        payload = {f"weight_{cid}": w for cid, w in snapshot.weights.items()}
        top = snapshot.ranked[0] if snapshot.ranked else None
        self._publish(self._event(
            analytics.RANKING_SUBMITTED,
            source="manual",
            top_tool=top.tool.id if top else None,
            top_score=top.match_score if top else None,
            **payload,
        ))
        return snapshot

    # -- harness -----------------------------------------------------------

    def reset(self) -> SessionSnapshot:
        """Return the session to its initial state (weights, filters, selection, flow)."""
        self.registry.reset()
        self.filters = FilterState(mode=self.config.filters.default_mode)
        self.selection.clear()
        if self.config.selection.preselect_all:
            for tool_id in self.catalog.tool_ids:
                self.selection.select(tool_id)
        self.flow = None
        self._ranked = []
        self._ranked_key = None
        logger.debug("Session reset")
        return self.snapshot()
