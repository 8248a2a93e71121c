"""
Tests for the finder session.

Tests that the session wires weights, filters, scoring and selection into
one snapshot per step and reports analytics events.
"""

import pytest

from ppm_finder.analytics import MemorySink
from ppm_finder.config import FinderConfig
from ppm_finder.exceptions import (
    ConfigError,
    InvalidOperation,
    NotFoundError,
    UnknownCriterionError,
    ValidationError,
)
from ppm_finder.filtering import FilterMode, RatingCondition, TagCondition
from ppm_finder.guided import QuestionTable
from ppm_finder.session import FinderSession


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def session(sample_catalog, sink):
    """Session over the sample catalog with every tool selected."""
    return FinderSession(sample_catalog, sink=sink)


class TestSnapshot:
    """Tests for the output contract."""

    def test_initial_snapshot(self, session):
        snapshot = session.snapshot()
        assert snapshot.ranked_ids == ["alpha", "gamma", "beta", "delta"]
        assert snapshot.weights == dict.fromkeys(session.registry.ids, 3)
        assert snapshot.filters.mode is FilterMode.AND
        assert snapshot.selection["selected_tools"] == ["alpha", "beta", "gamma", "delta"]
        assert snapshot.guided_state is None

    def test_to_dict(self, session):
        data = session.snapshot().to_dict()
        assert data["ranked"][0]["tool_id"] == "alpha"
        assert data["filters"] == {"mode": "AND", "conditions": []}
        assert data["guided"] == {"state": None, "progress": None}

    def test_preselect_disabled(self, sample_catalog):
        config = FinderConfig.from_dict({"selection": {"preselect_all": False}})
        session = FinderSession(sample_catalog, config)
        assert session.snapshot().ranked == []
        assert session.select("beta").ranked_ids == ["beta"]

    def test_snapshots_are_independent(self, session):
        """A later reorder does not rewrite ranks in an earlier snapshot."""
        first = session.snapshot()
        session.reorder(["delta", "beta", "alpha", "gamma"])
        assert [item.rank for item in first.ranked] == [1, 2, 3, 4]
        assert first.ranked_ids == ["alpha", "gamma", "beta", "delta"]


class TestWeights:
    """Tests for weight updates through the session."""

    def test_set_weight_reranks(self, session, sink):
        for criterion_id in session.registry.ids:
            session.set_weight(criterion_id, 1)
        snapshot = session.set_weight("flexibility", 5)
        assert snapshot.weights["flexibility"] == 5
        assert sink.last("weights_changed").payload == {
            "criterion_id": "flexibility",
            "weight": 5,
            "source": "manual",
        }

    def test_rejected_weight_changes_nothing(self, session, sink):
        before = session.snapshot()
        with pytest.raises(ValidationError):
            session.set_weight("security", 9)
        with pytest.raises(UnknownCriterionError):
            session.set_weight("price", 2)
        assert session.snapshot().weights == before.weights
        assert sink.events == []

    def test_reset_weights(self, session):
        session.set_weight("security", 5)
        assert session.reset_weights().weights["security"] == 3


class TestFilters:
    """Tests for filter updates through the session."""

    def test_tag_filters_and_or(self, session, sink):
        session.add_tag_filter("agile", ["Agile"])
        snapshot = session.add_tag_filter("enterprise", ["Enterprise"])
        assert snapshot.ranked_ids == ["alpha"]

        snapshot = session.toggle_filter_mode()
        assert snapshot.filters.mode is FilterMode.OR
        assert snapshot.ranked_ids == ["alpha", "gamma", "beta"]
        assert sink.last("filter_changed").payload == {
            "action": "toggle_mode",
            "mode": "OR",
            "conditions": 2,
        }

    def test_filter_applies_to_selection_only(self, session):
        session.deselect("alpha")
        snapshot = session.add_filter(TagCondition("agile", {"Agile"}))
        assert snapshot.ranked_ids == ["beta"]

    def test_rating_filter(self, session):
        snapshot = session.add_rating_filter("sec", "security", ">=", 4)
        assert snapshot.ranked_ids == ["alpha", "gamma"]

    def test_rating_filter_unknown_criterion(self, session):
        with pytest.raises(UnknownCriterionError):
            session.add_rating_filter("p", "price", ">=", 4)
        assert not session.filters.is_active

    def test_added_condition_unknown_criterion(self, session, sink):
        """A rating condition built directly is checked against the registry too."""
        with pytest.raises(NotFoundError):
            session.add_filter(RatingCondition("r1", "price", ">=", 4))
        assert not session.filters.is_active
        assert sink.events == []

    def test_update_to_unknown_criterion(self, session, sink):
        session.add_rating_filter("r1", "security", ">=", 4)
        before = session.filters
        sink.clear()
        with pytest.raises(NotFoundError):
            session.update_filter("r1", criterion_id="price")
        assert session.filters == before
        assert session.snapshot().ranked_ids == ["alpha", "gamma"]
        assert sink.events == []

    def test_update_remove_clear(self, session):
        session.add_tag_filter("t", ["Agile"])
        assert session.update_filter("t", tag_selector={"Kanban"}).ranked_ids == ["delta"]
        assert session.remove_filter("t").ranked_ids == ["alpha", "gamma", "beta", "delta"]
        session.add_tag_filter("t", ["Kanban"])
        session.set_filter_mode("or")
        snapshot = session.clear_filters()
        assert snapshot.filters.conditions == ()
        assert snapshot.filters.mode is FilterMode.OR

    def test_default_mode_from_config(self, sample_catalog):
        config = FinderConfig.from_dict({"filters": {"default_mode": "OR"}})
        assert FinderSession(sample_catalog, config).filters.mode is FilterMode.OR


class TestSelection:
    """Tests for selection updates through the session."""

    def test_remove_and_restore(self, session, sink):
        assert session.remove("gamma").ranked_ids == ["alpha", "beta", "delta"]
        snapshot = session.restore_all()
        assert snapshot.selection["removed_tools"] == []
        assert "gamma" not in snapshot.ranked_ids
        assert sink.last("tools_restored").payload == {"count": 1}

        assert "gamma" in session.select("gamma").ranked_ids

    def test_reorder_breaks_ties_without_rescoring(self, session, sink):
        """Beta and delta tie at 60.0; selection order decides."""
        before = {item.tool.id: item.match_score for item in session.snapshot().ranked}
        snapshot = session.move("delta", 0)
        assert snapshot.ranked_ids == ["alpha", "gamma", "delta", "beta"]
        assert {item.tool.id: item.match_score for item in snapshot.ranked} == before
        assert [item.rank for item in snapshot.ranked] == [1, 2, 3, 4]
        assert sink.last("selection_reordered").payload == {"tool_id": "delta", "index": 0}

        snapshot = session.reorder(["alpha", "beta", "gamma", "delta"])
        assert snapshot.ranked_ids == ["alpha", "gamma", "beta", "delta"]

    def test_compare_events_and_limit(self, session, sink):
        session.compare("alpha")
        session.compare("beta")
        session.compare("gamma")
        with pytest.raises(InvalidOperation):
            session.compare("delta")
        assert sink.last("tool_compared").payload == {
            "tool_id": "gamma",
            "compared": True,
            "count": 3,
        }
        snapshot = session.uncompare("beta")
        assert snapshot.selection["compared_tools"] == ["alpha", "gamma"]

    def test_max_compared_from_config(self, sample_catalog):
        config = FinderConfig.from_dict({"selection": {"max_compared": 1}})
        session = FinderSession(sample_catalog, config)
        session.compare("alpha")
        with pytest.raises(InvalidOperation):
            session.compare("beta")


class TestGuided:
    """Tests for the guided flow through the session."""

    def test_guided_requires_start(self, session):
        with pytest.raises(InvalidOperation):
            session.submit_answer("1")

    def test_guided_run(self, session, sink):
        snapshot = session.start_guided()
        assert snapshot.guided_state == "question:1"

        answers = ["1", "1", "5", "1", "1", "5", "5", "1", "1", "1", ["hr"], ["agile"]]
        for answer in answers:
            snapshot = session.submit_answer(answer)

        assert snapshot.guided_state == "complete"
        assert snapshot.guided_progress == 100.0
        assert snapshot.weights["easeOfUse"] == 5
        assert snapshot.weights["scalability"] == 1
        assert snapshot.ranked_ids.index("beta") < snapshot.ranked_ids.index("gamma")
        assert sink.names().count("guided_step") == 12
        submitted = sink.last("ranking_submitted").payload
        assert submitted["source"] == "guided"
        assert submitted["weight_easeOfUse"] == 5

    def test_start_while_open(self, session):
        session.start_guided()
        with pytest.raises(InvalidOperation):
            session.start_guided()

    def test_back_and_amend(self, session):
        session.start_guided()
        session.submit_answer("1")
        session.submit_answer("1")
        session.submit_answer("1")
        assert session.amend_answer("4").weights["easeOfUse"] == 4
        snapshot = session.guided_back()
        assert snapshot.weights["easeOfUse"] == 3
        assert snapshot.guided_state == "question:3"

    def test_abandon_with_restore(self, session, sink):
        session.start_guided()
        session.submit_answer("5")
        session.submit_answer("5")
        snapshot = session.abandon_guided(restore=True)
        assert snapshot.weights["scalability"] == 3
        assert snapshot.guided_state == "abandoned"
        assert sink.last("guided_abandoned").payload == {"answered": 2, "restored": True}
        session.start_guided()

    def test_question_table_from_config(self, sample_catalog, tmp_path):
        path = tmp_path / "questions.yaml"
        path.write_text(
            "questions:\n"
            "  - id: only\n"
            "    options:\n"
            "      - {id: a, effects: [{criterion: nosuch, amount: 2}]}\n"
        )
        config = FinderConfig.from_dict({"guided": {"question_table": str(path)}})
        session = FinderSession(sample_catalog, config)
        with pytest.raises(ConfigError):
            session.start_guided()

    def test_non_string_answer_rejected_before_any_change(self, sample_catalog, sink):
        table = QuestionTable.from_dict({"questions": [
            {"id": "areas", "multi_select": True, "options": [
                {"id": "1", "effects": [{"criterion": "security", "amount": 5}]},
                {"id": "2", "effects": [{"criterion": "reporting", "amount": 5}]},
            ]},
            {"id": "last", "options": [{"id": "a"}]},
        ]})
        session = FinderSession(sample_catalog, sink=sink, question_table=table)
        session.start_guided()
        before = session.snapshot()
        with pytest.raises(ValidationError):
            session.submit_answer([1, 2])
        after = session.snapshot()
        assert after.guided_state == "question:1"
        assert after.weights == before.weights
        assert sink.events == []

        session.submit_answer(["1", "2"])
        assert sink.last("guided_step").payload == {
            "question_id": "areas",
            "answer": "1,2",
            "changed": 2,
        }

    def test_explicit_question_table(self, sample_catalog):
        table = QuestionTable.from_dict({"questions": [
            {"id": "only", "options": [
                {"id": "a", "effects": [{"criterion": "security", "amount": 5}]},
            ]},
        ]})
        session = FinderSession(sample_catalog, question_table=table)
        session.start_guided()
        assert session.submit_answer("a").guided_state == "complete"


class TestHarness:
    """Tests for session-level utilities."""

    def test_submit_ranking(self, session, sink):
        session.submit_ranking()
        payload = sink.last("ranking_submitted").payload
        assert payload["source"] == "manual"
        assert payload["top_tool"] == "alpha"
        assert payload["top_score"] == 85.7

    def test_reset(self, session):
        session.set_weight("security", 5)
        session.add_tag_filter("t", ["Kanban"])
        session.remove("beta")
        session.start_guided()
        snapshot = session.reset()
        assert snapshot.weights["security"] == 3
        assert not snapshot.filters.is_active
        assert snapshot.selection["removed_tools"] == []
        assert snapshot.ranked_ids == ["alpha", "gamma", "beta", "delta"]
        assert snapshot.guided_state is None

    def test_analytics_disabled(self, sample_catalog, sink):
        config = FinderConfig.from_dict({"analytics": {"enabled": False}})
        session = FinderSession(sample_catalog, config, sink=sink)
        session.remove("beta")
        assert sink.events == []

    def test_log_events(self, sample_catalog, sink, caplog):
        config = FinderConfig.from_dict({"analytics": {"log_events": True}})
        session = FinderSession(sample_catalog, config, sink=sink)
        with caplog.at_level("INFO", logger="ppm_finder.analytics"):
            session.remove("beta")
        assert sink.names() == ["tool_removed"]
        assert "tool_removed" in caplog.text
