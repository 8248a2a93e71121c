"""
Tests for selection and comparison state.
"""

import numpy as np
import pytest

from ppm_finder.exceptions import InvalidOperation, NotFoundError, ValidationError
from ppm_finder.selection import DEFAULT_MAX_COMPARED, SelectionState


TOOL_IDS = ["alpha", "beta", "gamma", "delta", "epsilon"]


@pytest.fixture
def state():
    """Selection with every tool selected."""
    return SelectionState(TOOL_IDS, selected=TOOL_IDS)


class TestSelect:
    """Tests for select, deselect and ordering."""

    def test_initial_selection(self, state):
        assert state.selected_tools == tuple(TOOL_IDS)
        assert state.removed_tools == ()
        assert state.compared_tools == ()

    def test_empty_start(self):
        state = SelectionState(TOOL_IDS)
        state.select("gamma")
        state.select("alpha")
        assert state.selected_tools == ("gamma", "alpha")

    def test_select_twice(self, state):
        with pytest.raises(InvalidOperation):
            state.select("alpha")

    def test_unknown_tool(self, state):
        with pytest.raises(NotFoundError):
            state.select("omega")

    def test_deselect_drops_comparison(self, state):
        state.compare("beta")
        state.deselect("beta")
        assert "beta" not in state.selected_tools
        assert not state.is_compared("beta")
        assert not state.is_removed("beta")

    def test_move(self, state):
        state.move("delta", 0)
        assert state.selected_tools[:2] == ("delta", "alpha")

    def test_move_out_of_range(self, state):
        with pytest.raises(ValidationError):
            state.move("delta", 9)

    def test_reorder(self, state):
        order = list(reversed(TOOL_IDS))
        state.reorder(order)
        assert state.selected_tools == tuple(order)

    def test_reorder_must_be_permutation(self, state):
        with pytest.raises(ValidationError):
            state.reorder(TOOL_IDS[:-1])
        with pytest.raises(ValidationError):
            state.reorder(TOOL_IDS[:-1] + ["omega"])
        assert state.selected_tools == tuple(TOOL_IDS)


class TestRemoveRestore:
    """Tests for removal and restoration."""

    def test_remove_leaves_selection_and_comparison(self, state):
        state.compare("gamma")
        state.remove("gamma")
        assert "gamma" not in state.selected_tools
        assert "gamma" not in state.compared_tools
        assert state.removed_tools == ("gamma",)
        assert not state.is_eligible("gamma")

    def test_double_remove(self, state):
        state.remove("gamma")
        with pytest.raises(InvalidOperation) as exc_info:
            state.remove("gamma")
        assert exc_info.value.operation == "remove"

    def test_restore_does_not_select(self, state):
        state.remove("gamma")
        state.restore("gamma")
        assert state.removed_tools == ()
        assert "gamma" not in state.selected_tools
        assert state.is_eligible("gamma")

    def test_restore_not_removed(self, state):
        with pytest.raises(InvalidOperation):
            state.restore("gamma")

    def test_restore_all(self, state):
        state.remove("delta")
        state.remove("alpha")
        restored = state.restore_all()
        assert restored == ["delta", "alpha"]
        assert state.removed_tools == ()
        assert state.selected_tools == ("beta", "gamma", "epsilon")
        assert set(state.eligible_tools) == {"alpha", "delta"}

    def test_select_removed_tool_brings_it_back(self, state):
        state.remove("beta")
        state.select("beta")
        assert state.selected_tools[-1] == "beta"
        assert state.removed_tools == ()

    def test_selected_and_removed_stay_disjoint(self):
        """Random operation sequences never put a tool in both sets."""
        rng = np.random.default_rng(3)
        state = SelectionState(TOOL_IDS)
        operations = [state.select, state.remove, state.restore, state.deselect]
        for _ in range(500):
            operation = operations[rng.integers(len(operations))]
            tool_id = TOOL_IDS[rng.integers(len(TOOL_IDS))]
            try:
                operation(tool_id)
            except InvalidOperation:
                pass
            assert not set(state.selected_tools) & set(state.removed_tools)
            assert set(state.compared_tools) <= set(state.selected_tools)


class TestCompare:
    """Tests for the comparison set."""

    def test_default_limit(self):
        assert DEFAULT_MAX_COMPARED == 3

    def test_compare_in_selection_order(self, state):
        state.compare("delta")
        state.compare("alpha")
        assert state.compared_tools == ("alpha", "delta")

    def test_compare_unselected(self, state):
        state.deselect("beta")
        with pytest.raises(InvalidOperation):
            state.compare("beta")
        assert state.compared_tools == ()

    def test_compare_removed(self, state):
        state.remove("beta")
        with pytest.raises(InvalidOperation):
            state.compare("beta")

    def test_compare_limit(self, state):
        for tool_id in ["alpha", "beta", "gamma"]:
            state.compare(tool_id)
        with pytest.raises(InvalidOperation) as exc_info:
            state.compare("delta")
        assert exc_info.value.details["max_compared"] == 3
        assert len(state.compared_tools) == 3

    def test_compare_already_compared_is_noop(self, state):
        state.compare("alpha")
        state.compare("alpha")
        assert state.compared_tools == ("alpha",)

    def test_custom_limit(self):
        state = SelectionState(TOOL_IDS, max_compared=1, selected=TOOL_IDS)
        state.compare("alpha")
        with pytest.raises(InvalidOperation):
            state.compare("beta")

    def test_invalid_limit(self):
        with pytest.raises(ValidationError):
            SelectionState(TOOL_IDS, max_compared=0)

    def test_toggle_compare(self, state):
        assert state.toggle_compare("beta") is True
        assert state.toggle_compare("beta") is False
        assert state.compared_tools == ()

    def test_uncompare_not_compared(self, state):
        with pytest.raises(InvalidOperation):
            state.uncompare("beta")


class TestHarness:
    """Tests for clear and serialization."""

    def test_clear(self, state):
        state.compare("alpha")
        state.remove("beta")
        state.clear()
        assert state.to_dict() == {
            "selected_tools": [],
            "removed_tools": [],
            "compared_tools": [],
        }

    def test_to_dict(self, state):
        state.remove("epsilon")
        state.compare("beta")
        assert state.to_dict() == {
            "selected_tools": ["alpha", "beta", "gamma", "delta"],
            "removed_tools": ["epsilon"],
            "compared_tools": ["beta"],
        }
