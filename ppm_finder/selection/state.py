"""
Selection and comparison state.

Tracks which tools the user is considering (in priority order), which ones
were explicitly removed, and which selected tools are flagged for
side-by-side comparison.

Invariants held after every operation:
- a tool id is never both selected and removed
- compared tools are always a subset of selected tools
- at most `max_compared` tools are compared
"""

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from ppm_finder.exceptions import InvalidOperation, UnknownToolError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMPARED = 3


class SelectionState:
    """
    Mutable selection state for one session.

    Every method checks its preconditions before touching any collection,
    so a rejected call leaves the state exactly as it was.
    """

    def __init__(
        self,
        known_ids: Iterable[str],
        max_compared: int = DEFAULT_MAX_COMPARED,
        selected: Iterable[str] = (),
    ):
        """
        Initialize selection state.

        Args:
            known_ids: Every tool id that may be selected (the catalog)
            max_compared: Comparison set limit
            selected: Initially selected ids, in priority order
        """
        if max_compared < 1:
            raise ValidationError("max_compared must be at least 1", {"max_compared": max_compared})
        self._known = list(dict.fromkeys(known_ids))
        self._known_set = set(self._known)
        self.max_compared = max_compared
        self._selected: List[str] = []
        self._removed: Dict[str, None] = {}  # insertion-ordered set
        self._compared: Dict[str, None] = {}
        for tool_id in selected:
            self.select(tool_id)

    # -- read access -------------------------------------------------------

    @property
    def selected_tools(self) -> Tuple[str, ...]:
        return tuple(self._selected)

    @property
    def removed_tools(self) -> Tuple[str, ...]:
        return tuple(self._removed)

    @property
    def compared_tools(self) -> Tuple[str, ...]:
        """Compared ids in selection order."""
        return tuple(t for t in self._selected if t in self._compared)

    @property
    def eligible_tools(self) -> Tuple[str, ...]:
        """Known tools that are neither selected nor removed."""
        taken = set(self._selected) | set(self._removed)
        return tuple(t for t in self._known if t not in taken)

    def is_selected(self, tool_id: str) -> bool:
        return tool_id in self._selected

    def is_removed(self, tool_id: str) -> bool:
        return tool_id in self._removed

    def is_compared(self, tool_id: str) -> bool:
        return tool_id in self._compared

    def is_eligible(self, tool_id: str) -> bool:
        self._require_known(tool_id)
        return tool_id not in self._removed

    def _require_known(self, tool_id: str) -> None:
        if tool_id not in self._known_set:
            raise UnknownToolError(tool_id)

    # -- mutations ---------------------------------------------------------

    def select(self, tool_id: str) -> None:
        """
        Add a tool to the end of the selection.

        Selecting a removed tool brings it back from the removed set.

        Raises:
            UnknownToolError: If the tool is not known
            InvalidOperation: If the tool is already selected
        """
        self._require_known(tool_id)
        if tool_id in self._selected:
            raise InvalidOperation(
                f"Tool '{tool_id}' is already selected", "select", {"tool_id": tool_id}
            )
        self._removed.pop(tool_id, None)
        self._selected.append(tool_id)
        logger.debug(f"Selected {tool_id}")

    def deselect(self, tool_id: str) -> None:
        """Drop a tool from the selection (and comparison) without removing it."""
        self._require_known(tool_id)
        if tool_id not in self._selected:
            raise InvalidOperation(
                f"Tool '{tool_id}' is not selected", "deselect", {"tool_id": tool_id}
            )
        self._selected.remove(tool_id)
        self._compared.pop(tool_id, None)

    def remove(self, tool_id: str) -> None:
        """
        Exclude a tool; it leaves the selection and the comparison set.

        Raises:
            InvalidOperation: If the tool is already removed
        """
        self._require_known(tool_id)
        if tool_id in self._removed:
            raise InvalidOperation(
                f"Tool '{tool_id}' is already removed", "remove", {"tool_id": tool_id}
            )
        if tool_id in self._selected:
            self._selected.remove(tool_id)
        self._compared.pop(tool_id, None)
        self._removed[tool_id] = None
        logger.debug(f"Removed {tool_id}")

    def restore(self, tool_id: str) -> None:
        """Make a removed tool eligible again; it is not re-selected."""
        self._require_known(tool_id)
        if tool_id not in self._removed:
            raise InvalidOperation(
                f"Tool '{tool_id}' is not removed", "restore", {"tool_id": tool_id}
            )
        del self._removed[tool_id]

    def restore_all(self) -> List[str]:
        """
        Clear the removed set.

        Returns:
            The restored ids, in removal order
        """
        restored = list(self._removed)
        self._removed.clear()
        if restored:
            logger.debug(f"Restored {len(restored)} tools")
        return restored

    def compare(self, tool_id: str) -> None:
        """
        Flag a selected tool for comparison.

        Raises:
            InvalidOperation: If the tool is not selected, or the limit is reached
        """
        self._require_known(tool_id)
        if tool_id not in self._selected:
            raise InvalidOperation(
                f"Tool '{tool_id}' must be selected before it can be compared",
                "compare",
                {"tool_id": tool_id},
            )
        if tool_id in self._compared:
            return
        if len(self._compared) >= self.max_compared:
            raise InvalidOperation(
                f"At most {self.max_compared} tools can be compared",
                "compare",
                {"tool_id": tool_id, "max_compared": self.max_compared},
            )
        self._compared[tool_id] = None

    def uncompare(self, tool_id: str) -> None:
        self._require_known(tool_id)
        if tool_id not in self._compared:
            raise InvalidOperation(
                f"Tool '{tool_id}' is not being compared", "uncompare", {"tool_id": tool_id}
            )
        del self._compared[tool_id]

    def toggle_compare(self, tool_id: str) -> bool:
        """Flip the comparison flag; returns True if the tool is now compared."""
        if self.is_compared(tool_id):
            self.uncompare(tool_id)
            return False
        self.compare(tool_id)
        return True

    def move(self, tool_id: str, index: int) -> None:
        """Move one selected tool to a new position (drag-to-reorder)."""
        self._require_known(tool_id)
        if tool_id not in self._selected:
            raise InvalidOperation(
                f"Tool '{tool_id}' is not selected", "move", {"tool_id": tool_id}
            )
        if not 0 <= index < len(self._selected):
            raise ValidationError(
                f"Position {index} is outside the selection",
                {"tool_id": tool_id, "index": index, "size": len(self._selected)},
            )
        self._selected.remove(tool_id)
        self._selected.insert(index, tool_id)

    def reorder(self, tool_ids: Sequence[str]) -> None:
        """
        Replace the selection order.

        Raises:
            ValidationError: If `tool_ids` is not a permutation of the selection
        """
        if len(tool_ids) != len(self._selected) or set(tool_ids) != set(self._selected):
            raise ValidationError(
                "New order must contain exactly the selected tools",
                {
                    "missing": sorted(set(self._selected) - set(tool_ids)),
                    "unexpected": sorted(set(tool_ids) - set(self._selected)),
                },
            )
        self._selected = list(tool_ids)

    def clear(self) -> None:
        """Drop all selection, removal and comparison state."""
        self._selected = []
        self._removed.clear()
        self._compared.clear()

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "selected_tools": list(self.selected_tools),
            "removed_tools": list(self.removed_tools),
            "compared_tools": list(self.compared_tools),
        }
