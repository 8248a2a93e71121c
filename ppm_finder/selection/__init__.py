"""
Selection module.

Selected, removed and compared tool sets for a session.
"""

from ppm_finder.selection.state import SelectionState, DEFAULT_MAX_COMPARED

__all__ = [
    'SelectionState',
    'DEFAULT_MAX_COMPARED',
]
