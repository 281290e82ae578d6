"""
Saved list state machine for managing list status transitions
"""

from typing import Dict, List, Set
from app.models.saved_list import ListStatus

# actions that move a list between states
ARCHIVE = "archiveList"
UNARCHIVE = "unarchiveList"

ACTION_TARGETS: Dict[str, ListStatus] = {
    ARCHIVE: ListStatus.ARCHIVED,
    UNARCHIVE: ListStatus.ACTIVE,
}

class SavedListStateMachine:
    """
    Manages valid saved list status transitions

    Delete is not a state: it removes the row from any status.
    """

    def __init__(self):
        self.transitions: Dict[ListStatus, Set[ListStatus]] = {
            ListStatus.ACTIVE: {ListStatus.ARCHIVED},
            ListStatus.ARCHIVED: {ListStatus.ACTIVE},
        }

    def can_transition(self, current_status: ListStatus, new_status: ListStatus) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current list status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        return new_status in self.transitions.get(current_status, set())

    def get_valid_transitions(self, current_status: ListStatus) -> List[ListStatus]:
        return list(self.transitions.get(current_status, set()))

    def target_for(self, action: str) -> ListStatus:
        return ACTION_TARGETS[action]
