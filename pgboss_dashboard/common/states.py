# pgboss_dashboard/common/states.py
from typing import List

from pgboss_dashboard.common.exceptions import InvalidClearScopeError

CREATED = "created"
RETRY = "retry"
ACTIVE = "active"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"

ALL_STATES = [
    CREATED,
    RETRY,
    ACTIVE,
    COMPLETED,
    FAILED,
    CANCELLED,
]

# Jobs that have not been picked up by a worker yet.
PENDING_STATES = [CREATED, RETRY]

CLEAR_SCOPES = {
    "pending": PENDING_STATES,
    "active": [ACTIVE],
    "all": ALL_STATES,
}


def is_valid_state(state_name: str) -> bool:
    return state_name in ALL_STATES


def states_for_scope(scope: str) -> List[str]:
    try:
        return list(CLEAR_SCOPES[scope])
    except KeyError:
        raise InvalidClearScopeError(
            f'Invalid clearType {scope!r}. Must be "pending", "active", or "all"'
        ) from None
