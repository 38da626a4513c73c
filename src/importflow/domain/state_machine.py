"""Allowed import status transitions."""

from importflow.domain.entities import ImportStatus
from importflow.domain.errors import InvalidTransitionError, invalid_transition

TRANSITIONS: dict[ImportStatus, frozenset[ImportStatus]] = {
    ImportStatus.PENDING: frozenset({ImportStatus.ANALYZING, ImportStatus.FAILED}),
    ImportStatus.ANALYZING: frozenset({ImportStatus.ANALYZED, ImportStatus.FAILED}),
    ImportStatus.ANALYZED: frozenset(
        {ImportStatus.PROCESSING, ImportStatus.WRONG_ACCOUNT_DETECTED, ImportStatus.FAILED}
    ),
    ImportStatus.WRONG_ACCOUNT_DETECTED: frozenset(),
    ImportStatus.PROCESSING: frozenset({ImportStatus.COMPLETED, ImportStatus.FAILED}),
    ImportStatus.COMPLETED: frozenset(),
    ImportStatus.FAILED: frozenset(),
}

# Only an explicit, caller-initiated retry may re-enter the pipeline.
RETRY_TRANSITIONS: dict[ImportStatus, frozenset[ImportStatus]] = {
    ImportStatus.FAILED: frozenset({ImportStatus.ANALYZING}),
}

TERMINAL_STATUSES = frozenset({ImportStatus.COMPLETED, ImportStatus.FAILED})

# Statuses in which a stored record carries an analysis snapshot.
ANALYZED_STATUSES = frozenset(
    {
        ImportStatus.ANALYZED,
        ImportStatus.WRONG_ACCOUNT_DETECTED,
        ImportStatus.PROCESSING,
        ImportStatus.COMPLETED,
    }
)


def can_transition(current: ImportStatus, target: ImportStatus, retry: bool = False) -> bool:
    """Return True if an import may move from ``current`` to ``target``."""
    if target in TRANSITIONS[current]:
        return True
    return retry and target in RETRY_TRANSITIONS.get(current, frozenset())


def ensure_transition(
    upload_id: str, current: ImportStatus, target: ImportStatus, retry: bool = False
) -> None:
    """Raise if the transition is not allowed.

    Raises:
        InvalidTransitionError: If the state machine forbids the move
    """
    if not can_transition(current, target, retry=retry):
        raise InvalidTransitionError(invalid_transition(upload_id, current.value, target.value))


def is_terminal(status: ImportStatus) -> bool:
    return status in TERMINAL_STATUSES
