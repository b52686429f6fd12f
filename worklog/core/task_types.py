"""Shared task status, priority and member role constants and helpers."""

TASK_STATUS_PENDING = "pending"
TASK_STATUS_IN_PROGRESS = "in_progress"
TASK_STATUS_COMPLETED = "completed"
TASK_STATUS_ON_HOLD = "on_hold"

TASK_STATUS_CHOICES = (
    TASK_STATUS_PENDING,
    TASK_STATUS_IN_PROGRESS,
    TASK_STATUS_COMPLETED,
    TASK_STATUS_ON_HOLD,
)

# Each status maps to the statuses an admin may move a task into, keyed by the
# button label shown on the task card.
TASK_STATUS_ACTIONS = {
    TASK_STATUS_PENDING: {"Start": TASK_STATUS_IN_PROGRESS},
    TASK_STATUS_IN_PROGRESS: {"Pause": TASK_STATUS_ON_HOLD, "Complete": TASK_STATUS_COMPLETED},
    TASK_STATUS_ON_HOLD: {"Resume": TASK_STATUS_IN_PROGRESS},
    TASK_STATUS_COMPLETED: {},
}

TASK_PRIORITY_CHOICES = ("low", "medium", "high", "urgent")
DEFAULT_TASK_PRIORITY = "medium"

MEMBER_ROLE_CHOICES = ("developer", "lead", "designer", "tester")
DEFAULT_MEMBER_ROLE = "developer"


def normalize_choice(value: str | None, choices: tuple[str, ...], default: str) -> str:
    """Return a lowercase choice, falling back to ``default`` when empty."""

    cleaned = (value or default).strip().lower()
    if cleaned not in choices:
        raise ValueError(f"must be one of: {', '.join(choices)}")
    return cleaned


def can_transition(current: str | None, target: str) -> bool:
    return target in TASK_STATUS_ACTIONS.get(current or TASK_STATUS_PENDING, {}).values()


def status_label(status: str | None) -> str:
    return (status or "").replace("_", " ")


__all__ = [
    "DEFAULT_MEMBER_ROLE",
    "DEFAULT_TASK_PRIORITY",
    "MEMBER_ROLE_CHOICES",
    "TASK_PRIORITY_CHOICES",
    "TASK_STATUS_ACTIONS",
    "TASK_STATUS_CHOICES",
    "TASK_STATUS_COMPLETED",
    "TASK_STATUS_IN_PROGRESS",
    "TASK_STATUS_ON_HOLD",
    "TASK_STATUS_PENDING",
    "can_transition",
    "normalize_choice",
    "status_label",
]
