"""
Role Capability — static role → action table.

Every service operation consults this table before it loads or evaluates
anything else; a denied check raises ForbiddenError and stops there.

Usage:
    from inframind.services.capability import Action, Actor, check_capability

    actor = Actor(user_id="u-1", role="MANAGER")
    check_capability(actor, Action.REVIEW_ANALYSIS)   # raises ForbiddenError

    if has_capability(Role.OWNER, Action.VIEW_REPORT):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from inframind.core.exceptions import ForbiddenError
from inframind.models.auth import Role


class Action(str, Enum):
    CREATE_TASK = "create_task"
    ASSIGN_TASK = "assign_task"
    CREATE_ANALYSIS = "create_analysis"
    EDIT_ANALYSIS = "edit_analysis"
    SUBMIT_ANALYSIS = "submit_analysis"
    REVIEW_ANALYSIS = "review_analysis"
    GENERATE_REPORT = "generate_report"
    VIEW_REPORT = "view_report"


_EMPLOYEE_ACTIONS = frozenset({
    Action.CREATE_ANALYSIS,
    Action.EDIT_ANALYSIS,
    Action.SUBMIT_ANALYSIS,
})

ROLE_CAPABILITIES: dict[Role, frozenset[Action]] = {
    Role.EMPLOYEE: _EMPLOYEE_ACTIONS,
    Role.MANAGER: _EMPLOYEE_ACTIONS | {
        Action.REVIEW_ANALYSIS,
        Action.GENERATE_REPORT,
        Action.VIEW_REPORT,
        Action.CREATE_TASK,
        Action.ASSIGN_TASK,
    },
    # Executive read-only access: no task, analysis or review actions.
    Role.OWNER: frozenset({Action.VIEW_REPORT}),
}


@dataclass(frozen=True)
class Actor:
    """Resolved (user_id, role) pair supplied by the authentication layer."""

    user_id: str
    role: Role

    def __post_init__(self):
        object.__setattr__(self, "role", coerce_role(self.role, self.user_id))


def coerce_role(value, user_id: str | None = None) -> Role:
    """Turn a role string into a Role; unknown roles are refused outright."""
    try:
        return Role(value)
    except ValueError:
        raise ForbiddenError(user_id, "access", f"unknown role {value!r}") from None


def has_capability(role: Role | str, action: Action | str) -> bool:
    """Return True if *role* may invoke *action*."""
    try:
        role = Role(role)
        action = Action(action)
    except ValueError:
        return False
    return action in ROLE_CAPABILITIES[role]


def check_capability(actor: Actor, action: Action) -> None:
    """
    Assert the actor's role grants *action*.

    Raises:
        ForbiddenError: If the role lacks the action.
    """
    if not has_capability(actor.role, action):
        raise ForbiddenError(actor.user_id, Action(action).value,
                             f"role {actor.role.value} lacks this capability")


def get_role_capabilities(role: Role | str) -> set[str]:
    """Return the action verbs granted to *role* (for UI rendering)."""
    return {a.value for a in ROLE_CAPABILITIES[Role(role)]}
