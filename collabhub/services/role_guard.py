"""Checks shared by the workspace and project role-update flows."""

from __future__ import annotations

import uuid

from collabhub.errors import UserInputError
from collabhub.roles import ProjectRole, WorkspaceRole
from collabhub.services.rbac import SCOPE_WORKSPACE, RbacResolver


def ensure_role_change_allowed(
    rbac: RbacResolver,
    *,
    scope: str,
    scope_id: uuid.UUID,
    requester_id: uuid.UUID,
    target_id: uuid.UUID,
    current_role: WorkspaceRole | ProjectRole,
    new_role: WorkspaceRole | ProjectRole,
) -> None:
    """Raise UserInputError when the change would break a role invariant.

    Ownership is never transferred here: a workspace OWNER cannot be changed and
    OWNER cannot be granted. A requester who is the only holder of the top role
    may not change their own role, so no workspace or project is left without one.
    """
    top = type(current_role).top()
    if scope == SCOPE_WORKSPACE:
        if current_role == WorkspaceRole.OWNER:
            raise UserInputError("Cannot change the role of the workspace owner")
        if new_role == WorkspaceRole.OWNER:
            raise UserInputError("Ownership transfer is not supported")

    if requester_id == target_id and current_role == top:
        others = rbac.count_holders(scope, scope_id, top, excluding_user_id=requester_id)
        if others == 0:
            raise UserInputError(f"Cannot change your own role as the only {top.value}")
