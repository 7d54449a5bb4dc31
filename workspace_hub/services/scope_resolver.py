"""Workspace scope resolution: which workspaces a user's role lets them aggregate over."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from workspace_hub.core.exceptions import (
    AccessDeniedError,
    NotFoundError,
    ScopeResolutionError,
    ValidationError,
)
from workspace_hub.services.records import ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER, ROLES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceScope:
    """Ordered, de-duplicated set of workspaces for one aggregation run."""

    user_id: str
    role: str
    workspace_ids: tuple[str, ...]
    workspace_names: dict[str, str] = field(default_factory=dict)
    used_fallback: bool = False
    current_workspace_id: str | None = None

    def name_of(self, workspace_id: str) -> str:
        return self.workspace_names.get(workspace_id, workspace_id)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "role": self.role,
            "workspace_ids": list(self.workspace_ids),
            "workspaces": [
                {"id": ws_id, "name": self.name_of(ws_id)} for ws_id in self.workspace_ids
            ],
            "used_fallback": self.used_fallback,
            "current_workspace_id": self.current_workspace_id,
        }


async def resolve_workspace_scope(user_id, role, current_workspace, source, *, include_all=True):
    """Resolve the workspace ids ``user_id`` may aggregate over.

    owner:  owned mains (each followed by its subs), then any other workspace
            where the user is owner or admin
    admin:  workspaces where the user's role is admin
    member: the current workspace only

    A failed or empty accessible-workspace lookup falls back to the current
    workspace. Missing identity or an unknown role is fatal.
    """
    if not user_id:
        raise ScopeResolutionError("user id is required", workspace_id=getattr(current_workspace, "id", None))
    if current_workspace is None or not getattr(current_workspace, "id", None):
        raise ScopeResolutionError("current workspace is required", user_id=user_id)
    if role not in ROLES:
        raise ScopeResolutionError(
            f"unknown role {role!r}", user_id=user_id, workspace_id=current_workspace.id,
        )

    current_only = WorkspaceScope(
        user_id=user_id,
        role=role,
        workspace_ids=(current_workspace.id,),
        workspace_names={current_workspace.id: current_workspace.name},
        current_workspace_id=current_workspace.id,
    )
    if role == ROLE_MEMBER or not include_all:
        return current_only

    try:
        accessible = await source.get_accessible_workspaces(user_id)
    except Exception:
        logger.warning(
            "Accessible-workspace lookup failed, falling back to current workspace",
            exc_info=True,
            extra={"user_id": user_id, "workspace_id": current_workspace.id},
        )
        return _fallback(current_only)

    if accessible.is_empty():
        logger.warning(
            "Accessible-workspace lookup returned nothing, falling back to current workspace",
            extra={"user_id": user_id, "workspace_id": current_workspace.id},
        )
        return _fallback(current_only)

    if role == ROLE_OWNER:
        ordered = _owner_order(accessible)
    else:
        ordered = [
            ws_id for ws_id, ws_role in accessible.role_by_workspace.items()
            if ws_role == ROLE_ADMIN
        ]

    ids = _unique(ordered)
    if not ids:
        logger.warning(
            "No accessible workspaces for %s user, falling back to current workspace", role,
            extra={"user_id": user_id, "workspace_id": current_workspace.id},
        )
        return _fallback(current_only)

    names = dict(accessible.names)
    names.setdefault(current_workspace.id, current_workspace.name)
    return WorkspaceScope(
        user_id=user_id,
        role=role,
        workspace_ids=tuple(ids),
        workspace_names={ws_id: names.get(ws_id, ws_id) for ws_id in ids},
        current_workspace_id=current_workspace.id,
    )


def _owner_order(accessible):
    ordered = []
    for main in accessible.owned:
        ordered.append(main.id)
        ordered.extend(child.id for child in accessible.sub.get(main.id, ()))
    ordered.extend(
        ws_id for ws_id, ws_role in accessible.role_by_workspace.items()
        if ws_role in (ROLE_OWNER, ROLE_ADMIN)
    )
    return ordered


def _unique(ids):
    seen = set()
    out = []
    for ws_id in ids:
        if ws_id and ws_id not in seen:
            seen.add(ws_id)
            out.append(ws_id)
    return out


def _fallback(scope):
    return WorkspaceScope(
        user_id=scope.user_id,
        role=scope.role,
        workspace_ids=scope.workspace_ids,
        workspace_names=scope.workspace_names,
        used_fallback=True,
        current_workspace_id=scope.current_workspace_id,
    )


async def resolve_request_identity(user_id, workspace_id, source):
    """Return ``(workspace, role)`` for the acting user in ``workspace_id``.

    Raises:
        ValidationError: user or workspace id missing.
        NotFoundError: the workspace does not exist.
        AccessDeniedError: the user is neither owner nor member.
        ScopeResolutionError: the membership lookup itself failed.
    """
    missing = [name for name, value in (("user_id", user_id), ("workspace_id", workspace_id)) if not value]
    if missing:
        raise ValidationError(
            "user and workspace identity are required",
            details={name: "required" for name in missing},
        )

    workspace = await source.get_workspace(workspace_id)
    if workspace is None:
        raise NotFoundError(resource="Workspace", resource_id=workspace_id)

    try:
        accessible = await source.get_accessible_workspaces(user_id)
    except Exception as exc:
        raise ScopeResolutionError(
            "could not load workspace memberships", user_id=user_id, workspace_id=workspace_id,
        ) from exc

    role = accessible.role_by_workspace.get(workspace.id)
    if workspace.owner_id == user_id:
        role = ROLE_OWNER
    if role not in ROLES:
        raise AccessDeniedError(user_id, workspace_id)
    return workspace, role
