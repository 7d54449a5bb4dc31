"""
Team / branch / region reconciliation across the caller's workspaces.

Teams are joined with the branch and region dimensions and with team
membership. Sub workspaces only expose the branch and region they are
bound to; when the bound dimension lives in the parent workspace it is
read from there.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass

from workspace_hub.services.records import EntityKind, Tagged
from workspace_hub.services.workspace_fetch import (
    WorkspaceFailure,
    gather_workspace_collections,
    merge_unique,
)
from workspace_hub.utils.helpers import isoformat

logger = logging.getLogger(__name__)

TEAM_KINDS = (EntityKind.TEAMS, EntityKind.BRANCHES, EntityKind.REGIONS, EntityKind.TEAM_MEMBERSHIPS)

_ALL = (None, "", "all")


@dataclass(frozen=True)
class TeamDirectory:
    teams: list
    branches: list
    regions: list
    total_teams: int
    my_team_count: int
    workspace_ids: list
    failures: list
    partial: bool

    def to_dict(self) -> dict:
        return asdict(self)


async def build_team_directory(scope, source, *, search="", branch_id="all", region_id="all"):
    merged = await gather_workspace_collections(scope, source, TEAM_KINDS)
    failures = list(merged.failures)

    workspaces = await _load_workspaces(merged.loaded_workspace_ids, source, failures)
    branches = _restrict(merged.branches, workspaces, "branch_id")
    regions = _restrict(merged.regions, workspaces, "region_id")
    await _add_parent_bound_dimensions(scope, source, workspaces, branches, regions, failures)

    return derive_team_directory(
        teams=merged.teams,
        branches=branches,
        regions=regions,
        memberships=merged.team_memberships,
        user_id=scope.user_id,
        search=search,
        branch_id=branch_id,
        region_id=region_id,
        workspace_ids=list(merged.loaded_workspace_ids),
        failures=failures,
    )


async def _load_workspaces(workspace_ids, source, failures):
    results = await asyncio.gather(
        *(source.get_workspace(ws_id) for ws_id in workspace_ids), return_exceptions=True,
    )
    workspaces = {}
    for ws_id, result in zip(workspace_ids, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.error(
                "Loading workspace %s failed; its dimensions are not restricted", ws_id,
                exc_info=(type(result), result, result.__traceback__),
                extra={"workspace_id": ws_id},
            )
            failures.append(WorkspaceFailure(ws_id, "workspace", str(result) or type(result).__name__))
            continue
        if result is not None:
            workspaces[ws_id] = result
    return workspaces


def _restrict(tagged_items, workspaces, bound_attr):
    """Drop dimensions a sub workspace is not bound to."""
    kept = []
    for item in tagged_items:
        ws = workspaces.get(item.workspace_id)
        if ws is not None and ws.is_sub and item.id != getattr(ws, bound_attr):
            continue
        kept.append(item)
    return kept


async def _add_parent_bound_dimensions(scope, source, workspaces, branches, regions, failures):
    for ws in workspaces.values():
        if not ws.is_sub or not ws.parent_workspace_id:
            continue
        wanted = []
        if ws.branch_id and not any(b.id == ws.branch_id for b in branches):
            wanted.append((EntityKind.BRANCHES, ws.branch_id, branches, source.list_branches_for_workspace))
        if ws.region_id and not any(r.id == ws.region_id for r in regions):
            wanted.append((EntityKind.REGIONS, ws.region_id, regions, source.list_regions_for_workspace))
        if not wanted:
            continue

        results = await asyncio.gather(
            *(fetch(ws.parent_workspace_id) for _, _, _, fetch in wanted), return_exceptions=True,
        )
        for (kind, bound_id, accumulator, _), result in zip(wanted, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(
                    "Fetching parent %s failed for sub workspace %s", kind.value, ws.id,
                    exc_info=(type(result), result, result.__traceback__),
                    extra={"user_id": scope.user_id, "workspace_id": ws.id},
                )
                failures.append(WorkspaceFailure(ws.id, kind.value, str(result) or type(result).__name__))
                continue
            merge_unique(
                accumulator,
                [Tagged(r, ws.id, scope.name_of(ws.id)) for r in result if r.id == bound_id],
            )


def derive_team_directory(*, teams, branches, regions, memberships, user_id, search="",
                          branch_id="all", region_id="all", workspace_ids=(), failures=()):
    """Enrich, filter and count teams. Pure; inputs are ``Tagged`` sequences."""
    branch_names = {b.id: b.record.name for b in branches}
    region_names = {r.id: r.record.name for r in regions}

    member_counts: dict = {}
    my_roles: dict = {}
    for m in memberships:
        member_counts[m.record.team_id] = member_counts.get(m.record.team_id, 0) + 1
        if m.record.user_id == user_id:
            my_roles[m.record.team_id] = m.record.role

    needle = (search or "").strip().lower()
    rows = []
    for t in teams:
        team = t.record
        if needle and needle not in team.name.lower() and needle not in (team.description or "").lower():
            continue
        if branch_id not in _ALL and team.branch_id != branch_id:
            continue
        if region_id not in _ALL and team.region_id != region_id:
            continue
        rows.append({
            "id": team.id,
            "name": team.name,
            "description": team.description,
            "lead_id": team.lead_id,
            "branch_id": team.branch_id,
            "branch_name": _dimension_name(team.branch_id, branch_names, "Branch"),
            "region_id": team.region_id,
            "region_name": _dimension_name(team.region_id, region_names, "Region"),
            "workspace_id": t.workspace_id,
            "workspace_name": t.workspace_name,
            "member_count": member_counts.get(team.id, 0),
            "is_member": team.id in my_roles,
            "user_role": my_roles.get(team.id),
            "created_at": isoformat(team.created_at),
        })

    return TeamDirectory(
        teams=rows,
        branches=_dimension_counts(branches, rows, "branch_id"),
        regions=_dimension_counts(regions, rows, "region_id"),
        total_teams=len(rows),
        my_team_count=sum(1 for row in rows if row["is_member"]),
        workspace_ids=list(workspace_ids),
        failures=[f.to_dict() for f in failures],
        partial=bool(failures),
    )


def _dimension_name(dim_id, names, label):
    if not dim_id:
        return f"No {label}"
    return names.get(dim_id, f"Unknown {label}")


def _dimension_counts(dimensions, rows, key):
    out = []
    for d in dimensions:
        entry = {
            "id": d.id,
            "name": d.record.name,
            "workspace_id": d.workspace_id,
            "workspace_name": d.workspace_name,
            "team_count": sum(1 for row in rows if row[key] == d.id),
        }
        if key == "branch_id":
            entry["region_id"] = d.record.region_id
        out.append(entry)
    return out
