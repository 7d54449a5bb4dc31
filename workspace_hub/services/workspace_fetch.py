"""
Per-workspace fetch-and-merge.

Two-level fan-out over a resolved ``WorkspaceScope``:

  for each workspace (sequential):
      gather(one fetch per entity kind)        ← concurrent
      any kind failed → drop the workspace, record the failure, continue
      else merge every kind into its accumulator (first id wins)

The merged result is built once, after the loop, so callers never see a
half-filled accumulator.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from workspace_hub.services.records import EntityKind, ReportFilter, Tagged

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceFailure:
    workspace_id: str
    kind: str
    error: str

    def to_dict(self) -> dict:
        return {"workspace_id": self.workspace_id, "kind": self.kind, "error": self.error}


@dataclass(frozen=True)
class MergedCollections:
    """De-duplicated, workspace-tagged collections for one aggregation run."""

    reports: tuple = ()
    users: tuple = ()
    teams: tuple = ()
    departments: tuple = ()
    templates: tuple = ()
    folders: tuple = ()
    tasks: tuple = ()
    branches: tuple = ()
    regions: tuple = ()
    team_memberships: tuple = ()
    failures: tuple[WorkspaceFailure, ...] = ()
    loaded_workspace_ids: tuple[str, ...] = ()

    def of(self, kind: EntityKind) -> tuple:
        return getattr(self, EntityKind(kind).value)

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    def failures_as_dicts(self) -> list[dict]:
        return [f.to_dict() for f in self.failures]


def merge_unique(accumulator: list, items) -> int:
    """Append each item whose ``id`` is not already present. Returns the number added.

    A plain linear scan; collections here are dashboard-sized.
    """
    added = 0
    for item in items:
        if any(existing.id == item.id for existing in accumulator):
            continue
        accumulator.append(item)
        added += 1
    return added


def _fetch(source, kind, workspace_id, report_filter):
    if kind is EntityKind.REPORTS:
        return source.list_reports_for_workspace(workspace_id, report_filter)
    method = getattr(source, f"list_{kind.value}_for_workspace")
    return method(workspace_id)


async def gather_workspace_collections(scope, source, kinds, *, report_filter: ReportFilter | None = None):
    """Fetch ``kinds`` for every workspace in ``scope`` and merge them.

    Per-workspace failures never propagate; they are logged and returned in
    ``MergedCollections.failures``.
    """
    kinds = tuple(dict.fromkeys(EntityKind(k) for k in kinds))
    accumulators = {kind: [] for kind in kinds}
    failures: list[WorkspaceFailure] = []
    loaded: list[str] = []
    started = time.perf_counter()

    for workspace_id in scope.workspace_ids:
        workspace_name = scope.name_of(workspace_id)
        results = await asyncio.gather(
            *(_fetch(source, kind, workspace_id, report_filter) for kind in kinds),
            return_exceptions=True,
        )

        errors = []
        for kind, result in zip(kinds, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                errors.append((kind, result))

        if errors:
            for kind, exc in errors:
                logger.error(
                    "Fetching %s failed for workspace %s; skipping its data",
                    kind.value, workspace_id,
                    exc_info=(type(exc), exc, exc.__traceback__),
                    extra={"user_id": scope.user_id, "workspace_id": workspace_id},
                )
                failures.append(WorkspaceFailure(workspace_id, kind.value, str(exc) or type(exc).__name__))
            continue

        for kind, records in zip(kinds, results):
            merge_unique(
                accumulators[kind],
                [Tagged(record, workspace_id, workspace_name) for record in records],
            )
        loaded.append(workspace_id)

    merged = MergedCollections(
        **{kind.value: tuple(items) for kind, items in accumulators.items()},
        failures=tuple(failures),
        loaded_workspace_ids=tuple(loaded),
    )
    logger.info(
        "Aggregated %s across %d workspaces (%d failed)",
        ",".join(k.value for k in kinds), len(scope.workspace_ids), len({f.workspace_id for f in failures}),
        extra={
            "user_id": scope.user_id,
            "workspace_count": len(scope.workspace_ids),
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )
    return merged
