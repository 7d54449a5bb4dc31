import asyncio
import logging
from datetime import datetime, timezone

import pytest

from fakes import InMemoryDataSource
from workspace_hub.services.records import (
    EntityKind,
    ReportFilter,
    ReportRecord,
    Tagged,
    TeamMembershipRecord,
    UserRecord,
)
from workspace_hub.services.scope_resolver import WorkspaceScope
from workspace_hub.services.workspace_fetch import (
    MergedCollections,
    gather_workspace_collections,
    merge_unique,
)

NOW = datetime(2026, 10, 14, 12, tzinfo=timezone.utc)
KINDS = (EntityKind.REPORTS, EntityKind.USERS)


def _scope(*ids):
    return WorkspaceScope(
        user_id="olivia",
        role="owner",
        workspace_ids=ids,
        workspace_names={ws_id: ws_id.upper() for ws_id in ids},
        current_workspace_id=ids[0],
    )


def _report(report_id, status="approved"):
    return ReportRecord(id=report_id, author_id="u1", status=status, created_at=NOW)


def _gather(scope, source, kinds=KINDS, **kwargs):
    return asyncio.run(gather_workspace_collections(scope, source, kinds, **kwargs))


def test_merge_unique_first_wins():
    acc = [Tagged(UserRecord("u1", "a@x"), "ws-a", "A")]
    added = merge_unique(acc, [
        Tagged(UserRecord("u1", "a@x"), "ws-b", "B"),
        Tagged(UserRecord("u2", "b@x"), "ws-b", "B"),
    ])
    assert added == 1
    assert [(t.id, t.workspace_id) for t in acc] == [("u1", "ws-a"), ("u2", "ws-b")]


def test_shared_user_is_tagged_with_first_workspace():
    source = InMemoryDataSource(collections={
        ("users", "ws-a"): [UserRecord("u1", "a@x"), UserRecord("u2", "b@x")],
        ("users", "ws-b"): [UserRecord("u2", "b@x"), UserRecord("u3", "c@x")],
        ("reports", "ws-a"): [_report("r1")],
        ("reports", "ws-b"): [_report("r2")],
    })
    merged = _gather(_scope("ws-a", "ws-b"), source)

    assert [t.id for t in merged.users] == ["u1", "u2", "u3"]
    assert merged.users[1].workspace_id == "ws-a"
    assert merged.users[1].workspace_name == "WS-A"
    assert [t.id for t in merged.reports] == ["r1", "r2"]
    assert merged.loaded_workspace_ids == ("ws-a", "ws-b")
    assert merged.partial is False


def test_failed_workspace_is_dropped_entirely(caplog):
    source = InMemoryDataSource(
        collections={
            ("users", "ws-a"): [UserRecord("u1", "a@x")],
            ("users", "ws-b"): [UserRecord("u2", "b@x")],
            ("users", "ws-c"): [UserRecord("u3", "c@x")],
            ("reports", "ws-a"): [_report("r1")],
            ("reports", "ws-c"): [_report("r3")],
        },
        failures={("reports", "ws-b"): RuntimeError("permission denied")},
    )
    caplog.set_level(logging.ERROR)
    merged = _gather(_scope("ws-a", "ws-b", "ws-c"), source)

    # ws-b users fetched fine but are not merged
    assert [t.id for t in merged.users] == ["u1", "u3"]
    assert [t.id for t in merged.reports] == ["r1", "r3"]
    assert merged.loaded_workspace_ids == ("ws-a", "ws-c")
    assert merged.partial is True
    assert merged.failures_as_dicts() == [
        {"workspace_id": "ws-b", "kind": "reports", "error": "permission denied"},
    ]
    assert "ws-b" in caplog.text


def test_every_failing_kind_is_reported():
    source = InMemoryDataSource(failures={
        ("reports", "ws-a"): RuntimeError("reports down"),
        ("users", "ws-a"): ValueError(),
    })
    merged = _gather(_scope("ws-a"), source)
    assert [(f.kind, f.error) for f in merged.failures] == [
        ("reports", "reports down"),
        ("users", "ValueError"),
    ]
    assert merged.reports == ()
    assert merged.loaded_workspace_ids == ()


def test_workspaces_sequential_kinds_concurrent():
    source = InMemoryDataSource(delay=0.01)
    kinds = (EntityKind.REPORTS, EntityKind.USERS, EntityKind.TEAMS)
    _gather(_scope("ws-a", "ws-b"), source, kinds)

    assert source.max_in_flight == len(kinds)
    first_b_start = source.events.index(("start", "reports", "ws-b"))
    a_events = [i for i, e in enumerate(source.events) if e[2] == "ws-a"]
    assert max(a_events) < first_b_start
    # all ws-a fetches start before any of them ends
    a_starts = [i for i, e in enumerate(source.events) if e[0] == "start" and e[2] == "ws-a"]
    a_ends = [i for i, e in enumerate(source.events) if e[0] == "end" and e[2] == "ws-a"]
    assert max(a_starts) < min(a_ends)


def test_membership_pairs_are_deduplicated():
    membership = TeamMembershipRecord("t1", "u1", role="lead")
    source = InMemoryDataSource(collections={
        ("team_memberships", "ws-a"): [membership, TeamMembershipRecord("t1", "u2")],
        ("team_memberships", "ws-b"): [TeamMembershipRecord("t1", "u1", role="member")],
    })
    merged = _gather(_scope("ws-a", "ws-b"), source, (EntityKind.TEAM_MEMBERSHIPS,))
    assert [t.id for t in merged.team_memberships] == [("t1", "u1"), ("t1", "u2")]
    assert merged.team_memberships[0].record.role == "lead"


def test_report_filter_reaches_the_source():
    report_filter = ReportFilter(status="approved")
    source = InMemoryDataSource(collections={
        ("reports", "ws-a"): [_report("r1"), _report("r2", status="draft")],
    })
    merged = _gather(_scope("ws-a"), source, (EntityKind.REPORTS,), report_filter=report_filter)
    assert source.report_filters == [report_filter]
    assert [t.id for t in merged.of(EntityKind.REPORTS)] == ["r1"]


def test_duplicate_kinds_fetch_once():
    source = InMemoryDataSource()
    _gather(_scope("ws-a"), source, ("users", EntityKind.USERS))
    assert [e for e in source.events if e[0] == "start"] == [("start", "users", "ws-a")]


def test_empty_scope_yields_empty_collections():
    merged = _gather(WorkspaceScope("olivia", "owner", ()), InMemoryDataSource())
    assert merged == MergedCollections()


def test_cancellation_propagates():
    source = InMemoryDataSource(failures={("users", "ws-a"): asyncio.CancelledError()})
    with pytest.raises(asyncio.CancelledError):
        _gather(_scope("ws-a", "ws-b"), source)
