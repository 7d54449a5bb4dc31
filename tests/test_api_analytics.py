"""
Analytics API tests against the seeded demo tenant set.

Test blocks:
  1. Identity & scope resolution
  2. Report analytics
  3. Home dashboard
  4. Team directory
  5. Snapshots (latest / generations)
  6. Error envelope & health
"""

import pytest

from workspace_hub.services.data_sources import SqlWorkspaceDataSource

BASE = "/api/v1/analytics"


# ── 1. Identity & scope ──────────────────────────────────────────────────

class TestScope:
    def test_missing_identity(self, client):
        res = client.get(f"{BASE}/scope")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_REQUIRED"
        assert set(body["details"]) == {"user_id", "workspace_id"}

    def test_owner_scope_order(self, client, seeded, identity):
        res = client.get(f"{BASE}/scope", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.status_code == 200
        body = res.get_json()
        assert body["role"] == "owner"
        assert body["workspace_ids"] == [seeded["hq"], seeded["office"], seeded["lab"]]
        assert body["used_fallback"] is False

    def test_admin_scope(self, client, seeded, identity):
        res = client.get(f"{BASE}/scope", headers=identity(seeded["admin"], seeded["hq"]))
        assert res.get_json()["workspace_ids"] == [seeded["hq"]]

    def test_member_scope_from_query_params(self, client, seeded):
        res = client.get(f"{BASE}/scope?user_id={seeded['member']}&workspace_id={seeded['office']}")
        body = res.get_json()
        assert body["role"] == "member"
        assert body["workspace_ids"] == [seeded["office"]]

    def test_all_workspaces_off(self, client, seeded, identity):
        res = client.get(f"{BASE}/scope?all_workspaces=false", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.get_json()["workspace_ids"] == [seeded["hq"]]

    def test_non_member_forbidden(self, client, seeded, identity):
        res = client.get(f"{BASE}/scope", headers=identity(seeded["analyst"], seeded["hq"]))
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_unknown_workspace(self, client, seeded, identity):
        res = client.get(f"{BASE}/scope", headers=identity(seeded["owner"], "no-such-workspace"))
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_membership_lookup_failure_is_503(self, client, seeded, identity, monkeypatch):
        async def broken(self, user_id):
            raise RuntimeError("store offline")

        monkeypatch.setattr(SqlWorkspaceDataSource, "get_accessible_workspaces", broken)
        res = client.get(f"{BASE}/scope", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.status_code == 503
        assert res.get_json()["code"] == "ERR_SCOPE_UNRESOLVED"


# ── 2. Report analytics ──────────────────────────────────────────────────

class TestReports:
    def test_owner_dashboard_last_30_days(self, client, seeded, identity):
        res = client.get(f"{BASE}/reports", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.status_code == 200
        body = res.get_json()
        summary = body["summary"]
        assert summary["total_reports"] == 9
        assert summary["approved_reports"] == 4
        assert summary["pending_reports"] == 3
        assert summary["rejected_reports"] == 1
        assert summary["draft_reports"] == 1
        assert summary["approval_rate"] == 44
        assert len(body["reports_over_time"]) == 31
        assert len(body["approval_trend"]) == 6
        assert body["partial"] is False
        assert body["filters"]["status"] == "all"
        assert body["screen"] == "reports"
        assert body["superseded"] is False

    def test_member_sees_current_workspace_only(self, client, seeded, identity):
        res = client.get(f"{BASE}/reports", headers=identity(seeded["member"], seeded["hq"]))
        body = res.get_json()
        assert body["workspace_ids"] == [seeded["hq"]]
        assert body["summary"]["total_reports"] == 6

    def test_status_filter(self, client, seeded, identity):
        res = client.get(f"{BASE}/reports?status=approved", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.get_json()["summary"]["total_reports"] == 4

    def test_explicit_range(self, client, seeded, identity):
        res = client.get(
            f"{BASE}/reports?from=2026-05-01&to=2026-05-03",
            headers=identity(seeded["owner"], seeded["hq"]),
        )
        body = res.get_json()
        assert res.status_code == 200
        assert len(body["reports_over_time"]) == 3
        assert body["filters"]["from"] == "2026-05-01T00:00:00+00:00"

    def test_bad_date(self, client, seeded, identity):
        res = client.get(f"{BASE}/reports?from=yesterday", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_inverted_range(self, client, seeded, identity):
        res = client.get(
            f"{BASE}/reports?from=2026-05-10&to=2026-05-01",
            headers=identity(seeded["owner"], seeded["hq"]),
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_failed_workspace_is_partial(self, client, seeded, identity, monkeypatch):
        original = SqlWorkspaceDataSource.list_departments_for_workspace

        async def flaky(self, workspace_id):
            if workspace_id == seeded["lab"]:
                raise RuntimeError("lab store offline")
            return await original(self, workspace_id)

        monkeypatch.setattr(SqlWorkspaceDataSource, "list_departments_for_workspace", flaky)
        res = client.get(f"{BASE}/reports", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.status_code == 200
        body = res.get_json()
        assert body["partial"] is True
        assert body["workspace_ids"] == [seeded["hq"], seeded["office"]]
        assert body["failures"][0]["workspace_id"] == seeded["lab"]
        assert body["summary"]["total_reports"] == 7


# ── 3. Home dashboard ────────────────────────────────────────────────────

class TestOverview:
    def test_owner_overview(self, client, seeded, identity):
        res = client.get(f"{BASE}/overview", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.status_code == 200
        body = res.get_json()
        assert body["total_tasks"] == 6
        assert body["pending_reports"] == 3
        assert [d["title"] for d in body["upcoming_deadlines"]] == [
            "Office safety walk", "Prepare audit pack", "Review travel policy",
        ]
        assert body["activity_strategy"] == "weighted"
        assert body["system"]["source"] == "measured"

    def test_member_overview(self, client, seeded, identity):
        res = client.get(f"{BASE}/overview", headers=identity(seeded["member"], seeded["hq"]))
        body = res.get_json()
        assert body["total_tasks"] == 2
        assert body["completion_percentage"] == 50
        assert [t["name"] for t in body["my_teams"]] == ["Close Team"]
        assert body["active_teams"] == 1


# ── 4. Team directory ────────────────────────────────────────────────────

class TestTeams:
    def test_owner_directory(self, client, seeded, identity):
        res = client.get(f"{BASE}/teams", headers=identity(seeded["owner"], seeded["hq"]))
        body = res.get_json()
        assert body["total_teams"] == 4
        assert [b["name"] for b in body["branches"]] == ["Austin", "Istanbul"]

    def test_sub_workspace_member_gets_parent_branch(self, client, seeded, identity):
        res = client.get(f"{BASE}/teams", headers=identity(seeded["member"], seeded["office"]))
        body = res.get_json()
        assert [t["name"] for t in body["teams"]] == ["Istanbul Crew"]
        crew = body["teams"][0]
        assert crew["branch_name"] == "Istanbul"
        assert crew["region_name"] == "EMEA"
        assert crew["is_member"] is True
        assert crew["user_role"] == "lead"

    def test_search(self, client, seeded, identity):
        res = client.get(f"{BASE}/teams?search=sales", headers=identity(seeded["owner"], seeded["hq"]))
        body = res.get_json()
        assert [t["name"] for t in body["teams"]] == ["Sales Pod"]
        assert body["filters"]["search"] == "sales"


# ── 5. Snapshots ─────────────────────────────────────────────────────────

class TestSnapshots:
    def test_latest_before_and_after_run(self, client, seeded, identity):
        headers = identity(seeded["owner"], seeded["hq"])
        assert client.get(f"{BASE}/reports/latest", headers=headers).status_code == 404

        first = client.get(f"{BASE}/reports", headers=headers).get_json()
        second = client.get(f"{BASE}/reports", headers=headers).get_json()
        assert (first["generation"], second["generation"]) == (1, 2)

        latest = client.get(f"{BASE}/reports/latest", headers=headers)
        assert latest.status_code == 200
        body = latest.get_json()
        assert body["generation"] == 2
        assert body["summary"]["total_reports"] == 9
        assert "published_at" in body

    def test_snapshots_are_per_user(self, client, seeded, identity):
        client.get(f"{BASE}/teams", headers=identity(seeded["owner"], seeded["hq"]))
        res = client.get(f"{BASE}/teams/latest", headers=identity(seeded["admin"], seeded["hq"]))
        assert res.status_code == 404

    def test_unknown_screen(self, client, seeded, identity):
        res = client.get(f"{BASE}/bogus/latest", headers=identity(seeded["owner"], seeded["hq"]))
        assert res.status_code == 404


# ── 6. Error envelope & health ───────────────────────────────────────────

def test_unknown_route_uses_error_envelope(client):
    res = client.get("/api/v1/nowhere")
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


def test_method_not_allowed(client):
    assert client.post(f"{BASE}/reports").status_code == 405


def test_request_id_header(client, seeded, identity):
    res = client.get(f"{BASE}/scope", headers={**identity(seeded["owner"], seeded["hq"]), "X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"
    assert "X-Request-Duration-Ms" in res.headers


@pytest.mark.parametrize("path", ["/api/v1/health/ready", "/api/v1/health/live"])
def test_health(client, path):
    res = client.get(path)
    assert res.status_code == 200


def test_live_reports_database(client):
    body = client.get("/api/v1/health/live").get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "ok"
    assert body["checks"]["app"]["activity_score_strategy"] == "weighted"
