"""
Report analytics dashboard.

Aggregates reports, departments, users and templates across the caller's
workspace scope and derives the dashboard payload:

    summary              totals, approval rate, 30-day submissions, avg approval time
    reports_over_time    one zero-filled bucket per calendar day of the range
    status_breakdown     Approved / Pending / Rejected / Draft (zeros dropped)
    department_reports   per-department counts and approval rate
    top_templates        most used templates
    submissions_by_day   Monday..Sunday heatmap
    approval_trend       last N calendar months over every fetched report
    approval_insights    overall rate, 3-month trend, best/worst/fastest month
    user_submissions     most active authors

``build_report_dashboard`` does the I/O; ``derive_report_dashboard`` is the
pure part and can be called on any ``MergedCollections``.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

from workspace_hub.core.exceptions import ValidationError
from workspace_hub.services import metric_math as mm
from workspace_hub.services.records import PENDING_REPORT_STATUSES, EntityKind, ReportFilter
from workspace_hub.services.workspace_fetch import gather_workspace_collections
from workspace_hub.utils.helpers import isoformat

logger = logging.getLogger(__name__)

REPORT_KINDS = (EntityKind.REPORTS, EntityKind.DEPARTMENTS, EntityKind.USERS, EntityKind.TEMPLATES)

_ALL = (None, "", "all")


@dataclass(frozen=True)
class ReportDashboardFilters:
    date_from: datetime
    date_to: datetime
    status: str = "all"
    template: str = "all"
    user: str = "all"
    department: str = "all"

    def __post_init__(self):
        if self.date_from is None or self.date_to is None:
            raise ValidationError("date range is required", details={"from": "required", "to": "required"})
        # naive bounds are UTC
        object.__setattr__(self, "date_from", mm.as_aware(self.date_from) or self.date_from)
        object.__setattr__(self, "date_to", mm.as_aware(self.date_to) or self.date_to)
        if self.date_from > self.date_to:
            raise ValidationError(
                "from must not be after to",
                details={"from": isoformat(self.date_from), "to": isoformat(self.date_to)},
            )

    @classmethod
    def last_days(cls, now=None, days=30, **selection):
        """Range covering the ``days`` days up to and including today."""
        now = mm.as_aware(now) or datetime.now(timezone.utc)
        start = datetime.combine((now - timedelta(days=days)).date(), datetime.min.time(), tzinfo=timezone.utc)
        end = datetime.combine(now.date(), datetime.max.time(), tzinfo=timezone.utc)
        return cls(date_from=start, date_to=end, **selection)

    def report_filter(self) -> ReportFilter:
        return ReportFilter.from_selection(
            status=self.status,
            template=self.template,
            user=self.user,
            date_from=self.date_from,
            date_to=self.date_to,
        )

    def to_dict(self) -> dict:
        return {
            "from": isoformat(self.date_from),
            "to": isoformat(self.date_to),
            "status": self.status,
            "template": self.template,
            "user": self.user,
            "department": self.department,
        }


@dataclass(frozen=True)
class ReportDashboard:
    summary: dict
    reports_over_time: list
    status_breakdown: list
    department_reports: list
    top_templates: list
    submissions_by_day: list
    approval_trend: list
    approval_insights: dict
    user_submissions: list
    workspace_ids: list
    failures: list
    partial: bool
    last_updated: str

    def to_dict(self) -> dict:
        return asdict(self)


async def build_report_dashboard(scope, source, filters: ReportDashboardFilters, *, now=None,
                                 trend_months=6, top_n=10):
    """Fetch the report collections for ``scope`` and derive the dashboard."""
    merged = await gather_workspace_collections(
        scope, source, REPORT_KINDS, report_filter=filters.report_filter(),
    )
    return derive_report_dashboard(merged, filters, now=now, trend_months=trend_months, top_n=top_n)


def derive_report_dashboard(merged, filters, *, now=None, trend_months=6, top_n=10):
    now = mm.as_aware(now) or datetime.now(timezone.utc)
    reports = [t.record for t in merged.reports]
    users = {t.id: t.record for t in merged.users}
    departments = [t.record for t in merged.departments]
    templates = {t.id: t.record for t in merged.templates}

    in_range = [r for r in reports if _created_in(r, filters.date_from, filters.date_to)]
    filtered = _apply_department_filter(in_range, filters.department, users, departments)

    summary = _summary(filtered, now)
    department_reports = _department_reports(in_range, departments, users)
    summary["top_performing_department"] = _top_department(department_reports)

    trend = _approval_trend(reports, now, trend_months)

    return ReportDashboard(
        summary=summary,
        reports_over_time=_reports_over_time(filtered, filters.date_from, filters.date_to),
        status_breakdown=_status_breakdown(summary),
        department_reports=department_reports,
        top_templates=_top_templates(filtered, templates, top_n),
        submissions_by_day=_submissions_by_day(filtered),
        approval_trend=trend,
        approval_insights=_approval_insights(trend),
        user_submissions=_user_submissions(filtered, users, top_n),
        workspace_ids=list(merged.loaded_workspace_ids),
        failures=merged.failures_as_dicts(),
        partial=merged.partial,
        last_updated=now.isoformat(),
    )


# ── Filtering ────────────────────────────────────────────────────────────

def _created_in(report, start, end):
    created = mm.as_aware(report.created_at)
    return created is not None and start <= created <= end


def _apply_department_filter(reports, department_id, users, departments):
    if department_id in _ALL:
        return reports
    selected = next((d.name for d in departments if d.id == department_id), None)
    if selected is None:
        return []
    return [
        r for r in reports
        if r.author_id in users and users[r.author_id].department == selected
    ]


# ── Summary ──────────────────────────────────────────────────────────────

def _count(reports, *statuses):
    return sum(1 for r in reports if r.status in statuses)


def _summary(reports, now):
    total = len(reports)
    approved = _count(reports, "approved")
    rejected = _count(reports, "rejected")
    pending = _count(reports, *PENDING_REPORT_STATUSES)
    drafts = _count(reports, "draft")

    thirty_days_ago = now - timedelta(days=30)
    monthly = sum(1 for r in reports if r.status != "draft" and mm.as_aware(r.created_at) >= thirty_days_ago)

    approval_hours = [
        mm.hours_between(r.submitted_at, r.finalized_at)
        for r in reports
        if r.status == "approved" and r.submitted_at and r.finalized_at
    ]
    return {
        "total_reports": total,
        "approved_reports": approved,
        "rejected_reports": rejected,
        "pending_reports": pending,
        "draft_reports": drafts,
        "approval_rate": mm.rounded_percentage(approved, total),
        "monthly_submissions": monthly,
        "avg_approval_time_hours": round(mm.mean(approval_hours), 2),
    }


def _status_breakdown(summary):
    total = summary["total_reports"]
    rows = [
        ("Approved", summary["approved_reports"]),
        ("Pending", summary["pending_reports"]),
        ("Rejected", summary["rejected_reports"]),
        ("Draft", summary["draft_reports"]),
    ]
    return [
        {"name": name, "value": value, "percentage": round(mm.percentage(value, total), 1)}
        for name, value in rows
        if value > 0
    ]


# ── Departments ──────────────────────────────────────────────────────────

def _department_reports(reports, departments, users):
    rows = []
    for dept in departments:
        members = {u.id for u in users.values() if u.department == dept.name}
        dept_reports = [r for r in reports if r.author_id in members]
        approved = _count(dept_reports, "approved")
        rows.append({
            "department_id": dept.id,
            "department": dept.name,
            "total": len(dept_reports),
            "approved": approved,
            "pending": _count(dept_reports, *PENDING_REPORT_STATUSES),
            "rejected": _count(dept_reports, "rejected"),
            "approval_rate": round(mm.percentage(approved, len(dept_reports)), 1),
        })
    return rows


def _top_department(department_reports):
    if not department_reports:
        return "N/A"
    best = department_reports[0]
    for row in department_reports[1:]:
        if row["approval_rate"] > best["approval_rate"]:
            best = row
    return best["department"]


# ── Time series ──────────────────────────────────────────────────────────

def _reports_over_time(reports, date_from, date_to):
    by_day: dict = {}
    for r in reports:
        by_day.setdefault(r.created_at.date(), []).append(r)
    buckets = []
    for day in mm.day_buckets(date_from, date_to):
        day_reports = by_day.get(day, [])
        buckets.append({
            "date": day.isoformat(),
            "submitted": _count(day_reports, *PENDING_REPORT_STATUSES),
            "approved": _count(day_reports, "approved"),
            "rejected": _count(day_reports, "rejected"),
            "drafts": _count(day_reports, "draft"),
        })
    return buckets


def _submissions_by_day(reports):
    counts = Counter(
        mm.WEEKDAYS[r.created_at.weekday()] for r in reports if r.status != "draft"
    )
    peak = max(1, max(counts.values(), default=0))
    return [
        {"day": day, "submissions": counts.get(day, 0), "intensity": counts.get(day, 0) / peak}
        for day in mm.WEEKDAYS
    ]


def _approval_trend(reports, now, months):
    trend = []
    for start, end, label in mm.month_windows(now, months):
        month_reports = [r for r in reports if mm.in_window(r.created_at, start, end)]
        submitted = [r for r in month_reports if r.status != "draft"]
        approved = _count(month_reports, "approved")
        processing_days = [
            mm.days_between(r.submitted_at, r.finalized_at)
            for r in month_reports
            if r.status == "approved" and r.submitted_at and r.finalized_at
        ]
        trend.append({
            "month": label,
            "total_submissions": len(submitted),
            "approved_count": approved,
            "rejected_count": _count(month_reports, "rejected"),
            "approval_rate": mm.percentage(approved, len(submitted)),
            "avg_processing_days": round(mm.mean(processing_days), 2),
        })
    return trend


def _approval_insights(trend):
    submissions = sum(m["total_submissions"] for m in trend)
    approved = sum(m["approved_count"] for m in trend)

    recent = sum(m["approval_rate"] for m in trend[-3:]) / 3
    previous = sum(m["approval_rate"] for m in trend[-6:-3]) / 3
    if recent > previous:
        direction = "up"
    elif recent < previous:
        direction = "down"
    else:
        direction = "stable"
    trend_pct = (recent - previous) / previous * 100 if previous > 0 else 0.0

    latest = trend[-1] if trend else None
    prior = trend[-2] if len(trend) > 1 else None
    change = mm.month_over_month_change(
        latest["approval_rate"] if latest else None,
        prior["approval_rate"] if prior else None,
    )

    return {
        "overall_rate": mm.rounded_percentage(approved, submissions),
        "trend_direction": direction,
        "trend_percentage": round(trend_pct, 1),
        "best_month": _pick_month(trend, "approval_rate", lambda a, b: a > b),
        "worst_month": _pick_month(trend, "approval_rate", lambda a, b: a < b),
        "fastest_month": _pick_month(trend, "avg_processing_days", lambda a, b: a < b),
        "monthly_change": None if change is None else round(change, 1),
    }


def _pick_month(trend, key, better):
    if not trend:
        return {"month": "N/A", key: 0}
    best = trend[0]
    for month in trend[1:]:
        if better(month[key], best[key]):
            best = month
    return {"month": best["month"], key: round(best[key], 1)}


# ── Templates & authors ──────────────────────────────────────────────────

def _top_templates(reports, templates, top_n):
    usage = Counter(r.template_id for r in reports if r.template_id)
    rows = []
    for template_id, count in usage.most_common(top_n):
        template = templates.get(template_id)
        last_used = max(r.created_at for r in reports if r.template_id == template_id)
        rows.append({
            "template_id": template_id,
            "template_name": (template.name if template else None) or "Unknown Template",
            "usage_count": count,
            "category": (template.category if template else None) or "Uncategorized",
            "department": (template.department if template else None) or "General",
            "last_used": last_used.isoformat(),
        })
    return rows


def _user_submissions(reports, users, top_n):
    stats: dict = {}
    for r in reports:
        entry = stats.setdefault(r.author_id, {"total": 0, "approved": 0, "rejected": 0, "minutes": []})
        entry["total"] += 1
        if r.status == "approved":
            entry["approved"] += 1
        elif r.status == "rejected":
            entry["rejected"] += 1
        if r.time_spent_minutes:
            entry["minutes"].append(r.time_spent_minutes)

    rows = []
    for author_id, entry in stats.items():
        user = users.get(author_id)
        rows.append({
            "user_id": author_id,
            "user_name": (user and (user.name or user.email)) or "Unknown User",
            "department": (user.department if user else None) or "Unassigned",
            "total_submissions": entry["total"],
            "approved_submissions": entry["approved"],
            "rejected_submissions": entry["rejected"],
            "approval_rate": round(mm.percentage(entry["approved"], entry["total"]), 1),
            "avg_submission_minutes": round(mm.mean(entry["minutes"]), 1),
        })
    rows.sort(key=lambda row: row["total_submissions"], reverse=True)
    return rows[:top_n]
