from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.models import ActivityRecord, ActivityStatus, records_to_frame


ALL_STATUSES = "all"
TOP_ACTIVITIES = 10
CHART_LABEL_LIMIT = 15


@dataclass(frozen=True)
class DashboardFilters:
    selected_domain: Optional[str] = None
    selected_status: Optional[ActivityStatus] = None


def _as_status(value: object) -> Optional[ActivityStatus]:
    if value is None:
        return None
    if isinstance(value, ActivityStatus):
        return value
    s = str(value).strip().lower()
    if not s or s == ALL_STATUSES:
        return None
    for status in ActivityStatus:
        if s in (status.value.lower(), status.name.lower()):
            return status
    return None


def normalize_filters(raw: Optional[dict]) -> DashboardFilters:
    raw = raw or {}
    domain = raw.get("selected_domain")
    domain = str(domain).strip() if domain is not None else ""
    return DashboardFilters(
        selected_domain=domain or None,
        selected_status=_as_status(raw.get("selected_status")),
    )


def filters_to_dict(filters: DashboardFilters) -> Dict[str, Any]:
    return {
        "selected_domain": filters.selected_domain,
        "selected_status": filters.selected_status.value if filters.selected_status else ALL_STATUSES,
    }


def get_domains(records: Iterable[ActivityRecord]) -> List[str]:
    """Domain choices come from the full record set so filtering never shrinks them."""
    return sorted({r.domain_name for r in records if r.domain_name})


def filter_records(records: Sequence[ActivityRecord], filters: DashboardFilters) -> List[ActivityRecord]:
    result = list(records)
    if filters.selected_domain:
        result = [r for r in result if r.domain_name == filters.selected_domain]
    if filters.selected_status is not None:
        result = [r for r in result if r.status == filters.selected_status]
    return result


def truncate_label(name: str, limit: int = CHART_LABEL_LIMIT) -> str:
    return name[:limit] + "..." if len(name) > limit else name


def budget_chart_data(
    records: Sequence[ActivityRecord],
    filtered: Sequence[ActivityRecord],
    selected_domain: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Budget vs spent points for the allocation chart.

    Without a domain the full record set is grouped per domain in first-seen
    order. With a domain, the filtered activities are ranked by budget
    (ties keep their row order) and the top ten are returned.
    """
    if not selected_domain:
        df = records_to_frame(records)
        if df.empty:
            return []
        grouped = (
            df.groupby("domain_name", sort=False)[["allocation_budget", "expenditure"]]
            .sum()
            .reset_index()
        )
        return [
            {"name": str(row.domain_name), "Budget": float(row.allocation_budget), "Spent": float(row.expenditure)}
            for row in grouped.itertuples(index=False)
        ]

    df = records_to_frame(filtered)
    if df.empty:
        return []
    top = df.sort_values("allocation_budget", ascending=False, kind="stable").head(TOP_ACTIVITIES)
    return [
        {
            "name": truncate_label(str(row.activity_name)),
            "Budget": float(row.allocation_budget),
            "Spent": float(row.expenditure),
        }
        for row in top.itertuples(index=False)
    ]
