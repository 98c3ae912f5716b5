from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Sequence

import pandas as pd

from core.charts import allocation_chart, to_vega_spec, utilization_donut
from core.filters import DashboardFilters, budget_chart_data, filters_to_dict
from core.models import ActivityRecord, ActivityStatus, DashboardMetrics, records_to_frame


def _pct(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def compute_metrics(records: Sequence[ActivityRecord]) -> DashboardMetrics:
    """Summary totals over an already-filtered record sequence."""
    df = records_to_frame(records)
    if df.empty:
        return DashboardMetrics()

    status_counts = df["status"].value_counts()
    total_budget = float(df["allocation_budget"].sum())
    total_expenditure = float(df["expenditure"].sum())
    # Stored balance, not budget - expenditure; the sheet is the source of truth.
    total_balance = float(df["balance"].sum())
    balance = df["balance"]

    return DashboardMetrics(
        total_activities=int(len(df)),
        completed=int(status_counts.get(ActivityStatus.COMPLETED.value, 0)),
        on_process=int(status_counts.get(ActivityStatus.ON_PROCESS.value, 0)),
        not_started=int(status_counts.get(ActivityStatus.NOT_STARTED.value, 0)),
        total_budget=total_budget,
        total_expenditure=total_expenditure,
        total_balance=total_balance,
        budget_utilization=_pct(total_expenditure, total_budget),
        balance_percentage=_pct(total_balance, total_budget),
        total_overspent=float(balance[balance < 0].abs().sum()),
        total_underspent=float(balance[balance > 0].sum()),
    )


def records_payload(records: Sequence[ActivityRecord]) -> List[Dict[str, Any]]:
    df = records_to_frame(records)
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: List[ActivityRecord] = ctx.get("records", []) or []
    filtered: List[ActivityRecord] = ctx.get("filtered_records", []) or []

    metrics = compute_metrics(filtered)
    points = budget_chart_data(records, filtered, filters.selected_domain)

    charts: Dict[str, Any] = {}
    if points:
        charts["allocation"] = to_vega_spec(allocation_chart(points))
    if metrics.total_activities:
        charts["utilization"] = to_vega_spec(utilization_donut(metrics.total_expenditure, metrics.total_balance))

    return {
        "filters": filters_to_dict(filters),
        "source": {"source": ctx.get("source"), "last_sync": ctx.get("last_sync")},
        "domains": ctx.get("domains", []),
        "metrics": asdict(metrics),
        "chart_data": points,
        "charts": charts,
        "records": records_payload(filtered),
    }
