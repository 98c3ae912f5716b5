from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, Optional

import pandas as pd


class ActivityStatus(str, Enum):
    COMPLETED = "Completed"
    ON_PROCESS = "On process"
    NOT_STARTED = "Not started"


@dataclass(frozen=True)
class ActivityRecord:
    """One normalized row of the activity/budget sheet."""

    sequence_id: str = ""
    activity_code: str = ""
    domain_name: str = ""
    activity_name: str = ""
    operation: str = ""
    timeline: str = ""
    target_participants: str = ""
    participants: str = ""
    planned_count: Optional[float] = None
    completed_count: Optional[float] = None
    status: ActivityStatus = ActivityStatus.NOT_STARTED
    allocation_budget: float = 0.0
    expenditure: float = 0.0
    balance: float = 0.0
    budget_progress: float = 0.0


@dataclass(frozen=True)
class DashboardMetrics:
    total_activities: int = 0
    completed: int = 0
    on_process: int = 0
    not_started: int = 0
    total_budget: float = 0.0
    total_expenditure: float = 0.0
    total_balance: float = 0.0
    budget_utilization: float = 0.0
    balance_percentage: float = 0.0
    total_overspent: float = 0.0
    total_underspent: float = 0.0


RECORD_FIELDS = [
    "sequence_id",
    "activity_code",
    "domain_name",
    "activity_name",
    "operation",
    "timeline",
    "target_participants",
    "participants",
    "planned_count",
    "completed_count",
    "status",
    "allocation_budget",
    "expenditure",
    "balance",
    "budget_progress",
]

TEXT_FIELDS = RECORD_FIELDS[:8]
NUMERIC_FIELDS = ["allocation_budget", "expenditure", "balance", "budget_progress"]
NULLABLE_FIELDS = ["planned_count", "completed_count"]


def records_to_frame(records: Iterable[ActivityRecord]) -> pd.DataFrame:
    """Tabular view of records, one column per field, status as its label."""
    rows = [asdict(r) for r in records]
    df = pd.DataFrame(rows, columns=RECORD_FIELDS)
    df["status"] = df["status"].map(lambda s: s.value if isinstance(s, ActivityStatus) else s)
    for col in NUMERIC_FIELDS + NULLABLE_FIELDS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
    for col in TEXT_FIELDS:
        df[col] = df[col].astype(object)
    return df
