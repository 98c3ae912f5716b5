from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

BUDGET_COLOR = "#F1F5F9"
SPENT_COLOR = "#4F46E5"
REMAINING_COLOR = "#10B981"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def allocation_chart(points: List[Dict[str, Any]]) -> alt.Chart:
    """Grouped Budget/Spent bars, one group per chart point."""
    df = pd.DataFrame(points, columns=["name", "Budget", "Spent"])
    long_df = df.melt(id_vars=["name"], value_vars=["Budget", "Spent"], var_name="series", value_name="amount")
    return (
        alt.Chart(long_df)
        .mark_bar(cornerRadius=6)
        .encode(
            x=alt.X("name:N", title=None, sort=None, axis=alt.Axis(labelAngle=0)),
            xOffset=alt.XOffset("series:N", sort=["Budget", "Spent"]),
            y=alt.Y("amount:Q", title=None, axis=alt.Axis(format="$~s", gridDash=[3, 3], domain=False, ticks=False)),
            color=alt.Color(
                "series:N",
                title=None,
                scale=alt.Scale(domain=["Budget", "Spent"], range=[BUDGET_COLOR, SPENT_COLOR]),
            ),
            tooltip=["name", "series", alt.Tooltip("amount:Q", format="$,.0f")],
        )
        .properties(height=260)
    )


def utilization_donut(total_expenditure: float, total_balance: float) -> alt.Chart:
    """Spent vs remaining; a negative balance shows as nothing remaining."""
    df = pd.DataFrame(
        {
            "segment": ["Spent", "Remaining"],
            "value": [total_expenditure, max(total_balance, 0.0)],
        }
    )
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=60)
        .encode(
            theta=alt.Theta("value:Q"),
            color=alt.Color(
                "segment:N",
                title=None,
                scale=alt.Scale(domain=["Spent", "Remaining"], range=[SPENT_COLOR, REMAINING_COLOR]),
            ),
            tooltip=["segment", alt.Tooltip("value:Q", format="$,.0f")],
        )
        .properties(height=220)
    )
