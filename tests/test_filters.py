"""Tests for filter normalization, domain derivation and chart projections."""
import itertools

import pytest

from core.filters import (
    DashboardFilters,
    budget_chart_data,
    filter_records,
    filters_to_dict,
    get_domains,
    normalize_filters,
    truncate_label,
)
from core.models import ActivityStatus


# ── normalize_filters ────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ({}, DashboardFilters()),
    (None, DashboardFilters()),
    ({"selected_domain": "", "selected_status": "all"}, DashboardFilters()),
    ({"selected_domain": " Health "}, DashboardFilters(selected_domain="Health")),
    ({"selected_status": "On process"}, DashboardFilters(selected_status=ActivityStatus.ON_PROCESS)),
    ({"selected_status": "completed"}, DashboardFilters(selected_status=ActivityStatus.COMPLETED)),
    ({"selected_status": "NOT_STARTED"}, DashboardFilters(selected_status=ActivityStatus.NOT_STARTED)),
    ({"selected_status": ActivityStatus.COMPLETED}, DashboardFilters(selected_status=ActivityStatus.COMPLETED)),
    ({"selected_status": "bogus"}, DashboardFilters()),
])
def test_normalize_filters(raw, expected):
    assert normalize_filters(raw) == expected


def test_filters_to_dict():
    assert filters_to_dict(DashboardFilters()) == {"selected_domain": None, "selected_status": "all"}
    assert filters_to_dict(DashboardFilters("Health", ActivityStatus.ON_PROCESS)) == {
        "selected_domain": "Health",
        "selected_status": "On process",
    }


# ── get_domains ──────────────────────────────────────────────────────────────

def test_domains_are_distinct_sorted_and_non_empty(record_factory):
    records = [
        record_factory(domain_name="Water"),
        record_factory(domain_name=""),
        record_factory(domain_name="Health"),
        record_factory(domain_name="Water"),
        record_factory(domain_name="Education"),
    ]
    assert get_domains(records) == ["Education", "Health", "Water"]


def test_domains_do_not_depend_on_status_filter(sample_records):
    before = get_domains(sample_records)
    for status in ActivityStatus:
        filter_records(sample_records, DashboardFilters(selected_status=status))
        assert get_domains(sample_records) == before


# ── filter_records ───────────────────────────────────────────────────────────

def test_no_filters_returns_everything(sample_records):
    assert filter_records(sample_records, DashboardFilters()) == sample_records


def test_domain_and_status_are_anded(sample_records):
    result = filter_records(sample_records, DashboardFilters("Health", ActivityStatus.COMPLETED))
    assert [r.sequence_id for r in result] == ["1"]


def test_unknown_domain_yields_empty(sample_records):
    assert filter_records(sample_records, DashboardFilters(selected_domain="Nope")) == []


@pytest.mark.parametrize("domain, status", list(itertools.product(
    [None, "Health", "Education"], [None] + list(ActivityStatus)
)))
def test_filter_order_does_not_matter(sample_records, domain, status):
    domain_only = DashboardFilters(selected_domain=domain)
    status_only = DashboardFilters(selected_status=status)
    a = filter_records(filter_records(sample_records, domain_only), status_only)
    b = filter_records(filter_records(sample_records, status_only), domain_only)
    assert a == b == filter_records(sample_records, DashboardFilters(domain, status))


# ── chart projections ────────────────────────────────────────────────────────

@pytest.mark.parametrize("name, expected", [
    ("Short", "Short"),
    ("Exactly15Chars!", "Exactly15Chars!"),
    ("Sixteen chars!!!", "Sixteen chars!!..."),
])
def test_truncate_label(name, expected):
    assert truncate_label(name) == expected


def test_grouping_without_domain_uses_full_set_in_first_seen_order(record_factory):
    records = [
        record_factory(domain_name="Water", allocation_budget=100.0, expenditure=10.0),
        record_factory(domain_name="Health", allocation_budget=50.0, expenditure=5.0),
        record_factory(domain_name="Water", allocation_budget=25.0, expenditure=2.5),
    ]
    points = budget_chart_data(records, records[:1], None)
    assert points == [
        {"name": "Water", "Budget": 125.0, "Spent": 12.5},
        {"name": "Health", "Budget": 50.0, "Spent": 5.0},
    ]


def test_top_ten_by_budget_with_stable_ties(record_factory):
    records = [
        record_factory(sequence_id=str(i), activity_name=f"A{i}", allocation_budget=float(b))
        for i, b in enumerate([5, 9, 9, 1, 7, 9, 3, 2, 8, 6, 4, 10])
    ]
    points = budget_chart_data(records, records, "Health")
    assert [p["name"] for p in points] == ["A11", "A1", "A2", "A5", "A8", "A4", "A9", "A0", "A10", "A6"]


def test_domain_projection_truncates_names(record_factory):
    records = [record_factory(activity_name="A very long activity name", allocation_budget=1.0, expenditure=0.5)]
    assert budget_chart_data(records, records, "Health") == [
        {"name": "A very long act...", "Budget": 1.0, "Spent": 0.5}
    ]


def test_empty_inputs_project_to_nothing():
    assert budget_chart_data([], [], None) == []
    assert budget_chart_data([], [], "Health") == []
