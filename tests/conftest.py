"""Shared fixtures for the dashboard core and API tests."""
import pytest

from core.data import parse_csv
from core.models import ActivityRecord, ActivityStatus


HEADER = (
    "No.,Activity Code,Domain Name,Activity Name,Operation,Timeline,Target Participants,"
    "Participants,Planned Times,Completed Time,Status,Allocation Budget,Expenditure,Balance,Budget Progress (%)"
)

SAMPLE_ROWS = [
    '1,HLT-01,Health,Screening,Field,Q1,100,90,4,4,Completed,"$1,000","$900","$100",90',
    '2,HLT-02,Health,"Vaccine, Phase 2",Field,Q2,100,80,10,8,"In process","$10,000","$4,000","$6,000",',
    '3,EDU-01,Education,Reading Camps,Training,Q3,50,,2,,Not started,"$2,000",$0,"$2,000",',
    '4,EDU-02,Education,Supplies,Logistics,Q1,10,10,1,1,Completed,"$500","$700","-$200",140',
]


@pytest.fixture
def sample_csv() -> str:
    return "\n".join([HEADER] + SAMPLE_ROWS)


@pytest.fixture
def sample_records(sample_csv):
    return parse_csv(sample_csv)


def make_record(**overrides) -> ActivityRecord:
    defaults = dict(
        sequence_id="1",
        activity_code="A-1",
        domain_name="Health",
        activity_name="Activity",
        status=ActivityStatus.NOT_STARTED,
    )
    defaults.update(overrides)
    return ActivityRecord(**defaults)


@pytest.fixture
def record_factory():
    return make_record
