from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import requests

from core.config import get_settings
from core.errors import DataSourceError, InvalidUploadError
from core.filters import DashboardFilters, filter_records, get_domains, normalize_filters
from core.models import ActivityRecord, ActivityStatus


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent
FALLBACK_PATH = DATA_DIR / "fallback_activities.csv"

# Positional column contract of the published sheet. Header names are ignored.
COLUMN_POSITIONS = {
    "sequence_id": 0,
    "activity_code": 1,
    "domain_name": 2,
    "activity_name": 3,
    "operation": 4,
    "timeline": 5,
    "target_participants": 6,
    "participants": 7,
    "planned_count": 8,
    "completed_count": 9,
    "raw_status": 10,
    "allocation_budget": 11,
    "expenditure": 12,
    "balance": 13,
    "budget_progress": 14,
}
EXPECTED_COLUMNS = len(COLUMN_POSITIONS)

SOURCE_LIVE = "live"
SOURCE_LOCAL = "local"
SOURCE_DEMO = "demo"

_LINE_SPLIT = re.compile(r"\r?\n")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_FLOAT_PREFIX = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")


# ---------------- Tokenizing / coercion ----------------
def split_csv_line(line: str) -> List[str]:
    """Split one line on commas outside double quotes.

    Quotes toggle the quoted state and are dropped from the token. A doubled
    quote inside a quoted field is not an escape: it closes and reopens.
    """
    tokens: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            tokens.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    tokens.append("".join(current).strip())
    return tokens


def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    s = value.strip()
    if s.startswith('"'):
        s = s[1:]
    if s.endswith('"'):
        s = s[:-1]
    return s.strip()


def _leading_float(value: str) -> Optional[float]:
    cleaned = _NON_NUMERIC.sub("", value.replace(",", ""))
    match = _FLOAT_PREFIX.match(cleaned)
    if not match:
        return None
    out = float(match.group(0))
    if not math.isfinite(out):
        return None
    # -0.0 collapses to 0.0
    return out or 0.0


def parse_number(value: Optional[str]) -> float:
    """Parse amounts like "$12,345.50" or "400,000"; anything unparseable is 0."""
    if not value:
        return 0.0
    out = _leading_float(value)
    return 0.0 if out is None else out


def parse_nullable_number(value: Optional[str]) -> Optional[float]:
    """Like parse_number, but empty or unparseable input means "not provided"."""
    if not value:
        return None
    return _leading_float(value)


def derive_status(raw_status: Optional[str]) -> ActivityStatus:
    s = (raw_status or "").lower()
    if "process" in s:
        return ActivityStatus.ON_PROCESS
    if "completed" in s:
        return ActivityStatus.COMPLETED
    return ActivityStatus.NOT_STARTED


def parse_row(tokens: List[str]) -> ActivityRecord:
    def get(name: str) -> str:
        idx = COLUMN_POSITIONS[name]
        return clean_text(tokens[idx]) if idx < len(tokens) else ""

    allocation = parse_number(get("allocation_budget"))
    expenditure = parse_number(get("expenditure"))
    progress = parse_number(get("budget_progress"))
    # Sheets may leave the progress column blank; derive it only when money was spent.
    if progress == 0 and allocation > 0 and expenditure > 0:
        progress = expenditure / allocation * 100

    return ActivityRecord(
        sequence_id=get("sequence_id"),
        activity_code=get("activity_code"),
        domain_name=get("domain_name"),
        activity_name=get("activity_name"),
        operation=get("operation"),
        timeline=get("timeline"),
        target_participants=get("target_participants"),
        participants=get("participants"),
        planned_count=parse_nullable_number(get("planned_count")),
        completed_count=parse_nullable_number(get("completed_count")),
        status=derive_status(get("raw_status")),
        allocation_budget=allocation,
        expenditure=expenditure,
        balance=parse_number(get("balance")),
        budget_progress=progress,
    )


def parse_csv(raw_text: Optional[str]) -> List[ActivityRecord]:
    """Parse the sheet export into records, skipping blank lines and the header row."""
    lines = [line for line in _LINE_SPLIT.split(raw_text or "") if line.strip()]
    records: List[ActivityRecord] = []
    for line_no, line in enumerate(lines[1:], start=2):
        tokens = split_csv_line(line)
        if len(tokens) < EXPECTED_COLUMNS:
            logger.debug("row %d has %d of %d columns; missing cells use defaults", line_no, len(tokens), EXPECTED_COLUMNS)
        records.append(parse_row(tokens))
    return records


# ---------------- Sources ----------------
def fetch_remote_csv(url: Optional[str] = None, timeout: Optional[float] = None) -> str:
    settings = get_settings()
    url = url or settings.sheet_csv_url
    timeout = timeout or settings.fetch_timeout
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise DataSourceError(
            f"Failed to fetch sheet data from {url}. Ensure the sheet is published to web as CSV."
        ) from exc
    if not response.encoding:
        response.encoding = "utf-8"
    return response.text


def read_local_file(content: Union[bytes, str]) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig", errors="replace")
    return content.lstrip("\ufeff")


@lru_cache(maxsize=1)
def load_fallback_records() -> Tuple[ActivityRecord, ...]:
    return tuple(parse_csv(FALLBACK_PATH.read_text(encoding="utf-8")))


# ---------------- Working set ----------------
@dataclass(frozen=True)
class DashboardState:
    """Snapshot of the loaded records. Ingestion builds a new one; nothing mutates it."""

    records: Tuple[ActivityRecord, ...] = ()
    source: str = SOURCE_DEMO
    last_sync: str = ""


def _sync_label() -> str:
    return datetime.now().strftime("%H:%M")


def demo_state() -> DashboardState:
    return DashboardState(records=load_fallback_records(), source=SOURCE_DEMO, last_sync=_sync_label())


def load_remote_state(url: Optional[str] = None) -> DashboardState:
    """Fetch the published sheet; fall back to the bundled dataset on any failure."""
    try:
        records = parse_csv(fetch_remote_csv(url))
    except DataSourceError as exc:
        logger.warning("Could not fetch live data, using demo data: %s", exc)
        return demo_state()
    if not records:
        logger.warning("Live sheet returned no rows, using demo data")
        return demo_state()
    logger.info("Loaded %d records from live sheet", len(records))
    return DashboardState(records=tuple(records), source=SOURCE_LIVE, last_sync=_sync_label())


def load_uploaded_state(content: Union[bytes, str]) -> DashboardState:
    """Build a state from an uploaded file.

    Raises InvalidUploadError when nothing usable was parsed; callers keep
    their previous state in that case.
    """
    records = parse_csv(read_local_file(content))
    if not records:
        raise InvalidUploadError("Invalid CSV format.")
    logger.info("Loaded %d records from uploaded file", len(records))
    return DashboardState(records=tuple(records), source=SOURCE_LOCAL, last_sync="Manual Upload")


# ---------------- Public API (Streamlit parity + FastAPI use) ----------------
def prepare_context(filters: dict | DashboardFilters, state: DashboardState) -> Dict[str, object]:
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)
    records = list(state.records)
    return {
        "filters": filt,
        "records": records,
        "filtered_records": filter_records(records, filt),
        "domains": get_domains(records),
        "source": state.source,
        "last_sync": state.last_sync,
    }
