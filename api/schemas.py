from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    selected_domain: Optional[str] = None
    selected_status: str = "all"


class MetaDomainsResponse(BaseModel):
    domains: List[str]


class SourceResponse(BaseModel):
    source: str
    last_sync: Optional[str] = None
    records: int


class InsightsResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    error: str
    type: str = Field(default="DashboardError")
