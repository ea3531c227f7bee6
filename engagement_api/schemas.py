"""
Pydantic response schemas for the analytics endpoints.
Field names mirror the column aliases produced in queries.py.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MonthlyTrendRow(BaseModel):
    month: datetime
    author: str
    total_engagements: int


class HeatmapCell(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)   # 0 = Sunday
    hour: int = Field(..., ge=0, le=23)
    engagement_count: int


class ScatterPoint(BaseModel):
    author_id: int
    author_name: str
    post_volume: int
    total_engagements: int
    # None for authors without posts
    engagement_per_post: Optional[float]


class TrendComparison(BaseModel):
    last_7_days: int = 0
    prev_7_days: int = 0
    # None when the previous window is empty
    pct_change: Optional[float] = None


class HealthResponse(BaseModel):
    status: str
    service: str
