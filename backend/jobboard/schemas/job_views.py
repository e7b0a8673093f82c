from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

MAX_JOB_ID_LEN = 128


class RecordViewIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    job_id: str = Field(alias="jobId", min_length=1, max_length=MAX_JOB_ID_LEN)


class RecordViewOut(BaseModel):
    success: bool = True
    admitted: bool = True


class TopJobOut(BaseModel):
    job_id: str
    view_count: int


class DailyViewsOut(BaseModel):
    day: date
    count: int


class ViewStatsOut(BaseModel):
    total_views: int
    unique_viewers: int
    top_jobs: list[TopJobOut]
    daily_views: list[DailyViewsOut]
