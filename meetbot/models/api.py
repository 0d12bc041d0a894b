"""Request and response models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field


class ScheduleRequest(BaseModel):
    """Request model for the schedule endpoint."""

    message: str = Field(..., min_length=1)


class ScheduleResponse(BaseModel):
    """Response model for the schedule endpoint."""

    response: str
    rounds: int
    tool_calls: int


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
