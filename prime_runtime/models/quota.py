"""Pydantic models for rate limit reporting."""

from datetime import datetime

from pydantic import BaseModel, Field


class QuotaStatus(BaseModel):
    """Read-only snapshot of the admission controller's ledger."""
    minute_remaining: int = Field(..., ge=0, description="Requests left in the current minute window")
    day_remaining: int = Field(..., ge=0, description="Requests left until the daily reset")
    in_flight: int = Field(..., ge=0, description="Concurrency slots currently held")
    next_minute_refill: datetime = Field(..., description="When the per-minute allowance is next restored")
    next_day_reset: datetime = Field(..., description="When the daily allowance is next restored")
