"""Pydantic models for API request/response validation.

Defines data structures for the scoring and breach-check endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field

from scoreme.scorer import ScoreResult, format_result


MAX_BATCH_SIZE = 100_000


class ScoreRequest(BaseModel):
    """Request model for scoring a batch of candidate passwords."""
    passwords: list[str] = Field(
        ..., min_length=1, max_length=MAX_BATCH_SIZE,
        description="Candidate passwords, one per item"
    )


class ScoreResponse(BaseModel):
    """Response model for a scoring run."""
    score: int
    bonus: float
    partial: bool
    looked_up: int
    total: int
    corrupt: int = 0
    message: str

    @classmethod
    def from_result(cls, result: ScoreResult) -> "ScoreResponse":
        return cls(
            score=result.score,
            bonus=result.bonus,
            partial=result.partial,
            looked_up=result.looked_up,
            total=result.total,
            corrupt=result.corrupt,
            message=format_result(result),
        )


class BreachCheckRequest(BaseModel):
    """Request model for a single-password breach check."""
    password: str = Field(..., min_length=1, description="Password to check")


class BreachCheckResponse(BaseModel):
    """Response model for breach check."""
    is_safe: bool
    message: str
    breach_count: Optional[int] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    backend: str
    index_exists: bool
