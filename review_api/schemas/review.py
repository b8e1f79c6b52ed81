from __future__ import annotations

from pydantic import BaseModel, Field


class ReviewDraft(BaseModel):
    """A performance review being written, kept in the author's session."""

    employee_email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    rating: int = Field(..., ge=1, le=5)
    feedback: str = Field(..., min_length=1, max_length=5000)


class ReviewDraftList(BaseModel):
    reviews: list[ReviewDraft]
