# =============================================================================
# core/models/judging.py - Judging Schemas
# =============================================================================
# Rubric ratings from logged-in judges, token-link scores, and organizer
# winner management.
# =============================================================================

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

# Inserted for a hackathon that has no rubric yet
DEFAULT_CRITERIA: list[dict] = [
    {"name": "Innovation", "description": "Originality of the idea", "weight": 25},
    {"name": "Technical Execution", "description": "Quality and completeness of the build", "weight": 30},
    {"name": "Design & UX", "description": "Usability and polish", "weight": 15},
    {"name": "Impact", "description": "Potential value to users", "weight": 20},
    {"name": "Presentation", "description": "Clarity of the demo and pitch", "weight": 10},
]
DEFAULT_MIN_SCORE = 0
DEFAULT_MAX_SCORE = 10


class CriterionRating(BaseModel):
    criterion_id: int | str
    score: float
    notes: str | None = Field(default=None, max_length=2000)


class RateSubmissionRequest(BaseModel):
    """
    One judge's rubric sheet for one submission.

    Example:
        {"ratings": [{"criterion_id": 1, "score": 8}, {"criterion_id": 2, "score": 6.5}]}
    """
    ratings: list[CriterionRating] = Field(..., min_length=1, max_length=50)


class TokenScoreRequest(BaseModel):
    """Single overall score submitted through a judge scoring link."""
    submission_id: int = Field(..., gt=0)
    score: float = Field(..., ge=0, le=10)
    notes: str | None = Field(default=None, max_length=2000)


class WinnerProposal(BaseModel):
    submission_id: int = Field(..., gt=0)
    position: int = Field(..., ge=1, le=100)
    prize_name: str | None = Field(default=None, max_length=200)
    prize_amount: str | None = Field(default=None, max_length=100)


class ProposeWinnersRequest(BaseModel):
    winners: list[WinnerProposal] = Field(..., min_length=1, max_length=100)


@dataclass
class RankedSubmission:
    """A submission's aggregated judging score."""
    submission_id: int
    project_name: str | None
    score: float  # 0-100, mean over judges
    judge_count: int
    rank: int = 0
    judge_scores: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "submission_id": self.submission_id,
            "project_name": self.project_name,
            "score": self.score,
            "judge_count": self.judge_count,
            "rank": self.rank,
        }
