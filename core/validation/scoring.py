# =============================================================================
# core/validation/scoring.py - Judging Rubric Rules
# =============================================================================
# Validation and aggregation for judge scores.
#
# A judge scores a submission per criterion. Each criterion has a range
# [min_score, max_score] and a static weight. Aggregation normalizes each
# criterion to 0..1, takes the weighted mean, and reports it on 0..100.
#
# Validators never raise; they return a ScoreValidationResult whose errors
# block the write and whose warnings are passed back to the judge.
# =============================================================================

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable, Mapping

from lib.utils import parse_timestamp

OVERALL_SCORE_TOLERANCE = 10
MAX_FEEDBACK_LENGTH = 2000
MAX_BATCH_SIZE = 50
FLAGGED_FEEDBACK_WORDS = ("spam", "fake", "cheat", "stupid", "terrible", "awful")


@dataclass(frozen=True)
class ScoringCriterion:
    """One rubric line."""
    id: str
    name: str
    min_score: float = 0
    max_score: float = 10
    weight: float = 1.0
    required: bool = True
    description: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ScoringCriterion":
        """Build from a hackathon_judging_criteria row."""
        return cls(
            id=str(row["id"]),
            name=row.get("name") or str(row["id"]),
            min_score=float(row.get("min_score", 0) or 0),
            max_score=float(row.get("max_score", 10) or 10),
            weight=float(row["weight"]) if row.get("weight") is not None else 1.0,
            required=bool(row.get("required", True)),
            description=row.get("description") or "",
        )


@dataclass
class ScoreValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def extend(self, other: "ScoreValidationResult", prefix: str = "") -> None:
        self.errors.extend(prefix + e for e in other.errors)
        self.warnings.extend(prefix + w for w in other.warnings)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _format(value: float) -> str:
    return f"{value:g}"


def _decimal_places(value: float) -> int:
    exponent = Decimal(str(value)).as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


# =============================================================================
# Single Scores
# =============================================================================

def validate_criterion_score(score: Any, criterion: ScoringCriterion) -> ScoreValidationResult:
    """
    Check one score against its criterion's range.

    Scores within 10% of either end of the range produce a warning.
    """
    result = ScoreValidationResult()

    if not _is_number(score):
        result.errors.append(f"{criterion.name}: Score must be a valid number")
        return result

    if score < criterion.min_score:
        result.errors.append(f"{criterion.name}: Score cannot be less than {_format(criterion.min_score)}")
    if score > criterion.max_score:
        result.errors.append(f"{criterion.name}: Score cannot be greater than {_format(criterion.max_score)}")

    if _decimal_places(score) > 2:
        result.warnings.append(f"{criterion.name}: Score will be rounded to 2 decimal places")

    span = criterion.max_score - criterion.min_score
    if span > 0:
        position = (score - criterion.min_score) / span
        if position <= 0.1:
            result.warnings.append(
                f"{criterion.name}: Very low score ({_format(score)}/{_format(criterion.max_score)})"
            )
        elif position >= 0.9:
            result.warnings.append(
                f"{criterion.name}: Very high score ({_format(score)}/{_format(criterion.max_score)})"
            )

    return result


def calculate_normalized_score(
    criteria_scores: Mapping[str, float],
    criteria: Iterable[ScoringCriterion],
) -> float:
    """
    Weighted mean of normalized criterion scores on a 0-100 scale.

    Criteria without a score (or with zero weight) don't contribute.
    Returns 0 when nothing contributes.

    Example:
        criteria = [ScoringCriterion("a", "A", 0, 10, 2), ScoringCriterion("b", "B", 0, 10, 1)]
        calculate_normalized_score({"a": 10, "b": 4}, criteria)  # 80.0
    """
    weighted_total = 0.0
    total_weight = 0.0

    for criterion in criteria:
        score = criteria_scores.get(criterion.id)
        if score is None:
            continue
        span = criterion.max_score - criterion.min_score
        if span <= 0:
            continue
        weighted_total += ((score - criterion.min_score) / span) * criterion.weight
        total_weight += criterion.weight

    if total_weight == 0:
        return 0.0
    return (weighted_total / total_weight) * 100


def round_score(score: float, decimal_places: int = 2) -> float:
    return round(score, decimal_places)


def validate_overall_score(
    overall_score: Any,
    criteria_scores: Mapping[str, float],
    criteria: list[ScoringCriterion],
) -> ScoreValidationResult:
    """Range-check an overall score and warn if it drifts from the rubric."""
    result = ScoreValidationResult()

    if not _is_number(overall_score):
        result.errors.append("Overall score must be a valid number")
        return result

    contributing = [c for c in criteria if criteria_scores.get(c.id) is not None]
    if not contributing or sum(c.weight for c in contributing) == 0:
        result.warnings.append("No weighted criteria found for overall score calculation")
        return result

    expected = calculate_normalized_score(criteria_scores, criteria)
    if abs(overall_score - expected) > OVERALL_SCORE_TOLERANCE:
        result.warnings.append(
            f"Overall score ({_format(overall_score)}) differs significantly "
            f"from weighted average ({expected:.1f})"
        )

    if overall_score < 0:
        result.errors.append("Overall score cannot be negative")
    if overall_score > 100:
        result.errors.append("Overall score cannot exceed 100")

    return result


def validate_judge_score(
    score: Mapping[str, Any],
    criteria: list[ScoringCriterion],
    required_criteria: list[str] | None = None,
) -> ScoreValidationResult:
    """
    Validate a complete score sheet.

    Args:
        score: Dict with judge_id, submission_id, criteria_scores
            ({criterion_id: value}), optional overall_score and feedback
        criteria: The hackathon rubric
        required_criteria: Override for which criterion ids must be present
    """
    result = ScoreValidationResult()

    if not score.get("judge_id"):
        result.errors.append("Judge ID is required")
    if not score.get("submission_id"):
        result.errors.append("Submission ID is required")

    criteria_scores = score.get("criteria_scores") or {}
    if not criteria_scores:
        result.errors.append("At least one criterion score is required")
        return result

    by_id = {c.id: c for c in criteria}
    required_ids = required_criteria if required_criteria is not None else [c.id for c in criteria if c.required]
    for required_id in required_ids:
        if required_id not in criteria_scores:
            name = by_id[required_id].name if required_id in by_id else required_id
            result.errors.append(f'Required criterion "{name}" is missing')

    for criterion_id, value in criteria_scores.items():
        criterion = by_id.get(criterion_id)
        if criterion is None:
            result.warnings.append(f"Unknown criterion: {criterion_id}")
            continue
        result.extend(validate_criterion_score(value, criterion))

    if score.get("overall_score") is not None:
        result.extend(validate_overall_score(score["overall_score"], criteria_scores, criteria))

    feedback = score.get("feedback")
    if feedback:
        if len(feedback) > MAX_FEEDBACK_LENGTH:
            result.errors.append(f"Feedback cannot exceed {MAX_FEEDBACK_LENGTH} characters")
        lowered = feedback.lower()
        for word in FLAGGED_FEEDBACK_WORDS:
            if word in lowered:
                result.warnings.append(f"Feedback contains potentially inappropriate language: {word}")

    return result


# =============================================================================
# Batches and Updates
# =============================================================================

def validate_batch_scores(
    scores: list[Mapping[str, Any]],
    criteria: list[ScoringCriterion],
    max_batch_size: int = MAX_BATCH_SIZE,
) -> ScoreValidationResult:
    """Validate many score sheets; messages are prefixed with "Score N: "."""
    result = ScoreValidationResult()

    if not scores:
        result.errors.append("No scores provided")
        return result
    if len(scores) > max_batch_size:
        result.errors.append(f"Batch size cannot exceed {max_batch_size} scores")
        return result

    seen: set[str] = set()
    for index, score in enumerate(scores, start=1):
        submission_id = score.get("submission_id")
        if submission_id:
            key = str(submission_id)
            if key in seen:
                result.errors.append(f"Duplicate submission ID in batch: {submission_id}")
            seen.add(key)
        result.extend(validate_judge_score(score, criteria), prefix=f"Score {index}: ")

    return result


def validate_score_update(
    existing: Mapping[str, Any],
    update: Mapping[str, Any],
    now: datetime,
    allow_updates: bool = True,
) -> ScoreValidationResult:
    """Judge and submission ids are immutable; late edits are flagged."""
    result = ScoreValidationResult()
    if not allow_updates:
        result.errors.append("Score updates are not allowed for this hackathon")
        return result

    if update.get("judge_id") and str(update["judge_id"]) != str(existing.get("judge_id")):
        result.errors.append("Cannot change judge ID in score update")
    if update.get("submission_id") and str(update["submission_id"]) != str(existing.get("submission_id")):
        result.errors.append("Cannot change submission ID in score update")

    scored_at = parse_timestamp(existing.get("scored_at"))
    if scored_at and now - scored_at > timedelta(hours=24):
        result.warnings.append("Updating score that was submitted more than 24 hours ago")

    return result


def validate_judge_submission_access(
    submission_id: str,
    hackathon_id: str,
    token_hackathon_id: str,
    assigned_submissions: list[str] | None = None,
) -> ScoreValidationResult:
    result = ScoreValidationResult()
    if str(token_hackathon_id) != str(hackathon_id):
        result.errors.append("Judge token is not valid for this hackathon")
        return result
    if assigned_submissions and str(submission_id) not in {str(s) for s in assigned_submissions}:
        result.errors.append("Judge is not assigned to score this submission")
    return result
