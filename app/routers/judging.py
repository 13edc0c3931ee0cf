# =============================================================================
# app/routers/judging.py - Judging Endpoints
# =============================================================================
# Mounted at /api. Three audiences:
# - judges (Bearer auth): rubric ratings on assigned hackathons
# - organizers (Bearer auth, must own the hackathon): progress, ranking,
#   winners, judge scoring links
# - token judges (scoring link): /judge/{token}/... with no login
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from app.auth import AuthUser, get_current_user, get_judge_token_auth
from core.models.judging import ProposeWinnersRequest, RateSubmissionRequest, TokenScoreRequest
from core.services.judging_service import JudgingService
from core.validation.judge_token import TokenAuthResult

router = APIRouter()

HackathonId = Annotated[int, Path(ge=1, description="Hackathon id")]
SubmissionId = Annotated[int, Path(ge=1, description="Submission id")]


# =============================================================================
# Judges
# =============================================================================

@router.get("/judge/assigned-hackathons", tags=["Judging"])
async def assigned_hackathons(user: AuthUser = Depends(get_current_user)):
    return {"success": True, "data": JudgingService.assigned_hackathons(user.id)}


@router.get("/judge/hackathons/{hackathon_id}/submissions", tags=["Judging"])
async def judge_submissions(hackathon_id: HackathonId, user: AuthUser = Depends(get_current_user)):
    """Submissions to judge, with the caller's own score. Requires an accepted invitation."""
    return {"success": True, "data": JudgingService.judge_submissions(hackathon_id, user.id)}


@router.get("/hackathons/{hackathon_id}/judging-criteria", tags=["Judging"])
async def judging_criteria(hackathon_id: HackathonId, user: AuthUser = Depends(get_current_user)):
    """The rubric; a default one is created the first time it's requested."""
    return {"success": True, "data": JudgingService.get_or_create_criteria(hackathon_id)}


@router.post("/judge/submissions/{submission_id}/rate", tags=["Judging"])
async def rate_submission(
    submission_id: SubmissionId,
    body: RateSubmissionRequest,
    user: AuthUser = Depends(get_current_user),
):
    ratings = JudgingService.rate_submission(submission_id, user.id, body)
    return {"success": True, "message": "Ratings saved", "data": ratings}


# =============================================================================
# Organizers
# =============================================================================

@router.get("/organizer/submissions/{submission_id}/ratings", tags=["Judging"])
async def submission_ratings(submission_id: SubmissionId, user: AuthUser = Depends(get_current_user)):
    return {"success": True, "data": JudgingService.submission_ratings(submission_id, user.id)}


@router.get("/organizer/hackathons/{hackathon_id}/judging-progress", tags=["Judging"])
async def judging_progress(hackathon_id: HackathonId, user: AuthUser = Depends(get_current_user)):
    return {"success": True, "data": JudgingService.judging_progress(hackathon_id, user.id)}


@router.post("/organizer/hackathons/{hackathon_id}/calculate-winners", tags=["Judging"])
async def calculate_winners(hackathon_id: HackathonId, user: AuthUser = Depends(get_current_user)):
    """Rank submissions by mean weighted rubric score (0-100)."""
    ranked = JudgingService.calculate_winners(hackathon_id, user.id)
    return {"success": True, "data": [entry.to_dict() for entry in ranked]}


@router.post("/organizer/hackathons/{hackathon_id}/propose-winners", tags=["Judging"])
async def propose_winners(
    hackathon_id: HackathonId,
    body: ProposeWinnersRequest,
    user: AuthUser = Depends(get_current_user),
):
    winners = JudgingService.propose_winners(hackathon_id, user.id, body)
    return {"success": True, "message": f"Proposed {len(winners)} winners", "data": winners}


@router.post("/organizer/winners/{winner_id}/approve", tags=["Judging"])
async def approve_winner(
    winner_id: Annotated[int, Path(ge=1)],
    user: AuthUser = Depends(get_current_user),
):
    winner = JudgingService.approve_winner(winner_id, user.id)
    return {"success": True, "message": "Winner approved", "data": winner}


@router.get("/hackathons/{hackathon_id}/winners", tags=["Judging"])
async def list_winners(hackathon_id: HackathonId):
    """Approved winners, public."""
    return {"success": True, "data": JudgingService.list_winners(hackathon_id)}


@router.post("/organizer/hackathons/{hackathon_id}/judges/{judge_id}/token", tags=["Judging"])
async def issue_judge_token(
    hackathon_id: HackathonId,
    judge_id: Annotated[int, Path(ge=1)],
    user: AuthUser = Depends(get_current_user),
):
    """Create or refresh a judge's scoring link."""
    issued = JudgingService.issue_token_for_organizer(hackathon_id, judge_id, user.id)
    return {"success": True, "data": issued}


# =============================================================================
# Scoring Links
# =============================================================================

@router.get("/judge/{token}/info", tags=["Judge Links"])
async def token_info(auth: TokenAuthResult = Depends(get_judge_token_auth)):
    return {"success": True, "data": JudgingService.token_info(auth)}


@router.get("/judge/{token}/submissions", tags=["Judge Links"])
async def token_submissions(auth: TokenAuthResult = Depends(get_judge_token_auth)):
    return {"success": True, "data": JudgingService.token_submissions(auth)}


@router.post("/judge/{token}/score", tags=["Judge Links"])
async def token_score(body: TokenScoreRequest, auth: TokenAuthResult = Depends(get_judge_token_auth)):
    """Overall 0-10 score for one submission; resubmitting updates it."""
    score = JudgingService.token_score(auth, body)
    return {"success": True, "message": "Score saved", "data": score}
