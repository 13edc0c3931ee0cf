# =============================================================================
# core/services/judging_service.py - Judging, Aggregation & Winners
# =============================================================================
# Two judging paths share this service:
#
# Rubric judging (logged-in judges):
#   judges rate each submission per criterion -> hackathon_submission_ratings
#   organizers aggregate ratings into a ranked list and propose winners
#
# Token judging (emailed scoring links):
#   a judge_scoring_tokens row grants one judge access to one hackathon;
#   the judge posts one overall 0-10 score per submission -> judge_scores
# =============================================================================

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import (
    ForbiddenError,
    InvalidInputError,
    JudgeTokenError,
    NotFoundError,
)
from core.models.judging import (
    DEFAULT_CRITERIA,
    DEFAULT_MAX_SCORE,
    DEFAULT_MIN_SCORE,
    ProposeWinnersRequest,
    RankedSubmission,
    RateSubmissionRequest,
    TokenScoreRequest,
)
from core.validation.judge_token import (
    TokenAuthResult,
    authenticate_token,
    generate_secure_token,
    is_valid_token_format,
    token_expiry_warning,
)
from core.validation.scoring import (
    ScoringCriterion,
    calculate_normalized_score,
    round_score,
    validate_criterion_score,
)
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)

JUDGEABLE_SUBMISSION_STATUSES = ("submitted", "judged")
SUBMISSION_COLUMNS = "id, hackathon_id, project_name, description, github_repo, demo_url, video_url, status, user_id, team_id"


class JudgingService:
    """Service for judging flows."""

    # -------------------------------------------------------------------------
    # Access checks
    # -------------------------------------------------------------------------

    @staticmethod
    def require_organizer(hackathon_id: int, user_id: UUID | str) -> dict[str, Any]:
        """
        Returns:
            The hackathon row

        Raises:
            NotFoundError: Unknown hackathon
            ForbiddenError: Caller neither organizes it nor is admin
        """
        hackathon = SupabaseClient.fetch_hackathon(hackathon_id)
        if not hackathon:
            raise NotFoundError("Hackathon", hackathon_id)
        uid = normalize_uuid(user_id)
        if str(hackathon.get("organizer_id")) != uid and not SupabaseClient.is_admin(uid):
            raise ForbiddenError("Only the hackathon organizer can do this")
        return hackathon

    @staticmethod
    def _has_accepted_invitation(hackathon_id: int, judge_id: str) -> bool:
        response = (
            SupabaseClient.get_client()
            .table("judge_invitations")
            .select("id")
            .eq("hackathon_id", hackathon_id)
            .eq("judge_id", judge_id)
            .eq("status", "accepted")
            .limit(1)
            .execute()
        )
        return bool(response.data)

    @staticmethod
    def _has_active_assignment(hackathon_id: int, judge_id: str) -> bool:
        response = (
            SupabaseClient.get_client()
            .table("judge_hackathon_assignments")
            .select("id")
            .eq("hackathon_id", hackathon_id)
            .eq("judge_id", judge_id)
            .eq("status", "active")
            .limit(1)
            .execute()
        )
        return bool(response.data)

    # -------------------------------------------------------------------------
    # Criteria
    # -------------------------------------------------------------------------

    @staticmethod
    def get_or_create_criteria(hackathon_id: int) -> list[dict[str, Any]]:
        """Rubric for a hackathon; the default rubric is inserted if none exists."""
        client = SupabaseClient.get_client()
        response = (
            client.table("hackathon_judging_criteria")
            .select("*")
            .eq("hackathon_id", hackathon_id)
            .order("display_order")
            .execute()
        )
        if response.data:
            return response.data

        rows = [
            {
                "hackathon_id": hackathon_id,
                "name": c["name"],
                "description": c["description"],
                "weight": c["weight"],
                "max_score": DEFAULT_MAX_SCORE,
                "display_order": i,
            }
            for i, c in enumerate(DEFAULT_CRITERIA)
        ]
        inserted = client.table("hackathon_judging_criteria").insert(rows).execute()
        logger.info(f"Inserted default judging criteria for hackathon {hackathon_id}")
        return inserted.data or []

    @staticmethod
    def _criteria_by_id(hackathon_id: int) -> dict[str, ScoringCriterion]:
        return {
            str(row["id"]): ScoringCriterion.from_row(row)
            for row in JudgingService.get_or_create_criteria(hackathon_id)
        }

    # -------------------------------------------------------------------------
    # Judge views
    # -------------------------------------------------------------------------

    @staticmethod
    def assigned_hackathons(judge_id: UUID | str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        assignments = (
            client.table("judge_hackathon_assignments")
            .select("*")
            .eq("judge_id", normalize_uuid(judge_id))
            .eq("status", "active")
            .execute()
        ).data or []

        hackathons = SupabaseClient.fetch_by_ids(
            "organizer_hackathons",
            [a["hackathon_id"] for a in assignments],
            columns="id, hackathon_name, slug, start_date, end_date, status",
        )
        for assignment in assignments:
            assignment["hackathon"] = hackathons.get(str(assignment["hackathon_id"]))
        return assignments

    @staticmethod
    def judge_submissions(hackathon_id: int, judge_id: UUID | str) -> list[dict[str, Any]]:
        """Submissions to judge with the caller's own score attached (or None)."""
        jid = normalize_uuid(judge_id)
        if not JudgingService._has_accepted_invitation(hackathon_id, jid):
            raise ForbiddenError("You are not a judge for this hackathon")

        client = SupabaseClient.get_client()
        submissions = (
            client.table("hackathon_submissions")
            .select(SUBMISSION_COLUMNS)
            .eq("hackathon_id", hackathon_id)
            .in_("status", list(JUDGEABLE_SUBMISSION_STATUSES))
            .order("created_at")
            .execute()
        ).data or []

        scores = (
            client.table("judge_scores")
            .select("submission_id, score, notes, scored_at")
            .eq("hackathon_id", hackathon_id)
            .eq("judge_id", jid)
            .execute()
        ).data or []
        by_submission = {str(s["submission_id"]): s for s in scores}

        for submission in submissions:
            submission["my_score"] = by_submission.get(str(submission["id"]))
        return submissions

    # -------------------------------------------------------------------------
    # Rubric ratings
    # -------------------------------------------------------------------------

    @staticmethod
    def rate_submission(
        submission_id: int,
        judge_id: UUID | str,
        request: RateSubmissionRequest,
    ) -> list[dict[str, Any]]:
        """
        Validate and upsert one judge's ratings for a submission.

        Raises:
            NotFoundError: Unknown submission
            ForbiddenError: No active assignment for the submission's hackathon
            InvalidInputError: A rating fails its criterion's rules
        """
        jid = normalize_uuid(judge_id)
        submission = SupabaseClient.fetch_row("hackathon_submissions", "id", submission_id, columns=SUBMISSION_COLUMNS)
        if not submission:
            raise NotFoundError("Submission", submission_id)

        hackathon_id = submission["hackathon_id"]
        if not JudgingService._has_active_assignment(hackathon_id, jid):
            raise ForbiddenError("You are not assigned to judge this hackathon")

        criteria = JudgingService._criteria_by_id(hackathon_id)
        errors: list[str] = []
        rows: list[dict[str, Any]] = []
        now = utc_now().isoformat()

        for rating in request.ratings:
            criterion = criteria.get(str(rating.criterion_id))
            if criterion is None:
                errors.append(f"Unknown criterion: {rating.criterion_id}")
                continue
            result = validate_criterion_score(rating.score, criterion)
            errors.extend(result.errors)
            rows.append({
                "submission_id": submission_id,
                "judge_id": jid,
                "criterion_id": rating.criterion_id,
                "score": rating.score,
                "notes": rating.notes,
                "updated_at": now,
            })

        if errors:
            raise InvalidInputError("Invalid ratings", details={"errors": errors})

        response = (
            SupabaseClient.get_client()
            .table("hackathon_submission_ratings")
            .upsert(rows, on_conflict="submission_id,judge_id,criterion_id")
            .execute()
        )
        logger.info(f"Judge {jid} rated submission {submission_id} ({len(rows)} criteria)")
        return response.data or []

    @staticmethod
    def submission_ratings(submission_id: int, user_id: UUID | str) -> dict[str, Any]:
        """All ratings for a submission, organizer only."""
        submission = SupabaseClient.fetch_row("hackathon_submissions", "id", submission_id, columns=SUBMISSION_COLUMNS)
        if not submission:
            raise NotFoundError("Submission", submission_id)
        JudgingService.require_organizer(submission["hackathon_id"], user_id)

        ratings = (
            SupabaseClient.get_client()
            .table("hackathon_submission_ratings")
            .select("*")
            .eq("submission_id", submission_id)
            .execute()
        ).data or []
        return {"submission": submission, "ratings": ratings}

    @staticmethod
    def _ratings_for_hackathon(hackathon_id: int) -> tuple[list[dict], list[dict]]:
        """Returns (submissions, ratings) for judgeable submissions."""
        client = SupabaseClient.get_client()
        submissions = (
            client.table("hackathon_submissions")
            .select("id, project_name, status")
            .eq("hackathon_id", hackathon_id)
            .in_("status", list(JUDGEABLE_SUBMISSION_STATUSES))
            .execute()
        ).data or []
        if not submissions:
            return [], []

        ratings = (
            client.table("hackathon_submission_ratings")
            .select("submission_id, judge_id, criterion_id, score")
            .in_("submission_id", [s["id"] for s in submissions])
            .execute()
        ).data or []
        return submissions, ratings

    @staticmethod
    def judging_progress(hackathon_id: int, user_id: UUID | str) -> dict[str, Any]:
        JudgingService.require_organizer(hackathon_id, user_id)
        submissions, ratings = JudgingService._ratings_for_hackathon(hackathon_id)

        judges_per_submission: dict[str, set] = defaultdict(set)
        for rating in ratings:
            judges_per_submission[str(rating["submission_id"])].add(str(rating["judge_id"]))

        judges = (
            SupabaseClient.get_client()
            .table("judge_hackathon_assignments")
            .select("judge_id", count="exact")
            .eq("hackathon_id", hackathon_id)
            .eq("status", "active")
            .execute()
        )

        judged = sum(1 for s in submissions if judges_per_submission.get(str(s["id"])))
        total = len(submissions)
        return {
            "total_submissions": total,
            "judged_submissions": judged,
            "total_judges": judges.count or 0,
            "total_ratings": len(ratings),
            "completion_percentage": round_score(judged / total * 100) if total else 0.0,
            "submissions": [
                {
                    "submission_id": s["id"],
                    "project_name": s.get("project_name"),
                    "judge_count": len(judges_per_submission.get(str(s["id"]), ())),
                }
                for s in submissions
            ],
        }

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    @staticmethod
    def rank_submissions(
        submissions: list[dict[str, Any]],
        ratings: list[dict[str, Any]],
        criteria: dict[str, ScoringCriterion],
    ) -> list[RankedSubmission]:
        """
        Aggregate rubric ratings into a ranking.

        Each judge's ratings for a submission become one weighted 0-100
        score; the submission's score is the mean over its judges.
        Submissions nobody rated score 0. Ties share the order of input.
        """
        per_judge: dict[str, dict[str, dict[str, float]]] = defaultdict(lambda: defaultdict(dict))
        for rating in ratings:
            criterion_id = str(rating["criterion_id"])
            if criterion_id not in criteria:
                continue
            per_judge[str(rating["submission_id"])][str(rating["judge_id"])][criterion_id] = float(rating["score"])

        ranked: list[RankedSubmission] = []
        for submission in submissions:
            judge_scores = {
                judge_id: calculate_normalized_score(scores, criteria.values())
                for judge_id, scores in per_judge.get(str(submission["id"]), {}).items()
            }
            mean = sum(judge_scores.values()) / len(judge_scores) if judge_scores else 0.0
            ranked.append(RankedSubmission(
                submission_id=submission["id"],
                project_name=submission.get("project_name"),
                score=round_score(mean),
                judge_count=len(judge_scores),
                judge_scores=judge_scores,
            ))

        ranked.sort(key=lambda r: r.score, reverse=True)
        for position, entry in enumerate(ranked, start=1):
            entry.rank = position
        return ranked

    @staticmethod
    def calculate_winners(hackathon_id: int, user_id: UUID | str) -> list[RankedSubmission]:
        JudgingService.require_organizer(hackathon_id, user_id)
        submissions, ratings = JudgingService._ratings_for_hackathon(hackathon_id)
        criteria = JudgingService._criteria_by_id(hackathon_id)
        ranked = JudgingService.rank_submissions(submissions, ratings, criteria)
        logger.info(f"Calculated ranking for hackathon {hackathon_id}: {len(ranked)} submissions")
        return ranked

    # -------------------------------------------------------------------------
    # Winners
    # -------------------------------------------------------------------------

    @staticmethod
    def propose_winners(
        hackathon_id: int,
        user_id: UUID | str,
        request: ProposeWinnersRequest,
    ) -> list[dict[str, Any]]:
        JudgingService.require_organizer(hackathon_id, user_id)

        positions = [w.position for w in request.winners]
        if len(positions) != len(set(positions)):
            raise InvalidInputError("Each position can only be awarded once")

        client = SupabaseClient.get_client()
        submission_ids = [w.submission_id for w in request.winners]
        submissions = SupabaseClient.fetch_by_ids(
            "hackathon_submissions", submission_ids, columns="id, hackathon_id, user_id, team_id"
        )

        rows = []
        for winner in request.winners:
            submission = submissions.get(str(winner.submission_id))
            if not submission or submission.get("hackathon_id") != hackathon_id:
                raise InvalidInputError(f"Submission {winner.submission_id} is not part of this hackathon")
            rows.append({
                "hackathon_id": hackathon_id,
                "submission_id": winner.submission_id,
                "team_id": submission.get("team_id"),
                "user_id": submission.get("user_id"),
                "position": winner.position,
                "prize_name": winner.prize_name,
                "prize_amount": winner.prize_amount,
                "announced_by": normalize_uuid(user_id),
                "status": "pending",
            })

        # Proposals replace earlier pending ones
        client.table("hackathon_winners").delete().eq("hackathon_id", hackathon_id).eq("status", "pending").execute()
        response = client.table("hackathon_winners").insert(rows).execute()
        logger.info(f"Proposed {len(rows)} winners for hackathon {hackathon_id}")
        return response.data or []

    @staticmethod
    def approve_winner(winner_id: int, user_id: UUID | str) -> dict[str, Any]:
        winner = SupabaseClient.fetch_row("hackathon_winners", "id", winner_id)
        if not winner:
            raise NotFoundError("Winner", winner_id)
        JudgingService.require_organizer(winner["hackathon_id"], user_id)

        response = (
            SupabaseClient.get_client()
            .table("hackathon_winners")
            .update({
                "status": "approved",
                "approved_by": normalize_uuid(user_id),
                "approved_at": utc_now().isoformat(),
            })
            .eq("id", winner_id)
            .execute()
        )
        return response.data[0] if response.data else {**winner, "status": "approved"}

    @staticmethod
    def list_winners(hackathon_id: int) -> list[dict[str, Any]]:
        """Approved winners in position order, with project names."""
        winners = (
            SupabaseClient.get_client()
            .table("hackathon_winners")
            .select("*")
            .eq("hackathon_id", hackathon_id)
            .eq("status", "approved")
            .order("position")
            .execute()
        ).data or []

        submissions = SupabaseClient.fetch_by_ids(
            "hackathon_submissions", [w["submission_id"] for w in winners], columns="id, project_name"
        )
        for winner in winners:
            submission = submissions.get(str(winner["submission_id"]))
            winner["project_name"] = submission.get("project_name") if submission else None
        return winners

    # -------------------------------------------------------------------------
    # Token judging
    # -------------------------------------------------------------------------

    @staticmethod
    def issue_judge_token(
        hackathon_id: int,
        judge_id: int | str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Create a scoring token for a judge, or refresh the existing one.

        Returns:
            Dict with token, expires_at and scoring_url
        """
        now = now or utc_now()
        token, expires_at = generate_secure_token(settings.JUDGE_TOKEN_EXPIRY_DAYS, now)
        client = SupabaseClient.get_client()

        existing = (
            client.table("judge_scoring_tokens")
            .select("id")
            .eq("hackathon_id", hackathon_id)
            .eq("judge_id", judge_id)
            .limit(1)
            .execute()
        ).data

        values = {"token": token, "expires_at": expires_at.isoformat()}
        if existing:
            client.table("judge_scoring_tokens").update(values).eq("id", existing[0]["id"]).execute()
        else:
            client.table("judge_scoring_tokens").insert({
                "hackathon_id": hackathon_id,
                "judge_id": judge_id,
                **values,
            }).execute()

        logger.info(f"Issued scoring token for judge {judge_id} on hackathon {hackathon_id}")
        return {
            "token": token,
            "expires_at": expires_at.isoformat(),
            "scoring_url": f"{settings.PLATFORM_URL}/judge/{token}",
        }

    @staticmethod
    def issue_token_for_organizer(
        hackathon_id: int,
        judge_id: int | str,
        user_id: UUID | str,
    ) -> dict[str, Any]:
        JudgingService.require_organizer(hackathon_id, user_id)
        judge = SupabaseClient.fetch_row("hackathon_judges", "id", judge_id)
        if not judge or judge.get("hackathon_id") != hackathon_id:
            raise NotFoundError("Judge", judge_id)
        return JudgingService.issue_judge_token(hackathon_id, judge_id)

    @staticmethod
    def authenticate_judge_token(token: str, now: datetime | None = None) -> TokenAuthResult:
        """
        Resolve a scoring token and record the access.

        Raises:
            JudgeTokenError: Malformed, unknown or expired token
        """
        now = now or utc_now()
        row = None
        if is_valid_token_format(token):
            row = SupabaseClient.fetch_row("judge_scoring_tokens", "token", token)

        result = authenticate_token(token, row, now)
        if not result.success:
            logger.warning(f"Judge token rejected: {result.error}")
            raise JudgeTokenError(result.error)

        SupabaseClient.get_client().table("judge_scoring_tokens").update(
            {"last_accessed_at": now.isoformat()}
        ).eq("token", token).execute()
        return result

    @staticmethod
    def token_info(auth: TokenAuthResult, now: datetime | None = None) -> dict[str, Any]:
        now = now or utc_now()
        judge = SupabaseClient.fetch_row("hackathon_judges", "id", auth.judge_id, columns="id, name, email")
        hackathon = SupabaseClient.fetch_hackathon(auth.hackathon_id)
        token_row = SupabaseClient.fetch_row("judge_scoring_tokens", "id", auth.token_id) if auth.token_id else None
        expires_at = token_row.get("expires_at") if token_row else None
        return {
            "judge": judge,
            "hackathon": hackathon,
            "expires_at": expires_at,
            "expiry_warning": token_expiry_warning(expires_at, now),
        }

    @staticmethod
    def token_submissions(auth: TokenAuthResult) -> list[dict[str, Any]]:
        """Submissions of the token's hackathon with this judge's score."""
        client = SupabaseClient.get_client()
        submissions = (
            client.table("hackathon_submissions")
            .select(SUBMISSION_COLUMNS)
            .eq("hackathon_id", auth.hackathon_id)
            .in_("status", list(JUDGEABLE_SUBMISSION_STATUSES))
            .order("created_at")
            .execute()
        ).data or []

        scores = (
            client.table("judge_scores")
            .select("submission_id, score, notes, scored_at")
            .eq("hackathon_id", auth.hackathon_id)
            .eq("judge_id", auth.judge_id)
            .execute()
        ).data or []
        by_submission = {str(s["submission_id"]): s for s in scores}

        for submission in submissions:
            submission["my_score"] = by_submission.get(str(submission["id"]))
        return submissions

    @staticmethod
    def token_score(auth: TokenAuthResult, request: TokenScoreRequest) -> dict[str, Any]:
        """
        Insert or update the judge's overall score for a submission.

        Raises:
            NotFoundError: The submission is not part of the token's hackathon
        """
        submission = SupabaseClient.fetch_row(
            "hackathon_submissions", "id", request.submission_id, columns="id, hackathon_id"
        )
        if not submission or submission.get("hackathon_id") != auth.hackathon_id:
            raise NotFoundError("Submission", request.submission_id)

        if not DEFAULT_MIN_SCORE <= request.score <= DEFAULT_MAX_SCORE:
            raise InvalidInputError(f"Score must be between {DEFAULT_MIN_SCORE} and {DEFAULT_MAX_SCORE}")

        client = SupabaseClient.get_client()
        values = {
            "score": request.score,
            "notes": request.notes,
            "scored_at": utc_now().isoformat(),
        }

        existing = (
            client.table("judge_scores")
            .select("id")
            .eq("judge_id", auth.judge_id)
            .eq("submission_id", request.submission_id)
            .limit(1)
            .execute()
        ).data

        if existing:
            response = client.table("judge_scores").update(values).eq("id", existing[0]["id"]).execute()
        else:
            response = client.table("judge_scores").insert({
                "judge_id": auth.judge_id,
                "hackathon_id": auth.hackathon_id,
                "submission_id": request.submission_id,
                **values,
            }).execute()

        logger.info(f"Judge {auth.judge_id} scored submission {request.submission_id}: {request.score}")
        return response.data[0] if response.data else values
