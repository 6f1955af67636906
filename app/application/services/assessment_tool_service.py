"""Assessment tool integration: search, assessment catalog sync, attempts and scoring."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.assessment import AssessmentSummary, AttemptResult, SubmissionResult
from app.application.services.registration_service import (
    EventHandler,
    RegistrationService,
    SearchTarget,
    optional_float,
    optional_int,
    pick,
    require_field,
)
from app.core.config import Settings
from app.domain.enums import AttemptStatus, RegistrationKind
from app.domain.exceptions import (
    AttemptAlreadyCompletedException,
    LimitExceededException,
    ResourceNotFoundException,
    ValidationException,
)
from app.infrastructure.cache.memo import MemoCache
from app.infrastructure.external.catalog_clients import AssessmentToolClient
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.assessment import Assessment, AssessmentAttempt
from app.infrastructure.persistence.models.registration import IntegrationRegistration
from app.infrastructure.persistence.repositories.assessment_repo import (
    AssessmentAttemptRepository,
    AssessmentRepository,
)
from app.infrastructure.security.encryption import CredentialEncryptor
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import ensure_utc, parse_iso_datetime, utc_now

logger = logging.getLogger(__name__)


def _attempt_to_result(attempt: AssessmentAttempt) -> AttemptResult:
    return AttemptResult(
        id=attempt.id,
        assessment_id=attempt.assessment_id,
        user_id=attempt.user_id,
        context_id=attempt.context_id,
        status=attempt.status,
        score=attempt.score,
        passed=attempt.passed,
        started_at=ensure_utc(attempt.started_at),  # type: ignore[arg-type]
        completed_at=ensure_utc(attempt.completed_at),
        time_spent_seconds=attempt.time_spent_seconds,
        external=attempt.external,
    )


def check_answer(answer: Any, question: dict[str, Any]) -> bool:
    """Return True if answer is correct for question.

    Choice questions compare option ids; multiple_answer compares the set
    of option ids; short_answer compares text case-insensitively.
    """
    correct = question.get("correct_answer")
    qtype = question.get("type")
    if qtype in ("multiple_choice", "true_false"):
        return answer is not None and answer == correct
    if qtype == "multiple_answer":
        if not isinstance(answer, list) or not isinstance(correct, list):
            return False
        return len(answer) == len(correct) and set(answer) == set(correct)
    if qtype == "short_answer":
        if not isinstance(answer, str) or not isinstance(correct, str):
            return False
        return answer.strip().lower() == correct.strip().lower()
    return False


def score_answers(
    questions: list[dict[str, Any]], answers: list[dict[str, Any]]
) -> tuple[float, list[dict[str, Any]]]:
    """Score answers against questions.

    Every question is worth its "points" (default 1). Answers to unknown
    questions earn nothing, and only the last answer to each question
    counts. Returns (score percentage, processed answers).
    """
    by_id = {str(q.get("id")): q for q in questions}
    latest: dict[str, dict[str, Any]] = {}
    for answer in answers:
        latest[str(pick(answer, "question_id", "questionId"))] = answer
    processed: list[dict[str, Any]] = []
    for question_id, answer in latest.items():
        question = by_id.get(question_id)
        is_correct = question is not None and check_answer(answer.get("answer"), question)
        points = (question.get("points") or 1) if (question is not None and is_correct) else 0
        processed.append(
            {
                "question_id": question_id,
                "answer": answer.get("answer"),
                "is_correct": is_correct,
                "points": points,
            }
        )
    total_points = sum(q.get("points") or 1 for q in questions)
    earned_points = sum(a["points"] for a in processed)
    score = (earned_points / total_points) * 100 if total_points > 0 else 0.0
    return score, processed


def build_feedback(processed: list[dict[str, Any]], question_count: int) -> str:
    correct = sum(1 for a in processed if a["is_correct"])
    percentage = round(correct / question_count * 100) if question_count else 0
    return f"You answered {correct} out of {question_count} questions correctly ({percentage}%)."


class AssessmentToolService(RegistrationService):
    """Assessment tools (quizzes, diagnostics, screeners)."""

    KIND = RegistrationKind.ASSESSMENT_TOOL
    RESOURCE_NAME = "assessment_tool"

    def __init__(
        self,
        db: Database,
        cache: MemoCache,
        encryptor: CredentialEncryptor,
        settings: Settings,
        http: httpx.AsyncClient,
    ) -> None:
        super().__init__(db, cache, encryptor, settings)
        self.client = AssessmentToolClient(http)

    async def remote_search(
        self,
        target: SearchTarget,
        credentials: dict[str, Any],
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        return await self.client.search(target.base_url, credentials, target.id, params)

    def event_handlers(self) -> dict[str, EventHandler]:
        return {
            "assessment.created": self._on_assessment_upsert,
            "assessment.updated": self._on_assessment_upsert,
            "assessment.deleted": self._on_assessment_deleted,
            "attempt.completed": self._on_attempt_completed,
        }

    async def _on_assessment_upsert(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        external_id = str(require_field(payload, "id", "assessmentId"))
        title = require_field(payload, "title")
        questions = payload.get("questions") or []
        if not isinstance(questions, list) or not all(isinstance(q, dict) for q in questions):
            raise ValidationException("payload.questions must be a list of objects", field="questions")
        for question in questions:
            optional_float(question.get("points"), "questions.points")
        time_limit = optional_int(pick(payload, "time_limit_minutes", "timeLimit"), "time_limit_minutes")
        passing_score = optional_float(pick(payload, "passing_score", "passingScore"), "passing_score")
        max_attempts = optional_int(pick(payload, "max_attempts", "maxAttempts"), "max_attempts")
        repo = AssessmentRepository(session)
        assessment = await repo.get_by_external_id(
            registration.tenant_id, registration.id, external_id
        )
        if assessment is None:
            assessment = Assessment(
                tenant_id=registration.tenant_id,
                registration_id=registration.id,
                external_id=external_id,
                title=title,
            )
            session.add(assessment)
        assessment.title = title
        assessment.description = payload.get("description")
        assessment.type = payload.get("type") or "quiz"
        assessment.questions = questions
        assessment.time_limit_minutes = time_limit
        assessment.passing_score = passing_score
        assessment.max_attempts = max_attempts
        assessment.show_feedback = bool(pick(payload, "show_feedback", "showFeedback"))
        show_results = pick(payload, "show_results", "showResults")
        assessment.show_results = True if show_results is None else bool(show_results)
        await repo.update(assessment)
        logger.info("Assessment %s upserted from %s", external_id, registration.id)

    async def _on_assessment_deleted(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        external_id = str(require_field(payload, "id", "assessmentId"))
        repo = AssessmentRepository(session)
        assessment = await repo.get_by_external_id(
            registration.tenant_id, registration.id, external_id
        )
        if assessment is not None:
            await repo.delete(assessment)

    async def _on_attempt_completed(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        """Store an attempt scored by the external tool."""
        external_id = str(require_field(payload, "assessment_id", "assessmentId"))
        assessment = await AssessmentRepository(session).get_by_external_id(
            registration.tenant_id, registration.id, external_id
        )
        if assessment is None:
            raise ResourceNotFoundException("assessment", external_id)
        score = optional_float(pick(payload, "score"), "score")
        passed = pick(payload, "passed")
        if passed is not None and not isinstance(passed, bool):
            raise ValidationException("payload.passed must be a boolean", field="passed")
        if passed is None and score is not None and assessment.passing_score is not None:
            passed = score >= assessment.passing_score
        now = utc_now()
        await AssessmentAttemptRepository(session).create(
            AssessmentAttempt(
                tenant_id=registration.tenant_id,
                assessment_id=assessment.id,
                user_id=str(require_field(payload, "user_id", "userId")),
                context_id=pick(payload, "context_id", "contextId"),
                status=AttemptStatus.COMPLETED.value,
                answers={"answers": payload.get("answers") or []},
                score=score,
                passed=passed,
                time_spent_seconds=optional_int(
                    pick(payload, "time_spent_seconds", "timeSpent"), "time_spent_seconds"
                ),
                started_at=parse_iso_datetime(pick(payload, "started_at", "startedAt")) or now,
                completed_at=parse_iso_datetime(pick(payload, "completed_at", "completedAt")) or now,
                external=True,
            )
        )

    @traced("assessment.start_attempt")
    async def start_attempt(
        self,
        tenant_id: str,
        assessment_id: str,
        user_id: str,
        context_id: str | None = None,
    ) -> AttemptResult:
        """Open a new attempt. Raises LimitExceededException past max_attempts."""
        async with self.db.transaction() as session:
            assessment = await AssessmentRepository(session).get_by_id_and_tenant(
                assessment_id, tenant_id
            )
            if assessment is None:
                raise ResourceNotFoundException("assessment", assessment_id)
            attempts = AssessmentAttemptRepository(session)
            if assessment.max_attempts:
                count = await attempts.count_for_user(tenant_id, assessment_id, user_id)
                if count >= assessment.max_attempts:
                    raise LimitExceededException(
                        "Maximum attempts reached", limit=assessment.max_attempts
                    )
            attempt = await attempts.create(
                AssessmentAttempt(
                    tenant_id=tenant_id,
                    assessment_id=assessment_id,
                    user_id=user_id,
                    context_id=context_id,
                    status=AttemptStatus.IN_PROGRESS.value,
                    answers={},
                    started_at=utc_now(),
                    external=False,
                )
            )
            return _attempt_to_result(attempt)

    @traced("assessment.submit_attempt")
    async def submit_attempt(
        self,
        tenant_id: str,
        attempt_id: str,
        answers: list[dict[str, Any]],
    ) -> SubmissionResult:
        """Score and complete an attempt. A completed attempt cannot be resubmitted."""
        async with self.db.transaction() as session:
            attempts = AssessmentAttemptRepository(session)
            attempt = await attempts.get_by_id_and_tenant(attempt_id, tenant_id)
            if attempt is None:
                raise ResourceNotFoundException("assessment_attempt", attempt_id)
            if attempt.status == AttemptStatus.COMPLETED.value:
                raise AttemptAlreadyCompletedException(attempt_id)
            assessment = await AssessmentRepository(session).get_by_id_and_tenant(
                attempt.assessment_id, tenant_id
            )
            if assessment is None:
                raise ResourceNotFoundException("assessment", attempt.assessment_id)

            questions = list(assessment.questions or [])
            score, processed = score_answers(questions, answers)
            passed = score >= assessment.passing_score if assessment.passing_score else True
            completed_at = utc_now()
            started_at = ensure_utc(attempt.started_at) or completed_at
            time_spent = int((completed_at - started_at).total_seconds())

            attempt.status = AttemptStatus.COMPLETED.value
            attempt.answers = {"answers": processed}
            attempt.score = score
            attempt.passed = passed
            attempt.completed_at = completed_at
            attempt.time_spent_seconds = time_spent
            await attempts.update(attempt)

            return SubmissionResult(
                attempt_id=attempt_id,
                score=score,
                passed=passed,
                time_spent_seconds=time_spent,
                feedback=build_feedback(processed, len(questions)) if assessment.show_feedback else None,
                results=processed if assessment.show_results else None,
            )

    async def get_results(
        self,
        tenant_id: str,
        user_id: str,
        assessment_id: str | None = None,
        context_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[AttemptResult]:
        async with self.db.session() as session:
            rows = await AssessmentAttemptRepository(session).get_results(
                tenant_id,
                user_id,
                assessment_id=assessment_id,
                context_id=context_id,
                skip=offset,
                limit=limit,
            )
            return [_attempt_to_result(r) for r in rows]

    async def list_assessments(
        self, tenant_id: str, tool_id: str | None = None
    ) -> list[AssessmentSummary]:
        """Assessments synced from this tenant's tools, optionally one tool only."""
        async with self.db.session() as session:
            rows = await AssessmentRepository(session).get_by_tenant(tenant_id, tool_id)
            return [
                AssessmentSummary(
                    id=a.id,
                    tool_id=a.registration_id,
                    external_id=a.external_id,
                    title=a.title,
                    description=a.description,
                    type=a.type,
                    question_count=len(a.questions or []),
                    time_limit_minutes=a.time_limit_minutes,
                    passing_score=a.passing_score,
                    max_attempts=a.max_attempts,
                )
                for a in rows
            ]
