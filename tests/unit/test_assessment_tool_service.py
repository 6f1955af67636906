"""Tests for assessment sync, attempts and scoring."""

from typing import Any

import pytest

from app.application.dtos.registration import RegistrationConfig
from app.application.services.assessment_tool_service import (
    AssessmentToolService,
    check_answer,
    score_answers,
)
from app.core.app_context import AppContext
from app.domain.exceptions import (
    AttemptAlreadyCompletedException,
    LimitExceededException,
    ResourceNotFoundException,
    ValidationException,
)
from tests.conftest import OTHER_TENANT, TENANT

QUESTIONS: list[dict[str, Any]] = [
    {"id": "q1", "type": "multiple_choice", "correct_answer": "b", "points": 2},
    {"id": "q2", "type": "short_answer", "correct_answer": "Paris"},
    {"id": "q3", "type": "multiple_answer", "correct_answer": ["a", "c"]},
]


@pytest.fixture
def service(context: AppContext) -> AssessmentToolService:
    return context.assessments


@pytest.fixture
async def tool_id(service: AssessmentToolService) -> str:
    result = await service.register(
        TENANT, RegistrationConfig(name="Quizzer", type="quiz", base_url="https://quiz.test")
    )
    await service.set_status(TENANT, result.id, "active")
    return result.id


async def _publish(service: AssessmentToolService, tool_id: str, **fields: Any) -> str:
    payload = {"id": "ext-quiz", "title": "Capitals", "questions": QUESTIONS, **fields}
    await service.handle_webhook_event(TENANT, tool_id, "assessment.created", payload)
    [assessment] = [a for a in await service.list_assessments(TENANT, tool_id) if a.external_id == payload["id"]]
    return assessment.id


@pytest.mark.parametrize(
    ("answer", "question", "expected"),
    [
        ("b", QUESTIONS[0], True),
        ("a", QUESTIONS[0], False),
        (None, QUESTIONS[0], False),
        ("  paris ", QUESTIONS[1], True),
        (["c", "a"], QUESTIONS[2], True),
        (["a"], QUESTIONS[2], False),
        ("a", QUESTIONS[2], False),
        ("x", {"type": "essay", "correct_answer": "x"}, False),
    ],
)
def test_check_answer(answer: Any, question: dict[str, Any], expected: bool) -> None:
    """Choice by option id, multiple answer by set, short answer case-insensitively."""
    assert check_answer(answer, question) is expected


def test_score_answers_weights_points() -> None:
    """score = earned points / total points * 100; unknown questions earn nothing."""
    score, processed = score_answers(
        QUESTIONS,
        [
            {"question_id": "q1", "answer": "b"},
            {"questionId": "q2", "answer": "paris"},
            {"question_id": "q9", "answer": "?"},
        ],
    )
    assert score == 75.0
    assert [a["is_correct"] for a in processed] == [True, True, False]
    assert processed[0]["points"] == 2


def test_score_answers_without_questions() -> None:
    """An assessment with no questions scores 0."""
    assert score_answers([], [])[0] == 0.0


def test_score_answers_counts_each_question_once() -> None:
    """Repeating an answer cannot push the score past 100; the last answer wins."""
    repeated = [{"question_id": "q2", "answer": "Paris"}] * 3
    score, processed = score_answers(QUESTIONS, repeated)
    assert score == 25.0
    assert len(processed) == 1

    score, processed = score_answers(
        QUESTIONS,
        [{"question_id": "q1", "answer": "b"}, {"questionId": "q1", "answer": "a"}],
    )
    assert score == 0.0
    assert processed == [{"question_id": "q1", "answer": "a", "is_correct": False, "points": 0}]


async def test_assessment_webhook_syncs_catalog(service: AssessmentToolService, tool_id: str) -> None:
    """assessment.created stores questions; list_assessments hides them."""
    assessment_id = await _publish(service, tool_id, passingScore=60, maxAttempts=2)
    [summary] = await service.list_assessments(TENANT)
    assert summary.id == assessment_id
    assert summary.question_count == 3
    assert summary.passing_score == 60
    assert summary.max_attempts == 2
    assert not hasattr(summary, "questions")
    assert await service.list_assessments(OTHER_TENANT) == []

    await service.handle_webhook_event(TENANT, tool_id, "assessment.deleted", {"assessmentId": "ext-quiz"})
    assert await service.list_assessments(TENANT) == []


async def test_submit_scores_and_reports_feedback(service: AssessmentToolService, tool_id: str) -> None:
    """A submitted attempt is scored, passed against the passing score and completed."""
    assessment_id = await _publish(service, tool_id, passingScore=60, showFeedback=True)
    attempt = await service.start_attempt(TENANT, assessment_id, "u1", "class-4b")
    assert attempt.status == "in_progress"

    result = await service.submit_attempt(
        TENANT,
        attempt.id,
        [
            {"question_id": "q1", "answer": "b"},
            {"question_id": "q2", "answer": " paris "},
            {"question_id": "q3", "answer": ["a"]},
        ],
    )

    assert result.score == 75.0
    assert result.passed is True
    assert result.feedback == "You answered 2 out of 3 questions correctly (67%)."
    assert result.results is not None
    assert len(result.results) == 3
    assert result.time_spent_seconds >= 0

    [stored] = await service.get_results(TENANT, "u1")
    assert stored.status == "completed"
    assert stored.score == 75.0
    assert stored.context_id == "class-4b"


async def test_submit_below_passing_score_fails(service: AssessmentToolService, tool_id: str) -> None:
    """Scores under the passing score do not pass; feedback is off by default."""
    assessment_id = await _publish(service, tool_id, passingScore=80, showResults=False)
    attempt = await service.start_attempt(TENANT, assessment_id, "u1")
    result = await service.submit_attempt(TENANT, attempt.id, [{"question_id": "q1", "answer": "b"}])
    assert result.score == 50.0
    assert result.passed is False
    assert result.feedback is None
    assert result.results is None


async def test_completed_attempt_cannot_be_resubmitted(
    service: AssessmentToolService, tool_id: str
) -> None:
    """Submitting twice raises AttemptAlreadyCompletedException."""
    assessment_id = await _publish(service, tool_id)
    attempt = await service.start_attempt(TENANT, assessment_id, "u1")
    await service.submit_attempt(TENANT, attempt.id, [])
    with pytest.raises(AttemptAlreadyCompletedException):
        await service.submit_attempt(TENANT, attempt.id, [])


async def test_max_attempts_enforced(service: AssessmentToolService, tool_id: str) -> None:
    """Starting more attempts than max_attempts raises LimitExceededException."""
    assessment_id = await _publish(service, tool_id, maxAttempts=1)
    await service.start_attempt(TENANT, assessment_id, "u1")
    with pytest.raises(LimitExceededException):
        await service.start_attempt(TENANT, assessment_id, "u1")
    await service.start_attempt(TENANT, assessment_id, "u2")


async def test_attempts_are_tenant_scoped(service: AssessmentToolService, tool_id: str) -> None:
    """Another tenant can neither start nor submit on this tenant's data."""
    assessment_id = await _publish(service, tool_id)
    with pytest.raises(ResourceNotFoundException):
        await service.start_attempt(OTHER_TENANT, assessment_id, "u1")
    attempt = await service.start_attempt(TENANT, assessment_id, "u1")
    with pytest.raises(ResourceNotFoundException):
        await service.submit_attempt(OTHER_TENANT, attempt.id, [])


async def test_attempt_completed_webhook_stores_external_attempt(
    service: AssessmentToolService, tool_id: str
) -> None:
    """attempt.completed stores an externally scored attempt; passed derives from the score."""
    await _publish(service, tool_id, passingScore=70)
    await service.handle_webhook_event(
        TENANT,
        tool_id,
        "attempt.completed",
        {"assessmentId": "ext-quiz", "userId": "u1", "score": 72, "completedAt": "2026-02-01T09:00:00Z"},
    )
    [attempt] = await service.get_results(TENANT, "u1")
    assert attempt.external is True
    assert attempt.score == 72.0
    assert attempt.passed is True
    with pytest.raises(ResourceNotFoundException):
        await service.handle_webhook_event(
            TENANT, tool_id, "attempt.completed", {"assessmentId": "missing", "userId": "u1"}
        )


async def test_get_results_filters_and_paginates(service: AssessmentToolService, tool_id: str) -> None:
    """get_results filters by context and honors limit/offset."""
    assessment_id = await _publish(service, tool_id)
    for context_id in ("a", "a", "b"):
        attempt = await service.start_attempt(TENANT, assessment_id, "u1", context_id)
        await service.submit_attempt(TENANT, attempt.id, [])
    assert len(await service.get_results(TENANT, "u1")) == 3
    assert len(await service.get_results(TENANT, "u1", context_id="a")) == 2
    assert len(await service.get_results(TENANT, "u1", limit=2, offset=2)) == 1
    assert await service.get_results(TENANT, "u2") == []


@pytest.mark.parametrize(
    ("event_type", "payload"),
    [
        ("assessment.created", {"id": "q", "title": "T", "passingScore": "most"}),
        ("assessment.created", {"id": "q", "title": "T", "maxAttempts": 1.5}),
        ("assessment.created", {"id": "q", "title": "T", "questions": [{"id": "q1", "points": "two"}]}),
        ("assessment.created", {"id": "q", "title": "T", "questions": ["q1"]}),
        ("attempt.completed", {"assessmentId": "ext-quiz", "userId": "u1", "score": "high"}),
        ("attempt.completed", {"assessmentId": "ext-quiz", "userId": "u1", "score": "NaN"}),
        ("attempt.completed", {"assessmentId": "ext-quiz", "userId": "u1", "passed": "yes"}),
    ],
)
async def test_malformed_webhook_numbers_are_validation_errors(
    service: AssessmentToolService, tool_id: str, event_type: str, payload: dict[str, Any]
) -> None:
    """Fields that must be numbers (or booleans) reject anything else and store nothing."""
    await _publish(service, tool_id)
    with pytest.raises(ValidationException):
        await service.handle_webhook_event(TENANT, tool_id, event_type, payload)
    assert [a.external_id for a in await service.list_assessments(TENANT)] == ["ext-quiz"]
    assert await service.get_results(TENANT, "u1") == []
