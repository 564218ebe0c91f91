"""
Student Assessment Controller

Student-facing endpoints: available assessments, start/resume, answer
submission, final submission and results.
"""

from fastapi import APIRouter, Depends, Path

from thinkpro.api import APIResponse
from thinkpro.assessments.attempt_engine import AttemptEngine
from thinkpro.assessments.dependencies import get_attempt_engine
from thinkpro.assessments.schemas import SubmitAnswerRequest
from thinkpro.common.auth.dependencies import require_capability
from thinkpro.common.auth.user import Actor, Capability

router = APIRouter()

student_actor = require_capability(Capability.TAKE_ASSESSMENTS, "Access denied. Student role required.")


@router.get("/available")
async def get_available_assessments(
    actor: Actor = Depends(student_actor),
    engine: AttemptEngine = Depends(get_attempt_engine)
):
    """Open assessments the student is eligible for."""
    data = await engine.list_available(actor)
    return APIResponse.success(data=data, message="Available assessments retrieved successfully")


@router.get("/results")
async def get_my_results(
    actor: Actor = Depends(student_actor),
    engine: AttemptEngine = Depends(get_attempt_engine)
):
    """The student's finished attempts."""
    data = await engine.list_results(actor)
    return APIResponse.success(data=data, message="Results retrieved successfully")


@router.post("/{assessment_id}/start")
async def start_assessment(
    assessment_id: str = Path(...),
    actor: Actor = Depends(student_actor),
    engine: AttemptEngine = Depends(get_attempt_engine)
):
    """Start or resume an attempt."""
    data = await engine.start_or_resume(assessment_id, actor)
    return APIResponse.success(data=data, message="Assessment started successfully")


@router.put("/{attempt_id}/answer")
async def submit_answer(
    request: SubmitAnswerRequest,
    attempt_id: str = Path(...),
    actor: Actor = Depends(student_actor),
    engine: AttemptEngine = Depends(get_attempt_engine)
):
    """Record the answer to one question."""
    data = await engine.submit_answer(
        attempt_id,
        actor,
        question_id=request.question_id,
        selected_answers=request.selected_answers,
        time_spent=request.time_spent
    )
    return APIResponse.success(data=data, message="Answer submitted successfully")


@router.post("/{attempt_id}/submit")
async def submit_assessment(
    attempt_id: str = Path(...),
    actor: Actor = Depends(student_actor),
    engine: AttemptEngine = Depends(get_attempt_engine)
):
    """Finalize an attempt."""
    data = await engine.submit(attempt_id, actor)
    return APIResponse.success(data=data, message="Assessment submitted successfully")
