"""
Assessment Controller

Staff-facing endpoints for the assessment definition lifecycle:
create, list, fetch, update, publish, soft-delete and analytics, plus
the question bank lookup used while building an assessment.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from thinkpro.api import APIResponse
from thinkpro.assessments.analytics import AnalyticsAggregator
from thinkpro.assessments.dependencies import get_analytics_aggregator, get_assessment_service
from thinkpro.assessments.models import AssessmentStatus
from thinkpro.assessments.schemas import (
    CreateAssessmentRequest,
    PublishAssessmentRequest,
    UpdateAssessmentRequest
)
from thinkpro.assessments.services import AssessmentService
from thinkpro.common.auth.dependencies import require_capability
from thinkpro.common.auth.user import Actor, Capability
from thinkpro.common.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

staff_actor = require_capability(Capability.VIEW_ASSESSMENTS, "Access denied. Staff role required.")


@router.get("/questions")
async def list_question_candidates(
    grade: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    modules: Optional[List[str]] = Query(None),
    difficulty: Optional[str] = Query(None),
    limit: int = Query(100, ge=1),
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service)
):
    """List approved questions available for building assessments."""
    questions = await service.list_question_candidates(
        actor, grade=grade, subject=subject, modules=modules, difficulty=difficulty, limit=limit
    )
    return APIResponse.success(
        data=[q.to_dict(include_answers=True) for q in questions],
        message="Questions retrieved successfully"
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assessment(
    request: CreateAssessmentRequest,
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Create a draft assessment."""
    assessment = await service.create(request.dict(), actor)
    return APIResponse.success(data=assessment.to_dict(), message="Assessment created successfully")


@router.get("")
async def list_assessments(
    status_filter: Optional[AssessmentStatus] = Query(None, alias="status"),
    grade: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service)
):
    """List assessments visible to the caller, newest first."""
    items, pagination = await service.list(
        actor, status=status_filter, grade=grade, page=page, limit=limit
    )
    return APIResponse.success(
        data=[a.to_dict() for a in items],
        message="Assessments retrieved successfully",
        pagination=pagination
    )


@router.get("/{assessment_id}")
async def get_assessment(
    assessment_id: str = Path(...),
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Fetch one assessment with question details."""
    data = await service.get_detail(assessment_id, actor)
    return APIResponse.success(data=data, message="Assessment retrieved successfully")


@router.put("/{assessment_id}")
async def update_assessment(
    request: UpdateAssessmentRequest,
    assessment_id: str = Path(...),
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Update an assessment (refused once a published assessment has started)."""
    patch = request.dict(exclude_unset=True)
    assessment = await service.update(assessment_id, actor, patch)
    return APIResponse.success(data=assessment.to_dict(), message="Assessment updated successfully")


@router.post("/{assessment_id}/publish")
async def publish_assessment(
    assessment_id: str = Path(...),
    request: Optional[PublishAssessmentRequest] = Body(None),
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Publish an assessment, optionally announcing it to its target cohorts."""
    message = request.notification_message if request else None
    assessment, notified = await service.publish(assessment_id, actor, message)
    data = assessment.to_dict()
    data["notificationSent"] = notified
    return APIResponse.success(data=data, message="Assessment published successfully")


@router.get("/{assessment_id}/analytics")
async def get_assessment_analytics(
    assessment_id: str = Path(...),
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service),
    aggregator: AnalyticsAggregator = Depends(get_analytics_aggregator)
):
    """Attempt statistics for an assessment."""
    assessment = await service.get(assessment_id, actor)
    analytics = await aggregator.analyze(assessment)
    return APIResponse.success(
        data={"assessment": assessment.summary(), "analytics": analytics.to_dict()},
        message="Analytics retrieved successfully"
    )


@router.delete("/{assessment_id}")
async def delete_assessment(
    assessment_id: str = Path(...),
    actor: Actor = Depends(staff_actor),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Soft-delete an assessment that has no attempts."""
    await service.delete(assessment_id, actor)
    return APIResponse.success(message="Assessment deleted successfully")
