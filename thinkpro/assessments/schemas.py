"""
Request models for the assessment endpoints.

Wire names are camelCase; the models also accept their snake_case field
names. Shape and type checks happen here (422 on failure); semantic rules
such as date ordering and question approval are enforced by the services.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator


class CamelModel(BaseModel):
    class Config:
        allow_population_by_field_name = True


class QuestionPlacementIn(CamelModel):
    question_id: str = Field(..., alias="questionId", description="Question bank identifier")
    order: Optional[int] = Field(None, ge=1, description="Display order; defaults to list position")
    marks: Optional[int] = Field(None, ge=1, description="Marks awarded when correct; defaults to 1")


class TargetCohortIn(CamelModel):
    grade: str = Field(..., description="Grade level, e.g. 'Grade 7'")
    sections: List[str] = Field(default_factory=list, description="Sections; empty means all sections")


class CreateAssessmentRequest(CamelModel):
    title: str = Field(..., min_length=1)
    instructions: Optional[str] = None
    grade: str
    subject: str
    modules: List[str] = Field(default_factory=list)
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    duration: int = Field(..., description="Minutes allowed per attempt")
    questions: List[QuestionPlacementIn]
    target_students: Optional[List[TargetCohortIn]] = Field(None, alias="targetStudents")
    school: Optional[str] = Field(None, description="Owning school; required for privileged creators")

    @validator("title")
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("title must not be blank")
        return v.strip()

    class Config:
        allow_population_by_field_name = True
        schema_extra = {
            "example": {
                "title": "Fractions checkpoint",
                "instructions": "Answer every question.",
                "grade": "Grade 7",
                "subject": "Mathematics",
                "modules": ["Fractions"],
                "startDate": "2030-01-10T09:00:00Z",
                "endDate": "2030-01-10T11:00:00Z",
                "duration": 30,
                "questions": [{"questionId": "q-1", "marks": 1}, {"questionId": "q-2", "marks": 2}],
                "targetStudents": [{"grade": "Grade 7", "sections": ["A"]}],
            }
        }


class UpdateAssessmentRequest(CamelModel):
    title: Optional[str] = None
    instructions: Optional[str] = None
    grade: Optional[str] = None
    subject: Optional[str] = None
    modules: Optional[List[str]] = None
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    duration: Optional[int] = None
    questions: Optional[List[QuestionPlacementIn]] = None
    target_students: Optional[List[TargetCohortIn]] = Field(None, alias="targetStudents")
    status: Optional[str] = None


class PublishAssessmentRequest(CamelModel):
    notification_message: Optional[str] = Field(None, alias="notificationMessage")


class SubmitAnswerRequest(CamelModel):
    question_id: str = Field(..., alias="questionId")
    selected_answers: List[int] = Field(..., alias="selectedAnswers")
    time_spent: int = Field(0, ge=0, alias="timeSpent", description="Seconds spent on the question")

    class Config:
        allow_population_by_field_name = True
        schema_extra = {
            "example": {"questionId": "q-1", "selectedAnswers": [0, 2], "timeSpent": 42}
        }
