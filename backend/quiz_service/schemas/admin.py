from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ApprovalRequest(BaseModel):
    user_id: int = Field(gt=0)


class ApprovedUsersResponse(BaseModel):
    approved_user_ids: list[int]


class SettingItem(BaseModel):
    # Wire names match the admin gateway's existing payloads.
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    value: str = Field(alias="Value")


class QuizSummaryResponse(BaseModel):
    questions: int
    active_surveys: int = 0


class TestCreateRequest(BaseModel):
    code: str
    name: str
    question_ids: list[int]


class TestPublic(BaseModel):
    id: int
    code: str
    name: str
    created_by: int
    created_at: datetime | None = None


class TestQuestionLight(BaseModel):
    id: int
    case_code: str
    gender: str
    group: int


class TestDetailResponse(TestPublic):
    question_ids: list[int]
    questions: list[TestQuestionLight]
    questions_count: int


class TestSessionRow(BaseModel):
    session_id: int
    user_id: int
    mode: str
    status: str
    created_at: datetime | None = None
    finished_at: datetime | None = None


class TestProgressResponse(BaseModel):
    test: TestPublic
    sessions: list[TestSessionRow]
