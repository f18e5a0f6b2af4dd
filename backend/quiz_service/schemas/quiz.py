from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from quiz_service.models.quiz_session import QuizMode


class StartQuizRequest(BaseModel):
    mode: QuizMode
    screen_width: int = Field(gt=0)
    screen_height: int = Field(gt=0)
    test_code: str | None = None


class SessionPublic(BaseModel):
    session_id: int
    user_id: int
    quiz_mode: str
    test_id: int | None = None
    test_code: str | None = None


class StartQuizResponse(BaseModel):
    session: SessionPublic
    time_limit: int


class ParameterPublic(BaseModel):
    id: int
    name: str
    description: str
    reference_values: str
    order: int


class ParameterValuePublic(BaseModel):
    # value3 is deliberately absent: it is revealed only after answering.
    parameter_id: int
    value1: float
    value2: float


class CasePublic(BaseModel):
    id: int
    code: str
    gender: str
    age1: int
    age2: int
    age3: int
    parameters: list[ParameterPublic]
    parameters_values: list[ParameterValuePublic]


class QuestionPublic(BaseModel):
    id: int
    question: str
    options: list[str]
    prediction_age: int
    case: CasePublic
    group: int


class NextQuestionResponse(BaseModel):
    question: QuestionPublic
    is_last: bool


class SubmitAnswerRequest(BaseModel):
    answer: str = ""
    screen_size: str = ""


class SubmitAnswerResponse(BaseModel):
    correct: bool
    correct_option: str


class SessionSummary(BaseModel):
    id: int
    user_id: int
    status: str
    mode: str
    current_question: int
    current_group: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    finished_at: datetime | None = None
    test_id: int | None = None
    test_code: str | None = None


class ActiveSession(SessionSummary):
    group_order: list[int]
    last_seen: datetime | None = None


class UserSessionsResponse(BaseModel):
    sessions: list[SessionSummary]
