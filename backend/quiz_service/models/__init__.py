from quiz_service.models.access import QuizUserAccess, QuizUserRegistry
from quiz_service.models.question import Case, CaseParameter, Option, Parameter, Question, QuestionOption
from quiz_service.models.quiz_session import QuizMode, QuizSession, QuizStatus
from quiz_service.models.setting import Setting
from quiz_service.models.test import Test, TestQuestion

__all__ = [
    "Case",
    "CaseParameter",
    "Option",
    "Parameter",
    "Question",
    "QuestionOption",
    "QuizMode",
    "QuizSession",
    "QuizStatus",
    "QuizUserAccess",
    "QuizUserRegistry",
    "Setting",
    "Test",
    "TestQuestion",
]
