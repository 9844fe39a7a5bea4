"""Pydantic models."""
from api.models.attempts import AttemptResponse
from api.models.auth import (
    MessageResponse,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from api.models.sessions import (
    AnswerRequest,
    NavigateRequest,
    SessionAnswer,
    SessionQuestion,
    SessionResponse,
    SessionScore,
)
from api.models.tests import TestCreateResponse, TestSummary, TestUpdate

__all__ = [
    "AnswerRequest",
    "AttemptResponse",
    "MessageResponse",
    "NavigateRequest",
    "SessionAnswer",
    "SessionQuestion",
    "SessionResponse",
    "SessionScore",
    "TestCreateResponse",
    "TestSummary",
    "TestUpdate",
    "TokenResponse",
    "UserLogin",
    "UserRegister",
    "UserResponse",
]
