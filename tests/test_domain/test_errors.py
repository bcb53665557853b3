import pytest

from src.domain.errors import (
    AuthError,
    OperationCancelled,
    RateLimitedError,
    RemoteAPIError,
    TransientNetworkError,
    TriviaValidationError,
    user_message,
)
from src.infrastructure import endpoints


class TestUserMessage:
    """Tests for user-facing error text."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (OperationCancelled("x"), "Operation cancelled."),
            (AuthError("x", status=401), "Your session is not valid. Sign in again."),
            (RateLimitedError("x", retry_after=3), "Too many requests. Try again later."),
            (TransientNetworkError("refused"), "Connection error. Check your internet connection."),
            (RemoteAPIError("HTTP 418: teapot", status=418), "HTTP 418: teapot"),
            (RemoteAPIError("created without an id"), "created without an id"),
            (ValueError("boom"), "Unknown error"),
        ],
    )
    def test_messages(self, error, expected):
        assert user_message(error) == expected

    def test_validation_message_is_passed_through(self):
        error = TriviaValidationError("no valid questions", issues=[{"field": "text"}])
        assert user_message(error) == "no valid questions"
        assert error.issues == [{"field": "text"}]

    def test_attempts_default_to_one(self):
        assert TransientNetworkError("x", status=503).attempts == 1


class TestEndpoints:

    def test_ids_are_quoted_as_single_segments(self):
        assert endpoints.trivia_detail_path("a/b c") == "/trivias-admin/trivia/a%2Fb%20c"

    def test_question_paths(self):
        assert endpoints.trivia_questions_path("t1") == "/trivias-admin/trivia/t1/questions"
        assert endpoints.trivia_questions_path("t1", "q1") == "/trivias-admin/trivia/t1/questions/q1"
