import json
import os

import pytest
import requests


# Set test environment variables before any imports
os.environ.setdefault('API_BASE_URL', 'https://api.example.test')
os.environ.setdefault('LOG_LEVEL', 'WARNING')


CATEGORY_ID = "b07e5d45-07bf-4f9b-a0c2-8ba83ddb6251"


@pytest.fixture
def category_index():
    """Category lookup with a couple of known categories."""
    from src.domain.models.trivia_models import CategoryIndex

    return CategoryIndex.from_records([
        {"category_id": CATEGORY_ID, "name": "Deportes"},
        {"category_id": "7c00403f-d2c2-4434-bd08-d499a4432605", "name": "Arte"},
    ])


@pytest.fixture
def raw_trivia():
    """A detail payload as the backend sends it (mixed field names)."""
    return {
        "trivia_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
        "name": "Mundiales",
        "category_id": CATEGORY_ID,
        "difficulty": ["MEDIO"],
        "status": "inactive",
        "activation_type": "programada",
        "scheduled_activation_date": "2025-10-17T21:26:00-05:00",
        "duration_minutes": "10",
        "image": {"secure_url": " https://cdn.example.test/cover.png "},
        "questions": [
            {
                "question_id": "11111111-1111-4111-8111-111111111111",
                "question_text": "Who won in 2014?",
                "points": 10,
                "time_seconds": 120,
                "image_url": [{"url": "https://cdn.example.test/q1.png"}],
                "answers": [
                    {"answer_id": "a1", "answer_text": "Germany", "is_correct": True, "answer_order": 1},
                    {"answer_id": "a2", "answer_text": "Argentina", "is_correct": False, "answer_order": 2},
                ],
            },
            {
                "question_id": "22222222-2222-4222-8222-222222222222",
                "question_text": "Who won in 2010?",
                "points": 5,
                "answers": [
                    {"answer_text": "Spain", "is_correct": True},
                    {"answer_text": "Netherlands"},
                    {"answer_text": "Uruguay"},
                ],
            },
            {
                "question_id": "33333333-3333-4333-8333-333333333333",
                "question_text": "Who won in 2006?",
                "points": 5,
                "answers": [
                    {"answer_text": "Italy", "is_correct": True},
                    {"answer_text": "France"},
                ],
            },
        ],
    }


@pytest.fixture
def make_question():
    """Factory for questions with option texts and a correct index."""
    from src.domain.models.trivia_models import TriviaOption, TriviaQuestion

    def _make(text="Question?", options=("A", "B"), correct=0, **kwargs):
        opts = [
            TriviaOption(text=o, is_correct=(idx == correct))
            for idx, o in enumerate(options)
        ]
        return TriviaQuestion(text=text, options=opts, points=kwargs.pop("points", 10), **kwargs)

    return _make


@pytest.fixture
def make_response():
    """Build real requests.Response objects without a network."""

    def _make(status=200, body=None, headers=None):
        response = requests.Response()
        response.status_code = status
        if body is not None:
            response._content = json.dumps(body).encode("utf-8")
            response.headers["Content-Type"] = "application/json"
        else:
            response._content = b""
        for name, value in (headers or {}).items():
            response.headers[name] = value
        response.url = "https://api.example.test/trivias-admin/trivias"
        return response

    return _make
