"""
Admin endpoint paths for the trivia backend.
"""
from typing import Optional
from urllib.parse import quote

TRIVIAS_LIST = "/trivias-admin/trivias"
TRIVIA_GET = "/trivias-admin/trivia"
TRIVIA_CREATE = "/trivias-admin/trivia/create"
TRIVIA_UPDATE = "/trivias-admin/trivia/update"
TRIVIA_DELETE = "/trivias-admin/trivia/delete"


def trivia_detail_path(trivia_id: str) -> str:
    return f"{TRIVIA_GET}/{quote_segment(trivia_id)}"


def trivia_update_path(trivia_id: str) -> str:
    return f"{TRIVIA_UPDATE}/{quote_segment(trivia_id)}"


def trivia_delete_path(trivia_id: str) -> str:
    return f"{TRIVIA_DELETE}/{quote_segment(trivia_id)}"


def trivia_questions_path(trivia_id: str, question_id: Optional[str] = None) -> str:
    path = f"{TRIVIA_GET}/{quote_segment(trivia_id)}/questions"
    if question_id is not None:
        path = f"{path}/{quote_segment(question_id)}"
    return path


def quote_segment(value: str) -> str:
    """Percent-encode a single path segment (slashes included)."""
    return quote(str(value), safe="")
