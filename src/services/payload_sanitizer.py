"""
Builds the outbound payload for trivia create/update calls.

The wire carries no per-question id for uploaded images: the backend pairs
the n-th `question_images` part with the n-th question that has no inline
`imagen` URL. The JSON body and the attachment list are therefore produced
together, in one pass over the same filtered question sequence.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from src.domain.errors import TriviaValidationError
from src.domain.models.trivia_models import (
    ActivationMode,
    LocalFile,
    TriviaAggregate,
    TriviaOption,
    TriviaQuestion,
    TriviaState,
    wire_activation,
    wire_difficulty,
    wire_state,
)
from src.infrastructure.config import settings
from src.utils import time_budget
from src.utils.identifiers import is_temporary_id
from trivia_utils.logger_utils import logger

MIN_OPTIONS = 2


@dataclass
class SanitizedPayload:
    """JSON body plus the ordered image attachments that go with it."""
    body: Dict[str, Any]
    attachments: List[LocalFile] = field(default_factory=list)
    dropped: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)

    def to_json(self) -> Dict[str, Any]:
        return {"dto": self.body}

    def to_multipart(self) -> List[Tuple[str, Tuple[Optional[str], Any, str]]]:
        """`files=` argument for requests: the dto part, then the images in order."""
        parts: List[Tuple[str, Tuple[Optional[str], Any, str]]] = [
            ("dto", (None, json.dumps(self.body, ensure_ascii=False), "application/json"))
        ]
        for attachment in self.attachments:
            parts.append(
                (
                    "question_images",
                    (attachment.filename, attachment.content, attachment.content_type),
                )
            )
        return parts


def _clean(text: Optional[str]) -> str:
    return (text or "").strip()


def valid_options(question: TriviaQuestion) -> List[TriviaOption]:
    """Options with non-empty text, in their current order."""
    return [o for o in question.options if _clean(o.text)]


def question_issues(question: TriviaQuestion) -> List[Dict[str, str]]:
    """Why a question cannot be sent, or an empty list if it can."""
    issues = []
    if not _clean(question.text):
        issues.append({"field": "text", "reason": "Question text is empty."})
    if len(valid_options(question)) < MIN_OPTIONS:
        issues.append(
            {"field": "options", "reason": f"At least {MIN_OPTIONS} options with text are required."}
        )
    return issues


def resolve_correct_index(question: TriviaQuestion, options: List[TriviaOption]) -> int:
    """
    Index (within `options`) of the single option sent as correct: the first
    flagged one, else the stored index when it is in range, else 0.
    """
    for idx, option in enumerate(options):
        if option.is_correct:
            return idx
    stored = question.correct_index
    if isinstance(stored, int) and 0 <= stored < len(options):
        return stored
    return 0


def aggregate_issues(aggregate: TriviaAggregate) -> List[Dict[str, str]]:
    """Trivia-level fields that block sending. A blank category only blocks a create."""
    issues = []
    if not _clean(aggregate.name):
        issues.append({"field": "name", "reason": "Trivia name is empty."})
    if is_temporary_id(aggregate.id) and not _clean(aggregate.category):
        issues.append({"field": "category", "reason": "A new trivia needs a category."})
    return issues


def _wire_state(aggregate: TriviaAggregate) -> str:
    # New scheduled trivias start inactive; the backend activates them later.
    if aggregate.activation_mode is ActivationMode.SCHEDULED and is_temporary_id(aggregate.id):
        return wire_state(TriviaState.INACTIVE)
    return wire_state(aggregate.state)


def _format_activation(value: datetime) -> str:
    if value.tzinfo is None:
        offset = timezone(timedelta(minutes=settings.ACTIVATION_UTC_OFFSET_MINUTES))
        value = value.replace(tzinfo=offset)
    return value.isoformat()


def _question_body(question: TriviaQuestion) -> Tuple[Dict[str, Any], Optional[LocalFile]]:
    options = valid_options(question)
    correct = resolve_correct_index(question, options)
    body: Dict[str, Any] = {
        "texto": _clean(question.text),
        "puntos": question.points,
        "opciones": [
            {"texto": _clean(o.text), "esCorrecta": idx == correct}
            for idx, o in enumerate(options)
        ],
    }
    if isinstance(question.time_seconds, int) and question.time_seconds > 0:
        body["tiempoSegundos"] = question.time_seconds

    attachment = None
    if isinstance(question.media, LocalFile):
        if question.media.size > 0:
            attachment = question.media
    elif isinstance(question.media, str) and question.media.strip():
        body["imagen"] = question.media.strip()
    return body, attachment


def sanitize(aggregate: TriviaAggregate) -> SanitizedPayload:
    """
    Reduce `aggregate` to what may be sent.

    Questions without text or with fewer than two non-empty options are
    dropped. Raises TriviaValidationError when none survive, or when the
    trivia itself has no name (or, on create, no category).
    """
    questions: List[Dict[str, Any]] = []
    attachments: List[LocalFile] = []
    dropped: List[Dict[str, Any]] = []

    blocking = aggregate_issues(aggregate)

    for index, question in enumerate(aggregate.questions):
        issues = question_issues(question)
        if issues:
            for issue in issues:
                dropped.append({"question_index": index, "question_id": question.id, **issue})
            continue
        body, attachment = _question_body(question)
        questions.append(body)
        if attachment is not None:
            attachments.append(attachment)

    if not questions:
        logger.info(
            "Rejected trivia payload with no valid questions",
            extra={"trivia_id": aggregate.id, "issues": len(dropped), "component": "payload_sanitizer"},
        )
        raise TriviaValidationError(
            "no valid questions: add at least one question with text and 2 completed options",
            issues=blocking + dropped,
        )

    if blocking:
        raise TriviaValidationError(
            "trivia is incomplete: " + "; ".join(i["reason"] for i in blocking),
            issues=blocking,
        )

    body: Dict[str, Any] = {
        "nombre": _clean(aggregate.name),
        "dificultad": wire_difficulty(aggregate.difficulty),
        "estado": _wire_state(aggregate),
        "activacion": wire_activation(aggregate.activation_mode),
        "preguntas": questions,
    }

    category = _clean(aggregate.category)
    if category:
        body["categoria"] = category

    if aggregate.duration_minutes and aggregate.duration_minutes > 0:
        body["duracion"] = aggregate.duration_minutes

    if aggregate.time_per_question and aggregate.time_per_question > 0:
        body["tiempoPorPregunta"] = aggregate.time_per_question

    if (
        aggregate.activation_mode is ActivationMode.SCHEDULED
        and aggregate.scheduled_at is not None
    ):
        body["fechaActivacion"] = _format_activation(aggregate.scheduled_at)

    if isinstance(aggregate.media, str) and aggregate.media.strip():
        body["imagen"] = aggregate.media.strip()
    elif isinstance(aggregate.media, LocalFile):
        logger.warning(
            "Trivia cover image is a local file and cannot be sent inline; omitting it",
            extra={"trivia_id": aggregate.id, "component": "payload_sanitizer"},
        )

    if dropped:
        logger.debug(
            "Dropped incomplete questions from trivia payload",
            extra={
                "trivia_id": aggregate.id,
                "dropped_questions": sorted({d["question_index"] for d in dropped}),
                "component": "payload_sanitizer",
            },
        )

    return SanitizedPayload(body=body, attachments=attachments, dropped=dropped)


def build_question_subresource(question: TriviaQuestion) -> Dict[str, Any]:
    """
    Payload for the per-question endpoints. Applies the same option filtering
    and correct-option resolution as `sanitize`.
    """
    issues = question_issues(question)
    if issues:
        raise TriviaValidationError(
            "question is incomplete: " + "; ".join(i["reason"] for i in issues),
            issues=[{"question_id": question.id, **issue} for issue in issues],
        )

    options = valid_options(question)
    correct = resolve_correct_index(question, options)
    time_seconds = question.time_seconds
    if not isinstance(time_seconds, int) or time_seconds <= 0:
        time_seconds = time_budget.DEFAULT_QUESTION_TIME

    payload: Dict[str, Any] = {
        "question_text": _clean(question.text),
        "points": question.points,
        "time_seconds": time_seconds,
        "options": [
            {
                "answer_text": _clean(o.text),
                "is_correct": idx == correct,
                "answer_order": o.order if o.order is not None else idx + 1,
            }
            for idx, o in enumerate(options)
        ],
    }
    if isinstance(question.media, str) and question.media.strip():
        payload["image_url"] = question.media.strip()
    return payload
