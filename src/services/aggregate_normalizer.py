"""
Maps raw backend trivia payloads onto the canonical `TriviaAggregate`.

The backend (and its older versions) use several names for the same field.
Each canonical field has an ordered tuple of accessors below; the first
accessor that yields a usable value wins. Keep these tuples as the single
place where alias precedence is decided.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from src.domain.models.trivia_models import (
    ActivationMode,
    CategoryIndex,
    Difficulty,
    TriviaAggregate,
    TriviaOption,
    TriviaPage,
    TriviaQuestion,
    TriviaState,
)
from src.utils import time_budget
from src.utils.identifiers import generate_temporary_id, is_identifier_like
from src.utils.media_resolver import ensure_absolute_url, resolve_entity_media
from trivia_utils.logger_utils import logger

Accessor = Callable[[Mapping[str, Any]], Any]


# ---------------------------------------------------------------------------
# Accessor helpers
# ---------------------------------------------------------------------------
def key(name: str) -> Accessor:
    def accessor(raw: Mapping[str, Any]) -> Any:
        return raw.get(name)
    accessor.__name__ = f"key[{name}]"
    return accessor


def nested(*path: str) -> Accessor:
    def accessor(raw: Mapping[str, Any]) -> Any:
        current: Any = raw
        for part in path:
            if not isinstance(current, Mapping):
                return None
            current = current.get(part)
        return current
    accessor.__name__ = "nested[" + ".".join(path) + "]"
    return accessor


def keys(*names: str) -> tuple:
    return tuple(key(n) for n in names)


def first_defined(
    raw: Mapping[str, Any],
    accessors: Sequence[Accessor],
    convert: Callable[[Any], Any] = lambda v: v,
) -> Any:
    """Run accessors in order; return the first converted value that is not None."""
    for accessor in accessors:
        value = accessor(raw)
        if value is None:
            continue
        value = convert(value)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------
def to_number(value: Any) -> Optional[float]:
    """Finite number from a number or numeric string; ints stay ints."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def to_int(value: Any) -> Optional[int]:
    number = to_number(value)
    return None if number is None else int(number)


def to_positive_int(value: Any) -> Optional[int]:
    number = to_int(value)
    return number if number is not None and number > 0 else None


def to_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def to_nonempty_text(value: Any) -> Optional[str]:
    text = to_text(value)
    return text if text and text.strip() else None


def to_identifier(value: Any) -> Optional[str]:
    text = to_text(value)
    return text.strip() if text and text.strip() else None


def to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(
            "Ignoring unparseable activation timestamp",
            extra={"value": value, "component": "aggregate_normalizer"},
        )
        return None


_DIFFICULTY_ALIASES = {
    "facil": Difficulty.EASY,
    "fácil": Difficulty.EASY,
    "easy": Difficulty.EASY,
    "medio": Difficulty.MEDIUM,
    "medium": Difficulty.MEDIUM,
    "dificil": Difficulty.HARD,
    "difícil": Difficulty.HARD,
    "hard": Difficulty.HARD,
}


def to_difficulty(value: Any) -> Optional[Difficulty]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    text = to_text(value)
    if text is None:
        return None
    return _DIFFICULTY_ALIASES.get(text.strip().lower())


_STATE_ALIASES = {
    "active": TriviaState.ACTIVE,
    "activa": TriviaState.ACTIVE,
    "inactive": TriviaState.INACTIVE,
    "inactiva": TriviaState.INACTIVE,
}


def to_state(value: Any) -> Optional[TriviaState]:
    text = to_text(value)
    return _STATE_ALIASES.get(text.strip().lower()) if text else None


_ACTIVATION_ALIASES = {
    "manual": ActivationMode.MANUAL,
    "programada": ActivationMode.SCHEDULED,
    "scheduled": ActivationMode.SCHEDULED,
}


def to_activation(value: Any) -> Optional[ActivationMode]:
    text = to_text(value)
    return _ACTIVATION_ALIASES.get(text.strip().lower()) if text else None


def to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None


# ---------------------------------------------------------------------------
# Alias tables
# ---------------------------------------------------------------------------
TRIVIA_ID = keys("id", "_id", "trivia_id", "triviaId", "uuid")
TRIVIA_NAME = keys("nombre", "name", "description", "title", "triviaNombre")
CATEGORY_EMBEDDED_NAME = (
    nested("categoria", "nombre"),
    nested("categoria", "name"),
    nested("categories", "name"),
    nested("category", "name"),
    key("categoria_name"),
    key("categoriaNombre"),
    key("categoryName"),
)
CATEGORY_FLAT = keys("categoria", "category")
CATEGORY_ID = keys("category_id", "categoria_id", "categoryId")
DIFFICULTY = keys("dificultad", "difficulty")
STATE = keys("estado", "status")
ACTIVATION = keys("activacion", "activation_type", "activation")
ACTIVATION_DATE = keys(
    "fechaActivacion", "fecha_activacion", "activationDate", "scheduled_activation_date"
)
DURATION = keys("duracion", "duration_minutes", "duration", "duracion_minutos")
QUESTIONS = keys("preguntas", "questions")
QUESTION_COUNT = keys(
    "number_questions",
    "totalPreguntas",
    "preguntasTotales",
    "preguntas_total",
    "preguntasCount",
    "preguntas_count",
    "questions_count",
    "question_count",
    "total_questions",
    "totalQuestions",
    "questionCount",
)
POINT_TOTAL = keys(
    "puntos",
    "totalPuntos",
    "total_puntos",
    "puntosTotales",
    "pointsTotal",
    "points_total",
    "totalPoints",
    "points",
)
TIME_PER_QUESTION = keys(
    "time_per_question", "tiempoPorPregunta", "tiempo_por_pregunta", "timePerQuestion"
)

QUESTION_ID = keys("question_id", "id", "questionId")
QUESTION_TEXT = keys("texto", "text", "question_text")
QUESTION_POINTS = keys("puntos", "points")
QUESTION_TIME = keys(
    "tiempoSegundos", "tiempo_segundos", "time_seconds", "tiempo", "timeSeconds", "time"
)
QUESTION_ORDER = keys("question_order", "orden", "order")
QUESTION_OPTIONS = keys("opciones", "options", "answers")

OPTION_ID = keys("answer_id", "id")
OPTION_TEXT = keys("texto", "text", "answer_text", "respuesta", "value")
OPTION_CORRECT = keys("esCorrecta", "isCorrect", "is_correct")
OPTION_ORDER = keys("answer_order", "orden", "order")


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


# ---------------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------------
def resolve_category(raw: Mapping[str, Any], category_index: Optional[CategoryIndex]) -> str:
    """
    Category name, in order: an embedded object's name, a flat string that
    reads as a name, an id-shaped value looked up in the index, the raw value.
    """
    embedded = first_defined(raw, CATEGORY_EMBEDDED_NAME, to_nonempty_text)
    if embedded is not None:
        return embedded

    flat = first_defined(raw, CATEGORY_FLAT, to_nonempty_text)
    if flat is not None and not is_identifier_like(flat):
        return flat

    candidates = [flat] if flat is not None else []
    for accessor in CATEGORY_ID:
        value = to_identifier(accessor(raw))
        if value is not None:
            candidates.append(value)

    index = category_index or CategoryIndex()
    for candidate in candidates:
        name = index.name_for(candidate)
        if name:
            return name

    return candidates[0] if candidates else ""


def normalize_option(raw: Any, position: int) -> TriviaOption:
    data = raw if isinstance(raw, Mapping) else {}
    option_id = first_defined(data, OPTION_ID, to_identifier)
    order = first_defined(data, OPTION_ORDER, to_int)
    return TriviaOption(
        id=option_id or generate_temporary_id(),
        text=first_defined(data, OPTION_TEXT, to_text) or "",
        is_correct=bool(first_defined(data, OPTION_CORRECT, to_bool)),
        order=order if order is not None else position + 1,
    )


def normalize_question(raw: Mapping[str, Any], base_url: Optional[str] = None) -> TriviaQuestion:
    remote_id = first_defined(raw, QUESTION_ID, to_identifier)
    options = [
        normalize_option(o, idx)
        for idx, o in enumerate(_as_list(first_defined(raw, QUESTION_OPTIONS)))
    ]
    correct_index = next((idx for idx, o in enumerate(options) if o.is_correct), None)
    time_seconds = first_defined(raw, QUESTION_TIME, to_positive_int)
    return TriviaQuestion(
        id=remote_id or generate_temporary_id(),
        remote_id=remote_id,
        text=first_defined(raw, QUESTION_TEXT, to_text) or "",
        points=first_defined(raw, QUESTION_POINTS, to_int) or 0,
        time_seconds=time_seconds or time_budget.DEFAULT_QUESTION_TIME,
        options=options,
        media=ensure_absolute_url(resolve_entity_media(raw), base_url),
        correct_index=correct_index,
        order=first_defined(raw, QUESTION_ORDER, to_int),
    )


def derive_time_per_question(
    raw: Mapping[str, Any],
    duration: float,
    question_count: int,
    questions: Sequence[TriviaQuestion],
) -> int:
    """
    Displayed seconds per question: the uniform split when duration and count
    are known, else the backend's explicit value, else the average of the
    questions, else the default.
    """
    if duration > 0 and question_count > 0:
        return time_budget.allocate(duration, question_count)
    explicit = first_defined(raw, TIME_PER_QUESTION, to_positive_int)
    if explicit is not None:
        return explicit
    if questions:
        return time_budget.average(q.time_seconds for q in questions)
    return time_budget.DEFAULT_QUESTION_TIME


def normalize(
    raw: Mapping[str, Any],
    category_index: Optional[CategoryIndex] = None,
    base_url: Optional[str] = None,
) -> TriviaAggregate:
    """Build the canonical aggregate from one raw trivia object."""
    if not isinstance(raw, Mapping):
        raise TypeError(f"Expected a trivia object, got {type(raw).__name__}")

    trivia_id = first_defined(raw, TRIVIA_ID, to_identifier)
    if trivia_id is None:
        trivia_id = generate_temporary_id()
        logger.debug(
            "Trivia payload carries no id; assigned a temporary one",
            extra={"trivia_id": trivia_id, "component": "aggregate_normalizer"},
        )

    raw_questions = _as_list(first_defined(raw, QUESTIONS))
    questions = [
        normalize_question(q, base_url) for q in raw_questions if isinstance(q, Mapping)
    ]

    # List views may send a truncated questions array with an exact counter.
    counter = first_defined(raw, QUESTION_COUNT, to_int)
    question_count = counter if counter is not None and counter > 0 else len(raw_questions)

    duration = first_defined(raw, DURATION, to_number) or 0
    activation_mode = first_defined(raw, ACTIVATION, to_activation) or ActivationMode.MANUAL
    scheduled_at = None
    if activation_mode is ActivationMode.SCHEDULED:
        scheduled_at = first_defined(raw, ACTIVATION_DATE, to_datetime)

    total_points = first_defined(raw, POINT_TOTAL, to_int)
    if total_points is None:
        total_points = sum(q.points for q in questions)

    return TriviaAggregate(
        id=trivia_id,
        name=first_defined(raw, TRIVIA_NAME, to_text) or "",
        category=resolve_category(raw, category_index),
        difficulty=first_defined(raw, DIFFICULTY, to_difficulty) or Difficulty.EASY,
        state=first_defined(raw, STATE, to_state) or TriviaState.ACTIVE,
        activation_mode=activation_mode,
        scheduled_at=scheduled_at,
        duration_minutes=duration,
        questions=questions,
        total_points=total_points,
        question_count=question_count,
        time_per_question=derive_time_per_question(raw, duration, question_count, questions),
        media=ensure_absolute_url(resolve_entity_media(raw), base_url),
    )


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------
def unwrap_collection(body: Any) -> List[Any]:
    """Trivia list from any of the envelopes the list endpoint has used."""
    if isinstance(body, list):
        return body
    if not isinstance(body, Mapping):
        return []
    data = body.get("data")
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping) and isinstance(data.get("trivias"), list):
        return data["trivias"]
    if isinstance(body.get("trivias"), list):
        return body["trivias"]
    return []


def unwrap_entity(body: Any) -> Any:
    """Single trivia object from a detail/create/update response."""
    if not isinstance(body, Mapping):
        return body
    data = body.get("data")
    if isinstance(data, Mapping) and data.get("trivia") is not None:
        return data["trivia"]
    if body.get("trivia") is not None:
        return body["trivia"]
    if data is not None:
        return data
    return body


def normalize_many(
    items: Iterable[Any],
    category_index: Optional[CategoryIndex] = None,
    base_url: Optional[str] = None,
) -> List[TriviaAggregate]:
    return [normalize(item, category_index, base_url) for item in items if isinstance(item, Mapping)]


def normalize_page(
    body: Any,
    category_index: Optional[CategoryIndex] = None,
    base_url: Optional[str] = None,
) -> TriviaPage:
    items = normalize_many(unwrap_collection(body), category_index, base_url)
    meta: Dict[str, Any] = body if isinstance(body, Mapping) else {}
    pagination = meta.get("pagination") if isinstance(meta.get("pagination"), Mapping) else {}
    return TriviaPage(
        items=items,
        total=to_int(meta.get("total")),
        page=to_int(pagination.get("page")),
        limit=to_int(pagination.get("limit")),
        total_pages=to_int(pagination.get("totalPages")),
    )
