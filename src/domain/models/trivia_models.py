import mimetypes
import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.utils import time_budget
from src.utils.identifiers import generate_temporary_id


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TriviaState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ActivationMode(str, Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"


@dataclass(frozen=True)
class LocalFile:
    """
    An image picked locally that has not been uploaded yet.

    Travels as a multipart attachment, never inside the JSON payload.
    """
    filename: str
    content: bytes = b""
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str) -> "LocalFile":
        with open(path, "rb") as fh:
            content = fh.read()
        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return cls(filename=os.path.basename(path), content=content, content_type=content_type)


MediaRef = Union[LocalFile, str]


class TriviaOption(BaseModel):
    """One answer option of a question."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_temporary_id)
    text: str = ""
    is_correct: bool = False
    order: Optional[int] = None


class TriviaQuestion(BaseModel):
    """A question with its options, points and time allocation."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_temporary_id)
    remote_id: Optional[str] = None  # Backend id, when the question is persisted
    text: str = ""
    points: int = 10
    time_seconds: Optional[int] = time_budget.DEFAULT_QUESTION_TIME
    options: List[TriviaOption] = Field(default_factory=list)
    media: Optional[MediaRef] = None
    correct_index: Optional[int] = None  # Fallback when no option is flagged
    order: Optional[int] = None


class TriviaAggregate(BaseModel):
    """
    A trivia with its questions and options.

    `total_points`, `question_count` and `time_per_question` are
    denormalized. Values read from the backend are shown as-is; any edit made
    through the methods below recomputes them from the questions.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_temporary_id)
    name: str = ""
    category: str = ""
    difficulty: Difficulty = Difficulty.EASY
    state: TriviaState = TriviaState.ACTIVE
    activation_mode: ActivationMode = ActivationMode.MANUAL
    scheduled_at: Optional[datetime] = None
    duration_minutes: Union[int, float] = 0
    questions: List[TriviaQuestion] = Field(default_factory=list)
    total_points: int = 0
    question_count: int = 0
    time_per_question: Optional[int] = None
    media: Optional[MediaRef] = None

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def recompute_totals(self) -> None:
        self.total_points = sum(q.points for q in self.questions)
        self.question_count = len(self.questions)
        self.time_per_question = (
            time_budget.average(q.time_seconds for q in self.questions)
            if self.questions
            else None
        )

    def set_duration(self, minutes: float) -> None:
        """Change the duration and spread it evenly over all questions."""
        if minutes <= 0:
            raise ValueError("Duration must be a positive number of minutes.")
        self.duration_minutes = minutes
        self.questions = time_budget.redistribute(self.questions, minutes)
        self.recompute_totals()

    def add_question(self, question: TriviaQuestion) -> TriviaQuestion:
        """
        Append a question without touching existing timings. The new
        question gets the average of the existing allocations.
        """
        if self.questions:
            seconds = time_budget.average(q.time_seconds for q in self.questions)
        else:
            seconds = time_budget.allocate(self.duration_minutes, 0)
        added = question.model_copy(update={"time_seconds": seconds})
        self.questions = [*self.questions, added]
        self.recompute_totals()
        return added

    def replace_question(self, question: TriviaQuestion) -> None:
        if not any(q.id == question.id for q in self.questions):
            raise KeyError(f"Question {question.id} is not part of trivia {self.id}")
        self.questions = [question if q.id == question.id else q for q in self.questions]
        self.recompute_totals()

    def remove_question(self, question_id: str) -> None:
        self.questions = [q for q in self.questions if q.id != question_id]
        self.recompute_totals()

    def import_questions(self, questions: Iterable[TriviaQuestion]) -> List[TriviaQuestion]:
        """
        Prepend copies of questions taken from another trivia. Copies get
        fresh temporary ids so they are created, never updated, remotely.
        """
        imported = []
        for source in questions:
            options = [
                o.model_copy(update={"id": generate_temporary_id()}) for o in source.options
            ]
            imported.append(
                source.model_copy(
                    update={
                        "id": generate_temporary_id(),
                        "remote_id": None,
                        "options": options,
                        "time_seconds": source.time_seconds or time_budget.DEFAULT_QUESTION_TIME,
                    }
                )
            )
        self.questions = [*imported, *self.questions]
        self.recompute_totals()
        return imported

    def set_activation(self, mode: ActivationMode, scheduled_at: Optional[datetime] = None) -> None:
        """Scheduled trivias stay inactive until the backend activates them."""
        mode = ActivationMode(mode)
        if mode is ActivationMode.SCHEDULED:
            if scheduled_at is None:
                raise ValueError("A scheduled trivia needs an activation timestamp.")
            self.activation_mode = mode
            self.scheduled_at = scheduled_at
            self.state = TriviaState.INACTIVE
        else:
            self.activation_mode = mode
            self.scheduled_at = None


class CategoryIndex:
    """
    Read-only id <-> name lookup for categories.

    Owners replace the whole index when categories change; it is never
    mutated, so concurrent readers are safe.
    """

    __slots__ = ("_by_id", "_by_name")

    def __init__(self, id_to_name: Optional[Mapping[str, str]] = None):
        by_id = dict(id_to_name or {})
        self._by_id = MappingProxyType(by_id)
        self._by_name = MappingProxyType({name: cid for cid, name in by_id.items()})

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "CategoryIndex":
        """Build from backend category records ({category_id, name})."""
        mapping = {}
        for record in records or []:
            cid = record.get("category_id") or record.get("id")
            name = record.get("name") or record.get("nombre")
            if cid and name:
                mapping[str(cid)] = str(name)
        return cls(mapping)

    def name_for(self, category_id: Optional[str]) -> Optional[str]:
        if category_id is None:
            return None
        return self._by_id.get(str(category_id))

    def id_for(self, name: Optional[str]) -> Optional[str]:
        if name is None:
            return None
        return self._by_name.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._by_id


_WIRE_DIFFICULTY = {
    Difficulty.EASY: "FACIL",
    Difficulty.MEDIUM: "MEDIO",
    Difficulty.HARD: "DIFICIL",
}
_WIRE_ACTIVATION = {
    ActivationMode.MANUAL: "manual",
    ActivationMode.SCHEDULED: "programada",
}


def wire_difficulty(value: Difficulty) -> str:
    return _WIRE_DIFFICULTY[Difficulty(value)]


def wire_activation(value: ActivationMode) -> str:
    return _WIRE_ACTIVATION[ActivationMode(value)]


def wire_state(value: TriviaState) -> str:
    return "inactiva" if TriviaState(value) is TriviaState.INACTIVE else "activa"


class TriviaListFilters(BaseModel):
    """Filters for the trivia list, expressed in canonical terms."""
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)
    search: Optional[str] = None
    category: Optional[str] = None  # Category name
    difficulty: Optional[Difficulty] = None
    state: Optional[TriviaState] = None
    activation_mode: Optional[ActivationMode] = None

    def to_query_params(self, category_index: Optional[CategoryIndex] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.page is not None:
            params["page"] = self.page
        if self.limit is not None:
            params["limit"] = self.limit
        if self.search and self.search.strip():
            params["search"] = self.search.strip()
        if self.category:
            # Unknown names are dropped: the backend filters by id only.
            category_id = category_index.id_for(self.category) if category_index else None
            if category_id:
                params["category_id"] = category_id
        if self.difficulty is not None:
            params["difficulty"] = wire_difficulty(self.difficulty)
        if self.state is not None:
            params["status"] = self.state.value
        if self.activation_mode is not None:
            params["activation_type"] = wire_activation(self.activation_mode)
        return params


class TriviaPage(BaseModel):
    """One page of normalized trivias from the list endpoint."""
    items: List[TriviaAggregate] = Field(default_factory=list)
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    total_pages: Optional[int] = None
