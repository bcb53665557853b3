from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

import requests

from src.domain.errors import RemoteAPIError, TriviaValidationError
from src.domain.models.trivia_models import (
    CategoryIndex,
    TriviaAggregate,
    TriviaListFilters,
    TriviaPage,
    TriviaQuestion,
)
from src.infrastructure import endpoints
from src.infrastructure.config import settings
from src.services import aggregate_normalizer
from src.services.payload_sanitizer import build_question_subresource, sanitize
from src.services.resilient_client import CancellationToken, ResilientClient
from src.utils.identifiers import is_temporary_id
from trivia_utils.logger_utils import logger

CategoryIndexProvider = Callable[[], CategoryIndex]


def _empty_index() -> CategoryIndex:
    return CategoryIndex()


class TriviaSyncService:
    """
    Trivia admin operations against the backend.

    Reads come back as normalized `TriviaAggregate`s; writes go out through
    the payload sanitizer. Every call runs through `ResilientClient`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        client: Optional[ResilientClient] = None,
        category_index: Optional[CategoryIndexProvider] = None,
        timeout: Optional[float] = None,
        access_token: Optional[str] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.client = client or ResilientClient()
        # Called on every read: the owner swaps the snapshot, we never mutate it.
        self.category_index = category_index or _empty_index
        self.timeout = timeout or settings.API_TIMEOUT_SECONDS

        self.session.headers["Accept"] = "application/json"
        token = settings.API_ACCESS_TOKEN if access_token is None else access_token
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        cancel_token: Optional[CancellationToken],
        description: str,
        **kwargs: Any,
    ) -> Any:
        url = f"{self.base_url}{path}"

        def operation() -> requests.Response:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)

        logger.debug(
            f"{method} {path}",
            extra={"operation": description, "component": "trivia_sync_service"},
        )
        response = self.client.execute(operation, cancel_token, description=description)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _write_kwargs(self, aggregate: TriviaAggregate) -> Dict[str, Any]:
        payload = sanitize(aggregate)
        if payload.has_attachments:
            return {"files": payload.to_multipart()}
        return {"json": payload.to_json()}

    @staticmethod
    def _echoed_trivia(body: Any) -> Optional[Mapping[str, Any]]:
        """The trivia object in a write response, or None when it carries no id."""
        entity = aggregate_normalizer.unwrap_entity(body)
        if not isinstance(entity, Mapping):
            return None
        trivia_id = aggregate_normalizer.first_defined(
            entity, aggregate_normalizer.TRIVIA_ID, aggregate_normalizer.to_identifier
        )
        return entity if trivia_id is not None else None

    def _normalize(self, body: Any) -> TriviaAggregate:
        entity = aggregate_normalizer.unwrap_entity(body)
        return aggregate_normalizer.normalize(entity, self.category_index(), self.base_url)

    # ------------------------------------------------------------------
    # Trivias
    # ------------------------------------------------------------------
    def list(
        self,
        filters: Optional[TriviaListFilters] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TriviaPage:
        index = self.category_index()
        params = (filters or TriviaListFilters()).to_query_params(index)
        body = self._request(
            "GET", endpoints.TRIVIAS_LIST, cancel_token, "list_trivias", params=params
        )
        return aggregate_normalizer.normalize_page(body, index, self.base_url)

    def get_by_id(
        self, trivia_id: str, cancel_token: Optional[CancellationToken] = None
    ) -> TriviaAggregate:
        body = self._request(
            "GET", endpoints.trivia_detail_path(trivia_id), cancel_token, "get_trivia"
        )
        return self._normalize(body)

    def create(
        self, aggregate: TriviaAggregate, cancel_token: Optional[CancellationToken] = None
    ) -> TriviaAggregate:
        """Create the trivia; the returned aggregate carries the persisted id."""
        kwargs = self._write_kwargs(aggregate)
        body = self._request(
            "POST", endpoints.TRIVIA_CREATE, cancel_token, "create_trivia", **kwargs
        )
        entity = self._echoed_trivia(body)
        if entity is None:
            # The caller adopts the returned id, so a temporary one must never come back.
            raise RemoteAPIError(
                "The trivia was created but the response did not include its id; reload the list.",
                payload=body,
            )
        created = aggregate_normalizer.normalize(entity, self.category_index(), self.base_url)
        logger.info(
            "Created trivia",
            extra={
                "temporary_id": aggregate.id,
                "trivia_id": created.id,
                "multipart": "files" in kwargs,
                "component": "trivia_sync_service",
            },
        )
        return created

    def update(
        self,
        trivia_id: str,
        aggregate: TriviaAggregate,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TriviaAggregate:
        self._require_persisted(trivia_id, "update")
        kwargs = self._write_kwargs(aggregate)
        body = self._request(
            "PATCH", endpoints.trivia_update_path(trivia_id), cancel_token, "update_trivia", **kwargs
        )
        logger.info(
            "Updated trivia",
            extra={
                "trivia_id": trivia_id,
                "multipart": "files" in kwargs,
                "component": "trivia_sync_service",
            },
        )
        entity = self._echoed_trivia(body)
        if entity is None:
            # 204 or a bare acknowledgement: the write went through as sent.
            return aggregate.model_copy(update={"id": trivia_id})
        return aggregate_normalizer.normalize(entity, self.category_index(), self.base_url)

    def save(
        self, aggregate: TriviaAggregate, cancel_token: Optional[CancellationToken] = None
    ) -> TriviaAggregate:
        """Create or update depending on whether the aggregate has a backend id."""
        if is_temporary_id(aggregate.id):
            return self.create(aggregate, cancel_token)
        return self.update(aggregate.id, aggregate, cancel_token)

    def remove(self, trivia_id: str, cancel_token: Optional[CancellationToken] = None) -> Any:
        self._require_persisted(trivia_id, "delete")
        body = self._request(
            "DELETE", endpoints.trivia_delete_path(trivia_id), cancel_token, "delete_trivia"
        )
        logger.info(
            "Deleted trivia",
            extra={"trivia_id": trivia_id, "component": "trivia_sync_service"},
        )
        return body

    # ------------------------------------------------------------------
    # Question sub-resources
    # ------------------------------------------------------------------
    def create_question(
        self,
        trivia_id: str,
        question: TriviaQuestion,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        self._require_persisted(trivia_id, "add a question to")
        payload = build_question_subresource(question)
        return self._request(
            "POST",
            endpoints.trivia_questions_path(trivia_id),
            cancel_token,
            "create_question",
            json=payload,
        )

    def update_question(
        self,
        trivia_id: str,
        question_id: str,
        question: TriviaQuestion,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        self._require_persisted(trivia_id, "update a question of")
        if is_temporary_id(question_id):
            raise TriviaValidationError(
                f"Question {question_id!r} has not been created yet; create it instead.",
                issues=[{"question_id": question_id, "field": "id", "reason": "temporary id"}],
            )
        payload = build_question_subresource(question)
        return self._request(
            "PATCH",
            endpoints.trivia_questions_path(trivia_id, question_id),
            cancel_token,
            "update_question",
            json=payload,
        )

    def save_question(
        self,
        trivia_id: str,
        question: TriviaQuestion,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        """Route by identifier shape: persisted ids update, temporary ids create."""
        remote_id = next(
            (qid for qid in (question.remote_id, question.id) if not is_temporary_id(qid)),
            None,
        )
        if remote_id is not None:
            return self.update_question(trivia_id, remote_id, question, cancel_token)
        return self.create_question(trivia_id, question, cancel_token)

    @staticmethod
    def _require_persisted(trivia_id: str, action: str) -> None:
        if is_temporary_id(trivia_id):
            raise TriviaValidationError(
                f"Cannot {action} trivia {trivia_id!r}: it has no backend id yet.",
                issues=[{"field": "id", "reason": "temporary id"}],
            )
