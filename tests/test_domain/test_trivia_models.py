from datetime import datetime, timezone

import pytest

from src.domain.models.trivia_models import (
    ActivationMode,
    CategoryIndex,
    Difficulty,
    LocalFile,
    TriviaAggregate,
    TriviaListFilters,
    TriviaQuestion,
    TriviaState,
)
from src.utils.identifiers import is_temporary_id


class TestTriviaAggregateEditing:
    """Tests for the aggregate editing operations."""

    def test_new_entities_get_temporary_ids(self, make_question):
        trivia = TriviaAggregate(questions=[make_question()])
        assert is_temporary_id(trivia.id)
        assert is_temporary_id(trivia.questions[0].id)
        assert is_temporary_id(trivia.questions[0].options[0].id)

    def test_new_question_defaults(self):
        question = TriviaQuestion()
        assert question.points == 10
        assert question.time_seconds == 60

    def test_set_duration_redistributes(self, make_question):
        trivia = TriviaAggregate(
            questions=[make_question(time_seconds=s) for s in (10, 20, 300)]
        )
        trivia.set_duration(10)
        assert trivia.duration_minutes == 10
        assert [q.time_seconds for q in trivia.questions] == [200, 200, 200]
        assert trivia.time_per_question == 200

    def test_set_duration_rejects_non_positive(self):
        trivia = TriviaAggregate()
        with pytest.raises(ValueError):
            trivia.set_duration(0)

    def test_add_question_keeps_existing_timings(self, make_question):
        trivia = TriviaAggregate(
            duration_minutes=5,
            questions=[make_question(time_seconds=30), make_question(time_seconds=90)],
        )
        added = trivia.add_question(make_question(points=7))
        assert [q.time_seconds for q in trivia.questions] == [30, 90, 60]
        assert added.time_seconds == 60
        assert trivia.question_count == 3
        assert trivia.total_points == 27

    def test_first_question_gets_default_time(self, make_question):
        trivia = TriviaAggregate(duration_minutes=10)
        added = trivia.add_question(make_question(time_seconds=500))
        assert added.time_seconds == 60

    def test_edits_recompute_backend_totals(self, make_question):
        """A backend-supplied point total is replaced on the first edit."""
        question = make_question(points=10)
        trivia = TriviaAggregate(questions=[question], total_points=999, question_count=40)
        edited = question.model_copy(update={"points": 3})
        trivia.replace_question(edited)
        assert trivia.total_points == 3
        assert trivia.question_count == 1

    def test_replace_unknown_question(self, make_question):
        trivia = TriviaAggregate(questions=[make_question()])
        with pytest.raises(KeyError):
            trivia.replace_question(make_question())

    def test_remove_question(self, make_question):
        first, second = make_question(points=1), make_question(points=2)
        trivia = TriviaAggregate(questions=[first, second])
        trivia.remove_question(first.id)
        assert [q.id for q in trivia.questions] == [second.id]
        assert trivia.total_points == 2

    def test_import_questions_prepends_fresh_copies(self, make_question):
        source = make_question(text="Imported", remote_id="11111111-1111-4111-8111-111111111111")
        source = source.model_copy(update={"id": source.remote_id, "time_seconds": None})
        existing = make_question(text="Existing")
        trivia = TriviaAggregate(questions=[existing])

        imported = trivia.import_questions([source])

        assert [q.text for q in trivia.questions] == ["Imported", "Existing"]
        assert is_temporary_id(imported[0].id)
        assert imported[0].remote_id is None
        assert imported[0].time_seconds == 60
        assert imported[0].options[0].id != source.options[0].id

    def test_scheduling_forces_inactive(self):
        trivia = TriviaAggregate(state=TriviaState.ACTIVE)
        when = datetime(2025, 10, 17, 21, 26, tzinfo=timezone.utc)
        trivia.set_activation(ActivationMode.SCHEDULED, when)
        assert trivia.state is TriviaState.INACTIVE
        assert trivia.scheduled_at == when

    def test_scheduling_requires_timestamp(self):
        trivia = TriviaAggregate()
        with pytest.raises(ValueError):
            trivia.set_activation(ActivationMode.SCHEDULED)

    def test_manual_clears_timestamp(self):
        trivia = TriviaAggregate()
        trivia.set_activation("scheduled", datetime(2025, 1, 1, tzinfo=timezone.utc))
        trivia.set_activation("manual")
        assert trivia.activation_mode is ActivationMode.MANUAL
        assert trivia.scheduled_at is None


class TestLocalFile:
    """Tests for the local image handle."""

    def test_from_path(self, tmp_path):
        path = tmp_path / "cover.png"
        path.write_bytes(b"\x89PNG")
        handle = LocalFile.from_path(str(path))
        assert handle.filename == "cover.png"
        assert handle.content_type == "image/png"
        assert handle.size == 4

    def test_question_keeps_local_file(self):
        handle = LocalFile("q.png", b"abc", "image/png")
        question = TriviaQuestion(media=handle)
        assert isinstance(question.media, LocalFile)
        assert question.media == handle


class TestCategoryIndex:
    """Tests for the category lookup."""

    def test_bidirectional(self, category_index):
        assert category_index.name_for("b07e5d45-07bf-4f9b-a0c2-8ba83ddb6251") == "Deportes"
        assert category_index.id_for("Arte") == "7c00403f-d2c2-4434-bd08-d499a4432605"
        assert category_index.name_for("unknown") is None
        assert len(category_index) == 2

    def test_records_without_id_or_name_are_skipped(self):
        index = CategoryIndex.from_records([{"category_id": "1"}, {"name": "x"}, {"id": "2", "name": "Y"}])
        assert index.names == ["Y"]

    def test_is_read_only(self, category_index):
        with pytest.raises(TypeError):
            category_index._by_id["new"] = "value"


class TestTriviaListFilters:
    """Tests for list query parameters."""

    def test_maps_to_backend_params(self, category_index):
        filters = TriviaListFilters(
            page=2,
            limit=6,
            search="  mundial ",
            category="Deportes",
            difficulty=Difficulty.HARD,
            state=TriviaState.INACTIVE,
            activation_mode=ActivationMode.SCHEDULED,
        )
        assert filters.to_query_params(category_index) == {
            "page": 2,
            "limit": 6,
            "search": "mundial",
            "category_id": "b07e5d45-07bf-4f9b-a0c2-8ba83ddb6251",
            "difficulty": "DIFICIL",
            "status": "inactive",
            "activation_type": "programada",
        }

    def test_unset_and_unknown_values_are_omitted(self, category_index):
        filters = TriviaListFilters(search="  ", category="Unknown")
        assert filters.to_query_params(category_index) == {}
