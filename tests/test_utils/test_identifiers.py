from src.utils.identifiers import generate_temporary_id, is_identifier_like, is_temporary_id


class TestIdentifiers:
    """Tests for the identifier-shape predicates."""

    def test_generated_ids_are_temporary(self):
        for _ in range(20):
            value = generate_temporary_id()
            assert len(value) == 9
            assert is_temporary_id(value)

    def test_missing_ids_are_temporary(self):
        assert is_temporary_id(None)
        assert is_temporary_id("")

    def test_backend_ids_are_not_temporary(self):
        assert not is_temporary_id("0f8fad5b-d9cb-469f-a165-70867728950e")
        assert not is_temporary_id("1234")
        assert not is_temporary_id("abcdefghij")

    def test_identifier_like(self):
        assert is_identifier_like("0F8FAD5B-D9CB-469F-A165-70867728950E")
        assert is_identifier_like("42")
        assert not is_identifier_like("Deportes")
        assert not is_identifier_like(42)
