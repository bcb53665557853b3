import json

from trivia_utils.logger_utils import get_logger


class TestGetLogger:
    """Tests for the JSON logger factory."""

    def test_records_are_json_with_extra_fields(self, capsys):
        log = get_logger("triviasync.test_json", "DEBUG")
        log.info("Created trivia", extra={"trivia_id": "t-1", "component": "trivia_sync_service"})

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["message"] == "Created trivia"
        assert record["level"] == "INFO"
        assert record["trivia_id"] == "t-1"
        assert record["component"] == "trivia_sync_service"

    def test_handler_is_attached_once(self):
        first = get_logger("triviasync.test_once", "INFO")
        second = get_logger("triviasync.test_once", "warning")
        assert first is second
        assert len(second.handlers) == 1
        assert second.level == 30
