from .logger_utils import logger


def on_retry_callback(retry_state):
    """Callback function to log retry attempts."""
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Retrying {getattr(retry_state.fn, '__name__', 'operation')}, "
        f"attempt {retry_state.attempt_number} failed after "
        f"{retry_state.seconds_since_start:.2f}s; next try in {delay:.2f}s",
        extra={
            "attempt": retry_state.attempt_number,
            "delay_seconds": round(delay, 3),
            "error": repr(error),
            "component": "resilient_client",
        },
    )