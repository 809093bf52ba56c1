"""Dependency helpers for FastAPI routes."""

from functools import lru_cache

from cli.config import load_config_model


@lru_cache
def get_config():
    """Load shared config (see cli.config.find_config for locations)."""
    return load_config_model()


def get_history_limits() -> tuple[int, int]:
    """(max history rows returned, recent rows embedded in a KR response)."""
    history = get_config().history
    return history.max_entries, history.recent_in_response
