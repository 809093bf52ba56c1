"""Shared CLI utilities."""

from pathlib import Path


def get_db_path() -> Path:
    """Database path from config (paths.db_path)."""
    from cli.config import load_config_model

    return load_config_model().paths.db_path

def format_status(status: str) -> str:
    """Colour a computed KR status for rich output."""
    colours = {
        "ACHIEVED": "green",
        "ON_TRACK": "cyan",
        "AT_RISK": "yellow",
        "OFF_TRACK": "red",
    }
    return f"[{colours.get(status, 'white')}]{status}[/]"
