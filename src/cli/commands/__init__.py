"""CLI command modules."""

from .database import db
from .kr import kr
from .tenant import tenant

__all__ = ["db", "kr", "tenant"]
