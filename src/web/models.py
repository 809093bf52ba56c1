"""Pydantic request schemas for the web API.

Key Result payloads live in keyresults.validation (one schema per KR type).
"""

from typing import Optional

from pydantic import BaseModel, Field

# --- Org ---


class OrgNodeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    parent_id: Optional[str] = None
    leader_user_id: Optional[str] = None


# --- Objectives ---


class ObjectiveCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=10_000)
    org_node_id: str = Field(..., min_length=1)


# --- Key results ---


class KRValueUpdate(BaseModel):
    """Periodic numeric check-in. Range checks happen in the route (400)."""

    current_value: Optional[float] = None
    reference_month: Optional[str] = None  # YYYY-MM
    notes: Optional[str] = Field(None, max_length=5000)
