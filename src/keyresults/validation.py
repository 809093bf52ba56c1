"""Pydantic input schemas for Key Results, one variant per KR type."""

from datetime import date
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_validator

from shared_types import KRType, KRUnit, ThresholdDirection


class ChecklistItem(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    done: bool


class _KRBase(BaseModel):
    objective_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=10_000)
    due_date: Optional[date] = None


class IncreaseKRCreate(_KRBase):
    type: Literal["AUMENTO"]
    target_value: float
    current_value: float
    unit: KRUnit
    baseline_value: Optional[float] = None

    @model_validator(mode="after")
    def check_target_above_baseline(self):
        if self.baseline_value is not None and self.target_value <= self.baseline_value:
            raise ValueError("target_value must be greater than baseline_value for AUMENTO")
        return self


class DecreaseKRCreate(_KRBase):
    type: Literal["REDUCAO"]
    baseline_value: float
    target_value: float
    current_value: float
    unit: KRUnit

    @model_validator(mode="after")
    def check_target_below_baseline(self):
        if self.target_value >= self.baseline_value:
            raise ValueError("target_value must be less than baseline_value for REDUCAO")
        return self


class DeliverableKRCreate(_KRBase):
    type: Literal["ENTREGAVEL"]
    checklist_json: list[ChecklistItem] = Field(..., min_length=1)


class ThresholdKRCreate(_KRBase):
    type: Literal["LIMIAR"]
    threshold_value: float
    current_value: float
    unit: KRUnit
    threshold_direction: ThresholdDirection = ThresholdDirection.MAXIMO


KRCreate = Annotated[
    Union[IncreaseKRCreate, DecreaseKRCreate, DeliverableKRCreate, ThresholdKRCreate],
    Field(discriminator="type"),
]

_kr_create_adapter = TypeAdapter(KRCreate)


class KRUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=10_000)
    type: Optional[KRType] = None
    due_date: Optional[date] = None
    target_value: Optional[float] = None
    baseline_value: Optional[float] = None
    threshold_value: Optional[float] = None
    threshold_direction: Optional[ThresholdDirection] = None
    current_value: Optional[float] = None
    unit: Optional[KRUnit] = None
    checklist_json: Optional[list[ChecklistItem]] = None


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        # Drop the union tag ("AUMENTO", ...) pydantic prepends to the location.
        loc = [str(p) for p in err["loc"] if p not in set(KRType)]
        msg = err["msg"].removeprefix("Value error, ")
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(parts)


def validate_key_result(data: dict):
    """Validate a full KR payload against the schema for its type.

    Returns:
        The matching *KRCreate model.

    Raises:
        ValueError: with a readable message listing the failures.
    """
    try:
        return _kr_create_adapter.validate_python(data)
    except ValidationError as e:
        raise ValueError(_format_errors(e)) from e
