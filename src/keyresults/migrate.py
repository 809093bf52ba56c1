"""Upgrade legacy KRs (plain target/current pairs) to typed KRs.

The type is guessed from keywords in the title/description; the unit from the
legacy free-text unit. Each migrated record is sanitized for its new type.
"""

import uuid
from collections.abc import Mapping
from typing import Any

from keyresults.sanitize import sanitize_by_type
from shared_types import KRType, KRUnit, ThresholdDirection

DELIVERABLE_KEYWORDS = ("entregar", "deliver", "concluir", "feito")
THRESHOLD_KEYWORDS = ("não ultrapassar", "nao ultrapassar", "limite", "até no máximo")
DECREASE_KEYWORDS = ("reduzir", "diminuir", "decrease")


def infer_type(title: str | None, description: str | None = None) -> KRType:
    text = f"{title or ''} {description or ''}".lower()
    if any(k in text for k in DELIVERABLE_KEYWORDS):
        return KRType.ENTREGAVEL
    if any(k in text for k in THRESHOLD_KEYWORDS):
        return KRType.LIMIAR
    if any(k in text for k in DECREASE_KEYWORDS):
        return KRType.REDUCAO
    return KRType.AUMENTO


def infer_unit(unit: str | None) -> KRUnit:
    normalized = (unit or "").upper()
    if normalized in ("%", "PERCENT", "PERCENTUAL"):
        return KRUnit.PERCENTUAL
    if normalized in ("R$", "BRL") or "REAL" in normalized:
        return KRUnit.BRL
    if normalized in ("$", "USD"):
        return KRUnit.USD
    if normalized in ("EUR", "€"):
        return KRUnit.EUR
    return KRUnit.UNIDADE


def _first(*values: Any, default: Any) -> Any:
    for v in values:
        if v is not None:
            return v
    return default


def migrate_record(record: Mapping) -> dict[str, Any]:
    """Return the typed field set for a legacy KR record."""
    kr_type = infer_type(record.get("title"), record.get("description"))
    data: dict[str, Any] = {"type": kr_type.value}

    if kr_type == KRType.ENTREGAVEL:
        data["checklist_json"] = [
            {"id": uuid.uuid4().hex, "title": "Item inicial migrado", "done": False}
        ]
    elif kr_type == KRType.AUMENTO:
        data["unit"] = infer_unit(record.get("unit")).value
        data["target_value"] = _first(record.get("target_value"), default=100)
        data["current_value"] = _first(record.get("current_value"), default=0)
        data["baseline_value"] = record.get("baseline_value")
    elif kr_type == KRType.REDUCAO:
        data["unit"] = infer_unit(record.get("unit")).value
        data["baseline_value"] = _first(
            record.get("baseline_value"), record.get("target_value"), default=100
        )
        data["target_value"] = _first(record.get("target_value"), default=0)
        data["current_value"] = _first(record.get("current_value"), default=data["baseline_value"])
    else:
        data["unit"] = infer_unit(record.get("unit")).value
        data["threshold_value"] = _first(
            record.get("threshold_value"), record.get("target_value"), default=0
        )
        data["threshold_direction"] = _first(
            record.get("threshold_direction"), default=ThresholdDirection.MAXIMO.value
        )
        data["current_value"] = _first(record.get("current_value"), default=0)

    return sanitize_by_type(data)
