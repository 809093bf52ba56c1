"""Shared enums and types for scorecard."""

from enum import StrEnum


class KRType(StrEnum):
    AUMENTO = "AUMENTO"
    REDUCAO = "REDUCAO"
    ENTREGAVEL = "ENTREGAVEL"
    LIMIAR = "LIMIAR"


class ThresholdDirection(StrEnum):
    MAXIMO = "MAXIMO"
    MINIMO = "MINIMO"


class KRComputedStatus(StrEnum):
    ACHIEVED = "ACHIEVED"
    ON_TRACK = "ON_TRACK"
    AT_RISK = "AT_RISK"
    OFF_TRACK = "OFF_TRACK"


class KRUnit(StrEnum):
    PERCENTUAL = "PERCENTUAL"
    BRL = "BRL"
    USD = "USD"
    EUR = "EUR"
    UNIDADE = "UNIDADE"


class KRUpdateEventType(StrEnum):
    NUMERIC_UPDATE = "NUMERIC_UPDATE"
    CHECKLIST_UPDATE = "CHECKLIST_UPDATE"
