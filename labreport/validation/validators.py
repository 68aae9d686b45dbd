# labreport/validation/validators.py
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RangePayload(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    text: Optional[str] = None

    @model_validator(mode="after")
    def _ordered(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"referenceRange inválido: min {self.min} > max {self.max}")
        return self


class MarkerPayload(BaseModel):
    name: str
    value: Union[float, str]
    unit: str = ""
    referenceRange: RangePayload
    status: Optional[Literal["low", "normal", "high", "optimal", "suboptimal", "critical"]] = None
    flags: List[str] = []

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("marker name es obligatorio")
        return v


class SectionPayload(BaseModel):
    sectionName: str
    markers: List[MarkerPayload]


class MetadataPayload(BaseModel):
    totalMarkers: int = Field(ge=0)
    confidence: Literal["high", "medium", "low"]
    parserUsed: Literal["quest", "labcorp", "generic"]
    extractionMethod: str
    warnings: List[str] = []


class ReportPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: Literal[True]
    provider: Dict[str, Any]
    patient: Optional[Dict[str, Any]] = None
    sections: List[SectionPayload]
    rawText: str
    metadata: MetadataPayload

    @model_validator(mode="after")
    def _count_matches(self):
        count = sum(len(s.markers) for s in self.sections)
        if count != self.metadata.totalMarkers:
            raise ValueError(f"totalMarkers {self.metadata.totalMarkers} != {count} markers")
        return self


class FailurePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: Literal[False]
    error: str
    details: Optional[str] = None


def validate_payload_or_raise(payload: Dict[str, Any]):
    """Build the matching model; raises pydantic.ValidationError if the shape is wrong."""
    if payload.get("success") is True:
        return ReportPayload.model_validate(payload)
    return FailurePayload.model_validate(payload)
