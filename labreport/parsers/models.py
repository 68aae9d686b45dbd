# ===============================
# File: labreport/parsers/models.py
# ===============================
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional, Tuple, Union

Status = Literal["low", "normal", "high", "optimal", "suboptimal", "critical"]
Confidence = Literal["high", "medium", "low"]
MarkerValue = Union[float, str]

DEFAULT_SECTION = "Lab Results"

# extraction methods
PDF_TEXT = "pdf-text"
RAW_TEXT = "raw-text"


class ProviderTag(str, Enum):
    QUEST = "quest"
    LABCORP = "labcorp"
    GENERIC = "generic"


@dataclass(frozen=True)
class ExtractedText:
    text: str
    method: str = PDF_TEXT


@dataclass(frozen=True)
class PatientInfo:
    age: Optional[int] = None
    sex: Optional[str] = None  # "M" | "F"
    date_of_birth: Optional[str] = None
    specimen_date: Optional[str] = None
    report_date: Optional[str] = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.age, self.sex, self.date_of_birth, self.specimen_date, self.report_date)
        )


@dataclass(frozen=True)
class ReferenceRange:
    min: Optional[float] = None
    max: Optional[float] = None
    text: str = ""

    def __post_init__(self):
        # rangos invertidos ("100-70") se guardan como min <= max
        if self.min is not None and self.max is not None and self.min > self.max:
            lo, hi = self.max, self.min
            object.__setattr__(self, "min", lo)
            object.__setattr__(self, "max", hi)

    @property
    def is_numeric(self) -> bool:
        return self.min is not None or self.max is not None


@dataclass(frozen=True)
class Marker:
    name: str
    value: MarkerValue
    unit: str
    reference_range: ReferenceRange
    status: Optional[Status] = None
    flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LabSection:
    name: str
    markers: Tuple[Marker, ...] = ()


@dataclass(frozen=True)
class ProviderInfo:
    name: str
    lab_number: Optional[str] = None
    physician_name: Optional[str] = None


@dataclass(frozen=True)
class ReportMetadata:
    total_markers: int
    confidence: Confidence
    parser_used: ProviderTag
    extraction_method: str = PDF_TEXT
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ParsedReport:
    provider: ProviderInfo
    sections: Tuple[LabSection, ...]
    raw_text: str
    metadata: ReportMetadata
    patient: Optional[PatientInfo] = None
    success: bool = field(default=True, init=False)

    def markers(self) -> Tuple[Marker, ...]:
        return tuple(m for s in self.sections for m in s.markers)


@dataclass(frozen=True)
class ParseFailure:
    error: str
    details: Optional[str] = None
    success: bool = field(default=False, init=False)
