from typing import Callable, Dict, Optional

from labreport.parsers.base import detect_provider
from labreport.parsers.generic import parse_generic
from labreport.parsers.labcorp import parse_labcorp
from labreport.parsers.models import (
    PDF_TEXT,
    LabSection,
    Marker,
    ParsedReport,
    ParseFailure,
    PatientInfo,
    ProviderTag,
    ReferenceRange,
)
from labreport.parsers.quest import parse_quest

ParserFn = Callable[[str, str], ParsedReport]


def _compact(d: Dict) -> Dict:
    return {k: v for k, v in d.items() if v is not None}


class ReportNormalizer:
    PARSERS: Dict[ProviderTag, ParserFn] = {
        ProviderTag.QUEST: parse_quest,
        ProviderTag.LABCORP: parse_labcorp,
        ProviderTag.GENERIC: parse_generic,
    }

    def __init__(self, autodetect: bool = True, override: str = ""):
        self.autodetect = autodetect
        self.override = ProviderTag(override.lower()) if override else None

    def select_provider(self, text: str) -> ProviderTag:
        if self.override is not None:
            return self.override
        return detect_provider(text) if self.autodetect else ProviderTag.GENERIC

    def normalize(
        self, text: str, extraction_method: str = PDF_TEXT, provider: Optional[ProviderTag] = None
    ) -> ParsedReport:
        provider = provider or self.select_provider(text)
        return self.PARSERS[provider](text, extraction_method)

    def to_payload(self, report: ParsedReport) -> Dict:
        """Map a parsed report into the JSON shape returned to callers (camelCase, no nulls)."""
        meta = report.metadata
        return {
            "success": True,
            "provider": _compact(
                {
                    "name": report.provider.name,
                    "labNumber": report.provider.lab_number,
                    "physicianName": report.provider.physician_name,
                }
            ),
            **({"patient": self._patient(report.patient)} if report.patient else {}),
            "sections": [self._section(s) for s in report.sections],
            "rawText": report.raw_text,
            "metadata": _compact(
                {
                    "totalMarkers": meta.total_markers,
                    "confidence": meta.confidence,
                    "parserUsed": meta.parser_used.value,
                    "extractionMethod": meta.extraction_method,
                    "warnings": list(meta.warnings) or None,
                }
            ),
        }

    @staticmethod
    def failure_payload(failure: ParseFailure) -> Dict:
        return _compact({"success": False, "error": failure.error, "details": failure.details})

    # -------- helpers --------

    @staticmethod
    def _patient(p: PatientInfo) -> Dict:
        return _compact(
            {
                "age": p.age,
                "sex": p.sex,
                "dateOfBirth": p.date_of_birth,
                "specimenDate": p.specimen_date,
                "reportDate": p.report_date,
            }
        )

    @staticmethod
    def _range(r: ReferenceRange) -> Dict:
        return _compact({"min": r.min, "max": r.max, "text": r.text or None})

    def _marker(self, m: Marker) -> Dict:
        return _compact(
            {
                "name": m.name,
                "value": m.value,
                "unit": m.unit,
                "referenceRange": self._range(m.reference_range),
                "status": m.status,
                "flags": list(m.flags) or None,
            }
        )

    def _section(self, s: LabSection) -> Dict:
        return {"sectionName": s.name, "markers": [self._marker(m) for m in s.markers]}

    def payload_for(self, result) -> Dict:
        if isinstance(result, ParseFailure):
            return self.failure_payload(result)
        return self.to_payload(result)
