import re

from .base import DATE, NAME, RANGE, UNIT, VALUE, ProviderProfile, build_report
from .models import PDF_TEXT, ParsedReport, ProviderTag

I = re.IGNORECASE

COMMON_SECTIONS = (
    "Complete Blood Count",
    "CBC",
    "Comprehensive Metabolic Panel",
    "CMP",
    "Basic Metabolic Panel",
    "BMP",
    "Lipid Panel",
    "Thyroid Panel",
    "Liver Function",
    "Kidney Function",
    "Electrolytes",
    "Vitamins",
    "Hormones",
)

# Glucose    95    mg/dL    70-100
GENERIC_LINE_RE = re.compile(rf"^{NAME}\s+{VALUE}\s+{UNIT}\s+{RANGE}")

GENERIC_PROFILE = ProviderProfile(
    tag=ProviderTag.GENERIC,
    display_name="Generic",
    header_patterns=(
        re.compile(r"^(?:" + "|".join(re.escape(s) for s in COMMON_SECTIONS) + r")\s*:?$", I),
    ),
    marker_patterns=(GENERIC_LINE_RE,),
    patient_patterns={
        "date_of_birth": (re.compile(r"(?:\bDOB|date\s+of\s+birth)[:\s]+" + DATE, I),),
        "age": (
            re.compile(r"\bage[:\s]+(\d{1,3})\b", I),
            re.compile(r"\b(\d{1,3})\s*(?:years?|yrs?)(?:\s+old)?\b", I),
        ),
        "sex": (re.compile(r"\bsex[:\s]+(male|female|m|f)\b", I),),
        "specimen_date": (re.compile(r"(?:collected?|specimen|draw)[:\s]+" + DATE, I),),
        "report_date": (re.compile(r"(?:reported?|report\s+date)[:\s]+" + DATE, I),),
    },
    verify_signature=False,
)


def parse_generic(text: str, extraction_method: str = PDF_TEXT) -> ParsedReport:
    return build_report(text, GENERIC_PROFILE, extraction_method)
