import re

from .base import (
    ALL_CAPS_HEADER,
    DATE,
    FLAG,
    NAME,
    PANEL_SUFFIX,
    PROFILE_SUFFIX,
    RANGE,
    UNIT,
    VALUE,
    ProviderProfile,
    build_report,
)
from .models import PDF_TEXT, ParsedReport, ProviderTag

I = re.IGNORECASE

# LabCorp: Test  Result  [Flag]  Units  Reference Interval  (+ lab code, etc.)
LABCORP_LINE_RE = re.compile(rf"^{NAME}\s+{VALUE}(?:\s+{FLAG})?\s+{UNIT}\s+{RANGE}")
LABCORP_SPLIT_RE = re.compile(rf"^{NAME}\s+{VALUE}(?:\s+{FLAG})?\s+{UNIT}\s*$")

LABCORP_PROFILE = ProviderProfile(
    tag=ProviderTag.LABCORP,
    display_name="LabCorp",
    header_patterns=(
        ALL_CAPS_HEADER,
        re.compile(r"^(COMPLETE BLOOD COUNT|CBC|COMPREHENSIVE METABOLIC|CMP|BASIC METABOLIC|BMP)", I),
        PANEL_SUFFIX,
        PROFILE_SUFFIX,
        re.compile(r"^LIPID", I),
        re.compile(r"^THYROID", I),
    ),
    marker_patterns=(LABCORP_LINE_RE,),
    split_pattern=LABCORP_SPLIT_RE,
    patient_patterns={
        "date_of_birth": (re.compile(r"(?:\bDOB|birth\s+date|date\s+of\s+birth)[:\s]+" + DATE, I),),
        "age": (re.compile(r"\bage[:\s]+(\d{1,3})\b", I),),
        "sex": (re.compile(r"\b(?:sex|gender)[:\s]+(male|female|m|f)\b", I),),
        "specimen_date": (re.compile(r"(?:collected?|draw\s+date)[:\s]+" + DATE, I),),
        "report_date": (re.compile(r"(?:reported?|result\s+date)[:\s]+" + DATE, I),),
    },
    lab_number_patterns=(
        re.compile(r"specimen\s+id[:\s]+([A-Z0-9\-]+)", I),
        re.compile(r"accession(?:\s+(?:number|no\.?|#))?[:\s]+([A-Z0-9\-]+)", I),
    ),
    physician_patterns=(re.compile(r"(?:ordering\s+physician|physician\s+name)\s*:[ \t]*([^\n]+)", I),),
)


def parse_labcorp(text: str, extraction_method: str = PDF_TEXT) -> ParsedReport:
    return build_report(text, LABCORP_PROFILE, extraction_method)
