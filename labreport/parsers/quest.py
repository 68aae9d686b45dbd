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

# Quest: Test  Result  Units  Reference Range  [Flag]
QUEST_LINE_RE = re.compile(rf"^{NAME}\s+{VALUE}\s+{UNIT}\s+{RANGE}(?:\s+{FLAG})?\s*$")
# Test  Result  Units  [Flag]  +  "Reference Range: XX-YY" en la línea siguiente
QUEST_SPLIT_RE = re.compile(rf"^{NAME}\s+{VALUE}\s+{UNIT}(?:\s+{FLAG})?\s*$")

QUEST_PROFILE = ProviderProfile(
    tag=ProviderTag.QUEST,
    display_name="Quest Diagnostics",
    header_patterns=(
        ALL_CAPS_HEADER,
        re.compile(r"^(CBC|CMP|BMP|LIPID PANEL|THYROID|COMPREHENSIVE|METABOLIC)", I),
        PANEL_SUFFIX,
        PROFILE_SUFFIX,
    ),
    marker_patterns=(QUEST_LINE_RE,),
    split_pattern=QUEST_SPLIT_RE,
    patient_patterns={
        "date_of_birth": (re.compile(r"(?:\bDOB|date\s+of\s+birth)[:\s]+" + DATE, I),),
        "age": (re.compile(r"\bage[:\s]+(\d{1,3})\b", I),),
        "sex": (re.compile(r"\bsex[:\s]+(male|female|m|f)\b", I),),
        "specimen_date": (re.compile(r"(?:collected?|specimen)[:\s]+" + DATE, I),),
        "report_date": (re.compile(r"(?:reported?|result)[:\s]+" + DATE, I),),
    },
    lab_number_patterns=(re.compile(r"lab\s+(?:number|#|no\.?)[:\s]+([A-Z0-9\-]+)", I),),
    physician_patterns=(re.compile(r"ordering\s+physician\s*:[ \t]*([^\n]+)", I),),
)


def parse_quest(text: str, extraction_method: str = PDF_TEXT) -> ParsedReport:
    return build_report(text, QUEST_PROFILE, extraction_method)
