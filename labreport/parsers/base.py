import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from .models import (
    DEFAULT_SECTION,
    PDF_TEXT,
    RAW_TEXT,
    Confidence,
    LabSection,
    Marker,
    MarkerValue,
    ParsedReport,
    PatientInfo,
    ProviderInfo,
    ProviderTag,
    ReportMetadata,
)
from .ranges import derive_status, parse_range, status_from_flag

NO_MARKERS_WARNING = "No lab markers detected in document"
RAW_TEXT_WARNING = "Text recovered without PDF text operators; results may be incomplete"

# -------- Firmas de laboratorio (orden = prioridad) --------
PROVIDER_SIGNATURES: Dict[ProviderTag, Tuple[Pattern, ...]] = {
    ProviderTag.QUEST: (
        re.compile(r"quest\s+diagnostics", re.IGNORECASE),
        re.compile(r"questdiagnostics\.com", re.IGNORECASE),
    ),
    ProviderTag.LABCORP: (
        re.compile(r"labcorp", re.IGNORECASE),
        re.compile(r"laboratory\s+corporation", re.IGNORECASE),
    ),
}


def detect_provider(text: str) -> ProviderTag:
    """Return the issuing lab for `text`; GENERIC when nothing matches."""
    for tag in PROVIDER_SIGNATURES:
        if matches_provider(text, tag):
            return tag
    return ProviderTag.GENERIC


def matches_provider(text: str, tag: ProviderTag) -> bool:
    return any(p.search(text or "") for p in PROVIDER_SIGNATURES.get(tag, ()))


# -------- Piezas de las expresiones tabulares --------
NAME = r"(?P<name>[A-Za-z][A-Za-z0-9\s\-\(\),\./%'&+]*?)"
VALUE = r"(?P<value>[<>]=?\d+(?:\.\d+)?|\d+(?:\.\d+)?)"
UNIT = r"(?P<unit>[A-Za-z%µμ][^\s]*)"
RANGE = r"(?P<range>[<>]=?\s*\d+(?:\.\d+)?|\d+(?:\.\d+)?\s*[-–—]\s*\d+(?:\.\d+)?)"
FLAG = r"(?P<flag>[HL]{1,2}\*?|\*)"

DATE = r"(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})"

REFERENCE_LINE_RE = re.compile(
    r"^\s*(?:reference|ref\.?)(?:\s+range|\s+interval)?\s*[:\s]\s*(?P<range>.+?)\s*$",
    re.IGNORECASE,
)

# Una línea con número + unidad o con un rango no es encabezado
_MEASUREMENT_HINT = re.compile(r"\d\s+[A-Za-z%µμ]|" + RANGE.replace("?P<range>", "?:"))

ALL_CAPS_HEADER = re.compile(r"^[A-Z\s]{10,}$")
PANEL_SUFFIX = re.compile(r"PANEL$", re.IGNORECASE)
PROFILE_SUFFIX = re.compile(r"PROFILE$", re.IGNORECASE)


@dataclass(frozen=True)
class ProviderProfile:
    tag: ProviderTag
    display_name: str
    header_patterns: Tuple[Pattern, ...]
    marker_patterns: Tuple[Pattern, ...]
    # name/value/unit line whose range sits on the next "Reference:" line
    split_pattern: Optional[Pattern] = None
    patient_patterns: Dict[str, Tuple[Pattern, ...]] = field(default_factory=dict)
    lab_number_patterns: Tuple[Pattern, ...] = ()
    physician_patterns: Tuple[Pattern, ...] = ()
    verify_signature: bool = True


# -------- Paciente / proveedor --------
def _first_group(text: str, patterns: Sequence[Pattern]) -> Optional[str]:
    for p in patterns:
        m = p.search(text)
        if m:
            return m.group(1).strip()
    return None


def _normalize_sex(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return "M" if raw.strip().upper().startswith("M") else "F"


def extract_patient_info(text: str, patterns: Dict[str, Tuple[Pattern, ...]]) -> Optional[PatientInfo]:
    """Look up each patient field on its own; a missing field never blocks the others."""
    age = _first_group(text, patterns.get("age", ()))
    info = PatientInfo(
        age=int(age) if age else None,
        sex=_normalize_sex(_first_group(text, patterns.get("sex", ()))),
        date_of_birth=_first_group(text, patterns.get("date_of_birth", ())),
        specimen_date=_first_group(text, patterns.get("specimen_date", ())),
        report_date=_first_group(text, patterns.get("report_date", ())),
    )
    return None if info.is_empty() else info


def extract_provider_info(text: str, profile: ProviderProfile) -> ProviderInfo:
    physician = _first_group(text, profile.physician_patterns)
    if physician:
        # columnas vecinas separadas por 2+ espacios
        physician = re.split(r"\s{2,}", physician)[0].strip(" ,;") or None
    return ProviderInfo(
        name=profile.display_name,
        lab_number=_first_group(text, profile.lab_number_patterns),
        physician_name=physician,
    )


# -------- Encabezados y líneas de marcador --------
def is_section_header(line: str, patterns: Sequence[Pattern]) -> bool:
    s = line.strip()
    if not s or _MEASUREMENT_HINT.search(s):
        return False
    return any(p.search(s) for p in patterns)


def clean_section_name(line: str) -> str:
    return re.sub(r"[:\s]+$", "", line.strip())


def parse_value(raw: str) -> MarkerValue:
    s = raw.strip()
    if s.startswith(("<", ">")):
        return s
    try:
        return float(s)
    except ValueError:
        return s


def _clean_name(raw: str) -> str:
    return re.sub(r"\s+", " ", raw).strip(" ,:;-")


def build_marker(name: str, value: str, unit: str, range_text: str, flag: Optional[str] = None) -> Marker:
    rng = parse_range(range_text)
    val = parse_value(value)
    flag = (flag or "").strip()
    if flag:
        # la bandera impresa por el laboratorio manda sobre el rango
        return Marker(
            name=_clean_name(name),
            value=val,
            unit=(unit or "").strip(),
            reference_range=rng,
            status=status_from_flag(flag),
            flags=(flag,),
        )
    return Marker(
        name=_clean_name(name),
        value=val,
        unit=(unit or "").strip(),
        reference_range=rng,
        status=derive_status(val, rng),
    )


def parse_marker_line(
    line: str, next_line: Optional[str], profile: ProviderProfile
) -> Tuple[Optional[Marker], bool]:
    """Parse one tabular line.

    Returns (marker, consumed_next_line). Lines that match nothing give (None, False).
    """
    s = line.strip()
    for pattern in profile.marker_patterns:
        m = pattern.match(s)
        if m:
            g = m.groupdict()
            return build_marker(g["name"], g["value"], g.get("unit") or "", g["range"], g.get("flag")), False

    if profile.split_pattern is None or not next_line:
        return None, False
    m = profile.split_pattern.match(s)
    if not m:
        return None, False
    ref = REFERENCE_LINE_RE.match(next_line)
    if not ref:
        return None, False
    g = m.groupdict()
    return build_marker(g["name"], g["value"], g.get("unit") or "", ref.group("range"), g.get("flag")), True


def segment_sections(lines: List[str], profile: ProviderProfile) -> Tuple[LabSection, ...]:
    sections: List[LabSection] = []
    name = DEFAULT_SECTION
    markers: List[Marker] = []

    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if not line:
            i += 1
            continue
        if is_section_header(line, profile.header_patterns):
            if markers:
                sections.append(LabSection(name=name, markers=tuple(markers)))
            name = clean_section_name(line)
            markers = []
            i += 1
            continue
        nxt = lines[i + 1] if i + 1 < len(lines) else None
        marker, consumed = parse_marker_line(line, nxt, profile)
        if marker is not None:
            markers.append(marker)
        i += 2 if consumed else 1

    if markers:
        sections.append(LabSection(name=name, markers=tuple(markers)))
    return tuple(sections)


_LEVELS: Tuple[Confidence, ...] = ("low", "medium", "high")


def assess_confidence(profile: ProviderProfile, confirmed: bool, total: int, extraction_method: str) -> Confidence:
    if total == 0:
        return "low"
    if profile.tag == ProviderTag.GENERIC or not confirmed:
        level = "medium"
    else:
        level = "high"
    if extraction_method == RAW_TEXT:
        level = _LEVELS[max(0, _LEVELS.index(level) - 1)]
    return level


def build_report(text: str, profile: ProviderProfile, extraction_method: str = PDF_TEXT) -> ParsedReport:
    """Run the shared extraction steps with a provider's pattern tables."""
    warnings: List[str] = []

    confirmed = True
    if profile.verify_signature and not matches_provider(text, profile.tag):
        confirmed = False
        warnings.append(f"Document does not appear to be a {profile.display_name} report")

    sections = segment_sections(text.splitlines(), profile)
    total = sum(len(s.markers) for s in sections)
    if total == 0:
        warnings.append(NO_MARKERS_WARNING)
    if extraction_method == RAW_TEXT:
        warnings.append(RAW_TEXT_WARNING)

    return ParsedReport(
        provider=extract_provider_info(text, profile),
        patient=extract_patient_info(text, profile.patient_patterns),
        sections=sections,
        raw_text=text,
        metadata=ReportMetadata(
            total_markers=total,
            confidence=assess_confidence(profile, confirmed, total, extraction_method),
            parser_used=profile.tag,
            extraction_method=extraction_method,
            warnings=tuple(warnings),
        ),
    )
