"""Best-effort text extraction that reads PDF content-stream operators directly.

No glyph tables (ToUnicode CMaps) are consulted: fonts with custom encodings
come out garbled, which is still preferred over failing the document.
"""

import re
import zlib
from typing import List, Optional

from labreport.commons.errors import ExtractionError
from labreport.commons.logger import logger
from labreport.parsers.models import PDF_TEXT, RAW_TEXT, ExtractedText

MAX_INFLATED_BYTES = 32 * 1024 * 1024
# kerning en TJ (milésimas de em) a partir de la cual se asume un espacio
TJ_SPACE_THRESHOLD = -200

STREAM_START_RE = re.compile(rb"(?<!end)stream\r?\n")
OBJ_RE = re.compile(rb"\bobj\b")

BT_RE = re.compile(r"(?<![A-Za-z0-9_])BT(?![A-Za-z0-9_])")
ET_RE = re.compile(r"(?<![A-Za-z0-9_])ET(?![A-Za-z0-9_])")

TOKEN_RE = re.compile(
    r"""
    (?P<str>\((?:\\.|[^\\()]|\((?:\\.|[^\\()])*\))*\))
    |(?P<hex><[0-9A-Fa-f\s]*>)
    |(?P<open>\[)
    |(?P<close>\])
    |(?P<num>[+-]?(?:\d+\.?\d*|\.\d+))
    |(?P<name>/[^\s/\[\]()<>{}%]+)
    |(?P<op>[A-Za-z*][A-Za-z0-9*]*|'|")
    """,
    re.S | re.X,
)

_ESCAPE_RE = re.compile(r"\\(?:([0-7]{1,3})|(\r\n|\r|\n)|(.))", re.S)
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f"}
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n]")

# esqueleto PDF que no es texto visible
_STREAM_BODY_RE = re.compile(r"(?<!end)stream\r?\n.*?endstream", re.S)
_DICT_RE = re.compile(r"<<(?:(?!<<|>>).)*>>", re.S)
_STRUCTURE_RE = re.compile(
    r"\b\d+\s+\d+\s+obj\b|\bendobj\b|\bxref\b[\s\dfn]*|\bstartxref\s*\d*|\btrailer\b|^\s*%.*$",
    re.M,
)


def _unescape(body: str) -> str:
    def repl(m: re.Match) -> str:
        if m.group(1):
            return chr(int(m.group(1), 8) & 0xFF)
        if m.group(2):
            return ""  # continuación de línea
        ch = m.group(3)
        return _ESCAPES.get(ch, ch)

    return _ESCAPE_RE.sub(repl, body)


def _decode_hex(token: str) -> str:
    digits = re.sub(r"\s+", "", token[1:-1])
    if len(digits) % 2:
        digits += "0"
    raw = bytes.fromhex(digits)
    if raw.startswith(b"\xfe\xff") or (len(raw) >= 2 and len(raw) % 2 == 0 and raw[0::2].count(0) == len(raw) // 2):
        return raw.decode("utf-16-be", errors="replace").lstrip("\ufeff")
    return raw.decode("latin-1")


def _clean_fragment(s: str) -> str:
    return _CONTROL_RE.sub("", s.replace("\n", " ").replace("\r", " ").replace("\t", " "))


def inflate_streams(data: bytes) -> bytes:
    """Replace FlateDecode stream bodies with their inflated content.

    Streams that do not inflate are kept untouched.
    """
    out: List[bytes] = []
    pos = 0
    for m in STREAM_START_RE.finditer(data):
        if m.start() < pos:
            continue
        end = data.find(b"endstream", m.end())
        if end < 0:
            break
        objs = [o.end() for o in OBJ_RE.finditer(data, max(0, m.start() - 1024), m.start())]
        header = data[objs[-1] if objs else max(0, m.start() - 1024):m.start()]
        body = data[m.end():end]
        if b"/FlateDecode" not in header:
            continue
        try:
            inflated = zlib.decompressobj().decompress(body, MAX_INFLATED_BYTES)
        except zlib.error:
            continue
        out.append(data[pos:m.end()])
        out.append(inflated + b"\n")
        pos = end
    out.append(data[pos:])
    return b"".join(out)


def find_text_spans(content: str) -> List[str]:
    """Return the bodies of every BT ... ET block, in document order."""
    spans: List[str] = []
    ets = [m for m in ET_RE.finditer(content)]
    j = 0
    last_end = 0
    for bt in BT_RE.finditer(content):
        if bt.start() < last_end:
            continue
        while j < len(ets) and ets[j].start() < bt.end():
            j += 1
        if j >= len(ets):
            break
        spans.append(content[bt.end():ets[j].start()])
        last_end = ets[j].end()
        j += 1
    return spans


def span_lines(span: str) -> List[str]:
    """Walk one text object's operators and return its visible lines.

    Strings shown with Tj / TJ / ' / " on the same baseline share a line;
    T*, ', " and vertical Td/TD/Tm moves start a new one.
    """
    lines: List[str] = []
    current: List[str] = []
    operands: list = []
    array: Optional[list] = None
    last_y: Optional[float] = None

    def flush():
        line = re.sub(r"\s+", " ", " ".join(current)).strip()
        if line:
            lines.append(line)
        current.clear()

    for tok in TOKEN_RE.finditer(span):
        kind = tok.lastgroup
        val = tok.group(kind)
        if kind in ("str", "hex"):
            s = _decode_hex(val) if kind == "hex" else _unescape(val[1:-1])
            s = _clean_fragment(s)
            (array if array is not None else operands).append(s)
        elif kind == "num":
            n = float(val)
            if array is not None:
                if n <= TJ_SPACE_THRESHOLD:
                    array.append(" ")
            else:
                operands.append(n)
        elif kind == "open":
            array = []
        elif kind == "close":
            operands.append(array if array is not None else [])
            array = None
        elif kind == "op":
            if val == "Tj":
                if operands and isinstance(operands[-1], str):
                    current.append(operands[-1])
            elif val == "TJ":
                if operands and isinstance(operands[-1], list):
                    current.append("".join(p for p in operands[-1] if isinstance(p, str)))
            elif val in ("'", '"'):
                flush()
                if operands and isinstance(operands[-1], str):
                    current.append(operands[-1])
            elif val == "T*":
                flush()
            elif val in ("Td", "TD"):
                nums = [o for o in operands if isinstance(o, float)]
                if len(nums) >= 2 and nums[-1] != 0:
                    flush()
            elif val == "Tm":
                nums = [o for o in operands if isinstance(o, float)]
                if len(nums) >= 6:
                    if last_y is not None and nums[-1] != last_y:
                        flush()
                    last_y = nums[-1]
            operands = []
        # nombres (/F1) se ignoran
    flush()
    return lines


def _strip_structure(text: str) -> str:
    text = _STREAM_BODY_RE.sub("\n", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    # diccionarios anidados: de adentro hacia afuera
    prev = None
    while prev != text:
        prev, text = text, _DICT_RE.sub(" ", text)
    return _STRUCTURE_RE.sub("", text)


def _raw_fallback(text: str) -> str:
    """Printable text left after removing streams, dictionaries and xref/trailer bookkeeping."""
    kept = _strip_structure(text)
    return "\n".join(ln.strip() for ln in kept.split("\n") if ln.strip())


def extract(data: bytes, preview_bytes: int = 64) -> ExtractedText:
    """Extract visible text from PDF bytes.

    Raises ExtractionError when nothing readable comes out (scanned or corrupt PDFs).
    """
    data = data or b""
    try:
        content = inflate_streams(data).decode("latin-1")
        spans = find_text_spans(content)
        if spans:
            lines = [ln for span in spans for ln in span_lines(span)]
            result = ExtractedText(text="\n".join(lines), method=PDF_TEXT)
        else:
            logger.debug("No BT/ET text objects found; using raw printable fallback")
            result = ExtractedText(text=_raw_fallback(content), method=RAW_TEXT)
    except ExtractionError:
        raise
    except Exception as ex:
        raise ExtractionError(
            f"PDF text extraction failed: {ex}", size=len(data), preview=data[:preview_bytes]
        ) from ex

    if not result.text.strip():
        raise ExtractionError(
            "No text could be extracted from PDF. File may be scanned or corrupted.",
            size=len(data),
            preview=data[:preview_bytes],
        )
    return result


def extract_text(data: bytes) -> str:
    return extract(data).text
