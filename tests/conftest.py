import zlib

import pytest


def build_pdf(content: bytes, compress: bool = False) -> bytes:
    """Minimal single-stream PDF around a raw content stream."""
    body = zlib.compress(content) if compress else content
    filt = b" /Filter /FlateDecode" if compress else b""
    return (
        b"%PDF-1.4\n"
        b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
        b"4 0 obj\n<< /Length " + str(len(body)).encode() + filt + b" >>\nstream\n"
        + body
        + b"\nendstream\nendobj\n"
        b"trailer\n<< /Root 1 0 R >>\n%%EOF\n"
    )


@pytest.fixture
def make_pdf():
    return build_pdf


# una página con una sola imagen JPEG y sin operadores de texto
SCANNED_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
    b"2 0 obj\n<< /Type /Pages /Kids [3 0 R] /Count 1 >>\nendobj\n"
    b"3 0 obj\n<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792]"
    b" /Resources << /XObject << /Im0 4 0 R >> >> /Contents 5 0 R >>\nendobj\n"
    b"4 0 obj\n<< /Type /XObject /Subtype /Image /Width 2 /Height 2 /ColorSpace /DeviceGray"
    b" /BitsPerComponent 8 /Filter /DCTDecode /Length 8 >>\nstream\n"
    b"\xff\xd8\xff\xe0\x00\x10JF\nendstream\nendobj\n"
    b"5 0 obj\n<< /Length 31 >>\nstream\nq 612 0 0 792 0 0 cm /Im0 Do Q\nendstream\nendobj\n"
    b"xref\n0 6\n0000000000 65535 f \n0000000009 00000 n \n0000000058 00000 n \n"
    b"trailer\n<< /Size 6 /Root 1 0 R >>\nstartxref\n512\n%%EOF\n"
)


@pytest.fixture
def scanned_pdf():
    return SCANNED_PDF
